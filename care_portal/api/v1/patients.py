from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_current_user, get_doctor_user
from ...services.account_service import AccountService
from ...schemas.account import AccountResponse, PatientUpdate
from ...models.user import User

router = APIRouter(prefix="/patients", tags=["Patients"])

@router.get("/doctor/{doctor_id}", response_model=List[AccountResponse])
async def list_patients_for_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_doctor_user)
):
    """Patients who have booked with the given doctor."""
    patients = AccountService(db).patients_for_doctor(current_user, doctor_id)
    return [AccountResponse.model_validate(p) for p in patients]

@router.get("/{patient_id}", response_model=AccountResponse)
async def get_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    patient = AccountService(db).get_patient(current_user, patient_id)
    return AccountResponse.model_validate(patient)

@router.put("/{patient_id}", response_model=AccountResponse)
async def update_patient(
    patient_id: int,
    updates: PatientUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    patient = AccountService(db).update_patient(current_user, patient_id, updates)
    return AccountResponse.model_validate(patient)
