from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import get_admin_user, get_current_user
from ...services.account_service import AccountService
from ...schemas.account import AccountResponse, DoctorStatusUpdate, DoctorUpdate
from ...models.doctor import DoctorStatus
from ...models.user import User

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=List[AccountResponse])
async def list_doctors(
    status: Optional[DoctorStatus] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """List every doctor, optionally filtered by approval status."""
    doctors = AccountService(db).list_doctors(admin, status)
    return [AccountResponse.model_validate(d) for d in doctors]

@router.get("/approved", response_model=List[AccountResponse])
async def list_approved_doctors(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Doctors patients can book with."""
    doctors = AccountService(db).list_approved_doctors()
    return [AccountResponse.model_validate(d) for d in doctors]

@router.get("/{doctor_id}", response_model=AccountResponse)
async def get_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    doctor = AccountService(db).get_doctor(current_user, doctor_id)
    return AccountResponse.model_validate(doctor)

@router.put("/{doctor_id}", response_model=AccountResponse)
async def update_doctor(
    doctor_id: int,
    updates: DoctorUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a doctor profile; only admins may change the approval status."""
    doctor = AccountService(db).update_doctor(current_user, doctor_id, updates)
    return AccountResponse.model_validate(doctor)

@router.put("/{doctor_id}/status", response_model=AccountResponse)
async def set_doctor_status(
    doctor_id: int,
    status_data: DoctorStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Approve, reject or reset a doctor (admin only)."""
    doctor = AccountService(db).set_doctor_status(admin, doctor_id, status_data.status)
    return AccountResponse.model_validate(doctor)
