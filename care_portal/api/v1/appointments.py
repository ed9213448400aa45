from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ...core.database import get_db
from ...api.deps import get_admin_user, get_current_user, get_patient_user
from ...services.appointment_service import AppointmentService
from ...schemas.appointment import (
    AppointmentCreate, AppointmentResponse, AppointmentStatusUpdate, VideoLinkResponse
)
from ...models.user import User

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    data: AppointmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_patient_user)
):
    """Book an appointment. It starts out pending."""
    appointment = AppointmentService(db).create(current_user, data)
    return AppointmentResponse.model_validate(appointment)

@router.get("", response_model=List[AppointmentResponse])
async def list_appointments(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """List every appointment (admin only)."""
    appointments = AppointmentService(db).list_all(admin)
    return [AppointmentResponse.model_validate(a) for a in appointments]

@router.get("/patient/{patient_id}", response_model=List[AppointmentResponse])
async def list_patient_appointments(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointments = AppointmentService(db).list_for_patient(current_user, patient_id)
    return [AppointmentResponse.model_validate(a) for a in appointments]

@router.get("/doctor/{doctor_id}", response_model=List[AppointmentResponse])
async def list_doctor_appointments(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointments = AppointmentService(db).list_for_doctor(current_user, doctor_id)
    return [AppointmentResponse.model_validate(a) for a in appointments]

@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointment = AppointmentService(db).get(current_user, appointment_id)
    return AppointmentResponse.model_validate(appointment)

@router.put("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    status_data: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Move an appointment through its lifecycle."""
    appointment = AppointmentService(db).update_status(
        current_user, appointment_id, status_data.status
    )
    return AppointmentResponse.model_validate(appointment)

@router.put("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointment = AppointmentService(db).cancel(current_user, appointment_id)
    return AppointmentResponse.model_validate(appointment)

@router.get("/{appointment_id}/video-link", response_model=VideoLinkResponse)
async def get_video_link(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    link = AppointmentService(db).get_video_link(current_user, appointment_id)
    return VideoLinkResponse(appointment_id=appointment_id, link=link)

@router.post("/{appointment_id}/video-link", response_model=AppointmentResponse)
async def generate_video_link(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Issue the video link of an approved online appointment, or return the existing one."""
    appointment = AppointmentService(db).generate_video_link(current_user, appointment_id)
    return AppointmentResponse.model_validate(appointment)
