import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.appointment import AppointmentStatus, AppointmentType


class AppointmentCreate(BaseModel):
    doctor_id: int
    # patients book for themselves; admins must name the patient
    patient_id: Optional[int] = None
    type: AppointmentType
    date: dt.date
    time: str = Field(min_length=1, max_length=50)
    reason: Optional[str] = Field(None, max_length=2000)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    type: AppointmentType
    date: dt.date
    time: str
    reason: Optional[str] = None
    status: AppointmentStatus
    video_call_link: Optional[str] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class VideoLinkResponse(BaseModel):
    appointment_id: int
    link: Optional[str] = None
