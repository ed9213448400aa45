from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.security import UserRole
from ..models.doctor import DoctorStatus


# ── patient profile ─────────────────────────────────────────────────────
class PatientProfileIn(BaseModel):
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[str] = Field(None, max_length=20)
    blood_type: Optional[str] = Field(None, max_length=10)
    allergies: List[str] = Field(default_factory=list)
    chronic_conditions: List[str] = Field(default_factory=list)
    current_medications: List[str] = Field(default_factory=list)
    past_procedures: List[str] = Field(default_factory=list)
    medical_history: Optional[str] = None
    emergency_contact_name: Optional[str] = Field(None, max_length=200)
    emergency_contact_phone: Optional[str] = Field(None, max_length=20)


class PatientProfileUpdate(BaseModel):
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[str] = Field(None, max_length=20)
    blood_type: Optional[str] = Field(None, max_length=10)
    allergies: Optional[List[str]] = None
    chronic_conditions: Optional[List[str]] = None
    current_medications: Optional[List[str]] = None
    past_procedures: Optional[List[str]] = None
    medical_history: Optional[str] = None
    emergency_contact_name: Optional[str] = Field(None, max_length=200)
    emergency_contact_phone: Optional[str] = Field(None, max_length=20)


class PatientProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    age: Optional[int] = None
    gender: Optional[str] = None
    date_of_birth: Optional[str] = None
    blood_type: Optional[str] = None
    allergies: Optional[List[str]] = None
    chronic_conditions: Optional[List[str]] = None
    current_medications: Optional[List[str]] = None
    past_procedures: Optional[List[str]] = None
    medical_history: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None


# ── doctor profile ──────────────────────────────────────────────────────
class DoctorProfileIn(BaseModel):
    # no status field: registration always lands in PENDING
    specialty: str = Field(min_length=1, max_length=100)
    registration_number: str = Field(min_length=1, max_length=50)
    years_of_experience: Optional[int] = Field(None, ge=0, le=80)
    clinic_name: Optional[str] = Field(None, max_length=255)


class DoctorProfileUpdate(BaseModel):
    specialty: Optional[str] = Field(None, min_length=1, max_length=100)
    registration_number: Optional[str] = Field(None, min_length=1, max_length=50)
    years_of_experience: Optional[int] = Field(None, ge=0, le=80)
    clinic_name: Optional[str] = Field(None, max_length=255)
    # accepted only so a doctor trying to set it can be refused explicitly
    status: Optional[DoctorStatus] = None


class DoctorProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    specialty: str
    registration_number: str
    years_of_experience: Optional[int] = None
    clinic_name: Optional[str] = None
    status: DoctorStatus


# ── accounts ────────────────────────────────────────────────────────────
class AccountResponse(BaseModel):
    """Public view of an account. There is deliberately no credential field."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: UserRole
    first_name: str
    last_name: str
    phone: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    created_at: Optional[datetime] = None
    patient_profile: Optional[PatientProfileResponse] = None
    doctor_profile: Optional[DoctorProfileResponse] = None


class AccountUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)


class PatientUpdate(AccountUpdate):
    patient_profile: Optional[PatientProfileUpdate] = None


class DoctorUpdate(AccountUpdate):
    doctor_profile: Optional[DoctorProfileUpdate] = None


class DoctorStatusUpdate(BaseModel):
    status: DoctorStatus


class AdminStats(BaseModel):
    total_patients: int
    total_doctors: int
    pending_doctors: int
    total_appointments: int
    online_appointments: int
    physical_appointments: int
