from typing import Annotated, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from .account import AccountResponse, DoctorProfileIn, PatientProfileIn


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


class RegisterBase(BaseModel):
    email: EmailStr
    password: Annotated[str, Field(min_length=1, max_length=128)]
    first_name: Annotated[str, Field(min_length=1, max_length=100)]
    last_name: Annotated[str, Field(min_length=1, max_length=100)]
    phone: Optional[str] = Field(None, max_length=20)
    city: Optional[str] = Field(None, max_length=100)
    province: Optional[str] = Field(None, max_length=100)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class PatientRegister(RegisterBase):
    patient_profile: Optional[PatientProfileIn] = None


class DoctorRegister(RegisterBase):
    doctor_profile: DoctorProfileIn


class UserLogin(BaseModel):
    # not EmailStr: a malformed address must fail exactly like an unknown one
    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountResponse


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class ChangePassword(BaseModel):
    current_password: str
    new_password: Annotated[str, Field(min_length=1, max_length=128)]
