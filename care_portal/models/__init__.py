from .user import User, RefreshToken
from .patient import PatientProfile
from .doctor import DoctorProfile, DoctorStatus
from .appointment import Appointment, AppointmentStatus, AppointmentType
from .notification import Notification

__all__ = [
    "User",
    "RefreshToken",
    "PatientProfile",
    "DoctorProfile",
    "DoctorStatus",
    "Appointment",
    "AppointmentStatus",
    "AppointmentType",
    "Notification",
]
