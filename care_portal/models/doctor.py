from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class DoctorStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class DoctorProfile(Base):
    __tablename__ = "doctor_profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Professional information
    specialty = Column(String(100), nullable=False)
    registration_number = Column(String(50), nullable=False)
    years_of_experience = Column(Integer, nullable=True)
    clinic_name = Column(String(255), nullable=True)

    # Only an admin moves this; registration always starts at PENDING
    status = Column(SQLEnum(DoctorStatus), nullable=False, default=DoctorStatus.PENDING, index=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="doctor_profile")

    def __repr__(self):
        return f"<DoctorProfile(id={self.id}, user_id={self.user_id}, specialty='{self.specialty}', status='{self.status}')>"
