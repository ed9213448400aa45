from sqlalchemy import or_, select
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from ..core.exceptions import Forbidden, NotFound
from ..core.permissions import (
    ensure_admin, ensure_can_view_account, ensure_self_or_admin, is_admin
)
from ..core.security import UserRole
from ..models.appointment import Appointment, AppointmentType
from ..models.doctor import DoctorProfile, DoctorStatus
from ..models.patient import PatientProfile
from ..models.user import User, RefreshToken
from ..schemas.account import AccountUpdate, AdminStats, DoctorUpdate, PatientUpdate
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

class AccountService:
    """Patient and doctor accounts, and the admin moderation around them."""

    def __init__(self, db: Session):
        self.db = db
        self.notifications = NotificationService(db)

    def _get_by_role(self, user_id: int, role: UserRole, label: str) -> User:
        user = self.db.query(User).filter(User.id == user_id, User.role == role).first()
        if not user:
            raise NotFound(f"{label} not found")
        return user

    # Patients
    def list_patients(self, actor: User) -> List[User]:
        ensure_admin(actor)
        return self.db.query(User).filter(User.role == UserRole.PATIENT).order_by(User.id).all()

    def get_patient(self, actor: User, patient_id: int) -> User:
        patient = self._get_by_role(patient_id, UserRole.PATIENT, "Patient")
        ensure_can_view_account(actor, patient, self.shares_appointment(actor, patient))
        return patient

    def update_patient(self, actor: User, patient_id: int, updates: PatientUpdate) -> User:
        patient = self._get_by_role(patient_id, UserRole.PATIENT, "Patient")
        ensure_self_or_admin(actor, patient.id)

        self._apply_account_fields(patient, updates)
        if updates.patient_profile is not None:
            if patient.patient_profile is None:
                patient.patient_profile = PatientProfile()
            for field, value in updates.patient_profile.model_dump(exclude_unset=True).items():
                setattr(patient.patient_profile, field, value)

        self.db.commit()
        self.db.refresh(patient)
        logger.info(f"Patient id={patient.id} profile updated by account id={actor.id}")
        return patient

    def patients_for_doctor(self, actor: User, doctor_id: int) -> List[User]:
        """Distinct patients holding at least one appointment with the doctor."""
        self._get_by_role(doctor_id, UserRole.DOCTOR, "Doctor")
        ensure_self_or_admin(actor, doctor_id)
        patient_ids = select(Appointment.patient_id).where(
            Appointment.doctor_id == doctor_id
        ).distinct()
        return (
            self.db.query(User)
            .filter(User.id.in_(patient_ids), User.role == UserRole.PATIENT)
            .order_by(User.last_name, User.first_name)
            .all()
        )

    # Doctors
    def list_doctors(self, actor: User, status: Optional[DoctorStatus] = None) -> List[User]:
        ensure_admin(actor)
        query = self.db.query(User).join(DoctorProfile).filter(User.role == UserRole.DOCTOR)
        if status is not None:
            query = query.filter(DoctorProfile.status == status)
        return query.order_by(User.id).all()

    def list_approved_doctors(self) -> List[User]:
        return (
            self.db.query(User)
            .join(DoctorProfile)
            .filter(User.role == UserRole.DOCTOR, DoctorProfile.status == DoctorStatus.APPROVED)
            .order_by(User.last_name, User.first_name)
            .all()
        )

    def get_doctor(self, actor: User, doctor_id: int) -> User:
        doctor = self._get_by_role(doctor_id, UserRole.DOCTOR, "Doctor")
        ensure_can_view_account(actor, doctor)
        return doctor

    def update_doctor(self, actor: User, doctor_id: int, updates: DoctorUpdate) -> User:
        doctor = self._get_by_role(doctor_id, UserRole.DOCTOR, "Doctor")
        ensure_self_or_admin(actor, doctor.id)

        profile_changes = {}
        if updates.doctor_profile is not None:
            profile_changes = updates.doctor_profile.model_dump(exclude_unset=True)
        if "status" in profile_changes and not is_admin(actor):
            raise Forbidden("Approval status can only be changed by an admin")
        new_status = profile_changes.pop("status", None)

        self._apply_account_fields(doctor, updates)
        for field, value in profile_changes.items():
            # specialty and registration_number are required; the rest may be cleared
            if value is not None or field in ("years_of_experience", "clinic_name"):
                setattr(doctor.doctor_profile, field, value)

        if new_status is not None and new_status != doctor.doctor_profile.status:
            self._change_doctor_status(doctor, new_status)

        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"Doctor id={doctor.id} profile updated by account id={actor.id}")
        return doctor

    def set_doctor_status(self, actor: User, doctor_id: int, status: DoctorStatus) -> User:
        """Admins may move a doctor between any approval states."""
        ensure_admin(actor)
        doctor = self._get_by_role(doctor_id, UserRole.DOCTOR, "Doctor")

        if doctor.doctor_profile.status != status:
            self._change_doctor_status(doctor, status)
            self.db.commit()
            self.db.refresh(doctor)

        return doctor

    # Admin
    def list_accounts(self, actor: User, skip: int = 0, limit: int = 50) -> List[User]:
        ensure_admin(actor)
        return self.db.query(User).order_by(User.id).offset(skip).limit(limit).all()

    def delete_account(self, actor: User, user_id: int) -> None:
        """Delete an account with its profile, notifications, tokens and
        every appointment it takes part in."""
        ensure_admin(actor)
        if actor.id == user_id:
            raise Forbidden("Admins cannot delete their own account")
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found")

        role = user.role
        removed = self.db.query(Appointment).filter(
            or_(Appointment.patient_id == user.id, Appointment.doctor_id == user.id)
        ).delete(synchronize_session=False)
        self.db.query(RefreshToken).filter(
            RefreshToken.user_id == user.id
        ).delete(synchronize_session=False)
        self.db.delete(user)
        self.db.commit()

        logger.info(
            f"Account id={user_id} ({role.value}) deleted by admin id={actor.id}; "
            f"{removed} appointment(s) removed"
        )

    def stats(self, actor: User) -> AdminStats:
        ensure_admin(actor)
        return AdminStats(
            total_patients=self.db.query(User).filter(User.role == UserRole.PATIENT).count(),
            total_doctors=self.db.query(DoctorProfile).filter(
                DoctorProfile.status == DoctorStatus.APPROVED
            ).count(),
            pending_doctors=self.db.query(DoctorProfile).filter(
                DoctorProfile.status == DoctorStatus.PENDING
            ).count(),
            total_appointments=self.db.query(Appointment).count(),
            online_appointments=self.db.query(Appointment).filter(
                Appointment.type == AppointmentType.ONLINE
            ).count(),
            physical_appointments=self.db.query(Appointment).filter(
                Appointment.type == AppointmentType.PHYSICAL
            ).count(),
        )

    def _change_doctor_status(self, doctor: User, status: DoctorStatus) -> None:
        previous = doctor.doctor_profile.status
        doctor.doctor_profile.status = status
        self.notifications.notify(
            doctor.id,
            "Account status updated",
            f"Your doctor account is now {status.value}.",
        )
        logger.info(f"Doctor id={doctor.id} status {previous.value} -> {status.value}")

    def shares_appointment(self, actor: User, patient: User) -> bool:
        if actor.role != UserRole.DOCTOR or patient.role != UserRole.PATIENT:
            return False
        return self.db.query(Appointment.id).filter(
            Appointment.doctor_id == actor.id,
            Appointment.patient_id == patient.id,
        ).first() is not None

    @staticmethod
    def _apply_account_fields(user: User, updates: AccountUpdate) -> None:
        for field in ("first_name", "last_name", "phone", "city", "province"):
            if field in updates.model_fields_set:
                value = getattr(updates, field)
                if value is not None or field in ("phone", "city", "province"):
                    setattr(user, field, value)
