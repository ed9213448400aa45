"""Appointment booking and the appointment status lifecycle.

    pending  -> approved | declined | cancelled
    approved -> completed | cancelled

``completed``, ``declined`` and ``cancelled`` are terminal. Approving an
online appointment issues its video link exactly once.
"""
from sqlalchemy.orm import Session
from typing import Dict, FrozenSet, List, Optional
import logging
import secrets

from ..core.config import settings
from ..core.exceptions import Forbidden, InvalidTransition, NotFound, ValidationError
from ..core.permissions import (
    ensure_admin, ensure_appointment_party, ensure_can_set_appointment_status,
    ensure_self_or_admin
)
from ..core.security import UserRole
from ..models.appointment import Appointment, AppointmentStatus, AppointmentType
from ..models.doctor import DoctorStatus
from ..models.user import User
from ..schemas.appointment import AppointmentCreate
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({
        AppointmentStatus.APPROVED,
        AppointmentStatus.DECLINED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.APPROVED: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    }),
}

TERMINAL_STATUSES = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.DECLINED,
    AppointmentStatus.CANCELLED,
})


def check_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    """Validate a status change.

    Returns False when ``new`` equals a non-terminal ``current`` (nothing to
    do), True when the change should be applied, and raises
    ``InvalidTransition`` otherwise.
    """
    if current in TERMINAL_STATUSES:
        raise InvalidTransition(f"Appointment is already {current.value}")
    if new == current:
        return False
    if new not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(
            f"Cannot move an appointment from {current.value} to {new.value}"
        )
    return True


def new_video_call_link() -> str:
    room = f"{settings.VIDEO_ROOM_PREFIX}-{secrets.token_urlsafe(12)}"
    return f"{settings.VIDEO_CALL_BASE_URL.rstrip('/')}/{room}"


class AppointmentService:
    def __init__(self, db: Session):
        self.db = db
        self.notifications = NotificationService(db)

    def create(self, actor: User, data: AppointmentCreate) -> Appointment:
        """Book a pending appointment with an approved doctor."""
        if actor.role == UserRole.DOCTOR:
            raise Forbidden("Doctors cannot book appointments")

        if actor.role == UserRole.PATIENT:
            if data.patient_id is not None and data.patient_id != actor.id:
                raise Forbidden("Patients can only book appointments for themselves")
            patient_id = actor.id
        else:
            if data.patient_id is None:
                raise ValidationError("patient_id is required when booking on behalf of a patient")
            patient_id = data.patient_id

        patient = self._get_account(patient_id, UserRole.PATIENT, "Patient")
        doctor = self._get_account(data.doctor_id, UserRole.DOCTOR, "Doctor")
        if doctor.doctor_status != DoctorStatus.APPROVED:
            raise ValidationError("This doctor is not accepting appointments")

        # No (doctor, date, time) uniqueness; double booking is left to the doctor to decline
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            type=data.type,
            date=data.date,
            time=data.time,
            reason=data.reason,
            status=AppointmentStatus.PENDING,
            video_call_link=None,
        )
        self.db.add(appointment)
        self.notifications.notify(
            doctor.id,
            "New appointment request",
            f"{patient.first_name} {patient.last_name} requested a {data.type.value} "
            f"appointment on {data.date.isoformat()} at {data.time}.",
        )
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(
            f"Appointment {appointment.id} booked: patient={patient.id} doctor={doctor.id} "
            f"type={appointment.type.value}"
        )
        return appointment

    def get(self, actor: User, appointment_id: int) -> Appointment:
        appointment = self._get_or_404(appointment_id)
        ensure_appointment_party(actor, appointment)
        return appointment

    def list_all(self, actor: User) -> List[Appointment]:
        ensure_admin(actor)
        return self._ordered(self.db.query(Appointment)).all()

    def list_for_patient(self, actor: User, patient_id: int) -> List[Appointment]:
        self._get_account(patient_id, UserRole.PATIENT, "Patient")
        ensure_self_or_admin(actor, patient_id)
        return self._ordered(
            self.db.query(Appointment).filter(Appointment.patient_id == patient_id)
        ).all()

    def list_for_doctor(self, actor: User, doctor_id: int) -> List[Appointment]:
        self._get_account(doctor_id, UserRole.DOCTOR, "Doctor")
        ensure_self_or_admin(actor, doctor_id)
        return self._ordered(
            self.db.query(Appointment).filter(Appointment.doctor_id == doctor_id)
        ).all()

    def update_status(
        self, actor: User, appointment_id: int, new_status: AppointmentStatus
    ) -> Appointment:
        appointment = self._get_or_404(appointment_id, lock=True)
        ensure_can_set_appointment_status(actor, appointment, new_status)

        previous = appointment.status
        if not check_transition(previous, new_status):
            return appointment

        appointment.status = new_status
        if (
            new_status == AppointmentStatus.APPROVED
            and appointment.type == AppointmentType.ONLINE
            and not appointment.video_call_link
        ):
            appointment.video_call_link = new_video_call_link()

        self._notify_status_change(actor, appointment)
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(
            f"Appointment {appointment.id} {previous.value} -> {new_status.value} "
            f"by {actor.role.value} id={actor.id}"
        )
        return appointment

    def cancel(self, actor: User, appointment_id: int) -> Appointment:
        return self.update_status(actor, appointment_id, AppointmentStatus.CANCELLED)

    def get_video_link(self, actor: User, appointment_id: int) -> Optional[str]:
        appointment = self.get(actor, appointment_id)
        return appointment.video_call_link

    def generate_video_link(self, actor: User, appointment_id: int) -> Appointment:
        """Issue the video link of an approved online appointment if it has none."""
        appointment = self._get_or_404(appointment_id, lock=True)
        ensure_appointment_party(actor, appointment)
        if appointment.type != AppointmentType.ONLINE:
            raise ValidationError("Video links are only available for online appointments")
        if appointment.video_call_link:
            return appointment
        if appointment.status != AppointmentStatus.APPROVED:
            raise InvalidTransition("A video link is issued once the appointment is approved")

        appointment.video_call_link = new_video_call_link()
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"Video link issued for appointment {appointment.id}")
        return appointment

    def _notify_status_change(self, actor: User, appointment: Appointment) -> None:
        when = f"{appointment.date.isoformat()} at {appointment.time}"
        if actor.id == appointment.patient_id:
            self.notifications.notify(
                appointment.doctor_id,
                "Appointment cancelled",
                f"Your patient cancelled the appointment on {when}.",
            )
        else:
            self.notifications.notify(
                appointment.patient_id,
                f"Appointment {appointment.status.value}",
                f"Your appointment on {when} is now {appointment.status.value}.",
            )

    def _lookup(self, appointment_id: int, lock: bool = False):
        query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
        if lock:
            # Serializes concurrent status changes on backends with row locks
            query = query.with_for_update()
        return query

    def _get_or_404(self, appointment_id: int, lock: bool = False) -> Appointment:
        appointment = self._lookup(appointment_id, lock).first()
        if not appointment:
            raise NotFound("Appointment not found")
        return appointment

    def _get_account(self, user_id: int, role: UserRole, label: str) -> User:
        user = self.db.query(User).filter(User.id == user_id, User.role == role).first()
        if not user:
            raise NotFound(f"{label} not found")
        return user

    @staticmethod
    def _ordered(query):
        return query.order_by(Appointment.date.desc(), Appointment.id.desc())
