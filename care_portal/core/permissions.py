"""Ownership rules applied on top of the role checks in ``api.deps``.

Every check either returns silently or raises ``Forbidden``; callers resolve
the target first so that a missing record surfaces as ``NotFound``.
"""
from .exceptions import Forbidden
from .security import UserRole
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import DoctorStatus
from ..models.user import User


def is_admin(actor: User) -> bool:
    return actor.role == UserRole.ADMIN


def ensure_admin(actor: User) -> None:
    if not is_admin(actor):
        raise Forbidden("Admin access required")


def ensure_self_or_admin(actor: User, account_id: int) -> None:
    if actor.id != account_id and not is_admin(actor):
        raise Forbidden("You can only access your own account")


def ensure_can_view_account(actor: User, target: User, shares_appointment: bool = False) -> None:
    """Accounts are private except approved doctors, who are listed to patients.

    A doctor may also see patients they hold an appointment with.
    """
    if actor.id == target.id or is_admin(actor):
        return
    if target.role == UserRole.DOCTOR and target.doctor_status == DoctorStatus.APPROVED:
        return
    if actor.role == UserRole.DOCTOR and target.role == UserRole.PATIENT and shares_appointment:
        return
    raise Forbidden("You are not allowed to view this account")


def ensure_appointment_party(actor: User, appointment: Appointment) -> None:
    if is_admin(actor):
        return
    if actor.role == UserRole.PATIENT and appointment.patient_id == actor.id:
        return
    if actor.role == UserRole.DOCTOR and appointment.doctor_id == actor.id:
        return
    raise Forbidden("You are not a party to this appointment")


def ensure_can_set_appointment_status(
    actor: User, appointment: Appointment, new_status: AppointmentStatus
) -> None:
    """The doctor on the appointment and admins drive the lifecycle;
    the patient may only cancel."""
    ensure_appointment_party(actor, appointment)
    if actor.role == UserRole.PATIENT and new_status != AppointmentStatus.CANCELLED:
        raise Forbidden("Patients can only cancel their appointments")
