"""Appointment status transitions and the role capability policy.

Doctors move their own appointments through the workflow; patients may only
cancel appointments booked on their patient record; nurses can read every
appointment but never change one.
"""

import enum

from backend.auth.identity import Actor
from backend.core.errors import InvalidTransitionError, PermissionDeniedError, ValidationError
from backend.models.appointment import Appointment, AppointmentStatus
from backend.models.user import Role


class Capability(str, enum.Enum):
    READ = 'read'
    TRANSITION = 'transition'
    ANNOTATE = 'annotate'


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.DOCTOR: frozenset({Capability.READ, Capability.TRANSITION, Capability.ANNOTATE}),
    Role.NURSE: frozenset({Capability.READ}),
    Role.PATIENT: frozenset({Capability.READ, Capability.TRANSITION}),
}

# Roles whose capabilities apply to every appointment rather than only their own.
UNSCOPED_ROLES = frozenset({Role.NURSE})

_NO_TRANSITIONS: frozenset[AppointmentStatus] = frozenset()

ALLOWED_TRANSITIONS: dict[Role, dict[AppointmentStatus, frozenset[AppointmentStatus]]] = {
    Role.DOCTOR: {
        AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
        AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
        AppointmentStatus.COMPLETED: _NO_TRANSITIONS,
        AppointmentStatus.CANCELLED: _NO_TRANSITIONS,
    },
    Role.PATIENT: {
        AppointmentStatus.PENDING: frozenset({AppointmentStatus.CANCELLED}),
        AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.CANCELLED}),
        AppointmentStatus.COMPLETED: _NO_TRANSITIONS,
        AppointmentStatus.CANCELLED: _NO_TRANSITIONS,
    },
    Role.NURSE: {status: _NO_TRANSITIONS for status in AppointmentStatus},
}


def parse_status(value) -> AppointmentStatus:
    if isinstance(value, AppointmentStatus):
        return value
    try:
        return AppointmentStatus(str(value).strip().lower())
    except ValueError:
        pass
    try:
        return AppointmentStatus[str(value).strip().upper()]
    except KeyError as exc:
        raise ValidationError(f'Unknown appointment status: {value!r}.') from exc


def parse_role(value) -> Role:
    """Accept a stored role value (``'medico'``) or its name (``'doctor'``)."""
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().lower())
    except ValueError:
        pass
    try:
        return Role[str(value).strip().upper()]
    except KeyError as exc:
        raise PermissionDeniedError(f'Unknown role: {value!r}.') from exc


def has_capability(role: Role, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


def is_party(actor: Actor, appointment: Appointment, patient_user_id: int | None) -> bool:
    if actor.role == Role.DOCTOR:
        return appointment.doctor_id == actor.id
    if actor.role == Role.PATIENT:
        return patient_user_id is not None and patient_user_id == actor.id
    return False


def authorize(
    actor: Actor,
    capability: Capability,
    appointment: Appointment,
    patient_user_id: int | None,
) -> None:
    """Raise PermissionDeniedError unless the actor may exercise the capability on the appointment."""
    if not has_capability(actor.role, capability):
        raise PermissionDeniedError(f'Role {actor.role.value} cannot {capability.value} appointments.')

    if actor.role in UNSCOPED_ROLES:
        return

    if not is_party(actor, appointment, patient_user_id):
        raise PermissionDeniedError('You do not have permission to access this appointment.')


def allowed_targets(role: Role, current: AppointmentStatus) -> frozenset[AppointmentStatus]:
    return ALLOWED_TRANSITIONS.get(role, {}).get(current, _NO_TRANSITIONS)


def check_transition(role: Role, current: AppointmentStatus, target: AppointmentStatus) -> None:
    if role == Role.PATIENT and target != AppointmentStatus.CANCELLED:
        raise PermissionDeniedError('Patients may only cancel appointments.')

    if current == AppointmentStatus.COMPLETED and target == AppointmentStatus.CANCELLED:
        raise InvalidTransitionError('Cannot cancel a completed appointment.')

    if target not in allowed_targets(role, current):
        raise InvalidTransitionError(
            f'Cannot change an appointment from {current.value} to {target.value}.'
        )
