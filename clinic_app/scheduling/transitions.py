# clinic_app/scheduling/transitions.py
"""Appointment status state machine."""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from clinic_app.config.constants import AppointmentEvent, AppointmentStatus
from clinic_app.core.errors import AuthorizationDenied, InvalidTransition, ValidationFailed

S = AppointmentStatus

DOCTOR = "doctor"
PATIENT = "patient"


@dataclass(frozen=True)
class TransitionRule:
    parties: FrozenSet[str]
    requires_reason: bool
    event: AppointmentEvent
    timestamp_field: str


TRANSITIONS: Dict[Tuple[AppointmentStatus, AppointmentStatus], TransitionRule] = {
    (S.PENDING, S.CONFIRMED): TransitionRule(
        frozenset({DOCTOR}), False, AppointmentEvent.CONFIRMED, "confirmed_at"
    ),
    (S.PENDING, S.REJECTED): TransitionRule(
        frozenset({DOCTOR}), True, AppointmentEvent.REJECTED, "cancelled_at"
    ),
    (S.PENDING, S.CANCELLED): TransitionRule(
        frozenset({DOCTOR, PATIENT}), True, AppointmentEvent.CANCELLED, "cancelled_at"
    ),
    (S.CONFIRMED, S.COMPLETED): TransitionRule(
        frozenset({DOCTOR}), False, AppointmentEvent.COMPLETED, "completed_at"
    ),
    (S.CONFIRMED, S.CANCELLED): TransitionRule(
        frozenset({DOCTOR, PATIENT}), True, AppointmentEvent.CANCELLED, "cancelled_at"
    ),
}

RESCHEDULABLE = frozenset({S.PENDING, S.CONFIRMED})


def party_of(user_id: int, patient_id: int, doctor_id: int) -> Optional[str]:
    """Which side of the appointment `user_id` is on, if any."""
    if user_id == doctor_id:
        return DOCTOR
    if user_id == patient_id:
        return PATIENT
    return None


def validate_transition(
    current: AppointmentStatus,
    target: AppointmentStatus,
    party: str,
    reason: Optional[str] = None,
) -> TransitionRule:
    """
    Check a requested status change and return the rule that allows it.

    Raises InvalidTransition for pairs outside the table, AuthorizationDenied
    when `party` may not perform the change, ValidationFailed when a
    required reason is missing.
    """
    current = AppointmentStatus(current)
    target = AppointmentStatus(target)
    rule = TRANSITIONS.get((current, target))
    if rule is None:
        raise InvalidTransition(current.value, target.value)
    if party not in rule.parties:
        raise AuthorizationDenied(
            f"Only the doctor can change an appointment from {current.value} to {target.value}"
        )
    if rule.requires_reason and not (reason and reason.strip()):
        raise ValidationFailed(f"A reason is required to mark an appointment {target.value}")
    return rule


def allowed_targets(current: AppointmentStatus) -> FrozenSet[AppointmentStatus]:
    return frozenset(t for (s, t) in TRANSITIONS if s == AppointmentStatus(current))
