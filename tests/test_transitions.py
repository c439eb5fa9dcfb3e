# tests/test_transitions.py
import itertools

import pytest

from clinic_app.config.constants import AppointmentStatus as S
from clinic_app.core.errors import AuthorizationDenied, InvalidTransition, ValidationFailed
from clinic_app.scheduling.transitions import (
    DOCTOR,
    PATIENT,
    allowed_targets,
    party_of,
    validate_transition,
)

ALLOWED = {
    (S.PENDING, S.CONFIRMED): {DOCTOR},
    (S.PENDING, S.REJECTED): {DOCTOR},
    (S.PENDING, S.CANCELLED): {DOCTOR, PATIENT},
    (S.CONFIRMED, S.COMPLETED): {DOCTOR},
    (S.CONFIRMED, S.CANCELLED): {DOCTOR, PATIENT},
}

ALL_PAIRS = list(itertools.product(S, S))


@pytest.mark.parametrize("current, target", ALL_PAIRS)
def test_every_status_pair(current, target):
    parties = ALLOWED.get((current, target))
    for party in (DOCTOR, PATIENT):
        if parties is None:
            with pytest.raises(InvalidTransition) as exc:
                validate_transition(current, target, party, reason="because")
            assert exc.value.message == (
                f"Cannot change status from {current.value} to {target.value}"
            )
        elif party in parties:
            rule = validate_transition(current, target, party, reason="because")
            assert party in rule.parties
        else:
            with pytest.raises(AuthorizationDenied):
                validate_transition(current, target, party, reason="because")


def test_timestamps_follow_target():
    assert validate_transition(S.PENDING, S.CONFIRMED, DOCTOR).timestamp_field == "confirmed_at"
    assert validate_transition(S.CONFIRMED, S.COMPLETED, DOCTOR).timestamp_field == "completed_at"
    assert validate_transition(S.PENDING, S.REJECTED, DOCTOR, "x").timestamp_field == "cancelled_at"
    assert validate_transition(S.CONFIRMED, S.CANCELLED, PATIENT, "x").timestamp_field == "cancelled_at"


@pytest.mark.parametrize(
    "current, target",
    [(S.PENDING, S.REJECTED), (S.PENDING, S.CANCELLED), (S.CONFIRMED, S.CANCELLED)],
)
@pytest.mark.parametrize("reason", [None, "", "   "])
def test_reject_and_cancel_need_a_reason(current, target, reason):
    with pytest.raises(ValidationFailed):
        validate_transition(current, target, DOCTOR, reason=reason)


def test_status_strings_are_accepted():
    rule = validate_transition("pending", "confirmed", DOCTOR)
    assert rule.timestamp_field == "confirmed_at"


def test_terminal_statuses_have_no_way_out():
    for status in (S.COMPLETED, S.CANCELLED, S.REJECTED):
        assert allowed_targets(status) == frozenset()
    assert allowed_targets(S.PENDING) == {S.CONFIRMED, S.REJECTED, S.CANCELLED}
    assert allowed_targets(S.CONFIRMED) == {S.COMPLETED, S.CANCELLED}


def test_party_of():
    assert party_of(7, patient_id=3, doctor_id=7) == DOCTOR
    assert party_of(3, patient_id=3, doctor_id=7) == PATIENT
    assert party_of(9, patient_id=3, doctor_id=7) is None
