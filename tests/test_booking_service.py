# tests/test_booking_service.py
from datetime import time, timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from clinic_app.config.constants import AppointmentEvent
from clinic_app.core.errors import ErrorKind
from clinic_app.db.crud import appointment as appointment_crud
from clinic_app.services import appointments as service
from clinic_app.services.slots import get_available_slots
from tests._factories import (
    MONDAY,
    NOW,
    TUESDAY,
    add_appointment,
    add_schedule,
    caller,
    create_doctor,
    create_patient,
)


async def book(db, patient_id, doctor_id, on=MONDAY, at=time(10, 0), reason="Headache", **kw):
    return await service.create_appointment(
        db,
        caller(patient_id, "patient"),
        doctor_id=doctor_id,
        appointment_date=on,
        appointment_time=at,
        reason=reason,
        now=NOW,
        **kw,
    )


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------
async def test_patient_books_pending_appointment(db):
    doctor_id = await create_doctor(db, fee=150)
    patient_id = await create_patient(db)

    result = await book(db, patient_id, doctor_id)

    assert result.success, result.error
    appointment = result.data
    assert appointment.status == "pending"
    assert appointment.patient_id == patient_id
    assert appointment.duration_minutes == 30
    assert float(appointment.consultation_fee) == 150.0
    assert [(n.event, n.user_id) for n in result.notifications] == [
        (AppointmentEvent.BOOKED, doctor_id)
    ]
    assert result.notifications[0].title == "New Appointment Request"


async def test_fee_falls_back_to_default(db):
    doctor_id = await create_doctor(db, fee=None)
    patient_id = await create_patient(db)
    result = await book(db, patient_id, doctor_id)
    assert float(result.data.consultation_fee) == 100.0


async def test_seconds_are_dropped_from_requested_time(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    result = await book(db, patient_id, doctor_id, at=time(10, 0, 42))
    assert result.data.appointment_time == time(10, 0)


async def test_booking_requires_authentication(db):
    doctor_id = await create_doctor(db)
    result = await service.create_appointment(
        db, None, doctor_id, MONDAY, time(10, 0), "Headache", now=NOW
    )
    assert result.error_kind is ErrorKind.AUTHENTICATION_REQUIRED
    assert result.error == "User not authenticated"


async def test_only_patients_book(db):
    doctor_id = await create_doctor(db)
    result = await service.create_appointment(
        db, caller(doctor_id, "doctor"), doctor_id, MONDAY, time(10, 0), "Headache", now=NOW
    )
    assert result.error_kind is ErrorKind.AUTHORIZATION_DENIED


async def test_reason_is_required(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    result = await book(db, patient_id, doctor_id, reason="  ")
    assert result.error_kind is ErrorKind.VALIDATION_ERROR


async def test_duration_outside_bounds_is_rejected(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    assert (await book(db, patient_id, doctor_id, duration_minutes=10)).error_kind is ErrorKind.VALIDATION_ERROR
    assert (await book(db, patient_id, doctor_id, duration_minutes=240)).error_kind is ErrorKind.VALIDATION_ERROR
    assert (await book(db, patient_id, doctor_id, duration_minutes=45)).success


async def test_unknown_doctor(db):
    patient_id = await create_patient(db)
    result = await book(db, patient_id, 9999)
    assert result.error_kind is ErrorKind.NOT_FOUND


async def test_unavailable_doctor(db):
    doctor_id = await create_doctor(db, is_available=False)
    patient_id = await create_patient(db)
    result = await book(db, patient_id, doctor_id)
    assert result.error_kind is ErrorKind.SLOT_UNAVAILABLE


async def test_cannot_book_in_the_past(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    assert (await book(db, patient_id, doctor_id, at=time(8, 0))).error_kind is ErrorKind.SLOT_UNAVAILABLE
    result = await book(db, patient_id, doctor_id, on=MONDAY - timedelta(days=1))
    assert result.error_kind is ErrorKind.SLOT_UNAVAILABLE
    assert result.error == "Cannot book an appointment in the past"


async def test_second_booking_of_same_slot_is_refused(db):
    doctor_id = await create_doctor(db)
    first = await create_patient(db)
    second = await create_patient(db, first_name="Bob")

    assert (await book(db, first, doctor_id)).success
    result = await book(db, second, doctor_id)

    assert not result.success
    assert result.error_kind is ErrorKind.SLOT_UNAVAILABLE
    assert result.error == "This appointment slot is no longer available"
    assert result.notifications == []


async def test_same_time_with_another_doctor_is_fine(db):
    doctor_a = await create_doctor(db)
    doctor_b = await create_doctor(db, first_name="Karim")
    patient_id = await create_patient(db)
    assert (await book(db, patient_id, doctor_a)).success
    assert (await book(db, patient_id, doctor_b)).success


async def test_cancelled_and_rejected_appointments_free_the_slot(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    await add_appointment(db, patient_id, doctor_id, MONDAY, time(10, 0), status="cancelled")
    await add_appointment(db, patient_id, doctor_id, MONDAY, time(10, 0), status="rejected")
    assert (await book(db, patient_id, doctor_id)).success


async def test_unique_index_catches_race_past_the_guard(db, monkeypatch):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    await add_appointment(db, patient_id, doctor_id, MONDAY, time(10, 0), status="confirmed")

    async def nothing_there(*args, **kwargs):
        return []

    # simulate a concurrent booking that committed after the guard ran
    monkeypatch.setattr(appointment_crud, "find_active_at_slot", nothing_there)
    result = await book(db, patient_id, doctor_id)

    assert result.error_kind is ErrorKind.SLOT_UNAVAILABLE
    assert result.error == "This appointment slot is no longer available"


async def test_other_integrity_errors_are_not_slot_conflicts(db):
    doctor_id = await create_doctor(db)
    with pytest.raises(IntegrityError):
        await appointment_crud.insert_appointment(
            db,
            {
                "patient_id": None,
                "doctor_id": doctor_id,
                "appointment_date": MONDAY,
                "appointment_time": time(10, 0),
                "status": "pending",
            },
        )


async def test_update_integrity_error_is_not_a_slot_conflict(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment_id = (await add_appointment(db, patient_id, doctor_id, MONDAY, time(10, 0))).id
    with pytest.raises(IntegrityError):
        await appointment_crud.update_appointment_if_status(
            db, appointment_id, ["pending"], {"patient_id": None}
        )


async def test_booking_for_unknown_patient_is_a_data_error(db):
    doctor_id = await create_doctor(db)
    await db.execute(text("PRAGMA foreign_keys=ON"))

    result = await book(db, 999, doctor_id)

    assert result.error_kind is ErrorKind.DATA_ACCESS_ERROR
    assert result.error == "Database error while creating appointment"


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------
async def test_doctor_confirms_and_patient_is_told(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment = (await book(db, patient_id, doctor_id)).data

    result = await service.confirm_appointment(db, caller(doctor_id, "doctor"), appointment.id)

    assert result.success, result.error
    assert result.data.status == "confirmed"
    assert result.data.confirmed_at is not None
    assert [(n.event, n.user_id) for n in result.notifications] == [
        (AppointmentEvent.CONFIRMED, patient_id)
    ]


async def test_patient_cannot_confirm(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment = (await book(db, patient_id, doctor_id)).data
    result = await service.confirm_appointment(db, caller(patient_id, "patient"), appointment.id)
    assert result.error_kind is ErrorKind.AUTHORIZATION_DENIED


async def test_outsider_cannot_touch_appointment(db):
    doctor_id = await create_doctor(db)
    other_doctor = await create_doctor(db, first_name="Karim")
    patient_id = await create_patient(db)
    appointment = (await book(db, patient_id, doctor_id)).data
    result = await service.cancel_appointment(
        db, caller(other_doctor, "doctor"), appointment.id, "busy"
    )
    assert result.error_kind is ErrorKind.AUTHORIZATION_DENIED


async def test_reject_records_reason(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment_id = (await book(db, patient_id, doctor_id)).data.id

    missing = await service.reject_appointment(db, caller(doctor_id, "doctor"), appointment_id, "")
    assert missing.error_kind is ErrorKind.VALIDATION_ERROR

    result = await service.reject_appointment(
        db, caller(doctor_id, "doctor"), appointment_id, "Fully booked"
    )
    assert result.data.status == "rejected"
    assert result.data.cancellation_reason == "Fully booked"
    assert result.data.cancelled_at is not None
    assert result.notifications[0].data["rejection_reason"] == "Fully booked"


async def test_patient_cancel_notifies_doctor(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment = (await book(db, patient_id, doctor_id)).data

    result = await service.cancel_appointment(
        db, caller(patient_id, "patient"), appointment.id, "Feeling better"
    )

    assert result.data.status == "cancelled"
    assert [n.user_id for n in result.notifications] == [doctor_id]
    assert result.notifications[0].data["cancelled_by"] == "patient"


async def test_doctor_cancel_notifies_patient(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment = await add_appointment(db, patient_id, doctor_id, MONDAY, time(11, 0), status="confirmed")

    result = await service.cancel_appointment(
        db, caller(doctor_id, "doctor"), appointment.id, "Emergency"
    )
    assert [n.user_id for n in result.notifications] == [patient_id]


async def test_complete_only_from_confirmed(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment_id = (await book(db, patient_id, doctor_id)).data.id
    doc = caller(doctor_id, "doctor")

    early = await service.complete_appointment(db, doc, appointment_id)
    assert early.error_kind is ErrorKind.INVALID_TRANSITION
    assert early.error == "Cannot change status from pending to completed"

    await service.confirm_appointment(db, doc, appointment_id)
    done = await service.complete_appointment(db, doc, appointment_id)
    assert done.data.status == "completed"
    assert done.data.completed_at is not None
    assert done.notifications[0].data["can_review"] is True


async def test_terminal_appointment_stays_terminal(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment = await add_appointment(db, patient_id, doctor_id, MONDAY, time(11, 0), status="cancelled")
    result = await service.update_appointment_status(
        db, caller(doctor_id, "doctor"), appointment.id, "confirmed"
    )
    assert result.error_kind is ErrorKind.INVALID_TRANSITION


async def test_generic_status_update_routes_through_table(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment = (await book(db, patient_id, doctor_id)).data
    result = await service.update_appointment_status(
        db, caller(doctor_id, "doctor"), appointment.id, "confirmed", notes="Bring lab results"
    )
    assert result.data.status == "confirmed"
    assert result.data.notes == "Bring lab results"


async def test_unknown_status_is_a_validation_error(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment = (await book(db, patient_id, doctor_id)).data
    result = await service.update_appointment_status(
        db, caller(doctor_id, "doctor"), appointment.id, "bogus"
    )
    assert result.error_kind is ErrorKind.VALIDATION_ERROR
    assert result.error == "Unknown status bogus"


async def test_status_change_of_missing_appointment(db):
    doctor_id = await create_doctor(db)
    result = await service.confirm_appointment(db, caller(doctor_id, "doctor"), 4242)
    assert result.error_kind is ErrorKind.NOT_FOUND


async def test_stale_status_loses_the_swap(db, monkeypatch):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    appointment = (await book(db, patient_id, doctor_id)).data

    async def already_changed(*args, **kwargs):
        return False

    monkeypatch.setattr(appointment_crud, "update_appointment_if_status", already_changed)
    result = await service.confirm_appointment(db, caller(doctor_id, "doctor"), appointment.id)
    assert result.error_kind is ErrorKind.INVALID_TRANSITION
    assert result.notifications == []


# ---------------------------------------------------------------------------
# Follow-ups
# ---------------------------------------------------------------------------
async def test_followup_of_completed_appointment(db):
    doctor_id = await create_doctor(db, fee=90)
    patient_id = await create_patient(db)
    original = await add_appointment(db, patient_id, doctor_id, MONDAY, time(7, 0), status="completed")

    result = await service.create_followup_appointment(
        db, caller(doctor_id, "doctor"), original.id, TUESDAY, time(9, 0), now=NOW
    )

    assert result.success, result.error
    followup = result.data
    assert followup.status == "confirmed"
    assert followup.is_followup is True
    assert followup.original_appointment_id == original.id
    assert followup.patient_id == patient_id
    assert followup.reason == "Follow-up appointment"
    assert [(n.event, n.user_id) for n in result.notifications] == [
        (AppointmentEvent.FOLLOWUP_SCHEDULED, patient_id)
    ]


async def test_followup_needs_completed_original(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    original = await add_appointment(db, patient_id, doctor_id, MONDAY, time(9, 0), status="confirmed")
    result = await service.create_followup_appointment(
        db, caller(doctor_id, "doctor"), original.id, TUESDAY, time(9, 0), now=NOW
    )
    assert result.error_kind is ErrorKind.VALIDATION_ERROR


async def test_followup_only_by_treating_doctor(db):
    doctor_id = await create_doctor(db)
    other = await create_doctor(db, first_name="Karim")
    patient_id = await create_patient(db)
    original = await add_appointment(db, patient_id, doctor_id, MONDAY, time(7, 0), status="completed")
    result = await service.create_followup_appointment(
        db, caller(other, "doctor"), original.id, TUESDAY, time(9, 0), now=NOW
    )
    assert result.error_kind is ErrorKind.AUTHORIZATION_DENIED


async def test_followup_respects_slot_guard(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    original = await add_appointment(db, patient_id, doctor_id, MONDAY, time(7, 0), status="completed")
    await add_appointment(db, patient_id, doctor_id, TUESDAY, time(9, 0), status="pending")
    result = await service.create_followup_appointment(
        db, caller(doctor_id, "doctor"), original.id, TUESDAY, time(9, 0), now=NOW
    )
    assert result.error_kind is ErrorKind.SLOT_UNAVAILABLE


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
async def test_slots_reflect_bookings(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    await add_schedule(db, doctor_id, 1, time(9, 0), time(11, 0))
    await add_schedule(db, doctor_id, 1, time(14, 0), time(15, 0), is_active=False)
    assert (await book(db, patient_id, doctor_id, at=time(9, 30))).success

    result = await get_available_slots(db, doctor_id, MONDAY, now=NOW)

    assert [(s.time, s.available) for s in result.data] == [
        ("09:00", True),
        ("09:30", False),
        ("10:00", True),
        ("10:30", True),
    ]


async def test_slots_for_day_without_schedule(db):
    doctor_id = await create_doctor(db)
    await add_schedule(db, doctor_id, 1, time(9, 0), time(11, 0))
    result = await get_available_slots(db, doctor_id, TUESDAY, now=NOW)
    assert result.success and result.data == []


async def test_slots_need_doctor_id(db):
    result = await get_available_slots(db, 0, MONDAY, now=NOW)
    assert result.error_kind is ErrorKind.VALIDATION_ERROR


async def test_listing_is_scoped_to_caller(db):
    doctor_id = await create_doctor(db)
    other_doctor = await create_doctor(db, first_name="Karim")
    alice = await create_patient(db)
    bob = await create_patient(db, first_name="Bob")
    await add_appointment(db, alice, doctor_id, MONDAY, time(9, 0))
    await add_appointment(db, bob, doctor_id, MONDAY, time(10, 0))
    await add_appointment(db, bob, other_doctor, MONDAY, time(10, 0))

    mine = await service.list_appointments(db, caller(alice, "patient"))
    assert [a.patient_id for a in mine.data] == [alice]

    theirs = await service.list_appointments(db, caller(alice, "patient"), patient_id=bob)
    assert theirs.error_kind is ErrorKind.AUTHORIZATION_DENIED

    schedule = await service.list_appointments(db, caller(doctor_id, "doctor"))
    assert {a.patient_id for a in schedule.data} == {alice, bob}

    everything = await service.list_appointments(db, caller(1, "admin"))
    assert len(everything.data) == 3


async def test_get_appointment_is_private_to_parties(db):
    doctor_id = await create_doctor(db)
    alice = await create_patient(db)
    bob = await create_patient(db, first_name="Bob")
    appointment = await add_appointment(db, alice, doctor_id, MONDAY, time(9, 0))

    assert (await service.get_appointment(db, caller(alice, "patient"), appointment.id)).success
    assert (await service.get_appointment(db, caller(1, "admin"), appointment.id)).success
    denied = await service.get_appointment(db, caller(bob, "patient"), appointment.id)
    assert denied.error_kind is ErrorKind.AUTHORIZATION_DENIED


async def test_repeated_slot_queries_agree(db):
    doctor_id = await create_doctor(db)
    patient_id = await create_patient(db)
    await add_schedule(db, doctor_id, 1, time(9, 0), time(12, 0), minutes=20)
    await book(db, patient_id, doctor_id, at=time(10, 0))

    first = await get_available_slots(db, doctor_id, MONDAY, now=NOW)
    second = await get_available_slots(db, doctor_id, MONDAY, now=NOW)
    assert first.data == second.data
