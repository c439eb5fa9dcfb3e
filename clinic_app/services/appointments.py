# clinic_app/services/appointments.py
"""
Appointment booking, status transitions and rescheduling.

Every public coroutine takes the database session first and an explicit
CallerContext, and returns an OperationResult. Notifications are returned in
the result's outbox; delivering them is the caller's job.
"""
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Optional

from clinic_app.config.constants import AppointmentEvent, AppointmentStatus
from clinic_app.config.settings import settings
from clinic_app.core.errors import (
    AuthorizationDenied,
    InvalidTransition,
    NotFound,
    SlotUnavailable,
    ValidationFailed,
)
from clinic_app.core.results import OperationResult, service_operation
from clinic_app.db.crud import appointment as appointment_crud
from clinic_app.db.crud.user import get_doctor
from clinic_app.db.models.appointment import AppointmentModel
from clinic_app.scheduling.clock import clinic_now
from clinic_app.scheduling.notifications import AppointmentSnapshot, notifications_for
from clinic_app.scheduling.transitions import (
    RESCHEDULABLE,
    party_of,
    validate_transition,
)
from clinic_app.schemas.shared import CallerContext, Role
from clinic_app.services.common import (
    ensure_future,
    normalize_time,
    require_caller,
    validate_duration,
)

logger = logging.getLogger(__name__)

S = AppointmentStatus


async def _load_appointment(db, appointment_id: int, label: str = "Appointment") -> AppointmentModel:
    appointment = await appointment_crud.get_appointment_by_id(db, appointment_id)
    if not appointment:
        raise NotFound(f"{label} not found")
    return appointment


async def ensure_slot_free(
    db,
    doctor_id: int,
    appointment_date: date,
    appointment_time: time,
    exclude_id: Optional[int] = None,
    message: str = appointment_crud.SLOT_TAKEN_MESSAGE,
) -> None:
    """Booking conflict guard: no other pending/confirmed appointment may hold the slot."""
    existing = await appointment_crud.find_active_at_slot(
        db, doctor_id, appointment_date, appointment_time, exclude_id=exclude_id
    )
    if existing:
        logger.info(
            f"Slot {appointment_date} {appointment_time} for doctor {doctor_id} is held by "
            f"appointment(s) {[a.id for a in existing]}"
        )
        raise SlotUnavailable(message)


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------
@service_operation("creating appointment")
async def create_appointment(
    db,
    caller: Optional[CallerContext],
    doctor_id: int,
    appointment_date: date,
    appointment_time: time,
    reason: str,
    notes: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """
    Book a pending appointment for the calling patient.

    The doctor must exist and accept appointments, the slot must lie in the
    future and no pending/confirmed appointment may already hold it.
    """
    caller = require_caller(caller)
    now = now or clinic_now()
    logger.info(
        f"Patient {caller.user_id} requesting doctor {doctor_id} at {appointment_date} {appointment_time}"
    )
    if caller.role != Role.patient:
        raise AuthorizationDenied("Only patients can book appointments")
    if not reason or not reason.strip():
        raise ValidationFailed("A reason for the appointment is required")
    duration = validate_duration(duration_minutes)
    appointment_time = normalize_time(appointment_time)

    doctor = await get_doctor(db, doctor_id)
    if not doctor:
        raise NotFound("Doctor not found")
    if not doctor.is_available:
        raise SlotUnavailable("Doctor is not available for appointments")

    ensure_future(appointment_date, appointment_time, now, "Cannot book an appointment in the past")
    await ensure_slot_free(db, doctor_id, appointment_date, appointment_time)

    fee = doctor.consultation_fee
    if fee is None:
        fee = settings.default_consultation_fee

    appointment = await appointment_crud.insert_appointment(
        db,
        {
            "patient_id": caller.user_id,
            "doctor_id": doctor_id,
            "appointment_date": appointment_date,
            "appointment_time": appointment_time,
            "duration_minutes": duration,
            "reason": reason.strip(),
            "notes": notes,
            "consultation_fee": fee,
            "status": S.PENDING.value,
        },
    )
    drafts = notifications_for(AppointmentEvent.BOOKED, AppointmentSnapshot.of(appointment))
    return OperationResult.ok(appointment, drafts)


@service_operation("creating follow-up appointment")
async def create_followup_appointment(
    db,
    caller: Optional[CallerContext],
    original_appointment_id: int,
    appointment_date: date,
    appointment_time: time,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    duration_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Doctor books an already-confirmed follow-up of a completed appointment."""
    caller = require_caller(caller)
    now = now or clinic_now()

    original = await _load_appointment(db, original_appointment_id, "Original appointment")
    if original.doctor_id != caller.user_id:
        raise AuthorizationDenied("You can only create follow-ups for your own appointments")
    if S(original.status) is not S.COMPLETED:
        raise ValidationFailed("Follow-up can only be created for completed appointments")

    duration = validate_duration(duration_minutes)
    appointment_time = normalize_time(appointment_time)
    ensure_future(
        appointment_date, appointment_time, now, "Follow-up appointment must be in the future"
    )
    await ensure_slot_free(
        db,
        caller.user_id,
        appointment_date,
        appointment_time,
        message="The requested time slot is not available",
    )

    appointment = await appointment_crud.insert_appointment(
        db,
        {
            "patient_id": original.patient_id,
            "doctor_id": caller.user_id,
            "appointment_date": appointment_date,
            "appointment_time": appointment_time,
            "duration_minutes": duration,
            "reason": (reason or "").strip() or "Follow-up appointment",
            "notes": notes,
            "consultation_fee": original.consultation_fee,
            "status": S.CONFIRMED.value,
            "confirmed_at": datetime.now(timezone.utc),
            "is_followup": True,
            "original_appointment_id": original.id,
        },
    )
    drafts = notifications_for(
        AppointmentEvent.FOLLOWUP_SCHEDULED,
        AppointmentSnapshot.of(appointment),
        previous=AppointmentSnapshot.of(original),
    )
    return OperationResult.ok(appointment, drafts)


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------
async def _transition(
    db,
    caller: Optional[CallerContext],
    appointment_id: int,
    target: AppointmentStatus,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> OperationResult:
    caller = require_caller(caller)
    appointment = await _load_appointment(db, appointment_id)

    party = party_of(caller.user_id, appointment.patient_id, appointment.doctor_id)
    if party is None:
        raise AuthorizationDenied("You don't have permission to modify this appointment")

    current = S(appointment.status)
    rule = validate_transition(current, target, party, reason)

    values = {"status": target.value, rule.timestamp_field: datetime.now(timezone.utc)}
    if rule.requires_reason:
        values["cancellation_reason"] = reason.strip()
    if notes:
        values["notes"] = notes

    swapped = await appointment_crud.update_appointment_if_status(
        db, appointment.id, [current], values
    )
    if not swapped:
        raise InvalidTransition(
            current.value,
            target.value,
            "The appointment was modified by someone else; reload and try again",
        )
    await db.refresh(appointment)
    logger.info(
        f"Appointment {appointment.id} moved {current.value} -> {target.value} by {party} {caller.user_id}"
    )

    drafts = notifications_for(
        rule.event, AppointmentSnapshot.of(appointment), actor=party, reason=reason
    )
    return OperationResult.ok(appointment, drafts)


@service_operation("confirming appointment")
async def confirm_appointment(db, caller, appointment_id: int) -> OperationResult:
    return await _transition(db, caller, appointment_id, S.CONFIRMED)


@service_operation("rejecting appointment")
async def reject_appointment(db, caller, appointment_id: int, reason: str) -> OperationResult:
    return await _transition(db, caller, appointment_id, S.REJECTED, reason=reason)


@service_operation("cancelling appointment")
async def cancel_appointment(db, caller, appointment_id: int, reason: str) -> OperationResult:
    return await _transition(db, caller, appointment_id, S.CANCELLED, reason=reason)


@service_operation("completing appointment")
async def complete_appointment(db, caller, appointment_id: int) -> OperationResult:
    return await _transition(db, caller, appointment_id, S.COMPLETED)


@service_operation("updating appointment status")
async def update_appointment_status(
    db,
    caller,
    appointment_id: int,
    status: AppointmentStatus,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
) -> OperationResult:
    """Generic entry point routing any requested status through the transition table."""
    try:
        target = S(status)
    except ValueError:
        raise ValidationFailed(f"Unknown status {status}")
    return await _transition(db, caller, appointment_id, target, reason=reason, notes=notes)


# ---------------------------------------------------------------------------
# Reschedule
# ---------------------------------------------------------------------------
@service_operation("rescheduling appointment")
async def reschedule_appointment(
    db,
    caller: Optional[CallerContext],
    appointment_id: int,
    new_date: date,
    new_time: time,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    """
    Move an appointment to a new date/time.

    Allowed for either party while the appointment is pending or confirmed.
    The new slot must be free (ignoring the appointment itself) and strictly
    in the future. On success the appointment is confirmed and its reminder
    flag reset; both parties are notified.
    """
    caller = require_caller(caller)
    now = now or clinic_now()
    appointment = await _load_appointment(db, appointment_id)

    party = party_of(caller.user_id, appointment.patient_id, appointment.doctor_id)
    if party is None:
        raise AuthorizationDenied("You don't have permission to reschedule this appointment")

    current = S(appointment.status)
    if current not in RESCHEDULABLE:
        raise InvalidTransition(
            current.value,
            S.CONFIRMED.value,
            f"Cannot reschedule {current.value} appointments",
        )

    new_time = normalize_time(new_time)
    await ensure_slot_free(
        db,
        appointment.doctor_id,
        new_date,
        new_time,
        exclude_id=appointment.id,
        message="The requested time slot is not available",
    )
    ensure_future(new_date, new_time, now, "Cannot reschedule to a past date/time")

    previous = AppointmentSnapshot.of(appointment)
    values = {
        "appointment_date": new_date,
        "appointment_time": new_time,
        "status": S.CONFIRMED.value,
        "reminder_sent": False,
    }
    if current is S.PENDING:
        values["confirmed_at"] = datetime.now(timezone.utc)

    swapped = await appointment_crud.update_appointment_if_status(
        db, appointment.id, [current], values
    )
    if not swapped:
        raise InvalidTransition(
            current.value,
            S.CONFIRMED.value,
            "The appointment was modified by someone else; reload and try again",
        )
    await db.refresh(appointment)
    logger.info(
        f"Appointment {appointment.id} rescheduled from {previous.when} to "
        f"{AppointmentSnapshot.of(appointment).when} by {party} {caller.user_id}"
    )

    drafts = notifications_for(
        AppointmentEvent.RESCHEDULED,
        AppointmentSnapshot.of(appointment),
        actor=party,
        reason=reason,
        previous=previous,
    )
    return OperationResult.ok(appointment, drafts)


# ---------------------------------------------------------------------------
# Detail edits
# ---------------------------------------------------------------------------
EDITABLE_FIELDS = ("reason", "notes", "duration_minutes")
LOCKED_STATUSES = (S.COMPLETED, S.CANCELLED)


@service_operation("updating appointment")
async def update_appointment_details(
    db,
    caller: Optional[CallerContext],
    appointment_id: int,
    changes: Dict[str, Any],
) -> OperationResult:
    """
    Edit the reason, notes or duration of an appointment.

    Either party may edit until the appointment is completed or cancelled.
    Keys outside EDITABLE_FIELDS are ignored; the other party is told which
    fields changed.
    """
    caller = require_caller(caller)
    appointment = await _load_appointment(db, appointment_id)

    party = party_of(caller.user_id, appointment.patient_id, appointment.doctor_id)
    if party is None:
        raise AuthorizationDenied("You don't have permission to update this appointment")

    current = S(appointment.status)
    if current in LOCKED_STATUSES:
        raise InvalidTransition(
            current.value, current.value, "Cannot update completed or cancelled appointments"
        )

    values = {key: changes[key] for key in EDITABLE_FIELDS if key in changes}
    if "duration_minutes" in values:
        if values["duration_minutes"] is None:
            raise ValidationFailed("Duration is required when updating it")
        validate_duration(values["duration_minutes"])
    if not values:
        raise ValidationFailed("No valid fields provided for update")

    swapped = await appointment_crud.update_appointment_if_status(
        db, appointment.id, [current], values
    )
    if not swapped:
        raise InvalidTransition(
            current.value,
            current.value,
            "The appointment was modified by someone else; reload and try again",
        )
    await db.refresh(appointment)
    logger.info(
        f"Appointment {appointment.id} fields {sorted(values)} updated by {party} {caller.user_id}"
    )

    drafts = notifications_for(
        AppointmentEvent.UPDATED,
        AppointmentSnapshot.of(appointment),
        actor=party,
        updated_fields=list(values),
    )
    return OperationResult.ok(appointment, drafts)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
@service_operation("fetching appointment")
async def get_appointment(db, caller, appointment_id: int) -> OperationResult:
    caller = require_caller(caller)
    appointment = await _load_appointment(db, appointment_id)
    if (
        caller.role != Role.admin
        and party_of(caller.user_id, appointment.patient_id, appointment.doctor_id) is None
    ):
        raise AuthorizationDenied("Not authorized to access this appointment")
    return OperationResult.ok(appointment)


@service_operation("listing appointments")
async def list_appointments(
    db,
    caller,
    status: Optional[AppointmentStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    doctor_id: Optional[int] = None,
    patient_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> OperationResult:
    """
    Appointments visible to the caller: doctors see their own schedule,
    patients their own bookings, admins anything (optionally filtered).
    """
    caller = require_caller(caller)
    if caller.role == Role.doctor:
        doctor_id = caller.user_id
    elif caller.role == Role.patient:
        if patient_id is not None and patient_id != caller.user_id:
            raise AuthorizationDenied("Patients can only list their own appointments")
        patient_id = caller.user_id

    appointments = await appointment_crud.list_appointments(
        db,
        doctor_id=doctor_id,
        patient_id=patient_id,
        status=S(status).value if status else None,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit,
    )
    return OperationResult.ok(appointments)
