# clinic_app/services/schedules.py
import logging
from datetime import date, time
from typing import Any, Dict, Optional

from clinic_app.config.constants import MAX_SLOT_DURATION_MINUTES, MIN_SLOT_DURATION_MINUTES
from clinic_app.config.settings import settings
from clinic_app.core.errors import AuthorizationDenied, NotFound, ValidationFailed
from clinic_app.core.results import OperationResult, service_operation
from clinic_app.db.crud import schedule as schedule_crud
from clinic_app.db.crud.appointment import has_future_active_appointments
from clinic_app.db.crud.user import get_doctor
from clinic_app.scheduling.clock import clinic_today
from clinic_app.schemas.shared import CallerContext, Role
from clinic_app.services.common import normalize_time, require_caller

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("day_of_week", "start_time", "end_time", "slot_duration_minutes", "is_active")


def validate_rule(day_of_week: int, start_time: time, end_time: time, slot_duration_minutes: int) -> None:
    if start_time >= end_time:
        raise ValidationFailed("End time must be after start time")
    if not 0 <= day_of_week <= 6:
        raise ValidationFailed("Day of week must be between 0 (Sunday) and 6 (Saturday)")
    if not MIN_SLOT_DURATION_MINUTES <= slot_duration_minutes <= MAX_SLOT_DURATION_MINUTES:
        raise ValidationFailed(
            f"Slot duration must be between {MIN_SLOT_DURATION_MINUTES} and "
            f"{MAX_SLOT_DURATION_MINUTES} minutes"
        )


async def _require_doctor(db, caller: Optional[CallerContext]) -> CallerContext:
    caller = require_caller(caller)
    if caller.role != Role.doctor or not await get_doctor(db, caller.user_id):
        raise AuthorizationDenied("User must be a doctor to manage schedules")
    return caller


async def _owned_schedule(db, caller: CallerContext, schedule_id: int, action: str):
    schedule = await schedule_crud.get_schedule(db, schedule_id)
    if not schedule:
        raise NotFound("Schedule not found")
    if schedule.doctor_id != caller.user_id:
        raise AuthorizationDenied(f"You can only {action} your own schedules")
    return schedule


@service_operation("creating schedule")
async def create_schedule(
    db,
    caller,
    day_of_week: int,
    start_time: time,
    end_time: time,
    slot_duration_minutes: Optional[int] = None,
    is_active: bool = True,
) -> OperationResult:
    caller = await _require_doctor(db, caller)
    duration = slot_duration_minutes or settings.default_slot_duration_minutes
    start_time, end_time = normalize_time(start_time), normalize_time(end_time)
    validate_rule(day_of_week, start_time, end_time, duration)

    schedule = await schedule_crud.create_schedule(
        db,
        {
            "doctor_id": caller.user_id,
            "day_of_week": day_of_week,
            "start_time": start_time,
            "end_time": end_time,
            "slot_duration_minutes": duration,
            "is_active": is_active,
        },
    )
    return OperationResult.ok(schedule)


@service_operation("updating schedule")
async def update_schedule(db, caller, schedule_id: int, changes: Dict[str, Any]) -> OperationResult:
    caller = await _require_doctor(db, caller)
    schedule = await _owned_schedule(db, caller, schedule_id, "update")

    values = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
    for key in ("start_time", "end_time"):
        if key in values:
            values[key] = normalize_time(values[key])

    validate_rule(
        values.get("day_of_week", schedule.day_of_week),
        values.get("start_time", schedule.start_time),
        values.get("end_time", schedule.end_time),
        values.get("slot_duration_minutes", schedule.slot_duration_minutes),
    )
    schedule = await schedule_crud.update_schedule(db, schedule, values)
    logger.info(f"Schedule {schedule_id} updated by doctor {caller.user_id}: {sorted(values)}")
    return OperationResult.ok(schedule)


@service_operation("deleting schedule")
async def delete_schedule(db, caller, schedule_id: int, today: Optional[date] = None) -> OperationResult:
    """Delete a rule unless the doctor still has upcoming pending/confirmed appointments."""
    caller = await _require_doctor(db, caller)
    schedule = await _owned_schedule(db, caller, schedule_id, "delete")

    if await has_future_active_appointments(db, caller.user_id, today or clinic_today()):
        raise ValidationFailed(
            "Cannot delete schedule with future appointments. "
            "Please cancel or reschedule appointments first."
        )
    await schedule_crud.delete_schedule(db, schedule)
    return OperationResult.ok({"id": schedule_id})


@service_operation("fetching doctor schedules")
async def list_doctor_schedules(db, caller, doctor_id: Optional[int] = None) -> OperationResult:
    """Rules of `doctor_id`, or of the calling doctor when no id is given."""
    if doctor_id is None:
        doctor_id = require_caller(caller).user_id
    schedules = await schedule_crud.list_schedules(db, doctor_id)
    return OperationResult.ok(schedules)
