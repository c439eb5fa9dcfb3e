# clinic_app/services/slots.py
import logging
from datetime import date, datetime
from typing import Optional

from clinic_app.core.errors import ValidationFailed
from clinic_app.core.results import OperationResult, service_operation
from clinic_app.db.crud.appointment import fetch_appointments
from clinic_app.db.crud.schedule import fetch_schedule_rules
from clinic_app.scheduling.clock import clinic_now
from clinic_app.scheduling.slots import day_of_week, generate_slots, mark_availability

logger = logging.getLogger(__name__)


@service_operation("fetching available slots")
async def get_available_slots(
    db,
    doctor_id: int,
    target_date: date,
    now: Optional[datetime] = None,
) -> OperationResult:
    """
    Bookable slots of a doctor on a date.

    Candidate slots come from the doctor's active weekly rules for the date's
    weekday; each is flagged unavailable when it already started or overlaps
    a pending/confirmed appointment. Read-only.
    """
    if not doctor_id or doctor_id <= 0:
        raise ValidationFailed("A doctor id is required")
    now = now or clinic_now()

    rules = await fetch_schedule_rules(db, doctor_id, day_of_week(target_date))
    if not rules:
        logger.info(f"No active schedule for doctor {doctor_id} on {target_date}")
        return OperationResult.ok([])

    bookings = await fetch_appointments(db, doctor_id, target_date)
    slots = mark_availability(generate_slots(rules), bookings, target_date, now)
    logger.debug(
        f"Doctor {doctor_id} on {target_date}: {sum(s.available for s in slots)}/{len(slots)} slots free"
    )
    return OperationResult.ok(slots)
