# clinic_app/services/common.py
from datetime import date, datetime, time
from typing import Optional

from clinic_app.config.constants import (
    DEFAULT_APPOINTMENT_DURATION_MINUTES,
    MAX_SLOT_DURATION_MINUTES,
    MIN_SLOT_DURATION_MINUTES,
)
from clinic_app.core.errors import AuthenticationRequired, SlotUnavailable, ValidationFailed
from clinic_app.schemas.shared import CallerContext, Role

# Identity used by scheduled jobs (reminder script)
SYSTEM_CALLER = CallerContext(user_id=0, role=Role.admin)


def require_caller(caller: Optional[CallerContext]) -> CallerContext:
    if caller is None:
        raise AuthenticationRequired()
    return caller


def normalize_time(value: time) -> time:
    """Appointments and slots are minute-granular."""
    return value.replace(second=0, microsecond=0, tzinfo=None)


def validate_duration(minutes: Optional[int], default: int = DEFAULT_APPOINTMENT_DURATION_MINUTES) -> int:
    if minutes is None:
        return default
    if not MIN_SLOT_DURATION_MINUTES <= minutes <= MAX_SLOT_DURATION_MINUTES:
        raise ValidationFailed(
            f"Duration must be between {MIN_SLOT_DURATION_MINUTES} and "
            f"{MAX_SLOT_DURATION_MINUTES} minutes"
        )
    return minutes


def ensure_future(target_date: date, target_time: time, now: datetime, message: str) -> None:
    if datetime.combine(target_date, target_time) <= now:
        raise SlotUnavailable(message)
