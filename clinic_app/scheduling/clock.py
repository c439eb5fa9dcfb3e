# clinic_app/scheduling/clock.py
from datetime import date, datetime
from zoneinfo import ZoneInfo

from clinic_app.config.settings import settings


def clinic_now() -> datetime:
    """Current wall-clock time at the clinic, as a naive datetime."""
    return datetime.now(ZoneInfo(settings.clinic_timezone)).replace(tzinfo=None)


def clinic_today() -> date:
    return clinic_now().date()
