# clinic_app/scheduling/slots.py
"""
Slot generation and conflict detection.

Both steps are pure: callers fetch schedule rules and bookings and pass them
in, together with the moment considered "now".
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Protocol

from clinic_app.config.constants import DEFAULT_APPOINTMENT_DURATION_MINUTES
from clinic_app.schemas.slot import Slot

DEFAULT_SLOT_DURATION_MINUTES = 30


class ScheduleRuleLike(Protocol):
    start_time: time
    end_time: time
    slot_duration_minutes: Optional[int]


class BookingLike(Protocol):
    appointment_time: time
    duration_minutes: Optional[int]


@dataclass(frozen=True)
class CandidateSlot:
    start_minute: int  # minutes since midnight
    duration_minutes: int

    @property
    def end_minute(self) -> int:
        return self.start_minute + self.duration_minutes

    @property
    def label(self) -> str:
        return f"{self.start_minute // 60:02d}:{self.start_minute % 60:02d}"


def day_of_week(target_date: date) -> int:
    """Weekday index used by schedule rules: 0 = Sunday ... 6 = Saturday."""
    return (target_date.weekday() + 1) % 7


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def generate_slots(rules: Iterable[ScheduleRuleLike]) -> List[CandidateSlot]:
    """
    Expand schedule rules into candidate slots.

    Each rule emits a slot every `slot_duration_minutes` starting at
    `start_time` while the slot start is strictly before `end_time`. Rules are
    concatenated in the order given; overlapping rules yield duplicate times.
    """
    candidates: List[CandidateSlot] = []
    for rule in rules:
        duration = rule.slot_duration_minutes or DEFAULT_SLOT_DURATION_MINUTES
        current = _minutes(rule.start_time)
        end = _minutes(rule.end_time)
        while current < end:
            candidates.append(CandidateSlot(start_minute=current, duration_minutes=duration))
            current += duration
    return candidates


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval overlap; touching intervals do not overlap."""
    return start_a < end_b and end_a > start_b


def mark_availability(
    candidates: Iterable[CandidateSlot],
    bookings: Iterable[BookingLike],
    target_date: date,
    now: datetime,
) -> List[Slot]:
    """
    Annotate candidate slots with availability.

    A slot is unavailable when it starts at or before `now`, or when it
    overlaps any booking. `now` must be naive and expressed in clinic time.
    """
    booked = [
        (
            _minutes(b.appointment_time),
            _minutes(b.appointment_time)
            + (b.duration_minutes or DEFAULT_APPOINTMENT_DURATION_MINUTES),
        )
        for b in bookings
    ]
    day_start = datetime.combine(target_date, time.min)

    slots: List[Slot] = []
    for candidate in candidates:
        starts_at = day_start + timedelta(minutes=candidate.start_minute)
        is_past = starts_at <= now
        is_booked = any(
            overlaps(candidate.start_minute, candidate.end_minute, apt_start, apt_end)
            for apt_start, apt_end in booked
        )
        slots.append(Slot(time=candidate.label, available=not is_past and not is_booked))
    return slots
