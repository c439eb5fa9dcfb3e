import logging
from datetime import date, time
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, update, and_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from clinic_app.config.constants import ACTIVE_STATUSES
from clinic_app.core.errors import SlotUnavailable
from clinic_app.db.models.appointment import AppointmentModel

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "This appointment slot is no longer available"
SLOT_INDEX_NAME = "uq_appointments_active_slot"
# SQLite names the indexed columns instead of the index
SQLITE_SLOT_VIOLATION = "UNIQUE constraint failed: appointments.doctor_id"


def is_slot_conflict(error: IntegrityError) -> bool:
    """True when the integrity failure comes from the active-slot unique index."""
    message = str(error.orig)
    return SLOT_INDEX_NAME in message or SQLITE_SLOT_VIOLATION in message


async def get_appointment_by_id(
    db: AsyncSession, appointment_id: int
) -> Optional[AppointmentModel]:
    result = await db.execute(
        select(AppointmentModel).where(AppointmentModel.id == appointment_id)
    )
    return result.scalars().first()


async def find_active_at_slot(
    db: AsyncSession,
    doctor_id: int,
    appointment_date: date,
    appointment_time: time,
    exclude_id: Optional[int] = None,
) -> List[AppointmentModel]:
    """Pending/confirmed appointments holding exactly this doctor, date and time."""
    conditions = [
        AppointmentModel.doctor_id == doctor_id,
        AppointmentModel.appointment_date == appointment_date,
        AppointmentModel.appointment_time == appointment_time,
        AppointmentModel.status.in_(ACTIVE_STATUSES),
    ]
    if exclude_id is not None:
        conditions.append(AppointmentModel.id != exclude_id)

    result = await db.execute(select(AppointmentModel).where(and_(*conditions)))
    return list(result.scalars().all())


async def fetch_appointments(
    db: AsyncSession,
    doctor_id: int,
    appointment_date: date,
    status_in: Iterable[str] = ACTIVE_STATUSES,
) -> List[AppointmentModel]:
    """Appointments of one doctor on one date, filtered by status."""
    stmt = (
        select(AppointmentModel)
        .where(
            AppointmentModel.doctor_id == doctor_id,
            AppointmentModel.appointment_date == appointment_date,
            AppointmentModel.status.in_(list(status_in)),
        )
        .order_by(AppointmentModel.appointment_time)
    )
    result = await db.execute(stmt)
    appointments = list(result.scalars().all())
    logger.debug(
        f"CRUD: Found {len(appointments)} appointments for doctor {doctor_id} on {appointment_date}"
    )
    return appointments


async def has_future_active_appointments(
    db: AsyncSession, doctor_id: int, from_date: date
) -> bool:
    stmt = select(func.count(AppointmentModel.id)).where(
        AppointmentModel.doctor_id == doctor_id,
        AppointmentModel.appointment_date >= from_date,
        AppointmentModel.status.in_(ACTIVE_STATUSES),
    )
    result = await db.execute(stmt)
    return result.scalar_one() > 0


async def insert_appointment(db: AsyncSession, fields: Dict[str, Any]) -> AppointmentModel:
    """
    Insert an appointment and commit.

    The partial unique index on (doctor_id, appointment_date, appointment_time)
    for pending/confirmed rows makes this an atomic conditional insert: a
    concurrent booking of the same slot surfaces as SlotUnavailable.
    """
    appointment = AppointmentModel(**fields)
    db.add(appointment)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if not is_slot_conflict(e):
            logger.error(f"CRUD: Integrity error inserting appointment: {e.orig}")
            raise
        logger.warning(
            f"CRUD: Unique slot constraint rejected insert for doctor_id={fields.get('doctor_id')} "
            f"at {fields.get('appointment_date')} {fields.get('appointment_time')}: {e.orig}"
        )
        raise SlotUnavailable(SLOT_TAKEN_MESSAGE) from e

    await db.refresh(appointment)
    logger.info(
        f"CRUD: Created appointment_id={appointment.id} with status='{appointment.status}'."
    )
    return appointment


async def update_appointment_if_status(
    db: AsyncSession,
    appointment_id: int,
    expected_statuses: Iterable[str],
    values: Dict[str, Any],
) -> bool:
    """
    Compare-and-swap update: apply `values` only while the row is still in
    one of `expected_statuses`. Returns False when no row matched.

    Raises SlotUnavailable when the new values collide with another active
    appointment on the unique slot index.
    """
    expected = [getattr(s, "value", s) for s in expected_statuses]
    stmt = (
        update(AppointmentModel)
        .where(
            AppointmentModel.id == appointment_id,
            AppointmentModel.status.in_(expected),
        )
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    try:
        result = await db.execute(stmt)
        if result.rowcount == 0:
            await db.rollback()
            logger.warning(
                f"CRUD: Appointment {appointment_id} no longer in {expected}; update skipped."
            )
            return False
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        if not is_slot_conflict(e):
            logger.error(f"CRUD: Integrity error updating appointment {appointment_id}: {e.orig}")
            raise
        logger.warning(
            f"CRUD: Unique slot constraint rejected update of appointment {appointment_id}: {e.orig}"
        )
        raise SlotUnavailable("The requested time slot is not available") from e

    logger.info(f"CRUD: Updated appointment {appointment_id} with {sorted(values)}")
    return True


async def mark_reminder_sent(db: AsyncSession, appointment_id: int) -> bool:
    stmt = (
        update(AppointmentModel)
        .where(
            AppointmentModel.id == appointment_id,
            AppointmentModel.reminder_sent.is_(False),
        )
        .values(reminder_sent=True)
        .execution_options(synchronize_session="fetch")
    )
    result = await db.execute(stmt)
    if result.rowcount == 0:
        await db.rollback()
        return False
    await db.commit()
    return True


async def list_appointments(
    db: AsyncSession,
    doctor_id: Optional[int] = None,
    patient_id: Optional[int] = None,
    status: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[AppointmentModel]:
    query = select(AppointmentModel)

    if doctor_id is not None:
        query = query.where(AppointmentModel.doctor_id == doctor_id)
    if patient_id is not None:
        query = query.where(AppointmentModel.patient_id == patient_id)
    if status:
        query = query.where(AppointmentModel.status == status)
    if date_from:
        query = query.where(AppointmentModel.appointment_date >= date_from)
    if date_to:
        query = query.where(AppointmentModel.appointment_date <= date_to)

    query = (
        query.order_by(AppointmentModel.appointment_date, AppointmentModel.appointment_time)
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_reminder_candidates(
    db: AsyncSession, appointment_date: date
) -> List[AppointmentModel]:
    """Confirmed appointments on a date that have not been reminded yet."""
    stmt = (
        select(AppointmentModel)
        .where(
            AppointmentModel.appointment_date == appointment_date,
            AppointmentModel.status == "confirmed",
            AppointmentModel.reminder_sent.is_(False),
        )
        .order_by(AppointmentModel.appointment_time)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())
