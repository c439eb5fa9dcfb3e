import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_app.db.models.schedule import ScheduleModel

logger = logging.getLogger(__name__)


async def fetch_schedule_rules(
    db: AsyncSession, doctor_id: int, day_of_week: int
) -> List[ScheduleModel]:
    """Active rules of a doctor for one weekday, ordered by start time."""
    stmt = (
        select(ScheduleModel)
        .where(
            ScheduleModel.doctor_id == doctor_id,
            ScheduleModel.day_of_week == day_of_week,
            ScheduleModel.is_active.is_(True),
        )
        .order_by(ScheduleModel.start_time, ScheduleModel.id)
    )
    result = await db.execute(stmt)
    rules = list(result.scalars().all())
    logger.debug(
        f"CRUD: Found {len(rules)} active schedule rules for doctor {doctor_id} on day {day_of_week}"
    )
    return rules


async def get_schedule(db: AsyncSession, schedule_id: int) -> Optional[ScheduleModel]:
    return await db.get(ScheduleModel, schedule_id)


async def list_schedules(db: AsyncSession, doctor_id: int) -> List[ScheduleModel]:
    stmt = (
        select(ScheduleModel)
        .where(ScheduleModel.doctor_id == doctor_id)
        .order_by(ScheduleModel.day_of_week, ScheduleModel.start_time)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_schedule(db: AsyncSession, fields: Dict[str, Any]) -> ScheduleModel:
    schedule = ScheduleModel(**fields)
    db.add(schedule)
    await db.commit()
    await db.refresh(schedule)
    logger.info(f"CRUD: Created schedule {schedule.id} for doctor {schedule.doctor_id}")
    return schedule


async def update_schedule(
    db: AsyncSession, schedule: ScheduleModel, values: Dict[str, Any]
) -> ScheduleModel:
    for key, value in values.items():
        setattr(schedule, key, value)
    await db.commit()
    await db.refresh(schedule)
    return schedule


async def delete_schedule(db: AsyncSession, schedule: ScheduleModel) -> None:
    await db.delete(schedule)
    await db.commit()
    logger.info(f"CRUD: Deleted schedule {schedule.id}")
