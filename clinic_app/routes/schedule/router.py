from fastapi import APIRouter, Depends, Query
from typing import List
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_app.core.middleware import get_db, get_current_user, get_optional_user, require_roles
from clinic_app.routes.common import settle
from clinic_app.schemas.schedule import Schedule, ScheduleCreate, ScheduleUpdate
from clinic_app.schemas.shared import CallerContext, Role
from clinic_app.schemas.slot import Slot
from clinic_app.services import schedules as service
from clinic_app.services.slots import get_available_slots

router = APIRouter(tags=["schedules"])

@router.get("/doctors/{doctor_id}/slots", response_model=List[Slot])
async def get_slots_route(
    doctor_id: int,
    target_date: date = Query(..., alias="date", description="Day to list slots for (YYYY-MM-DD)"),
    db: AsyncSession = Depends(get_db),
):
    """Candidate slots of a doctor on a date with their availability"""
    return await settle(db, await get_available_slots(db, doctor_id, target_date))

@router.get("/doctors/{doctor_id}/schedules", response_model=List[Schedule])
async def get_doctor_schedules_route(
    doctor_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_optional_user),
):
    return await settle(db, await service.list_doctor_schedules(db, current_user, doctor_id))

@router.get("/schedules", response_model=List[Schedule])
async def get_my_schedules_route(
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(require_roles([Role.doctor])),
):
    return await settle(db, await service.list_doctor_schedules(db, current_user))

@router.post("/schedules", response_model=Schedule, status_code=201)
async def create_schedule_route(
    body: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user),
):
    result = await service.create_schedule(
        db,
        current_user,
        day_of_week=body.day_of_week,
        start_time=body.start_time,
        end_time=body.end_time,
        slot_duration_minutes=body.slot_duration_minutes,
        is_active=body.is_active,
    )
    return await settle(db, result)

@router.patch("/schedules/{schedule_id}", response_model=Schedule)
async def update_schedule_route(
    schedule_id: int,
    body: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user),
):
    changes = body.model_dump(exclude_unset=True)
    return await settle(db, await service.update_schedule(db, current_user, schedule_id, changes))

@router.delete("/schedules/{schedule_id}", status_code=204)
async def delete_schedule_route(
    schedule_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user),
):
    await settle(db, await service.delete_schedule(db, current_user, schedule_id))
    return None
