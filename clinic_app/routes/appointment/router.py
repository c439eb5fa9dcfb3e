from fastapi import APIRouter, Depends
from typing import List, Optional
from datetime import date
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from clinic_app.config.constants import AppointmentStatus
from clinic_app.core.middleware import get_db, get_current_user
from clinic_app.routes.common import settle
from clinic_app.schemas.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentDetailsUpdate,
    FollowupCreate,
    ReasonRequest,
    RescheduleRequest,
    StatusUpdateRequest,
)
from clinic_app.schemas.shared import CallerContext
from clinic_app.services import appointments as service
from clinic_app.services.notifications import send_appointment_reminder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])

@router.post("/", response_model=Appointment, status_code=201)
async def create_appointment_route(
    appointment: AppointmentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    """Book a new appointment for the current patient"""
    result = await service.create_appointment(
        db,
        current_user,
        doctor_id=appointment.doctor_id,
        appointment_date=appointment.appointment_date,
        appointment_time=appointment.appointment_time,
        reason=appointment.reason,
        notes=appointment.notes,
        duration_minutes=appointment.duration_minutes,
    )
    return await settle(db, result)

@router.get("/", response_model=List[Appointment])
async def list_appointments_route(
    status: Optional[AppointmentStatus] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    doctor_id: Optional[int] = None,
    patient_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    """Appointments visible to the current user"""
    result = await service.list_appointments(
        db,
        current_user,
        status=status,
        date_from=date_from,
        date_to=date_to,
        doctor_id=doctor_id,
        patient_id=patient_id,
        skip=skip,
        limit=limit,
    )
    return await settle(db, result)

@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment_route(
    appointment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    return await settle(db, await service.get_appointment(db, current_user, appointment_id))

@router.post("/{appointment_id}/confirm", response_model=Appointment)
async def confirm_appointment_route(
    appointment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    return await settle(db, await service.confirm_appointment(db, current_user, appointment_id))

@router.post("/{appointment_id}/reject", response_model=Appointment)
async def reject_appointment_route(
    appointment_id: int,
    body: ReasonRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    result = await service.reject_appointment(db, current_user, appointment_id, body.reason)
    return await settle(db, result)

@router.post("/{appointment_id}/cancel", response_model=Appointment)
async def cancel_appointment_route(
    appointment_id: int,
    body: ReasonRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    logger.info(f"User {current_user.user_id} cancelling appointment {appointment_id}")
    result = await service.cancel_appointment(db, current_user, appointment_id, body.reason)
    return await settle(db, result)

@router.post("/{appointment_id}/complete", response_model=Appointment)
async def complete_appointment_route(
    appointment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    return await settle(db, await service.complete_appointment(db, current_user, appointment_id))

@router.patch("/{appointment_id}", response_model=Appointment)
async def update_appointment_route(
    appointment_id: int,
    body: AppointmentDetailsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    """Edit reason, notes or duration; only the fields sent are changed"""
    result = await service.update_appointment_details(
        db, current_user, appointment_id, body.model_dump(exclude_unset=True)
    )
    return await settle(db, result)

@router.patch("/{appointment_id}/status", response_model=Appointment)
async def update_status_route(
    appointment_id: int,
    body: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    result = await service.update_appointment_status(
        db, current_user, appointment_id, body.status, reason=body.reason, notes=body.notes
    )
    return await settle(db, result)

@router.post("/{appointment_id}/reschedule", response_model=Appointment)
async def reschedule_appointment_route(
    appointment_id: int,
    body: RescheduleRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    result = await service.reschedule_appointment(
        db, current_user, appointment_id, body.new_date, body.new_time, reason=body.reason
    )
    return await settle(db, result)

@router.post("/{appointment_id}/followups", response_model=Appointment, status_code=201)
async def create_followup_route(
    appointment_id: int,
    body: FollowupCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    result = await service.create_followup_appointment(
        db,
        current_user,
        appointment_id,
        body.appointment_date,
        body.appointment_time,
        reason=body.reason,
        notes=body.notes,
        duration_minutes=body.duration_minutes,
    )
    return await settle(db, result)

@router.post("/{appointment_id}/reminder")
async def send_reminder_route(
    appointment_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user)
):
    return await settle(db, await send_appointment_reminder(db, current_user, appointment_id))
