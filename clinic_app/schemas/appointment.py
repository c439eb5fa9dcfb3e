# clinic_app/schemas/appointment.py
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from clinic_app.config.constants import AppointmentStatus


class AppointmentCreate(BaseModel):
    doctor_id: int
    appointment_date: date
    appointment_time: time
    reason: str
    notes: Optional[str] = None
    duration_minutes: Optional[int] = None


class FollowupCreate(BaseModel):
    appointment_date: date
    appointment_time: time
    reason: Optional[str] = None
    notes: Optional[str] = None
    duration_minutes: Optional[int] = None


class RescheduleRequest(BaseModel):
    new_date: date
    new_time: time
    reason: Optional[str] = None


class ReasonRequest(BaseModel):
    reason: str = Field(..., description="Why the appointment is rejected or cancelled")


class AppointmentDetailsUpdate(BaseModel):
    reason: Optional[str] = None
    notes: Optional[str] = None
    duration_minutes: Optional[int] = None


class StatusUpdateRequest(BaseModel):
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None


class Appointment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: int
    appointment_date: date
    appointment_time: time
    duration_minutes: int
    status: AppointmentStatus
    reason: Optional[str] = None
    notes: Optional[str] = None
    consultation_fee: Optional[Decimal] = None
    confirmed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    reminder_sent: bool = False
    is_followup: bool = False
    original_appointment_id: Optional[int] = None
    created_at: Optional[datetime] = None
