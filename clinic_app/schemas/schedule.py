# clinic_app/schemas/schedule.py
from datetime import time
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ScheduleCreate(BaseModel):
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    start_time: time
    end_time: time
    slot_duration_minutes: Optional[int] = None
    is_active: bool = True


class ScheduleUpdate(BaseModel):
    day_of_week: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    slot_duration_minutes: Optional[int] = None
    is_active: Optional[bool] = None


class Schedule(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int
    is_active: bool
