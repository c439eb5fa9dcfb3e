# clinic_app/db/models/schedule.py
from sqlalchemy import (
    Column,
    Integer,
    Time,
    Boolean,
    DateTime,
    ForeignKey,
    CheckConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from clinic_app.db.base import Base


class ScheduleModel(Base):
    """A doctor's recurring weekly availability window."""

    __tablename__ = "doctor_schedules"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(
        Integer, ForeignKey("doctors.user_id", ondelete="CASCADE"), nullable=False
    )
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    slot_duration_minutes = Column(Integer, nullable=False, default=30)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_schedule_time_range"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_schedule_day_of_week"),
        Index("ix_doctor_schedules_doctor_day", "doctor_id", "day_of_week"),
    )

    doctor = relationship("DoctorModel", back_populates="schedules")

    def __repr__(self):
        return (
            f"<ScheduleModel(id={self.id}, doctor_id={self.doctor_id}, "
            f"day={self.day_of_week}, {self.start_time}-{self.end_time})>"
        )
