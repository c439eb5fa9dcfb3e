# clinic_app/db/models/appointment.py
from sqlalchemy import (
    Column,
    Integer,
    Date,
    Time,
    DateTime,
    String,
    Text,
    Boolean,
    Numeric,
    ForeignKey,
    Index,
    text,
)
from sqlalchemy.orm import relationship
from clinic_app.db.base import Base
from sqlalchemy.sql import func

# Rows in these statuses hold the doctor's slot
ACTIVE_SLOT_PREDICATE = "status IN ('pending', 'confirmed')"


class AppointmentModel(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)
    status = Column(
        String(20), default="pending", nullable=False
    )  # pending, confirmed, completed, cancelled, rejected
    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    consultation_fee = Column(Numeric(10, 2), nullable=True)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    reminder_sent = Column(Boolean, nullable=False, default=False)

    is_followup = Column(Boolean, nullable=False, default=False)
    original_appointment_id = Column(
        Integer, ForeignKey("appointments.id"), nullable=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # At most one pending/confirmed appointment per doctor, date and time.
    __table_args__ = (
        Index(
            "uq_appointments_active_slot",
            "doctor_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            postgresql_where=text(ACTIVE_SLOT_PREDICATE),
            sqlite_where=text(ACTIVE_SLOT_PREDICATE),
        ),
        Index("ix_appointments_patient_id", "patient_id"),
    )

    # Relationships
    patient = relationship(
        "UserModel", foreign_keys=[patient_id], backref="patient_appointments"
    )
    doctor = relationship(
        "UserModel", foreign_keys=[doctor_id], backref="doctor_appointments"
    )
    original_appointment = relationship(
        "AppointmentModel", remote_side=[id], foreign_keys=[original_appointment_id]
    )

    def __repr__(self):
        return (
            f"<AppointmentModel(id={self.id}, doctor_id={self.doctor_id}, "
            f"{self.appointment_date} {self.appointment_time}, status={self.status})>"
        )
