# tests/_factories.py
from datetime import date, datetime, time

from clinic_app.db.models import AppointmentModel, DoctorModel, PatientModel, ScheduleModel, UserModel
from clinic_app.schemas.shared import CallerContext, Role

# Monday 2030-01-07, 08:00 clinic time
NOW = datetime(2030, 1, 7, 8, 0)
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)

_counter = {"n": 0}


def _email(prefix: str) -> str:
    _counter["n"] += 1
    return f"{prefix}{_counter['n']}@example.com"


def caller(user_id: int, role: str) -> CallerContext:
    return CallerContext(user_id=user_id, role=Role(role))


async def create_doctor(db, fee=120, is_available=True, address="12 Cedar Street",
                        first_name="Rita", last_name="Khoury") -> int:
    user = UserModel(email=_email("doctor"), role="doctor")
    db.add(user)
    await db.flush()
    db.add(
        DoctorModel(
            user_id=user.id,
            first_name=first_name,
            last_name=last_name,
            specialization="General Practice",
            consultation_fee=fee,
            is_available=is_available,
            clinic_address=address,
        )
    )
    await db.commit()
    return user.id


async def create_patient(db, first_name="Alice", last_name="Wonder") -> int:
    user = UserModel(email=_email("patient"), role="patient")
    db.add(user)
    await db.flush()
    db.add(PatientModel(user_id=user.id, first_name=first_name, last_name=last_name))
    await db.commit()
    return user.id


async def add_schedule(db, doctor_id, day_of_week, start, end, minutes=30, is_active=True) -> ScheduleModel:
    schedule = ScheduleModel(
        doctor_id=doctor_id,
        day_of_week=day_of_week,
        start_time=start,
        end_time=end,
        slot_duration_minutes=minutes,
        is_active=is_active,
    )
    db.add(schedule)
    await db.commit()
    await db.refresh(schedule)
    return schedule


async def add_appointment(db, patient_id, doctor_id, on: date, at: time,
                          status="pending", duration=30, reminder_sent=False) -> AppointmentModel:
    appointment = AppointmentModel(
        patient_id=patient_id,
        doctor_id=doctor_id,
        appointment_date=on,
        appointment_time=at,
        duration_minutes=duration,
        status=status,
        reason="Check-up",
        reminder_sent=reminder_sent,
    )
    db.add(appointment)
    await db.commit()
    await db.refresh(appointment)
    return appointment
