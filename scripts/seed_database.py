# scripts/seed_database.py
import asyncio
import logging
import random
from datetime import date, time, timedelta
from typing import List

from sqlalchemy import text, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

# Add project root to sys.path to allow importing from clinic_app
import sys
from pathlib import Path

project_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_dir))

from clinic_app.config.settings import settings as app_settings
from clinic_app.core.auth import create_token_for_user
from clinic_app.db.base import get_engine, get_session_factory
from clinic_app.db.models import UserModel, DoctorModel, PatientModel, ScheduleModel
from clinic_app.schemas.shared import CallerContext, Role
from clinic_app.services.appointments import create_appointment
from clinic_app.services.notifications import deliver_notifications
from clinic_app.services.slots import get_available_slots

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("seed_database")

# --- Configuration for Seed Data ---
NUM_DOCTORS = 6
NUM_PATIENTS = 20
NUM_BOOKINGS = 25

DOCTOR_FIRST_NAMES = ["Rita", "Karim", "Maya", "Elie", "Nour", "Fadi", "Lina", "Tarek"]
DOCTOR_LAST_NAMES = ["Khoury", "Haddad", "Nassar", "Saad", "Fares", "Mansour", "Habib"]
PATIENT_FIRST_NAMES = ["Alice", "Bob", "Carla", "David", "Emma", "Frank", "Grace", "Hadi"]
PATIENT_LAST_NAMES = ["Smith", "Wonder", "Jones", "Brown", "Taylor", "Ghanem", "Rizk"]
DOCTOR_SPECIALIZATIONS = [
    "General Practice",
    "Cardiology",
    "Dermatology",
    "Pediatrics",
    "Orthopedics",
    "Neurology",
]
APPOINTMENT_REASONS = [
    "Annual Physical",
    "Follow-up",
    "Headache",
    "Lab Results Review",
    "Back Pain",
    "Allergy Symptoms",
]

# (day_of_week, start, end, slot minutes); 0 = Sunday
WEEKLY_TEMPLATE = [
    (1, time(9, 0), time(12, 0), 30),
    (1, time(13, 0), time(17, 0), 30),
    (2, time(9, 0), time(13, 0), 20),
    (3, time(10, 0), time(16, 0), 30),
    (4, time(9, 0), time(12, 0), 15),
    (5, time(8, 0), time(12, 0), 30),
]


def random_dob(start_year=1950, end_year=2005) -> date:
    return date(random.randint(start_year, end_year), random.randint(1, 12), random.randint(1, 28))


def random_phone() -> str:
    return f"{random.randint(100, 999)}-{random.randint(100, 999)}-{random.randint(1000, 9999)}"


async def clear_data(db: AsyncSession):
    logger.warning("Clearing existing data from tables...")
    await db.execute(text("DELETE FROM notifications;"))
    await db.execute(text("DELETE FROM appointments;"))
    await db.execute(text("DELETE FROM doctor_schedules;"))
    await db.execute(text("DELETE FROM patients;"))
    await db.execute(text("DELETE FROM doctors;"))
    await db.execute(
        text("DELETE FROM users WHERE role IN ('patient', 'doctor');")
    )  # Keep admin if any
    await db.commit()
    logger.info("Relevant data cleared.")


async def _get_or_create_user(db: AsyncSession, email: str, role: str) -> tuple:
    existing = await db.execute(select(UserModel.id).where(UserModel.email == email))
    existing_id = existing.scalar_one_or_none()
    if existing_id:
        logger.info(f"User {email} already exists with ID {existing_id}, using existing.")
        return existing_id, False
    user = UserModel(email=email, role=role)
    db.add(user)
    await db.flush()
    return user.id, True


async def seed_doctors(db: AsyncSession) -> List[int]:
    logger.info(f"Seeding {NUM_DOCTORS} doctors with weekly schedules...")
    doctor_ids: List[int] = []
    for i in range(NUM_DOCTORS):
        first_name = random.choice(DOCTOR_FIRST_NAMES)
        last_name = random.choice(DOCTOR_LAST_NAMES)
        email = f"doctor.{first_name.lower()}.{last_name.lower()}{i + 1}@example.com"
        user_id, created = await _get_or_create_user(db, email, Role.doctor.value)
        doctor_ids.append(user_id)
        if not created:
            continue
        db.add(
            DoctorModel(
                user_id=user_id,
                first_name=first_name,
                last_name=last_name,
                specialization=DOCTOR_SPECIALIZATIONS[i % len(DOCTOR_SPECIALIZATIONS)],
                consultation_fee=random.choice([80, 100, 120, 150]),
                clinic_address=f"{random.randint(1, 200)} Clinic Street, Floor {i % 4 + 1}",
            )
        )
        for day, start, end, minutes in random.sample(WEEKLY_TEMPLATE, k=4):
            db.add(
                ScheduleModel(
                    doctor_id=user_id,
                    day_of_week=day,
                    start_time=start,
                    end_time=end,
                    slot_duration_minutes=minutes,
                )
            )
        logger.info(f"  Added to session: Dr. {first_name} {last_name} ({email}), User ID: {user_id}")

    try:
        await db.commit()
        logger.info(f"Committed {len(doctor_ids)} doctors.")
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Integrity error committing doctors: {e.orig}", exc_info=True)
        return []
    return doctor_ids


async def seed_patients(db: AsyncSession) -> List[int]:
    logger.info(f"Seeding {NUM_PATIENTS} patients...")
    patient_ids: List[int] = []
    for i in range(NUM_PATIENTS):
        first_name = random.choice(PATIENT_FIRST_NAMES)
        last_name = random.choice(PATIENT_LAST_NAMES)
        email = f"patient.{first_name.lower()}.{last_name.lower()}{i + 1}@example.com"
        user_id, created = await _get_or_create_user(db, email, Role.patient.value)
        patient_ids.append(user_id)
        if created:
            db.add(
                PatientModel(
                    user_id=user_id,
                    first_name=first_name,
                    last_name=last_name,
                    dob=random_dob(),
                    phone=random_phone(),
                )
            )

    try:
        await db.commit()
        logger.info(f"Committed {len(patient_ids)} patients.")
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Integrity error committing patients: {e.orig}", exc_info=True)
        return []
    return patient_ids


async def seed_bookings(db: AsyncSession, doctor_ids: List[int], patient_ids: List[int]):
    """Book free slots over the next two weeks through the booking service."""
    logger.info(f"Booking up to {NUM_BOOKINGS} appointments...")
    booked = failed = 0
    for _ in range(NUM_BOOKINGS):
        doctor_id = random.choice(doctor_ids)
        patient_id = random.choice(patient_ids)
        day = date.today() + timedelta(days=random.randint(1, 14))

        slots_result = await get_available_slots(db, doctor_id, day)
        free = [s for s in slots_result.data or [] if s.available]
        if not free:
            continue

        slot = random.choice(free)
        hour, minute = map(int, slot.time.split(":"))
        result = await create_appointment(
            db,
            CallerContext(user_id=patient_id, role=Role.patient),
            doctor_id=doctor_id,
            appointment_date=day,
            appointment_time=time(hour, minute),
            reason=random.choice(APPOINTMENT_REASONS),
        )
        if result.success:
            booked += 1
            await deliver_notifications(db, result.notifications)
        else:
            failed += 1
            logger.warning(f"Skipped booking for doctor {doctor_id} on {day} {slot.time}: {result.error}")

    logger.info(f"Successfully booked {booked} appointments.")
    if failed:
        logger.warning(f"Failed/Skipped {failed} bookings due to conflicts or errors.")


async def main(should_clear: bool):
    logger.info(f"Connecting to database at: {app_settings.database_url}")
    engine = await get_engine(str(app_settings.database_url))
    session_factory = await get_session_factory(engine)

    async with session_factory() as db:
        if should_clear:
            await clear_data(db)
        doctor_ids = await seed_doctors(db)
        patient_ids = await seed_patients(db)
        if doctor_ids and patient_ids:
            await seed_bookings(db, doctor_ids, patient_ids)
            # Tokens for trying the API by hand
            logger.info(f"Doctor {doctor_ids[0]} token: {create_token_for_user(doctor_ids[0], 'doctor')}")
            logger.info(f"Patient {patient_ids[0]} token: {create_token_for_user(patient_ids[0], 'patient')}")
        else:
            logger.error("Critical: No doctors or patients available. Skipping bookings.")

    await engine.dispose()
    logger.info("Database connection closed.")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Seed the database with doctors, schedules and bookings.")
    parser.add_argument("--clear", action="store_true", help="Clear existing data before seeding.")
    args = parser.parse_args()
    asyncio.run(main(should_clear=args.clear))
