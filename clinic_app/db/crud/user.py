# clinic_app/db/crud/user.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional

from clinic_app.db.models.doctor import DoctorModel


async def get_doctor(db: AsyncSession, doctor_id: int) -> Optional[DoctorModel]:
    """
    Get a doctor profile by the doctor's user ID.

    Args:
        db: Database session
        doctor_id: User ID of the doctor

    Returns:
        DoctorModel or None if not found
    """
    result = await db.execute(select(DoctorModel).where(DoctorModel.user_id == doctor_id))
    return result.scalar_one_or_none()
