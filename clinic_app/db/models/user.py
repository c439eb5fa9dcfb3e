# clinic_app/db/models/user.py
from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from clinic_app.db.base import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, nullable=False, index=True)
    role = Column(String, nullable=False)  # 'patient', 'doctor', 'admin'
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # one-to-one links
    patient_profile = relationship(
        "PatientModel",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
    doctor_profile = relationship(
        "DoctorModel",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
    )
