# clinic_app/db/models/doctor.py
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Boolean
from sqlalchemy.orm import relationship
from clinic_app.db.base import Base

class DoctorModel(Base):
    __tablename__ = "doctors"

    user_id    = Column(Integer,
                        ForeignKey("users.id", ondelete="CASCADE"),
                        primary_key=True)

    first_name       = Column(String(50), nullable=False)
    last_name        = Column(String(50), nullable=False)
    specialization   = Column(String(100), nullable=False)
    consultation_fee = Column(Numeric(10, 2), nullable=True)
    is_available     = Column(Boolean, nullable=False, default=True)
    clinic_address   = Column(String(255), nullable=True)

    user = relationship("UserModel", back_populates="doctor_profile")
    schedules = relationship(
        "ScheduleModel", back_populates="doctor", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
