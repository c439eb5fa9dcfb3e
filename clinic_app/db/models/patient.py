# clinic_app/db/models/patient.py
from sqlalchemy import Column, Integer, String, Date, ForeignKey
from sqlalchemy.orm import relationship
from clinic_app.db.base import Base

class PatientModel(Base):
    __tablename__ = "patients"

    user_id    = Column(Integer,
                        ForeignKey("users.id", ondelete="CASCADE"),
                        primary_key=True)

    first_name = Column(String(50), nullable=False)
    last_name  = Column(String(50), nullable=False)
    dob        = Column(Date)
    phone      = Column(String(30))

    user = relationship("UserModel", back_populates="patient_profile")
