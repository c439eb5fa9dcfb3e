# clinic_app/schemas/shared.py
from enum import Enum
from pydantic import BaseModel, ConfigDict

class Role(str, Enum):
    doctor = "doctor"
    patient = "patient"
    admin = "admin"

class CallerContext(BaseModel):
    """Identity of the user on whose behalf an operation runs."""
    model_config = ConfigDict(frozen=True)

    user_id: int
    role: Role
