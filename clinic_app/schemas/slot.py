# clinic_app/schemas/slot.py
from pydantic import BaseModel, ConfigDict


class Slot(BaseModel):
    """A bookable time computed from a schedule rule; never persisted."""
    model_config = ConfigDict(frozen=True)

    time: str  # HH:MM
    available: bool
