from enum import Enum

class AppointmentStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

# statuses that occupy a doctor's slot
ACTIVE_STATUSES = (AppointmentStatus.PENDING.value, AppointmentStatus.CONFIRMED.value)

class NotificationType(str, Enum):
    APPOINTMENT_REMINDER = "appointment_reminder"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"

class AppointmentEvent(str, Enum):
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    RESCHEDULED = "rescheduled"
    FOLLOWUP_SCHEDULED = "followup_scheduled"
    UPDATED = "updated"
    REMINDER = "reminder"

# Schedule rule limits
MIN_SLOT_DURATION_MINUTES = 15
MAX_SLOT_DURATION_MINUTES = 180
DEFAULT_APPOINTMENT_DURATION_MINUTES = 30
