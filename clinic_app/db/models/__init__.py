from .user import UserModel
from .doctor import DoctorModel
from .patient import PatientModel
from .schedule import ScheduleModel
from .appointment import AppointmentModel
from .notification import NotificationModel

__all__ = [
    "UserModel",
    "DoctorModel",
    "PatientModel",
    "ScheduleModel",
    "AppointmentModel",
    "NotificationModel",
]
