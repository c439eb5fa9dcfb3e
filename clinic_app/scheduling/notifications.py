# clinic_app/scheduling/notifications.py
"""Map appointment events to notification drafts for the counterparty."""
from dataclasses import dataclass
from datetime import date, time
from typing import Any, Dict, List, Optional

from clinic_app.config.constants import AppointmentEvent, NotificationType
from clinic_app.schemas.notification import NotificationDraft
from clinic_app.scheduling.transitions import DOCTOR, PATIENT

E = AppointmentEvent
N = NotificationType


@dataclass(frozen=True)
class AppointmentSnapshot:
    id: int
    patient_id: int
    doctor_id: int
    appointment_date: date
    appointment_time: time

    @classmethod
    def of(cls, appointment) -> "AppointmentSnapshot":
        return cls(
            id=appointment.id,
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            appointment_date=appointment.appointment_date,
            appointment_time=appointment.appointment_time,
        )

    @property
    def when(self) -> str:
        return f"{self.appointment_date.isoformat()} at {self.appointment_time.strftime('%H:%M')}"

    def payload(self) -> Dict[str, Any]:
        return {
            "appointment_id": self.id,
            "appointment_date": self.appointment_date.isoformat(),
            "appointment_time": self.appointment_time.strftime("%H:%M"),
        }


def _draft(event, user_id, type_, title, message, data) -> NotificationDraft:
    return NotificationDraft(
        event=event, user_id=user_id, type=type_, title=title, message=message, data=data
    )


def notifications_for(
    event: AppointmentEvent,
    appointment: AppointmentSnapshot,
    actor: Optional[str] = None,
    reason: Optional[str] = None,
    previous: Optional[AppointmentSnapshot] = None,
    doctor_name: Optional[str] = None,
    clinic_address: Optional[str] = None,
    updated_fields: Optional[List[str]] = None,
) -> List[NotificationDraft]:
    """
    Build the drafts an event produces.

    `actor` is the party who triggered the event; cancellations notify the
    other side. `previous` is the pre-reschedule snapshot. Detail edits
    also go to the other side and list `updated_fields`.
    """
    data = appointment.payload()
    when = appointment.when

    if event is E.BOOKED:
        return [
            _draft(
                event, appointment.doctor_id, N.APPOINTMENT_CONFIRMED,
                "New Appointment Request",
                f"You have a new appointment request for {when}",
                {**data, "patient_id": appointment.patient_id},
            )
        ]
    if event is E.CONFIRMED:
        return [
            _draft(
                event, appointment.patient_id, N.APPOINTMENT_CONFIRMED,
                "Appointment Confirmed",
                f"Your appointment on {when} has been confirmed by the doctor.",
                data,
            )
        ]
    if event is E.REJECTED:
        return [
            _draft(
                event, appointment.patient_id, N.APPOINTMENT_CANCELLED,
                "Appointment Rejected",
                f"Your appointment on {when} has been rejected. Reason: {reason}",
                {**data, "rejection_reason": reason},
            )
        ]
    if event is E.CANCELLED:
        recipient = appointment.doctor_id if actor == PATIENT else appointment.patient_id
        return [
            _draft(
                event, recipient, N.APPOINTMENT_CANCELLED,
                "Appointment Cancelled",
                f"Your appointment on {when} has been cancelled.",
                {**data, "cancellation_reason": reason, "cancelled_by": actor or DOCTOR},
            )
        ]
    if event is E.COMPLETED:
        return [
            _draft(
                event, appointment.patient_id, N.APPOINTMENT_CONFIRMED,
                "Appointment Completed",
                f"Your appointment on {when} has been completed. You can now leave a review.",
                {**data, "can_review": True},
            )
        ]
    if event is E.RESCHEDULED:
        payload = {
            "appointment_id": appointment.id,
            "old_date": previous.appointment_date.isoformat() if previous else None,
            "old_time": previous.appointment_time.strftime("%H:%M") if previous else None,
            "new_date": data["appointment_date"],
            "new_time": data["appointment_time"],
            "reason": reason,
        }
        return [
            _draft(
                event, appointment.patient_id, N.APPOINTMENT_CONFIRMED,
                "Appointment Rescheduled",
                f"Your appointment has been rescheduled to {when}",
                payload,
            ),
            _draft(
                event, appointment.doctor_id, N.APPOINTMENT_CONFIRMED,
                "Appointment Rescheduled",
                f"An appointment has been rescheduled to {when}",
                payload,
            ),
        ]
    if event is E.FOLLOWUP_SCHEDULED:
        return [
            _draft(
                event, appointment.patient_id, N.APPOINTMENT_CONFIRMED,
                "Follow-up Appointment Scheduled",
                f"Your follow-up appointment has been scheduled for {when}",
                {
                    **data,
                    "original_appointment_id": previous.id if previous else None,
                },
            )
        ]
    if event is E.UPDATED:
        recipient = appointment.doctor_id if actor == PATIENT else appointment.patient_id
        return [
            _draft(
                event, recipient, N.APPOINTMENT_CONFIRMED,
                "Appointment Updated",
                f"Your appointment on {when} has been updated by the {actor or DOCTOR}.",
                {**data, "updated_by": actor or DOCTOR, "updated_fields": updated_fields or []},
            )
        ]
    if event is E.REMINDER:
        doctor = f"Dr. {doctor_name}" if doctor_name else "your doctor"
        return [
            _draft(
                event, appointment.patient_id, N.APPOINTMENT_REMINDER,
                "Appointment Reminder",
                f"Don't forget your appointment with {doctor} on {when}",
                {**data, "doctor_name": doctor_name, "clinic_address": clinic_address},
            )
        ]
    raise ValueError(f"No notification mapping for event {event!r}")
