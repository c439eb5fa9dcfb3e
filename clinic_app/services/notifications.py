# clinic_app/services/notifications.py
import logging
from datetime import datetime
from typing import Iterable, Optional

from clinic_app.config.constants import AppointmentEvent, AppointmentStatus
from clinic_app.core.errors import AuthorizationDenied, NotFound, ValidationFailed
from clinic_app.core.results import OperationResult, service_operation
from clinic_app.db.crud import appointment as appointment_crud
from clinic_app.db.crud import notification as notification_crud
from clinic_app.db.crud.user import get_doctor
from clinic_app.scheduling.clock import clinic_now
from clinic_app.scheduling.notifications import AppointmentSnapshot, notifications_for
from clinic_app.schemas.notification import NotificationDraft, NotificationOut, NotificationPage
from clinic_app.schemas.shared import Role
from clinic_app.services.common import require_caller

logger = logging.getLogger(__name__)


async def deliver_notifications(db, drafts: Iterable[NotificationDraft]) -> int:
    """
    Persist an operation's outbox.

    Best effort: a failure is logged and swallowed so it can never undo the
    operation that produced the drafts. Returns how many were stored.
    """
    drafts = list(drafts)
    if not drafts:
        return 0
    try:
        rows = await notification_crud.enqueue_notifications(db, drafts)
    except Exception as e:
        await db.rollback()
        logger.error(
            f"Failed to queue {len(drafts)} notification(s) "
            f"({', '.join(sorted({d.event.value for d in drafts}))}): {e}",
            exc_info=True,
        )
        return 0
    logger.info(f"Queued {len(rows)} notification(s) for users {[d.user_id for d in drafts]}")
    return len(rows)


@service_operation("fetching notifications")
async def list_notifications(db, caller, limit: int = 20, offset: int = 0) -> OperationResult:
    caller = require_caller(caller)
    if limit <= 0 or offset < 0:
        raise ValidationFailed("limit must be positive and offset non-negative")
    rows, total, unread = await notification_crud.list_notifications(
        db, caller.user_id, limit=limit, offset=offset
    )
    page = NotificationPage(
        items=[NotificationOut.model_validate(r, from_attributes=True) for r in rows],
        total=total,
        unread_count=unread,
    )
    return OperationResult.ok(page)


@service_operation("marking notification as read")
async def mark_notification_read(db, caller, notification_id: int) -> OperationResult:
    caller = require_caller(caller)
    notification = await notification_crud.get_notification(db, notification_id)
    if not notification or notification.user_id != caller.user_id:
        raise NotFound("Notification not found")
    await notification_crud.mark_read(db, caller.user_id, notification_id)
    return OperationResult.ok()


@service_operation("marking all notifications as read")
async def mark_all_notifications_read(db, caller) -> OperationResult:
    caller = require_caller(caller)
    updated = await notification_crud.mark_read(db, caller.user_id)
    return OperationResult.ok({"updated": updated})


@service_operation("sending appointment reminder")
async def send_appointment_reminder(
    db, caller, appointment_id: int, now: Optional[datetime] = None
) -> OperationResult:
    """
    Queue a reminder for the patient of a confirmed, upcoming appointment and
    flag the appointment so it is reminded only once.
    """
    caller = require_caller(caller)
    now = now or clinic_now()

    appointment = await appointment_crud.get_appointment_by_id(db, appointment_id)
    if not appointment:
        raise NotFound("Appointment not found")
    if caller.role != Role.admin and caller.user_id != appointment.doctor_id:
        raise AuthorizationDenied("Only the appointment's doctor can send reminders")
    if AppointmentStatus(appointment.status) is not AppointmentStatus.CONFIRMED:
        raise ValidationFailed("Can only send reminders for confirmed appointments")
    if appointment.reminder_sent:
        raise ValidationFailed("Reminder already sent for this appointment")
    if datetime.combine(appointment.appointment_date, appointment.appointment_time) <= now:
        raise ValidationFailed("Cannot send reminder for past appointments")

    doctor = await get_doctor(db, appointment.doctor_id)
    snapshot = AppointmentSnapshot.of(appointment)

    if not await appointment_crud.mark_reminder_sent(db, appointment.id):
        raise ValidationFailed("Reminder already sent for this appointment")

    drafts = notifications_for(
        AppointmentEvent.REMINDER,
        snapshot,
        doctor_name=doctor.full_name if doctor else None,
        clinic_address=doctor.clinic_address if doctor else None,
    )
    return OperationResult.ok({"appointment_id": appointment.id}, drafts)
