# scripts/send_reminders.py
"""Queue reminders for tomorrow's confirmed appointments. Meant to run from cron."""
import asyncio
import logging
from datetime import timedelta

import sys
from pathlib import Path

project_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_dir))

from clinic_app.config.settings import settings as app_settings
from clinic_app.db.base import get_engine, get_session_factory
from clinic_app.db.crud.appointment import list_reminder_candidates
from clinic_app.db.session import script_db_session, set_global_session_factory
from clinic_app.scheduling.clock import clinic_today
from clinic_app.services.common import SYSTEM_CALLER
from clinic_app.services.notifications import deliver_notifications, send_appointment_reminder

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("send_reminders")


async def send_reminders(days_ahead: int = 1) -> int:
    target = clinic_today() + timedelta(days=days_ahead)
    sent = 0
    async with script_db_session() as db:
        candidates = await list_reminder_candidates(db, target)
        logger.info(f"{len(candidates)} confirmed appointment(s) on {target} awaiting a reminder")
        for appointment_id in [a.id for a in candidates]:
            result = await send_appointment_reminder(db, SYSTEM_CALLER, appointment_id)
            if not result.success:
                logger.warning(f"Reminder for appointment {appointment_id} skipped: {result.error}")
                continue
            await deliver_notifications(db, result.notifications)
            sent += 1
    logger.info(f"Queued {sent} reminder(s) for {target}")
    return sent


async def main(days_ahead: int):
    engine = await get_engine(str(app_settings.database_url))
    set_global_session_factory(await get_session_factory(engine))
    try:
        await send_reminders(days_ahead)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Queue appointment reminders.")
    parser.add_argument("--days-ahead", type=int, default=1, help="How many days ahead to remind.")
    args = parser.parse_args()
    asyncio.run(main(args.days_ahead))
