# clinic_app/routes/common.py
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from clinic_app.core.results import OperationResult, unwrap_result
from clinic_app.services.notifications import deliver_notifications


async def settle(db: AsyncSession, result: OperationResult) -> Any:
    """Raise for a failed result; otherwise dispatch its outbox and return the payload."""
    data = unwrap_result(result)
    if result.notifications:
        # a failed delivery rolls back and would expire the rows we are about to return
        db.expunge_all()
        await deliver_notifications(db, result.notifications)
    return data
