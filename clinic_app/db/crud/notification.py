import logging
from datetime import datetime, timezone
from typing import Iterable, List, Tuple

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_app.db.models.notification import NotificationModel
from clinic_app.schemas.notification import NotificationDraft

logger = logging.getLogger(__name__)


async def enqueue_notifications(
    db: AsyncSession, drafts: Iterable[NotificationDraft]
) -> List[NotificationModel]:
    rows = [
        NotificationModel(
            user_id=draft.user_id,
            type=draft.type.value,
            title=draft.title,
            message=draft.message,
            data=draft.data or None,
            is_read=False,
        )
        for draft in drafts
    ]
    if not rows:
        return []
    db.add_all(rows)
    await db.commit()
    return rows


async def list_notifications(
    db: AsyncSession, user_id: int, limit: int = 20, offset: int = 0
) -> Tuple[List[NotificationModel], int, int]:
    """Return (page, total, unread_count) for a user, newest first."""
    page_stmt = (
        select(NotificationModel)
        .where(NotificationModel.user_id == user_id)
        .order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
        .offset(offset)
        .limit(limit)
    )
    page = list((await db.execute(page_stmt)).scalars().all())

    total = (
        await db.execute(
            select(func.count(NotificationModel.id)).where(NotificationModel.user_id == user_id)
        )
    ).scalar_one()
    unread = (
        await db.execute(
            select(func.count(NotificationModel.id)).where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
        )
    ).scalar_one()
    return page, total, unread


async def mark_read(db: AsyncSession, user_id: int, notification_id: int = None) -> int:
    """Mark one (or, without an id, every unread) notification of a user as read."""
    stmt = update(NotificationModel).where(
        NotificationModel.user_id == user_id,
        NotificationModel.is_read.is_(False),
    )
    if notification_id is not None:
        stmt = stmt.where(NotificationModel.id == notification_id)
    stmt = stmt.values(is_read=True, read_at=datetime.now(timezone.utc)).execution_options(
        synchronize_session="fetch"
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount


async def get_notification(db: AsyncSession, notification_id: int) -> NotificationModel:
    return await db.get(NotificationModel, notification_id)
