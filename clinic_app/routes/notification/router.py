from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_app.core.middleware import get_db, get_current_user
from clinic_app.routes.common import settle
from clinic_app.schemas.notification import NotificationPage
from clinic_app.schemas.shared import CallerContext
from clinic_app.services import notifications as service

router = APIRouter(prefix="/notifications", tags=["notifications"])

@router.get("/", response_model=NotificationPage)
async def list_notifications_route(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user),
):
    return await settle(db, await service.list_notifications(db, current_user, limit, offset))

@router.post("/read-all")
async def mark_all_read_route(
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user),
):
    return await settle(db, await service.mark_all_notifications_read(db, current_user))

@router.post("/{notification_id}/read", status_code=204)
async def mark_read_route(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: CallerContext = Depends(get_current_user),
):
    await settle(db, await service.mark_notification_read(db, current_user, notification_id))
    return None
