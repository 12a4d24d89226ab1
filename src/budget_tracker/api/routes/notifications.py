from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from budget_tracker.api.dependencies import get_notifications
from budget_tracker.domain.validation import parse_date
from budget_tracker.models import Notification
from budget_tracker.services.notifications import NotificationService

router = APIRouter(prefix="/api/notifications")


@router.get("")
async def list_notifications(
    notifications: Annotated[NotificationService, Depends(get_notifications)],
    read: bool | None = None,
) -> list[Notification]:
    return await notifications.list_notifications(read=read)


@router.post("/read-all")
async def mark_all_read(
    notifications: Annotated[NotificationService, Depends(get_notifications)],
) -> dict[str, int]:
    return {"updated": await notifications.mark_all_read()}


@router.post("/check")
async def check_budgets(
    notifications: Annotated[NotificationService, Depends(get_notifications)],
    day: Annotated[str | None, Query(alias="date")] = None,
) -> list[Notification]:
    return await notifications.check_budget_warnings(parse_date(day))


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    notifications: Annotated[NotificationService, Depends(get_notifications)],
) -> Notification:
    return await notifications.mark_read(notification_id)


@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: str,
    notifications: Annotated[NotificationService, Depends(get_notifications)],
) -> Response:
    await notifications.delete(notification_id)
    return Response(status_code=204)
