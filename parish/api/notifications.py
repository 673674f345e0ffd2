import asyncio
import json
import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from parish.core.dependencies import (
    access_denied_error, get_event_bus, get_notification_center, get_optional_role, get_optional_session,
    login_required_exception, require_view_adherents,
)
from parish.models.role import AppRole
from parish.models.user import User
from parish.schemas.report import NotificationResponse
from parish.services.events import EventBus
from parish.services.guard import AccessGuard, AuthSession, GuardDecision, GuardOutcome
from parish.services.notifications import NOTIFICATION_TOPIC, Notification, NotificationCenter
from parish.services.rbac import Capability

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])

KEEPALIVE_SECONDS = 15


def _response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id, type=n.type.value, title=n.title, message=n.message, timestamp=n.timestamp, read=n.read,
    )


@router.get("", response_model=List[NotificationResponse])
def list_notifications(
    current_user: User = Depends(require_view_adherents),
    center: NotificationCenter = Depends(get_notification_center)
):
    """Notifications, most recent first."""
    return [_response(n) for n in center.notifications()]


@router.get("/unread-count")
def unread_count(
    current_user: User = Depends(require_view_adherents),
    center: NotificationCenter = Depends(get_notification_center)
):
    return {"count": center.unread_count()}


@router.post("/read-all")
def mark_all_read(
    current_user: User = Depends(require_view_adherents),
    center: NotificationCenter = Depends(get_notification_center)
):
    center.mark_all_as_read()
    return {"message": "All notifications marked as read"}


@router.post("/{notification_id}/read")
def mark_read(
    notification_id: UUID,
    current_user: User = Depends(require_view_adherents),
    center: NotificationCenter = Depends(get_notification_center)
):
    if not center.mark_as_read(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"message": "Notification marked as read"}


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: UUID,
    current_user: User = Depends(require_view_adherents),
    center: NotificationCenter = Depends(get_notification_center)
):
    if not center.remove(notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return {"message": "Notification removed"}


@router.delete("")
def clear_notifications(
    current_user: User = Depends(require_view_adherents),
    center: NotificationCenter = Depends(get_notification_center)
):
    center.clear()
    return {"message": "Notifications cleared"}


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


@router.get("/stream")
async def stream_notifications(
    request: Request,
    session: Optional[AuthSession] = Depends(get_optional_session),
    role: Optional[AppRole] = Depends(get_optional_role),
    bus: EventBus = Depends(get_event_bus)
):
    """Server-sent events for new notifications.

    The stream ends as soon as the user signs out or loses access.
    """
    guard = AccessGuard(bus, Capability.VIEW_ADHERENTS)
    decision = guard.resolve(session, role)
    if decision.outcome is GuardOutcome.REDIRECT_TO_LOGIN:
        guard.close()
        raise login_required_exception()
    if decision.outcome is GuardOutcome.ACCESS_DENIED:
        guard.close()
        raise access_denied_error()

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def push(item) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, item)

    subscription = bus.subscribe(NOTIFICATION_TOPIC, push)
    guard.on_change(push)

    async def events():
        try:
            yield _sse("ready", {"user_id": str(session.user_id)})
            while True:
                if await request.is_disconnected():
                    break
                try:
                    item = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                if isinstance(item, GuardDecision):
                    if not item.allowed:
                        yield _sse("closed", {"reason": item.outcome.value})
                        break
                    continue
                yield _sse("notification", json.loads(_response(item).model_dump_json()))
        finally:
            subscription.unsubscribe()
            guard.close()
            logger.info("Notification stream of user %s closed", session.user_id)

    return StreamingResponse(events(), media_type="text/event-stream")
