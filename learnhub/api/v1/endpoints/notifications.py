from fastapi import APIRouter, Query, status

from learnhub.core.database import DatabaseSession
from learnhub.core.deps import ActiveUser, AdminUser, Now
from learnhub.schemas import (
    AnnouncementCreate,
    ApiResponse,
    DispatchResult,
    NotificationResponse,
    UnreadCountResponse,
    ok,
)
from learnhub.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=ApiResponse[list[NotificationResponse]])
async def list_my_notifications(
    current_user: ActiveUser,
    db: DatabaseSession,
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
):
    """Current user's notifications, newest first."""
    notifications = await NotificationService(db).list_for_user(
        current_user.id, unread_only=unread_only, limit=limit
    )
    return ok(notifications)


@router.get("/unread-count", response_model=ApiResponse[UnreadCountResponse])
async def get_unread_count(current_user: ActiveUser, db: DatabaseSession):
    count = await NotificationService(db).unread_count(current_user.id)
    return ok({"unread": count})


@router.patch("/read-all", response_model=ApiResponse[DispatchResult])
async def mark_all_read(current_user: ActiveUser, db: DatabaseSession, now: Now):
    count = await NotificationService(db).mark_all_as_read(current_user.id, now)
    return ok({"count": count}, f"Marked {count} notification(s) as read")


@router.patch("/{notification_id}/read", response_model=ApiResponse[NotificationResponse])
async def mark_read(
    notification_id: int, current_user: ActiveUser, db: DatabaseSession, now: Now
):
    notification = await NotificationService(db).mark_as_read(notification_id, current_user.id, now)
    await db.flush()
    return ok(notification, "Notification marked as read")


# === Admin endpoints ===


@router.post(
    "/announcements",
    response_model=ApiResponse[DispatchResult],
    status_code=status.HTTP_201_CREATED,
)
async def send_announcement(data: AnnouncementCreate, admin: AdminUser, db: DatabaseSession):
    """Send an announcement to every active user (admin only)."""
    count = await NotificationService(db).send_announcement(data.title, data.message, data.link_url)
    return ok({"count": count}, f"Announcement sent to {count} user(s)")


@router.post("/unlock-sweep", response_model=ApiResponse[DispatchResult])
async def run_unlock_sweep(admin: AdminUser, db: DatabaseSession, now: Now):
    """Dispatch pending module unlock notifications now (admin only)."""
    count = await NotificationService(db).sweep_module_unlocks(now)
    return ok({"count": count}, f"Sent {count} unlock notification(s)")
