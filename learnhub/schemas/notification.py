from datetime import datetime

from pydantic import Field

from learnhub.models.enums import NotificationType
from learnhub.schemas.base import BaseSchema


class NotificationResponse(BaseSchema):
    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    link_url: str | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class UnreadCountResponse(BaseSchema):
    unread: int


class AnnouncementCreate(BaseSchema):
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    link_url: str | None = Field(default=None, max_length=500)


class DispatchResult(BaseSchema):
    """How many notifications a bulk operation created or changed."""

    count: int
