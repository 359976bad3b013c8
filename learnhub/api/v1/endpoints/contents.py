from fastapi import APIRouter
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from learnhub.core.database import DatabaseSession
from learnhub.core.deps import ActiveUser, AdminUser, Now
from learnhub.core.exceptions import NotFoundError, ValidationError
from learnhub.models import Content
from learnhub.models.enums import ContentType
from learnhub.schemas import ApiResponse, ContentResponse, ContentUpdate, ok
from learnhub.services.access_service import AccessService

router = APIRouter(prefix="/contents", tags=["Contents"])


async def _get_content(db: DatabaseSession, content_id: int) -> Content:
    result = await db.execute(
        select(Content)
        .options(selectinload(Content.module))
        .where(Content.id == content_id, Content.is_deleted == False)  # noqa: E712
    )
    content = result.scalar_one_or_none()
    if not content or content.module.is_deleted:
        raise NotFoundError("Content", content_id)
    return content


@router.get("/{content_id}", response_model=ApiResponse[ContentResponse])
async def get_content(content_id: int, current_user: ActiveUser, db: DatabaseSession, now: Now):
    """A single learning item. Learners need its module unlocked."""
    content = await _get_content(db, content_id)
    await AccessService(db).ensure_module_unlocked(current_user, content.module, now)
    return ok(content)


@router.patch("/{content_id}", response_model=ApiResponse[ContentResponse])
async def update_content(
    content_id: int, data: ContentUpdate, admin: AdminUser, db: DatabaseSession
):
    content = await _get_content(db, content_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(content, field, value)

    if content.content_type == ContentType.ARTICLE and not content.body:
        raise ValidationError("Article content requires a body", field="body")

    await db.flush()
    return ok(content, "Content updated successfully")


@router.delete("/{content_id}", response_model=ApiResponse[None])
async def delete_content(content_id: int, admin: AdminUser, db: DatabaseSession):
    content = await _get_content(db, content_id)
    content.soft_delete()
    return ok(message="Content deleted successfully")
