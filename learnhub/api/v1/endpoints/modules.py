import logging

from fastapi import APIRouter, status
from sqlalchemy import select

from learnhub.core.database import DatabaseSession
from learnhub.core.deps import ActiveUser, AdminUser, Now
from learnhub.core.pagination import Pagination, paginate
from learnhub.models import Content, Module
from learnhub.models.enums import ContentType, ModuleStatus
from learnhub.schemas import (
    ApiResponse,
    ContentCreate,
    ContentResponse,
    DispatchResult,
    ModuleCreate,
    ModuleDetailResponse,
    ModuleResponse,
    ModuleStandaloneUpdate,
    ModuleStatusUpdate,
    ModuleUpdate,
    Page,
    ok,
)
from learnhub.services.access_service import AccessService
from learnhub.services.course_service import CourseService, ModuleService
from learnhub.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/modules", tags=["Modules"])


@router.get("", response_model=ApiResponse[Page[ModuleResponse]])
async def list_modules(
    admin: AdminUser,
    db: DatabaseSession,
    pagination: Pagination,
    course_id: int | None = None,
    module_status: ModuleStatus | None = None,
    is_standalone: bool | None = None,
    search: str | None = None,
):
    """List modules across courses (admin only)."""
    query = select(Module).where(Module.is_deleted == False)  # noqa: E712

    if course_id is not None:
        query = query.where(Module.course_id == course_id)
    if module_status is not None:
        query = query.where(Module.status == module_status)
    if is_standalone is not None:
        query = query.where(Module.is_standalone == is_standalone)
    if search:
        query = query.where(Module.title.ilike(f"%{search}%"))

    query = query.order_by(Module.course_id, Module.order, Module.id)
    return ok(await paginate(db, query, pagination))


@router.get("/{module_id}", response_model=ApiResponse[ModuleDetailResponse])
async def get_module(module_id: int, current_user: ActiveUser, db: DatabaseSession, now: Now):
    """Module with its contents and quizzes. Learners need the module unlocked."""
    module = await ModuleService(db).get_module(module_id, with_details=True)
    await AccessService(db).ensure_module_unlocked(current_user, module, now)

    data = ModuleResponse.model_validate(module).model_dump()
    data["course"] = module.course
    data["contents"] = [c for c in module.contents if not c.is_deleted]
    data["quizzes"] = [q for q in module.quizzes if not q.is_deleted]
    return ok(data)


@router.post("", response_model=ApiResponse[ModuleResponse], status_code=status.HTTP_201_CREATED)
async def create_module(data: ModuleCreate, admin: AdminUser, db: DatabaseSession):
    """Create a module (admin only). Modules start as drafts unless told otherwise."""
    await CourseService(db).get_course(data.course_id, admin)

    module = Module(**data.model_dump(exclude={"status"}), status=ModuleStatus.DRAFT)
    db.add(module)
    await db.flush()

    # Activation is checked like any later status change
    if data.status != ModuleStatus.DRAFT:
        await ModuleService(db).change_status(module, data.status)
        await db.flush()

    logger.info("Admin %s created module %s in course %s", admin.id, module.id, module.course_id)
    return ok(module, "Module created successfully")


@router.patch("/{module_id}", response_model=ApiResponse[ModuleResponse])
async def update_module(module_id: int, data: ModuleUpdate, admin: AdminUser, db: DatabaseSession):
    service = ModuleService(db)
    module = await service.get_module(module_id)
    update_data = data.model_dump(exclude_unset=True)

    is_standalone = update_data.pop("is_standalone", None)
    for field, value in update_data.items():
        setattr(module, field, value)
    if is_standalone is not None:
        service.set_standalone(module, is_standalone, update_data.get("price"))

    await db.flush()
    return ok(module, "Module updated successfully")


@router.patch("/{module_id}/status", response_model=ApiResponse[ModuleResponse])
async def update_module_status(
    module_id: int, data: ModuleStatusUpdate, admin: AdminUser, db: DatabaseSession
):
    """Change a module's status (admin only)."""
    service = ModuleService(db)
    module = await service.get_module(module_id)
    await service.change_status(module, data.status)
    await db.flush()
    return ok(module, "Module status updated")


@router.patch("/{module_id}/standalone", response_model=ApiResponse[ModuleResponse])
async def update_module_standalone(
    module_id: int, data: ModuleStandaloneUpdate, admin: AdminUser, db: DatabaseSession
):
    """Toggle whether a module is sold on its own (admin only)."""
    service = ModuleService(db)
    module = await service.get_module(module_id)
    service.set_standalone(module, data.is_standalone, data.price)
    await db.flush()
    return ok(module, "Module standalone setting updated")


@router.delete("/{module_id}", response_model=ApiResponse[None])
async def delete_module(module_id: int, admin: AdminUser, db: DatabaseSession):
    """Soft delete a module (admin only)."""
    module = await ModuleService(db).get_module(module_id)
    module.soft_delete()
    logger.info("Admin %s deleted module %s", admin.id, module.id)
    return ok(message="Module deleted successfully")


@router.post("/{module_id}/notify", response_model=ApiResponse[DispatchResult])
async def notify_module_unlock(module_id: int, admin: AdminUser, db: DatabaseSession):
    """Announce a module to every actively enrolled learner of its course (admin only)."""
    module = await ModuleService(db).get_module(module_id, with_details=True)
    count = await NotificationService(db).send_module_unlock_to_enrolled(module, module.course)
    return ok({"count": count}, f"Notified {count} learner(s)")


# === Contents ===


@router.get("/{module_id}/contents", response_model=ApiResponse[list[ContentResponse]])
async def list_module_contents(
    module_id: int, current_user: ActiveUser, db: DatabaseSession, now: Now
):
    """Ordered learning items of a module. Learners need the module unlocked."""
    module = await ModuleService(db).get_module(module_id)
    await AccessService(db).ensure_module_unlocked(current_user, module, now)

    result = await db.execute(
        select(Content)
        .where(Content.module_id == module.id, Content.is_deleted == False)  # noqa: E712
        .order_by(Content.order, Content.id)
    )
    return ok(result.scalars().all())


@router.post(
    "/{module_id}/contents",
    response_model=ApiResponse[ContentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_content(
    module_id: int, data: ContentCreate, admin: AdminUser, db: DatabaseSession
):
    """Attach a learning item to a module (admin only)."""
    module = await ModuleService(db).get_module(module_id)
    content = Content(
        module_id=module.id,
        **data.model_dump(exclude={"content_type"}),
        content_type=ContentType(data.content_type),
    )
    db.add(content)
    await db.flush()
    return ok(content, "Content created successfully")

