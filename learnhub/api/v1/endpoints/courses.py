import logging
from typing import Annotated

from fastapi import APIRouter, File, UploadFile, status
from sqlalchemy import or_, select
from starlette.concurrency import run_in_threadpool

from learnhub.core.database import DatabaseSession
from learnhub.core.deps import ActiveUser, AdminUser, AppSettings, Now
from learnhub.core.pagination import Pagination, paginate
from learnhub.models import Course
from learnhub.schemas import (
    ApiResponse,
    CourseCreate,
    CourseDetailResponse,
    CourseInstructorRequest,
    CoursePublishRequest,
    CourseResponse,
    CourseUpdate,
    ModuleResponse,
    ModuleWithUnlockResponse,
    Page,
    UserSummary,
    ok,
)
from learnhub.services.access_service import AccessService
from learnhub.services.course_service import CourseService
from learnhub.services.storage_service import Storage, read_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["Courses"])


async def _course_detail(service: CourseService, course: Course) -> dict:
    data = CourseResponse.model_validate(course).model_dump()
    data["instructors"] = [UserSummary.model_validate(u).model_dump() for u in course.instructors]
    data["module_count"] = await service.count_modules(course.id)
    return data


@router.get("", response_model=ApiResponse[Page[CourseResponse]])
async def list_courses(
    current_user: ActiveUser,
    db: DatabaseSession,
    pagination: Pagination,
    search: str | None = None,
    is_published: bool | None = None,
):
    """List courses. Learners only see published courses."""
    query = select(Course).where(Course.is_deleted == False)  # noqa: E712

    if not current_user.is_admin:
        query = query.where(Course.is_published == True)  # noqa: E712
    elif is_published is not None:
        query = query.where(Course.is_published == is_published)

    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Course.title.ilike(pattern), Course.description.ilike(pattern)))

    query = query.order_by(Course.created_at.desc(), Course.id.desc())
    return ok(await paginate(db, query, pagination))


@router.get("/{course_id}", response_model=ApiResponse[CourseDetailResponse])
async def get_course(course_id: int, current_user: ActiveUser, db: DatabaseSession):
    service = CourseService(db)
    course = await service.get_course(course_id, current_user)
    return ok(await _course_detail(service, course))


@router.get("/{course_id}/modules", response_model=ApiResponse[list[ModuleWithUnlockResponse]])
async def list_course_modules(
    course_id: int,
    current_user: ActiveUser,
    db: DatabaseSession,
    now: Now,
):
    """Modules of a course in order, each with the caller's unlock state."""
    await CourseService(db).get_course(course_id, current_user)

    items = []
    for access in await AccessService(db).module_access(current_user, course_id, now):
        data = ModuleResponse.model_validate(access.module).model_dump()
        data["unlocked_at"] = access.unlocked_at
        data["is_unlocked"] = access.is_unlocked
        items.append(data)
    return ok(items)


@router.post("", response_model=ApiResponse[CourseDetailResponse], status_code=status.HTTP_201_CREATED)
async def create_course(data: CourseCreate, admin: AdminUser, db: DatabaseSession):
    """Create a course (admin only). Courses start unpublished."""
    service = CourseService(db)
    course = Course(**data.model_dump(exclude={"instructor_ids"}))
    course.instructors = []
    if data.instructor_ids:
        await service.set_instructors(course, data.instructor_ids)
    db.add(course)
    await db.flush()

    logger.info("Admin %s created course %s", admin.id, course.id)
    return ok(await _course_detail(service, course), "Course created successfully")


@router.patch("/{course_id}", response_model=ApiResponse[CourseDetailResponse])
async def update_course(course_id: int, data: CourseUpdate, admin: AdminUser, db: DatabaseSession):
    service = CourseService(db)
    course = await service.get_course(course_id, admin)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(course, field, value)

    await db.flush()
    return ok(await _course_detail(service, course), "Course updated successfully")


@router.patch("/{course_id}/publish", response_model=ApiResponse[CourseDetailResponse])
async def publish_course(
    course_id: int, data: CoursePublishRequest, admin: AdminUser, db: DatabaseSession
):
    """Publish or unpublish a course (admin only)."""
    service = CourseService(db)
    course = await service.get_course(course_id, admin)
    await service.set_published(course, data.is_published)
    await db.flush()
    return ok(await _course_detail(service, course), "Course publish state updated")


@router.put("/{course_id}/instructors", response_model=ApiResponse[CourseDetailResponse])
async def set_course_instructors(
    course_id: int, data: CourseInstructorRequest, admin: AdminUser, db: DatabaseSession
):
    """Replace the instructor list of a course (admin only)."""
    service = CourseService(db)
    course = await service.get_course(course_id, admin)
    await service.set_instructors(course, data.instructor_ids)
    await db.flush()
    return ok(await _course_detail(service, course), "Instructors updated")


@router.delete("/{course_id}", response_model=ApiResponse[None])
async def delete_course(course_id: int, admin: AdminUser, db: DatabaseSession):
    """Soft delete a course (admin only)."""
    course = await CourseService(db).get_course(course_id, admin)
    course.soft_delete()
    course.is_published = False
    logger.info("Admin %s deleted course %s", admin.id, course.id)
    return ok(message="Course deleted successfully")


@router.post("/{course_id}/thumbnail", response_model=ApiResponse[CourseDetailResponse])
async def upload_course_thumbnail(
    course_id: int,
    file: Annotated[UploadFile, File()],
    admin: AdminUser,
    db: DatabaseSession,
    storage: Storage,
    settings: AppSettings,
):
    """Upload a course thumbnail image to S3 (admin only)."""
    service = CourseService(db)
    course = await service.get_course(course_id, admin)

    content = await read_upload(file, settings.allowed_image_types_list, settings.max_image_size_mb)
    _, url = await run_in_threadpool(
        storage.upload_file,
        content,
        file.filename or "thumbnail",
        f"courses/{course.id}/thumbnails",
        file.content_type,
    )

    course.thumbnail_url = url
    await db.flush()
    return ok(await _course_detail(service, course), "Thumbnail uploaded successfully")
