from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy import select

from learnhub.core.database import DatabaseSession
from learnhub.core.deps import ActiveUser, AdminUser, AppSettings, Now
from learnhub.core.exceptions import AuthorizationError
from learnhub.core.pagination import Pagination, paginate
from learnhub.models import Enrollment
from learnhub.schemas import (
    ApiResponse,
    EnrollmentCreate,
    EnrollmentDetailResponse,
    EnrollmentResponse,
    EnrollmentStatusUpdate,
    Page,
    ok,
)
from learnhub.services.enrollment_service import EnrollmentService

router = APIRouter(prefix="/enrollments", tags=["Enrollments"])


def get_enrollment_service(db: DatabaseSession, settings: AppSettings) -> EnrollmentService:
    return EnrollmentService(db, settings)


EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]


@router.post("", response_model=ApiResponse[EnrollmentResponse], status_code=status.HTTP_201_CREATED)
async def create_enrollment(
    data: EnrollmentCreate,
    current_user: ActiveUser,
    service: EnrollmentServiceDep,
    now: Now,
):
    """
    Enroll in a published course and record the first payment.

    Learners get the default access period and a pending payment; admins may
    set both and enroll other users.
    """
    user_id = data.user_id if data.user_id is not None else current_user.id
    if user_id != current_user.id and not current_user.is_admin:
        raise AuthorizationError("Cannot enroll another user")

    enrollment = await service.enroll(user_id, data, now, privileged=current_user.is_admin)
    return ok(enrollment, "Enrollment created successfully")


@router.get("", response_model=ApiResponse[Page[EnrollmentResponse]])
async def list_enrollments(
    admin: AdminUser,
    db: DatabaseSession,
    pagination: Pagination,
    user_id: int | None = None,
    course_id: int | None = None,
    is_active: bool | None = None,
):
    """List enrollments (admin only)."""
    query = select(Enrollment)
    if user_id is not None:
        query = query.where(Enrollment.user_id == user_id)
    if course_id is not None:
        query = query.where(Enrollment.course_id == course_id)
    if is_active is not None:
        query = query.where(Enrollment.is_active == is_active)

    query = query.order_by(Enrollment.enrollment_date.desc(), Enrollment.id.desc())
    return ok(await paginate(db, query, pagination))


@router.get("/me", response_model=ApiResponse[list[EnrollmentResponse]])
async def list_my_enrollments(current_user: ActiveUser, db: DatabaseSession):
    result = await db.execute(
        select(Enrollment)
        .where(Enrollment.user_id == current_user.id)
        .order_by(Enrollment.enrollment_date.desc(), Enrollment.id.desc())
    )
    return ok(result.scalars().all())


@router.get("/course/{course_id}", response_model=ApiResponse[Page[EnrollmentResponse]])
async def list_course_enrollments(
    course_id: int,
    admin: AdminUser,
    db: DatabaseSession,
    pagination: Pagination,
):
    """Enrollments of one course (admin only)."""
    query = (
        select(Enrollment)
        .where(Enrollment.course_id == course_id)
        .order_by(Enrollment.enrollment_date.desc(), Enrollment.id.desc())
    )
    return ok(await paginate(db, query, pagination))


@router.get("/{enrollment_id}", response_model=ApiResponse[EnrollmentDetailResponse])
async def get_enrollment(
    enrollment_id: int, current_user: ActiveUser, service: EnrollmentServiceDep
):
    """Enrollment with its course and payments (owner or admin)."""
    enrollment = await service.get_enrollment(enrollment_id)
    if enrollment.user_id != current_user.id and not current_user.is_admin:
        raise AuthorizationError()
    return ok(enrollment)


@router.patch("/{enrollment_id}/status", response_model=ApiResponse[EnrollmentResponse])
async def update_enrollment_status(
    enrollment_id: int,
    data: EnrollmentStatusUpdate,
    admin: AdminUser,
    service: EnrollmentServiceDep,
    db: DatabaseSession,
):
    """Activate or deactivate an enrollment (admin only)."""
    enrollment = await service.get_enrollment(enrollment_id)
    await service.update_status(enrollment, data.is_active, data.expiry_date)
    await db.flush()
    return ok(enrollment, "Enrollment status updated")
