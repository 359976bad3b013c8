import logging

from fastapi import APIRouter, Query, status
from sqlalchemy import select

from learnhub.core.database import DatabaseSession
from learnhub.core.deps import ActiveUser, AdminUser, AppSettings, Now
from learnhub.core.exceptions import AuthorizationError, NotFoundError
from learnhub.core.pagination import Pagination, paginate
from learnhub.models import Enrollment, Payment, User
from learnhub.models.enums import PaymentStatus
from learnhub.schemas import (
    ApiResponse,
    Page,
    PaymentCreate,
    PaymentResponse,
    PaymentStatusUpdate,
    ok,
)
from learnhub.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])


async def _get_owned_enrollment(db: DatabaseSession, enrollment_id: int, user: User) -> Enrollment:
    result = await db.execute(select(Enrollment).where(Enrollment.id == enrollment_id))
    enrollment = result.scalar_one_or_none()
    if not enrollment:
        raise NotFoundError("Enrollment", enrollment_id)
    if enrollment.user_id != user.id and not user.is_admin:
        raise AuthorizationError()
    return enrollment


@router.post("", response_model=ApiResponse[PaymentResponse], status_code=status.HTTP_201_CREATED)
async def create_payment(
    data: PaymentCreate,
    current_user: ActiveUser,
    db: DatabaseSession,
    now: Now,
):
    """Record a payment against an enrollment (owner or admin)."""
    enrollment = await _get_owned_enrollment(db, data.enrollment_id, current_user)

    # Only admins may record a settled payment directly
    payment_status = data.status if current_user.is_admin else PaymentStatus.PENDING

    payment = await PaymentService(db).record_payment(
        enrollment,
        amount=data.amount,
        currency=data.currency,
        payment_method=data.payment_method,
        transaction_id=data.transaction_id,
        status=payment_status,
        payment_date=data.payment_date or now,
        next_payment_date=data.next_payment_date,
    )
    return ok(payment, "Payment recorded successfully")


@router.get("", response_model=ApiResponse[Page[PaymentResponse]])
async def list_payments(
    admin: AdminUser,
    db: DatabaseSession,
    pagination: Pagination,
    user_id: int | None = None,
    enrollment_id: int | None = None,
    payment_status: PaymentStatus | None = None,
):
    """List payments (admin only)."""
    query = select(Payment)
    if user_id is not None:
        query = query.where(Payment.user_id == user_id)
    if enrollment_id is not None:
        query = query.where(Payment.enrollment_id == enrollment_id)
    if payment_status is not None:
        query = query.where(Payment.status == payment_status)

    query = query.order_by(Payment.payment_date.desc(), Payment.id.desc())
    return ok(await paginate(db, query, pagination))


@router.get("/me", response_model=ApiResponse[list[PaymentResponse]])
async def list_my_payments(current_user: ActiveUser, db: DatabaseSession):
    result = await db.execute(
        select(Payment)
        .where(Payment.user_id == current_user.id)
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
    )
    return ok(result.scalars().all())


@router.get("/due", response_model=ApiResponse[list[PaymentResponse]])
async def list_due_payments(
    current_user: ActiveUser,
    db: DatabaseSession,
    settings: AppSettings,
    now: Now,
    days: int | None = Query(None, ge=0, le=365),
):
    """Installments falling due soon. Admins see everyone's, learners their own."""
    days_ahead = days if days is not None else settings.payment_reminder_days_ahead
    user_id = None if current_user.is_admin else current_user.id
    payments = await PaymentService(db).get_due_payments(now, days_ahead, user_id=user_id)
    return ok(payments)


@router.get("/enrollment/{enrollment_id}", response_model=ApiResponse[list[PaymentResponse]])
async def list_enrollment_payments(
    enrollment_id: int, current_user: ActiveUser, db: DatabaseSession
):
    """Payment history of one enrollment (owner or admin)."""
    enrollment = await _get_owned_enrollment(db, enrollment_id, current_user)
    result = await db.execute(
        select(Payment)
        .where(Payment.enrollment_id == enrollment.id)
        .order_by(Payment.payment_date, Payment.id)
    )
    return ok(result.scalars().all())


@router.get("/{payment_id}", response_model=ApiResponse[PaymentResponse])
async def get_payment(payment_id: int, current_user: ActiveUser, db: DatabaseSession):
    payment = await PaymentService(db).get_payment(payment_id)
    if payment.user_id != current_user.id and not current_user.is_admin:
        raise AuthorizationError()
    return ok(payment)


@router.patch("/{payment_id}/status", response_model=ApiResponse[PaymentResponse])
async def update_payment_status(
    payment_id: int,
    data: PaymentStatusUpdate,
    admin: AdminUser,
    db: DatabaseSession,
):
    """Change a payment's status (admin only). Refunds end course access."""
    service = PaymentService(db)
    payment = await service.get_payment(payment_id)
    await service.update_status(payment, data.status, data.transaction_id)
    await db.flush()

    logger.info("Admin %s set payment %s to %s", admin.id, payment.id, payment.status.value)
    return ok(payment, "Payment status updated")
