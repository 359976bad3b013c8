import logging
from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from learnhub.core.clock import ensure_utc
from learnhub.core.config import Settings
from learnhub.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from learnhub.models import Course, Enrollment, User
from learnhub.models.enums import PaymentPlan, PaymentStatus
from learnhub.schemas import EnrollmentCreate
from learnhub.services.access_service import AccessService
from learnhub.services.notification_service import NotificationService
from learnhub.services.payment_service import PaymentService

logger = logging.getLogger(__name__)


class EnrollmentService:
    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def get_enrollment(self, enrollment_id: int) -> Enrollment:
        result = await self.db.execute(
            select(Enrollment)
            .options(selectinload(Enrollment.course), selectinload(Enrollment.payments))
            .where(Enrollment.id == enrollment_id)
        )
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise NotFoundError("Enrollment", enrollment_id)
        return enrollment

    async def _ensure_no_active_enrollment(
        self, user_id: int, course_id: int, now: datetime | None = None
    ) -> None:
        existing = await AccessService(self.db).get_active_enrollment(user_id, course_id)
        if existing and now is not None and ensure_utc(existing.expiry_date) < now:
            # Lapsed but not yet swept by expire_enrollments
            existing.is_active = False
            await self.db.flush()
            logger.info("Enrollment %s deactivated on re-enrollment after expiry", existing.id)
            return
        if existing:
            raise ConflictError(
                "User already has an active enrollment for this course",
                errors={"enrollment_id": existing.id},
            )

    async def enroll(
        self,
        user_id: int,
        data: EnrollmentCreate,
        now: datetime,
        privileged: bool = False,
    ) -> Enrollment:
        """
        Create an enrollment and record its first payment.

        Only privileged (admin) callers may choose the access period or the
        payment status. Other learners get a PENDING payment on the default
        access period. A full plan must cover the course price.
        """
        result = await self.db.execute(
            select(Course).where(Course.id == data.course_id, Course.is_deleted == False)  # noqa: E712
        )
        course = result.scalar_one_or_none()
        if not course:
            raise NotFoundError("Course", data.course_id)
        if not course.is_published:
            raise ValidationError("Course is not open for enrollment", field="course_id")

        result = await self.db.execute(select(User.id).where(User.id == user_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("User", user_id)

        if not privileged:
            if data.expiry_date is not None or data.access_days is not None:
                raise AuthorizationError("Only administrators can set the access period")
            if (
                data.payment_plan == PaymentPlan.FULL
                and course.price is not None
                and data.payment.amount < course.price
            ):
                raise ValidationError(
                    f"Payment must cover the course price of {course.price:.2f}",
                    errors={"field": "payment.amount", "price": course.price},
                )

        await self._ensure_no_active_enrollment(user_id, course.id, now)

        if data.expiry_date is not None:
            expiry_date = ensure_utc(data.expiry_date)
        else:
            days = data.access_days or self.settings.default_enrollment_days
            expiry_date = now + timedelta(days=days)
        if expiry_date <= now:
            raise ValidationError("expiry_date must be in the future", field="expiry_date")

        if privileged:
            payment_status = data.payment.status or PaymentStatus.COMPLETED
        else:
            payment_status = PaymentStatus.PENDING

        enrollment = Enrollment(
            user_id=user_id,
            course_id=course.id,
            enrollment_date=now,
            expiry_date=expiry_date,
            is_active=True,
            payment_plan=data.payment_plan,
        )
        self.db.add(enrollment)
        await self.db.flush()

        await PaymentService(self.db).record_payment(
            enrollment,
            amount=data.payment.amount,
            currency=data.payment.currency,
            payment_method=data.payment.payment_method,
            transaction_id=data.payment.transaction_id,
            status=payment_status,
            payment_date=now,
            next_payment_date=data.payment.next_payment_date,
        )
        await NotificationService(self.db).send_enrollment_confirmation(enrollment, course)

        logger.info("User %s enrolled in course %s (enrollment %s)", user_id, course.id, enrollment.id)
        return enrollment

    async def update_status(
        self,
        enrollment: Enrollment,
        is_active: bool,
        expiry_date: datetime | None = None,
    ) -> Enrollment:
        if is_active and not enrollment.is_active:
            await self._ensure_no_active_enrollment(enrollment.user_id, enrollment.course_id)

        enrollment.is_active = is_active
        if expiry_date is not None:
            enrollment.expiry_date = expiry_date
        return enrollment

    async def expire_enrollments(self, now: datetime) -> int:
        """Deactivate active enrollments whose expiry date has passed."""
        result = await self.db.execute(
            update(Enrollment)
            .where(Enrollment.is_active == True, Enrollment.expiry_date < now)  # noqa: E712
            .values(is_active=False)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("Deactivated %d expired enrollments", result.rowcount)
        return result.rowcount
