import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from learnhub.core.clock import ensure_utc
from learnhub.core.exceptions import NotFoundError, ValidationError
from learnhub.models import Enrollment, Payment
from learnhub.models.enums import PaymentStatus

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_payment(self, payment_id: int) -> Payment:
        result = await self.db.execute(select(Payment).where(Payment.id == payment_id))
        payment = result.scalar_one_or_none()
        if not payment:
            raise NotFoundError("Payment", payment_id)
        return payment

    async def record_payment(
        self,
        enrollment: Enrollment,
        amount: float,
        payment_method: str,
        status: PaymentStatus,
        payment_date: datetime,
        currency: str = "USD",
        transaction_id: str | None = None,
        next_payment_date: datetime | None = None,
    ) -> Payment:
        if next_payment_date is not None and ensure_utc(next_payment_date) <= ensure_utc(payment_date):
            raise ValidationError(
                "next_payment_date must be after the payment date", field="next_payment_date"
            )

        payment = Payment(
            user_id=enrollment.user_id,
            enrollment_id=enrollment.id,
            amount=amount,
            currency=currency.upper(),
            status=PaymentStatus(status),
            payment_method=payment_method,
            transaction_id=transaction_id,
            payment_date=payment_date,
            next_payment_date=next_payment_date,
        )
        self.db.add(payment)
        await self.db.flush()

        logger.info(
            "Recorded %s payment %s of %.2f %s for enrollment %s",
            payment.status.value,
            payment.id,
            amount,
            payment.currency,
            enrollment.id,
        )
        return payment

    async def update_status(
        self,
        payment: Payment,
        status: PaymentStatus,
        transaction_id: str | None = None,
    ) -> Payment:
        """
        Move a payment to a new status.

        A refund ends access: the enrollment is deactivated, which locks every
        module of the course. A failed payment does not change access.
        """
        status = PaymentStatus(status)
        if payment.status == PaymentStatus.REFUNDED and status != PaymentStatus.REFUNDED:
            raise ValidationError("A refunded payment cannot change status", field="status")

        payment.status = status
        if transaction_id is not None:
            payment.transaction_id = transaction_id

        if status == PaymentStatus.REFUNDED:
            result = await self.db.execute(
                select(Enrollment).where(Enrollment.id == payment.enrollment_id)
            )
            enrollment = result.scalar_one()
            if enrollment.is_active:
                enrollment.is_active = False
                logger.info(
                    "Enrollment %s deactivated after refund of payment %s",
                    enrollment.id,
                    payment.id,
                )

        return payment

    async def get_due_payments(
        self,
        now: datetime,
        days_ahead: int,
        user_id: int | None = None,
    ) -> list[Payment]:
        """
        Latest payment of each active enrollment whose next installment falls
        within `days_ahead` days from `now`.
        """
        latest = (
            select(Payment.enrollment_id, func.max(Payment.payment_date).label("latest_date"))
            .group_by(Payment.enrollment_id)
            .subquery()
        )
        query = (
            select(Payment)
            .join(
                latest,
                (Payment.enrollment_id == latest.c.enrollment_id)
                & (Payment.payment_date == latest.c.latest_date),
            )
            .join(Enrollment, Enrollment.id == Payment.enrollment_id)
            .options(selectinload(Payment.enrollment).selectinload(Enrollment.course))
            .where(
                Enrollment.is_active == True,  # noqa: E712
                Payment.next_payment_date.is_not(None),
                Payment.next_payment_date >= now,
                Payment.next_payment_date <= now + timedelta(days=days_ahead),
            )
            .order_by(Payment.next_payment_date)
        )
        if user_id is not None:
            query = query.where(Payment.user_id == user_id)

        result = await self.db.execute(query)
        return list(result.scalars().all())
