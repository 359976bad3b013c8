from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnhub.models.base import Base, TimestampMixin
from learnhub.models.enums import PaymentPlan, PaymentStatus

if TYPE_CHECKING:
    from learnhub.models.course import Course
    from learnhub.models.user import User


class Enrollment(Base, TimestampMixin):
    """
    A user's access window to a course.

    At most one active enrollment may exist per (user, course); the partial
    unique index enforces it at the database level.
    """

    __tablename__ = "enrollments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )

    enrollment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    payment_plan: Mapped[PaymentPlan] = mapped_column(Enum(PaymentPlan), nullable=False)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="enrollments")
    course: Mapped["Course"] = relationship("Course", back_populates="enrollments")
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="enrollment",
        cascade="all, delete-orphan",
        order_by="Payment.payment_date",
    )

    __table_args__ = (
        Index(
            "uq_active_enrollment_user_course",
            "user_id",
            "course_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    enrollment_id: Mapped[int] = mapped_column(
        ForeignKey("enrollments.id", ondelete="CASCADE"), nullable=False, index=True
    )

    amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    transaction_id: Mapped[str | None] = mapped_column(String(255), index=True)

    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Set for installment plans
    next_payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    enrollment: Mapped["Enrollment"] = relationship("Enrollment", back_populates="payments")
