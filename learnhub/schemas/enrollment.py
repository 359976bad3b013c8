from datetime import datetime

from pydantic import Field, model_validator

from learnhub.models.enums import PaymentPlan, PaymentStatus
from learnhub.schemas.base import BaseSchema, TimestampSchema
from learnhub.schemas.course import CourseSummary


# === Payment Schemas ===


class PaymentBase(BaseSchema):
    amount: float = Field(gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    payment_method: str = Field(min_length=1, max_length=50)
    transaction_id: str | None = Field(default=None, max_length=255)
    next_payment_date: datetime | None = None


class InitialPayment(PaymentBase):
    # Admin only; learner payments always start PENDING
    status: PaymentStatus | None = None


class PaymentCreate(PaymentBase):
    enrollment_id: int
    status: PaymentStatus = PaymentStatus.PENDING
    payment_date: datetime | None = None


class PaymentStatusUpdate(BaseSchema):
    status: PaymentStatus
    transaction_id: str | None = Field(default=None, max_length=255)


class PaymentResponse(PaymentBase, TimestampSchema):
    id: int
    user_id: int
    enrollment_id: int
    status: PaymentStatus
    payment_date: datetime


# === Enrollment Schemas ===


class EnrollmentCreate(BaseSchema):
    course_id: int
    payment_plan: PaymentPlan
    # Admins may set the access period or enroll someone else
    expiry_date: datetime | None = None
    access_days: int | None = Field(default=None, gt=0)
    user_id: int | None = None
    payment: InitialPayment

    @model_validator(mode="after")
    def check_installment(self) -> "EnrollmentCreate":
        if self.payment_plan == PaymentPlan.INSTALLMENT and self.payment.next_payment_date is None:
            raise ValueError("Installment plans require next_payment_date on the payment")
        return self


class EnrollmentStatusUpdate(BaseSchema):
    is_active: bool
    expiry_date: datetime | None = None


class EnrollmentResponse(TimestampSchema):
    id: int
    user_id: int
    course_id: int
    enrollment_date: datetime
    expiry_date: datetime
    is_active: bool
    payment_plan: PaymentPlan


class EnrollmentDetailResponse(EnrollmentResponse):
    course: CourseSummary
    payments: list[PaymentResponse] = []
