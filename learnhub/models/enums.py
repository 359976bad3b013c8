from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"


class UserStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    INACTIVE = "inactive"


class ModuleStatus(str, Enum):
    """Only ACTIVE modules can ever unlock for a learner."""

    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class ContentType(str, Enum):
    VIDEO = "video"
    ARTICLE = "article"
    DOCUMENT = "document"


class PaymentPlan(str, Enum):
    FULL = "full"
    INSTALLMENT = "installment"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class NotificationType(str, Enum):
    CONTENT_UNLOCK = "content_unlock"
    PAYMENT_REMINDER = "payment_reminder"
    ANNOUNCEMENT = "announcement"
    ENROLLMENT = "enrollment"
    QUIZ_RESULT = "quiz_result"


class TranscodingStatus(str, Enum):
    SUBMITTED = "submitted"
    PROGRESSING = "progressing"
    COMPLETE = "complete"
    ERROR = "error"
    CANCELED = "canceled"
