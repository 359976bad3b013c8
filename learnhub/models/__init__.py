from learnhub.models.base import Base, SoftDeleteMixin, TimestampMixin
from learnhub.models.enums import (
    ContentType,
    ModuleStatus,
    NotificationType,
    PaymentPlan,
    PaymentStatus,
    TranscodingStatus,
    UserRole,
    UserStatus,
)
from learnhub.models.user import RefreshToken, User
from learnhub.models.course import Content, Course, Module, course_instructors
from learnhub.models.quiz import Quiz, QuizAnswer, QuizAttempt, QuizQuestion
from learnhub.models.enrollment import Enrollment, Payment
from learnhub.models.notification import ModuleUnlockNotice, Notification
from learnhub.models.media import TranscodingJob

__all__ = [
    # Base
    "Base",
    "SoftDeleteMixin",
    "TimestampMixin",
    # Enums
    "ContentType",
    "ModuleStatus",
    "NotificationType",
    "PaymentPlan",
    "PaymentStatus",
    "TranscodingStatus",
    "UserRole",
    "UserStatus",
    # User models
    "RefreshToken",
    "User",
    # Course models
    "Content",
    "Course",
    "Module",
    "course_instructors",
    # Quiz models
    "Quiz",
    "QuizAnswer",
    "QuizAttempt",
    "QuizQuestion",
    # Enrollment models
    "Enrollment",
    "Payment",
    # Notification models
    "ModuleUnlockNotice",
    "Notification",
    # Media models
    "TranscodingJob",
]
