from learnhub.schemas.base import (
    ApiResponse,
    BaseSchema,
    MessageResponse,
    Page,
    TimestampSchema,
    ok,
)
from learnhub.schemas.course import (
    ContentCreate,
    ContentResponse,
    ContentUpdate,
    CourseCreate,
    CourseDetailResponse,
    CourseInstructorRequest,
    CoursePublishRequest,
    CourseResponse,
    CourseSummary,
    CourseUpdate,
    ModuleCreate,
    ModuleDetailResponse,
    ModuleResponse,
    ModuleStandaloneUpdate,
    ModuleStatusUpdate,
    ModuleUpdate,
    ModuleWithUnlockResponse,
    QuizSummary,
)
from learnhub.schemas.enrollment import (
    EnrollmentCreate,
    EnrollmentDetailResponse,
    EnrollmentResponse,
    EnrollmentStatusUpdate,
    InitialPayment,
    PaymentCreate,
    PaymentResponse,
    PaymentStatusUpdate,
)
from learnhub.schemas.notification import (
    AnnouncementCreate,
    DispatchResult,
    NotificationResponse,
    UnreadCountResponse,
)
from learnhub.schemas.quiz import (
    AnswerSubmit,
    AttemptSubmit,
    QuizAnswerResponse,
    QuizAttemptDetailResponse,
    QuizAttemptResponse,
    QuizCreate,
    QuizDetailResponse,
    QuizPublicResponse,
    QuizQuestionCreate,
    QuizQuestionResponse,
    QuizQuestionUpdate,
    QuizResponse,
    QuizUpdate,
)
from learnhub.schemas.upload import (
    PresignedUploadRequest,
    PresignedUploadResponse,
    TranscodingJobResponse,
    UploadResponse,
    VideoUploadResponse,
)
from learnhub.schemas.user import (
    PasswordChangeRequest,
    TokenRefreshRequest,
    TokenResponse,
    UserAdminUpdate,
    UserCreate,
    UserLogin,
    UserRegister,
    UserResponse,
    UserStatusUpdate,
    UserSummary,
    UserUpdate,
)

__all__ = [
    # Base
    "ApiResponse",
    "BaseSchema",
    "MessageResponse",
    "Page",
    "TimestampSchema",
    "ok",
    # Course, module, content
    "ContentCreate",
    "ContentResponse",
    "ContentUpdate",
    "CourseCreate",
    "CourseDetailResponse",
    "CourseInstructorRequest",
    "CoursePublishRequest",
    "CourseResponse",
    "CourseSummary",
    "CourseUpdate",
    "ModuleCreate",
    "ModuleDetailResponse",
    "ModuleResponse",
    "ModuleStandaloneUpdate",
    "ModuleStatusUpdate",
    "ModuleUpdate",
    "ModuleWithUnlockResponse",
    "QuizSummary",
    # Enrollment, payment
    "EnrollmentCreate",
    "EnrollmentDetailResponse",
    "EnrollmentResponse",
    "EnrollmentStatusUpdate",
    "InitialPayment",
    "PaymentCreate",
    "PaymentResponse",
    "PaymentStatusUpdate",
    # Notification
    "AnnouncementCreate",
    "DispatchResult",
    "NotificationResponse",
    "UnreadCountResponse",
    # Quiz
    "AnswerSubmit",
    "AttemptSubmit",
    "QuizAnswerResponse",
    "QuizAttemptDetailResponse",
    "QuizAttemptResponse",
    "QuizCreate",
    "QuizDetailResponse",
    "QuizPublicResponse",
    "QuizQuestionCreate",
    "QuizQuestionResponse",
    "QuizQuestionUpdate",
    "QuizResponse",
    "QuizUpdate",
    # Upload
    "PresignedUploadRequest",
    "PresignedUploadResponse",
    "TranscodingJobResponse",
    "UploadResponse",
    "VideoUploadResponse",
    # User, auth
    "PasswordChangeRequest",
    "TokenRefreshRequest",
    "TokenResponse",
    "UserAdminUpdate",
    "UserCreate",
    "UserLogin",
    "UserRegister",
    "UserResponse",
    "UserStatusUpdate",
    "UserSummary",
    "UserUpdate",
]
