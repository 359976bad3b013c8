from datetime import datetime

from pydantic import Field, model_validator

from learnhub.models.enums import ContentType, ModuleStatus
from learnhub.schemas.base import BaseSchema, TimestampSchema
from learnhub.schemas.user import UserSummary


# === Course Schemas ===


class CourseBase(BaseSchema):
    title: str = Field(min_length=3, max_length=255)
    description: str = Field(min_length=10)
    thumbnail_url: str | None = Field(default=None, max_length=500)
    tags: list[str] | None = None
    price: float | None = Field(default=None, ge=0)


class CourseCreate(CourseBase):
    instructor_ids: list[int] | None = None


class CourseUpdate(BaseSchema):
    title: str | None = Field(default=None, min_length=3, max_length=255)
    description: str | None = Field(default=None, min_length=10)
    thumbnail_url: str | None = Field(default=None, max_length=500)
    tags: list[str] | None = None
    price: float | None = Field(default=None, ge=0)


class CoursePublishRequest(BaseSchema):
    is_published: bool


class CourseInstructorRequest(BaseSchema):
    instructor_ids: list[int]


class CourseResponse(CourseBase, TimestampSchema):
    id: int
    is_published: bool


class CourseSummary(BaseSchema):
    id: int
    title: str


class CourseDetailResponse(CourseResponse):
    instructors: list[UserSummary] = []
    module_count: int = 0


# === Module Schemas ===


class ModuleBase(BaseSchema):
    title: str = Field(min_length=3, max_length=255)
    description: str | None = None
    thumbnail_url: str | None = Field(default=None, max_length=500)
    # Negative offsets are rejected here so unlock evaluation never sees them
    duration_in_days: int = Field(ge=0)
    order: int = Field(default=0, ge=0)
    is_standalone: bool = False
    price: float | None = Field(default=None, ge=0)


class ModuleCreate(ModuleBase):
    course_id: int
    status: ModuleStatus = ModuleStatus.DRAFT

    @model_validator(mode="after")
    def check_standalone_price(self) -> "ModuleCreate":
        if self.is_standalone and self.price is None:
            raise ValueError("Price is required for standalone modules")
        return self


class ModuleUpdate(BaseSchema):
    title: str | None = Field(default=None, min_length=3, max_length=255)
    description: str | None = None
    thumbnail_url: str | None = Field(default=None, max_length=500)
    duration_in_days: int | None = Field(default=None, ge=0)
    order: int | None = Field(default=None, ge=0)
    is_standalone: bool | None = None
    price: float | None = Field(default=None, ge=0)


class ModuleStatusUpdate(BaseSchema):
    status: ModuleStatus


class ModuleStandaloneUpdate(BaseSchema):
    is_standalone: bool
    price: float | None = Field(default=None, ge=0)


class ModuleResponse(ModuleBase, TimestampSchema):
    id: int
    course_id: int
    status: ModuleStatus


class ModuleWithUnlockResponse(ModuleResponse):
    """Module annotated with the caller's unlock state."""

    unlocked_at: datetime | None = None
    is_unlocked: bool = False


# === Content Schemas ===


class ContentBase(BaseSchema):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    content_type: ContentType
    body: str | None = None
    url: str | None = Field(default=None, max_length=500)
    file_key: str | None = Field(default=None, max_length=500)
    duration_seconds: int | None = Field(default=None, ge=0)
    order: int = Field(default=0, ge=0)


class ContentCreate(ContentBase):
    @model_validator(mode="after")
    def check_payload(self) -> "ContentCreate":
        if self.content_type == ContentType.ARTICLE and not self.body:
            raise ValueError("Article content requires a body")
        if self.content_type != ContentType.ARTICLE and not (self.url or self.file_key):
            raise ValueError("Video and document content require a url or file_key")
        return self


class ContentUpdate(BaseSchema):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    body: str | None = None
    url: str | None = Field(default=None, max_length=500)
    file_key: str | None = Field(default=None, max_length=500)
    duration_seconds: int | None = Field(default=None, ge=0)
    order: int | None = Field(default=None, ge=0)


class ContentResponse(ContentBase, TimestampSchema):
    id: int
    module_id: int


class QuizSummary(BaseSchema):
    id: int
    title: str
    passing_score: int
    time_limit_minutes: int | None = None


class ModuleDetailResponse(ModuleResponse):
    course: CourseSummary
    contents: list[ContentResponse] = []
    quizzes: list[QuizSummary] = []
