from datetime import datetime

from pydantic import Field, model_validator

from learnhub.schemas.base import BaseSchema, TimestampSchema


# === Question Schemas ===


class QuizQuestionBase(BaseSchema):
    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=2)
    correct_option_index: int = Field(ge=0)
    explanation: str | None = None
    points: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def check_correct_option(self):
        if self.correct_option_index >= len(self.options):
            raise ValueError("correct_option_index must point at one of the options")
        return self


class QuizQuestionCreate(QuizQuestionBase):
    pass


class QuizQuestionUpdate(BaseSchema):
    question: str | None = Field(default=None, min_length=1)
    options: list[str] | None = Field(default=None, min_length=2)
    correct_option_index: int | None = Field(default=None, ge=0)
    explanation: str | None = None
    points: int | None = Field(default=None, ge=0)


class QuizQuestionResponse(QuizQuestionBase, TimestampSchema):
    id: int
    quiz_id: int


class QuizQuestionPublic(BaseSchema):
    """Question as shown to learners (no answer key)."""

    id: int
    question: str
    options: list[str]
    points: int


# === Quiz Schemas ===


class QuizBase(BaseSchema):
    title: str = Field(min_length=3, max_length=255)
    description: str | None = None
    passing_score: int = Field(ge=0, le=100)
    time_limit_minutes: int | None = Field(default=None, gt=0)


class QuizCreate(QuizBase):
    module_id: int
    questions: list[QuizQuestionCreate] = []


class QuizUpdate(BaseSchema):
    title: str | None = Field(default=None, min_length=3, max_length=255)
    description: str | None = None
    passing_score: int | None = Field(default=None, ge=0, le=100)
    time_limit_minutes: int | None = Field(default=None, gt=0)


class QuizResponse(QuizBase, TimestampSchema):
    id: int
    module_id: int


class QuizDetailResponse(QuizResponse):
    questions: list[QuizQuestionResponse] = []


class QuizPublicResponse(QuizResponse):
    questions: list[QuizQuestionPublic] = []


# === Attempt Schemas ===


class AnswerSubmit(BaseSchema):
    question_id: int
    selected_option_index: int = Field(ge=0)


class AttemptSubmit(BaseSchema):
    answers: list[AnswerSubmit]


class QuizAnswerResponse(BaseSchema):
    id: int
    question_id: int | None = None
    original_question_id: int
    selected_option_index: int
    is_correct: bool
    points_awarded: int


class QuizAttemptResponse(BaseSchema):
    id: int
    user_id: int
    quiz_id: int
    score: int
    passed: bool
    earned_points: int
    total_points: int
    passing_score: int
    attempted_at: datetime


class QuizAttemptDetailResponse(QuizAttemptResponse):
    answers: list[QuizAnswerResponse] = []
