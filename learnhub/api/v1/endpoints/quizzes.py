import logging

from fastapi import APIRouter, status
from sqlalchemy import select

from learnhub.core.database import DatabaseSession
from learnhub.core.deps import ActiveUser, AdminUser, Now
from learnhub.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from learnhub.core.pagination import Pagination, paginate
from learnhub.models import Quiz, QuizAttempt, QuizQuestion
from learnhub.schemas import (
    ApiResponse,
    AttemptSubmit,
    Page,
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
    ok,
)
from learnhub.services.access_service import AccessService
from learnhub.services.course_service import ModuleService
from learnhub.services.quiz_service import QuizService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quizzes", tags=["Quizzes"])


# === Attempts (static paths first) ===


@router.get("/attempts/me", response_model=ApiResponse[Page[QuizAttemptResponse]])
async def list_my_attempts(
    current_user: ActiveUser,
    db: DatabaseSession,
    pagination: Pagination,
    quiz_id: int | None = None,
):
    """Current user's quiz attempts, newest first."""
    query = select(QuizAttempt).where(QuizAttempt.user_id == current_user.id)
    if quiz_id is not None:
        query = query.where(QuizAttempt.quiz_id == quiz_id)
    query = query.order_by(QuizAttempt.attempted_at.desc(), QuizAttempt.id.desc())
    return ok(await paginate(db, query, pagination))


@router.get("/attempts/{attempt_id}", response_model=ApiResponse[QuizAttemptDetailResponse])
async def get_attempt(attempt_id: int, current_user: ActiveUser, db: DatabaseSession):
    """A graded attempt with per-question results (owner or admin)."""
    attempt = await QuizService(db).get_attempt(attempt_id)
    if attempt.user_id != current_user.id and not current_user.is_admin:
        raise AuthorizationError()
    return ok(attempt)


# === Quizzes ===


@router.get("", response_model=ApiResponse[list[QuizResponse]])
async def list_module_quizzes(
    module_id: int, current_user: ActiveUser, db: DatabaseSession, now: Now
):
    """Quizzes of a module. Learners need the module unlocked."""
    module = await ModuleService(db).get_module(module_id)
    await AccessService(db).ensure_module_unlocked(current_user, module, now)

    result = await db.execute(
        select(Quiz)
        .where(Quiz.module_id == module.id, Quiz.is_deleted == False)  # noqa: E712
        .order_by(Quiz.id)
    )
    return ok(result.scalars().all())


@router.get("/{quiz_id}", response_model=ApiResponse[QuizPublicResponse])
async def get_quiz(quiz_id: int, current_user: ActiveUser, db: DatabaseSession, now: Now):
    """Quiz with its questions, without the answer key."""
    quiz = await QuizService(db).get_quiz(quiz_id, with_questions=True)
    await AccessService(db).ensure_module_unlocked(current_user, quiz.module, now)
    return ok(quiz)


@router.post("", response_model=ApiResponse[QuizDetailResponse], status_code=status.HTTP_201_CREATED)
async def create_quiz(data: QuizCreate, admin: AdminUser, db: DatabaseSession):
    """Create a quiz with its questions (admin only)."""
    module = await ModuleService(db).get_module(data.module_id)

    quiz = Quiz(
        module_id=module.id,
        **data.model_dump(exclude={"module_id", "questions"}),
        questions=[QuizQuestion(**q.model_dump()) for q in data.questions],
    )
    db.add(quiz)
    await db.flush()

    logger.info("Admin %s created quiz %s in module %s", admin.id, quiz.id, module.id)
    return ok(quiz, "Quiz created successfully")


@router.patch("/{quiz_id}", response_model=ApiResponse[QuizResponse])
async def update_quiz(quiz_id: int, data: QuizUpdate, admin: AdminUser, db: DatabaseSession):
    quiz = await QuizService(db).get_quiz(quiz_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(quiz, field, value)

    await db.flush()
    return ok(quiz, "Quiz updated successfully")


@router.delete("/{quiz_id}", response_model=ApiResponse[None])
async def delete_quiz(quiz_id: int, admin: AdminUser, db: DatabaseSession):
    """Soft delete a quiz. Past attempts are kept."""
    quiz = await QuizService(db).get_quiz(quiz_id)
    quiz.soft_delete()
    return ok(message="Quiz deleted successfully")


# === Questions ===


async def _get_question(db: DatabaseSession, quiz_id: int, question_id: int) -> QuizQuestion:
    result = await db.execute(
        select(QuizQuestion).where(QuizQuestion.id == question_id, QuizQuestion.quiz_id == quiz_id)
    )
    question = result.scalar_one_or_none()
    if not question:
        raise NotFoundError("Question", question_id)
    return question


@router.get("/{quiz_id}/questions", response_model=ApiResponse[list[QuizQuestionResponse]])
async def list_questions(quiz_id: int, admin: AdminUser, db: DatabaseSession):
    """Questions with their answer key (admin only)."""
    quiz = await QuizService(db).get_quiz(quiz_id, with_questions=True)
    return ok(quiz.questions)


@router.post(
    "/{quiz_id}/questions",
    response_model=ApiResponse[QuizQuestionResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_question(
    quiz_id: int, data: QuizQuestionCreate, admin: AdminUser, db: DatabaseSession
):
    quiz = await QuizService(db).get_quiz(quiz_id, with_questions=True)
    question = QuizQuestion(**data.model_dump())
    quiz.questions.append(question)
    await db.flush()
    return ok(question, "Question added successfully")


@router.patch("/{quiz_id}/questions/{question_id}", response_model=ApiResponse[QuizQuestionResponse])
async def update_question(
    quiz_id: int,
    question_id: int,
    data: QuizQuestionUpdate,
    admin: AdminUser,
    db: DatabaseSession,
):
    """Edit a question. Past attempts keep the result they were graded with."""
    question = await _get_question(db, quiz_id, question_id)
    update_data = {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field == "explanation"
    }

    options = update_data.get("options", question.options)
    correct = update_data.get("correct_option_index", question.correct_option_index)
    if correct >= len(options):
        raise ValidationError(
            "correct_option_index must point at one of the options",
            field="correct_option_index",
        )

    for field, value in update_data.items():
        setattr(question, field, value)

    await db.flush()
    return ok(question, "Question updated successfully")


@router.delete("/{quiz_id}/questions/{question_id}", response_model=ApiResponse[None])
async def delete_question(
    quiz_id: int, question_id: int, admin: AdminUser, db: DatabaseSession
):
    question = await _get_question(db, quiz_id, question_id)
    await db.delete(question)
    return ok(message="Question deleted successfully")


# === Submission ===


@router.post(
    "/{quiz_id}/attempt",
    response_model=ApiResponse[QuizAttemptDetailResponse],
    status_code=status.HTTP_201_CREATED,
)
async def submit_attempt(
    quiz_id: int,
    data: AttemptSubmit,
    current_user: ActiveUser,
    db: DatabaseSession,
    now: Now,
):
    """Grade a submission. Every question must be answered exactly once."""
    attempt = await QuizService(db).submit_attempt(current_user, quiz_id, data.answers, now)
    message = "Quiz passed" if attempt.passed else "Quiz not passed"
    return ok(attempt, message)


@router.get("/{quiz_id}/attempts", response_model=ApiResponse[Page[QuizAttemptResponse]])
async def list_quiz_attempts(
    quiz_id: int,
    admin: AdminUser,
    db: DatabaseSession,
    pagination: Pagination,
    user_id: int | None = None,
    passed: bool | None = None,
):
    """All attempts at a quiz (admin only)."""
    await QuizService(db).get_quiz(quiz_id)

    query = select(QuizAttempt).where(QuizAttempt.quiz_id == quiz_id)
    if user_id is not None:
        query = query.where(QuizAttempt.user_id == user_id)
    if passed is not None:
        query = query.where(QuizAttempt.passed == passed)

    query = query.order_by(QuizAttempt.attempted_at.desc(), QuizAttempt.id.desc())
    return ok(await paginate(db, query, pagination))
