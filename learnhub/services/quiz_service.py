import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from learnhub.core.exceptions import NotFoundError
from learnhub.models import Quiz, QuizAnswer, QuizAttempt, User
from learnhub.schemas import AnswerSubmit
from learnhub.services.access_service import AccessService
from learnhub.services.grading_service import GradableQuiz, SubmittedAnswer, grade_attempt
from learnhub.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class QuizService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_quiz(self, quiz_id: int, with_questions: bool = False) -> Quiz:
        query = select(Quiz).where(Quiz.id == quiz_id, Quiz.is_deleted == False)  # noqa: E712
        if with_questions:
            query = query.options(selectinload(Quiz.questions), selectinload(Quiz.module))
        result = await self.db.execute(query)
        quiz = result.scalar_one_or_none()
        if not quiz:
            raise NotFoundError("Quiz", quiz_id)
        return quiz

    async def submit_attempt(
        self,
        user: User,
        quiz_id: int,
        answers: Sequence[AnswerSubmit],
        now: datetime,
    ) -> QuizAttempt:
        """
        Grade a submission and store it as an immutable attempt.

        Grading runs before anything is written, so a rejected submission
        leaves no attempt behind.
        """
        quiz = await self.get_quiz(quiz_id, with_questions=True)

        # Quizzes are only open once their module has unlocked
        await AccessService(self.db).ensure_module_unlocked(user, quiz.module, now)

        result = grade_attempt(
            GradableQuiz.from_quiz(quiz),
            [SubmittedAnswer(a.question_id, a.selected_option_index) for a in answers],
        )

        attempt = QuizAttempt(
            user_id=user.id,
            quiz_id=quiz.id,
            score=result.score,
            passed=result.passed,
            earned_points=result.earned_points,
            total_points=result.total_points,
            passing_score=quiz.passing_score,
            attempted_at=now,
            answers=[
                QuizAnswer(
                    question_id=item.question_id,
                    original_question_id=item.question_id,
                    selected_option_index=item.selected_option_index,
                    is_correct=item.is_correct,
                    points_awarded=item.points_awarded,
                )
                for item in result.per_question
            ],
        )
        self.db.add(attempt)
        await self.db.flush()

        await NotificationService(self.db).send_quiz_result(user.id, quiz, attempt)

        logger.info(
            "User %s attempted quiz %s: score=%d passed=%s",
            user.id,
            quiz.id,
            attempt.score,
            attempt.passed,
        )
        return attempt

    async def get_attempt(self, attempt_id: int) -> QuizAttempt:
        result = await self.db.execute(
            select(QuizAttempt)
            .options(selectinload(QuizAttempt.answers))
            .where(QuizAttempt.id == attempt_id)
        )
        attempt = result.scalar_one_or_none()
        if not attempt:
            raise NotFoundError("Quiz attempt", attempt_id)
        return attempt
