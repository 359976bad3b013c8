"""
Quiz grading.

Scores are whole percentages of earned over total points, rounded half up.
A submission must answer every question exactly once; anything else is
rejected before any grading happens.
"""

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from learnhub.core.exceptions import ValidationError


@dataclass(frozen=True)
class GradableQuestion:
    question_id: int
    correct_option_index: int
    points: int


@dataclass(frozen=True)
class GradableQuiz:
    passing_score: int
    questions: tuple[GradableQuestion, ...]

    @classmethod
    def from_quiz(cls, quiz) -> "GradableQuiz":
        return cls(
            passing_score=quiz.passing_score,
            questions=tuple(
                GradableQuestion(
                    question_id=q.id,
                    correct_option_index=q.correct_option_index,
                    points=q.points,
                )
                for q in quiz.questions
            ),
        )

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: int
    selected_option_index: int


@dataclass(frozen=True)
class QuestionResult:
    question_id: int
    selected_option_index: int
    is_correct: bool
    points_awarded: int


@dataclass(frozen=True)
class GradeResult:
    score: int
    passed: bool
    earned_points: int
    total_points: int
    per_question: list[QuestionResult]


def percentage_score(earned_points: int, total_points: int) -> int:
    """round_half_up(100 * earned / total) in integer arithmetic; 0 when total is 0."""
    if total_points <= 0:
        return 0
    return (200 * earned_points + total_points) // (2 * total_points)


def validate_submission(quiz: GradableQuiz, answers: Sequence[SubmittedAnswer]) -> None:
    """Raise ValidationError unless answers cover each question exactly once."""
    question_ids = [q.question_id for q in quiz.questions]
    known = set(question_ids)
    counts = Counter(a.question_id for a in answers)

    missing = [qid for qid in question_ids if qid not in counts]
    unknown = sorted(qid for qid in counts if qid not in known)
    duplicated = sorted(qid for qid, n in counts.items() if n > 1 and qid in known)

    if not (missing or unknown or duplicated):
        return

    problems = []
    if missing:
        problems.append("missing answers for questions " + ", ".join(map(str, missing)))
    if unknown:
        problems.append("unknown questions " + ", ".join(map(str, unknown)))
    if duplicated:
        problems.append("duplicate answers for questions " + ", ".join(map(str, duplicated)))

    raise ValidationError(
        "Invalid quiz submission: " + "; ".join(problems),
        errors={
            "missing_question_ids": missing,
            "unknown_question_ids": unknown,
            "duplicate_question_ids": duplicated,
        },
    )


def grade_attempt(quiz: GradableQuiz, answers: Sequence[SubmittedAnswer]) -> GradeResult:
    """Grade a complete submission. Deterministic for a given quiz and answers."""
    validate_submission(quiz, answers)

    selected = {a.question_id: a.selected_option_index for a in answers}

    per_question = []
    earned_points = 0
    for question in quiz.questions:
        choice = selected[question.question_id]
        is_correct = choice == question.correct_option_index
        awarded = question.points if is_correct else 0
        earned_points += awarded
        per_question.append(
            QuestionResult(
                question_id=question.question_id,
                selected_option_index=choice,
                is_correct=is_correct,
                points_awarded=awarded,
            )
        )

    total_points = quiz.total_points
    score = percentage_score(earned_points, total_points)

    return GradeResult(
        score=score,
        passed=score >= quiz.passing_score,
        earned_points=earned_points,
        total_points=total_points,
        per_question=per_question,
    )
