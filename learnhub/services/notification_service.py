"""
DB-backed notifications.

Besides one-off messages this holds the two sweeps run by the scheduler:
one-time "module unlocked" notices and installment reminders.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from learnhub.core.exceptions import NotFoundError
from learnhub.models import (
    Course,
    Enrollment,
    Module,
    ModuleUnlockNotice,
    Notification,
    Quiz,
    QuizAttempt,
    User,
)
from learnhub.models.enums import ModuleStatus, NotificationType, UserStatus
from learnhub.services.payment_service import PaymentService
from learnhub.services.unlock_service import (
    EnrollmentWindow,
    ModuleSchedule,
    compute_unlocked_modules,
)

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def send(
        self,
        user_id: int,
        type: NotificationType,
        title: str,
        message: str,
        link_url: str | None = None,
        created_at: datetime | None = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=NotificationType(type),
            title=title,
            message=message,
            link_url=link_url,
        )
        if created_at is not None:
            notification.created_at = created_at
        self.db.add(notification)
        return notification

    async def list_for_user(
        self, user_id: int, unread_only: bool = False, limit: int = 50
    ) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.is_read == False)  # noqa: E712
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def unread_count(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
        )
        return result.scalar() or 0

    async def mark_as_read(self, notification_id: int, user_id: int, now: datetime) -> Notification:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification", notification_id)

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = now
        return notification

    async def mark_all_as_read(self, user_id: int, now: datetime) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read == False)  # noqa: E712
            .values(is_read=True, read_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def send_announcement(
        self, title: str, message: str, link_url: str | None = None
    ) -> int:
        """Notify every active user. Returns the number of notifications created."""
        result = await self.db.execute(select(User.id).where(User.status == UserStatus.ACTIVE))
        user_ids = result.scalars().all()

        for user_id in user_ids:
            await self.send(user_id, NotificationType.ANNOUNCEMENT, title, message, link_url)

        logger.info("Announcement %r sent to %d users", title, len(user_ids))
        return len(user_ids)

    async def send_enrollment_confirmation(self, enrollment: Enrollment, course: Course) -> None:
        await self.send(
            enrollment.user_id,
            NotificationType.ENROLLMENT,
            "Enrollment Confirmed",
            f'You are now enrolled in "{course.title}".',
            f"/courses/{course.id}",
        )

    async def send_quiz_result(self, user_id: int, quiz: Quiz, attempt: QuizAttempt) -> None:
        outcome = "passed" if attempt.passed else "did not pass"
        await self.send(
            user_id,
            NotificationType.QUIZ_RESULT,
            "Quiz Result",
            f'You scored {attempt.score}% on "{quiz.title}" and {outcome}.',
            f"/quizzes/{quiz.id}/attempts/{attempt.id}",
        )

    async def send_module_unlock(self, user_id: int, module: Module, course: Course) -> None:
        await self.send(
            user_id,
            NotificationType.CONTENT_UNLOCK,
            "New Module Unlocked",
            f'The module "{module.title}" in course "{course.title}" is now available.',
            f"/courses/{course.id}/modules/{module.id}",
        )

    async def sweep_module_unlocks(self, now: datetime) -> int:
        """
        Notify learners about modules that have unlocked since the last sweep.

        Each (user, module) pair is notified at most once; the notice table
        remembers who has been told.
        """
        result = await self.db.execute(
            select(Enrollment)
            .join(User, User.id == Enrollment.user_id)
            .options(
                selectinload(Enrollment.course).selectinload(Course.modules),
            )
            .where(
                Enrollment.is_active == True,  # noqa: E712
                User.status == UserStatus.ACTIVE,
            )
        )
        enrollments = result.scalars().all()
        if not enrollments:
            return 0

        notices = await self.db.execute(
            select(ModuleUnlockNotice.user_id, ModuleUnlockNotice.module_id).where(
                ModuleUnlockNotice.user_id.in_({e.user_id for e in enrollments})
            )
        )
        already_notified = {(row.user_id, row.module_id) for row in notices}

        sent = 0
        for enrollment in enrollments:
            course = enrollment.course
            if course.is_deleted:
                continue

            modules = {
                m.id: m
                for m in course.modules
                if not m.is_deleted and m.status == ModuleStatus.ACTIVE
            }
            states = compute_unlocked_modules(
                EnrollmentWindow.from_enrollment(enrollment),
                [ModuleSchedule.from_module(m) for m in modules.values()],
                now,
            )
            for state in states:
                key = (enrollment.user_id, state.module.module_id)
                if not state.is_unlocked or key in already_notified:
                    continue

                module = modules[state.module.module_id]
                await self.send_module_unlock(enrollment.user_id, module, course)
                self.db.add(
                    ModuleUnlockNotice(
                        user_id=enrollment.user_id, module_id=module.id, notified_at=now
                    )
                )
                already_notified.add(key)
                sent += 1

        if sent:
            logger.info("Dispatched %d module unlock notifications", sent)
        return sent

    async def send_module_unlock_to_enrolled(self, module: Module, course: Course) -> int:
        """Tell every actively enrolled learner about a module, regardless of schedule."""
        result = await self.db.execute(
            select(Enrollment.user_id).where(
                Enrollment.course_id == course.id,
                Enrollment.is_active == True,  # noqa: E712
            )
        )
        user_ids = result.scalars().all()
        for user_id in user_ids:
            await self.send_module_unlock(user_id, module, course)
        return len(user_ids)

    async def send_payment_reminders(self, now: datetime, days_ahead: int) -> int:
        """Remind users of installments due within `days_ahead` days, once per day."""
        due = await PaymentService(self.db).get_due_payments(now, days_ahead)

        sent = 0
        for payment in due:
            link_url = f"/payments/enrollment/{payment.enrollment_id}"
            recent = await self.db.execute(
                select(func.count())
                .select_from(Notification)
                .where(
                    Notification.user_id == payment.user_id,
                    Notification.type == NotificationType.PAYMENT_REMINDER,
                    Notification.link_url == link_url,
                    Notification.created_at >= now - timedelta(days=1),
                )
            )
            if recent.scalar():
                continue

            course = payment.enrollment.course
            due_date = payment.next_payment_date
            await self.send(
                payment.user_id,
                NotificationType.PAYMENT_REMINDER,
                "Payment Reminder",
                f'Your payment of {payment.amount:,.2f} {payment.currency} for "{course.title}" '
                f"is due on {due_date:%B %d, %Y}.",
                link_url,
                created_at=now,
            )
            sent += 1

        if sent:
            logger.info("Sent %d payment reminders", sent)
        return sent
