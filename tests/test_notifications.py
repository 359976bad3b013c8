"""
Tests for notifications and the scheduled notification sweeps.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from learnhub.core.clock import ensure_utc
from learnhub.models import ModuleUnlockNotice, Notification
from learnhub.models.enums import NotificationType, PaymentPlan, UserStatus
from learnhub.services.notification_service import NotificationService
from tests.conftest import API, auth_headers, create_enrollment


async def count_notifications(db_session, type: NotificationType) -> int:
    result = await db_session.execute(
        select(func.count()).select_from(Notification).where(Notification.type == type)
    )
    return result.scalar()


class TestUnlockSweep:
    """Module unlock notifications are sent once per learner and module."""

    @pytest.mark.asyncio
    async def test_sweep_notifies_unlocked_modules_once(
        self, client: AsyncClient, admin_token, test_enrollment, db_session
    ):
        response = await client.post(
            f"{API}/notifications/unlock-sweep", headers=auth_headers(admin_token)
        )

        assert response.status_code == 200
        assert response.json()["data"]["count"] == 2

        response = await client.post(
            f"{API}/notifications/unlock-sweep", headers=auth_headers(admin_token)
        )
        assert response.json()["data"]["count"] == 0

        assert await count_notifications(db_session, NotificationType.CONTENT_UNLOCK) == 2
        notices = await db_session.execute(select(func.count()).select_from(ModuleUnlockNotice))
        assert notices.scalar() == 2

    @pytest.mark.asyncio
    async def test_sweep_picks_up_newly_unlocked_module(
        self, db_session, test_enrollment, clock
    ):
        service = NotificationService(db_session)

        assert await service.sweep_module_unlocks(clock.now) == 2
        await db_session.commit()

        assert await service.sweep_module_unlocks(clock.advance(days=3)) == 0
        assert await service.sweep_module_unlocks(clock.advance(days=1)) == 1
        await db_session.commit()

        result = await db_session.execute(
            select(Notification.message).where(
                Notification.type == NotificationType.CONTENT_UNLOCK
            ).order_by(Notification.id.desc())
        )
        assert '"Visualisation"' in result.scalars().first()

    @pytest.mark.asyncio
    async def test_sweep_skips_draft_modules(self, db_session, test_enrollment, clock):
        service = NotificationService(db_session)

        # Day 31: the draft module's offset has long passed
        assert await service.sweep_module_unlocks(clock.advance(days=21)) == 3

    @pytest.mark.asyncio
    async def test_sweep_ignores_inactive_enrollments(self, db_session, test_enrollment, clock):
        test_enrollment.is_active = False
        await db_session.commit()

        assert await NotificationService(db_session).sweep_module_unlocks(clock.now) == 0

    @pytest.mark.asyncio
    async def test_sweep_skips_suspended_users(
        self, db_session, test_user, test_enrollment, clock
    ):
        test_user.status = UserStatus.SUSPENDED
        await db_session.commit()

        assert await NotificationService(db_session).sweep_module_unlocks(clock.now) == 0
        assert await count_notifications(db_session, NotificationType.CONTENT_UNLOCK) == 0

    @pytest.mark.asyncio
    async def test_learner_cannot_trigger_sweep(self, client: AsyncClient, user_token):
        response = await client.post(
            f"{API}/notifications/unlock-sweep", headers=auth_headers(user_token)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_notifies_enrolled_learners(
        self, client: AsyncClient, admin_token, test_modules, test_enrollment
    ):
        response = await client.post(
            f"{API}/modules/{test_modules[2].id}/notify", headers=auth_headers(admin_token)
        )

        assert response.status_code == 200
        assert response.json()["data"]["count"] == 1


class TestUserNotifications:
    """Tests for the current user's notification inbox."""

    @pytest.mark.asyncio
    async def test_list_and_mark_read(
        self, client: AsyncClient, user_token, test_user, db_session
    ):
        service = NotificationService(db_session)
        first = await service.send(test_user.id, NotificationType.SYSTEM, "Welcome", "Hello")
        await service.send(test_user.id, NotificationType.SYSTEM, "Tip", "Try the quizzes")
        await db_session.commit()
        first_id = first.id

        response = await client.get(f"{API}/notifications", headers=auth_headers(user_token))
        assert response.status_code == 200
        assert len(response.json()["data"]) == 2

        response = await client.get(
            f"{API}/notifications/unread-count", headers=auth_headers(user_token)
        )
        assert response.json()["data"] == {"unread": 2}

        response = await client.patch(
            f"{API}/notifications/{first_id}/read", headers=auth_headers(user_token)
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["is_read"] is True
        assert data["read_at"] is not None

        response = await client.get(
            f"{API}/notifications?unread_only=true", headers=auth_headers(user_token)
        )
        assert [n["title"] for n in response.json()["data"]] == ["Tip"]

    @pytest.mark.asyncio
    async def test_mark_all_read(self, client: AsyncClient, user_token, test_user, db_session):
        service = NotificationService(db_session)
        for title in ("One", "Two", "Three"):
            await service.send(test_user.id, NotificationType.SYSTEM, title, "Body")
        await db_session.commit()

        response = await client.patch(
            f"{API}/notifications/read-all", headers=auth_headers(user_token)
        )

        assert response.status_code == 200
        assert response.json()["data"]["count"] == 3

        response = await client.get(
            f"{API}/notifications/unread-count", headers=auth_headers(user_token)
        )
        assert response.json()["data"]["unread"] == 0

    @pytest.mark.asyncio
    async def test_cannot_read_someone_elses_notification(
        self, client: AsyncClient, other_token, test_user, db_session
    ):
        notification = await NotificationService(db_session).send(
            test_user.id, NotificationType.SYSTEM, "Private", "Only for the learner"
        )
        await db_session.commit()

        response = await client.patch(
            f"{API}/notifications/{notification.id}/read", headers=auth_headers(other_token)
        )

        assert response.status_code == 404


class TestAnnouncements:
    @pytest.mark.asyncio
    async def test_announcement_reaches_active_users(
        self, client: AsyncClient, admin_token, test_user, other_user, db_session
    ):
        other_user.status = UserStatus.SUSPENDED
        await db_session.commit()

        response = await client.post(
            f"{API}/notifications/announcements",
            json={"title": "Maintenance", "message": "Back in an hour."},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 201
        # The learner and the admin; the suspended user is skipped
        assert response.json()["data"]["count"] == 2

    @pytest.mark.asyncio
    async def test_learner_cannot_announce(self, client: AsyncClient, user_token):
        response = await client.post(
            f"{API}/notifications/announcements",
            json={"title": "Hi", "message": "Everyone"},
            headers=auth_headers(user_token),
        )

        assert response.status_code == 403


class TestPaymentReminders:
    @pytest.mark.asyncio
    async def test_reminder_sent_once_per_day(self, db_session, test_user, test_course, clock):
        await create_enrollment(
            db_session,
            test_user,
            test_course,
            clock.now - timedelta(days=28),
            payment_plan=PaymentPlan.INSTALLMENT,
            next_payment_date=clock.now + timedelta(days=2),
        )
        service = NotificationService(db_session)

        assert await service.send_payment_reminders(clock.now, days_ahead=3) == 1
        await db_session.commit()
        assert await service.send_payment_reminders(clock.now, days_ahead=3) == 0

        notification = (
            await db_session.execute(
                select(Notification).where(
                    Notification.type == NotificationType.PAYMENT_REMINDER
                )
            )
        ).scalar_one()
        assert "50.00 USD" in notification.message
        assert "Python for Data Analysis" in notification.message

    @pytest.mark.asyncio
    async def test_no_reminder_outside_window(self, db_session, test_user, test_course, clock):
        await create_enrollment(
            db_session,
            test_user,
            test_course,
            clock.now,
            payment_plan=PaymentPlan.INSTALLMENT,
            next_payment_date=clock.now + timedelta(days=30),
        )

        assert await NotificationService(db_session).send_payment_reminders(clock.now, 3) == 0

    @pytest.mark.asyncio
    async def test_reminders_use_scheduler_clock(self, db_session, test_user, test_course, clock):
        run_at = clock.now + timedelta(days=400)
        await create_enrollment(
            db_session,
            test_user,
            test_course,
            run_at - timedelta(days=28),
            payment_plan=PaymentPlan.INSTALLMENT,
            next_payment_date=run_at + timedelta(days=1),
        )
        service = NotificationService(db_session)

        assert await service.send_payment_reminders(run_at, days_ahead=3) == 1
        await db_session.commit()
        assert await service.send_payment_reminders(run_at, days_ahead=3) == 0

        notification = (
            await db_session.execute(
                select(Notification).where(
                    Notification.type == NotificationType.PAYMENT_REMINDER
                )
            )
        ).scalar_one()
        assert ensure_utc(notification.created_at) == run_at
