"""
Loads enrollments and modules and runs them through the unlock evaluator.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.exceptions import AuthorizationError
from learnhub.models import Course, Enrollment, Module, User
from learnhub.models.enums import ModuleStatus
from learnhub.services.unlock_service import (
    EnrollmentWindow,
    ModuleSchedule,
    compute_unlocked_modules,
)


@dataclass
class ModuleAccess:
    module: Module
    unlocked_at: datetime | None
    is_unlocked: bool


class AccessService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_enrollment(self, user_id: int, course_id: int) -> Enrollment | None:
        result = await self.db.execute(
            select(Enrollment).where(
                Enrollment.user_id == user_id,
                Enrollment.course_id == course_id,
                Enrollment.is_active == True,  # noqa: E712
            )
        )
        return result.scalar_one_or_none()

    async def get_course_modules(self, course_id: int, include_drafts: bool) -> list[Module]:
        query = select(Module).where(Module.course_id == course_id, Module.is_deleted == False)  # noqa: E712
        if not include_drafts:
            query = query.where(Module.status != ModuleStatus.DRAFT)
        result = await self.db.execute(query.order_by(Module.order, Module.id))
        return list(result.scalars().all())

    async def module_access(self, user: User, course_id: int, now: datetime) -> list[ModuleAccess]:
        """
        Modules of a course annotated with the user's unlock state.

        Admins see every module, drafts included, as unlocked. Learners without
        an active enrollment see every module locked.
        """
        if user.is_admin:
            modules = await self.get_course_modules(course_id, include_drafts=True)
            return [ModuleAccess(module=m, unlocked_at=None, is_unlocked=True) for m in modules]

        modules = await self.get_course_modules(course_id, include_drafts=False)
        enrollment = await self.get_active_enrollment(user.id, course_id)
        if enrollment is None:
            return [ModuleAccess(module=m, unlocked_at=None, is_unlocked=False) for m in modules]

        by_id = {m.id: m for m in modules}
        states = compute_unlocked_modules(
            EnrollmentWindow.from_enrollment(enrollment),
            [ModuleSchedule.from_module(m) for m in modules],
            now,
        )
        return [
            ModuleAccess(
                module=by_id[state.module.module_id],
                unlocked_at=state.unlocked_at,
                is_unlocked=state.is_unlocked,
            )
            for state in states
        ]

    async def is_module_unlocked(self, user: User, module: Module, now: datetime) -> bool:
        if user.is_admin:
            return True

        result = await self.db.execute(select(Course.is_deleted).where(Course.id == module.course_id))
        course_deleted = result.scalar_one_or_none()
        if course_deleted is None or course_deleted:
            return False

        enrollment = await self.get_active_enrollment(user.id, module.course_id)
        if enrollment is None:
            return False

        states = compute_unlocked_modules(
            EnrollmentWindow.from_enrollment(enrollment),
            [ModuleSchedule.from_module(module)],
            now,
        )
        return states[0].is_unlocked

    async def ensure_module_unlocked(self, user: User, module: Module, now: datetime) -> None:
        if not await self.is_module_unlocked(user, module, now):
            raise AuthorizationError("Module is locked for this user")
