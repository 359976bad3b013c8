import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from learnhub.core.exceptions import NotFoundError, ValidationError
from learnhub.models import Content, Course, Module, Quiz, User
from learnhub.models.enums import ModuleStatus

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_course(self, course_id: int, user: User | None = None) -> Course:
        """Fetch a live course. Unpublished courses are hidden from non-admins."""
        result = await self.db.execute(
            select(Course)
            .options(selectinload(Course.instructors))
            .where(Course.id == course_id, Course.is_deleted == False)  # noqa: E712
        )
        course = result.scalar_one_or_none()
        if not course or (not course.is_published and not (user and user.is_admin)):
            raise NotFoundError("Course", course_id)
        return course

    async def count_modules(self, course_id: int) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(Module)
            .where(Module.course_id == course_id, Module.is_deleted == False)  # noqa: E712
        )
        return result.scalar() or 0

    async def set_published(self, course: Course, is_published: bool) -> Course:
        """A course can only be published once it has at least one ACTIVE module."""
        if is_published and not course.is_published:
            result = await self.db.execute(
                select(func.count())
                .select_from(Module)
                .where(
                    Module.course_id == course.id,
                    Module.is_deleted == False,  # noqa: E712
                    Module.status == ModuleStatus.ACTIVE,
                )
            )
            if not result.scalar():
                raise ValidationError("Course needs at least one active module before publishing")

        course.is_published = is_published
        logger.info("Course %s %s", course.id, "published" if is_published else "unpublished")
        return course

    async def set_instructors(self, course: Course, user_ids: list[int]) -> None:
        result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        users = result.scalars().all()
        missing = sorted(set(user_ids) - {u.id for u in users})
        if missing:
            raise ValidationError(
                "Unknown instructor ids", errors={"instructor_ids": missing}
            )
        course.instructors = list(users)


class ModuleService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_module(self, module_id: int, with_details: bool = False) -> Module:
        query = select(Module).where(Module.id == module_id, Module.is_deleted == False)  # noqa: E712
        if with_details:
            query = query.options(
                selectinload(Module.course),
                selectinload(Module.contents),
                selectinload(Module.quizzes),
            )
        result = await self.db.execute(query)
        module = result.scalar_one_or_none()
        if not module:
            raise NotFoundError("Module", module_id)
        return module

    async def change_status(self, module: Module, status: ModuleStatus) -> Module:
        """Activation requires at least one content item or quiz."""
        status = ModuleStatus(status)
        if status == ModuleStatus.ACTIVE and module.status != ModuleStatus.ACTIVE:
            contents = await self.db.execute(
                select(func.count())
                .select_from(Content)
                .where(Content.module_id == module.id, Content.is_deleted == False)  # noqa: E712
            )
            quizzes = await self.db.execute(
                select(func.count())
                .select_from(Quiz)
                .where(Quiz.module_id == module.id, Quiz.is_deleted == False)  # noqa: E712
            )
            if not (contents.scalar() or quizzes.scalar()):
                raise ValidationError(
                    "Module needs at least one content item or quiz before activation"
                )

        module.status = status
        return module

    @staticmethod
    def set_standalone(module: Module, is_standalone: bool, price: float | None) -> Module:
        if is_standalone:
            price = price if price is not None else module.price
            if price is None:
                raise ValidationError("Price is required for standalone modules", field="price")
            module.price = price
        module.is_standalone = is_standalone
        return module
