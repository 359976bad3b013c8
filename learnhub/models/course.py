from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnhub.models.base import Base, SoftDeleteMixin, TimestampMixin
from learnhub.models.enums import ContentType, ModuleStatus

if TYPE_CHECKING:
    from learnhub.models.enrollment import Enrollment
    from learnhub.models.quiz import Quiz
    from learnhub.models.user import User


course_instructors = Table(
    "course_instructors",
    Base.metadata,
    Column("course_id", ForeignKey("courses.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Course(Base, TimestampMixin, SoftDeleteMixin):
    """A course is an ordered collection of modules."""

    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(String(500))
    tags: Mapped[list[str] | None] = mapped_column(JSON)
    price: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False))

    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relationships
    modules: Mapped[list["Module"]] = relationship(
        "Module",
        back_populates="course",
        order_by="Module.order",
    )
    instructors: Mapped[list["User"]] = relationship("User", secondary=course_instructors)
    enrollments: Mapped[list["Enrollment"]] = relationship("Enrollment", back_populates="course")


class Module(Base, TimestampMixin, SoftDeleteMixin):
    """
    A unit of a course.

    A module becomes visible to an enrolled learner `duration_in_days` calendar
    days after their enrollment date, provided the module is ACTIVE.
    """

    __tablename__ = "modules"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    course_id: Mapped[int] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    thumbnail_url: Mapped[str | None] = mapped_column(String(500))

    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    duration_in_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[ModuleStatus] = mapped_column(
        Enum(ModuleStatus), default=ModuleStatus.DRAFT, nullable=False
    )

    # Standalone modules can be purchased outside their course
    is_standalone: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    price: Mapped[float | None] = mapped_column(Numeric(10, 2, asdecimal=False))

    # Relationships
    course: Mapped["Course"] = relationship("Course", back_populates="modules")
    contents: Mapped[list["Content"]] = relationship(
        "Content",
        back_populates="module",
        order_by="Content.order",
    )
    quizzes: Mapped[list["Quiz"]] = relationship("Quiz", back_populates="module")


class Content(Base, TimestampMixin, SoftDeleteMixin):
    """A learning item inside a module: video, article or document."""

    __tablename__ = "contents"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    module_id: Mapped[int] = mapped_column(
        ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    content_type: Mapped[ContentType] = mapped_column(Enum(ContentType), nullable=False)

    # Article body (markdown)
    body: Mapped[str | None] = mapped_column(Text)

    # Object storage key and delivery URL for video/document content
    file_key: Mapped[str | None] = mapped_column(String(500))
    url: Mapped[str | None] = mapped_column(String(500))
    duration_seconds: Mapped[int | None] = mapped_column(Integer)

    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Relationships
    module: Mapped["Module"] = relationship("Module", back_populates="contents")
