"""
Pytest configuration and fixtures for the LearnHub API tests.
"""

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from learnhub.core.clock import utcnow
from learnhub.core.config import Settings
from learnhub.core.database import get_db
from learnhub.core.deps import get_now
from learnhub.core.security import create_access_token, hash_password
from learnhub.main import create_application
from learnhub.models import (
    Base,
    Content,
    Course,
    Enrollment,
    Module,
    Payment,
    Quiz,
    QuizQuestion,
    User,
)
from learnhub.models.enums import (
    ContentType,
    ModuleStatus,
    PaymentPlan,
    PaymentStatus,
    UserRole,
    UserStatus,
)
from learnhub.services.media_service import MediaConvertClient, get_mediaconvert
from learnhub.services.storage_service import StorageService, get_storage_service

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

API = "/api/v1"


class FakeS3Client:
    """Records uploads instead of talking to S3."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}

    def upload_fileobj(self, fileobj, bucket, key, ExtraArgs=None):
        self.objects[key] = fileobj.read()

    def generate_presigned_url(self, operation, Params=None, ExpiresIn=3600):
        return f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}?signature=test"


class FakeMediaConvertClient:
    """Returns canned MediaConvert responses."""

    def __init__(self):
        self.jobs: dict[str, dict[str, Any]] = {}

    def create_job(self, **params):
        job_id = f"job-{len(self.jobs) + 1}"
        self.jobs[job_id] = {"Id": job_id, "Status": "SUBMITTED", "Params": params}
        return {"Job": {"Id": job_id, "Status": "SUBMITTED"}}

    def get_job(self, Id):
        return {"Job": self.jobs[Id]}


class Clock:
    """Mutable "now" shared by the app and the test."""

    def __init__(self, now: datetime):
        self.now = now

    def advance(self, days: int = 0, hours: int = 0) -> datetime:
        self.now = self.now + timedelta(days=days, hours=hours)
        return self.now


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        environment="test",
        rate_limit_enabled=False,
        aws_access_key_id="test",
        aws_secret_access_key="test",
        mediaconvert_endpoint_url="https://mediaconvert.test",
        mediaconvert_role_arn="arn:aws:iam::123456789012:role/MediaConvert",
        cloudfront_domain="cdn.test",
    )


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    return create_application(test_settings)


@pytest.fixture
def clock() -> Clock:
    return Clock(utcnow())


@pytest.fixture
def s3_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def mediaconvert_client() -> FakeMediaConvertClient:
    return FakeMediaConvertClient()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(
    app: FastAPI,
    db_session: AsyncSession,
    test_settings: Settings,
    clock: Clock,
    s3_client: FakeS3Client,
    mediaconvert_client: FakeMediaConvertClient,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    storage = StorageService(test_settings, client=s3_client)
    mediaconvert = MediaConvertClient(test_settings, client=mediaconvert_client)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: clock.now
    app.dependency_overrides[get_storage_service] = lambda: storage
    app.dependency_overrides[get_mediaconvert] = lambda: mediaconvert

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# === User Fixtures ===


async def _create_user(
    db_session: AsyncSession,
    email: str,
    role: UserRole = UserRole.USER,
    first_name: str = "Test",
    last_name: str = "User",
) -> User:
    user = User(
        email=email,
        password_hash=hash_password("Test1234!"),
        first_name=first_name,
        last_name=last_name,
        role=role,
        status=UserStatus.ACTIVE,
        is_verified=True,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test learner."""
    return await _create_user(db_session, "learner@example.com", first_name="Lena")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "other@example.com", first_name="Omar")


@pytest_asyncio.fixture
async def test_admin(db_session: AsyncSession) -> User:
    """Create a test admin user."""
    return await _create_user(
        db_session, "admin@example.com", role=UserRole.ADMIN, first_name="Ada"
    )


@pytest.fixture
def user_token(test_user: User, test_settings: Settings) -> str:
    """Get an access token for the test user."""
    return create_access_token(test_user.id, test_settings, {"role": "user"})


@pytest.fixture
def other_token(other_user: User, test_settings: Settings) -> str:
    return create_access_token(other_user.id, test_settings, {"role": "user"})


@pytest.fixture
def admin_token(test_admin: User, test_settings: Settings) -> str:
    """Get an access token for the test admin."""
    return create_access_token(test_admin.id, test_settings, {"role": "admin"})


def auth_headers(token: str) -> dict[str, str]:
    """Create authorization headers."""
    return {"Authorization": f"Bearer {token}"}


# === Course Fixtures ===


@pytest_asyncio.fixture
async def test_course(db_session: AsyncSession) -> Course:
    """
    A published course with three active modules unlocking on days 0, 7
    and 14, plus one draft module on day 21.
    """
    course = Course(
        title="Python for Data Analysis",
        description="From notebooks to production pipelines.",
        price=199.0,
        is_published=True,
    )
    db_session.add(course)
    await db_session.flush()

    schedule = [
        ("Getting Started", 0, ModuleStatus.ACTIVE),
        ("Working with DataFrames", 7, ModuleStatus.ACTIVE),
        ("Visualisation", 14, ModuleStatus.ACTIVE),
        ("Advanced Topics", 21, ModuleStatus.DRAFT),
    ]
    for order, (title, days, module_status) in enumerate(schedule):
        module = Module(
            course_id=course.id,
            title=title,
            order=order,
            duration_in_days=days,
            status=module_status,
        )
        db_session.add(module)
        await db_session.flush()
        db_session.add(
            Content(
                module_id=module.id,
                title=f"{title} overview",
                content_type=ContentType.ARTICLE,
                body="# Overview",
                order=0,
            )
        )

    await db_session.commit()
    return course


async def course_modules(db_session: AsyncSession, course: Course) -> list[Module]:
    """Modules of a course in order."""
    result = await db_session.execute(
        select(Module).where(Module.course_id == course.id).order_by(Module.order)
    )
    return list(result.scalars().all())


@pytest_asyncio.fixture
async def test_modules(db_session: AsyncSession, test_course: Course) -> list[Module]:
    return await course_modules(db_session, test_course)


@pytest_asyncio.fixture
async def test_quiz(db_session: AsyncSession, test_modules: list[Module]) -> Quiz:
    """A quiz on the first module: three questions worth 1, 1 and 2 points, pass at 70%."""
    quiz = Quiz(
        module_id=test_modules[0].id,
        title="Getting Started Check",
        passing_score=70,
        questions=[
            QuizQuestion(
                question="Which keyword defines a function?",
                options=["func", "def", "fn", "lambda"],
                correct_option_index=1,
                points=1,
            ),
            QuizQuestion(
                question="Which type is immutable?",
                options=["list", "dict", "tuple"],
                correct_option_index=2,
                points=1,
            ),
            QuizQuestion(
                question="What does len([1, 2, 3]) return?",
                options=["2", "3", "4"],
                correct_option_index=1,
                points=2,
            ),
        ],
    )
    db_session.add(quiz)
    await db_session.commit()
    return quiz


async def create_enrollment(
    db_session: AsyncSession,
    user: User,
    course: Course,
    enrollment_date: datetime,
    access_days: int = 365,
    payment_plan: PaymentPlan = PaymentPlan.FULL,
    next_payment_date: datetime | None = None,
) -> Enrollment:
    enrollment = Enrollment(
        user_id=user.id,
        course_id=course.id,
        enrollment_date=enrollment_date,
        expiry_date=enrollment_date + timedelta(days=access_days),
        is_active=True,
        payment_plan=payment_plan,
    )
    db_session.add(enrollment)
    await db_session.flush()

    db_session.add(
        Payment(
            user_id=user.id,
            enrollment_id=enrollment.id,
            amount=199.0 if payment_plan == PaymentPlan.FULL else 50.0,
            currency="USD",
            status=PaymentStatus.COMPLETED,
            payment_method="card",
            payment_date=enrollment_date,
            next_payment_date=next_payment_date,
        )
    )
    await db_session.commit()
    return enrollment


@pytest_asyncio.fixture
async def test_enrollment(
    db_session: AsyncSession, test_user: User, test_course: Course, clock: Clock
) -> Enrollment:
    """Learner enrolled ten days ago: modules on days 0 and 7 are open, day 14 is not."""
    return await create_enrollment(
        db_session, test_user, test_course, clock.now - timedelta(days=10)
    )
