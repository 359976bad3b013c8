"""
Tests for course, module and content endpoints.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from learnhub.models import Course, Module
from learnhub.models.enums import ModuleStatus
from tests.conftest import API, auth_headers


async def create_course(client: AsyncClient, admin_token: str, **overrides) -> dict:
    payload = {
        "title": "Intro to SQL",
        "description": "Queries, joins and indexes from scratch.",
        "tags": ["sql", "databases"],
        "price": 49.0,
    }
    payload.update(overrides)
    response = await client.post(f"{API}/courses", json=payload, headers=auth_headers(admin_token))
    assert response.status_code == 201
    return response.json()["data"]


async def create_module(client: AsyncClient, admin_token: str, course_id: int, **overrides) -> dict:
    payload = {"course_id": course_id, "title": "Joins", "duration_in_days": 0}
    payload.update(overrides)
    response = await client.post(f"{API}/modules", json=payload, headers=auth_headers(admin_token))
    assert response.status_code == 201
    return response.json()["data"]


class TestCourses:
    """Tests for course endpoints."""

    @pytest.mark.asyncio
    async def test_create_course_starts_unpublished(self, client: AsyncClient, admin_token):
        course = await create_course(client, admin_token)

        assert course["is_published"] is False
        assert course["module_count"] == 0
        assert course["instructors"] == []

    @pytest.mark.asyncio
    async def test_create_course_with_instructors(
        self, client: AsyncClient, admin_token, test_admin
    ):
        course = await create_course(client, admin_token, instructor_ids=[test_admin.id])

        assert [i["email"] for i in course["instructors"]] == ["admin@example.com"]

    @pytest.mark.asyncio
    async def test_unknown_instructor_rejected(self, client: AsyncClient, admin_token):
        response = await client.post(
            f"{API}/courses",
            json={
                "title": "Ghost Course",
                "description": "Taught by nobody at all.",
                "instructor_ids": [4242],
            },
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 400
        assert response.json()["errors"] == {"instructor_ids": [4242]}

    @pytest.mark.asyncio
    async def test_learner_cannot_create_course(self, client: AsyncClient, user_token):
        response = await client.post(
            f"{API}/courses",
            json={"title": "Nope", "description": "Learners cannot author courses."},
            headers=auth_headers(user_token),
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_publish_requires_active_module(self, client: AsyncClient, admin_token):
        course = await create_course(client, admin_token)

        response = await client.patch(
            f"{API}/courses/{course['id']}/publish",
            json={"is_published": True},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_publish_with_active_module(self, client: AsyncClient, admin_token):
        course = await create_course(client, admin_token)
        module = await create_module(client, admin_token, course["id"])
        await client.post(
            f"{API}/modules/{module['id']}/contents",
            json={"title": "Inner joins", "content_type": "article", "body": "# Joins"},
            headers=auth_headers(admin_token),
        )
        response = await client.patch(
            f"{API}/modules/{module['id']}/status",
            json={"status": "active"},
            headers=auth_headers(admin_token),
        )
        assert response.status_code == 200

        response = await client.patch(
            f"{API}/courses/{course['id']}/publish",
            json={"is_published": True},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 200
        assert response.json()["data"]["is_published"] is True
        assert response.json()["data"]["module_count"] == 1

    @pytest.mark.asyncio
    async def test_learner_lists_only_published(
        self, client: AsyncClient, admin_token, user_token, test_course
    ):
        await create_course(client, admin_token, title="Unpublished Draft")

        response = await client.get(f"{API}/courses", headers=auth_headers(user_token))

        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total"] == 1
        assert page["items"][0]["title"] == "Python for Data Analysis"

    @pytest.mark.asyncio
    async def test_admin_lists_all(self, client: AsyncClient, admin_token, test_course):
        await create_course(client, admin_token, title="Unpublished Draft")

        response = await client.get(f"{API}/courses", headers=auth_headers(admin_token))

        assert response.json()["data"]["total"] == 2

    @pytest.mark.asyncio
    async def test_course_search(self, client: AsyncClient, user_token, test_course):
        response = await client.get(
            f"{API}/courses?search=pipelines", headers=auth_headers(user_token)
        )

        assert response.json()["data"]["total"] == 1

        response = await client.get(f"{API}/courses?search=haskell", headers=auth_headers(user_token))

        assert response.json()["data"]["total"] == 0

    @pytest.mark.asyncio
    async def test_unpublished_course_hidden_from_learner(
        self, client: AsyncClient, admin_token, user_token
    ):
        course = await create_course(client, admin_token)

        response = await client.get(f"{API}/courses/{course['id']}", headers=auth_headers(user_token))

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_course(self, client: AsyncClient, admin_token, user_token, test_course):
        course_id = test_course.id

        response = await client.delete(
            f"{API}/courses/{course_id}", headers=auth_headers(admin_token)
        )
        assert response.status_code == 200

        response = await client.get(f"{API}/courses/{course_id}", headers=auth_headers(user_token))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_replace_instructors(self, client: AsyncClient, admin_token, test_admin, test_course):
        response = await client.put(
            f"{API}/courses/{test_course.id}/instructors",
            json={"instructor_ids": [test_admin.id]},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 200
        assert len(response.json()["data"]["instructors"]) == 1


class TestModules:
    """Tests for module endpoints."""

    @pytest.mark.asyncio
    async def test_create_module_as_draft(self, client: AsyncClient, admin_token, test_course):
        module = await create_module(client, admin_token, test_course.id, duration_in_days=30)

        assert module["status"] == "draft"
        assert module["duration_in_days"] == 30

    @pytest.mark.asyncio
    async def test_negative_duration_rejected(self, client: AsyncClient, admin_token, test_course):
        response = await client.post(
            f"{API}/modules",
            json={"course_id": test_course.id, "title": "Time Travel", "duration_in_days": -1},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_create_active_module_without_content_rejected(
        self, client: AsyncClient, admin_token, test_course, db_session
    ):
        course_id = test_course.id

        response = await client.post(
            f"{API}/modules",
            json={
                "course_id": course_id,
                "title": "Empty Module",
                "duration_in_days": 0,
                "status": "active",
            },
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 400
        result = await db_session.execute(select(Module).where(Module.title == "Empty Module"))
        assert result.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_standalone_requires_price(self, client: AsyncClient, admin_token, test_course):
        response = await client.post(
            f"{API}/modules",
            json={
                "course_id": test_course.id,
                "title": "Standalone",
                "duration_in_days": 0,
                "is_standalone": True,
            },
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_toggle_standalone(self, client: AsyncClient, admin_token, test_modules):
        module_id = test_modules[0].id

        response = await client.patch(
            f"{API}/modules/{module_id}/standalone",
            json={"is_standalone": True},
            headers=auth_headers(admin_token),
        )
        assert response.status_code == 400

        response = await client.patch(
            f"{API}/modules/{module_id}/standalone",
            json={"is_standalone": True, "price": 19.0},
            headers=auth_headers(admin_token),
        )
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["is_standalone"] is True
        assert data["price"] == 19.0

    @pytest.mark.asyncio
    async def test_admin_module_filters(self, client: AsyncClient, admin_token, test_course):
        response = await client.get(
            f"{API}/modules?course_id={test_course.id}&module_status=draft",
            headers=auth_headers(admin_token),
        )

        page = response.json()["data"]
        assert page["total"] == 1
        assert page["items"][0]["title"] == "Advanced Topics"

    @pytest.mark.asyncio
    async def test_deleted_module_not_found(self, client: AsyncClient, admin_token, test_modules):
        module_id = test_modules[1].id

        response = await client.delete(f"{API}/modules/{module_id}", headers=auth_headers(admin_token))
        assert response.status_code == 200

        response = await client.get(f"{API}/modules/{module_id}", headers=auth_headers(admin_token))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_archive_module(self, client: AsyncClient, admin_token, test_modules):
        response = await client.patch(
            f"{API}/modules/{test_modules[0].id}/status",
            json={"status": "archived"},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "archived"


class TestContents:
    """Tests for content endpoints."""

    @pytest.mark.asyncio
    async def test_article_requires_body(self, client: AsyncClient, admin_token, test_modules):
        response = await client.post(
            f"{API}/modules/{test_modules[0].id}/contents",
            json={"title": "Empty", "content_type": "article"},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_video_requires_location(self, client: AsyncClient, admin_token, test_modules):
        response = await client.post(
            f"{API}/modules/{test_modules[0].id}/contents",
            json={"title": "Intro video", "content_type": "video"},
            headers=auth_headers(admin_token),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_contents_in_order(
        self, client: AsyncClient, admin_token, user_token, test_modules, test_enrollment
    ):
        module_id = test_modules[0].id
        await client.post(
            f"{API}/modules/{module_id}/contents",
            json={
                "title": "Warm-up video",
                "content_type": "video",
                "url": "https://cdn.test/warmup.m3u8",
                "order": 0,
            },
            headers=auth_headers(admin_token),
        )
        await client.post(
            f"{API}/modules/{module_id}/contents",
            json={"title": "Summary", "content_type": "article", "body": "Done.", "order": 5},
            headers=auth_headers(admin_token),
        )

        response = await client.get(
            f"{API}/modules/{module_id}/contents", headers=auth_headers(user_token)
        )

        assert response.status_code == 200
        titles = [c["title"] for c in response.json()["data"]]
        assert titles == ["Getting Started overview", "Warm-up video", "Summary"]

    @pytest.mark.asyncio
    async def test_learner_cannot_read_locked_content(
        self, client: AsyncClient, user_token, test_modules, test_enrollment, db_session
    ):
        module = await db_session.get(Module, test_modules[2].id)
        await db_session.refresh(module, ["contents"])
        content_id = module.contents[0].id

        response = await client.get(f"{API}/contents/{content_id}", headers=auth_headers(user_token))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_update_article_keeps_body(self, client: AsyncClient, admin_token, test_modules, db_session):
        module = await db_session.get(Module, test_modules[0].id)
        await db_session.refresh(module, ["contents"])
        content_id = module.contents[0].id

        response = await client.patch(
            f"{API}/contents/{content_id}", json={"body": ""}, headers=auth_headers(admin_token)
        )
        assert response.status_code == 400

        response = await client.patch(
            f"{API}/contents/{content_id}",
            json={"title": "Renamed"},
            headers=auth_headers(admin_token),
        )
        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Renamed"


class TestCourseModel:
    @pytest.mark.asyncio
    async def test_modules_relationship_ordered(self, db_session, test_course):
        result = await db_session.execute(select(Course).where(Course.id == test_course.id))
        course = result.scalar_one()
        await db_session.refresh(course, ["modules"])

        assert [m.order for m in course.modules] == [0, 1, 2, 3]
        assert course.modules[3].status == ModuleStatus.DRAFT
