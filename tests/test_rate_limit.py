"""
Tests for the per-IP rate limiting middleware.
"""

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from learnhub.middleware.rate_limit import RateLimitMiddleware


class ManualClock:
    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


def build_app(clock: ManualClock, limit: int = 2) -> FastAPI:
    app = FastAPI()
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_minute=limit,
        exclude_paths=["/health"],
        clock=clock,
    )

    @app.get("/ping")
    async def ping():
        return {"pong": True}

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    return app


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest_asyncio.fixture
async def limited_client(manual_clock):
    transport = ASGITransport(app=build_app(manual_clock))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_headers_count_down(self, limited_client):
        first = await limited_client.get("/ping")
        second = await limited_client.get("/ping")

        assert first.headers["X-RateLimit-Limit"] == "2"
        assert first.headers["X-RateLimit-Remaining"] == "1"
        assert second.headers["X-RateLimit-Remaining"] == "0"

    @pytest.mark.asyncio
    async def test_over_limit_returns_429(self, limited_client, manual_clock):
        await limited_client.get("/ping")
        manual_clock.value += 20
        await limited_client.get("/ping")

        response = await limited_client.get("/ping")

        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "message": "Too many requests. Please try again later.",
            "errors": None,
        }
        # The oldest request leaves the window 40 seconds from now
        assert response.headers["Retry-After"] == "40"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    @pytest.mark.asyncio
    async def test_window_slides(self, limited_client, manual_clock):
        await limited_client.get("/ping")
        await limited_client.get("/ping")

        manual_clock.value += 60

        response = await limited_client.get("/ping")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_excluded_paths_are_not_counted(self, limited_client):
        for _ in range(5):
            response = await limited_client.get("/health")
            assert response.status_code == 200
            assert "X-RateLimit-Limit" not in response.headers

        response = await limited_client.get("/ping")
        assert response.headers["X-RateLimit-Remaining"] == "1"
