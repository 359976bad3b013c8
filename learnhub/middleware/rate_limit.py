import math
import time
from collections import defaultdict, deque
from typing import Callable

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from learnhub.core.exceptions import error_response

WINDOW_SECONDS = 60


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window rate limiting per client IP.

    Counts are per process; a multi-worker deployment gets one budget per worker.
    """

    def __init__(
        self,
        app,
        requests_per_minute: int = 100,
        exclude_paths: list[str] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(app)
        self.requests_per_minute = requests_per_minute
        self.exclude_paths = exclude_paths or ["/health", "/api/v1/docs", "/api/v1/openapi.json"]
        self.clock = clock
        self.requests: dict[str, deque[float]] = defaultdict(deque)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        now = self.clock()

        # Drop requests that left the window
        history = self.requests[client_ip]
        while history and history[0] <= now - WINDOW_SECONDS:
            history.popleft()

        if len(history) >= self.requests_per_minute:
            retry_after = max(1, math.ceil(history[0] + WINDOW_SECONDS - now))
            return error_response(
                status.HTTP_429_TOO_MANY_REQUESTS,
                "Too many requests. Please try again later.",
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(self.requests_per_minute),
                    "X-RateLimit-Remaining": "0",
                },
            )

        history.append(now)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(self.requests_per_minute - len(history))
        return response
