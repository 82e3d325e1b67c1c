"""Rate limiting middleware for FastAPI.

PDF export has its own per-minute limit on top of the general one.
"""
from __future__ import annotations

import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting."""
    requests_per_minute: int = 120
    export_requests_per_minute: int = 10
    burst_limit: int = 20  # Max requests in 1 second


@dataclass
class ClientWindow:
    """Sliding windows of request timestamps for one client."""
    second: Deque[float] = field(default_factory=deque)
    minute: Deque[float] = field(default_factory=deque)
    export_minute: Deque[float] = field(default_factory=deque)

    @staticmethod
    def _trim(window: Deque[float], cutoff: float) -> None:
        while window and window[0] <= cutoff:
            window.popleft()

    def trim(self, now: float) -> None:
        self._trim(self.second, now - 1)
        self._trim(self.minute, now - 60)
        self._trim(self.export_minute, now - 60)


def is_export_path(path: str) -> bool:
    return path.rstrip("/").endswith("/export-pdf")


def _too_many(detail: str, retry_after: float) -> JSONResponse:
    seconds = max(1, int(retry_after))
    return JSONResponse(
        status_code=429,
        content={"error": "rate_limited", "detail": detail, "retry_after": seconds},
        headers={"Retry-After": str(seconds)},
    )


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client request limits keyed on the forwarded or direct client address."""

    def __init__(self, app, config: Optional[RateLimitConfig] = None):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.clients: Dict[str, ClientWindow] = defaultdict(ClientWindow)

    def _client_id(self, request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        now = time.time()
        window = self.clients[self._client_id(request)]
        window.trim(now)

        if len(window.second) >= self.config.burst_limit:
            return _too_many("Rate limit exceeded: too many requests per second", 1)

        if len(window.minute) >= self.config.requests_per_minute:
            return _too_many(
                f"Rate limit exceeded: {self.config.requests_per_minute} requests per minute",
                60 - (now - window.minute[0]),
            )

        export = is_export_path(request.url.path)
        if export and len(window.export_minute) >= self.config.export_requests_per_minute:
            return _too_many(
                f"Rate limit exceeded: {self.config.export_requests_per_minute} exports per minute",
                60 - (now - window.export_minute[0]),
            )

        window.second.append(now)
        window.minute.append(now)
        if export:
            window.export_minute.append(now)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.config.requests_per_minute)
        response.headers["X-RateLimit-Remaining"] = str(
            max(0, self.config.requests_per_minute - len(window.minute))
        )
        return response
