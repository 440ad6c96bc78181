"""
진행 중인 요청 추적 미들웨어.

Graceful shutdown 시 진행 중인 요청이 끝날 때까지 기다릴 수 있게 합니다.
"""
import asyncio
import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from album_api.utils.prometheus_metrics import in_flight_requests

logger = logging.getLogger("album_api.request_tracking")

# Health check 경로는 제외 (shutdown 중에도 응답해야 함)
EXCLUDED_PATHS = {"/health", "/health/liveness", "/health/readiness", "/metrics"}


class RequestTracker:
    """In-flight request counter shared by the middleware and the lifespan."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    async def increment(self) -> None:
        async with self._lock:
            self._count += 1
            in_flight_requests.set(self._count)

    async def decrement(self) -> None:
        async with self._lock:
            self._count = max(0, self._count - 1)
            in_flight_requests.set(self._count)

    async def wait_for_requests(self, timeout: float = 30.0) -> bool:
        """
        진행 중인 요청이 완료될 때까지 대기.

        Returns:
            True: 모든 요청 완료, False: 타임아웃
        """
        start_time = time.monotonic()
        while self._count > 0:
            if time.monotonic() - start_time >= timeout:
                logger.warning(
                    "Timeout waiting for requests",
                    extra={"event": "shutdown", "remaining_requests": self._count, "timeout": timeout},
                )
                return False
            await asyncio.sleep(0.5)
        return True


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """진행 중인 요청 수를 ``tracker``에 반영하는 미들웨어."""

    def __init__(self, app, tracker: RequestTracker):
        super().__init__(app)
        self.tracker = tracker

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in EXCLUDED_PATHS:
            return await call_next(request)

        await self.tracker.increment()
        try:
            return await call_next(request)
        finally:
            await self.tracker.decrement()
