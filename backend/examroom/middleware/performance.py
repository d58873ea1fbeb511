import time
import logging
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.cache import cache

perf_logger = logging.getLogger("performance")


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Times each request and keeps a short list of slow ones in the cache."""

    def __init__(self, app, slow_request_threshold: float = 1.0, max_slow_requests: int = 100):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold
        self.max_slow_requests = max_slow_requests
        self.request_count = 0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        self.request_count += 1
        request_id = f"req_{self.request_count}_{int(start_time)}"
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            perf_logger.error(
                f"Request error: {request.method} {request.url.path} - "
                f"Error: {str(e)} - Time: {process_time:.3f}s"
            )
            return JSONResponse(
                status_code=500,
                content={
                    "detail": "Something went wrong while handling the exam request.",
                    "request_id": request_id,
                },
            )

        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(round(process_time, 4))
        response.headers["X-Request-ID"] = request_id

        if process_time > self.slow_request_threshold:
            perf_logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {process_time:.3f}s (threshold: {self.slow_request_threshold}s)"
            )
            await self._store_slow_request(request, response.status_code, process_time, request_id)

        perf_logger.info(f"{request.method} {request.url.path} - {response.status_code} - {process_time:.3f}s")
        return response

    async def _store_slow_request(self, request: Request, status_code: int, process_time: float, request_id: str):
        slow_requests = await cache.aget("slow_requests") or []
        slow_requests.append({
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "response_time": round(process_time, 3),
            "timestamp": time.time(),
        })
        await cache.aset("slow_requests", slow_requests[-self.max_slow_requests:], ttl=3600)
