from __future__ import annotations

import logging
import time

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH"}


def _declared_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Caps request bodies so a bulk import cannot exhaust memory.

    A declared Content-Length is checked up front. Chunked uploads carry no
    length, so their body is read (and cached for the route) and measured.
    """

    def __init__(self, app, *, max_bytes: int) -> None:
        super().__init__(app)
        self.max_bytes = max(1, max_bytes)

    def _reject(self, request: Request, size: int) -> JSONResponse:
        logger.warning("Rejected %s %s: body of %d bytes exceeds %d", request.method, request.url.path, size,
                       self.max_bytes)
        return JSONResponse(
            status_code=413,
            content={
                "message": f"Request body of {size} bytes exceeds the {self.max_bytes} byte limit",
                "details": {"max_bytes": self.max_bytes},
            },
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method not in BODY_METHODS:
            return await call_next(request)

        declared = _declared_length(request)
        if declared is not None and declared > self.max_bytes:
            return self._reject(request, declared)
        if declared is None and request.headers.get("transfer-encoding", "").lower() == "chunked":
            body = await request.body()
            if len(body) > self.max_bytes:
                return self._reject(request, len(body))
        return await call_next(request)


class RequestTimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers.setdefault("X-Process-Time-Ms", f"{elapsed_ms:.1f}")
        logger.debug("%s %s -> %d in %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
        return response
