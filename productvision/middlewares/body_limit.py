from __future__ import annotations

import logging
import time
import uuid
from typing import Any, Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger("product-vision.guard")

DEFAULT_MAX_BODY_BYTES = 20_000_000


class BodyLimitMiddleware(BaseHTTPMiddleware):
    """Reject uploads and API requests whose body exceeds ``max_body_bytes``."""

    WATCH_PATH_PREFIXES = ("/api/", "/upload")

    def __init__(self, app, *, max_body_bytes: int | None = None, **_: Any) -> None:  # type: ignore[override]
        self.max_body_bytes = self._normalise_limit(max_body_bytes, DEFAULT_MAX_BODY_BYTES)
        super().__init__(app)

    @staticmethod
    def _normalise_limit(candidate: int | None, fallback: int) -> int | None:
        if candidate is None:
            candidate = fallback
        if candidate <= 0:
            return None
        return candidate

    def _too_large(self, content_length: int | None, body_len: int) -> bool:
        if self.max_body_bytes is None:
            return False
        if content_length and content_length > self.max_body_bytes:
            return True
        return body_len > self.max_body_bytes

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.method not in {"POST", "PUT", "PATCH"}:
            return await call_next(request)

        path = request.url.path
        if not any(path.startswith(prefix) for prefix in self.WATCH_PATH_PREFIXES):
            return await call_next(request)

        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        start = time.time()

        content_length_header = request.headers.get("content-length")
        try:
            content_length = int(content_length_header) if content_length_header else None
        except (TypeError, ValueError):
            content_length = None

        if content_length is not None and self._too_large(content_length, 0):
            size = content_length
        else:
            body = await request.body()
            size = len(body)

        if self._too_large(content_length, size):
            logger.info("[guard] rid=%s path=%s blocked size=%s", rid, path, size)
            return JSONResponse(
                status_code=413,
                content={
                    "ok": False,
                    "error": "REQUEST_BODY_BLOCKED",
                    "reason": f"oversize:{size}",
                },
            )

        response = await call_next(request)
        duration_ms = int((time.time() - start) * 1000)
        logger.info(
            "[guard] rid=%s path=%s method=%s size=%s status=%s dur_ms=%s",
            rid,
            path,
            request.method,
            size,
            response.status_code,
            duration_ms,
        )
        return response


__all__ = ["BodyLimitMiddleware"]
