"""Request context middleware: one ID per request, visible in every log line.

A learner's lesson completion fans out into a progress write, a cache
invalidation and (inline mode) a certificate issuance, each logging from
a different module.  The request ID ties those lines together.

The ID lives in a ContextVar rather than a thread-local: concurrent
requests share the event loop thread, but each task sees its own value.
The handler filter installed by setup_logging copies it onto every
LogRecord.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from microcourses.core.logging import request_id_var

logger = logging.getLogger(__name__)

# Client-supplied IDs longer than this are replaced, not truncated.
_MAX_REQUEST_ID_LENGTH = 128


def _incoming_request_id(request: Request) -> str:
    supplied = request.headers.get("x-request-id", "").strip()
    if supplied and len(supplied) <= _MAX_REQUEST_ID_LENGTH:
        return supplied
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, log one summary line.

    The ID is echoed back as X-Request-ID so a learner's support ticket
    can be matched to server logs.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = _incoming_request_id(request)
        token = request_id_var.set(req_id)
        start = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = round((time.monotonic() - start) * 1000, 1)

            logger.info(
                "%s %s → %d (%.1fms)",
                request.method,
                request.url.path,
                response.status_code,
                duration_ms,
                extra={
                    "request_id": req_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )
            response.headers["X-Request-ID"] = req_id
            return response
        finally:
            request_id_var.reset(token)
