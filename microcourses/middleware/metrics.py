"""Prometheus HTTP metrics for every request.

The endpoint label is the matched route template
(``/api/progress/lessons/{lesson_id}``), not the raw path: lesson,
course and certificate IDs in URLs would otherwise create one time
series per ID.  Requests that match no route are labelled "unmatched".
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

from microcourses.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

_SKIP_PATHS = frozenset({"/metrics"})


def _route_template(request: Request) -> str:
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count, time and gauge in-flight HTTP requests."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Prometheus scrapes would otherwise dominate the request count.
        if request.url.path in _SKIP_PATHS:
            return await call_next(request)

        endpoint = _route_template(request)
        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            ACTIVE_REQUESTS.dec()
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
            ).inc()
            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=endpoint,
            ).observe(time.monotonic() - start)

        return response
