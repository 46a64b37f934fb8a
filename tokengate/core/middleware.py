"""HTTP middleware for request ID propagation and correlation.

Every request/response pair carries a correlation id: the incoming
``X-Request-ID`` header (name configurable via LOG_REQUEST_ID_HEADER) or a
fresh UUID. The id is bound to a context variable for the duration of the
request so log records pick it up, echoed back on the response, and the
total handling time is reported in ``X-Request-Duration-ms``.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from tokengate.core.config import settings
from tokengate.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind, propagate and time the request correlation id."""

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
