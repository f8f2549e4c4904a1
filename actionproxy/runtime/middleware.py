"""
Where: actionproxy/runtime/middleware.py
What: HTTP middleware for request correlation and access logging.
Why: Isolate cross-cutting request concerns from app assembly.
"""

import logging
import time

from fastapi import Request

from actionproxy.common.core.request_context import clear_request_context, generate_request_id

logger = logging.getLogger("runtime.access")


async def request_context_middleware(request: Request, call_next):
    """Bind a request id for log correlation and write one access log line per request."""
    start_time = time.perf_counter()
    req_id = generate_request_id()

    try:
        response = await call_next(request)
        response.headers["x-request-id"] = req_id

        process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)

        logger.info(
            f"{request.method} {request.url.path} {response.status_code}",
            extra={
                "request_id": req_id,
                "activation_id": getattr(request.state, "activation_id", None),
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_ms": process_time_ms,
            },
        )

        return response
    finally:
        clear_request_context()
