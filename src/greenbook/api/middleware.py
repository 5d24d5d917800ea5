import time
import logging
from uuid import uuid4
from fastapi import Request

logger = logging.getLogger("greenbook.api")

_DENIED = {401, 403}


async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or uuid4().hex
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["x-request-id"] = rid
    return response


async def log_requests(request: Request, call_next):
    """
    One log line per request, tagged with the forwarded caller id.
    Access denials are raised to WARNING so they stand out in the audit trail.
    """
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        status = getattr(response, "status_code", "error")
        caller = request.headers.get("x-user-id")
        extra = {
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "user_id": caller,
            "duration_ms": round(duration_ms, 2),
            "request_id": getattr(request.state, "request_id", None),
        }
        if status in _DENIED:
            logger.warning(f"Access denied: user {caller} -> {request.method} {request.url.path} ({status})", extra=extra)
        else:
            logger.info(f"{request.method} {request.url.path} -> {status} ({duration_ms:.1f}ms)", extra=extra)
