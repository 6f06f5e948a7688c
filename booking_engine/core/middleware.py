# booking_engine/core/middleware.py
"""Custom middleware for request handling"""
import uuid
import time
import logging
from starlette.requests import Request

from booking_engine.utils.my_logging import correlation_id_var

logger = logging.getLogger(__name__)

# Path params worth carrying into the access log
LOGGED_PATH_PARAMS = ("booking_id", "provider_id", "business_id")


async def correlation_id_middleware(request: Request, call_next):
    """Add correlation ID to the request, the response and every log record"""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request.state.correlation_id = correlation_id
    token = correlation_id_var.set(correlation_id)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)

    response.headers["X-Correlation-ID"] = correlation_id
    return response


def request_subjects(request: Request) -> dict:
    """Booking/provider/business ids the router matched, once routing is done"""
    params = request.scope.get("path_params") or {}
    return {name: str(params[name]) for name in LOGGED_PATH_PARAMS if name in params}


async def request_logging_middleware(request: Request, call_next):
    """Log status, duration and the booking/provider/business touched by the request"""
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    subjects = request_subjects(request)
    subject_text = " ".join(f"{k}={v}" for k, v in subjects.items())

    if response.status_code >= 500:
        level = logging.ERROR
    elif response.status_code in (409, 422):
        # lost transitions, rejected schedules
        level = logging.WARNING
    else:
        level = logging.INFO

    logger.log(
        level,
        f"{request.method} {request.url.path} -> {response.status_code} ({duration_ms}ms) {subject_text}".rstrip(),
        extra={
            "correlation_id": getattr(request.state, "correlation_id", "unknown"),
            **subjects,
        }
    )

    return response
