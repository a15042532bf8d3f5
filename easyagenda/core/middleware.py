# easyagenda/core/middleware.py
"""Request tracing and logging middleware"""
import uuid
import time
import logging
from contextvars import ContextVar
from starlette.requests import Request

logger = logging.getLogger(__name__)

# Read by the log filter so service-level log lines carry the request's ID,
# including those emitted from threadpool handlers
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")

# Path parameters worth repeating in the request log
BOOKING_CONTEXT_PARAMS = ("company_id", "professional_id", "service_id", "booking_id", "block_id")


async def correlation_id_middleware(request: Request, call_next):
    """Attach a correlation ID to every request and echo it back"""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    request.state.correlation_id = correlation_id
    token = correlation_id_var.set(correlation_id)

    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token)

    response.headers["X-Correlation-ID"] = correlation_id
    return response


def booking_context(request: Request) -> dict:
    """Matched route template and the tenant/booking ids in its path"""
    route = request.scope.get("route")
    path_params = request.scope.get("path_params") or {}

    context = {"route": getattr(route, "path", request.url.path)}
    for name in BOOKING_CONTEXT_PARAMS:
        if name in path_params:
            context[name] = str(path_params[name])
    return context


async def request_logging_middleware(request: Request, call_next):
    """Log request start and completion with duration and booking context"""
    start_time = time.time()
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.debug(f"Request started: {request.method} {request.url.path} [{correlation_id}]")

    response = await call_next(request)

    duration_ms = round((time.time() - start_time) * 1000, 2)
    context = booking_context(request)
    parts = [request.method, context["route"], str(response.status_code), f"in {duration_ms}ms"]
    parts.extend(f"{k}={v}" for k, v in context.items() if k != "route")
    parts.append(f"[{correlation_id}]")

    # 409 is reservation contention, not a failure
    log = logger.warning if response.status_code >= 500 else logger.info
    log(
        " ".join(parts),
        extra={
            "correlation_id": correlation_id,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
            "client": request.client.host if request.client else "unknown",
            **context,
        }
    )

    return response
