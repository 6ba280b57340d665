"""
Request throttling for the expensive document routes.

Uploads stream up to MAX_FILE_SIZE into the object store, and a bucket sync
issues one head request per unknown object, so both are limited per client.
Limits come from settings and can be switched off with RATE_LIMIT_ENABLED.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.config import settings


def client_key(request: Request) -> str:
    """
    Identify the caller for throttling.

    Behind the dashboard's reverse proxy the peer address is the proxy, so the
    first X-Forwarded-For hop (or X-Real-IP) is used when present.
    """
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded_for.split(",")[0].strip()
    if first_hop:
        return first_hop

    real_ip = request.headers.get("X-Real-IP", "").strip()
    return real_ip or get_remote_address(request)


limiter = Limiter(key_func=client_key, enabled=settings.RATE_LIMIT_ENABLED)

RATE_LIMITS = {
    "upload": settings.UPLOAD_RATE_LIMIT,
    "sync": settings.SYNC_RATE_LIMIT,
}


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Answer 429 in the same ``{success, message}`` shape the sync route uses."""
    response = JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": f"Too many requests ({exc.detail}). Please try again later.",
        },
    )
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        response.headers["Retry-After"] = str(retry_after)
    return response
