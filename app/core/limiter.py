# File: app/core/limiter.py

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.core.config import settings

# Keyed by client IP. Storage is in-process by default; point
# RATE_LIMIT_STORAGE_URI at redis:// when running several workers.
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
)


async def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 in the same ``{"error": ...}`` shape the checkout client reads."""
    return JSONResponse(
        status_code=429,
        content={"error": f"Too many requests, limit is {exc.detail}"},
    )
