"""
Rate Limiting for Aaghaaz Admin API
===================================
slowapi limiter keyed on the caller.

Credential endpoints get tight per-route limits (brute force protection):
- /auth/login, /students/login: 5 req/min
- /auth/login/verify-2fa: 5 req/min
- /auth/register: 3 req/min

Storage is in-process by default (``memory://``); point
RATE_LIMIT_STORAGE_URI at Redis when running several workers.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from aaghaaz.core.config import settings
from aaghaaz.core.logging_config import logger

LOGIN_LIMIT = "5/minute"
TWO_FACTOR_LIMIT = "5/minute"
REGISTER_LIMIT = "3/minute"


def get_user_identifier(request: Request) -> str:
    """
    Get rate limit key.

    Authenticated callers (principal set by the access gate) are keyed by
    account id, everyone else by IP address.
    """
    principal = getattr(request.state, "principal", None)
    if principal is not None:
        return f"user:{principal.subject}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_user_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Return 429 with a Retry-After header"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_user_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please slow down.",
            "code": "RATE_LIMIT_EXCEEDED",
        },
        headers={"Retry-After": "60"},
    )
