"""
Rate Limiting Middleware

Protects the upload and registration endpoints from abuse using SlowAPI.
Limits are tracked per API key when one is presented, per client IP otherwise.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request, status
from fastapi.responses import JSONResponse
from kbportal.config import settings
from kbportal.utils.sanitize import get_safe_api_key_display
import logging

logger = logging.getLogger(__name__)


def get_api_key_from_request(request: Request) -> str:
    """
    Extract API key from request for principal-specific rate limiting

    Checks:
    1. Authorization header (Bearer token)
    2. X-API-Key header

    Returns:
        API key or IP address as fallback
    """
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:]

    api_key = request.headers.get("X-API-Key")
    if api_key:
        return api_key

    return get_remote_address(request)


def rate_limit_key(request: Request) -> str:
    """
    Generate rate limit key based on API key or IP

    Format: "api_key:{key}" or "ip:{address}"
    """
    api_key = get_api_key_from_request(request)

    if api_key and api_key != get_remote_address(request):
        return f"api_key:{api_key}"

    return f"ip:{api_key}"


limiter = Limiter(
    key_func=rate_limit_key,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    enabled=settings.RATE_LIMIT_ENABLED
)


def custom_rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Respond 429 with a Retry-After hint, logging only a redacted key"""
    retry_after = "60"
    if exc.headers:
        retry_after = exc.headers.get("Retry-After", retry_after)

    api_key = get_api_key_from_request(request)
    safe_key = get_safe_api_key_display(api_key) if api_key != get_remote_address(request) else api_key

    logger.warning(f"Rate limit exceeded for {safe_key} on {request.url.path}")

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down.",
            "retry_after": int(retry_after),
            "limit": str(exc.detail),
            "endpoint": request.url.path
        },
        headers={"Retry-After": retry_after}
    )


def upload_rate_limit():
    """
    Rate limit for document uploads

    Default: 20 requests per hour
    """
    return limiter.limit(settings.RATE_LIMIT_UPLOAD)


def auth_rate_limit():
    """
    Rate limit for principal registration

    Default: 5 requests per minute
    """
    return limiter.limit(settings.RATE_LIMIT_AUTH)


def setup_rate_limiting(app):
    """
    Setup rate limiting middleware

    Args:
        app: FastAPI application instance
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, custom_rate_limit_exceeded_handler)

    if settings.RATE_LIMIT_ENABLED:
        logger.info(f"Rate limiting enabled ({settings.RATE_LIMIT_STORAGE_URI})")
    else:
        logger.warning("Rate limiting disabled")
