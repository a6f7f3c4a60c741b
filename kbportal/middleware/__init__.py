"""
Middleware components
"""

from kbportal.middleware.rate_limiter import (
    limiter,
    upload_rate_limit,
    auth_rate_limit,
    setup_rate_limiting
)

__all__ = [
    "limiter",
    "upload_rate_limit",
    "auth_rate_limit",
    "setup_rate_limiting"
]
