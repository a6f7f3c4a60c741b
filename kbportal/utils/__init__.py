"""
Utility Functions and Classes

Provides retry logic, error handling, and other helper functions.
"""

from kbportal.utils.retry import retry_on_result, default_wait
from kbportal.utils.error_handlers import (
    ErrorHandler,
    setup_error_handlers
)

__all__ = [
    "retry_on_result",
    "default_wait",
    "ErrorHandler",
    "setup_error_handlers"
]
