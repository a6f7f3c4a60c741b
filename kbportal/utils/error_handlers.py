"""
Centralized Error Handling

Maps the portal's exception taxonomy to HTTP status codes and JSON bodies.
Includes fallbacks for database errors and unexpected exceptions.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from typing import Dict, Any
import logging
import traceback

from kbportal.core.exceptions import (
    KBPortalException,
    AuthenticationRequired,
    DelegateInactive,
    PermissionDenied,
    QuotaExceeded,
    UpstreamUnavailable,
    ValidationError,
    PartialIngestionFailure,
    LookupFailed,
    NotFoundError,
)
from kbportal.utils.sanitize import sanitize_string

logger = logging.getLogger(__name__)


STATUS_CODES = {
    AuthenticationRequired: status.HTTP_401_UNAUTHORIZED,
    DelegateInactive: status.HTTP_403_FORBIDDEN,
    PermissionDenied: status.HTTP_403_FORBIDDEN,
    QuotaExceeded: status.HTTP_429_TOO_MANY_REQUESTS,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    UpstreamUnavailable: status.HTTP_502_BAD_GATEWAY,
    PartialIngestionFailure: status.HTTP_502_BAD_GATEWAY,
    LookupFailed: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class ErrorHandler:
    """Centralized error handling"""

    @staticmethod
    def status_code_for(error: KBPortalException) -> int:
        for exc_type in type(error).__mro__:
            if exc_type in STATUS_CODES:
                return STATUS_CODES[exc_type]
        return status.HTTP_500_INTERNAL_SERVER_ERROR

    @staticmethod
    def handle_portal_error(error: KBPortalException) -> Dict[str, Any]:
        """
        Handle portal domain errors

        Args:
            error: KBPortalException subclass

        Returns:
            Error dictionary with error code, message and details
        """
        if isinstance(error, (UpstreamUnavailable, LookupFailed)):
            logger.error(f"{error.error_code}: {sanitize_string(error.message)}")
        else:
            logger.warning(f"{error.error_code}: {sanitize_string(error.message)}")
        return error.to_dict()

    @staticmethod
    def handle_database_error(error: Exception) -> Dict[str, Any]:
        """
        Handle database errors

        Args:
            error: Database exception

        Returns:
            Error dictionary with message and details
        """
        if isinstance(error, IntegrityError):
            logger.warning(f"Database integrity error: {error}")
            return {
                "error": "integrity_error",
                "message": "Data integrity violation. Duplicate entry or constraint failed.",
                "details": str(error.orig) if hasattr(error, 'orig') else str(error)
            }

        elif isinstance(error, OperationalError):
            logger.error(f"Database operational error: {error}")
            return {
                "error": "database_error",
                "message": "Database connection or operational error."
            }

        logger.error(f"Database error: {error}")
        return {
            "error": "database_error",
            "message": "Database error occurred."
        }

    @staticmethod
    def handle_generic_error(error: Exception) -> Dict[str, Any]:
        logger.error(f"Unexpected error: {error}\n{traceback.format_exc()}")
        return {
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again.",
            "type": type(error).__name__
        }


# Global exception handlers for FastAPI

async def portal_error_handler(request: Request, exc: KBPortalException):
    """FastAPI exception handler for the portal's domain errors"""
    error_data = ErrorHandler.handle_portal_error(exc)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationRequired) else None
    return JSONResponse(
        status_code=ErrorHandler.status_code_for(exc),
        content=error_data,
        headers=headers
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """FastAPI exception handler for database errors"""
    error_data = ErrorHandler.handle_database_error(exc)
    status_code = (
        status.HTTP_409_CONFLICT
        if isinstance(exc, IntegrityError)
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )
    return JSONResponse(status_code=status_code, content=error_data)


async def generic_error_handler(request: Request, exc: Exception):
    """FastAPI exception handler for generic errors"""
    error_data = ErrorHandler.handle_generic_error(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_data
    )


def setup_error_handlers(app):
    """
    Setup global error handlers for FastAPI app

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(KBPortalException, portal_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    logger.info("Error handlers registered")
