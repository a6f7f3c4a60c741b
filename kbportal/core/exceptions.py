"""
Custom exceptions for the knowledge-base portal
"""

from typing import Optional


class KBPortalException(Exception):
    """Base exception for the portal"""

    error_code = "error"

    def __init__(self, message: str = "", **details):
        super().__init__(message)
        self.message = message or self.__class__.__doc__
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.error_code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class AuthenticationRequired(KBPortalException):
    """No valid principal"""
    error_code = "authentication_required"


class DelegateInactive(KBPortalException):
    """Delegate account is inactive"""
    error_code = "delegate_inactive"


class PermissionDenied(KBPortalException):
    """Insufficient permissions"""
    error_code = "permission_denied"


class QuotaExceeded(KBPortalException):
    """Document quota exceeded"""
    error_code = "quota_exceeded"


class UpstreamUnavailable(KBPortalException):
    """External service unreachable or returned a non-success response"""
    error_code = "upstream_unavailable"

    def __init__(self, message: str = "", service: str = "", status_code: Optional[int] = None):
        super().__init__(message, service=service, status_code=status_code)
        self.service = service
        self.status_code = status_code


class ValidationError(KBPortalException):
    """Invalid input"""
    error_code = "validation_error"


class PartialIngestionFailure(KBPortalException):
    """Document indexed but metadata attachment failed"""
    error_code = "partial_ingestion_failure"


class LookupFailed(KBPortalException):
    """Relational store unreachable during lookup"""
    error_code = "lookup_failed"


class NotFoundError(KBPortalException):
    """Resource not found"""
    error_code = "not_found"

