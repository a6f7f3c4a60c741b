"""
Quota Management Service

Enforces the per-credential document quota. The document count is read live
from the indexing service on every check, never from a local counter.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from kbportal.core.exceptions import QuotaExceeded, UpstreamUnavailable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaStatus:
    allowed: bool
    remaining: int
    limit: int
    used: Optional[int]
    error: Optional[str] = None


class QuotaService:
    """
    Track and enforce document quotas

    Quota comes from Credential.max_documents (defaulted per account type);
    usage is the number of documents in the credential's dataset.
    Any failure to count fails closed.
    """

    def __init__(self, indexing_client):
        """Initialize quota service with the indexing client used for live counts"""
        self.indexing_client = indexing_client

    async def check_quota(self, effective_account_id: str, credential) -> QuotaStatus:
        """
        Check whether one more document fits

        Args:
            effective_account_id: Account the upload is for
            credential: CredentialRecord carrying max_documents

        Returns:
            QuotaStatus; allowed is False when the count cannot be obtained
        """
        if credential is None:
            return QuotaStatus(
                allowed=False,
                remaining=0,
                limit=0,
                used=None,
                error="Indexing credentials not configured"
            )

        try:
            used = await self.indexing_client.count_documents(
                credential.dataset_handle,
                credential.api_key
            )
        except UpstreamUnavailable as e:
            logger.error(f"Quota check failed for account {effective_account_id}: {e.message}")
            return QuotaStatus(
                allowed=False,
                remaining=0,
                limit=credential.max_documents,
                used=None,
                error=f"Could not verify document quota: {e.message}"
            )

        remaining = credential.max_documents - used
        status = QuotaStatus(
            allowed=remaining > 0,
            remaining=max(remaining, 0),
            limit=credential.max_documents,
            used=used
        )

        logger.debug(
            f"Quota check for account {effective_account_id}: "
            f"{used}/{credential.max_documents} (allowed={status.allowed})"
        )
        return status

    async def require_quota(self, effective_account_id: str, credential) -> QuotaStatus:
        """
        Raises:
            QuotaExceeded: no room left, or the count could not be obtained
        """
        status = await self.check_quota(effective_account_id, credential)
        if not status.allowed:
            message = status.error or (
                f"Document quota exceeded. Limit: {status.limit}, Used: {status.used}"
            )
            raise QuotaExceeded(message, limit=status.limit, used=status.used)
        return status

    async def get_usage(self, effective_account_id: str, credential) -> dict:
        """
        Dashboard usage summary

        Never raises; an unavailable count is reported through "error".
        """
        status = await self.check_quota(effective_account_id, credential)

        percentage = 0.0
        if status.used is not None and status.limit > 0:
            percentage = round(min(status.used / status.limit * 100, 100.0), 1)

        return {
            "used": status.used,
            "limit": status.limit,
            "available": status.remaining,
            "percentage": percentage,
            "error": status.error
        }
