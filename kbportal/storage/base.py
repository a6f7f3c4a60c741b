"""
Abstract base class for storage backends
Defines the interface for the durable object store (local, S3, etc.)
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageBackend(ABC):
    """Abstract base class for file storage backends"""

    @abstractmethod
    def save(
        self,
        content: bytes,
        account_id: str,
        document_id: str,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        """
        Save raw file bytes under an account-scoped path

        Args:
            content: File bytes
            account_id: Effective account the file belongs to
            document_id: Document record id
            filename: Original filename
            content_type: MIME type (optional)

        Returns:
            str: Storage path/key for the saved file
        """
        pass

    @abstractmethod
    def get_url(self, storage_path: str, account_id: str) -> str:
        """
        Get the canonical retrieval URL for a stored file

        The URL is attached to the indexed document as metadata, so it must
        not expire.

        Args:
            storage_path: Path/key returned by save()
            account_id: Owner account (for verification)

        Returns:
            str: Canonical URL
        """
        pass

    @abstractmethod
    def delete(self, storage_path: str, account_id: str):
        """Delete file from storage"""
        pass

    @staticmethod
    def account_prefix(account_id: str) -> str:
        return f"accounts/{account_id}/"

    def document_key(self, account_id: str, document_id: str, filename: str) -> str:
        """Account-scoped key: accounts/{account}/documents/{document}/{filename}"""
        safe_name = filename.replace("\\", "/").split("/")[-1] or "file"
        return f"{self.account_prefix(account_id)}documents/{document_id}/{safe_name}"
