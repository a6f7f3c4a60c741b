"""
Local file storage with account-scoped paths
Implements StorageBackend interface for local filesystem
"""

from pathlib import Path
from typing import Optional
from urllib.parse import quote
from kbportal.config import settings
from kbportal.storage.base import StorageBackend


class LocalStorage(StorageBackend):
    """Local file storage with account-scoped paths"""

    def __init__(self, base_path: str = settings.UPLOAD_DIR, public_base_url: str = ""):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _resolve(self, storage_path: str, account_id: str) -> Path:
        """Absolute path for a key, refusing anything outside the account's directory"""
        normalized_path = storage_path.replace('\\', '/')
        absolute_path = (self.base_path / normalized_path).resolve()

        expected_prefix = self.base_path / "accounts" / str(account_id)
        try:
            absolute_path.relative_to(expected_prefix)
        except ValueError:
            raise PermissionError(f"Access denied: file does not belong to account {account_id}")

        return absolute_path

    def save(
        self,
        content: bytes,
        account_id: str,
        document_id: str,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        """Save file to account-scoped local storage"""
        key = self.document_key(account_id, document_id, filename)
        file_path = self._resolve(key, account_id)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, "wb") as f:
            f.write(content)

        return key

    def get_url(self, storage_path: str, account_id: str) -> str:
        """
        Canonical URL for a stored file

        Uses STORAGE_PUBLIC_BASE_URL when the upload directory is served by a
        static host, otherwise a file:// URL.
        """
        absolute_path = self._resolve(storage_path, account_id)

        if not absolute_path.exists():
            raise FileNotFoundError(f"File not found: {storage_path}")

        if self.public_base_url:
            return f"{self.public_base_url}/{quote(storage_path)}"
        return absolute_path.as_uri()

    def delete(self, storage_path: str, account_id: str):
        """Delete file with account verification"""
        absolute_path = self._resolve(storage_path, account_id)
        if absolute_path.exists():
            absolute_path.unlink()
