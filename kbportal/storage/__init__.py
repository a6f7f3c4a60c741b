"""
File storage system
Supports both local filesystem and S3-compatible storage
"""

from kbportal.storage.base import StorageBackend
from kbportal.storage.local import LocalStorage
from kbportal.storage.s3 import S3Storage
from kbportal.storage.factory import get_storage_backend

__all__ = [
    "StorageBackend",
    "LocalStorage",
    "S3Storage",
    "get_storage_backend",
]
