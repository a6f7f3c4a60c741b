"""
Security utilities for authentication
API key generation and hashing
"""

import secrets
import hashlib
from kbportal.config import settings


def generate_api_key() -> tuple[str, str]:
    """
    Generate a new API key and its hash

    Returns:
        tuple: (api_key, key_hash)
            - api_key: Full key to show user (only once)
            - key_hash: SHA-256 hash to store in database

    Example:
        >>> key, hash = generate_api_key()
        >>> key
        'kb_abc123def456...'
    """
    random_token = secrets.token_urlsafe(32)
    api_key = f"{settings.API_KEY_PREFIX}{random_token}"
    return api_key, hash_api_key(api_key)


def hash_api_key(api_key: str) -> str:
    """
    Hash an API key using SHA-256

    Args:
        api_key: The API key to hash

    Returns:
        str: SHA-256 hash of the key
    """
    return hashlib.sha256(api_key.encode()).hexdigest()


def verify_api_key(api_key: str, key_hash: str) -> bool:
    """Constant-time comparison of a presented key against its stored hash"""
    return secrets.compare_digest(hash_api_key(api_key), key_hash)


def generate_principal_id() -> str:
    """Opaque principal id for identities issued by this service"""
    return secrets.token_hex(10)
