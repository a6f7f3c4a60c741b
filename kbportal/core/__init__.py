"""
Core Utilities

Modules:
    - security: API key generation and hashing
    - exceptions: Error taxonomy and HTTP helpers
    - permissions: Closed permission set for delegates
"""

from kbportal.core import security, exceptions, permissions

__all__ = ["security", "exceptions", "permissions"]
