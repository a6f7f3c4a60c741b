"""
SQLAlchemy Database Models

Identifiers are strings: account ids are opaque ids issued by the identity
provider, every other id is a UUID4 rendered as text.

Models:
    - Account: Tenant owning credentials, quota, and documents
    - Credential: Indexing-service dataset handle, API key, and quota
    - Delegate: Secondary principal with a restricted permission set
    - Document: File record tracking the ingestion pipeline
    - APIKey: Bearer tokens identifying a principal

Relationships:
    Account 1:N Credential
    Account 1:N Delegate
    Account 1:N Document
"""

from kbportal.models.account import Account
from kbportal.models.credential import Credential
from kbportal.models.delegate import Delegate
from kbportal.models.document import Document
from kbportal.models.api_key import APIKey

__all__ = ["Account", "Credential", "Delegate", "Document", "APIKey"]
