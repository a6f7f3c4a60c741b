"""
API Key Model - Bearer tokens identifying a principal
"""

from sqlalchemy import Column, String, JSON, DateTime
from sqlalchemy.sql import func
import uuid

from kbportal.database import Base


class APIKey(Base):
    """
    API Key model for token-based authentication

    Attributes:
        id: Unique key identifier
        principal_id: Principal the key authenticates (account owner or delegate)
        key_hash: SHA-256 hash of the API key (for verification)
        key_prefix: First chars of key (for identification, e.g., "kb_ab12")
        name: Human-readable name for the key
        labels: Identity labels, e.g. ["admin"]
        expires_at: Optional expiration timestamp
        last_used_at: Last time key was used for authentication
        created_at: Key creation timestamp

    Security:
        - API key is hashed with SHA-256 before storage
        - Original key is only shown once upon creation
    """

    __tablename__ = "api_keys"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    principal_id = Column(String(64), nullable=False, index=True)

    key_hash = Column(String(255), unique=True, nullable=False, index=True)
    key_prefix = Column(String(20), nullable=False)
    name = Column(String(255))
    labels = Column(JSON, default=list)

    expires_at = Column(DateTime(timezone=True))
    last_used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<APIKey(id={self.id}, prefix={self.key_prefix}, principal_id={self.principal_id})>"
