"""
Account Model - Top-level tenant owning credentials, quota, and documents
"""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from kbportal.database import Base

ACCOUNT_TYPES = ("free", "trial", "paid")


class Account(Base):
    """
    Account model - the tenant every principal ultimately acts for

    Attributes:
        id: Opaque principal id issued by the identity provider
        account_type: Plan (free, trial, paid), drives the default quota
        name: Display name
        created_at: First settings save
        updated_at: Last modification timestamp

    Relationships:
        credentials: Indexing-service credentials, one per knowledge base (one-to-many)
        delegates: Secondary principals acting under this account (one-to-many)

    Lifecycle:
        - Created on first settings save
        - Mutated by the owner or an administrator
        - Never hard-deleted automatically
    """

    __tablename__ = "accounts"

    id = Column(String(64), primary_key=True)
    account_type = Column(String(16), nullable=False, default="free")
    name = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    credentials = relationship(
        "Credential",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="Credential.created_at",
    )
    delegates = relationship("Delegate", back_populates="parent_account", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Account(id={self.id}, type={self.account_type})>"
