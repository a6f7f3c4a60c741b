"""
Credential Model - Indexing-service credentials and document quota
"""

from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from kbportal.database import Base


class Credential(Base):
    """
    Credential model - one knowledge base of an account

    Attributes:
        id: Unique credential identifier
        account_id: Foreign key to accounts table
        name: Human-readable knowledge base name
        dataset_handle: Dataset id at the indexing service
        api_key: Bearer key scoped to the dataset
        max_documents: Document quota for this dataset (>= 0)

    Relationships:
        account: Owning account (many-to-one)

    Security:
        - api_key is stored as issued; protecting it at rest is the
          relational store's responsibility
    """

    __tablename__ = "credentials"
    __table_args__ = (
        CheckConstraint("max_documents >= 0", name="ck_credential_max_documents"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255))
    dataset_handle = Column(String(255), nullable=False)
    api_key = Column(String(255), nullable=False)
    max_documents = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    account = relationship("Account", back_populates="credentials")

    def __repr__(self):
        return f"<Credential(id={self.id}, dataset={self.dataset_handle}, account_id={self.account_id})>"
