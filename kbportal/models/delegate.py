"""
Delegate Model - Secondary principals acting under a parent account
"""

from sqlalchemy import Column, String, Boolean, ForeignKey, JSON, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

from kbportal.database import Base


class Delegate(Base):
    """
    Delegate model - a "sub-user" with a restricted permission set

    Attributes:
        id: Unique delegate record identifier
        principal_id: The delegate's own identity (unique, indexed for lookup)
        parent_account_id: Account the delegate acts for
        email: Delegate email
        name: Display name
        permissions: Stored permission names (validated by the delegate directory)
        is_active: Inactive delegates are refused, never downgraded to a plain account

    Relationships:
        parent_account: Account the delegate acts for (many-to-one)

    Invariants:
        - A delegate resolves to exactly one parent account
        - The effective credential set is always the parent's
        - Deleting a delegate never deletes the parent's documents
    """

    __tablename__ = "delegates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    principal_id = Column(String(64), unique=True, nullable=False, index=True)
    parent_account_id = Column(
        String(64),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    email = Column(String(255))
    name = Column(String(255))
    permissions = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    parent_account = relationship("Account", back_populates="delegates")

    def __repr__(self):
        return f"<Delegate(id={self.id}, principal_id={self.principal_id}, parent={self.parent_account_id})>"
