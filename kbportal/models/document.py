"""
Document Model - Files ingested into an account's knowledge base
"""

from sqlalchemy import Column, String, Text, Integer, ForeignKey, JSON, DateTime
from sqlalchemy.sql import func
import uuid

from kbportal.database import Base

DOCUMENT_STATUSES = ("pending", "completed", "failed")


class Document(Base):
    """
    Document model - one file pushed through the ingestion pipeline

    Attributes:
        id: Unique document identifier
        account_id: Effective account that owns the document
        credential_id: Knowledge base (credential) the file was indexed into
        uploaded_by: Principal that submitted the file (owner or delegate)

        filename: Original filename
        content_type: MIME type
        size_bytes: File size in bytes

        storage_path: Key returned by the durable store
        storage_url: Canonical retrieval URL (attached as metadata at the indexing service)
        indexing_document_id: Document id at the indexing service (null until stage 2)
        indexing_technique: high_quality or economy

        status: pending, completed, failed
        error_message: Cause of a failed ingestion
        processing_info: Stage reached, failure cause, soft warnings

    Invariant:
        - status == "completed" implies indexing_document_id is set

    Deletion:
        - Deleting a delegate never deletes documents; they belong to the account
    """

    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(64), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    credential_id = Column(String(36), ForeignKey("credentials.id", ondelete="SET NULL"), index=True)
    uploaded_by = Column(String(64))

    # File metadata
    filename = Column(String(512), nullable=False)
    content_type = Column(String(255))
    size_bytes = Column(Integer)

    # Stage results
    storage_path = Column(String(1024))
    storage_url = Column(String(2048))
    indexing_document_id = Column(String(255), index=True)
    indexing_technique = Column(String(32))

    # Processing status
    status = Column(String(50), default="pending", nullable=False, index=True)
    error_message = Column(Text)
    processing_info = Column(JSON, default=dict)
    processed_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Document(id={self.id}, filename={self.filename}, status={self.status})>"
