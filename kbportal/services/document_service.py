"""
Document Service

Listing and deletion of an account's ingested documents.
"""

import asyncio
from typing import List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from kbportal.core.exceptions import NotFoundError, UpstreamUnavailable, ValidationError
from kbportal.core.permissions import Permission
from kbportal.models.credential import Credential
from kbportal.models.document import Document, DOCUMENT_STATUSES
from kbportal.services import permission_service

logger = logging.getLogger(__name__)


class DocumentService:
    def __init__(self, db: Session, storage=None, indexing_client=None):
        self.db = db
        self.storage = storage
        self.indexing_client = indexing_client

    def _scoped(self, context):
        return self.db.query(Document).filter(Document.account_id == context.effective_account_id)

    def list_documents(
        self,
        context,
        limit: int = 20,
        offset: int = 0,
        status: Optional[str] = None
    ) -> Tuple[List[Document], int]:
        """
        Documents of the effective account, newest first

        Returns:
            (documents, total)
        """
        permission_service.require(context, Permission.VIEW)

        if status is not None and status not in DOCUMENT_STATUSES:
            raise ValidationError(f"Unknown status '{status}'", allowed=list(DOCUMENT_STATUSES))

        query = self._scoped(context)
        if status is not None:
            query = query.filter(Document.status == status)

        total = query.with_entities(func.count(Document.id)).scalar()
        documents = (
            query.order_by(Document.created_at.desc())
            .offset(offset)
            .limit(min(limit, 100))
            .all()
        )
        return documents, total

    def get_document(self, context, document_id: str) -> Document:
        permission_service.require(context, Permission.VIEW)
        document = self._scoped(context).filter(Document.id == document_id).first()
        if document is None:
            raise NotFoundError("Document not found", document_id=document_id)
        return document

    def has_documents(self, context) -> bool:
        """Whether the account has at least one completed document (gates chat)"""
        permission_service.require(context, Permission.VIEW)
        return (
            self._scoped(context)
            .filter(Document.status == "completed")
            .first()
        ) is not None

    async def delete_document(self, context, document_id: str):
        """
        Delete a document

        The indexing service and the durable store are cleaned up best-effort;
        the record is deleted even if either cleanup fails.
        """
        permission_service.require(context, Permission.DELETE)

        document = self._scoped(context).filter(Document.id == document_id).first()
        if document is None:
            raise NotFoundError("Document not found", document_id=document_id)

        if document.indexing_document_id and document.credential_id and self.indexing_client:
            credential = self.db.query(Credential).filter(Credential.id == document.credential_id).first()
            if credential is not None:
                try:
                    await self.indexing_client.delete_document(
                        credential.dataset_handle,
                        credential.api_key,
                        document.indexing_document_id
                    )
                except UpstreamUnavailable as e:
                    logger.warning(
                        f"Could not delete document {document.indexing_document_id} "
                        f"from the indexing service: {e.message}"
                    )

        if document.storage_path and self.storage:
            try:
                await asyncio.to_thread(self.storage.delete, document.storage_path, document.account_id)
            except Exception as e:
                logger.warning(f"Could not delete stored file {document.storage_path}: {e}")

        self.db.delete(document)
        self.db.commit()
        logger.info(f"Document {document_id} deleted by {context.principal_id}")
