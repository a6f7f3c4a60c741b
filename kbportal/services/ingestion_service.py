"""
Ingestion Pipeline

Pushes one file through three stages:
1. Durable store upload (file bytes -> canonical URL)
2. Indexing submission (file bytes -> indexing document id)
3. Metadata attachment (canonical URL -> indexed document)

A pending Document row is written first and always ends completed or failed.
Stage 1/2 failures stop the pipeline; a stage 3 failure is only a warning.
No retries happen here.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
import logging

from sqlalchemy.orm import Session

from kbportal.config import settings, INDEXING_TECHNIQUES
from kbportal.core.exceptions import (
    NotFoundError,
    PartialIngestionFailure,
    UpstreamUnavailable,
    ValidationError,
)
from kbportal.models.document import Document
from kbportal.storage.base import StorageBackend
from kbportal.utils.content_type import detect_content_type

logger = logging.getLogger(__name__)

# Failure causes recorded in Document.processing_info["failure_cause"]
STORAGE_UNAVAILABLE = "storage_unavailable"
INDEXING_UNAVAILABLE = "indexing_unavailable"
CANCELLED = "cancelled"
INTERNAL_ERROR = "internal_error"


@dataclass
class UploadedFile:
    """A file as received from the client"""
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content or b"")


def validate_file(file: UploadedFile) -> str:
    """
    Pre-flight checks before any stage runs

    Returns:
        str: Detected content type

    Raises:
        ValidationError: missing name, empty file, too large, or extension not allowed
    """
    if not file.filename or not file.filename.strip():
        raise ValidationError("File name is missing")

    if not file.content:
        raise ValidationError(f"{file.filename} is empty", filename=file.filename)

    if file.size > settings.MAX_UPLOAD_SIZE:
        limit_mb = settings.MAX_UPLOAD_SIZE // (1024 * 1024)
        raise ValidationError(
            f"{file.filename} exceeds the {limit_mb}MB upload limit",
            filename=file.filename,
            size_bytes=file.size,
        )

    extension = Path(file.filename).suffix.lower()
    if extension not in settings.ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"{file.filename}: unsupported file type '{extension or 'none'}'",
            filename=file.filename,
            allowed=settings.ALLOWED_EXTENSIONS,
        )

    return detect_content_type(file.filename, file.content_type)


def validate_technique(technique: Optional[str]) -> str:
    technique = technique or settings.INDEXING_DEFAULT_TECHNIQUE
    if technique not in INDEXING_TECHNIQUES:
        raise ValidationError(
            f"Unknown indexing technique '{technique}'",
            allowed=list(INDEXING_TECHNIQUES),
        )
    return technique


def _update_info(document: Document, **changes):
    # JSON columns are not mutation-tracked; assign a new dict
    info = dict(document.processing_info or {})
    info.update(changes)
    document.processing_info = info


class IngestionPipeline:
    """Storage upload, indexing submission, metadata attachment"""

    def __init__(
        self,
        db: Session,
        storage: StorageBackend,
        indexing_client,
        metadata_field: str = None,
    ):
        """
        Args:
            db: Database session
            storage: Durable object store
            indexing_client: IndexingClient
            metadata_field: Metadata name for the canonical URL
                (default: settings.INDEXING_SOURCE_URL_FIELD)
        """
        self.db = db
        self.storage = storage
        self.indexing_client = indexing_client
        self.metadata_field = metadata_field or settings.INDEXING_SOURCE_URL_FIELD

    def _start(
        self,
        file: UploadedFile,
        content_type: str,
        credential,
        account_id: str,
        uploaded_by: str,
        technique: str,
        document_id: Optional[str],
    ) -> Document:
        """Record a pending Document, or reset an earlier failed attempt for a rerun"""
        if document_id is not None:
            document = self.db.query(Document).filter(
                Document.id == document_id,
                Document.account_id == account_id
            ).first()
            if document is None:
                raise NotFoundError("Document not found", document_id=document_id)
            attempts = (document.processing_info or {}).get("attempts", 1) + 1
        else:
            document = Document(account_id=account_id, filename=file.filename)
            self.db.add(document)
            attempts = 1

        document.credential_id = credential.id
        document.uploaded_by = uploaded_by
        document.content_type = content_type
        document.size_bytes = file.size
        document.indexing_technique = technique
        document.storage_path = None
        document.storage_url = None
        document.indexing_document_id = None
        document.status = "pending"
        document.error_message = None
        document.processed_at = None
        document.processing_info = {"stage": "pending", "attempts": attempts, "warnings": []}

        self.db.commit()
        self.db.refresh(document)
        return document

    def _fail(self, document: Document, cause: str, message: str) -> Document:
        document.status = "failed"
        document.error_message = message
        document.processed_at = datetime.now(timezone.utc)
        _update_info(document, failure_cause=cause)
        self.db.commit()
        return document

    async def ingest(
        self,
        file: UploadedFile,
        credential,
        account_id: str,
        uploaded_by: str,
        technique: Optional[str] = None,
        document_id: Optional[str] = None,
    ) -> Document:
        """
        Run the three stages for one file

        Args:
            file: Uploaded file
            credential: CredentialRecord of the target knowledge base
            account_id: Effective account (owner of the Document and the storage path)
            uploaded_by: Acting principal
            technique: high_quality or economy (default: settings.INDEXING_DEFAULT_TECHNIQUE)
            document_id: Earlier failed Document to reuse for a rerun

        Returns:
            Document with status completed or failed

        Raises:
            ValidationError: file or technique rejected before any stage ran
            asyncio.CancelledError: after the Document was marked failed
        """
        content_type = validate_file(file)
        technique = validate_technique(technique)

        document = self._start(
            file, content_type, credential, account_id, uploaded_by, technique, document_id
        )
        logger.info(f"Ingesting {file.filename} as document {document.id} for account {account_id}")

        try:
            return await self._run_stages(document, file, content_type, credential, account_id, technique)
        except asyncio.CancelledError:
            logger.warning(f"Ingestion of document {document.id} cancelled at stage {document.processing_info.get('stage')}")
            self._fail(document, CANCELLED, "Upload cancelled")
            raise

    async def _run_stages(
        self,
        document: Document,
        file: UploadedFile,
        content_type: str,
        credential,
        account_id: str,
        technique: str,
    ) -> Document:
        # Stage 1: durable store
        try:
            storage_path = await asyncio.to_thread(
                self.storage.save, file.content, account_id, document.id, file.filename, content_type
            )
            storage_url = await asyncio.to_thread(self.storage.get_url, storage_path, account_id)
        except Exception as e:
            logger.error(f"Storage upload failed for document {document.id}: {e}")
            return self._fail(document, STORAGE_UNAVAILABLE, f"Storage upload failed: {e}")

        document.storage_path = storage_path
        document.storage_url = storage_url
        _update_info(document, stage="stored")
        self.db.commit()

        # Stage 2: indexing submission; the stored file is left in place on failure
        try:
            indexing_document_id = await self.indexing_client.create_document(
                credential.dataset_handle,
                credential.api_key,
                file.filename,
                file.content,
                content_type,
                technique,
            )
        except UpstreamUnavailable as e:
            return self._fail(document, INDEXING_UNAVAILABLE, f"Indexing failed: {e.message}")
        except Exception as e:
            logger.exception(f"Unexpected indexing error for document {document.id}")
            return self._fail(document, INTERNAL_ERROR, f"Indexing failed: {e}")

        document.indexing_document_id = indexing_document_id
        _update_info(document, stage="indexed")
        self.db.commit()

        # Stage 3: metadata; failure leaves the document completed with a warning
        try:
            await self.indexing_client.attach_metadata(
                credential.dataset_handle,
                credential.api_key,
                indexing_document_id,
                self.metadata_field,
                storage_url,
            )
            _update_info(document, stage="metadata_attached")
        except Exception as e:
            warning = PartialIngestionFailure(
                f"Document indexed but '{self.metadata_field}' metadata could not be attached: "
                f"{getattr(e, 'message', None) or e}",
                document_id=document.id,
            )
            logger.warning(warning.message)
            warnings = list((document.processing_info or {}).get("warnings", []))
            warnings.append(warning.message)
            _update_info(document, warnings=warnings)

        document.status = "completed"
        document.processed_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(document)

        logger.info(f"Document {document.id} completed (indexing id {indexing_document_id})")
        return document
