"""
Batch Orchestrator

Runs a list of uploaded files through the ingestion pipeline one at a time
under a single effective context, and reports one result per file.

Per-file outcome:
- completed: indexed (possibly with metadata warnings)
- failed: a stage failed after the pipeline started
- rejected: never started (permission, quota, validation)
- cancelled: not reached because the batch was cancelled
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence
import logging

from kbportal.core.exceptions import ValidationError
from kbportal.core.permissions import Permission
from kbportal.models.document import Document
from kbportal.services import permission_service
from kbportal.services.ingestion_service import (
    IngestionPipeline,
    UploadedFile,
    validate_file,
    validate_technique,
)
from kbportal.services.quota_service import QuotaService
from kbportal.utils.retry import retry_on_result

logger = logging.getLogger(__name__)

CAUSE_MESSAGES = {
    "permission_denied": "You don't have permission to upload documents.",
    "quota_exceeded": "Document quota reached. Delete documents or upgrade your plan.",
    "validation_error": "The file was rejected before upload.",
    "storage_unavailable": "File storage is unavailable. Try again later.",
    "indexing_unavailable": "The indexing service is unavailable. Try again later.",
    "cancelled": "The upload was cancelled.",
    "internal_error": "An unexpected error occurred while processing the file.",
}

RETRYABLE_CAUSES = frozenset({"storage_unavailable", "indexing_unavailable"})


class _AccountLock:
    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


# Per effective account, shared by every orchestrator in this process.
# An entry lives only while some batch holds or waits for it.
_account_locks: Dict[str, _AccountLock] = {}


@asynccontextmanager
async def _account_lock(account_id: str):
    entry = _account_locks.get(account_id)
    if entry is None:
        entry = _account_locks[account_id] = _AccountLock()
    entry.users += 1
    try:
        async with entry.lock:
            yield
    finally:
        entry.users -= 1
        if entry.users == 0 and _account_locks.get(account_id) is entry:
            del _account_locks[account_id]


@dataclass
class FileResult:
    filename: str
    status: str
    cause: Optional[str] = None
    message: Optional[str] = None
    document_id: Optional[str] = None
    indexing_document_id: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    attempts: int = 0


@dataclass
class BatchResult:
    results: List[FileResult] = field(default_factory=list)
    error: Optional[str] = None

    def _count(self, status: str) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def success_count(self) -> int:
        return self._count("completed")

    @property
    def failure_count(self) -> int:
        return self._count("failed")

    @property
    def rejected_count(self) -> int:
        return self._count("rejected")

    @property
    def cancelled_count(self) -> int:
        return self._count("cancelled")


def _rejected(file: UploadedFile, cause: str, message: Optional[str] = None) -> FileResult:
    return FileResult(
        filename=file.filename,
        status="rejected",
        cause=cause,
        message=message or CAUSE_MESSAGES[cause],
    )


def _should_retry(result: FileResult) -> bool:
    return result.status == "failed" and result.cause in RETRYABLE_CAUSES


def result_from_document(filename: str, document: Document) -> FileResult:
    info = document.processing_info or {}
    if document.status == "completed":
        return FileResult(
            filename=filename,
            status="completed",
            document_id=document.id,
            indexing_document_id=document.indexing_document_id,
            warnings=list(info.get("warnings", [])),
        )

    cause = info.get("failure_cause", "internal_error")
    return FileResult(
        filename=filename,
        status="failed",
        cause=cause,
        message=document.error_message or CAUSE_MESSAGES.get(cause),
        document_id=document.id,
    )


class BatchOrchestrator:
    """Sequential, continue-on-error batch ingestion"""

    def __init__(
        self,
        pipeline: IngestionPipeline,
        quota_service: QuotaService,
        max_attempts: Optional[int] = None,
        retry_wait=None,
    ):
        """
        Args:
            pipeline: IngestionPipeline
            quota_service: QuotaService used for the live quota checks
            max_attempts: Attempts per file (default: settings.BATCH_RETRY_MAX_ATTEMPTS)
            retry_wait: Tenacity wait strategy between attempts
        """
        self.pipeline = pipeline
        self.quota_service = quota_service
        self.max_attempts = max_attempts
        self.retry_wait = retry_wait

    async def run_batch(
        self,
        files: Sequence[UploadedFile],
        context,
        credential=None,
        technique: Optional[str] = None,
        on_progress: Optional[Callable[[int, FileResult], None]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> BatchResult:
        """
        Ingest files sequentially and report per-file results

        Args:
            files: Files in submission order
            context: EffectiveContext of the caller
            credential: Target knowledge base (default: context.credential)
            technique: Indexing technique for every file
            on_progress: Called after every file with (percent, result)
            should_cancel: Checked between files; True cancels the rest

        Returns:
            BatchResult (never raises, except task cancellation)
        """
        batch = BatchResult()
        total = len(files)

        def record(result: FileResult):
            batch.results.append(result)
            if on_progress is not None and total:
                try:
                    on_progress(int(len(batch.results) * 100 / total), result)
                except Exception as e:
                    logger.warning(f"Progress callback failed: {e}")

        def reject_all(cause: str, message: str):
            batch.error = message
            for file in files[len(batch.results):]:
                record(_rejected(file, cause, message))

        try:
            if not permission_service.authorize(context, Permission.UPLOAD):
                logger.warning(f"Upload refused for {context.principal_id}: missing upload permission")
                reject_all("permission_denied", CAUSE_MESSAGES["permission_denied"])
                return batch

            credential = credential or context.credential
            if credential is None:
                reject_all(
                    "validation_error",
                    "Indexing credentials not configured. Add them on the settings page."
                )
                return batch

            try:
                technique = validate_technique(technique)
            except ValidationError as e:
                reject_all("validation_error", e.message)
                return batch

            async with _account_lock(context.effective_account_id):
                await self._run_files(batch, files, context, credential, technique, record, should_cancel)

        except Exception as e:
            logger.exception(f"Batch for account {context.effective_account_id} aborted")
            batch.error = f"Batch aborted: {e}"
            for file in files[len(batch.results):]:
                record(FileResult(
                    filename=file.filename,
                    status="failed",
                    cause="internal_error",
                    message=CAUSE_MESSAGES["internal_error"],
                ))

        logger.info(
            f"Batch for account {context.effective_account_id}: "
            f"{batch.success_count} completed, {batch.failure_count} failed, "
            f"{batch.rejected_count} rejected, {batch.cancelled_count} cancelled"
        )
        return batch

    async def _run_files(self, batch, files, context, credential, technique, record, should_cancel):
        status = await self.quota_service.check_quota(context.effective_account_id, credential)
        if status.error:
            batch.error = status.error
            for file in files:
                record(_rejected(file, "indexing_unavailable", status.error))
            return

        slots = status.remaining
        if slots < len(files):
            logger.info(
                f"Account {context.effective_account_id} has room for {slots} of {len(files)} files"
            )

        for index, file in enumerate(files):
            if should_cancel is not None and should_cancel():
                logger.info(f"Batch cancelled with {len(files) - index} files left")
                for remaining in files[index:]:
                    record(FileResult(
                        filename=remaining.filename,
                        status="cancelled",
                        cause="cancelled",
                        message=CAUSE_MESSAGES["cancelled"],
                    ))
                return

            try:
                validate_file(file)
            except ValidationError as e:
                record(_rejected(file, "validation_error", e.message))
                continue

            if slots <= 0:
                record(_rejected(file, "quota_exceeded"))
                continue
            slots -= 1

            record(await self._process_file(file, context, credential, technique))

    async def _process_file(self, file, context, credential, technique) -> FileResult:
        """Ingest one file, re-checking quota before every attempt"""
        state = {"document_id": None, "attempts": 0}

        async def attempt() -> FileResult:
            state["attempts"] += 1
            status = await self.quota_service.check_quota(context.effective_account_id, credential)
            if not status.allowed:
                if status.error:
                    result = FileResult(
                        filename=file.filename,
                        status="failed",
                        cause="indexing_unavailable",
                        message=status.error,
                    )
                else:
                    result = _rejected(file, "quota_exceeded")
                result.document_id = state["document_id"]
                return result

            document = await self.pipeline.ingest(
                file,
                credential,
                context.effective_account_id,
                context.principal_id,
                technique,
                document_id=state["document_id"],
            )
            state["document_id"] = document.id
            return result_from_document(file.filename, document)

        try:
            retrying = retry_on_result(_should_retry, self.max_attempts, self.retry_wait)
            result = await retrying(attempt)
        except ValidationError as e:
            result = _rejected(file, "validation_error", e.message)
        except Exception as e:
            logger.exception(f"Unexpected error ingesting {file.filename}")
            result = FileResult(
                filename=file.filename,
                status="failed",
                cause="internal_error",
                message=f"{CAUSE_MESSAGES['internal_error']} ({e.__class__.__name__})",
                document_id=state["document_id"],
            )

        result.attempts = state["attempts"]
        return result
