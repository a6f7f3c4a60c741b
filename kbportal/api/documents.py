"""
Document API endpoints
Batch upload, listing, and deletion
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
import logging

from kbportal.api.deps import (
    Principal,
    get_current_principal,
    get_effective_context,
    get_resolver,
    get_batch_orchestrator,
    get_document_service,
)
from kbportal.middleware.rate_limiter import upload_rate_limit
from kbportal.schemas.document import (
    BatchResultResponse,
    DocumentListResponse,
    DocumentResponse,
)
from kbportal.services.batch_service import BatchOrchestrator, BatchResult
from kbportal.services.document_service import DocumentService
from kbportal.services.ingestion_service import UploadedFile
from kbportal.services.resolver import EffectiveAccountResolver, EffectiveContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def _batch_status_code(batch: BatchResult) -> int:
    causes = {result.cause for result in batch.results}
    if batch.results and batch.rejected_count == len(batch.results):
        if causes == {"permission_denied"}:
            return status.HTTP_403_FORBIDDEN
        if causes == {"quota_exceeded"}:
            return status.HTTP_429_TOO_MANY_REQUESTS
    return status.HTTP_200_OK


@router.post("", response_model=BatchResultResponse)
@upload_rate_limit()
async def upload_documents(
    request: Request,
    response: Response,
    files: List[UploadFile] = File(..., description="Files to ingest (PDF, DOCX, TXT)"),
    indexing_technique: Optional[str] = Form(None, description="high_quality or economy"),
    credential_id: Optional[str] = Form(None, description="Knowledge base (default: the account's default)"),
    principal: Principal = Depends(get_current_principal),
    resolver: EffectiveAccountResolver = Depends(get_resolver),
    orchestrator: BatchOrchestrator = Depends(get_batch_orchestrator)
):
    """
    Upload one or more files into the knowledge base

    Files are processed one after another; each gets its own result.

    Returns:
        200 with per-file results (including partial success),
        403 when the caller may not upload,
        429 when every file was rejected for quota
    """
    context = resolver.resolve(principal.id, credential_id)

    uploads = []
    for upload in files:
        uploads.append(UploadedFile(
            filename=upload.filename or "",
            content=await upload.read(),
            content_type=upload.content_type
        ))

    logger.info(f"Batch upload of {len(uploads)} files by {principal.id}")
    batch = await orchestrator.run_batch(uploads, context, technique=indexing_technique)

    response.status_code = _batch_status_code(batch)
    return BatchResultResponse.model_validate(batch)


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    limit: int = 20,
    offset: int = 0,
    status_filter: Optional[str] = None,
    context: EffectiveContext = Depends(get_effective_context),
    service: DocumentService = Depends(get_document_service)
):
    """
    List documents of the effective account

    Args:
        limit: Max number of documents to return (default: 20, max: 100)
        offset: Number of documents to skip
        status_filter: pending, completed, or failed
    """
    limit = min(limit, 100)
    documents, total = service.list_documents(context, limit=limit, offset=offset, status=status_filter)

    return DocumentListResponse(
        data=[DocumentResponse.model_validate(doc) for doc in documents],
        pagination={
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": (offset + limit) < total
        }
    )


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    context: EffectiveContext = Depends(get_effective_context),
    service: DocumentService = Depends(get_document_service)
):
    return DocumentResponse.model_validate(service.get_document(context, document_id))


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    context: EffectiveContext = Depends(get_effective_context),
    service: DocumentService = Depends(get_document_service)
):
    """Delete a document from the account, the indexing service, and storage"""
    await service.delete_document(context, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
