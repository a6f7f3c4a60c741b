"""
Pydantic Schemas for Document endpoints
Request/Response validation
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import datetime


class DocumentResponse(BaseModel):
    """Schema for document responses"""
    id: str
    account_id: str
    credential_id: Optional[str] = None
    uploaded_by: Optional[str] = None
    filename: str
    content_type: Optional[str] = None
    size_bytes: Optional[int] = None
    storage_url: Optional[str] = None
    indexing_document_id: Optional[str] = None
    indexing_technique: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    processing_info: Dict = Field(default_factory=dict)
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentListResponse(BaseModel):
    """Schema for paginated list of documents"""
    data: List[DocumentResponse]
    pagination: Dict = Field(
        description="Pagination info",
        example={
            "total": 100,
            "limit": 20,
            "offset": 0,
            "has_more": True
        }
    )


class FileResultResponse(BaseModel):
    """Outcome for one file of a batch upload"""
    filename: str
    status: str = Field(..., description="completed, failed, rejected, or cancelled")
    cause: Optional[str] = None
    message: Optional[str] = None
    document_id: Optional[str] = None
    indexing_document_id: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    attempts: int = 0

    class Config:
        from_attributes = True


class BatchResultResponse(BaseModel):
    """Aggregate outcome of a batch upload"""
    success_count: int
    failure_count: int
    rejected_count: int
    cancelled_count: int = 0
    results: List[FileResultResponse]
    error: Optional[str] = None

    class Config:
        from_attributes = True
