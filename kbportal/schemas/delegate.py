"""
Pydantic Schemas for delegate management endpoints
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class DelegateCreate(BaseModel):
    """Schema for adding a delegate"""
    email: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, max_length=255)
    permissions: List[str] = Field(default_factory=lambda: ["view"], description="view, upload, delete, manage_users")
    principal_id: Optional[str] = Field(None, description="Existing identity to attach (a new one is issued if omitted)")


class DelegateUpdate(BaseModel):
    """Schema for updating a delegate (all fields optional)"""
    email: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, max_length=255)
    permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None


class DelegateResponse(BaseModel):
    id: str
    principal_id: str
    parent_account_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    permissions: List[str]
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DelegateCreateResponse(DelegateResponse):
    api_key: Optional[str] = Field(None, description="Delegate API key (only shown once!)")


class DelegateListResponse(BaseModel):
    data: List[DelegateResponse]
