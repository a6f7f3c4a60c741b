"""
Pydantic Schemas for account, credential, and admin endpoints
Request/Response validation
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class CredentialResponse(BaseModel):
    """Credential as shown on the settings page (API key masked)"""
    id: str
    name: Optional[str] = None
    dataset_handle: str
    api_key_preview: str = Field(..., description="Masked indexing-service API key")
    max_documents: int


class CredentialSave(BaseModel):
    """Schema for saving indexing-service credentials"""
    dataset_handle: str = Field(..., min_length=1, max_length=255, description="Dataset ID at the indexing service")
    api_key: str = Field(..., min_length=1, max_length=255, description="Dataset-scoped API key")
    name: Optional[str] = Field(None, max_length=255, description="Knowledge base name")
    credential_id: Optional[str] = Field(None, description="Credential to update (default: the account's default)")
    create_new: bool = Field(False, description="Add another knowledge base instead of updating")


class EffectiveContextResponse(BaseModel):
    """Resolved effective context of the caller"""
    effective_account_id: str
    principal_id: str
    is_delegate: bool
    permissions: List[str]
    credential: Optional[CredentialResponse] = None


class UsageResponse(BaseModel):
    """Document quota usage"""
    used: Optional[int] = None
    limit: int
    available: int
    percentage: float
    error: Optional[str] = None


class AccountPlanUpdate(BaseModel):
    """Schema for changing an account's plan (admin)"""
    account_type: str = Field(..., description="free, trial, or paid")
    max_documents: Optional[int] = Field(None, ge=0, description="Explicit quota (default: plan default)")


class AccountResponse(BaseModel):
    id: str
    account_type: str
    name: Optional[str] = None
    credentials: List[CredentialResponse] = Field(default_factory=list)


class DatasetCreate(BaseModel):
    """Schema for creating a knowledge base at the indexing service (admin)"""
    name: str = Field(..., min_length=1, max_length=255)


class RegisterRequest(BaseModel):
    """Request schema for principal registration"""
    name: Optional[str] = Field(None, max_length=255, description="Key name")


class RegisterResponse(BaseModel):
    """Response schema for principal registration"""
    principal_id: str
    api_key: str = Field(..., description="API key (save this - only shown once!)")


class CredentialAdminUpdate(BaseModel):
    """Schema for editing a credential (admin, all fields optional)"""
    name: Optional[str] = Field(None, max_length=255)
    dataset_handle: Optional[str] = Field(None, max_length=255)
    api_key: Optional[str] = Field(None, max_length=255)
    max_documents: Optional[int] = Field(None, ge=0)
