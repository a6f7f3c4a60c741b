"""
FastAPI dependencies
Authentication, database session, service wiring
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import List, Optional

from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from kbportal.database import get_db
from kbportal.models.api_key import APIKey
from kbportal.core.security import hash_api_key
from kbportal.core.exceptions import AuthenticationRequired, PermissionDenied
from kbportal.services.credential_store import CredentialStore
from kbportal.services.delegate_directory import DelegateDirectory
from kbportal.services.resolver import EffectiveAccountResolver, EffectiveContext
from kbportal.services.quota_service import QuotaService
from kbportal.services.ingestion_service import IngestionPipeline
from kbportal.services.batch_service import BatchOrchestrator
from kbportal.services.document_service import DocumentService

ADMIN_LABEL = "admin"


@dataclass(frozen=True)
class Principal:
    """Authenticated identity: opaque id plus identity-provider labels"""
    id: str
    labels: List[str] = field(default_factory=list)

    @property
    def is_admin(self) -> bool:
        return ADMIN_LABEL in self.labels


async def get_current_principal(
    authorization: Optional[str] = Header(None, description="Bearer token"),
    db: Session = Depends(get_db)
) -> Principal:
    """
    Get current authenticated principal from API key

    Args:
        authorization: Authorization header (format: "Bearer kb_...")
        db: Database session

    Returns:
        Principal

    Raises:
        AuthenticationRequired: missing, malformed, unknown, or expired key
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthenticationRequired("Invalid authorization header format")

    api_key = authorization[7:]
    if not api_key:
        raise AuthenticationRequired("API key missing")

    api_key_obj = db.query(APIKey).filter(APIKey.key_hash == hash_api_key(api_key)).first()
    if not api_key_obj:
        raise AuthenticationRequired("Invalid API key")

    now = datetime.now(timezone.utc)
    expires_at = api_key_obj.expires_at
    if expires_at is not None:
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at < now:
            raise AuthenticationRequired("API key expired")

    api_key_obj.last_used_at = now
    db.commit()

    return Principal(id=api_key_obj.principal_id, labels=list(api_key_obj.labels or []))


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """
    Raises:
        PermissionDenied: principal does not carry the admin label
    """
    if not principal.is_admin:
        raise PermissionDenied("Administrator access required")
    return principal


# ==============================================================================
# Service Singletons
# ==============================================================================
# Storage backends and the HTTP client are created once per process


@lru_cache(maxsize=1)
def get_storage():
    """
    Get singleton storage backend selected by STORAGE_BACKEND

    Returns:
        StorageBackend: LocalStorage or S3Storage
    """
    from kbportal.storage.factory import get_storage_backend
    return get_storage_backend()


@lru_cache(maxsize=1)
def get_indexing_client():
    """
    Get singleton IndexingClient

    Reuses one httpx connection pool across requests

    Returns:
        IndexingClient
    """
    from kbportal.clients.indexing import IndexingClient
    return IndexingClient()


# ==============================================================================
# Per-request services
# ==============================================================================


def get_credential_store(
    db: Session = Depends(get_db),
    indexing_client=Depends(get_indexing_client)
) -> CredentialStore:
    return CredentialStore(db, indexing_client)


def get_delegate_directory(db: Session = Depends(get_db)) -> DelegateDirectory:
    return DelegateDirectory(db)


def get_resolver(
    delegates: DelegateDirectory = Depends(get_delegate_directory),
    credentials: CredentialStore = Depends(get_credential_store)
) -> EffectiveAccountResolver:
    return EffectiveAccountResolver(delegates, credentials)


async def get_effective_context(
    credential_id: Optional[str] = Query(None, description="Knowledge base to act on (default: the account's default)"),
    principal: Principal = Depends(get_current_principal),
    resolver: EffectiveAccountResolver = Depends(get_resolver)
) -> EffectiveContext:
    """
    Resolve the caller's effective context for this request

    Raises:
        DelegateInactive: 403
        LookupFailed: 503
    """
    return resolver.resolve(principal.id, credential_id)


def get_quota_service(indexing_client=Depends(get_indexing_client)) -> QuotaService:
    return QuotaService(indexing_client)


def get_batch_orchestrator(
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    indexing_client=Depends(get_indexing_client),
    quota_service: QuotaService = Depends(get_quota_service)
) -> BatchOrchestrator:
    pipeline = IngestionPipeline(db, storage, indexing_client)
    return BatchOrchestrator(pipeline, quota_service)


def get_document_service(
    db: Session = Depends(get_db),
    storage=Depends(get_storage),
    indexing_client=Depends(get_indexing_client)
) -> DocumentService:
    return DocumentService(db, storage, indexing_client)
