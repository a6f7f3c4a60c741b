"""
Account API endpoints
Effective context, indexing credentials (settings page), and quota usage
"""

from typing import List

from fastapi import APIRouter, Depends

from kbportal.api.deps import (
    Principal,
    get_current_principal,
    get_effective_context,
    get_credential_store,
    get_quota_service,
    get_resolver,
)
from kbportal.core.exceptions import PermissionDenied
from kbportal.core.permissions import Permission, serialize_permissions
from kbportal.schemas.account import (
    CredentialResponse,
    CredentialSave,
    EffectiveContextResponse,
    UsageResponse,
)
from kbportal.services import permission_service
from kbportal.services.credential_store import CredentialRecord, CredentialStore
from kbportal.services.quota_service import QuotaService
from kbportal.services.resolver import EffectiveAccountResolver, EffectiveContext
from kbportal.utils.sanitize import get_safe_api_key_display

router = APIRouter(prefix="/account", tags=["account"])


def credential_response(record: CredentialRecord) -> CredentialResponse:
    return CredentialResponse(
        id=record.id,
        name=record.name,
        dataset_handle=record.dataset_handle,
        api_key_preview=get_safe_api_key_display(record.api_key),
        max_documents=record.max_documents
    )


def _require_owner(context: EffectiveContext):
    if context.is_delegate:
        raise PermissionDenied("Only the account owner can manage indexing credentials")


@router.get("/context", response_model=EffectiveContextResponse)
async def get_context(context: EffectiveContext = Depends(get_effective_context)):
    """Who the caller acts for, with which permissions and default knowledge base"""
    return EffectiveContextResponse(
        effective_account_id=context.effective_account_id,
        principal_id=context.principal_id,
        is_delegate=context.is_delegate,
        permissions=serialize_permissions(context.permissions),
        credential=credential_response(context.credential) if context.credential else None
    )


@router.get("/credentials", response_model=List[CredentialResponse])
async def list_credentials(
    context: EffectiveContext = Depends(get_effective_context),
    store: CredentialStore = Depends(get_credential_store)
):
    """All knowledge bases of the account, default first (owner only)"""
    _require_owner(context)
    return [credential_response(record) for record in store.get_credentials(context.effective_account_id)]


@router.put("/credentials", response_model=CredentialResponse)
async def save_credentials(
    body: CredentialSave,
    principal: Principal = Depends(get_current_principal),
    resolver: EffectiveAccountResolver = Depends(get_resolver),
    store: CredentialStore = Depends(get_credential_store)
):
    """
    Save indexing-service credentials (settings page)

    The dataset ID / API key pair is verified against the indexing service
    first. The account is created on the first save.

    Raises:
        400: pair rejected by the indexing service
        403: caller is a delegate
        502: indexing service unreachable
    """
    _require_owner(resolver.resolve(principal.id))

    record = await store.save_credential(
        principal.id,
        body.dataset_handle,
        body.api_key,
        name=body.name,
        credential_id=body.credential_id,
        create_new=body.create_new
    )
    return credential_response(record)


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    context: EffectiveContext = Depends(get_effective_context),
    quota_service: QuotaService = Depends(get_quota_service)
):
    """Live document usage against the quota of the selected knowledge base"""
    permission_service.require(context, Permission.VIEW)
    usage = await quota_service.get_usage(context.effective_account_id, context.credential)
    return UsageResponse(**usage)
