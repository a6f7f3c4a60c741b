"""
Administrator API endpoints
Account plans, quotas, and knowledge base creation (admin label required)
"""

from fastapi import APIRouter, Depends, status

from kbportal.api.account import credential_response
from kbportal.api.deps import (
    Principal,
    get_credential_store,
    get_indexing_client,
    require_admin,
)
from kbportal.schemas.account import (
    AccountPlanUpdate,
    AccountResponse,
    CredentialAdminUpdate,
    CredentialResponse,
    DatasetCreate,
)
from kbportal.services.credential_store import CredentialRecord, CredentialStore

router = APIRouter(prefix="/admin", tags=["admin"])


@router.put("/accounts/{account_id}/plan", response_model=AccountResponse)
async def set_account_plan(
    account_id: str,
    body: AccountPlanUpdate,
    admin: Principal = Depends(require_admin),
    store: CredentialStore = Depends(get_credential_store)
):
    """Move an account to another plan and reset its quota"""
    account = store.set_account_plan(account_id, body.account_type, body.max_documents)
    return AccountResponse(
        id=account.id,
        account_type=account.account_type,
        name=account.name,
        credentials=[
            credential_response(CredentialRecord.from_model(c)) for c in account.credentials
        ]
    )


@router.patch("/credentials/{credential_id}", response_model=CredentialResponse)
async def update_credential(
    credential_id: str,
    body: CredentialAdminUpdate,
    admin: Principal = Depends(require_admin),
    store: CredentialStore = Depends(get_credential_store)
):
    """Edit a credential, including its document quota"""
    record = store.update_credential(credential_id, **body.model_dump(exclude_unset=True))
    return credential_response(record)


@router.post("/datasets", status_code=status.HTTP_201_CREATED)
async def create_dataset(
    body: DatasetCreate,
    admin: Principal = Depends(require_admin),
    indexing_client=Depends(get_indexing_client)
):
    """Create a new knowledge base at the indexing service"""
    return await indexing_client.create_dataset(body.name)
