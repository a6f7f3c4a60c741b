"""
Delegate management API endpoints
Every operation needs manage_users and is scoped to the caller's effective account
"""

from fastapi import APIRouter, Depends, Response, status

from kbportal.api.deps import get_effective_context, get_delegate_directory
from kbportal.schemas.delegate import (
    DelegateCreate,
    DelegateCreateResponse,
    DelegateListResponse,
    DelegateResponse,
    DelegateUpdate,
)
from kbportal.services.delegate_directory import DelegateDirectory
from kbportal.services.resolver import EffectiveContext

router = APIRouter(prefix="/delegates", tags=["delegates"])


@router.get("", response_model=DelegateListResponse)
async def list_delegates(
    context: EffectiveContext = Depends(get_effective_context),
    directory: DelegateDirectory = Depends(get_delegate_directory)
):
    delegates = directory.list_delegates(context)
    return DelegateListResponse(data=[DelegateResponse.model_validate(d) for d in delegates])


@router.post("", response_model=DelegateCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_delegate(
    body: DelegateCreate,
    context: EffectiveContext = Depends(get_effective_context),
    directory: DelegateDirectory = Depends(get_delegate_directory)
):
    """
    Add a delegate to the account

    A new principal and API key are issued unless principal_id names an
    existing identity. **The API key is only returned once.**

    Raises:
        400: unknown permission, self-delegation, principal already a delegate or owner
        403: caller lacks manage_users
    """
    delegate, api_key = directory.create_delegate(
        context,
        email=body.email,
        name=body.name,
        permissions=body.permissions,
        principal_id=body.principal_id,
        issue_api_key=body.principal_id is None
    )
    response = DelegateCreateResponse.model_validate(delegate)
    response.api_key = api_key
    return response


@router.patch("/{delegate_id}", response_model=DelegateResponse)
async def update_delegate(
    delegate_id: str,
    body: DelegateUpdate,
    context: EffectiveContext = Depends(get_effective_context),
    directory: DelegateDirectory = Depends(get_delegate_directory)
):
    """Change permissions, activation, or contact details of a delegate"""
    update_data = body.model_dump(exclude_unset=True)
    delegate = directory.update_delegate(context, delegate_id, **update_data)
    return DelegateResponse.model_validate(delegate)


@router.delete("/{delegate_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_delegate(
    delegate_id: str,
    context: EffectiveContext = Depends(get_effective_context),
    directory: DelegateDirectory = Depends(get_delegate_directory)
):
    """Remove a delegate; documents they uploaded stay with the account"""
    directory.delete_delegate(context, delegate_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
