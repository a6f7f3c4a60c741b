"""
Authentication API endpoints
Principal registration and API key issuance
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from kbportal.database import get_db
from kbportal.models.api_key import APIKey
from kbportal.core.security import generate_api_key, generate_principal_id
from kbportal.middleware.rate_limiter import auth_rate_limit
from kbportal.schemas.account import RegisterRequest, RegisterResponse

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@auth_rate_limit()
async def register(
    request: Request,
    body: Optional[RegisterRequest] = None,
    db: Session = Depends(get_db)
):
    """
    Issue a new principal and its API key

    The account itself is created on the first credentials save.

    **Important**: The API key is only returned once. Save it securely!
    """
    principal_id = generate_principal_id()
    api_key, key_hash = generate_api_key()

    db.add(APIKey(
        principal_id=principal_id,
        key_hash=key_hash,
        key_prefix=api_key[:15],
        name=(body.name if body and body.name else "Default API Key"),
        labels=[]
    ))
    db.commit()

    return RegisterResponse(principal_id=principal_id, api_key=api_key)
