"""
Effective-Account Resolver

Turns an authenticated principal into the account it acts for:
- Active delegate -> parent account, stored permission subset
- Inactive delegate -> DelegateInactive (no fallback to an own account)
- Anyone else -> own account, full permissions

The result is derived per operation and never cached.
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional
import logging

from kbportal.core.exceptions import DelegateInactive, NotFoundError, ValidationError
from kbportal.core.permissions import FULL_PERMISSIONS, Permission, parse_permissions
from kbportal.services.credential_store import CredentialRecord, CredentialStore
from kbportal.services.delegate_directory import DelegateDirectory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectiveContext:
    """Who is acting, for which account, with what permissions"""
    effective_account_id: str
    principal_id: str
    credential: Optional[CredentialRecord]
    permissions: FrozenSet[Permission]
    is_delegate: bool

    def require_credential(self) -> CredentialRecord:
        if self.credential is None:
            raise ValidationError("Indexing credentials not configured. Add them on the settings page.")
        return self.credential


class EffectiveAccountResolver:
    """Read-only resolution of principal -> effective context"""

    def __init__(self, delegates: DelegateDirectory, credentials: CredentialStore):
        self.delegates = delegates
        self.credentials = credentials

    def resolve(self, principal_id: str, credential_id: Optional[str] = None) -> EffectiveContext:
        """
        Resolve the effective context for a principal

        Args:
            principal_id: Authenticated principal
            credential_id: Specific knowledge base of the effective account
                (default: the account's oldest credential)

        Returns:
            EffectiveContext

        Raises:
            DelegateInactive: principal is a deactivated delegate
            NotFoundError: credential_id is not one of the effective account's
            LookupFailed: relational store unavailable
        """
        delegate = self.delegates.lookup(principal_id)

        if delegate is not None:
            if not delegate.is_active:
                logger.warning(f"Inactive delegate {principal_id} refused")
                raise DelegateInactive(
                    "Your delegate access has been deactivated. Contact the account owner."
                )
            account_id = delegate.parent_account_id
            permissions = parse_permissions(delegate.permissions or [])
            is_delegate = True
        else:
            account_id = principal_id
            permissions = FULL_PERMISSIONS
            is_delegate = False

        credential = self.credentials.get_credential(account_id, credential_id)
        if credential_id is not None and credential is None:
            raise NotFoundError("Credential not found", credential_id=credential_id)

        logger.debug(
            f"Resolved {principal_id} -> account {account_id} "
            f"(delegate={is_delegate}, credential={credential.id if credential else None})"
        )

        return EffectiveContext(
            effective_account_id=account_id,
            principal_id=principal_id,
            credential=credential,
            permissions=permissions,
            is_delegate=is_delegate,
        )
