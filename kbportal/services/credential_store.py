"""
Account Credential Store

Maps an account to its indexing-service credentials (dataset handle, API key)
and document quota. An account may hold several knowledge bases; the oldest
credential is the account's default.
"""

from dataclasses import dataclass
from typing import List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kbportal.config import ACCOUNT_TYPE_DEFAULT_QUOTAS
from kbportal.core.exceptions import (
    LookupFailed,
    NotFoundError,
    UpstreamUnavailable,
    ValidationError,
)
from kbportal.models.account import Account, ACCOUNT_TYPES
from kbportal.models.credential import Credential

logger = logging.getLogger(__name__)

FALLBACK_MAX_DOCUMENTS = ACCOUNT_TYPE_DEFAULT_QUOTAS["free"]


@dataclass(frozen=True)
class CredentialRecord:
    """Detached, read-only view of a Credential row"""
    id: str
    account_id: str
    name: Optional[str]
    dataset_handle: str
    api_key: str
    max_documents: int

    @classmethod
    def from_model(cls, credential: Credential) -> "CredentialRecord":
        return cls(
            id=credential.id,
            account_id=credential.account_id,
            name=credential.name,
            dataset_handle=credential.dataset_handle,
            api_key=credential.api_key,
            max_documents=credential.max_documents,
        )


def default_max_documents(account_type: Optional[str]) -> int:
    """Quota for a new credential when none is given explicitly"""
    return ACCOUNT_TYPE_DEFAULT_QUOTAS.get(account_type or "free", FALLBACK_MAX_DOCUMENTS)


def _validate_max_documents(max_documents: Optional[int]):
    if max_documents is not None and max_documents < 0:
        raise ValidationError("max_documents must be >= 0", max_documents=max_documents)


def _validate_account_type(account_type: str):
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError(
            f"Unknown account type '{account_type}'",
            allowed=list(ACCOUNT_TYPES),
        )


class CredentialStore:
    """
    Read and write account credentials

    Reads return detached CredentialRecord values; writes commit immediately.
    Database errors surface as LookupFailed.
    """

    def __init__(self, db: Session, indexing_client=None):
        """
        Args:
            db: Database session
            indexing_client: IndexingClient used to verify credentials before saving
        """
        self.db = db
        self.indexing_client = indexing_client

    def _fail(self, action: str, error: SQLAlchemyError):
        self.db.rollback()
        logger.error(f"Credential store {action} failed: {error}")
        raise LookupFailed(f"Could not {action} account credentials") from error

    def get_account(self, account_id: str) -> Optional[Account]:
        try:
            return self.db.query(Account).filter(Account.id == account_id).first()
        except SQLAlchemyError as e:
            self._fail("read", e)

    def get_credentials(self, account_id: str) -> List[CredentialRecord]:
        """All credentials of an account, oldest first"""
        try:
            rows = (
                self.db.query(Credential)
                .filter(Credential.account_id == account_id)
                .order_by(Credential.created_at.asc(), Credential.id.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("read", e)
        return [CredentialRecord.from_model(row) for row in rows]

    def get_credential(
        self,
        account_id: str,
        credential_id: Optional[str] = None
    ) -> Optional[CredentialRecord]:
        """
        One credential of an account

        Args:
            account_id: Owning account
            credential_id: Specific knowledge base (default: the oldest)

        Returns:
            CredentialRecord or None when the account has no matching credential
        """
        credentials = self.get_credentials(account_id)
        if credential_id is None:
            return credentials[0] if credentials else None

        for credential in credentials:
            if credential.id == credential_id:
                return credential
        return None

    def ensure_account(
        self,
        account_id: str,
        account_type: str = "free",
        name: Optional[str] = None
    ) -> Account:
        """Return the account, creating it on first use"""
        _validate_account_type(account_type)

        account = self.get_account(account_id)
        if account:
            return account

        try:
            account = Account(id=account_id, account_type=account_type, name=name)
            self.db.add(account)
            self.db.commit()
            self.db.refresh(account)
        except SQLAlchemyError as e:
            self._fail("create", e)

        logger.info(f"Created {account_type} account {account_id}")
        return account

    async def save_credential(
        self,
        account_id: str,
        dataset_handle: str,
        api_key: str,
        name: Optional[str] = None,
        credential_id: Optional[str] = None,
        create_new: bool = False,
    ) -> CredentialRecord:
        """
        Save indexing-service credentials for an account (settings page)

        The pair is verified against the indexing service before anything is
        persisted. Without credential_id the account's default credential is
        updated, or a first one is created. create_new adds another knowledge base.
        The quota of a new credential comes from the account-type table; owners
        never set their own quota.

        Raises:
            ValidationError: empty fields or the indexing service rejected the pair
            UpstreamUnavailable: indexing service unreachable
            NotFoundError: credential_id does not belong to the account
            LookupFailed: database error
        """
        dataset_handle = (dataset_handle or "").strip()
        api_key = (api_key or "").strip()
        if not dataset_handle or not api_key:
            raise ValidationError("Dataset ID and API key are both required")

        if self.indexing_client is None:
            raise UpstreamUnavailable("No indexing client configured", service="indexing")

        valid = await self.indexing_client.verify_credentials(dataset_handle, api_key)
        if not valid:
            raise ValidationError("The indexing service rejected this dataset ID / API key pair")

        account = self.ensure_account(account_id)

        try:
            credential = None
            if credential_id is not None:
                credential = self.db.query(Credential).filter(
                    Credential.id == credential_id,
                    Credential.account_id == account_id
                ).first()
                if credential is None:
                    raise NotFoundError("Credential not found", credential_id=credential_id)
            elif not create_new:
                credential = (
                    self.db.query(Credential)
                    .filter(Credential.account_id == account_id)
                    .order_by(Credential.created_at.asc(), Credential.id.asc())
                    .first()
                )

            if credential is None:
                credential = Credential(
                    account_id=account_id,
                    max_documents=default_max_documents(account.account_type),
                )
                self.db.add(credential)

            credential.dataset_handle = dataset_handle
            credential.api_key = api_key
            if name is not None:
                credential.name = name

            self.db.commit()
            self.db.refresh(credential)
        except SQLAlchemyError as e:
            self._fail("save", e)

        logger.info(f"Saved credential {credential.id} for account {account_id}")
        return CredentialRecord.from_model(credential)

    def set_account_plan(
        self,
        account_id: str,
        account_type: str,
        max_documents: Optional[int] = None
    ) -> Account:
        """
        Change an account's plan (administrator operation)

        Every credential of the account gets max_documents, or the new plan's
        default when omitted.
        """
        _validate_account_type(account_type)
        _validate_max_documents(max_documents)

        account = self.ensure_account(account_id, account_type=account_type)
        quota = max_documents if max_documents is not None else default_max_documents(account_type)

        try:
            account.account_type = account_type
            for credential in account.credentials:
                credential.max_documents = quota
            self.db.commit()
            self.db.refresh(account)
        except SQLAlchemyError as e:
            self._fail("update", e)

        logger.info(f"Account {account_id} moved to {account_type} plan (max_documents={quota})")
        return account

    def update_credential(
        self,
        credential_id: str,
        max_documents: Optional[int] = None,
        name: Optional[str] = None,
        dataset_handle: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> CredentialRecord:
        """Edit any field of a credential (administrator operation)"""
        _validate_max_documents(max_documents)

        try:
            credential = self.db.query(Credential).filter(Credential.id == credential_id).first()
        except SQLAlchemyError as e:
            self._fail("read", e)

        if credential is None:
            raise NotFoundError("Credential not found", credential_id=credential_id)

        try:
            if max_documents is not None:
                credential.max_documents = max_documents
            if name is not None:
                credential.name = name
            if dataset_handle:
                credential.dataset_handle = dataset_handle
            if api_key:
                credential.api_key = api_key
            self.db.commit()
            self.db.refresh(credential)
        except SQLAlchemyError as e:
            self._fail("update", e)

        return CredentialRecord.from_model(credential)
