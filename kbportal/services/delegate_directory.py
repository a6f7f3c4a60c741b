"""
Delegate Directory

Sub-user records: which principal acts for which parent account, with which
permissions. Lookup matches the delegate's own principal id, never the
parent account id.
"""

from typing import Iterable, List, Optional, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kbportal.core.exceptions import LookupFailed, NotFoundError, PermissionDenied, ValidationError
from kbportal.core.permissions import Permission, parse_permissions, serialize_permissions
from kbportal.core.security import generate_api_key, generate_principal_id
from kbportal.models.account import Account
from kbportal.models.api_key import APIKey
from kbportal.models.delegate import Delegate
from kbportal.services import permission_service

logger = logging.getLogger(__name__)

DEFAULT_DELEGATE_PERMISSIONS = (Permission.VIEW,)


def _check_grant(context, granted):
    """A delegate can only hand out permissions it holds itself"""
    if not context.is_delegate:
        return
    extra = set(granted) - set(context.permissions)
    if extra:
        raise PermissionDenied(
            "Cannot grant permissions you do not have",
            permissions=serialize_permissions(extra),
        )


class DelegateDirectory:
    """Lookup and management of delegate records"""

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, error: SQLAlchemyError):
        self.db.rollback()
        logger.error(f"Delegate directory {action} failed: {error}")
        raise LookupFailed(f"Could not {action} delegate records") from error

    def lookup(self, principal_id: str) -> Optional[Delegate]:
        """
        Find the delegate record for a principal

        Returns:
            Delegate or None when the principal is not a delegate

        Raises:
            LookupFailed: database error; callers must abort rather than
                treat the principal as a plain account owner
        """
        try:
            return self.db.query(Delegate).filter(Delegate.principal_id == principal_id).first()
        except SQLAlchemyError as e:
            self._fail("look up", e)

    def list_delegates(self, context) -> List[Delegate]:
        permission_service.require(context, Permission.MANAGE_USERS)
        try:
            return (
                self.db.query(Delegate)
                .filter(Delegate.parent_account_id == context.effective_account_id)
                .order_by(Delegate.created_at.asc())
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("list", e)

    def _get_scoped(self, context, delegate_id: str) -> Delegate:
        try:
            delegate = self.db.query(Delegate).filter(
                Delegate.id == delegate_id,
                Delegate.parent_account_id == context.effective_account_id
            ).first()
        except SQLAlchemyError as e:
            self._fail("read", e)

        if delegate is None:
            raise NotFoundError("Delegate not found", delegate_id=delegate_id)
        return delegate

    def create_delegate(
        self,
        context,
        email: Optional[str] = None,
        name: Optional[str] = None,
        permissions: Optional[Iterable] = None,
        principal_id: Optional[str] = None,
        issue_api_key: bool = True,
    ) -> Tuple[Delegate, Optional[str]]:
        """
        Add a delegate to the caller's effective account

        Args:
            context: Caller's effective context (needs manage_users)
            email: Delegate email
            name: Display name
            permissions: Permission names (default: view only)
            principal_id: Existing identity to attach; a new one is issued when omitted
            issue_api_key: Issue a bearer key for the delegate principal

        Returns:
            (delegate, api_key) where api_key is shown exactly once, or None

        Raises:
            PermissionDenied: caller lacks manage_users, or is a delegate
                granting permissions it does not hold
            ValidationError: unknown permission, self-delegation, or the
                principal already is a delegate or owns an account
        """
        permission_service.require(context, Permission.MANAGE_USERS)

        granted = parse_permissions(
            permissions if permissions is not None else DEFAULT_DELEGATE_PERMISSIONS
        )
        _check_grant(context, granted)

        if principal_id is None:
            principal_id = generate_principal_id()
        else:
            if principal_id in (context.principal_id, context.effective_account_id):
                raise ValidationError("An account cannot be its own delegate")

            if self.lookup(principal_id) is not None:
                raise ValidationError("This principal is already a delegate", principal_id=principal_id)

            try:
                owns_account = self.db.query(Account).filter(Account.id == principal_id).first()
            except SQLAlchemyError as e:
                self._fail("read", e)
            if owns_account is not None:
                raise ValidationError("This principal already owns an account", principal_id=principal_id)

        api_key = None
        try:
            delegate = Delegate(
                principal_id=principal_id,
                parent_account_id=context.effective_account_id,
                email=email,
                name=name,
                permissions=serialize_permissions(granted),
                is_active=True,
            )
            self.db.add(delegate)

            if issue_api_key:
                api_key, key_hash = generate_api_key()
                self.db.add(APIKey(
                    principal_id=principal_id,
                    key_hash=key_hash,
                    key_prefix=api_key[:15],
                    name=f"Delegate key ({email or name or principal_id})",
                    labels=[],
                ))

            self.db.commit()
            self.db.refresh(delegate)
        except SQLAlchemyError as e:
            self._fail("create", e)

        logger.info(
            f"Delegate {delegate.principal_id} added to account {context.effective_account_id} "
            f"with {delegate.permissions}"
        )
        return delegate, api_key

    def update_delegate(
        self,
        context,
        delegate_id: str,
        permissions: Optional[Iterable] = None,
        is_active: Optional[bool] = None,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Delegate:
        permission_service.require(context, Permission.MANAGE_USERS)
        delegate = self._get_scoped(context, delegate_id)
        if delegate.principal_id == context.principal_id:
            raise PermissionDenied("Delegates cannot change their own record")

        if permissions is not None:
            granted = parse_permissions(permissions)
            _check_grant(context, granted)
            delegate.permissions = serialize_permissions(granted)
        if is_active is not None:
            delegate.is_active = is_active
        if name is not None:
            delegate.name = name
        if email is not None:
            delegate.email = email

        try:
            self.db.commit()
            self.db.refresh(delegate)
        except SQLAlchemyError as e:
            self._fail("update", e)

        logger.info(f"Delegate {delegate.principal_id} updated (active={delegate.is_active})")
        return delegate

    def delete_delegate(self, context, delegate_id: str):
        """Remove a delegate record; the parent's documents are untouched"""
        permission_service.require(context, Permission.MANAGE_USERS)
        delegate = self._get_scoped(context, delegate_id)

        try:
            self.db.delete(delegate)
            self.db.commit()
        except SQLAlchemyError as e:
            self._fail("delete", e)

        logger.info(f"Delegate {delegate_id} removed from account {context.effective_account_id}")
