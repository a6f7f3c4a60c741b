"""
Permission Gate

Decides whether an effective context may perform an action. Account owners
hold every permission; delegates hold exactly their stored subset.
Evaluated on every call, never cached.
"""

import logging

from kbportal.core.exceptions import PermissionDenied
from kbportal.core.permissions import Permission

logger = logging.getLogger(__name__)


def authorize(context, action: Permission) -> bool:
    if not context.is_delegate:
        return True
    return Permission(action) in context.permissions


def require(context, action: Permission):
    """
    Raise unless the context may perform the action

    Raises:
        PermissionDenied: delegate lacks the permission
    """
    if not authorize(context, action):
        action = Permission(action)
        logger.warning(
            f"Permission denied: delegate {context.principal_id} "
            f"lacks '{action.value}' on account {context.effective_account_id}"
        )
        raise PermissionDenied(
            f"You don't have permission to {action.value.replace('_', ' ')}",
            action=action.value,
        )
