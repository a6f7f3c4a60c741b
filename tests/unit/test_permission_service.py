"""
Unit tests for the permission gate
"""

from itertools import combinations

import pytest

from kbportal.core.exceptions import PermissionDenied
from kbportal.core.permissions import FULL_PERMISSIONS, Permission
from kbportal.services import permission_service
from kbportal.services.resolver import EffectiveContext

ALL_SUBSETS = [
    frozenset(combo)
    for size in range(len(Permission) + 1)
    for combo in combinations(list(Permission), size)
]


def _context(permissions, is_delegate=True):
    return EffectiveContext(
        effective_account_id="acct-1",
        principal_id="principal-1",
        credential=None,
        permissions=frozenset(permissions),
        is_delegate=is_delegate,
    )


def test_sixteen_subsets():
    assert len(ALL_SUBSETS) == 16


@pytest.mark.parametrize("granted", ALL_SUBSETS)
def test_delegate_authorized_exactly_for_granted_actions(granted):
    context = _context(granted)
    for action in Permission:
        assert permission_service.authorize(context, action) is (action in granted)


@pytest.mark.parametrize("action", list(Permission))
def test_owner_always_authorized(action):
    context = _context(FULL_PERMISSIONS, is_delegate=False)
    assert permission_service.authorize(context, action) is True


def test_owner_authorized_even_with_empty_set():
    context = _context(frozenset(), is_delegate=False)
    assert permission_service.authorize(context, Permission.MANAGE_USERS) is True


def test_require_raises_for_missing_permission():
    context = _context({Permission.VIEW})
    with pytest.raises(PermissionDenied) as exc_info:
        permission_service.require(context, Permission.UPLOAD)
    assert exc_info.value.details["action"] == "upload"


def test_require_passes_for_granted_permission():
    context = _context({Permission.VIEW, Permission.UPLOAD})
    permission_service.require(context, "upload")
