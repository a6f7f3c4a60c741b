"""
Closed permission set for delegated access
"""

from enum import Enum
from typing import FrozenSet, Iterable, List

from kbportal.core.exceptions import ValidationError


class Permission(str, Enum):
    VIEW = "view"
    UPLOAD = "upload"
    DELETE = "delete"
    MANAGE_USERS = "manage_users"


FULL_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)

# Stable storage order
_ORDER = {perm: idx for idx, perm in enumerate(Permission)}


def parse_permissions(values: Iterable) -> FrozenSet[Permission]:
    """
    Convert stored or submitted permission names into the closed set

    Unknown names are rejected instead of ignored so a typo can never
    silently grant or withhold access.

    Raises:
        ValidationError: if any value is not a known permission
    """
    if values is None:
        return frozenset()
    if isinstance(values, (str, bytes)):
        raise ValidationError("Permissions must be a list of names", value=str(values))

    parsed = set()
    for value in values:
        if isinstance(value, Permission):
            parsed.add(value)
            continue
        try:
            parsed.add(Permission(value))
        except ValueError:
            raise ValidationError(
                f"Unknown permission '{value}'",
                allowed=[p.value for p in Permission],
            )
    return frozenset(parsed)


def serialize_permissions(permissions: Iterable[Permission]) -> List[str]:
    return [perm.value for perm in sorted(set(permissions), key=_ORDER.__getitem__)]
