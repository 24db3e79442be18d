"""Wildcard matching over ``feature:resource:action`` permission strings.

Provides:
- ``has_permission`` / ``has_any_permission`` / ``has_all_permissions``: the hot path.
- ``matches_permission``: does one granted pattern cover one required permission.
- ``expand_wildcard``, ``minimize_permissions``, ``sort_by_specificity``:
  audit and debug helpers over permission sets.
- ``parse_permission`` / ``build_permission`` / ``is_valid_permission``.

Matching is segment-wise and case-sensitive. Strings that are not exactly
three non-empty colon-separated segments never match anything.
"""

from __future__ import annotations

from typing import Iterable, NamedTuple, Optional

from ..exceptions import InvalidPermissionError
from .constants import ALL_PERMISSIONS, WILDCARD, get_all_permissions


class ParsedPermission(NamedTuple):
    feature: str
    resource: str
    action: str


def is_valid_permission(permission: object) -> bool:
    """Exactly three non-empty colon-separated segments."""
    if not isinstance(permission, str) or not permission:
        return False
    parts = permission.split(":")
    return len(parts) == 3 and all(parts)


def parse_permission(permission: str) -> Optional[ParsedPermission]:
    if not is_valid_permission(permission):
        return None
    feature, resource, action = permission.split(":")
    return ParsedPermission(feature, resource, action)


def build_permission(feature: str, resource: str, action: str) -> str:
    """Join three segments into a permission string.

    Raises:
        InvalidPermissionError: if a segment is empty or contains ``:``.
    """
    permission = f"{feature}:{resource}:{action}"
    if not is_valid_permission(permission):
        raise InvalidPermissionError(
            f"Invalid permission segments: {feature!r}, {resource!r}, {action!r}",
            permission=permission,
        )
    return permission


def is_wildcard(permission: str) -> bool:
    return WILDCARD in permission


def get_wildcard_specificity(permission: str) -> int:
    """Number of non-wildcard segments (0-3), or -1 for invalid strings."""
    parsed = parse_permission(permission)
    if parsed is None:
        return -1
    return sum(1 for part in parsed if part != WILDCARD)


def matches_permission(granted: str, required: str) -> bool:
    """True if the granted pattern covers the required permission."""
    if granted == ALL_PERMISSIONS:
        return is_valid_permission(required)
    granted_parts = parse_permission(granted)
    required_parts = parse_permission(required)
    if granted_parts is None or required_parts is None:
        return False
    return all(g == WILDCARD or g == r for g, r in zip(granted_parts, required_parts))


def has_permission(user_permissions: Iterable[str], required: str) -> bool:
    """Check if a permission set grants ``required``.

    Checks in order:
    1. ``*:*:*`` (superuser)
    2. exact match
    3. segment-wise wildcard match

    Example::

        has_permission(["documents:*:*"], "documents:drawing:read")  # True
        has_permission(["documents:*:*"], "rfis:rfi:create")         # False
    """
    if not is_valid_permission(required):
        return False
    perm_set = user_permissions if isinstance(user_permissions, (set, frozenset)) else set(user_permissions)
    if ALL_PERMISSIONS in perm_set or required in perm_set:
        return True
    return any(matches_permission(granted, required) for granted in perm_set)


def has_any_permission(user_permissions: Iterable[str], required: Iterable[str]) -> bool:
    """OR over ``required``; an empty list grants nothing."""
    perm_set = frozenset(user_permissions)
    return any(has_permission(perm_set, perm) for perm in required)


def has_all_permissions(user_permissions: Iterable[str], required: Iterable[str]) -> bool:
    """AND over ``required``; an empty list is vacuously granted."""
    perm_set = frozenset(user_permissions)
    return all(has_permission(perm_set, perm) for perm in required)


def filter_permissions(user_permissions: Iterable[str], candidates: Iterable[str]) -> list[str]:
    """The candidates the permission set grants, in input order."""
    perm_set = frozenset(user_permissions)
    return [perm for perm in candidates if has_permission(perm_set, perm)]


def create_permission_map(user_permissions: Iterable[str], candidates: Iterable[str]) -> dict[str, bool]:
    """Map each candidate to whether the permission set grants it (UI rendering)."""
    perm_set = frozenset(user_permissions)
    return {perm: has_permission(perm_set, perm) for perm in candidates}


def expand_wildcard(pattern: str, universe: Optional[Iterable[str]] = None) -> list[str]:
    """Concrete permissions from ``universe`` covered by ``pattern``.

    ``universe`` defaults to every declared permission. Wildcard entries of the
    universe are left out; only concrete permissions are enumerated.
    """
    candidates = list(universe) if universe is not None else get_all_permissions()
    return [
        perm for perm in candidates if not is_wildcard(perm) and matches_permission(pattern, perm)
    ]


def sort_by_specificity(permissions: Iterable[str]) -> list[str]:
    """Most specific first; stable for equal specificity."""
    return sorted(permissions, key=get_wildcard_specificity, reverse=True)


def minimize_permissions(permissions: Iterable[str]) -> list[str]:
    """Drop every permission already covered by a broader one in the set.

    ``*:*:*`` absorbs everything; ``documents:*:*`` absorbs ``documents:x:y``.
    Invalid strings are discarded.
    """
    perms = [p for p in permissions if is_valid_permission(p)]
    if ALL_PERMISSIONS in perms:
        return [ALL_PERMISSIONS]

    minimized: list[str] = []
    for perm in perms:
        if any(matches_permission(existing, perm) for existing in minimized):
            continue
        minimized = [existing for existing in minimized if not matches_permission(perm, existing)]
        minimized.append(perm)
    return minimized


__all__ = [
    "ParsedPermission",
    "is_valid_permission",
    "parse_permission",
    "build_permission",
    "is_wildcard",
    "get_wildcard_specificity",
    "matches_permission",
    "has_permission",
    "has_any_permission",
    "has_all_permissions",
    "filter_permissions",
    "create_permission_map",
    "expand_wildcard",
    "sort_by_specificity",
    "minimize_permissions",
]
