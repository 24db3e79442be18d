"""Multi-dimensional scope matching for scope-limited memberships.

A scope restricts a membership along four dimensions (trades, areas,
phases, tags). A resource is accessible when ANY dimension matches.

Decision order of ``matches_scope``:
1. user scope is None → allow (not scope-limited)
2. user scope present but empty → deny
3. resource untagged → resource visibility, else the default for its type
4. first dimension (trades, areas, phases, tags) with a match → allow
5. otherwise → deny

Areas match hierarchically: ``building-a`` covers ``building-a-floor-3`` and
``building-a/floor-3``, never the other way around.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, TypeVar

from ..models import (
    SCOPE_DIMENSIONS,
    ResourceScope,
    ScopeMatchResult,
    ScopeValidationResult,
    ScopeVisibility,
    UserScope,
)
from .constants import ProjectRole
from .scope_config import (
    COMPLEX_SCOPE_VALUE_THRESHOLD,
    DEFAULT_SCOPE_VALIDATION_RULES,
    SCOPE_EXEMPT_ROLES,
    ScopeValidationRules,
    can_role_have_scope,
    does_role_require_scope,
    get_default_visibility,
)

T = TypeVar("T")

AREA_SEPARATORS = ("-", "/")


def _norm(value: str) -> str:
    return value.strip().lower()


def normalize_scope(value: Any) -> Optional[UserScope]:
    """Coerce a stored scope (None, dict, legacy list of trades) into a UserScope."""
    return UserScope.coerce(value)


def is_scope_empty(scope: UserScope | ResourceScope) -> bool:
    return scope.is_empty()


def _intersection(user_values: list[str], resource_values: list[str]) -> list[str]:
    wanted = {_norm(v) for v in user_values}
    return [v for v in resource_values if _norm(v) in wanted]


def _hierarchical_match(user_areas: list[str], resource_areas: list[str]) -> list[str]:
    """Resource areas equal to, or descendants of, any user area."""
    prefixes = [_norm(a) for a in user_areas if _norm(a)]
    matched: list[str] = []
    for resource_area in resource_areas:
        normalized = _norm(resource_area)
        for user_area in prefixes:
            if normalized == user_area or any(
                normalized.startswith(user_area + sep) for sep in AREA_SEPARATORS
            ):
                matched.append(resource_area)
                break
    return matched


def matches_scope(
    user_scope: Optional[UserScope],
    resource_scope: Optional[ResourceScope],
    resource_type: Optional[str] = "document",
) -> ScopeMatchResult:
    """Decide whether a user scope grants access to a resource scope.

    Args:
        user_scope: The membership's scope (None = not scope-limited).
        resource_scope: Scope tags of the resource (None = untagged).
        resource_type: Used for default visibility of untagged resources.

    Returns:
        ScopeMatchResult with ``matched_dimension`` set on a dimension match.

    Example::

        matches_scope(
            UserScope(trades=["electrical"]),
            ResourceScope(trades=["electrical", "plumbing"]),
        ).matched_dimension  # "trades"
    """
    if user_scope is None:
        return ScopeMatchResult(has_access=True, reason="User has no scope restrictions")

    if user_scope.is_empty():
        return ScopeMatchResult(has_access=False, reason="User has empty scope (no access)")

    if resource_scope is None or resource_scope.is_empty():
        visibility = (resource_scope.visibility if resource_scope else None) or get_default_visibility(
            resource_type
        )
        if visibility == ScopeVisibility.PUBLIC:
            return ScopeMatchResult(
                has_access=True,
                matched_dimension="public",
                reason="Resource is publicly visible",
            )
        return ScopeMatchResult(
            has_access=False,
            reason="Resource has no scope tags and is tagged-only",
        )

    for dimension in SCOPE_DIMENSIONS:
        user_values = user_scope.dimension(dimension)
        resource_values = resource_scope.dimension(dimension)
        if not user_values or not resource_values:
            continue

        if dimension == "areas":
            matched = _hierarchical_match(user_values, resource_values)
        else:
            matched = _intersection(user_values, resource_values)

        if matched:
            return ScopeMatchResult(
                has_access=True,
                matched_dimension=dimension,
                matched_values=matched,
                reason=f"Matched {dimension}: {', '.join(matched)}",
            )

    return ScopeMatchResult(has_access=False, reason="No scope dimension matches")


def validate_scope_for_role(
    role: ProjectRole | str,
    scope: Optional[UserScope],
    rules: ScopeValidationRules = DEFAULT_SCOPE_VALIDATION_RULES,
) -> ScopeValidationResult:
    """Check a scope assignment against the rules for ``role``.

    Exempt roles may not carry a scope; foreman and subcontractor must.
    """
    role = ProjectRole(role)
    errors: list[str] = []
    warnings: list[str] = []

    if role in SCOPE_EXEMPT_ROLES:
        if scope is not None and not scope.is_empty():
            errors.append(f"{role.value} cannot have scope restrictions (always has full access)")
        return ScopeValidationResult(valid=not errors, errors=errors, warnings=warnings)

    if does_role_require_scope(role) and (scope is None or scope.is_empty()):
        errors.append(f"{role.value} requires scope assignment (trades, areas, phases, or tags)")
        return ScopeValidationResult(valid=False, errors=errors, warnings=warnings)

    if not can_role_have_scope(role):
        if scope is not None and not scope.is_empty():
            errors.append(f"{role.value} should not have scope restrictions")
        return ScopeValidationResult(valid=not errors, errors=errors, warnings=warnings)

    if scope is None:
        return ScopeValidationResult(valid=True)

    for dimension in SCOPE_DIMENSIONS:
        count = len(scope.dimension(dimension))
        limit = rules.limit_for(dimension)
        if count > limit:
            errors.append(f"Too many {dimension} assigned ({count}/{limit})")

    all_values = [v for dimension in SCOPE_DIMENSIONS for v in scope.dimension(dimension)]
    if any(not v or not v.strip() for v in all_values):
        errors.append("Scope values cannot be empty strings")

    used_dimensions = sum(1 for dimension in SCOPE_DIMENSIONS if scope.dimension(dimension))
    if used_dimensions >= 3 and len(all_values) > COMPLEX_SCOPE_VALUE_THRESHOLD:
        warnings.append(
            "Scope is very broad (multiple dimensions with many values). "
            "Consider narrowing scope for clarity."
        )

    return ScopeValidationResult(valid=not errors, errors=errors, warnings=warnings)


def merge_scopes(*scopes: Optional[UserScope]) -> Optional[UserScope]:
    """Dimension-wise union; None when every input is None."""
    present = [s for s in scopes if s is not None]
    if not present:
        return None

    merged: dict[str, list[str]] = {dimension: [] for dimension in SCOPE_DIMENSIONS}
    for scope in present:
        for dimension in SCOPE_DIMENSIONS:
            bucket = merged[dimension]
            for value in scope.dimension(dimension):
                if value not in bucket:
                    bucket.append(value)
    return UserScope(**merged)


def is_scope_subset(inner: Optional[UserScope], outer: Optional[UserScope]) -> bool:
    """True if every value of ``inner`` also appears in ``outer`` (case-insensitive).

    None (unrestricted) is a subset of anything; a restricted scope is never a
    subset of None.
    """
    if inner is None:
        return True
    if outer is None:
        return False
    for dimension in SCOPE_DIMENSIONS:
        outer_values = {_norm(v) for v in outer.dimension(dimension)}
        if any(_norm(v) not in outer_values for v in inner.dimension(dimension)):
            return False
    return True


def get_scope_summary(scope: Optional[UserScope]) -> str:
    """Human-readable counts, e.g. ``"2 trades, 1 area"``."""
    if scope is None:
        return "No restrictions"
    if scope.is_empty():
        return "No access"

    parts = []
    for dimension in SCOPE_DIMENSIONS:
        count = len(scope.dimension(dimension))
        if count:
            noun = dimension if count > 1 else dimension[:-1]
            parts.append(f"{count} {noun}")
    return ", ".join(parts)


def filter_resources_by_scope(
    user_scope: Optional[UserScope],
    resources: Iterable[T],
    get_scope: Callable[[T], Optional[ResourceScope]],
    resource_type: Optional[str] = "document",
) -> list[T]:
    """Keep the resources ``user_scope`` can see.

    An unrestricted (None) scope returns the input unfiltered.
    """
    items = list(resources)
    if user_scope is None:
        return items
    return [
        item
        for item in items
        if matches_scope(user_scope, ResourceScope.coerce(get_scope(item)), resource_type).has_access
    ]


__all__ = [
    "normalize_scope",
    "is_scope_empty",
    "matches_scope",
    "validate_scope_for_role",
    "merge_scopes",
    "is_scope_subset",
    "get_scope_summary",
    "filter_resources_by_scope",
]
