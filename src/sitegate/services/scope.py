"""Inheritance-aware scope access.

Wraps the pure scope matcher with membership lookups: inherited roles bypass
scope entirely, explicit memberships are matched against their stored scope.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Optional, TypeVar

from ..config import GateConfig
from ..exceptions import InvalidScopeError
from ..models import EffectiveRoleResult, ResourceScope, ScopeValidationResult, UserScope
from ..permissions.constants import ProjectRole
from ..permissions.matrix import is_scope_limited_role
from ..permissions.scope import filter_resources_by_scope, matches_scope, validate_scope_for_role
from ..permissions.scope_config import (
    DEFAULT_SCOPE_VALIDATION_RULES,
    STANDARD_PHASES,
    STANDARD_TRADES,
    ScopeOption,
    ScopeValidationRules,
)
from .inheritance import InheritanceService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScopeService:
    """Scope checks against a user's stored project scope.

    Lookup failures follow ``config.fail_open_on_lookup_error``; every
    fail-open decision is logged at WARNING and counted in
    ``fail_open_events``.
    """

    def __init__(self, inheritance: InheritanceService, config: Optional[GateConfig] = None) -> None:
        self._inheritance = inheritance
        self._config = config or GateConfig()
        self.fail_open_events = 0

    async def get_user_scope(self, user_id: str, project_id: str) -> Optional[UserScope]:
        membership = await self._inheritance.get_project_membership(user_id, project_id)
        if membership is None:
            return None
        return membership.scope

    async def _matching_scope(
        self, user_id: str, project_id: str, role: EffectiveRoleResult
    ) -> Optional[UserScope]:
        """Stored scope of an explicit member; empty for unscoped scope-limited roles."""
        user_scope = await self.get_user_scope(user_id, project_id)
        if user_scope is None and is_scope_limited_role(role.role):
            return UserScope()
        return user_scope

    async def has_scope_access(
        self,
        user_id: str,
        project_id: str,
        resource_scope: Any,
        resource_type: Optional[str] = "document",
    ) -> bool:
        try:
            role = await self._inheritance.get_effective_role(user_id, project_id)
            if role.role is None:
                return False
            if role.is_inherited:
                logger.debug(
                    "User %s has inherited role %s, bypassing scope check",
                    user_id,
                    role.role.value,
                )
                return True

            user_scope = await self._matching_scope(user_id, project_id, role)
            result = matches_scope(user_scope, ResourceScope.coerce(resource_scope), resource_type)
            if not result.has_access:
                logger.debug(
                    "Scope access denied for user %s on %s: %s",
                    user_id,
                    resource_type,
                    result.reason,
                )
            return result.has_access
        except Exception as e:
            if not self._config.fail_open_on_lookup_error:
                logger.error("Scope check failed for user %s on project %s", user_id, project_id, exc_info=True)
                return False
            self.fail_open_events += 1
            logger.warning(
                "Scope check failed for user %s on project %s, allowing: %s",
                user_id,
                project_id,
                e,
                extra={"fail_open": True, "check": "scope", "user_id": user_id, "project_id": project_id},
            )
            return True

    async def filter_resources_by_scope(
        self,
        user_id: str,
        project_id: str,
        resources: Iterable[T],
        get_scope: Callable[[T], Any],
        resource_type: Optional[str] = "document",
    ) -> list[T]:
        """Keep the resources the user can see; inherited roles see everything."""
        items = list(resources)
        role = await self._inheritance.get_effective_role(user_id, project_id)
        if role.role is None:
            return []
        if role.is_inherited:
            return items

        user_scope = await self._matching_scope(user_id, project_id, role)
        return filter_resources_by_scope(user_scope, items, get_scope, resource_type)

    async def can_modify_scope(self, target_user_id: str, project_id: str, requesting_user_id: str) -> bool:
        """Only a PROJECT_ADMIN may change scope, and only on explicit memberships."""
        try:
            requester = await self._inheritance.get_effective_role(requesting_user_id, project_id)
            if requester.role != ProjectRole.PROJECT_ADMIN:
                return False

            target = await self._inheritance.get_effective_role(target_user_id, project_id)
            if target.role is None:
                return False
            if target.is_inherited:
                logger.debug("Cannot modify scope for user %s with inherited role", target_user_id)
                return False
            return True
        except Exception:
            logger.error(
                "Error checking scope modification for user %s on project %s",
                target_user_id,
                project_id,
                exc_info=True,
            )
            return False

    def validate_scope_for_role(
        self,
        role: ProjectRole | str,
        scope: Any,
        rules: Optional[ScopeValidationRules] = None,
    ) -> ScopeValidationResult:
        return validate_scope_for_role(role, UserScope.coerce(scope), rules or DEFAULT_SCOPE_VALIDATION_RULES)

    def ensure_valid_scope(
        self,
        role: ProjectRole | str,
        scope: Any,
        rules: Optional[ScopeValidationRules] = None,
    ) -> ScopeValidationResult:
        """Like ``validate_scope_for_role`` but raises InvalidScopeError on errors."""
        result = self.validate_scope_for_role(role, scope, rules)
        if not result.valid:
            raise InvalidScopeError(result.errors, role=ProjectRole(role).value)
        return result

    @staticmethod
    def get_scope_options() -> dict[str, tuple[ScopeOption, ...]]:
        """Suggested scope values for assignment UIs."""
        return {"trades": STANDARD_TRADES, "phases": STANDARD_PHASES}


__all__ = ["ScopeService"]
