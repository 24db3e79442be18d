"""Two-phase feature guard and the ``enforce_permission`` entry point.

Phase 1 (shared): expiration → base permission → scope, the latter only when
a resource id and a resource scope are available.
Phase 2 (per feature): a handler looked up by action name in the guard's
action table. Unknown actions stop after phase 1.

Any denial in phase 1 short-circuits phase 2.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional

from ..config import GateConfig
from ..exceptions import DenialError, DenialReason
from ..models import AuditLogEntry, ExpirationStatus, GuardPermissionResult, PermissionContext
from ..permissions.constants import ProjectRole
from ..services.permission import PermissionService
from .audit import AuditService
from .cache import GuardCache

logger = logging.getLogger(__name__)

ActionHandler = Callable[[str, str, PermissionContext], Awaitable[GuardPermissionResult]]

ADMIN_ROLES = frozenset({ProjectRole.PROJECT_ADMIN})
MANAGER_ROLES = frozenset({ProjectRole.PROJECT_ADMIN, ProjectRole.PROJECT_MANAGER})

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def context_flag(context: PermissionContext, name: str, default: Any = None) -> Any:
    """Read a metadata value by its camelCase name or snake_case equivalent."""
    metadata = context.metadata
    if name in metadata:
        return metadata[name]
    return metadata.get(snake_case(name), default)


def coerce_context(context: PermissionContext | Mapping[str, Any] | None) -> PermissionContext:
    if context is None:
        return PermissionContext()
    if isinstance(context, PermissionContext):
        return context
    return PermissionContext.model_validate(dict(context))


class BasePermissionGuard:
    """Shared guard machinery.

    Subclasses set ``feature`` (audit resource type and permission prefix),
    ``default_resource`` (permission resource segment and scope resource
    type), optionally ``scope_metadata_key`` and ``base_actions``, and return
    their action table from ``action_handlers()``.

    Args:
        permissions: Permission Service (also provides expiration and scope services).
        audit: Denial sink; a private AuditService by default.
        cache: Decision cache; a private GuardCache by default.
        config: Defaults to the Permission Service's config.
    """

    feature: str = ""
    default_resource: str = ""
    scope_metadata_key: Optional[str] = None
    # action → action segment of the base permission
    base_actions: Mapping[str, str] = {}

    def __init__(
        self,
        permissions: PermissionService,
        audit: Optional[AuditService] = None,
        cache: Optional[GuardCache] = None,
        config: Optional[GateConfig] = None,
    ) -> None:
        self._permissions = permissions
        self._config = config or permissions.config
        self._audit = audit if audit is not None else AuditService(self._config)
        self._cache = cache if cache is not None else GuardCache(self._config)
        self._handlers: dict[str, ActionHandler] = dict(self.action_handlers())
        self.fail_open_events = 0

    @property
    def audit(self) -> AuditService:
        return self._audit

    @property
    def cache(self) -> GuardCache:
        return self._cache

    @property
    def actions(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def action_handlers(self) -> Mapping[str, ActionHandler]:
        return {}

    # ── Entry points ────────────────────────────────────

    async def enforce_permission(
        self,
        user_id: str,
        project_id: str,
        action: str,
        resource_id: Optional[str] = None,
        context: PermissionContext | Mapping[str, Any] | None = None,
    ) -> None:
        """Return silently when allowed, raise DenialError otherwise.

        Cached decisions, denials included, are returned without re-checking.
        """
        context = coerce_context(context)
        cache_action = self.cache_action(action, context)
        cached = self._cache.get(user_id, project_id, cache_action, resource_id)
        if cached is not None:
            if cached:
                return
            raise DenialError(
                "You do not have permission to perform this action (cached)",
                code="PERMISSION_DENIED_CACHED",
                action=action,
                resource_id=resource_id,
            )

        result = await self.check_permission(user_id, project_id, action, resource_id, context)
        self._cache.set(user_id, project_id, cache_action, result.allowed, resource_id)
        if result.allowed:
            return

        self._log_denial(user_id, project_id, action, resource_id, result)
        raise DenialError(
            result.message or "You do not have permission to perform this action",
            code=result.code or "PERMISSION_DENIED",
            reason=result.reason or DenialReason.INSUFFICIENT_PERMISSIONS,
            action=action,
            required_permission=result.required_permission,
            user_role=result.user_role.value if result.user_role else None,
            resource_id=resource_id,
            metadata=result.metadata,
        )

    async def check_permission(
        self,
        user_id: str,
        project_id: str,
        action: str,
        resource_id: Optional[str] = None,
        context: PermissionContext | Mapping[str, Any] | None = None,
    ) -> GuardPermissionResult:
        """Run both phases without touching the cache or the audit log."""
        context = coerce_context(context)

        result = await self.check_expiration(user_id, project_id)
        if not result.allowed:
            return result

        permission = self.permission_for(action, context)
        result = await self.check_base_permission(user_id, project_id, permission)
        if not result.allowed:
            return result

        if resource_id:
            resource_scope = self.resource_scope_for(context)
            if resource_scope is not None:
                result = await self.check_scope_access(user_id, project_id, resource_scope, context)
                if not result.allowed:
                    return result

        handler = self._handlers.get(action)
        if handler is None:
            return GuardPermissionResult.allow()
        return await handler(user_id, project_id, context)

    def cache_action(self, action: str, context: PermissionContext) -> str:
        """Guard cache action segment, namespaced by feature and resource."""
        return f"{self.feature}:{self.resource_for(context)}:{action}"

    # ── Phase 1 ─────────────────────────────────────────

    def resource_for(self, context: PermissionContext) -> str:
        return self.default_resource

    def permission_for(self, action: str, context: PermissionContext) -> str:
        return f"{self.feature}:{self.resource_for(context)}:{self.base_actions.get(action, action)}"

    def resource_scope_for(self, context: PermissionContext) -> Any:
        if context.resource_scope is not None:
            return context.resource_scope
        if self.scope_metadata_key:
            return context_flag(context, self.scope_metadata_key)
        return None

    async def check_expiration(self, user_id: str, project_id: str) -> GuardPermissionResult:
        try:
            expiration = await self._permissions.expiration.check_expiration(user_id, project_id)
        except Exception as e:
            if not self._config.fail_open_on_lookup_error:
                logger.error("Expiration check failed for user %s on project %s", user_id, project_id, exc_info=True)
                return GuardPermissionResult.deny(
                    DenialReason.INSUFFICIENT_PERMISSIONS,
                    "Unable to verify project access",
                    code="ACCESS_CHECK_FAILED",
                )
            self.fail_open_events += 1
            logger.warning(
                "Expiration check failed for user %s on project %s, continuing: %s",
                user_id,
                project_id,
                e,
                extra={"fail_open": True, "check": "expiration", "user_id": user_id, "project_id": project_id},
            )
            return GuardPermissionResult.allow()

        if expiration.status == ExpirationStatus.EXPIRED:
            return GuardPermissionResult.deny(
                DenialReason.ACCESS_EXPIRED,
                f"Your access expired on {expiration.expires_at.date().isoformat()}",
                code="ACCESS_EXPIRED",
            )
        return GuardPermissionResult.allow()

    async def check_base_permission(self, user_id: str, project_id: str, permission: str) -> GuardPermissionResult:
        result = await self._permissions.check_permission(user_id, project_id, permission)
        if result.allowed:
            return GuardPermissionResult.allow(user_role=result.user_role)
        return result.model_copy(update={"required_permission": permission})

    async def check_scope_access(
        self,
        user_id: str,
        project_id: str,
        resource_scope: Any,
        context: PermissionContext,
    ) -> GuardPermissionResult:
        resource_type = context.resource_type or self.default_resource
        if await self._permissions.check_scope_access(user_id, project_id, resource_scope, resource_type):
            return GuardPermissionResult.allow()
        return GuardPermissionResult.deny(
            DenialReason.SCOPE_RESTRICTION,
            "Your scope does not include access to this resource",
            code="SCOPE_RESTRICTED",
        )

    # ── Phase 2 helpers ─────────────────────────────────

    async def get_user_role(self, user_id: str, project_id: str) -> Optional[ProjectRole]:
        try:
            return await self._permissions.get_effective_role(user_id, project_id)
        except Exception:
            logger.error("Failed to get role for user %s on project %s", user_id, project_id, exc_info=True)
            return None

    async def has_role(self, user_id: str, project_id: str, roles: Iterable[ProjectRole]) -> bool:
        role = await self.get_user_role(user_id, project_id)
        return role is not None and role in roles

    @staticmethod
    def check_assignment(user_id: str, assigned_to: Iterable[str]) -> GuardPermissionResult:
        if user_id not in assigned_to:
            return GuardPermissionResult.deny(
                DenialReason.NOT_ASSIGNED,
                "You are not assigned to this resource",
                code="NOT_ASSIGNED",
            )
        return GuardPermissionResult.allow()

    @staticmethod
    def check_valid_status(
        current_status: Optional[str], valid_statuses: Iterable[str], action: str
    ) -> GuardPermissionResult:
        valid = list(valid_statuses)
        if current_status not in valid:
            return GuardPermissionResult.deny(
                DenialReason.INVALID_STATUS,
                f"Cannot {action} when status is {current_status or 'unknown'}",
                code="INVALID_STATUS",
                metadata={"current_status": current_status, "valid_statuses": valid},
            )
        return GuardPermissionResult.allow()

    # ── Audit ───────────────────────────────────────────

    def _log_denial(
        self,
        user_id: str,
        project_id: str,
        action: str,
        resource_id: Optional[str],
        result: GuardPermissionResult,
    ) -> None:
        try:
            self._audit.log_permission_denial(
                AuditLogEntry(
                    user_id=user_id,
                    project_id=project_id,
                    action=action,
                    resource_type=self.feature,
                    resource_id=resource_id,
                    reason=result.reason or DenialReason.INSUFFICIENT_PERMISSIONS,
                    message=result.message or "Permission denied",
                    metadata={"code": result.code, **result.metadata},
                )
            )
        except Exception:
            logger.error("Failed to log permission denial", exc_info=True)


__all__ = [
    "ADMIN_ROLES",
    "MANAGER_ROLES",
    "ActionHandler",
    "BasePermissionGuard",
    "coerce_context",
    "context_flag",
    "snake_case",
]
