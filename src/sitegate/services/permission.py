"""Permission Service: cached role permissions plus live expiration/scope checks.

Per ``(user_id, project_id)`` a ``PermissionCacheEntry`` is built lazily from
the effective role and the role matrix and kept for
``config.permission_cache_ttl`` seconds. Expiration is re-validated on every
check. Callers must call ``clear_permission_cache`` whenever a membership's
role, scope or expiry changes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Optional

from ..config import GateConfig
from ..exceptions import DenialReason
from ..interfaces import MembershipStore
from ..models import ExpirationStatus, GuardPermissionResult, ResourceScope, UserScope, utcnow
from ..permissions.constants import ProjectRole
from ..permissions.matcher import create_permission_map
from ..permissions.matcher import has_all_permissions as match_all
from ..permissions.matcher import has_any_permission as match_any
from ..permissions.matcher import has_permission as match_permission
from ..permissions.matrix import get_role_permissions, is_scope_limited_role
from ..permissions.scope import matches_scope
from .expiration import ExpirationService
from .inheritance import InheritanceService
from .scope import ScopeService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PermissionCacheEntry:
    """Resolved permissions of one user on one project.

    Timestamps ``cached_at``/``cache_expires_at`` come from the service's
    monotonic clock; ``expires_at`` is the membership expiry (wall clock).
    """

    user_id: str
    project_id: str
    permissions: frozenset[str]
    effective_role: ProjectRole
    is_inherited: bool
    scope: Optional[UserScope]
    expires_at: Optional[datetime]
    cached_at: float
    cache_expires_at: float


class PermissionService:
    """Answers "may this user do X on this project?".

    Args:
        inheritance: Effective role resolver.
        expiration: Expiration checker (consulted on every check).
        scope: Scope service used by ``check_scope_access``.
        config: Cache TTL and fail-open policy.
        time_fn: Monotonic clock for cache lifetimes.
    """

    def __init__(
        self,
        inheritance: InheritanceService,
        expiration: ExpirationService,
        scope: ScopeService,
        config: Optional[GateConfig] = None,
        time_fn: Callable[[], float] = time.monotonic,
    ) -> None:
        self._inheritance = inheritance
        self._expiration = expiration
        self._scope = scope
        self._config = config or GateConfig()
        self._time = time_fn
        self._cache: dict[str, PermissionCacheEntry] = {}
        self.fail_open_events = 0

    @classmethod
    def from_store(
        cls,
        store: MembershipStore,
        config: Optional[GateConfig] = None,
        now: Callable[[], datetime] = utcnow,
        time_fn: Callable[[], float] = time.monotonic,
    ) -> "PermissionService":
        """Wire the inheritance, expiration and scope services over one store."""
        config = config or GateConfig()
        inheritance = InheritanceService(store, config)
        return cls(
            inheritance,
            ExpirationService(inheritance, config, now=now),
            ScopeService(inheritance, config),
            config=config,
            time_fn=time_fn,
        )

    @property
    def inheritance(self) -> InheritanceService:
        return self._inheritance

    @property
    def expiration(self) -> ExpirationService:
        return self._expiration

    @property
    def scope(self) -> ScopeService:
        return self._scope

    @property
    def config(self) -> GateConfig:
        return self._config

    # ── Checks ──────────────────────────────────────────

    async def check_permission(
        self,
        user_id: str,
        project_id: str,
        permission: str,
        resource_id: Optional[str] = None,
        resource_scope: Any = None,
        resource_type: Optional[str] = None,
    ) -> GuardPermissionResult:
        """Detailed permission check.

        Order: membership (cached) → expiration (live) → role permissions →
        scope, for scope-limited explicit roles when ``resource_id`` is given.
        """
        try:
            entry = await self._get_entry(user_id, project_id)
            if entry is None:
                return GuardPermissionResult.deny(
                    DenialReason.USER_NOT_MEMBER,
                    "User is not a member of this project",
                    code="USER_NOT_MEMBER",
                    required_permission=permission,
                )

            expired = await self._check_expired(user_id, project_id)
            if expired is not None:
                return GuardPermissionResult.deny(
                    DenialReason.ACCESS_EXPIRED,
                    f"Your project access expired on {expired.date().isoformat()}",
                    code="ACCESS_EXPIRED",
                    required_permission=permission,
                    user_role=entry.effective_role,
                    metadata={"expired_at": expired.isoformat()},
                )

            if not match_permission(entry.permissions, permission):
                return GuardPermissionResult.deny(
                    DenialReason.INSUFFICIENT_PERMISSIONS,
                    f"Your role ({entry.effective_role.value}) does not have permission: {permission}",
                    code="INSUFFICIENT_PERMISSIONS",
                    required_permission=permission,
                    user_role=entry.effective_role,
                )

            if resource_id and not entry.is_inherited and is_scope_limited_role(entry.effective_role):
                # a scope-limited role without an assigned scope sees nothing
                user_scope = entry.scope if entry.scope is not None else UserScope()
                if resource_scope is not None:
                    allowed = matches_scope(
                        user_scope,
                        ResourceScope.coerce(resource_scope),
                        resource_type or "document",
                    ).has_access
                else:
                    allowed = not user_scope.is_empty()
                if not allowed:
                    return GuardPermissionResult.deny(
                        DenialReason.SCOPE_RESTRICTION,
                        "Your scope does not include access to this resource",
                        code="SCOPE_RESTRICTION",
                        required_permission=permission,
                        user_role=entry.effective_role,
                    )

            return GuardPermissionResult.allow(user_role=entry.effective_role)
        except Exception:
            logger.error(
                "Error checking permission %s for user %s on project %s",
                permission,
                user_id,
                project_id,
                exc_info=True,
            )
            return GuardPermissionResult.deny(
                DenialReason.INSUFFICIENT_PERMISSIONS,
                "Error checking permissions",
                code="INSUFFICIENT_PERMISSIONS",
                required_permission=permission,
            )

    async def has_permission(
        self,
        user_id: str,
        project_id: str,
        permission: str,
        resource_id: Optional[str] = None,
    ) -> bool:
        result = await self.check_permission(user_id, project_id, permission, resource_id)
        return result.allowed

    async def has_any_permission(self, user_id: str, project_id: str, permissions: Iterable[str]) -> bool:
        permissions = list(permissions)
        if not permissions:
            return False
        entry = await self._get_active_entry(user_id, project_id)
        return entry is not None and match_any(entry.permissions, permissions)

    async def has_all_permissions(self, user_id: str, project_id: str, permissions: Iterable[str]) -> bool:
        permissions = list(permissions)
        if not permissions:
            return True
        entry = await self._get_active_entry(user_id, project_id)
        return entry is not None and match_all(entry.permissions, permissions)

    async def get_user_permission_map(
        self, user_id: str, project_id: str, permissions: Iterable[str]
    ) -> dict[str, bool]:
        """Bulk check for UI rendering; all False for non-members and expired access."""
        permissions = list(permissions)
        entry = await self._get_active_entry(user_id, project_id)
        if entry is None:
            return {permission: False for permission in permissions}
        return create_permission_map(entry.permissions, permissions)

    async def get_user_permissions(self, user_id: str, project_id: str) -> list[str]:
        entry = await self._get_entry(user_id, project_id)
        if entry is None:
            return []
        return sorted(entry.permissions)

    async def get_effective_role(self, user_id: str, project_id: str) -> Optional[ProjectRole]:
        entry = await self._get_entry(user_id, project_id)
        return entry.effective_role if entry else None

    async def check_scope_access(
        self,
        user_id: str,
        project_id: str,
        resource_scope: Any,
        resource_type: Optional[str] = "document",
    ) -> bool:
        return await self._scope.has_scope_access(user_id, project_id, resource_scope, resource_type)

    async def can_modify_scope(self, target_user_id: str, project_id: str, requesting_user_id: str) -> bool:
        return await self._scope.can_modify_scope(target_user_id, project_id, requesting_user_id)

    # ── Cache ───────────────────────────────────────────

    def clear_permission_cache(self, user_id: str, project_id: Optional[str] = None) -> int:
        """Drop cached entries for a user, on one project or on all of them."""
        if project_id is not None:
            removed = 1 if self._cache.pop(self._cache_key(user_id, project_id), None) else 0
            logger.debug("Cleared permission cache for user %s on project %s", user_id, project_id)
            return removed

        prefix = f"{user_id}:"
        keys = [key for key in self._cache if key.startswith(prefix)]
        for key in keys:
            del self._cache[key]
        logger.debug("Cleared all permission cache for user %s (%d entries)", user_id, len(keys))
        return len(keys)

    def clean_expired_cache(self) -> int:
        now = self._time()
        expired = [key for key, entry in self._cache.items() if entry.cache_expires_at <= now]
        for key in expired:
            del self._cache[key]
        if expired:
            logger.debug("Cleaned %d expired permission cache entries", len(expired))
        return len(expired)

    def cache_size(self) -> int:
        return len(self._cache)

    # ── Internals ───────────────────────────────────────

    @staticmethod
    def _cache_key(user_id: str, project_id: str) -> str:
        return f"{user_id}:{project_id}"

    async def _get_entry(self, user_id: str, project_id: str) -> Optional[PermissionCacheEntry]:
        key = self._cache_key(user_id, project_id)
        cached = self._cache.get(key)
        if cached is not None and cached.cache_expires_at > self._time():
            return cached

        entry = await self._build_entry(user_id, project_id)
        if entry is None:
            self._cache.pop(key, None)
            return None
        self._cache[key] = entry
        return entry

    async def _build_entry(self, user_id: str, project_id: str) -> Optional[PermissionCacheEntry]:
        role = await self._inheritance.get_effective_role(user_id, project_id)
        if role.role is None:
            return None

        scope = None
        expires_at = None
        if not role.is_inherited:
            membership = await self._inheritance.get_project_membership(user_id, project_id)
            if membership is not None:
                scope = membership.scope
                expires_at = membership.expires_at

        now = self._time()
        logger.debug(
            "Built permission cache for user %s on project %s (role=%s, inherited=%s)",
            user_id,
            project_id,
            role.role.value,
            role.is_inherited,
        )
        return PermissionCacheEntry(
            user_id=user_id,
            project_id=project_id,
            permissions=frozenset(get_role_permissions(role.role)),
            effective_role=role.role,
            is_inherited=role.is_inherited,
            scope=scope,
            expires_at=expires_at,
            cached_at=now,
            cache_expires_at=now + self._config.permission_cache_ttl,
        )

    async def _check_expired(self, user_id: str, project_id: str) -> Optional[datetime]:
        """Expiry timestamp when access has expired, else None.

        Lookup failures follow the fail-open policy.
        """
        try:
            result = await self._expiration.check_expiration(user_id, project_id)
        except Exception as e:
            if not self._config.fail_open_on_lookup_error:
                raise
            self.fail_open_events += 1
            logger.warning(
                "Expiration check failed for user %s on project %s, continuing: %s",
                user_id,
                project_id,
                e,
                extra={"fail_open": True, "check": "expiration", "user_id": user_id, "project_id": project_id},
            )
            return None

        if result.status == ExpirationStatus.EXPIRED:
            return result.expires_at
        return None

    async def _get_active_entry(self, user_id: str, project_id: str) -> Optional[PermissionCacheEntry]:
        entry = await self._get_entry(user_id, project_id)
        if entry is None:
            return None
        if await self._check_expired(user_id, project_id) is not None:
            return None
        return entry


__all__ = ["PermissionCacheEntry", "PermissionService"]
