"""Data models for the authorization engine.

These are Pydantic models passed across the engine's public surface:
scopes, memberships, role resolution results, guard results and audit entries.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .exceptions import DenialReason
from .permissions.constants import OrganizationRole, ProjectRole

SCOPE_DIMENSIONS: tuple[str, ...] = ("trades", "areas", "phases", "tags")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Scopes ──────────────────────────────────────────────


class ScopeVisibility(str, Enum):
    """How an untagged resource behaves for scope-limited users."""

    PUBLIC = "public"
    TAGGED_ONLY = "tagged-only"


class _ScopeDimensions(BaseModel):
    trades: list[str] = Field(default_factory=list)
    areas: list[str] = Field(default_factory=list)
    phases: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @field_validator("trades", "areas", "phases", "tags", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    def dimension(self, name: str) -> list[str]:
        return getattr(self, name)

    def is_empty(self) -> bool:
        return not any(self.dimension(name) for name in SCOPE_DIMENSIONS)


class UserScope(_ScopeDimensions):
    """Scope restriction of a membership.

    ``None`` in place of a UserScope means "not scope-limited"; a UserScope
    with every dimension empty means "scoped to nothing".
    """

    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None
    reason: Optional[str] = None

    @classmethod
    def coerce(cls, value: Any) -> Optional["UserScope"]:
        """Normalize a stored scope into a UserScope.

        Accepts None, a UserScope, a dict, or the legacy list-of-trades form.
        """
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, (list, tuple, set, frozenset)):
            return cls(trades=[str(v) for v in value])
        if isinstance(value, dict):
            return cls.model_validate(value)
        if isinstance(value, _ScopeDimensions):
            return cls(**value.model_dump(include=set(SCOPE_DIMENSIONS)))
        raise TypeError(f"Unsupported scope value: {type(value).__name__}")


class ResourceScope(_ScopeDimensions):
    """Scope tags carried by a resource."""

    visibility: Optional[ScopeVisibility] = None

    @classmethod
    def coerce(cls, value: Any) -> Optional["ResourceScope"]:
        if value is None or isinstance(value, cls):
            return value
        if isinstance(value, (list, tuple, set, frozenset)):
            return cls(trades=[str(v) for v in value])
        if isinstance(value, dict):
            return cls.model_validate(value)
        raise TypeError(f"Unsupported scope value: {type(value).__name__}")


class ScopeMatchResult(BaseModel):
    has_access: bool
    matched_dimension: Optional[str] = None
    matched_values: list[str] = Field(default_factory=list)
    reason: str = ""


class ScopeValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


# ── Memberships (collaborator records) ─────────────────


class ProjectMembership(BaseModel):
    """Explicit project membership as returned by the membership store."""

    user_id: str
    project_id: str
    role: ProjectRole
    scope: Optional[UserScope] = None
    expires_at: Optional[datetime] = None

    @field_validator("scope", mode="before")
    @classmethod
    def normalize_scope(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple, set, frozenset)):
            return UserScope.coerce(v)
        return v


class OrganizationMembership(BaseModel):
    user_id: str
    organization_id: str
    org_role: OrganizationRole
    is_system_admin: bool = False


# ── Role Resolution ─────────────────────────────────────


class RoleSource(str, Enum):
    EXPLICIT = "explicit"
    INHERITED = "inherited"


class InheritanceSource(str, Enum):
    """Where an effective role came from, in detail."""

    SYSTEM_ADMIN = "system_admin"
    ORG_OWNER = "org_owner"
    ORG_ADMIN = "org_admin"
    EXPLICIT = "explicit"
    NONE = "none"


class EffectiveRoleResult(BaseModel):
    role: Optional[ProjectRole] = None
    is_inherited: bool = False
    source: Optional[RoleSource] = None
    inheritance_source: InheritanceSource = InheritanceSource.NONE
    organization_id: Optional[str] = None
    organization_role: Optional[OrganizationRole] = None

    @property
    def has_access(self) -> bool:
        return self.role is not None


class InheritanceStep(BaseModel):
    level: int
    type: str
    role: Optional[str] = None
    source: str
    description: str


class InheritanceChain(BaseModel):
    user_id: str
    project_id: str
    effective_role: Optional[ProjectRole] = None
    is_inherited: bool = False
    steps: list[InheritanceStep] = Field(default_factory=list)


class RoleChangeCheck(BaseModel):
    allowed: bool
    reason: Optional[str] = None


# ── Expiration ──────────────────────────────────────────


class ExpirationStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    NONE = "none"  # no membership at all


class ExpirationCheckResult(BaseModel):
    status: ExpirationStatus
    expires_at: Optional[datetime] = None
    days_until_expiration: Optional[int] = None
    is_expiring_soon: bool = False
    is_inherited: bool = False


# ── Guard Results ───────────────────────────────────────


class PermissionContext(BaseModel):
    """Resource description supplied by the caller at check time.

    ``metadata`` carries feature flags such as ``isConfidential``,
    ``hasReview``, ``amount`` or ``confirmed``; both camelCase and
    snake_case keys are accepted by the guards.
    """

    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    resource_owner_id: Optional[str] = None
    user_id: Optional[str] = None
    assigned_to: list[str] = Field(default_factory=list)
    current_status: Optional[str] = None
    target_status: Optional[str] = None
    resource_scope: Optional[ResourceScope] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("assigned_to", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("resource_scope", mode="before")
    @classmethod
    def normalize_scope(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple, set, frozenset)):
            return ResourceScope.coerce(v)
        return v


class GuardPermissionResult(BaseModel):
    allowed: bool
    reason: Optional[DenialReason] = None
    message: Optional[str] = None
    code: Optional[str] = None
    required_permission: Optional[str] = None
    user_role: Optional[ProjectRole] = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def allow(cls, **kwargs: Any) -> "GuardPermissionResult":
        return cls(allowed=True, **kwargs)

    @classmethod
    def deny(
        cls,
        reason: DenialReason,
        message: str,
        code: Optional[str] = None,
        **kwargs: Any,
    ) -> "GuardPermissionResult":
        return cls(allowed=False, reason=reason, message=message, code=code, **kwargs)


class AuditLogEntry(BaseModel):
    user_id: str
    project_id: str
    action: str
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    reason: Optional[DenialReason] = None
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)
    metadata: dict[str, Any] = Field(default_factory=dict)


__all__ = [
    "SCOPE_DIMENSIONS",
    "utcnow",
    "ScopeVisibility",
    "UserScope",
    "ResourceScope",
    "ScopeMatchResult",
    "ScopeValidationResult",
    "ProjectMembership",
    "OrganizationMembership",
    "RoleSource",
    "InheritanceSource",
    "EffectiveRoleResult",
    "InheritanceStep",
    "InheritanceChain",
    "RoleChangeCheck",
    "ExpirationStatus",
    "ExpirationCheckResult",
    "PermissionContext",
    "GuardPermissionResult",
    "AuditLogEntry",
]
