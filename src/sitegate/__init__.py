from .config import GateConfig, LogLevel, load_gate_config_from_env
from .logging import (
    safe_preview,
    redact_secrets,
    safe_log_value,
    GateFormatter,
    GateLoggerAdapter,
    setup_logging,
    get_gate_logger,
)
from .exceptions import (
    DenialReason,
    SiteGateError,
    ConfigurationError,
    CollaboratorError,
    InvalidPermissionError,
    InvalidScopeError,
    DenialError,
)

# permissions must load before models (models reads permissions.constants)
from .permissions import (
    ALL_PERMISSIONS,
    OrganizationRole,
    ProjectRole,
    FeatureCategory,
    has_permission,
    matches_scope,
    validate_scope_for_role,
)
from .models import (
    UserScope,
    ResourceScope,
    ScopeVisibility,
    ProjectMembership,
    OrganizationMembership,
    EffectiveRoleResult,
    ExpirationStatus,
    PermissionContext,
    GuardPermissionResult,
    AuditLogEntry,
)
from .interfaces import MembershipStore, InMemoryMembershipStore
from .services import (
    InheritanceService,
    ExpirationService,
    ScopeService,
    PermissionService,
)
from .guards import (
    AuditService,
    GuardCache,
    BasePermissionGuard,
    DocumentGuard,
    RfiGuard,
    SubmittalGuard,
    SafetyGuard,
    BudgetGuard,
    QualityGuard,
    ProjectSettingsGuard,
)

__all__ = [
    'GateConfig',
    'LogLevel',
    'load_gate_config_from_env',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'GateFormatter',
    'GateLoggerAdapter',
    'setup_logging',
    'get_gate_logger',
    'DenialReason',
    'SiteGateError',
    'ConfigurationError',
    'CollaboratorError',
    'InvalidPermissionError',
    'InvalidScopeError',
    'DenialError',
    'ALL_PERMISSIONS',
    'OrganizationRole',
    'ProjectRole',
    'FeatureCategory',
    'has_permission',
    'matches_scope',
    'validate_scope_for_role',
    'UserScope',
    'ResourceScope',
    'ScopeVisibility',
    'ProjectMembership',
    'OrganizationMembership',
    'EffectiveRoleResult',
    'ExpirationStatus',
    'PermissionContext',
    'GuardPermissionResult',
    'AuditLogEntry',
    'MembershipStore',
    'InMemoryMembershipStore',
    'InheritanceService',
    'ExpirationService',
    'ScopeService',
    'PermissionService',
    'AuditService',
    'GuardCache',
    'BasePermissionGuard',
    'DocumentGuard',
    'RfiGuard',
    'SubmittalGuard',
    'SafetyGuard',
    'BudgetGuard',
    'QualityGuard',
    'ProjectSettingsGuard',
]
