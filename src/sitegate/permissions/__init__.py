"""Static permission model of the construction platform.

Defines:
- Roles, feature categories and permission constants
- The role → permission matrix and organization role inheritance
- Wildcard permission matching
- Multi-dimensional scope matching and scope assignment rules
"""

from .constants import (
    ALL_PERMISSIONS,
    FEATURE_PERMISSION_GROUPS,
    BudgetPermissions,
    DailyReportPermissions,
    DocumentPermissions,
    FeatureCategory,
    MeetingPermissions,
    OrganizationRole,
    ProjectRole,
    ProjectSettingsPermissions,
    QualityPermissions,
    RfiPermissions,
    SafetyPermissions,
    SchedulePermissions,
    SubmittalPermissions,
    get_all_permissions,
    get_feature_permissions,
)
from .matcher import (
    ParsedPermission,
    build_permission,
    create_permission_map,
    expand_wildcard,
    filter_permissions,
    get_wildcard_specificity,
    has_all_permissions,
    has_any_permission,
    has_permission,
    is_valid_permission,
    is_wildcard,
    matches_permission,
    minimize_permissions,
    parse_permission,
    sort_by_specificity,
)
from .matrix import (
    ORGANIZATION_ROLE_INHERITANCE,
    PROJECT_ROLE_PERMISSIONS,
    SCOPE_LIMITED_ROLES,
    get_inherited_project_role,
    get_role_permissions,
    has_automatic_project_access,
    is_scope_limited_role,
)
from .scope import (
    filter_resources_by_scope,
    get_scope_summary,
    is_scope_empty,
    is_scope_subset,
    matches_scope,
    merge_scopes,
    normalize_scope,
    validate_scope_for_role,
)
from .scope_config import (
    DEFAULT_RESOURCE_VISIBILITY,
    DEFAULT_SCOPE_VALIDATION_RULES,
    SCOPE_EXEMPT_ROLES,
    SCOPE_OPTIONAL_ROLES,
    SCOPE_REQUIRED_ROLES,
    STANDARD_PHASES,
    STANDARD_TRADES,
    ScopeOption,
    ScopeValidationRules,
    can_role_have_scope,
    does_role_require_scope,
    get_default_visibility,
)

__all__ = [
    "ALL_PERMISSIONS",
    "DEFAULT_RESOURCE_VISIBILITY",
    "DEFAULT_SCOPE_VALIDATION_RULES",
    "FEATURE_PERMISSION_GROUPS",
    "ORGANIZATION_ROLE_INHERITANCE",
    "PROJECT_ROLE_PERMISSIONS",
    "SCOPE_EXEMPT_ROLES",
    "SCOPE_LIMITED_ROLES",
    "SCOPE_OPTIONAL_ROLES",
    "SCOPE_REQUIRED_ROLES",
    "STANDARD_PHASES",
    "STANDARD_TRADES",
    "BudgetPermissions",
    "DailyReportPermissions",
    "DocumentPermissions",
    "FeatureCategory",
    "MeetingPermissions",
    "OrganizationRole",
    "ParsedPermission",
    "ProjectRole",
    "ProjectSettingsPermissions",
    "QualityPermissions",
    "RfiPermissions",
    "SafetyPermissions",
    "SchedulePermissions",
    "ScopeOption",
    "ScopeValidationRules",
    "SubmittalPermissions",
    "build_permission",
    "can_role_have_scope",
    "create_permission_map",
    "does_role_require_scope",
    "expand_wildcard",
    "filter_permissions",
    "filter_resources_by_scope",
    "get_all_permissions",
    "get_default_visibility",
    "get_feature_permissions",
    "get_inherited_project_role",
    "get_role_permissions",
    "get_scope_summary",
    "get_wildcard_specificity",
    "has_all_permissions",
    "has_any_permission",
    "has_automatic_project_access",
    "has_permission",
    "is_scope_empty",
    "is_scope_limited_role",
    "is_scope_subset",
    "is_valid_permission",
    "is_wildcard",
    "matches_permission",
    "matches_scope",
    "merge_scopes",
    "minimize_permissions",
    "normalize_scope",
    "parse_permission",
    "sort_by_specificity",
    "validate_scope_for_role",
]
