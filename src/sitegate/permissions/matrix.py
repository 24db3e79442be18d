"""Static role → permission matrix and organization role inheritance.

Provides:
- ``PROJECT_ROLE_PERMISSIONS``: each project role's permission grants.
- ``ORGANIZATION_ROLE_INHERITANCE``: org role → automatic project role.
- ``SCOPE_LIMITED_ROLES``: roles whose grants are additionally scope-gated.
- Lookup helpers over both tables.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Optional

from .constants import (
    ALL_PERMISSIONS,
    BudgetPermissions as B,
    DailyReportPermissions as DR,
    DocumentPermissions as D,
    MeetingPermissions as M,
    OrganizationRole,
    ProjectRole,
    ProjectSettingsPermissions as PS,
    QualityPermissions as Q,
    RfiPermissions as R,
    SafetyPermissions as S,
    SchedulePermissions as SC,
    SubmittalPermissions as SU,
)

# ── Project Role Matrix ─────────────────────────────────

_MATRIX: dict[ProjectRole, tuple[str, ...]] = {
    # Full project access
    ProjectRole.PROJECT_ADMIN: (ALL_PERMISSIONS,),
    # Runs the project; settings are read-only, budget has no final approval
    ProjectRole.PROJECT_MANAGER: (
        D.ALL_DOCUMENTS,
        R.ALL_RFIS,
        SU.ALL_SUBMITTALS,
        SC.ALL_SCHEDULE,
        DR.DAILY_REPORT_READ,
        DR.DAILY_REPORT_APPROVE,
        DR.DAILY_REPORT_EXPORT,
        DR.WEATHER_READ,
        DR.LABOR_READ,
        DR.EQUIPMENT_READ,
        S.ALL_SAFETY,
        B.BUDGET_ITEM_READ,
        B.BUDGET_ITEM_CREATE,
        B.BUDGET_ITEM_UPDATE,
        B.BUDGET_ITEM_EXPORT,
        B.CHANGE_ORDER_READ,
        B.CHANGE_ORDER_CREATE,
        B.CHANGE_ORDER_UPDATE,
        B.INVOICE_READ,
        B.INVOICE_CREATE,
        B.INVOICE_UPDATE,
        B.PAYMENT_READ,
        Q.ALL_QUALITY,
        M.ALL_MEETINGS,
        PS.SETTINGS_READ,
        PS.MEMBERS_READ,
        PS.PERMISSIONS_READ,
        PS.INTEGRATIONS_READ,
    ),
    # Technical documentation and engineering tasks
    ProjectRole.PROJECT_ENGINEER: (
        D.DRAWING_CREATE,
        D.DRAWING_READ,
        D.DRAWING_UPDATE,
        D.DRAWING_EXPORT,
        D.DRAWING_VERSION,
        D.SPECIFICATION_CREATE,
        D.SPECIFICATION_READ,
        D.SPECIFICATION_UPDATE,
        D.SPECIFICATION_EXPORT,
        D.SPECIFICATION_VERSION,
        D.MODEL_CREATE,
        D.MODEL_READ,
        D.MODEL_UPDATE,
        D.MODEL_EXPORT,
        D.MODEL_VERSION,
        D.PHOTO_READ,
        D.REPORT_CREATE,
        D.REPORT_READ,
        D.REPORT_EXPORT,
        R.RFI_CREATE,
        R.RFI_READ,
        R.RFI_UPDATE,
        R.RFI_RESPOND,
        SU.SUBMITTAL_CREATE,
        SU.SUBMITTAL_READ,
        SU.SUBMITTAL_REVIEW,
        SU.SUBMITTAL_UPDATE,
        SC.ALL_SCHEDULE_READ,
        SC.TASK_UPDATE,
        SC.TASK_COMPLETE,
        DR.DAILY_REPORT_READ,
        DR.WEATHER_READ,
        DR.LABOR_READ,
        DR.EQUIPMENT_READ,
        S.INCIDENT_READ,
        S.INCIDENT_CREATE,
        S.INSPECTION_READ,
        S.TOOLBOX_TALK_READ,
        B.ALL_BUDGET_READ,
        Q.INSPECTION_CREATE,
        Q.INSPECTION_READ,
        Q.INSPECTION_UPDATE,
        Q.PUNCH_ITEM_READ,
        Q.TEST_RESULT_CREATE,
        Q.TEST_RESULT_READ,
        M.MEETING_READ,
        M.MINUTES_READ,
        M.ACTION_ITEM_CREATE,
        M.ACTION_ITEM_READ,
        M.ACTION_ITEM_UPDATE,
        PS.SETTINGS_READ,
    ),
    # Day-to-day field operations
    ProjectRole.SUPERINTENDENT: (
        D.PHOTO_CREATE,
        D.PHOTO_READ,
        D.PHOTO_UPDATE,
        D.PHOTO_EXPORT,
        D.REPORT_CREATE,
        D.REPORT_READ,
        D.REPORT_UPDATE,
        D.REPORT_EXPORT,
        D.DRAWING_READ,
        D.SPECIFICATION_READ,
        R.RFI_CREATE,
        R.RFI_READ,
        R.RFI_UPDATE,
        R.RFI_RESPOND,
        SU.SUBMITTAL_READ,
        SC.ALL_SCHEDULE_READ,
        SC.TASK_CREATE,
        SC.TASK_UPDATE,
        SC.TASK_ASSIGN,
        SC.TASK_COMPLETE,
        DR.ALL_DAILY_REPORTS,
        S.ALL_SAFETY,
        B.BUDGET_ITEM_READ,
        B.CHANGE_ORDER_READ,
        Q.INSPECTION_CREATE,
        Q.INSPECTION_READ,
        Q.INSPECTION_UPDATE,
        Q.PUNCH_ITEM_CREATE,
        Q.PUNCH_ITEM_READ,
        Q.PUNCH_ITEM_UPDATE,
        Q.TEST_RESULT_READ,
        M.MEETING_CREATE,
        M.MEETING_READ,
        M.MEETING_UPDATE,
        M.MINUTES_CREATE,
        M.MINUTES_READ,
        M.MINUTES_UPDATE,
        M.ACTION_ITEM_CREATE,
        M.ACTION_ITEM_READ,
        M.ACTION_ITEM_UPDATE,
        PS.SETTINGS_READ,
    ),
    # Work-area limited; every grant is scope-filtered
    ProjectRole.FOREMAN: (
        D.PHOTO_CREATE,
        D.PHOTO_READ,
        D.PHOTO_EXPORT,
        D.REPORT_CREATE,
        D.REPORT_READ,
        D.DRAWING_READ,
        D.SPECIFICATION_READ,
        R.RFI_CREATE,
        R.RFI_READ,
        SU.SUBMITTAL_READ,
        SC.TASK_READ,
        SC.TASK_UPDATE,
        SC.TASK_COMPLETE,
        DR.DAILY_REPORT_CREATE,
        DR.DAILY_REPORT_READ,
        DR.DAILY_REPORT_UPDATE,
        DR.WEATHER_CREATE,
        DR.WEATHER_READ,
        DR.LABOR_CREATE,
        DR.LABOR_READ,
        DR.EQUIPMENT_CREATE,
        DR.EQUIPMENT_READ,
        S.INCIDENT_CREATE,
        S.INCIDENT_READ,
        S.INSPECTION_READ,
        S.TOOLBOX_TALK_READ,
        Q.PUNCH_ITEM_READ,
        Q.PUNCH_ITEM_UPDATE,
        M.MINUTES_READ,
        M.ACTION_ITEM_READ,
    ),
    # Design authority and submittal reviewer
    ProjectRole.ARCHITECT_ENGINEER: (
        D.DRAWING_CREATE,
        D.DRAWING_READ,
        D.DRAWING_UPDATE,
        D.DRAWING_APPROVE,
        D.DRAWING_EXPORT,
        D.DRAWING_VERSION,
        D.SPECIFICATION_CREATE,
        D.SPECIFICATION_READ,
        D.SPECIFICATION_UPDATE,
        D.SPECIFICATION_APPROVE,
        D.SPECIFICATION_EXPORT,
        D.SPECIFICATION_VERSION,
        D.MODEL_CREATE,
        D.MODEL_READ,
        D.MODEL_UPDATE,
        D.MODEL_EXPORT,
        D.MODEL_VERSION,
        D.PHOTO_READ,
        D.REPORT_READ,
        R.RFI_CREATE,
        R.RFI_READ,
        R.RFI_RESPOND,
        R.RFI_UPDATE,
        SU.SUBMITTAL_READ,
        SU.SUBMITTAL_REVIEW,
        SU.SUBMITTAL_APPROVE,
        SU.SUBMITTAL_REJECT,
        SU.SUBMITTAL_REQUIRE_RESUBMIT,
        SC.ALL_SCHEDULE_READ,
        DR.DAILY_REPORT_READ,
        S.INCIDENT_READ,
        S.INSPECTION_READ,
        S.TOOLBOX_TALK_READ,
        Q.INSPECTION_READ,
        Q.PUNCH_ITEM_READ,
        Q.TEST_RESULT_READ,
        M.MEETING_READ,
        M.MINUTES_READ,
        M.ACTION_ITEM_CREATE,
        M.ACTION_ITEM_READ,
    ),
    # Trade-specific; every grant is scope-filtered
    ProjectRole.SUBCONTRACTOR: (
        D.PHOTO_CREATE,
        D.PHOTO_READ,
        D.DRAWING_READ,
        D.SPECIFICATION_READ,
        D.REPORT_CREATE,
        D.REPORT_READ,
        R.RFI_CREATE,
        R.RFI_READ,
        SU.SUBMITTAL_CREATE,
        SU.SUBMITTAL_READ,
        SU.SUBMITTAL_UPDATE,
        SC.TASK_READ,
        SC.TASK_UPDATE,
        SC.TASK_COMPLETE,
        DR.DAILY_REPORT_CREATE,
        DR.DAILY_REPORT_READ,
        DR.WEATHER_READ,
        DR.LABOR_CREATE,
        DR.LABOR_READ,
        S.INCIDENT_READ,
        S.TOOLBOX_TALK_READ,
        B.BUDGET_ITEM_READ,
        B.INVOICE_CREATE,
        B.INVOICE_READ,
        Q.PUNCH_ITEM_READ,
        Q.PUNCH_ITEM_UPDATE,
        Q.TEST_RESULT_READ,
        M.MINUTES_READ,
        M.ACTION_ITEM_READ,
    ),
    # Owner's representative with approval authority
    ProjectRole.OWNER_REP: (
        D.ALL_DOCUMENT_READ,
        D.DRAWING_APPROVE,
        D.SPECIFICATION_APPROVE,
        D.REPORT_APPROVE,
        R.RFI_READ,
        SU.SUBMITTAL_READ,
        SU.SUBMITTAL_APPROVE,
        SU.SUBMITTAL_REJECT,
        SC.ALL_SCHEDULE_READ,
        SC.MILESTONE_APPROVE,
        DR.DAILY_REPORT_READ,
        DR.WEATHER_READ,
        DR.LABOR_READ,
        DR.EQUIPMENT_READ,
        S.INCIDENT_READ,
        S.INSPECTION_READ,
        S.MEETING_READ,
        S.TOOLBOX_TALK_READ,
        B.ALL_BUDGET_READ,
        B.CHANGE_ORDER_APPROVE,
        B.INVOICE_APPROVE,
        B.PAYMENT_APPROVE,
        Q.INSPECTION_READ,
        Q.INSPECTION_APPROVE,
        Q.PUNCH_ITEM_READ,
        Q.TEST_RESULT_READ,
        M.MEETING_READ,
        M.MINUTES_READ,
        M.ACTION_ITEM_READ,
        PS.SETTINGS_READ,
        PS.MEMBERS_READ,
    ),
    # Independent compliance inspector, full quality control access
    ProjectRole.INSPECTOR: (
        D.DRAWING_READ,
        D.SPECIFICATION_READ,
        D.PHOTO_READ,
        D.PHOTO_CREATE,
        D.REPORT_CREATE,
        D.REPORT_READ,
        D.REPORT_EXPORT,
        R.RFI_READ,
        SU.SUBMITTAL_READ,
        SC.ALL_SCHEDULE_READ,
        DR.DAILY_REPORT_READ,
        DR.DAILY_REPORT_CREATE,
        DR.WEATHER_READ,
        S.INCIDENT_READ,
        S.INCIDENT_CREATE,
        S.INSPECTION_CREATE,
        S.INSPECTION_READ,
        S.MEETING_READ,
        S.TOOLBOX_TALK_READ,
        Q.ALL_QUALITY,
        M.MEETING_READ,
        M.MINUTES_READ,
    ),
    # Read-only observer
    ProjectRole.VIEWER: (
        D.DRAWING_READ,
        D.SPECIFICATION_READ,
        D.PHOTO_READ,
        D.REPORT_READ,
        R.RFI_READ,
        SU.SUBMITTAL_READ,
        SC.TASK_READ,
        SC.MILESTONE_READ,
        DR.DAILY_REPORT_READ,
        S.TOOLBOX_TALK_READ,
        Q.PUNCH_ITEM_READ,
        M.MINUTES_READ,
    ),
}

PROJECT_ROLE_PERMISSIONS: Mapping[ProjectRole, tuple[str, ...]] = MappingProxyType(_MATRIX)

# ── Organization Role Inheritance ───────────────────────
# Owners and org admins get PROJECT_ADMIN on every project of the organization.

ORGANIZATION_ROLE_INHERITANCE: Mapping[OrganizationRole, Optional[ProjectRole]] = MappingProxyType(
    {
        OrganizationRole.OWNER: ProjectRole.PROJECT_ADMIN,
        OrganizationRole.ORG_ADMIN: ProjectRole.PROJECT_ADMIN,
        OrganizationRole.ORG_MEMBER: None,
        OrganizationRole.GUEST: None,
    }
)

SCOPE_LIMITED_ROLES: frozenset[ProjectRole] = frozenset({ProjectRole.FOREMAN, ProjectRole.SUBCONTRACTOR})


def get_role_permissions(role: ProjectRole | str) -> tuple[str, ...]:
    """Permission grants of a project role (empty for unknown roles)."""
    try:
        return PROJECT_ROLE_PERMISSIONS[ProjectRole(role)]
    except ValueError:
        return ()


def is_scope_limited_role(role: ProjectRole | str | None) -> bool:
    if role is None:
        return False
    try:
        return ProjectRole(role) in SCOPE_LIMITED_ROLES
    except ValueError:
        return False


def get_inherited_project_role(org_role: OrganizationRole | str | None) -> Optional[ProjectRole]:
    """Project role granted automatically by an organization role, if any."""
    if org_role is None:
        return None
    try:
        return ORGANIZATION_ROLE_INHERITANCE[OrganizationRole(org_role)]
    except ValueError:
        return None


def has_automatic_project_access(org_role: OrganizationRole | str | None) -> bool:
    return get_inherited_project_role(org_role) is not None


__all__ = [
    "PROJECT_ROLE_PERMISSIONS",
    "ORGANIZATION_ROLE_INHERITANCE",
    "SCOPE_LIMITED_ROLES",
    "get_role_permissions",
    "is_scope_limited_role",
    "get_inherited_project_role",
    "has_automatic_project_access",
]
