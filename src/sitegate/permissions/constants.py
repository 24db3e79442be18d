"""Roles, feature categories and permission constants.

Provides:
- ``ProjectRole`` / ``OrganizationRole``: the fixed role variants.
- ``FeatureCategory``: first segment of every permission string.
- ``DocumentPermissions`` ... ``ProjectSettingsPermissions``: permission
  constants per feature (``feature:resource:action`` format).
- ``ALL_PERMISSIONS``: the ``*:*:*`` superuser wildcard.
"""

from __future__ import annotations

from enum import Enum

WILDCARD = "*"
ALL_PERMISSIONS = "*:*:*"


class ProjectRole(str, Enum):
    """Role a user holds on a single project."""

    PROJECT_ADMIN = "project_admin"
    PROJECT_MANAGER = "project_manager"
    PROJECT_ENGINEER = "project_engineer"
    SUPERINTENDENT = "superintendent"
    FOREMAN = "foreman"
    ARCHITECT_ENGINEER = "architect_engineer"
    SUBCONTRACTOR = "subcontractor"
    OWNER_REP = "owner_rep"
    INSPECTOR = "inspector"
    VIEWER = "viewer"


class OrganizationRole(str, Enum):
    """Role a user holds in the organization owning a project."""

    OWNER = "owner"
    ORG_ADMIN = "org_admin"
    ORG_MEMBER = "org_member"
    GUEST = "guest"


class FeatureCategory(str, Enum):
    DOCUMENTS = "documents"
    RFIS = "rfis"
    SUBMITTALS = "submittals"
    SCHEDULE = "schedule"
    DAILY_REPORTS = "daily_reports"
    SAFETY = "safety"
    BUDGET = "budget"
    QUALITY = "quality"
    MEETINGS = "meetings"
    PROJECT_SETTINGS = "project_settings"


# ── Permission Constants ────────────────────────────────
# Safety and quality both have an ``inspection`` resource, so constants stay
# grouped per feature rather than merged into one namespace.


class DocumentPermissions:
    DRAWING_CREATE = "documents:drawing:create"
    DRAWING_READ = "documents:drawing:read"
    DRAWING_UPDATE = "documents:drawing:update"
    DRAWING_DELETE = "documents:drawing:delete"
    DRAWING_APPROVE = "documents:drawing:approve"
    DRAWING_EXPORT = "documents:drawing:export"
    DRAWING_VERSION = "documents:drawing:version"

    SPECIFICATION_CREATE = "documents:specification:create"
    SPECIFICATION_READ = "documents:specification:read"
    SPECIFICATION_UPDATE = "documents:specification:update"
    SPECIFICATION_DELETE = "documents:specification:delete"
    SPECIFICATION_APPROVE = "documents:specification:approve"
    SPECIFICATION_EXPORT = "documents:specification:export"
    SPECIFICATION_VERSION = "documents:specification:version"

    PHOTO_CREATE = "documents:photo:create"
    PHOTO_READ = "documents:photo:read"
    PHOTO_UPDATE = "documents:photo:update"
    PHOTO_DELETE = "documents:photo:delete"
    PHOTO_EXPORT = "documents:photo:export"

    MODEL_CREATE = "documents:model:create"
    MODEL_READ = "documents:model:read"
    MODEL_UPDATE = "documents:model:update"
    MODEL_DELETE = "documents:model:delete"
    MODEL_EXPORT = "documents:model:export"
    MODEL_VERSION = "documents:model:version"

    REPORT_CREATE = "documents:report:create"
    REPORT_READ = "documents:report:read"
    REPORT_UPDATE = "documents:report:update"
    REPORT_DELETE = "documents:report:delete"
    REPORT_APPROVE = "documents:report:approve"
    REPORT_EXPORT = "documents:report:export"

    ALL_DOCUMENTS = "documents:*:*"
    ALL_DOCUMENT_READ = "documents:*:read"
    ALL_DOCUMENT_CREATE = "documents:*:create"
    ALL_DRAWING = "documents:drawing:*"
    ALL_PHOTO = "documents:photo:*"


class RfiPermissions:
    RFI_CREATE = "rfis:rfi:create"
    RFI_READ = "rfis:rfi:read"
    RFI_UPDATE = "rfis:rfi:update"
    RFI_DELETE = "rfis:rfi:delete"
    RFI_ASSIGN = "rfis:rfi:assign"
    RFI_RESPOND = "rfis:rfi:respond"
    RFI_APPROVE = "rfis:rfi:approve"
    RFI_CLOSE = "rfis:rfi:close"

    ALL_RFIS = "rfis:*:*"


class SubmittalPermissions:
    SUBMITTAL_CREATE = "submittals:submittal:create"
    SUBMITTAL_READ = "submittals:submittal:read"
    SUBMITTAL_UPDATE = "submittals:submittal:update"
    SUBMITTAL_DELETE = "submittals:submittal:delete"
    SUBMITTAL_REVIEW = "submittals:submittal:review"
    SUBMITTAL_APPROVE = "submittals:submittal:approve"
    SUBMITTAL_REJECT = "submittals:submittal:reject"
    SUBMITTAL_REQUIRE_RESUBMIT = "submittals:submittal:require_resubmit"

    ALL_SUBMITTALS = "submittals:*:*"


class SchedulePermissions:
    TASK_CREATE = "schedule:task:create"
    TASK_READ = "schedule:task:read"
    TASK_UPDATE = "schedule:task:update"
    TASK_DELETE = "schedule:task:delete"
    TASK_ASSIGN = "schedule:task:assign"
    TASK_COMPLETE = "schedule:task:complete"

    MILESTONE_CREATE = "schedule:milestone:create"
    MILESTONE_READ = "schedule:milestone:read"
    MILESTONE_UPDATE = "schedule:milestone:update"
    MILESTONE_DELETE = "schedule:milestone:delete"
    MILESTONE_APPROVE = "schedule:milestone:approve"

    DEPENDENCY_CREATE = "schedule:dependency:create"
    DEPENDENCY_READ = "schedule:dependency:read"
    DEPENDENCY_UPDATE = "schedule:dependency:update"
    DEPENDENCY_DELETE = "schedule:dependency:delete"

    ALL_SCHEDULE = "schedule:*:*"
    ALL_SCHEDULE_READ = "schedule:*:read"


class DailyReportPermissions:
    DAILY_REPORT_CREATE = "daily_reports:daily_report:create"
    DAILY_REPORT_READ = "daily_reports:daily_report:read"
    DAILY_REPORT_UPDATE = "daily_reports:daily_report:update"
    DAILY_REPORT_DELETE = "daily_reports:daily_report:delete"
    DAILY_REPORT_APPROVE = "daily_reports:daily_report:approve"
    DAILY_REPORT_EXPORT = "daily_reports:daily_report:export"

    WEATHER_CREATE = "daily_reports:weather:create"
    WEATHER_READ = "daily_reports:weather:read"
    WEATHER_UPDATE = "daily_reports:weather:update"

    LABOR_CREATE = "daily_reports:labor:create"
    LABOR_READ = "daily_reports:labor:read"
    LABOR_UPDATE = "daily_reports:labor:update"

    EQUIPMENT_CREATE = "daily_reports:equipment:create"
    EQUIPMENT_READ = "daily_reports:equipment:read"
    EQUIPMENT_UPDATE = "daily_reports:equipment:update"

    ALL_DAILY_REPORTS = "daily_reports:*:*"


class SafetyPermissions:
    INCIDENT_CREATE = "safety:incident:create"
    INCIDENT_READ = "safety:incident:read"
    INCIDENT_UPDATE = "safety:incident:update"
    INCIDENT_DELETE = "safety:incident:delete"
    INCIDENT_INVESTIGATE = "safety:incident:investigate"
    INCIDENT_CLOSE = "safety:incident:close"

    INSPECTION_CREATE = "safety:inspection:create"
    INSPECTION_READ = "safety:inspection:read"
    INSPECTION_UPDATE = "safety:inspection:update"
    INSPECTION_DELETE = "safety:inspection:delete"

    MEETING_CREATE = "safety:meeting:create"
    MEETING_READ = "safety:meeting:read"
    MEETING_UPDATE = "safety:meeting:update"

    TOOLBOX_TALK_CREATE = "safety:toolbox_talk:create"
    TOOLBOX_TALK_READ = "safety:toolbox_talk:read"
    TOOLBOX_TALK_UPDATE = "safety:toolbox_talk:update"

    ALL_SAFETY = "safety:*:*"


class BudgetPermissions:
    BUDGET_ITEM_READ = "budget:budget_item:read"
    BUDGET_ITEM_CREATE = "budget:budget_item:create"
    BUDGET_ITEM_UPDATE = "budget:budget_item:update"
    BUDGET_ITEM_EXPORT = "budget:budget_item:export"

    CHANGE_ORDER_READ = "budget:change_order:read"
    CHANGE_ORDER_CREATE = "budget:change_order:create"
    CHANGE_ORDER_UPDATE = "budget:change_order:update"
    CHANGE_ORDER_APPROVE = "budget:change_order:approve"

    INVOICE_READ = "budget:invoice:read"
    INVOICE_CREATE = "budget:invoice:create"
    INVOICE_UPDATE = "budget:invoice:update"
    INVOICE_APPROVE = "budget:invoice:approve"

    PAYMENT_READ = "budget:payment:read"
    PAYMENT_APPROVE = "budget:payment:approve"

    ALL_BUDGET = "budget:*:*"
    ALL_BUDGET_READ = "budget:*:read"


class QualityPermissions:
    INSPECTION_CREATE = "quality:inspection:create"
    INSPECTION_READ = "quality:inspection:read"
    INSPECTION_UPDATE = "quality:inspection:update"
    INSPECTION_DELETE = "quality:inspection:delete"
    INSPECTION_APPROVE = "quality:inspection:approve"

    PUNCH_ITEM_CREATE = "quality:punch_item:create"
    PUNCH_ITEM_READ = "quality:punch_item:read"
    PUNCH_ITEM_UPDATE = "quality:punch_item:update"
    PUNCH_ITEM_DELETE = "quality:punch_item:delete"

    TEST_RESULT_CREATE = "quality:test_result:create"
    TEST_RESULT_READ = "quality:test_result:read"
    TEST_RESULT_UPDATE = "quality:test_result:update"
    TEST_RESULT_PASS = "quality:test_result:pass"
    TEST_RESULT_FAIL = "quality:test_result:fail"

    ALL_QUALITY = "quality:*:*"


class MeetingPermissions:
    MEETING_CREATE = "meetings:meeting:create"
    MEETING_READ = "meetings:meeting:read"
    MEETING_UPDATE = "meetings:meeting:update"
    MEETING_DELETE = "meetings:meeting:delete"
    MEETING_SCHEDULE = "meetings:meeting:schedule"
    MEETING_CANCEL = "meetings:meeting:cancel"

    MINUTES_CREATE = "meetings:minutes:create"
    MINUTES_READ = "meetings:minutes:read"
    MINUTES_UPDATE = "meetings:minutes:update"

    ACTION_ITEM_CREATE = "meetings:action_item:create"
    ACTION_ITEM_READ = "meetings:action_item:read"
    ACTION_ITEM_UPDATE = "meetings:action_item:update"

    ALL_MEETINGS = "meetings:*:*"


class ProjectSettingsPermissions:
    SETTINGS_READ = "project_settings:settings:read"
    SETTINGS_UPDATE = "project_settings:settings:update"
    SETTINGS_CONFIGURE = "project_settings:settings:configure"

    MEMBERS_READ = "project_settings:members:read"
    MEMBERS_INVITE = "project_settings:members:invite"
    MEMBERS_REMOVE = "project_settings:members:remove"
    MEMBERS_UPDATE = "project_settings:members:update"

    PERMISSIONS_READ = "project_settings:permissions:read"
    PERMISSIONS_UPDATE = "project_settings:permissions:update"

    INTEGRATIONS_READ = "project_settings:integrations:read"
    INTEGRATIONS_CONFIGURE = "project_settings:integrations:configure"

    ALL_PROJECT_SETTINGS = "project_settings:*:*"


FEATURE_PERMISSION_GROUPS: dict[FeatureCategory, type] = {
    FeatureCategory.DOCUMENTS: DocumentPermissions,
    FeatureCategory.RFIS: RfiPermissions,
    FeatureCategory.SUBMITTALS: SubmittalPermissions,
    FeatureCategory.SCHEDULE: SchedulePermissions,
    FeatureCategory.DAILY_REPORTS: DailyReportPermissions,
    FeatureCategory.SAFETY: SafetyPermissions,
    FeatureCategory.BUDGET: BudgetPermissions,
    FeatureCategory.QUALITY: QualityPermissions,
    FeatureCategory.MEETINGS: MeetingPermissions,
    FeatureCategory.PROJECT_SETTINGS: ProjectSettingsPermissions,
}


def _group_values(group: type) -> list[str]:
    return [value for name, value in vars(group).items() if name.isupper() and isinstance(value, str)]


def get_all_permissions() -> list[str]:
    """Every declared permission, wildcards included, plus ``*:*:*``."""
    result: list[str] = []
    for group in FEATURE_PERMISSION_GROUPS.values():
        result.extend(_group_values(group))
    result.append(ALL_PERMISSIONS)
    return result


def get_feature_permissions(feature: FeatureCategory | str) -> list[str]:
    """All declared permissions whose feature segment is ``feature``."""
    prefix = f"{FeatureCategory(feature).value}:"
    return [p for p in get_all_permissions() if p.startswith(prefix)]


__all__ = [
    "ALL_PERMISSIONS",
    "WILDCARD",
    "ProjectRole",
    "OrganizationRole",
    "FeatureCategory",
    "DocumentPermissions",
    "RfiPermissions",
    "SubmittalPermissions",
    "SchedulePermissions",
    "DailyReportPermissions",
    "SafetyPermissions",
    "BudgetPermissions",
    "QualityPermissions",
    "MeetingPermissions",
    "ProjectSettingsPermissions",
    "FEATURE_PERMISSION_GROUPS",
    "get_all_permissions",
    "get_feature_permissions",
]
