"""Feature guards layering workflow rules over the base permission check.

Each guard exposes ``check_permission`` (returns a GuardPermissionResult) and
``enforce_permission`` (raises DenialError), sharing a GuardCache and an
AuditService when they are passed in.
"""

from .audit import AuditService
from .base import ADMIN_ROLES, MANAGER_ROLES, BasePermissionGuard, context_flag
from .budget import BudgetGuard
from .cache import GuardCache, GuardCacheEntry
from .documents import DocumentGuard
from .quality import QualityGuard
from .rfis import RfiGuard
from .safety import SafetyGuard
from .settings import ProjectSettingsGuard
from .submittals import SubmittalGuard

__all__ = [
    "ADMIN_ROLES",
    "MANAGER_ROLES",
    "AuditService",
    "BasePermissionGuard",
    "BudgetGuard",
    "DocumentGuard",
    "GuardCache",
    "GuardCacheEntry",
    "ProjectSettingsGuard",
    "QualityGuard",
    "RfiGuard",
    "SafetyGuard",
    "SubmittalGuard",
    "context_flag",
]
