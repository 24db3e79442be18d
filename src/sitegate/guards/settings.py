"""Project settings guard: settings, membership, permissions and deletion."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..exceptions import DenialReason
from ..models import GuardPermissionResult, PermissionContext
from ..permissions.constants import ProjectRole
from .base import ADMIN_ROLES, MANAGER_ROLES, ActionHandler, BasePermissionGuard, context_flag

# Mutations ride on read access to the settings area; authority comes from the role gates.
_RESOURCE_BY_ACTION = {
    "manage_members": "members",
    "manage_permissions": "permissions",
}


def _as_role(value: Any) -> Optional[ProjectRole]:
    if value is None:
        return None
    try:
        return ProjectRole(str(value).lower())
    except ValueError:
        return None


class ProjectSettingsGuard(BasePermissionGuard):
    """Permissions ``project_settings:{settings|members|permissions}:read``."""

    feature = "project_settings"
    default_resource = "settings"

    def permission_for(self, action: str, context: PermissionContext) -> str:
        if action in self._handlers:
            return f"{self.feature}:{_RESOURCE_BY_ACTION.get(action, self.default_resource)}:read"
        return super().permission_for(action, context)

    def resource_scope_for(self, context: PermissionContext) -> Any:
        return None

    def action_handlers(self) -> Mapping[str, ActionHandler]:
        return {
            "update": self._check_update,
            "manage_members": self._check_manage_members,
            "manage_permissions": self._check_manage_permissions,
            "delete": self._check_delete,
            "configure": self._check_configure,
        }

    async def _check_update(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        role = await self.get_user_role(user_id, project_id)
        if role not in MANAGER_ROLES:
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only project admins can update project settings",
                code="ADMIN_PERMISSION_REQUIRED",
            )
        if context_flag(context, "criticalSetting") and role not in ADMIN_ROLES:
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only project admins can update critical settings",
                code="ADMIN_ONLY_SETTING",
            )
        return GuardPermissionResult.allow()

    async def _check_manage_members(
        self, user_id: str, project_id: str, context: PermissionContext
    ) -> GuardPermissionResult:
        role = await self.get_user_role(user_id, project_id)
        if role not in MANAGER_ROLES:
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only project admins and managers can manage members",
                code="MEMBER_MANAGEMENT_PERMISSION_REQUIRED",
            )

        removing_admin = (
            context_flag(context, "action") == "remove"
            and _as_role(context_flag(context, "targetRole")) == ProjectRole.PROJECT_ADMIN
        )
        if removing_admin:
            if role not in ADMIN_ROLES:
                return GuardPermissionResult.deny(
                    DenialReason.ADMIN_ONLY,
                    "Only project admins can remove other admins",
                    code="ADMIN_REMOVAL_RESTRICTED",
                )
            if context_flag(context, "targetUserId") == user_id:
                return GuardPermissionResult.deny(
                    DenialReason.WORKFLOW_VIOLATION,
                    "Cannot remove yourself from project",
                    code="SELF_REMOVAL_NOT_ALLOWED",
                )
        return GuardPermissionResult.allow()

    async def _check_manage_permissions(
        self, user_id: str, project_id: str, context: PermissionContext
    ) -> GuardPermissionResult:
        if not await self.has_role(user_id, project_id, ADMIN_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only project admins can manage permissions",
                code="PERMISSION_MANAGEMENT_ADMIN_ONLY",
            )
        if context_flag(context, "targetUserId") == user_id:
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "Cannot modify your own permissions",
                code="SELF_PERMISSION_MODIFICATION_NOT_ALLOWED",
            )
        return GuardPermissionResult.allow()

    async def _check_delete(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if not await self.has_role(user_id, project_id, ADMIN_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.OWNER_ONLY,
                "Only project admins can delete projects",
                code="DELETE_ADMIN_ONLY",
            )
        if not context_flag(context, "confirmed"):
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "Project deletion requires confirmation",
                code="DELETION_CONFIRMATION_REQUIRED",
            )
        if context_flag(context, "hasActiveData"):
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "Cannot delete project with active data",
                code="ACTIVE_DATA_EXISTS",
            )
        return GuardPermissionResult.allow()

    async def _check_configure(
        self, user_id: str, project_id: str, context: PermissionContext
    ) -> GuardPermissionResult:
        role = await self.get_user_role(user_id, project_id)
        if role not in MANAGER_ROLES:
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only project admins and managers can configure project structure",
                code="CONFIGURATION_PERMISSION_REQUIRED",
            )
        if context_flag(context, "projectStarted") and role not in ADMIN_ROLES:
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only project admins can modify project structure after project has started",
                code="POST_START_CONFIGURATION_ADMIN_ONLY",
            )
        return GuardPermissionResult.allow()


__all__ = ["ProjectSettingsGuard"]
