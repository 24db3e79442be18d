"""Safety incident guard: investigation, closing and update rules."""

from __future__ import annotations

from typing import Mapping

from ..exceptions import DenialReason
from ..models import GuardPermissionResult, PermissionContext
from ..permissions.constants import ProjectRole
from .base import ActionHandler, BasePermissionGuard, context_flag

# No dedicated safety-officer project role exists; supervisors cover it.
SAFETY_SUPERVISOR_ROLES = frozenset(
    {
        ProjectRole.PROJECT_ADMIN,
        ProjectRole.PROJECT_MANAGER,
        ProjectRole.SUPERINTENDENT,
    }
)


class SafetyGuard(BasePermissionGuard):
    """Permissions ``safety:incident:{action}``."""

    feature = "safety"
    default_resource = "incident"
    scope_metadata_key = "incidentScope"
    # Reporters and assignees update without an update grant.
    base_actions = {"update": "read"}

    def action_handlers(self) -> Mapping[str, ActionHandler]:
        return {
            "investigate": self._check_investigate,
            "close": self._check_close,
            "update": self._check_update,
        }

    async def _check_investigate(
        self, user_id: str, project_id: str, context: PermissionContext
    ) -> GuardPermissionResult:
        status = self.check_valid_status(context.current_status, ("open", "reported"), "investigate")
        if not status.allowed:
            return status

        if not await self.has_role(user_id, project_id, SAFETY_SUPERVISOR_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.INSUFFICIENT_PERMISSIONS,
                "Only safety officers or supervisors can investigate incidents",
                code="INVESTIGATION_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()

    async def _check_close(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if not context_flag(context, "hasInvestigation"):
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "Incident must be investigated before closing",
                code="INVESTIGATION_REQUIRED",
            )

        status = self.check_valid_status(
            context.current_status, ("under_investigation", "investigated"), "close"
        )
        if not status.allowed:
            return status

        if not await self.has_role(user_id, project_id, SAFETY_SUPERVISOR_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only safety officers or admins can close safety incidents",
                code="CLOSE_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()

    async def _check_update(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if context.resource_owner_id == user_id:
            if context.current_status == "closed":
                return GuardPermissionResult.deny(
                    DenialReason.INVALID_STATUS,
                    "Cannot update closed incidents",
                    code="INCIDENT_CLOSED",
                )
            return GuardPermissionResult.allow()

        if user_id in context.assigned_to:
            return GuardPermissionResult.allow()

        if not await self.has_role(user_id, project_id, SAFETY_SUPERVISOR_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.INSUFFICIENT_PERMISSIONS,
                "Only the reporter, assigned investigator, or safety officer can update this incident",
                code="UPDATE_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()


__all__ = ["SafetyGuard"]
