"""Quality inspection guard: approval, failure and update rules."""

from __future__ import annotations

from typing import Mapping

from ..exceptions import DenialReason
from ..models import GuardPermissionResult, PermissionContext
from ..permissions.constants import ProjectRole
from .base import ActionHandler, BasePermissionGuard, context_flag

OPEN_INSPECTION_STATUSES = ("in_progress", "pending_approval")
COMPLETED_INSPECTION_STATUSES = ("passed", "failed")

# Inspectors stand in for quality-control officers.
QUALITY_APPROVER_ROLES = frozenset(
    {
        ProjectRole.PROJECT_ADMIN,
        ProjectRole.PROJECT_MANAGER,
        ProjectRole.SUPERINTENDENT,
        ProjectRole.INSPECTOR,
    }
)


class QualityGuard(BasePermissionGuard):
    """Permissions ``quality:inspection:{action}``.

    Passing and failing an inspection both require the approve grant.
    """

    feature = "quality"
    default_resource = "inspection"
    scope_metadata_key = "inspectionScope"
    base_actions = {
        "pass": "approve",
        "fail": "approve",
        "update": "read",
    }

    def action_handlers(self) -> Mapping[str, ActionHandler]:
        return {
            "approve": self._check_approve,
            "pass": self._check_approve,
            "fail": self._check_fail,
            "update": self._check_update,
        }

    async def _check_approve(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        # Self-approval is refused before any role is considered.
        if context.resource_owner_id == user_id:
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "Inspectors cannot approve their own inspections",
                code="SELF_APPROVAL_NOT_ALLOWED",
            )

        status = self.check_valid_status(context.current_status, OPEN_INSPECTION_STATUSES, "approve")
        if not status.allowed:
            return status

        if context_flag(context, "requiresDocumentation") and not context_flag(context, "hasDocumentation"):
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "Inspection requires documentation before approval",
                code="DOCUMENTATION_REQUIRED",
            )

        if not await self.has_role(user_id, project_id, QUALITY_APPROVER_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.INSUFFICIENT_PERMISSIONS,
                "Only quality control officers or supervisors can approve inspections",
                code="APPROVAL_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()

    async def _check_fail(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        status = self.check_valid_status(context.current_status, OPEN_INSPECTION_STATUSES, "fail")
        if not status.allowed:
            return status

        if not context_flag(context, "failureReason"):
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "A reason must be provided when failing an inspection",
                code="FAILURE_REASON_REQUIRED",
            )

        if not await self.has_role(user_id, project_id, QUALITY_APPROVER_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.INSUFFICIENT_PERMISSIONS,
                "Only quality control officers or supervisors can fail inspections",
                code="FAIL_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()

    async def _check_update(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if context.current_status in COMPLETED_INSPECTION_STATUSES:
            return GuardPermissionResult.deny(
                DenialReason.INVALID_STATUS,
                "Cannot update completed inspections",
                code="INSPECTION_COMPLETED",
            )

        if context.resource_owner_id == user_id or user_id in context.assigned_to:
            return GuardPermissionResult.allow()

        if not await self.has_role(user_id, project_id, QUALITY_APPROVER_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.INSUFFICIENT_PERMISSIONS,
                "Only the inspector, assigned user, or quality control officer can update this inspection",
                code="UPDATE_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()


__all__ = ["QualityGuard"]
