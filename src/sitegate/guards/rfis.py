"""RFI guard: response, assignment and closing workflow."""

from __future__ import annotations

from typing import Mapping

from ..exceptions import DenialReason
from ..models import GuardPermissionResult, PermissionContext
from ..permissions.constants import ProjectRole
from .base import MANAGER_ROLES, ActionHandler, BasePermissionGuard, context_flag

RESPONDABLE_STATUSES = ("open", "draft")

ASSIGNER_ROLES = frozenset(
    {
        ProjectRole.PROJECT_ADMIN,
        ProjectRole.PROJECT_MANAGER,
        ProjectRole.PROJECT_ENGINEER,
        ProjectRole.SUPERINTENDENT,
    }
)


class RfiGuard(BasePermissionGuard):
    """Permissions ``rfis:rfi:{action}``."""

    feature = "rfis"
    default_resource = "rfi"
    scope_metadata_key = "rfiScope"
    base_actions = {"assign": "update", "close": "read"}

    def action_handlers(self) -> Mapping[str, ActionHandler]:
        return {
            "respond": self._check_respond,
            "assign": self._check_assign,
            "close": self._check_close,
        }

    async def _check_respond(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if context.current_status not in RESPONDABLE_STATUSES:
            return GuardPermissionResult.deny(
                DenialReason.INVALID_STATUS,
                f"Cannot respond to RFI with status: {context.current_status}",
                code="RFI_NOT_OPEN",
            )

        if context.assigned_to and not self.check_assignment(user_id, context.assigned_to).allowed:
            if not await self.has_role(user_id, project_id, MANAGER_ROLES):
                return GuardPermissionResult.deny(
                    DenialReason.NOT_ASSIGNED,
                    "You must be assigned to this RFI to respond",
                    code="NOT_ASSIGNED_TO_RFI",
                )
        return GuardPermissionResult.allow()

    async def _check_assign(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if not await self.has_role(user_id, project_id, ASSIGNER_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.INSUFFICIENT_PERMISSIONS,
                "Only managers and engineers can assign RFIs",
                code="ASSIGNMENT_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()

    async def _check_close(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if not context_flag(context, "hasResponse"):
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "RFI must have a response before it can be closed",
                code="RFI_RESPONSE_REQUIRED",
            )

        is_creator = context.resource_owner_id == user_id
        is_assignee = user_id in context.assigned_to
        if not (is_creator or is_assignee) and not await self.has_role(user_id, project_id, MANAGER_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.INSUFFICIENT_PERMISSIONS,
                "Only the creator, assignee, or project admin can close this RFI",
                code="CLOSE_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()


__all__ = ["RfiGuard"]
