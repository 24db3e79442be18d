"""Document guard: owner approval, deletion and confidential export rules."""

from __future__ import annotations

from typing import Mapping

from ..exceptions import DenialReason
from ..models import GuardPermissionResult, PermissionContext
from .base import MANAGER_ROLES, ActionHandler, BasePermissionGuard, context_flag


class DocumentGuard(BasePermissionGuard):
    """Permissions ``documents:{resource_type|document}:{action}``."""

    feature = "documents"
    default_resource = "document"
    scope_metadata_key = "documentScope"
    # Owners delete without a delete grant; the rule below decides.
    base_actions = {"delete": "update"}

    def resource_for(self, context: PermissionContext) -> str:
        return context.resource_type or self.default_resource

    def action_handlers(self) -> Mapping[str, ActionHandler]:
        return {
            "approve": self._check_approve,
            "delete": self._check_delete,
            "export": self._check_export,
        }

    async def _check_approve(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if context_flag(context, "requiresOwnerApproval") and context.resource_owner_id != user_id:
            if not await self.has_role(user_id, project_id, MANAGER_ROLES):
                return GuardPermissionResult.deny(
                    DenialReason.ADMIN_ONLY,
                    "Only project admins can approve this document",
                    code="ADMIN_APPROVAL_REQUIRED",
                )
        return GuardPermissionResult.allow()

    async def _check_delete(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if context.resource_owner_id == user_id:
            return GuardPermissionResult.allow()
        if not await self.has_role(user_id, project_id, MANAGER_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.INSUFFICIENT_PERMISSIONS,
                "Only document owner or project admins can delete documents",
                code="DELETE_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()

    async def _check_export(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if context_flag(context, "isConfidential"):
            if not await self.has_role(user_id, project_id, MANAGER_ROLES):
                return GuardPermissionResult.deny(
                    DenialReason.INSUFFICIENT_PERMISSIONS,
                    "Only admins can export confidential documents",
                    code="CONFIDENTIAL_EXPORT_RESTRICTED",
                )
        return GuardPermissionResult.allow()


__all__ = ["DocumentGuard"]
