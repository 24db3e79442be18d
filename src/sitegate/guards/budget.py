"""Budget guard: binary financial access and amount-based approval escalation.

Financial data is never scope-filtered; access depends on role alone.
"""

from __future__ import annotations

from typing import Any, Mapping

from ..exceptions import DenialReason
from ..models import GuardPermissionResult, PermissionContext
from ..permissions.constants import ProjectRole
from .base import ADMIN_ROLES, MANAGER_ROLES, ActionHandler, BasePermissionGuard, context_flag

# Org owners and admins reach these through inherited PROJECT_ADMIN.
FINANCIAL_ROLES = MANAGER_ROLES

# Approvals ride on read access to the approved resource; the role gates decide.
_APPROVAL_PERMISSIONS = {
    "approve_change_order": "budget:change_order:read",
    "approve_payment": "budget:payment:read",
}


def _amount(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


class BudgetGuard(BasePermissionGuard):
    """Permissions ``budget:{resource_type|budget_item}:{action}``.

    Thresholds default to ``config.change_order_approval_threshold`` and
    ``config.payment_approval_threshold``; a caller may override either with
    an ``approvalThreshold`` metadata value.
    """

    feature = "budget"
    default_resource = "budget_item"

    def resource_for(self, context: PermissionContext) -> str:
        return context.resource_type or self.default_resource

    def permission_for(self, action: str, context: PermissionContext) -> str:
        if action in _APPROVAL_PERMISSIONS:
            return _APPROVAL_PERMISSIONS[action]
        return super().permission_for(action, context)

    def resource_scope_for(self, context: PermissionContext) -> Any:
        return None

    def action_handlers(self) -> Mapping[str, ActionHandler]:
        return {
            "read": self._check_read,
            "approve_change_order": self._check_approve_change_order,
            "approve_payment": self._check_approve_payment,
            "export": self._check_export,
        }

    async def _check_read(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        role = await self.get_user_role(user_id, project_id)
        if role not in FINANCIAL_ROLES:
            return GuardPermissionResult.deny(
                DenialReason.FINANCIAL_ACCESS_REQUIRED,
                "You do not have permission to view financial data",
                code="FINANCIAL_ACCESS_DENIED",
                user_role=role,
            )
        return GuardPermissionResult.allow()

    async def _check_approval(
        self,
        user_id: str,
        project_id: str,
        context: PermissionContext,
        label: str,
        default_threshold: float,
    ) -> GuardPermissionResult:
        role = await self.get_user_role(user_id, project_id)
        amount = _amount(context_flag(context, "amount"))
        threshold = _amount(context_flag(context, "approvalThreshold")) or default_threshold

        if amount > threshold and role not in ADMIN_ROLES:
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                f"{label} over ${threshold:,.0f} require admin approval",
                code="ADMIN_APPROVAL_REQUIRED",
                user_role=role,
                metadata={"amount": amount, "threshold": threshold},
            )

        if role not in MANAGER_ROLES:
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                f"Only project managers or admins can approve {label.lower()}",
                code="MANAGER_APPROVAL_REQUIRED",
                user_role=role,
            )
        return GuardPermissionResult.allow(user_role=role)

    async def _check_approve_change_order(
        self, user_id: str, project_id: str, context: PermissionContext
    ) -> GuardPermissionResult:
        return await self._check_approval(
            user_id,
            project_id,
            context,
            "Change orders",
            self._config.change_order_approval_threshold,
        )

    async def _check_approve_payment(
        self, user_id: str, project_id: str, context: PermissionContext
    ) -> GuardPermissionResult:
        result = await self._check_approval(
            user_id,
            project_id,
            context,
            "Payments",
            self._config.payment_approval_threshold,
        )
        if not result.allowed:
            return result

        if not context_flag(context, "hasReview"):
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "Payment must be reviewed before approval",
                code="REVIEW_REQUIRED",
            )
        return result

    async def _check_export(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        if not await self.has_role(user_id, project_id, FINANCIAL_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only project managers or admins can export financial data",
                code="EXPORT_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()


__all__ = ["BudgetGuard", "FINANCIAL_ROLES"]
