"""Submittal guard: review, approval, rejection and resubmission workflow."""

from __future__ import annotations

from typing import Mapping

from ..exceptions import DenialReason
from ..models import GuardPermissionResult, PermissionContext
from ..permissions.constants import ProjectRole
from .base import ActionHandler, BasePermissionGuard, context_flag

REVIEWER_ROLES = frozenset(
    {
        ProjectRole.PROJECT_ADMIN,
        ProjectRole.PROJECT_MANAGER,
        ProjectRole.PROJECT_ENGINEER,
    }
)


class SubmittalGuard(BasePermissionGuard):
    """Permissions ``submittals:submittal:{action}``.

    Decisions (approve/reject/require_resubmit) ride on the review grant; the
    role gates below decide who may actually decide.
    """

    feature = "submittals"
    default_resource = "submittal"
    scope_metadata_key = "submittalScope"
    base_actions = {
        "approve": "review",
        "reject": "review",
        "require_resubmit": "review",
    }

    def action_handlers(self) -> Mapping[str, ActionHandler]:
        return {
            "review": self._check_review,
            "approve": self._check_approve,
            "reject": self._check_reject,
            "require_resubmit": self._check_require_resubmit,
        }

    async def _check_review(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        status = self.check_valid_status(context.current_status, ("submitted", "under_review"), "review")
        if not status.allowed:
            return status

        if context.assigned_to and not self.check_assignment(user_id, context.assigned_to).allowed:
            if not await self.has_role(user_id, project_id, REVIEWER_ROLES):
                return GuardPermissionResult.deny(
                    DenialReason.NOT_ASSIGNED,
                    "You must be assigned as a reviewer for this submittal",
                    code="NOT_ASSIGNED_REVIEWER",
                )
        return GuardPermissionResult.allow()

    async def _check_approve(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        status = self.check_valid_status(context.current_status, ("under_review", "reviewed"), "approve")
        if not status.allowed:
            return status

        if not context_flag(context, "hasReview"):
            return GuardPermissionResult.deny(
                DenialReason.WORKFLOW_VIOLATION,
                "Submittal must be reviewed before approval",
                code="REVIEW_REQUIRED",
            )

        if not await self.has_role(user_id, project_id, REVIEWER_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only project managers and engineers can approve submittals",
                code="APPROVAL_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()

    async def _check_reject(self, user_id: str, project_id: str, context: PermissionContext) -> GuardPermissionResult:
        status = self.check_valid_status(
            context.current_status, ("submitted", "under_review", "reviewed"), "reject"
        )
        if not status.allowed:
            return status

        if not await self.has_role(user_id, project_id, REVIEWER_ROLES):
            return GuardPermissionResult.deny(
                DenialReason.ADMIN_ONLY,
                "Only project managers and engineers can reject submittals",
                code="REJECTION_PERMISSION_REQUIRED",
            )
        return GuardPermissionResult.allow()

    async def _check_require_resubmit(
        self, user_id: str, project_id: str, context: PermissionContext
    ) -> GuardPermissionResult:
        status = self.check_valid_status(
            context.current_status, ("under_review", "reviewed"), "require resubmission"
        )
        if not status.allowed:
            return status

        if context.assigned_to and not self.check_assignment(user_id, context.assigned_to).allowed:
            if not await self.has_role(user_id, project_id, REVIEWER_ROLES):
                return GuardPermissionResult.deny(
                    DenialReason.NOT_ASSIGNED,
                    "Only assigned reviewers or managers can require resubmission",
                    code="RESUBMIT_PERMISSION_REQUIRED",
                )
        return GuardPermissionResult.allow()


__all__ = ["SubmittalGuard"]
