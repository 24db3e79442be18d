"""Tests for the feature guards and the enforce_permission entry point."""

from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import NOW, ORG, PROJECT, FakeClock
from sitegate import (
    BudgetGuard,
    DenialError,
    DenialReason,
    DocumentGuard,
    GateConfig,
    InMemoryMembershipStore,
    OrganizationRole,
    PermissionContext,
    PermissionService,
    ProjectRole,
    ProjectSettingsGuard,
    QualityGuard,
    RfiGuard,
    SafetyGuard,
    SubmittalGuard,
)
from sitegate.guards.base import context_flag


def ctx(**kwargs) -> PermissionContext:
    metadata = kwargs.pop("metadata", {})
    return PermissionContext(metadata=metadata, **kwargs)


@pytest.fixture
def members(store: InMemoryMembershipStore):
    """Add explicit project members by role name."""

    def add(user_id: str, role: ProjectRole, **kwargs):
        return store.add_project_member(user_id, PROJECT, role, **kwargs)

    return add


class TestContextHelpers:
    """Tests for metadata lookups."""

    def test_camel_and_snake_keys(self) -> None:
        """Flags are found by camelCase or snake_case key."""
        assert context_flag(ctx(metadata={"hasReview": True}), "hasReview")
        assert context_flag(ctx(metadata={"has_review": True}), "hasReview")
        assert context_flag(ctx(), "hasReview", "missing") == "missing"


class TestBaseGuard:
    """Tests for the shared phase-1 pipeline."""

    @pytest.mark.asyncio
    async def test_non_member_denied(self, service: PermissionService) -> None:
        """Non-members fail the base permission."""
        result = await DocumentGuard(service).check_permission("ghost", PROJECT, "read")
        assert result.reason == DenialReason.USER_NOT_MEMBER
        assert result.required_permission == "documents:document:read"

    @pytest.mark.asyncio
    async def test_unknown_action_stops_after_phase_one(self, service: PermissionService, members) -> None:
        """Actions without a handler are decided by the base permission alone."""
        members("v", ProjectRole.VIEWER)
        guard = DocumentGuard(service)
        assert (await guard.check_permission("v", PROJECT, "read", context=ctx(resource_type="drawing"))).allowed
        assert not (await guard.check_permission("v", PROJECT, "version", context=ctx(resource_type="drawing"))).allowed

    @pytest.mark.asyncio
    async def test_expired_membership(self, service: PermissionService, members) -> None:
        """Expired members are stopped before the permission check."""
        members("pm", ProjectRole.PROJECT_MANAGER, expires_at=NOW - timedelta(days=2))
        result = await DocumentGuard(service).check_permission("pm", PROJECT, "read")
        assert result.code == "ACCESS_EXPIRED"
        assert result.message == "Your access expired on 2026-03-13"

    @pytest.mark.asyncio
    async def test_scope_restriction(self, service: PermissionService, members) -> None:
        """A scope-limited member is denied out-of-scope resources."""
        members("sub", ProjectRole.SUBCONTRACTOR, scope=["electrical"])
        guard = DocumentGuard(service)
        denied = await guard.check_permission(
            "sub",
            PROJECT,
            "read",
            resource_id="d1",
            context=ctx(resource_type="drawing", metadata={"documentScope": {"trades": ["plumbing"]}}),
        )
        assert denied.reason == DenialReason.SCOPE_RESTRICTION
        assert denied.code == "SCOPE_RESTRICTED"

        allowed = await guard.check_permission(
            "sub",
            PROJECT,
            "read",
            resource_id="d2",
            context=ctx(resource_type="drawing", resource_scope={"trades": ["electrical", "plumbing"]}),
        )
        assert allowed.allowed

    @pytest.mark.asyncio
    async def test_unscoped_foreman_sees_no_tagged_resource(self, service: PermissionService, members) -> None:
        """A foreman without an assigned scope is treated as scoped to nothing."""
        members("fm", ProjectRole.FOREMAN)
        result = await DocumentGuard(service).check_permission(
            "fm",
            PROJECT,
            "read",
            resource_id="d1",
            context=ctx(resource_type="drawing", resource_scope={"trades": ["electrical"]}),
        )
        assert result.code == "SCOPE_RESTRICTED"

    @pytest.mark.asyncio
    async def test_mapping_context(self, service: PermissionService, members) -> None:
        """A plain mapping is accepted as context."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        result = await DocumentGuard(service).check_permission(
            "pm", PROJECT, "export", context={"resource_type": "drawing", "metadata": {"is_confidential": True}}
        )
        assert result.allowed

    @pytest.mark.asyncio
    async def test_expiration_lookup_fails_open(self, store: InMemoryMembershipStore, clock: FakeClock) -> None:
        """A failing expiration lookup continues, counted on the guard."""

        class Flaky(InMemoryMembershipStore):
            broken = False

            async def get_project_membership(self, user_id, project_id):
                if self.broken:
                    raise OSError("down")
                return await super().get_project_membership(user_id, project_id)

        flaky = Flaky()
        flaky.add_project(PROJECT, ORG)
        flaky.add_project_member("v", PROJECT, ProjectRole.VIEWER)
        service = PermissionService.from_store(flaky, now=lambda: NOW, time_fn=clock)
        await service.get_user_permissions("v", PROJECT)
        flaky.broken = True

        guard = RfiGuard(service)
        assert (await guard.check_permission("v", PROJECT, "read")).allowed
        assert guard.fail_open_events == 1

        strict = RfiGuard(service, config=GateConfig(fail_open_on_lookup_error=False))
        result = await strict.check_permission("v", PROJECT, "read")
        assert result.code == "ACCESS_CHECK_FAILED"


class TestEnforcePermission:
    """Tests for the raising entry point, caching and auditing."""

    @pytest.mark.asyncio
    async def test_allowed_returns_none(self, service: PermissionService, members) -> None:
        """Allowed actions return silently."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        assert await RfiGuard(service).enforce_permission("pm", PROJECT, "assign") is None

    @pytest.mark.asyncio
    async def test_denial_raises_and_audits(self, service: PermissionService, members) -> None:
        """Denials raise DenialError and land in the audit log."""
        members("ae", ProjectRole.ARCHITECT_ENGINEER)
        guard = RfiGuard(service)
        with pytest.raises(DenialError) as exc_info:
            await guard.enforce_permission("ae", PROJECT, "assign", resource_id="rfi-1")

        error = exc_info.value
        assert error.code == "ASSIGNMENT_PERMISSION_REQUIRED"
        assert error.reason == DenialReason.INSUFFICIENT_PERMISSIONS
        assert error.details["action"] == "assign"
        assert error.details["resource_id"] == "rfi-1"

        entry = guard.audit.get_recent_entries()[0]
        assert entry.resource_type == "rfis"
        assert entry.metadata["code"] == "ASSIGNMENT_PERMISSION_REQUIRED"

    @pytest.mark.asyncio
    async def test_cached_denial(self, store: InMemoryMembershipStore, service: PermissionService, members) -> None:
        """A cached denial is served until the guard cache is cleared."""
        members("u1", ProjectRole.VIEWER)
        guard = RfiGuard(service)
        with pytest.raises(DenialError):
            await guard.enforce_permission("u1", PROJECT, "assign")

        members("u1", ProjectRole.PROJECT_MANAGER)
        service.clear_permission_cache("u1", PROJECT)
        with pytest.raises(DenialError) as exc_info:
            await guard.enforce_permission("u1", PROJECT, "assign")
        assert exc_info.value.code == "PERMISSION_DENIED_CACHED"
        assert len(guard.audit) == 1

        guard.cache.clear("u1", PROJECT)
        await guard.enforce_permission("u1", PROJECT, "assign")

    @pytest.mark.asyncio
    async def test_shared_cache_and_audit(self, service: PermissionService, members) -> None:
        """Guards can share one cache and one audit log."""
        members("v", ProjectRole.VIEWER)
        first = DocumentGuard(service)
        second = BudgetGuard(service, audit=first.audit, cache=first.cache)
        with pytest.raises(DenialError):
            await second.enforce_permission("v", PROJECT, "read")
        assert first.audit is second.audit
        assert len(first.audit) == 1

    @pytest.mark.asyncio
    async def test_shared_cache_keeps_features_apart(self, service: PermissionService, members) -> None:
        """A decision cached by one guard is never replayed by another."""
        members("eng", ProjectRole.PROJECT_ENGINEER)
        documents = DocumentGuard(service)
        budget = BudgetGuard(service, audit=documents.audit, cache=documents.cache)

        await documents.enforce_permission("eng", PROJECT, "read", context=ctx(resource_type="drawing"))
        with pytest.raises(DenialError) as exc_info:
            await budget.enforce_permission("eng", PROJECT, "read")
        assert exc_info.value.code == "FINANCIAL_ACCESS_DENIED"

        assert documents.cache.get("eng", PROJECT, "documents:drawing:read") is True
        assert documents.cache.get("eng", PROJECT, "budget:budget_item:read") is False
        assert documents.cache.clear("eng", PROJECT) == 2

    @pytest.mark.asyncio
    async def test_inherited_admin_bypasses_rules(self, store: InMemoryMembershipStore, service: PermissionService) -> None:
        """Org owners pass role gates through inherited PROJECT_ADMIN."""
        store.add_organization_member("owner", ORG, OrganizationRole.OWNER)
        await BudgetGuard(service).enforce_permission(
            "owner", PROJECT, "approve_payment", context=ctx(metadata={"amount": 10**6, "hasReview": True})
        )


class TestDocumentGuard:
    """Tests for document rules."""

    @pytest.mark.asyncio
    async def test_delete_owner_or_manager(self, service: PermissionService, members) -> None:
        """Owners delete their own documents; others need a manager role."""
        members("eng", ProjectRole.PROJECT_ENGINEER)
        members("pm", ProjectRole.PROJECT_MANAGER)
        guard = DocumentGuard(service)
        context = ctx(resource_type="drawing", resource_owner_id="someone")

        denied = await guard.check_permission("eng", PROJECT, "delete", context=context)
        assert denied.code == "DELETE_PERMISSION_REQUIRED"
        assert (await guard.check_permission("pm", PROJECT, "delete", context=context)).allowed

        own = ctx(resource_type="drawing", resource_owner_id="eng")
        assert (await guard.check_permission("eng", PROJECT, "delete", context=own)).allowed

    @pytest.mark.asyncio
    async def test_confidential_export(self, service: PermissionService, members) -> None:
        """Confidential documents need a manager role to export."""
        members("eng", ProjectRole.PROJECT_ENGINEER)
        guard = DocumentGuard(service)
        result = await guard.check_permission(
            "eng", PROJECT, "export", context=ctx(resource_type="drawing", metadata={"isConfidential": True})
        )
        assert result.code == "CONFIDENTIAL_EXPORT_RESTRICTED"
        assert (await guard.check_permission("eng", PROJECT, "export", context=ctx(resource_type="drawing"))).allowed

    @pytest.mark.asyncio
    async def test_owner_approval(self, service: PermissionService, members) -> None:
        """Documents requiring owner approval need the owner or a manager."""
        members("ae", ProjectRole.ARCHITECT_ENGINEER)
        guard = DocumentGuard(service)
        context = ctx(resource_type="drawing", resource_owner_id="other", metadata={"requiresOwnerApproval": True})
        result = await guard.check_permission("ae", PROJECT, "approve", context=context)
        assert result.reason == DenialReason.ADMIN_ONLY
        assert result.code == "ADMIN_APPROVAL_REQUIRED"

        own = ctx(resource_type="drawing", resource_owner_id="ae", metadata={"requiresOwnerApproval": True})
        assert (await guard.check_permission("ae", PROJECT, "approve", context=own)).allowed


class TestRfiGuard:
    """Tests for RFI rules."""

    @pytest.mark.asyncio
    async def test_respond(self, service: PermissionService, members) -> None:
        """Responses need an open RFI and, when assigned, the assignee or a manager."""
        members("eng", ProjectRole.PROJECT_ENGINEER)
        members("pm", ProjectRole.PROJECT_MANAGER)
        guard = RfiGuard(service)

        closed = await guard.check_permission("eng", PROJECT, "respond", context=ctx(current_status="closed"))
        assert closed.code == "RFI_NOT_OPEN"

        assigned_elsewhere = ctx(current_status="open", assigned_to=["someone"])
        result = await guard.check_permission("eng", PROJECT, "respond", context=assigned_elsewhere)
        assert result.code == "NOT_ASSIGNED_TO_RFI"
        assert (await guard.check_permission("pm", PROJECT, "respond", context=assigned_elsewhere)).allowed

        unassigned = ctx(current_status="draft")
        assert (await guard.check_permission("eng", PROJECT, "respond", context=unassigned)).allowed

    @pytest.mark.asyncio
    async def test_assign(self, service: PermissionService, members) -> None:
        """Superintendents may assign; architects may not."""
        members("sup", ProjectRole.SUPERINTENDENT)
        members("ae", ProjectRole.ARCHITECT_ENGINEER)
        guard = RfiGuard(service)
        assert (await guard.check_permission("sup", PROJECT, "assign")).allowed
        assert (await guard.check_permission("ae", PROJECT, "assign")).code == "ASSIGNMENT_PERMISSION_REQUIRED"

    @pytest.mark.asyncio
    async def test_close(self, service: PermissionService, members) -> None:
        """Closing needs a response and the creator, an assignee or a manager."""
        members("v", ProjectRole.VIEWER)
        guard = RfiGuard(service)

        no_response = ctx(resource_owner_id="v")
        assert (await guard.check_permission("v", PROJECT, "close", context=no_response)).code == "RFI_RESPONSE_REQUIRED"

        as_creator = ctx(resource_owner_id="v", metadata={"hasResponse": True})
        assert (await guard.check_permission("v", PROJECT, "close", context=as_creator)).allowed

        as_assignee = ctx(resource_owner_id="x", assigned_to=["v"], metadata={"hasResponse": True})
        assert (await guard.check_permission("v", PROJECT, "close", context=as_assignee)).allowed

        stranger = ctx(resource_owner_id="x", metadata={"hasResponse": True})
        assert (await guard.check_permission("v", PROJECT, "close", context=stranger)).code == "CLOSE_PERMISSION_REQUIRED"


class TestSubmittalGuard:
    """Tests for submittal rules."""

    @pytest.mark.asyncio
    async def test_review(self, service: PermissionService, members) -> None:
        """Reviews need a reviewable status and assignment or a reviewer role."""
        members("eng", ProjectRole.PROJECT_ENGINEER)
        members("ae", ProjectRole.ARCHITECT_ENGINEER)
        guard = SubmittalGuard(service)

        result = await guard.check_permission("eng", PROJECT, "review", context=ctx(current_status="approved"))
        assert result.reason == DenialReason.INVALID_STATUS
        assert result.message == "Cannot review when status is approved"
        assert result.metadata["valid_statuses"] == ["submitted", "under_review"]

        assigned_elsewhere = ctx(current_status="submitted", assigned_to=["other"])
        assert (await guard.check_permission("eng", PROJECT, "review", context=assigned_elsewhere)).allowed
        result = await guard.check_permission("ae", PROJECT, "review", context=assigned_elsewhere)
        assert result.code == "NOT_ASSIGNED_REVIEWER"

    @pytest.mark.asyncio
    async def test_approve(self, service: PermissionService, members) -> None:
        """Approval needs a prior review and a reviewer role."""
        members("eng", ProjectRole.PROJECT_ENGINEER)
        members("ae", ProjectRole.ARCHITECT_ENGINEER)
        guard = SubmittalGuard(service)

        unreviewed = ctx(current_status="under_review")
        assert (await guard.check_permission("eng", PROJECT, "approve", context=unreviewed)).code == "REVIEW_REQUIRED"

        reviewed = ctx(current_status="reviewed", metadata={"hasReview": True})
        assert (await guard.check_permission("eng", PROJECT, "approve", context=reviewed)).allowed
        result = await guard.check_permission("ae", PROJECT, "approve", context=reviewed)
        assert result.code == "APPROVAL_PERMISSION_REQUIRED"

    @pytest.mark.asyncio
    async def test_reject_and_resubmit(self, service: PermissionService, members) -> None:
        """Assigned architects may request resubmission but not reject."""
        members("ae", ProjectRole.ARCHITECT_ENGINEER)
        guard = SubmittalGuard(service)
        assigned = ctx(current_status="under_review", assigned_to=["ae"])
        result = await guard.check_permission("ae", PROJECT, "reject", context=assigned)
        assert result.code == "REJECTION_PERMISSION_REQUIRED"
        assert (await guard.check_permission("ae", PROJECT, "require_resubmit", context=assigned)).allowed

        not_assigned = ctx(current_status="under_review", assigned_to=["other"])
        result = await guard.check_permission("ae", PROJECT, "require_resubmit", context=not_assigned)
        assert result.code == "RESUBMIT_PERMISSION_REQUIRED"


class TestSafetyGuard:
    """Tests for safety incident rules."""

    @pytest.mark.asyncio
    async def test_investigate(self, service: PermissionService, members) -> None:
        """Supervisors investigate open incidents."""
        members("sup", ProjectRole.SUPERINTENDENT)
        members("eng", ProjectRole.PROJECT_ENGINEER)
        guard = SafetyGuard(service)
        assert (await guard.check_permission("sup", PROJECT, "investigate", context=ctx(current_status="open"))).allowed
        result = await guard.check_permission("sup", PROJECT, "investigate", context=ctx(current_status="closed"))
        assert result.code == "INVALID_STATUS"
        result = await guard.check_permission("eng", PROJECT, "investigate", context=ctx(current_status="open"))
        assert result.reason == DenialReason.INSUFFICIENT_PERMISSIONS
        assert result.required_permission == "safety:incident:investigate"

    @pytest.mark.asyncio
    async def test_close(self, service: PermissionService, members) -> None:
        """Closing needs a completed investigation."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        guard = SafetyGuard(service)
        result = await guard.check_permission("pm", PROJECT, "close", context=ctx(current_status="investigated"))
        assert result.code == "INVESTIGATION_REQUIRED"
        investigated = ctx(current_status="investigated", metadata={"hasInvestigation": True})
        assert (await guard.check_permission("pm", PROJECT, "close", context=investigated)).allowed

    @pytest.mark.asyncio
    async def test_update(self, service: PermissionService, members) -> None:
        """Reporters update open incidents; others must be assigned or supervise."""
        members("fm", ProjectRole.FOREMAN, scope=["concrete"])
        members("eng", ProjectRole.PROJECT_ENGINEER)
        guard = SafetyGuard(service)

        own_closed = ctx(resource_owner_id="fm", current_status="closed")
        assert (await guard.check_permission("fm", PROJECT, "update", context=own_closed)).code == "INCIDENT_CLOSED"
        own_open = ctx(resource_owner_id="fm", current_status="open")
        assert (await guard.check_permission("fm", PROJECT, "update", context=own_open)).allowed

        other = ctx(resource_owner_id="fm", current_status="open")
        assert (await guard.check_permission("eng", PROJECT, "update", context=other)).code == "UPDATE_PERMISSION_REQUIRED"
        assigned = ctx(resource_owner_id="fm", current_status="open", assigned_to=["eng"])
        assert (await guard.check_permission("eng", PROJECT, "update", context=assigned)).allowed


class TestBudgetGuard:
    """Tests for financial rules."""

    @pytest.mark.asyncio
    async def test_read_requires_financial_role(self, service: PermissionService, members) -> None:
        """Budget grants alone do not open financial data."""
        members("sub", ProjectRole.SUBCONTRACTOR, scope=["hvac"])
        members("pm", ProjectRole.PROJECT_MANAGER)
        guard = BudgetGuard(service)
        result = await guard.check_permission("sub", PROJECT, "read")
        assert result.reason == DenialReason.FINANCIAL_ACCESS_REQUIRED
        assert result.code == "FINANCIAL_ACCESS_DENIED"
        assert (await guard.check_permission("pm", PROJECT, "read")).allowed

    @pytest.mark.asyncio
    async def test_payment_over_threshold(self, service: PermissionService, members) -> None:
        """Managers cannot approve payments above the threshold; admins can once reviewed."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        members("pa", ProjectRole.PROJECT_ADMIN)
        guard = BudgetGuard(service)
        context = ctx(metadata={"amount": 60000, "approvalThreshold": 50000})

        result = await guard.check_permission("pm", PROJECT, "approve_payment", context=context)
        assert result.code == "ADMIN_APPROVAL_REQUIRED"
        assert result.message == "Payments over $50,000 require admin approval"
        assert result.metadata == {"amount": 60000.0, "threshold": 50000.0}

        reviewed = ctx(metadata={"amount": 60000, "approvalThreshold": 50000, "hasReview": True})
        assert (await guard.check_permission("pa", PROJECT, "approve_payment", context=reviewed)).allowed

        unreviewed = await guard.check_permission("pa", PROJECT, "approve_payment", context=context)
        assert unreviewed.code == "REVIEW_REQUIRED"

    @pytest.mark.asyncio
    async def test_change_order_thresholds(self, service: PermissionService, members) -> None:
        """Change orders use the configured default threshold."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        members("sup", ProjectRole.SUPERINTENDENT)
        guard = BudgetGuard(service)

        small = ctx(metadata={"amount": 5000})
        assert (await guard.check_permission("pm", PROJECT, "approve_change_order", context=small)).allowed

        large = ctx(metadata={"amount": 20000})
        result = await guard.check_permission("pm", PROJECT, "approve_change_order", context=large)
        assert result.message == "Change orders over $10,000 require admin approval"

        result = await guard.check_permission("sup", PROJECT, "approve_change_order", context=small)
        assert result.code == "MANAGER_APPROVAL_REQUIRED"

    @pytest.mark.asyncio
    async def test_configured_threshold(self, store: InMemoryMembershipStore, clock: FakeClock, members) -> None:
        """The config threshold applies without an approvalThreshold override."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        config = GateConfig(change_order_approval_threshold=50000)
        service = PermissionService.from_store(store, config, now=lambda: NOW, time_fn=clock)
        large = ctx(metadata={"amount": 20000})
        assert (await BudgetGuard(service).check_permission("pm", PROJECT, "approve_change_order", context=large)).allowed

    @pytest.mark.asyncio
    async def test_export(self, service: PermissionService, members) -> None:
        """Managers export financial data."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        assert (await BudgetGuard(service).check_permission("pm", PROJECT, "export")).allowed


class TestQualityGuard:
    """Tests for quality inspection rules."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [ProjectRole.INSPECTOR, ProjectRole.PROJECT_ADMIN])
    async def test_self_approval_refused(self, service: PermissionService, members, role: ProjectRole) -> None:
        """Nobody approves their own inspection, whatever their role."""
        members("u1", role)
        context = ctx(resource_owner_id="u1", current_status="pending_approval")
        result = await QualityGuard(service).check_permission("u1", PROJECT, "approve", context=context)
        assert result.code == "SELF_APPROVAL_NOT_ALLOWED"
        assert result.reason == DenialReason.WORKFLOW_VIOLATION

    @pytest.mark.asyncio
    async def test_approve(self, service: PermissionService, members) -> None:
        """Approvers need documentation when it is required."""
        members("insp", ProjectRole.INSPECTOR)
        members("rep", ProjectRole.OWNER_REP)
        guard = QualityGuard(service)

        needs_docs = ctx(resource_owner_id="x", current_status="in_progress", metadata={"requiresDocumentation": True})
        result = await guard.check_permission("insp", PROJECT, "pass", context=needs_docs)
        assert result.code == "DOCUMENTATION_REQUIRED"

        ready = ctx(resource_owner_id="x", current_status="pending_approval")
        assert (await guard.check_permission("insp", PROJECT, "approve", context=ready)).allowed
        assert (await guard.check_permission("rep", PROJECT, "approve", context=ready)).code == "APPROVAL_PERMISSION_REQUIRED"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", ["approve", "pass", "fail"])
    async def test_decisions_need_approve_grant(self, service: PermissionService, members, action: str) -> None:
        """Update rights alone do not let a role decide an inspection."""
        members("eng", ProjectRole.PROJECT_ENGINEER)
        members("super", ProjectRole.SUPERINTENDENT)
        guard = QualityGuard(service)
        context = ctx(resource_owner_id="x", current_status="in_progress", metadata={"failureReason": "cracks"})
        for user_id in ("eng", "super"):
            result = await guard.check_permission(user_id, PROJECT, action, context=context)
            assert result.reason == DenialReason.INSUFFICIENT_PERMISSIONS
            assert result.required_permission == "quality:inspection:approve"

    @pytest.mark.asyncio
    async def test_fail(self, service: PermissionService, members) -> None:
        """Failing needs a reason and an approver role."""
        members("insp", ProjectRole.INSPECTOR)
        members("rep", ProjectRole.OWNER_REP)
        guard = QualityGuard(service)

        no_reason = ctx(current_status="in_progress")
        assert (await guard.check_permission("insp", PROJECT, "fail", context=no_reason)).code == "FAILURE_REASON_REQUIRED"
        with_reason = ctx(current_status="in_progress", metadata={"failureReason": "rebar spacing"})
        assert (await guard.check_permission("insp", PROJECT, "fail", context=with_reason)).allowed
        assert (await guard.check_permission("rep", PROJECT, "fail", context=with_reason)).code == "FAIL_PERMISSION_REQUIRED"

    @pytest.mark.asyncio
    async def test_update(self, service: PermissionService, members) -> None:
        """Completed inspections are frozen; open ones belong to owner, assignee or approvers."""
        members("ae", ProjectRole.ARCHITECT_ENGINEER)
        guard = QualityGuard(service)

        completed = ctx(resource_owner_id="ae", current_status="passed")
        assert (await guard.check_permission("ae", PROJECT, "update", context=completed)).code == "INSPECTION_COMPLETED"
        own = ctx(resource_owner_id="ae", current_status="in_progress")
        assert (await guard.check_permission("ae", PROJECT, "update", context=own)).allowed
        other = ctx(resource_owner_id="x", current_status="in_progress")
        assert (await guard.check_permission("ae", PROJECT, "update", context=other)).code == "UPDATE_PERMISSION_REQUIRED"


class TestProjectSettingsGuard:
    """Tests for project settings rules."""

    @pytest.mark.asyncio
    async def test_update(self, service: PermissionService, members) -> None:
        """Managers update settings; critical settings are admin-only."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        members("eng", ProjectRole.PROJECT_ENGINEER)
        guard = ProjectSettingsGuard(service)
        assert (await guard.check_permission("pm", PROJECT, "update")).allowed
        critical = ctx(metadata={"criticalSetting": True})
        assert (await guard.check_permission("pm", PROJECT, "update", context=critical)).code == "ADMIN_ONLY_SETTING"
        assert (await guard.check_permission("eng", PROJECT, "update")).code == "ADMIN_PERMISSION_REQUIRED"

    @pytest.mark.asyncio
    async def test_manage_members(self, service: PermissionService, members) -> None:
        """Only admins remove admins, and never themselves."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        members("pa", ProjectRole.PROJECT_ADMIN)
        guard = ProjectSettingsGuard(service)

        assert (await guard.check_permission("pm", PROJECT, "manage_members")).allowed
        remove_admin = ctx(metadata={"action": "remove", "targetRole": "PROJECT_ADMIN", "targetUserId": "pa"})
        result = await guard.check_permission("pm", PROJECT, "manage_members", context=remove_admin)
        assert result.code == "ADMIN_REMOVAL_RESTRICTED"
        result = await guard.check_permission("pa", PROJECT, "manage_members", context=remove_admin)
        assert result.code == "SELF_REMOVAL_NOT_ALLOWED"

    @pytest.mark.asyncio
    async def test_manage_permissions(self, service: PermissionService, members) -> None:
        """Admins manage permissions of others only."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        members("pa", ProjectRole.PROJECT_ADMIN)
        guard = ProjectSettingsGuard(service)
        assert (await guard.check_permission("pm", PROJECT, "manage_permissions")).code == "PERMISSION_MANAGEMENT_ADMIN_ONLY"
        own = ctx(metadata={"targetUserId": "pa"})
        result = await guard.check_permission("pa", PROJECT, "manage_permissions", context=own)
        assert result.code == "SELF_PERMISSION_MODIFICATION_NOT_ALLOWED"
        other = ctx(metadata={"targetUserId": "pm"})
        assert (await guard.check_permission("pa", PROJECT, "manage_permissions", context=other)).allowed

    @pytest.mark.asyncio
    async def test_delete(self, service: PermissionService, members) -> None:
        """Deletion is admin-only, confirmed and on an empty project."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        members("pa", ProjectRole.PROJECT_ADMIN)
        guard = ProjectSettingsGuard(service)

        result = await guard.check_permission("pm", PROJECT, "delete", context=ctx(metadata={"confirmed": True}))
        assert result.reason == DenialReason.OWNER_ONLY
        assert result.code == "DELETE_ADMIN_ONLY"
        assert (await guard.check_permission("pa", PROJECT, "delete")).code == "DELETION_CONFIRMATION_REQUIRED"
        busy = ctx(metadata={"confirmed": True, "hasActiveData": True})
        assert (await guard.check_permission("pa", PROJECT, "delete", context=busy)).code == "ACTIVE_DATA_EXISTS"
        assert (await guard.check_permission("pa", PROJECT, "delete", context=ctx(metadata={"confirmed": True}))).allowed

    @pytest.mark.asyncio
    async def test_configure(self, service: PermissionService, members) -> None:
        """Structure changes after project start are admin-only."""
        members("pm", ProjectRole.PROJECT_MANAGER)
        guard = ProjectSettingsGuard(service)
        assert (await guard.check_permission("pm", PROJECT, "configure")).allowed
        started = ctx(metadata={"projectStarted": True})
        result = await guard.check_permission("pm", PROJECT, "configure", context=started)
        assert result.code == "POST_START_CONFIGURATION_ADMIN_ONLY"
