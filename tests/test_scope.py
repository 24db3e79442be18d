"""Tests for sitegate.permissions.scope and scope_config."""

from __future__ import annotations

import pytest

from sitegate.models import ResourceScope, ScopeVisibility, UserScope
from sitegate.permissions import (
    ProjectRole,
    ScopeValidationRules,
    filter_resources_by_scope,
    get_default_visibility,
    get_scope_summary,
    is_scope_subset,
    matches_scope,
    merge_scopes,
    normalize_scope,
    validate_scope_for_role,
)


class TestMatchesScope:
    """Tests for matches_scope decision order."""

    def test_trade_match(self) -> None:
        """A subcontractor sees resources tagged with their trade."""
        result = matches_scope(
            UserScope(trades=["electrical"]),
            ResourceScope(trades=["electrical", "plumbing"], visibility=ScopeVisibility.TAGGED_ONLY),
        )
        assert result.has_access
        assert result.matched_dimension == "trades"
        assert result.matched_values == ["electrical"]

    def test_no_dimension_matches(self) -> None:
        """A different trade is denied."""
        result = matches_scope(UserScope(trades=["electrical"]), ResourceScope(trades=["plumbing"]))
        assert not result.has_access
        assert result.reason == "No scope dimension matches"

    def test_unrestricted_user(self) -> None:
        """A None scope is not scope-limited."""
        assert matches_scope(None, ResourceScope(trades=["plumbing"])).has_access

    def test_empty_user_scope_denies(self) -> None:
        """An empty scope grants nothing, even for public resources."""
        result = matches_scope(UserScope(), ResourceScope(visibility=ScopeVisibility.PUBLIC))
        assert not result.has_access

    def test_untagged_resource_uses_default_visibility(self) -> None:
        """Photos are public by default, drawings are tagged-only."""
        scope = UserScope(trades=["electrical"])
        assert matches_scope(scope, None, "photo").has_access
        assert matches_scope(scope, None, "photo").matched_dimension == "public"
        assert not matches_scope(scope, None, "drawing").has_access

    def test_untagged_resource_explicit_visibility(self) -> None:
        """An explicit visibility wins over the type default."""
        scope = UserScope(trades=["electrical"])
        assert matches_scope(scope, ResourceScope(visibility=ScopeVisibility.PUBLIC), "drawing").has_access

    def test_case_insensitive(self) -> None:
        """Values are compared case-insensitively and trimmed."""
        assert matches_scope(UserScope(trades=[" Electrical "]), ResourceScope(trades=["electrical"])).has_access

    def test_hierarchical_area(self) -> None:
        """A parent area covers its children, not the other way around."""
        parent = UserScope(areas=["building-a"])
        assert matches_scope(parent, ResourceScope(areas=["building-a-floor-3"])).has_access
        assert matches_scope(parent, ResourceScope(areas=["building-a/floor-3"])).has_access
        assert not matches_scope(parent, ResourceScope(areas=["building-ab"])).has_access
        child = UserScope(areas=["building-a-floor-3"])
        assert not matches_scope(child, ResourceScope(areas=["building-a"])).has_access

    def test_first_matching_dimension_wins(self) -> None:
        """Dimensions are tried in order trades, areas, phases, tags."""
        result = matches_scope(
            UserScope(areas=["zone-1"], tags=["critical"]),
            ResourceScope(areas=["zone-1"], tags=["critical"]),
        )
        assert result.matched_dimension == "areas"

    def test_legacy_list_scope(self) -> None:
        """A legacy list of trades normalizes to a trades scope."""
        scope = normalize_scope(["electrical"])
        assert scope == UserScope(trades=["electrical"])
        assert normalize_scope(None) is None


class TestValidateScopeForRole:
    """Tests for scope assignment rules."""

    def test_foreman_requires_scope(self) -> None:
        """A foreman without scope is rejected at assignment time."""
        result = validate_scope_for_role(ProjectRole.FOREMAN, None)
        assert not result.valid
        assert "requires scope" in result.errors[0]

    def test_foreman_empty_scope_rejected(self) -> None:
        """An empty scope counts as missing."""
        assert not validate_scope_for_role(ProjectRole.FOREMAN, UserScope()).valid

    def test_exempt_role_cannot_have_scope(self) -> None:
        """Managers always have full access."""
        result = validate_scope_for_role(ProjectRole.PROJECT_MANAGER, UserScope(trades=["hvac"]))
        assert not result.valid
        assert "cannot have scope restrictions" in result.errors[0]

    def test_exempt_role_without_scope(self) -> None:
        """Exempt roles without a scope are valid."""
        assert validate_scope_for_role(ProjectRole.PROJECT_ADMIN, None).valid

    def test_optional_role(self) -> None:
        """Viewers may or may not carry a scope."""
        assert validate_scope_for_role(ProjectRole.VIEWER, None).valid
        assert validate_scope_for_role("viewer", UserScope(areas=["zone-1"])).valid

    def test_dimension_limit(self) -> None:
        """Per-dimension limits come from the rules."""
        rules = ScopeValidationRules(max_trades=1)
        result = validate_scope_for_role(
            ProjectRole.SUBCONTRACTOR, UserScope(trades=["hvac", "plumbing"]), rules
        )
        assert not result.valid
        assert result.errors == ["Too many trades assigned (2/1)"]

    def test_blank_values_rejected(self) -> None:
        """Whitespace-only values are errors."""
        result = validate_scope_for_role(ProjectRole.SUBCONTRACTOR, UserScope(trades=["hvac", "  "]))
        assert "Scope values cannot be empty strings" in result.errors

    def test_broad_scope_warns(self) -> None:
        """Many values across three dimensions produce a warning, not an error."""
        scope = UserScope(
            trades=[f"t{i}" for i in range(8)],
            areas=[f"a{i}" for i in range(8)],
            phases=["p1"],
        )
        result = validate_scope_for_role(ProjectRole.SUBCONTRACTOR, scope)
        assert result.valid
        assert result.warnings


class TestScopeUtilities:
    """Tests for merge, subset, summary, filtering and visibility."""

    def test_merge_scopes(self) -> None:
        """Merging is a dimension-wise union without duplicates."""
        merged = merge_scopes(UserScope(trades=["hvac"]), None, UserScope(trades=["hvac", "plumbing"]))
        assert merged is not None
        assert merged.trades == ["hvac", "plumbing"]
        assert merge_scopes(None, None) is None

    def test_is_scope_subset(self) -> None:
        """None is unrestricted on both sides."""
        outer = UserScope(trades=["HVAC", "plumbing"])
        assert is_scope_subset(UserScope(trades=["hvac"]), outer)
        assert not is_scope_subset(UserScope(trades=["electrical"]), outer)
        assert is_scope_subset(None, outer)
        assert not is_scope_subset(outer, None)

    def test_scope_summary(self) -> None:
        """Counts use singular and plural nouns."""
        assert get_scope_summary(None) == "No restrictions"
        assert get_scope_summary(UserScope()) == "No access"
        assert get_scope_summary(UserScope(trades=["a", "b"], areas=["x"])) == "2 trades, 1 area"

    def test_filter_resources(self) -> None:
        """Only resources in scope survive."""
        resources = [
            {"id": 1, "scope": ["electrical"]},
            {"id": 2, "scope": ["plumbing"]},
            {"id": 3, "scope": None},
        ]
        visible = filter_resources_by_scope(
            UserScope(trades=["electrical"]), resources, lambda r: r["scope"], "photo"
        )
        assert [r["id"] for r in visible] == [1, 3]

    def test_filter_resources_unrestricted(self) -> None:
        """A None scope returns everything."""
        assert filter_resources_by_scope(None, [1, 2], lambda r: None) == [1, 2]

    @pytest.mark.parametrize(
        ("resource_type", "expected"),
        [
            ("daily_report", ScopeVisibility.PUBLIC),
            ("daily-report", ScopeVisibility.PUBLIC),
            ("rfi", ScopeVisibility.TAGGED_ONLY),
            ("unknown", ScopeVisibility.TAGGED_ONLY),
            (None, ScopeVisibility.TAGGED_ONLY),
        ],
    )
    def test_default_visibility(self, resource_type, expected) -> None:
        """Unknown types fall back to tagged-only."""
        assert get_default_visibility(resource_type) == expected
