"""Scope assignment rules and construction-domain scope vocabularies.

Provides:
- ``SCOPE_REQUIRED_ROLES`` / ``SCOPE_OPTIONAL_ROLES`` / ``SCOPE_EXEMPT_ROLES``
 : which roles must, may, or must not carry a scope.
- ``ScopeValidationRules``: per-dimension value limits.
- ``STANDARD_TRADES`` / ``STANDARD_PHASES``: suggested scope values.
- ``DEFAULT_RESOURCE_VISIBILITY``: how untagged resources behave per type.
"""

from __future__ import annotations

from typing import NamedTuple, Optional

from ..models import ScopeVisibility
from .constants import ProjectRole

# ── Role Classes ────────────────────────────────────────

SCOPE_REQUIRED_ROLES: frozenset[ProjectRole] = frozenset({ProjectRole.FOREMAN, ProjectRole.SUBCONTRACTOR})

SCOPE_OPTIONAL_ROLES: frozenset[ProjectRole] = frozenset(
    {ProjectRole.VIEWER, ProjectRole.PROJECT_ENGINEER, ProjectRole.INSPECTOR}
)

SCOPE_EXEMPT_ROLES: frozenset[ProjectRole] = frozenset(
    {
        ProjectRole.PROJECT_ADMIN,
        ProjectRole.PROJECT_MANAGER,
        ProjectRole.SUPERINTENDENT,
        ProjectRole.ARCHITECT_ENGINEER,
        ProjectRole.OWNER_REP,
    }
)


def can_role_have_scope(role: ProjectRole | str) -> bool:
    return ProjectRole(role) in SCOPE_REQUIRED_ROLES | SCOPE_OPTIONAL_ROLES


def does_role_require_scope(role: ProjectRole | str) -> bool:
    return ProjectRole(role) in SCOPE_REQUIRED_ROLES


# ── Validation Rules ────────────────────────────────────


class ScopeValidationRules:
    """Upper bounds on the number of values per scope dimension.

    Example::

        strict = ScopeValidationRules(max_trades=3, max_areas=5)
        validate_scope_for_role(ProjectRole.FOREMAN, scope, strict)
    """

    __slots__ = ("max_trades", "max_areas", "max_phases", "max_tags")

    def __init__(
        self,
        *,
        max_trades: int = 10,
        max_areas: int = 20,
        max_phases: int = 5,
        max_tags: int = 15,
    ) -> None:
        self.max_trades = max_trades
        self.max_areas = max_areas
        self.max_phases = max_phases
        self.max_tags = max_tags

    def limit_for(self, dimension: str) -> int:
        return getattr(self, f"max_{dimension}")

    def __repr__(self) -> str:
        return (
            f"ScopeValidationRules(max_trades={self.max_trades}, max_areas={self.max_areas}, "
            f"max_phases={self.max_phases}, max_tags={self.max_tags})"
        )


DEFAULT_SCOPE_VALIDATION_RULES = ScopeValidationRules()

# Using three or more dimensions with more values than this draws a warning
COMPLEX_SCOPE_VALUE_THRESHOLD = 15


# ── Standard Vocabularies ───────────────────────────────


class ScopeOption(NamedTuple):
    value: str
    label: str
    category: Optional[str]
    description: str


# CSI MasterFormat divisions
STANDARD_TRADES: tuple[ScopeOption, ...] = (
    ScopeOption("concrete", "Concrete", "Structure", "Concrete formwork, reinforcement, and placement"),
    ScopeOption("masonry", "Masonry", "Structure", "Brick, block, and stone masonry"),
    ScopeOption("steel", "Structural Steel", "Structure", "Structural steel erection and welding"),
    ScopeOption("metal-framing", "Metal Framing", "Structure", "Metal studs and light gauge framing"),
    ScopeOption("framing", "Framing", "Structure", "Wood framing and rough carpentry"),
    ScopeOption("finish-carpentry", "Finish Carpentry", "Finishes", "Trim, casework, and millwork"),
    ScopeOption("roofing", "Roofing", "Envelope", "Roof systems and waterproofing"),
    ScopeOption("insulation", "Insulation", "Envelope", "Thermal and acoustic insulation"),
    ScopeOption("waterproofing", "Waterproofing", "Envelope", "Foundation and below-grade waterproofing"),
    ScopeOption("windows", "Windows & Glazing", "Envelope", "Windows, curtain walls, and glass"),
    ScopeOption("doors", "Doors & Hardware", "Envelope", "Doors, frames, and hardware"),
    ScopeOption("drywall", "Drywall", "Finishes", "Gypsum board installation and finishing"),
    ScopeOption("painting", "Painting", "Finishes", "Interior and exterior painting"),
    ScopeOption("flooring", "Flooring", "Finishes", "Tile, carpet, and resilient flooring"),
    ScopeOption("ceilings", "Ceilings", "Finishes", "Suspended ceilings and acoustic tiles"),
    ScopeOption("fire-protection", "Fire Protection", "MEP", "Fire sprinkler systems"),
    ScopeOption("plumbing", "Plumbing", "MEP", "Water supply, drainage, and fixtures"),
    ScopeOption("hvac", "HVAC", "MEP", "Heating, ventilation, and air conditioning"),
    ScopeOption("electrical", "Electrical", "MEP", "Power distribution and branch wiring"),
    ScopeOption("lighting", "Lighting", "MEP", "Interior and exterior lighting"),
    ScopeOption("fire-alarm", "Fire Alarm", "MEP", "Fire alarm and life safety systems"),
    ScopeOption("low-voltage", "Low Voltage", "MEP", "Data, communications, and security systems"),
    ScopeOption("sitework", "Sitework", "Site", "Excavation, grading, and utilities"),
    ScopeOption("paving", "Paving", "Site", "Asphalt and concrete paving"),
    ScopeOption("landscaping", "Landscaping", "Site", "Plants, irrigation, and site amenities"),
)

STANDARD_PHASES: tuple[ScopeOption, ...] = (
    ScopeOption("preconstruction", "Preconstruction", None, "Planning, permits, and mobilization"),
    ScopeOption("demo", "Demolition", None, "Selective demolition and abatement"),
    ScopeOption("foundation", "Foundation", None, "Excavation, footings, and foundation walls"),
    ScopeOption("structure", "Structure", None, "Structural framing and deck"),
    ScopeOption("rough-in", "Rough-In", None, "MEP rough-in and framing"),
    ScopeOption("envelope", "Envelope", None, "Exterior closure and weatherproofing"),
    ScopeOption("interior", "Interior", None, "Interior partitions and finishes"),
    ScopeOption("trim-out", "Trim-Out", None, "MEP trim, fixtures, and final finishes"),
    ScopeOption("punchlist", "Punchlist", None, "Final inspections and corrections"),
    ScopeOption("closeout", "Closeout", None, "Commissioning, training, and handover"),
)


# ── Default Visibility ──────────────────────────────────
# Applied to resources that carry no scope tags of their own.

DEFAULT_RESOURCE_VISIBILITY: dict[str, ScopeVisibility] = {
    "daily-report": ScopeVisibility.PUBLIC,
    "meeting-minutes": ScopeVisibility.PUBLIC,
    "safety-report": ScopeVisibility.PUBLIC,
    "photo": ScopeVisibility.PUBLIC,
    "document": ScopeVisibility.TAGGED_ONLY,
    "drawing": ScopeVisibility.TAGGED_ONLY,
    "rfi": ScopeVisibility.TAGGED_ONLY,
    "submittal": ScopeVisibility.TAGGED_ONLY,
    "task": ScopeVisibility.TAGGED_ONLY,
    "inspection": ScopeVisibility.TAGGED_ONLY,
}


def get_default_visibility(resource_type: Optional[str]) -> ScopeVisibility:
    """Default visibility for a resource type; unknown types are tagged-only.

    ``daily_report`` and ``daily-report`` are treated alike.
    """
    if not resource_type:
        return ScopeVisibility.TAGGED_ONLY
    key = resource_type.strip().lower().replace("_", "-")
    return DEFAULT_RESOURCE_VISIBILITY.get(key, ScopeVisibility.TAGGED_ONLY)


__all__ = [
    "SCOPE_REQUIRED_ROLES",
    "SCOPE_OPTIONAL_ROLES",
    "SCOPE_EXEMPT_ROLES",
    "can_role_have_scope",
    "does_role_require_scope",
    "ScopeValidationRules",
    "DEFAULT_SCOPE_VALIDATION_RULES",
    "COMPLEX_SCOPE_VALUE_THRESHOLD",
    "ScopeOption",
    "STANDARD_TRADES",
    "STANDARD_PHASES",
    "DEFAULT_RESOURCE_VISIBILITY",
    "get_default_visibility",
]
