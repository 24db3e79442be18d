"""Effective role resolution with organization → project inheritance.

Resolution order for ``(user_id, project_id)``:
1. explicit project membership → its role (``is_inherited=False``)
2. system-admin flag on the owning organization's membership → PROJECT_ADMIN
3. organization role mapped via ``ORGANIZATION_ROLE_INHERITANCE`` → PROJECT_ADMIN
4. otherwise no access (``role=None``)

Inherited roles bypass scope checks and never expire.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Optional

from ..config import GateConfig
from ..exceptions import CollaboratorError, SiteGateError
from ..interfaces import MembershipStore
from ..models import (
    EffectiveRoleResult,
    InheritanceChain,
    InheritanceSource,
    InheritanceStep,
    OrganizationMembership,
    ProjectMembership,
    RoleChangeCheck,
    RoleSource,
)
from ..permissions.constants import OrganizationRole, ProjectRole
from ..permissions.matrix import get_inherited_project_role

logger = logging.getLogger(__name__)

_ORG_SOURCES = {
    OrganizationRole.OWNER: InheritanceSource.ORG_OWNER,
    OrganizationRole.ORG_ADMIN: InheritanceSource.ORG_ADMIN,
}


async def call_store(awaitable: Awaitable[Any], what: str) -> Any:
    """Await a MembershipStore call, wrapping foreign failures in CollaboratorError."""
    try:
        return await awaitable
    except SiteGateError:
        raise
    except Exception as e:
        raise CollaboratorError(f"{what} lookup failed: {e}", cause=type(e).__name__) from e


class InheritanceService:
    """Resolves the role a user effectively holds on a project."""

    def __init__(self, store: MembershipStore, config: Optional[GateConfig] = None) -> None:
        self._store = store
        self._config = config or GateConfig()

    async def get_project_membership(self, user_id: str, project_id: str) -> Optional[ProjectMembership]:
        return await call_store(self._store.get_project_membership(user_id, project_id), "Project membership")

    async def get_organization_membership(
        self, user_id: str, project_id: str
    ) -> tuple[Optional[str], Optional[OrganizationMembership]]:
        """Owning organization of the project and the user's membership in it."""
        organization_id = await call_store(self._store.get_project_organization(project_id), "Project organization")
        if organization_id is None:
            return None, None
        membership = await call_store(
            self._store.get_organization_membership(user_id, organization_id),
            "Organization membership",
        )
        return organization_id, membership

    async def get_effective_role(self, user_id: str, project_id: str) -> EffectiveRoleResult:
        explicit = await self.get_project_membership(user_id, project_id)
        if explicit is not None:
            logger.debug(
                "User %s has explicit %s role on project %s",
                user_id,
                explicit.role.value,
                project_id,
            )
            return EffectiveRoleResult(
                role=explicit.role,
                is_inherited=False,
                source=RoleSource.EXPLICIT,
                inheritance_source=InheritanceSource.EXPLICIT,
            )

        organization_id, org_membership = await self.get_organization_membership(user_id, project_id)
        if org_membership is None:
            logger.debug("User %s has no access to project %s", user_id, project_id)
            return EffectiveRoleResult(organization_id=organization_id)

        if org_membership.is_system_admin:
            logger.debug("User %s is system admin, granting PROJECT_ADMIN", user_id)
            return EffectiveRoleResult(
                role=ProjectRole.PROJECT_ADMIN,
                is_inherited=True,
                source=RoleSource.INHERITED,
                inheritance_source=InheritanceSource.SYSTEM_ADMIN,
                organization_id=organization_id,
                organization_role=org_membership.org_role,
            )

        inherited = get_inherited_project_role(org_membership.org_role)
        if inherited is None:
            logger.debug(
                "User %s is %s of %s without project membership",
                user_id,
                org_membership.org_role.value,
                organization_id,
            )
            return EffectiveRoleResult(
                organization_id=organization_id,
                organization_role=org_membership.org_role,
            )

        logger.debug(
            "User %s is org %s, inheriting %s on project %s",
            user_id,
            org_membership.org_role.value,
            inherited.value,
            project_id,
        )
        return EffectiveRoleResult(
            role=inherited,
            is_inherited=True,
            source=RoleSource.INHERITED,
            inheritance_source=_ORG_SOURCES.get(org_membership.org_role, InheritanceSource.NONE),
            organization_id=organization_id,
            organization_role=org_membership.org_role,
        )

    async def has_inherited_access(self, user_id: str, project_id: str) -> bool:
        result = await self.get_effective_role(user_id, project_id)
        return result.is_inherited and result.role is not None

    async def get_inheritance_chain(self, user_id: str, project_id: str) -> InheritanceChain:
        """Explain, step by step, how the effective role was reached."""
        result = await self.get_effective_role(user_id, project_id)
        steps: list[InheritanceStep] = []
        source = result.inheritance_source

        if source == InheritanceSource.SYSTEM_ADMIN:
            steps.append(
                InheritanceStep(
                    level=1,
                    type="system_admin",
                    role="SYSTEM_ADMIN",
                    source="OrganizationMembership.is_system_admin",
                    description="System administrator with complete platform access",
                )
            )
            steps.append(
                InheritanceStep(
                    level=2,
                    type="project",
                    role="PROJECT_ADMIN",
                    source="Inheritance",
                    description="Inherited PROJECT_ADMIN from system administrator",
                )
            )
        elif source in (InheritanceSource.ORG_OWNER, InheritanceSource.ORG_ADMIN):
            org_role = result.organization_role.value.upper()
            steps.append(
                InheritanceStep(
                    level=1,
                    type="organization",
                    role=org_role,
                    source="OrganizationMembership",
                    description=f'Organization {org_role.lower()} of "{result.organization_id}"',
                )
            )
            steps.append(
                InheritanceStep(
                    level=2,
                    type="project",
                    role="PROJECT_ADMIN",
                    source="Inheritance",
                    description=f"Inherited PROJECT_ADMIN from organization {org_role} role",
                )
            )
        elif source == InheritanceSource.EXPLICIT:
            role = result.role.value.upper()
            steps.append(
                InheritanceStep(
                    level=1,
                    type="project",
                    role=role,
                    source="ProjectMembership",
                    description=f"Explicitly assigned as {role}",
                )
            )

        return InheritanceChain(
            user_id=user_id,
            project_id=project_id,
            effective_role=result.role,
            is_inherited=result.is_inherited,
            steps=steps,
        )

    async def can_change_project_role(
        self,
        target_user_id: str,
        project_id: str,
        new_role: ProjectRole | str,
        requesting_user_id: str,
    ) -> RoleChangeCheck:
        """Check whether ``requesting_user_id`` may set ``target_user_id``'s role.

        Inherited access cannot be changed at the project level; only an
        explicit membership can, and only by a PROJECT_ADMIN.
        """
        try:
            ProjectRole(new_role)
        except ValueError:
            return RoleChangeCheck(allowed=False, reason=f"Unknown project role: {new_role}")

        target = await self.get_effective_role(target_user_id, project_id)

        if target.inheritance_source == InheritanceSource.SYSTEM_ADMIN:
            return RoleChangeCheck(allowed=False, reason="Cannot change role for system administrators")
        if target.inheritance_source == InheritanceSource.ORG_OWNER:
            return RoleChangeCheck(
                allowed=False,
                reason=(
                    "Cannot change role for organization owners. They automatically "
                    "have PROJECT_ADMIN access to all organization projects."
                ),
            )
        if target.inheritance_source == InheritanceSource.ORG_ADMIN:
            return RoleChangeCheck(
                allowed=False,
                reason=(
                    "Cannot change role for organization admins. They automatically "
                    "have PROJECT_ADMIN access to all organization projects."
                ),
            )
        if target.inheritance_source != InheritanceSource.EXPLICIT:
            return RoleChangeCheck(allowed=False, reason="User does not have explicit project membership")

        requester = await self.get_effective_role(requesting_user_id, project_id)
        if requester.role != ProjectRole.PROJECT_ADMIN:
            return RoleChangeCheck(allowed=False, reason="You must be a PROJECT_ADMIN to change user roles")

        return RoleChangeCheck(allowed=True)


__all__ = ["InheritanceService", "call_store"]
