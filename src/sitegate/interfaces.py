"""Collaborator contracts consumed by the engine.

The engine never persists memberships; it reads them through a
``MembershipStore``. ``InMemoryMembershipStore`` backs tests and local tools.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from .models import OrganizationMembership, ProjectMembership, UserScope
from .permissions.constants import OrganizationRole, ProjectRole


class MembershipStore(ABC):
    """Lookups the engine needs from the membership/project persistence layer."""

    @abstractmethod
    async def get_project_membership(self, user_id: str, project_id: str) -> Optional[ProjectMembership]:
        raise NotImplementedError

    @abstractmethod
    async def get_organization_membership(
        self, user_id: str, organization_id: str
    ) -> Optional[OrganizationMembership]:
        raise NotImplementedError

    @abstractmethod
    async def get_project_organization(self, project_id: str) -> Optional[str]:
        """Organization owning the project, or None for unknown projects."""
        raise NotImplementedError


class InMemoryMembershipStore(MembershipStore):
    """Dict-backed MembershipStore."""

    def __init__(self) -> None:
        self._projects: Dict[str, str] = {}
        self._project_members: Dict[Tuple[str, str], ProjectMembership] = {}
        self._org_members: Dict[Tuple[str, str], OrganizationMembership] = {}

    # ── Mutation ────────────────────────────────────────

    def add_project(self, project_id: str, organization_id: str) -> None:
        self._projects[project_id] = organization_id

    def add_project_member(
        self,
        user_id: str,
        project_id: str,
        role: ProjectRole | str,
        *,
        scope: Any = None,
        expires_at: Optional[datetime] = None,
    ) -> ProjectMembership:
        membership = ProjectMembership(
            user_id=user_id,
            project_id=project_id,
            role=role,
            scope=UserScope.coerce(scope),
            expires_at=expires_at,
        )
        self._project_members[(user_id, project_id)] = membership
        return membership

    def remove_project_member(self, user_id: str, project_id: str) -> None:
        self._project_members.pop((user_id, project_id), None)

    def add_organization_member(
        self,
        user_id: str,
        organization_id: str,
        org_role: OrganizationRole | str,
        *,
        is_system_admin: bool = False,
    ) -> OrganizationMembership:
        membership = OrganizationMembership(
            user_id=user_id,
            organization_id=organization_id,
            org_role=org_role,
            is_system_admin=is_system_admin,
        )
        self._org_members[(user_id, organization_id)] = membership
        return membership

    # ── MembershipStore ─────────────────────────────────

    async def get_project_membership(self, user_id: str, project_id: str) -> Optional[ProjectMembership]:
        return self._project_members.get((user_id, project_id))

    async def get_organization_membership(
        self, user_id: str, organization_id: str
    ) -> Optional[OrganizationMembership]:
        return self._org_members.get((user_id, organization_id))

    async def get_project_organization(self, project_id: str) -> Optional[str]:
        return self._projects.get(project_id)


__all__ = ["MembershipStore", "InMemoryMembershipStore"]
