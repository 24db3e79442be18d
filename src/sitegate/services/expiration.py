"""Time-bounded access for explicit project memberships.

Only explicit memberships carry ``expires_at``; inherited roles are always
ACTIVE. Expiration is evaluated on every call and never cached.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import GateConfig
from ..models import ExpirationCheckResult, ExpirationStatus, utcnow
from .inheritance import InheritanceService

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 24 * 60 * 60


def _aware(value: datetime) -> datetime:
    """Naive timestamps are treated as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class ExpirationService:
    """Checks whether a user's project access has expired.

    Args:
        inheritance: Resolver used to detect inherited roles.
        config: Supplies ``expiring_soon_days``.
        now: Clock returning the current time (injected by tests).
    """

    def __init__(
        self,
        inheritance: InheritanceService,
        config: Optional[GateConfig] = None,
        now: Callable[[], datetime] = utcnow,
    ) -> None:
        self._inheritance = inheritance
        self._config = config or GateConfig()
        self._now = now

    async def check_expiration(self, user_id: str, project_id: str) -> ExpirationCheckResult:
        role = await self._inheritance.get_effective_role(user_id, project_id)
        if role.is_inherited:
            logger.debug("User %s has inherited role, no expiration applies", user_id)
            return ExpirationCheckResult(status=ExpirationStatus.ACTIVE, is_inherited=True)

        membership = await self._inheritance.get_project_membership(user_id, project_id)
        if membership is None:
            return ExpirationCheckResult(status=ExpirationStatus.NONE)

        if membership.expires_at is None:
            return ExpirationCheckResult(status=ExpirationStatus.ACTIVE)

        expires_at = _aware(membership.expires_at)
        now = _aware(self._now())

        if expires_at < now:
            return ExpirationCheckResult(
                status=ExpirationStatus.EXPIRED,
                expires_at=expires_at,
                days_until_expiration=0,
            )

        days = math.ceil((expires_at - now).total_seconds() / _SECONDS_PER_DAY)
        return ExpirationCheckResult(
            status=ExpirationStatus.ACTIVE,
            expires_at=expires_at,
            days_until_expiration=days,
            is_expiring_soon=days <= self._config.expiring_soon_days,
        )

    async def is_expired(self, user_id: str, project_id: str) -> bool:
        result = await self.check_expiration(user_id, project_id)
        return result.status == ExpirationStatus.EXPIRED

    async def is_expiring_soon(self, user_id: str, project_id: str, days_ahead: Optional[int] = None) -> bool:
        """True for active memberships expiring within ``days_ahead`` days.

        Defaults to ``config.expiring_soon_days``.
        """
        result = await self.check_expiration(user_id, project_id)
        if result.status != ExpirationStatus.ACTIVE or result.days_until_expiration is None:
            return False
        window = self._config.expiring_soon_days if days_ahead is None else days_ahead
        return result.days_until_expiration <= window


__all__ = ["ExpirationService"]
