"""Best-effort in-memory audit log of permission denials."""

from __future__ import annotations

import logging
from collections import Counter, deque
from typing import Any, Optional

from ..config import GateConfig
from ..models import AuditLogEntry

logger = logging.getLogger(__name__)


class AuditService:
    """Bounded ring buffer of denials; the oldest entries are evicted first."""

    def __init__(self, config: Optional[GateConfig] = None) -> None:
        self._config = config or GateConfig()
        self._entries: deque[AuditLogEntry] = deque(maxlen=self._config.audit_log_capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen

    def log_permission_denial(self, entry: AuditLogEntry) -> None:
        self._entries.append(entry)
        logger.warning(
            "Permission denied: %s for user %s on project %s",
            entry.action,
            entry.user_id,
            entry.project_id,
            extra={
                "user_id": entry.user_id,
                "project_id": entry.project_id,
                "action": entry.action,
                "reason": entry.reason.value if entry.reason else None,
                "resource_type": entry.resource_type,
                "resource_id": entry.resource_id,
                "denial_message": entry.message,
            },
        )

    def get_recent_entries(self, limit: int = 100) -> list[AuditLogEntry]:
        """Newest first."""
        return self._tail(self._entries, limit)

    def get_user_entries(self, user_id: str, limit: int = 100) -> list[AuditLogEntry]:
        return self._tail([e for e in self._entries if e.user_id == user_id], limit)

    def get_project_entries(self, project_id: str, limit: int = 100) -> list[AuditLogEntry]:
        return self._tail([e for e in self._entries if e.project_id == project_id], limit)

    def get_statistics(self) -> dict[str, Any]:
        by_reason = Counter(e.reason.value if e.reason else "unknown" for e in self._entries)
        by_action = Counter(e.action for e in self._entries)
        return {
            "total_entries": len(self._entries),
            "entries_by_reason": dict(by_reason),
            "entries_by_action": dict(by_action),
        }

    def clear_log(self) -> None:
        self._entries.clear()
        logger.debug("Audit log cleared")

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _tail(entries, limit: int) -> list[AuditLogEntry]:
        if limit <= 0:
            return []
        return list(reversed(entries))[:limit]


__all__ = ["AuditService"]
