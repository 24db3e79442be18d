"""TTL cache of guard decisions.

Keys are ``user:project:action[:resource]``, where guards pass a
``feature:resource_type:action`` action so one cache can serve every guard.
Cached denials are returned as-is; invalidation is explicit (``clear``/``clear_all``) or by TTL.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Optional

from ..config import GateConfig

logger = logging.getLogger(__name__)

_RESPONSE_TIME_WINDOW = 1000


@dataclass(frozen=True)
class GuardCacheEntry:
    allowed: bool
    cached_at: float
    expires_at: float


class GuardCache:
    """In-process cache of ``enforce_permission`` outcomes.

    Call ``start()`` from a running event loop to sweep expired entries every
    ``config.guard_cache_cleanup_interval`` seconds; ``stop()`` cancels it.
    """

    def __init__(
        self,
        config: Optional[GateConfig] = None,
        time_fn: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config or GateConfig()
        self._time = time_fn
        self._entries: dict[str, GuardCacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._response_times: deque[float] = deque(maxlen=_RESPONSE_TIME_WINDOW)
        self._cleanup_task: Optional[asyncio.Task] = None

    @staticmethod
    def cache_key(user_id: str, project_id: str, action: str, resource_id: Optional[str] = None) -> str:
        if resource_id:
            return f"{user_id}:{project_id}:{action}:{resource_id}"
        return f"{user_id}:{project_id}:{action}"

    def get(
        self,
        user_id: str,
        project_id: str,
        action: str,
        resource_id: Optional[str] = None,
    ) -> Optional[bool]:
        """Cached decision, or None on a miss."""
        started = time.perf_counter()
        key = self.cache_key(user_id, project_id, action, resource_id)
        entry = self._entries.get(key)

        if entry is None:
            self._misses += 1
            return None
        if entry.expires_at <= self._time():
            del self._entries[key]
            self._misses += 1
            return None

        self._hits += 1
        elapsed_ms = (time.perf_counter() - started) * 1000
        self._response_times.append(elapsed_ms)
        logger.debug("Guard cache hit for %s (%.3fms)", key, elapsed_ms)
        return entry.allowed

    def set(
        self,
        user_id: str,
        project_id: str,
        action: str,
        allowed: bool,
        resource_id: Optional[str] = None,
    ) -> None:
        key = self.cache_key(user_id, project_id, action, resource_id)
        now = self._time()
        self._entries[key] = GuardCacheEntry(
            allowed=allowed,
            cached_at=now,
            expires_at=now + self._config.guard_cache_ttl,
        )
        logger.debug("Cached guard decision for %s: %s", key, allowed)

    def clear(self, user_id: str, project_id: Optional[str] = None) -> int:
        """Drop a user's entries, optionally limited to one project."""
        prefix = f"{user_id}:{project_id}:" if project_id else f"{user_id}:"
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        logger.info(
            "Cleared %d guard cache entries for user %s%s",
            len(keys),
            user_id,
            f" on project {project_id}" if project_id else "",
        )
        return len(keys)

    def clear_all(self) -> None:
        size = len(self._entries)
        self._entries.clear()
        logger.info("Cleared entire guard cache (%d entries)", size)

    def cleanup(self) -> int:
        """Remove expired entries; returns how many were removed."""
        now = self._time()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Cleaned up %d expired guard cache entries", len(expired))
        return len(expired)

    def get_statistics(self) -> dict[str, float]:
        total = self._hits + self._misses
        hit_rate = (self._hits / total) * 100 if total else 0.0
        avg = sum(self._response_times) / len(self._response_times) if self._response_times else 0.0
        return {
            "hits": self._hits,
            "misses": self._misses,
            "size": len(self._entries),
            "hit_rate": round(hit_rate, 2),
            "avg_response_time_ms": round(avg, 2),
        }

    def reset_statistics(self) -> None:
        self._hits = 0
        self._misses = 0
        self._response_times.clear()
        logger.info("Guard cache statistics reset")

    def __len__(self) -> int:
        return len(self._entries)

    # ── Background sweep ────────────────────────────────

    @property
    def running(self) -> bool:
        return self._cleanup_task is not None and not self._cleanup_task.done()

    def start(self) -> asyncio.Task:
        """Start the periodic sweep on the running loop (idempotent)."""
        if self.running:
            return self._cleanup_task

        interval = self._config.guard_cache_cleanup_interval

        async def _sweep() -> None:
            while True:
                await asyncio.sleep(interval)
                try:
                    self.cleanup()
                except Exception as e:
                    logger.warning("Guard cache cleanup failed: %s", e)

        self._cleanup_task = asyncio.create_task(_sweep())
        logger.debug("Started guard cache cleanup (interval: %ss)", interval)
        return self._cleanup_task

    async def stop(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Stopped guard cache cleanup")


__all__ = ["GuardCache", "GuardCacheEntry"]
