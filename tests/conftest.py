"""Shared fixtures: an in-memory membership store and deterministic clocks."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from sitegate import GateConfig, InMemoryMembershipStore, PermissionService

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)
PROJECT = "proj-1"
ORG = "org-1"


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> GateConfig:
    return GateConfig()


@pytest.fixture
def store() -> InMemoryMembershipStore:
    store = InMemoryMembershipStore()
    store.add_project(PROJECT, ORG)
    return store


@pytest.fixture
def service(store: InMemoryMembershipStore, config: GateConfig, clock: FakeClock) -> PermissionService:
    return PermissionService.from_store(store, config, now=lambda: NOW, time_fn=clock)
