"""
Global pytest configuration and fixtures for slot coordinator testing.

This module provides shared fixtures so coordinator, store, router and CLI
tests all build their objects the same way.
"""

import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import structlog

from marty_slots.config import get_settings
from marty_slots.coordinator import SlotCoordinator
from marty_slots.routing import InMemoryTrafficRouter
from marty_slots.store import InMemoryStateStore, JsonFileStateStore

START_TIME = datetime(2025, 10, 10, 15, 30, tzinfo=timezone.utc)


class FakeClock:
    """Clock that advances one minute on every read."""

    def __init__(self, start: datetime = START_TIME, step: timedelta = timedelta(minutes=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current += self.step
        return now


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path) -> Generator[None, None, None]:
    """Keep SLOTS_* variables and stray .env files out of every test."""
    for name in list(os.environ):
        if name.startswith("SLOTS_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


@pytest.fixture
def clock() -> FakeClock:
    """Provide a deterministic clock."""
    return FakeClock()


@pytest.fixture
def memory_store() -> InMemoryStateStore:
    """Provide an empty in-memory state store."""
    return InMemoryStateStore()


@pytest.fixture
def router() -> InMemoryTrafficRouter:
    """Provide a recording traffic router."""
    return InMemoryTrafficRouter()


@pytest.fixture
def coordinator(memory_store, router, clock) -> SlotCoordinator:
    """Provide a coordinator that starts with blue live and no history."""
    return SlotCoordinator(store=memory_store, router=router, clock=clock)


@pytest.fixture
def state_file(tmp_path) -> Path:
    """Provide a path for a JSON state file that does not exist yet."""
    return tmp_path / "state" / "routing.json"


@pytest.fixture
def file_store(state_file) -> JsonFileStateStore:
    """Provide a JSON file state store."""
    return JsonFileStateStore(state_file)
