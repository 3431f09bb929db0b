# -*- coding: utf-8 -*-
"""Shared fixtures: an in-memory store and a recording notification service."""
from datetime import datetime

import pytest

from planner_store.kv import InMemoryKeyValueStore
from planner_store.store import EntityStore, IdAllocator
from reminders.binder import NotificationBinder
from reminders.notifications import NotificationError

NOW = datetime(2024, 2, 15, 12, 0)


class RecordingNotificationService:
    """Fake notification service that records every call in order."""

    def __init__(self, grant: bool = True) -> None:
        self.grant = grant
        self.fail_schedule = False
        self.fail_cancel = False
        self.calls: list[tuple] = []
        self.live: dict[str, tuple[str, datetime]] = {}
        self._counter = 0

    async def request_permission(self) -> bool:
        self.calls.append(("permission",))
        return self.grant

    async def schedule(self, title: str, body: str, fire_at: datetime) -> str:
        self.calls.append(("schedule", title, fire_at))
        if self.fail_schedule:
            raise NotificationError("scheduler unavailable")
        self._counter += 1
        handle = f"n{self._counter}"
        self.live[handle] = (title, fire_at)
        return handle

    async def cancel(self, handle: str) -> None:
        self.calls.append(("cancel", handle))
        if self.fail_cancel:
            raise NotificationError("cancel rejected")
        self.live.pop(handle, None)


class FixedClockMs:
    """Millisecond clock that never advances, to exercise id bumping."""

    def __init__(self, value: int = 1_700_000_000_000) -> None:
        self.value = value

    def __call__(self) -> int:
        return self.value


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv: InMemoryKeyValueStore) -> EntityStore:
    return EntityStore(kv, IdAllocator(FixedClockMs()))


@pytest.fixture
def service() -> RecordingNotificationService:
    return RecordingNotificationService()


@pytest.fixture
def binder(store: EntityStore, service: RecordingNotificationService) -> NotificationBinder:
    return NotificationBinder(store, service, clock=lambda: NOW)
