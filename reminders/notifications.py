# -*- coding: utf-8 -*-
"""
The notification capability reminders are scheduled through.

Delivery is outside this project. ``NotificationService`` is what the binder
needs from a platform, and ``LocalNotificationService`` is an in-process
stand-in that keeps pending notifications (optionally mirrored to the
key-value store so handles survive a restart).
"""
from __future__ import annotations

import json
import logging
import typing as t
import uuid
from datetime import datetime

from pydantic import BaseModel, TypeAdapter, ValidationError

from planner_store.kv import KeyValueStore
from reminders.recurrence import align

logger = logging.getLogger(__name__)

NOTIFICATIONS_KEY = "@notifications"


class NotificationError(Exception):
    """The notification service could not schedule or cancel."""


class NotificationPermissionError(NotificationError):
    """Notifications have not been permitted by the user."""


class NotificationService(t.Protocol):
    async def request_permission(self) -> bool:
        """Ask for permission to post notifications; True if granted."""
        ...

    async def schedule(self, title: str, body: str, fire_at: datetime) -> str:
        """Schedule one notification and return its handle."""
        ...

    async def cancel(self, handle: str) -> None:
        """Cancel a scheduled notification. Unknown handles are ignored."""
        ...


class ScheduledNotification(BaseModel):
    """A pending notification held by the local service."""
    handle: str
    title: str
    body: str
    fire_at: datetime


_pending_adapter = TypeAdapter(list[ScheduledNotification])


class LocalNotificationService:
    """In-process notification service.

    :param kv: When given, pending notifications are written under
        ``@notifications`` after every change and read back on construction.
    :param grant_permission: The answer ``request_permission`` gives.
    """

    def __init__(self, kv: t.Optional[KeyValueStore] = None, grant_permission: bool = True) -> None:
        self.kv = kv
        self.grant_permission = grant_permission
        self.permission_granted: t.Optional[bool] = None
        self.pending: dict[str, ScheduledNotification] = {}
        if kv is not None:
            self._restore()

    def _restore(self) -> None:
        raw = self.kv.get(NOTIFICATIONS_KEY)
        if raw is None:
            return
        try:
            items = _pending_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("Stored notifications are unreadable; starting with none pending")
            return
        self.pending = {item.handle: item for item in items}

    def _persist(self) -> None:
        if self.kv is None:
            return
        items = [item.model_dump(mode="json") for item in self.pending.values()]
        self.kv.set(NOTIFICATIONS_KEY, json.dumps(items))

    async def request_permission(self) -> bool:
        self.permission_granted = self.grant_permission
        return self.permission_granted

    async def schedule(self, title: str, body: str, fire_at: datetime) -> str:
        if self.permission_granted is False:
            raise NotificationPermissionError("Notification permission was denied")
        handle = uuid.uuid4().hex
        self.pending[handle] = ScheduledNotification(handle=handle, title=title, body=body, fire_at=fire_at)
        self._persist()
        logger.debug("Scheduled notification %s for %s", handle, fire_at.isoformat())
        return handle

    async def cancel(self, handle: str) -> None:
        if self.pending.pop(handle, None) is None:
            logger.debug("Notification %s was not pending", handle)
            return
        self._persist()

    def due(self, now: datetime) -> list[ScheduledNotification]:
        """Pending notifications whose fire time is not after ``now``, soonest first."""
        return sorted(
            (n for n in self.pending.values() if n.fire_at <= align(n.fire_at, now)),
            key=lambda n: n.fire_at.timestamp(),
        )
