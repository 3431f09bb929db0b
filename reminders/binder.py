# -*- coding: utf-8 -*-
"""
Keeps each reminder bound to at most one scheduled notification.

Reminder saves and deletes go through ``NotificationBinder`` so that the
notification service never holds a stale or orphaned entry:

- a previous handle is cancelled, and the cancel awaited, before a new
  notification is requested;
- the resulting handle (or None) is written in the same store save as the
  reminder's other fields;
- calls for the same reminder are serialized with a per-reminder lock.

Notification failures never abort a save. They are logged and reported on
the returned ``BindOutcome``; the reminder is stored unscheduled.
"""
from __future__ import annotations

import asyncio
import collections
import logging
import typing as t
from dataclasses import dataclass
from datetime import datetime, timedelta

from planner_store.models import EntityKind, ExistingEntity, NewEntity, Reminder, SaveCommand
from planner_store.store import EntityStore
from reminders.notifications import NotificationService
from reminders.recurrence import align, next_occurrence

logger = logging.getLogger(__name__)

DEFAULT_BODY = "Reminder triggered"

_NEW = "__new__"

# Smallest step past an occurrence that falls exactly on now.
_TICK = timedelta(microseconds=1)


def _local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class BindOutcome:
    """Result of a binder operation."""
    reminder: t.Optional[Reminder]
    fire_at: t.Optional[datetime] = None
    error: t.Optional[str] = None

    @property
    def scheduled(self) -> bool:
        return self.reminder is not None and self.reminder.notification_id is not None


class NotificationBinder:
    """Schedules, reschedules and cancels notifications for reminders.

    :param store: Entity store holding the reminders.
    :param service: Notification capability.
    :param clock: Returns the current time; defaults to local aware now.
    :param body: Notification body text.
    """

    def __init__(
            self,
            store: EntityStore,
            service: NotificationService,
            clock: t.Optional[t.Callable[[], datetime]] = None,
            body: str = DEFAULT_BODY,
    ) -> None:
        self.store = store
        self.service = service
        self.clock = clock or _local_now
        self.body = body
        self.permission_granted: t.Optional[bool] = None
        self._locks: collections.defaultdict[str, asyncio.Lock] = collections.defaultdict(asyncio.Lock)

    async def start(self) -> bool:
        """Request notification permission once."""
        if self.permission_granted is None:
            try:
                self.permission_granted = await self.service.request_permission()
            except Exception:
                logger.exception("Requesting notification permission failed")
                self.permission_granted = False
            if not self.permission_granted:
                logger.warning("Notification permission denied; reminders will not fire")
        return self.permission_granted

    async def _schedule(self, reminder: Reminder) -> tuple[t.Optional[str], t.Optional[datetime], t.Optional[str]]:
        """Request a notification for the reminder's next occurrence if it is in the future."""
        now = align(reminder.date, self.clock())
        fire_at = next_occurrence(reminder.date, reminder.repeat, now)
        if fire_at is not None and fire_at <= now and reminder.repeat != "none":
            fire_at = next_occurrence(reminder.date, reminder.repeat, now + _TICK)
        if fire_at is None or fire_at <= now:
            return None, fire_at, None
        try:
            handle = await self.service.schedule(reminder.title, self.body, fire_at)
        except Exception as e:
            logger.warning("Could not schedule notification for reminder %r: %s", reminder.title, e)
            return None, fire_at, f"Scheduling failed: {e}"
        return handle, fire_at, None

    async def _cancel(self, handle: t.Optional[str]) -> t.Optional[str]:
        if handle is None:
            return None
        try:
            await self.service.cancel(handle)
        except Exception as e:
            logger.warning("Could not cancel notification %s: %s", handle, e)
            return f"Cancelling notification {handle} failed: {e}"
        return None

    async def _cancel_all(self, *handles: t.Optional[str]) -> tuple[t.Optional[str], t.Optional[str]]:
        """Cancel each distinct handle; return the first that failed and the joined errors."""
        failed: list[str] = []
        errors: list[str] = []
        for handle in dict.fromkeys(h for h in handles if h is not None):
            error = await self._cancel(handle)
            if error is not None:
                failed.append(handle)
                errors.append(error)
        if not failed:
            return None, None
        return failed[0], "; ".join(errors)

    async def create(self, command: NewEntity) -> BindOutcome:
        """Save a new reminder, scheduling its next occurrence when it is in the future."""
        async with self._locks[_NEW]:
            draft = self.store.build(EntityKind.REMINDERS, command)
            handle, fire_at, error = await self._schedule(draft)
            reminder = self.store.upsert(
                EntityKind.REMINDERS,
                NewEntity({**command.fields, "notification_id": handle}),
            )
        return BindOutcome(reminder=reminder, fire_at=fire_at, error=error)

    async def update(self, command: ExistingEntity, previous_handle: t.Optional[str] = None) -> BindOutcome:
        """Save an edited reminder, replacing its notification.

        The stored handle and ``previous_handle``, when given, are both
        cancelled before anything new is scheduled. If a cancel fails that
        handle stays recorded and no new notification is requested, so a
        later save can retry without leaving two live notifications.
        """
        async with self._locks[command.id]:
            draft = self.store.build(EntityKind.REMINDERS, command)
            stored = self.store.require(EntityKind.REMINDERS, command.id)

            failed, error = await self._cancel_all(stored.notification_id, previous_handle)
            if failed is not None:
                handle, fire_at = failed, None
            else:
                handle, fire_at, error = await self._schedule(draft)

            reminder = self.store.upsert(
                EntityKind.REMINDERS,
                ExistingEntity(command.id, {**command.fields, "notification_id": handle}),
            )
        return BindOutcome(reminder=reminder, fire_at=fire_at, error=error)

    async def save(self, command: SaveCommand) -> BindOutcome:
        if isinstance(command, NewEntity):
            return await self.create(command)
        return await self.update(command)

    async def delete(self, reminder_id: str) -> BindOutcome:
        """Cancel the reminder's notification, if any, and remove the reminder."""
        async with self._locks[reminder_id]:
            reminder = self.store.get(EntityKind.REMINDERS, reminder_id)
            if reminder is None:
                return BindOutcome(reminder=None)
            error = await self._cancel(reminder.notification_id)
            self.store.delete(EntityKind.REMINDERS, reminder_id)
        self._locks.pop(reminder_id, None)
        return BindOutcome(reminder=reminder, error=error)

    async def restore(self) -> list[BindOutcome]:
        """Rebind every stored reminder, e.g. at startup.

        Each stored handle is cancelled and the next occurrence scheduled
        afresh. Reminders are re-read and written one at a time under their
        lock, so saves made while restoring are kept.
        """
        outcomes: list[BindOutcome] = []
        for reminder_id in [r.id for r in self.store.all(EntityKind.REMINDERS)]:
            async with self._locks[reminder_id]:
                reminder = self.store.get(EntityKind.REMINDERS, reminder_id)
                if reminder is None:
                    continue
                error = await self._cancel(reminder.notification_id)
                if error is not None:
                    handle, fire_at = reminder.notification_id, None
                else:
                    handle, fire_at, error = await self._schedule(reminder)
                updated = self.store.upsert(
                    EntityKind.REMINDERS,
                    ExistingEntity(reminder_id, {"notification_id": handle}),
                )
            outcomes.append(BindOutcome(reminder=updated, fire_at=fire_at, error=error))
        return outcomes
