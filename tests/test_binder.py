# -*- coding: utf-8 -*-
"""Tests for the reminder/notification binder."""
import asyncio
from datetime import datetime

import pytest

from conftest import NOW, RecordingNotificationService
from planner_store.errors import EntityNotFoundError, InvalidEntityError
from planner_store.models import EntityKind, ExistingEntity, NewEntity
from planner_store.store import EntityStore
from reminders.binder import NotificationBinder


FUTURE = datetime(2024, 3, 1, 9, 0)
PAST = datetime(2024, 1, 31, 9, 0)


def _new(title: str = "Study", date: datetime = FUTURE, repeat: str = "none") -> NewEntity:
    return NewEntity({"title": title, "date": date, "repeat": repeat})


@pytest.mark.asyncio
async def test_create_future_reminder_schedules_and_stores_handle(
        binder: NotificationBinder, service: RecordingNotificationService, store: EntityStore
) -> None:
    outcome = await binder.create(_new())

    assert outcome.scheduled
    assert outcome.fire_at == FUTURE
    assert service.calls == [("schedule", "Study", FUTURE)]
    stored = store.get(EntityKind.REMINDERS, outcome.reminder.id)
    assert stored.notification_id == "n1"


@pytest.mark.asyncio
async def test_create_past_one_off_reminder_stays_unscheduled(
        binder: NotificationBinder, service: RecordingNotificationService, store: EntityStore
) -> None:
    outcome = await binder.create(_new(date=PAST))

    assert not outcome.scheduled
    assert outcome.fire_at is None
    assert outcome.error is None
    assert service.calls == []
    assert store.get(EntityKind.REMINDERS, outcome.reminder.id).notification_id is None


@pytest.mark.asyncio
async def test_create_past_repeating_reminder_schedules_next_occurrence(
        binder: NotificationBinder, service: RecordingNotificationService
) -> None:
    outcome = await binder.create(_new(date=PAST, repeat="monthly"))

    assert outcome.fire_at == datetime(2024, 2, 29, 9, 0)
    assert service.calls == [("schedule", "Study", datetime(2024, 2, 29, 9, 0))]


@pytest.mark.asyncio
async def test_create_with_invalid_fields_requests_nothing(
        binder: NotificationBinder, service: RecordingNotificationService, store: EntityStore
) -> None:
    with pytest.raises(InvalidEntityError):
        await binder.create(NewEntity({"title": "No date"}))

    assert service.calls == []
    assert store.all(EntityKind.REMINDERS) == []


@pytest.mark.asyncio
async def test_update_cancels_before_scheduling(
        binder: NotificationBinder, service: RecordingNotificationService, store: EntityStore
) -> None:
    created = await binder.create(_new())
    later = datetime(2024, 3, 2, 9, 0)

    outcome = await binder.update(ExistingEntity(created.reminder.id, {"date": later}))

    assert service.calls[1:] == [("cancel", "n1"), ("schedule", "Study", later)]
    assert outcome.reminder.notification_id == "n2"
    assert list(service.live) == ["n2"]
    assert store.get(EntityKind.REMINDERS, created.reminder.id).notification_id == "n2"


@pytest.mark.asyncio
async def test_update_uses_explicit_previous_handle(
        binder: NotificationBinder, service: RecordingNotificationService
) -> None:
    created = await binder.create(_new())

    await binder.update(ExistingEntity(created.reminder.id, {"title": "Renamed"}), previous_handle="n1")

    assert ("cancel", "n1") in service.calls
    assert list(service.live.values()) == [("Renamed", FUTURE)]


@pytest.mark.asyncio
async def test_update_into_the_past_clears_handle(
        binder: NotificationBinder, service: RecordingNotificationService, store: EntityStore
) -> None:
    created = await binder.create(_new())

    outcome = await binder.update(ExistingEntity(created.reminder.id, {"date": PAST}))

    assert outcome.reminder.notification_id is None
    assert service.live == {}


@pytest.mark.asyncio
async def test_update_unknown_reminder(binder: NotificationBinder) -> None:
    with pytest.raises(EntityNotFoundError):
        await binder.update(ExistingEntity("missing", {"title": "x"}))


@pytest.mark.asyncio
async def test_repeated_updates_keep_one_live_handle(
        binder: NotificationBinder, service: RecordingNotificationService
) -> None:
    created = await binder.create(_new(repeat="weekly"))
    reminder_id = created.reminder.id

    for day in range(1, 8):
        await binder.update(ExistingEntity(reminder_id, {"date": datetime(2024, 3, day, 9, 0)}))

    assert len(service.live) == 1


@pytest.mark.asyncio
async def test_concurrent_updates_of_one_reminder_keep_one_live_handle(
        store: EntityStore, service: RecordingNotificationService
) -> None:
    class SlowService(RecordingNotificationService):
        async def cancel(self, handle: str) -> None:
            await asyncio.sleep(0)
            await super().cancel(handle)

        async def schedule(self, title, body, fire_at):
            await asyncio.sleep(0)
            return await super().schedule(title, body, fire_at)

    slow = SlowService()
    binder = NotificationBinder(store, slow, clock=lambda: NOW)
    created = await binder.create(_new())
    reminder_id = created.reminder.id

    await asyncio.gather(
        binder.update(ExistingEntity(reminder_id, {"date": datetime(2024, 3, 5, 9, 0)})),
        binder.update(ExistingEntity(reminder_id, {"date": datetime(2024, 3, 6, 9, 0)})),
        binder.update(ExistingEntity(reminder_id, {"date": datetime(2024, 3, 7, 9, 0)})),
    )

    assert len(slow.live) == 1
    stored = store.get(EntityKind.REMINDERS, reminder_id)
    assert stored.notification_id in slow.live


@pytest.mark.asyncio
async def test_schedule_failure_saves_reminder_unscheduled(
        binder: NotificationBinder, service: RecordingNotificationService, store: EntityStore
) -> None:
    service.fail_schedule = True

    outcome = await binder.create(_new())

    assert outcome.error is not None
    assert not outcome.scheduled
    stored = store.get(EntityKind.REMINDERS, outcome.reminder.id)
    assert stored.title == "Study"
    assert stored.notification_id is None


@pytest.mark.asyncio
async def test_cancel_failure_keeps_previous_handle_and_skips_schedule(
        binder: NotificationBinder, service: RecordingNotificationService, store: EntityStore
) -> None:
    created = await binder.create(_new())
    service.fail_cancel = True

    outcome = await binder.update(ExistingEntity(created.reminder.id, {"title": "Edited"}))

    assert outcome.error is not None
    assert outcome.reminder.title == "Edited"
    assert outcome.reminder.notification_id == "n1"
    assert [c[0] for c in service.calls] == ["schedule", "cancel"]

    service.fail_cancel = False
    retried = await binder.update(ExistingEntity(created.reminder.id, {}))
    assert retried.reminder.notification_id == "n2"
    assert list(service.live) == ["n2"]


@pytest.mark.asyncio
async def test_delete_cancels_bound_handle(
        binder: NotificationBinder, service: RecordingNotificationService, store: EntityStore
) -> None:
    created = await binder.create(_new())

    outcome = await binder.delete(created.reminder.id)

    assert outcome.reminder.id == created.reminder.id
    assert service.live == {}
    assert store.all(EntityKind.REMINDERS) == []


@pytest.mark.asyncio
async def test_delete_without_handle_is_not_an_error(
        binder: NotificationBinder, service: RecordingNotificationService
) -> None:
    created = await binder.create(_new(date=PAST))

    outcome = await binder.delete(created.reminder.id)

    assert outcome.error is None
    assert service.calls == []


@pytest.mark.asyncio
async def test_delete_unknown_reminder(binder: NotificationBinder) -> None:
    outcome = await binder.delete("missing")
    assert outcome.reminder is None


@pytest.mark.asyncio
async def test_save_dispatches_on_command_type(
        binder: NotificationBinder, service: RecordingNotificationService
) -> None:
    created = await binder.save(_new())
    updated = await binder.save(ExistingEntity(created.reminder.id, {"title": "Again"}))

    assert updated.reminder.id == created.reminder.id
    assert len(service.live) == 1


@pytest.mark.asyncio
async def test_start_requests_permission_once(store: EntityStore) -> None:
    denied = RecordingNotificationService(grant=False)
    binder = NotificationBinder(store, denied, clock=lambda: NOW)

    assert await binder.start() is False
    assert await binder.start() is False
    assert denied.calls == [("permission",)]


@pytest.mark.asyncio
async def test_restore_rebinds_every_reminder(
        store: EntityStore, service: RecordingNotificationService, binder: NotificationBinder
) -> None:
    store.save(EntityKind.REMINDERS, [])
    first = await binder.create(_new(title="One"))
    second = await binder.create(_new(title="Two", date=PAST))
    third = await binder.create(_new(title="Three", date=PAST, repeat="daily"))

    outcomes = await binder.restore()

    assert [o.reminder.id for o in outcomes] == [first.reminder.id, second.reminder.id, third.reminder.id]
    assert len(service.live) == 2
    stored = {r.id: r.notification_id for r in store.all(EntityKind.REMINDERS)}
    assert stored[second.reminder.id] is None
    assert set(service.live) == {stored[first.reminder.id], stored[third.reminder.id]}


@pytest.mark.asyncio
async def test_update_cancels_stored_handle_alongside_explicit_one(
        binder: NotificationBinder, service: RecordingNotificationService, store: EntityStore
) -> None:
    created = await binder.create(_new())

    outcome = await binder.update(
        ExistingEntity(created.reminder.id, {"title": "Renamed"}), previous_handle="stale"
    )

    assert ("cancel", "n1") in service.calls
    assert ("cancel", "stale") in service.calls
    assert list(service.live) == ["n2"]
    assert outcome.reminder.notification_id == "n2"
    assert store.get(EntityKind.REMINDERS, created.reminder.id).notification_id == "n2"


@pytest.mark.asyncio
async def test_repeating_occurrence_at_now_schedules_next_period(
        binder: NotificationBinder, service: RecordingNotificationService
) -> None:
    daily = await binder.create(_new(title="Daily", date=datetime(2024, 2, 14, 12, 0), repeat="daily"))
    weekly = await binder.create(_new(title="Weekly", date=NOW, repeat="weekly"))
    monthly = await binder.create(_new(title="Monthly", date=datetime(2024, 1, 15, 12, 0), repeat="monthly"))

    assert daily.fire_at == datetime(2024, 2, 16, 12, 0)
    assert weekly.fire_at == datetime(2024, 2, 22, 12, 0)
    assert monthly.fire_at == datetime(2024, 3, 15, 12, 0)
    assert len(service.live) == 3


@pytest.mark.asyncio
async def test_one_off_reminder_at_now_stays_unscheduled(
        binder: NotificationBinder, service: RecordingNotificationService
) -> None:
    outcome = await binder.create(_new(date=NOW))

    assert not outcome.scheduled
    assert service.calls == []


@pytest.mark.asyncio
async def test_restore_keeps_reminders_saved_while_it_runs(store: EntityStore) -> None:
    class SlowService(RecordingNotificationService):
        async def cancel(self, handle: str) -> None:
            await asyncio.sleep(0)
            await super().cancel(handle)

    slow = SlowService()
    binder = NotificationBinder(store, slow, clock=lambda: NOW)
    existing = await binder.create(_new(title="Existing"))

    outcomes, added = await asyncio.gather(binder.restore(), binder.create(_new(title="Added")))

    stored = {r.id: r for r in store.all(EntityKind.REMINDERS)}
    assert set(stored) == {existing.reminder.id, added.reminder.id}
    assert stored[added.reminder.id].notification_id == added.reminder.notification_id
    assert [o.reminder.id for o in outcomes] == [existing.reminder.id]
    assert len(slow.live) == 2
