# -*- coding: utf-8 -*-
"""Wires settings, storage and the notification binder together."""
from __future__ import annotations

import logging
import typing as t
from dataclasses import dataclass

from planner_store.config import Settings
from planner_store.kv import FileKeyValueStore, KeyValueStore
from planner_store.store import EntityStore
from reminders.binder import NotificationBinder
from reminders.notifications import LocalNotificationService, NotificationService

logger = logging.getLogger(__name__)


@dataclass
class PlannerContext:
    """Everything a front end needs to drive the planner."""
    settings: Settings
    store: EntityStore
    notifications: NotificationService
    binder: NotificationBinder


def build_context(
        settings: t.Optional[Settings] = None,
        kv: t.Optional[KeyValueStore] = None,
        notifications: t.Optional[NotificationService] = None,
) -> PlannerContext:
    """Create a context and load every collection from storage.

    :param settings: Defaults to ``Settings.from_env()``.
    :param kv: Defaults to a ``FileKeyValueStore`` in ``settings.data_dir``.
    :param notifications: Defaults to a ``LocalNotificationService`` sharing ``kv``.
    """
    settings = settings or Settings.from_env()
    kv = kv if kv is not None else FileKeyValueStore(settings.data_dir)
    notifications = notifications or LocalNotificationService(kv)

    store = EntityStore(kv)
    store.load_all()
    binder = NotificationBinder(store, notifications, body=settings.notification_body)
    logger.debug("Planner context ready (data dir %s)", settings.data_dir)
    return PlannerContext(settings=settings, store=store, notifications=notifications, binder=binder)
