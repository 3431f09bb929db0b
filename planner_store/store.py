# -*- coding: utf-8 -*-
"""
In-memory entity collections with write-through to a key-value store.

The in-memory lists are the source of truth for the session. Every mutation
replaces the whole collection and writes all of it back under the kind's
storage key; a failed write is logged and does not undo the mutation.
"""
from __future__ import annotations

import json
import logging
import time
import typing as t

from pydantic import ValidationError

from planner_store.errors import EntityNotFoundError, InvalidEntityError
from planner_store.kv import KeyValueStore
from planner_store.models import (
    Entity,
    EntityKind,
    ExistingEntity,
    GradeCourse,
    NewEntity,
    SaveCommand,
)

logger = logging.getLogger(__name__)


class IdAllocator:
    """
    Hands out millisecond-timestamp ids as strings.

    Ids are strictly increasing for the life of the allocator and always
    above any numeric id it has been shown, so a deleted id never comes back.
    """

    def __init__(self, clock_ms: t.Optional[t.Callable[[], int]] = None) -> None:
        self._clock_ms = clock_ms or (lambda: int(time.time() * 1000))
        self._last = 0

    def observe(self, ids: t.Iterable[str]) -> None:
        for value in ids:
            if value.isdigit():
                self._last = max(self._last, int(value))

    def next(self) -> str:
        value = max(self._clock_ms(), self._last + 1)
        self._last = value
        return str(value)


def _decode(kind: EntityKind, raw: t.Optional[str]) -> list[Entity]:
    if raw is None:
        return []
    try:
        payload = json.loads(raw)
    except ValueError:
        logger.warning("Stored %s are not valid JSON; starting empty", kind.label)
        return []
    if not isinstance(payload, list):
        logger.warning("Stored %s are not a list; starting empty", kind.label)
        return []

    entities: list[Entity] = []
    seen: set[str] = set()
    for index, record in enumerate(payload):
        try:
            entity = kind.model.model_validate(record)
        except ValidationError as e:
            logger.warning("Skipping invalid %s record #%d: %s", kind.label, index, e)
            continue
        if entity.id in seen:
            logger.warning("Skipping duplicate %s id %s", kind.label, entity.id)
            continue
        seen.add(entity.id)
        entities.append(entity)
    return entities


def _encode(entities: t.Sequence[Entity]) -> str:
    return json.dumps([entity.model_dump(mode="json") for entity in entities], ensure_ascii=False)


class EntityStore:
    """Authoritative collections for all four record kinds."""

    def __init__(self, kv: KeyValueStore, ids: t.Optional[IdAllocator] = None) -> None:
        self.kv = kv
        self.ids = ids or IdAllocator()
        self._collections: dict[EntityKind, list[Entity]] = {kind: [] for kind in EntityKind}

    def load(self, kind: EntityKind) -> list[Entity]:
        """Read the stored collection for ``kind``. Never raises; bad data loads as empty."""
        try:
            raw = self.kv.get(kind.storage_key)
        except Exception:
            logger.exception("Failed to read %s from storage; starting empty", kind.label)
            raw = None

        entities = _decode(kind, raw)
        self._collections[kind] = entities
        self.ids.observe(entity.id for entity in entities)
        for entity in entities:
            if isinstance(entity, GradeCourse):
                self.ids.observe(component.id for component in entity.components)
        logger.debug("Loaded %d %s", len(entities), kind.label)
        return list(entities)

    def load_all(self) -> None:
        for kind in EntityKind:
            self.load(kind)

    def save(self, kind: EntityKind, collection: t.Optional[t.Sequence[Entity]] = None) -> bool:
        """
        Write the full collection for ``kind``.

        :param collection: Replaces the in-memory collection first when given.
        :return: False if the write failed; the in-memory state is kept either way.
        """
        if collection is not None:
            self._collections[kind] = list(collection)
        try:
            self.kv.set(kind.storage_key, _encode(self._collections[kind]))
        except Exception:
            logger.exception("Failed to save %s", kind.label)
            return False
        return True

    def all(self, kind: EntityKind) -> list[Entity]:
        return list(self._collections[kind])

    def get(self, kind: EntityKind, entity_id: str) -> t.Optional[Entity]:
        for entity in self._collections[kind]:
            if entity.id == entity_id:
                return entity
        return None

    def require(self, kind: EntityKind, entity_id: str) -> Entity:
        entity = self.get(kind, entity_id)
        if entity is None:
            raise EntityNotFoundError(kind.label, entity_id)
        return entity

    def new_id(self) -> str:
        return self.ids.next()

    def build(self, kind: EntityKind, command: SaveCommand) -> Entity:
        """
        Validate the entity ``command`` would produce without storing it.

        New entities get an empty id here; ``upsert`` allocates the real one.
        """
        if isinstance(command, NewEntity):
            values = {**command.fields, "id": ""}
        elif isinstance(command, ExistingEntity):
            current = self.require(kind, command.id)
            values = {**current.model_dump(), **command.fields, "id": command.id}
        else:
            raise TypeError(f"Unsupported command: {command!r}")
        try:
            return kind.model.model_validate(values)
        except ValidationError as e:
            raise InvalidEntityError(f"Invalid {kind.label} fields: {e}") from e

    def upsert(self, kind: EntityKind, command: SaveCommand) -> Entity:
        """Apply a create or replace command and persist the collection."""
        entity = self.build(kind, command)
        collection = list(self._collections[kind])
        if isinstance(command, NewEntity):
            entity = entity.model_copy(update={"id": self.ids.next()})
            collection.append(entity)
        else:
            index = next(i for i, e in enumerate(collection) if e.id == command.id)
            collection[index] = entity
        self.save(kind, collection)
        return entity

    def delete(self, kind: EntityKind, entity_id: str) -> t.Optional[Entity]:
        """Remove the entity with ``entity_id``; unknown ids are a no-op."""
        removed = self.get(kind, entity_id)
        if removed is None:
            logger.debug("No %s with id %s to delete", kind.label, entity_id)
            return None
        self.save(kind, [e for e in self._collections[kind] if e.id != entity_id])
        return removed
