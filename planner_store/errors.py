# -*- coding: utf-8 -*-
"""Exceptions raised by the planner entity store."""


class PlannerError(Exception):
    """Base class for planner errors."""


class EntityNotFoundError(PlannerError, LookupError):
    """Raised when a command refers to an id that is not in the collection."""

    def __init__(self, kind: str, entity_id: str) -> None:
        super().__init__(f"No {kind} with id {entity_id!r}")
        self.kind = kind
        self.entity_id = entity_id


class InvalidEntityError(PlannerError, ValueError):
    """Raised when command fields do not validate against the entity model."""
