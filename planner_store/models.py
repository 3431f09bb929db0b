"""
Data models for the planner's four record kinds.

Entities are Pydantic models so that whole collections can be written to and
read back from the key-value store as JSON. Mutations are expressed as
explicit command objects (``NewEntity`` / ``ExistingEntity``) instead of an
id that may or may not be set.
"""
from __future__ import annotations

import enum
import typing as t
from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, Field


Priority = t.Literal["high", "medium", "low"]
RepeatRule = t.Literal["none", "daily", "weekly", "monthly"]
Weekday = t.Literal["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

PRIORITIES: tuple[str, ...] = ("high", "medium", "low")
REPEAT_RULES: tuple[str, ...] = ("none", "daily", "weekly", "monthly")
WEEKDAYS: tuple[str, ...] = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# Raw grade input as typed into a form: a number, a numeric string, or nothing.
GradeValue = t.Union[float, str, None]


class Course(BaseModel):
    """A course on the weekly schedule."""
    id: str
    name: str = ""
    days: list[Weekday] = Field(default_factory=list)
    time: str = ""          # "HH:MM" 24h, or free text such as "9:30-10:50"
    location: str = ""
    credits: float = 0.0


class Assignment(BaseModel):
    """A deliverable with a due date, labelled with a course name."""
    id: str
    title: str = ""
    course: str = ""        # free-text label, not a Course id
    due: datetime
    description: str = ""
    priority: Priority = "medium"
    completed: bool = False


class GradeComponent(BaseModel):
    """One weighted graded item, e.g. "Midterm, 30%, scored 82"."""
    id: str
    name: str = ""
    weight: GradeValue = None   # percent of the course grade
    score: GradeValue = None    # percent achieved, unset until graded


class GradeCourse(BaseModel):
    """A course tracked in the grade calculator."""
    id: str
    name: str = ""
    components: list[GradeComponent] = Field(default_factory=list)


class Reminder(BaseModel):
    """
    A reminder anchored at a date/time, optionally repeating.

    ``notification_id`` is the handle of the one scheduled notification bound
    to this reminder, or None while unscheduled.
    """
    id: str
    title: str = ""
    date: datetime
    repeat: RepeatRule = "none"
    notification_id: t.Optional[str] = None


Entity = t.Union[Course, Assignment, GradeCourse, Reminder]


class EntityKind(enum.Enum):
    """Record kinds, each persisted under one fixed storage key."""
    COURSES = "@courses"
    ASSIGNMENTS = "@assignments"
    GRADE_COURSES = "@gradeCourses"
    REMINDERS = "@reminders"

    @property
    def storage_key(self) -> str:
        return self.value

    @property
    def model(self) -> type[BaseModel]:
        return _KIND_MODELS[self]

    @property
    def label(self) -> str:
        return self.name.lower().replace("_", " ")


_KIND_MODELS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.COURSES: Course,
    EntityKind.ASSIGNMENTS: Assignment,
    EntityKind.GRADE_COURSES: GradeCourse,
    EntityKind.REMINDERS: Reminder,
}


@dataclass(frozen=True)
class NewEntity:
    """Command to create an entity; the store allocates its id."""
    fields: dict[str, t.Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ExistingEntity:
    """Command to replace the entity with ``id``; ``fields`` merge over it."""
    id: str
    fields: dict[str, t.Any] = field(default_factory=dict)


SaveCommand = t.Union[NewEntity, ExistingEntity]


def save_command(entity_id: t.Optional[str], fields: dict[str, t.Any]) -> SaveCommand:
    """Create command when ``entity_id`` is None, edit command otherwise.

    Fields given as None are dropped, so an edit only touches what was given
    and a create falls back to the model defaults.
    """
    given = {key: value for key, value in fields.items() if value is not None}
    if entity_id is None:
        return NewEntity(given)
    return ExistingEntity(entity_id, given)
