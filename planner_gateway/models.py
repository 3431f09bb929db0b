"""
Response models for the planner MCP tools.

Entities are returned as-is; these models carry the values derived from
them at read time.
"""
from __future__ import annotations

import typing as t
from datetime import datetime

from pydantic import BaseModel

from planner_store.models import Reminder


class ReminderView(BaseModel):
    """A reminder with its next occurrence resolved for display."""
    reminder: Reminder
    next_occurrence: t.Optional[datetime] = None
    completed: bool = False


class SaveReminderResponse(BaseModel):
    """Result of saving or deleting a reminder."""
    reminder: t.Optional[Reminder] = None
    scheduled: bool = False
    fire_at: t.Optional[datetime] = None
    error: t.Optional[str] = None


class GradeSummary(BaseModel):
    """Weighted grade of one grade course."""
    course_id: str
    name: str
    percentage: float
    letter: str
    weight_total: float
    component_count: int


class ProgressReport(BaseModel):
    """Assignment completion across all courses."""
    total: int
    completed: int
    ratio: float
