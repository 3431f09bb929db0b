"""
MCP server exposing the planner to agents and other front ends.

The plain ``_``-prefixed functions hold the logic and are registered below
as FastMCP tools; the decorated wrappers only translate planner errors into
``RuntimeError`` for the tool caller.
"""
from __future__ import annotations

import logging
import typing as t
from dataclasses import asdict
from datetime import datetime

from fastmcp import FastMCP

from academic_planner import commands
from planner_gateway.models import GradeSummary, ProgressReport, ReminderView, SaveReminderResponse
from planner_store.context import PlannerContext, build_context
from planner_store.errors import PlannerError
from planner_store.models import (
    Assignment,
    Course,
    EntityKind,
    GradeComponent,
    GradeCourse,
    save_command,
)
from reminders.binder import BindOutcome
from reminders.recurrence import next_occurrence

logger = logging.getLogger(__name__)

mcp = FastMCP("StudentPlanner")

_context: t.Optional[PlannerContext] = None


def get_context() -> PlannerContext:
    """Return the shared context, building it from the environment on first use."""
    global _context
    if _context is None:
        _context = build_context()
    return _context


def set_context(context: t.Optional[PlannerContext]) -> None:
    global _context
    _context = context


def _outcome_response(outcome: BindOutcome) -> SaveReminderResponse:
    return SaveReminderResponse(
        reminder=outcome.reminder,
        scheduled=outcome.scheduled,
        fire_at=outcome.fire_at,
        error=outcome.error,
    )


# Courses

def _list_courses() -> list[Course]:
    return get_context().store.all(EntityKind.COURSES)


def _save_course(
        course_id: t.Optional[str] = None,
        name: t.Optional[str] = None,
        days: t.Optional[list[str]] = None,
        time: t.Optional[str] = None,
        location: t.Optional[str] = None,
        credits: t.Optional[float] = None,
) -> Course:
    fields = {"name": name, "days": days, "time": time, "location": location, "credits": credits}
    return get_context().store.upsert(EntityKind.COURSES, save_command(course_id, fields))


def _delete_course(course_id: str) -> bool:
    return get_context().store.delete(EntityKind.COURSES, course_id) is not None


# Assignments

def _list_assignments() -> list[Assignment]:
    return commands.assignments_by_due(get_context().store)


def _save_assignment(
        assignment_id: t.Optional[str] = None,
        title: t.Optional[str] = None,
        course: t.Optional[str] = None,
        due: t.Optional[datetime] = None,
        description: t.Optional[str] = None,
        priority: t.Optional[str] = None,
        completed: t.Optional[bool] = None,
) -> Assignment:
    fields = {
        "title": title,
        "course": course,
        "due": due,
        "description": description,
        "priority": priority,
        "completed": completed,
    }
    return get_context().store.upsert(EntityKind.ASSIGNMENTS, save_command(assignment_id, fields))


def _delete_assignment(assignment_id: str) -> bool:
    return get_context().store.delete(EntityKind.ASSIGNMENTS, assignment_id) is not None


def _toggle_assignment(assignment_id: str) -> Assignment:
    return commands.toggle_completion(get_context().store, assignment_id)


def _assignment_progress() -> ProgressReport:
    assignments = get_context().store.all(EntityKind.ASSIGNMENTS)
    return ProgressReport(
        total=len(assignments),
        completed=sum(1 for a in assignments if a.completed),
        ratio=commands.progress(get_context().store),
    )


# Grade calculator

def _list_grade_courses() -> list[GradeCourse]:
    return get_context().store.all(EntityKind.GRADE_COURSES)


def _save_grade_course(course_id: t.Optional[str] = None, name: t.Optional[str] = None) -> GradeCourse:
    return get_context().store.upsert(EntityKind.GRADE_COURSES, save_command(course_id, {"name": name}))


def _delete_grade_course(course_id: str) -> bool:
    return get_context().store.delete(EntityKind.GRADE_COURSES, course_id) is not None


def _add_grade_component(
        course_id: str,
        name: str,
        weight: t.Union[float, str],
        score: t.Union[float, str, None] = None,
) -> GradeComponent:
    return commands.add_component(get_context().store, course_id, name, weight, score)


def _set_grade_score(course_id: str, component_id: str, score: t.Union[float, str, None]) -> GradeCourse:
    return commands.set_component_score(get_context().store, course_id, component_id, score)


def _remove_grade_component(course_id: str, component_id: str) -> GradeCourse:
    return commands.remove_component(get_context().store, course_id, component_id)


def _grade_summary() -> list[GradeSummary]:
    return [GradeSummary(**asdict(s)) for s in commands.grade_summaries(get_context().store)]


# Reminders

def _reminder_views(now: t.Optional[datetime] = None) -> list[ReminderView]:
    context = get_context()
    now = now or context.binder.clock()
    views = []
    for reminder in context.store.all(EntityKind.REMINDERS):
        upcoming = next_occurrence(reminder.date, reminder.repeat, now)
        views.append(ReminderView(reminder=reminder, next_occurrence=upcoming, completed=upcoming is None))
    return views


def _list_reminders() -> list[ReminderView]:
    return _reminder_views()


def _upcoming_reminders(limit: int = 10) -> list[ReminderView]:
    views = [v for v in _reminder_views() if v.next_occurrence is not None]
    views.sort(key=lambda v: v.next_occurrence.timestamp())
    return views[:limit]


async def _save_reminder(
        reminder_id: t.Optional[str] = None,
        title: t.Optional[str] = None,
        date: t.Optional[datetime] = None,
        repeat: t.Optional[str] = None,
) -> SaveReminderResponse:
    command = save_command(reminder_id, {"title": title, "date": date, "repeat": repeat})
    outcome = await get_context().binder.save(command)
    return _outcome_response(outcome)


async def _delete_reminder(reminder_id: str) -> SaveReminderResponse:
    outcome = await get_context().binder.delete(reminder_id)
    return _outcome_response(outcome)


def _tool_error(action: str, e: PlannerError) -> RuntimeError:
    logger.info("%s failed: %s", action, e)
    return RuntimeError(f"Error {action}: {e}")


@mcp.tool()
def list_courses() -> list[Course]:
    """List the courses on the weekly schedule."""
    return _list_courses()


@mcp.tool()
def save_course(
        course_id: t.Optional[str] = None,
        name: t.Optional[str] = None,
        days: t.Optional[list[str]] = None,
        time: t.Optional[str] = None,
        location: t.Optional[str] = None,
        credits: t.Optional[float] = None,
) -> Course:
    """Create a course (no course_id) or edit one (course_id given).

    :param days: Weekday abbreviations, e.g. ["Mon", "Wed"].
    :param time: Meeting time, e.g. "09:30".
    """
    try:
        return _save_course(course_id, name, days, time, location, credits)
    except PlannerError as e:
        raise _tool_error("saving course", e)


@mcp.tool()
def delete_course(course_id: str) -> bool:
    """Delete a course. Returns False if no course had that id."""
    return _delete_course(course_id)


@mcp.tool()
def list_assignments() -> list[Assignment]:
    """List assignments, earliest due first."""
    return _list_assignments()


@mcp.tool()
def save_assignment(
        assignment_id: t.Optional[str] = None,
        title: t.Optional[str] = None,
        course: t.Optional[str] = None,
        due: t.Optional[datetime] = None,
        description: t.Optional[str] = None,
        priority: t.Optional[str] = None,
        completed: t.Optional[bool] = None,
) -> Assignment:
    """Create an assignment (no assignment_id) or edit one.

    :param due: Due date/time in ISO format. Required for new assignments.
    :param priority: "high", "medium" (default) or "low".
    """
    try:
        return _save_assignment(assignment_id, title, course, due, description, priority, completed)
    except PlannerError as e:
        raise _tool_error("saving assignment", e)


@mcp.tool()
def delete_assignment(assignment_id: str) -> bool:
    """Delete an assignment. Returns False if no assignment had that id."""
    return _delete_assignment(assignment_id)


@mcp.tool()
def toggle_assignment(assignment_id: str) -> Assignment:
    """Mark an assignment done, or not done if it already was."""
    try:
        return _toggle_assignment(assignment_id)
    except PlannerError as e:
        raise _tool_error("toggling assignment", e)


@mcp.tool()
def assignment_progress() -> ProgressReport:
    """Completed assignments out of all assignments."""
    return _assignment_progress()


@mcp.tool()
def list_grade_courses() -> list[GradeCourse]:
    """List grade-calculator courses with their components."""
    return _list_grade_courses()


@mcp.tool()
def save_grade_course(course_id: t.Optional[str] = None, name: t.Optional[str] = None) -> GradeCourse:
    """Create a grade-calculator course (no course_id) or rename one."""
    try:
        return _save_grade_course(course_id, name)
    except PlannerError as e:
        raise _tool_error("saving grade course", e)


@mcp.tool()
def delete_grade_course(course_id: str) -> bool:
    """Delete a grade-calculator course and its components."""
    return _delete_grade_course(course_id)


@mcp.tool()
def add_grade_component(
        course_id: str,
        name: str,
        weight: t.Union[float, str],
        score: t.Union[float, str, None] = None,
) -> GradeComponent:
    """Add a weighted component (weight and score in percent) to a course."""
    try:
        return _add_grade_component(course_id, name, weight, score)
    except PlannerError as e:
        raise _tool_error("adding grade component", e)


@mcp.tool()
def set_grade_score(course_id: str, component_id: str, score: t.Union[float, str, None]) -> GradeCourse:
    """Record the score achieved on a component; None clears it."""
    try:
        return _set_grade_score(course_id, component_id, score)
    except PlannerError as e:
        raise _tool_error("setting grade score", e)


@mcp.tool()
def remove_grade_component(course_id: str, component_id: str) -> GradeCourse:
    """Remove a component from a course."""
    try:
        return _remove_grade_component(course_id, component_id)
    except PlannerError as e:
        raise _tool_error("removing grade component", e)


@mcp.tool()
def grade_summary() -> list[GradeSummary]:
    """Weighted percentage and letter grade for every grade course."""
    return _grade_summary()


@mcp.tool()
def list_reminders() -> list[ReminderView]:
    """List reminders with their next occurrence; past one-off reminders show as completed."""
    return _list_reminders()


@mcp.tool()
def upcoming_reminders(limit: int = 10) -> list[ReminderView]:
    """Reminders that will still fire, soonest first."""
    return _upcoming_reminders(limit)


@mcp.tool()
async def save_reminder(
        reminder_id: t.Optional[str] = None,
        title: t.Optional[str] = None,
        date: t.Optional[datetime] = None,
        repeat: t.Optional[str] = None,
) -> SaveReminderResponse:
    """Create a reminder (no reminder_id) or edit one, rescheduling its notification.

    :param date: First occurrence in ISO format. Required for new reminders.
    :param repeat: "none" (default), "daily", "weekly" or "monthly".
    """
    try:
        return await _save_reminder(reminder_id, title, date, repeat)
    except PlannerError as e:
        raise _tool_error("saving reminder", e)


@mcp.tool()
async def delete_reminder(reminder_id: str) -> SaveReminderResponse:
    """Delete a reminder and cancel its notification."""
    return await _delete_reminder(reminder_id)
