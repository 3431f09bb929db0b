# -*- coding: utf-8 -*-
"""Rich tables for the planner's list views."""
from __future__ import annotations

import typing as t
from datetime import datetime

from rich.progress_bar import ProgressBar
from rich.table import Table

from academic_planner.commands import CourseGradeSummary
from planner_store.models import Assignment, Course, GradeCourse, Reminder
from reminders.recurrence import next_occurrence

PRIORITY_STYLES = {"high": "bold red", "medium": "yellow", "low": "green"}


def format_datetime_human(value: t.Optional[datetime]) -> str:
    """Format a datetime as 'Mon 01/15 14:30'."""
    if value is None:
        return "—"
    return value.strftime("%a %m/%d %H:%M")


def truncate_title(title: str, max_length: int = 45) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def courses_table(courses: t.Sequence[Course]) -> Table:
    table = Table(title="📅 Course Schedule", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Course", style="white")
    table.add_column("Days", style="cyan")
    table.add_column("Time", style="yellow")
    table.add_column("Location")
    table.add_column("Credits", justify="right")
    for course in courses:
        table.add_row(
            course.id,
            truncate_title(course.name),
            ", ".join(course.days) or "—",
            course.time or "—",
            course.location or "—",
            f"{course.credits:g}",
        )
    return table


def assignments_table(assignments: t.Sequence[Assignment]) -> Table:
    table = Table(title="📚 Assignments", show_header=True, header_style="bold magenta")
    table.add_column("", width=3)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="white")
    table.add_column("Course", style="cyan")
    table.add_column("Due", style="yellow")
    table.add_column("Priority")
    for assignment in assignments:
        table.add_row(
            "✅" if assignment.completed else "⬜",
            assignment.id,
            truncate_title(assignment.title),
            assignment.course or "—",
            format_datetime_human(assignment.due),
            f"[{PRIORITY_STYLES[assignment.priority]}]{assignment.priority}[/]",
            style="dim" if assignment.completed else None,
        )
    return table


def progress_bar(ratio: float, width: int = 40) -> ProgressBar:
    return ProgressBar(total=100, completed=round(ratio * 100), width=width)


def grades_table(courses: t.Sequence[GradeCourse], summaries: t.Sequence[CourseGradeSummary]) -> Table:
    """One row per course followed by its components."""
    table = Table(title="🧮 Grades", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Course / Component", style="white")
    table.add_column("Weight", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Grade", justify="right", style="bold green")
    for course, summary in zip(courses, summaries):
        weight_note = f"{summary.weight_total:g}%"
        if summary.component_count and summary.weight_total != 100:
            weight_note = f"[red]{weight_note}[/red]"
        table.add_row(
            course.id,
            f"[bold]{truncate_title(course.name)}[/bold]",
            weight_note,
            "",
            f"{summary.percentage:.1f}% ({summary.letter})",
        )
        for component in course.components:
            score = "—" if component.score in (None, "") else f"{component.score}"
            table.add_row(component.id, f"  {component.name}", f"{component.weight}%", score, "")
    return table


def reminders_table(reminders: t.Sequence[Reminder], now: datetime) -> Table:
    table = Table(title="⏰ Reminders", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="white")
    table.add_column("Next", style="yellow")
    table.add_column("Repeat", style="cyan")
    table.add_column("Notification")
    for reminder in reminders:
        upcoming = next_occurrence(reminder.date, reminder.repeat, now)
        table.add_row(
            reminder.id,
            truncate_title(reminder.title),
            format_datetime_human(upcoming) if upcoming else "[dim]Completed[/dim]",
            reminder.repeat.capitalize() if reminder.repeat != "none" else "",
            "🔔" if reminder.notification_id else "—",
        )
    return table
