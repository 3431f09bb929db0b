# -*- coding: utf-8 -*-
"""Command-line front end for the student planner."""
import asyncio
import logging
import typing as t
from dataclasses import replace
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.text import Text

from academic_planner import commands
from planner_cli.formatting import (
    assignments_table,
    courses_table,
    format_datetime_human,
    grades_table,
    progress_bar,
    reminders_table,
    truncate_title,
)
from planner_store.config import Settings
from planner_store.context import PlannerContext, build_context
from planner_store.errors import PlannerError
from planner_store.models import (
    PRIORITIES,
    REPEAT_RULES,
    EntityKind,
    ExistingEntity,
    NewEntity,
    SaveCommand,
    save_command,
)
from reminders.binder import BindOutcome

console = Console()

DATE_FORMATS = ["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d"]


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _split_days(days: t.Optional[str]) -> t.Optional[list[str]]:
    if days is None:
        return None
    return [d.strip().capitalize()[:3] for d in days.split(",") if d.strip()]


def _upsert(planner: PlannerContext, kind: EntityKind, command: SaveCommand):
    try:
        return planner.store.upsert(kind, command)
    except PlannerError as e:
        raise click.ClickException(str(e))


def _run_binder(planner: PlannerContext, operation: t.Callable[[], t.Awaitable[t.Any]]) -> t.Any:
    """Request notification permission, then run one binder operation."""
    async def runner():
        await planner.binder.start()
        return await operation()

    try:
        return asyncio.run(runner())
    except PlannerError as e:
        raise click.ClickException(str(e))


def _report_reminder(outcome: BindOutcome, verb: str) -> None:
    reminder = outcome.reminder
    console.print(f"[green]✓[/green] {verb} reminder {reminder.id}: {truncate_title(reminder.title)}")
    if outcome.scheduled:
        console.print(f"   🔔 Notification set for {format_datetime_human(outcome.fire_at)}")
    elif outcome.error:
        console.print(f"   [yellow]⚠ Not scheduled:[/yellow] {outcome.error}")
    else:
        console.print("   [dim]No upcoming occurrence; nothing scheduled.[/dim]")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="PLANNER_DATA_DIR",
    help="Directory holding the planner's data files.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, data_dir: t.Optional[Path], verbose: bool) -> None:
    """Student planner: courses, assignments, grades and reminders."""
    settings = Settings.from_env()
    if data_dir is not None:
        settings = replace(settings, data_dir=data_dir)
    configure_logging("DEBUG" if verbose else settings.log_level)
    ctx.obj = build_context(settings)


# Courses

@cli.group()
def courses() -> None:
    """Weekly course schedule."""


@courses.command("list")
@click.pass_obj
def list_courses(planner: PlannerContext) -> None:
    items = planner.store.all(EntityKind.COURSES)
    if not items:
        console.print("📅 No courses yet.")
        return
    console.print(courses_table(items))


def _course_options(f):
    f = click.option("--credits", type=float, help="Credit count.")(f)
    f = click.option("--location", help="Room or building.")(f)
    f = click.option("--time", "time_", help='Meeting time, e.g. "09:30".')(f)
    f = click.option("--days", help='Comma-separated weekdays, e.g. "Mon,Wed".')(f)
    return f


@courses.command("add")
@click.argument("name")
@_course_options
@click.pass_obj
def add_course(planner: PlannerContext, name: str, days, time_, location, credits) -> None:
    fields = {"name": name, "days": _split_days(days), "time": time_, "location": location, "credits": credits}
    course = _upsert(planner, EntityKind.COURSES, save_command(None, fields))
    console.print(f"[green]✓[/green] Added course {course.id}: {course.name}")


@courses.command("edit")
@click.argument("course_id")
@click.option("--name")
@_course_options
@click.pass_obj
def edit_course(planner: PlannerContext, course_id: str, name, days, time_, location, credits) -> None:
    fields = {"name": name, "days": _split_days(days), "time": time_, "location": location, "credits": credits}
    course = _upsert(planner, EntityKind.COURSES, save_command(course_id, fields))
    console.print(f"[green]✓[/green] Updated course {course.id}: {course.name}")


@courses.command("delete")
@click.argument("course_id")
@click.pass_obj
def delete_course(planner: PlannerContext, course_id: str) -> None:
    if planner.store.delete(EntityKind.COURSES, course_id) is None:
        raise click.ClickException(f"No course with id {course_id!r}")
    console.print(f"[green]✓[/green] Deleted course {course_id}")


# Assignments

@cli.group()
def assignments() -> None:
    """Assignments and completion progress."""


@assignments.command("list")
@click.pass_obj
def list_assignments(planner: PlannerContext) -> None:
    items = commands.assignments_by_due(planner.store)
    ratio = commands.progress(planner.store)
    console.print(Text(f"Completion Progress: {round(ratio * 100)}%", style="bold"))
    console.print(progress_bar(ratio))
    if not items:
        console.print("📚 No assignments yet.")
        return
    console.print(assignments_table(items))


def _assignment_options(f):
    f = click.option("--priority", type=click.Choice(PRIORITIES), help="high, medium or low.")(f)
    f = click.option("--description", help="Notes about the assignment.")(f)
    f = click.option("--course", help="Course label.")(f)
    return f


@assignments.command("add")
@click.argument("title")
@click.option("--due", type=click.DateTime(DATE_FORMATS), required=True, help="Due date, YYYY-MM-DD [HH:MM].")
@_assignment_options
@click.pass_obj
def add_assignment(planner: PlannerContext, title: str, due, course, description, priority) -> None:
    fields = {"title": title, "due": due, "course": course, "description": description, "priority": priority}
    assignment = _upsert(planner, EntityKind.ASSIGNMENTS, save_command(None, fields))
    console.print(f"[green]✓[/green] Added assignment {assignment.id}: {assignment.title}")


@assignments.command("edit")
@click.argument("assignment_id")
@click.option("--title")
@click.option("--due", type=click.DateTime(DATE_FORMATS), help="Due date, YYYY-MM-DD [HH:MM].")
@_assignment_options
@click.pass_obj
def edit_assignment(planner: PlannerContext, assignment_id: str, title, due, course, description, priority) -> None:
    fields = {"title": title, "due": due, "course": course, "description": description, "priority": priority}
    assignment = _upsert(planner, EntityKind.ASSIGNMENTS, save_command(assignment_id, fields))
    console.print(f"[green]✓[/green] Updated assignment {assignment.id}: {assignment.title}")


@assignments.command("toggle")
@click.argument("assignment_id")
@click.pass_obj
def toggle_assignment(planner: PlannerContext, assignment_id: str) -> None:
    try:
        assignment = commands.toggle_completion(planner.store, assignment_id)
    except PlannerError as e:
        raise click.ClickException(str(e))
    state = "done" if assignment.completed else "not done"
    console.print(f"[green]✓[/green] {assignment.title} marked {state}")


@assignments.command("delete")
@click.argument("assignment_id")
@click.pass_obj
def delete_assignment(planner: PlannerContext, assignment_id: str) -> None:
    if planner.store.delete(EntityKind.ASSIGNMENTS, assignment_id) is None:
        raise click.ClickException(f"No assignment with id {assignment_id!r}")
    console.print(f"[green]✓[/green] Deleted assignment {assignment_id}")


# Grades

@cli.group()
def grades() -> None:
    """Weighted grade calculator."""


@grades.command("list")
@click.pass_obj
def list_grades(planner: PlannerContext) -> None:
    items = planner.store.all(EntityKind.GRADE_COURSES)
    if not items:
        console.print("🧮 No grade courses yet.")
        return
    console.print(grades_table(items, [commands.summarize(c) for c in items]))


@grades.command("add-course")
@click.argument("name")
@click.pass_obj
def add_grade_course(planner: PlannerContext, name: str) -> None:
    course = _upsert(planner, EntityKind.GRADE_COURSES, NewEntity({"name": name}))
    console.print(f"[green]✓[/green] Added grade course {course.id}: {course.name}")


@grades.command("rename")
@click.argument("course_id")
@click.argument("name")
@click.pass_obj
def rename_grade_course(planner: PlannerContext, course_id: str, name: str) -> None:
    course = _upsert(planner, EntityKind.GRADE_COURSES, ExistingEntity(course_id, {"name": name}))
    console.print(f"[green]✓[/green] Renamed grade course {course.id} to {course.name}")


@grades.command("delete")
@click.argument("course_id")
@click.pass_obj
def delete_grade_course(planner: PlannerContext, course_id: str) -> None:
    if planner.store.delete(EntityKind.GRADE_COURSES, course_id) is None:
        raise click.ClickException(f"No grade course with id {course_id!r}")
    console.print(f"[green]✓[/green] Deleted grade course {course_id}")


@grades.command("add-component")
@click.argument("course_id")
@click.argument("name")
@click.option("--weight", required=True, help="Weight in percent.")
@click.option("--score", help="Score in percent, if already graded.")
@click.pass_obj
def add_grade_component(planner: PlannerContext, course_id: str, name: str, weight: str, score) -> None:
    try:
        component = commands.add_component(planner.store, course_id, name, weight, score)
    except PlannerError as e:
        raise click.ClickException(str(e))
    console.print(f"[green]✓[/green] Added component {component.id}: {component.name} ({component.weight}%)")


@grades.command("score")
@click.argument("course_id")
@click.argument("component_id")
@click.argument("score", required=False)
@click.pass_obj
def set_grade_score(planner: PlannerContext, course_id: str, component_id: str, score) -> None:
    """Set a component's score; omit SCORE to clear it."""
    try:
        course = commands.set_component_score(planner.store, course_id, component_id, score)
    except PlannerError as e:
        raise click.ClickException(str(e))
    summary = commands.summarize(course)
    console.print(f"[green]✓[/green] {course.name}: {summary.percentage:.1f}% ({summary.letter})")


@grades.command("remove-component")
@click.argument("course_id")
@click.argument("component_id")
@click.pass_obj
def remove_grade_component(planner: PlannerContext, course_id: str, component_id: str) -> None:
    try:
        commands.remove_component(planner.store, course_id, component_id)
    except PlannerError as e:
        raise click.ClickException(str(e))
    console.print(f"[green]✓[/green] Removed component {component_id}")


# Reminders

@cli.group()
def reminders() -> None:
    """Reminders and their notifications."""


@reminders.command("list")
@click.pass_obj
def list_reminders(planner: PlannerContext) -> None:
    items = planner.store.all(EntityKind.REMINDERS)
    if not items:
        console.print("⏰ No reminders yet.")
        return
    console.print(reminders_table(items, planner.binder.clock()))


@reminders.command("add")
@click.argument("title")
@click.option("--at", "date", type=click.DateTime(DATE_FORMATS), required=True, help="First occurrence.")
@click.option("--repeat", type=click.Choice(REPEAT_RULES), default="none", show_default=True)
@click.pass_obj
def add_reminder(planner: PlannerContext, title: str, date, repeat: str) -> None:
    command = NewEntity({"title": title, "date": date, "repeat": repeat})
    outcome = _run_binder(planner, lambda: planner.binder.create(command))
    _report_reminder(outcome, "Added")


@reminders.command("edit")
@click.argument("reminder_id")
@click.option("--title")
@click.option("--at", "date", type=click.DateTime(DATE_FORMATS), help="First occurrence.")
@click.option("--repeat", type=click.Choice(REPEAT_RULES))
@click.pass_obj
def edit_reminder(planner: PlannerContext, reminder_id: str, title, date, repeat) -> None:
    command = save_command(reminder_id, {"title": title, "date": date, "repeat": repeat})
    outcome = _run_binder(planner, lambda: planner.binder.update(command))
    _report_reminder(outcome, "Updated")


@reminders.command("delete")
@click.argument("reminder_id")
@click.pass_obj
def delete_reminder(planner: PlannerContext, reminder_id: str) -> None:
    outcome = _run_binder(planner, lambda: planner.binder.delete(reminder_id))
    if outcome.reminder is None:
        raise click.ClickException(f"No reminder with id {reminder_id!r}")
    console.print(f"[green]✓[/green] Deleted reminder {reminder_id}")
    if outcome.error:
        console.print(f"   [yellow]⚠[/yellow] {outcome.error}")


@reminders.command("restore")
@click.pass_obj
def restore_reminders(planner: PlannerContext) -> None:
    """Reschedule notifications for every stored reminder."""
    outcomes = _run_binder(planner, planner.binder.restore)
    scheduled = sum(1 for o in outcomes if o.scheduled)
    failed = [o for o in outcomes if o.error]

    stats = Text()
    stats.append("Reminders: ", style="white")
    stats.append(f"{len(outcomes)}", style="bold green")
    stats.append("\nScheduled: ", style="white")
    stats.append(f"{scheduled}", style="bold green")
    if failed:
        stats.append("\nFailed: ", style="white")
        stats.append(f"{len(failed)}", style="bold red")
    console.print(Panel(stats, title="🔔 Notifications", border_style="green"))


@reminders.command("due")
@click.pass_obj
def due_notifications(planner: PlannerContext) -> None:
    """Show pending notifications whose time has come."""
    due = getattr(planner.notifications, "due", None)
    if due is None:
        raise click.ClickException("The notification service does not track pending notifications")
    items = due(planner.binder.clock())
    if not items:
        console.print("🔕 Nothing due.")
        return
    for item in items:
        console.print(f"🔔 {format_datetime_human(item.fire_at)}  {item.title}  [dim]{item.body}[/dim]")


@cli.command()
@click.pass_obj
def serve(planner: PlannerContext) -> None:
    """Run the planner MCP server over stdio."""
    from planner_gateway.server import mcp, set_context

    set_context(planner)
    mcp.run()


if __name__ == "__main__":
    cli()
