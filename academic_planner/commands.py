# -*- coding: utf-8 -*-
"""Assignment and grade-calculator operations on top of the entity store."""
from __future__ import annotations

import typing as t
from dataclasses import dataclass

from academic_planner.grades import completion_ratio, course_grade, letter_grade, weight_total
from planner_store.errors import EntityNotFoundError
from planner_store.models import (
    Assignment,
    EntityKind,
    ExistingEntity,
    GradeComponent,
    GradeCourse,
    GradeValue,
)
from planner_store.store import EntityStore


@dataclass
class CourseGradeSummary:
    """Derived grade figures for one grade course."""
    course_id: str
    name: str
    percentage: float
    letter: str
    weight_total: float
    component_count: int


def toggle_completion(store: EntityStore, assignment_id: str) -> Assignment:
    """Flip an assignment between done and not done."""
    current = store.require(EntityKind.ASSIGNMENTS, assignment_id)
    return store.upsert(
        EntityKind.ASSIGNMENTS,
        ExistingEntity(assignment_id, {"completed": not current.completed}),
    )


def assignments_by_due(store: EntityStore) -> list[Assignment]:
    """All assignments, earliest due first. Naive due dates count as local time."""
    return sorted(store.all(EntityKind.ASSIGNMENTS), key=lambda a: a.due.timestamp())


def progress(store: EntityStore) -> float:
    return completion_ratio(store.all(EntityKind.ASSIGNMENTS))


def _replace_components(
        store: EntityStore,
        course: GradeCourse,
        components: list[GradeComponent],
) -> GradeCourse:
    return store.upsert(
        EntityKind.GRADE_COURSES,
        ExistingEntity(course.id, {"components": [c.model_dump() for c in components]}),
    )


def add_component(
        store: EntityStore,
        course_id: str,
        name: str,
        weight: GradeValue,
        score: GradeValue = None,
) -> GradeComponent:
    """Append a grade component to a course and return it."""
    course = store.require(EntityKind.GRADE_COURSES, course_id)
    component = GradeComponent(id=store.new_id(), name=name, weight=weight, score=score)
    _replace_components(store, course, [*course.components, component])
    return component


def set_component_score(
        store: EntityStore,
        course_id: str,
        component_id: str,
        score: GradeValue,
) -> GradeCourse:
    course = store.require(EntityKind.GRADE_COURSES, course_id)
    if not any(c.id == component_id for c in course.components):
        raise EntityNotFoundError("grade component", component_id)
    components = [
        c.model_copy(update={"score": score}) if c.id == component_id else c
        for c in course.components
    ]
    return _replace_components(store, course, components)


def remove_component(store: EntityStore, course_id: str, component_id: str) -> GradeCourse:
    course = store.require(EntityKind.GRADE_COURSES, course_id)
    if not any(c.id == component_id for c in course.components):
        raise EntityNotFoundError("grade component", component_id)
    return _replace_components(
        store, course, [c for c in course.components if c.id != component_id]
    )


def summarize(course: GradeCourse) -> CourseGradeSummary:
    percentage = course_grade(course.components)
    return CourseGradeSummary(
        course_id=course.id,
        name=course.name,
        percentage=percentage,
        letter=letter_grade(percentage),
        weight_total=weight_total(course.components),
        component_count=len(course.components),
    )


def grade_summaries(store: EntityStore) -> list[CourseGradeSummary]:
    return [summarize(course) for course in store.all(EntityKind.GRADE_COURSES)]
