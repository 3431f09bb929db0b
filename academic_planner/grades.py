# -*- coding: utf-8 -*-
"""
Weighted grade and completion calculations.

Everything here is a pure function of its inputs; callers re-evaluate on
every read since components and assignments change underneath them.
"""
from __future__ import annotations

import math
import re
import typing as t

from planner_store.models import Assignment, GradeComponent

_NUMBER_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

LETTER_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (90.0, "A"),
    (80.0, "B"),
    (70.0, "C"),
    (60.0, "D"),
)


def parse_number(value: t.Any) -> float:
    """Read a weight or score as typed into a form.

    Strings are read up to the end of their leading number, so ``"85%"`` is 85
    and ``"abc"`` is 0. Anything that does not yield a finite number is 0.
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _NUMBER_PREFIX.match(value)
        if not match:
            return 0.0
        number = float(match.group(0))
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def weight_total(components: t.Iterable[GradeComponent]) -> float:
    return sum(parse_number(c.weight) for c in components)


def course_grade(components: t.Iterable[GradeComponent]) -> float:
    """Weighted percentage for a course.

    Each component contributes ``weight * score / 100`` out of ``weight``.
    The result is not clamped: a score over 100 counts as bonus credit and can
    lift the course above 100%. A course with no weight at all grades as 0.
    """
    total_weight = 0.0
    earned = 0.0
    for component in components:
        weight = parse_number(component.weight)
        score = parse_number(component.score)
        total_weight += weight
        earned += weight * score / 100
    return (earned / total_weight) * 100 if total_weight > 0 else 0.0


def completion_ratio(assignments: t.Sequence[Assignment]) -> float:
    """Fraction of assignments marked completed; 0 when there are none."""
    if not assignments:
        return 0.0
    completed = sum(1 for a in assignments if a.completed)
    return completed / len(assignments)


def letter_grade(percentage: float) -> str:
    for threshold, letter in LETTER_THRESHOLDS:
        if percentage >= threshold:
            return letter
    return "F"
