# -*- coding: utf-8 -*-
"""
Next-occurrence calculation for repeating reminders.

An occurrence is ``anchor + k periods`` for k >= 0. Each candidate is
computed from the anchor rather than from the previous candidate, so a
reminder anchored on the 31st fires on the last day of short months and
returns to the 31st afterwards.
"""
from __future__ import annotations

import calendar
import typing as t
from datetime import datetime, timedelta

from planner_store.models import REPEAT_RULES

_FIXED_PERIODS: dict[str, timedelta] = {
    "daily": timedelta(days=1),
    "weekly": timedelta(weeks=1),
}


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole calendar months, clamping the day of month.

    Time of day and tzinfo are kept. Jan 31 + 1 month is Feb 29 in a leap
    year and Feb 28 otherwise.
    """
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def align(anchor: datetime, now: datetime) -> datetime:
    """Express ``now`` in the same naive/aware form as ``anchor``.

    Naive datetimes are taken to be local time.
    """
    if anchor.tzinfo is None and now.tzinfo is not None:
        return now.astimezone().replace(tzinfo=None)
    if anchor.tzinfo is not None and now.tzinfo is None:
        return now.astimezone(anchor.tzinfo)
    return now


def next_occurrence(anchor: datetime, rule: str, now: datetime) -> t.Optional[datetime]:
    """First occurrence at or after ``now``.

    :param anchor: The reminder's first date/time.
    :param rule: One of ``none``, ``daily``, ``weekly``, ``monthly``.
    :param now: Reference time.
    :return: The occurrence, or None when a one-off reminder has passed or
        the rule is not recognised.
    """
    if rule not in REPEAT_RULES:
        return None
    now = align(anchor, now)

    if anchor >= now:
        return anchor
    if rule == "none":
        return None

    if rule in _FIXED_PERIODS:
        period = _FIXED_PERIODS[rule]
        # Ceiling division: number of whole periods needed to reach now.
        steps = -((anchor - now) // period)
        return anchor + steps * period

    months = (now.year - anchor.year) * 12 + (now.month - anchor.month)
    candidate = add_months(anchor, months)
    if candidate < now:
        candidate = add_months(anchor, months + 1)
    return candidate
