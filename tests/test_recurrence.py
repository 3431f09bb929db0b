# -*- coding: utf-8 -*-
"""Tests for reminder recurrence resolution."""
from datetime import datetime, timedelta, timezone

import pytest

from reminders.recurrence import add_months, next_occurrence


ANCHOR = datetime(2024, 1, 31, 9, 0)


def test_monthly_clamps_to_leap_day() -> None:
    """Jan 31 monthly lands on Feb 29 in a leap year, not in March."""
    result = next_occurrence(ANCHOR, "monthly", datetime(2024, 2, 15))
    assert result == datetime(2024, 2, 29, 9, 0)


def test_monthly_clamps_to_feb_28_in_common_year() -> None:
    result = next_occurrence(datetime(2023, 1, 31, 9, 0), "monthly", datetime(2023, 2, 15))
    assert result == datetime(2023, 2, 28, 9, 0)


def test_monthly_returns_to_original_day_after_short_month() -> None:
    """Each occurrence is computed from the anchor, so the day does not drift."""
    result = next_occurrence(ANCHOR, "monthly", datetime(2024, 3, 1))
    assert result == datetime(2024, 3, 31, 9, 0)


def test_monthly_same_month_later_day() -> None:
    anchor = datetime(2024, 1, 10, 9, 0)
    assert next_occurrence(anchor, "monthly", datetime(2024, 5, 5)) == datetime(2024, 5, 10, 9, 0)


def test_monthly_same_day_time_passed_moves_to_next_month() -> None:
    anchor = datetime(2024, 1, 10, 9, 0)
    assert next_occurrence(anchor, "monthly", datetime(2024, 5, 10, 9, 1)) == datetime(2024, 6, 10, 9, 0)


def test_monthly_across_year_boundary() -> None:
    anchor = datetime(2023, 11, 30, 8, 0)
    assert next_occurrence(anchor, "monthly", datetime(2024, 2, 1)) == datetime(2024, 2, 29, 8, 0)


def test_none_rule_past_anchor_is_none() -> None:
    assert next_occurrence(ANCHOR, "none", datetime(2024, 2, 1)) is None


def test_none_rule_future_anchor_unchanged() -> None:
    assert next_occurrence(ANCHOR, "none", datetime(2024, 1, 1)) == ANCHOR


def test_anchor_equal_to_now_is_returned() -> None:
    assert next_occurrence(ANCHOR, "none", ANCHOR) == ANCHOR
    assert next_occurrence(ANCHOR, "daily", ANCHOR) == ANCHOR


def test_daily_preserves_time_of_day() -> None:
    result = next_occurrence(ANCHOR, "daily", datetime(2024, 2, 10, 10, 0))
    assert result == datetime(2024, 2, 11, 9, 0)


def test_daily_exact_multiple_returns_now() -> None:
    now = ANCHOR + timedelta(days=5)
    assert next_occurrence(ANCHOR, "daily", now) == now


def test_weekly() -> None:
    anchor = datetime(2024, 1, 1, 18, 30)  # a Monday
    result = next_occurrence(anchor, "weekly", datetime(2024, 1, 17, 0, 0))
    assert result == datetime(2024, 1, 22, 18, 30)


def test_far_past_anchor_is_resolved_directly() -> None:
    anchor = datetime(1900, 1, 1, 7, 0)
    now = datetime(2024, 6, 15, 12, 0)
    assert next_occurrence(anchor, "daily", now) == datetime(2024, 6, 16, 7, 0)
    assert next_occurrence(anchor, "monthly", now) == datetime(2024, 7, 1, 7, 0)


@pytest.mark.parametrize("rule", ["yearly", "", "Daily", None])
def test_invalid_rule_returns_none(rule) -> None:
    assert next_occurrence(ANCHOR, rule, datetime(2000, 1, 1)) is None


def test_aware_anchor_with_naive_now() -> None:
    anchor = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
    now = datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert next_occurrence(anchor, "daily", now) == datetime(2024, 1, 4, 9, 0, tzinfo=timezone.utc)


def test_add_months_clamps_and_keeps_time() -> None:
    assert add_months(datetime(2024, 3, 31, 23, 15), 1) == datetime(2024, 4, 30, 23, 15)
    assert add_months(datetime(2024, 1, 31), 13) == datetime(2025, 2, 28)
    assert add_months(datetime(2024, 5, 15), -5) == datetime(2023, 12, 15)
