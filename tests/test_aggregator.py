"""Tests for the pure statistics helpers."""
from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace

from runboard.services import aggregator


def _activity(activity_id: int, when: datetime, distance: float, activity_type: str = "Run", moving_time: int = 1800):
    return SimpleNamespace(
        id=activity_id,
        name=f"Run {activity_id}",
        type=activity_type,
        distance=distance,
        moving_time=moving_time,
        start_date_local=when,
    )


def test_period_stats_uses_half_open_month_range():
    activities = [
        _activity(1, datetime(2025, 9, 30, 23, 59), 5000),
        _activity(2, datetime(2025, 10, 1, 0, 0), 10000),
        _activity(3, datetime(2025, 10, 31, 23, 59), 8000),
        _activity(4, datetime(2025, 11, 1, 0, 0), 12000),
    ]

    stats = aggregator.period_stats(activities, *aggregator.month_bounds(date(2025, 10, 15)))

    assert stats.count == 2
    assert stats.distance == 18000
    assert stats.distance_km == 18.0
    assert stats.longest.id == 2


def test_period_stats_ignores_non_running_types():
    activities = [
        _activity(1, datetime(2025, 10, 2, 8), 30000, activity_type="Ride"),
        _activity(2, datetime(2025, 10, 3, 8), 6000, activity_type="VirtualRun"),
    ]

    stats = aggregator.period_stats(activities, *aggregator.month_bounds(date(2025, 10, 1)))

    assert stats.count == 1
    assert stats.longest.id == 2


def test_longest_keeps_first_of_equal_distances():
    activities = [
        _activity(7, datetime(2025, 10, 2, 8), 10000),
        _activity(8, datetime(2025, 10, 9, 8), 10000),
    ]

    stats = aggregator.period_stats(activities, *aggregator.month_bounds(date(2025, 10, 1)))

    assert stats.longest.id == 7


def test_empty_period_has_no_longest_activity():
    stats = aggregator.period_stats([], *aggregator.year_bounds(date(2025, 1, 1)))

    assert stats.count == 0
    assert stats.to_dict()["longest_activity"] is None


def test_dashboard_stats_shapes_monthly_yearly_and_latest():
    activities = [
        _activity(1, datetime(2025, 3, 10, 7), 15000),
        _activity(2, datetime(2025, 10, 5, 7), 10000),
        _activity(3, datetime(2025, 10, 12, 7), 21100),
    ]

    payload = aggregator.dashboard_stats(activities, date(2025, 10, 18))

    assert payload["generated_for"] == "2025-10-18"
    assert payload["monthly"]["count"] == 2
    assert payload["monthly"]["distance_km"] == 31.1
    assert payload["monthly"]["longest_activity"]["id"] == 3
    assert payload["yearly"]["count"] == 3
    assert payload["yearly"]["distance_km"] == 46.1
    assert payload["latest_activity"]["id"] == 3


def test_week_bounds_start_on_monday():
    start, end = aggregator.week_bounds(date(2025, 10, 18))  # Saturday

    assert start == datetime(2025, 10, 13)
    assert end == datetime(2025, 10, 20)


def test_weekly_breakdown_sums_per_day():
    activities = [
        _activity(1, datetime(2025, 10, 13, 7), 5000),
        _activity(2, datetime(2025, 10, 13, 19), 3000),
        _activity(3, datetime(2025, 10, 16, 7), 10000),
        _activity(4, datetime(2025, 10, 20, 7), 10000),
    ]

    week = aggregator.weekly_breakdown(activities, date(2025, 10, 15))

    assert week["week_start"] == "2025-10-13"
    assert week["week_end"] == "2025-10-19"
    assert [day["distance_km"] for day in week["days"]] == [8.0, 0.0, 0.0, 10.0, 0.0, 0.0, 0.0]
    assert week["total_km"] == 18.0
    assert week["running_days"] == 2


def test_monthly_breakdown_returns_twelve_months():
    activities = [_activity(1, datetime(2025, 2, 1, 7), 7000)]

    months = aggregator.monthly_breakdown(activities, 2025)

    assert len(months) == 12
    assert months[1]["month"] == 2
    assert months[1]["distance_km"] == 7.0
    assert months[0]["count"] == 0


def test_goal_progress_status_thresholds():
    # Day 15 of a 30-day month: expected 50%
    today = date(2025, 11, 15)

    assert aggregator.goal_progress(100, 200, today)["status"] == "ahead"
    assert aggregator.goal_progress(80, 200, today)["status"] == "behind"
    assert aggregator.goal_progress(40, 200, today)["status"] == "far_behind"


def test_goal_progress_remaining_and_daily_need():
    progress = aggregator.goal_progress(50, 200, date(2025, 11, 15))

    assert progress["percentage"] == 25.0
    assert progress["remaining_km"] == 150.0
    assert progress["days_remaining"] == 15
    assert progress["daily_average_needed_km"] == 10.0


def test_goal_progress_last_day_needs_nothing_more_per_day():
    progress = aggregator.goal_progress(210, 200, date(2025, 11, 30))

    assert progress["remaining_km"] == 0.0
    assert progress["daily_average_needed_km"] == 0.0
    assert progress["status"] == "ahead"
