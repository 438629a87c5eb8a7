"""Pure statistics over running activity rows.

Every function here takes already-loaded activity objects (ORM rows or
anything exposing the same attributes) and returns plain data, so results
can be cached as JSON and tested without a database. Calendar periods are
half-open ``[start, end)`` ranges over the activity's local start time.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, Protocol, Sequence


DEFAULT_RUNNING_TYPES: tuple[str, ...] = ("Run", "VirtualRun")


class ActivityLike(Protocol):
    id: int
    name: str
    type: str
    distance: float
    moving_time: int
    start_date_local: datetime


@dataclass(frozen=True)
class PeriodStats:
    """Totals for one period. ``longest`` is None when the period is empty."""

    distance: float = 0.0
    count: int = 0
    moving_time: int = 0
    longest: Any | None = None

    @property
    def distance_km(self) -> float:
        return round(self.distance / 1000, 1)

    def to_dict(self) -> dict[str, Any]:
        return {
            "distance_km": self.distance_km,
            "count": self.count,
            "moving_time": self.moving_time,
            "longest_activity": summarize_activity(self.longest) if self.longest is not None else None,
        }


def _naive(value: datetime) -> datetime:
    # Local start times are wall-clock values; any tzinfo is meaningless here.
    return value.replace(tzinfo=None) if value.tzinfo else value


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return _naive(value)
    return datetime.combine(value, time.min)


def month_bounds(day: date | datetime) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, 1)
    if day.month == 12:
        return start, datetime(day.year + 1, 1, 1)
    return start, datetime(day.year, day.month + 1, 1)


def year_bounds(day: date | datetime) -> tuple[datetime, datetime]:
    return datetime(day.year, 1, 1), datetime(day.year + 1, 1, 1)


def week_bounds(day: date | datetime) -> tuple[datetime, datetime]:
    """Monday 00:00 of the week containing ``day`` and the following Monday."""

    start = _as_datetime(day).replace(hour=0, minute=0, second=0, microsecond=0)
    start -= timedelta(days=start.weekday())
    return start, start + timedelta(days=7)


def filter_activities(
    activities: Iterable[ActivityLike],
    start: date | datetime,
    end: date | datetime,
    allowed_types: Sequence[str] = DEFAULT_RUNNING_TYPES,
) -> list[ActivityLike]:
    lower, upper = _as_datetime(start), _as_datetime(end)
    return [
        activity
        for activity in activities
        if activity.type in allowed_types and lower <= _naive(activity.start_date_local) < upper
    ]


def period_stats(
    activities: Iterable[ActivityLike],
    start: date | datetime,
    end: date | datetime,
    allowed_types: Sequence[str] = DEFAULT_RUNNING_TYPES,
) -> PeriodStats:
    """Total distance, count, moving time and longest run inside ``[start, end)``."""

    rows = filter_activities(activities, start, end, allowed_types)
    if not rows:
        return PeriodStats()

    longest = rows[0]
    for activity in rows[1:]:
        # strict comparison: the first of equally long runs is kept
        if (activity.distance or 0) > (longest.distance or 0):
            longest = activity

    return PeriodStats(
        distance=sum(activity.distance or 0 for activity in rows),
        count=len(rows),
        moving_time=sum(activity.moving_time or 0 for activity in rows),
        longest=longest,
    )


def summarize_activity(activity: ActivityLike) -> dict[str, Any]:
    return {
        "id": activity.id,
        "name": activity.name,
        "distance_km": round((activity.distance or 0) / 1000, 1),
        "moving_time": activity.moving_time,
        "date": _naive(activity.start_date_local).isoformat(),
    }


def latest_activity(
    activities: Iterable[ActivityLike],
    allowed_types: Sequence[str] = DEFAULT_RUNNING_TYPES,
) -> ActivityLike | None:
    running = [activity for activity in activities if activity.type in allowed_types]
    if not running:
        return None
    return max(running, key=lambda activity: _naive(activity.start_date_local))


def dashboard_stats(
    activities: Sequence[ActivityLike],
    today: date,
    allowed_types: Sequence[str] = DEFAULT_RUNNING_TYPES,
) -> dict[str, Any]:
    """Month-to-date and year-to-date totals plus the latest run."""

    monthly = period_stats(activities, *month_bounds(today), allowed_types=allowed_types)
    yearly = period_stats(activities, *year_bounds(today), allowed_types=allowed_types)
    latest = latest_activity(activities, allowed_types)

    return {
        "generated_for": today.isoformat(),
        "monthly": monthly.to_dict(),
        "yearly": yearly.to_dict(),
        "latest_activity": summarize_activity(latest) if latest is not None else None,
    }


def weekly_breakdown(
    activities: Iterable[ActivityLike],
    day: date,
    allowed_types: Sequence[str] = DEFAULT_RUNNING_TYPES,
) -> dict[str, Any]:
    """Per-day kilometres for the Monday-based week containing ``day``."""

    start, end = week_bounds(day)
    per_day = [0.0] * 7
    for activity in filter_activities(activities, start, end, allowed_types):
        per_day[_naive(activity.start_date_local).weekday()] += (activity.distance or 0) / 1000

    total = sum(per_day)
    return {
        "week_start": start.date().isoformat(),
        "week_end": (end - timedelta(days=1)).date().isoformat(),
        "days": [
            {"date": (start + timedelta(days=offset)).date().isoformat(), "distance_km": round(km, 1)}
            for offset, km in enumerate(per_day)
        ],
        "total_km": round(total, 1),
        "average_daily_km": round(total / 7, 1),
        "running_days": sum(1 for km in per_day if km > 0),
    }


def monthly_breakdown(
    activities: Sequence[ActivityLike],
    year: int,
    allowed_types: Sequence[str] = DEFAULT_RUNNING_TYPES,
) -> list[dict[str, Any]]:
    """Twelve month totals for the yearly calendar view."""

    months = []
    for month in range(1, 13):
        stats = period_stats(activities, *month_bounds(date(year, month, 1)), allowed_types=allowed_types)
        months.append({"month": month, **stats.to_dict()})
    return months


def goal_progress(distance_km: float, goal_km: float, today: date) -> dict[str, Any]:
    """Progress towards a monthly distance goal as of ``today``.

    Status is ``ahead`` when the completed share is at least the share of the
    month already elapsed, ``behind`` down to 70% of that pace, and
    ``far_behind`` below it.
    """

    days_in_month = calendar.monthrange(today.year, today.month)[1]
    days_remaining = days_in_month - today.day
    expected_pct = today.day / days_in_month * 100

    percentage = distance_km / goal_km * 100 if goal_km > 0 else 0.0
    remaining_km = max(goal_km - distance_km, 0.0)
    daily_needed = remaining_km / days_remaining if days_remaining > 0 else 0.0

    if percentage >= expected_pct:
        status = "ahead"
    elif percentage >= expected_pct * 0.7:
        status = "behind"
    else:
        status = "far_behind"

    return {
        "goal_km": goal_km,
        "distance_km": round(distance_km, 1),
        "percentage": round(percentage, 1),
        "remaining_km": round(remaining_km, 1),
        "days_remaining": days_remaining,
        "daily_average_needed_km": round(daily_needed, 1),
        "status": status,
    }
