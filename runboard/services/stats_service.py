"""Database-backed statistics with a per-user cached dashboard payload."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from runboard.config import Settings, get_settings
from runboard.models.database_models import Activity, StatsCache
from runboard.services import aggregator
from runboard.services.settings_service import get_monthly_goal


logger = logging.getLogger(__name__)


class StatsService:
    """Recomputes aggregates from stored activities for one session."""

    def __init__(self, session: Session, settings: Settings | None = None) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.allowed_types = self.settings.allowed_activity_types

    def _activities(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Activity]:
        stmt = select(Activity).where(
            Activity.user_id == user_id,
            Activity.type.in_(self.allowed_types),
        )
        if start is not None:
            stmt = stmt.where(Activity.start_date_local >= start)
        if end is not None:
            stmt = stmt.where(Activity.start_date_local < end)
        return list(self.session.scalars(stmt.order_by(Activity.start_date_local.asc(), Activity.id.asc())))

    def dashboard(self, user_id: str, today: date | None = None) -> dict[str, Any]:
        """Monthly/yearly totals and latest run, served from cache when fresh."""

        today = today or date.today()
        cached = self._cached_payload(user_id, today)
        if cached is not None:
            logger.debug("Stats cache hit for %s", user_id)
            return cached

        payload = aggregator.dashboard_stats(self._activities(user_id), today, self.allowed_types)
        self._store_payload(user_id, payload)
        return payload

    def period(self, user_id: str, start: datetime, end: datetime) -> aggregator.PeriodStats:
        return aggregator.period_stats(self._activities(user_id, start, end), start, end, self.allowed_types)

    def monthly(self, user_id: str, year: int, month: int) -> dict[str, Any]:
        start, end = aggregator.month_bounds(date(year, month, 1))
        return {"year": year, "month": month, **self.period(user_id, start, end).to_dict()}

    def yearly(self, user_id: str, year: int) -> dict[str, Any]:
        start, end = aggregator.year_bounds(date(year, 1, 1))
        rows = self._activities(user_id, start, end)
        totals = aggregator.period_stats(rows, start, end, self.allowed_types)
        return {
            "year": year,
            **totals.to_dict(),
            "months": aggregator.monthly_breakdown(rows, year, self.allowed_types),
        }

    def weekly(self, user_id: str, day: date) -> dict[str, Any]:
        start, end = aggregator.week_bounds(day)
        return aggregator.weekly_breakdown(self._activities(user_id, start, end), day, self.allowed_types)

    def goal(self, user_id: str, today: date | None = None) -> dict[str, Any]:
        today = today or date.today()
        goal = get_monthly_goal(self.session, user_id, today.year, today.month)
        start, end = aggregator.month_bounds(today)
        month = self.period(user_id, start, end)
        return aggregator.goal_progress(month.distance / 1000, goal.goal_km, today)

    def invalidate(self, user_id: str) -> None:
        self.session.execute(delete(StatsCache).where(StatsCache.user_id == user_id))
        logger.debug("Stats cache invalidated for %s", user_id)

    def _cached_payload(self, user_id: str, today: date) -> dict[str, Any] | None:
        ttl = self.settings.stats_cache_ttl_minutes
        if ttl <= 0:
            return None
        entry = self.session.scalars(select(StatsCache).where(StatsCache.user_id == user_id)).first()
        if entry is None:
            return None
        if datetime.utcnow() - entry.updated_at > timedelta(minutes=ttl):
            return None
        # Month/year boundaries move with the calendar day
        if entry.payload.get("generated_for") != today.isoformat():
            return None
        return entry.payload

    def _store_payload(self, user_id: str, payload: dict[str, Any]) -> None:
        if self.settings.stats_cache_ttl_minutes <= 0:
            return
        entry = self.session.scalars(select(StatsCache).where(StatsCache.user_id == user_id)).first()
        if entry is None:
            entry = StatsCache(user_id=user_id, payload=payload)
            self.session.add(entry)
        else:
            entry.payload = payload
        entry.updated_at = datetime.utcnow()
        self.session.flush()
