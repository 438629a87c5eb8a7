"""Strava → database synchronisation for one user."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from runboard.config import Settings, get_settings
from runboard.exceptions import StravaAPIError, StravaAuthError, StravaRateLimitError
from runboard.models.database_models import Activity, BestEffort, Profile
from runboard.services.activity_matcher import RecommendationStore
from runboard.services.records import replace_personal_records
from runboard.services.stats_service import StatsService
from runboard.services.strava_service import StravaService, parse_activity, parse_best_efforts


logger = logging.getLogger(__name__)

# Columns sync may overwrite; effort_rating, effort_notes and session_type belong to the user.
SYNCED_FIELDS = (
    "name",
    "type",
    "distance",
    "moving_time",
    "elapsed_time",
    "total_elevation_gain",
    "start_date",
    "start_date_local",
    "location_city",
    "location_state",
    "location_country",
    "average_speed",
    "max_speed",
    "average_heartrate",
    "max_heartrate",
    "suffer_score",
    "calories",
)


@dataclass
class SyncResult:
    fetched: int = 0
    running: int = 0
    created: int = 0
    updated: int = 0
    best_efforts_fetched: int = 0
    best_efforts_failed: int = 0
    personal_records: int = 0
    recommendations_matched: int = 0
    recommendations_expired: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def best_efforts_status(self) -> str:
        if self.best_efforts_failed == 0:
            return "complete"
        if self.best_efforts_fetched == 0:
            return "failed"
        return "partial"

    def to_dict(self) -> dict[str, Any]:
        return {**asdict(self), "best_efforts_status": self.best_efforts_status}


class SyncService:
    """Fetches running activities, refreshes best efforts and derived data.

    Nothing is committed here; the caller commits once so the activity
    upserts, the personal-record swap and the cache invalidation land together.
    """

    def __init__(
        self,
        session: Session,
        settings: Settings | None = None,
        strava_factory: Callable[..., StravaService] = StravaService,
    ) -> None:
        self.session = session
        self.settings = settings or get_settings()
        self.strava_factory = strava_factory

    def sync(self, user_id: str, refresh_best_efforts: bool = False) -> SyncResult:
        profile = self.session.get(Profile, user_id)
        if profile is None:
            raise StravaAuthError("Strava account is not connected")

        strava = self.strava_factory(profile, self.settings)
        strava.ensure_connected()

        result = SyncResult()
        payloads = strava.list_activities()
        result.fetched = len(payloads)
        allowed = self.settings.allowed_activity_types
        running = [payload for payload in payloads if payload.get("type") in allowed]
        result.running = len(running)
        logger.info("Strava returned %d activities for %s (%d running)", result.fetched, user_id, result.running)

        to_detail = self._upsert_activities(user_id, running, result, refresh_best_efforts)
        self._refresh_best_efforts(strava, user_id, to_detail, result)

        result.personal_records = len(replace_personal_records(self.session, user_id))
        StatsService(self.session, self.settings).invalidate(user_id)

        store = RecommendationStore(self.session)
        result.recommendations_matched = store.match_pending(user_id)
        result.recommendations_expired = store.expire_stale(user_id)

        profile.last_sync_at = datetime.utcnow()
        self.session.flush()
        logger.info(
            "Sync finished for %s | created=%d updated=%d efforts=%s records=%d matched=%d",
            user_id,
            result.created,
            result.updated,
            result.best_efforts_status,
            result.personal_records,
            result.recommendations_matched,
        )
        return result

    def _upsert_activities(
        self,
        user_id: str,
        payloads: list[dict[str, Any]],
        result: SyncResult,
        refresh_best_efforts: bool,
    ) -> list[Activity]:
        """Insert or update rows and return the ones needing a detail fetch."""

        ids = [int(payload["id"]) for payload in payloads]
        existing = {
            activity.id: activity
            for activity in self.session.scalars(select(Activity).where(Activity.id.in_(ids)))
        } if ids else {}

        needs_detail: list[Activity] = []
        for payload in payloads:
            values = parse_activity(payload)
            activity = existing.get(values["id"])
            if activity is None:
                activity = Activity(user_id=user_id, **values)
                self.session.add(activity)
                existing[activity.id] = activity
                result.created += 1
                needs_detail.append(activity)
                continue

            if activity.user_id != user_id:
                logger.warning("Activity %s belongs to another user; skipping", activity.id)
                result.warnings.append(f"activity {activity.id} skipped")
                continue

            for name in SYNCED_FIELDS:
                setattr(activity, name, values[name])
            result.updated += 1
            if refresh_best_efforts:
                needs_detail.append(activity)

        self.session.flush()
        return needs_detail

    def _refresh_best_efforts(
        self,
        strava: StravaService,
        user_id: str,
        activities: list[Activity],
        result: SyncResult,
    ) -> None:
        for index, activity in enumerate(activities):
            try:
                detail = strava.get_activity_detail(activity.id)
            except StravaRateLimitError:
                remaining = len(activities) - index
                result.best_efforts_failed += remaining
                result.warnings.append("rate limit reached during best-effort fetch")
                logger.warning("Rate limit hit; %d activity detail fetch(es) skipped", remaining)
                break
            except StravaAPIError as err:
                result.best_efforts_failed += 1
                logger.warning("Best efforts unavailable for activity %s: %s", activity.id, err)
                continue

            # Superseded, not merged
            activity.best_efforts.clear()
            for values in parse_best_efforts(detail):
                activity.best_efforts.append(BestEffort(user_id=user_id, **values))
            result.best_efforts_fetched += 1

        self.session.flush()
