"""Service for interacting with the Strava REST API."""
from __future__ import annotations

import logging
import threading
import time
from datetime import date, datetime, timezone
from typing import Any, ClassVar

import requests

from runboard.config import Settings, get_settings
from runboard.exceptions import StravaAPIError, StravaAuthError, StravaRateLimitError
from runboard.models.database_models import Profile


logger = logging.getLogger(__name__)

KILOJOULES_TO_KCAL = 0.239006


class RateLimitTracker:
    """Process-wide daily request counter for the Strava quota.

    Requests are refused once the count reaches the safety share of the
    daily limit. The counter resets when the calendar day changes.
    """

    _lock: ClassVar[threading.Lock] = threading.Lock()
    _day: ClassVar[date | None] = None
    _used: ClassVar[int] = 0

    def __init__(self, daily_limit: int = 2000, safety_margin: float = 0.9) -> None:
        self.daily_limit = daily_limit
        self.safety_margin = safety_margin

    @property
    def budget(self) -> int:
        return int(self.daily_limit * self.safety_margin)

    @classmethod
    def _roll_day(cls) -> None:
        today = date.today()
        if cls._day != today:
            cls._day = today
            cls._used = 0

    def try_acquire(self, count: int = 1) -> bool:
        """Reserve `count` requests if they fit in today's budget."""
        cls = type(self)
        with self._lock:
            self._roll_day()
            if cls._used + count > self.budget:
                return False
            cls._used += count
            return True

    def status(self) -> dict[str, Any]:
        with self._lock:
            self._roll_day()
            used = type(self)._used
        return {
            "requests_used": used,
            "daily_limit": self.daily_limit,
            "remaining": max(self.budget - used, 0),
            "can_make_request": used < self.budget,
        }

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._day = None
            cls._used = 0


class StravaService:
    """Thin wrapper around the Strava v3 endpoints used by sync."""

    def __init__(
        self,
        profile: Profile,
        settings: Settings | None = None,
        http: requests.Session | None = None,
        tracker: RateLimitTracker | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.profile = profile
        self.base_url = settings.strava_api_base.rstrip("/")
        self.timeout = settings.strava_timeout_seconds
        self.page_size = settings.strava_page_size
        self.http = http or requests.Session()
        self.tracker = tracker or RateLimitTracker(settings.strava_daily_limit, settings.strava_safety_margin)

    def ensure_connected(self) -> None:
        """Refuse to call Strava without a usable stored token."""

        if not self.profile.strava_access_token:
            raise StravaAuthError("Strava account is not connected")
        expires_at = self.profile.strava_expires_at
        if expires_at is not None and expires_at <= int(time.time()):
            raise StravaAuthError("Strava token expired, reconnect your Strava account")

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        self.ensure_connected()
        if not self.tracker.try_acquire():
            raise StravaRateLimitError("Daily Strava request budget exhausted, try again tomorrow")

        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.profile.strava_access_token}"}
        try:
            r = self.http.get(url, headers=headers, params=params, timeout=self.timeout)
        except requests.RequestException as err:
            logger.warning("Strava request to %s failed: %s", path, err)
            raise StravaAPIError(f"Strava request failed: {err}") from err

        if r.status_code == 401:
            raise StravaAuthError("Strava rejected the access token, reconnect your Strava account")
        if r.status_code == 429:
            raise StravaRateLimitError("Strava rate limit reached, try again later")
        if r.status_code >= 400:
            logger.warning("Strava %s answered HTTP %s: %s", path, r.status_code, r.text[:200])
            raise StravaAPIError(f"Strava API error (HTTP {r.status_code})", status_code=r.status_code)
        try:
            return r.json()
        except ValueError as err:
            logger.warning("Strava %s returned a non-JSON body: %s", path, r.text[:200])
            raise StravaAPIError("Strava returned a non-JSON body", status_code=r.status_code) from err

    def list_activities(self, after: int | None = None, max_pages: int = 50) -> list[dict[str, Any]]:
        """All athlete activities, following pages until a short page."""

        activities: list[dict[str, Any]] = []
        for page in range(1, max_pages + 1):
            params: dict[str, Any] = {"per_page": self.page_size, "page": page}
            if after:
                params["after"] = int(after)
            batch = self._get("/athlete/activities", params)
            if not isinstance(batch, list):
                raise StravaAPIError("Unexpected activity list payload from Strava")
            activities.extend(batch)
            logger.debug("Fetched Strava activity page %d (%d items)", page, len(batch))
            if len(batch) < self.page_size:
                break
        return activities

    def get_activity_detail(self, activity_id: int) -> dict[str, Any]:
        return self._get(f"/activities/{activity_id}", {"include_all_efforts": "true"})


def parse_strava_datetime(value: str | None) -> datetime | None:
    """ISO-8601 from Strava as a naive UTC datetime."""

    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_local_datetime(value: str | None) -> datetime | None:
    """Strava's ``*_local`` fields carry a bogus ``Z``; keep the wall-clock time."""

    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)


def parse_activity(payload: dict[str, Any]) -> dict[str, Any]:
    """Column values for an Activity row from a Strava summary or detail payload."""

    kilojoules = payload.get("kilojoules")
    start_date = parse_strava_datetime(payload.get("start_date"))
    return {
        "id": int(payload["id"]),
        "name": payload.get("name") or "Untitled",
        "type": payload.get("type") or payload.get("sport_type") or "Unknown",
        "distance": float(payload.get("distance") or 0),
        "moving_time": int(payload.get("moving_time") or 0),
        "elapsed_time": int(payload.get("elapsed_time") or 0),
        "total_elevation_gain": payload.get("total_elevation_gain"),
        "start_date": start_date,
        "start_date_local": parse_local_datetime(payload.get("start_date_local")) or start_date,
        "location_city": payload.get("location_city") or None,
        "location_state": payload.get("location_state") or None,
        "location_country": payload.get("location_country") or None,
        "average_speed": payload.get("average_speed"),
        "max_speed": payload.get("max_speed"),
        "average_heartrate": payload.get("average_heartrate"),
        "max_heartrate": payload.get("max_heartrate"),
        "suffer_score": payload.get("suffer_score"),
        "calories": round(kilojoules * KILOJOULES_TO_KCAL, 1) if kilojoules else None,
    }


def parse_best_efforts(detail: dict[str, Any]) -> list[dict[str, Any]]:
    efforts = []
    for effort in detail.get("best_efforts") or []:
        if effort.get("distance") is None or effort.get("moving_time") is None:
            continue
        efforts.append(
            {
                "name": effort.get("name") or "",
                "distance": float(effort["distance"]),
                "moving_time": int(effort["moving_time"]),
                "elapsed_time": effort.get("elapsed_time"),
                "start_date_local": parse_local_datetime(effort.get("start_date_local")),
            }
        )
    return efforts
