"""Pydantic models describing API payloads."""
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


RaceTarget = Literal["recuperation", "5k", "10k", "semi", "marathon"]
Intensity = Literal["low", "medium", "high"]


class ActivitySummary(BaseModel):
    """Compact activity view used by lists and aggregates."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: str
    distance: float
    moving_time: int
    start_date_local: datetime
    average_heartrate: float | None = None
    effort_rating: int | None = None


class BestEffortResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    distance: float
    moving_time: int
    elapsed_time: int | None = None
    start_date_local: datetime | None = None


class ActivityDetail(ActivitySummary):
    """Full activity payload including best efforts."""

    elapsed_time: int
    total_elevation_gain: float | None = None
    start_date: datetime
    location: str | None = None
    average_speed: float | None = None
    max_speed: float | None = None
    max_heartrate: float | None = None
    suffer_score: float | None = None
    calories: float | None = None
    effort_notes: str | None = None
    session_type: str | None = None
    best_efforts: list[BestEffortResponse] = []


class ActivityPage(BaseModel):
    total: int
    page: int
    page_size: int
    activities: list[ActivitySummary]


class EffortUpdate(BaseModel):
    """User-entered perceived effort for one activity."""

    effort_rating: int | None = Field(default=None, ge=1, le=10)
    effort_notes: str | None = Field(default=None, max_length=2000)
    session_type: str | None = Field(default=None, max_length=50)


class PersonalRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    distance_type: str
    distance_meters: float
    time_seconds: int
    activity_id: int
    date: datetime | None = None
    location: str | None = None


class TargetHR(BaseModel):
    min: int
    max: int


class CoachRecommendation(BaseModel):
    """One training suggestion as returned by the coach model."""

    type: str
    title: str
    description: str
    duration: int = Field(ge=0, description="Planned duration in minutes")
    intensity: str
    targetPace: str | None = None
    targetHR: TargetHR | None = None
    warmup: str = ""
    mainSet: str = ""
    cooldown: str = ""
    scheduledFor: str = "today"
    priority: str = "medium"
    aiJustification: str = ""
    nutritionTips: str | None = None
    recoveryAdvice: str | None = None


class CoachRequest(BaseModel):
    planned_date: date | None = None


class StoredRecommendation(BaseModel):
    """Persisted recommendation with its lifecycle status."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    recommendation_data: CoachRecommendation
    status: Literal["pending", "completed", "expired"]
    generated_at: datetime
    completed_at: datetime | None = None
    matching_activity_id: int | None = None
    is_manual_match: bool = False


class ManualMatchRequest(BaseModel):
    activity_id: int


class TrainingSettingsPayload(BaseModel):
    """Race target and weekly preferences (upserted as a whole)."""

    model_config = ConfigDict(from_attributes=True)

    target_race: RaceTarget = "10k"
    target_date: date | None = None
    target_time_minutes: int | None = Field(default=None, gt=0)
    weekly_frequency: int = Field(default=3, ge=1, le=14)
    preferred_days: list[str] = Field(default_factory=lambda: ["Monday", "Wednesday", "Saturday"])
    available_time_slots: list[str] = Field(default_factory=list)
    max_intensity: Intensity = "medium"
    last_session_type: str | None = None


class MonthlyGoalPayload(BaseModel):
    goal_km: float = Field(gt=0, le=10000)
    year: int | None = Field(default=None, ge=2000, le=2100)
    month: int | None = Field(default=None, ge=1, le=12)


class StravaConnection(BaseModel):
    """Token material obtained by the OAuth exchange done outside this service."""

    athlete_id: int
    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    expires_at: int
    display_name: str | None = None
