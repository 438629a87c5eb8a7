"""SQLAlchemy ORM models for the running dashboard."""
from datetime import date, datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from runboard.database import Base


class Profile(Base):
    """A dashboard owner and their linked Strava account."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # Identity provider user id
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Strava link
    strava_athlete_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    strava_access_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    strava_refresh_token: Mapped[str | None] = mapped_column(String(255), nullable=True)
    strava_expires_at: Mapped[int | None] = mapped_column(Integer, nullable=True)  # epoch seconds

    last_sync_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Activity(Base):
    """Running activity imported from Strava."""

    __tablename__ = "activities"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)  # Strava activity id
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Distance & duration
    distance: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)  # meters
    moving_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # seconds
    elapsed_time: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # seconds
    total_elevation_gain: Mapped[float | None] = mapped_column(Float, nullable=True)

    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)  # UTC
    start_date_local: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    location_city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    location_state: Mapped[str | None] = mapped_column(String(120), nullable=True)
    location_country: Mapped[str | None] = mapped_column(String(120), nullable=True)

    # Speed & heart rate
    average_speed: Mapped[float | None] = mapped_column(Float, nullable=True)  # m/s
    max_speed: Mapped[float | None] = mapped_column(Float, nullable=True)
    average_heartrate: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_heartrate: Mapped[float | None] = mapped_column(Float, nullable=True)
    suffer_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    calories: Mapped[float | None] = mapped_column(Float, nullable=True)

    # User-entered fields, never overwritten by sync
    effort_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 1-10
    effort_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    session_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    best_efforts: Mapped[list["BestEffort"]] = relationship(
        back_populates="activity",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="BestEffort.distance",
    )

    __table_args__ = (
        Index("ix_activities_user_start_local", "user_id", "start_date_local"),
    )

    @property
    def location(self) -> str | None:
        parts = [p for p in (self.location_city, self.location_state, self.location_country) if p]
        return ", ".join(parts) if parts else None


class BestEffort(Base):
    """Fastest time for a standard sub-distance inside one activity."""

    __tablename__ = "best_efforts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    activity_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)  # Strava label, e.g. "5k"
    distance: Mapped[float] = mapped_column(Float, nullable=False)  # meters
    moving_time: Mapped[int] = mapped_column(Integer, nullable=False)  # seconds
    elapsed_time: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_date_local: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    activity: Mapped[Activity] = relationship(back_populates="best_efforts")


class PersonalRecord(Base):
    """All-time best time for a canonical distance bucket."""

    __tablename__ = "personal_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    distance_type: Mapped[str] = mapped_column(String(32), nullable=False)  # bucket label
    distance_meters: Mapped[float] = mapped_column(Float, nullable=False)
    time_seconds: Mapped[int] = mapped_column(Integer, nullable=False)
    activity_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "distance_type", name="uq_personal_records_user_distance"),
    )


class AIRecommendation(Base):
    """Generated coach recommendation and its completion lifecycle."""

    __tablename__ = "ai_recommendations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    recommendation_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")  # pending, completed, expired
    generated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    matching_activity_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("activities.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_manual_match: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class TrainingSettings(Base):
    """Per-user race goal and weekly training preferences."""

    __tablename__ = "training_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    target_race: Mapped[str] = mapped_column(String(20), nullable=False, default="10k")
    target_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    target_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    weekly_frequency: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    preferred_days: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    available_time_slots: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    max_intensity: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")  # low, medium, high
    last_session_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class MonthlyGoal(Base):
    """Distance goal for one calendar month."""

    __tablename__ = "monthly_goals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-12
    goal_km: Mapped[float] = mapped_column(Float, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="uq_monthly_goals_user_period"),
    )


class StatsCache(Base):
    """Cached dashboard statistics payload per user."""

    __tablename__ = "user_stats_cache"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
