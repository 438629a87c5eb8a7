"""Initial running dashboard schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "20251018_01"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("display_name", sa.String(length=200), nullable=True),
        sa.Column("strava_athlete_id", sa.BigInteger(), nullable=True),
        sa.Column("strava_access_token", sa.String(length=255), nullable=True),
        sa.Column("strava_refresh_token", sa.String(length=255), nullable=True),
        sa.Column("strava_expires_at", sa.Integer(), nullable=True),
        sa.Column("last_sync_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "activities",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=False),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("distance", sa.Float(), nullable=False),
        sa.Column("moving_time", sa.Integer(), nullable=False),
        sa.Column("elapsed_time", sa.Integer(), nullable=False),
        sa.Column("total_elevation_gain", sa.Float(), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("start_date_local", sa.DateTime(), nullable=False),
        sa.Column("location_city", sa.String(length=120), nullable=True),
        sa.Column("location_state", sa.String(length=120), nullable=True),
        sa.Column("location_country", sa.String(length=120), nullable=True),
        sa.Column("average_speed", sa.Float(), nullable=True),
        sa.Column("max_speed", sa.Float(), nullable=True),
        sa.Column("average_heartrate", sa.Float(), nullable=True),
        sa.Column("max_heartrate", sa.Float(), nullable=True),
        sa.Column("suffer_score", sa.Float(), nullable=True),
        sa.Column("calories", sa.Float(), nullable=True),
        sa.Column("effort_rating", sa.Integer(), nullable=True),
        sa.Column("effort_notes", sa.Text(), nullable=True),
        sa.Column("session_type", sa.String(length=50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_activities_user_id", "activities", ["user_id"])
    op.create_index("ix_activities_user_start_local", "activities", ["user_id", "start_date_local"])

    op.create_table(
        "best_efforts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "activity_id",
            sa.BigInteger(),
            sa.ForeignKey("activities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("distance", sa.Float(), nullable=False),
        sa.Column("moving_time", sa.Integer(), nullable=False),
        sa.Column("elapsed_time", sa.Integer(), nullable=True),
        sa.Column("start_date_local", sa.DateTime(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_best_efforts_activity_id", "best_efforts", ["activity_id"])
    op.create_index("ix_best_efforts_user_id", "best_efforts", ["user_id"])

    op.create_table(
        "personal_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("distance_type", sa.String(length=32), nullable=False),
        sa.Column("distance_meters", sa.Float(), nullable=False),
        sa.Column("time_seconds", sa.Integer(), nullable=False),
        sa.Column(
            "activity_id",
            sa.BigInteger(),
            sa.ForeignKey("activities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.DateTime(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("user_id", "distance_type", name="uq_personal_records_user_distance"),
    )
    op.create_index("ix_personal_records_user_id", "personal_records", ["user_id"])

    op.create_table(
        "ai_recommendations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("recommendation_data", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("generated_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column(
            "matching_activity_id",
            sa.BigInteger(),
            sa.ForeignKey("activities.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("is_manual_match", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index("ix_ai_recommendations_user_id", "ai_recommendations", ["user_id"])
    op.create_index("ix_ai_recommendations_matching_activity_id", "ai_recommendations", ["matching_activity_id"])

    op.create_table(
        "training_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("target_race", sa.String(length=20), nullable=False, server_default="10k"),
        sa.Column("target_date", sa.Date(), nullable=True),
        sa.Column("target_time_minutes", sa.Integer(), nullable=True),
        sa.Column("weekly_frequency", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("preferred_days", sa.JSON(), nullable=False),
        sa.Column("available_time_slots", sa.JSON(), nullable=False),
        sa.Column("max_intensity", sa.String(length=10), nullable=False, server_default="medium"),
        sa.Column("last_session_type", sa.String(length=50), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "monthly_goals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("goal_km", sa.Float(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "year", "month", name="uq_monthly_goals_user_period"),
    )
    op.create_index("ix_monthly_goals_user_id", "monthly_goals", ["user_id"])

    op.create_table(
        "user_stats_cache",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.String(length=64),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("user_stats_cache")
    op.drop_index("ix_monthly_goals_user_id", table_name="monthly_goals")
    op.drop_table("monthly_goals")
    op.drop_table("training_settings")
    op.drop_index("ix_ai_recommendations_matching_activity_id", table_name="ai_recommendations")
    op.drop_index("ix_ai_recommendations_user_id", table_name="ai_recommendations")
    op.drop_table("ai_recommendations")
    op.drop_index("ix_personal_records_user_id", table_name="personal_records")
    op.drop_table("personal_records")
    op.drop_index("ix_best_efforts_user_id", table_name="best_efforts")
    op.drop_index("ix_best_efforts_activity_id", table_name="best_efforts")
    op.drop_table("best_efforts")
    op.drop_index("ix_activities_user_start_local", table_name="activities")
    op.drop_index("ix_activities_user_id", table_name="activities")
    op.drop_table("activities")
    op.drop_table("profiles")
