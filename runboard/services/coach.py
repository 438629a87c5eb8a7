"""Claude-powered running coach recommendations."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Sequence

import yaml
from anthropic import Anthropic, APIError
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from runboard.config import Settings, get_settings
from runboard.exceptions import CoachConfigurationError, CoachResponseError, InsufficientDataError
from runboard.models.database_models import Activity
from runboard.models.schemas import CoachRecommendation, TrainingSettingsPayload
from runboard.services.activity_matcher import ActivityMatcher, RecommendationStore
from runboard.services.settings_service import training_settings_or_default
from runboard.services.workout_classifier import WorkoutClassifier


logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r"```(?:json)?\s*|\s*```")

RACE_NAMES = {
    "5k": "5 km",
    "10k": "10 km",
    "semi": "Half marathon",
    "marathon": "Marathon",
}


@dataclass
class CoachContext:
    """Everything derived from history and settings before prompting."""

    today: date
    days_since_last: int
    last_activity_date: date
    days_until_planned: int | None
    weeks_until_race: int | None
    target_paces: dict[str, str] | None
    periodization: dict[str, str] | None
    race_summary: str
    fatigue_score: float
    fatigue_label: str
    balance: str
    recent_types: list[str]


def format_pace(minutes_per_km: float) -> str:
    total_seconds = int(round(minutes_per_km * 60))
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"


class CoachAnalyzer:
    """Builds a coaching prompt from recent runs and turns Claude's answer into recommendations."""

    def __init__(self, settings: Settings | None = None) -> None:
        settings = settings or get_settings()
        if not settings.anthropic_api_key:
            raise CoachConfigurationError("Missing configuration: ANTHROPIC_API_KEY is not set")

        self.settings = settings
        self.client = Anthropic(api_key=settings.anthropic_api_key)

        config = self._load_prompt_config(settings.prompt_config_path)
        self.config = config
        model_config = config.get("model", {})
        self.model = model_config.get("name", "claude-sonnet-4-5-20250929")
        self.max_tokens = model_config.get("max_tokens", 3000)
        self.temperature = model_config.get("temperature", 0.7)
        self.system_prompt = config.get("system_prompt")
        self.template_path = settings.prompt_config_path.parent / config.get("template", "coach_prompt.txt")

        history_config = config.get("history", {})
        self.recent_limit = history_config.get("recent_activities", 20)
        self.prompt_lines = history_config.get("prompt_lines", 15)
        self.pattern_window = history_config.get("pattern_window", 5)

        self.race_distances = {k: float(v) for k, v in config.get("race_distances_km", {}).items()}
        self.pace_factors = config.get(
            "pace_factors", {"easy": 1.20, "tempo": 1.05, "threshold": 0.98, "intervals": 0.95}
        )
        self.phases = config.get("periodization", [])

        self.classifier = WorkoutClassifier.from_config(config)
        self.matcher = ActivityMatcher(config.get("matching"))

    def generate_recommendations(
        self,
        session: Session,
        user_id: str,
        planned_date: date | None = None,
        today: date | None = None,
    ) -> dict[str, Any]:
        """Analyse recent history, ask Claude for sessions and store them as pending."""

        today = today or date.today()
        activities = self._recent_activities(session, user_id)
        if not activities:
            raise InsufficientDataError("Not enough activity data for analysis")

        training = training_settings_or_default(session, user_id)
        context = self.build_context(activities, training, planned_date, today)
        prompt = self.assemble_prompt(context, activities, training, planned_date)
        logger.info(
            "Coach analysis for %s | activities=%d fatigue=%.1f balance=%s weeks_to_race=%s",
            user_id,
            len(activities),
            context.fatigue_score,
            context.balance,
            context.weeks_until_race,
        )

        fallback = False
        try:
            recommendations = self._request_recommendations(prompt)
        except CoachResponseError as err:
            logger.warning("Unusable coach response for %s: %s", user_id, err)
            recommendations = [self.fallback_recommendation(context)]
            fallback = True
        except APIError:
            logger.exception("Claude coach request failed for %s", user_id)
            recommendations = [self.fallback_recommendation(context)]
            fallback = True

        payloads = [rec.model_dump() for rec in recommendations]
        stored = RecommendationStore(session, self.matcher).save(user_id, payloads)
        logger.info("Stored %d recommendation(s) for %s (fallback=%s)", len(stored), user_id, fallback)

        return {
            "success": True,
            "fallback": fallback,
            "recommendations": payloads,
            "recommendation_ids": [row.id for row in stored],
            "analysis": self._analysis_summary(activities, context),
        }

    def _recent_activities(self, session: Session, user_id: str) -> list[Activity]:
        return list(
            session.scalars(
                select(Activity)
                .where(
                    Activity.user_id == user_id,
                    Activity.type.in_(self.settings.allowed_activity_types),
                )
                .order_by(Activity.start_date.desc())
                .limit(self.recent_limit)
            )
        )

    def build_context(
        self,
        activities: Sequence[Activity],
        training: TrainingSettingsPayload,
        planned_date: date | None,
        today: date,
    ) -> CoachContext:
        """Derive timing, goal, fatigue and balance signals (activities newest first)."""

        last_date = activities[0].start_date.date()
        days_until_planned = (planned_date - today).days if planned_date else None

        weeks_until_race = None
        target_paces = None
        periodization = None
        race_summary = ""
        if training.target_date and training.target_race != "recuperation":
            days_until_race = (training.target_date - today).days
            if days_until_race >= 0:
                weeks_until_race = days_until_race // 7
            if training.target_time_minutes:
                target_paces = self.calculate_target_paces(training.target_time_minutes, training.target_race)
            if weeks_until_race:
                periodization = self.periodization(weeks_until_race)
                race_summary = self._race_summary(training, weeks_until_race)

        fatigue = self.classifier.fatigue_score(activities)
        balance, recent_types = self.classifier.workout_balance(activities, self.pattern_window)

        return CoachContext(
            today=today,
            days_since_last=(today - last_date).days,
            last_activity_date=last_date,
            days_until_planned=days_until_planned,
            weeks_until_race=weeks_until_race,
            target_paces=target_paces,
            periodization=periodization,
            race_summary=race_summary,
            fatigue_score=fatigue,
            fatigue_label=self.classifier.fatigue_label(fatigue),
            balance=balance,
            recent_types=recent_types,
        )

    def calculate_target_paces(self, target_time_minutes: int, target_race: str) -> dict[str, str]:
        """Training paces (min/km) derived from the goal race pace."""

        distance_km = self.race_distances.get(target_race, 10.0)
        race_pace = target_time_minutes / distance_km
        return {zone: format_pace(race_pace * factor) for zone, factor in self.pace_factors.items()}

    def periodization(self, weeks_until_race: int) -> dict[str, str]:
        for phase in self.phases:
            min_weeks = phase.get("min_weeks")
            if min_weeks is None or weeks_until_race > min_weeks:
                return {
                    "phase": phase["phase"],
                    "intensity_focus": phase.get("intensity_focus", ""),
                    "volume_focus": phase.get("volume_focus", ""),
                }
        return {"phase": "Taper", "intensity_focus": "", "volume_focus": ""}

    @staticmethod
    def _race_summary(training: TrainingSettingsPayload, weeks_until_race: int) -> str:
        race = RACE_NAMES.get(training.target_race, training.target_race)
        time_info = ""
        if training.target_time_minutes:
            hours, minutes = divmod(training.target_time_minutes, 60)
            time_info = f" in {hours}h{minutes:02d}"
        return (
            f"PERSONAL GOAL: {race} on {training.target_date.isoformat()}{time_info} "
            f"(in {weeks_until_race} weeks)"
        )

    def assemble_prompt(
        self,
        context: CoachContext,
        activities: Sequence[Activity],
        training: TrainingSettingsPayload,
        planned_date: date | None = None,
    ) -> str:
        """Fill the prompt template with history, settings and derived signals."""

        race_lines = []
        if context.race_summary:
            race_lines.append(context.race_summary)
            if context.periodization:
                p = context.periodization
                race_lines.append(
                    f"TRAINING PHASE: {p['phase']} ({p['intensity_focus']}; {p['volume_focus']})"
                )
            if context.target_paces:
                paces = context.target_paces
                race_lines.append(
                    "TARGET PACES from the goal time: "
                    + ", ".join(f"{zone} {pace} min/km" for zone, pace in paces.items())
                )
        race_section = "\n" + "\n".join(race_lines) + "\n" if race_lines else ""

        planned_lines = []
        if planned_date:
            planned_lines.append(f"- Planned date of next session: {planned_date.isoformat()}")
        if context.days_until_planned is not None:
            planned_lines.append(f"- Days until planned session: {context.days_until_planned}")
        if context.weeks_until_race:
            planned_lines.append(f"- Weeks until personal goal: {context.weeks_until_race}")

        history = activities[: self.prompt_lines]
        template = self._load_template(self.template_path)
        return template.format(
            target_race=training.target_race,
            weekly_frequency=training.weekly_frequency,
            max_intensity=training.max_intensity,
            preferred_days=", ".join(training.preferred_days) or "no preference",
            race_section=race_section,
            days_since_last=context.days_since_last,
            last_activity_date=context.last_activity_date.isoformat(),
            planned_section="\n".join(planned_lines),
            fatigue_score=context.fatigue_score,
            fatigue_label=context.fatigue_label,
            balance=context.balance,
            recent_types=", ".join(context.recent_types),
            history_count=len(history),
            history="\n".join(self._history_line(activity) for activity in history),
        )

    def _history_line(self, activity: Activity) -> str:
        effort = f" | Effort: {activity.effort_rating}/10" if activity.effort_rating else ""
        notes = f' | Notes: "{activity.effort_notes}"' if activity.effort_notes else ""
        heart_rate = f"{activity.average_heartrate:.0f}" if activity.average_heartrate else "N/A"
        return (
            f"- {activity.name}: {(activity.distance or 0) / 1000:.1f}km in {(activity.moving_time or 0) // 60}min"
            f" | Detected type: {self.classifier.classify(activity)} | HR: {heart_rate}{effort}{notes}"
            f" ({activity.start_date.date().isoformat()})"
        )

    def _request_recommendations(self, prompt: str) -> list[CoachRecommendation]:
        request_payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.system_prompt:
            request_payload["system"] = self.system_prompt

        response = self.client.messages.create(**request_payload)
        return self._parse_response(self._response_text(response))

    @staticmethod
    def _response_text(response: Any) -> str:
        for block in getattr(response, "content", None) or []:
            if getattr(block, "type", "text") == "text" and isinstance(getattr(block, "text", None), str):
                return block.text
        raise CoachResponseError("Coach response has no text content")

    def _parse_response(self, response_text: str) -> list[CoachRecommendation]:
        """Parse Claude's JSON answer; any deviation raises CoachResponseError."""

        cleaned = FENCE_PATTERN.sub("", response_text).strip()
        start = cleaned.find("{")
        end = cleaned.rfind("}") + 1
        if start < 0 or end <= start:
            raise CoachResponseError("No JSON object found in coach response")

        try:
            payload = json.loads(cleaned[start:end])
        except json.JSONDecodeError as err:
            raise CoachResponseError(f"Invalid JSON in coach response: {err}") from err

        items = payload.get("recommendations") if isinstance(payload, dict) else None
        if not isinstance(items, list) or not items:
            raise CoachResponseError("Coach response has no recommendations")

        try:
            return [CoachRecommendation.model_validate(item) for item in items]
        except ValidationError as err:
            raise CoachResponseError(f"Malformed recommendation: {err.error_count()} error(s)") from err

    def fallback_recommendation(self, context: CoachContext) -> CoachRecommendation:
        """Single safe session chosen from fatigue and time to race."""

        fatigued = context.fatigue_score > 7
        weeks = context.weeks_until_race
        close_to_race = bool(weeks) and weeks <= 8

        if fatigued:
            workout_type = "recovery"
        elif close_to_race:
            workout_type = "tempo"
        else:
            workout_type = "endurance"

        if fatigued:
            duration = 30
        elif weeks and weeks <= 3:
            duration = 40
        else:
            duration = 45

        intensity = "specific" if close_to_race else "moderate"
        if context.target_paces:
            target_pace = context.target_paces["easy"] if fatigued else context.target_paces["tempo"]
        else:
            target_pace = "5:30-6:00 min/km"

        goal_note = f" and your goal in {weeks} weeks" if weeks else ""
        return CoachRecommendation(
            type=workout_type,
            title=f"{intensity.capitalize()} session{' towards your goal' if context.race_summary else ''}",
            description=f"Session adapted to your fatigue ({context.fatigue_score:.1f}/10){goal_note}",
            duration=duration,
            intensity=intensity,
            targetPace=target_pace,
            targetHR={"min": 120, "max": 140} if fatigued else {"min": 140, "max": 170},
            warmup="10 min progressive warm-up",
            mainSet=f"{duration - 15} min at the planned effort",
            cooldown="5 min easy cool-down",
            scheduledFor="today",
            priority="high",
            aiJustification=(
                f"Generated automatically from your fatigue ({context.fatigue_score:.1f}/10) "
                f"and recent balance ({context.balance})"
                + (f" with your goal ({context.race_summary})" if context.race_summary else "")
            ),
            nutritionTips="Prioritise hydration and refuelling",
            recoveryAdvice="Stretching and quality sleep",
        )

    def _analysis_summary(self, activities: Sequence[Activity], context: CoachContext) -> dict[str, Any]:
        average_km = sum((a.distance or 0) for a in activities) / len(activities) / 1000
        return {
            "total_activities": len(activities),
            "average_distance_km": round(average_km, 1),
            "last_activity": context.last_activity_date.isoformat(),
            "fatigue_score": round(context.fatigue_score, 1),
            "workout_balance": context.balance,
            "recent_types": context.recent_types[:3],
            "days_since_last_activity": context.days_since_last,
            "days_until_planned": context.days_until_planned,
            "weeks_until_race": context.weeks_until_race,
            "race_goal": context.race_summary or None,
            "target_paces": context.target_paces,
            "periodization": context.periodization,
        }

    @staticmethod
    def _load_template(path: str | Path) -> str:
        with Path(path).open("r", encoding="utf-8") as fh:
            return fh.read()

    @staticmethod
    def _load_prompt_config(path: Path) -> dict[str, Any]:
        with path.open("r", encoding="utf-8") as fh:
            return yaml.safe_load(fh)
