"""Heuristic workout typing, fatigue score and session-balance label."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Iterable, NamedTuple, Sequence


class WorkoutRule(NamedTuple):
    label: str
    predicate: Callable[["WorkoutFeatures"], bool]


@dataclass(frozen=True)
class WorkoutFeatures:
    """Inputs the rules look at, derived once per activity."""

    name: str
    duration_minutes: float
    average_heartrate: float
    pace_min_per_km: float | None

    @classmethod
    def from_activity(cls, activity: Any) -> "WorkoutFeatures":
        moving_time = activity.moving_time or 0
        distance = activity.distance or 0
        pace = (moving_time / 60) / (distance / 1000) if distance > 0 and moving_time > 0 else None
        return cls(
            name=(activity.name or "").lower(),
            duration_minutes=moving_time / 60,
            average_heartrate=activity.average_heartrate or 0,
            pace_min_per_km=pace,
        )


DEFAULT_CLASSIFICATION: dict[str, Any] = {
    "keywords": {
        "intervals": ["interval", "fractionné", "répétition", "400m", "1000m"],
        "tempo": ["tempo", "seuil", "threshold"],
        "recovery": ["récupération", "recovery", "footing"],
        "long": ["long", "endurance"],
    },
    "long_duration_minutes": 75,
    "short_duration_minutes": 30,
    "interval_heart_rate": 170,
    "recovery_heart_rate": 150,
    "tempo_pace_min_per_km": 5.5,
}

DEFAULT_BALANCE: dict[str, Any] = {
    "default": "balanced",
    "rules": [
        {"type": "long", "min_count": 2, "label": "high_volume"},
        {"type": "recovery", "min_count": 3, "label": "too_much_recovery"},
        {"type": "intervals", "min_count": 3, "label": "too_much_intensity"},
    ],
}


def _has_keyword(words: Sequence[str]) -> Callable[[WorkoutFeatures], bool]:
    lowered = [word.lower() for word in words]
    return lambda features: any(word in features.name for word in lowered)


def build_rules(config: dict[str, Any] | None = None) -> list[WorkoutRule]:
    """Ordered decision list; name keywords come before physiological thresholds."""

    cfg = {**DEFAULT_CLASSIFICATION, **(config or {})}
    keywords = {**DEFAULT_CLASSIFICATION["keywords"], **cfg.get("keywords", {})}
    long_minutes = cfg["long_duration_minutes"]
    short_minutes = cfg["short_duration_minutes"]
    interval_hr = cfg["interval_heart_rate"]
    recovery_hr = cfg["recovery_heart_rate"]
    tempo_pace = cfg["tempo_pace_min_per_km"]

    long_keyword = _has_keyword(keywords["long"])

    return [
        WorkoutRule("intervals", _has_keyword(keywords["intervals"])),
        WorkoutRule("tempo", _has_keyword(keywords["tempo"])),
        WorkoutRule("recovery", _has_keyword(keywords["recovery"])),
        WorkoutRule("long", lambda f: long_keyword(f) or f.duration_minutes > long_minutes),
        WorkoutRule(
            "intervals",
            lambda f: f.duration_minutes < short_minutes and f.average_heartrate > interval_hr,
        ),
        WorkoutRule("recovery", lambda f: 0 < f.average_heartrate < recovery_hr),
        WorkoutRule("tempo", lambda f: f.pace_min_per_km is not None and f.pace_min_per_km < tempo_pace),
    ]


class WorkoutClassifier:
    """Labels past activities and summarises recent training load."""

    default_label = "endurance"

    def __init__(
        self,
        classification: dict[str, Any] | None = None,
        fatigue: dict[str, Any] | None = None,
        balance: dict[str, Any] | None = None,
    ) -> None:
        self.rules = build_rules(classification)
        fatigue = fatigue or {}
        self.fatigue_window = fatigue.get("window", 5)
        self.neutral_fatigue = float(fatigue.get("neutral_score", 5.0))
        self.fatigue_low = float(fatigue.get("low_threshold", 4.0))
        self.fatigue_high = float(fatigue.get("high_threshold", 7.0))
        balance = balance or DEFAULT_BALANCE
        self.balance_default = balance.get("default", DEFAULT_BALANCE["default"])
        self.balance_rules = balance.get("rules", DEFAULT_BALANCE["rules"])

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "WorkoutClassifier":
        return cls(
            classification=config.get("workout_classification"),
            fatigue=config.get("fatigue"),
            balance=config.get("workout_balance"),
        )

    def classify(self, activity: Any) -> str:
        features = WorkoutFeatures.from_activity(activity)
        for rule in self.rules:
            if rule.predicate(features):
                return rule.label
        return self.default_label

    def fatigue_score(self, activities: Iterable[Any]) -> float:
        """Mean of the most recent effort ratings (activities newest first)."""

        ratings = [a.effort_rating for a in activities if a.effort_rating][: self.fatigue_window]
        if not ratings:
            return self.neutral_fatigue
        return sum(ratings) / len(ratings)

    def fatigue_label(self, score: float) -> str:
        if score < self.fatigue_low:
            return "low fatigue"
        if score > self.fatigue_high:
            return "high fatigue"
        return "moderate fatigue"

    def workout_balance(self, activities: Sequence[Any], window: int = 5) -> tuple[str, list[str]]:
        """Balance label and the detected types of the last ``window`` activities."""

        recent_types = [self.classify(activity) for activity in activities[:window]]
        counts = Counter(recent_types)
        for rule in self.balance_rules:
            if counts[rule["type"]] >= rule["min_count"]:
                return rule["label"], recent_types
        return self.balance_default, recent_types
