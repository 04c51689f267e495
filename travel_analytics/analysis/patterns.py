"""Behavior pattern detection over a user's travel history."""

import threading
import uuid
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..models.data_models import (
    BehaviorPattern,
    BehaviorProfile,
    HistoricalActivity,
    PatternAnalysisResult,
    PatternDetection,
    PatternType,
    Trip,
    utc_now,
)
from ..utils.config import Config
from ..utils.logging import get_logger
from .recommendation_engine import BehaviorAdvisor
from .statistics import (
    categorical_consistency,
    clamp,
    consistency,
    correlation,
    days_between,
    diversity,
    dominant_value,
    mean,
    sort_key,
)

MIN_DATA_POINTS = 3

ACTIVITIES = ("outdoor", "cultural", "food", "nightlife", "shopping", "relaxation")

DECISION_FACTORS = {
    "cost": "affordability_score",
    "weather": "weather_rating",
    "culture": "culture_rating",
    "safety": "safety_rating",
    "transport": "transport_rating",
}

STYLE_KEYWORDS = {
    "structured": ("planned", "schedule", "itinerary", "organized", "list"),
    "spontaneous": ("spontaneous", "unexpected", "random", "surprise", "impulse"),
    "social": ("friends", "people", "group", "social", "together"),
    "solitary": ("alone", "solo", "myself", "quiet", "peaceful"),
    "adventurous": ("adventure", "exciting", "risk", "new", "challenging"),
    "comfortable": ("comfortable", "familiar", "safe", "easy", "relaxed"),
}


def grade(score: float, high: float = 0.7, low: float = 0.3) -> str:
    """Three-way level for a [0, 1] score; the thresholds themselves are moderate."""
    score = round(score, 9)
    if score > high:
        return "high"
    if score < low:
        return "low"
    return "moderate"


def season_of(moment: datetime) -> str:
    month = moment.month - 1
    if month < 3:
        return "winter"
    if month < 6:
        return "spring"
    if month < 9:
        return "summer"
    return "autumn"


def insufficient(pattern_type: PatternType, category: str) -> PatternDetection:
    """Sentinel returned when a detector has too little to go on."""
    return PatternDetection(
        pattern_type=pattern_type,
        category=category,
        payload={"insufficient_data": True},
    )


def trips_oldest_first(trips: Sequence[Trip]) -> List[Trip]:
    return sorted(trips, key=lambda t: sort_key(t.start_date))


def first_destination_countries(trips: Sequence[Trip]) -> List[Optional[str]]:
    """Country of each trip's first stop, oldest trip first."""
    return [
        trip.destinations[0].country if trip.destinations else None
        for trip in trips_oldest_first(trips)
    ]


def confirmation_scores(choices: Sequence[Any]) -> Dict[str, float]:
    distinct = len(set(choices))
    diversity_score = distinct / len(choices)
    return {"diversity_score": diversity_score, "bias_score": 1 - diversity_score}


def anchoring_score(choices: Sequence[Any]) -> float:
    anchor = choices[0]
    return sum(1 for choice in choices if choice == anchor) / len(choices)


class PatternRepository(ABC):
    """Storage for accepted behavior patterns."""

    @abstractmethod
    def upsert(self, pattern: BehaviorPattern) -> BehaviorPattern:
        """Insert or replace the pattern sharing the same key."""
        pass

    @abstractmethod
    def list_patterns(
        self,
        user_id: str,
        pattern_type: Optional[PatternType] = None,
        category: Optional[str] = None,
        only_active: bool = True,
    ) -> List[BehaviorPattern]:
        """Patterns for a user, highest confidence first."""
        pass


class InMemoryPatternRepository(PatternRepository):
    """Process-local pattern store keyed by (user, type, category)."""

    def __init__(self):
        self._patterns: Dict[tuple, BehaviorPattern] = {}
        self._lock = threading.Lock()

    def upsert(self, pattern: BehaviorPattern) -> BehaviorPattern:
        with self._lock:
            existing = self._patterns.get(pattern.key)
            if existing:
                stored = pattern.model_copy(update={
                    "id": existing.id,
                    "first_observed": existing.first_observed,
                })
            else:
                stored = pattern.model_copy(update={"id": pattern.id or str(uuid.uuid4())})
            self._patterns[pattern.key] = stored
            return stored

    def list_patterns(
        self,
        user_id: str,
        pattern_type: Optional[PatternType] = None,
        category: Optional[str] = None,
        only_active: bool = True,
    ) -> List[BehaviorPattern]:
        with self._lock:
            patterns = [
                p for p in self._patterns.values()
                if p.user_id == user_id
                and (pattern_type is None or p.pattern_type == PatternType(pattern_type))
                and (category is None or p.category == category)
                and (not only_active or p.is_active)
            ]
        return sorted(
            patterns,
            key=lambda p: (p.confidence, sort_key(p.last_observed)),
            reverse=True,
        )

    def __len__(self) -> int:
        return len(self._patterns)


class PatternAnalyzer:
    """Run every pattern detector and assemble a behavior profile."""

    def __init__(
        self,
        config: Optional[Config] = None,
        repository: Optional[PatternRepository] = None,
        advisor: Optional[BehaviorAdvisor] = None,
    ):
        self.config = config or Config()
        self.min_confidence = self.config.min_pattern_confidence
        self.repository = repository
        self.advisor = advisor or BehaviorAdvisor()
        self.logger = get_logger("patterns")

    @property
    def detectors(self) -> List[Callable[[HistoricalActivity], PatternDetection]]:
        return [
            self.detect_climate_preference,
            self.detect_cost_preference,
            self.detect_activity_preference,
            self.detect_timing_preference,
            self.detect_decision_speed,
            self.detect_decision_factors,
            self.detect_decision_consistency,
            self.detect_exploration_frequency,
            self.detect_exploration_depth,
            self.detect_exploration_style,
            self.detect_confirmation_bias,
            self.detect_anchoring_bias,
        ]

    def detect_all(self, activity: HistoricalActivity) -> List[PatternDetection]:
        return [detector(activity) for detector in self.detectors]

    def analyze(self, user_id: str, activity: HistoricalActivity) -> PatternAnalysisResult:
        """Detect, filter, profile and (optionally) store a user's patterns.

        Args:
            user_id: Owner of the history
            activity: Journal entries, trips, saved locations and analytics

        Returns:
            Accepted patterns, grouped profile and recommendations
        """
        accepted, profile = self.evaluate(user_id, activity)
        recommendations = self.advisor.behavior_recommendations(profile, accepted)

        if self.repository is not None:
            accepted = [self.repository.upsert(pattern) for pattern in accepted]

        self.logger.info(
            f"Analyzed behavior for user {user_id}: "
            f"{len(accepted)}/{len(self.detectors)} patterns accepted, "
            f"reliability {profile.overall_reliability:.2f}"
        )

        return PatternAnalysisResult(
            patterns=accepted,
            profile=profile,
            recommendations=recommendations,
        )

    def evaluate(
        self, user_id: str, activity: HistoricalActivity
    ) -> Tuple[List[BehaviorPattern], BehaviorProfile]:
        """Accepted patterns and profile, without touching the repository."""
        observed_at = utc_now()
        accepted = [
            self.to_pattern(user_id, detection, observed_at)
            for detection in self.detect_all(activity)
            if self.is_accepted(detection)
        ]
        return accepted, self.build_profile(user_id, accepted, observed_at)

    def list_patterns(
        self,
        user_id: str,
        pattern_type: Optional[PatternType] = None,
        category: Optional[str] = None,
        only_active: bool = True,
    ) -> List[BehaviorPattern]:
        if self.repository is None:
            return []
        return self.repository.list_patterns(user_id, pattern_type, category, only_active)

    def is_accepted(self, detection: PatternDetection) -> bool:
        return (
            not detection.insufficient_data
            and detection.frequency >= MIN_DATA_POINTS
            and detection.confidence >= self.min_confidence
        )

    def to_pattern(
        self, user_id: str, detection: PatternDetection, observed_at: datetime
    ) -> BehaviorPattern:
        return BehaviorPattern(
            user_id=user_id,
            pattern_type=detection.pattern_type,
            category=detection.category,
            payload=detection.payload,
            frequency=detection.frequency,
            confidence=detection.confidence,
            significance=clamp(detection.significance),
            triggers=detection.triggers,
            outcomes=detection.outcomes,
            first_observed=observed_at,
            last_observed=observed_at,
            data_points=detection.frequency,
            reliability=detection.confidence,
        )

    def build_profile(
        self,
        user_id: str,
        patterns: List[BehaviorPattern],
        analyzed_at: Optional[datetime] = None,
    ) -> BehaviorProfile:
        """Group accepted patterns by type; reliability is their mean."""
        groups: Dict[PatternType, Dict[str, Dict[str, Any]]] = {t: {} for t in PatternType}
        for pattern in patterns:
            groups[pattern.pattern_type][pattern.category] = {
                **pattern.payload,
                "confidence": pattern.confidence,
                "significance": pattern.significance,
            }

        return BehaviorProfile(
            user_id=user_id,
            preference_patterns=groups[PatternType.PREFERENCE],
            decision_patterns=groups[PatternType.DECISION],
            exploration_patterns=groups[PatternType.EXPLORATION],
            bias_patterns=groups[PatternType.BIAS],
            overall_reliability=mean([p.reliability for p in patterns]),
            last_analyzed=analyzed_at or utc_now(),
        )

    # ------------------------------------------------------------------
    # Preference detectors
    # ------------------------------------------------------------------

    def detect_climate_preference(self, activity: HistoricalActivity) -> PatternDetection:
        ratings = [
            r.weather_rating for r in activity.location_analytics if r.weather_rating is not None
        ]
        if len(ratings) < MIN_DATA_POINTS:
            return insufficient(PatternType.PREFERENCE, "climate")

        average = mean(ratings)
        if average > 0.7:
            preference = "warm"
        elif average < 0.3:
            preference = "cool"
        else:
            preference = "moderate"

        return PatternDetection(
            pattern_type=PatternType.PREFERENCE,
            category="climate",
            payload={
                "preference": preference,
                "average_rating": average,
                "consistency": consistency(ratings),
            },
            frequency=len(ratings),
            confidence=min(0.9, len(ratings) / 10),
            significance=abs(average - 0.5) * 2,
            triggers=["weather_conditions", "seasonal_changes"],
            outcomes=["destination_selection", "travel_timing"],
        )

    def detect_cost_preference(self, activity: HistoricalActivity) -> PatternDetection:
        scores = [
            r.affordability_score
            for r in activity.location_analytics
            if r.affordability_score is not None
        ]
        if len(scores) < MIN_DATA_POINTS:
            return insufficient(PatternType.PREFERENCE, "cost")

        average = mean(scores)
        # Visiting affordable places on average means price matters
        if average > 0.7:
            sensitivity = "low"
        elif average < 0.3:
            sensitivity = "high"
        else:
            sensitivity = "moderate"

        return PatternDetection(
            pattern_type=PatternType.PREFERENCE,
            category="cost",
            payload={
                "sensitivity": sensitivity,
                "average_score": average,
                "consistency": consistency(scores),
            },
            frequency=len(scores),
            confidence=min(0.9, len(scores) / 10),
            significance=abs(average - 0.5) * 2,
            triggers=["budget_constraints", "economic_conditions"],
            outcomes=["destination_selection", "trip_duration"],
        )

    def detect_activity_preference(self, activity: HistoricalActivity) -> PatternDetection:
        records = [
            r.activity_preferences
            for r in activity.location_analytics
            if r.activity_preferences is not None
        ]
        if len(records) < MIN_DATA_POINTS:
            return insufficient(PatternType.PREFERENCE, "activity")

        aggregated = {
            name: mean([prefs.get(name, 0.0) for prefs in records]) for name in ACTIVITIES
        }
        top_activity, top_score = sorted(aggregated.items(), key=lambda kv: kv[1], reverse=True)[0]

        return PatternDetection(
            pattern_type=PatternType.PREFERENCE,
            category="activity",
            payload={
                "preferences": aggregated,
                "top_activity": top_activity,
                "top_score": top_score,
                "diversity": diversity(list(aggregated.values())),
            },
            frequency=len(records),
            confidence=min(0.9, len(records) / 10),
            significance=top_score,
            triggers=["mood", "season", "companions"],
            outcomes=["activity_selection", "location_choice"],
        )

    def detect_timing_preference(self, activity: HistoricalActivity) -> PatternDetection:
        trips = activity.trips
        if len(trips) < MIN_DATA_POINTS:
            return insufficient(PatternType.PREFERENCE, "timing")

        seasons = [season_of(trip.start_date) for trip in trips]
        distribution = dict(Counter(seasons))
        preferred = dominant_value(seasons)

        return PatternDetection(
            pattern_type=PatternType.PREFERENCE,
            category="timing",
            payload={
                "seasonal_distribution": distribution,
                "preferred_season": preferred,
                "average_duration": mean([trip.duration_days for trip in trips]),
            },
            frequency=len(trips),
            confidence=min(0.9, len(trips) / 10),
            significance=distribution[preferred] / len(trips),
            triggers=["weather", "holidays", "work_schedule"],
            outcomes=["trip_timing", "destination_choice"],
        )

    # ------------------------------------------------------------------
    # Decision detectors
    # ------------------------------------------------------------------

    def detect_decision_speed(self, activity: HistoricalActivity) -> PatternDetection:
        saved = activity.saved_locations
        if len(saved) < MIN_DATA_POINTS:
            return insufficient(PatternType.DECISION, "speed")

        ordered_trips = trips_oldest_first(activity.trips)
        decision_times = []
        for location in saved:
            related = [
                trip for trip in ordered_trips
                if any(d.location_id == location.location_id for d in trip.destinations)
            ]
            if related:
                decision_times.append(days_between(location.saved_at, related[0].start_date))

        if not decision_times:
            return insufficient(PatternType.DECISION, "speed")

        average = mean(decision_times)
        if average < 7:
            speed = "fast"
        elif average > 30:
            speed = "slow"
        else:
            speed = "moderate"

        acted = len(decision_times)
        return PatternDetection(
            pattern_type=PatternType.DECISION,
            category="speed",
            payload={
                "speed": speed,
                "average_decision_time": average,
                "action_rate": acted / len(saved),
            },
            frequency=acted,
            confidence=min(0.9, acted / 5),
            significance=abs(average - 14) / 14,
            triggers=["urgency", "information_availability"],
            outcomes=["trip_planning", "opportunity_capture"],
        )

    def detect_decision_factors(self, activity: HistoricalActivity) -> PatternDetection:
        records = activity.location_analytics
        if len(records) < MIN_DATA_POINTS:
            return insufficient(PatternType.DECISION, "factors")

        visits = [float(r.total_visits) for r in records]
        correlations = {}
        for factor, field in DECISION_FACTORS.items():
            values = [
                getattr(r, field) if getattr(r, field) is not None else 0.5 for r in records
            ]
            correlations[factor] = correlation(values, visits)

        importance = sorted(correlations, key=lambda f: abs(correlations[f]), reverse=True)
        primary = importance[0]

        return PatternDetection(
            pattern_type=PatternType.DECISION,
            category="factors",
            payload={
                "correlations": correlations,
                "primary_factor": primary,
                "primary_correlation": correlations[primary],
                "factor_importance": importance,
            },
            frequency=len(records),
            confidence=min(0.9, len(records) / 10),
            significance=abs(correlations[primary]),
            triggers=["information_availability", "personal_values"],
            outcomes=["destination_selection", "satisfaction"],
        )

    def detect_decision_consistency(self, activity: HistoricalActivity) -> PatternDetection:
        saved = activity.saved_locations
        if len(saved) < MIN_DATA_POINTS:
            return insufficient(PatternType.DECISION, "consistency")

        country = categorical_consistency([s.country for s in saved])
        climate = categorical_consistency([s.climate or "unknown" for s in saved])
        cost = categorical_consistency([s.cost_level or "unknown" for s in saved])
        overall = (country + climate + cost) / 3

        return PatternDetection(
            pattern_type=PatternType.DECISION,
            category="consistency",
            payload={
                "level": grade(overall),
                "overall_consistency": overall,
                "country_consistency": country,
                "climate_consistency": climate,
                "cost_consistency": cost,
            },
            frequency=len(saved),
            confidence=min(0.9, len(saved) / 10),
            significance=abs(overall - 0.5) * 2,
            triggers=["personal_values", "past_experiences"],
            outcomes=["predictability", "satisfaction"],
        )

    # ------------------------------------------------------------------
    # Exploration detectors
    # ------------------------------------------------------------------

    def detect_exploration_frequency(self, activity: HistoricalActivity) -> PatternDetection:
        trips = activity.trips
        if len(trips) < MIN_DATA_POINTS:
            return insufficient(PatternType.EXPLORATION, "frequency")

        ordered = trips_oldest_first(trips)
        gaps = [
            days_between(previous.finished_at, current.start_date)
            for previous, current in zip(ordered, ordered[1:])
        ]

        average = mean(gaps)
        if average < 30:
            level = "high"
        elif average > 90:
            level = "low"
        else:
            level = "moderate"

        return PatternDetection(
            pattern_type=PatternType.EXPLORATION,
            category="frequency",
            payload={
                "level": level,
                "average_interval": average,
                "total_trips": len(trips),
                "consistency": consistency(gaps),
            },
            frequency=len(trips),
            confidence=min(0.9, len(trips) / 5),
            significance=abs(average - 60) / 60,
            triggers=["schedule", "budget", "motivation"],
            outcomes=["experience_accumulation", "expertise_development"],
        )

    def detect_exploration_depth(self, activity: HistoricalActivity) -> PatternDetection:
        trips = activity.trips
        if len(trips) < MIN_DATA_POINTS:
            return insufficient(PatternType.EXPLORATION, "depth")

        durations = []
        destination_counts = []
        journal_counts = []
        for trip in trips:
            stops = {d.location_id for d in trip.destinations}
            durations.append(trip.duration_days)
            destination_counts.append(len(trip.destinations))
            journal_counts.append(
                sum(1 for entry in activity.journal_entries if entry.location_id in stops)
            )

        average_duration = mean(durations)
        average_entries = mean(journal_counts)
        depth = (average_duration / 14) * 0.4 + (average_entries / 10) * 0.6
        if depth > 0.7:
            level = "deep"
        elif depth < 0.3:
            level = "shallow"
        else:
            level = "moderate"

        return PatternDetection(
            pattern_type=PatternType.EXPLORATION,
            category="depth",
            payload={
                "level": level,
                "depth_score": depth,
                "average_duration": average_duration,
                "average_destinations": mean(destination_counts),
                "average_journal_entries": average_entries,
            },
            frequency=len(trips),
            confidence=min(0.9, len(trips) / 5),
            significance=abs(depth - 0.5) * 2,
            triggers=["available_time", "interests", "travel_style"],
            outcomes=["understanding_quality", "memory_formation"],
        )

    def detect_exploration_style(self, activity: HistoricalActivity) -> PatternDetection:
        entries = activity.journal_entries
        if len(entries) < MIN_DATA_POINTS:
            return insufficient(PatternType.EXPLORATION, "style")

        hits = {style: 0 for style in STYLE_KEYWORDS}
        for entry in entries:
            content = entry.content.lower()
            for style, keywords in STYLE_KEYWORDS.items():
                hits[style] += sum(1 for keyword in keywords if keyword in content)

        total = sum(hits.values())
        if total == 0:
            return insufficient(PatternType.EXPLORATION, "style")

        profile = {style: count / total for style, count in hits.items()}
        dominant, share = sorted(profile.items(), key=lambda kv: kv[1], reverse=True)[0]

        return PatternDetection(
            pattern_type=PatternType.EXPLORATION,
            category="style",
            payload={
                "dominant_style": dominant,
                "dominant_score": share,
                "style_profile": profile,
            },
            frequency=len(entries),
            confidence=min(0.9, len(entries) / 20),
            significance=share,
            triggers=["personality", "mood", "circumstances"],
            outcomes=["experience_quality", "satisfaction"],
        )

    # ------------------------------------------------------------------
    # Bias detectors
    # ------------------------------------------------------------------

    def detect_confirmation_bias(self, activity: HistoricalActivity) -> PatternDetection:
        countries = [s.country for s in activity.saved_locations]
        if len(countries) < MIN_DATA_POINTS:
            return insufficient(PatternType.BIAS, "confirmation")

        scores = confirmation_scores(countries)
        return PatternDetection(
            pattern_type=PatternType.BIAS,
            category="confirmation",
            payload={
                "level": grade(scores["bias_score"]),
                "bias_score": scores["bias_score"],
                "diversity_score": scores["diversity_score"],
                "dominant_preference": dominant_value(countries),
            },
            frequency=len(countries),
            confidence=min(0.8, len(countries) / 10),
            significance=scores["bias_score"],
            triggers=["existing_beliefs", "comfort_seeking"],
            outcomes=["limited_exploration", "missed_opportunities"],
        )

    def detect_anchoring_bias(self, activity: HistoricalActivity) -> PatternDetection:
        trips = activity.trips
        if len(trips) < MIN_DATA_POINTS:
            return insufficient(PatternType.BIAS, "anchoring")

        countries = first_destination_countries(trips)
        score = anchoring_score(countries)
        return PatternDetection(
            pattern_type=PatternType.BIAS,
            category="anchoring",
            payload={
                "level": grade(score),
                "anchoring_score": score,
                "anchor_value": countries[0],
                "influence_rate": score,
            },
            frequency=len(trips),
            confidence=min(0.8, len(trips) / 10),
            significance=score,
            triggers=["first_information", "uncertainty"],
            outcomes=["limited_exploration", "suboptimal_choices"],
        )
