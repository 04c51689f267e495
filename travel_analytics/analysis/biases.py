"""Cognitive bias heuristics over a user's travel history."""

from typing import Any, List, Sequence

from ..models.data_models import BiasFinding, BiasType, HistoricalActivity, Severity
from ..utils.logging import get_logger
from .patterns import (
    MIN_DATA_POINTS,
    anchoring_score,
    confirmation_scores,
    first_destination_countries,
)
from .statistics import dominant_value

RECENT_TRIP_WINDOW = 3
MIN_RECENCY_TRIPS = RECENT_TRIP_WINDOW + 1
MIN_JOURNAL_ENTRIES = 5
RECENT_JOURNAL_WINDOW = 10
REPORT_CONFIDENCE = 0.5
UNDERSAMPLED_CONFIDENCE = 0.3

EMOTIONAL_WORDS = ("amazing", "terrible", "incredible", "awful", "fantastic", "horrible")


def severity_for(score: float, high: float, medium: float) -> Severity:
    """Grade a score where both thresholds are exclusive lower bounds."""
    score = round(score, 9)
    if score > high:
        return Severity.HIGH
    if score > medium:
        return Severity.MEDIUM
    return Severity.LOW


def severity_between(score: float, high: float, low: float) -> Severity:
    """Grade a score where values between the thresholds (inclusive) are medium."""
    score = round(score, 9)
    if score > high:
        return Severity.HIGH
    if score < low:
        return Severity.LOW
    return Severity.MEDIUM


def undersampled(bias_type: BiasType) -> BiasFinding:
    return BiasFinding(
        bias_type=bias_type,
        severity=Severity.LOW,
        confidence=UNDERSAMPLED_CONFIDENCE,
        description=f"Insufficient data to detect {bias_type.value} bias",
    )


class BiasDetector:
    """Anchoring, recency, confirmation and availability heuristics.

    Every detector returns a finding; too little history yields a low
    severity finding with confidence 0.3 instead of an error.
    """

    def __init__(self):
        self.logger = get_logger("biases")

    def detect(self, activity: HistoricalActivity) -> List[BiasFinding]:
        """Findings confident enough to report (confidence above 0.5)."""
        findings = [f for f in self.detect_all(activity) if f.confidence > REPORT_CONFIDENCE]
        self.logger.info(
            f"Detected {len(findings)} reportable biases: "
            f"{', '.join(f.bias_type.value for f in findings) or 'none'}"
        )
        return findings

    def detect_all(self, activity: HistoricalActivity) -> List[BiasFinding]:
        return [
            self.detect_anchoring(activity),
            self.detect_recency(activity),
            self.detect_confirmation(activity),
            self.detect_availability(activity),
        ]

    # ------------------------------------------------------------------
    # Anchoring
    # ------------------------------------------------------------------

    def detect_anchoring(self, activity: HistoricalActivity) -> BiasFinding:
        if len(activity.trips) < MIN_DATA_POINTS:
            return undersampled(BiasType.ANCHORING)
        return self.anchoring_from_choices(first_destination_countries(activity.trips))

    def anchoring_from_choices(self, choices: Sequence[Any]) -> BiasFinding:
        """Score how often later choices repeat the first one.

        Args:
            choices: Categories in the order they were chosen
        """
        if len(choices) < MIN_DATA_POINTS:
            return undersampled(BiasType.ANCHORING)

        score = anchoring_score(choices)
        severity = severity_between(score, 0.7, 0.3)
        anchor = choices[0]

        return BiasFinding(
            bias_type=BiasType.ANCHORING,
            severity=severity,
            confidence=min(0.8, len(choices) / 10),
            description=(
                f"User shows {severity.value} anchoring bias, being influenced by "
                f"initial information about {anchor}"
            ),
            evidence=[f"{score * 100:.1f}% of decisions influenced by initial anchor"],
            recommendations=[
                "Consider multiple options before making decisions",
                "Seek diverse information sources",
                "Use decision matrices to evaluate alternatives objectively",
            ],
            affected_decisions=["destination_selection", "trip_planning"],
            metrics={"anchoring_score": score, "anchor_value": anchor},
        )

    # ------------------------------------------------------------------
    # Recency
    # ------------------------------------------------------------------

    def detect_recency(self, activity: HistoricalActivity) -> BiasFinding:
        trips = activity.trips
        saved = activity.saved_locations
        if len(trips) < MIN_RECENCY_TRIPS or not saved:
            return undersampled(BiasType.RECENCY)

        recent_locations = {
            d.location_id for trip in trips[:RECENT_TRIP_WINDOW] for d in trip.destinations
        }
        recent_saved = sum(1 for s in saved if s.location_id in recent_locations)
        score = recent_saved / len(saved)
        severity = severity_for(score, 0.6, 0.4)

        return BiasFinding(
            bias_type=BiasType.RECENCY,
            severity=severity,
            confidence=min(0.8, len(trips) / 10),
            description=(
                f"User shows {severity.value} recency bias, giving more weight to "
                f"recent experiences"
            ),
            evidence=[f"{score * 100:.1f}% of saved locations are from recent trips"],
            recommendations=[
                "Review past experiences when making decisions",
                "Keep a decision journal to track patterns",
                "Consider long-term trends, not just recent events",
            ],
            affected_decisions=["location_evaluation", "future_planning"],
            metrics={"recency_score": score, "recent_saved": recent_saved},
        )

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    def detect_confirmation(self, activity: HistoricalActivity) -> BiasFinding:
        return self.confirmation_from_choices([s.country for s in activity.saved_locations])

    def confirmation_from_choices(self, choices: Sequence[Any]) -> BiasFinding:
        """Score how narrow a set of choices is.

        Args:
            choices: Category of each choice, e.g. the country of each saved location
        """
        if len(choices) < MIN_DATA_POINTS:
            return undersampled(BiasType.CONFIRMATION)

        scores = confirmation_scores(choices)
        bias_score = scores["bias_score"]
        severity = severity_between(bias_score, 0.7, 0.3)
        dominant = dominant_value(list(choices))

        return BiasFinding(
            bias_type=BiasType.CONFIRMATION,
            severity=severity,
            confidence=min(0.8, len(choices) / 10),
            description=(
                f"User shows {severity.value} confirmation bias, preferring "
                f"{dominant} locations"
            ),
            evidence=[f"{bias_score * 100:.1f}% similarity in location choices"],
            recommendations=[
                "Actively seek diverse perspectives and experiences",
                "Challenge your assumptions about destinations",
                "Explore locations outside your comfort zone",
            ],
            affected_decisions=["destination_selection", "experience_evaluation"],
            metrics={
                "diversity_score": scores["diversity_score"],
                "bias_score": bias_score,
                "dominant_preference": dominant,
            },
        )

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def detect_availability(self, activity: HistoricalActivity) -> BiasFinding:
        entries = activity.journal_entries
        if len(entries) < MIN_JOURNAL_ENTRIES:
            return undersampled(BiasType.AVAILABILITY)

        recent = entries[:RECENT_JOURNAL_WINDOW]
        emotional = [
            entry for entry in recent
            if any(word in entry.content.lower() for word in EMOTIONAL_WORDS)
        ]
        ratio = len(emotional) / len(recent)
        severity = severity_for(ratio, 0.6, 0.4)

        return BiasFinding(
            bias_type=BiasType.AVAILABILITY,
            severity=severity,
            confidence=min(0.8, len(entries) / 20),
            description=(
                f"User shows {severity.value} availability bias, being influenced by "
                f"memorable recent experiences"
            ),
            evidence=[f"{ratio * 100:.1f}% of recent entries contain emotional language"],
            recommendations=[
                "Consider statistical data, not just memorable experiences",
                "Keep a balanced record of both positive and negative experiences",
                "Make decisions based on systematic analysis",
            ],
            affected_decisions=["risk_assessment", "expectation_setting"],
            metrics={"emotional_ratio": ratio, "emotional_entries": len(emotional)},
        )
