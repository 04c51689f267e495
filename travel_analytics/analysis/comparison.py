"""Head-to-head location comparison built on the scoring kernel."""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..exceptions import ValidationError
from ..models.data_models import LocationComparisonResult, LocationMetrics, Scale
from ..utils.logging import get_logger
from .scoring import TOTAL, frame_to_scores, normalized_frame, rank, weighted_score

NEUTRAL_VALUE = 0.5
STRENGTH_THRESHOLD = 0.7
WEAKNESS_THRESHOLD = 0.3
WEIGHT_TOLERANCE = 0.01
MAX_TIME_SPENT = 30 * 24 * 3600  # 30 days in seconds

CRITERION_LABELS = {
    "cost": ("Affordable", "Expensive"),
    "climate": ("Great Weather", "Poor Climate"),
    "culture": ("Rich Culture", "Cultural Challenges"),
    "safety": ("Very Safe", "Safety Concerns"),
    "transport": ("Excellent Transport", "Poor Transport"),
    "sentiment": ("Positive Experience", "Negative Experience"),
    "visits": ("Frequently Visited", "Rarely Visited"),
    "time_spent": ("Well Explored", "Barely Explored"),
}

CRITERION_CATALOGUE = tuple(CRITERION_LABELS.keys())


def _or_neutral(value: Optional[float]) -> float:
    return NEUTRAL_VALUE if value is None else value


def location_criterion_value(metrics: LocationMetrics, criterion: str) -> float:
    """Map a catalogue criterion onto a [0, 1] value, higher is better.

    Unknown criteria and missing ratings fall back to a neutral 0.5.
    """
    if criterion == "cost":
        return _or_neutral(metrics.affordability_score)
    if criterion == "climate":
        return _or_neutral(metrics.weather_rating)
    if criterion == "culture":
        return _or_neutral(metrics.culture_rating)
    if criterion == "safety":
        return _or_neutral(metrics.safety_rating)
    if criterion == "transport":
        return _or_neutral(metrics.transport_rating)
    if criterion == "sentiment":
        sentiment = metrics.average_sentiment or 0.0
        return max(0.0, (sentiment + 1) / 2)
    if criterion == "visits":
        return min(1.0, metrics.total_visits / 10)
    if criterion == "time_spent":
        return min(1.0, metrics.total_time_spent / MAX_TIME_SPENT)
    return NEUTRAL_VALUE


def criterion_label(criterion: str, is_strength: bool) -> str:
    labels = CRITERION_LABELS.get(criterion)
    if not labels:
        return criterion
    return labels[0] if is_strength else labels[1]


def recommendation_for_total(total: float) -> str:
    """Bucket a weighted total into a recommendation sentence."""
    if total > 0.8:
        return "Excellent choice for relocation"
    elif total > 0.6:
        return "Good option worth considering"
    elif total > 0.4:
        return "Consider for short-term stays"
    return "May not be suitable for your needs"


class ComparisonScorer:
    """Rank locations on the fixed criterion catalogue."""

    def __init__(self):
        self.logger = get_logger("comparison")

    def validate(self, locations: List[LocationMetrics], criteria: Dict[str, float]) -> None:
        if len(locations) < 2:
            raise ValidationError("At least two locations are required")

        if not criteria:
            raise ValidationError("At least one criterion is required")

        negative = [key for key, weight in criteria.items() if weight < 0]
        if negative:
            raise ValidationError(f"Criterion weights must be positive: {', '.join(negative)}")

        total_weight = sum(criteria.values())
        if abs(total_weight - 1) > WEIGHT_TOLERANCE:
            raise ValidationError(
                "Criteria weights must sum to 1.0",
                context={"total_weight": total_weight},
            )

        seen = set()
        for metrics in locations:
            if metrics.location_id in seen:
                raise ValidationError(f"Duplicate location {metrics.location_id}")
            seen.add(metrics.location_id)

    def compare(
        self,
        locations: List[LocationMetrics],
        criteria: Dict[str, float],
        comparison_name: Optional[str] = None,
    ) -> LocationComparisonResult:
        """Compare locations.

        Args:
            locations: Metrics for each compared location
            criteria: Criterion key -> weight
            comparison_name: Optional label

        Returns:
            Scores, rankings, strengths, weaknesses and recommendations
        """
        self.validate(locations, criteria)

        raw = {
            m.location_id: {c: location_criterion_value(m, c) for c in criteria}
            for m in locations
        }
        normalized = normalized_frame(raw, {c: Scale.HIGHER_BETTER for c in criteria})

        scores = frame_to_scores(normalized)
        for location_id, values in scores.items():
            values[TOTAL] = sum(weighted_score(values[c], w) for c, w in criteria.items())

        rankings = rank({location_id: values[TOTAL] for location_id, values in scores.items()})

        strengths: Dict[str, List[str]] = {}
        weaknesses: Dict[str, List[str]] = {}
        recommendations: Dict[str, str] = {}

        for location_id, values in scores.items():
            strengths[location_id] = [
                criterion_label(c, True) for c in criteria if values[c] > STRENGTH_THRESHOLD
            ]
            weaknesses[location_id] = [
                criterion_label(c, False) for c in criteria if values[c] < WEAKNESS_THRESHOLD
            ]
            recommendations[location_id] = recommendation_for_total(values[TOTAL])

        name = comparison_name or (
            f"Location Comparison - {datetime.now(timezone.utc).date().isoformat()}"
        )
        self.logger.info(f"Compared {len(locations)} locations, winner {rankings['1']}")

        return LocationComparisonResult(
            comparison_name=name,
            location_ids=[m.location_id for m in locations],
            criteria=dict(criteria),
            scores=scores,
            rankings=rankings,
            winner=rankings["1"],
            strengths=strengths,
            weaknesses=weaknesses,
            recommendations=recommendations,
        )
