"""Domain models for decision matrices, comparisons, patterns and biases."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class Scale(str, Enum):
    """Direction of a criterion."""
    HIGHER_BETTER = "higher_better"
    LOWER_BETTER = "lower_better"


class PatternType(str, Enum):
    """Behavior pattern families."""
    PREFERENCE = "preference"
    DECISION = "decision"
    EXPLORATION = "exploration"
    BIAS = "bias"


class BiasType(str, Enum):
    """Cognitive bias heuristics."""
    ANCHORING = "anchoring"
    RECENCY = "recency"
    CONFIRMATION = "confirmation"
    AVAILABILITY = "availability"


class Severity(str, Enum):
    """Bias severity grades."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# ---------------------------------------------------------------------------
# Decision matrix
# ---------------------------------------------------------------------------


class Criterion(BaseModel):
    """A weighted, direction-tagged evaluation axis."""

    weight: float = Field(..., gt=0.0, le=1.0)
    scale: Scale = Scale.HIGHER_BETTER
    description: Optional[str] = None


class Alternative(BaseModel):
    """One candidate being compared."""

    id: Optional[str] = None
    name: str
    data: Dict[str, float] = Field(default_factory=dict)


class DecisionMatrixInput(BaseModel):
    """Input to the decision matrix engine.

    Business rules (weight sum, minimum alternatives, complete data) are
    checked by the engine so that the first failing rule can be reported.
    """

    user_id: Optional[str] = None
    name: str = ""
    description: Optional[str] = None
    matrix_type: str = "custom"
    criteria: Dict[str, Criterion] = Field(default_factory=dict)
    alternatives: Dict[str, Alternative] = Field(default_factory=dict)

    @field_validator("alternatives")
    @classmethod
    def fill_alternative_ids(cls, v: Dict[str, Alternative]) -> Dict[str, Alternative]:
        """Default each alternative's id to its key."""
        return {
            key: alt if alt.id else alt.model_copy(update={"id": key})
            for key, alt in v.items()
        }


class SensitivityResult(BaseModel):
    """Outcome of perturbing one criterion's weight."""

    criterion: str
    weight_change: float
    ranking_change: bool
    new_winner: Optional[str] = None


class Recommendation(BaseModel):
    """Decision recommendation derived from scores and sensitivity."""

    winner: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: List[str] = Field(default_factory=list)
    alternatives: List[str] = Field(default_factory=list)
    considerations: List[str] = Field(default_factory=list)


class DecisionMatrixResult(BaseModel):
    """Fully evaluated decision matrix."""

    id: str
    user_id: Optional[str] = None
    name: str
    description: Optional[str] = None
    matrix_type: str
    criteria: Dict[str, Criterion]
    alternatives: Dict[str, Alternative]
    scores: Dict[str, Dict[str, float]]
    rankings: Dict[str, str]
    sensitivity: Dict[str, SensitivityResult]
    recommendation: Recommendation
    summary: str = ""
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def winner(self) -> str:
        return self.rankings["1"]


class MatrixTemplate(BaseModel):
    """Predefined criteria set for a matrix type."""

    name: str
    description: str
    category: str
    criteria: Dict[str, Criterion]


# ---------------------------------------------------------------------------
# Location comparison
# ---------------------------------------------------------------------------


class LocationMetrics(BaseModel):
    """Precomputed location ratings supplied by the analytics collaborator."""

    location_id: str
    name: Optional[str] = None
    affordability_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    weather_rating: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    culture_rating: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    safety_rating: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    transport_rating: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    average_sentiment: Optional[float] = Field(default=None, ge=-1.0, le=1.0)
    total_visits: int = Field(default=0, ge=0)
    total_time_spent: float = Field(default=0.0, ge=0.0)  # seconds


class PropertyRecord(BaseModel):
    """Property listing fields used to build a property matrix."""

    property_id: str
    title: str
    price: float = Field(..., ge=0.0)
    size: Optional[float] = None  # square metres
    condition: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    location_score: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    growth_potential: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    rental_yield: Optional[float] = Field(default=None, ge=0.0)


class LocationComparisonResult(BaseModel):
    """Head-to-head location ranking."""

    comparison_name: str
    location_ids: List[str]
    criteria: Dict[str, float]
    scores: Dict[str, Dict[str, float]]
    rankings: Dict[str, str]
    winner: str
    strengths: Dict[str, List[str]]
    weaknesses: Dict[str, List[str]]
    recommendations: Dict[str, str]


# ---------------------------------------------------------------------------
# Historical activity
# ---------------------------------------------------------------------------


class JournalEntry(BaseModel):
    """Free-text journal entry."""

    id: str
    content: str = ""
    location_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    rating: Optional[float] = None
    cost: Optional[float] = None
    tags: List[str] = Field(default_factory=list)


class TripDestination(BaseModel):
    """One stop of a trip."""

    location_id: str
    country: Optional[str] = None


class Trip(BaseModel):
    """A planned or completed trip."""

    id: str
    start_date: datetime
    end_date: Optional[datetime] = None
    duration: Optional[float] = None  # days
    destinations: List[TripDestination] = Field(default_factory=list)

    @property
    def duration_days(self) -> float:
        if self.duration is not None:
            return self.duration
        if self.end_date is not None:
            elapsed = as_utc(self.end_date) - as_utc(self.start_date)
            return max(0.0, elapsed.total_seconds() / 86400)
        return 7.0

    @property
    def finished_at(self) -> datetime:
        return self.end_date or self.start_date


class SavedLocation(BaseModel):
    """A location the user bookmarked."""

    location_id: str
    country: str = "unknown"
    climate: Optional[str] = None
    cost_level: Optional[str] = None
    saved_at: datetime = Field(default_factory=utc_now)


class LocationAnalyticsRecord(BaseModel):
    """Per-user location ratings from the analytics collaborator."""

    location_id: str
    total_visits: int = 0
    weather_rating: Optional[float] = None
    affordability_score: Optional[float] = None
    culture_rating: Optional[float] = None
    safety_rating: Optional[float] = None
    transport_rating: Optional[float] = None
    activity_preferences: Optional[Dict[str, float]] = None


class HistoricalActivity(BaseModel):
    """A user's activity history. Every list is ordered newest first."""

    journal_entries: List[JournalEntry] = Field(default_factory=list)
    trips: List[Trip] = Field(default_factory=list)
    saved_locations: List[SavedLocation] = Field(default_factory=list)
    location_analytics: List[LocationAnalyticsRecord] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Behavior patterns and biases
# ---------------------------------------------------------------------------


class PatternDetection(BaseModel):
    """Raw output of a single pattern detector."""

    pattern_type: PatternType
    category: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    frequency: int = 0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    significance: float = Field(default=0.0, ge=0.0)
    triggers: List[str] = Field(default_factory=list)
    outcomes: List[str] = Field(default_factory=list)

    @property
    def insufficient_data(self) -> bool:
        return bool(self.payload.get("insufficient_data"))


class BehaviorPattern(BaseModel):
    """An accepted, persistable behavior pattern."""

    id: Optional[str] = None
    user_id: str
    pattern_type: PatternType
    category: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    frequency: int = 0
    confidence: float = Field(..., ge=0.0, le=1.0)
    significance: float = Field(default=0.0, ge=0.0, le=1.0)
    triggers: List[str] = Field(default_factory=list)
    outcomes: List[str] = Field(default_factory=list)
    first_observed: datetime = Field(default_factory=utc_now)
    last_observed: datetime = Field(default_factory=utc_now)
    data_points: int = 0
    reliability: float = Field(default=0.0, ge=0.0, le=1.0)
    is_active: bool = True

    @property
    def key(self) -> tuple:
        return (self.user_id, self.pattern_type.value, self.category)


class BehaviorProfile(BaseModel):
    """Accepted patterns grouped by pattern type."""

    user_id: str
    preference_patterns: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    decision_patterns: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    exploration_patterns: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    bias_patterns: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    overall_reliability: float = Field(default=0.0, ge=0.0, le=1.0)
    last_analyzed: datetime = Field(default_factory=utc_now)


class PatternAnalysisResult(BaseModel):
    """Patterns, profile and recommendations for one user."""

    patterns: List[BehaviorPattern] = Field(default_factory=list)
    profile: BehaviorProfile
    recommendations: List[str] = Field(default_factory=list)


class BiasFinding(BaseModel):
    """Result of one bias heuristic."""

    bias_type: BiasType
    severity: Severity = Severity.LOW
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    description: str = ""
    evidence: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    affected_decisions: List[str] = Field(default_factory=list)
    metrics: Dict[str, Any] = Field(default_factory=dict)


class BehaviorInsights(BaseModel):
    """Human-readable summary of a behavior profile."""

    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    risk_factors: List[str] = Field(default_factory=list)


class BehaviorPrediction(BaseModel):
    """Predicted choice for a scenario."""

    scenario: str
    predicted_choice: str = "unknown"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    reasoning: List[str] = Field(default_factory=list)
    alternatives: List[str] = Field(default_factory=list)
