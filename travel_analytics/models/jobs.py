"""Job, payload and broadcast event models."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator

from .data_models import (
    DecisionMatrixInput,
    HistoricalActivity,
    LocationMetrics,
    PropertyRecord,
    Criterion,
    utc_now,
)


class JobType(str, Enum):
    """Kinds of work the scheduler can run."""
    PATTERN_ANALYSIS = "pattern_analysis"
    BIAS_DETECTION = "bias_detection"
    DECISION_MATRIX = "decision_matrix"
    COMPARISON = "comparison"
    PREDICTION = "prediction"


class JobPriority(str, Enum):
    """Queue priority bands."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class JobStatus(str, Enum):
    """Job lifecycle states."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


# ---------------------------------------------------------------------------
# Payload variants, one schema per job type
# ---------------------------------------------------------------------------


class PatternAnalysisPayload(BaseModel):
    job_type: Literal["pattern_analysis"] = "pattern_analysis"
    activity: HistoricalActivity
    context: Optional[Dict[str, Any]] = None


class BiasDetectionPayload(BaseModel):
    job_type: Literal["bias_detection"] = "bias_detection"
    activity: HistoricalActivity
    include_low_confidence: bool = False


class DecisionMatrixPayload(BaseModel):
    job_type: Literal["decision_matrix"] = "decision_matrix"
    matrix: Optional[DecisionMatrixInput] = None
    # Alternatively build the matrix from locations or properties
    locations: List[LocationMetrics] = Field(default_factory=list)
    properties: List[PropertyRecord] = Field(default_factory=list)
    criteria: Dict[str, Criterion] = Field(default_factory=dict)
    name: Optional[str] = None

    @model_validator(mode="after")
    def check_source(self) -> "DecisionMatrixPayload":
        """Exactly one of matrix, locations or properties must be given."""
        sources = [self.matrix is not None, bool(self.locations), bool(self.properties)]
        if sum(sources) != 1:
            raise ValueError("Provide exactly one of matrix, locations or properties")
        if self.matrix is None and not self.criteria:
            raise ValueError("Criteria are required when building from locations or properties")
        return self


class ComparisonPayload(BaseModel):
    job_type: Literal["comparison"] = "comparison"
    locations: List[LocationMetrics]
    criteria: Dict[str, float]
    comparison_name: Optional[str] = None


class PredictionPayload(BaseModel):
    job_type: Literal["prediction"] = "prediction"
    activity: HistoricalActivity
    scenario: str = "destination_selection"
    context: Optional[Dict[str, Any]] = None


JobPayload = Annotated[
    Union[
        PatternAnalysisPayload,
        BiasDetectionPayload,
        DecisionMatrixPayload,
        ComparisonPayload,
        PredictionPayload,
    ],
    Field(discriminator="job_type"),
]

payload_adapter: TypeAdapter = TypeAdapter(JobPayload)


class ProcessingJob(BaseModel):
    """A queued unit of work and its lifecycle state."""

    id: str
    user_id: str
    job_type: JobType
    priority: JobPriority = JobPriority.MEDIUM
    payload: JobPayload
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    created_at: datetime = Field(default_factory=utc_now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def duration(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


class BroadcastEvent(BaseModel):
    """A message fanned out to topic subscribers."""

    topic: str
    event: str
    user_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utc_now)


class SchedulerMetrics(BaseModel):
    """Running counters for the worker loop."""

    queued_jobs: int = 0
    processing_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    cancelled_jobs: int = 0
    rejected_jobs: int = 0
    error_rate: float = 0.0
    average_processing_time: float = 0.0
