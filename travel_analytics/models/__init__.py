"""Data models."""

from .data_models import (
    Scale,
    PatternType,
    BiasType,
    Severity,
    Criterion,
    Alternative,
    DecisionMatrixInput,
    DecisionMatrixResult,
    SensitivityResult,
    Recommendation,
    MatrixTemplate,
    LocationMetrics,
    PropertyRecord,
    LocationComparisonResult,
    JournalEntry,
    Trip,
    TripDestination,
    SavedLocation,
    LocationAnalyticsRecord,
    HistoricalActivity,
    PatternDetection,
    BehaviorPattern,
    BehaviorProfile,
    PatternAnalysisResult,
    BiasFinding,
    BehaviorInsights,
    BehaviorPrediction,
)
from .jobs import (
    JobType,
    JobPriority,
    JobStatus,
    ProcessingJob,
    BroadcastEvent,
    SchedulerMetrics,
)

__all__ = [
    "Scale",
    "PatternType",
    "BiasType",
    "Severity",
    "Criterion",
    "Alternative",
    "DecisionMatrixInput",
    "DecisionMatrixResult",
    "SensitivityResult",
    "Recommendation",
    "MatrixTemplate",
    "LocationMetrics",
    "PropertyRecord",
    "LocationComparisonResult",
    "JournalEntry",
    "Trip",
    "TripDestination",
    "SavedLocation",
    "LocationAnalyticsRecord",
    "HistoricalActivity",
    "PatternDetection",
    "BehaviorPattern",
    "BehaviorProfile",
    "PatternAnalysisResult",
    "BiasFinding",
    "BehaviorInsights",
    "BehaviorPrediction",
    "JobType",
    "JobPriority",
    "JobStatus",
    "ProcessingJob",
    "BroadcastEvent",
    "SchedulerMetrics",
]
