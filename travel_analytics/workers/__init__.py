"""Job workers for the analytics components."""

from .base import BaseWorker
from .analytics import (
    PatternAnalysisWorker,
    BiasDetectionWorker,
    DecisionMatrixWorker,
    ComparisonWorker,
    PredictionWorker,
)

__all__ = [
    "BaseWorker",
    "PatternAnalysisWorker",
    "BiasDetectionWorker",
    "DecisionMatrixWorker",
    "ComparisonWorker",
    "PredictionWorker",
]
