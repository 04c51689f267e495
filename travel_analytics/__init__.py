"""
Travel Analytics

Decision matrices, location comparison, behavior pattern and cognitive bias
analytics for travel journals, with an asynchronous job queue.
"""

__version__ = "0.1.0"
__author__ = "Travel Analytics Team"

from .orchestrator.main import AnalyticsOrchestrator
from .models.data_models import DecisionMatrixInput, HistoricalActivity, LocationMetrics

__all__ = [
    "AnalyticsOrchestrator",
    "DecisionMatrixInput",
    "HistoricalActivity",
    "LocationMetrics",
]
