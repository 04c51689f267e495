"""Orchestration components for the analytics engine."""

from .broadcaster import Broadcaster, Subscription, channel_name
from .scheduler import JobScheduler
from .main import AnalyticsOrchestrator

__all__ = [
    "AnalyticsOrchestrator",
    "Broadcaster",
    "JobScheduler",
    "Subscription",
    "channel_name",
]
