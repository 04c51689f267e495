"""Exception hierarchy for the analytics engine."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class AnalyticsError(Exception):
    """Base exception for all engine errors."""

    default_code = "ANALYTICS_ERROR"

    def __init__(
        self,
        message: str,
        *,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.context: Dict[str, Any] = context or {}
        self.suggestions: List[str] = suggestions or []
        self.timestamp = datetime.now(timezone.utc)

    def add_context(self, key: str, value: Any) -> "AnalyticsError":
        if key:
            self.context[key] = value
        return self

    def add_suggestion(self, suggestion: str) -> "AnalyticsError":
        if suggestion:
            self.suggestions.append(suggestion)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "suggestions": self.suggestions,
        }


class ValidationError(AnalyticsError, ValueError):
    """Malformed decision matrix input or job payload."""

    default_code = "VALIDATION_ERROR"


class JobExecutionError(AnalyticsError):
    """A compute component failed (or timed out) while running a job."""

    default_code = "JOB_EXECUTION_ERROR"

    def __init__(self, message: str, *, job_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.job_id = job_id
        if job_id:
            self.context.setdefault("job_id", job_id)


class QueueFullError(AnalyticsError):
    """The job queue reached its capacity bound."""

    default_code = "QUEUE_FULL"


class UnknownJobTypeError(ValidationError):
    """No worker is registered for the submitted job type."""

    default_code = "UNKNOWN_JOB_TYPE"
