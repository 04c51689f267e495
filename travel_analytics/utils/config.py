"""Configuration management."""

import os
from typing import Any, Dict, Optional
from dotenv import load_dotenv


class Config:
    """Configuration manager."""

    def __init__(self, env_file: Optional[str] = None):
        """Initialize configuration.

        Args:
            env_file: Path to .env file
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from environment variables."""
        # Logging Configuration
        self._config["log_level"] = os.getenv("LOG_LEVEL", "INFO")
        self._config["log_file"] = os.getenv("LOG_FILE", "./logs/travel_analytics.log")

        # Job Queue Configuration
        self._config["max_queue_size"] = int(os.getenv("MAX_QUEUE_SIZE", "1000"))
        self._config["worker_concurrency"] = int(os.getenv("WORKER_CONCURRENCY", "1"))
        self._config["tick_interval"] = float(os.getenv("TICK_INTERVAL", "1.0"))
        self._config["job_timeout_seconds"] = float(
            os.getenv("JOB_TIMEOUT_SECONDS", "30")
        )

        # Broadcast Configuration
        self._config["subscriber_buffer_size"] = int(
            os.getenv("SUBSCRIBER_BUFFER_SIZE", "100")
        )

        # Analysis Configuration
        self._config["sensitivity_delta"] = float(os.getenv("SENSITIVITY_DELTA", "0.10"))
        self._config["min_pattern_confidence"] = float(
            os.getenv("MIN_PATTERN_CONFIDENCE", "0.6")
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        return self._config.get(key, default)

    def set(self, key: str, value: Any):
        """Set configuration value.

        Args:
            key: Configuration key
            value: Configuration value
        """
        self._config[key] = value

    @property
    def log_level(self) -> str:
        """Get log level."""
        return self._config["log_level"]

    @property
    def log_file(self) -> str:
        """Get log file path."""
        return self._config["log_file"]

    @property
    def max_queue_size(self) -> int:
        """Get job queue capacity."""
        return self._config["max_queue_size"]

    @property
    def worker_concurrency(self) -> int:
        """Get number of jobs allowed to run at once."""
        return max(1, self._config["worker_concurrency"])

    @property
    def tick_interval(self) -> float:
        """Get worker loop tick interval in seconds."""
        return self._config["tick_interval"]

    @property
    def job_timeout_seconds(self) -> float:
        """Get per-job timeout in seconds."""
        return self._config["job_timeout_seconds"]

    @property
    def subscriber_buffer_size(self) -> int:
        """Get per-subscription channel size."""
        return self._config["subscriber_buffer_size"]

    @property
    def sensitivity_delta(self) -> float:
        """Get weight perturbation used by sensitivity analysis."""
        return self._config["sensitivity_delta"]

    @property
    def min_pattern_confidence(self) -> float:
        """Get confidence needed to accept a behavior pattern."""
        return self._config["min_pattern_confidence"]

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self._config.copy()
