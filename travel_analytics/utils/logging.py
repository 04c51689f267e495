"""Logging for the analytics engine.

Every module logs through a child of the ``travel_analytics`` logger so a
single ``setup_logging`` call controls the whole package. Job processing
code wraps its logger with ``job_logger`` to tag each line with the job and
the user it belongs to.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, MutableMapping, Optional, Tuple

ROOT_LOGGER_NAME = "travel_analytics"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    log_format: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """Configure the package logger.

    Repeated calls replace the handlers installed by the previous call.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Rotating log file path (optional)
        log_format: Custom log format (optional)
        console_output: Whether to also log to stderr

    Returns:
        The ``travel_analytics`` logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers.clear()

    formatter = logging.Formatter(log_format or DEFAULT_FORMAT)

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger of the package logger, e.g. ``get_logger("scheduler")``."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class JobLogAdapter(logging.LoggerAdapter):
    """Prefixes messages with the job id and owning user."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[job {self.extra['job_id']} user {self.extra['user_id']}] {msg}", kwargs


def job_logger(logger: logging.Logger, job: Any) -> JobLogAdapter:
    """Wrap a logger for messages about one processing job."""
    return JobLogAdapter(logger, {"job_id": job.id, "user_id": job.user_id})
