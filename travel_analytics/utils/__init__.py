"""Utility modules."""

from .config import Config
from .logging import setup_logging, get_logger, job_logger

__all__ = [
    "Config",
    "setup_logging",
    "get_logger",
    "job_logger",
]
