"""Base worker class for all job workers."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..exceptions import AnalyticsError, JobExecutionError
from ..models.jobs import JobType, ProcessingJob
from ..utils.logging import get_logger, job_logger


class BaseWorker(ABC):
    """Abstract base class for job workers.

    A worker owns one job type. ``process`` is a plain synchronous function
    of the job payload so the scheduler can run it on a thread pool.
    """

    job_type: JobType
    result_topic: str = "jobs"
    result_event: str = "job_result"

    def __init__(self, name: Optional[str] = None):
        """Initialize base worker.

        Args:
            name: Worker name for logging
        """
        self.name = name or self.__class__.__name__
        self.logger = get_logger(f"workers.{self.name}")
        self.processed = 0
        self.failed = 0

    @abstractmethod
    def process(self, job: ProcessingJob) -> Dict[str, Any]:
        """Compute the result for a job.

        Args:
            job: Job to process

        Returns:
            JSON-friendly result dictionary
        """
        pass

    def execute(self, job: ProcessingJob) -> Dict[str, Any]:
        """Run ``process`` and normalise failures.

        Args:
            job: Job to execute

        Returns:
            Result dictionary

        Raises:
            JobExecutionError: If processing fails for any reason
        """
        log = job_logger(self.logger, job)
        start_time = datetime.now(timezone.utc)
        log.info("Starting")

        try:
            result = self.process(job)
        except JobExecutionError:
            self.failed += 1
            raise
        except AnalyticsError as e:
            self.failed += 1
            log.error(f"Failed: {e}")
            raise JobExecutionError(
                e.message, job_id=job.id, context=e.context, suggestions=e.suggestions
            ) from e
        except Exception as e:
            self.failed += 1
            log.error(f"Failed: {e}", exc_info=True)
            raise JobExecutionError(str(e) or e.__class__.__name__, job_id=job.id) from e
        finally:
            execution_time = (datetime.now(timezone.utc) - start_time).total_seconds()
            log.debug(f"Took {execution_time:.2f}s")

        self.processed += 1
        log.info("Completed")
        return result

    def result_payload(self, result: Dict[str, Any]) -> Dict[str, Any]:
        """Body of the job-type specific result event."""
        return result

    def get_stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "job_type": self.job_type.value,
            "processed": self.processed,
            "failed": self.failed,
        }
