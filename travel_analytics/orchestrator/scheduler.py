"""Priority job queue and the worker loop that drains it."""

import asyncio
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import (
    JobExecutionError,
    QueueFullError,
    UnknownJobTypeError,
    ValidationError,
)
from ..models.data_models import utc_now
from ..models.jobs import (
    JobPriority,
    JobStatus,
    JobType,
    ProcessingJob,
    SchedulerMetrics,
    payload_adapter,
)
from ..utils.config import Config
from ..utils.logging import get_logger, job_logger
from ..workers.base import BaseWorker
from .broadcaster import Broadcaster

JOBS_TOPIC = "jobs"


class JobScheduler:
    """Runs submitted jobs in priority order on a thread pool.

    The queue and job table are owned by the event loop and guarded by an
    ``asyncio.Lock``. Compute runs in a ``ThreadPoolExecutor`` sized by
    ``worker_concurrency``; with the default of one, jobs run strictly in
    sequence. A running job is never preempted by a higher priority arrival.
    """

    def __init__(self, config: Optional[Config] = None, broadcaster: Optional[Broadcaster] = None):
        """Initialize job scheduler.

        Args:
            config: Configuration instance
            broadcaster: Event fan-out used for job notifications
        """
        self.config = config or Config()
        self.logger = get_logger("scheduler")
        self.broadcaster = broadcaster or Broadcaster(self.config)
        self.workers: Dict[JobType, BaseWorker] = {}
        self.executor: Optional[ThreadPoolExecutor] = None

        self._queue: List[ProcessingJob] = []
        self._jobs: Dict[str, ProcessingJob] = {}
        self._in_flight: Dict[str, asyncio.Task] = {}
        self._metrics = SchedulerMetrics()
        self._lock = asyncio.Lock()
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._loop_task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def register_worker(self, worker: BaseWorker):
        """Route jobs of ``worker.job_type`` to a worker."""
        self.workers[worker.job_type] = worker
        self.logger.debug(f"Registered {worker.name} for {worker.job_type.value}")

    async def start(self):
        """Start the worker loop."""
        if self._running:
            return
        self._running = True
        self.executor = ThreadPoolExecutor(
            max_workers=self.config.worker_concurrency,
            thread_name_prefix="analytics-worker",
        )
        self._loop_task = asyncio.create_task(self._run_loop())
        self._wakeup.set()
        self.logger.info(
            f"Job scheduler started (concurrency={self.config.worker_concurrency})"
        )

    async def stop(self):
        """Stop the worker loop.

        In-flight jobs are allowed to finish; queued jobs stay pending.
        """
        if not self._running:
            return
        self._running = False
        self._wakeup.set()

        if self._loop_task:
            await self._loop_task
            self._loop_task = None

        in_flight = list(self._in_flight.values())
        if in_flight:
            await asyncio.gather(*in_flight, return_exceptions=True)

        if self.executor:
            self.executor.shutdown(wait=True)
            self.executor = None

        self.logger.info(f"Job scheduler stopped ({len(self._queue)} jobs left pending)")

    async def submit(
        self,
        user_id: str,
        job_type: Union[JobType, str],
        payload: Union[BaseModel, Mapping[str, Any]],
        priority: Union[JobPriority, str] = JobPriority.MEDIUM,
    ) -> str:
        """Validate and enqueue a job.

        Args:
            user_id: Owner of the job; events go to this user's channels
            job_type: One of the registered job types
            payload: Payload for the job type, as a model or a mapping
            priority: ``high``, ``medium`` or ``low``

        Returns:
            The new job id

        Raises:
            UnknownJobTypeError: If no worker handles ``job_type``
            ValidationError: If the priority or payload is malformed
            QueueFullError: If the queue is at capacity
        """
        job_type = self._resolve_job_type(job_type)
        try:
            priority = JobPriority(priority)
        except ValueError:
            raise ValidationError(
                f"Invalid priority: {priority}",
                context={"priority": str(priority)},
                suggestions=["Use one of: high, medium, low"],
            ) from None

        job = ProcessingJob(
            id=str(uuid.uuid4()),
            user_id=user_id,
            job_type=job_type,
            priority=priority,
            payload=self._validate_payload(job_type, payload),
        )

        async with self._lock:
            if len(self._queue) >= self.config.max_queue_size:
                self._metrics.rejected_jobs += 1
                self.logger.warning(f"Queue full, rejecting {job_type.value} job for {user_id}")
                raise QueueFullError(
                    f"Job queue is full ({self.config.max_queue_size} jobs)",
                    context={"max_queue_size": self.config.max_queue_size},
                    suggestions=["Retry once queued jobs have drained"],
                )

            position = len(self._queue)
            for index, queued in enumerate(self._queue):
                if queued.priority.rank < priority.rank:
                    position = index
                    break
            self._queue.insert(position, job)
            self._jobs[job.id] = job
            self._idle.clear()

        self.logger.info(
            f"Queued job {job.id} ({job_type.value}, {priority.value}) at position {position}"
        )
        self._wakeup.set()
        return job.id

    async def get_status(self, job_id: str) -> Optional[ProcessingJob]:
        """Snapshot of a job, or None if the id is unknown."""
        async with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy(deep=True) if job else None

    async def cancel(self, job_id: str) -> bool:
        """Cancel a pending job.

        Returns:
            True if the job was pending and is now cancelled
        """
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status != JobStatus.PENDING:
                return False
            self._queue.remove(job)
            job.status = JobStatus.CANCELLED
            job.completed_at = utc_now()
            self._metrics.cancelled_jobs += 1
            self._update_idle()

        self.logger.info(f"Cancelled job {job_id}")
        await self.broadcaster.publish(
            job.user_id, JOBS_TOPIC, "job_cancelled",
            {"job_id": job.id, "type": job.job_type.value},
        )
        return True

    async def discard(self, job_id: str) -> bool:
        """Forget a finished job once its result has been read.

        Returns:
            True if the job was completed, failed or cancelled and is now gone
        """
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None or not job.status.is_terminal:
                return False
            del self._jobs[job_id]

        self.logger.debug(f"Discarded job {job_id}")
        return True

    async def discard_finished(self, user_id: Optional[str] = None) -> int:
        """Forget every finished job, optionally only those of one user."""
        async with self._lock:
            finished = [
                job_id for job_id, job in self._jobs.items()
                if job.status.is_terminal and (user_id is None or job.user_id == user_id)
            ]
            for job_id in finished:
                del self._jobs[job_id]

        if finished:
            self.logger.info(f"Discarded {len(finished)} finished jobs")
        return len(finished)

    async def drain(self, timeout: Optional[float] = None):
        """Wait until the queue is empty and no job is running.

        Raises:
            asyncio.TimeoutError: If the scheduler is still busy after ``timeout``
        """
        if timeout is None:
            await self._idle.wait()
        else:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)

    def get_metrics(self) -> SchedulerMetrics:
        return self._metrics.model_copy(
            update={
                "queued_jobs": len(self._queue),
                "processing_jobs": len(self._in_flight),
            }
        )

    def jobs(self, user_id: Optional[str] = None) -> List[ProcessingJob]:
        """Snapshots of known jobs, oldest first."""
        selected = [
            job for job in self._jobs.values()
            if user_id is None or job.user_id == user_id
        ]
        return [job.model_copy(deep=True) for job in selected]

    def _resolve_job_type(self, job_type: Union[JobType, str]) -> JobType:
        try:
            resolved = JobType(job_type)
        except ValueError:
            raise UnknownJobTypeError(
                f"Unknown job type: {job_type}",
                context={"job_type": str(job_type)},
                suggestions=[f"Use one of: {', '.join(t.value for t in JobType)}"],
            ) from None
        if resolved not in self.workers:
            raise UnknownJobTypeError(
                f"No worker registered for job type: {resolved.value}",
                context={"job_type": resolved.value},
            )
        return resolved

    def _validate_payload(self, job_type: JobType, payload: Union[BaseModel, Mapping[str, Any]]):
        if isinstance(payload, BaseModel):
            data = payload.model_dump()
        elif isinstance(payload, Mapping):
            data = dict(payload)
        else:
            raise ValidationError(
                f"Payload for {job_type.value} must be a mapping",
                context={"job_type": job_type.value},
            )

        declared = data.get("job_type", job_type.value)
        if declared != job_type.value:
            raise ValidationError(
                f"Payload is for {declared}, not {job_type.value}",
                context={"job_type": job_type.value},
            )
        data["job_type"] = job_type.value

        try:
            return payload_adapter.validate_python(data)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"][1:]) or "payload"
            raise ValidationError(
                f"Invalid {job_type.value} payload at {location}: {first['msg']}",
                context={"job_type": job_type.value, "field": location},
            ) from e

    def _update_idle(self):
        # Caller holds the lock
        if not self._queue and not self._in_flight:
            self._idle.set()
        else:
            self._idle.clear()

    async def _run_loop(self):
        """Tick until stopped, dispatching whenever there is capacity."""
        while self._running:
            try:
                await self._dispatch()
            except Exception as e:
                self.logger.error(f"Worker loop error: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.config.tick_interval)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()

    async def _dispatch(self):
        async with self._lock:
            while (
                self._running
                and self._queue
                and len(self._in_flight) < self.config.worker_concurrency
            ):
                job = self._queue.pop(0)
                job.status = JobStatus.PROCESSING
                job.started_at = utc_now()
                self._in_flight[job.id] = asyncio.create_task(self._run_job(job))

    async def _run_job(self, job: ProcessingJob):
        worker = self.workers[job.job_type]
        try:
            await self.broadcaster.publish(
                job.user_id, JOBS_TOPIC, "job_started",
                {"job_id": job.id, "type": job.job_type.value},
            )
            try:
                result = await self._execute(worker, job)
            except JobExecutionError as e:
                await self._fail(job, e)
            except Exception as e:
                await self._fail(job, JobExecutionError(str(e), job_id=job.id))
            else:
                await self._complete(worker, job, result)
        except Exception as e:
            job_logger(self.logger, job).error(f"Error finishing job: {e}", exc_info=True)
        finally:
            async with self._lock:
                self._in_flight.pop(job.id, None)
                self._update_idle()
            self._wakeup.set()

    async def _execute(self, worker: BaseWorker, job: ProcessingJob) -> Dict[str, Any]:
        """Run the worker on the thread pool under the per-job timeout."""
        executor = self.executor
        loop = asyncio.get_running_loop()
        timeout = self.config.job_timeout_seconds
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(executor, worker.execute, job),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            self._recycle_executor(executor)
            raise JobExecutionError(
                f"Job timed out after {timeout}s",
                job_id=job.id,
                context={"timeout_seconds": timeout},
            ) from None

    def _recycle_executor(self, stale: Optional[ThreadPoolExecutor]):
        # A timed-out thread cannot be interrupted; give later jobs fresh threads
        if stale is None or stale is not self.executor:
            return
        stale.shutdown(wait=False)
        self.executor = ThreadPoolExecutor(
            max_workers=self.config.worker_concurrency,
            thread_name_prefix="analytics-worker",
        )
        self.logger.warning("Replaced worker thread pool after a job timeout")

    async def _complete(self, worker: BaseWorker, job: ProcessingJob, result: Dict[str, Any]):
        async with self._lock:
            job.status = JobStatus.COMPLETED
            job.progress = 100
            job.result = result
            job.completed_at = utc_now()
            duration = job.duration or 0.0

            self._metrics.completed_jobs += 1
            count = self._metrics.completed_jobs
            self._metrics.average_processing_time = (
                self._metrics.average_processing_time * (count - 1) + duration
            ) / count
            self._refresh_error_rate()

        job_logger(self.logger, job).info(f"Completed in {duration:.3f}s")
        await self.broadcaster.publish(
            job.user_id, JOBS_TOPIC, "job_completed",
            {"job_id": job.id, "type": job.job_type.value, "result": result, "duration": duration},
        )
        await self.broadcaster.publish(
            job.user_id, worker.result_topic, worker.result_event,
            {"job_id": job.id, **worker.result_payload(result)},
        )

    async def _fail(self, job: ProcessingJob, error: JobExecutionError):
        async with self._lock:
            job.status = JobStatus.FAILED
            job.error = error.message
            job.completed_at = utc_now()
            self._metrics.failed_jobs += 1
            self._refresh_error_rate()

        job_logger(self.logger, job).error(f"Failed: {error.message}")
        await self.broadcaster.publish(
            job.user_id, JOBS_TOPIC, "job_failed",
            {"job_id": job.id, "type": job.job_type.value, "error": error.message},
        )

    def _refresh_error_rate(self):
        finished = self._metrics.completed_jobs + self._metrics.failed_jobs
        self._metrics.error_rate = self._metrics.failed_jobs / finished if finished else 0.0
