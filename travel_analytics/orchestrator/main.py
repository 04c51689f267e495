"""Main orchestrator wiring the analytics components to the job scheduler."""

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..analysis.biases import BiasDetector
from ..analysis.comparison import ComparisonScorer
from ..analysis.decision_matrix import DecisionMatrixEngine
from ..analysis.patterns import InMemoryPatternRepository, PatternAnalyzer, PatternRepository
from ..analysis.recommendation_engine import BehaviorAdvisor
from ..exceptions import ValidationError
from ..models.data_models import (
    BehaviorInsights,
    BehaviorPattern,
    BehaviorPrediction,
    BiasFinding,
    Criterion,
    DecisionMatrixInput,
    DecisionMatrixResult,
    HistoricalActivity,
    LocationComparisonResult,
    LocationMetrics,
    MatrixTemplate,
    PatternAnalysisResult,
    PatternType,
    PropertyRecord,
)
from ..models.jobs import JobPriority, JobType, ProcessingJob, SchedulerMetrics
from ..utils.config import Config
from ..utils.logging import get_logger
from ..workers import (
    BiasDetectionWorker,
    ComparisonWorker,
    DecisionMatrixWorker,
    PatternAnalysisWorker,
    PredictionWorker,
)
from .broadcaster import Broadcaster, Subscription
from .scheduler import JobScheduler


def _as_model(model_class, value, label: str):
    if isinstance(value, model_class):
        return value
    try:
        return model_class.model_validate(value)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or label
        raise ValidationError(
            f"Invalid {label} at {location}: {first['msg']}",
            context={"field": location},
        ) from e


class AnalyticsOrchestrator:
    """Composition root for the analytics engine.

    Builds one instance of every component, registers a worker per job type
    and exposes both the asynchronous job API and direct synchronous calls.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        repository: Optional[PatternRepository] = None,
    ):
        """Initialize orchestrator.

        Args:
            config: Configuration instance
            repository: Pattern store; defaults to an in-memory repository
        """
        self.config = config or Config()
        self.logger = get_logger("orchestrator")

        self.broadcaster = Broadcaster(self.config)
        self.scheduler = JobScheduler(self.config, self.broadcaster)

        self.repository = repository if repository is not None else InMemoryPatternRepository()
        self.advisor = BehaviorAdvisor()
        self.decision_engine = DecisionMatrixEngine(self.config)
        self.comparison_scorer = ComparisonScorer()
        self.pattern_analyzer = PatternAnalyzer(self.config, self.repository, self.advisor)
        self.bias_detector = BiasDetector()

        for worker in (
            PatternAnalysisWorker(self.pattern_analyzer),
            BiasDetectionWorker(self.bias_detector, self.pattern_analyzer, self.advisor),
            DecisionMatrixWorker(self.decision_engine),
            ComparisonWorker(self.comparison_scorer),
            PredictionWorker(self.pattern_analyzer, self.advisor),
        ):
            self.scheduler.register_worker(worker)

    async def start(self):
        """Start the orchestrator."""
        await self.scheduler.start()
        self.logger.info("Orchestrator started")

    async def stop(self):
        """Stop the orchestrator."""
        await self.scheduler.stop()
        self.logger.info("Orchestrator stopped")

    async def __aenter__(self) -> "AnalyticsOrchestrator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    # ------------------------------------------------------------------
    # Job API
    # ------------------------------------------------------------------

    async def submit_job(
        self,
        user_id: str,
        job_type: Union[JobType, str],
        payload: Union[BaseModel, Mapping[str, Any]],
        priority: Union[JobPriority, str] = JobPriority.MEDIUM,
    ) -> str:
        """Queue a job; see ``JobScheduler.submit``."""
        return await self.scheduler.submit(user_id, job_type, payload, priority)

    async def get_job_status(self, job_id: str) -> Optional[ProcessingJob]:
        return await self.scheduler.get_status(job_id)

    async def cancel_job(self, job_id: str) -> bool:
        return await self.scheduler.cancel(job_id)

    async def discard_job(self, job_id: str) -> bool:
        return await self.scheduler.discard(job_id)

    async def discard_finished_jobs(self, user_id: Optional[str] = None) -> int:
        return await self.scheduler.discard_finished(user_id)

    async def drain(self, timeout: Optional[float] = None):
        await self.scheduler.drain(timeout)

    def get_metrics(self) -> SchedulerMetrics:
        return self.scheduler.get_metrics()

    def get_worker_stats(self) -> List[Dict[str, Any]]:
        """Processed and failed counts per registered worker."""
        return [worker.get_stats() for worker in self.scheduler.workers.values()]

    def subscribe(self, user_id: str, topic: str) -> Subscription:
        return self.broadcaster.subscribe(user_id, topic)

    def unsubscribe(self, user_id: str, topic: str) -> int:
        return self.broadcaster.unsubscribe(user_id, topic)

    def disconnect(self, user_id: str) -> int:
        return self.broadcaster.disconnect(user_id)

    # ------------------------------------------------------------------
    # Direct calls
    # ------------------------------------------------------------------

    def create_decision_matrix(
        self, matrix: Union[DecisionMatrixInput, Mapping[str, Any]]
    ) -> DecisionMatrixResult:
        return self.decision_engine.create(matrix)

    def update_decision_matrix(
        self, existing: DecisionMatrixResult, **changes: Any
    ) -> DecisionMatrixResult:
        return self.decision_engine.update(existing, **changes)

    def get_matrix_templates(self, matrix_type: str) -> List[MatrixTemplate]:
        return self.decision_engine.get_matrix_templates(matrix_type)

    def create_location_matrix(
        self,
        user_id: str,
        locations: List[Union[LocationMetrics, Mapping[str, Any]]],
        criteria: Mapping[str, Union[Criterion, Mapping[str, Any]]],
        name: Optional[str] = None,
    ) -> DecisionMatrixResult:
        metrics = [_as_model(LocationMetrics, item, "location") for item in locations]
        return self.decision_engine.create_location_matrix(user_id, metrics, criteria, name)

    def create_property_matrix(
        self,
        user_id: str,
        properties: List[Union[PropertyRecord, Mapping[str, Any]]],
        criteria: Mapping[str, Union[Criterion, Mapping[str, Any]]],
        name: Optional[str] = None,
    ) -> DecisionMatrixResult:
        records = [_as_model(PropertyRecord, item, "property") for item in properties]
        return self.decision_engine.create_property_matrix(user_id, records, criteria, name)

    def compare_locations(
        self,
        locations: List[Union[LocationMetrics, Mapping[str, Any]]],
        criteria: Dict[str, float],
        comparison_name: Optional[str] = None,
    ) -> LocationComparisonResult:
        metrics = [_as_model(LocationMetrics, item, "location") for item in locations]
        return self.comparison_scorer.compare(metrics, criteria, comparison_name)

    def analyze_patterns(
        self, user_id: str, activity: Union[HistoricalActivity, Mapping[str, Any]]
    ) -> PatternAnalysisResult:
        """Detect and store a user's behavior patterns."""
        return self.pattern_analyzer.analyze(
            user_id, _as_model(HistoricalActivity, activity, "activity")
        )

    def detect_biases(
        self,
        activity: Union[HistoricalActivity, Mapping[str, Any]],
        include_low_confidence: bool = False,
    ) -> List[BiasFinding]:
        activity = _as_model(HistoricalActivity, activity, "activity")
        if include_low_confidence:
            return self.bias_detector.detect_all(activity)
        return self.bias_detector.detect(activity)

    def behavior_insights(
        self, user_id: str, activity: Union[HistoricalActivity, Mapping[str, Any]]
    ) -> BehaviorInsights:
        activity = _as_model(HistoricalActivity, activity, "activity")
        _, profile = self.pattern_analyzer.evaluate(user_id, activity)
        return self.advisor.insights(profile, self.bias_detector.detect(activity))

    def predict(
        self,
        user_id: str,
        activity: Union[HistoricalActivity, Mapping[str, Any]],
        scenario: str = "destination_selection",
        context: Optional[Dict[str, Any]] = None,
    ) -> BehaviorPrediction:
        activity = _as_model(HistoricalActivity, activity, "activity")
        _, profile = self.pattern_analyzer.evaluate(user_id, activity)
        return self.advisor.predict(profile, scenario, context)

    def list_patterns(
        self,
        user_id: str,
        pattern_type: Optional[Union[PatternType, str]] = None,
        category: Optional[str] = None,
        only_active: bool = True,
    ) -> List[BehaviorPattern]:
        if pattern_type is not None:
            pattern_type = PatternType(pattern_type)
        return self.pattern_analyzer.list_patterns(user_id, pattern_type, category, only_active)
