"""Workers that run the analytics components for each job type."""

from typing import Any, Dict

from ..analysis.biases import BiasDetector
from ..analysis.comparison import ComparisonScorer
from ..analysis.decision_matrix import DecisionMatrixEngine
from ..analysis.patterns import PatternAnalyzer
from ..analysis.recommendation_engine import BehaviorAdvisor
from ..models.jobs import JobType, ProcessingJob
from .base import BaseWorker


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json")


class PatternAnalysisWorker(BaseWorker):
    """Detect and store behavior patterns."""

    job_type = JobType.PATTERN_ANALYSIS
    result_topic = "patterns"
    result_event = "patterns_updated"

    def __init__(self, analyzer: PatternAnalyzer):
        super().__init__()
        self.analyzer = analyzer

    def process(self, job: ProcessingJob) -> Dict[str, Any]:
        payload = job.payload
        analysis = self.analyzer.analyze(job.user_id, payload.activity)
        return {
            "type": self.job_type.value,
            "patterns": _dump(analysis),
            "context": payload.context,
        }

    def result_payload(self, result: Dict[str, Any]) -> Dict[str, Any]:
        return {"patterns": result["patterns"]}


class BiasDetectionWorker(BaseWorker):
    """Detect cognitive biases and summarize them as insights."""

    job_type = JobType.BIAS_DETECTION
    result_topic = "biases"
    result_event = "biases_detected"

    def __init__(self, detector: BiasDetector, analyzer: PatternAnalyzer, advisor: BehaviorAdvisor):
        super().__init__()
        self.detector = detector
        self.analyzer = analyzer
        self.advisor = advisor

    def process(self, job: ProcessingJob) -> Dict[str, Any]:
        payload = job.payload
        if payload.include_low_confidence:
            findings = self.detector.detect_all(payload.activity)
        else:
            findings = self.detector.detect(payload.activity)

        _, profile = self.analyzer.evaluate(job.user_id, payload.activity)
        insights = self.advisor.insights(profile, findings)

        return {
            "type": self.job_type.value,
            "biases": [_dump(f) for f in findings],
            "insights": _dump(insights),
        }


class DecisionMatrixWorker(BaseWorker):
    """Evaluate a decision matrix, or build one from locations or properties."""

    job_type = JobType.DECISION_MATRIX
    result_topic = "decisions"
    result_event = "decision_matrix_result"

    def __init__(self, engine: DecisionMatrixEngine):
        super().__init__()
        self.engine = engine

    def process(self, job: ProcessingJob) -> Dict[str, Any]:
        payload = job.payload
        if payload.matrix is not None:
            matrix = payload.matrix
            if matrix.user_id is None:
                matrix = matrix.model_copy(update={"user_id": job.user_id})
            result = self.engine.create(matrix)
        elif payload.locations:
            result = self.engine.create_location_matrix(
                job.user_id, payload.locations, payload.criteria, payload.name
            )
        else:
            result = self.engine.create_property_matrix(
                job.user_id, payload.properties, payload.criteria, payload.name
            )

        return {"type": self.job_type.value, "matrix": _dump(result)}


class ComparisonWorker(BaseWorker):
    """Compare locations head to head."""

    job_type = JobType.COMPARISON
    result_topic = "comparisons"
    result_event = "comparison_result"

    def __init__(self, scorer: ComparisonScorer):
        super().__init__()
        self.scorer = scorer

    def process(self, job: ProcessingJob) -> Dict[str, Any]:
        payload = job.payload
        comparison = self.scorer.compare(
            payload.locations, payload.criteria, payload.comparison_name
        )
        return {"type": self.job_type.value, "comparison": _dump(comparison)}

    def result_payload(self, result: Dict[str, Any]) -> Dict[str, Any]:
        return {"comparison": result["comparison"]}


class PredictionWorker(BaseWorker):
    """Predict a choice for a scenario from the user's patterns."""

    job_type = JobType.PREDICTION
    result_topic = "predictions"
    result_event = "prediction_result"

    def __init__(self, analyzer: PatternAnalyzer, advisor: BehaviorAdvisor):
        super().__init__()
        self.analyzer = analyzer
        self.advisor = advisor

    def process(self, job: ProcessingJob) -> Dict[str, Any]:
        payload = job.payload
        _, profile = self.analyzer.evaluate(job.user_id, payload.activity)
        prediction = self.advisor.predict(profile, payload.scenario, payload.context)
        return {
            "type": self.job_type.value,
            "prediction": _dump(prediction),
            "scenario": payload.scenario,
        }

    def result_payload(self, result: Dict[str, Any]) -> Dict[str, Any]:
        return {"prediction": result["prediction"], "scenario": result["scenario"]}
