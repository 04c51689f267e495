"""Integration tests for the complete system."""

import pytest

from travel_analytics.models.jobs import JobStatus
from travel_analytics.orchestrator.main import AnalyticsOrchestrator

RESULT_TOPICS = {
    "patterns": "patterns_updated",
    "biases": "biases_detected",
    "decisions": "decision_matrix_result",
    "comparisons": "comparison_result",
    "predictions": "prediction_result",
}


class TestSystemIntegration:
    """Test complete system integration."""

    @pytest.mark.asyncio
    async def test_every_job_type(self, test_config, sample_activity, sample_locations, sample_matrix):
        """Test one job of each type runs to completion with its events."""
        orchestrator = AnalyticsOrchestrator(test_config)
        jobs_channel = orchestrator.subscribe("user-1", "jobs")
        result_channels = {topic: orchestrator.subscribe("user-1", topic) for topic in RESULT_TOPICS}
        activity = sample_activity.model_dump(mode="json")

        submissions = [
            ("pattern_analysis", {"activity": activity}, "low"),
            ("bias_detection", {"activity": activity}, "medium"),
            ("decision_matrix", {"matrix": sample_matrix}, "high"),
            ("comparison", {
                "locations": [loc.model_dump() for loc in sample_locations],
                "criteria": {"cost": 0.5, "climate": 0.5},
            }, "medium"),
            ("prediction", {"activity": activity, "context": {"budget": "low"}}, "low"),
        ]

        job_ids = {}
        for job_type, payload, priority in submissions:
            job_ids[job_type] = await orchestrator.submit_job("user-1", job_type, payload, priority)

        try:
            await orchestrator.start()
            await orchestrator.drain(timeout=10)
        finally:
            await orchestrator.stop()

        for job_type, job_id in job_ids.items():
            job = await orchestrator.get_job_status(job_id)
            assert job.status == JobStatus.COMPLETED, f"{job_type}: {job.error}"
            assert job.result["type"] == job_type

        # high, then the two mediums in order, then the two lows in order
        started = [e.payload["type"] for e in jobs_channel.drain() if e.event == "job_started"]
        assert started == [
            "decision_matrix", "bias_detection", "comparison", "pattern_analysis", "prediction",
        ]

        for topic, event_name in RESULT_TOPICS.items():
            event = await result_channels[topic].get(timeout=1)
            assert event.event == event_name
            assert event.payload["job_id"] in job_ids.values()

        metrics = orchestrator.get_metrics()
        assert metrics.completed_jobs == 5
        assert metrics.error_rate == 0.0
        assert metrics.queued_jobs == 0

    @pytest.mark.asyncio
    async def test_results_match_direct_calls(self, test_config, sample_activity, sample_matrix):
        """Test job results agree with the synchronous API."""
        orchestrator = AnalyticsOrchestrator(test_config)

        async with orchestrator:
            matrix_job = await orchestrator.submit_job(
                "user-1", "decision_matrix", {"matrix": sample_matrix}
            )
            prediction_job = await orchestrator.submit_job(
                "user-1", "prediction", {"activity": sample_activity.model_dump()}
            )
            await orchestrator.drain(timeout=10)

        direct = orchestrator.create_decision_matrix(sample_matrix)
        matrix_result = (await orchestrator.get_job_status(matrix_job)).result["matrix"]
        assert matrix_result["rankings"] == direct.rankings
        assert matrix_result["recommendation"]["confidence"] == pytest.approx(
            direct.recommendation.confidence
        )

        prediction = (await orchestrator.get_job_status(prediction_job)).result["prediction"]
        assert prediction == orchestrator.predict("user-1", sample_activity).model_dump(mode="json")

    @pytest.mark.asyncio
    async def test_patterns_job_then_listing(self, test_config, sample_activity):
        """Test patterns stored by a job are visible to later queries."""
        orchestrator = AnalyticsOrchestrator(test_config)
        updates = orchestrator.subscribe("user-1", "patterns")

        async with orchestrator:
            await orchestrator.submit_job(
                "user-1", "pattern_analysis", {"activity": sample_activity.model_dump()}
            )
            await orchestrator.drain(timeout=10)

        event = await updates.get(timeout=1)
        stored = orchestrator.list_patterns("user-1")

        assert len(event.payload["patterns"]["patterns"]) == len(stored)
        assert {p.category for p in orchestrator.list_patterns("user-1", "bias")} == {"confirmation"}

    @pytest.mark.asyncio
    async def test_failure_isolation(self, test_config, sample_locations, tie_matrix):
        """Test one user's failing job does not affect another user's job."""
        orchestrator = AnalyticsOrchestrator(test_config)
        other_user = orchestrator.subscribe("user-2", "jobs")
        tie_matrix["criteria"]["quality"]["weight"] = 0.9

        async with orchestrator:
            failing = await orchestrator.submit_job(
                "user-1", "decision_matrix", {"matrix": tie_matrix}, priority="high"
            )
            passing = await orchestrator.submit_job("user-2", "comparison", {
                "locations": [loc.model_dump() for loc in sample_locations],
                "criteria": {"safety": 1.0},
            })
            await orchestrator.drain(timeout=10)

        assert (await orchestrator.get_job_status(failing)).status == JobStatus.FAILED
        assert (await orchestrator.get_job_status(passing)).status == JobStatus.COMPLETED
        assert [e.event for e in other_user.drain()] == ["job_started", "job_completed"]
        assert orchestrator.get_metrics().error_rate == pytest.approx(0.5)
