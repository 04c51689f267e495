"""Test behavior pattern detection."""

import pytest
from datetime import datetime, timedelta

from travel_analytics.analysis.patterns import (
    InMemoryPatternRepository, PatternAnalyzer, grade, season_of
)
from travel_analytics.models.data_models import (
    BehaviorPattern, HistoricalActivity, LocationAnalyticsRecord, PatternType, utc_now
)


@pytest.fixture
def repository():
    """Empty in-memory pattern store."""
    return InMemoryPatternRepository()


@pytest.fixture
def analyzer(test_config, repository):
    """Analyzer backed by an in-memory repository."""
    return PatternAnalyzer(test_config, repository)


class TestHelpers:
    """Test pattern helpers."""

    def test_grade_thresholds_are_moderate(self):
        """Test exactly 0.7 and 0.3 grade as moderate."""
        assert grade(0.71) == "high"
        assert grade(0.7) == "moderate"
        assert grade(1 - 0.3) == "moderate"
        assert grade(0.3) == "moderate"
        assert grade(0.29) == "low"

    def test_season_of(self):
        """Test month to season mapping in three month blocks from January."""
        assert season_of(datetime(2024, 2, 10)) == "winter"
        assert season_of(datetime(2024, 6, 1)) == "spring"
        assert season_of(datetime(2024, 8, 15)) == "summer"
        assert season_of(datetime(2024, 12, 24)) == "autumn"


class TestInsufficientData:
    """Test the insufficient data sentinel."""

    def test_two_data_points(self, analyzer):
        """Test two data points give confidence 0 and the sentinel marker."""
        activity = HistoricalActivity(location_analytics=[
            LocationAnalyticsRecord(location_id="a", weather_rating=0.9),
            LocationAnalyticsRecord(location_id="b", weather_rating=0.8),
        ])

        detection = analyzer.detect_climate_preference(activity)

        assert detection.confidence == 0
        assert detection.insufficient_data
        assert detection.payload == {"insufficient_data": True}

    def test_empty_history(self, analyzer):
        """Test every detector degrades gracefully on an empty history."""
        detections = analyzer.detect_all(HistoricalActivity())

        assert len(detections) == 12
        assert all(d.insufficient_data for d in detections)
        assert all(d.confidence == 0 for d in detections)

    def test_empty_history_analysis(self, analyzer, repository):
        """Test analysis of an empty history stores nothing."""
        result = analyzer.analyze("user-1", HistoricalActivity())

        assert result.patterns == []
        assert result.profile.overall_reliability == 0
        assert len(repository) == 0
        assert result.recommendations == [
            "Consider using structured decision-making tools to improve consistency"
        ]

    def test_style_without_keywords(self, analyzer, entry_factory):
        """Test journal entries without style vocabulary are insufficient."""
        activity = HistoricalActivity(journal_entries=entry_factory(["abc", "def", "ghi"]))
        assert analyzer.detect_exploration_style(activity).insufficient_data


class TestDetectors:
    """Test individual detectors on the sample history."""

    def test_climate_preference(self, analyzer, sample_activity):
        """Test warm climate preference."""
        detection = analyzer.detect_climate_preference(sample_activity)

        assert detection.payload["preference"] == "warm"
        assert detection.frequency == 7
        assert detection.confidence == pytest.approx(0.7)
        assert detection.payload["consistency"] > 0.9

    def test_cost_preference(self, analyzer, sample_activity):
        """Test low affordability scores mean high cost sensitivity."""
        detection = analyzer.detect_cost_preference(sample_activity)

        assert detection.payload["sensitivity"] == "high"
        assert detection.payload["average_score"] == pytest.approx(0.2)

    def test_activity_preference(self, analyzer, sample_activity):
        """Test aggregated activity preferences."""
        detection = analyzer.detect_activity_preference(sample_activity)

        assert detection.payload["top_activity"] == "outdoor"
        assert detection.payload["top_score"] == pytest.approx(0.9)
        assert detection.payload["preferences"]["nightlife"] == 0
        assert detection.payload["diversity"] == pytest.approx(1.0)

    def test_timing_preference(self, analyzer, sample_activity):
        """Test seasonal distribution of trips."""
        detection = analyzer.detect_timing_preference(sample_activity)

        assert sum(detection.payload["seasonal_distribution"].values()) == 5
        assert detection.payload["average_duration"] == pytest.approx(5.0)
        assert detection.confidence == pytest.approx(0.5)

    def test_decision_speed(self, analyzer, sample_activity):
        """Test saving three days before departure is a fast decision."""
        detection = analyzer.detect_decision_speed(sample_activity)

        assert detection.payload["speed"] == "fast"
        assert detection.payload["average_decision_time"] == pytest.approx(3.0)
        assert detection.payload["action_rate"] == pytest.approx(5 / 6)
        assert detection.frequency == 5

    def test_decision_speed_uses_earliest_trip(self, analyzer, trip_factory, saved_factory):
        """Test the earliest trip to a saved location is the decision point."""
        saved = saved_factory([("x", "A"), ("y", "B"), ("z", "C")])
        for location in saved:
            location.saved_at = trip_factory("t", 100, "x").start_date
        trips = [
            trip_factory("late", 10, "x"),
            trip_factory("early", 60, "x"),
            trip_factory("y1", 90, "y"),
        ]

        detection = analyzer.detect_decision_speed(
            HistoricalActivity(trips=trips, saved_locations=saved)
        )

        # x: 100 - 60 = 40 days, y: 100 - 90 = 10 days, z never visited
        assert detection.payload["average_decision_time"] == pytest.approx(25.0)
        assert detection.payload["speed"] == "moderate"
        assert detection.frequency == 2

    def test_decision_factors(self, analyzer, sample_activity):
        """Test the factor most correlated with visits is primary."""
        detection = analyzer.detect_decision_factors(sample_activity)

        correlations = detection.payload["correlations"]
        # constant ratings have no correlation
        assert correlations["culture"] == 0.0
        assert correlations["safety"] == 0.0
        assert detection.payload["primary_factor"] in ("weather", "cost")
        assert len(detection.payload["factor_importance"]) == 5

    def test_decision_consistency(self, analyzer, sample_activity):
        """Test consistency across saved location attributes."""
        detection = analyzer.detect_decision_consistency(sample_activity)

        assert detection.payload["climate_consistency"] == pytest.approx(1.0)
        assert detection.payload["country_consistency"] == pytest.approx(4 / 6)
        assert detection.payload["level"] == "high"

    def test_exploration_frequency(self, analyzer, sample_activity):
        """Test gaps between the end of one trip and the start of the next."""
        detection = analyzer.detect_exploration_frequency(sample_activity)

        assert detection.payload["average_interval"] == pytest.approx(20.0)
        assert detection.payload["level"] == "high"
        assert detection.payload["consistency"] == pytest.approx(1.0)
        assert detection.confidence == pytest.approx(0.9)

    def test_exploration_depth(self, analyzer, sample_activity):
        """Test short trips with few entries are shallow."""
        detection = analyzer.detect_exploration_depth(sample_activity)

        assert detection.payload["average_journal_entries"] == pytest.approx(1.2)
        assert detection.payload["level"] == "shallow"

    def test_exploration_style(self, analyzer, entry_factory):
        """Test the dominant style from journal vocabulary."""
        activity = HistoricalActivity(journal_entries=entry_factory([
            "A comfortable and familiar hotel",
            "Easy and relaxed day",
            "We planned the schedule",
        ]))

        detection = analyzer.detect_exploration_style(activity)

        assert detection.payload["dominant_style"] == "comfortable"
        assert detection.payload["style_profile"]["comfortable"] == pytest.approx(4 / 6)

    def test_confirmation_bias_pattern(self, analyzer, saved_factory):
        """Test narrow saved locations form a bias pattern."""
        activity = HistoricalActivity(
            saved_locations=saved_factory([(f"l{i}", "Spain") for i in range(4)])
        )
        detection = analyzer.detect_confirmation_bias(activity)

        assert detection.payload["bias_score"] == pytest.approx(0.75)
        assert detection.payload["diversity_score"] == pytest.approx(0.25)
        assert detection.payload["level"] == "high"
        assert detection.payload["dominant_preference"] == "Spain"

    def test_anchoring_bias_pattern(self, analyzer, sample_activity):
        """Test the earliest trip is the anchor."""
        detection = analyzer.detect_anchoring_bias(sample_activity)

        assert detection.payload["anchor_value"] == "Spain"
        assert detection.payload["anchoring_score"] == pytest.approx(0.6)
        assert detection.payload["level"] == "moderate"


class TestAnalysis:
    """Test end-to-end analysis."""

    def test_only_confident_patterns_accepted(self, analyzer, sample_activity):
        """Test patterns below the confidence bar are dropped."""
        result = analyzer.analyze("user-1", sample_activity)

        categories = {(p.pattern_type, p.category) for p in result.patterns}
        assert (PatternType.PREFERENCE, "climate") in categories
        assert (PatternType.DECISION, "speed") in categories
        assert (PatternType.EXPLORATION, "frequency") in categories
        # five trips give timing and anchoring only 0.5 confidence
        assert (PatternType.PREFERENCE, "timing") not in categories
        assert (PatternType.BIAS, "anchoring") not in categories
        assert all(p.confidence >= 0.6 for p in result.patterns)
        assert all(0 <= p.significance <= 1 for p in result.patterns)

    def test_profile(self, analyzer, sample_activity):
        """Test patterns are grouped by type in the profile."""
        result = analyzer.analyze("user-1", sample_activity)
        profile = result.profile

        assert profile.user_id == "user-1"
        assert profile.preference_patterns["climate"]["preference"] == "warm"
        assert profile.preference_patterns["climate"]["confidence"] == pytest.approx(0.7)
        assert profile.decision_patterns["speed"]["speed"] == "fast"
        expected = sum(p.reliability for p in result.patterns) / len(result.patterns)
        assert profile.overall_reliability == pytest.approx(expected)

    def test_analysis_stores_patterns(self, analyzer, repository, sample_activity):
        """Test accepted patterns are upserted into the repository."""
        result = analyzer.analyze("user-1", sample_activity)

        assert len(repository) == len(result.patterns)
        assert all(p.id for p in result.patterns)

    def test_reanalysis_keeps_identity(self, analyzer, repository, sample_activity):
        """Test re-analysis updates patterns in place."""
        first = {p.key: p for p in analyzer.analyze("user-1", sample_activity).patterns}
        second = {p.key: p for p in analyzer.analyze("user-1", sample_activity).patterns}

        assert len(repository) == len(first)
        for key, pattern in second.items():
            assert pattern.id == first[key].id
            assert pattern.first_observed == first[key].first_observed
            assert pattern.last_observed >= first[key].last_observed

    def test_evaluate_does_not_store(self, analyzer, repository, sample_activity):
        """Test evaluation leaves the repository untouched."""
        patterns, profile = analyzer.evaluate("user-1", sample_activity)

        assert patterns
        assert profile.preference_patterns
        assert len(repository) == 0

    def test_mixed_timezone_trips(self, analyzer):
        """Test trips with naive starts and aware ends are analyzed."""
        activity = HistoricalActivity.model_validate({
            "trips": [
                {"id": f"t{month}", "start_date": f"2024-0{month}-01T00:00:00",
                 "end_date": f"2024-0{month}-05T00:00:00Z"}
                for month in range(1, 5)
            ],
        })

        result = analyzer.analyze("user-1", activity)
        depth = analyzer.detect_exploration_depth(activity)

        assert result.profile.user_id == "user-1"
        assert depth.payload["average_duration"] == pytest.approx(4.0)

    def test_without_repository(self, test_config, sample_activity):
        """Test analysis works without a repository."""
        analyzer = PatternAnalyzer(test_config)
        result = analyzer.analyze("user-1", sample_activity)

        assert result.patterns
        assert analyzer.list_patterns("user-1") == []


class TestPatternRepository:
    """Test the in-memory pattern repository."""

    def make_pattern(self, category, confidence, pattern_type=PatternType.PREFERENCE, **kwargs):
        return BehaviorPattern(
            user_id=kwargs.pop("user_id", "user-1"),
            pattern_type=pattern_type,
            category=category,
            confidence=confidence,
            **kwargs,
        )

    def test_list_ordered_by_confidence_then_recency(self, repository):
        """Test ordering."""
        now = utc_now()
        repository.upsert(self.make_pattern("a", 0.7, last_observed=now - timedelta(days=1)))
        repository.upsert(self.make_pattern("b", 0.9))
        repository.upsert(self.make_pattern("c", 0.7, last_observed=now))

        categories = [p.category for p in repository.list_patterns("user-1")]
        assert categories == ["b", "c", "a"]

    def test_filters(self, repository):
        """Test filtering by type, category, user and active flag."""
        repository.upsert(self.make_pattern("climate", 0.8))
        repository.upsert(self.make_pattern("speed", 0.7, PatternType.DECISION))
        repository.upsert(self.make_pattern("old", 0.9, is_active=False))
        repository.upsert(self.make_pattern("climate", 0.8, user_id="user-2"))

        assert [p.category for p in repository.list_patterns("user-1", PatternType.DECISION)] == ["speed"]
        assert [p.category for p in repository.list_patterns("user-1", category="climate")] == ["climate"]
        assert len(repository.list_patterns("user-1")) == 2
        assert len(repository.list_patterns("user-1", only_active=False)) == 3
        assert len(repository.list_patterns("user-2")) == 1

    def test_analyzer_list_patterns(self, analyzer, sample_activity):
        """Test listing through the analyzer."""
        analyzer.analyze("user-1", sample_activity)

        biases = analyzer.list_patterns("user-1", PatternType.BIAS)
        assert [p.category for p in biases] == ["confirmation"]
