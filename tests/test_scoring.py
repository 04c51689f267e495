"""Test the scoring kernel."""

import pytest

from travel_analytics.analysis.scoring import (
    TOTAL, frame_to_scores, normalize, rank, rank_frame, score_frame, weighted_score
)
from travel_analytics.models.data_models import Scale


class TestNormalize:
    """Test min-max normalization."""

    def test_higher_better(self):
        """Test the largest value maps to 1.0 and the smallest to 0.0."""
        assert normalize([10, 20, 30]) == [0.0, 0.5, 1.0]

    def test_lower_better(self):
        """Test the smallest value maps to 1.0 when lower is better."""
        assert normalize([10, 20, 30], Scale.LOWER_BETTER) == [1.0, 0.5, 0.0]

    def test_accepts_scale_string(self):
        """Test scale may be given by value."""
        assert normalize([1, 3], "lower_better") == [1.0, 0.0]

    def test_identical_values_are_neutral(self):
        """Test a zero range yields 1.0 for every value."""
        assert normalize([5, 5, 5]) == [1.0, 1.0, 1.0]
        assert normalize([5, 5], Scale.LOWER_BETTER) == [1.0, 1.0]

    def test_empty(self):
        """Test empty input."""
        assert normalize([]) == []

    def test_values_in_unit_interval(self):
        """Test every normalized value lies in [0, 1]."""
        values = [3.2, -1.0, 7.5, 0.0, 2.2]
        for scale in Scale:
            normalized = normalize(values, scale)
            assert all(0.0 <= v <= 1.0 for v in normalized)
            assert max(normalized) == 1.0
            assert min(normalized) == 0.0


class TestRank:
    """Test ranking."""

    def test_orders_by_total_descending(self):
        """Test highest total ranks first."""
        assert rank({"a": 0.2, "b": 0.9, "c": 0.5}) == {"1": "b", "2": "c", "3": "a"}

    def test_ties_keep_input_order(self):
        """Test the sort is stable."""
        assert rank({"x": 0.5, "y": 0.5, "z": 0.7}) == {"1": "z", "2": "x", "3": "y"}
        assert rank([("y", 0.5), ("x", 0.5)]) == {"1": "y", "2": "x"}

    def test_float_noise_does_not_break_ties(self):
        """Test totals equal up to rounding noise are treated as ties."""
        assert rank({"a": 0.1 + 0.2, "b": 0.3}) == {"1": "a", "2": "b"}


class TestScoreFrame:
    """Test the vectorised score table."""

    def test_weighted_score(self):
        """Test weighting."""
        assert weighted_score(0.5, 0.4) == pytest.approx(0.2)

    def test_cost_quality_tie(self):
        """Test the cost/quality trade-off ties and keeps submission order."""
        data = {"A": {"cost": 100, "quality": 0.9}, "B": {"cost": 50, "quality": 0.5}}
        frame = score_frame(
            data,
            weights={"cost": 0.5, "quality": 0.5},
            scales={"cost": Scale.LOWER_BETTER, "quality": Scale.HIGHER_BETTER},
        )
        scores = frame_to_scores(frame)

        assert scores["A"]["cost"] == pytest.approx(0.0)
        assert scores["A"]["quality"] == pytest.approx(0.5)
        assert scores["B"]["cost"] == pytest.approx(0.5)
        assert scores["B"]["quality"] == pytest.approx(0.0)
        assert scores["A"][TOTAL] == pytest.approx(0.5)
        assert scores["B"][TOTAL] == pytest.approx(0.5)
        assert rank_frame(frame) == {"1": "A", "2": "B"}

    def test_weighted_scores_bounded_by_weight(self):
        """Test each weighted score lies in [0, weight]."""
        data = {
            "a": {"x": 1, "y": 10},
            "b": {"x": 4, "y": 7},
            "c": {"x": 2, "y": 3},
        }
        weights = {"x": 0.7, "y": 0.3}
        frame = score_frame(data, weights, {"x": "higher_better", "y": "lower_better"})

        for criterion, weight in weights.items():
            assert frame[criterion].between(0, weight).all()
        assert list(frame.columns) == ["x", "y", TOTAL]

    def test_totals_non_increasing_across_ranks(self):
        """Test totals follow the ranking order."""
        data = {f"alt-{i}": {"x": i * 3 % 7, "y": i * 5 % 11} for i in range(8)}
        frame = score_frame(data, {"x": 0.5, "y": 0.5}, {"x": "higher_better", "y": "higher_better"})
        rankings = rank_frame(frame)

        totals = [frame.loc[rankings[str(p)], TOTAL] for p in range(1, len(rankings) + 1)]
        assert all(a >= b for a, b in zip(totals, totals[1:]))
