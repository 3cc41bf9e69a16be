import numpy as np
import pytest

from calibration_service.statistics import (
    ItemStatistics,
    OptionRates,
    correlate_statistics,
    difficulty_mae,
)
from calibration_service.statistics.correlation import match_items, pearson


def _stats(item_id: str, difficulty: float, discrimination: float) -> ItemStatistics:
    return ItemStatistics(
        item_id=item_id,
        n_responses=10,
        difficulty=difficulty,
        discrimination=discrimination,
        option_rates=OptionRates(),
        functional_distractors=3,
        nonfunctional_distractors=0,
        response_variance=0.0,
        flags=(),
        quality_score=1.0,
    )


class TestMatchItems:
    def test_inner_join_in_first_order(self) -> None:
        first = [_stats("q3", 0.1, 0), _stats("q1", 0.2, 0), _stats("q9", 0.3, 0)]
        second = [_stats("q1", 0.5, 0), _stats("q3", 0.6, 0)]
        pairs = match_items(first, second)
        assert [(a.item_id, b.difficulty) for a, b in pairs] == [
            ("q3", 0.6),
            ("q1", 0.5),
        ]


class TestPearson:
    def test_perfect_correlation(self) -> None:
        x = np.array([0.1, 0.5, 0.9])
        assert pearson(x, 2 * x + 1) == pytest.approx(1.0)

    def test_zero_variance_is_zero(self) -> None:
        assert pearson(np.array([0.5, 0.5, 0.5]), np.array([0.1, 0.2, 0.3])) == 0.0

    def test_too_short(self) -> None:
        assert pearson(np.array([0.5]), np.array([0.1])) == 0.0


class TestCorrelateStatistics:
    def test_two_matched_items_report_no_correlation(self) -> None:
        first = [_stats("q1", 0.2, 0.1), _stats("q2", 0.8, 0.5)]
        second = [_stats("q1", 0.3, 0.2), _stats("q2", 0.7, 0.4)]

        result = correlate_statistics(first, second)

        assert result.difficulty_correlation == 0.0
        assert result.discrimination_correlation == 0.0
        assert result.n_items == 2
        assert result.difficulty_mae == pytest.approx(0.1)

    def test_identical_sets(self) -> None:
        stats = [_stats(f"q{i}", 0.1 * i, 0.05 * i) for i in range(1, 6)]

        result = correlate_statistics(stats, stats)

        assert result.difficulty_correlation == pytest.approx(1.0)
        assert result.discrimination_correlation == pytest.approx(1.0)
        assert result.difficulty_mae == 0.0
        assert result.difficulty_bias == 0.0
        assert result.n_items == 5

    def test_bias_and_mae(self) -> None:
        first = [_stats(f"q{i}", 0.2 * i, 0.0) for i in range(1, 5)]
        second = [_stats(f"q{i}", 0.2 * i - 0.1, 0.0) for i in range(1, 5)]

        result = correlate_statistics(first, second)

        assert result.difficulty_bias == pytest.approx(0.1)
        assert result.difficulty_mae == pytest.approx(0.1)
        assert result.difficulty_correlation == pytest.approx(1.0)
        # Constant discrimination on both sides
        assert result.discrimination_correlation == 0.0

    def test_no_overlap(self) -> None:
        result = correlate_statistics([_stats("a", 0.5, 0)], [_stats("b", 0.5, 0)])
        assert result.n_items == 0
        assert result.difficulty_mae == 0.0
        assert result.difficulty_bias == 0.0


def test_difficulty_mae() -> None:
    first = [_stats("q1", 0.5, 0), _stats("q2", 0.5, 0)]
    second = [_stats("q1", 0.7, 0), _stats("q2", 0.4, 0)]
    assert difficulty_mae(first, second) == pytest.approx(0.15)
