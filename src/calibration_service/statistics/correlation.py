"""
Cross-batch comparison of item statistics (e.g. synthetic vs. human).
"""

from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray
from scipy import stats as scipy_stats

from calibration_service.statistics.data_models import (
    CorrelationResult,
    ItemStatistics,
)

MIN_MATCHED_ITEMS = 3


def match_items(
    stats1: Sequence[ItemStatistics],
    stats2: Sequence[ItemStatistics],
) -> list[tuple[ItemStatistics, ItemStatistics]]:
    """Inner join on item id, in the order of ``stats1``."""
    by_id = {s.item_id: s for s in stats2}
    return [(s1, by_id[s1.item_id]) for s1 in stats1 if s1.item_id in by_id]


def pearson(x: NDArray[np.float64], y: NDArray[np.float64]) -> float:
    """Pearson correlation, or 0.0 when it is undefined."""
    if len(x) < 2 or np.std(x) == 0 or np.std(y) == 0:
        return 0.0
    r = float(scipy_stats.pearsonr(x, y).statistic)
    return 0.0 if np.isnan(r) else r


def mean_absolute_error(
    x: NDArray[np.float64], y: NDArray[np.float64]
) -> float:
    if len(x) == 0:
        return 0.0
    return float(np.mean(np.abs(x - y)))


def difficulty_mae(
    stats1: Sequence[ItemStatistics],
    stats2: Sequence[ItemStatistics],
) -> float:
    pairs = match_items(stats1, stats2)
    x = np.array([a.difficulty for a, _ in pairs], dtype=np.float64)
    y = np.array([b.difficulty for _, b in pairs], dtype=np.float64)
    return mean_absolute_error(x, y)


def correlate_statistics(
    stats1: Sequence[ItemStatistics],
    stats2: Sequence[ItemStatistics],
) -> CorrelationResult:
    """
    Compare difficulty and discrimination estimates of two statistics sets.

    With fewer than ``MIN_MATCHED_ITEMS`` matched items the correlations are
    reported as 0.0; callers should check ``n_items`` before trusting them.
    Mean absolute errors and the difficulty bias (mean of first minus
    second) are reported for any number of matches.
    """
    pairs = match_items(stats1, stats2)
    n_items = len(pairs)

    diff1 = np.array([a.difficulty for a, _ in pairs], dtype=np.float64)
    diff2 = np.array([b.difficulty for _, b in pairs], dtype=np.float64)
    disc1 = np.array([a.discrimination for a, _ in pairs], dtype=np.float64)
    disc2 = np.array([b.discrimination for _, b in pairs], dtype=np.float64)

    difficulty_bias = float(np.mean(diff1 - diff2)) if n_items > 0 else 0.0

    if n_items < MIN_MATCHED_ITEMS:
        return CorrelationResult(
            difficulty_correlation=0.0,
            discrimination_correlation=0.0,
            n_items=n_items,
            difficulty_mae=mean_absolute_error(diff1, diff2),
            discrimination_mae=mean_absolute_error(disc1, disc2),
            difficulty_bias=difficulty_bias,
        )

    return CorrelationResult(
        difficulty_correlation=pearson(diff1, diff2),
        discrimination_correlation=pearson(disc1, disc2),
        n_items=n_items,
        difficulty_mae=mean_absolute_error(diff1, diff2),
        discrimination_mae=mean_absolute_error(disc1, disc2),
        difficulty_bias=difficulty_bias,
    )
