"""
Classical test theory statistics for calibrated items.

This module provides tools for:
- Computing per-item difficulty, discrimination and distractor quality
- Flagging problematic items and scoring overall item quality
- Correlating two statistics sets (e.g. synthetic vs. human)
- Exporting statistics as JSON or CSV
"""

from calibration_service.statistics.data_models import (
    CorrelationResult,
    DistractorCounts,
    ItemFlag,
    ItemStatistics,
    OptionRates,
    ScoredResponse,
    StatisticsSource,
    StatisticsSummary,
)
from calibration_service.statistics.classical import (
    build_answer_key,
    calculate_total_scores,
    compute_item_statistics,
    compute_run_statistics,
    difficulty_index,
    distractor_analysis,
    flag_item,
    option_rates,
    point_biserial,
    quality_score,
    response_variance,
    summarize_statistics,
)
from calibration_service.statistics.correlation import (
    correlate_statistics,
    difficulty_mae,
)
from calibration_service.statistics.export import (
    statistics_to_dataframe,
    statistics_to_json,
    write_statistics_csv,
    write_statistics_json,
)

__all__ = [
    # Data models
    "CorrelationResult",
    "DistractorCounts",
    "ItemFlag",
    "ItemStatistics",
    "OptionRates",
    "ScoredResponse",
    "StatisticsSource",
    "StatisticsSummary",
    # Classical statistics
    "build_answer_key",
    "calculate_total_scores",
    "compute_item_statistics",
    "compute_run_statistics",
    "difficulty_index",
    "distractor_analysis",
    "flag_item",
    "option_rates",
    "point_biserial",
    "quality_score",
    "response_variance",
    "summarize_statistics",
    # Correlation
    "correlate_statistics",
    "difficulty_mae",
    # Export
    "statistics_to_dataframe",
    "statistics_to_json",
    "write_statistics_csv",
    "write_statistics_json",
]
