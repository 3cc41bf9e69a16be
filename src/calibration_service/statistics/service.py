"""
Statistics computation over persisted response records.
"""

import logging
from collections.abc import Sequence

from calibration_service.core.constants import OptionKey
from calibration_service.statistics.classical import compute_run_statistics
from calibration_service.statistics.correlation import correlate_statistics
from calibration_service.statistics.data_models import (
    CorrelationResult,
    ItemStatistics,
    ScoredResponse,
    StatisticsSource,
)
from calibration_service.storage.base import CalibrationStore, ResponseFilter
from calibration_service.storage.exceptions import RunNotFoundError

logger = logging.getLogger(__name__)


def _answer_key(
    store: CalibrationStore, responses: Sequence[ScoredResponse]
) -> dict[str, OptionKey]:
    key: dict[str, OptionKey] = {}
    for item_id in dict.fromkeys(r.item_id for r in responses):
        item = store.get_item(item_id)
        if item is None:
            logger.warning(f"Item {item_id} not found, skipping its statistics")
            continue
        key[item_id] = item.correct
    return key


def compute_synthetic_statistics(
    store: CalibrationStore,
    run_id: str,
    persist: bool = True,
) -> list[ItemStatistics]:
    """
    Compute per-item statistics for one calibration run.

    Raises:
        RunNotFoundError: If the run does not exist.
    """
    if store.get_run(run_id) is None:
        raise RunNotFoundError(run_id)

    responses = store.get_responses(ResponseFilter(run_id=run_id))
    stats = compute_run_statistics(responses, _answer_key(store, responses))
    logger.info(
        f"Computed statistics for {len(stats)} items from "
        f"{len(responses)} responses in run {run_id}"
    )

    if persist:
        for s in stats:
            store.insert_statistics(s, StatisticsSource.SYNTHETIC, run_id=run_id)
    return stats


def compute_human_statistics(
    store: CalibrationStore,
    item_ids: Sequence[str] | None = None,
    persist: bool = False,
) -> list[ItemStatistics]:
    """Per-item statistics over stored human responses."""
    responses = store.get_human_responses(item_ids)
    stats = compute_run_statistics(responses, _answer_key(store, responses))

    if persist:
        for s in stats:
            store.insert_statistics(s, StatisticsSource.HUMAN)
    return stats


def compare_run_to_human(
    store: CalibrationStore, run_id: str
) -> CorrelationResult:
    """Correlate a run's synthetic statistics with human statistics on the same items."""
    synthetic = compute_synthetic_statistics(store, run_id, persist=False)
    human = compute_human_statistics(store, [s.item_id for s in synthetic])
    return correlate_statistics(synthetic, human)
