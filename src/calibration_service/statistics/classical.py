"""
Classical Test Theory (CTT) statistics.

All functions are pure: they read response records and return new values,
so they can be called concurrently on independent data and always give
identical results for identical input.

Edge cases (no responses, empty groups, zero score variance) yield neutral
values rather than errors.
"""

from collections import Counter
from collections.abc import Iterable, Mapping, Sequence

import numpy as np

from calibration_service.core.constants import OPTION_KEYS, OptionKey
from calibration_service.core.data_models import Item
from calibration_service.statistics.data_models import (
    DistractorCounts,
    ItemFlag,
    ItemStatistics,
    OptionRates,
    ScoredResponse,
    StatisticsSummary,
)

FUNCTIONAL_DISTRACTOR_RATE = 0.05
TARGET_FUNCTIONAL_DISTRACTORS = 3
MIN_RESPONSES_FOR_DISCRIMINATION = 3

CEILING_DIFFICULTY = 0.9
FLOOR_DIFFICULTY = 0.2
LOW_DISCRIMINATION = 0.2
WEAK_DISTRACTOR_COUNT = 2
HIGH_RESPONSE_VARIANCE = 0.4

# Difficulty band considered ideal; outside it but inside the flag
# thresholds costs a smaller penalty
IDEAL_DIFFICULTY_RANGE = (0.3, 0.85)
GOOD_DISCRIMINATION = 0.3


def difficulty_index(responses: Sequence[ScoredResponse]) -> float:
    """Proportion of responses that are correct (the item p-value)."""
    if not responses:
        return 0.0
    n_correct = sum(1 for r in responses if r.is_correct)
    return n_correct / len(responses)


def option_rates(responses: Sequence[ScoredResponse]) -> OptionRates:
    """Fraction of responses selecting each option.

    Rates sum to 1 when there is at least one response and are all 0
    otherwise.
    """
    counts = Counter(r.selected for r in responses)
    total = len(responses) or 1
    return OptionRates(**{key: counts[key] / total for key in OPTION_KEYS})


def distractor_analysis(
    responses: Sequence[ScoredResponse], correct_answer: OptionKey
) -> DistractorCounts:
    """Count functional distractors (selected by at least 5% of responses)."""
    rates = option_rates(responses)
    functional = 0
    nonfunctional = 0
    for key in OPTION_KEYS:
        if key == correct_answer:
            continue
        if rates.rate(key) >= FUNCTIONAL_DISTRACTOR_RATE:
            functional += 1
        else:
            nonfunctional += 1
    return DistractorCounts(functional=functional, nonfunctional=nonfunctional)


def calculate_total_scores(
    responses: Iterable[ScoredResponse],
) -> dict[str, int]:
    """Number of correct responses per respondent across all items."""
    scores: dict[str, int] = {}
    for r in responses:
        scores[r.respondent_id] = scores.get(r.respondent_id, 0) + int(
            r.is_correct
        )
    return scores


def point_biserial(
    item_responses: Sequence[ScoredResponse],
    total_scores: Mapping[str, int],
) -> float:
    """
    Point-biserial discrimination of an item.

    r_pb = (M_p - M_q) / S_t * sqrt(p * q)

    where M_p and M_q are the mean total scores of respondents who answered
    the item correctly and incorrectly, S_t is the population standard
    deviation of all total scores (the item itself included), p is the
    proportion correct and q = 1 - p.

    Returns 0.0 with fewer than 3 responses, when either group is empty, or
    when all total scores are equal.
    """
    if len(item_responses) < MIN_RESPONSES_FOR_DISCRIMINATION:
        return 0.0

    correct = [r for r in item_responses if r.is_correct]
    incorrect = [r for r in item_responses if not r.is_correct]
    if not correct or not incorrect:
        return 0.0

    scores_correct = [
        total_scores[r.respondent_id]
        for r in correct
        if r.respondent_id in total_scores
    ]
    scores_incorrect = [
        total_scores[r.respondent_id]
        for r in incorrect
        if r.respondent_id in total_scores
    ]
    if not scores_correct or not scores_incorrect:
        return 0.0

    sd = float(np.std(np.fromiter(total_scores.values(), dtype=np.float64)))
    if sd == 0:
        return 0.0

    mean_correct = float(np.mean(scores_correct))
    mean_incorrect = float(np.mean(scores_incorrect))
    p = len(correct) / len(item_responses)
    q = 1 - p

    return (mean_correct - mean_incorrect) / sd * float(np.sqrt(p * q))


def response_variance(item_responses: Sequence[ScoredResponse]) -> float:
    """Population variance of per-persona mean correctness on one item.

    Measures how much personas disagree; 0.0 with fewer than two personas.
    """
    by_group: dict[str, list[int]] = {}
    for r in item_responses:
        by_group.setdefault(r.group_id, []).append(int(r.is_correct))

    if len(by_group) < 2:
        return 0.0

    group_means = np.array([np.mean(v) for v in by_group.values()])
    return float(np.var(group_means))


def flag_item(
    difficulty: float,
    discrimination: float,
    nonfunctional_distractors: int,
    variance: float,
) -> tuple[ItemFlag, ...]:
    """Qualitative flags for an item, in a fixed order."""
    flags: list[ItemFlag] = []

    if difficulty > CEILING_DIFFICULTY:
        flags.append(ItemFlag.CEILING_EFFECT)
    if difficulty < FLOOR_DIFFICULTY:
        flags.append(ItemFlag.FLOOR_EFFECT)

    if 0 <= discrimination < LOW_DISCRIMINATION:
        flags.append(ItemFlag.LOW_DISCRIMINATION)
    if discrimination < 0:
        flags.append(ItemFlag.NEGATIVE_DISCRIMINATION)

    if nonfunctional_distractors >= WEAK_DISTRACTOR_COUNT:
        flags.append(ItemFlag.WEAK_DISTRACTORS)

    # Personas disagree strongly on this item
    if variance > HIGH_RESPONSE_VARIANCE:
        flags.append(ItemFlag.HIGH_VARIANCE)

    return tuple(flags)


def quality_score(
    difficulty: float,
    discrimination: float,
    functional_distractors: int,
    flags: Sequence[ItemFlag],
) -> float:
    """Composite item quality in [0, 1]."""
    score = 1.0

    low, high = IDEAL_DIFFICULTY_RANGE
    if difficulty < FLOOR_DIFFICULTY or difficulty > CEILING_DIFFICULTY:
        score -= 0.2
    elif difficulty < low or difficulty > high:
        score -= 0.1

    if discrimination < 0:
        score -= 0.4
    elif discrimination < LOW_DISCRIMINATION:
        score -= 0.2
    elif discrimination < GOOD_DISCRIMINATION:
        score -= 0.1

    score -= (TARGET_FUNCTIONAL_DISTRACTORS - functional_distractors) * 0.1

    if ItemFlag.NEGATIVE_DISCRIMINATION in flags:
        score -= 0.2

    return max(0.0, min(1.0, score))


def compute_item_statistics(
    item_id: str,
    item_responses: Sequence[ScoredResponse],
    all_responses: Sequence[ScoredResponse],
    correct_answer: OptionKey,
    total_scores: Mapping[str, int] | None = None,
) -> ItemStatistics:
    """
    Compute full statistics for a single item.

    Args:
        item_id: Identifier of the item.
        item_responses: Responses to this item.
        all_responses: Every response in the run, used for total scores.
        correct_answer: Key of the item's correct option.
        total_scores: Precomputed total scores for ``all_responses``.

    Returns:
        ItemStatistics for the item.
    """
    if total_scores is None:
        total_scores = calculate_total_scores(all_responses)

    difficulty = difficulty_index(item_responses)
    discrimination = point_biserial(item_responses, total_scores)
    rates = option_rates(item_responses)
    distractors = distractor_analysis(item_responses, correct_answer)
    variance = response_variance(item_responses)

    flags = flag_item(
        difficulty=difficulty,
        discrimination=discrimination,
        nonfunctional_distractors=distractors.nonfunctional,
        variance=variance,
    )
    quality = quality_score(
        difficulty=difficulty,
        discrimination=discrimination,
        functional_distractors=distractors.functional,
        flags=flags,
    )

    return ItemStatistics(
        item_id=item_id,
        n_responses=len(item_responses),
        difficulty=difficulty,
        discrimination=discrimination,
        option_rates=rates,
        functional_distractors=distractors.functional,
        nonfunctional_distractors=distractors.nonfunctional,
        response_variance=variance,
        flags=flags,
        quality_score=quality,
    )


def build_answer_key(items: Iterable[Item]) -> dict[str, OptionKey]:
    return {item.id: item.correct for item in items}


def compute_run_statistics(
    responses: Sequence[ScoredResponse],
    correct_answers: Mapping[str, OptionKey],
) -> list[ItemStatistics]:
    """
    Compute statistics for every item that has responses.

    Items appear in the order their first response appears. Items missing
    from ``correct_answers`` are skipped.
    """
    total_scores = calculate_total_scores(responses)

    by_item: dict[str, list[ScoredResponse]] = {}
    for r in responses:
        by_item.setdefault(r.item_id, []).append(r)

    stats: list[ItemStatistics] = []
    for item_id, item_responses in by_item.items():
        correct_answer = correct_answers.get(item_id)
        if correct_answer is None:
            continue
        stats.append(
            compute_item_statistics(
                item_id,
                item_responses,
                responses,
                correct_answer,
                total_scores=total_scores,
            )
        )
    return stats


def summarize_statistics(stats: Sequence[ItemStatistics]) -> StatisticsSummary:
    """Aggregate view of a statistics set: means and flag counts."""
    if not stats:
        return StatisticsSummary(
            n_items=0,
            mean_difficulty=0.0,
            mean_discrimination=0.0,
            mean_quality=0.0,
            n_flagged=0,
            flag_counts={},
        )

    flag_counts = Counter(flag for s in stats for flag in s.flags)
    return StatisticsSummary(
        n_items=len(stats),
        mean_difficulty=float(np.mean([s.difficulty for s in stats])),
        mean_discrimination=float(np.mean([s.discrimination for s in stats])),
        mean_quality=float(np.mean([s.quality_score for s in stats])),
        n_flagged=sum(1 for s in stats if s.flags),
        flag_counts=dict(flag_counts.most_common()),
    )
