"""
Tests for classical test theory item statistics.
"""

import numpy as np
import pytest

from calibration_service.core.data_models import HumanResponse, ResponseRecord
from calibration_service.statistics import (
    ItemFlag,
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


def _record(
    item_id: str,
    persona_id: str,
    selected: str,
    correct: str = "B",
    trial: int = 1,
) -> ResponseRecord:
    return ResponseRecord(
        run_id="run",
        item_id=item_id,
        persona_id=persona_id,
        trial=trial,
        selected=selected,  # type: ignore[arg-type]
        is_correct=selected == correct,
        model="m",
    )


def _single_item(selections: list[str], correct: str = "B") -> list[ResponseRecord]:
    return [
        _record("q1", f"p{i}", s, correct=correct) for i, s in enumerate(selections)
    ]


class TestDifficultyAndRates:
    def test_difficulty_fraction_correct(self) -> None:
        assert difficulty_index(_single_item(["B", "B", "A", "C"])) == 0.5

    def test_difficulty_no_responses(self) -> None:
        assert difficulty_index([]) == 0.0

    def test_option_rates_sum_to_one(self) -> None:
        rng = np.random.default_rng(7)
        selections = rng.choice(["A", "B", "C", "D"], size=37).tolist()
        rates = option_rates(_single_item(selections))
        assert sum(rates.as_dict().values()) == pytest.approx(1.0)

    def test_option_rates_empty(self) -> None:
        assert option_rates([]).as_dict() == {"A": 0, "B": 0, "C": 0, "D": 0}

    def test_distractor_threshold(self) -> None:
        # 1 of 20 is exactly 5%: functional
        selections = ["B"] * 18 + ["A", "C"]
        counts = distractor_analysis(_single_item(selections), "B")
        assert counts.functional == 2
        assert counts.nonfunctional == 1


class TestTotalScores:
    def test_respondent_is_persona_trial(self) -> None:
        responses = [
            _record("q1", "p", "B", trial=1),
            _record("q2", "p", "B", trial=1),
            _record("q1", "p", "A", trial=2),
            _record("q2", "p", "B", trial=2),
        ]
        assert calculate_total_scores(responses) == {"p:1": 2, "p:2": 1}

    def test_human_respondent_is_user(self) -> None:
        responses = [
            HumanResponse(item_id="q1", user_id="u1", selected="B", is_correct=True),
            HumanResponse(item_id="q2", user_id="u1", selected="A", is_correct=True),
        ]
        assert calculate_total_scores(responses) == {"u1": 2}


class TestPointBiserial:
    def test_positive_when_top_scorers_answer_correctly(self) -> None:
        # Respondents p0..p3 answer four anchor items with decreasing skill.
        # Only the two strongest answer the focal item correctly.
        responses = []
        for i, n_correct in enumerate([4, 3, 1, 0]):
            persona = f"p{i}"
            for k in range(4):
                responses.append(
                    _record(f"anchor{k}", persona, "B" if k < n_correct else "A")
                )
            responses.append(_record("focal", persona, "B" if i < 2 else "C"))

        focal = [r for r in responses if r.item_id == "focal"]
        r_pb = point_biserial(focal, calculate_total_scores(responses))
        assert r_pb > 0

    def test_negative_when_weak_scorers_answer_correctly(self) -> None:
        responses = []
        for i, n_correct in enumerate([4, 3, 1, 0]):
            persona = f"p{i}"
            for k in range(4):
                responses.append(
                    _record(f"anchor{k}", persona, "B" if k < n_correct else "A")
                )
            responses.append(_record("focal", persona, "B" if i >= 2 else "C"))

        focal = [r for r in responses if r.item_id == "focal"]
        assert point_biserial(focal, calculate_total_scores(responses)) < 0

    def test_matches_formula(self) -> None:
        responses = _single_item(["B", "B", "A", "B", "A"])
        totals = calculate_total_scores(responses)
        # Single item: totals equal correctness, so r_pb is exactly 1
        assert point_biserial(responses, totals) == pytest.approx(1.0)

    def test_too_few_responses(self) -> None:
        responses = _single_item(["B", "A"])
        assert point_biserial(responses, calculate_total_scores(responses)) == 0.0

    def test_empty_group(self) -> None:
        responses = _single_item(["B", "B", "B"])
        assert point_biserial(responses, calculate_total_scores(responses)) == 0.0


class TestResponseVariance:
    def test_single_persona(self) -> None:
        responses = [_record("q1", "p", "B", trial=t) for t in (1, 2, 3)]
        assert response_variance(responses) == 0.0

    def test_population_variance_of_persona_means(self) -> None:
        responses = [
            _record("q1", "a", "B", trial=1),
            _record("q1", "a", "B", trial=2),
            _record("q1", "b", "B", trial=1),
            _record("q1", "b", "A", trial=2),
            _record("q1", "c", "A", trial=1),
            _record("q1", "c", "A", trial=2),
        ]
        # Persona means 1.0, 0.5, 0.0
        assert response_variance(responses) == pytest.approx(np.var([1.0, 0.5, 0.0]))


class TestFlags:
    def test_ceiling_item(self) -> None:
        stats = compute_item_statistics(
            "q1", _single_item(["B"] * 10), _single_item(["B"] * 10), "B"
        )
        assert stats.difficulty == 1.0
        assert stats.flags == (
            ItemFlag.CEILING_EFFECT,
            ItemFlag.LOW_DISCRIMINATION,
            ItemFlag.WEAK_DISTRACTORS,
        )

    def test_flag_order(self) -> None:
        flags = flag_item(
            difficulty=0.1,
            discrimination=-0.3,
            nonfunctional_distractors=3,
            variance=0.5,
        )
        assert flags == (
            ItemFlag.FLOOR_EFFECT,
            ItemFlag.NEGATIVE_DISCRIMINATION,
            ItemFlag.WEAK_DISTRACTORS,
            ItemFlag.HIGH_VARIANCE,
        )

    def test_zero_discrimination_is_low_not_negative(self) -> None:
        flags = flag_item(0.5, 0.0, 0, 0.0)
        assert flags == (ItemFlag.LOW_DISCRIMINATION,)


class TestQualityScore:
    def test_ideal_item(self) -> None:
        assert quality_score(0.6, 0.5, 3, ()) == 1.0

    def test_penalties(self) -> None:
        # Outside the ideal band (-0.1), moderate discrimination (-0.1),
        # one functional distractor (-0.2)
        assert quality_score(0.25, 0.25, 1, ()) == pytest.approx(0.6)

    def test_clamped_at_zero(self) -> None:
        flags = flag_item(0.0, -0.5, 3, 0.0)
        assert quality_score(0.0, -0.5, 0, flags) == 0.0

    @pytest.mark.parametrize("difficulty", [0.0, 0.15, 0.5, 0.95, 1.0])
    @pytest.mark.parametrize("discrimination", [-1.0, 0.0, 0.25, 1.0])
    @pytest.mark.parametrize("functional", [0, 1, 2, 3])
    def test_always_in_unit_interval(
        self, difficulty: float, discrimination: float, functional: int
    ) -> None:
        flags = flag_item(difficulty, discrimination, 3 - functional, 0.0)
        score = quality_score(difficulty, discrimination, functional, flags)
        assert 0.0 <= score <= 1.0


class TestItemStatistics:
    def test_five_response_scenario(self) -> None:
        responses = _single_item(["B", "B", "A", "B", "A"])

        stats = compute_item_statistics("q1", responses, responses, "B")

        assert stats.n_responses == 5
        assert stats.difficulty == pytest.approx(0.6)
        assert stats.option_rates.as_dict() == pytest.approx(
            {"A": 0.4, "B": 0.6, "C": 0.0, "D": 0.0}
        )
        assert stats.functional_distractors == 1
        assert stats.nonfunctional_distractors == 2
        assert ItemFlag.WEAK_DISTRACTORS in stats.flags
        assert stats.quality_score == pytest.approx(0.8)


class TestRunStatistics:
    def _responses(self) -> list[ResponseRecord]:
        responses = []
        for persona, answers in {
            "expert": ["B", "C", "B"],
            "developing": ["B", "A", "D"],
            "novice": ["A", "A", "D"],
            "random": ["C", "C", "A"],
        }.items():
            for item_id, selected in zip(["q2", "q1", "q3"], answers, strict=True):
                correct = {"q1": "C", "q2": "B", "q3": "B"}[item_id]
                responses.append(_record(item_id, persona, selected, correct=correct))
        return responses

    def test_first_seen_item_order(self) -> None:
        stats = compute_run_statistics(
            self._responses(), {"q1": "C", "q2": "B", "q3": "B"}
        )
        assert [s.item_id for s in stats] == ["q2", "q1", "q3"]

    def test_items_without_answer_key_are_skipped(self) -> None:
        stats = compute_run_statistics(self._responses(), {"q1": "C"})
        assert [s.item_id for s in stats] == ["q1"]

    def test_idempotent(self) -> None:
        key = {"q1": "C", "q2": "B", "q3": "B"}
        first = compute_run_statistics(self._responses(), key)
        second = compute_run_statistics(self._responses(), key)
        assert first == second

    def test_empty(self) -> None:
        assert compute_run_statistics([], {"q1": "A"}) == []


class TestSummary:
    def test_counts_and_means(self) -> None:
        ceiling = compute_item_statistics(
            "easy", _single_item(["B"] * 4), _single_item(["B"] * 4), "B"
        )
        mixed = _single_item(["B", "B", "A", "C", "D", "B"])
        good = compute_item_statistics("good", mixed, mixed, "B")

        summary = summarize_statistics([ceiling, good])

        assert summary.n_items == 2
        assert summary.mean_difficulty == pytest.approx((1.0 + 0.5) / 2)
        assert summary.n_flagged == 1
        assert summary.flag_counts[ItemFlag.CEILING_EFFECT] == 1
        assert summary.flagged_fraction == 0.5

    def test_empty(self) -> None:
        summary = summarize_statistics([])
        assert summary.n_items == 0
        assert summary.flagged_fraction == 0.0
