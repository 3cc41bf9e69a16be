"""
Tests for statistics computed over a store.
"""

import pytest

from calibration_service.core.data_models import (
    CalibrationRun,
    HumanResponse,
    Item,
    ResponseRecord,
)
from calibration_service.core.utils import utc_now
from calibration_service.statistics import StatisticsSource
from calibration_service.statistics.service import (
    compare_run_to_human,
    compute_human_statistics,
    compute_synthetic_statistics,
)
from calibration_service.storage import (
    InMemoryStore,
    RunNotFoundError,
    StatisticsFilter,
)

ITEM_IDS = ["q1", "q2", "q3", "q4"]
CORRECT = {"q1": "A", "q2": "B", "q3": "C", "q4": "D"}

# Persona -> items answered correctly
SYNTHETIC_KNOWLEDGE = {
    "expert": {"q1", "q2", "q3", "q4"},
    "proficient": {"q1", "q2", "q3"},
    "developing": {"q1", "q2"},
    "novice": {"q1"},
}
HUMAN_KNOWLEDGE = {
    "u1": {"q1", "q2", "q3", "q4"},
    "u2": {"q1", "q2", "q3"},
    "u3": {"q1", "q2"},
    "u4": set(),
}


def _wrong(item_id: str) -> str:
    return "A" if CORRECT[item_id] != "A" else "B"


@pytest.fixture
def store() -> InMemoryStore:
    store = InMemoryStore(
        [
            Item(
                id=item_id,
                stem=f"Stem {item_id}",
                option_a="a",
                option_b="b",
                option_c="c",
                option_d="d",
                correct=CORRECT[item_id],  # type: ignore[arg-type]
            )
            for item_id in ITEM_IDS
        ]
    )
    store.create_run(
        CalibrationRun(
            id="run1",
            model="m",
            persona_ids=tuple(SYNTHETIC_KNOWLEDGE),
            n_items=4,
            n_personas=4,
            started_at=utc_now(),
        )
    )
    for item_id in ITEM_IDS:
        for persona, known in SYNTHETIC_KNOWLEDGE.items():
            selected = CORRECT[item_id] if item_id in known else _wrong(item_id)
            store.insert_response(
                ResponseRecord(
                    run_id="run1",
                    item_id=item_id,
                    persona_id=persona,
                    selected=selected,  # type: ignore[arg-type]
                    is_correct=item_id in known,
                    model="m",
                )
            )
    store.insert_human_responses(
        [
            HumanResponse(
                item_id=item_id,
                user_id=user,
                selected=CORRECT[item_id] if item_id in known else _wrong(item_id),  # type: ignore[arg-type]
                is_correct=item_id in known,
            )
            for item_id in ITEM_IDS
            for user, known in HUMAN_KNOWLEDGE.items()
        ]
    )
    return store


class TestSyntheticStatistics:
    def test_computes_and_persists(self, store: InMemoryStore) -> None:
        stats = compute_synthetic_statistics(store, "run1")

        assert [s.item_id for s in stats] == ITEM_IDS
        assert [s.difficulty for s in stats] == [1.0, 0.75, 0.5, 0.25]

        stored = store.get_statistics(
            StatisticsFilter(run_id="run1", source_type=StatisticsSource.SYNTHETIC)
        )
        assert stored == stats

    def test_recomputing_does_not_duplicate(self, store: InMemoryStore) -> None:
        compute_synthetic_statistics(store, "run1")
        stats = compute_synthetic_statistics(store, "run1")

        assert store.get_statistics(StatisticsFilter(run_id="run1")) == stats

    def test_without_persisting(self, store: InMemoryStore) -> None:
        compute_synthetic_statistics(store, "run1", persist=False)
        assert store.get_statistics(StatisticsFilter(run_id="run1")) == []

    def test_unknown_run(self, store: InMemoryStore) -> None:
        with pytest.raises(RunNotFoundError):
            compute_synthetic_statistics(store, "missing")


class TestHumanStatistics:
    def test_restricted_to_items(self, store: InMemoryStore) -> None:
        stats = compute_human_statistics(store, ["q2", "q3"])
        assert [s.item_id for s in stats] == ["q2", "q3"]
        assert stats[0].difficulty == 0.75
        assert stats[1].difficulty == 0.5


def test_compare_run_to_human(store: InMemoryStore) -> None:
    result = compare_run_to_human(store, "run1")

    assert result.n_items == 4
    assert result.difficulty_correlation > 0.5
    assert -1.0 <= result.discrimination_correlation <= 1.0
    # Synthetic difficulties: 1, .75, .5, .25; human: .75, .75, .5, .25
    assert result.difficulty_mae == pytest.approx(0.0625)
    assert result.difficulty_bias == pytest.approx(0.0625)
