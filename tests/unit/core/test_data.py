"""
Tests for item and human response loaders.
"""

import json
from pathlib import Path

import pytest

from calibration_service.core.data import (
    load_human_responses_csv,
    load_items_from_json,
    parse_items,
)


class TestParseItems:
    def test_options_mapping(self) -> None:
        items = parse_items(
            [
                {
                    "id": "q1",
                    "type": "multiple-choice",
                    "stem": "Pick one",
                    "options": {"A": "a", "B": "b", "C": "c", "D": "d"},
                    "correct": "C",
                    "feedback": {"explanation": "Because."},
                }
            ],
            source="bank",
        )
        assert len(items) == 1
        assert items[0].option_c == "c"
        assert items[0].explanation == "Because."
        assert items[0].source == "bank"

    def test_flat_option_fields(self) -> None:
        items = parse_items(
            [
                {
                    "id": "q2",
                    "stem": "Pick one",
                    "option_a": "a",
                    "option_b": "b",
                    "correct": "A",
                    "topic": "loops",
                }
            ]
        )
        assert items[0].options == {"A": "a", "B": "b", "C": "", "D": ""}
        assert items[0].topic == "loops"

    def test_skips_non_mcq(self) -> None:
        items = parse_items(
            [{"id": "q3", "type": "free-response", "stem": "Explain"}]
        )
        assert items == []

    def test_skips_invalid_records(self) -> None:
        items = parse_items(
            [
                {"id": "no-stem", "correct": "A", "option_a": "a"},
                {"id": "empty-correct", "stem": "s", "correct": "B", "option_a": "a"},
                {"id": "ok", "stem": "s", "correct": "A", "option_a": "a"},
            ]
        )
        assert [i.id for i in items] == ["ok"]


class TestLoadItemsFromJson:
    def test_list_and_wrapped_formats(self, tmp_path: Path) -> None:
        record = {"id": "q1", "stem": "s", "correct": "A", "option_a": "a"}

        as_list = tmp_path / "list.json"
        as_list.write_text(json.dumps([record]))
        wrapped = tmp_path / "wrapped.json"
        wrapped.write_text(json.dumps({"items": [record]}))

        assert len(load_items_from_json(as_list)) == 1
        assert len(load_items_from_json(wrapped)) == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_items_from_json(tmp_path / "missing.json")

    def test_rejects_non_item_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"questions": []}))
        with pytest.raises(ValueError, match="list of items"):
            load_items_from_json(path)


class TestLoadHumanResponsesCsv:
    def test_with_is_correct_column(self, tmp_path: Path) -> None:
        path = tmp_path / "human.csv"
        path.write_text(
            "item_id,user_id,selected,is_correct,latency_ms\n"
            "q1,u1,B,1,1200\n"
            "q1,u2,a,0,\n"
        )
        responses = load_human_responses_csv(path)
        assert len(responses) == 2
        assert responses[0].is_correct
        assert responses[0].latency_ms == 1200
        assert responses[1].selected == "A"
        assert not responses[1].is_correct
        assert responses[1].latency_ms is None

    def test_correctness_from_answer_key(self, tmp_path: Path) -> None:
        path = tmp_path / "human.csv"
        path.write_text("item_id,user_id,selected\nq1,u1,B\nq1,u2,C\n")
        responses = load_human_responses_csv(path, {"q1": "B"})
        assert [r.is_correct for r in responses] == [True, False]

    def test_missing_answer_key(self, tmp_path: Path) -> None:
        path = tmp_path / "human.csv"
        path.write_text("item_id,user_id,selected\nq1,u1,B\n")
        with pytest.raises(ValueError, match="no answer key"):
            load_human_responses_csv(path)

    def test_missing_column(self, tmp_path: Path) -> None:
        path = tmp_path / "human.csv"
        path.write_text("item_id,selected\nq1,B\n")
        with pytest.raises(ValueError, match="user_id"):
            load_human_responses_csv(path)

    def test_invalid_selection(self, tmp_path: Path) -> None:
        path = tmp_path / "human.csv"
        path.write_text("item_id,user_id,selected,is_correct\nq1,u1,E,0\n")
        with pytest.raises(ValueError, match="Invalid selected"):
            load_human_responses_csv(path)
