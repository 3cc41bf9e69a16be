"""
Tests for free-text answer extraction.
"""

import pytest

from calibration_service.simulation.parser import parse_answer


class TestExplicitPhrasing:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("I think the answer is B) because the loop runs twice.", "B"),
            ("After some thought, my final answer: D", "D"),
            ("I choose C", "C"),
            ("I would pick: A", "A"),
            ("ANSWER IS c", "C"),
        ],
    )
    def test_keyword_followed_by_letter(self, text: str, expected: str) -> None:
        assert parse_answer(text) == expected

    def test_correctness_qualifier(self) -> None:
        assert parse_answer("Option C is correct here.") == "C"
        assert parse_answer("I'd say B) the best fit.") == "B"

    def test_explicit_phrase_beats_later_letters(self) -> None:
        text = "The answer is A. B and C are tempting, D is wrong."
        assert parse_answer(text) == "A"


class TestPositionalRules:
    def test_letter_at_line_start(self) -> None:
        assert parse_answer("Hmm, tricky.\nB) 42\nThat one.") == "B"

    def test_letter_alone_at_start_of_text(self) -> None:
        assert parse_answer("D. Because of the off-by-one error.") == "D"

    def test_letter_at_end(self) -> None:
        assert parse_answer("Going with option A") == "A"


class TestFallback:
    def test_last_standalone_letter(self) -> None:
        assert parse_answer("That seems wrong, maybe A, or perhaps C.") == "C"

    def test_lowercase_letters_not_taken_by_fallback(self) -> None:
        assert parse_answer("a cat and a dog") is None


class TestNoAnswer:
    @pytest.mark.parametrize(
        "text",
        ["", "I really don't know.", "None of the options make sense", "E"],
    )
    def test_returns_none(self, text: str) -> None:
        assert parse_answer(text) is None

    def test_result_is_always_valid_key(self) -> None:
        for text in ["answer: b", "x\nA) y", "E F G A", "best is B"]:
            assert parse_answer(text) in ("A", "B", "C", "D")
