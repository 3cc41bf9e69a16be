"""
Extraction of a single option letter from free-text model output.
"""

import re

from calibration_service.core.constants import OptionKey

# Ordered from strictest to loosest; the first pattern that matches wins.
ANSWER_PATTERNS: tuple[re.Pattern[str], ...] = (
    # "answer is B", "I choose: C", "pick D"
    re.compile(r"(?:answer|select|choose|pick)(?:\s+is)?[:\s]+([ABCD])\b", re.I),
    # "B) is the correct answer", "C is best"
    re.compile(
        r"\b([ABCD])\)?\s*(?:is\s+)?(?:the\s+)?(?:correct|right|best)\b", re.I
    ),
    # A letter alone at the start of a line
    re.compile(r"(?:^|\n)([ABCD])(?:\)|\.|\s|$)", re.M),
    # A letter alone at the end of the text
    re.compile(r"\b([ABCD])\b\s*\Z"),
)
STANDALONE_LETTER = re.compile(r"\b([ABCD])\b")


def _as_key(letter: str) -> OptionKey:
    key = letter.upper()
    assert key in ("A", "B", "C", "D")
    return key  # type: ignore[return-value]


def parse_answer(text: str) -> OptionKey | None:
    """
    Extract the selected option from a response.

    Explicit phrasings are preferred; as a last resort the last standalone
    capital A-D anywhere in the text is taken.

    Returns:
        The option key, or None when no answer can be extracted.
    """
    for pattern in ANSWER_PATTERNS:
        match = pattern.search(text)
        if match:
            return _as_key(match.group(1))

    letters = STANDALONE_LETTER.findall(text)
    if letters:
        return _as_key(letters[-1])

    return None
