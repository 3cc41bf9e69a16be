"""
Constants shared across the calibration service.
"""

from typing import Final, Literal

OptionKey = Literal["A", "B", "C", "D"]

OPTION_KEYS: Final[tuple[OptionKey, ...]] = ("A", "B", "C", "D")

# Persona theta value marking a pure random-guessing baseline
RANDOM_BASELINE_THETA: Final[float] = -999.0

DEFAULT_PERSONA_TEMPERATURE: Final[float] = 0.3
MIN_TEMPERATURE: Final[float] = 0.0
MAX_TEMPERATURE: Final[float] = 2.0

ENV_PREFIX: Final[str] = "SYNTHETIC_STUDENTS_"
