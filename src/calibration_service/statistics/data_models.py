"""
Data models for classical test theory statistics.
"""

from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from calibration_service.core.constants import OptionKey


class ItemFlag(StrEnum):
    CEILING_EFFECT = "ceiling_effect"
    FLOOR_EFFECT = "floor_effect"
    LOW_DISCRIMINATION = "low_discrimination"
    NEGATIVE_DISCRIMINATION = "negative_discrimination"
    WEAK_DISTRACTORS = "weak_distractors"
    HIGH_VARIANCE = "high_variance"


class StatisticsSource(StrEnum):
    SYNTHETIC = "synthetic"
    HUMAN = "human"


class ScoredResponse(Protocol):
    """Anything the statistics engine can score.

    ``respondent_id`` identifies one test-taker for total scores;
    ``group_id`` identifies the profile whose agreement is measured by the
    response variance (the persona for simulated responses).
    """

    @property
    def item_id(self) -> str: ...

    @property
    def selected(self) -> OptionKey: ...

    @property
    def is_correct(self) -> bool: ...

    @property
    def respondent_id(self) -> str: ...

    @property
    def group_id(self) -> str: ...


class OptionRates(BaseModel):
    """Fraction of responses selecting each option."""

    model_config = ConfigDict(frozen=True)

    A: float = Field(default=0.0, ge=0.0, le=1.0)
    B: float = Field(default=0.0, ge=0.0, le=1.0)
    C: float = Field(default=0.0, ge=0.0, le=1.0)
    D: float = Field(default=0.0, ge=0.0, le=1.0)

    def rate(self, key: OptionKey) -> float:
        result: float = getattr(self, key)
        return result

    def as_dict(self) -> dict[str, float]:
        return {"A": self.A, "B": self.B, "C": self.C, "D": self.D}


class DistractorCounts(BaseModel):
    model_config = ConfigDict(frozen=True)

    functional: int
    nonfunctional: int


class ItemStatistics(BaseModel):
    """Per-item CTT statistics, recomputable from response records."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    n_responses: int
    difficulty: float
    discrimination: float
    option_rates: OptionRates
    functional_distractors: int
    nonfunctional_distractors: int
    response_variance: float
    flags: tuple[ItemFlag, ...]
    quality_score: float


class CorrelationResult(BaseModel):
    """Agreement between two statistics sets matched on item id.

    Correlations are only meaningful when ``n_items`` is at least the
    minimum number of matched items; below it they are reported as 0.
    """

    model_config = ConfigDict(frozen=True)

    difficulty_correlation: float
    discrimination_correlation: float
    n_items: int
    difficulty_mae: float = 0.0
    discrimination_mae: float = 0.0
    difficulty_bias: float = 0.0


class StatisticsSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    n_items: int
    mean_difficulty: float
    mean_discrimination: float
    mean_quality: float
    n_flagged: int
    flag_counts: dict[ItemFlag, int]

    @property
    def flagged_fraction(self) -> float:
        return self.n_flagged / self.n_items if self.n_items > 0 else 0.0
