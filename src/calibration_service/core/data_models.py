"""
Domain models for item calibration.

This module defines the data structures for:
- Item: a multiple-choice assessment question
- Persona: a simulated respondent profile
- CalibrationRun: one execution of the item x persona x trial sweep
- ResponseRecord: one parsed generation outcome within a run
- HumanResponse: one real respondent's answer to an item
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from calibration_service.core.constants import (
    DEFAULT_PERSONA_TEMPERATURE,
    MAX_TEMPERATURE,
    MIN_TEMPERATURE,
    OPTION_KEYS,
    RANDOM_BASELINE_THETA,
    OptionKey,
)


class PersonaCategory(StrEnum):
    ABILITY_BASED = "ability_based"
    KLI = "kli"
    MISCONCEPTION = "misconception"
    CUSTOM = "custom"


class RunStatus(StrEnum):
    RUNNING = "running"
    COMPLETED = "completed"


class Item(BaseModel):
    """
    A multiple-choice item with exactly four option slots.

    Attributes:
        id: Stable identifier.
        stem: Question text.
        option_a..option_d: Option texts. Unused options are empty strings.
        correct: Key of the correct option. Must refer to a populated option.
        explanation: Optional free-text explanation of the answer.
        code: Optional code block rendered below the stem.
        source: Optional name of the bank the item was imported from.
        topic: Optional topic label.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    stem: str
    option_a: str = ""
    option_b: str = ""
    option_c: str = ""
    option_d: str = ""
    correct: OptionKey
    explanation: str | None = None
    code: str | None = None
    source: str | None = None
    topic: str | None = None

    @model_validator(mode="after")
    def validate_correct_is_populated(self) -> "Item":
        if not self.options[self.correct].strip():
            raise ValueError(
                f"Item {self.id}: correct option {self.correct} is empty"
            )
        return self

    @property
    def options(self) -> dict[OptionKey, str]:
        """Option texts keyed by letter, in A-D order."""
        return {
            "A": self.option_a,
            "B": self.option_b,
            "C": self.option_c,
            "D": self.option_d,
        }

    @property
    def populated_keys(self) -> tuple[OptionKey, ...]:
        return tuple(k for k in OPTION_KEYS if self.options[k].strip())


class Persona(BaseModel):
    """A simulated respondent profile."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    theta: float
    system_prompt: str
    temperature: float = Field(
        default=DEFAULT_PERSONA_TEMPERATURE,
        ge=MIN_TEMPERATURE,
        le=MAX_TEMPERATURE,
    )
    category: PersonaCategory
    description: str | None = None

    @property
    def is_random_baseline(self) -> bool:
        return self.theta == RANDOM_BASELINE_THETA


class CalibrationRun(BaseModel):
    """
    One execution of the calibration sweep.

    A run is created with status RUNNING before any generation call and is
    finalized once with the aggregate totals.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str | None = None
    description: str | None = None
    model: str
    persona_ids: tuple[str, ...]
    item_filter: str | None = None
    n_items: int = Field(ge=0)
    n_personas: int = Field(ge=0)
    n_trials: int = Field(default=1, ge=1)
    status: RunStatus = RunStatus.RUNNING
    total_responses: int | None = None
    total_cost_usd: float | None = None
    started_at: datetime
    completed_at: datetime | None = None

    @property
    def total_cells(self) -> int:
        """Theoretical maximum number of responses for this run."""
        return self.n_items * self.n_personas * self.n_trials


class ResponseRecord(BaseModel):
    """One successfully parsed generation outcome."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    item_id: str
    persona_id: str
    trial: int = Field(default=1, ge=1)
    selected: OptionKey
    is_correct: bool
    reasoning: str | None = None
    latency_ms: int = Field(default=0, ge=0)
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    model: str

    @property
    def respondent_id(self) -> str:
        """Simulated test-taker: one persona within one trial."""
        return f"{self.persona_id}:{self.trial}"

    @property
    def group_id(self) -> str:
        return self.persona_id


class HumanResponse(BaseModel):
    """A real respondent's answer to an item."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    user_id: str
    selected: OptionKey
    is_correct: bool
    latency_ms: int | None = None
    source: str | None = None

    @property
    def respondent_id(self) -> str:
        return self.user_id

    @property
    def group_id(self) -> str:
        return self.user_id
