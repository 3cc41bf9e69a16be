"""
Events emitted by the orchestrator while a run is in progress.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum


@dataclass(frozen=True)
class ProgressUpdate:
    """
    Attributes:
        completed: Responses recorded so far.
        processed: Cells attempted so far, recorded or skipped.
        total: Total number of cells in the run.
        current_item: Item of the cell just finished.
        current_persona: Persona of the cell just finished.
    """

    completed: int
    processed: int
    total: int
    current_item: str
    current_persona: str

    @property
    def fraction(self) -> float:
        return self.processed / self.total if self.total else 1.0


class SkipReason(StrEnum):
    PARSE_FAILURE = "parse_failure"
    ADAPTER_ERROR = "adapter_error"
    STORAGE_ERROR = "storage_error"


@dataclass(frozen=True)
class SkippedCell:
    item_id: str
    persona_id: str
    trial: int
    reason: SkipReason
    detail: str = ""


ProgressCallback = Callable[[ProgressUpdate], None]
SkipCallback = Callable[[SkippedCell], None]
