"""
Repository interface for items, runs, responses and statistics.

The orchestrator and the statistics service receive a store explicitly;
there is no process-wide storage handle.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from calibration_service.core.data_models import (
    CalibrationRun,
    HumanResponse,
    Item,
    ResponseRecord,
    RunStatus,
)
from calibration_service.statistics.data_models import (
    ItemStatistics,
    StatisticsSource,
)


@dataclass(frozen=True)
class ItemFilter:
    """Select items by source (exact) and topic (substring)."""

    source: str | None = None
    topic: str | None = None
    limit: int | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")

    def describe(self) -> str | None:
        parts = [
            f"{name}={value}"
            for name, value in (
                ("source", self.source),
                ("topic", self.topic),
                ("limit", self.limit),
            )
            if value is not None
        ]
        return ",".join(parts) or None


@dataclass(frozen=True)
class ResponseFilter:
    run_id: str | None = None
    item_id: str | None = None
    persona_id: str | None = None


@dataclass(frozen=True)
class StatisticsFilter:
    item_id: str | None = None
    run_id: str | None = None
    source_type: StatisticsSource | None = None


class CalibrationStore(ABC):
    # --- Items ---

    @abstractmethod
    def insert_items(self, items: Sequence[Item]) -> int:
        """Insert or replace items; returns the number written."""

    @abstractmethod
    def get_item(self, item_id: str) -> Item | None: ...

    @abstractmethod
    def get_items(self, item_filter: ItemFilter | None = None) -> list[Item]: ...

    # --- Runs ---

    @abstractmethod
    def create_run(self, run: CalibrationRun) -> None:
        """Persist a new run.

        Raises:
            StorageError: If the run cannot be created.
        """

    @abstractmethod
    def update_run(
        self,
        run_id: str,
        *,
        total_responses: int,
        total_cost_usd: float,
        status: RunStatus,
        completed_at: datetime,
    ) -> CalibrationRun:
        """Write a run's aggregate totals and terminal status.

        Raises:
            RunNotFoundError: If the run does not exist.
        """

    @abstractmethod
    def get_run(self, run_id: str) -> CalibrationRun | None: ...

    @abstractmethod
    def list_runs(self, limit: int = 20) -> list[CalibrationRun]:
        """Most recently started runs first."""

    # --- Responses ---

    @abstractmethod
    def insert_response(self, record: ResponseRecord) -> None: ...

    @abstractmethod
    def get_responses(
        self, response_filter: ResponseFilter
    ) -> list[ResponseRecord]:
        """Matching records in insertion order."""

    @abstractmethod
    def insert_human_responses(self, responses: Sequence[HumanResponse]) -> int: ...

    @abstractmethod
    def get_human_responses(
        self, item_ids: Sequence[str] | None = None
    ) -> list[HumanResponse]: ...

    # --- Statistics ---

    @abstractmethod
    def insert_statistics(
        self,
        stats: ItemStatistics,
        source_type: StatisticsSource,
        run_id: str | None = None,
    ) -> None:
        """Store statistics, replacing any row for the same item, source and run."""

    @abstractmethod
    def get_statistics(
        self, statistics_filter: StatisticsFilter
    ) -> list[ItemStatistics]: ...

    def close(self) -> None:  # noqa: B027
        pass
