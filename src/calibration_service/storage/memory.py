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
from calibration_service.storage.base import (
    CalibrationStore,
    ItemFilter,
    ResponseFilter,
    StatisticsFilter,
)
from calibration_service.storage.exceptions import (
    RunNotFoundError,
    StorageError,
)


@dataclass(frozen=True)
class _StoredStatistics:
    stats: ItemStatistics
    source_type: StatisticsSource
    run_id: str | None


class InMemoryStore(CalibrationStore):
    """Process-local store, used by tests and short-lived API sessions."""

    def __init__(self, items: Sequence[Item] = ()) -> None:
        self._items: dict[str, Item] = {}
        self._runs: dict[str, CalibrationRun] = {}
        self._responses: list[ResponseRecord] = []
        self._human_responses: list[HumanResponse] = []
        self._statistics: list[_StoredStatistics] = []
        self.insert_items(items)

    def insert_items(self, items: Sequence[Item]) -> int:
        for item in items:
            self._items[item.id] = item
        return len(items)

    def get_item(self, item_id: str) -> Item | None:
        return self._items.get(item_id)

    def get_items(self, item_filter: ItemFilter | None = None) -> list[Item]:
        item_filter = item_filter or ItemFilter()
        items = [
            item
            for item in self._items.values()
            if (item_filter.source is None or item.source == item_filter.source)
            and (
                item_filter.topic is None
                or (item.topic is not None and item_filter.topic in item.topic)
            )
        ]
        if item_filter.limit is not None:
            items = items[: item_filter.limit]
        return items

    def create_run(self, run: CalibrationRun) -> None:
        if run.id in self._runs:
            raise StorageError(f"Run already exists: {run.id}")
        self._runs[run.id] = run

    def update_run(
        self,
        run_id: str,
        *,
        total_responses: int,
        total_cost_usd: float,
        status: RunStatus,
        completed_at: datetime,
    ) -> CalibrationRun:
        run = self._runs.get(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        updated = run.model_copy(
            update={
                "total_responses": total_responses,
                "total_cost_usd": total_cost_usd,
                "status": status,
                "completed_at": completed_at,
            }
        )
        self._runs[run_id] = updated
        return updated

    def get_run(self, run_id: str) -> CalibrationRun | None:
        return self._runs.get(run_id)

    def list_runs(self, limit: int = 20) -> list[CalibrationRun]:
        runs = sorted(
            self._runs.values(), key=lambda r: r.started_at, reverse=True
        )
        return runs[:limit]

    def insert_response(self, record: ResponseRecord) -> None:
        if record.run_id not in self._runs:
            raise RunNotFoundError(record.run_id)
        self._responses.append(record)

    def get_responses(
        self, response_filter: ResponseFilter
    ) -> list[ResponseRecord]:
        f = response_filter
        return [
            r
            for r in self._responses
            if (f.run_id is None or r.run_id == f.run_id)
            and (f.item_id is None or r.item_id == f.item_id)
            and (f.persona_id is None or r.persona_id == f.persona_id)
        ]

    def insert_human_responses(self, responses: Sequence[HumanResponse]) -> int:
        self._human_responses.extend(responses)
        return len(responses)

    def get_human_responses(
        self, item_ids: Sequence[str] | None = None
    ) -> list[HumanResponse]:
        if item_ids is None:
            return list(self._human_responses)
        wanted = set(item_ids)
        return [r for r in self._human_responses if r.item_id in wanted]

    def insert_statistics(
        self,
        stats: ItemStatistics,
        source_type: StatisticsSource,
        run_id: str | None = None,
    ) -> None:
        self._statistics = [
            s
            for s in self._statistics
            if (s.stats.item_id, s.source_type, s.run_id)
            != (stats.item_id, source_type, run_id)
        ]
        self._statistics.append(
            _StoredStatistics(stats=stats, source_type=source_type, run_id=run_id)
        )

    def get_statistics(
        self, statistics_filter: StatisticsFilter
    ) -> list[ItemStatistics]:
        f = statistics_filter
        return [
            s.stats
            for s in self._statistics
            if (f.item_id is None or s.stats.item_id == f.item_id)
            and (f.run_id is None or s.run_id == f.run_id)
            and (f.source_type is None or s.source_type == f.source_type)
        ]
