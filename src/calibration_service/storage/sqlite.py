"""
SQLite-backed calibration store.
"""

import json
import logging
import sqlite3
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from calibration_service.core.data_models import (
    CalibrationRun,
    HumanResponse,
    Item,
    ResponseRecord,
    RunStatus,
)
from calibration_service.statistics.data_models import (
    ItemStatistics,
    OptionRates,
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

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS items (
    id TEXT PRIMARY KEY,
    source TEXT,
    topic TEXT,
    stem TEXT NOT NULL,
    option_a TEXT NOT NULL DEFAULT '',
    option_b TEXT NOT NULL DEFAULT '',
    option_c TEXT NOT NULL DEFAULT '',
    option_d TEXT NOT NULL DEFAULT '',
    correct TEXT NOT NULL CHECK (correct IN ('A', 'B', 'C', 'D')),
    explanation TEXT,
    code TEXT
);

CREATE TABLE IF NOT EXISTS calibration_runs (
    id TEXT PRIMARY KEY,
    name TEXT,
    description TEXT,
    model TEXT NOT NULL,
    persona_ids TEXT NOT NULL,
    item_filter TEXT,
    n_items INTEGER NOT NULL,
    n_personas INTEGER NOT NULL,
    n_trials INTEGER NOT NULL DEFAULT 1,
    status TEXT NOT NULL,
    total_responses INTEGER,
    total_cost_usd REAL,
    started_at TEXT NOT NULL,
    completed_at TEXT
);

CREATE TABLE IF NOT EXISTS synthetic_responses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id TEXT NOT NULL REFERENCES calibration_runs(id),
    item_id TEXT NOT NULL,
    persona_id TEXT NOT NULL,
    trial INTEGER NOT NULL DEFAULT 1,
    selected TEXT NOT NULL,
    is_correct INTEGER NOT NULL,
    reasoning TEXT,
    latency_ms INTEGER,
    model TEXT NOT NULL,
    input_tokens INTEGER,
    output_tokens INTEGER
);
CREATE INDEX IF NOT EXISTS idx_responses_run ON synthetic_responses(run_id);

CREATE TABLE IF NOT EXISTS human_responses (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    selected TEXT NOT NULL,
    is_correct INTEGER NOT NULL,
    latency_ms INTEGER,
    source TEXT
);

CREATE TABLE IF NOT EXISTS item_statistics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    item_id TEXT NOT NULL,
    source_type TEXT NOT NULL,
    run_id TEXT,
    n_responses INTEGER NOT NULL,
    difficulty_index REAL,
    point_biserial REAL,
    option_a_rate REAL,
    option_b_rate REAL,
    option_c_rate REAL,
    option_d_rate REAL,
    functional_distractors INTEGER,
    nonfunctional_distractors INTEGER,
    response_variance REAL,
    flags TEXT,
    quality_score REAL
);
"""


def _row_to_item(row: sqlite3.Row) -> Item:
    return Item(**dict(row))


def _row_to_run(row: sqlite3.Row) -> CalibrationRun:
    data: dict[str, Any] = dict(row)
    data["persona_ids"] = tuple(json.loads(data["persona_ids"]))
    data["started_at"] = datetime.fromisoformat(data["started_at"])
    if data["completed_at"] is not None:
        data["completed_at"] = datetime.fromisoformat(data["completed_at"])
    return CalibrationRun(**data)


def _row_to_response(row: sqlite3.Row) -> ResponseRecord:
    data: dict[str, Any] = dict(row)
    data.pop("id")
    data["is_correct"] = bool(data["is_correct"])
    return ResponseRecord(**data)


def _row_to_human_response(row: sqlite3.Row) -> HumanResponse:
    data: dict[str, Any] = dict(row)
    data.pop("id")
    data["is_correct"] = bool(data["is_correct"])
    return HumanResponse(**data)


def _row_to_statistics(row: sqlite3.Row) -> ItemStatistics:
    return ItemStatistics(
        item_id=row["item_id"],
        n_responses=row["n_responses"],
        difficulty=row["difficulty_index"],
        discrimination=row["point_biserial"],
        option_rates=OptionRates(
            A=row["option_a_rate"],
            B=row["option_b_rate"],
            C=row["option_c_rate"],
            D=row["option_d_rate"],
        ),
        functional_distractors=row["functional_distractors"],
        nonfunctional_distractors=row["nonfunctional_distractors"],
        response_variance=row["response_variance"],
        flags=tuple(json.loads(row["flags"] or "[]")),
        quality_score=row["quality_score"],
    )


class SQLiteStore(CalibrationStore):
    def __init__(self, path: Path | str) -> None:
        if isinstance(path, Path):
            path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(SCHEMA)
        self._conn.commit()
        logger.debug(f"Opened calibration store at {path}")

    # --- Items ---

    def insert_items(self, items: Sequence[Item]) -> int:
        with self._conn:
            self._conn.executemany(
                """
                INSERT OR REPLACE INTO items (
                    id, source, topic, stem,
                    option_a, option_b, option_c, option_d,
                    correct, explanation, code
                ) VALUES (
                    :id, :source, :topic, :stem,
                    :option_a, :option_b, :option_c, :option_d,
                    :correct, :explanation, :code
                )
                """,
                [item.model_dump() for item in items],
            )
        return len(items)

    def get_item(self, item_id: str) -> Item | None:
        row = self._conn.execute(
            "SELECT * FROM items WHERE id = ?", (item_id,)
        ).fetchone()
        return _row_to_item(row) if row is not None else None

    def get_items(self, item_filter: ItemFilter | None = None) -> list[Item]:
        item_filter = item_filter or ItemFilter()
        sql = "SELECT * FROM items WHERE 1=1"
        params: dict[str, Any] = {}
        if item_filter.source is not None:
            sql += " AND source = :source"
            params["source"] = item_filter.source
        if item_filter.topic is not None:
            sql += " AND topic LIKE :topic"
            params["topic"] = f"%{item_filter.topic}%"
        sql += " ORDER BY rowid"
        if item_filter.limit is not None:
            sql += " LIMIT :limit"
            params["limit"] = item_filter.limit
        return [_row_to_item(row) for row in self._conn.execute(sql, params)]

    # --- Runs ---

    def create_run(self, run: CalibrationRun) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO calibration_runs (
                        id, name, description, model, persona_ids, item_filter,
                        n_items, n_personas, n_trials, status, started_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        run.id,
                        run.name,
                        run.description,
                        run.model,
                        json.dumps(list(run.persona_ids)),
                        run.item_filter,
                        run.n_items,
                        run.n_personas,
                        run.n_trials,
                        run.status.value,
                        run.started_at.isoformat(),
                    ),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Failed to create run {run.id}: {e}") from e

    def update_run(
        self,
        run_id: str,
        *,
        total_responses: int,
        total_cost_usd: float,
        status: RunStatus,
        completed_at: datetime,
    ) -> CalibrationRun:
        with self._conn:
            cursor = self._conn.execute(
                """
                UPDATE calibration_runs
                SET total_responses = ?, total_cost_usd = ?, status = ?,
                    completed_at = ?
                WHERE id = ?
                """,
                (
                    total_responses,
                    total_cost_usd,
                    status.value,
                    completed_at.isoformat(),
                    run_id,
                ),
            )
        if cursor.rowcount == 0:
            raise RunNotFoundError(run_id)
        run = self.get_run(run_id)
        assert run is not None
        return run

    def get_run(self, run_id: str) -> CalibrationRun | None:
        row = self._conn.execute(
            "SELECT * FROM calibration_runs WHERE id = ?", (run_id,)
        ).fetchone()
        return _row_to_run(row) if row is not None else None

    def list_runs(self, limit: int = 20) -> list[CalibrationRun]:
        rows = self._conn.execute(
            "SELECT * FROM calibration_runs ORDER BY started_at DESC LIMIT ?",
            (limit,),
        )
        return [_row_to_run(row) for row in rows]

    # --- Responses ---

    def insert_response(self, record: ResponseRecord) -> None:
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO synthetic_responses (
                        run_id, item_id, persona_id, trial, selected, is_correct,
                        reasoning, latency_ms, model, input_tokens, output_tokens
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.run_id,
                        record.item_id,
                        record.persona_id,
                        record.trial,
                        record.selected,
                        int(record.is_correct),
                        record.reasoning,
                        record.latency_ms,
                        record.model,
                        record.input_tokens,
                        record.output_tokens,
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise RunNotFoundError(record.run_id) from e

    def get_responses(
        self, response_filter: ResponseFilter
    ) -> list[ResponseRecord]:
        sql = "SELECT * FROM synthetic_responses WHERE 1=1"
        params: dict[str, Any] = {}
        for column in ("run_id", "item_id", "persona_id"):
            value = getattr(response_filter, column)
            if value is not None:
                sql += f" AND {column} = :{column}"
                params[column] = value
        sql += " ORDER BY id"
        return [_row_to_response(row) for row in self._conn.execute(sql, params)]

    def insert_human_responses(self, responses: Sequence[HumanResponse]) -> int:
        with self._conn:
            self._conn.executemany(
                """
                INSERT INTO human_responses (
                    item_id, user_id, selected, is_correct, latency_ms, source
                ) VALUES (
                    :item_id, :user_id, :selected, :is_correct, :latency_ms, :source
                )
                """,
                [r.model_dump() for r in responses],
            )
        return len(responses)

    def get_human_responses(
        self, item_ids: Sequence[str] | None = None
    ) -> list[HumanResponse]:
        if item_ids is None:
            rows = self._conn.execute("SELECT * FROM human_responses ORDER BY id")
            return [_row_to_human_response(row) for row in rows]
        placeholders = ",".join("?" for _ in item_ids)
        rows = self._conn.execute(
            f"SELECT * FROM human_responses WHERE item_id IN ({placeholders}) "
            "ORDER BY id",
            tuple(item_ids),
        )
        return [_row_to_human_response(row) for row in rows]

    # --- Statistics ---

    def insert_statistics(
        self,
        stats: ItemStatistics,
        source_type: StatisticsSource,
        run_id: str | None = None,
    ) -> None:
        with self._conn:
            self._conn.execute(
                "DELETE FROM item_statistics "
                "WHERE item_id = ? AND source_type = ? AND run_id IS ?",
                (stats.item_id, source_type.value, run_id),
            )
            self._conn.execute(
                """
                INSERT INTO item_statistics (
                    item_id, source_type, run_id, n_responses,
                    difficulty_index, point_biserial,
                    option_a_rate, option_b_rate, option_c_rate, option_d_rate,
                    functional_distractors, nonfunctional_distractors,
                    response_variance, flags, quality_score
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    stats.item_id,
                    source_type.value,
                    run_id,
                    stats.n_responses,
                    stats.difficulty,
                    stats.discrimination,
                    stats.option_rates.A,
                    stats.option_rates.B,
                    stats.option_rates.C,
                    stats.option_rates.D,
                    stats.functional_distractors,
                    stats.nonfunctional_distractors,
                    stats.response_variance,
                    json.dumps([str(f) for f in stats.flags]),
                    stats.quality_score,
                ),
            )

    def get_statistics(
        self, statistics_filter: StatisticsFilter
    ) -> list[ItemStatistics]:
        sql = "SELECT * FROM item_statistics WHERE 1=1"
        params: dict[str, Any] = {}
        if statistics_filter.item_id is not None:
            sql += " AND item_id = :item_id"
            params["item_id"] = statistics_filter.item_id
        if statistics_filter.run_id is not None:
            sql += " AND run_id = :run_id"
            params["run_id"] = statistics_filter.run_id
        if statistics_filter.source_type is not None:
            sql += " AND source_type = :source_type"
            params["source_type"] = statistics_filter.source_type.value
        sql += " ORDER BY id"
        return [_row_to_statistics(row) for row in self._conn.execute(sql, params)]

    def close(self) -> None:
        self._conn.close()
