"""
Calibration orchestrator.

A run sweeps every (item, persona, trial) cell through the generation
client, parses the selected option out of each response and persists one
record per parsed answer. Failed calls, unparseable responses and failed
writes are reported through the skip callback and do not stop the run.

Cells are dispatched in item -> persona -> trial order from a shared
queue. With a single worker (the default) calls are issued one at a time
in that order; with several workers the order of persisted records is not
guaranteed.
"""

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from calibration_service.core.data_models import (
    CalibrationRun,
    Item,
    Persona,
    ResponseRecord,
    RunStatus,
)
from calibration_service.core.utils import generate_id, utc_now
from calibration_service.generation.client import (
    GenerationClient,
    GenerationRequest,
)
from calibration_service.generation.config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
)
from calibration_service.generation.exceptions import GenerationError
from calibration_service.simulation.cost import (
    CostEstimate,
    calculate_cost,
    estimate_cost,
)
from calibration_service.simulation.exceptions import (
    ConfigurationError,
    RunCreationError,
)
from calibration_service.simulation.parser import parse_answer
from calibration_service.simulation.progress import (
    ProgressCallback,
    ProgressUpdate,
    SkipCallback,
    SkippedCell,
    SkipReason,
)
from calibration_service.simulation.prompts import format_item
from calibration_service.simulation.rate_limit import (
    RateLimitPolicy,
    TokenBucketRateLimiter,
)
from calibration_service.storage.base import CalibrationStore
from calibration_service.storage.exceptions import StorageError

logger = logging.getLogger(__name__)

# Skip details carry at most this many characters of the raw response
SKIP_DETAIL_CHARS = 100


@dataclass(frozen=True)
class CalibrationConfig:
    """
    Everything needed to start one calibration run.

    Attributes:
        items: Items to administer, in sweep order.
        personas: Personas to simulate, in sweep order.
        model: Generation model identifier.
        n_trials: Repetitions of each (item, persona) pair.
        name: Optional run name.
        description: Optional run description.
        item_filter: Description of how the items were selected.
        max_tokens: Completion token limit per call.
        rate_limit: Pacing of outbound calls.
        max_workers: Number of cells in flight at once.
    """

    items: tuple[Item, ...]
    personas: tuple[Persona, ...]
    model: str = DEFAULT_MODEL
    n_trials: int = 1
    name: str | None = None
    description: str | None = None
    item_filter: str | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    rate_limit: RateLimitPolicy = field(default_factory=RateLimitPolicy)
    max_workers: int = 1

    def __post_init__(self) -> None:
        if not self.items:
            raise ConfigurationError("No items to calibrate")
        if not self.personas:
            raise ConfigurationError("No personas to simulate")
        if self.n_trials < 1:
            raise ConfigurationError(
                f"n_trials must be >= 1, got {self.n_trials}"
            )
        if self.max_tokens <= 0:
            raise ConfigurationError(
                f"max_tokens must be positive, got {self.max_tokens}"
            )
        if self.max_workers < 1:
            raise ConfigurationError(
                f"max_workers must be >= 1, got {self.max_workers}"
            )

    @property
    def total_cells(self) -> int:
        return len(self.items) * len(self.personas) * self.n_trials

    def estimate(self) -> CostEstimate:
        """Cost estimate for this configuration, without any calls."""
        return estimate_cost(
            self.model, len(self.items), len(self.personas), self.n_trials
        )


@dataclass(frozen=True)
class RunSummary:
    run_id: str
    total_responses: int
    total_cost_usd: float
    duration_ms: int
    total_cells: int
    n_parse_failures: int = 0
    n_adapter_errors: int = 0
    n_storage_errors: int = 0
    cancelled: bool = False

    @property
    def n_skipped(self) -> int:
        return (
            self.n_parse_failures + self.n_adapter_errors + self.n_storage_errors
        )


@dataclass(frozen=True)
class _Cell:
    item: Item
    persona: Persona
    trial: int


@dataclass
class _RunState:
    run_id: str
    config: CalibrationConfig
    completed: int = 0
    processed: int = 0
    total_cost_usd: float = 0.0
    n_parse_failures: int = 0
    n_adapter_errors: int = 0
    n_storage_errors: int = 0


class CalibrationOrchestrator:
    """
    Runs calibration sweeps against a store and a generation client.

    ``cancel`` stops the sweep between cells: calls already in flight
    finish, no new cell is started, and the run is still finalized with
    the totals reached so far. Cancellation applies to the current run
    only; the next ``run`` call starts a fresh sweep.
    """

    def __init__(
        self,
        store: CalibrationStore,
        client: GenerationClient,
        on_progress: ProgressCallback | None = None,
        on_skip: SkipCallback | None = None,
    ) -> None:
        self._store = store
        self._client = client
        self._on_progress = on_progress
        self._on_skip = on_skip
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def _create_run(self, config: CalibrationConfig) -> CalibrationRun:
        run = CalibrationRun(
            id=generate_id(),
            name=config.name,
            description=config.description,
            model=config.model,
            persona_ids=tuple(p.id for p in config.personas),
            item_filter=config.item_filter,
            n_items=len(config.items),
            n_personas=len(config.personas),
            n_trials=config.n_trials,
            status=RunStatus.RUNNING,
            started_at=utc_now(),
        )
        try:
            self._store.create_run(run)
        except StorageError as e:
            raise RunCreationError(f"Failed to create calibration run: {e}") from e
        return run

    @staticmethod
    def _build_queue(config: CalibrationConfig) -> asyncio.Queue[_Cell]:
        queue: asyncio.Queue[_Cell] = asyncio.Queue()
        for item in config.items:
            for persona in config.personas:
                for trial in range(1, config.n_trials + 1):
                    queue.put_nowait(_Cell(item=item, persona=persona, trial=trial))
        return queue

    def _emit_progress(self, state: _RunState, cell: _Cell) -> None:
        if self._on_progress is None:
            return
        update = ProgressUpdate(
            completed=state.completed,
            processed=state.processed,
            total=state.config.total_cells,
            current_item=cell.item.id,
            current_persona=cell.persona.id,
        )
        try:
            self._on_progress(update)
        except Exception:
            logger.exception("Progress callback failed")

    def _skip(
        self, state: _RunState, cell: _Cell, reason: SkipReason, detail: str
    ) -> None:
        if reason is SkipReason.PARSE_FAILURE:
            state.n_parse_failures += 1
        elif reason is SkipReason.STORAGE_ERROR:
            state.n_storage_errors += 1
        else:
            state.n_adapter_errors += 1

        logger.debug(
            f"Skipped {cell.item.id}/{cell.persona.id} trial {cell.trial}: "
            f"{reason} ({detail})"
        )
        if self._on_skip is None:
            return
        skipped = SkippedCell(
            item_id=cell.item.id,
            persona_id=cell.persona.id,
            trial=cell.trial,
            reason=reason,
            detail=detail,
        )
        try:
            self._on_skip(skipped)
        except Exception:
            logger.exception("Skip callback failed")

    async def _run_cell(self, state: _RunState, cell: _Cell) -> None:
        config = state.config
        request = GenerationRequest(
            system_prompt=cell.persona.system_prompt,
            user_prompt=format_item(cell.item),
            temperature=cell.persona.temperature,
            model=config.model,
            max_tokens=config.max_tokens,
        )

        start = time.perf_counter()
        try:
            result = await self._client.generate(request)
        except GenerationError as e:
            self._skip(state, cell, SkipReason.ADAPTER_ERROR, str(e))
            return
        except Exception as e:
            # Any failure below the client boundary costs one cell only
            logger.warning(f"Unexpected generation client error: {e!r}")
            self._skip(state, cell, SkipReason.ADAPTER_ERROR, repr(e))
            return
        latency_ms = int((time.perf_counter() - start) * 1000)

        selected = parse_answer(result.text)
        if selected is None:
            self._skip(
                state,
                cell,
                SkipReason.PARSE_FAILURE,
                result.text[:SKIP_DETAIL_CHARS],
            )
            return

        record = ResponseRecord(
            run_id=state.run_id,
            item_id=cell.item.id,
            persona_id=cell.persona.id,
            trial=cell.trial,
            selected=selected,
            is_correct=selected == cell.item.correct,
            reasoning=result.text,
            latency_ms=latency_ms,
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            model=config.model,
        )
        try:
            self._store.insert_response(record)
        except StorageError as e:
            logger.warning(f"Failed to store response for {cell.item.id}: {e}")
            self._skip(state, cell, SkipReason.STORAGE_ERROR, str(e))
            return

        state.completed += 1
        state.total_cost_usd += calculate_cost(
            config.model, result.input_tokens, result.output_tokens
        )

    async def _worker(
        self,
        state: _RunState,
        queue: asyncio.Queue[_Cell],
        limiter: TokenBucketRateLimiter,
    ) -> None:
        while not self._cancelled:
            try:
                cell = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            await limiter.acquire()
            if self._cancelled:
                return

            await self._run_cell(state, cell)
            state.processed += 1
            self._emit_progress(state, cell)

    async def run(self, config: CalibrationConfig) -> RunSummary:
        """
        Execute the full sweep described by ``config``.

        The run record is finalized with the totals reached even when the
        sweep stops early, whether through ``cancel`` or an unexpected
        worker error. In the latter case the error is re-raised after the
        remaining workers have stopped.

        Returns:
            RunSummary with the totals written to the finalized run.

        Raises:
            RunCreationError: If the run record cannot be created. No
                generation call is made in that case.
        """
        self._cancelled = False
        started = time.perf_counter()
        run = self._create_run(config)
        state = _RunState(run_id=run.id, config=config)

        logger.info(
            f"Starting calibration run {run.id}: {len(config.items)} items x "
            f"{len(config.personas)} personas x {config.n_trials} trials "
            f"= {config.total_cells} calls ({config.model})"
        )

        queue = self._build_queue(config)
        limiter = TokenBucketRateLimiter(config.rate_limit)
        workers = [
            asyncio.create_task(self._worker(state, queue, limiter))
            for _ in range(config.max_workers)
        ]
        try:
            await asyncio.gather(*workers)
        except Exception:
            logger.exception(f"Calibration run {run.id} stopped by worker error")
            self._cancelled = True
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        finally:
            self._store.update_run(
                run.id,
                total_responses=state.completed,
                total_cost_usd=state.total_cost_usd,
                status=RunStatus.COMPLETED,
                completed_at=utc_now(),
            )

        summary = RunSummary(
            run_id=run.id,
            total_responses=state.completed,
            total_cost_usd=state.total_cost_usd,
            duration_ms=int((time.perf_counter() - started) * 1000),
            total_cells=config.total_cells,
            n_parse_failures=state.n_parse_failures,
            n_adapter_errors=state.n_adapter_errors,
            n_storage_errors=state.n_storage_errors,
            cancelled=self._cancelled,
        )
        logger.info(
            f"Calibration run {run.id} complete: {summary.total_responses}/"
            f"{summary.total_cells} responses, {summary.n_skipped} skipped, "
            f"${summary.total_cost_usd:.4f}"
            + (" (cancelled)" if summary.cancelled else "")
        )
        return summary


def select_personas(
    personas: Sequence[Persona], persona_ids: Sequence[str]
) -> tuple[Persona, ...]:
    """
    Pick personas by id, preserving the requested order.

    Raises:
        ConfigurationError: If any id is unknown.
    """
    by_id = {p.id: p for p in personas}
    unknown = [pid for pid in persona_ids if pid not in by_id]
    if unknown:
        raise ConfigurationError(f"Unknown persona ids: {', '.join(unknown)}")
    return tuple(by_id[pid] for pid in persona_ids)
