import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import partial

from calibration_service.api.config import ApiSettings
from calibration_service.api.errors import (
    DataSizeExceededError,
    JobNotFoundError,
    TooManyJobsError,
)
from calibration_service.api.schemas import (
    DEFAULT_PERSONA_SET,
    CalibrationRequest,
    ErrorDetail,
    JobProgress,
    JobStatus,
    JobStatusResponse,
    RunSummarySchema,
)
from calibration_service.core.data_models import Persona
from calibration_service.core.utils import generate_id
from calibration_service.generation.client import GenerationClient
from calibration_service.generation.config import DEFAULT_MODEL
from calibration_service.personas import get_all_personas, get_persona_set
from calibration_service.simulation.exceptions import (
    ConfigurationError,
    RunCreationError,
)
from calibration_service.simulation.progress import ProgressUpdate
from calibration_service.simulation.rate_limit import RateLimitPolicy
from calibration_service.simulation.runner import (
    CalibrationConfig,
    CalibrationOrchestrator,
    select_personas,
)
from calibration_service.storage.base import CalibrationStore, ItemFilter

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], GenerationClient]


@dataclass
class Job:
    job_id: str
    status: JobStatus
    created_at: datetime
    config: CalibrationConfig
    client: GenerationClient = field(repr=False)
    orchestrator: CalibrationOrchestrator | None = field(default=None, repr=False)
    progress: JobProgress | None = None
    result: RunSummarySchema | None = None
    error: ErrorDetail | None = None
    completed_at: datetime | None = None
    task: asyncio.Task[None] | None = field(default=None, repr=False)
    started: bool = False


class JobManager:
    """
    Runs calibration jobs as background tasks.

    Configuration problems (unknown personas, no matching items, missing
    credentials) surface from ``submit`` before a job or a run exists.
    """

    def __init__(
        self,
        settings: ApiSettings,
        store: CalibrationStore,
        client_factory: ClientFactory,
        rate_limit: RateLimitPolicy | None = None,
        max_workers: int = 1,
    ) -> None:
        self._settings = settings
        self._store = store
        self._client_factory = client_factory
        self._rate_limit = rate_limit or RateLimitPolicy()
        self._max_workers = max_workers
        self._jobs: dict[str, Job] = {}
        self._semaphore = asyncio.Semaphore(settings.max_concurrent_jobs)

    @property
    def store(self) -> CalibrationStore:
        return self._store

    def _resolve_personas(self, request: CalibrationRequest) -> tuple[Persona, ...]:
        if request.persona_ids is not None:
            return select_personas(get_all_personas(), request.persona_ids)
        try:
            persona_set = get_persona_set(request.persona_set or DEFAULT_PERSONA_SET)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        return persona_set.personas

    def _validate_data_size(self, config: CalibrationConfig) -> None:
        n_items = len(config.items)
        n_personas = len(config.personas)

        if n_items > self._settings.max_items:
            raise DataSizeExceededError(
                f"n_items={n_items} exceeds max={self._settings.max_items}"
            )
        if n_personas > self._settings.max_personas:
            raise DataSizeExceededError(
                f"n_personas={n_personas} exceeds max={self._settings.max_personas}"
            )
        if config.n_trials > self._settings.max_trials:
            raise DataSizeExceededError(
                f"n_trials={config.n_trials} exceeds max={self._settings.max_trials}"
            )

    def build_config(self, request: CalibrationRequest) -> CalibrationConfig:
        item_filter = ItemFilter(
            source=request.source, topic=request.topic, limit=request.limit
        )
        items = self._store.get_items(item_filter)
        if not items:
            raise ConfigurationError(
                f"No items match filter: {item_filter.describe() or 'all'}"
            )

        config = CalibrationConfig(
            items=tuple(items),
            personas=self._resolve_personas(request),
            model=request.model or DEFAULT_MODEL,
            n_trials=request.n_trials,
            name=request.name,
            description=request.description,
            item_filter=item_filter.describe(),
            rate_limit=self._rate_limit,
            max_workers=self._max_workers,
        )
        self._validate_data_size(config)
        return config

    def submit(self, request: CalibrationRequest) -> Job:
        config = self.build_config(request)

        if self._semaphore._value == 0:  # noqa: SLF001
            raise TooManyJobsError

        client = self._client_factory()
        job = Job(
            job_id=generate_id(),
            status=JobStatus.PENDING,
            created_at=datetime.now(UTC),
            config=config,
            client=client,
        )
        job.orchestrator = CalibrationOrchestrator(
            self._store, client, on_progress=partial(self._record_progress, job)
        )
        self._jobs[job.job_id] = job
        job.task = asyncio.create_task(self._run_job(job))
        return job

    def get_status(self, job_id: str) -> JobStatusResponse:
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return JobStatusResponse(
            job_id=job.job_id,
            status=job.status,
            cancel_requested=(
                job.orchestrator is not None and job.orchestrator.cancelled
            ),
            progress=job.progress,
            result=job.result,
            error=job.error,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )

    async def cancel(self, job_id: str) -> None:
        """
        Pending jobs are dropped and their client is closed. Running jobs
        stop taking new cells and finish with a completed run flagged as
        cancelled.
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        if job.status is JobStatus.PENDING:
            del self._jobs[job_id]
            if job.task is None or job.task.done():
                return
            job.task.cancel()
            # A task cancelled before its first step never reaches its finally
            if not job.started:
                await job.client.close()
            return

        if job.orchestrator is not None:
            job.orchestrator.cancel()

    @staticmethod
    def _record_progress(job: Job, update: ProgressUpdate) -> None:
        job.progress = JobProgress.from_update(update)

    async def _run_job(self, job: Job) -> None:
        job.started = True
        try:
            async with self._semaphore:
                job.status = JobStatus.RUNNING
                await self._execute(job)
        finally:
            await job.client.close()

    async def _execute(self, job: Job) -> None:
        try:
            assert job.orchestrator is not None
            summary = await job.orchestrator.run(job.config)
            job.result = RunSummarySchema.from_domain(summary)
            job.status = JobStatus.COMPLETED

        except RunCreationError as e:
            logger.error(f"Job {job.job_id} could not start: {e}")
            job.status = JobStatus.FAILED
            job.error = ErrorDetail(
                code="RUN_CREATION_FAILED",
                message="Failed to create calibration run",
            )

        except Exception:
            logger.exception(f"Job {job.job_id} failed")
            job.status = JobStatus.FAILED
            job.error = ErrorDetail(
                code="INTERNAL_ERROR",
                message="Internal error during calibration",
            )

        finally:
            job.completed_at = datetime.now(UTC)

    async def cleanup_expired(self) -> None:
        now = datetime.now(UTC)
        expired = [
            jid
            for jid, job in self._jobs.items()
            if job.completed_at
            and (now - job.completed_at).total_seconds()
            > self._settings.job_ttl_seconds
        ]
        for jid in expired:
            del self._jobs[jid]
