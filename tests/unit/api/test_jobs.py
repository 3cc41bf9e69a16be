"""Unit tests for the background job manager."""

import asyncio

import pytest

from calibration_service.api.config import ApiSettings
from calibration_service.api.errors import JobNotFoundError
from calibration_service.api.jobs import JobManager
from calibration_service.api.schemas import CalibrationRequest, JobStatus
from calibration_service.core.data_models import Item
from calibration_service.generation import (
    GenerationClient,
    GenerationRequest,
    GenerationResult,
)
from calibration_service.simulation.rate_limit import RateLimitPolicy
from calibration_service.storage import InMemoryStore


class RecordingClient(GenerationClient):
    def __init__(self) -> None:
        self.calls = 0
        self.closed = False

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        self.calls += 1
        return GenerationResult(text="Answer: A", input_tokens=10, output_tokens=5)

    async def close(self) -> None:
        self.closed = True


def _manager(client: RecordingClient) -> JobManager:
    store = InMemoryStore(
        [
            Item(
                id="q1",
                stem="Question q1",
                option_a="a",
                option_b="b",
                option_c="c",
                option_d="d",
                correct="A",
            )
        ]
    )
    return JobManager(
        ApiSettings(),
        store,
        client_factory=lambda: client,
        rate_limit=RateLimitPolicy(min_interval_seconds=0),
    )


class TestCancelPending:
    @pytest.mark.asyncio
    async def test_cancel_before_start_closes_client(self) -> None:
        client = RecordingClient()
        manager = _manager(client)

        job = manager.submit(CalibrationRequest(persona_set="minimal"))
        assert job.status is JobStatus.PENDING
        assert job.task is not None

        await manager.cancel(job.job_id)

        assert client.closed
        with pytest.raises(asyncio.CancelledError):
            await job.task
        assert client.calls == 0
        assert manager.store.list_runs() == []
        with pytest.raises(JobNotFoundError):
            manager.get_status(job.job_id)

    @pytest.mark.asyncio
    async def test_finished_job_closes_client_once_done(self) -> None:
        client = RecordingClient()
        manager = _manager(client)

        job = manager.submit(CalibrationRequest(persona_set="minimal"))
        assert job.task is not None
        await job.task

        assert job.status is JobStatus.COMPLETED
        assert client.closed
        assert client.calls > 0

    @pytest.mark.asyncio
    async def test_cancel_unknown_job(self) -> None:
        manager = _manager(RecordingClient())

        with pytest.raises(JobNotFoundError):
            await manager.cancel("missing")
