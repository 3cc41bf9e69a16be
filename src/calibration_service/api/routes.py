from fastapi import APIRouter, Depends, Response

from calibration_service.api.dependencies import (
    get_job_manager,
    get_store,
    get_version,
)
from calibration_service.api.jobs import JobManager
from calibration_service.api.schemas import (
    CalibrationRequest,
    EstimateRequest,
    HealthResponse,
    JobCreatedResponse,
    JobStatusResponse,
    RunListResponse,
    RunStatisticsResponse,
)
from calibration_service.generation.config import DEFAULT_MODEL
from calibration_service.personas import PersonaSetSummary, list_persona_sets
from calibration_service.simulation.cost import (
    CostEstimate,
    ModelInfo,
    estimate_cost,
    get_available_models,
)
from calibration_service.statistics import CorrelationResult
from calibration_service.statistics.service import (
    compare_run_to_human,
    compute_synthetic_statistics,
)
from calibration_service.storage.base import CalibrationStore

router = APIRouter(prefix="/api/v1")


@router.post("/calibrations", status_code=202)
async def submit_calibration(
    request: CalibrationRequest,
    job_manager: JobManager = Depends(get_job_manager),
) -> JobCreatedResponse:
    job = job_manager.submit(request)
    return JobCreatedResponse(job_id=job.job_id, total_cells=job.config.total_cells)


@router.get("/calibrations/{job_id}")
async def get_calibration_status(
    job_id: str,
    job_manager: JobManager = Depends(get_job_manager),
) -> JobStatusResponse:
    return job_manager.get_status(job_id)


@router.delete("/calibrations/{job_id}", status_code=204)
async def cancel_calibration(
    job_id: str,
    job_manager: JobManager = Depends(get_job_manager),
) -> Response:
    await job_manager.cancel(job_id)
    return Response(status_code=204)


@router.get("/runs")
async def list_runs(
    limit: int = 20,
    store: CalibrationStore = Depends(get_store),
) -> RunListResponse:
    return RunListResponse(runs=store.list_runs(limit=limit))


@router.get("/runs/{run_id}/statistics")
async def get_run_statistics(
    run_id: str,
    store: CalibrationStore = Depends(get_store),
) -> RunStatisticsResponse:
    stats = compute_synthetic_statistics(store, run_id, persist=False)
    return RunStatisticsResponse.from_domain(run_id, stats)


@router.get("/runs/{run_id}/comparison")
async def compare_run(
    run_id: str,
    store: CalibrationStore = Depends(get_store),
) -> CorrelationResult:
    return compare_run_to_human(store, run_id)


@router.post("/estimates")
async def estimate(request: EstimateRequest) -> CostEstimate:
    return estimate_cost(
        request.model or DEFAULT_MODEL,
        request.n_items,
        request.n_personas,
        request.n_trials,
    )


@router.get("/models")
async def list_models() -> list[ModelInfo]:
    return get_available_models()


@router.get("/persona-sets")
async def persona_sets() -> list[PersonaSetSummary]:
    return list_persona_sets()


@router.get("/health")
async def health_check(
    version: str = Depends(get_version),
) -> HealthResponse:
    return HealthResponse(version=version)
