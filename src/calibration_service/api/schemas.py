from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from calibration_service.core.data_models import CalibrationRun
from calibration_service.simulation.progress import ProgressUpdate
from calibration_service.simulation.runner import RunSummary
from calibration_service.statistics.classical import summarize_statistics
from calibration_service.statistics.data_models import (
    ItemStatistics,
    StatisticsSummary,
)
from calibration_service.statistics.export import QUALITY_DECIMALS

DEFAULT_PERSONA_SET = "standard-ability"

# --- Enums ---


class JobStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# --- Request schemas ---


class CalibrationRequest(BaseModel):
    """
    A calibration job. Personas come either from a named preset set or
    from an explicit list of preset ids; the standard ability set is used
    when neither is given.
    """

    persona_set: str | None = None
    persona_ids: list[str] | None = None
    source: str | None = None
    topic: str | None = None
    limit: int | None = Field(default=None, ge=1)
    n_trials: int = Field(default=1, ge=1)
    model: str | None = None
    name: str | None = None
    description: str | None = None

    @model_validator(mode="after")
    def validate_persona_selection(self) -> "CalibrationRequest":
        if self.persona_set is not None and self.persona_ids is not None:
            raise ValueError("Give either persona_set or persona_ids, not both")
        if self.persona_ids is not None and not self.persona_ids:
            raise ValueError("persona_ids must not be empty")
        return self


class EstimateRequest(BaseModel):
    model: str | None = None
    n_items: int = Field(ge=0)
    n_personas: int = Field(ge=0)
    n_trials: int = Field(default=1, ge=1)


# --- Response schemas ---


class JobProgress(BaseModel):
    completed: int
    processed: int
    total: int
    current_item: str
    current_persona: str

    @classmethod
    def from_update(cls, update: ProgressUpdate) -> "JobProgress":
        return cls(
            completed=update.completed,
            processed=update.processed,
            total=update.total,
            current_item=update.current_item,
            current_persona=update.current_persona,
        )


class RunSummarySchema(BaseModel):
    run_id: str
    total_responses: int
    total_cost_usd: float
    duration_ms: int
    total_cells: int
    n_parse_failures: int
    n_adapter_errors: int
    n_storage_errors: int
    cancelled: bool

    @classmethod
    def from_domain(cls, summary: RunSummary) -> "RunSummarySchema":
        return cls(
            run_id=summary.run_id,
            total_responses=summary.total_responses,
            total_cost_usd=round(summary.total_cost_usd, 4),
            duration_ms=summary.duration_ms,
            total_cells=summary.total_cells,
            n_parse_failures=summary.n_parse_failures,
            n_adapter_errors=summary.n_adapter_errors,
            n_storage_errors=summary.n_storage_errors,
            cancelled=summary.cancelled,
        )


class ErrorDetail(BaseModel):
    code: str
    message: str
    request_id: str | None = None


class JobStatusResponse(BaseModel):
    job_id: str
    status: JobStatus
    cancel_requested: bool = False
    progress: JobProgress | None = None
    result: RunSummarySchema | None = None
    error: ErrorDetail | None = None
    created_at: datetime
    completed_at: datetime | None = None


class JobCreatedResponse(BaseModel):
    job_id: str
    total_cells: int


class RunListResponse(BaseModel):
    runs: list[CalibrationRun]


class RunStatisticsResponse(BaseModel):
    run_id: str
    items: list[ItemStatistics]
    summary: StatisticsSummary

    @classmethod
    def from_domain(
        cls, run_id: str, stats: list[ItemStatistics]
    ) -> "RunStatisticsResponse":
        """Summary over the exact values; quality scores rounded for output."""
        items = [
            s.model_copy(
                update={"quality_score": round(s.quality_score, QUALITY_DECIMALS)}
            )
            for s in stats
        ]
        return cls(run_id=run_id, items=items, summary=summarize_statistics(stats))


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
