import pytest
from pydantic import ValidationError

from calibration_service.api.schemas import (
    CalibrationRequest,
    EstimateRequest,
    JobProgress,
    JobStatus,
    RunStatisticsResponse,
    RunSummarySchema,
)
from calibration_service.simulation import ProgressUpdate, RunSummary
from calibration_service.statistics.data_models import ItemStatistics, OptionRates


class TestCalibrationRequest:
    def test_defaults(self) -> None:
        request = CalibrationRequest()
        assert request.persona_set is None
        assert request.persona_ids is None
        assert request.n_trials == 1
        assert request.model is None

    def test_persona_set_or_ids_not_both(self) -> None:
        with pytest.raises(ValidationError, match="either persona_set or persona_ids"):
            CalibrationRequest(persona_set="minimal", persona_ids=["expert"])

    def test_empty_persona_ids(self) -> None:
        with pytest.raises(ValidationError, match="must not be empty"):
            CalibrationRequest(persona_ids=[])

    def test_trials_minimum(self) -> None:
        with pytest.raises(ValidationError):
            CalibrationRequest(n_trials=0)

    def test_limit_minimum(self) -> None:
        with pytest.raises(ValidationError):
            CalibrationRequest(limit=0)


class TestEstimateRequest:
    def test_negative_counts_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EstimateRequest(n_items=-1, n_personas=5)

    def test_zero_items_allowed(self) -> None:
        assert EstimateRequest(n_items=0, n_personas=5).n_trials == 1


class TestConversions:
    def test_job_progress_from_update(self) -> None:
        update = ProgressUpdate(
            completed=3,
            processed=4,
            total=10,
            current_item="q2",
            current_persona="novice",
        )
        progress = JobProgress.from_update(update)
        assert progress.model_dump() == {
            "completed": 3,
            "processed": 4,
            "total": 10,
            "current_item": "q2",
            "current_persona": "novice",
        }

    def test_run_summary_rounds_cost(self) -> None:
        summary = RunSummary(
            run_id="r1",
            total_responses=9,
            total_cost_usd=0.0123456,
            duration_ms=1500,
            total_cells=10,
            n_parse_failures=1,
            cancelled=True,
        )
        schema = RunSummarySchema.from_domain(summary)
        assert schema.total_cost_usd == 0.0123
        assert schema.n_parse_failures == 1
        assert schema.n_adapter_errors == 0
        assert schema.n_storage_errors == 0
        assert schema.cancelled is True

    def test_run_statistics_round_quality(self) -> None:
        stats = [
            ItemStatistics(
                item_id="q1",
                n_responses=5,
                difficulty=0.6,
                discrimination=0.4,
                option_rates=OptionRates(A=0.2, B=0.6, C=0.1, D=0.1),
                functional_distractors=3,
                nonfunctional_distractors=0,
                response_variance=0.1,
                flags=(),
                quality_score=0.6000000000000001,
            ),
            ItemStatistics(
                item_id="q2",
                n_responses=5,
                difficulty=0.2,
                discrimination=0.1,
                option_rates=OptionRates(A=0.2, B=0.2, C=0.4, D=0.2),
                functional_distractors=3,
                nonfunctional_distractors=0,
                response_variance=0.2,
                flags=(),
                quality_score=0.456789,
            ),
        ]

        response = RunStatisticsResponse.from_domain("r1", stats)

        assert [s.quality_score for s in response.items] == [0.6, 0.46]
        assert [s.difficulty for s in response.items] == [0.6, 0.2]
        assert response.summary.n_items == 2
        assert response.summary.mean_quality == pytest.approx(
            (0.6000000000000001 + 0.456789) / 2
        )


class TestJobStatus:
    def test_values(self) -> None:
        assert JobStatus.PENDING == "pending"
        assert JobStatus.RUNNING == "running"
        assert JobStatus.COMPLETED == "completed"
        assert JobStatus.FAILED == "failed"
