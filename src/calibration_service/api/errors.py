import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from calibration_service.api.schemas import ErrorDetail
from calibration_service.generation.exceptions import MissingCredentialError
from calibration_service.simulation.exceptions import ConfigurationError
from calibration_service.storage.exceptions import RunNotFoundError

logger = logging.getLogger(__name__)


class DataSizeExceededError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class JobNotFoundError(Exception):
    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class TooManyJobsError(Exception):
    pass


def _get_request_id(request: Request) -> str | None:
    if hasattr(request.state, "request_id"):
        result: str = request.state.request_id
        return result
    return None


def _error_response(
    request: Request, status_code: int, code: str, message: str
) -> JSONResponse:
    detail = ErrorDetail(
        code=code,
        message=message,
        request_id=_get_request_id(request),
    )
    return JSONResponse(status_code=status_code, content=detail.model_dump())


async def data_size_exceeded_handler(
    request: Request, exc: DataSizeExceededError
) -> JSONResponse:
    return _error_response(request, 422, "DATA_SIZE_EXCEEDED", exc.message)


async def configuration_error_handler(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    return _error_response(request, 422, "CONFIGURATION_ERROR", str(exc))


async def missing_credential_handler(
    request: Request, exc: MissingCredentialError
) -> JSONResponse:
    return _error_response(request, 422, "MISSING_CREDENTIAL", str(exc))


async def job_not_found_handler(
    request: Request, exc: JobNotFoundError
) -> JSONResponse:
    return _error_response(request, 404, "JOB_NOT_FOUND", str(exc))


async def run_not_found_handler(
    request: Request, exc: RunNotFoundError
) -> JSONResponse:
    return _error_response(request, 404, "RUN_NOT_FOUND", str(exc))


async def too_many_jobs_handler(
    request: Request, exc: TooManyJobsError
) -> JSONResponse:
    return _error_response(
        request, 429, "TOO_MANY_JOBS", "Too many concurrent jobs"
    )


async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    return _error_response(request, 422, "VALIDATION_ERROR", str(exc))


async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    logger.exception("Unhandled exception")
    return _error_response(
        request, 500, "INTERNAL_ERROR", "Internal server error"
    )
