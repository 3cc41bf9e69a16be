import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import cast

from fastapi import FastAPI, Request, Response
from pydantic import ValidationError
from starlette.types import ExceptionHandler

from calibration_service.api.config import ApiSettings
from calibration_service.api.dependencies import get_settings, init_job_manager
from calibration_service.api.errors import (
    DataSizeExceededError,
    JobNotFoundError,
    TooManyJobsError,
    configuration_error_handler,
    data_size_exceeded_handler,
    job_not_found_handler,
    missing_credential_handler,
    run_not_found_handler,
    too_many_jobs_handler,
    unhandled_exception_handler,
    validation_error_handler,
)
from calibration_service.api.jobs import ClientFactory
from calibration_service.api.routes import router
from calibration_service.generation.client import AnthropicGenerationClient
from calibration_service.generation.config import GenerationSettings
from calibration_service.generation.exceptions import MissingCredentialError
from calibration_service.simulation.config import CalibrationSettings
from calibration_service.simulation.exceptions import ConfigurationError
from calibration_service.storage.base import CalibrationStore
from calibration_service.storage.exceptions import RunNotFoundError
from calibration_service.storage.sqlite import SQLiteStore


def _anthropic_client_factory() -> AnthropicGenerationClient:
    return AnthropicGenerationClient.from_settings(GenerationSettings())


def create_app(
    settings: ApiSettings | None = None,
    store: CalibrationStore | None = None,
    client_factory: ClientFactory | None = None,
    calibration_settings: CalibrationSettings | None = None,
) -> FastAPI:
    if settings is None:
        settings = get_settings()
    if calibration_settings is None:
        calibration_settings = CalibrationSettings()
    if store is None:
        store = SQLiteStore(calibration_settings.database_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        app.state.store.close()

    app = FastAPI(title="Synthetic Students Calibration API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    init_job_manager(
        settings,
        store,
        client_factory or _anthropic_client_factory,
        rate_limit=calibration_settings.rate_limit_policy(),
        max_workers=calibration_settings.max_workers,
    )

    # Exception handlers: cast needed because FastAPI expects
    # (Request, Exception) but our handlers use specific exc types.
    _eh = cast(ExceptionHandler, data_size_exceeded_handler)
    app.add_exception_handler(DataSizeExceededError, _eh)
    _eh = cast(ExceptionHandler, configuration_error_handler)
    app.add_exception_handler(ConfigurationError, _eh)
    _eh = cast(ExceptionHandler, missing_credential_handler)
    app.add_exception_handler(MissingCredentialError, _eh)
    _eh = cast(ExceptionHandler, job_not_found_handler)
    app.add_exception_handler(JobNotFoundError, _eh)
    _eh = cast(ExceptionHandler, run_not_found_handler)
    app.add_exception_handler(RunNotFoundError, _eh)
    _eh = cast(ExceptionHandler, too_many_jobs_handler)
    app.add_exception_handler(TooManyJobsError, _eh)
    _eh = cast(ExceptionHandler, validation_error_handler)
    app.add_exception_handler(ValidationError, _eh)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Request-ID middleware
    @app.middleware("http")
    async def request_id_middleware(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex[:12])
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(router)

    return app
