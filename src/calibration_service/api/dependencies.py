from functools import lru_cache

import toml
from fastapi import Request

from calibration_service.api.config import ApiSettings
from calibration_service.api.jobs import ClientFactory, JobManager
from calibration_service.core.paths import get_project_root_dir
from calibration_service.simulation.rate_limit import RateLimitPolicy
from calibration_service.storage.base import CalibrationStore


@lru_cache(maxsize=1)
def get_settings() -> ApiSettings:
    return ApiSettings()


_job_manager: JobManager | None = None


def init_job_manager(
    settings: ApiSettings,
    store: CalibrationStore,
    client_factory: ClientFactory,
    rate_limit: RateLimitPolicy | None = None,
    max_workers: int = 1,
) -> JobManager:
    global _job_manager  # noqa: PLW0603
    _job_manager = JobManager(
        settings,
        store,
        client_factory,
        rate_limit=rate_limit,
        max_workers=max_workers,
    )
    return _job_manager


def get_job_manager() -> JobManager:
    assert _job_manager is not None, "JobManager not initialized"
    return _job_manager


def get_store(request: Request) -> CalibrationStore:
    store: CalibrationStore = request.app.state.store
    return store


@lru_cache(maxsize=1)
def get_version() -> str:
    root_dir = get_project_root_dir()
    with open(root_dir / "pyproject.toml") as f:
        data = toml.load(f)

    version = data.get("project", {}).get("version")

    if not version:
        raise ValueError("Version not found in pyproject.toml")

    assert isinstance(version, str)
    return version
