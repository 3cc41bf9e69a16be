from pathlib import Path

from pydantic_settings import BaseSettings

from calibration_service.core.constants import ENV_PREFIX
from calibration_service.core.paths import get_default_database_path
from calibration_service.simulation.rate_limit import (
    DEFAULT_MIN_INTERVAL_SECONDS,
    RateLimitPolicy,
)


class CalibrationSettings(BaseSettings):
    model_config = {"env_prefix": ENV_PREFIX}

    database_path: Path = get_default_database_path()
    min_call_interval_seconds: float = DEFAULT_MIN_INTERVAL_SECONDS
    rate_limit_burst: int = 1
    max_workers: int = 1

    def rate_limit_policy(self) -> RateLimitPolicy:
        return RateLimitPolicy(
            min_interval_seconds=self.min_call_interval_seconds,
            burst=self.rate_limit_burst,
        )
