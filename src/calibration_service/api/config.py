from pydantic_settings import BaseSettings

from calibration_service.core.constants import ENV_PREFIX


class ApiSettings(BaseSettings):
    model_config = {"env_prefix": ENV_PREFIX}

    max_items: int = 500
    max_personas: int = 20
    max_trials: int = 10
    host: str = "127.0.0.1"
    port: int = 8000
    max_concurrent_jobs: int = 4
    job_ttl_seconds: int = 3600
