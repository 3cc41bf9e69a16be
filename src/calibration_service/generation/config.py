from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

from calibration_service.core.constants import ENV_PREFIX

DEFAULT_MODEL = "claude-3-haiku-20240307"
DEFAULT_MAX_TOKENS = 500


class GenerationSettings(BaseSettings):
    model_config = {"env_prefix": ENV_PREFIX}

    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            f"{ENV_PREFIX}API_KEY", "ANTHROPIC_API_KEY"
        ),
    )
    base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            f"{ENV_PREFIX}BASE_URL", "ANTHROPIC_BASE_URL"
        ),
    )
    default_model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout_seconds: float = 60.0
    # Retries with exponential backoff on rate-limit and overload responses
    max_retries: int = 4
