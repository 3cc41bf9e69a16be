from calibration_service.generation.client import (
    AnthropicGenerationClient,
    GenerationClient,
    GenerationRequest,
    GenerationResult,
)
from calibration_service.generation.config import (
    DEFAULT_MODEL,
    GenerationSettings,
)
from calibration_service.generation.exceptions import (
    GenerationError,
    MissingCredentialError,
    RateLimitedError,
    RequestRejectedError,
    TransportError,
)

__all__ = [
    "AnthropicGenerationClient",
    "DEFAULT_MODEL",
    "GenerationClient",
    "GenerationError",
    "GenerationRequest",
    "GenerationResult",
    "GenerationSettings",
    "MissingCredentialError",
    "RateLimitedError",
    "RequestRejectedError",
    "TransportError",
]
