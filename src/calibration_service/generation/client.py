"""
Adapter around a single call to the text-generation service.

The orchestrator only sees ``GenerationClient.generate``; retry of
rate-limited calls and request timeouts are handled here, below that
boundary.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import anthropic
import httpx

from calibration_service.generation.config import (
    DEFAULT_MAX_TOKENS,
    GenerationSettings,
)
from calibration_service.generation.exceptions import (
    GenerationError,
    MissingCredentialError,
    RateLimitedError,
    RequestRejectedError,
    TransportError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationRequest:
    system_prompt: str
    user_prompt: str
    temperature: float
    model: str
    max_tokens: int = DEFAULT_MAX_TOKENS

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError(
                f"max_tokens must be positive, got {self.max_tokens}"
            )


@dataclass(frozen=True)
class GenerationResult:
    text: str
    input_tokens: int
    output_tokens: int


class GenerationClient(ABC):
    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Run one generation call.

        Raises:
            GenerationError: On any failure of the call.
        """

    async def close(self) -> None:  # noqa: B027
        pass


class AnthropicGenerationClient(GenerationClient):
    """
    Generation client backed by the Anthropic Messages API.

    The SDK retries rate-limited (429), overloaded and 5xx responses with
    exponential backoff up to ``max_retries`` times before raising.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout_seconds: float = 60.0,
        max_retries: int = 4,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise MissingCredentialError("An API key is required")
        if max_retries < 0:
            raise ValueError("max_retries must be non-negative")
        self._client = anthropic.AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=max_retries,
            http_client=http_client,
        )

    @classmethod
    def from_settings(
        cls, settings: GenerationSettings
    ) -> "AnthropicGenerationClient":
        if not settings.api_key:
            raise MissingCredentialError(
                "ANTHROPIC_API_KEY environment variable is required"
            )
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout_seconds=settings.timeout_seconds,
            max_retries=settings.max_retries,
        )

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        try:
            message = await self._client.messages.create(
                model=request.model,
                max_tokens=request.max_tokens,
                temperature=request.temperature,
                system=request.system_prompt,
                messages=[{"role": "user", "content": request.user_prompt}],
            )
        except anthropic.RateLimitError as e:
            logger.warning(f"Generation call still rate limited after retries: {e}")
            raise RateLimitedError(str(e)) from e
        except anthropic.APITimeoutError as e:
            raise TransportError(f"Request timed out: {e}") from e
        except anthropic.APIConnectionError as e:
            raise TransportError(str(e)) from e
        except anthropic.APIStatusError as e:
            raise RequestRejectedError(str(e), status_code=e.status_code) from e
        except anthropic.AnthropicError as e:
            raise GenerationError(str(e)) from e

        text = "".join(
            block.text for block in message.content if block.type == "text"
        )
        return GenerationResult(
            text=text,
            input_tokens=message.usage.input_tokens,
            output_tokens=message.usage.output_tokens,
        )

    async def close(self) -> None:
        await self._client.close()
