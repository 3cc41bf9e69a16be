"""
Tests for the Anthropic generation client against a mocked HTTP transport.
"""

import json
from collections.abc import Callable

import httpx
import pytest

from calibration_service.generation import (
    AnthropicGenerationClient,
    GenerationRequest,
    GenerationSettings,
    MissingCredentialError,
    RateLimitedError,
    RequestRejectedError,
    TransportError,
)

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler) -> AnthropicGenerationClient:
    return AnthropicGenerationClient(
        api_key="test-key",
        base_url="http://generation.test",
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _request() -> GenerationRequest:
    return GenerationRequest(
        system_prompt="You are a novice student.",
        user_prompt="What is 2 + 2?\n\nA) 3\nB) 4\nC) 5\nD) 22",
        temperature=0.7,
        model="claude-3-haiku-20240307",
        max_tokens=200,
    )


def _error(status_code: int, error_type: str) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={"type": "error", "error": {"type": error_type, "message": "nope"}},
    )


class TestGenerate:
    @pytest.mark.asyncio
    async def test_successful_call(self) -> None:
        sent: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "id": "msg_1",
                    "type": "message",
                    "role": "assistant",
                    "model": "claude-3-haiku-20240307",
                    "content": [
                        {"type": "text", "text": "Two plus two is four. "},
                        {"type": "text", "text": "Answer: B"},
                    ],
                    "stop_reason": "end_turn",
                    "stop_sequence": None,
                    "usage": {"input_tokens": 42, "output_tokens": 9},
                },
            )

        client = _client(handler)
        try:
            result = await client.generate(_request())
        finally:
            await client.close()

        assert result.text == "Two plus two is four. Answer: B"
        assert result.input_tokens == 42
        assert result.output_tokens == 9

        (body,) = sent
        assert body["model"] == "claude-3-haiku-20240307"
        assert body["system"] == "You are a novice student."
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 200
        assert body["messages"] == [
            {"role": "user", "content": _request().user_prompt}
        ]

    @pytest.mark.asyncio
    async def test_rate_limited(self) -> None:
        client = _client(lambda _: _error(429, "rate_limit_error"))
        with pytest.raises(RateLimitedError):
            await client.generate(_request())
        await client.close()

    @pytest.mark.asyncio
    async def test_rejected_request_keeps_status(self) -> None:
        client = _client(lambda _: _error(400, "invalid_request_error"))
        with pytest.raises(RequestRejectedError) as exc_info:
            await client.generate(_request())
        await client.close()

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_connection_failure(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = _client(handler)
        with pytest.raises(TransportError):
            await client.generate(_request())
        await client.close()


class TestConstruction:
    def test_empty_api_key(self) -> None:
        with pytest.raises(MissingCredentialError):
            AnthropicGenerationClient(api_key="")

    def test_from_settings_without_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("SYNTHETIC_STUDENTS_API_KEY", raising=False)
        with pytest.raises(MissingCredentialError):
            AnthropicGenerationClient.from_settings(GenerationSettings())

    def test_negative_retries(self) -> None:
        with pytest.raises(ValueError, match="max_retries"):
            AnthropicGenerationClient(api_key="k", max_retries=-1)


def test_request_requires_positive_max_tokens() -> None:
    with pytest.raises(ValueError, match="max_tokens"):
        GenerationRequest(
            system_prompt="s", user_prompt="u", temperature=0.0, model="m", max_tokens=0
        )
