"""Tests for the Gemini REST client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from cinecatalog.services.gemini_client import (
    GeminiClient,
    GenerationError,
    RateLimitError,
    strip_code_fences,
)

SAMPLE_RESPONSE = {
    "candidates": [
        {"content": {"parts": [{"text": '{"title": '}, {"text": '"Heat"}'}]}}
    ]
}


def make_http_response(json_data: dict | None, status_code: int = 200, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if json_data is None:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = json_data
    return response


def make_async_client_ctx(response: MagicMock) -> AsyncMock:
    inner = AsyncMock()
    inner.post = AsyncMock(return_value=response)
    ctx = AsyncMock()
    ctx.__aenter__ = AsyncMock(return_value=inner)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return ctx


def make_client() -> GeminiClient:
    return GeminiClient(api_key="test-key", model="gemini-test", base_url="https://example.test/v1/")


class TestGenerateText:
    async def test_joins_parts(self) -> None:
        ctx = make_async_client_ctx(make_http_response(SAMPLE_RESPONSE))
        with patch("httpx.AsyncClient", return_value=ctx):
            text = await make_client().generate_text("prompt")
        assert text == '{"title": "Heat"}'

    async def test_posts_to_model_endpoint(self) -> None:
        ctx = make_async_client_ctx(make_http_response(SAMPLE_RESPONSE))
        with patch("httpx.AsyncClient", return_value=ctx):
            await make_client().generate_text("prompt", system_prompt="be terse")
        call = ctx.__aenter__.return_value.post.call_args
        assert call.args[0] == "https://example.test/v1/models/gemini-test:generateContent"
        assert call.kwargs["params"] == {"key": "test-key"}
        assert call.kwargs["json"]["contents"][0]["parts"][0]["text"] == "prompt"
        assert call.kwargs["json"]["systemInstruction"]["parts"][0]["text"] == "be terse"

    async def test_429_is_rate_limit(self) -> None:
        ctx = make_async_client_ctx(make_http_response({}, status_code=429))
        with patch("httpx.AsyncClient", return_value=ctx):
            with pytest.raises(RateLimitError):
                await make_client().generate_text("prompt")

    async def test_resource_exhausted_is_rate_limit(self) -> None:
        response = make_http_response({}, status_code=400, text='{"status": "RESOURCE_EXHAUSTED"}')
        with patch("httpx.AsyncClient", return_value=make_async_client_ctx(response)):
            with pytest.raises(RateLimitError):
                await make_client().generate_text("prompt")

    async def test_successful_body_mentioning_resource_exhausted(self) -> None:
        body = {"candidates": [{"content": {"parts": [{"text": "RESOURCE_EXHAUSTED: The Movie"}]}}]}
        response = make_http_response(body, text=str(body))
        with patch("httpx.AsyncClient", return_value=make_async_client_ctx(response)):
            text = await make_client().generate_text("prompt")
        assert text == "RESOURCE_EXHAUSTED: The Movie"

    async def test_server_error_is_generation_error(self) -> None:
        response = make_http_response({}, status_code=500, text="boom")
        with patch("httpx.AsyncClient", return_value=make_async_client_ctx(response)):
            with pytest.raises(GenerationError) as exc_info:
                await make_client().generate_text("prompt")
        assert not isinstance(exc_info.value, RateLimitError)

    async def test_bad_shape_is_generation_error(self) -> None:
        response = make_http_response({"candidates": []})
        with patch("httpx.AsyncClient", return_value=make_async_client_ctx(response)):
            with pytest.raises(GenerationError):
                await make_client().generate_text("prompt")

    async def test_invalid_json_is_generation_error(self) -> None:
        with patch("httpx.AsyncClient", return_value=make_async_client_ctx(make_http_response(None))):
            with pytest.raises(GenerationError):
                await make_client().generate_text("prompt")

    async def test_network_error_is_generation_error(self) -> None:
        inner = AsyncMock()
        inner.post = AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))
        ctx = AsyncMock()
        ctx.__aenter__ = AsyncMock(return_value=inner)
        ctx.__aexit__ = AsyncMock(return_value=False)
        with patch("httpx.AsyncClient", return_value=ctx):
            with pytest.raises(GenerationError):
                await make_client().generate_text("prompt")

    async def test_missing_key_raises_without_request(self) -> None:
        client = make_client()
        client.api_key = ""
        assert not client.is_configured
        with patch("httpx.AsyncClient") as mock_client:
            with pytest.raises(GenerationError):
                await client.generate_text("prompt")
        mock_client.assert_not_called()


class TestStripCodeFences:
    def test_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"title": "Heat"}\n```') == '{"title": "Heat"}'

    def test_bare_fence(self) -> None:
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self) -> None:
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'
