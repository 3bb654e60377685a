"""Tests for the LLM client abstraction.

Covers: provider routing from the operator AI config, structured JSON output
with Pydantic validation, retry with exponential backoff, token tracking,
and the HTTP call shape for each provider.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from pydantic import BaseModel

from src.agents.llm_client import (
    LLMClient,
    LLMClientError,
    LLMProvider,
    LLMRequest,
    ProviderRouter,
    TokenUsage,
)
from src.models.scenario import AIConfig


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class MockOutput(BaseModel):
    category: str
    confidence: float


def _request() -> LLMRequest:
    return LLMRequest(
        system_prompt="system",
        user_prompt="user",
        output_schema=MockOutput,
    )


def _chat_response(content: str) -> MagicMock:
    resp = MagicMock()
    resp.raise_for_status = MagicMock()
    resp.json.return_value = {
        "choices": [{"message": {"content": content}}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 7},
    }
    return resp


def _mock_http(*responses) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.post.side_effect = list(responses)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


def _status_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://example.test/chat/completions")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


# ===================================================================
# Provider routing
# ===================================================================


class TestProviderRouting:
    """Resolve the operator's AI config into a concrete route."""

    def test_no_config_uses_gateway_default(self) -> None:
        router = ProviderRouter(gateway_key="gw", default_model="openai/gpt-4o-mini")
        route = router.select(None)
        assert route.provider == LLMProvider.GATEWAY
        assert route.model == "openai/gpt-4o-mini"
        assert route.api_key == "gw"

    def test_gateway_config_model_respected(self) -> None:
        router = ProviderRouter(gateway_key="gw")
        route = router.select(AIConfig(provider="vercel", model="openai/gpt-4o"))
        assert route.model == "openai/gpt-4o"

    def test_openai_with_config_key(self) -> None:
        router = ProviderRouter(gateway_key="gw")
        route = router.select(AIConfig(provider="openai", model="gpt-4o", apiKey="sk-1"))
        assert route.provider == LLMProvider.OPENAI
        assert route.api_key == "sk-1"
        assert route.model == "gpt-4o"

    def test_google_with_default_key(self) -> None:
        router = ProviderRouter(google_key="g-key")
        route = router.select(AIConfig(provider="google", model="gemini-1.5-pro"))
        assert route.provider == LLMProvider.GOOGLE
        assert route.api_key == "g-key"

    def test_default_provider_used_without_config(self) -> None:
        router = ProviderRouter(openai_key="sk-0", default_provider="openai", default_model="gpt-4o")
        route = router.select(None)
        assert route.provider == LLMProvider.OPENAI
        assert route.model == "gpt-4o"

    def test_direct_provider_without_key_falls_back_to_gateway(self) -> None:
        router = ProviderRouter(gateway_key="gw", default_model="openai/gpt-4o-mini")
        route = router.select(AIConfig(provider="openai", model="gpt-4o"))
        assert route.provider == LLMProvider.GATEWAY
        assert route.model == "openai/gpt-4o-mini"


# ===================================================================
# Structured output parsing
# ===================================================================


class TestStructuredOutput:
    """Parse raw LLM output into validated Pydantic models."""

    def test_parse_plain_json(self) -> None:
        client = LLMClient()
        out = client.parse_structured_output(
            raw='{"category": "교통정보", "confidence": 0.9}', schema=MockOutput,
        )
        assert out.category == "교통정보"

    def test_parse_fenced_json(self) -> None:
        client = LLMClient()
        raw = '```json\n{"category": "주차안내", "confidence": 0.5}\n```'
        out = client.parse_structured_output(raw=raw, schema=MockOutput)
        assert out.confidence == 0.5

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid JSON"):
            LLMClient().parse_structured_output(raw="not json", schema=MockOutput)

    def test_schema_mismatch_raises(self) -> None:
        with pytest.raises(ValueError, match="Schema validation failed"):
            LLMClient().parse_structured_output(raw='{"category": "x"}', schema=MockOutput)


# ===================================================================
# Retry / backoff and token tracking
# ===================================================================


class TestBackoffAndUsage:
    def test_backoff_delays_exponential(self) -> None:
        client = LLMClient(max_retries=3, base_delay=1.0)
        assert client.compute_backoff_delays() == [1.0, 2.0, 4.0]

    def test_no_retries(self) -> None:
        assert LLMClient(max_retries=0).compute_backoff_delays() == []

    def test_cumulative_usage(self) -> None:
        client = LLMClient()
        client.record_usage(TokenUsage(input_tokens=10, output_tokens=5))
        client.record_usage(TokenUsage(input_tokens=3, output_tokens=2))
        total = client.cumulative_usage()
        assert total.input_tokens == 13
        assert total.total_tokens == 20
        client.reset_usage()
        assert client.cumulative_usage().total_tokens == 0


# ===================================================================
# HTTP calls
# ===================================================================


class TestGenerate:
    """End-to-end generate() with mocked HTTP."""

    @pytest.mark.anyio
    async def test_gateway_call(self) -> None:
        client = LLMClient(gateway_key="gw", gateway_base_url="https://gw.test/v1/")
        content = json.dumps({"category": "교통정보", "confidence": 0.8})
        mock_http = _mock_http(_chat_response(content))

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=mock_http):
            response = await client.generate(_request())

        assert response.parsed.category == "교통정보"
        assert response.provider == LLMProvider.GATEWAY
        assert response.usage.input_tokens == 12
        url = mock_http.post.call_args.args[0]
        assert url == "https://gw.test/v1/chat/completions"
        headers = mock_http.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer gw"
        assert client.cumulative_usage().total_tokens == 19

    @pytest.mark.anyio
    async def test_google_call(self) -> None:
        client = LLMClient(google_key="g-key")
        resp = MagicMock()
        resp.raise_for_status = MagicMock()
        resp.json.return_value = {
            "candidates": [{"content": {"parts": [
                {"text": '{"category": "긴급상황",'},
                {"text": ' "confidence": 1.0}'},
            ]}}],
            "usageMetadata": {"promptTokenCount": 4, "candidatesTokenCount": 2},
        }
        mock_http = _mock_http(resp)

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=mock_http):
            response = await client.generate(
                _request(), config=AIConfig(provider="google", model="gemini-1.5-pro"),
            )

        assert response.parsed.category == "긴급상황"
        assert response.provider == LLMProvider.GOOGLE
        url = mock_http.post.call_args.args[0]
        assert url.endswith("/models/gemini-1.5-pro:generateContent")

    @pytest.mark.anyio
    async def test_missing_key_raises(self) -> None:
        with pytest.raises(LLMClientError, match="No API key"):
            await LLMClient().generate(_request())

    @pytest.mark.anyio
    async def test_retries_on_503(self) -> None:
        client = LLMClient(gateway_key="gw", max_retries=2, base_delay=0.0)
        content = json.dumps({"category": "교통정보", "confidence": 0.8})
        mock_http = _mock_http(_status_error(503), _chat_response(content))

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=mock_http):
            response = await client.generate(_request())

        assert response.parsed.category == "교통정보"
        assert mock_http.post.call_count == 2

    @pytest.mark.anyio
    async def test_client_error_not_retried(self) -> None:
        client = LLMClient(gateway_key="gw", max_retries=2, base_delay=0.0)
        mock_http = _mock_http(_status_error(401))

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=mock_http):
            with pytest.raises(LLMClientError):
                await client.generate(_request())

        assert mock_http.post.call_count == 1

    @pytest.mark.anyio
    async def test_retries_exhausted(self) -> None:
        client = LLMClient(gateway_key="gw", max_retries=1, base_delay=0.0)
        mock_http = _mock_http(_status_error(429), _status_error(429))

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=mock_http):
            with pytest.raises(LLMClientError):
                await client.generate(_request())

        assert mock_http.post.call_count == 2

    @pytest.mark.anyio
    async def test_malformed_response(self) -> None:
        client = LLMClient(gateway_key="gw")
        resp = MagicMock()
        resp.raise_for_status = MagicMock()
        resp.json.return_value = {"choices": []}

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=_mock_http(resp)):
            with pytest.raises(LLMClientError, match="Malformed"):
                await client.generate(_request())

    @pytest.mark.anyio
    async def test_gemini_parts_not_objects(self) -> None:
        client = LLMClient(google_key="g-key")
        resp = MagicMock()
        resp.raise_for_status = MagicMock()
        resp.json.return_value = {"candidates": [{"content": {"parts": ["oops"]}}]}

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=_mock_http(resp)):
            with pytest.raises(LLMClientError, match="Malformed Gemini"):
                await client.generate(
                    _request(), config=AIConfig(provider="google", model="gemini-1.5-pro"),
                )

    @pytest.mark.anyio
    async def test_chat_content_not_text(self) -> None:
        client = LLMClient(gateway_key="gw")
        resp = MagicMock()
        resp.raise_for_status = MagicMock()
        resp.json.return_value = {"choices": [{"message": {"content": ["a", "b"]}}]}

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=_mock_http(resp)):
            with pytest.raises(LLMClientError, match="Malformed"):
                await client.generate(_request())

    @pytest.mark.anyio
    async def test_body_not_json(self) -> None:
        client = LLMClient(gateway_key="gw")
        resp = MagicMock()
        resp.raise_for_status = MagicMock()
        resp.json.side_effect = ValueError("Expecting value")

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=_mock_http(resp)):
            with pytest.raises(LLMClientError, match="not JSON"):
                await client.generate(_request())

    @pytest.mark.anyio
    async def test_decoding_error_wrapped(self) -> None:
        client = LLMClient(gateway_key="gw", max_retries=2, base_delay=0.0)
        mock_http = _mock_http(httpx.DecodingError("bad gzip"))

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=mock_http):
            with pytest.raises(LLMClientError):
                await client.generate(_request())

        assert mock_http.post.call_count == 1

    @pytest.mark.anyio
    async def test_too_many_redirects_wrapped(self) -> None:
        client = LLMClient(gateway_key="gw")
        mock_http = _mock_http(httpx.TooManyRedirects("loop"))

        with patch("src.agents.llm_client.httpx.AsyncClient", return_value=mock_http):
            with pytest.raises(LLMClientError):
                await client.generate(_request())
