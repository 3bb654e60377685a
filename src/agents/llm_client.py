"""LLM client abstraction for scenario analysis.

Unified interface for the Vercel AI Gateway / OpenAI / Google Gemini with:
- Provider routing from the operator's AI config (provider without a key
  falls back to the gateway)
- Structured JSON output with Pydantic validation
- Retry with exponential backoff on transport errors, 429 and 5xx
- Token usage tracking

The client only transports prompts and parses JSON; it never assigns
scenario ids or timestamps.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TypeVar

import httpx
from pydantic import BaseModel

from src.models.scenario import AIConfig

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_OPENAI_BASE_URL = "https://api.openai.com/v1"
_GOOGLE_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class LLMClientError(Exception):
    """Raised when the provider call fails or no route is usable."""


# ---------------------------------------------------------------------------
# Provider enum
# ---------------------------------------------------------------------------


class LLMProvider(StrEnum):
    """Supported LLM providers (values match the settings panel selector)."""

    GATEWAY = "vercel"
    OPENAI = "openai"
    GOOGLE = "google"


PROVIDER_MODELS: dict[LLMProvider, list[str]] = {
    LLMProvider.GATEWAY: ["openai/gpt-4o-mini", "openai/gpt-4o", "anthropic/claude-sonnet-4.5"],
    LLMProvider.OPENAI: ["gpt-4o-mini", "gpt-4o", "gpt-4-turbo"],
    LLMProvider.GOOGLE: ["gemini-2.0-flash-exp", "gemini-1.5-pro", "gemini-1.5-flash"],
}


# ---------------------------------------------------------------------------
# Token tracking
# ---------------------------------------------------------------------------


@dataclass
class TokenUsage:
    """Token usage for a single LLM call."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


# ---------------------------------------------------------------------------
# Request / Response
# ---------------------------------------------------------------------------


@dataclass
class LLMRequest:
    """Structured request to an LLM provider."""

    system_prompt: str
    user_prompt: str
    output_schema: type[BaseModel]
    max_tokens: int = 4096
    temperature: float = 0.2


@dataclass
class LLMResponse:
    """Structured response from an LLM provider."""

    content: str
    parsed: BaseModel
    provider: LLMProvider
    model: str
    usage: TokenUsage


@dataclass(frozen=True)
class Route:
    """Resolved provider, model and credential for one call."""

    provider: LLMProvider
    model: str
    api_key: str


# ---------------------------------------------------------------------------
# Provider routing
# ---------------------------------------------------------------------------


class ProviderRouter:
    """Resolve an operator AI config into a concrete route.

    ``openai`` / ``google`` are used only when a key is available (from the
    config or the client's defaults); anything else goes to the gateway.
    """

    def __init__(
        self,
        *,
        gateway_key: str = "",
        openai_key: str = "",
        google_key: str = "",
        default_provider: str = "vercel",
        default_model: str = "openai/gpt-4o-mini",
    ) -> None:
        self._keys = {
            LLMProvider.GATEWAY: gateway_key,
            LLMProvider.OPENAI: openai_key,
            LLMProvider.GOOGLE: google_key,
        }
        self._default_provider = default_provider
        self._default_model = default_model

    def select(self, config: AIConfig | None) -> Route:
        if config is None:
            config = AIConfig(provider=self._default_provider, model=self._default_model)
        if config.provider in (LLMProvider.OPENAI, LLMProvider.GOOGLE):
            provider = LLMProvider(config.provider)
            key = config.api_key or self._keys[provider]
            if key:
                return Route(provider=provider, model=config.model, api_key=key)
        model = self._default_model
        if config.provider == LLMProvider.GATEWAY and config.model:
            model = config.model
        return Route(
            provider=LLMProvider.GATEWAY,
            model=model,
            api_key=self._keys[LLMProvider.GATEWAY],
        )


# ---------------------------------------------------------------------------
# JSON extraction helpers
# ---------------------------------------------------------------------------

_JSON_BLOCK_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


def _extract_json(raw: str) -> str:
    """Extract JSON from raw LLM output, stripping markdown fences."""
    match = _JSON_BLOCK_RE.search(raw)
    if match:
        return match.group(1).strip()
    return raw.strip()


def _json_body(resp: httpx.Response, label: str) -> dict:
    """Decode a provider response body, which must be a JSON object."""
    try:
        data = resp.json()
    except ValueError as exc:
        raise LLMClientError(f"Malformed {label} response: body is not JSON") from exc
    if not isinstance(data, dict):
        raise LLMClientError(f"Malformed {label} response: expected an object")
    return data


def _usage(raw: object, input_key: str, output_key: str) -> TokenUsage:
    if not isinstance(raw, dict):
        return TokenUsage()
    input_tokens = raw.get(input_key, 0)
    output_tokens = raw.get(output_key, 0)
    return TokenUsage(
        input_tokens=input_tokens if isinstance(input_tokens, int) else 0,
        output_tokens=output_tokens if isinstance(output_tokens, int) else 0,
    )


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


# ---------------------------------------------------------------------------
# LLM client
# ---------------------------------------------------------------------------


class LLMClient:
    """Unified LLM client with structured output, retry, and tracking."""

    def __init__(
        self,
        *,
        gateway_key: str = "",
        gateway_base_url: str = "https://ai-gateway.vercel.sh/v1",
        openai_key: str = "",
        google_key: str = "",
        default_provider: str = "vercel",
        default_model: str = "openai/gpt-4o-mini",
        timeout: float = 60.0,
        max_retries: int = 2,
        base_delay: float = 1.0,
    ) -> None:
        self._gateway_base_url = gateway_base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self._router = ProviderRouter(
            gateway_key=gateway_key,
            openai_key=openai_key,
            google_key=google_key,
            default_provider=default_provider,
            default_model=default_model,
        )
        self._usage_log: list[TokenUsage] = []

    # ----- Structured output parsing -----

    def parse_structured_output(self, *, raw: str, schema: type[T]) -> T:
        """Parse raw LLM output into a validated Pydantic model.

        Raises ValueError if JSON is invalid or fails schema validation.
        """
        cleaned = _extract_json(raw)
        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON from LLM: {exc}") from exc
        try:
            return schema.model_validate(data)
        except Exception as exc:
            raise ValueError(f"Schema validation failed: {exc}") from exc

    # ----- Routing -----

    def resolve_route(self, config: AIConfig | None = None) -> Route:
        return self._router.select(config)

    # ----- Retry / backoff -----

    def compute_backoff_delays(self) -> list[float]:
        """Compute exponential backoff delays for retries."""
        return [self.base_delay * (2**i) for i in range(self.max_retries)]

    # ----- Calls -----

    async def generate(
        self,
        request: LLMRequest,
        *,
        config: AIConfig | None = None,
    ) -> LLMResponse:
        """Send the request and return validated structured output.

        Raises LLMClientError on transport/provider failure and ValueError
        when the returned content does not match ``request.output_schema``.
        """
        route = self.resolve_route(config)
        if not route.api_key:
            raise LLMClientError(f"No API key configured for provider {route.provider.value}")

        logger.info("llm call: provider=%s model=%s", route.provider.value, route.model)
        delays = self.compute_backoff_delays()
        attempt = 0
        while True:
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    content, usage = await self._send(client, route, request)
                break
            except httpx.HTTPError as exc:
                if not _is_retryable(exc) or attempt >= len(delays):
                    raise LLMClientError(
                        f"{route.provider.value} request failed: {exc}"
                    ) from exc
                logger.warning(
                    "llm call retry %d/%d after %.1fs: %s",
                    attempt + 1, len(delays), delays[attempt], exc,
                )
                await asyncio.sleep(delays[attempt])
                attempt += 1

        self.record_usage(usage)
        parsed = self.parse_structured_output(raw=content, schema=request.output_schema)
        return LLMResponse(
            content=content,
            parsed=parsed,
            provider=route.provider,
            model=route.model,
            usage=usage,
        )

    async def _send(
        self,
        client: httpx.AsyncClient,
        route: Route,
        request: LLMRequest,
    ) -> tuple[str, TokenUsage]:
        if route.provider == LLMProvider.GOOGLE:
            return await self._send_gemini(client, route, request)
        base_url = (
            _OPENAI_BASE_URL if route.provider == LLMProvider.OPENAI
            else self._gateway_base_url
        )
        return await self._send_chat_completions(client, base_url, route, request)

    async def _send_chat_completions(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        route: Route,
        request: LLMRequest,
    ) -> tuple[str, TokenUsage]:
        """OpenAI-compatible chat completions (OpenAI and the gateway)."""
        resp = await client.post(
            f"{base_url}/chat/completions",
            headers={"Authorization": f"Bearer {route.api_key}"},
            json={
                "model": route.model,
                "messages": [
                    {"role": "system", "content": request.system_prompt},
                    {"role": "user", "content": request.user_prompt},
                ],
                "max_tokens": request.max_tokens,
                "temperature": request.temperature,
                "response_format": {"type": "json_object"},
            },
        )
        resp.raise_for_status()
        data = _json_body(resp, "chat completion")
        try:
            content = data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMClientError("Malformed chat completion response") from exc
        if not isinstance(content, str):
            raise LLMClientError("Malformed chat completion response: content is not text")
        return content, _usage(data.get("usage"), "prompt_tokens", "completion_tokens")

    async def _send_gemini(
        self,
        client: httpx.AsyncClient,
        route: Route,
        request: LLMRequest,
    ) -> tuple[str, TokenUsage]:
        resp = await client.post(
            f"{_GOOGLE_BASE_URL}/models/{route.model}:generateContent",
            headers={"x-goog-api-key": route.api_key},
            json={
                "systemInstruction": {"parts": [{"text": request.system_prompt}]},
                "contents": [{"role": "user", "parts": [{"text": request.user_prompt}]}],
                "generationConfig": {
                    "temperature": request.temperature,
                    "maxOutputTokens": request.max_tokens,
                    "responseMimeType": "application/json",
                },
            },
        )
        resp.raise_for_status()
        data = _json_body(resp, "Gemini")
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMClientError("Malformed Gemini response") from exc
        if not isinstance(parts, list) or not all(
            isinstance(p, dict) and isinstance(p.get("text", ""), str) for p in parts
        ):
            raise LLMClientError("Malformed Gemini response: unexpected parts")
        content = "".join(p.get("text", "") for p in parts)
        return content, _usage(
            data.get("usageMetadata"), "promptTokenCount", "candidatesTokenCount",
        )

    # ----- Token tracking -----

    def record_usage(self, usage: TokenUsage) -> None:
        """Record token usage from a call."""
        self._usage_log.append(usage)

    def cumulative_usage(self) -> TokenUsage:
        """Return cumulative token usage across all recorded calls."""
        total_in = sum(u.input_tokens for u in self._usage_log)
        total_out = sum(u.output_tokens for u in self._usage_log)
        return TokenUsage(input_tokens=total_in, output_tokens=total_out)

    def reset_usage(self) -> None:
        """Reset cumulative token usage."""
        self._usage_log.clear()
