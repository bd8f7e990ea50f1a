"""Hosted chat model providers.

Single-turn prompt-in/text-out calls against OpenAI or Google Gemini behind a
unified interface. No streaming, no function calling, no retries.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import httpx

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 60.0
VALIDATE_TIMEOUT_SECONDS = 10.0

# USD per 1M tokens: (input, output)
MODEL_PRICING: dict[str, tuple[Decimal, Decimal]] = {
    "gpt-3.5-turbo": (Decimal("0.50"), Decimal("1.50")),
    "gpt-4o-mini": (Decimal("0.15"), Decimal("0.60")),
    "gpt-4o": (Decimal("2.50"), Decimal("10.00")),
    "gemini-1.5-flash": (Decimal("0.075"), Decimal("0.30")),
    "gemini-1.5-pro": (Decimal("1.25"), Decimal("5.00")),
}
_PER_TOKEN = Decimal("1000000")


def estimate_cost(model: str, prompt_tokens: int, completion_tokens: int) -> Decimal:
    """Approximate USD cost; unknown models cost 0."""
    input_price, output_price = MODEL_PRICING.get(model, (Decimal("0"), Decimal("0")))
    return (
        Decimal(prompt_tokens) * input_price + Decimal(completion_tokens) * output_price
    ) / _PER_TOKEN


@dataclass
class ChatMessage:
    """A single message in a conversation."""

    role: str  # 'system', 'user', 'assistant'
    content: str


@dataclass
class ChatResponse:
    """Response from an AI provider."""

    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str

    @property
    def estimated_cost_usd(self) -> Decimal:
        return estimate_cost(self.model, self.prompt_tokens, self.completion_tokens)


class AIProvider(ABC):
    """Abstract base class for AI providers."""

    default_model: str

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        """Send a chat completion request."""

    @abstractmethod
    async def validate_key(self) -> bool:
        """Validate that the API key is working."""


class HTTPChatProvider(AIProvider):
    """
    Provider speaking JSON over HTTPS.

    Subclasses describe the request (`_build_request`), how to authenticate
    (`_auth`) and how to read the reply (`_parse`). Pass `transport` to route
    calls through a mock in tests.
    """

    base_url: str

    def __init__(
        self,
        api_key: str,
        default_model: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=self._transport
        )

    @abstractmethod
    def _auth(self) -> tuple[dict[str, str], dict[str, str]]:
        """(headers, query params) carrying the API key."""

    @abstractmethod
    def _build_request(
        self, messages: list[ChatMessage], model: str, temperature: float, max_tokens: int
    ) -> tuple[str, dict[str, Any]]:
        """(path, JSON body) for a completion."""

    @abstractmethod
    def _parse(self, data: dict[str, Any], model: str) -> ChatResponse: ...

    async def chat(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> ChatResponse:
        model = model or self.default_model
        path, body = self._build_request(messages, model, temperature, max_tokens)
        headers, params = self._auth()

        async with self._client(REQUEST_TIMEOUT_SECONDS) as client:
            response = await client.post(path, json=body, headers=headers, params=params)
            response.raise_for_status()
            return self._parse(response.json(), model)

    async def validate_key(self) -> bool:
        """List models with the key; any failure means invalid."""
        headers, params = self._auth()
        try:
            async with self._client(VALIDATE_TIMEOUT_SECONDS) as client:
                response = await client.get("/models", headers=headers, params=params)
        except httpx.HTTPError as e:
            logger.warning(f"{type(self).__name__} key validation failed: {e}")
            return False
        return response.status_code == 200


class OpenAIProvider(HTTPChatProvider):
    """OpenAI chat-completions provider."""

    base_url = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-3.5-turbo",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, default_model, transport)

    def _auth(self):
        return {"Authorization": f"Bearer {self.api_key}"}, {}

    def _build_request(self, messages, model, temperature, max_tokens):
        return "/chat/completions", {
            "model": model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

    def _parse(self, data, model):
        usage = data.get("usage", {})
        return ChatResponse(
            content=data["choices"][0]["message"]["content"] or "",
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            model=model,
        )


class GeminiProvider(HTTPChatProvider):
    """Google Gemini generateContent provider."""

    base_url = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        api_key: str,
        default_model: str = "gemini-1.5-flash",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(api_key, default_model, transport)

    def _auth(self):
        return {}, {"key": self.api_key}

    def _build_request(self, messages, model, temperature, max_tokens):
        # Gemini has 'user' and 'model' turns; system text goes in systemInstruction
        system = [m.content for m in messages if m.role == "system"]
        body: dict[str, Any] = {
            "contents": [
                {
                    "role": "model" if m.role == "assistant" else "user",
                    "parts": [{"text": m.content}],
                }
                for m in messages
                if m.role != "system"
            ],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_tokens,
            },
        }
        if system:
            body["systemInstruction"] = {"parts": [{"text": system[-1]}]}
        return f"/models/{model}:generateContent", body

    def _parse(self, data, model):
        usage = data.get("usageMetadata", {})
        prompt_tokens = usage.get("promptTokenCount", 0)
        completion_tokens = usage.get("candidatesTokenCount", 0)
        return ChatResponse(
            content=data["candidates"][0]["content"]["parts"][0]["text"],
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            model=model,
        )


PROVIDERS: dict[str, type[HTTPChatProvider]] = {
    "openai": OpenAIProvider,
    "gemini": GeminiProvider,
}


def get_provider(
    provider_name: str, api_key: str, model: str | None = None
) -> AIProvider:
    """Provider for AI_PROVIDER; the model defaults per provider."""
    provider_cls = PROVIDERS.get(provider_name)
    if provider_cls is None:
        raise ValueError(f"Unknown provider: {provider_name}")
    if model:
        return provider_cls(api_key, default_model=model)
    return provider_cls(api_key)
