import json

import httpx
import pytest

from autocrm.services.ai_provider import (
    ChatMessage,
    GeminiProvider,
    OpenAIProvider,
    get_provider,
)


@pytest.mark.asyncio
async def test_openai_chat_request_shape():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "choices": [{"message": {"content": "Hello"}}],
                "usage": {"prompt_tokens": 4, "completion_tokens": 2, "total_tokens": 6},
            },
        )

    provider = OpenAIProvider("sk-test", transport=httpx.MockTransport(handler))
    response = await provider.chat([ChatMessage(role="user", content="Hi")], temperature=0.7)

    assert seen["url"] == "https://api.openai.com/v1/chat/completions"
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["model"] == "gpt-3.5-turbo"
    assert seen["body"]["messages"] == [{"role": "user", "content": "Hi"}]
    assert seen["body"]["max_tokens"] == 2000
    assert response.content == "Hello"
    assert response.total_tokens == 6
    assert response.estimated_cost_usd > 0


@pytest.mark.asyncio
async def test_openai_http_error_raises():
    provider = OpenAIProvider(
        "sk-test", transport=httpx.MockTransport(lambda request: httpx.Response(500))
    )

    with pytest.raises(httpx.HTTPStatusError):
        await provider.chat([ChatMessage(role="user", content="Hi")])


@pytest.mark.asyncio
async def test_gemini_maps_roles_and_system_instruction():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "candidates": [{"content": {"parts": [{"text": "Hola"}]}}],
                "usageMetadata": {"promptTokenCount": 3, "candidatesTokenCount": 1},
            },
        )

    provider = GeminiProvider("g-key", transport=httpx.MockTransport(handler))
    response = await provider.chat(
        [
            ChatMessage(role="system", content="Be brief"),
            ChatMessage(role="user", content="Hi"),
            ChatMessage(role="assistant", content="Hello"),
        ]
    )

    assert seen["url"].path.endswith("/models/gemini-1.5-flash:generateContent")
    assert seen["url"].params["key"] == "g-key"
    assert seen["body"]["systemInstruction"] == {"parts": [{"text": "Be brief"}]}
    assert [c["role"] for c in seen["body"]["contents"]] == ["user", "model"]
    assert response.content == "Hola"
    assert response.total_tokens == 4


@pytest.mark.asyncio
async def test_validate_key_false_on_rejection():
    provider = OpenAIProvider(
        "bad", transport=httpx.MockTransport(lambda request: httpx.Response(401))
    )
    assert await provider.validate_key() is False


def test_get_provider_unknown_raises():
    with pytest.raises(ValueError):
        get_provider("watson", "key")


def test_get_provider_uses_configured_model():
    provider = get_provider("openai", "key", "gpt-4o-mini")
    assert isinstance(provider, OpenAIProvider)
    assert provider.default_model == "gpt-4o-mini"
