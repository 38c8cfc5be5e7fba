"""
Test: Claude messages client against httpx.MockTransport, including the
OpenRouter fallback.
"""
import asyncio
import json

import httpx
import pytest

from progress_api.claude_client import ClaudeClient
from progress_api.settings import settings


@pytest.fixture(autouse=True)
def _no_fallback(monkeypatch):
    monkeypatch.setattr(settings, "anthropic_api_key", None)
    monkeypatch.setattr(settings, "openrouter_api_key", None)


def _run(client, prompt="hello"):
    async def _go():
        try:
            return await client.generate(prompt)
        finally:
            await client.aclose()
    return asyncio.run(_go())


class TestClaudeClient:
    def test_requires_key(self):
        with pytest.raises(ValueError):
            ClaudeClient()

    def test_sends_messages_request(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "Summary text"}]})

        client = ClaudeClient("sk-test", model="claude-test", transport=httpx.MockTransport(handler))
        assert _run(client, "Analyze Ava") == "Summary text"
        assert seen["url"] == settings.anthropic_base_url
        assert seen["headers"]["x-api-key"] == "sk-test"
        assert seen["headers"]["anthropic-version"] == settings.anthropic_version
        assert seen["body"]["model"] == "claude-test"
        assert seen["body"]["max_tokens"] == settings.summary_max_tokens
        assert seen["body"]["messages"] == [{"role": "user", "content": "Analyze Ava"}]

    def test_api_error_message_surfaces(self):
        def handler(request):
            return httpx.Response(401, json={"type": "error", "error": {"type": "authentication_error", "message": "invalid x-api-key"}})

        client = ClaudeClient("sk-bad", transport=httpx.MockTransport(handler))
        with pytest.raises(RuntimeError, match="invalid x-api-key"):
            _run(client)

    def test_unexpected_response_shape(self):
        client = ClaudeClient("sk-test", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"oops": True})))
        with pytest.raises(RuntimeError, match="Unexpected Claude response"):
            _run(client)

    def test_falls_back_to_openrouter(self, monkeypatch):
        monkeypatch.setattr(settings, "openrouter_api_key", "or-key")

        def handler(request):
            if request.url.host == "openrouter.ai":
                assert request.headers["Authorization"] == "Bearer or-key"
                return httpx.Response(200, json={"choices": [{"message": {"content": "Fallback summary"}}]})
            return httpx.Response(529, json={"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}})

        client = ClaudeClient("sk-test", transport=httpx.MockTransport(handler))
        assert _run(client) == "Fallback summary"

    def test_fallback_only_configuration(self, monkeypatch):
        monkeypatch.setattr(settings, "openrouter_api_key", "or-key")
        calls = []

        def handler(request):
            calls.append(request.url.host)
            return httpx.Response(200, json={"choices": [{"message": {"content": "via fallback"}}]})

        client = ClaudeClient(transport=httpx.MockTransport(handler))
        assert _run(client) == "via fallback"
        assert calls == ["openrouter.ai"]

    def test_both_providers_failing(self, monkeypatch):
        monkeypatch.setattr(settings, "openrouter_api_key", "or-key")
        client = ClaudeClient("sk-test", transport=httpx.MockTransport(lambda r: httpx.Response(500, text="boom")))
        with pytest.raises(RuntimeError, match="fallback via OpenRouter also failed"):
            _run(client)
