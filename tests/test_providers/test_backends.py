"""Unit tests for the generation backends (genship.providers).

Tests cover:
- ProviderResponse defaults
- OpenAIBackend / GeminiBackend / OllamaBackend request shape and parsing
- Transport failures and malformed bodies mapped to success=False responses
- is_configured
"""

from __future__ import annotations

import httpx
import pytest

from genship.providers import GeminiBackend, OllamaBackend, OpenAIBackend, ProviderResponse


class TestProviderResponse:
    @pytest.mark.unit
    def test_defaults(self):
        resp = ProviderResponse()
        assert resp.text == ""
        assert resp.success is True
        assert resp.error is None
        assert resp.tokens_used == 0


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


class TestOpenAIBackend:
    @pytest.mark.unit
    def test_is_configured(self):
        assert OpenAIBackend(api_key="sk-test").is_configured() is True
        assert OpenAIBackend(api_key="").is_configured() is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, mock_http):
        patcher, client = mock_http({
            "model": "gpt-4-0613",
            "choices": [{"message": {"role": "assistant", "content": "console.log(1);"}}],
            "usage": {"prompt_tokens": 20, "completion_tokens": 10, "total_tokens": 30},
        })
        backend = OpenAIBackend(api_key="sk-test", max_tokens=4000, temperature=0.3)

        with patcher:
            resp = await backend.complete("system text", "user prompt")

        assert resp.success is True
        assert resp.text == "console.log(1);"
        assert resp.model == "gpt-4-0613"
        assert resp.backend == "openai"
        assert resp.tokens_used == 30

        assert client.post.call_args[0][0] == "/chat/completions"
        payload = client.post.call_args[1]["json"]
        assert payload["model"] == "gpt-4"
        assert payload["messages"] == [
            {"role": "system", "content": "system text"},
            {"role": "user", "content": "user prompt"},
        ]
        assert payload["max_tokens"] == 4000
        assert payload["temperature"] == 0.3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_choices(self, mock_http):
        patcher, _ = mock_http({"choices": []})
        with patcher:
            resp = await OpenAIBackend(api_key="sk-test").complete("s", "p")
        assert resp.success is True
        assert resp.text == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_error(self, mock_http, http_status_error):
        patcher, _ = mock_http(side_effect=http_status_error(401, "invalid api key"))
        with patcher:
            resp = await OpenAIBackend(api_key="sk-bad").complete("s", "p")

        assert resp.success is False
        assert "HTTP 401" in resp.error
        assert "invalid api key" in resp.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"choices": ["oops"]},
            {"choices": [{"message": "oops"}]},
            {"usage": {"total_tokens": "many"}},
        ],
    )
    async def test_malformed_body(self, mock_http, body):
        patcher, _ = mock_http(body)
        with patcher:
            resp = await OpenAIBackend(api_key="sk-test").complete("s", "p")

        assert resp.success is False
        assert resp.backend == "openai"
        assert resp.error.startswith("Malformed openai response: ")


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------


class TestGeminiBackend:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, mock_http):
        patcher, client = mock_http({
            "candidates": [{"content": {"parts": [{"text": "def main():"}, {"text": "\n    pass"}]}}],
            "usageMetadata": {"totalTokenCount": 55},
        })
        backend = GeminiBackend(api_key="gm-key", model="gemini-pro")

        with patcher:
            resp = await backend.complete("system text", "user prompt")

        assert resp.success is True
        assert resp.text == "def main():\n    pass"
        assert resp.tokens_used == 55
        assert resp.model == "gemini-pro"

        assert client.post.call_args[0][0] == "/models/gemini-pro:generateContent"
        assert client.post.call_args[1]["params"] == {"key": "gm-key"}
        payload = client.post.call_args[1]["json"]
        assert payload["contents"][0]["parts"] == [{"text": "system text"}, {"text": "user prompt"}]
        assert payload["generationConfig"]["maxOutputTokens"] == 4000

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_candidates(self, mock_http):
        patcher, _ = mock_http({"candidates": []})
        with patcher:
            resp = await GeminiBackend(api_key="gm-key").complete("s", "p")
        assert resp.text == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout(self, mock_http):
        patcher, _ = mock_http(side_effect=httpx.ReadTimeout("slow"))
        with patcher:
            resp = await GeminiBackend(api_key="gm-key", timeout=5).complete("s", "p")

        assert resp.success is False
        assert "timed out after 5s" in resp.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_malformed_candidate(self, mock_http):
        patcher, _ = mock_http({"candidates": ["x"]})
        with patcher:
            resp = await GeminiBackend(api_key="gm-key").complete("s", "p")

        assert resp.success is False
        assert resp.error.startswith("Malformed gemini response: ")


# ---------------------------------------------------------------------------
# Ollama
# ---------------------------------------------------------------------------


class TestOllamaBackend:
    @pytest.mark.unit
    def test_is_configured(self):
        assert OllamaBackend(base_url="http://localhost:11434/", model="m").is_configured() is True
        assert OllamaBackend(base_url="", model="m").is_configured() is False

    @pytest.mark.unit
    def test_trailing_slash_stripped(self):
        assert OllamaBackend(base_url="http://localhost:11434/", model="m").base_url == "http://localhost:11434"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, mock_http):
        patcher, client = mock_http({
            "model": "qwen2.5-coder:14b",
            "response": "print('hi')",
            "total_duration": 2_500_000_000,
            "prompt_eval_count": 12,
            "eval_count": 8,
        })
        backend = OllamaBackend(base_url="http://localhost:11434", model="qwen2.5-coder:14b")

        with patcher:
            resp = await backend.complete("system text", "user prompt")

        assert resp.success is True
        assert resp.text == "print('hi')"
        assert resp.duration_ms == 2500.0
        assert resp.tokens_used == 20

        assert client.post.call_args[0][0] == "/api/generate"
        payload = client.post.call_args[1]["json"]
        assert payload == {
            "model": "qwen2.5-coder:14b",
            "prompt": "user prompt",
            "stream": False,
            "system": "system text",
        }

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_connect_error(self, mock_http):
        patcher, _ = mock_http(side_effect=httpx.ConnectError("refused"))
        with patcher:
            resp = await OllamaBackend(base_url="http://localhost:11434", model="m").complete("s", "p")

        assert resp.success is False
        assert "Cannot connect to ollama" in resp.error
        assert resp.backend == "ollama"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unexpected_error(self, mock_http):
        patcher, _ = mock_http(side_effect=RuntimeError("boom"))
        with patcher:
            resp = await OllamaBackend(base_url="http://localhost:11434", model="m").complete("s", "p")

        assert resp.success is False
        assert "Unexpected error" in resp.error

    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body", [{"response": ["a", "b"]}, {"response": "ok", "total_duration": "slow"}]
    )
    async def test_malformed_body(self, mock_http, body):
        patcher, _ = mock_http(body)
        with patcher:
            resp = await OllamaBackend(base_url="http://localhost:11434", model="m").complete("s", "p")

        assert resp.success is False
        assert resp.error.startswith("Malformed ollama response: ")


# ---------------------------------------------------------------------------
# Bodies that are not JSON objects
# ---------------------------------------------------------------------------


class TestNonObjectBodies:
    @pytest.mark.unit
    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[1, 2], "text", None, 42])
    @pytest.mark.parametrize(
        "backend",
        [
            OpenAIBackend(api_key="sk-test"),
            GeminiBackend(api_key="gm-key"),
            OllamaBackend(base_url="http://localhost:11434", model="m"),
        ],
        ids=["openai", "gemini", "ollama"],
    )
    async def test_reported_as_failure(self, mock_http, backend, body):
        patcher, _ = mock_http(body)
        with patcher:
            resp = await backend.complete("s", "p")

        assert resp.success is False
        assert resp.backend == backend.name
        assert resp.error == (
            f"Malformed {backend.name} response: expected a JSON object, "
            f"got {type(body).__name__}"
        )
