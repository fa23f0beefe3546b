"""Tests for the LLM provider clients (network mocked)"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest
from google.genai import errors

from noirplan.llm import LLMMessage, OllamaClient, ProviderError
from noirplan.llm.gemini_client import GeminiClient


MESSAGES = [
    LLMMessage(role="system", content="You are terse."),
    LLMMessage(role="user", content="Write a timeline."),
]


def _ollama_with_response(response=None, post_error=None):
    client = OllamaClient(model="test-model")
    session = MagicMock()
    session.closed = False
    if post_error is not None:
        session.post.side_effect = post_error
    else:
        session.post.return_value.__aenter__.return_value = response
    client._session = session
    return client, session


class TestOllamaClient:
    """Ollama chat API client"""

    def test_payload_merges_system_prompt_and_schema(self):
        """Test the system prompt is folded into the first user turn"""
        client = OllamaClient(model="test-model")

        payload = client._build_payload(MESSAGES, 0.3, 512, {"type": "object"})

        assert payload["messages"] == [{"role": "user", "content": "You are terse.\n\nWrite a timeline."}]
        assert payload["options"] == {"temperature": 0.3, "num_predict": 512}
        assert payload["format"] == {"type": "object"}
        assert payload["stream"] is False

    @pytest.mark.asyncio
    async def test_generate_returns_message_content(self):
        """Test a successful chat call"""
        response = MagicMock()
        response.json = AsyncMock(return_value={
            "message": {"content": "7:00 PM - Guests arrive."},
            "prompt_eval_count": 10,
            "eval_count": 5,
        })
        client, session = _ollama_with_response(response)

        result = await client.generate(MESSAGES, generation_kind="timeline")

        assert result.content == "7:00 PM - Guests arrive."
        assert result.usage["total_tokens"] == 15
        assert session.post.call_args.args[0].endswith("/api/chat")

    @pytest.mark.asyncio
    async def test_http_status_is_carried(self):
        """Test HTTP errors keep their status for the retry policy"""
        response = MagicMock()
        response.raise_for_status.side_effect = aiohttp.ClientResponseError(
            request_info=MagicMock(),
            history=(),
            status=429,
            message="Too Many Requests"
        )
        client, _ = _ollama_with_response(response)

        with pytest.raises(ProviderError) as exc_info:
            await client.generate(MESSAGES)

        assert exc_info.value.status == 429
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self):
        """Test a timeout maps to a gateway-timeout status"""
        client, _ = _ollama_with_response(post_error=asyncio.TimeoutError())

        with pytest.raises(ProviderError) as exc_info:
            await client.generate(MESSAGES)

        assert exc_info.value.status == 504
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_connection_error_is_terminal(self):
        """Test a refused connection has no status and is not retried"""
        client, _ = _ollama_with_response(post_error=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(ProviderError) as exc_info:
            await client.generate(MESSAGES)

        assert exc_info.value.status is None
        assert not exc_info.value.retryable


class TestGeminiClient:
    """google-genai client wrapper"""

    def test_requires_api_key(self, monkeypatch):
        """Test a missing key is reported up front"""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)

        with pytest.raises(RuntimeError):
            GeminiClient()

    @pytest.mark.asyncio
    async def test_generate_passes_system_instruction(self):
        """Test the system prompt travels as system_instruction"""
        client = GeminiClient(api_key="test-key")
        client.client = MagicMock()
        client.client.aio.models.generate_content = AsyncMock(
            return_value=MagicMock(text='{"title": "x"}', usage_metadata=None)
        )

        result = await client.generate(MESSAGES, response_schema={"type": "object"})

        assert result.content == '{"title": "x"}'
        config = client.client.aio.models.generate_content.call_args.kwargs["config"]
        assert config.system_instruction == "You are terse."
        assert config.response_mime_type == "application/json"
        assert config.response_json_schema == {"type": "object"}

    @pytest.mark.asyncio
    async def test_api_error_status_is_carried(self):
        """Test API errors keep their code for the retry policy"""
        client = GeminiClient(api_key="test-key")
        client.client = MagicMock()
        client.client.aio.models.generate_content = AsyncMock(
            side_effect=errors.APIError(503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}})
        )

        with pytest.raises(ProviderError) as exc_info:
            await client.generate(MESSAGES)

        assert exc_info.value.status == 503
        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_prose_calls_send_no_schema(self):
        """Test free-text calls leave the JSON settings unset"""
        client = GeminiClient(api_key="test-key")
        client.client = MagicMock()
        client.client.aio.models.generate_content = AsyncMock(
            return_value=MagicMock(text="7:00 PM - Guests arrive.", usage_metadata=None)
        )

        await client.generate(MESSAGES, generation_kind="timeline")

        config = client.client.aio.models.generate_content.call_args.kwargs["config"]
        assert config.response_mime_type is None
        assert config.response_json_schema is None
