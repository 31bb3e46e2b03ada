"""Tests for the completion clients."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from fishregs.core import llm_client as module
from fishregs.core.exceptions import APIClientError, ConfigurationError
from fishregs.core.llm_client import (
    AzureOpenAIClient,
    BaseLLMClient,
    GeminiClient,
    OpenRouterClient,
    create_llm_client,
)


def _client_factory(handler):
    real_client = httpx.AsyncClient
    transport = httpx.MockTransport(handler)
    return lambda **kwargs: real_client(transport=transport, **kwargs)


def _llm_settings(**overrides) -> SimpleNamespace:
    values = dict(
        provider="openrouter",
        openrouter_api_key="or-key",
        openrouter_api_url="https://openrouter.ai/api/v1/chat/completions",
        openrouter_model="openai/gpt-4o-mini",
        azure_openai_endpoint="",
        azure_openai_api_key="",
        azure_openai_deployment="gpt-4o-mini",
        azure_openai_api_version="2024-06-01",
        gemini_api_key="",
        gemini_model="gemini-2.0-flash",
        timeout=30,
        max_retries=2,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestOpenRouterClient:
    """Test suite for OpenRouterClient."""

    @pytest.fixture
    def client(self) -> OpenRouterClient:
        return OpenRouterClient(api_key="or-key", model="openai/gpt-4o-mini")

    @pytest.mark.asyncio
    async def test_payload_and_response(self, client):
        client.client.call_api = AsyncMock(
            return_value={"choices": [{"message": {"content": '{"lakeName": "TEST LAKE"}'}}]}
        )

        text = await client.generate_content(
            contents=["Water body: ", {"text": "TEST LAKE"}],
            system_instruction="Extract regulations",
            generation_config={"temperature": 0.1, "max_output_tokens": 2000, "response_mime_type": "application/json"},
        )

        assert text == '{"lakeName": "TEST LAKE"}'
        payload = client.client.call_api.await_args.kwargs["payload"]
        assert payload["model"] == "openai/gpt-4o-mini"
        assert payload["messages"] == [
            {"role": "system", "content": "Extract regulations"},
            {"role": "user", "content": "Water body: TEST LAKE"},
        ]
        assert payload["temperature"] == 0.1
        assert payload["max_tokens"] == 2000
        assert payload["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_missing_choices_raises(self, client):
        client.client.call_api = AsyncMock(return_value={"error": "overloaded"})

        with pytest.raises(APIClientError):
            await client.generate_content("hello")

    @pytest.mark.asyncio
    async def test_non_object_response_raises(self, client):
        client.client.call_api = AsyncMock(return_value=["not", "a", "completion"])

        with pytest.raises(APIClientError, match="Invalid response format"):
            await client.generate_content("hello")

    @pytest.mark.asyncio
    async def test_empty_content_returns_empty_string(self, client):
        client.client.call_api = AsyncMock(return_value={"choices": [{"message": {"content": None}}]})

        assert await client.generate_content("hello") == ""

    def test_azure_uses_deployment_url_and_api_key_header(self):
        client = AzureOpenAIClient(
            endpoint="https://example.openai.azure.com/", api_key="az-key", deployment="regs"
        )

        assert client.base_url == (
            "https://example.openai.azure.com/openai/deployments/regs/chat/completions?api-version=2024-06-01"
        )
        assert client.client.auth_headers == {"api-key": "az-key"}
        assert client.model is None


class TestBaseLLMClient:
    """Test suite for retry behavior of BaseLLMClient."""

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(json.loads(request.content))
            if len(calls) < 3:
                return httpx.Response(503, text="unavailable")
            return httpx.Response(200, json={"ok": True})

        client = BaseLLMClient(api_key="key", base_url="https://llm.test/v1", max_retries=3, retry_delay=0)
        with patch.object(module.httpx, "AsyncClient", _client_factory(handler)):
            response = await client.call_api(payload={"prompt": "hi"})

        assert response == {"ok": True}
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_client_errors_are_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            assert request.headers["Authorization"] == "Bearer key"
            return httpx.Response(400, text="bad request")

        client = BaseLLMClient(api_key="key", base_url="https://llm.test/v1", max_retries=3, retry_delay=0)
        with patch.object(module.httpx, "AsyncClient", _client_factory(handler)):
            with pytest.raises(APIClientError, match="400"):
                await client.call_api(payload={})

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_rate_limit_is_retried_until_exhausted(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="slow down")

        client = BaseLLMClient(api_key="key", base_url="https://llm.test/v1", max_retries=2, retry_delay=0)
        with patch.object(module.httpx, "AsyncClient", _client_factory(handler)):
            with pytest.raises(APIClientError, match="after retries"):
                await client.call_api(payload={})


    @pytest.mark.asyncio
    async def test_non_json_body_raises_client_error(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, text="<html>gateway</html>")

        client = BaseLLMClient(api_key="key", base_url="https://llm.test/v1", max_retries=3, retry_delay=0)
        with patch.object(module.httpx, "AsyncClient", _client_factory(handler)):
            with pytest.raises(APIClientError, match="Invalid JSON response"):
                await client.call_api(payload={})

        assert len(calls) == 1


class TestCreateLLMClient:
    """Test suite for create_llm_client."""

    def test_openrouter(self):
        client = create_llm_client(_llm_settings())

        assert isinstance(client, OpenRouterClient)
        assert client.model == "openai/gpt-4o-mini"
        assert client.client.max_retries == 2

    def test_azure_requires_credentials(self):
        with pytest.raises(ConfigurationError):
            create_llm_client(_llm_settings(provider="azure_openai"))

    def test_openrouter_requires_key(self):
        with pytest.raises(ConfigurationError, match="OPENROUTER_API_KEY"):
            create_llm_client(_llm_settings(openrouter_api_key=""))

    def test_gemini(self):
        with patch.object(module.genai, "Client") as genai_client:
            client = create_llm_client(_llm_settings(provider="Gemini", gemini_api_key="g-key"))

        assert isinstance(client, GeminiClient)
        genai_client.assert_called_once_with(api_key="g-key")

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Unsupported LLM provider"):
            create_llm_client(_llm_settings(provider="local"))
