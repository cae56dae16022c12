"""Unit tests for LLMService — provider calls are mocked, no network."""
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest
from google.api_core import exceptions as google_exceptions
from tenacity import wait_none

from earprint.services.llm_service import NETWORK_ERROR_MESSAGE, LLMService, extract_json

OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def _openai_ok(text="{}"):
    return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})


def _sequenced(*responses):
    """MockTransport handler replaying *responses* and recording requests."""
    calls = []

    def handler(request):
        calls.append(request)
        item = responses[min(len(calls), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    return handler, calls


@pytest.fixture
def make_service(llm_settings):
    def _make(handler=None):
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler)) if handler else None
        with patch("earprint.services.llm_service.get_settings", return_value=llm_settings):
            return LLMService(http_client=client, retry_wait=wait_none())
    return _make


class TestGenerate:
    @pytest.mark.asyncio
    async def test_unsupported_provider(self, make_service):
        result = await make_service().generate("other", "key", "prompt")
        assert not result.ok
        assert result.error.message == 'No API support for "other" — use copy-paste instead'

    @pytest.mark.asyncio
    async def test_missing_key(self, make_service):
        result = await make_service().generate("claude", "", "prompt")
        assert result.error.type == "auth"
        assert result.error.message == "No API key configured for claude"


class TestOpenAI:
    @pytest.mark.asyncio
    async def test_success(self, make_service):
        handler, calls = _sequenced(_openai_ok('{"tags": []}'))
        result = await make_service(handler).generate("chatgpt", "sk-test", "hello")
        assert result.ok
        assert result.text == '{"tags": []}'
        request = calls[0]
        assert str(request.url) == OPENAI_URL
        assert request.headers["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self, make_service):
        handler, calls = _sequenced(httpx.Response(401))
        result = await make_service(handler).generate("chatgpt", "bad", "hello")
        assert result.error.type == "auth"
        assert result.error.status == 401
        assert result.error.message == "Invalid OpenAI API key"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_rate_limit(self, make_service):
        handler, calls = _sequenced(httpx.Response(429))
        result = await make_service(handler).generate("chatgpt", "k", "hello")
        assert result.error.type == "rate-limit"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_server_error_retried_then_succeeds(self, make_service):
        handler, calls = _sequenced(httpx.Response(503), httpx.Response(502), _openai_ok("done"))
        result = await make_service(handler).generate("chatgpt", "k", "hello")
        assert result.ok
        assert result.text == "done"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_server_error_exhausts_attempts(self, make_service):
        handler, calls = _sequenced(httpx.Response(500))
        result = await make_service(handler).generate("chatgpt", "k", "hello")
        assert result.error.type == "unknown"
        assert result.error.message == "OpenAI error (500)"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_network_error(self, make_service):
        handler, calls = _sequenced(httpx.ConnectError("refused"))
        result = await make_service(handler).generate("chatgpt", "k", "hello")
        assert result.error.type == "network"
        assert result.error.message == NETWORK_ERROR_MESSAGE
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, make_service):
        handler, _ = _sequenced(httpx.Response(200, json={"choices": []}))
        result = await make_service(handler).generate("chatgpt", "k", "hello")
        assert result.error.type == "parse"
        assert result.error.message == "Unexpected OpenAI response format"

    @pytest.mark.asyncio
    async def test_non_json_body(self, make_service):
        handler, _ = _sequenced(httpx.Response(200, text="<html>"))
        result = await make_service(handler).generate("chatgpt", "k", "hello")
        assert result.error.message == "Failed to parse OpenAI response"


class TestAnthropic:
    @staticmethod
    def _client(create):
        client = MagicMock()
        client.messages.create = create
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)
        return client

    @staticmethod
    def _request():
        return httpx.Request("POST", "https://api.anthropic.com/v1/messages")

    @pytest.mark.asyncio
    async def test_success(self, make_service, llm_settings):
        message = SimpleNamespace(content=[SimpleNamespace(type="text", text="hello back")])
        create = AsyncMock(return_value=message)
        with patch(
            "earprint.services.llm_service.anthropic.AsyncAnthropic",
            return_value=self._client(create),
        ) as ctor:
            result = await make_service().generate("claude", "sk-ant", "hi")

        assert result.ok
        assert result.text == "hello back"
        assert ctor.call_args.kwargs["api_key"] == "sk-ant"
        assert ctor.call_args.kwargs["max_retries"] == 0
        assert create.call_args.kwargs["model"] == llm_settings.ANTHROPIC_MODEL

    @pytest.mark.asyncio
    async def test_client_closed_after_each_attempt(self, make_service):
        client = self._client(AsyncMock(side_effect=anthropic.APIConnectionError(request=self._request())))
        with patch(
            "earprint.services.llm_service.anthropic.AsyncAnthropic", return_value=client,
        ):
            await make_service().generate("claude", "k", "hi")
        assert client.__aexit__.await_count == 3

    @pytest.mark.asyncio
    async def test_auth_error(self, make_service):
        error = anthropic.AuthenticationError(
            "invalid x-api-key",
            response=httpx.Response(401, request=self._request()),
            body=None,
        )
        create = AsyncMock(side_effect=error)
        with patch(
            "earprint.services.llm_service.anthropic.AsyncAnthropic",
            return_value=self._client(create),
        ):
            result = await make_service().generate("claude", "bad", "hi")
        assert result.error.type == "auth"
        assert result.error.message == "Invalid Anthropic API key"
        assert create.await_count == 1

    @pytest.mark.asyncio
    async def test_connection_error_retried(self, make_service):
        create = AsyncMock(side_effect=anthropic.APIConnectionError(request=self._request()))
        with patch(
            "earprint.services.llm_service.anthropic.AsyncAnthropic",
            return_value=self._client(create),
        ):
            result = await make_service().generate("claude", "k", "hi")
        assert result.error.type == "network"
        assert create.await_count == 3

    @pytest.mark.asyncio
    async def test_non_text_block(self, make_service):
        message = SimpleNamespace(content=[SimpleNamespace(type="tool_use", text=None)])
        with patch(
            "earprint.services.llm_service.anthropic.AsyncAnthropic",
            return_value=self._client(AsyncMock(return_value=message)),
        ):
            result = await make_service().generate("claude", "k", "hi")
        assert result.error.type == "parse"


class TestGemini:
    @staticmethod
    def _genai(generate):
        genai = MagicMock()
        genai.GenerativeModel.return_value.generate_content_async = generate
        return genai

    @pytest.mark.asyncio
    async def test_success(self, make_service):
        genai = self._genai(AsyncMock(return_value=SimpleNamespace(text="gemini says")))
        with patch("earprint.services.llm_service.genai", genai):
            result = await make_service().generate("gemini", "g-key", "hi")
        assert result.ok
        assert result.text == "gemini says"
        genai.configure.assert_called_once_with(api_key="g-key")

    @pytest.mark.asyncio
    async def test_concurrent_calls_keep_their_own_key(self, make_service):
        current = {}

        async def generate(prompt):
            await asyncio.sleep(0)
            return SimpleNamespace(text=current["key"])

        genai = self._genai(generate)
        genai.configure.side_effect = lambda api_key: current.update(key=api_key)
        service = make_service()
        with patch("earprint.services.llm_service.genai", genai):
            first, second = await asyncio.gather(
                service.generate("gemini", "key-one", "hi"),
                service.generate("gemini", "key-two", "hi"),
            )
        assert (first.text, second.text) == ("key-one", "key-two")

    @pytest.mark.asyncio
    async def test_invalid_key_reported_as_auth(self, make_service):
        error = google_exceptions.InvalidArgument("API key not valid. Please pass a valid API key.")
        with patch("earprint.services.llm_service.genai", self._genai(AsyncMock(side_effect=error))):
            result = await make_service().generate("gemini", "bad", "hi")
        assert result.error.type == "auth"
        assert result.error.status == 401
        assert result.error.message == "Invalid Google API key"

    @pytest.mark.asyncio
    async def test_quota_exhausted(self, make_service):
        error = google_exceptions.ResourceExhausted("quota")
        generate = AsyncMock(side_effect=error)
        with patch("earprint.services.llm_service.genai", self._genai(generate)):
            result = await make_service().generate("gemini", "k", "hi")
        assert result.error.type == "rate-limit"
        assert generate.await_count == 1

    @pytest.mark.asyncio
    async def test_unavailable_retried(self, make_service):
        generate = AsyncMock(side_effect=[
            google_exceptions.ServiceUnavailable("down"),
            SimpleNamespace(text="back"),
        ])
        with patch("earprint.services.llm_service.genai", self._genai(generate)):
            result = await make_service().generate("gemini", "k", "hi")
        assert result.ok
        assert generate.await_count == 2

    @pytest.mark.asyncio
    async def test_blocked_response(self, make_service):
        class Blocked:
            @property
            def text(self):
                raise ValueError("response was blocked")

        with patch(
            "earprint.services.llm_service.genai",
            self._genai(AsyncMock(return_value=Blocked())),
        ):
            result = await make_service().generate("gemini", "k", "hi")
        assert result.error.type == "parse"


class TestExtractJson:
    def test_strips_fence(self):
        assert extract_json('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_text_untouched(self):
        assert extract_json('  {"a": 1}\n') == '{"a": 1}'

    def test_inner_fence_left_alone(self):
        text = 'Here:\n```json\n{"a": 1}\n```'
        assert extract_json(text) == text
