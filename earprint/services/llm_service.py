"""
Earprint — Direct LLM generation with a user-supplied API key.

Providers:
  chatgpt  OpenAI chat completions over REST (httpx)
  claude   Anthropic Messages API (anthropic SDK)
  gemini   Google Generative AI (google-generativeai SDK)

``generate`` never raises: every outcome is an ``LlmResult``.  Network
failures and 5xx responses are retried with exponential backoff; auth and
rate-limit failures are reported immediately.
"""

from __future__ import annotations

import asyncio
import re
from typing import Awaitable, Callable, Optional

import anthropic
import google.generativeai as genai
import httpx
import structlog
from google.api_core import exceptions as google_exceptions
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from earprint.config import get_settings
from earprint.schemas.llm import LlmApiError, LlmErrorType, LlmResult

logger = structlog.get_logger("earprint.llm_service")

NETWORK_ERROR_MESSAGE = "Network error — check your connection"

_WHOLE_FENCE = re.compile(r"^```(?:json)?\s*\n?([\s\S]*?)\n?\s*```$")


class LlmCallError(Exception):
    """A provider call failed; carries the user-facing error."""

    def __init__(self, error: LlmApiError, retryable: bool = False) -> None:
        super().__init__(error.message)
        self.error = error
        self.retryable = retryable


def _fail(
    type_: LlmErrorType, message: str, status: Optional[int] = None, retryable: bool = False
) -> LlmCallError:
    return LlmCallError(LlmApiError(type=type_, message=message, status=status), retryable)


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, LlmCallError) and exc.retryable


def _status_error(provider: str, status: int) -> LlmCallError:
    """Map an HTTP status from *provider* to the error the user sees."""
    if status in (401, 403):
        return _fail("auth", f"Invalid {provider} API key", status)
    if status == 429:
        return _fail("rate-limit", f"{provider} rate limit reached — try again shortly", status)
    return _fail("unknown", f"{provider} error ({status})", status, retryable=status >= 500)


def extract_json(raw: str) -> str:
    """Strip a surrounding markdown code fence and whitespace."""
    text = raw.strip()
    match = _WHOLE_FENCE.match(text)
    if match:
        text = match.group(1).strip()
    return text


class LLMService:
    """Send prompts to a provider chosen per call.

    Parameters
    ----------
    http_client:
        Client used for the OpenAI REST call; one is created per call when
        omitted.
    retry_wait:
        tenacity wait strategy between attempts.

    Gemini calls through one instance run one at a time, since the
    google-generativeai key is process-global; the API shares a single
    instance.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        retry_wait: Optional[wait_base] = None,
    ) -> None:
        settings = get_settings()
        self._settings = settings
        self._http_client = http_client
        # genai.configure sets one key for the whole process
        self._gemini_lock = asyncio.Lock()
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=20, exp_base=2)
        self._providers: dict[str, Callable[[str, str], Awaitable[str]]] = {
            "chatgpt": self._call_openai,
            "claude": self._call_anthropic,
            "gemini": self._call_gemini,
        }

    async def generate(self, provider: str, api_key: str, prompt: str) -> LlmResult:
        call = self._providers.get(provider)
        if call is None:
            return LlmResult(ok=False, error=LlmApiError(
                type="unknown",
                message=f'No API support for "{provider}" — use copy-paste instead',
            ))
        if not api_key:
            return LlmResult(ok=False, error=LlmApiError(
                type="auth", message=f"No API key configured for {provider}",
            ))

        log = logger.bind(provider=provider)
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception(_is_transient),
                stop=stop_after_attempt(self._settings.LLM_MAX_ATTEMPTS),
                wait=self._retry_wait,
                reraise=True,
            ):
                with attempt:
                    log.debug("llm.call_attempt", attempt_number=attempt.retry_state.attempt_number)
                    text = await call(api_key, prompt)
        except LlmCallError as exc:
            log.warning("llm.call_failed", error_type=exc.error.type, status=exc.error.status)
            return LlmResult(ok=False, error=exc.error)

        log.info("llm.call_succeeded", chars=len(text))
        return LlmResult(ok=True, text=text)

    # ── OpenAI ──────────────────────────────────────────────────────

    async def _call_openai(self, api_key: str, prompt: str) -> str:
        payload = {
            "model": self._settings.OPENAI_MODEL,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self._settings.LLM_TEMPERATURE,
        }
        headers = {"Authorization": f"Bearer {api_key}"}

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self._settings.OPENAI_API_URL, json=payload, headers=headers,
                )
            else:
                async with httpx.AsyncClient(timeout=self._settings.LLM_TIMEOUT_SECONDS) as client:
                    response = await client.post(
                        self._settings.OPENAI_API_URL, json=payload, headers=headers,
                    )
        except httpx.HTTPError as exc:
            logger.debug("llm.openai_transport_error", error=str(exc))
            raise _fail("network", NETWORK_ERROR_MESSAGE, retryable=True) from exc

        if response.status_code != 200:
            raise _status_error("OpenAI", response.status_code)

        try:
            body = response.json()
        except ValueError as exc:
            raise _fail("parse", "Failed to parse OpenAI response") from exc

        try:
            text = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str):
            raise _fail("parse", "Unexpected OpenAI response format")
        return text

    # ── Anthropic ───────────────────────────────────────────────────

    async def _call_anthropic(self, api_key: str, prompt: str) -> str:
        try:
            async with anthropic.AsyncAnthropic(
                api_key=api_key,
                max_retries=0,
                timeout=self._settings.LLM_TIMEOUT_SECONDS,
            ) as client:
                message = await client.messages.create(
                    model=self._settings.ANTHROPIC_MODEL,
                    max_tokens=self._settings.LLM_MAX_TOKENS,
                    messages=[{"role": "user", "content": prompt}],
                )
        except anthropic.APIStatusError as exc:
            raise _status_error("Anthropic", exc.status_code) from exc
        except anthropic.APIConnectionError as exc:
            raise _fail("network", NETWORK_ERROR_MESSAGE, retryable=True) from exc

        block = message.content[0] if message.content else None
        if block is None or block.type != "text" or not isinstance(block.text, str):
            raise _fail("parse", "Unexpected Anthropic response format")
        return block.text

    # ── Google ──────────────────────────────────────────────────────

    async def _call_gemini(self, api_key: str, prompt: str) -> str:
        async with self._gemini_lock:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(
                self._settings.GEMINI_MODEL,
                generation_config=genai.GenerationConfig(
                    temperature=self._settings.LLM_TEMPERATURE,
                ),
            )
            try:
                response = await model.generate_content_async(prompt)
            except google_exceptions.GoogleAPICallError as exc:
                status = int(exc.code) if isinstance(exc.code, int) else None
                if isinstance(exc, google_exceptions.InvalidArgument) and "api key" in str(exc).lower():
                    status = 401
                if status is None:
                    raise _fail("unknown", f"Google error ({exc.message})") from exc
                raise _status_error("Google", status) from exc
            except google_exceptions.RetryError as exc:
                raise _fail("network", NETWORK_ERROR_MESSAGE, retryable=True) from exc

        try:
            text = response.text
        except ValueError as exc:
            raise _fail("parse", "Unexpected Google response format") from exc
        if not isinstance(text, str):
            raise _fail("parse", "Unexpected Google response format")
        return text
