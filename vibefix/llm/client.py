"""
Gemini Client
=============
Asynchronous wrapper around the Gemini generateContent REST endpoint.

Request Shape:
    POST {base_url}/models/{model}:generateContent
    headers: x-goog-api-key
    body:
        systemInstruction   - fixed VibeFix instruction
        contents            - one user turn: [inline video?, prompt text]
        generationConfig    - JSON mime type, response schema, temperature

Error Mapping:
    - HTTP 429 / quota text  → TransientServiceError (QUOTA_EXCEEDED)
    - HTTP 5xx               → TransientServiceError (SERVER_ERROR)
    - timeout / connect fail → TransientServiceError (NETWORK_ERROR)
    - HTTP 400 / 403 / 404   → PermanentServiceError, message annotated with
                               the likely cause

Retries:
    dispatch() wraps generate() in retry_transient. Model fallback is a
    separate layer (see router.py) so each can be tested on its own.
"""
import logging
import random
from typing import Awaitable, Callable, Optional

import httpx

from vibefix.core.config import Settings
from vibefix.core.errors import build_service_error
from vibefix.llm.prompts import RESPONSE_SCHEMA, SYSTEM_INSTRUCTION, build_contents
from vibefix.llm.retry import retry_transient
from vibefix.models.analysis_request import AnalysisRequest

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response) -> str:
    """Pull the provider's error message out of a failed response."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict):
            message = error.get("message") or ""
            status = error.get("status") or ""
            if message and status:
                return f"{status}: {message}"
            if message or status:
                return message or status
    text = resp.text.strip()
    return text or f"HTTP {resp.status_code}"


def extract_text(data: dict) -> str:
    """Concatenate the text parts of the first candidate. Empty if none."""
    try:
        candidates = data.get("candidates") or []
        if candidates:
            parts = candidates[0].get("content", {}).get("parts", []) or []
            return "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    except (AttributeError, IndexError, KeyError, TypeError):
        pass
    return ""


class GeminiClient:
    """
    Async HTTP client for the Gemini API.

    Usage:
        client = GeminiClient(settings)
        raw = await client.dispatch(request)
        await client.close()
    """

    def __init__(
        self,
        settings: Settings,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        jitter: Callable[[], float] = random.random,
    ) -> None:
        self.settings = settings
        self._sleep = sleep
        self._jitter = jitter
        self._http: Optional[httpx.AsyncClient] = None

    async def _get_http(self) -> httpx.AsyncClient:
        """Lazy-initialise the HTTP client."""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.timeout_seconds)
            )
        return self._http

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http and not self._http.is_closed:
            await self._http.aclose()
            self._http = None

    async def generate(
        self,
        model: str,
        contents: list[dict],
        system_instruction: str = SYSTEM_INSTRUCTION,
        response_schema: Optional[dict] = None,
    ) -> str:
        """
        Make exactly one generateContent call.

        Returns
        -------
        str
            Raw reply text (may be empty; the decoder decides what that means).

        Raises
        ------
        TransientServiceError, PermanentServiceError
            Classified transport or HTTP failure.
        """
        http = await self._get_http()
        url = f"{self.settings.base_url}/models/{model}:generateContent"
        headers = {
            "x-goog-api-key": self.settings.require_api_key(),
            "Content-Type": "application/json",
        }
        payload = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": contents,
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": response_schema or RESPONSE_SCHEMA,
                "temperature": self.settings.temperature,
            },
        }

        logger.debug("POST generateContent model=%s", model)
        try:
            resp = await http.post(url, json=payload, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise build_service_error(status, _error_message(e.response)) from e
        except httpx.TransportError as e:
            raise build_service_error(
                None, f"Network error talking to Gemini: {e!r}"
            ) from e

        try:
            data = resp.json()
        except ValueError:
            logger.warning("Model %s returned a non-JSON HTTP body", model)
            return ""
        if not isinstance(data, dict):
            return ""
        return extract_text(data)

    async def dispatch(self, request: AnalysisRequest) -> str:
        """Send a request, retrying transient failures with backoff."""
        contents = build_contents(request)
        kwargs = {}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        return await retry_transient(
            lambda: self.generate(request.model, contents),
            max_attempts=self.settings.max_attempts,
            base_delay=self.settings.base_delay,
            max_jitter=self.settings.max_jitter,
            jitter=self._jitter,
            label=request.model,
            **kwargs,
        )
