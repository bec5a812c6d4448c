"""
Bug Analyzer Tests
==================
End-to-end through analyzer → router → client → decoder with
httpx.AsyncClient.post patched. No real API calls, no real sleeps.

Covers:
    - Scenario A: code only, empty history → one call, code-only directive,
      report decoded field for field
    - Scenario B: 429, 429, success → report returned, two retries logged
    - Scenario C: premium model exhausts quota → fallback model answers
    - Scenario D: refinement history replayed in order with the feedback
    - Missing API key fails before any request
    - Decode failures are not retried
"""
import asyncio
import json
import logging
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from vibefix.core.config import Settings
from vibefix.core.errors import (
    ConfigurationError,
    EmptyResponseError,
    MediaReadError,
    ResponseDecodeError,
    TransientServiceError,
)
from vibefix.llm.client import GeminiClient
from vibefix.llm.encoder import MediaPart
from vibefix.models.bug_report import BugReport
from vibefix.models.chat_entry import ChatEntry
from vibefix.services.analyzer import BugAnalyzer


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
SETTINGS = Settings(
    api_key="test-key",
    model="gemini-2.5-flash",
    premium_model="gemini-2.5-pro",
    fallback_model="gemini-2.5-flash",
    base_url="https://example.test/v1beta",
)

REPORT = {
    "bug_summary": "x is never used.",
    "user_sentiment": "Helpful",
    "file_to_edit": "src/index.js",
    "explanation": "Export x so the rest of the app can read it.",
    "code_patch": "export const x = 1",
}


def _url(model: str) -> str:
    return f"{SETTINGS.base_url}/models/{model}:generateContent"


def _ok(text: str, model: str = "gemini-2.5-flash") -> httpx.Response:
    body = {"candidates": [{"content": {"parts": [{"text": text}]}}]}
    return httpx.Response(200, json=body, request=httpx.Request("POST", _url(model)))


def _error(status: int, message: str, model: str = "gemini-2.5-flash") -> httpx.Response:
    body = {"error": {"code": status, "message": message}}
    return httpx.Response(status, json=body, request=httpx.Request("POST", _url(model)))


async def _no_sleep(_seconds: float) -> None:
    return None


def _analyzer(settings: Settings = SETTINGS) -> BugAnalyzer:
    client = GeminiClient(settings, sleep=_no_sleep, jitter=lambda: 0.0)
    return BugAnalyzer(settings, client=client)


def _prompt_text(call) -> str:
    parts = call.kwargs["json"]["contents"][0]["parts"]
    return parts[-1]["text"]


# ---------------------------------------------------------------------------
# Scenario A
# ---------------------------------------------------------------------------
class TestCodeOnlyAnalysis:

    def test_single_call_and_equal_report(self):
        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.return_value = _ok(json.dumps(REPORT))
                report = await analyzer.analyze(None, "const x = 1", [], None)
                await analyzer.close()
            return report, mock_post

        report, mock_post = asyncio.run(run_test())
        assert mock_post.call_count == 1
        prompt = _prompt_text(mock_post.call_args)
        assert "const x = 1" in prompt
        assert "No screen recording was supplied" in prompt
        assert len(mock_post.call_args.kwargs["json"]["contents"][0]["parts"]) == 1
        assert report == BugReport(**REPORT)

    def test_fenced_reply_decodes(self):
        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.return_value = _ok(f"```json\n{json.dumps(REPORT)}\n```")
                return await analyzer.analyze(None, "const x = 1")

        assert asyncio.run(run_test()) == BugReport(**REPORT)

    def test_default_model_used(self):
        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.return_value = _ok(json.dumps(REPORT))
                await analyzer.analyze(None, "const x = 1")
            return mock_post

        mock_post = asyncio.run(run_test())
        assert mock_post.call_args.args[0] == _url("gemini-2.5-flash")


# ---------------------------------------------------------------------------
# Scenario B
# ---------------------------------------------------------------------------
class TestQuotaRetries:

    def test_two_429s_then_success(self, caplog):
        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.side_effect = [
                    _error(429, "Resource has been exhausted"),
                    _error(429, "Resource has been exhausted"),
                    _ok(json.dumps(REPORT)),
                ]
                report = await analyzer.analyze(None, "const x = 1")
            return report, mock_post.call_count

        with caplog.at_level(logging.WARNING, logger="vibefix.llm.retry"):
            report, calls = asyncio.run(run_test())

        assert report == BugReport(**REPORT)
        assert calls == 3
        retries = [r for r in caplog.records if "retrying" in r.getMessage()]
        assert len(retries) == 2


# ---------------------------------------------------------------------------
# Scenario C
# ---------------------------------------------------------------------------
class TestPremiumFallback:

    def test_fallback_model_answers(self):
        fallback_report = dict(REPORT, explanation="Answered by flash.")

        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.side_effect = [
                    _error(429, "quota", "gemini-2.5-pro"),
                    _error(429, "quota", "gemini-2.5-pro"),
                    _error(429, "quota", "gemini-2.5-pro"),
                    _ok(json.dumps(fallback_report)),
                ]
                report = await analyzer.analyze(None, "const x = 1", [], "gemini-2.5-pro")
            return report, mock_post, analyzer

        report, mock_post, analyzer = asyncio.run(run_test())
        assert report.explanation == "Answered by flash."
        urls = [c.args[0] for c in mock_post.call_args_list]
        assert urls == [_url("gemini-2.5-pro")] * 3 + [_url("gemini-2.5-flash")]
        assert analyzer.router.get_model_usage_log()[-1]["fallback_triggered"] is True

    def test_both_fail_surfaces_premium_error(self):
        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.side_effect = (
                    [_error(429, "pro quota", "gemini-2.5-pro")] * 3
                    + [_error(429, "flash quota")] * 3
                )
                await analyzer.analyze(None, "const x = 1", [], "gemini-2.5-pro")

        with pytest.raises(TransientServiceError) as excinfo:
            asyncio.run(run_test())
        assert "pro quota" in str(excinfo.value)

    def test_flash_quota_has_no_fallback(self):
        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.side_effect = [_error(429, "flash quota")] * 3 + [_ok(json.dumps(REPORT))]
                try:
                    await analyzer.analyze(None, "const x = 1")
                except TransientServiceError:
                    return mock_post.call_count

        assert asyncio.run(run_test()) == 3


# ---------------------------------------------------------------------------
# Scenario D
# ---------------------------------------------------------------------------
class TestRefinementReplay:

    def test_history_and_feedback_in_prompt(self):
        history = [
            ChatEntry(role="user", content="Analyze this bug.", timestamp=1.0),
            ChatEntry(role="model", content=BugReport(**REPORT), timestamp=2.0),
            ChatEntry(role="user", content="make it red", timestamp=3.0),
        ]
        media = MediaPart(data="QUJD", mime_type="video/mp4")

        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.return_value = _ok(json.dumps(REPORT))
                await analyzer.analyze(media, "const x = 1", history)
            return mock_post

        mock_post = asyncio.run(run_test())
        parts = mock_post.call_args.kwargs["json"]["contents"][0]["parts"]
        assert parts[0] == media.to_part()
        prompt = parts[1]["text"]
        i_first = prompt.index("User: Analyze this bug.")
        i_report = prompt.index(f"Assistant: {BugReport(**REPORT).to_json()}")
        i_feedback = prompt.index("User: make it red")
        assert i_first < i_report < i_feedback


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------
class TestAnalyzerFailures:

    def test_missing_api_key_sends_nothing(self):
        settings = Settings(api_key="", base_url=SETTINGS.base_url)

        async def run_test():
            analyzer = _analyzer(settings)
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                try:
                    await analyzer.analyze(b"video-bytes", "const x = 1")
                finally:
                    assert mock_post.call_count == 0

        with pytest.raises(ConfigurationError):
            asyncio.run(run_test())

    def test_unreadable_media(self, tmp_path):
        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                try:
                    await analyzer.analyze(tmp_path / "missing.mp4", "const x = 1")
                finally:
                    assert mock_post.call_count == 0

        with pytest.raises(MediaReadError):
            asyncio.run(run_test())

    def test_raw_bytes_media_encoded(self):
        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.return_value = _ok(json.dumps(REPORT))
                await analyzer.analyze(b"ABC", "const x = 1")
            return mock_post

        mock_post = asyncio.run(run_test())
        parts = mock_post.call_args.kwargs["json"]["contents"][0]["parts"]
        assert parts[0] == {"inline_data": {"mime_type": "video/mp4", "data": "QUJD"}}

    def test_empty_reply(self):
        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.return_value = _ok("")
                await analyzer.analyze(None, "const x = 1")

        with pytest.raises(EmptyResponseError):
            asyncio.run(run_test())

    def test_missing_field_not_retried(self):
        partial = {k: v for k, v in REPORT.items() if k != "code_patch"}

        async def run_test():
            analyzer = _analyzer()
            with patch("httpx.AsyncClient.post", new_callable=AsyncMock) as mock_post:
                mock_post.return_value = _ok(json.dumps(partial))
                try:
                    await analyzer.analyze(None, "const x = 1")
                except ResponseDecodeError:
                    return mock_post.call_count

        assert asyncio.run(run_test()) == 1
