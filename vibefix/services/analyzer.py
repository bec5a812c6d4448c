"""
Bug Analyzer
============
Single entry point the presentation layer calls:

    analyze(media, code_text, history, model) -> BugReport

Pipeline:
    1. Check the API key (ConfigurationError, nothing is sent)
    2. Encode the recording unless the caller already passes a MediaPart
    3. Build the AnalysisRequest (code, full history, model)
    4. Dispatch through ModelRouter → GeminiClient (retries inside the client,
       premium→fallback substitution inside the router)
    5. Decode the raw reply into a BugReport

Every call is self-contained: the provider keeps no session, so history is
replayed in full on each call. All failures propagate as VibeFixError
subclasses; none are swallowed.
"""
import logging
from typing import Optional, Sequence, Union

from vibefix.core.config import Settings
from vibefix.llm.client import GeminiClient
from vibefix.llm.decoder import decode_bug_report
from vibefix.llm.encoder import MediaPart, MediaSource, encode_media
from vibefix.llm.router import ModelRouter
from vibefix.models.analysis_request import AnalysisRequest
from vibefix.models.bug_report import BugReport
from vibefix.models.chat_entry import ChatEntry

logger = logging.getLogger(__name__)


class BugAnalyzer:
    """
    Orchestrates one analysis or refinement call.

    Parameters
    ----------
    settings : Settings
        Injected configuration (credential, models, retry bounds).
    client : GeminiClient or None
        HTTP client (auto-created from settings if not provided).
    router : ModelRouter or None
        Fallback policy (auto-created from settings if not provided).
    """

    def __init__(
        self,
        settings: Settings,
        client: Optional[GeminiClient] = None,
        router: Optional[ModelRouter] = None,
    ) -> None:
        self.settings = settings
        self.client = client or GeminiClient(settings)
        self.router = router or ModelRouter(settings.premium_model, settings.fallback_model)

    async def analyze(
        self,
        media: Union[MediaPart, MediaSource, None],
        code_text: str,
        history: Sequence[ChatEntry] = (),
        model: Optional[str] = None,
    ) -> BugReport:
        """
        Analyze code (and optionally a recording) and return a bug report.

        Parameters
        ----------
        media : MediaPart, path, bytes, file object or None
            The recording. Pass the session's MediaPart to avoid re-reading.
        code_text : str
            The code under review.
        history : sequence of ChatEntry
            Prior turns, oldest first, including the latest user feedback.
        model : str or None
            Model preference; defaults to settings.model.

        Returns
        -------
        BugReport
            Validated report.
        """
        self.settings.require_api_key()

        media_part: Optional[MediaPart]
        if media is None or isinstance(media, MediaPart):
            media_part = media
        else:
            media_part = encode_media(media)

        request = AnalysisRequest(
            code_text=code_text,
            history=tuple(history),
            model=model or self.settings.model,
            media=media_part,
        )
        logger.info(
            "Analyzing with %s (media=%s, history=%d)",
            request.model, request.has_media, len(request.history),
        )

        raw = await self.router.dispatch(
            request.model,
            lambda m: self.client.dispatch(request.for_model(m)),
        )
        report = decode_bug_report(raw)
        logger.info("Report received for %s", report.file_to_edit)
        return report

    async def close(self) -> None:
        await self.client.close()
