"""
Debug Session
=============
Client-side state for one analyze → refine → refine ... conversation.

State:
    media           - the recording, encoded once in start() and reused as-is
    code_text       - the code under review
    conversation    - append-only ChatEntry log
    latest_report   - the most recent successful report
    error           - message of the last failed call, None after a success
    is_analyzing    - True while a call is in flight

Turn Rules:
    - start() opens with a synthetic user entry ("Analyze this bug." with a
      recording, "Review this code." without); it is logged but never
      replayed, so the first call goes out with an empty history
    - refine() appends the literal feedback before calling the model
    - a model entry is appended only on success; on failure the user entry
      stays the tail and retry() can re-run that turn
    - only one call may be in flight; a second raises SessionBusyError

The session does no rendering; callers read its attributes to draw the UI.
"""
import logging
from typing import Optional, Tuple, Union

from vibefix.core.constants import (
    INITIAL_CODE_PROMPT,
    INITIAL_VIDEO_PROMPT,
    REFINE_ERROR_PREFIX,
    ROLE_USER,
)
from vibefix.core.errors import SessionBusyError, VibeFixError
from vibefix.llm.encoder import MediaPart, MediaSource, encode_media, ensure_video
from vibefix.models.bug_report import BugReport
from vibefix.models.chat_entry import ChatEntry
from vibefix.services.analyzer import BugAnalyzer
from vibefix.state.conversation import Conversation

logger = logging.getLogger(__name__)


class DebugSession:
    """
    Conversation state machine wrapped around a BugAnalyzer.

    Parameters
    ----------
    analyzer : BugAnalyzer
        Performs the model calls.
    model : str or None
        Model preference for every call in this session.
    """

    def __init__(self, analyzer: BugAnalyzer, model: Optional[str] = None) -> None:
        self.analyzer = analyzer
        self.model = model
        self.media: Optional[MediaPart] = None
        self.code_text: str = ""
        self.conversation = Conversation()
        self.latest_report: Optional[BugReport] = None
        self.error: Optional[str] = None
        self.is_analyzing: bool = False

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------
    async def start(
        self,
        code_text: str,
        media: Union[MediaPart, MediaSource, None] = None,
    ) -> BugReport:
        """
        Begin a new analysis, discarding any previous conversation.

        Raises
        ------
        ValueError
            If code_text is blank.
        SessionBusyError
            If a call is already in flight.
        VibeFixError
            Any failure from encoding or the analyzer.
        """
        self._ensure_idle()
        if not code_text or not code_text.strip():
            raise ValueError("Please provide a code snippet to analyze.")

        self.reset()
        self.code_text = code_text
        try:
            if media is not None:
                part = media if isinstance(media, MediaPart) else encode_media(media)
                self.media = ensure_video(part)
        except VibeFixError as e:
            self.error = str(e)
            raise

        self.conversation.append_user(
            INITIAL_VIDEO_PROMPT if self.media is not None else INITIAL_CODE_PROMPT
        )
        return await self._run_turn(error_prefix="")

    async def refine(self, feedback: str) -> BugReport:
        """
        Ask for an updated report that takes the feedback into account.

        Raises
        ------
        ValueError
            If feedback is blank or there is no report to refine yet.
        SessionBusyError
            If a call is already in flight.
        """
        self._ensure_idle()
        if not feedback or not feedback.strip():
            raise ValueError("Feedback must not be empty.")
        if self.latest_report is None:
            raise ValueError("There is no report to refine yet; call start() first.")

        self.conversation.append_user(feedback)
        return await self._run_turn(error_prefix=REFINE_ERROR_PREFIX)

    async def retry(self) -> BugReport:
        """Re-run the last turn after it failed (the tail is a user entry)."""
        self._ensure_idle()
        tail = self.conversation.tail
        if tail is None or tail.role != ROLE_USER:
            raise ValueError("There is no failed turn to retry.")
        prefix = REFINE_ERROR_PREFIX if self.latest_report is not None else ""
        return await self._run_turn(error_prefix=prefix)

    def reset(self) -> None:
        """Discard the recording, code, conversation and results."""
        self._ensure_idle()
        self.media = None
        self.code_text = ""
        self.conversation = Conversation()
        self.latest_report = None
        self.error = None

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _ensure_idle(self) -> None:
        if self.is_analyzing:
            raise SessionBusyError("An analysis is already in progress.")

    def _replay_history(self) -> Tuple[ChatEntry, ...]:
        # the opening entry stands in for the recording and code, which are
        # sent separately on every call
        return self.conversation.entries[1:]

    async def _run_turn(self, error_prefix: str) -> BugReport:
        self.is_analyzing = True
        self.error = None
        try:
            report = await self.analyzer.analyze(
                self.media,
                self.code_text,
                self._replay_history(),
                self.model,
            )
        except VibeFixError as e:
            self.error = f"{error_prefix}{e}"
            logger.error("Turn %d failed: %s", len(self.conversation), e)
            raise
        finally:
            self.is_analyzing = False

        self.conversation.append_model(report)
        self.latest_report = report
        return report
