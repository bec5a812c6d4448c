"""
Analysis Request
================
Per-call bundle handed from the analyzer to the prompt assembler and the
HTTP client. Built fresh for every call and never persisted.

Fields:
    code_text   - the code snippet under review, embedded verbatim
    history     - ordered conversation entries replayed into the prompt
    model       - model identifier the call is addressed to
    media       - the encoded recording, or None for code-only review
"""
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from vibefix.llm.encoder import MediaPart
from .chat_entry import ChatEntry


@dataclass(frozen=True)
class AnalysisRequest:
    code_text: str
    history: Tuple[ChatEntry, ...] = ()
    model: str = ""
    media: Optional[MediaPart] = None

    @property
    def has_media(self) -> bool:
        return self.media is not None

    def for_model(self, model: str) -> "AnalysisRequest":
        """Same request addressed to a different model (used by fallback)."""
        return replace(self, model=model)
