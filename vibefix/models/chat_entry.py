"""
Chat Entry Model
================
One turn in a debugging conversation.

Fields:
    role        - "user" (feedback or the synthetic opening prompt) or "model"
    content     - free text for user turns, a BugReport for model turns
    timestamp   - creation time in seconds, advisory (ordering/display only)

Entries are frozen: the conversation only ever appends them.
"""
import time
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .bug_report import BugReport


class ChatEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    content: Union[BugReport, str]
    timestamp: float = Field(default_factory=time.time)

    def render(self) -> str:
        """Text used when this entry is replayed into a prompt."""
        if isinstance(self.content, BugReport):
            return self.content.to_json()
        return self.content
