"""
Conversation State
Append-only log of ChatEntry turns owned by one debugging session.
Entries are never mutated or removed; reset() on the session discards the
whole log.
"""
import time
from typing import Iterator, Optional, Tuple

from vibefix.core.constants import ROLE_MODEL, ROLE_USER
from vibefix.models.bug_report import BugReport
from vibefix.models.chat_entry import ChatEntry


class Conversation:

    def __init__(self) -> None:
        self._entries: list[ChatEntry] = []

    @property
    def entries(self) -> Tuple[ChatEntry, ...]:
        """Snapshot of the log; later appends do not change it."""
        return tuple(self._entries)

    @property
    def tail(self) -> Optional[ChatEntry]:
        return self._entries[-1] if self._entries else None

    @property
    def latest_report(self) -> Optional[BugReport]:
        for entry in reversed(self._entries):
            if entry.role == ROLE_MODEL and isinstance(entry.content, BugReport):
                return entry.content
        return None

    def _next_timestamp(self) -> float:
        # Wall clock can step backwards; keep timestamps non-decreasing.
        now = time.time()
        if self._entries:
            return max(now, self._entries[-1].timestamp)
        return now

    def append_user(self, text: str) -> ChatEntry:
        entry = ChatEntry(role=ROLE_USER, content=text, timestamp=self._next_timestamp())
        self._entries.append(entry)
        return entry

    def append_model(self, report: BugReport) -> ChatEntry:
        entry = ChatEntry(role=ROLE_MODEL, content=report, timestamp=self._next_timestamp())
        self._entries.append(entry)
        return entry

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ChatEntry]:
        return iter(self.entries)
