"""Protocol definitions for transcript access."""

from __future__ import annotations

from typing import Protocol

from cfind.models.transcript import MessageRecord


class TranscriptReader(Protocol):
    """Read-only, synchronous view of the live transcript."""

    def session_message_ids(self, session_id: str) -> list[str] | None: ...

    def message(self, message_id: str) -> MessageRecord | None: ...
