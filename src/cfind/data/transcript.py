"""In-memory live transcript and JSONL transcript loader."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cfind.models.transcript import ContentUnit, MessageRecord, parse_part

logger = logging.getLogger(__name__)


class LiveTranscript:
    """Mutable transcript store fed by the streaming transport.

    Reads always reflect the transcript at call time; parts may be appended,
    replaced or removed while a search is open.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, list[str]] = {}
        self._messages: dict[str, MessageRecord] = {}

    # ── Reader ──

    def session_message_ids(self, session_id: str) -> list[str] | None:
        ids = self._sessions.get(session_id)
        return list(ids) if ids is not None else None

    def message(self, message_id: str) -> MessageRecord | None:
        return self._messages.get(message_id)

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    # ── Mutation ──

    def add_session(self, session_id: str) -> None:
        self._sessions.setdefault(session_id, [])

    def add_message(self, message: MessageRecord) -> None:
        """Insert or replace a message, appending it to its session order."""
        order = self._sessions.setdefault(message.session_id, [])
        if message.id not in order:
            order.append(message.id)
        self._messages[message.id] = message

    def append_part(self, message_id: str, part: ContentUnit) -> None:
        record = self._require(message_id)
        part_ids = [*record.part_ids]
        if part.id not in part_ids:
            part_ids.append(part.id)
        parts = {**record.parts, part.id: part}
        self._messages[message_id] = record.model_copy(
            update={"part_ids": part_ids, "parts": parts}
        )

    def insert_part(self, message_id: str, index: int, part: ContentUnit) -> None:
        record = self._require(message_id)
        part_ids = [pid for pid in record.part_ids if pid != part.id]
        part_ids.insert(index, part.id)
        parts = {**record.parts, part.id: part}
        self._messages[message_id] = record.model_copy(
            update={"part_ids": part_ids, "parts": parts}
        )

    def remove_part(self, message_id: str, part_id: str) -> None:
        record = self._require(message_id)
        part_ids = [pid for pid in record.part_ids if pid != part_id]
        parts = {pid: part for pid, part in record.parts.items() if pid != part_id}
        self._messages[message_id] = record.model_copy(
            update={"part_ids": part_ids, "parts": parts}
        )

    def _require(self, message_id: str) -> MessageRecord:
        record = self._messages.get(message_id)
        if record is None:
            msg = f"Unknown message: {message_id}"
            raise KeyError(msg)
        return record


def load_transcript(path: Path) -> LiveTranscript:
    """Load a JSONL transcript export into a :class:`LiveTranscript`."""
    transcript = LiveTranscript()
    for message in parse_transcript_file(path):
        transcript.add_message(message)
    return transcript


def parse_transcript_file(path: Path) -> Generator[MessageRecord]:
    """Stream-parse a JSONL file with one message object per line.

    Each line looks like ``{"id", "session_id", "role", "parts": [...]}``
    where every part carries an ``id`` and a ``kind``. Malformed lines are
    skipped with a warning.
    """
    fallback_session = path.stem
    with open(path, encoding="utf-8") as file:
        for line_num, line in enumerate(file, 1):
            line = line.strip()
            if not line:
                continue
            try:
                raw = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON at %s:%d", path, line_num)
                continue
            if not isinstance(raw, dict):
                logger.warning("Skipping non-object line at %s:%d", path, line_num)
                continue
            try:
                yield _message_from_raw(raw, fallback_session, line_num)
            except ValidationError as exc:
                logger.warning("Invalid message at %s:%d: %s", path, line_num, exc)


def _message_from_raw(raw: dict[str, Any], fallback_session: str, line_num: int) -> MessageRecord:
    raw_parts = raw.get("parts")
    part_ids: list[str] = []
    parts: dict[str, ContentUnit] = {}
    if isinstance(raw_parts, list):
        for position, raw_part in enumerate(raw_parts):
            if not isinstance(raw_part, dict):
                continue
            part = parse_part(raw_part)
            if not part.id:
                part = part.model_copy(update={"id": f"part-{line_num}-{position}"})
            part_ids.append(part.id)
            parts[part.id] = part
    return MessageRecord(
        id=str(raw.get("id") or f"message-{line_num}"),
        session_id=str(raw.get("session_id") or fallback_session),
        role=str(raw.get("role") or ""),
        part_ids=part_ids,
        parts=parts,
    )
