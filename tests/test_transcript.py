"""Tests for the JSONL transcript loader and the live transcript store."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from cfind.data.transcript import LiveTranscript, load_transcript, parse_transcript_file
from cfind.models.transcript import (
    MessageRecord,
    OtherPart,
    ReasoningPart,
    TextPart,
    ToolPart,
    parse_part,
)


def test_load_sample_transcript(sample_transcript_path: Path) -> None:
    transcript = load_transcript(sample_transcript_path)
    assert transcript.session_ids() == ["s1", "s2"]
    assert transcript.session_message_ids("s1") == ["m1", "m2", "m3"]
    assert transcript.session_message_ids("missing") is None

    record = transcript.message("m2")
    assert record is not None
    kinds = [type(part) for _, part in record.ordered_parts()]
    assert kinds == [TextPart, ReasoningPart, ToolPart, OtherPart]
    tool = record.parts["p4"]
    assert isinstance(tool, ToolPart)
    assert tool.state.output == "foo = true"


def test_malformed_lines_are_skipped(tmp_path: Path, caplog) -> None:
    path = tmp_path / "session-x.jsonl"
    lines = [
        "{not json",
        "[1, 2]",
        json.dumps({"id": "bad", "parts": [{"id": "t", "kind": "tool", "state": "oops"}]}),
        "",
        json.dumps({"role": "user", "parts": [{"type": "text", "text": "hi"}, "junk"]}),
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="cfind.data.transcript"):
        records = list(parse_transcript_file(path))

    assert len(records) == 1
    record = records[0]
    assert record.id == "message-5"
    assert record.session_id == "session-x"
    assert record.part_ids == ["part-5-0"]
    assert record.parts["part-5-0"] == TextPart(id="part-5-0", text="hi")
    assert "Invalid JSON" in caplog.text
    assert "non-object" in caplog.text
    assert "Invalid message" in caplog.text


def test_parse_part_dispatch() -> None:
    assert isinstance(parse_part({"kind": "reasoning", "text": [{"text": "a"}]}), ReasoningPart)
    other = parse_part({"id": "f", "kind": "file", "url": "x"})
    assert isinstance(other, OtherPart)
    assert other.kind == "file"


def test_message_record_parses_raw_parts() -> None:
    record = MessageRecord.model_validate(
        {"id": "m", "part_ids": ["a"], "parts": {"a": {"id": "a", "kind": "text", "text": "t"}}}
    )
    assert record.ordered_parts() == [("a", TextPart(id="a", text="t"))]


def _transcript() -> LiveTranscript:
    transcript = LiveTranscript()
    transcript.add_session("empty")
    transcript.add_message(
        MessageRecord(
            id="m",
            session_id="s",
            part_ids=["a"],
            parts={"a": TextPart(id="a", text="one")},
        )
    )
    return transcript


def test_live_mutations() -> None:
    transcript = _transcript()
    assert transcript.session_message_ids("empty") == []

    transcript.append_part("m", TextPart(id="b", text="two"))
    transcript.insert_part("m", 0, TextPart(id="c", text="zero"))
    record = transcript.message("m")
    assert record is not None
    assert record.part_ids == ["c", "a", "b"]

    transcript.append_part("m", TextPart(id="a", text="one, edited"))
    record = transcript.message("m")
    assert record is not None
    assert record.part_ids == ["c", "a", "b"]
    assert record.parts["a"] == TextPart(id="a", text="one, edited")

    transcript.remove_part("m", "c")
    record = transcript.message("m")
    assert record is not None
    assert record.part_ids == ["a", "b"]
    assert "c" not in record.parts


def test_replacing_message_keeps_order() -> None:
    transcript = _transcript()
    transcript.add_message(MessageRecord(id="m", session_id="s", role="assistant"))
    transcript.add_message(MessageRecord(id="n", session_id="s"))
    assert transcript.session_message_ids("s") == ["m", "n"]
    record = transcript.message("m")
    assert record is not None and record.role == "assistant"


def test_mutating_unknown_message_raises() -> None:
    transcript = _transcript()
    with pytest.raises(KeyError):
        transcript.append_part("nope", TextPart(id="x"))
