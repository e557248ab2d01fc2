"""Tests for the reveal channel and its request de-duplication."""

from __future__ import annotations

import logging

from cfind.render.reveal import ExpansionAction, ExpansionRequest, RevealChannel


def test_dedup_keys() -> None:
    tool = ExpansionRequest(
        instance_id="i", action=ExpansionAction.TOOL_CALL, message_id="m", part_id="p"
    )
    assert tool.dedup_key == "expand-tool-call:i:m:p"

    reasoning = ExpansionRequest(
        instance_id="i", action=ExpansionAction.REASONING, message_id="m", part_index=2
    )
    assert reasoning.dedup_key == "expand-reasoning:i:m:2"

    session = ExpansionRequest(
        instance_id="i", action=ExpansionAction.SESSION_PARENT, session_id="s"
    )
    assert session.dedup_key == "expand-session-parent:i:s"

    folder = ExpansionRequest(
        instance_id="i", action=ExpansionAction.FOLDER_NODE, element_id="node-7"
    )
    assert folder.dedup_key == "expand-folder-node:i:node-7"


def test_each_request_is_emitted_once_until_cleared() -> None:
    channel = RevealChannel()
    received: list[ExpansionRequest] = []
    channel.subscribe(received.append)

    assert channel.request_tool_call("i", "m", "p")
    assert not channel.request_tool_call("i", "m", "p")
    assert channel.request_tool_call("other", "m", "p")
    assert channel.request_reasoning("i", "m", 0)
    assert channel.request_reasoning("i", "m", 1)
    assert len(received) == 4

    channel.clear()
    assert channel.request_tool_call("i", "m", "p")
    assert len(received) == 5


def test_all_request_helpers() -> None:
    channel = RevealChannel()
    received: list[ExpansionRequest] = []
    channel.subscribe(received.append)

    channel.request_diagnostics("i", "m", "p")
    channel.request_folder_node("i", "node")
    channel.request_session_parent("i", "s")
    channel.request_sidebar_accordion("i", "recent")
    assert [r.action for r in received] == [
        ExpansionAction.DIAGNOSTICS,
        ExpansionAction.FOLDER_NODE,
        ExpansionAction.SESSION_PARENT,
        ExpansionAction.SIDEBAR_ACCORDION,
    ]
    assert received[3].section_id == "recent"
    assert channel.was_issued(received[0])


def test_unsubscribe_and_failing_listener(caplog) -> None:
    channel = RevealChannel()
    received: list[ExpansionRequest] = []

    def boom(_request: ExpansionRequest) -> None:
        raise RuntimeError("broken")

    channel.subscribe(boom)
    unsubscribe = channel.subscribe(received.append)
    with caplog.at_level(logging.ERROR, logger="cfind.render.reveal"):
        assert channel.request_folder_node("i", "a")
    assert len(received) == 1
    assert "Reveal listener failed" in caplog.text

    unsubscribe()
    channel.request_folder_node("i", "b")
    assert len(received) == 1
