"""CLI and entrypoint tests."""

from __future__ import annotations

import runpy
from pathlib import Path

from typer.testing import CliRunner

from cfind.cli import app
from cfind.search.matcher import INVALID_QUERY_MESSAGE

runner = CliRunner()


def test_find_prints_matches_and_counter(sample_transcript_path: Path) -> None:
    result = runner.invoke(app, ["find", str(sample_transcript_path), "foo"])
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines == [
        "m1#0 [13:16] foo",
        "m2#0 [6:9] foo",
        "m2#0 [29:32] foo",
        "m3#0 [0:3] FOO",
        "Matches: 1/4",
    ]


def test_find_with_options(sample_transcript_path: Path) -> None:
    result = runner.invoke(
        app,
        [
            "find",
            str(sample_transcript_path),
            "foo",
            "--case-sensitive",
            "--include-tools",
            "--include-reasoning",
        ],
    )
    assert result.exit_code == 0
    assert "m2#1 [12:15] foo" in result.output
    assert "m2#2 [0:3] foo" in result.output
    assert "FOO" not in result.output
    assert "Matches: 1/5" in result.output


def test_find_in_other_session(sample_transcript_path: Path) -> None:
    result = runner.invoke(
        app, ["find", str(sample_transcript_path), "foo", "--session", "s2", "--whole-word"]
    )
    assert result.exit_code == 0
    assert result.output.splitlines() == ["m4#0 [0:3] foo", "Matches: 1/1"]


def test_find_invalid_query_exits_2(sample_transcript_path: Path) -> None:
    result = runner.invoke(app, ["find", str(sample_transcript_path), "foo=bar"])
    assert result.exit_code == 2
    assert INVALID_QUERY_MESSAGE in result.output


def test_find_unknown_session_exits_1(sample_transcript_path: Path) -> None:
    result = runner.invoke(app, ["find", str(sample_transcript_path), "foo", "--session", "zz"])
    assert result.exit_code == 1
    assert "Unknown session: zz" in result.output


def test_find_without_messages(tmp_path: Path) -> None:
    empty = tmp_path / "empty.jsonl"
    empty.write_text("", encoding="utf-8")
    result = runner.invoke(app, ["find", str(empty), "foo"])
    assert result.exit_code == 1


def test_render_writes_highlighted_html(sample_transcript_path: Path, tmp_path: Path) -> None:
    output = tmp_path / "out.html"
    result = runner.invoke(
        app,
        [
            "--verbose",
            "render",
            str(sample_transcript_path),
            "foo",
            "--include-reasoning",
            "--output",
            str(output),
        ],
    )
    assert result.exit_code == 0
    assert "Wrote 5 highlighted matches" in result.output
    html = output.read_text(encoding="utf-8")
    assert html.startswith("<!DOCTYPE html>")
    assert html.count('data-search-match="true"') == 5
    assert html.count("search-match--current") == 2  # stylesheet rule + current marker


def test_render_to_stdout(sample_transcript_path: Path) -> None:
    result = runner.invoke(app, ["render", str(sample_transcript_path), "nothing here"])
    assert result.exit_code == 0
    assert "<title>s1: nothing here</title>" in result.output
    assert 'data-search-match="true"' not in result.output


def test_python_module_entrypoint_invokes_cli_app(monkeypatch) -> None:
    called = {"count": 0}

    def fake_app() -> None:
        called["count"] += 1

    monkeypatch.setattr("cfind.cli.app", fake_app)
    runpy.run_module("cfind.__main__", run_name="__main__")
    assert called["count"] == 1
