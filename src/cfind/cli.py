"""Typer CLI for cfind: find and render commands."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from result import Err

from cfind.config import Config
from cfind.data.transcript import LiveTranscript, load_transcript
from cfind.search.engine import SearchEngine

app = typer.Typer(
    name="cfind",
    help="Incremental find over chat transcripts exported as JSONL.",
    no_args_is_help=True,
)

_INSTANCE_ID = "cli"

TranscriptArg = Annotated[
    Path,
    typer.Argument(exists=True, dir_okay=False, readable=True, help="JSONL transcript file"),
]
QueryArg = Annotated[str, typer.Argument(help="Text to search for")]
SessionOpt = Annotated[
    str | None, typer.Option("--session", help="Session to search (default: the first one)")
]
CaseOpt = Annotated[bool, typer.Option("--case-sensitive", help="Match case exactly")]
WordOpt = Annotated[bool, typer.Option("--whole-word", help="Match whole words only")]
ToolsOpt = Annotated[bool, typer.Option("--include-tools", help="Search tool outputs")]
ReasoningOpt = Annotated[bool, typer.Option("--include-reasoning", help="Search reasoning")]


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging")] = False,
) -> None:
    """Search a transcript the way the in-app find bar does."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def find(
    transcript_path: TranscriptArg,
    query: QueryArg,
    session: SessionOpt = None,
    case_sensitive: CaseOpt = False,
    whole_word: WordOpt = False,
    include_tools: ToolsOpt = False,
    include_reasoning: ReasoningOpt = False,
) -> None:
    """Print every match of QUERY in one session of the transcript."""
    transcript = load_transcript(transcript_path)
    engine = _run_search(
        transcript,
        query,
        session,
        case_sensitive=case_sensitive,
        whole_word=whole_word,
        include_tool_outputs=include_tools,
        include_reasoning=include_reasoning,
    )
    for match in engine.matches:
        typer.echo(
            f"{match.message_id}#{match.part_index} "
            f"[{match.start_index}:{match.end_index}] {match.text}"
        )
    typer.echo(f"Matches: {engine.counter_label()}")


@app.command()
def render(
    transcript_path: TranscriptArg,
    query: QueryArg,
    session: SessionOpt = None,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write HTML here instead of stdout")
    ] = None,
    case_sensitive: CaseOpt = False,
    whole_word: WordOpt = False,
    include_tools: ToolsOpt = False,
    include_reasoning: ReasoningOpt = False,
) -> None:
    """Render the session as HTML with every match highlighted."""
    from cfind.render.document import TranscriptDocument
    from cfind.render.expansion import ExpansionCoordinator
    from cfind.render.highlighter import HighlightRenderer
    from cfind.render.reveal import RevealChannel

    transcript = load_transcript(transcript_path)
    session_id = _resolve_session(transcript, session)
    config = Config()
    engine = SearchEngine(transcript, config=config)
    reveal = RevealChannel()
    document = TranscriptDocument(
        transcript, session_id, instance_id=_INSTANCE_ID, reveal=reveal
    )
    renderer = HighlightRenderer(engine, document, config=config)
    renderer.attach()
    document.rebuild()

    _run_search(
        transcript,
        query,
        session_id,
        engine=engine,
        case_sensitive=case_sensitive,
        whole_word=whole_word,
        include_tool_outputs=include_tools,
        include_reasoning=include_reasoning,
    )
    current = engine.current_match()
    if current is not None:
        coordinator = ExpansionCoordinator(engine, renderer, reveal, config=config)
        coordinator.expand_sections_for_match(_INSTANCE_ID, current)

    html = document.to_html(title=f"{session_id}: {query}")
    renderer.detach()
    document.close()
    if output is None:
        typer.echo(html)
        return
    output.write_text(html, encoding="utf-8")
    typer.echo(f"Wrote {engine.match_count} highlighted matches to {output}")


def _resolve_session(transcript: LiveTranscript, session: str | None) -> str:
    session_ids = transcript.session_ids()
    if session is None:
        if not session_ids:
            typer.echo("Transcript contains no messages.", err=True)
            raise typer.Exit(code=1)
        return session_ids[0]
    if session not in session_ids:
        typer.echo(f"Unknown session: {session}", err=True)
        raise typer.Exit(code=1)
    return session


def _run_search(
    transcript: LiveTranscript,
    query: str,
    session: str | None,
    *,
    engine: SearchEngine | None = None,
    **options: bool,
) -> SearchEngine:
    session_id = _resolve_session(transcript, session)
    engine = engine or SearchEngine(transcript)
    engine.open(instance_id=_INSTANCE_ID, session_id=session_id)
    engine.update_options(**options)
    engine.set_query_input(query)
    result = engine.execute_search_on_enter()
    if isinstance(result, Err):
        typer.echo(f"Error: {result.err_value}", err=True)
        raise typer.Exit(code=2)
    return engine
