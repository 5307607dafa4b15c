"""Command line interface for tagcoder."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tagcoder.analysis.orchestrator import (
    AnalysisNotice,
    AnalysisOrchestrator,
    AnalysisSnapshot,
    NoticeKind,
    RunStatus,
)
from tagcoder.config import AppConfig, build_provider_config
from tagcoder.errors import ConfigurationError, DocumentParseError
from tagcoder.export import build_export, export_filename, write_export
from tagcoder.ingestion.pdf_loader import load_document
from tagcoder.models import Tag, TagStatus
from tagcoder.tags.collection import analysis_summary, create_tag, load_tags, save_tags


console = Console()
app = typer.Typer(help="tagcoder - find quotes matching your tags with an LLM")

STATUS_STYLES = {
    TagStatus.IDLE: "dim",
    TagStatus.PROCESSING: "cyan",
    TagStatus.COMPLETED: "green",
    TagStatus.NO_RESULTS: "yellow",
    TagStatus.ERROR: "red",
}


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _print_snapshot(snapshot: AnalysisSnapshot) -> None:
    progress = snapshot.progress
    if not progress.is_processing:
        return
    processing = next(
        (tag for tag in snapshot.tags if tag.status is TagStatus.PROCESSING), None
    )
    if processing is not None:
        console.print(
            f"[{progress.current_tag_index}/{progress.total_tags}] "
            f"Analyzing [bold]{escape(processing.name)}[/bold]..."
        )


def _print_notice(notice: AnalysisNotice) -> None:
    style = "red" if notice.kind is NoticeKind.TAG_FAILED else "yellow"
    console.print(f"[{style}]{escape(notice.message)}[/{style}]")


def _load_tags(path: Path) -> Tuple[Tag, ...]:
    try:
        return load_tags(path)
    except (ValueError, KeyError) as exc:
        raise typer.BadParameter(f"Cannot read tag file {path}: {exc}")


@app.command()
def extract(
    pdf: Path = typer.Argument(..., help="PDF file to read.", exists=True, dir_okay=False),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Extract the text of a PDF and show a short summary."""
    _setup_logging(verbose)
    try:
        document = load_document(pdf)
    except DocumentParseError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[bold]{document.name}[/bold]: {document.page_count} page(s), "
        f"{len(document.content)} characters"
    )


@app.command("add-tag")
def add_tag(
    tags_file: Path = typer.Argument(..., help="JSON file holding the tag list."),
    name: str = typer.Option(..., "--name", help="Short tag label"),
    description: str = typer.Option(..., "--description", help="What to search for"),
) -> None:
    """Append a new tag to a tag file."""
    if not name.strip() or not description.strip():
        raise typer.BadParameter("Name and description must not be empty")

    tags = _load_tags(tags_file)
    tag = create_tag(name, description)
    save_tags(tags_file, (*tags, tag))
    console.print(f"Added tag [bold]{escape(tag.name)}[/bold] ({len(tags) + 1} total).")


@app.command()
def analyze(
    pdf: Path = typer.Argument(..., help="PDF document to analyze.", exists=True, dir_okay=False),
    tags_file: Path = typer.Argument(..., help="JSON file holding the tag list."),
    provider: str = typer.Option("openai", envvar="TAGCODER_PROVIDER", help="openai, anthropic or custom"),
    api_key: Optional[str] = typer.Option(None, envvar="TAGCODER_API_KEY", help="Provider API key"),
    model: Optional[str] = typer.Option(None, envvar="TAGCODER_MODEL", help="Model name"),
    endpoint: Optional[str] = typer.Option(None, envvar="TAGCODER_ENDPOINT", help="Custom endpoint URL"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Where to write the JSON export"),
    delay: float = typer.Option(AppConfig().request_delay, help="Seconds to wait between requests"),
    save: bool = typer.Option(True, "--save/--no-save", help="Write tag results back to the tag file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Run every new or modified tag against a document."""
    _setup_logging(verbose)
    try:
        config = build_provider_config(api_key, provider, model, endpoint)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc))

    try:
        document = load_document(pdf)
    except DocumentParseError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    tags = _load_tags(tags_file)
    pending, up_to_date, total = analysis_summary(tags)
    if pending and up_to_date:
        console.print(
            f"{up_to_date} of {total} tag(s) already up to date, analyzing {pending}."
        )

    orchestrator = AnalysisOrchestrator(
        delay=delay, on_update=_print_snapshot, on_notice=_print_notice
    )
    outcome = orchestrator.start_analysis(document, tags, config)
    if outcome.status is RunStatus.PRECONDITION_FAILED:
        raise typer.Exit(code=1)

    if save and outcome.tags != tuple(tags):
        save_tags(tags_file, outcome.tags)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Tag")
    table.add_column("Status")
    table.add_column("Quotes")
    table.add_column("First quote")

    for tag in outcome.tags:
        style = STATUS_STYLES[tag.status]
        first = escape(tag.quotes[0].replace("\n", " ")[:120]) if tag.quotes else ""
        table.add_row(escape(tag.name), f"[{style}]{tag.status.value}[/{style}]", str(len(tag.quotes)), first)
    console.print(table)

    if outcome.status is RunStatus.FINISHED:
        console.print(
            f"Analyzed: {outcome.analyzed}, skipped: {outcome.skipped}, failed: {outcome.failed}"
        )

    if output is not None:
        target = output / export_filename(document.name) if output.is_dir() else output
        write_export(target, build_export(document.name, outcome.tags))
        console.print(f"Results written to [bold]{target}[/bold]")


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the web API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from tagcoder.web.app import app as web_app

    console.print(f"Starting web API on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
