"""
CLI Interface
=============
Command-line interface for the question matcher.

Usage:
    python -m quizmatch match <text_file> --corpus <corpus.json> [options]
    python -m quizmatch extract <text_file>
    python -m quizmatch validate <corpus.json>
    python -m quizmatch search <corpus.json> <keyword>
    python -m quizmatch serve [options]

Pass "-" as <text_file> to read the OCR text from stdin.
"""

from __future__ import annotations

import json
import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .corpus import (
    CorpusError,
    QuestionBank,
    load_corpus,
    load_correction_table,
    parse_corpus,
    read_json,
)
from .engine import MatcherConfig, MatcherEngine
from .state_machine import StemExtractor
from .validator import CorpusValidator

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="quizmatch")
def cli():
    """Question matcher: find the corpus question behind OCR text."""
    pass


@cli.command()
@click.argument("text_file", type=click.File("r", encoding="utf-8"))
@click.option(
    "--corpus", "-c",
    "corpus_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Question corpus JSON file",
)
@click.option(
    "--threshold", "-t",
    default=0.25,
    type=click.FloatRange(0.0, 1.0),
    help="Minimum similarity for a candidate",
)
@click.option(
    "--workers", "-j",
    default=1,
    type=click.IntRange(min=1),
    help="Number of scoring threads (1 = sequential)",
)
@click.option(
    "--corrections",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Alternate OCR correction table (JSON)",
)
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level",
)
@click.option(
    "--log-file",
    default=None,
    help="Path to log file",
)
@click.option(
    "--json-output",
    is_flag=True,
    default=False,
    help="Output only JSON result to stdout (for programmatic use)",
)
def match(
    text_file,
    corpus_path: str,
    threshold: float,
    workers: int,
    corrections: str,
    log_level: str,
    log_file: str,
    json_output: bool,
):
    """Match OCR text against the question corpus."""

    if json_output:
        log_level = "ERROR"

    try:
        config = MatcherConfig(
            threshold=threshold,
            workers=workers,
            log_level=log_level,
            log_file=log_file,
        )
        if corrections:
            config.corrections = load_correction_table(corrections)

        engine = MatcherEngine(config)
        corpus = load_corpus(corpus_path)
        report = engine.match(text_file.read(), corpus)

    except (FileNotFoundError, CorpusError) as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    if json_output:
        print(json.dumps(
            report.model_dump(mode="json"),
            indent=2,
            ensure_ascii=False,
        ))
        return

    _display_report(report)


@cli.command()
@click.argument("text_file", type=click.File("r", encoding="utf-8"))
def extract(text_file):
    """Show the stem extracted from OCR text."""
    extraction = StemExtractor().extract(text_file.read())

    table = Table(title="Stem Extraction", border_style="cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")
    table.add_row("Stem", extraction.stem or "[dim](empty)[/]")
    table.add_row("Fragments", str(len(extraction.fragments)))
    table.add_row(
        "Fallback",
        f"level {extraction.fallback_level}"
        if extraction.used_fallback else "none",
    )

    console.print()
    console.print(table)
    console.print()


@cli.command()
@click.argument("corpus_path", type=click.Path(exists=True, dir_okay=False))
def validate(corpus_path: str):
    """Validate a question corpus JSON file."""
    try:
        data = read_json(corpus_path)
    except CorpusError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    if not isinstance(data, list):
        console.print("[red]Error:[/] corpus must be a JSON array")
        sys.exit(1)

    records = parse_corpus(data, drop_duplicates=False)
    report = CorpusValidator().validate(records)

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Corpus Report[/]\n"
            f"[dim]File: {corpus_path}[/]",
            border_style="cyan",
        )
    )
    _display_corpus_report(report.model_dump(), skipped=len(data) - len(records))


@cli.command()
@click.argument("corpus_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("keyword")
@click.option("--limit", "-n", default=20, type=int, help="Maximum rows")
def search(corpus_path: str, keyword: str, limit: int):
    """Search the corpus by plain substring."""
    try:
        bank = QuestionBank.from_file(corpus_path)
    except CorpusError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(1)

    hits = bank.search(keyword)
    if not hits:
        console.print(f"[yellow]No questions contain: {keyword}[/]")
        return

    table = Table(
        title=f"{len(hits)} question(s) containing '{keyword}'",
        border_style="cyan",
    )
    table.add_column("ID", justify="right", style="bold")
    table.add_column("Question")
    table.add_column("Answer", justify="center")
    for record in hits[:limit]:
        table.add_row(str(record.id), record.stem, record.answer)

    console.print()
    console.print(table)
    console.print()


@cli.command()
@click.option("--host", default="0.0.0.0", help="Server host")
@click.option("--port", default=5000, type=int, help="Server port")
@click.option(
    "--corpus", "-c",
    "corpus_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Question corpus JSON file (defaults to $QUIZMATCH_CORPUS)",
)
@click.option("--debug", is_flag=True, default=False, help="Debug mode")
def serve(host: str, port: int, corpus_path: str, debug: bool):
    """Start the HTTP matching service."""
    from .server import run_server

    console.print()
    console.print(
        Panel.fit(
            f"[bold cyan]Question Matcher Service[/]\n"
            f"[dim]Starting on {host}:{port}[/]",
            border_style="cyan",
        )
    )
    console.print()

    run_server(host=host, port=port, corpus_path=corpus_path, debug=debug)


# ─── Display Helpers ──────────────────────────────────────────────────────────


def _display_report(report):
    """Display match results in a formatted table."""
    console.print()

    if report.recognized_text:
        console.print(
            Panel(
                report.recognized_text,
                title="Recognized Text",
                border_style="dim",
            )
        )
    console.print(f"[bold]Extracted stem:[/] {report.extracted_stem or '(empty)'}")
    console.print()

    if not report.candidates:
        messages = {
            "empty_corpus": "Question corpus is empty",
            "empty_extraction": "No question text could be extracted",
        }
        message = messages.get(report.outcome.value, "No matching question found")
        console.print(f"[yellow]{message}[/]")
        console.print()
        return

    table = Table(title="Matching Questions", border_style="cyan")
    table.add_column("#", justify="right")
    table.add_column("ID", justify="right", style="bold")
    table.add_column("Similarity", justify="right")
    table.add_column("Question")
    table.add_column("Answer", justify="center")

    for position, candidate in enumerate(report.candidates, start=1):
        color = "green" if candidate.similarity > 0.4 else "yellow"
        table.add_row(
            str(position),
            str(candidate.id),
            f"[{color}]{candidate.similarity:.0%}[/]",
            candidate.stem,
            candidate.answer,
        )

    console.print(table)
    console.print(
        f"[dim]Corpus: {report.corpus_size} | "
        f"Threshold: {report.threshold} | "
        f"Elapsed: {report.elapsed_ms:.1f}ms[/]"
    )
    console.print()


def _display_corpus_report(report: dict, skipped: int = 0):
    """Display corpus report as a rich table."""
    table = Table(title="Corpus Report", border_style="green")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Status", justify="center")

    def status_icon(count, threshold=0):
        if count <= threshold:
            return "[green]✓[/]"
        return "[red]✗[/]"

    total = report.get("total_records", 0)
    table.add_row(
        "Total Records",
        str(total),
        "[green]✓[/]" if total > 0 else "[red]✗[/]",
    )
    table.add_row("Malformed (skipped)", str(skipped), status_icon(skipped))

    for key, label in [
        ("duplicate_ids", "Duplicate Ids"),
        ("missing_ids", "Missing Ids"),
        ("empty_stems", "Empty Stems"),
    ]:
        count = len(report.get(key, []))
        table.add_row(label, str(count), status_icon(count))

    for key, label in [
        ("without_options", "Without Options"),
        ("without_answer", "Without Answer"),
    ]:
        count = len(report.get(key, []))
        table.add_row(
            label,
            str(count),
            "[green]✓[/]" if count == 0 else "[yellow]⚠[/]",
        )

    console.print(table)
    console.print()


# ─── Entry point (for python -m quizmatch.cli) ────────────────────────────────


if __name__ == "__main__":
    cli()
