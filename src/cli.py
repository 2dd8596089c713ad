"""Command Line Interface for Health-Sieve.

This module provides a CLI using Typer for ingesting Apple Health exports
from the local filesystem, reusing the same streaming session as the API.

Security Impact:
    - The input file is read in place and never deleted or modified
    - Invalid date ranges are rejected before any parsing starts
"""

import asyncio
import json
from pathlib import Path
from typing import Optional, TextIO

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from src.adapters.ingesters.health_document_parser import parse_health_document
from src.adapters.ingesters.ingestion_session import IngestionSession
from src.adapters.storage import CallerOwnedFileStore
from src.dashboard.api.logging_config import setup_logging
from src.domain.health_record import DateWindow
from src.domain.ingestion_events import ErrorEvent
from src.domain.ports import IngestionError
from src.domain.services.record_classifier import describe_type
from src.domain.services.record_summary import (
    DataSummary,
    RecordSummaryAccumulator,
    summarize_records,
    validate_records,
)
from src.infrastructure.settings import settings

# Initialize Typer app and Rich console
app = typer.Typer(
    name="healthsieve",
    help="Health-Sieve: Streaming Apple Health Export Ingestion",
    add_completion=False
)
console = Console()


def _parse_window(start: Optional[str], end: Optional[str]) -> Optional[DateWindow]:
    try:
        return DateWindow.from_bounds(start, end)
    except ValidationError as e:
        reason = "; ".join(error["msg"] for error in e.errors())
        console.print(f"[red]✗[/red] Invalid date range: {reason}")
        raise typer.Exit(code=1)


def print_summary(summary: DataSummary) -> None:
    """Print a per-type summary table."""
    console.print("\n[bold]Ingestion Summary:[/bold]")

    overview = Table(show_header=False, box=None, padding=(0, 2))
    overview.add_row("Total records:", f"[bold]{summary.total_records:,}[/bold]")
    if summary.date_range is not None:
        earliest, latest = summary.date_range
        overview.add_row("Date range:", f"{earliest:%Y-%m-%d} → {latest:%Y-%m-%d}")
    overview.add_row("Sources:", str(len(summary.sources)))
    console.print(overview)

    if summary.data_types:
        types_table = Table(show_header=True, header_style="bold")
        types_table.add_column("Metric", style="cyan")
        types_table.add_column("Type")
        types_table.add_column("Records", justify="right")
        for type_identifier, count in summary.data_types.items():
            types_table.add_row(describe_type(type_identifier), type_identifier, f"{count:,}")
        console.print(types_table)


async def run_ingestion(
    session: IngestionSession,
    accumulator: RecordSummaryAccumulator,
    progress: Progress,
    task_id,
    output: Optional[TextIO] = None
) -> Optional[ErrorEvent]:
    """Consume a session, updating the progress bar and summary.

    Returns:
        Optional[ErrorEvent]: The error event if the session failed
    """
    async for event in session.events():
        if isinstance(event, ErrorEvent):
            return event

        progress.update(
            task_id,
            completed=event.data.bytes_processed,
            total=event.data.total_bytes or None
        )
        records = getattr(event.data, "records", ())
        if records:
            accumulator.add_batch(records)
            if output is not None:
                for record in records:
                    output.write(json.dumps(record.to_wire()) + "\n")
    return None


@app.command()
def ingest(
    input_file: Path = typer.Argument(..., help="Apple Health export.xml", exists=True, dir_okay=False),
    start: Optional[str] = typer.Option(None, "--start", "-s", help="Inclusive start of the date window"),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="Inclusive end of the date window"),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", "-b", min=1, help="Records per batch"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write accepted records as JSON lines"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Stream an Apple Health export and summarize its records.

    Examples:
        healthsieve ingest export.xml
        healthsieve ingest export.xml --start 2024-01-01 --end 2024-03-31
        healthsieve ingest export.xml --output records.jsonl --batch-size 1000
    """
    setup_logging(use_json=settings.json_logs, log_level="DEBUG" if verbose else "WARNING")
    if verbose:
        console.print("[dim]Verbose logging enabled[/dim]")

    window = _parse_window(start, end)

    console.print(f"\n[bold blue]{settings.app_name}[/bold blue]")
    console.print(f"[dim]Input file:[/dim] {input_file}")
    if window is not None:
        console.print(f"[dim]Date window:[/dim] {start or '…'} → {end or '…'}")
    console.print(f"[dim]Batch size:[/dim] {batch_size or settings.ingestion.batch_size}")
    console.print()

    session = IngestionSession(CallerOwnedFileStore(), str(input_file), window=window, batch_size=batch_size)
    accumulator = RecordSummaryAccumulator()
    output_handle = open(output, "w", encoding="utf-8") if output is not None else None

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TimeRemainingColumn(),
            console=console
        ) as progress:
            task_id = progress.add_task("Parsing export...", total=None)
            error = asyncio.run(run_ingestion(session, accumulator, progress, task_id, output_handle))
    except KeyboardInterrupt:
        console.print("\n[yellow]⚠[/yellow] Ingestion interrupted by user")
        raise typer.Exit(code=130)
    finally:
        if output_handle is not None:
            output_handle.close()

    if error is not None:
        console.print(f"\n[red]✗[/red] Ingestion failed: {error.data.error}")
        raise typer.Exit(code=1)

    print_summary(accumulator.summary())
    if output is not None:
        console.print(f"\n[green]✓[/green] Records written to {output}")
    console.print("\n[green]✓[/green] Ingestion completed successfully")


@app.command()
def validate(
    input_file: Path = typer.Argument(..., help="Apple Health export.xml", exists=True, dir_okay=False),
) -> None:
    """Parse a small export in memory and report whether its records are valid.

    Every Record element is checked, not only the recognized metric kinds.
    """
    setup_logging(use_json=settings.json_logs, log_level="WARNING")

    try:
        with console.status("[bold green]Parsing export..."):
            records = parse_health_document(input_file)
    except IngestionError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(code=1)

    report = validate_records(records)
    if report.is_valid:
        console.print(f"[green]✓[/green] {report.record_count:,} records are valid")
        print_summary(summarize_records(records))
        return

    console.print(f"[red]✗[/red] Validation failed for {report.record_count:,} records:")
    for problem in report.errors:
        console.print(f"  • {problem}")
    raise typer.Exit(code=1)


@app.command()
def info() -> None:
    """Display configuration."""
    config = settings.ingestion
    console.print("[bold blue]Configuration[/bold blue]\n")

    info_table = Table(show_header=False, box=None, padding=(0, 2))
    info_table.add_row("Application:", f"{settings.app_name} v{settings.app_version}")
    info_table.add_row("Batch Size:", f"{config.batch_size:,}")
    info_table.add_row("Progress Interval:", f"{config.progress_interval:,} records")
    info_table.add_row(
        "Byte Progress Interval:",
        f"{config.progress_bytes_interval:,} bytes" if config.progress_bytes_interval else "Disabled"
    )
    info_table.add_row("Chunk Size:", f"{config.chunk_size:,} bytes")
    info_table.add_row("Upload Directory:", config.upload_dir)
    info_table.add_row("Max Upload Size:", f"{config.max_upload_size / (1024 ** 3):.1f} GiB")
    info_table.add_row("XML Max Depth:", str(config.xml_max_depth))
    console.print(info_table)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"{settings.app_name} v{settings.app_version}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version information"
    )
) -> None:
    """Health-Sieve: Streaming Apple Health Export Ingestion."""


if __name__ == "__main__":
    app()
