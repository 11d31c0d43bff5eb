"""Main CLI entry point for the sonarcam dataset tools."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import structlog
import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeRemainingColumn
from rich.table import Table

from sonarcam.errors import SonarCamError

load_dotenv()

app = typer.Typer(
    name="sonarcam",
    help="Sonar and stereo camera dataset tools - view sequences and check integrity",
    add_completion=False,
)
console = Console()

DATASET_ENV = "SONARCAM_DATASET_ROOT"


def configure_logging(verbose: bool) -> None:
    """Route structlog to the console at INFO, or DEBUG when verbose."""
    level = logging.DEBUG if verbose else logging.INFO
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


def _fail(error: Exception) -> None:
    console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(1)


def _dataset_option() -> Path:
    return typer.Option(
        ...,
        "--dataset", "-d",
        help="Dataset root containing meta/ and dataset/",
        envvar=DATASET_ENV,
        exists=True,
        dir_okay=True,
        file_okay=False,
    )


@app.command()
def view(
    sequence: int = typer.Argument(12, help="Sequence number to render"),
    dataset: Path = _dataset_option(),
    output_dir: Path = typer.Option(
        Path("."),
        "--output-dir", "-o",
        help="Directory for sequence_<NNNNN>.mp4",
    ),
    show: bool = typer.Option(False, "--show", "-s", help="Show frames while rendering"),
    step: float = typer.Option(0.05, "--step", help="Timeline step in seconds"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Render a sequence as an aligned 2x2 video.

    Top row: camera 2 and camera 1. Bottom row: full and close range sonar.
    """
    from sonarcam.viewer import SequenceViewer, ViewerConfig

    configure_logging(verbose)
    try:
        config = ViewerConfig(
            sequence_id=sequence,
            dataset_root=dataset,
            show_preview=show,
            step=step,
            output_dir=output_dir,
        )
        viewer = SequenceViewer(config)
    except (ValidationError, SonarCamError) as e:
        _fail(e)

    console.print(Panel.fit(
        f"[bold blue]Sequence {sequence}[/bold blue]\n"
        f"Dataset: {dataset}",
        border_style="blue",
    ))

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TimeRemainingColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Rendering...", total=None)

        def update(done: int, total: int) -> None:
            progress.update(task, completed=done, total=total)

        try:
            path = viewer.render(on_progress=update)
        except SonarCamError as e:
            _fail(e)

    console.print(f"[green]Video saved to {path}[/green]")


@app.command()
def check(
    dataset: Path = _dataset_option(),
    thresholds: Optional[Path] = typer.Option(
        None,
        "--thresholds", "-t",
        help="JSON file with per-stream black/bright/noise thresholds",
        exists=True,
        dir_okay=False,
    ),
    results_dir: Optional[Path] = typer.Option(
        None,
        "--results-dir", "-r",
        help="Where logs, state and anomaly images go (default: <dataset>/analysis)",
    ),
    no_images: bool = typer.Option(False, "--no-images", help="Do not write anomaly images"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """
    Check dataset integrity.

    Verifies listed files, scans every frame for black, bright and noisy
    frames, and reports unreferenced files. Interrupted scans resume.
    """
    from sonarcam.models.quality import DEFAULT_THRESHOLDS, load_thresholds
    from sonarcam.scan.integrity import IntegrityScanner, ScanConfig

    configure_logging(verbose)
    try:
        config = ScanConfig(
            dataset_root=dataset,
            results_dir=results_dir,
            thresholds=load_thresholds(thresholds) if thresholds else dict(DEFAULT_THRESHOLDS),
            dump_images=not no_images,
        )
    except (ValidationError, ValueError) as e:
        _fail(e)

    scanner = IntegrityScanner(config)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Scanning sequences...", total=None)

        def update(estimate) -> None:
            progress.update(task, completed=estimate.completed, total=estimate.total)
            progress.console.print(estimate.message())

        try:
            report = scanner.run(on_progress=update)
        except SonarCamError as e:
            _fail(e)

    _display_report(report, config.error_log_path)


def _display_report(report, log_path: Path) -> None:
    """Summarize a scan report."""
    console.print("\n[bold]Integrity Report[/bold]\n")

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    table.add_row("Sequences scanned", str(len(report.scanned_sequences)))
    table.add_row("Missing or empty files", str(len(report.file_issues)))
    table.add_row("Undecodable videos", str(len(report.stream_issues)))
    table.add_row("Rejected metadata rows", str(len(report.rejected_rows)))
    table.add_row("Anomalous frames", str(len(report.anomalies)))
    table.add_row("Unreferenced files", str(len(report.unreferenced)))
    console.print(table)

    for item in report.unreferenced:
        console.print(f"[yellow]{item.describe()}[/yellow]", soft_wrap=True)

    console.print(f"\nWarning log: {log_path}")


@app.command()
def consistency(
    dataset: Path = _dataset_option(),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """List files under the sequence directories that the metadata table does not reference."""
    from sonarcam.ingestion.metadata import METADATA_RELATIVE_PATH, MetadataTable, resolve
    from sonarcam.scan.consistency import find_unreferenced_files

    configure_logging(verbose)
    try:
        table = MetadataTable.load(resolve(dataset, str(METADATA_RELATIVE_PATH)))
    except SonarCamError as e:
        _fail(e)

    unreferenced = find_unreferenced_files(dataset, table)
    if not unreferenced:
        console.print("[green]All files are referenced by the metadata table[/green]")
        return
    for item in unreferenced:
        console.print(item.describe(), soft_wrap=True)
    raise typer.Exit(1)


@app.command()
def version():
    """Show version information."""
    from sonarcam import __version__

    console.print(f"sonarcam v{__version__}")


if __name__ == "__main__":
    app()
