import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from .archive import safe_name
from .config import Settings
from .core import ARCHIVE_NAME, DEFAULT_MARGIN, DEFAULT_OPACITY, DEFAULT_SCALE, ENTRY_NAME_TEMPLATE, MANIFEST_NAME
from .core.errors import NoValidOutputs, WatermarkError
from .core.models import FailurePolicy
from .pipeline import watermark_batch
from .processors.batch import EXECUTORS
from .processors.image import SUPPORTED_IMAGE_FORMATS, is_supported_image

app = typer.Typer(
    name="bwm",
    help="Watermark batches of photos and bundle the results into a ZIP archive.",
    add_completion=True,
)
console = Console()


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def get_files_to_process(paths: list[Path], recursive: bool = False) -> list[Path]:
    """Expand files and directories into a list of supported photos."""
    files = []
    for path in paths:
        if path.is_file():
            files.append(path)
            continue

        pattern = "**/*" if recursive else "*"
        files.extend(sorted(f for f in path.glob(pattern) if f.is_file() and is_supported_image(f)))

    return files


@app.command()
def process(
    watermark: Path = typer.Argument(
        ...,
        help="Watermark image (PNG with transparency works best)",
        exists=True,
        dir_okay=False,
    ),
    paths: list[Path] = typer.Argument(
        ...,
        help="Photos or directories of photos to watermark",
        exists=True,
    ),
    output: Path = typer.Option(
        Path(ARCHIVE_NAME),
        "--output",
        "-o",
        help="Path of the ZIP archive to write",
    ),
    opacity: Optional[float] = typer.Option(None, "--opacity", help=f"Watermark opacity 0..1 (default {DEFAULT_OPACITY})"),
    margin: Optional[int] = typer.Option(None, "--margin", help=f"Margin from bottom-right edges (default {DEFAULT_MARGIN})"),
    scale: Optional[float] = typer.Option(None, "--scale", help=f"Watermark width / photo width (default {DEFAULT_SCALE})"),
    executor: Optional[str] = typer.Option(None, "--executor", "-e", help=f"One of: {', '.join(EXECUTORS)}"),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", help="Worker count (defaults to CPU count)"),
    policy: Optional[FailurePolicy] = typer.Option(None, "--policy", help="How failed photos are reported"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Abort the batch after this many seconds"),
    recursive: bool = typer.Option(
        False,
        "--recursive",
        "-r",
        help="Search directories recursively",
    ),
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        "-y",
        help="Overwrite an existing archive without prompting",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """
    Watermark photos and write them to a single ZIP archive.

    Each photo gets the watermark scaled to its own width and placed in the
    bottom-right corner. The archive also holds a manifest with per-photo
    processing times.

    Examples:
        bwm process logo.png photo1.jpg photo2.jpg
        bwm process logo.png ./photos/ -r -o out.zip --opacity 0.3
    """
    setup_logging(verbose)

    files = get_files_to_process(paths, recursive)
    if not files:
        console.print(f"[red]No supported photos found in {escape(', '.join(map(str, paths)))}[/red]")
        console.print(f"Supported formats: {', '.join(sorted(SUPPORTED_IMAGE_FORMATS))}")
        raise typer.Exit(1)

    if output.exists() and not overwrite:
        if not typer.confirm(f"Overwrite {output}?"):
            raise typer.Exit(1)

    try:
        settings = Settings.from_env(
            opacity=opacity,
            margin=margin,
            scale=scale,
            executor=executor,
            max_workers=workers,
            policy=policy,
            timeout=timeout,
        )
    except WatermarkError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"Watermarking {len(files)} photo(s) with {watermark.name} ({settings.executor} executor)",
            title="Batch Watermark",
            border_style="blue",
        )
    )

    photos = [(f.name, f.read_bytes()) for f in files]

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        main_task = progress.add_task("Processing photos...", total=len(photos))

        def on_progress(done: int, total: int):
            progress.update(main_task, completed=done, description=f"Processed {done}/{total}")

        try:
            outcome = watermark_batch(photos, watermark.read_bytes(), settings, on_progress)
        except NoValidOutputs as e:
            progress.stop()
            console.print(f"[red]{e}[/red]")
            for failure in e.failures:
                console.print(f"  [red]{escape(safe_name(failure.identifier))}:[/red] {escape(failure.reason)}")
            raise typer.Exit(1)
        except WatermarkError as e:
            progress.stop()
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise typer.Exit(1)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(outcome.archive)

    table = Table(title="Results")
    table.add_column("Entry")
    table.add_column("Source")
    table.add_column("Seconds", justify="right")
    for item in outcome.result.processed:
        table.add_row(item.entry_name, safe_name(item.identifier), f"{item.duration_seconds:.4f}")
    for failure in outcome.result.failed:
        table.add_row("[red]failed[/red]", safe_name(failure.identifier), f"[dim]{escape(failure.reason)}[/dim]")
    console.print(table)
    console.print(f"Photo processing time: {outcome.result.total_duration:.5f}s")

    console.print(f"[green]Archive saved:[/green] {output}")
    console.print(f"[bold green]Done in {outcome.elapsed_seconds:.5f}s[/bold green]")


@app.command()
def info():
    """Display defaults and supported formats."""
    console.print(
        Panel(
            "[bold]Batch Watermark[/bold]\n\n"
            "Composites one watermark image onto every photo of a batch and\n"
            "returns a ZIP archive with the results and a timing manifest.\n\n"
            f"[cyan]Default opacity:[/cyan] {DEFAULT_OPACITY}\n"
            f"[cyan]Default margin:[/cyan] {DEFAULT_MARGIN}px\n"
            f"[cyan]Default scale:[/cyan] {DEFAULT_SCALE:.0%} of photo width\n"
            f"[cyan]Executors:[/cyan] {', '.join(EXECUTORS)}\n"
            f"[cyan]Supported Formats:[/cyan] {', '.join(sorted(SUPPORTED_IMAGE_FORMATS))}\n"
            f"[cyan]Archive entries:[/cyan] {ENTRY_NAME_TEMPLATE.format(index='<n>')} + {MANIFEST_NAME}\n\n"
            "[dim]Blend: out = base * (1 - a) + watermark * a, a = alpha / 255 * opacity[/dim]",
            title="About",
            border_style="blue",
        )
    )


if __name__ == "__main__":
    app()
