"""Single-photo worker run in its own process.

Usage: python -m batch_watermark.worker INPUT WATERMARK OUTPUT

Exits 0 when OUTPUT was written, non-zero otherwise.
"""

from pathlib import Path

import typer
from rich.console import Console

from .core import DEFAULT_MARGIN, DEFAULT_OPACITY, DEFAULT_SCALE
from .core.errors import WatermarkError
from .processors.image import process_image

app = typer.Typer(name="bwm-worker", add_completion=False)
err_console = Console(stderr=True)


@app.command()
def run(
    input_path: Path = typer.Argument(..., help="Photo to watermark"),
    watermark_path: Path = typer.Argument(..., help="Watermark image"),
    output_path: Path = typer.Argument(..., help="Destination PNG"),
    opacity: float = typer.Option(DEFAULT_OPACITY, "--opacity", help="Watermark opacity (0..1)"),
    margin: int = typer.Option(DEFAULT_MARGIN, "--margin", help="Margin from bottom-right edges"),
    scale: float = typer.Option(DEFAULT_SCALE, "--scale", help="Watermark width relative to photo width"),
):
    """Watermark one photo and write the result as PNG."""
    try:
        process_image(input_path, watermark_path, output_path, opacity=opacity, margin=margin, scale=scale)
    except (WatermarkError, OSError) as e:
        # One unwrapped line; the parent keeps the last line as the failure reason
        err_console.print(f"{type(e).__name__}: {e}", markup=False, highlight=False, soft_wrap=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
