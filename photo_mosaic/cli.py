"""Rich command-line interface powered by Typer."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from photo_mosaic.api import get_adaptive_settings
from photo_mosaic.cache import LibraryCache
from photo_mosaic.config import EngineConfig, GenerationParams
from photo_mosaic.engine import generate as run_generation
from photo_mosaic.errors import MosaicError
from photo_mosaic.image_io import load_image, save_png

app = typer.Typer(
    name="photo-mosaic",
    help="Build photomosaics from a folder of tile images.",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, markup=True)],
    )


def _fail(error: MosaicError) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {error}")
    raise typer.Exit(1)


# Defaults come from the config dataclasses - single source of truth
_PARAMS = GenerationParams()
_ENGINE = EngineConfig()


# -- generate command --------------------------------------------------

@app.command()
def generate(
    target: Path = typer.Argument(..., help="Path to the target image"),
    tiles: Path = typer.Argument(..., help="Folder of tile images (scanned recursively)"),
    output: Path = typer.Option(Path("output/mosaic.png"), "--output", "-o"),
    tile_size: int = typer.Option(_PARAMS.tile_size, "--tile-size", "-t", help="Tile side in pixels"),
    penalty: float = typer.Option(
        _PARAMS.penalty_factor, "--penalty", "-p", help="Anti-repetition penalty (0 = off)",
    ),
    sigma: float = typer.Option(
        _PARAMS.sigma_divisor, "--sigma", "-s", help="Centre-weighting divisor (0 = uniform)",
    ),
    index: str = typer.Option(_ENGINE.index, "--index", help="'kdtree' or 'brute'"),
    resample: str = typer.Option(_ENGINE.resample, "--resample", help="Pillow resize filter"),
    workers: int | None = typer.Option(None, "--workers", "-w", help="Tile loading threads"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Generate a mosaic of TARGET from the images in TILES."""
    _setup_logging(verbose)
    t_total = time.perf_counter()

    try:
        params = GenerationParams(tile_size=tile_size, penalty_factor=penalty, sigma_divisor=sigma)
        cfg = EngineConfig(index=index, resample=resample, max_workers=workers)
        image = load_image(target)
        library = LibraryCache(cfg).get(tiles, params.tile_size)
    except MosaicError as e:
        _fail(e)

    h, w = image.shape[:2]
    console.print(Panel.fit(
        f"[bold]PHOTO MOSAIC[/bold]\n"
        f"Target: {target.name} ({w}x{h})  |  Tiles: {len(library)}\n"
        f"Tile size: {params.tile_size}px  |  Penalty: {params.penalty_factor}"
        f"  |  Sigma divisor: {params.sigma_divisor}",
        border_style="cyan",
    ))

    try:
        result = run_generation(image, library, params, cfg)
    except MosaicError as e:
        _fail(e)

    output.parent.mkdir(parents=True, exist_ok=True)
    save_png(result.canvas, output)

    elapsed = time.perf_counter() - t_total
    console.print(
        f"[green]✓[/green] Saved to {output}  "
        f"[dim]{len(result.cells)} cells  "
        f"distinct tiles={int((result.usage > 0).sum())}"
        f"  time={elapsed:.1f}s[/dim]"
    )


# -- suggest command ---------------------------------------------------

@app.command()
def suggest(
    target: Path = typer.Argument(..., help="Path to the target image"),
    tiles: Path = typer.Argument(..., help="Folder of tile images"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Print suggested tile size and penalty for TARGET and TILES."""
    _setup_logging(verbose)

    try:
        settings = get_adaptive_settings(str(target), str(tiles))
    except MosaicError as e:
        _fail(e)

    console.print(Panel.fit(
        f"[bold]SUGGESTED SETTINGS[/bold]\n"
        f"Tiles found: {settings['tile_count']}  |  "
        f"Image: {settings['image_width']}x{settings['image_height']}\n"
        f"--tile-size {settings['tile_size']}  --penalty {settings['penalty_factor']:g}",
        border_style="green",
    ))


if __name__ == "__main__":
    app()
