"""Tile library: scanning, parallel loading, and colour indexing."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path

import numpy as np

from photo_mosaic.color_index import ColorIndex, build_index
from photo_mosaic.color_utils import mean_color
from photo_mosaic.config import EngineConfig
from photo_mosaic.errors import DecodeFailure, EmptyLibrary, TileDirectoryError
from photo_mosaic.image_io import load_square

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class TileRecord:
    """One usable source image.

    Attributes:
        path:          File the tile was decoded from.
        pixels:        (tile_size, tile_size, 3) uint8, read-only.
        average_color: (3,) float64 mean RGB in [0, 255].
    """

    path: Path
    pixels: np.ndarray
    average_color: np.ndarray


@dataclass(frozen=True, eq=False)
class TileLibrary:
    """Immutable snapshot of a tile directory at one tile size.

    ``index`` entry *i* always refers to ``records[i]``.
    """

    directory: Path
    tile_size: int
    records: tuple[TileRecord, ...]
    index: ColorIndex = field(repr=False)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def key(self) -> tuple[Path, int]:
        return self.directory, self.tile_size


def scan_tile_paths(directory: str | Path, extensions: frozenset[str]) -> list[Path]:
    """Recursively list files under *directory* with a supported suffix.

    Paths are returned sorted so load order, and therefore index order,
    is reproducible.

    Raises:
        TileDirectoryError: If *directory* is missing or not a directory.
    """
    folder = Path(directory)
    if not folder.is_dir():
        raise TileDirectoryError(f"Tile directory not found: {folder}")
    return sorted(
        f for f in folder.rglob("*")
        if f.is_file() and f.suffix.lower() in extensions
    )


def _load_record(path: Path, tile_size: int, resample: str) -> TileRecord | None:
    try:
        pixels = load_square(path, tile_size, resample)
    except DecodeFailure as e:
        logger.warning("Skipping tile: %s", e)
        return None
    pixels.setflags(write=False)
    color = mean_color(pixels)
    color.setflags(write=False)
    return TileRecord(path=path, pixels=pixels, average_color=color)


def load_library(
    directory: str | Path,
    tile_size: int,
    config: EngineConfig | None = None,
) -> TileLibrary:
    """Decode every tile in *directory* and build its colour index.

    Decoding and resizing run on a thread pool; results are merged back in
    path order before the index is built.

    Args:
        directory: Folder scanned recursively for tiles.
        tile_size: Side length every tile is fitted to.
        config:    Engine tunables (extensions, filter, workers, index kind).

    Returns:
        A new, immutable TileLibrary.

    Raises:
        TileDirectoryError: If *directory* does not exist.
        EmptyLibrary: If no file could be decoded.
    """
    cfg = config or EngineConfig()
    folder = Path(directory)

    paths = scan_tile_paths(folder, cfg.SUPPORTED_EXTENSIONS)
    logger.info("Loading %d candidate tiles from %s at %dpx …", len(paths), folder, tile_size)
    t0 = time.perf_counter()

    loader = partial(_load_record, tile_size=tile_size, resample=cfg.resample)
    with ThreadPoolExecutor(max_workers=cfg.max_workers) as pool:
        results = list(pool.map(loader, paths))

    records = tuple(r for r in results if r is not None)
    if not records:
        raise EmptyLibrary(f"No valid images found in {folder}")

    skipped = len(paths) - len(records)
    logger.info(
        "Loaded %d tiles (%d skipped)  (%.1f s)",
        len(records), skipped, time.perf_counter() - t0,
    )

    colors = np.stack([r.average_color for r in records])
    index = build_index(colors, cfg.index)
    return TileLibrary(directory=folder, tile_size=tile_size, records=records, index=index)
