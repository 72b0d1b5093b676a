"""Canvas assembly with edge-only resampling."""

from __future__ import annotations

import logging
import time

import numpy as np

from photo_mosaic.image_io import resize_array
from photo_mosaic.library import TileLibrary
from photo_mosaic.partition import GridCell

logger = logging.getLogger(__name__)


def composite(
    cells: list[GridCell],
    choices: np.ndarray,
    library: TileLibrary,
    width: int,
    height: int,
    resample: str = "lanczos",
) -> tuple[np.ndarray, list[int]]:
    """Paint the chosen tile of every cell onto a new canvas.

    Interior cells receive a straight copy of the tile's base buffer. Only
    edge cells, which are smaller than ``tile_size``, are resampled to fit.

    Args:
        cells:    Grid cells in row-major order.
        choices:  Tile index per cell (same order as *cells*).
        library:  Library the indices refer to.
        width:    Canvas width (target width).
        height:   Canvas height (target height).
        resample: Pillow filter name for edge cells.

    Returns:
        ``(canvas, resampled)``: the (height, width, 3) uint8 canvas and the
        positions in *cells* that needed resampling.
    """
    if len(cells) != len(choices):
        raise ValueError(f"{len(cells)} cells but {len(choices)} choices")

    t0 = time.perf_counter()
    canvas = np.zeros((height, width, 3), dtype=np.uint8)
    tile_size = library.tile_size
    resampled: list[int] = []

    for pos, (cell, idx) in enumerate(zip(cells, choices)):
        tile = library.records[idx].pixels
        if cell.is_edge(tile_size):
            tile = resize_array(tile, cell.width, cell.height, resample)
            resampled.append(pos)
        cell.view(canvas)[...] = tile

    logger.debug(
        "Composited %d cells, %d resampled  (%.2f s)",
        len(cells), len(resampled), time.perf_counter() - t0,
    )
    return canvas, resampled
