"""End-to-end mosaic generation: partition, select, composite."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

import numpy as np

from photo_mosaic.compositor import composite
from photo_mosaic.config import EngineConfig, GenerationParams
from photo_mosaic.errors import InvalidParams
from photo_mosaic.library import TileLibrary
from photo_mosaic.partition import GridCell, cell_colors, partition_grid
from photo_mosaic.selector import select_tiles

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class MosaicResult:
    """Everything a generation produced.

    Attributes:
        canvas:    (H, W, 3) uint8 mosaic, same size as the target.
        cells:     Grid cells in row-major order.
        choices:   Tile index chosen for each cell.
        usage:     Final usage count per tile.
        resampled: Positions in ``cells`` whose tile had to be resampled.
    """

    canvas: np.ndarray
    cells: list[GridCell]
    choices: np.ndarray
    usage: np.ndarray
    resampled: list[int]

    @property
    def width(self) -> int:
        return self.canvas.shape[1]

    @property
    def height(self) -> int:
        return self.canvas.shape[0]


def generate(
    target: np.ndarray,
    library: TileLibrary,
    params: GenerationParams,
    config: EngineConfig | None = None,
    cancel: threading.Event | None = None,
) -> MosaicResult:
    """Build a mosaic of *target* from *library*.

    Args:
        target:  (H, W, 3) uint8 image.
        library: Library built at ``params.tile_size``.
        params:  Validated request parameters.
        config:  Engine tunables.
        cancel:  Optional event checked between cells.

    Returns:
        A complete MosaicResult. Nothing partial is returned on error.

    Raises:
        InvalidParams: If the library was built at a different tile size or
            the target is not an RGB image.
        GenerationCancelled: If *cancel* is set before all cells are chosen.
    """
    cfg = config or EngineConfig()
    if library.tile_size != params.tile_size:
        raise InvalidParams(
            f"Library tile size {library.tile_size} does not match requested {params.tile_size}"
        )
    if target.ndim != 3 or target.shape[2] != 3:
        raise InvalidParams(f"Target must be an (H, W, 3) image, got shape {target.shape}")

    h, w = target.shape[:2]
    t0 = time.perf_counter()

    cells = partition_grid(w, h, params.tile_size)
    colors = cell_colors(target, cells, params.sigma_divisor)
    logger.info(
        "Target %dx%d → %d cells of %dpx (sigma divisor %.2f)",
        w, h, len(cells), params.tile_size, params.sigma_divisor,
    )

    choices, usage = select_tiles(
        colors, library, params.penalty_factor, cfg, cancel=cancel,
    )
    canvas, resampled = composite(cells, choices, library, w, h, cfg.resample)

    logger.info(
        "Mosaic ready: %d distinct tiles, %d edge cells resampled  (%.2f s)",
        int(np.count_nonzero(usage)), len(resampled), time.perf_counter() - t0,
    )
    return MosaicResult(
        canvas=canvas,
        cells=cells,
        choices=choices,
        usage=usage,
        resampled=resampled,
    )
