"""Target partitioning into grid cells and per-cell representative colours."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from photo_mosaic.color_utils import center_distance_sq, gaussian_weighted_color, mean_color


@dataclass(frozen=True)
class GridCell:
    """One rectangle of the target grid, in pixels."""

    x: int
    y: int
    width: int
    height: int

    def is_edge(self, tile_size: int) -> bool:
        """True when the cell was shrunk to fit the image boundary."""
        return self.width != tile_size or self.height != tile_size

    def view(self, image: np.ndarray) -> np.ndarray:
        """The cell's pixels as a view into *image*."""
        return image[self.y:self.y + self.height, self.x:self.x + self.width]


def partition_grid(image_width: int, image_height: int, tile_size: int) -> list[GridCell]:
    """Cover an image with cells left-to-right, top-to-bottom.

    The last column and row are shrunk to ``min(tile_size, remaining)``.
    """
    return [
        GridCell(x, y, min(tile_size, image_width - x), min(tile_size, image_height - y))
        for y in range(0, image_height, tile_size)
        for x in range(0, image_width, tile_size)
    ]


def cell_colors(
    image: np.ndarray,
    cells: list[GridCell],
    sigma_divisor: float = 0.0,
) -> np.ndarray:
    """Representative colour of every cell.

    With ``sigma_divisor == 0`` this is the plain mean of each cell. Otherwise
    each cell's pixels are weighted by a Gaussian of their distance from the
    image centre, ``sigma = max(W, H) / sigma_divisor``, pulling the cell's
    colour towards the pixels nearest the focal point.

    Args:
        image:         (H, W, 3) uint8 target.
        cells:         Output of :func:`partition_grid` for this image.
        sigma_divisor: Centre-weighting strength (0 = uniform).

    Returns:
        (len(cells), 3) float64 array in cell order.
    """
    h, w = image.shape[:2]
    colors = np.empty((len(cells), 3), dtype=np.float64)

    if sigma_divisor <= 0:
        for i, cell in enumerate(cells):
            colors[i] = mean_color(cell.view(image))
        return colors

    sigma = max(w, h) / sigma_divisor
    for i, cell in enumerate(cells):
        dist_sq = center_distance_sq(w, h, cell.x, cell.y, cell.width, cell.height)
        colors[i] = gaussian_weighted_color(cell.view(image), dist_sq, sigma)
    return colors
