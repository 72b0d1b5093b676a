"""Representative-colour computation and distance helpers."""

from __future__ import annotations

import numpy as np


def mean_color(pixels: np.ndarray) -> np.ndarray:
    """Plain per-channel mean of an (H, W, 3) block → (3,) float64."""
    return pixels.reshape(-1, 3).astype(np.float64).mean(axis=0)


def center_distance_sq(
    image_width: int,
    image_height: int,
    x: int,
    y: int,
    width: int,
    height: int,
) -> np.ndarray:
    """Squared distance of each pixel in a block from the image centre.

    Pixel centres are used, so a block covering the whole image is
    symmetric about the centre.

    Returns:
        (height, width) float64 array.
    """
    cx = image_width / 2.0
    cy = image_height / 2.0
    xs = np.arange(x, x + width, dtype=np.float64) + 0.5 - cx
    ys = np.arange(y, y + height, dtype=np.float64) + 0.5 - cy
    return ys[:, np.newaxis] ** 2 + xs[np.newaxis, :] ** 2


def gaussian_weighted_color(
    pixels: np.ndarray,
    dist_sq: np.ndarray,
    sigma: float,
) -> np.ndarray:
    """Weighted mean of a block with Gaussian weights ``exp(-d² / 2σ²)``.

    Weights are shifted by the block's smallest distance before
    exponentiation. This cancels out in the normalised mean but keeps
    blocks far from the centre from underflowing to all-zero weights.
    When ``2σ²`` itself underflows to zero, only the pixels nearest the
    centre are averaged.

    Args:
        pixels:  (H, W, 3) block.
        dist_sq: (H, W) squared distance of each pixel from the image centre.
        sigma:   Gaussian standard deviation in pixels (> 0).

    Returns:
        (3,) float64 colour.
    """
    rel = dist_sq - dist_sq.min()
    denom = 2.0 * sigma * sigma
    if denom > 0.0:
        weights = np.exp(-rel / denom)
    else:
        # sigma so small that 2σ² underflows: the limit keeps only the nearest pixels
        weights = (rel == 0).astype(np.float64)
    flat = pixels.reshape(-1, 3).astype(np.float64)
    w = weights.reshape(-1)
    return (flat * w[:, np.newaxis]).sum(axis=0) / w.sum()


def squared_distances(points: np.ndarray, color: np.ndarray) -> np.ndarray:
    """Squared Euclidean distance from each row of *points* to *color*."""
    diff = points - color[np.newaxis, :]
    return np.sum(diff ** 2, axis=1)
