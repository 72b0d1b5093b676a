"""Tile selection: nearest-colour candidates re-ranked by an overuse penalty."""

from __future__ import annotations

import logging
import threading

import numpy as np

from photo_mosaic.color_index import adaptive_k
from photo_mosaic.config import EngineConfig
from photo_mosaic.errors import GenerationCancelled
from photo_mosaic.library import TileLibrary

logger = logging.getLogger(__name__)


def new_usage(library: TileLibrary) -> np.ndarray:
    """Zeroed usage counters, one per tile."""
    return np.zeros(len(library), dtype=np.int64)


def choose_tile(
    candidates: np.ndarray,
    dist_sq: np.ndarray,
    usage: np.ndarray,
    penalty_factor: float,
    penalty_multiplier: float,
) -> int:
    """Pick the candidate with the lowest ``distance + usage * penalty``.

    Ties go to the lowest tile index.
    """
    scores = dist_sq + usage[candidates] * (penalty_factor * penalty_multiplier)
    best = np.lexsort((candidates, scores))[0]
    return int(candidates[best])


def select_tile(
    color: np.ndarray,
    library: TileLibrary,
    usage: np.ndarray,
    penalty_factor: float,
    config: EngineConfig,
) -> tuple[int, np.ndarray]:
    """Choose a tile for one cell colour without touching *usage*.

    Returns:
        ``(tile_index, candidates)``; the chosen index is always one of the
        candidates returned by the library's colour index.
    """
    k = adaptive_k(len(library), config.k_min, config.k_max, config.k_divisor)
    candidates, dist_sq = library.index.query(color, k)
    idx = choose_tile(candidates, dist_sq, usage, penalty_factor, config.penalty_multiplier)
    return idx, candidates


def select_tiles(
    colors: np.ndarray,
    library: TileLibrary,
    penalty_factor: float,
    config: EngineConfig | None = None,
    usage: np.ndarray | None = None,
    cancel: threading.Event | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Fold :func:`select_tile` over cell colours in order.

    Each choice increments its counter before the next cell is considered,
    so earlier picks push later cells towards other tiles.

    Args:
        colors:         (M, 3) representative colours in row-major cell order.
        library:        Tile library to choose from.
        penalty_factor: Weight of the overuse penalty.
        config:         Engine tunables (adaptive k bounds, multiplier).
        usage:          Starting counters; a fresh zeroed array if None.
                        The array passed in is not modified.
        cancel:         Checked before each cell; set it to stop early.

    Returns:
        ``(choices, usage)``: (M,) chosen tile indices and the final counters.

    Raises:
        GenerationCancelled: If *cancel* is set mid-run.
    """
    cfg = config or EngineConfig()
    counts = new_usage(library) if usage is None else usage.copy()
    choices = np.empty(len(colors), dtype=np.intp)

    for i, color in enumerate(colors):
        if cancel is not None and cancel.is_set():
            raise GenerationCancelled(f"Generation cancelled after {i} of {len(colors)} cells")
        idx, _ = select_tile(color, library, counts, penalty_factor, cfg)
        counts[idx] += 1
        choices[i] = idx

    logger.debug(
        "Selected %d cells using %d distinct tiles",
        len(choices), int(np.count_nonzero(counts)),
    )
    return choices, counts
