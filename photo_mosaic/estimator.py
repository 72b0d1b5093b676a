"""Advisory tile-size and penalty suggestions.

Nothing here builds a library or touches a cache; the output is a plain
record the caller may choose to apply.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from photo_mosaic.library import TileLibrary

TILES_PER_SHORT_SIDE = 100
MIN_SUGGESTED_TILE = 8
MAX_SUGGESTED_TILE = 128
FALLBACK_PENALTY = 50.0


@dataclass(frozen=True)
class AdaptiveSettings:
    tile_count: int
    tile_size: int
    penalty_factor: float
    image_width: int
    image_height: int

    def to_dict(self) -> dict:
        return asdict(self)


def suggest_tile_size(image_width: int, image_height: int) -> int:
    """Tile size giving roughly 100 tiles along the image's short side."""
    suggested = round(min(image_width, image_height) / TILES_PER_SHORT_SIDE)
    return int(min(max(suggested, MIN_SUGGESTED_TILE), MAX_SUGGESTED_TILE))


def suggest_penalty(tile_count: int) -> float:
    """Penalty factor that grows with library size.

    Small libraries must reuse tiles, so the penalty stays low; large ones
    can afford variety. Piecewise linear: 10-30 below 50 tiles, 30-70 up to
    200, 70-100 up to 1000 and flat beyond.
    """
    if tile_count <= 0:
        return FALLBACK_PENALTY
    if tile_count < 50:
        penalty = 10.0 + tile_count / 50.0 * 20.0
    elif tile_count < 200:
        penalty = 30.0 + (tile_count - 50) / 150.0 * 40.0
    else:
        penalty = 70.0 + (min(tile_count, 1000) - 200) / 800.0 * 30.0
    return float(round(penalty))


def estimate_settings(tile_count: int, image_width: int, image_height: int) -> AdaptiveSettings:
    return AdaptiveSettings(
        tile_count=tile_count,
        tile_size=suggest_tile_size(image_width, image_height),
        penalty_factor=suggest_penalty(tile_count),
        image_width=image_width,
        image_height=image_height,
    )


def estimate_for_library(library: TileLibrary, image_width: int, image_height: int) -> AdaptiveSettings:
    """Suggestions based on an already built library's cardinality."""
    return estimate_settings(len(library), image_width, image_height)
