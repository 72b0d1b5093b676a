"""Centralised configuration via frozen dataclasses."""

from __future__ import annotations

import math
from dataclasses import dataclass

from photo_mosaic.errors import InvalidParams


@dataclass(frozen=True)
class GenerationParams:
    """Per-request parameters for a mosaic run.

    Attributes:
        tile_size:      Side length of a square tile in pixels.
        penalty_factor: Weight of the anti-repetition penalty (0 disables it).
        sigma_divisor:  Centre-weighting strength; sigma = max(W, H) / divisor.
                        0 means uniform weighting.

    Raises:
        InvalidParams: On construction, if any value is out of range.
    """

    tile_size: int = 32
    penalty_factor: float = 50.0
    sigma_divisor: float = 0.0

    def __post_init__(self) -> None:
        if isinstance(self.tile_size, bool) or not isinstance(self.tile_size, int):
            raise InvalidParams(
                f"tile_size must be an integer, got {type(self.tile_size).__name__}"
            )
        if self.tile_size <= 0:
            raise InvalidParams(f"tile_size must be positive, got {self.tile_size}")
        _check_non_negative("penalty_factor", self.penalty_factor)
        _check_non_negative("sigma_divisor", self.sigma_divisor)


def _check_non_negative(name: str, value: float) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidParams(f"{name} must be numeric, got {type(value).__name__}")
    if not math.isfinite(value):
        raise InvalidParams(f"{name} must be finite, got {value}")
    if value < 0:
        raise InvalidParams(f"{name} must be non-negative, got {value}")


@dataclass(frozen=True)
class EngineConfig:
    """Engine tunables shared by every request.

    Attributes:
        penalty_multiplier: Scales ``usage * penalty_factor`` into squared
                            RGB distance units.
        k_min:              Lower bound on candidates fetched per cell.
        k_max:              Upper bound on candidates fetched per cell.
        k_divisor:          Library size is divided by this to get k.
        index:              Colour index implementation ("kdtree" | "brute").
        resample:           Pillow filter name used for every resize.
        max_workers:        Thread pool size for tile loading (None = default).
    """

    penalty_multiplier: float = 50.0

    # Adaptive k
    k_min: int = 10
    k_max: int = 100
    k_divisor: int = 10

    index: str = "kdtree"
    resample: str = "lanczos"
    max_workers: int | None = None

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif"}
    )
