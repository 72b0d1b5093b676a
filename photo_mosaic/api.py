"""Command surface for a host application.

The parameter names accepted here are the wire contract with the host and
must not change: ``target_image_path``, ``tile_directory``, ``tile_size``,
``penalty_factor``, ``sigma_divisor``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from photo_mosaic.cache import LibraryCache
from photo_mosaic.config import GenerationParams
from photo_mosaic.engine import generate
from photo_mosaic.errors import InvalidParams, TileDirectoryError
from photo_mosaic.estimator import estimate_settings
from photo_mosaic.image_io import encode_png, load_image, to_data_url
from photo_mosaic.library import scan_tile_paths

logger = logging.getLogger(__name__)

REQUIRED_KEYS = (
    "target_image_path",
    "tile_directory",
    "tile_size",
    "penalty_factor",
    "sigma_divisor",
)

# Process-wide library slot shared by every request.
_cache = LibraryCache()


def parse_params(params: Mapping[str, Any]) -> tuple[str, str, GenerationParams]:
    """Validate a ``generate_mosaic`` payload.

    Returns:
        ``(target_image_path, tile_directory, GenerationParams)``.

    Raises:
        InvalidParams: On a missing key or an out-of-range value.
    """
    missing = [k for k in REQUIRED_KEYS if k not in params]
    if missing:
        raise InvalidParams(f"Missing parameter(s): {', '.join(missing)}")

    target = params["target_image_path"]
    tile_dir = params["tile_directory"]
    for name, value in (("target_image_path", target), ("tile_directory", tile_dir)):
        if not isinstance(value, str) or not value:
            raise InvalidParams(f"{name} must be a non-empty string")

    gen = GenerationParams(
        tile_size=params["tile_size"],
        penalty_factor=params["penalty_factor"],
        sigma_divisor=params["sigma_divisor"],
    )
    return target, tile_dir, gen


def generate_mosaic(
    params: Mapping[str, Any],
    cache: LibraryCache | None = None,
    cancel: threading.Event | None = None,
) -> str:
    """Generate a mosaic and return it as a PNG data URL.

    Args:
        params: Wire payload, see :data:`REQUIRED_KEYS`.
        cache:  Library cache to use; the process-wide one if None.
        cancel: Optional event checked between cells.

    Returns:
        ``"data:image/png;base64,..."``.

    Raises:
        MosaicError: Any failure, with a message fit for the end user.
    """
    target_path, tile_dir, gen = parse_params(params)
    cache = cache or _cache

    target = load_image(target_path)
    library = cache.get(tile_dir, gen.tile_size)

    result = generate(target, library, gen, cache.config, cancel=cancel)
    return to_data_url(encode_png(result.canvas))


def get_adaptive_settings(
    target_image_path: str,
    tile_directory: str,
    cache: LibraryCache | None = None,
) -> dict[str, Any]:
    """Suggest ``tile_size`` and ``penalty_factor`` for a target and tile folder.

    If the cached library was built from *tile_directory* its tile count is
    used; otherwise supported files are counted, and a missing folder counts
    as zero tiles. The cache is never modified.

    Returns:
        ``{"tile_count", "tile_size", "penalty_factor", "image_width", "image_height"}``.
    """
    cache = cache or _cache
    target = load_image(target_image_path)
    h, w = target.shape[:2]

    folder, _ = LibraryCache.make_key(tile_directory, 0)
    cached = cache.peek()
    if cached is not None and cached.directory == folder:
        tile_count = len(cached)
    else:
        try:
            tile_count = len(scan_tile_paths(Path(folder), cache.config.SUPPORTED_EXTENSIONS))
        except TileDirectoryError as e:
            logger.warning("%s; suggesting settings for an empty library", e)
            tile_count = 0

    settings = estimate_settings(tile_count, w, h)
    logger.info(
        "Suggested tile size %d, penalty %.0f for %d tiles",
        settings.tile_size, settings.penalty_factor, tile_count,
    )
    return settings.to_dict()
