"""
Photo Mosaic Generator
======================

Rebuild a target photograph out of a folder of small source images.
Each grid cell of the target gets the tile whose average colour is
closest, re-ranked by a penalty that discourages reusing the same tile.

- **KD-tree colour index** (scipy) with adaptive candidate count
- **Centre weighting** of cell colours (optional Gaussian)
- **Edge-only resampling** when compositing
"""

__version__ = "1.0.0"

from photo_mosaic.api import generate_mosaic, get_adaptive_settings
from photo_mosaic.cache import LibraryCache
from photo_mosaic.color_index import (
    BruteForceColorIndex,
    KDTreeColorIndex,
    adaptive_k,
    build_index,
)
from photo_mosaic.config import EngineConfig, GenerationParams
from photo_mosaic.engine import MosaicResult, generate
from photo_mosaic.errors import (
    DecodeFailure,
    EmptyLibrary,
    GenerationCancelled,
    IndexQueryFailure,
    InvalidParams,
    MosaicError,
    TileDirectoryError,
)
from photo_mosaic.estimator import AdaptiveSettings, estimate_for_library, estimate_settings
from photo_mosaic.library import TileLibrary, TileRecord, load_library
from photo_mosaic.partition import GridCell, cell_colors, partition_grid

__all__ = [
    "AdaptiveSettings",
    "BruteForceColorIndex",
    "DecodeFailure",
    "EmptyLibrary",
    "EngineConfig",
    "GenerationCancelled",
    "GenerationParams",
    "GridCell",
    "IndexQueryFailure",
    "InvalidParams",
    "KDTreeColorIndex",
    "LibraryCache",
    "MosaicError",
    "MosaicResult",
    "TileDirectoryError",
    "TileLibrary",
    "TileRecord",
    "adaptive_k",
    "build_index",
    "cell_colors",
    "estimate_for_library",
    "estimate_settings",
    "generate",
    "generate_mosaic",
    "get_adaptive_settings",
    "load_library",
    "partition_grid",
]
