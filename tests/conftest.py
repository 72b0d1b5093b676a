"""Shared fixtures for the photo_mosaic tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from photo_mosaic.color_index import build_index
from photo_mosaic.library import TileLibrary, TileRecord

TILE_COLORS = [
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 0),
    (0, 255, 255),
    (255, 0, 255),
    (0, 0, 0),
    (255, 255, 255),
    (128, 128, 128),
    (200, 100, 50),
    (50, 100, 200),
    (100, 200, 50),
]


def _solid(color: Sequence[int], width: int, height: int) -> Image.Image:
    return Image.new("RGB", (width, height), tuple(color))


@pytest.fixture
def make_library() -> Callable[..., TileLibrary]:
    """Factory for in-memory libraries of solid-colour tiles."""

    def _make(
        colors: Sequence[Sequence[float]],
        tile_size: int = 8,
        directory: Path = Path("memory"),
        kind: str = "kdtree",
    ) -> TileLibrary:
        records = []
        for i, c in enumerate(colors):
            pixels = np.empty((tile_size, tile_size, 3), dtype=np.uint8)
            pixels[...] = np.clip(np.round(c), 0, 255).astype(np.uint8)
            records.append(TileRecord(
                path=directory / f"tile_{i:03d}.png",
                pixels=pixels,
                average_color=np.asarray(c, dtype=np.float64),
            ))
        points = np.asarray(colors, dtype=np.float64).reshape(-1, 3)
        return TileLibrary(
            directory=directory,
            tile_size=tile_size,
            records=tuple(records),
            index=build_index(points, kind),
        )

    return _make


@pytest.fixture
def tile_dir(tmp_path: Path) -> Path:
    """A folder of solid-colour PNG tiles (non-square on purpose)."""
    folder = tmp_path / "tiles"
    folder.mkdir()
    for i, color in enumerate(TILE_COLORS):
        _solid(color, 24, 18).save(folder / f"tile_{i:02d}.png")
    return folder


@pytest.fixture
def target_image(tmp_path: Path) -> Path:
    """A 100x70 RGB gradient with some noise."""
    rng = np.random.default_rng(7)
    h, w = 70, 100
    xs = np.linspace(0, 255, w)
    ys = np.linspace(0, 255, h)
    arr = np.zeros((h, w, 3), dtype=np.float64)
    arr[..., 0] = xs[np.newaxis, :]
    arr[..., 1] = ys[:, np.newaxis]
    arr[..., 2] = 255 - xs[np.newaxis, :]
    arr += rng.normal(0, 10, size=arr.shape)
    img = Image.fromarray(np.clip(arr, 0, 255).astype(np.uint8))
    p = tmp_path / "target.png"
    img.save(p)
    return p
