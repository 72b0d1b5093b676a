"""End-to-end tests: engine, library cache, and host command surface."""

from __future__ import annotations

import base64
import io
import threading
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from photo_mosaic.api import generate_mosaic, get_adaptive_settings, parse_params
from photo_mosaic.cache import LibraryCache
from photo_mosaic.config import EngineConfig, GenerationParams
from photo_mosaic.engine import generate
from photo_mosaic.errors import (
    DecodeFailure,
    EmptyLibrary,
    GenerationCancelled,
    InvalidParams,
    TileDirectoryError,
)
from photo_mosaic.image_io import PNG_DATA_URL_PREFIX, load_image
from photo_mosaic.library import load_library


def _decode(url: str) -> Image.Image:
    assert url.startswith(PNG_DATA_URL_PREFIX)
    return Image.open(io.BytesIO(base64.b64decode(url[len(PNG_DATA_URL_PREFIX):])))


def _payload(target: Path, tiles: Path, **overrides) -> dict:
    params = {
        "target_image_path": str(target),
        "tile_directory": str(tiles),
        "tile_size": 16,
        "penalty_factor": 20.0,
        "sigma_divisor": 0.0,
    }
    params.update(overrides)
    return params


# -- Engine ------------------------------------------------------------

class TestEngine:
    @pytest.mark.parametrize("tile_size", [1, 7, 16, 32, 200])
    @pytest.mark.parametrize("sigma", [0.0, 4.0])
    def test_canvas_matches_target(self, make_library, tile_size: int, sigma: float) -> None:
        rng = np.random.default_rng(11)
        target = rng.integers(0, 256, (45, 61, 3), dtype=np.uint8)
        lib = make_library(rng.uniform(0, 255, (30, 3)), tile_size=tile_size)
        result = generate(target, lib, GenerationParams(tile_size, 10.0, sigma))
        assert result.canvas.shape == target.shape
        assert (result.width, result.height) == (61, 45)
        assert result.usage.sum() == len(result.cells)

    def test_edge_only_resampling_100x100(self, make_library) -> None:
        target = np.full((100, 100, 3), 90, dtype=np.uint8)
        lib = make_library([[90, 90, 90], [10, 10, 10], [200, 20, 20]], tile_size=32)
        result = generate(target, lib, GenerationParams(32, 1.0, 0.0))
        assert len(result.cells) == 16
        assert result.resampled == [3, 7, 11, 12, 13, 14, 15]
        assert all(result.cells[i].is_edge(32) for i in result.resampled)

    def test_deterministic(self, make_library) -> None:
        rng = np.random.default_rng(12)
        target = rng.integers(0, 256, (50, 50, 3), dtype=np.uint8)
        lib = make_library(rng.uniform(0, 255, (60, 3)), tile_size=8)
        params = GenerationParams(8, 5.0, 3.0)
        a = generate(target, lib, params)
        b = generate(target, lib, params)
        np.testing.assert_array_equal(a.canvas, b.canvas)
        np.testing.assert_array_equal(a.choices, b.choices)

    def test_index_kinds_agree(self, make_library) -> None:
        rng = np.random.default_rng(13)
        target = rng.integers(0, 256, (40, 40, 3), dtype=np.uint8)
        pts = rng.uniform(0, 255, (120, 3))
        params = GenerationParams(5, 2.0, 0.0)
        a = generate(target, make_library(pts, tile_size=5, kind="kdtree"), params)
        b = generate(target, make_library(pts, tile_size=5, kind="brute"), params)
        np.testing.assert_array_equal(a.canvas, b.canvas)

    def test_penalty_increases_variety(self, make_library) -> None:
        target = np.full((64, 64, 3), 100, dtype=np.uint8)
        colors = [[100 + i, 100, 100] for i in range(20)]
        lib = make_library(colors, tile_size=8)
        none = generate(target, lib, GenerationParams(8, 0.0, 0.0))
        some = generate(target, lib, GenerationParams(8, 10.0, 0.0))
        assert np.count_nonzero(none.usage) == 1
        assert np.count_nonzero(some.usage) > 1

    def test_huge_sigma_divisor(self, make_library) -> None:
        target = np.full((64, 64, 3), 100, dtype=np.uint8)
        lib = make_library([[100, 100, 100], [0, 0, 0]], tile_size=8)
        result = generate(target, lib, GenerationParams(8, 1.0, 1e200))
        assert result.canvas.shape == target.shape
        assert result.usage.sum() == 64

    def test_tile_size_mismatch(self, make_library) -> None:
        lib = make_library([[0, 0, 0]], tile_size=8)
        with pytest.raises(InvalidParams):
            generate(np.zeros((10, 10, 3), dtype=np.uint8), lib, GenerationParams(16))

    def test_rejects_non_rgb_target(self, make_library) -> None:
        lib = make_library([[0, 0, 0]], tile_size=8)
        with pytest.raises(InvalidParams):
            generate(np.zeros((10, 10), dtype=np.uint8), lib, GenerationParams(8))

    def test_cancel(self, make_library) -> None:
        lib = make_library([[0, 0, 0]], tile_size=4)
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(GenerationCancelled):
            generate(np.zeros((16, 16, 3), dtype=np.uint8), lib, GenerationParams(4), cancel=cancel)

    def test_from_disk(self, tile_dir: Path, target_image: Path) -> None:
        lib = load_library(tile_dir, 10)
        target = load_image(target_image)
        result = generate(target, lib, GenerationParams(10, 5.0, 2.0))
        assert result.canvas.shape == (70, 100, 3)
        assert result.resampled == []


# -- Library cache -----------------------------------------------------

class TestLibraryCache:
    @pytest.fixture
    def counting_cache(self, make_library):
        calls: list[tuple[Path, int]] = []

        def loader(directory: Path, tile_size: int, config: EngineConfig):
            calls.append((directory, tile_size))
            return make_library([[1, 2, 3], [4, 5, 6]], tile_size=tile_size, directory=directory)

        return LibraryCache(loader=loader), calls

    def test_reuses_same_key(self, counting_cache, tmp_path: Path) -> None:
        cache, calls = counting_cache
        a = cache.get(tmp_path, 16)
        b = cache.get(str(tmp_path), 16)
        assert a is b
        assert cache.builds == 1
        assert len(calls) == 1

    def test_rebuilds_on_key_change(self, counting_cache, tmp_path: Path) -> None:
        cache, _ = counting_cache
        other = tmp_path / "other"
        other.mkdir()
        first = cache.get(tmp_path, 16)
        second = cache.get(tmp_path, 32)
        third = cache.get(other, 32)
        assert cache.builds == 3
        assert cache.peek() is third
        # Snapshots already handed out stay intact
        assert first.tile_size == 16 and len(first) == 2
        assert second is not third

    def test_relative_and_absolute_paths_share_key(self, counting_cache, tmp_path: Path, monkeypatch) -> None:
        cache, _ = counting_cache
        monkeypatch.chdir(tmp_path.parent)
        cache.get(tmp_path.name, 8)
        cache.get(tmp_path, 8)
        assert cache.builds == 1

    def test_failed_build_keeps_previous(self, tile_dir: Path, tmp_path: Path) -> None:
        cache = LibraryCache()
        good = cache.get(tile_dir, 8)
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(EmptyLibrary):
            cache.get(empty, 8)
        assert cache.peek() is good
        assert cache.get(tile_dir, 8) is good
        assert cache.builds == 1

    def test_clear(self, counting_cache, tmp_path: Path) -> None:
        cache, _ = counting_cache
        cache.get(tmp_path, 8)
        cache.clear()
        assert cache.peek() is None
        cache.get(tmp_path, 8)
        assert cache.builds == 2


# -- Command surface ---------------------------------------------------

class TestGenerateMosaic:
    def test_returns_png_data_url(self, tile_dir: Path, target_image: Path) -> None:
        url = generate_mosaic(_payload(target_image, tile_dir), cache=LibraryCache())
        img = _decode(url)
        assert img.format == "PNG"
        assert img.size == (100, 70)

    def test_byte_identical_runs(self, tile_dir: Path, target_image: Path) -> None:
        payload = _payload(target_image, tile_dir, sigma_divisor=3.0)
        a = generate_mosaic(payload, cache=LibraryCache())
        b = generate_mosaic(payload, cache=LibraryCache())
        assert a == b

    def test_cache_reused_across_requests(self, tile_dir: Path, target_image: Path) -> None:
        cache = LibraryCache()
        generate_mosaic(_payload(target_image, tile_dir), cache=cache)
        generate_mosaic(_payload(target_image, tile_dir, penalty_factor=0.0), cache=cache)
        assert cache.builds == 1
        generate_mosaic(_payload(target_image, tile_dir, tile_size=12), cache=cache)
        assert cache.builds == 2

    def test_invalid_params_before_io(self, tmp_path: Path) -> None:
        cache = LibraryCache()
        missing = tmp_path / "missing"
        with pytest.raises(InvalidParams):
            generate_mosaic(_payload(missing / "t.png", missing, tile_size=0), cache=cache)
        with pytest.raises(InvalidParams):
            generate_mosaic(_payload(missing / "t.png", missing, penalty_factor=-2.0), cache=cache)
        assert cache.builds == 0

    def test_missing_key(self, tmp_path: Path) -> None:
        payload = _payload(tmp_path / "t.png", tmp_path)
        del payload["sigma_divisor"]
        with pytest.raises(InvalidParams, match="sigma_divisor"):
            parse_params(payload)

    def test_empty_path_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidParams):
            parse_params(_payload("", tmp_path))

    def test_target_decode_failure_is_fatal(self, tile_dir: Path, tmp_path: Path) -> None:
        bad = tmp_path / "bad.jpg"
        bad.write_bytes(b"nope")
        cache = LibraryCache()
        with pytest.raises(DecodeFailure):
            generate_mosaic(_payload(bad, tile_dir), cache=cache)

    def test_empty_library(self, target_image: Path, tmp_path: Path) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        cache = LibraryCache()
        with pytest.raises(EmptyLibrary) as exc:
            generate_mosaic(_payload(target_image, empty), cache=cache)
        assert "No valid images" in str(exc.value)
        assert cache.peek() is None

    def test_missing_tile_directory(self, target_image: Path, tmp_path: Path) -> None:
        with pytest.raises(TileDirectoryError):
            generate_mosaic(_payload(target_image, tmp_path / "nope"), cache=LibraryCache())


class TestAdaptiveSettings:
    def test_counts_files_without_building(self, tile_dir: Path, target_image: Path) -> None:
        cache = LibraryCache()
        settings = get_adaptive_settings(str(target_image), str(tile_dir), cache=cache)
        assert settings["tile_count"] == 12
        assert settings["image_width"] == 100
        assert settings["image_height"] == 70
        assert settings["tile_size"] == 8
        assert settings["penalty_factor"] == 15.0
        assert cache.builds == 0
        assert cache.peek() is None

    def test_does_not_touch_cached_library(self, tile_dir: Path, target_image: Path) -> None:
        cache = LibraryCache()
        lib = cache.get(tile_dir, 8)
        settings = get_adaptive_settings(str(target_image), str(tile_dir), cache=cache)
        assert settings["tile_count"] == len(lib)
        assert cache.peek() is lib
        assert cache.builds == 1

    def test_values_positive_and_finite(self, tile_dir: Path, target_image: Path) -> None:
        settings = get_adaptive_settings(str(target_image), str(tile_dir), cache=LibraryCache())
        for key in ("tile_count", "tile_size", "penalty_factor"):
            assert np.isfinite(settings[key])
            assert settings[key] > 0

    def test_missing_tile_directory_counts_zero(self, target_image: Path, tmp_path: Path) -> None:
        cache = LibraryCache()
        settings = get_adaptive_settings(str(target_image), str(tmp_path / "nope"), cache=cache)
        assert settings["tile_count"] == 0
        assert settings["penalty_factor"] == 50.0
        assert settings["tile_size"] == 8
        assert cache.peek() is None

    def test_bad_target(self, tile_dir: Path, tmp_path: Path) -> None:
        with pytest.raises(DecodeFailure):
            get_adaptive_settings(str(tmp_path / "missing.png"), str(tile_dir), cache=LibraryCache())
