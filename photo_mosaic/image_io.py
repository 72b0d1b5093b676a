"""Image decoding, resampling, and PNG encoding."""

from __future__ import annotations

import base64
import io
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps

from photo_mosaic.errors import DecodeFailure, InvalidParams

RESAMPLE_FILTERS: dict[str, Image.Resampling] = {
    "nearest": Image.Resampling.NEAREST,
    "box": Image.Resampling.BOX,
    "bilinear": Image.Resampling.BILINEAR,
    "hamming": Image.Resampling.HAMMING,
    "bicubic": Image.Resampling.BICUBIC,
    "lanczos": Image.Resampling.LANCZOS,
}

PNG_DATA_URL_PREFIX = "data:image/png;base64,"


def resolve_filter(name: str) -> Image.Resampling:
    """Map a filter name (``"lanczos"``, ``"bilinear"`` ...) to Pillow's enum."""
    try:
        return RESAMPLE_FILTERS[name.lower()]
    except KeyError:
        raise InvalidParams(
            f"Unknown resample filter {name!r}; choose from {sorted(RESAMPLE_FILTERS)}"
        ) from None


def _open_rgb(path: str | Path) -> Image.Image:
    """Decode *path* to an RGB image with its EXIF orientation applied."""
    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)
            return img.convert("RGB")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeFailure(f"Failed to decode image {path}: {e}") from e


def load_image(path: str | Path) -> np.ndarray:
    """Load an image at its native size.

    Returns:
        (H, W, 3) uint8 array.

    Raises:
        DecodeFailure: If the file is missing or not a decodable image.
    """
    return np.array(_open_rgb(path), dtype=np.uint8)


def load_square(path: str | Path, size: int, resample: str = "lanczos") -> np.ndarray:
    """Load an image and crop-to-fill it into a *size* x *size* square.

    The centre of the image is kept; the longer axis is trimmed so the
    aspect ratio is never distorted.

    Returns:
        (size, size, 3) uint8 array.
    """
    img = _open_rgb(path)
    img = ImageOps.fit(img, (size, size), method=resolve_filter(resample))
    return np.array(img, dtype=np.uint8)


def resize_array(
    array: np.ndarray,
    width: int,
    height: int,
    resample: str = "lanczos",
) -> np.ndarray:
    """Resample an (H, W, 3) uint8 array to exactly *width* x *height*."""
    img = Image.fromarray(array).resize((width, height), resolve_filter(resample))
    return np.array(img, dtype=np.uint8)


def encode_png(array: np.ndarray) -> bytes:
    """Encode an (H, W, 3) uint8 array as PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(array.astype(np.uint8)).save(buf, format="PNG")
    return buf.getvalue()


def to_data_url(png: bytes) -> str:
    """Wrap PNG bytes as a ``data:image/png;base64,...`` URL."""
    return PNG_DATA_URL_PREFIX + base64.b64encode(png).decode("ascii")


def save_png(array: np.ndarray, path: str | Path) -> None:
    """Write an (H, W, 3) uint8 array to *path* as PNG."""
    Path(path).write_bytes(encode_png(array))
