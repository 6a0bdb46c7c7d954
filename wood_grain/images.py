"""Grain image assets: checking what is on disk and producing `<slug>_400.jpg` files.

The page shows grain photos at a fixed long edge (400px by default), so every
asset is normalised to an RGB JPEG of that size.
"""

from __future__ import annotations

import base64
import binascii
import enum
import io
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import requests
from PIL import Image, UnidentifiedImageError

from wood_grain.manifest import GRAIN_IMAGE_SIZE_PX, SpeciesImageEntry

DOWNLOAD_TIMEOUT_S = 30


class GrainImageError(RuntimeError):
    """Raised when a grain photo cannot be fetched or decoded."""


class ImageStatus(str, enum.Enum):
    OK = "ok"
    MISSING = "missing"
    UNREADABLE = "unreadable"
    WRONG_FORMAT = "wrong_format"
    WRONG_SIZE = "wrong_size"


@dataclass(frozen=True)
class ImageCheck:
    entry: SpeciesImageEntry
    path: str
    status: ImageStatus
    size: tuple[int, int] | None = None
    detail: str = ""


def compute_target_size(width: int, height: int, target_long_edge_px: int) -> tuple[int, int]:
    """Compute (new_w, new_h) preserving aspect ratio with a fixed long edge."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size: {width}x{height}")
    if target_long_edge_px <= 0:
        raise ValueError("target_long_edge_px must be > 0")

    long_edge = max(width, height)
    if long_edge == target_long_edge_px:
        return width, height

    scale = target_long_edge_px / float(long_edge)
    return max(1, int(round(width * scale))), max(1, int(round(height * scale)))


def check_grain_image(
    entry: SpeciesImageEntry, images_dir: str, *, expected_px: int = GRAIN_IMAGE_SIZE_PX
) -> ImageCheck:
    path = os.path.join(images_dir, entry.filename)
    if not os.path.isfile(path):
        return ImageCheck(entry, path, ImageStatus.MISSING)

    try:
        with Image.open(path) as image:
            image_format = image.format
            size = image.size
            image.verify()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as exc:
        return ImageCheck(entry, path, ImageStatus.UNREADABLE, detail=str(exc))

    if image_format != "JPEG":
        return ImageCheck(entry, path, ImageStatus.WRONG_FORMAT, size, f"format={image_format}")
    if expected_px and max(size) != expected_px:
        return ImageCheck(
            entry,
            path,
            ImageStatus.WRONG_SIZE,
            size,
            f"long edge {max(size)}px, expected {expected_px}px",
        )
    return ImageCheck(entry, path, ImageStatus.OK, size)


def check_grain_images(
    entries: Iterable[SpeciesImageEntry],
    images_dir: str,
    *,
    expected_px: int = GRAIN_IMAGE_SIZE_PX,
) -> list[ImageCheck]:
    return [check_grain_image(entry, images_dir, expected_px=expected_px) for entry in entries]


def _read_source_bytes(source: str) -> bytes:
    if source.startswith(("http://", "https://")):
        try:
            response = requests.get(source, timeout=DOWNLOAD_TIMEOUT_S)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise GrainImageError(f"Failed to download grain photo from {source}: {exc}") from exc
        return response.content

    if source.startswith("data:"):
        _, _, source = source.partition(",")
        try:
            return base64.b64decode(source, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise GrainImageError(f"Invalid base64 image data: {exc}") from exc

    path = Path(source).expanduser()
    if not path.exists():
        raise FileNotFoundError(f"Source image does not exist: {path}")
    if not path.is_file():
        raise GrainImageError(f"Source image is not a file: {path}")
    try:
        return path.read_bytes()
    except OSError as exc:
        raise GrainImageError(f"Could not read source image {path}: {exc}") from exc


def prepare_grain_image(
    source: str,
    dest: str,
    *,
    target_px: int = GRAIN_IMAGE_SIZE_PX,
    quality: int = 90,
    logger: logging.Logger | None = None,
) -> str:
    """
    Turn a source photo into a grain image asset at `dest`.

    `source` may be a local path, an http(s) URL or a `data:` URI. The image is
    converted to RGB (dropping any alpha channel), resized with Lanczos so its
    long edge is `target_px`, and saved as a JPEG. Returns `dest`.
    """

    image_bytes = _read_source_bytes(source)
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            rgb = image.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise GrainImageError(f"Could not decode grain photo from {source[:80]!r}: {exc}") from exc

    new_size = compute_target_size(rgb.width, rgb.height, target_px)
    if new_size != rgb.size:
        if logger:
            logger.debug("Resizing %sx%s -> %sx%s", rgb.width, rgb.height, *new_size)
        rgb = rgb.resize(new_size, resample=Image.Resampling.LANCZOS)

    out_dir = os.path.dirname(os.path.abspath(dest))
    os.makedirs(out_dir, exist_ok=True)
    rgb.save(dest, format="JPEG", quality=quality)
    if logger:
        logger.info("Wrote grain image %s (%sx%s)", dest, rgb.width, rgb.height)
    return dest
