from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

import numpy as np

from .ocr_engine import OcrDependencyError

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
EXTENDED_HEIGHT_RATIO = 2.0556


class ImageInputError(ValueError):
    """Raised when a screenshot payload cannot be turned into pixels."""


class RegionOutOfBoundsError(IndexError):
    """Raised when a region does not fit inside the image it is cut from."""


@dataclass(frozen=True)
class RegionSpec:
    """Fractional rectangle (x_start, y_start, x_width, y_height) relative to the screen."""

    x_start: float
    y_start: float
    x_width: float
    y_height: float


def _require_cv2() -> Any:
    try:
        import cv2  # type: ignore
    except Exception as exc:  # noqa: BLE001
        raise OcrDependencyError("opencv-python-headless is required") from exc
    return cv2


def decode_screenshot(image_bytes: bytes) -> np.ndarray:
    """Decode PNG/JPEG bytes into an RGB ``uint8`` array of shape (h, w, 3)."""
    if not image_bytes:
        raise ImageInputError("empty image bytes")
    cv2 = _require_cv2()
    arr = np.frombuffer(image_bytes, dtype=np.uint8)
    image = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageInputError("failed to decode image bytes")
    return cv2.cvtColor(image, cv2.COLOR_BGR2RGB)


def extended_height(image: np.ndarray) -> int:
    """Screen height inferred for devices whose navigation bar is cut from the capture."""
    return int(image.shape[1] * EXTENDED_HEIGHT_RATIO)


def crop_pixels(image: np.ndarray, x: int, y: int, w: int, h: int) -> np.ndarray:
    img_h, img_w = image.shape[:2]
    if x < 0 or y < 0 or w <= 0 or h <= 0 or x + w > img_w or y + h > img_h:
        raise RegionOutOfBoundsError(
            f"crop x={x} y={y} w={w} h={h} exceeds image {img_w}x{img_h}"
        )
    return image[y : y + h, x : x + w].copy()


def crop_region(
    image: np.ndarray,
    spec: RegionSpec,
    *,
    base_height: int | None = None,
) -> np.ndarray:
    """Cut ``spec`` out of ``image`` as an owned copy.

    Horizontal edges always use the real image width. Vertical edges use
    ``base_height`` when given (the extended layout), otherwise the real height.
    """
    img_h, img_w = image.shape[:2]
    height = img_h if base_height is None else base_height
    return crop_pixels(
        image,
        int(img_w * spec.x_start),
        int(height * spec.y_start),
        int(img_w * spec.x_width),
        int(height * spec.y_height),
    )


def crop_info_row(image: np.ndarray) -> np.ndarray:
    """The weight/height info row, used as a power-up stable fingerprint."""
    img_h, img_w = image.shape[:2]
    return crop_pixels(
        image,
        int(round(img_w * 0.1)),
        int(round(img_h / 1.714286)),
        int(round(img_w * 0.8)),
        int(round(img_h / 25.26316)),
    )


def replace_colors(
    image: np.ndarray,
    keep: tuple[int, int, int],
    replace: tuple[int, int, int],
    distance: int,
    *,
    mutate: bool = False,
    simple_background: bool = False,
) -> np.ndarray:
    """Replace every pixel farther than ``distance`` from ``keep`` with ``replace``.

    With ``simple_background`` the first pixel is taken as the background color and
    every exact match of it is replaced as well. ``mutate`` writes into ``image``;
    otherwise a new array is returned and ``image`` is left alone.
    """
    background = tuple(int(c) for c in image[0, 0]) if simple_background else replace

    diff = image.astype(np.int32) - np.asarray(keep, dtype=np.int32)
    dist_sq = np.sum(diff * diff, axis=2)
    mask = dist_sq > distance * distance
    mask |= np.all(image == np.asarray(background, dtype=image.dtype), axis=2)

    out = image if mutate else image.copy()
    out[mask] = replace
    return out


def is_only_white(image: np.ndarray) -> bool:
    """True when the middle pixel row is pure white, i.e. no text was kept."""
    row = image[image.shape[0] // 2]
    return bool(np.all(row == 255))


def is_white(image: np.ndarray, x: int, y: int) -> bool:
    img_h, img_w = image.shape[:2]
    if x < 0 or y < 0 or x >= img_w or y >= img_h:
        return False
    return bool(np.all(image[y, x] == 255))


def hash_image(image: np.ndarray) -> str:
    digest = hashlib.md5()
    digest.update(repr(image.shape).encode("ascii"))
    digest.update(np.ascontiguousarray(image).tobytes())
    return digest.hexdigest()[:16]


def cache_key(tag: str, image: np.ndarray) -> str:
    return f"{tag}{hash_image(image)}"
