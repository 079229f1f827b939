from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = BACKEND_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from pokescan.services.image_ops import RegionSpec, crop_pixels, crop_region  # noqa: E402
from pokescan.services.ocr_engine import PageSegMode  # noqa: E402
from pokescan.services.scanner import PokemonScanner  # noqa: E402
from pokescan.services.settings import MemorySettings  # noqa: E402

SCREEN_WIDTH = 1080
SCREEN_HEIGHT = 1920
GRAY = (128, 128, 128)
FEMALE_NAME = "Nidoran♀"
MALE_NAME = "Nidoran♂"


class FakeOcr:
    """OCR stand-in that answers by the shape of the image it is given.

    Every field crop has a distinct size on a given screen, so the shape identifies
    which field is being read.
    """

    def __init__(self, texts: dict[tuple[int, int], str] | None = None, default: str = "") -> None:
        self.texts = dict(texts or {})
        self.default = default
        self.mode = PageSegMode.SINGLE_LINE
        self.image: np.ndarray | None = None
        self.calls: list[tuple[tuple[int, int], PageSegMode]] = []
        self.ended = 0

    def set_page_seg_mode(self, mode: PageSegMode) -> None:
        self.mode = mode

    def set_image(self, image: np.ndarray) -> None:
        self.image = image

    def get_utf8_text(self) -> str:
        assert self.image is not None
        shape = (int(self.image.shape[0]), int(self.image.shape[1]))
        self.calls.append((shape, self.mode))
        return self.texts.get(shape, self.default)

    def end(self) -> None:
        self.ended += 1

    def calls_for(self, shape: tuple[int, int]) -> int:
        return sum(1 for called, _ in self.calls if called == shape)


def make_screen(color: tuple[int, int, int] = GRAY) -> np.ndarray:
    screen = np.zeros((SCREEN_HEIGHT, SCREEN_WIDTH, 3), dtype=np.uint8)
    screen[:, :] = color
    return screen


def region_shape(screen: np.ndarray, spec: RegionSpec, base_height: int | None = None) -> tuple[int, int]:
    crop = crop_region(screen, spec, base_height=base_height)
    return int(crop.shape[0]), int(crop.shape[1])


def paint_region(
    screen: np.ndarray,
    spec: RegionSpec,
    color: tuple[int, int, int],
    base_height: int | None = None,
) -> None:
    img_h, img_w = screen.shape[:2]
    height = img_h if base_height is None else base_height
    x = int(img_w * spec.x_start)
    y = int(height * spec.y_start)
    w = int(img_w * spec.x_width)
    h = int(height * spec.y_height)
    crop_pixels(screen, x, y, w, h)
    screen[y : y + h, x : x + w] = color


def paint_disc(screen: np.ndarray, center: tuple[int, int], radius: int) -> None:
    cx, cy = center
    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if dx * dx + dy * dy <= radius * radius:
                screen[cy + dy, cx + dx] = (255, 255, 255)


@pytest.fixture
def fake_ocr() -> FakeOcr:
    return FakeOcr()


@pytest.fixture
def settings() -> MemorySettings:
    return MemorySettings(candy_scan_enabled=True)


@pytest.fixture
def make_scanner(fake_ocr: FakeOcr, settings: MemorySettings):
    def _make(
        *,
        ocr: FakeOcr | None = None,
        settings_provider: MemorySettings | None = None,
        candy_word_first: bool = False,
    ) -> PokemonScanner:
        return PokemonScanner(
            None,
            SCREEN_WIDTH,
            SCREEN_HEIGHT,
            FEMALE_NAME,
            MALE_NAME,
            settings_provider if settings_provider is not None else settings,
            candy_word_first=candy_word_first,
            ocr=ocr if ocr is not None else fake_ocr,
        )

    return _make
