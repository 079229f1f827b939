from __future__ import annotations

import numpy as np
import pytest

from pokescan.services.image_ops import (  # type: ignore[import-not-found]
    RegionOutOfBoundsError,
    RegionSpec,
    cache_key,
    crop_info_row,
    crop_pixels,
    crop_region,
    extended_height,
    hash_image,
    is_only_white,
    is_white,
    replace_colors,
)


def _solid(h: int, w: int, color: tuple[int, int, int]) -> np.ndarray:
    image = np.zeros((h, w, 3), dtype=np.uint8)
    image[:, :] = color
    return image


def test_crop_region_floors_fractional_edges() -> None:
    image = np.arange(100 * 200 * 3, dtype=np.uint32).reshape(100, 200, 3).astype(np.uint8)
    crop = crop_region(image, RegionSpec(0.125, 0.375, 0.5, 0.25))

    assert crop.shape == (25, 100, 3)
    assert np.array_equal(crop, image[37:62, 25:125])


def test_crop_is_an_owned_copy() -> None:
    image = _solid(10, 10, (1, 2, 3))
    crop = crop_pixels(image, 2, 2, 4, 4)
    crop[:, :] = (9, 9, 9)

    assert tuple(image[3, 3]) == (1, 2, 3)


@pytest.mark.parametrize(
    "x, y, w, h",
    [(-1, 0, 5, 5), (0, -1, 5, 5), (6, 0, 5, 5), (0, 8, 5, 5), (0, 0, 0, 5)],
)
def test_crop_outside_image_raises(x: int, y: int, w: int, h: int) -> None:
    image = _solid(10, 10, (0, 0, 0))
    with pytest.raises(RegionOutOfBoundsError):
        crop_pixels(image, x, y, w, h)


def test_extended_crop_uses_inferred_height() -> None:
    image = _solid(2000, 1000, (0, 0, 0))
    base_height = extended_height(image)
    crop = crop_region(image, RegionSpec(0.0, 0.5, 0.1, 0.1), base_height=base_height)

    assert base_height == 2055
    assert crop.shape == (205, 100, 3)


def test_crop_info_row_rounds_to_nearest_pixel() -> None:
    image = _solid(1920, 1080, (0, 0, 0))
    row = crop_info_row(image)

    assert row.shape == (round(1920 / 25.26316), 864, 3)


def test_replace_colors_keeps_pixels_within_distance() -> None:
    image = _solid(4, 4, (100, 100, 100))
    image[0, 0] = (10, 20, 30)
    image[1, 1] = (12, 22, 28)

    out = replace_colors(image, (10, 20, 30), (255, 255, 255), 5)

    assert tuple(out[0, 0]) == (10, 20, 30)
    assert tuple(out[1, 1]) == (12, 22, 28)
    assert tuple(out[2, 2]) == (255, 255, 255)
    assert tuple(image[2, 2]) == (100, 100, 100)


def test_replace_colors_with_zero_distance_keeps_exact_matches_only() -> None:
    image = _solid(3, 3, (10, 20, 30))
    image[1, 1] = (10, 20, 31)
    original = image.copy()

    out = replace_colors(image, (10, 20, 30), (0, 0, 0), 0)

    assert out is not image
    assert np.array_equal(image, original)
    assert tuple(out[0, 0]) == (10, 20, 30)
    assert tuple(out[1, 1]) == (0, 0, 0)


def test_replace_colors_mutate_writes_in_place() -> None:
    image = _solid(3, 3, (200, 0, 0))

    out = replace_colors(image, (0, 0, 0), (255, 255, 255), 10, mutate=True)

    assert out is image
    assert is_only_white(image)


def test_replace_colors_simple_background_clears_first_pixel_color() -> None:
    # Background sits within the keep distance but is still cleared.
    image = _solid(5, 5, (60, 100, 100))
    image[2, 1:4] = (68, 105, 108)

    out = replace_colors(image, (68, 105, 108), (255, 255, 255), 200, simple_background=True)

    assert tuple(out[0, 0]) == (255, 255, 255)
    assert tuple(out[2, 2]) == (68, 105, 108)


def test_is_only_white_checks_middle_row() -> None:
    image = _solid(5, 5, (255, 255, 255))
    image[0, 0] = (0, 0, 0)
    assert is_only_white(image)

    image[2, 4] = (254, 255, 255)
    assert not is_only_white(image)


def test_is_white_outside_image_is_false() -> None:
    image = _solid(3, 3, (255, 255, 255))

    assert is_white(image, 0, 0)
    assert not is_white(image, 3, 0)
    assert not is_white(image, -1, 1)


def test_cache_key_depends_on_content_and_tag() -> None:
    a = _solid(4, 4, (1, 1, 1))
    b = a.copy()
    c = _solid(4, 4, (1, 1, 2))

    assert len(hash_image(a)) == 16
    assert cache_key("hp", a) == cache_key("hp", b)
    assert cache_key("hp", a) != cache_key("cp", a)
    assert cache_key("hp", a) != cache_key("hp", c)
    assert cache_key("hp", a).startswith("hp")


def test_cache_key_changes_with_one_pixel() -> None:
    a = _solid(40, 60, (68, 105, 108))
    b = a.copy()
    b[17, 33, 2] += 1

    assert cache_key("name", a) != cache_key("name", b)
    assert cache_key("name", a) == cache_key("name", a.copy())
