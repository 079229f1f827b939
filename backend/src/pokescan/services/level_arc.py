"""Level estimation from the position of the white dot on the level arc.

The arc above the creature sprite sweeps from level 1 on the left to the trainer's
maximum level on the right, spaced by CP multiplier rather than linearly. The dot is
found by walking the arc downwards from the maximum level and measuring how far white
extends from each candidate point; the run length peaks at the dot's center.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache

import numpy as np

from .image_ops import is_white

MIN_LEVEL = 1.0
MAX_LEVEL = 40.0

# CP multiplier per level, from 1.0 to 40.0 in half steps.
CP_MULTIPLIERS: tuple[float, ...] = (
    0.094, 0.135137432, 0.16639787, 0.192650919, 0.21573247, 0.236572661,
    0.25572005, 0.273530381, 0.29024988, 0.306057377, 0.3210876, 0.335445036,
    0.34921268, 0.362457751, 0.37523559, 0.387592406, 0.39956728, 0.411193551,
    0.42250001, 0.432926419, 0.44310755, 0.453059958, 0.46279839, 0.472336083,
    0.48168495, 0.4908558, 0.49985844, 0.508701765, 0.51739395, 0.525942511,
    0.53435433, 0.542635767, 0.55079269, 0.558830576, 0.56675452, 0.574569153,
    0.58227891, 0.589887917, 0.59740001, 0.604818814, 0.61215729, 0.619399365,
    0.62656713, 0.633644533, 0.64065295, 0.647576426, 0.65443563, 0.661214806,
    0.667934, 0.674577537, 0.68116492, 0.687680648, 0.69414365, 0.700538673,
    0.70688421, 0.713164996, 0.71939909, 0.725571552, 0.7317, 0.734741009,
    0.73776948, 0.740785574, 0.74378943, 0.746781211, 0.74976104, 0.752729087,
    0.75568551, 0.758630378, 0.76156384, 0.764486065, 0.76739717, 0.770297266,
    0.7731865, 0.776064962, 0.77893275, 0.781790055, 0.78463697, 0.787473578,
    0.79030001,
)


def trainer_level_to_max_level(trainer_level: int) -> float:
    return min(trainer_level + 1.5, MAX_LEVEL)


def level_to_index(level: float) -> int:
    return int((level - 1) * 2)


@dataclass(frozen=True)
class ArcGeometry:
    """Arc center and radius as fractions of the screen, resolved to pixels per screen."""

    center_x_ratio: float = 0.5
    center_y_divisor: float = 2.803943
    radius_divisor: float = 4.3760683

    def resolve(self, width: int, height: int) -> tuple[int, int, int]:
        center_x = int(width * self.center_x_ratio)
        center_y = int(math.floor(height / self.center_y_divisor))
        radius = int(round(height / self.radius_divisor))
        return center_x, center_y, radius


DEFAULT_ARC = ArcGeometry()


@lru_cache(maxsize=32)
def arc_points(
    width: int,
    height: int,
    trainer_level: int,
    geometry: ArcGeometry = DEFAULT_ARC,
) -> tuple[tuple[int, int], ...]:
    """Pixel position of the level dot for every level index up to the trainer's max."""
    center_x, center_y, radius = geometry.resolve(width, height)
    max_idx = level_to_index(trainer_level_to_max_level(trainer_level))
    base = CP_MULTIPLIERS[0]
    max_delta = CP_MULTIPLIERS[min(max_idx + 1, len(CP_MULTIPLIERS) - 1)] - base

    points: list[tuple[int, int]] = []
    for idx in range(max_idx + 1):
        ratio = (CP_MULTIPLIERS[idx] - base) / max_delta
        angle = (ratio + 1) * math.pi
        points.append(
            (
                int(center_x + radius * math.cos(angle)),
                int(center_y + radius * math.sin(angle)),
            )
        )
    return tuple(points)


def arc_point(
    width: int,
    height: int,
    trainer_level: int,
    level: float,
    geometry: ArcGeometry = DEFAULT_ARC,
) -> tuple[int, int]:
    return arc_points(width, height, trainer_level, geometry)[level_to_index(level)]


def cardinal_white_distance(image: np.ndarray, x: int, y: int) -> int:
    """Distance from (x, y) that stays white in all four cardinal directions.

    Returns -1 when (x, y) itself is not white.
    """
    if not is_white(image, x, y):
        return -1

    d = 0
    while (
        is_white(image, x + d, y)
        and is_white(image, x - d, y)
        and is_white(image, x, y + d)
        and is_white(image, x, y - d)
    ):
        d += 1
    return d


def estimate_level(
    image: np.ndarray,
    trainer_level: int,
    *,
    width: int | None = None,
    height: int | None = None,
    geometry: ArcGeometry = DEFAULT_ARC,
) -> float:
    """Estimated creature level, or 1.0 when no dot is found.

    ``width``/``height`` describe the screen the arc table is laid out for and default
    to the image's own size.
    """
    img_h, img_w = image.shape[:2]
    points = arc_points(width or img_w, height or img_h, trainer_level, geometry)

    start = trainer_level_to_max_level(trainer_level)
    previous_level = start + 0.5
    previous_distance = -1
    level = start
    while level >= MIN_LEVEL:
        x, y = points[level_to_index(level)]
        distance = cardinal_white_distance(image, x, y)
        # The run length falls off on both sides of the dot.
        if distance < previous_distance:
            return previous_level
        previous_level = level
        previous_distance = distance
        level -= 0.5
    return MIN_LEVEL
