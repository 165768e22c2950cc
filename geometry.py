"""Image-space area geometry and click hit testing.

Areas are stored in the natural pixel space of their image. Screen positions
are derived with a single ``scale`` factor (rendered width / natural width).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from models import Area

# Rendered areas never shrink below this many screen pixels per side.
MIN_VISUAL_SIZE = 15


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    right: float
    bottom: float

    @property
    def width(self) -> float:
        return self.right - self.left

    @property
    def height(self) -> float:
        return self.bottom - self.top

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.right and self.top <= y <= self.bottom

    def as_coords(self) -> list[float]:
        return [self.left, self.top, self.right, self.bottom]


@dataclass(frozen=True)
class ScreenRect:
    left: float
    top: float
    width: float
    height: float


def normalize(coords: Sequence[float]) -> Rect:
    """Order two opposite corners into a min/max rectangle."""
    if len(coords) != 4:
        raise ValueError("coords must have exactly 4 values")
    if not all(math.isfinite(c) for c in coords):
        raise ValueError("coords must be finite numbers")
    x1, y1, x2, y2 = coords
    return Rect(min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))


def _check_scale(scale: float) -> None:
    if not math.isfinite(scale) or scale <= 0:
        raise ValueError(f"scale must be a positive number, got {scale!r}")


def scale_for(container_width: float, natural_width: float) -> float:
    if natural_width <= 0:
        raise ValueError("natural width must be positive")
    return container_width / natural_width


def to_screen_rect(
    area: Area, scale: float, min_size: float = MIN_VISUAL_SIZE
) -> ScreenRect:
    """Screen-space box for rendering an area.

    Undersized boxes grow to ``min_size`` towards the right and bottom; the
    origin and the stored coordinates are left untouched.
    """
    _check_scale(scale)
    rect = normalize(area.coords)
    return ScreenRect(
        left=rect.left * scale,
        top=rect.top * scale,
        width=max(rect.width * scale, min_size),
        height=max(rect.height * scale, min_size),
    )


def screen_rect_to_image(screen: ScreenRect, scale: float) -> Rect:
    _check_scale(scale)
    return Rect(
        screen.left / scale,
        screen.top / scale,
        (screen.left + screen.width) / scale,
        (screen.top + screen.height) / scale,
    )


def point_in_area(screen_x: float, screen_y: float, area: Area, scale: float) -> bool:
    """Exact hit test against the stored bounds (no minimum-size inflation)."""
    _check_scale(scale)
    try:
        rect = normalize(area.coords)
    except ValueError:
        return False
    return rect.contains(screen_x / scale, screen_y / scale)


def hit_test(
    areas: Iterable[Area], screen_x: float, screen_y: float, scale: float = 1.0
) -> Area | None:
    """Return the topmost area under the point; later areas win overlaps."""
    for area in reversed(list(areas)):
        if point_in_area(screen_x, screen_y, area, scale):
            return area
    return None


@dataclass(frozen=True)
class ImageLayout:
    """Contain-fit placement of an image inside a container."""

    natural_width: float
    natural_height: float
    rendered_width: float
    rendered_height: float
    margin_left: float
    margin_top: float

    @classmethod
    def fit(
        cls,
        natural_width: float,
        natural_height: float,
        container_width: float,
        container_height: float,
    ) -> "ImageLayout":
        natural_width = max(natural_width, 1)
        natural_height = max(natural_height, 1)
        if container_width <= 0 or container_height <= 0:
            raise ValueError("container must have a positive size")

        image_ratio = natural_width / natural_height
        container_ratio = container_width / container_height
        if container_ratio > image_ratio:
            rendered_height = container_height
            rendered_width = rendered_height * image_ratio
        else:
            rendered_width = container_width
            rendered_height = rendered_width / image_ratio

        return cls(
            natural_width=natural_width,
            natural_height=natural_height,
            rendered_width=rendered_width,
            rendered_height=rendered_height,
            margin_left=(container_width - rendered_width) / 2,
            margin_top=(container_height - rendered_height) / 2,
        )

    @property
    def scale(self) -> float:
        return self.rendered_width / self.natural_width

    def to_image_point(self, x: float, y: float) -> tuple[int, int]:
        """Map a container click to rounded image pixels, clamped to the image."""
        natural_x = round((x - self.margin_left) / self.rendered_width * self.natural_width)
        natural_y = round((y - self.margin_top) / self.rendered_height * self.natural_height)
        natural_x = max(0, min(int(self.natural_width), natural_x))
        natural_y = max(0, min(int(self.natural_height), natural_y))
        return natural_x, natural_y

    def to_image_space(self, x: float, y: float) -> tuple[float, float]:
        """Container point to unrounded image-space point, without clamping."""
        return (x - self.margin_left) / self.scale, (y - self.margin_top) / self.scale

    def hit_test(self, areas: Iterable[Area], x: float, y: float) -> Area | None:
        image_x, image_y = self.to_image_space(x, y)
        return hit_test(areas, image_x, image_y, 1.0)
