"""
Chin placement for the Balls-Chin Generator.

Two mutually exclusive paths produce the overlay rectangle:
- detected: sized and anchored relative to the face bounding box
- fallback: sized and anchored relative to the whole image
"""

import math
from dataclasses import dataclass
from typing import Tuple

from .landmarks import FaceBox


@dataclass(frozen=True)
class PlacementParams:
    """User-controlled slider values. Not range checked."""
    intensity: float = 0.5
    width_factor: float = 1.0
    vertical_offset: float = 0.0


@dataclass(frozen=True)
class PlacementRect:
    """Overlay rectangle in pixel space."""
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def clamped(self, bitmap_width: int, bitmap_height: int) -> "PlacementRect":
        """
        Integer intersection of this rectangle with the bitmap.

        The result always satisfies x >= 0, y >= 0, x + width <= bitmap_width
        and y + height <= bitmap_height; width/height are 0 when the rectangle
        lies outside the bitmap or any field is infinite or NaN.
        """
        if not all(math.isfinite(v) for v in (self.x, self.y, self.width, self.height)):
            return PlacementRect(0, 0, 0, 0)
        x = math.floor(self.x)
        y = math.floor(self.y)
        x0 = min(max(0, x), bitmap_width)
        y0 = min(max(0, y), bitmap_height)
        x1 = max(x0, min(bitmap_width, x + math.floor(self.width)))
        y1 = max(y0, min(bitmap_height, y + math.floor(self.height)))
        return PlacementRect(x0, y0, x1 - x0, y1 - y0)


def detected_placement(face: FaceBox, params: PlacementParams) -> PlacementRect:
    """Place the chin under a detected face."""
    width = face.width * (0.45 + 0.3 * params.intensity) * params.width_factor
    height = face.height * (0.25 + 0.15 * params.intensity)
    x = face.center_x - width / 2
    y = face.max_y - height * 0.4
    y += params.vertical_offset * face.height
    return PlacementRect(x, y, width, height)


def fallback_placement(canvas_width: int, canvas_height: int,
                       params: PlacementParams) -> PlacementRect:
    """Place the chin near the bottom centre when no face is available."""
    width = canvas_width * (0.3 + 0.2 * params.intensity) * params.width_factor
    height = canvas_height * (0.15 + 0.1 * params.intensity)
    x = canvas_width / 2 - width / 2
    y = canvas_height * 0.65
    y += params.vertical_offset * canvas_height
    return PlacementRect(x, y, width, height)
