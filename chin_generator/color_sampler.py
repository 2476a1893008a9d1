"""
Skin tone sampling for the Balls-Chin Generator.

Estimates a representative skin colour from a rectangle of the photo so the
chin can be tinted to match. Two variants exist:

- filtered: samples only the top 40% of the rectangle (clothing tends to sit
  lower in the frame), drops pixels that are too dark or too bright (hair,
  shadow, highlights) and brightens the result by 15.
- plain: samples the whole rectangle, averages every sampled pixel and
  brightens the result by 10.

The stride, brightness window, offsets and default colour have no derivation
beyond "looks right"; they are configuration defaults.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional, Tuple

import numpy as np

from .config import Config
from .placement import PlacementRect

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]

SAMPLER_PRESETS: Dict[str, Dict[str, Any]] = {
    "filtered": {"top_fraction": 0.4, "filter_brightness": True, "brightening_offset": 15},
    "plain": {"top_fraction": 1.0, "filter_brightness": False, "brightening_offset": 10},
}


@dataclass
class ColorSampler:
    """Average-colour sampler over an RGBA bitmap."""
    top_fraction: float = 0.4
    filter_brightness: bool = True
    brightening_offset: int = 15
    stride: int = 10
    brightness_min: float = 40.0
    brightness_max: float = 230.0
    default_color: RGB = (220, 160, 140)

    @classmethod
    def for_variant(cls, variant: str, **overrides) -> "ColorSampler":
        """Build a sampler from a named preset, with optional overrides."""
        if variant not in SAMPLER_PRESETS:
            raise ValueError(f"Unknown sampler variant: {variant}")
        settings = dict(SAMPLER_PRESETS[variant])
        settings.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**settings)

    @classmethod
    def from_config(cls, config: Config) -> "ColorSampler":
        return cls.for_variant(
            config.sampler_variant,
            brightening_offset=config.brightening_offset,
            stride=config.sample_stride,
            brightness_min=config.brightness_min,
            brightness_max=config.brightness_max,
            default_color=tuple(config.default_skin_color),
        )

    def sample_region(self, bitmap: np.ndarray, x: float, y: float,
                      w: float, h: float) -> Optional[PlacementRect]:
        """
        The part of the requested rectangle that actually gets sampled.

        Returns None when nothing of it lies inside the bitmap.
        """
        bitmap_h, bitmap_w = bitmap.shape[:2]
        region = PlacementRect(x, y, w, h * self.top_fraction).clamped(bitmap_w, bitmap_h)
        if region.width <= 0 or region.height <= 0:
            return None
        return region

    def sample(self, bitmap: np.ndarray, x: float, y: float, w: float, h: float) -> RGB:
        """
        Estimate the skin tone inside a rectangle of the bitmap.

        Args:
            bitmap: RGBA image, shape (height, width, 4)
            x, y, w, h: Requested rectangle in pixel space (may exceed the bitmap)

        Returns:
            Brightened average (r, g, b), or the default colour when there is
            nothing usable to sample
        """
        region = self.sample_region(bitmap, x, y, w, h)
        if region is None:
            logger.debug("Sample rectangle outside the image, using default colour")
            return self.default_color

        x0, y0 = int(region.x), int(region.y)
        patch = bitmap[y0:y0 + int(region.height), x0:x0 + int(region.width)]

        # Every stride-th pixel in row-major order
        pixels = patch.reshape(-1, patch.shape[-1])[::self.stride, :3].astype(np.float64)

        if self.filter_brightness:
            brightness = pixels.sum(axis=1) / 3
            keep = (brightness > self.brightness_min) & (brightness < self.brightness_max)
            pixels = pixels[keep]

        if len(pixels) == 0:
            logger.debug("No usable skin pixels in sample, using default colour")
            return self.default_color

        average = pixels.mean(axis=0)
        brightened = np.minimum(255, np.floor(average + self.brightening_offset + 0.5))
        color = tuple(int(c) for c in brightened)

        logger.debug(f"Sampled {len(pixels)} pixels in {region}: colour {color}")
        return color
