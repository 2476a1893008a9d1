"""
Chin renderers for the Balls-Chin Generator.

Both renderers draw a tinted cartoon chin into a placement rectangle of an
RGBA bitmap, optionally rotated about the rectangle centre:

- ProceduralChinRenderer draws two ellipses plus line work with OpenCV.
- AssetChinRenderer tints a pre-rendered mask, lays the outline art on top
  and composites the result into the target.
"""

import math
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import Image

from .config import Config
from .placement import PlacementRect

logger = logging.getLogger(__name__)

RGB = Tuple[int, int, int]


def _rgba(color: RGB) -> Tuple[int, int, int, int]:
    r, g, b = color[:3]
    return (int(r), int(g), int(b), 255)


def _rotate_about(px: float, py: float, cx: float, cy: float, angle: float) -> Tuple[float, float]:
    """Rotate a point about (cx, cy); positive angles turn clockwise on a y-down image."""
    cos_a, sin_a = math.cos(angle), math.sin(angle)
    dx, dy = px - cx, py - cy
    return (cx + dx * cos_a - dy * sin_a, cy + dx * sin_a + dy * cos_a)


def composite_over(target: np.ndarray, source: np.ndarray) -> np.ndarray:
    """
    Source-over blend of an RGBA layer onto an RGBA bitmap of the same size, in place.

    Args:
        target: Destination bitmap (uint8 RGBA), modified in place
        source: Layer to draw (uint8 RGBA, straight alpha)

    Returns:
        The target bitmap
    """
    src_a = source[..., 3:4].astype(np.float32) / 255.0
    if not np.any(src_a):
        return target

    dst_a = target[..., 3:4].astype(np.float32) / 255.0
    out_a = src_a + dst_a * (1.0 - src_a)

    src_rgb = source[..., :3].astype(np.float32)
    dst_rgb = target[..., :3].astype(np.float32)
    premultiplied = src_rgb * src_a + dst_rgb * dst_a * (1.0 - src_a)
    out_rgb = np.divide(premultiplied, out_a, out=np.zeros_like(premultiplied), where=out_a > 0)

    target[..., :3] = np.clip(np.rint(out_rgb), 0, 255).astype(np.uint8)
    target[..., 3:4] = np.clip(np.rint(out_a * 255.0), 0, 255).astype(np.uint8)
    return target


class ChinRenderer(ABC):
    """Draws a tinted chin into a placement rectangle."""

    @abstractmethod
    def draw(self, bitmap: np.ndarray, rect: PlacementRect, fill_color: RGB,
             angle: float = 0.0) -> None:
        """
        Draw the chin onto the bitmap in place.

        Args:
            bitmap: Target RGBA bitmap
            rect: Destination rectangle in pixel space (may exceed the bitmap)
            fill_color: Skin tone (r, g, b)
            angle: Rotation about the rectangle centre, radians
        """


class ProceduralChinRenderer(ChinRenderer):
    """Two filled ellipses, a centre line and an arc joining their tops."""

    def __init__(self, outline_color: RGB = (0, 0, 0), stroke_width: int = 3):
        self.outline_color = outline_color
        self.stroke_width = stroke_width

    def draw(self, bitmap: np.ndarray, rect: PlacementRect, fill_color: RGB,
             angle: float = 0.0) -> None:
        self.draw_balls_chin(bitmap, rect.x, rect.y, rect.width, rect.height,
                             fill_color, self.outline_color, angle)

    def draw_balls_chin(self, bitmap: np.ndarray, x: float, y: float, w: float, h: float,
                        fill_color: Optional[RGB], outline_color: Optional[RGB],
                        angle: float = 0.0) -> None:
        """
        Draw the procedural chin.

        Either colour may be None to skip fills or strokes; the asset builder
        uses that to draw the mask and the outline separately.
        """
        if not all(math.isfinite(v) for v in (x, y, w, h, angle)):
            logger.debug("Non-finite chin geometry, nothing drawn")
            return

        cx, cy = x + w / 2, y + h / 2
        bitmap_h, bitmap_w = bitmap.shape[:2]

        # Every primitive lies within this radius of the centre, whatever the angle
        reach = math.hypot(w, h) / 2 + abs(w) * 0.25 + self.stroke_width
        if (cx + reach < 0 or cy + reach < 0
                or cx - reach > bitmap_w or cy - reach > bitmap_h):
            return

        # cv2 needs int32 coordinates; beyond this margin everything is off-canvas anyway
        margin = 2 * max(bitmap_w, bitmap_h) + self.stroke_width

        def extent(value):
            return max(0, min(int(round(abs(value))), 2 * margin))

        def point(px, py):
            rx, ry = _rotate_about(px, py, cx, cy, angle)
            return (min(max(int(round(rx)), -margin), bitmap_w + margin),
                    min(max(int(round(ry)), -margin), bitmap_h + margin))

        angle_deg = math.degrees(angle)
        axes = (extent(w * 0.25), extent(h * 0.4))

        for fx in (0.25, 0.75):
            center = point(x + w * fx, y + h * 0.6)
            if fill_color is not None:
                cv2.ellipse(bitmap, center, axes, angle_deg, 0, 360,
                            _rgba(fill_color), -1, cv2.LINE_AA)
            if outline_color is not None:
                cv2.ellipse(bitmap, center, axes, angle_deg, 0, 360,
                            _rgba(outline_color), self.stroke_width, cv2.LINE_AA)

        if outline_color is None:
            return

        # Centre seam
        cv2.line(bitmap, point(x + w * 0.5, y + h * 0.35), point(x + w * 0.5, y + h * 0.8),
                 _rgba(outline_color), self.stroke_width, cv2.LINE_AA)

        # Upper semicircle from one ellipse top to the other
        radius = extent(w * 0.25)
        cv2.ellipse(bitmap, point(x + w * 0.5, y + h * 0.2), (radius, radius), angle_deg,
                    180, 360, _rgba(outline_color), self.stroke_width, cv2.LINE_AA)


class ChinAssets:
    """Shape mask and outline art, loaded once and shared read-only."""

    def __init__(self, mask: Optional[np.ndarray] = None, outline: Optional[np.ndarray] = None):
        self.mask = mask
        self.outline = outline

    @property
    def is_ready(self) -> bool:
        return (self.mask is not None and self.outline is not None
                and self.mask.shape[1] > 0)

    @classmethod
    def load(cls, mask_path: Optional[Path], outline_path: Optional[Path]) -> "ChinAssets":
        """Load both images; a missing or unreadable file leaves the assets not ready."""
        return cls(_load_rgba(mask_path, use_luminance_alpha=True), _load_rgba(outline_path))

    @classmethod
    def from_procedural(cls, width: int, height: int, stroke_width: int = 3) -> "ChinAssets":
        """Built-in assets drawn with the procedural renderer on transparent buffers."""
        renderer = ProceduralChinRenderer(stroke_width=stroke_width)
        # Inset so the strokes stay on the buffer; the arc rises 0.25w above 0.2h
        pad_x = stroke_width
        w = width - 2 * pad_x
        pad_top = max(stroke_width, int(math.ceil(
            (stroke_width + 0.25 * w - 0.2 * (height - stroke_width)) / 0.8)))
        h = height - pad_top - stroke_width

        mask = np.zeros((height, width, 4), dtype=np.uint8)
        renderer.draw_balls_chin(mask, pad_x, pad_top, w, h, (255, 255, 255), None)
        outline = np.zeros((height, width, 4), dtype=np.uint8)
        renderer.draw_balls_chin(outline, pad_x, pad_top, w, h, None, (0, 0, 0))
        return cls(mask, outline)

    def save(self, output_dir: Path, mask_name: str = "mask_fg_chin.png",
             outline_name: str = "outline_fg_chin.png") -> Tuple[Path, Path]:
        """Write both images as PNGs."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        mask_path = output_dir / mask_name
        outline_path = output_dir / outline_name
        Image.fromarray(self.mask).save(mask_path)
        Image.fromarray(self.outline).save(outline_path)
        return mask_path, outline_path


def _load_rgba(path: Optional[Path], use_luminance_alpha: bool = False) -> Optional[np.ndarray]:
    """Load an image as RGBA; without an alpha band a mask's luminance becomes its alpha."""
    if path is None:
        return None
    path = Path(path)
    if not path.exists():
        logger.warning(f"Chin asset not found: {path}")
        return None

    try:
        with Image.open(path) as img:
            has_alpha = 'A' in img.getbands() or 'transparency' in img.info
            rgba = np.array(img.convert("RGBA"))
            if use_luminance_alpha and not has_alpha:
                rgba[..., 3] = np.array(img.convert("L"))
    except OSError as e:
        logger.warning(f"Could not read chin asset {path}: {e}")
        return None

    logger.info(f"Loaded chin asset {path.name} ({rgba.shape[1]}x{rgba.shape[0]})")
    return rgba


class AssetChinRenderer(ChinRenderer):
    """Tinted mask plus outline art, scaled and rotated into place."""

    def __init__(self, assets: ChinAssets):
        self.assets = assets

    def tint(self, fill_color: RGB) -> np.ndarray:
        """Mask-sized sprite: fill colour where the mask is opaque, outline on top."""
        mask = self.assets.mask
        sprite = np.zeros_like(mask)
        sprite[..., :3] = np.array(fill_color[:3], dtype=np.uint8)
        sprite[..., 3] = mask[..., 3]

        outline = self.assets.outline
        if outline.shape[:2] != mask.shape[:2]:
            outline = cv2.resize(outline, (mask.shape[1], mask.shape[0]),
                                 interpolation=cv2.INTER_LINEAR)
        return composite_over(sprite, outline)

    def draw(self, bitmap: np.ndarray, rect: PlacementRect, fill_color: RGB,
             angle: float = 0.0) -> None:
        self.draw_tinted_chin(bitmap, rect.x, rect.y, rect.width, rect.height,
                              fill_color, angle)

    def draw_tinted_chin(self, bitmap: np.ndarray, x: float, y: float, w: float, h: float,
                         fill_color: RGB, angle: float = 0.0) -> None:
        if not self.assets.is_ready:
            logger.debug("Chin assets not ready, skipping overlay")
            return
        if w == 0 or h == 0:
            return
        if not all(math.isfinite(v) for v in (x, y, w, h, angle)):
            logger.debug("Non-finite chin geometry, nothing drawn")
            return

        sprite = self.tint(fill_color)
        sprite_h, sprite_w = sprite.shape[:2]

        # sprite centre -> scale -> rotate -> rectangle centre
        cx, cy = x + w / 2, y + h / 2
        cos_a, sin_a = math.cos(angle), math.sin(angle)
        sx, sy = w / sprite_w, h / sprite_h
        matrix = np.array([
            [cos_a * sx, -sin_a * sy, 0.0],
            [sin_a * sx, cos_a * sy, 0.0],
        ])
        matrix[:, 2] = (cx, cy) - matrix[:, :2] @ np.array([sprite_w / 2, sprite_h / 2])

        # Only warp the part of the bitmap the rotated sprite can touch
        corners = np.array([[0, 0, 1], [sprite_w, 0, 1], [0, sprite_h, 1], [sprite_w, sprite_h, 1]],
                           dtype=np.float64) @ matrix.T
        bitmap_h, bitmap_w = bitmap.shape[:2]
        x0 = max(0, int(math.floor(corners[:, 0].min())) - 1)
        y0 = max(0, int(math.floor(corners[:, 1].min())) - 1)
        x1 = min(bitmap_w, int(math.ceil(corners[:, 0].max())) + 1)
        y1 = min(bitmap_h, int(math.ceil(corners[:, 1].max())) + 1)
        if x0 >= x1 or y0 >= y1:
            return
        matrix[:, 2] -= (x0, y0)

        # Premultiply so transparent edges don't bleed black when resampled
        alpha = sprite[..., 3:4].astype(np.float32) / 255.0
        premultiplied = np.dstack([sprite[..., :3].astype(np.float32) * alpha, alpha * 255.0])

        warped = cv2.warpAffine(premultiplied, matrix, (x1 - x0, y1 - y0),
                                flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT,
                                borderValue=(0, 0, 0, 0))

        warped_a = warped[..., 3:4] / 255.0
        layer_rgb = np.divide(warped[..., :3], warped_a,
                              out=np.zeros_like(warped[..., :3]), where=warped_a > 1e-6)
        layer = np.dstack([layer_rgb, warped[..., 3:4]])
        composite_over(bitmap[y0:y1, x0:x1], np.clip(np.rint(layer), 0, 255).astype(np.uint8))


def create_renderer(config: Config, assets: Optional[ChinAssets] = None) -> ChinRenderer:
    """Build the renderer selected in the configuration."""
    if config.renderer == "procedural":
        logger.info("Using procedural chin renderer")
        return ProceduralChinRenderer(config.outline_color, config.stroke_width)

    if config.renderer == "asset":
        if assets is None:
            assets = ChinAssets.load(config.mask_asset, config.outline_asset)
            if not assets.is_ready:
                logger.warning("Chin assets unavailable, using built-in procedural artwork")
                width, height = config.procedural_asset_size
                assets = ChinAssets.from_procedural(width, height, config.stroke_width)
        logger.info("Using asset chin renderer")
        return AssetChinRenderer(assets)

    raise ValueError(f"Unsupported renderer: {config.renderer}")
