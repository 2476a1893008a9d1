"""
Interactive session for the Balls-Chin Generator.

A session owns what the web page used to keep in globals: the uploaded photo,
the output canvas and the enabled state of the Generate/Download controls.
Its three actions mirror the page's events:

- load_image: a file was selected
- generate: place, tint and draw the chin (async, waits on the face detector)
- download: PNG bytes of the canvas with the fixed download filename
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Tuple, Union
from pathlib import Path

import numpy as np

from .config import Config
from .color_sampler import ColorSampler, RGB
from .image_io import load_image, encode_png
from .landmarks import FaceBox, LandmarkSet, detect_landmarks
from .placement import PlacementParams, PlacementRect, detected_placement, fallback_placement
from .renderers import ChinRenderer

logger = logging.getLogger(__name__)


@dataclass
class ControlState:
    """Enabled flags of the Generate and Download controls."""
    generate_enabled: bool = False
    download_enabled: bool = False


@dataclass
class GenerateResult:
    """What a generate run decided and drew."""
    path: str  # "detected" or "fallback"
    rect: PlacementRect
    sample_rect: Optional[PlacementRect]
    color: RGB
    angle: float = 0.0
    face_box: Optional[FaceBox] = None


def plan_overlay(bitmap: np.ndarray, landmarks: Optional[LandmarkSet], params: PlacementParams,
                 sampler: ColorSampler, config: Config) -> GenerateResult:
    """
    Work out where the chin goes, how it is rotated and what colour it gets.

    Pure with respect to the bitmap: nothing is drawn here.
    """
    height, width = bitmap.shape[:2]
    angle = 0.0
    face_box = None

    if landmarks:
        face_box = landmarks.bounding_box(width, height)
        rect = detected_placement(face_box, params)
        if config.face_aligned:
            angle = landmarks.eye_angle(width, height,
                                        config.left_eye_index, config.right_eye_index)
        path = "detected"
    else:
        rect = fallback_placement(width, height, params)
        path = "fallback"

    sample_rect = sampler.sample_region(bitmap, rect.x, rect.y, rect.width, rect.height)
    color = sampler.sample(bitmap, rect.x, rect.y, rect.width, rect.height)

    return GenerateResult(path=path, rect=rect, sample_rect=sample_rect, color=color,
                          angle=angle, face_box=face_box)


class ChinSession:
    """One user's photo, canvas and control state."""

    def __init__(self, config: Config, renderer: ChinRenderer, detector=None,
                 sampler: Optional[ColorSampler] = None):
        self.config = config
        self.renderer = renderer
        self.detector = detector
        self.sampler = sampler or ColorSampler.from_config(config)

        self.source: Optional[np.ndarray] = None
        self.canvas: Optional[np.ndarray] = None
        self.controls = ControlState()
        self.last_result: Optional[GenerateResult] = None

        self._generating = False
        # Held by the detector worker thread, which outlives a timed-out wait
        self._detector_lock = threading.Lock()

    def load_image(self, source: Union[str, Path, bytes, np.ndarray, None]) -> bool:
        """
        Load a new photo, replacing the previous one.

        Passing None behaves like clearing the file input: both controls are
        disabled. Ignored while a generate run is in progress. Returns whether
        a photo is loaded afterwards.
        """
        if self._generating:
            logger.warning("Photo change ignored while a chin is being generated")
            return self.source is not None

        if source is None:
            self.controls = ControlState(generate_enabled=False, download_enabled=False)
            return self.source is not None

        if isinstance(source, np.ndarray):
            bitmap = source
        else:
            bitmap = load_image(source)

        self.source = np.ascontiguousarray(bitmap).copy()
        self.canvas = self.source.copy()
        self.last_result = None
        self.controls = ControlState(generate_enabled=True, download_enabled=False)

        logger.info(f"Loaded photo {self.source.shape[1]}x{self.source.shape[0]}")
        return True

    async def _find_face(self, bitmap: np.ndarray) -> Optional[LandmarkSet]:
        """Detector result, or None on no face, error or timeout."""
        if self.detector is None:
            logger.info("No face detector configured, using fallback position")
            return None

        try:
            landmarks = await detect_landmarks(self.detector, bitmap, self.config.detector_timeout,
                                               lock=self._detector_lock)
        except asyncio.TimeoutError:
            logger.warning(f"Face detection timed out after {self.config.detector_timeout}s, "
                           f"using fallback position")
            return None
        except Exception:
            logger.exception("Face detection failed, using fallback position")
            return None

        if not landmarks:
            logger.info("No face detected, using fallback position")
            return None
        return landmarks

    async def generate(self, params: Optional[PlacementParams] = None) -> Optional[GenerateResult]:
        """
        Redraw the photo and put a tinted chin on it.

        Returns None when there is no photo or a run is already in progress.
        """
        if self.source is None:
            logger.warning("Generate requested before a photo was loaded")
            return None
        if not self.controls.generate_enabled:
            logger.warning("Generate already in progress, ignoring request")
            return None

        if params is None:
            params = PlacementParams(self.config.intensity, self.config.width_factor,
                                     self.config.vertical_offset)

        source = self.source
        self._generating = True
        self.controls = ControlState(generate_enabled=False, download_enabled=False)
        try:
            canvas = source.copy()
            self.canvas = canvas

            landmarks = await self._find_face(source)
            result = plan_overlay(canvas, landmarks, params, self.sampler, self.config)

            logger.info(f"Chin placement ({result.path}): x={result.rect.x:.1f} "
                        f"y={result.rect.y:.1f} w={result.rect.width:.1f} "
                        f"h={result.rect.height:.1f}, colour {result.color}")

            self.renderer.draw(canvas, result.rect, result.color, result.angle)
            self.last_result = result
            return result
        finally:
            self._generating = False
            self.controls = ControlState(generate_enabled=True, download_enabled=True)

    def download(self) -> Optional[Tuple[str, bytes]]:
        """Filename and PNG bytes of the current canvas, or None while Download is disabled."""
        if self.source is None or not self.controls.download_enabled:
            return None
        return self.config.output_filename, encode_png(self.canvas)
