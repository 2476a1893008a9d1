"""
Face landmark handling for the Balls-Chin Generator.

This module handles:
- The landmark set returned by the face detector (normalized points)
- Conversion to a pixel-space face bounding box
- Eye-line angle estimation for face-aligned overlays
- The MediaPipe Face Mesh detector adapter and its async, timeout-bounded call
"""

import asyncio
import math
import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from .config import Config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FaceBox:
    """Pixel-space bounding box of all landmarks."""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @property
    def center_x(self) -> float:
        return (self.min_x + self.max_x) / 2


@dataclass(frozen=True)
class LandmarkSet:
    """Ordered, normalized (x, y) facial keypoints for one face."""
    points: Tuple[Tuple[float, float], ...]

    @classmethod
    def from_normalized(cls, points: Iterable[Tuple[float, float]]) -> "LandmarkSet":
        return cls(points=tuple((float(x), float(y)) for x, y in points))

    def __len__(self) -> int:
        return len(self.points)

    def bounding_box(self, image_width: int, image_height: int) -> FaceBox:
        """Min/max of all landmarks in pixel space."""
        if not self.points:
            raise ValueError("Cannot compute a bounding box of an empty landmark set")
        xs = [x * image_width for x, _ in self.points]
        ys = [y * image_height for _, y in self.points]
        return FaceBox(min(xs), min(ys), max(xs), max(ys))

    def eye_angle(self, image_width: int, image_height: int,
                  left_index: int = 33, right_index: int = 263) -> float:
        """
        Angle of the eye line in radians, measured in pixel space.

        Returns 0.0 when the set is too short to contain both eye points.
        """
        if len(self.points) <= max(left_index, right_index):
            return 0.0
        left_x, left_y = self.points[left_index]
        right_x, right_y = self.points[right_index]
        dx = (right_x - left_x) * image_width
        dy = (right_y - left_y) * image_height
        return math.atan2(dy, dx)


class FaceMeshDetector:
    """Single-face landmark detector backed by MediaPipe Face Mesh."""

    def __init__(self, config: Config):
        self.config = config
        self.face_mesh = None

        if config.use_detector:
            self._load_face_mesh()

    def _load_face_mesh(self):
        """Load the MediaPipe Face Mesh model."""
        try:
            import mediapipe as mp

            self.face_mesh = mp.solutions.face_mesh.FaceMesh(
                static_image_mode=True,
                max_num_faces=self.config.max_num_faces,
                refine_landmarks=self.config.refine_landmarks,
                min_detection_confidence=self.config.min_detection_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
            )
            logger.info("Loaded MediaPipe Face Mesh detector")

        except (ImportError, AttributeError) as e:
            logger.warning(f"MediaPipe Face Mesh not available ({e})")
            logger.warning("Every run will use the fallback chin position")
            self.face_mesh = None

    @property
    def available(self) -> bool:
        return self.face_mesh is not None

    def detect(self, bitmap: np.ndarray) -> Optional[LandmarkSet]:
        """
        Run the detector on an RGBA bitmap.

        Returns:
            Landmarks of the first face, or None when no face was found
        """
        if self.face_mesh is None:
            return None

        rgb = cv2.cvtColor(bitmap, cv2.COLOR_RGBA2RGB)
        results = self.face_mesh.process(rgb)

        if not results.multi_face_landmarks:
            return None

        face = results.multi_face_landmarks[0]
        landmarks = LandmarkSet.from_normalized((lm.x, lm.y) for lm in face.landmark)
        logger.debug(f"Detected {len(landmarks)} landmarks")
        return landmarks if len(landmarks) else None

    def close(self):
        """Release the MediaPipe graph."""
        if self.face_mesh is not None:
            self.face_mesh.close()
            self.face_mesh = None


async def detect_landmarks(detector, bitmap: np.ndarray, timeout: Optional[float] = None,
                           lock: Optional[threading.Lock] = None) -> Optional[LandmarkSet]:
    """
    Run a detector off the event loop and wait for its result.

    Any object with a ``detect(bitmap)`` method works as the detector.
    Exceptions from the detector propagate; so does ``asyncio.TimeoutError``
    when ``timeout`` elapses first. A timed-out call keeps running in its
    worker thread, so pass the same ``lock`` to every call sharing a detector
    to keep those calls from overlapping.
    """
    if detector is None:
        return None

    def run():
        if lock is None:
            return detector.detect(bitmap)
        with lock:
            return detector.detect(bitmap)

    return await asyncio.wait_for(asyncio.to_thread(run), timeout)
