"""
Package initialization for the Balls-Chin Generator modules.
"""

# Import main classes for easy access
from .config import Config, load_config
from .color_sampler import ColorSampler
from .landmarks import FaceBox, LandmarkSet, FaceMeshDetector, detect_landmarks
from .placement import PlacementParams, PlacementRect, detected_placement, fallback_placement
from .renderers import (
    ChinRenderer,
    ProceduralChinRenderer,
    AssetChinRenderer,
    ChinAssets,
    create_renderer,
)
from .session import ChinSession, GenerateResult

__version__ = "1.0.0"
__author__ = "Balls-Chin Generator"

__all__ = [
    'Config',
    'load_config',
    'ColorSampler',
    'FaceBox',
    'LandmarkSet',
    'FaceMeshDetector',
    'detect_landmarks',
    'PlacementParams',
    'PlacementRect',
    'detected_placement',
    'fallback_placement',
    'ChinRenderer',
    'ProceduralChinRenderer',
    'AssetChinRenderer',
    'ChinAssets',
    'create_renderer',
    'ChinSession',
    'GenerateResult',
]
