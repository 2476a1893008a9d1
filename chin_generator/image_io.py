"""
Bitmap loading and export for the Balls-Chin Generator.

Photos are decoded into RGBA numpy bitmaps; results are encoded as PNG.
Decode failures are left to imageio to report.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np
import imageio.v3 as iio

logger = logging.getLogger(__name__)


def to_rgba(image: np.ndarray) -> np.ndarray:
    """Normalize a decoded image (gray, RGB or RGBA) to an RGBA uint8 bitmap."""
    if image.ndim == 2:
        image = np.stack([image] * 3, axis=-1)
    if image.dtype != np.uint8:
        image = np.clip(image, 0, 255).astype(np.uint8)
    if image.shape[2] == 3:
        alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
        image = np.concatenate([image, alpha], axis=2)
    return np.ascontiguousarray(image[..., :4])


def decode_image(data: bytes) -> np.ndarray:
    """Decode raw image file bytes into an RGBA bitmap."""
    image = iio.imread(data, index=0, mode="RGBA")
    logger.debug(f"Decoded {len(data)} bytes into {image.shape[1]}x{image.shape[0]} bitmap")
    return to_rgba(image)


def load_image(source: Union[str, Path, bytes]) -> np.ndarray:
    """Load a photo from a path or from raw bytes."""
    if isinstance(source, (bytes, bytearray)):
        return decode_image(bytes(source))
    return decode_image(Path(source).read_bytes())


def encode_png(bitmap: np.ndarray) -> bytes:
    """Lossless PNG encoding of an RGBA bitmap."""
    return iio.imwrite("<bytes>", bitmap, extension=".png")


def save_png(bitmap: np.ndarray, path: Union[str, Path]) -> Path:
    """Write an RGBA bitmap to disk as PNG."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(encode_png(bitmap))
    logger.info(f"Saved {path}")
    return path
