"""
Orientation normalizer.

Applies the EXIF orientation code to a raw pixel grid so sampling always
runs on the upright (canonical) image the capture side saw.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

EXIF_ORIENTATION_TAG = 0x0112

# code -> (number of counter-clockwise quarter turns for np.rot90, description)
ORIENTATION_TRANSFORMS = {
    1: (0, 'No rotation'),
    3: (2, '180° rotation'),
    6: (-1, '90° CW rotation'),
    8: (1, '270° CW rotation'),
}


@dataclass(frozen=True)
class CanonicalImage:
    """Upright RGB grid, shape (height, width, 3), uint8"""
    pixels: np.ndarray
    width: int
    height: int

    @property
    def size(self):
        return self.width, self.height


def as_rgb_grid(pixels) -> np.ndarray:
    """Coerce a grayscale, RGB or RGBA array to an (H, W, 3) uint8 grid"""
    arr = np.asarray(pixels)
    if arr.ndim == 2:
        arr = np.stack([arr, arr, arr], axis=-1)
    if arr.ndim != 3 or arr.shape[2] < 3:
        raise ValueError(f"Expected an (H, W), (H, W, 3) or (H, W, 4) pixel grid, got shape {arr.shape}")
    arr = arr[:, :, :3]
    if arr.dtype != np.uint8:
        if arr.size and (arr.min() < 0 or arr.max() > 255):
            raise ValueError("Pixel channel values must be in [0, 255]")
        arr = arr.astype(np.uint8)
    return arr


def normalize(pixels, orientation: Optional[int] = None) -> CanonicalImage:
    """Rotate a raw grid into canonical orientation. Unknown codes fall back to identity."""
    grid = as_rgb_grid(pixels)
    if orientation is None:
        turns, description = ORIENTATION_TRANSFORMS[1]
    elif orientation in ORIENTATION_TRANSFORMS:
        turns, description = ORIENTATION_TRANSFORMS[orientation]
    else:
        logger.warning(f"Unknown EXIF orientation {orientation!r}, treating image as upright")
        turns, description = ORIENTATION_TRANSFORMS[1]

    if turns:
        grid = np.ascontiguousarray(np.rot90(grid, k=turns))
    # read-only for the rest of the run
    grid.setflags(write=False)

    height, width = grid.shape[:2]
    logger.debug(f"Applied: {description}; canonical size {width}x{height}")
    return CanonicalImage(grid, width, height)


def read_exif_orientation(image: Image.Image) -> Optional[int]:
    """Orientation code stored in the image container, if any"""
    try:
        value = image.getexif().get(EXIF_ORIENTATION_TAG)
    except (AttributeError, OSError, SyntaxError) as e:
        logger.debug(f"Could not read EXIF data: {e}")
        return None
    return int(value) if value is not None else None
