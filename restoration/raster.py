"""Reading and writing single raster files (PNG, JPEG, TIFF, BMP) via OpenCV."""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import numpy as np

from .errors import InvalidInput
from .images import normalize_image, validate_image

logger = logging.getLogger(__name__)


def load_image(path: str | Path) -> np.ndarray:
    """Decode an image file into 8-bit gray or BGR.

    Alpha is dropped and 16-bit data is scaled to 8 bits.

    Raises:
        InvalidInput: If the file does not exist or cannot be decoded.
    """
    path = Path(path)
    if not path.is_file():
        raise InvalidInput(f"Image file not found: {path}")

    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise InvalidInput(f"Could not decode image: {path}")

    img = normalize_image(img)
    logger.debug("Loaded %s: %dx%d", path, img.shape[1], img.shape[0])
    return img


def save_image(img: np.ndarray, path: str | Path) -> Path:
    """Encode an image to path; the format follows the file extension.

    Parent directories are created as needed.

    Raises:
        InvalidInput: If img is not a usable image.
        OSError: If OpenCV cannot write the file.
    """
    validate_image(img)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        ok = cv2.imwrite(str(path), img)
    except cv2.error as e:
        raise OSError(f"Could not write image to {path}: {e}") from e
    if not ok:
        raise OSError(f"Could not write image to {path}")

    logger.debug("Saved %s: %dx%d", path, img.shape[1], img.shape[0])
    return path
