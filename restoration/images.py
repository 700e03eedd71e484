"""
Image matrix helpers for the restoration pipeline.

Images are numpy arrays in OpenCV layout: (H, W) for grayscale and
(H, W, 3) in BGR order for color, always uint8. OpenCV supplies color
conversion, filtering and resizing; this module only validates, normalizes
and bridges channel counts.

All functions are pure: they return new arrays and never mutate their input.
"""

from __future__ import annotations

import cv2
import numpy as np

from .errors import InvalidInput, UnsupportedConversion


def is_empty(img: np.ndarray | None) -> bool:
    """True for None, non-arrays and arrays without pixels."""
    return not isinstance(img, np.ndarray) or img.size == 0


def channel_count(img: np.ndarray) -> int:
    """Number of channels of a (H, W) or (H, W, C) array."""
    return 1 if img.ndim == 2 else img.shape[2]


def validate_image(img: np.ndarray, max_dimension: int | None = None) -> None:
    """Check that an array is a usable 8-bit gray or BGR image.

    Args:
        img: Candidate image.
        max_dimension: Optional upper bound for width and height.

    Raises:
        InvalidInput: If img is not an array, is empty, has the wrong number
                      of dimensions, or exceeds max_dimension.
        UnsupportedConversion: If the dtype is not uint8 or the channel count
                               is not 1 or 3.
    """
    if not isinstance(img, np.ndarray):
        raise InvalidInput(f"Expected numpy.ndarray, got {type(img).__name__}")

    if img.size == 0:
        raise InvalidInput("Image array is empty")

    if img.ndim < 2 or img.ndim > 3:
        raise InvalidInput(
            f"Image must be 2D or 3D array, got {img.ndim}D array with shape {img.shape}"
        )

    height, width = img.shape[:2]
    if max_dimension is not None and (width > max_dimension or height > max_dimension):
        raise InvalidInput(
            f"Invalid image dimensions: {width}x{height} (max: {max_dimension})"
        )

    if img.dtype != np.uint8:
        raise UnsupportedConversion(f"Expected uint8 image, got dtype {img.dtype}")

    channels = channel_count(img)
    if channels not in (1, 3):
        raise UnsupportedConversion(
            f"Unsupported number of channels: {channels}. Expected 1 or 3 (BGR)."
        )


def normalize_image(img: np.ndarray) -> np.ndarray:
    """Return a contiguous uint8 copy in (H, W) or (H, W, 3) layout.

    Bridges the layouts OpenCV decoders commonly hand out:
    - (H, W, 1) is squeezed to (H, W)
    - (H, W, 4) BGRA drops its alpha channel
    - bool masks become 0/255
    - uint16 is scaled down to 8 bits

    Raises:
        InvalidInput: If img is not a non-empty 2D or 3D array.
        UnsupportedConversion: For any other dtype or channel count.
    """
    if not isinstance(img, np.ndarray):
        raise InvalidInput(f"Expected numpy.ndarray, got {type(img).__name__}")
    if img.size == 0:
        raise InvalidInput("Image array is empty")
    if img.ndim < 2 or img.ndim > 3:
        raise InvalidInput(
            f"Image must be 2D or 3D array, got {img.ndim}D array with shape {img.shape}"
        )

    if img.dtype == np.bool_:
        result = img.astype(np.uint8) * 255
    elif img.dtype == np.uint16:
        result = (img // 257).astype(np.uint8)
    elif img.dtype == np.uint8:
        result = img.copy()
    else:
        raise UnsupportedConversion(f"Cannot convert dtype {img.dtype} to uint8")

    if result.ndim == 3:
        channels = result.shape[2]
        if channels == 1:
            result = result[:, :, 0]
        elif channels == 4:
            result = cv2.cvtColor(result, cv2.COLOR_BGRA2BGR)
        elif channels != 3:
            raise UnsupportedConversion(
                f"Unsupported number of channels: {channels}. Expected 1, 3 or 4."
            )

    return np.ascontiguousarray(result)


def to_grayscale(img: np.ndarray) -> np.ndarray:
    """Convert a BGR image to single-channel intensity; copy gray input."""
    if img.ndim == 2:
        return img.copy()
    if img.shape[2] == 1:
        return img[:, :, 0].copy()
    if img.shape[2] == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    raise UnsupportedConversion(
        f"Unsupported number of channels: {img.shape[2]}. Expected 1 or 3."
    )


def to_bgr(img: np.ndarray) -> np.ndarray:
    """Convert a grayscale image to 3-channel BGR; copy BGR input."""
    if img.ndim == 3 and img.shape[2] == 3:
        return img.copy()
    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2BGR)
    raise UnsupportedConversion(
        f"Unsupported number of channels: {img.shape[2]}. Expected 1 or 3."
    )


def match_channels(a: np.ndarray, b: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Bring two images to the same channel count.

    The image with fewer channels is converted up (gray -> BGR) so no color
    information is discarded.
    """
    channels_a = channel_count(a)
    channels_b = channel_count(b)
    if channels_a == channels_b:
        return a, b
    if channels_a < channels_b:
        return to_bgr(a), b
    return a, to_bgr(b)


def same_dimensions(a: np.ndarray, b: np.ndarray) -> bool:
    """True when both images have the same width and height."""
    return a.shape[:2] == b.shape[:2]
