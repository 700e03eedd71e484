"""
Lanczos4 document scaling.

Resamples with OpenCV's 8x8 Lanczos kernel, wrapped in two filters that
keep its ringing in check:

1. A Gaussian pre-filter whose kernel grows with image size
2. A bilateral post-filter whose strength grows with image size

Large reductions can optionally go through iterative area-averaged steps
before the final Lanczos pass, which avoids the aliasing a single
large-ratio resize produces.
"""

from __future__ import annotations

import logging
import math

import cv2
import numpy as np

from config import (
    LANCZOS_DPI_RATIO_RANGE,
    LANCZOS_ITERATIVE_MAX_STEPS,
    LANCZOS_ITERATIVE_STEP,
    LANCZOS_POSTFILTER_LARGE,
    LANCZOS_POSTFILTER_SETTINGS,
    LANCZOS_PREFILTER_KERNELS,
    LANCZOS_PREFILTER_LARGE_KERNEL,
    LANCZOS_PREFILTER_MIN_SIDE,
    LANCZOS_SCALE_RANGE,
)

from ..errors import InvalidInput
from ..images import to_grayscale, validate_image
from .base import Transformation, TransformationKind
from .params import Lanczos4Parameters

logger = logging.getLogger(__name__)

# Iterative mode only kicks in below this scale factor
ITERATIVE_THRESHOLD = 0.5


def dpi_scale_factor(target_dpi: float, original_dpi: float) -> float | None:
    """target_dpi / original_dpi, or None if the ratio is not usable."""
    if not (math.isfinite(target_dpi) and math.isfinite(original_dpi)):
        return None
    if target_dpi <= 0 or original_dpi <= 0:
        return None
    ratio = target_dpi / original_dpi
    low, high = LANCZOS_DPI_RATIO_RANGE
    if not (low < ratio < high):
        return None
    return ratio


def resolve_scale_factor(params: Lanczos4Parameters) -> float:
    """Scale factor from the DPI pair when use_dpi is set, else the explicit one."""
    if params.use_dpi:
        ratio = dpi_scale_factor(params.target_dpi, params.original_dpi)
        if ratio is not None:
            logger.debug(
                "Scale factor %.3f from %.0f DPI -> %.0f DPI",
                ratio,
                params.original_dpi,
                params.target_dpi,
            )
            return ratio
        logger.debug(
            "DPI ratio %.0f/%.0f unusable, falling back to scale_factor=%.3f",
            params.target_dpi,
            params.original_dpi,
            params.scale_factor,
        )
    return params.scale_factor


def target_size(width: int, height: int, scale: float, max_dimension: int) -> tuple[int, int]:
    """Validate a scale factor and return the rounded (width, height) it produces.

    Raises:
        InvalidInput: If the factor is not finite, not positive, outside the
                      supported range, or the result is empty or larger
                      than max_dimension on either side.
    """
    if not math.isfinite(scale) or scale <= 0:
        raise InvalidInput(f"Invalid scale factor: {scale}")
    low, high = LANCZOS_SCALE_RANGE
    if not (low <= scale <= high):
        raise InvalidInput(f"Scale factor {scale:.4g} outside [{low}, {high}]")

    new_width = int(round(width * scale))
    new_height = int(round(height * scale))
    if new_width <= 0 or new_height <= 0:
        raise InvalidInput(f"Scaled size {new_width}x{new_height} is empty")
    if new_width > max_dimension or new_height > max_dimension:
        raise InvalidInput(
            f"Scaled size {new_width}x{new_height} exceeds {max_dimension} px per side"
        )
    return new_width, new_height


def prefilter(gray: np.ndarray) -> np.ndarray:
    """Gaussian blur sized to the image; small images are copied unchanged."""
    min_side = min(gray.shape[:2])
    if min_side < LANCZOS_PREFILTER_MIN_SIDE:
        return gray.copy()

    kernel = LANCZOS_PREFILTER_LARGE_KERNEL
    for limit, size in LANCZOS_PREFILTER_KERNELS:
        if min_side < limit:
            kernel = size
            break
    sigma = kernel / 6.0
    logger.debug("Pre-filter: Gaussian %dx%d sigma=%.2f", kernel, kernel, sigma)
    return cv2.GaussianBlur(gray, (kernel, kernel), sigma)


def postfilter(gray: np.ndarray) -> np.ndarray:
    """Bilateral smoothing with strength scaled to the image size."""
    min_side = min(gray.shape[:2])
    diameter, sigma_color, sigma_space = LANCZOS_POSTFILTER_LARGE
    for limit, d, color, space in LANCZOS_POSTFILTER_SETTINGS:
        if min_side < limit:
            diameter, sigma_color, sigma_space = d, color, space
            break
    logger.debug(
        "Post-filter: bilateral d=%d sigma_color=%.0f sigma_space=%.0f",
        diameter,
        sigma_color,
        sigma_space,
    )
    return cv2.bilateralFilter(gray, diameter, sigma_color, sigma_space)


def iterative_downscale(gray: np.ndarray, width: int, height: int) -> np.ndarray:
    """Shrink by area averaging in fixed steps, then finish with Lanczos.

    Steps of LANCZOS_ITERATIVE_STEP continue until the image is within 2x
    of the target on both sides (or the step cap is reached).
    """
    current = gray
    current_height, current_width = gray.shape[:2]

    steps = 0
    while steps < LANCZOS_ITERATIVE_MAX_STEPS and (
        current_width > width * 2 or current_height > height * 2
    ):
        next_width = max(int(current_width * LANCZOS_ITERATIVE_STEP), width)
        next_height = max(int(current_height * LANCZOS_ITERATIVE_STEP), height)
        if next_width >= current_width or next_height >= current_height:
            break
        steps += 1
        logger.debug(
            "Iterative step %d: %dx%d -> %dx%d",
            steps,
            current_width,
            current_height,
            next_width,
            next_height,
        )
        current = cv2.resize(current, (next_width, next_height), interpolation=cv2.INTER_AREA)
        current_width, current_height = next_width, next_height

    return cv2.resize(current, (width, height), interpolation=cv2.INTER_LANCZOS4)


class Lanczos4Scaler(Transformation):
    """Scale a document image with a Lanczos4 kernel.

    Output is single-channel uint8, so it feeds directly into binarization.
    The preview path caps the scale factor at
    PipelineConfig.preview_max_scale_factor and is otherwise identical.
    """

    kind = TransformationKind.LANCZOS4
    parameters_model = Lanczos4Parameters

    @property
    def name(self) -> str:
        return "Lanczos4 Scaling"

    def effective_scale_factor(self, preview: bool = False) -> float:
        """Scale factor the next apply (or apply_preview) call would use."""
        scale = resolve_scale_factor(self.snapshot())
        if preview:
            scale = min(scale, self.config.preview_max_scale_factor)
        return scale

    def _apply(self, img: np.ndarray, params: Lanczos4Parameters, preview: bool) -> np.ndarray:
        validate_image(img)
        scale = resolve_scale_factor(params)
        if preview:
            scale = min(scale, self.config.preview_max_scale_factor)

        height, width = img.shape[:2]
        new_width, new_height = target_size(
            width, height, scale, self.config.max_scaled_dimension
        )
        iterative = params.use_iterative_downscale and scale < ITERATIVE_THRESHOLD
        try:
            return self.scale(img, new_width, new_height, iterative)
        except cv2.error:
            logger.exception(
                "%s: OpenCV primitive failed scaling %dx%d -> %dx%d",
                self.name,
                width,
                height,
                new_width,
                new_height,
            )
            raise

    def scale(self, img: np.ndarray, width: int, height: int, iterative: bool = False) -> np.ndarray:
        """Convert to gray, pre-filter, resize to (width, height), post-filter."""
        gray = prefilter(to_grayscale(img))
        logger.debug(
            "%s: %dx%d -> %dx%d%s",
            self.name,
            gray.shape[1],
            gray.shape[0],
            width,
            height,
            " (iterative)" if iterative else "",
        )
        if iterative:
            resized = iterative_downscale(gray, width, height)
        else:
            resized = cv2.resize(gray, (width, height), interpolation=cv2.INTER_LANCZOS4)
        return postfilter(resized)
