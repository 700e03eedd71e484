"""
2D Otsu document binarization.

Separates ink from paper using two correlated channels: the intensity
image and a guided-filter guidance image. A threshold pair is chosen on
their joint histogram, pixels are classified by quadrant, and a
close-then-open pass removes speckle.

With region_count > 1 the image is cut into region_count x region_count
tiles and each tile gets its own guidance image and threshold pair, which
copes with uneven illumination at the cost of global consistency.
"""

from __future__ import annotations

import logging

import cv2
import numpy as np

from config import (
    TWOD_OTSU_BILATERAL_DIAMETER,
    TWOD_OTSU_BILATERAL_SIGMA,
    TWOD_OTSU_MEDIAN_KERNEL,
)

from ..images import to_grayscale, validate_image
from .base import Transformation, TransformationKind
from .guided_filter import guided_filter
from .params import TwoDOtsuParameters
from .threshold_search import build_joint_histogram, classify_pixels, search_thresholds

logger = logging.getLogger(__name__)


def reduce_noise(gray: np.ndarray) -> np.ndarray:
    """Edge-preserving bilateral smoothing followed by a small median filter.

    Targets the salt-and-pepper noise typical of scanned historical pages.
    """
    smoothed = cv2.bilateralFilter(
        gray,
        TWOD_OTSU_BILATERAL_DIAMETER,
        TWOD_OTSU_BILATERAL_SIGMA,
        TWOD_OTSU_BILATERAL_SIGMA,
    )
    return cv2.medianBlur(smoothed, TWOD_OTSU_MEDIAN_KERNEL)


def morphological_cleanup(binary: np.ndarray, kernel_size: int) -> np.ndarray:
    """Close then open with a square structuring element.

    Kernel sizes <= 1 return a copy unchanged.
    """
    if kernel_size <= 1:
        return binary.copy()
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (kernel_size, kernel_size))
    closed = cv2.morphologyEx(binary, cv2.MORPH_CLOSE, kernel)
    return cv2.morphologyEx(closed, cv2.MORPH_OPEN, kernel)


def tile_bounds(length: int, count: int) -> list[tuple[int, int]]:
    """Split [0, length) into count contiguous spans, dropping empty ones."""
    edges = [i * length // count for i in range(count + 1)]
    return [(lo, hi) for lo, hi in zip(edges, edges[1:]) if hi > lo]


class TwoDOtsuBinarizer(Transformation):
    """Binarize a document image with guided-filter 2D Otsu thresholding.

    Output is always a single-channel uint8 image containing only 0 (ink)
    and 255 (paper), at the input's width and height.

    The preview path runs the same algorithm on a linearly downsampled copy
    (PipelineConfig.preview_scale) and brings the result back to the source
    size with nearest-neighbor interpolation so it stays binary.
    """

    kind = TransformationKind.TWOD_OTSU
    parameters_model = TwoDOtsuParameters

    @property
    def name(self) -> str:
        return "2D Otsu"

    def _apply(self, img: np.ndarray, params: TwoDOtsuParameters, preview: bool) -> np.ndarray:
        validate_image(img)
        height, width = img.shape[:2]
        try:
            if preview and self.config.preview_scale < 1.0:
                return self._binarize_downsampled(img, params)
            return self.binarize(img, params)
        except cv2.error:
            logger.exception(
                "%s: OpenCV primitive failed on %dx%d input", self.name, width, height
            )
            raise

    def _binarize_downsampled(self, img: np.ndarray, params: TwoDOtsuParameters) -> np.ndarray:
        height, width = img.shape[:2]
        scale = self.config.preview_scale
        small_size = (max(1, int(width * scale)), max(1, int(height * scale)))
        small = cv2.resize(img, small_size, interpolation=cv2.INTER_LINEAR)
        logger.debug("%s preview at %dx%d", self.name, *small_size)

        binary = self.binarize(small, params)
        return cv2.resize(binary, (width, height), interpolation=cv2.INTER_NEAREST)

    def binarize(self, img: np.ndarray, params: TwoDOtsuParameters | None = None) -> np.ndarray:
        """Full-resolution binarization with the given (or current) parameters."""
        if params is None:
            params = self.snapshot()

        gray = to_grayscale(img)
        if params.noise_reduction:
            gray = reduce_noise(gray)

        if params.region_count > 1:
            binary = self._binarize_regions(gray, params)
        else:
            binary = self._binarize_region(gray, params)

        return morphological_cleanup(binary, params.morph_kernel_size)

    def _binarize_region(self, gray: np.ndarray, params: TwoDOtsuParameters) -> np.ndarray:
        guidance = guided_filter(gray, params.window_radius, params.epsilon)
        hist = build_joint_histogram(gray, guidance)
        result = search_thresholds(hist, accelerated=params.use_accelerated_search)
        logger.debug(
            "%dx%d region: s=%d t=%d fg_center=(%.1f, %.1f) bg_center=(%.1f, %.1f)",
            gray.shape[1],
            gray.shape[0],
            result.intensity_threshold,
            result.guidance_threshold,
            *result.foreground_center,
            *result.background_center,
        )
        return classify_pixels(gray, guidance, result)

    def _binarize_regions(self, gray: np.ndarray, params: TwoDOtsuParameters) -> np.ndarray:
        height, width = gray.shape
        binary = np.empty_like(gray)
        for y0, y1 in tile_bounds(height, params.region_count):
            for x0, x1 in tile_bounds(width, params.region_count):
                tile = np.ascontiguousarray(gray[y0:y1, x0:x1])
                binary[y0:y1, x0:x1] = self._binarize_region(tile, params)
        return binary
