"""
Full-reference image quality metrics.

All functions are pure and read-only. Where one image is grayscale and the
other BGR, the grayscale one is converted up before comparing.

psnr() and ssim() are the pipeline's display metrics: they never raise on
mismatched inputs and report 0 instead. The remaining metrics raise
ValueError when they are undefined for the inputs given, and
MetricsEvaluator.calculate_all() skips those.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

import cv2
import numpy as np

from config import (
    METRIC_PEAK_VALUE,
    PSNR_MAX_DB,
    PSNR_MSE_EPSILON,
    SSIM_K1,
    SSIM_K2,
    SSIM_SIGMA,
    SSIM_WINDOW_SIZE,
)

from .images import is_empty, match_channels, same_dimensions, to_grayscale

logger = logging.getLogger(__name__)

MetricFn = Callable[[np.ndarray, np.ndarray], float]


@dataclass(frozen=True)
class QualityReport:
    """PSNR and SSIM of a processed image against its original."""

    psnr: float
    ssim: float


@dataclass(frozen=True)
class MetricInfo:
    """Description of a registered metric."""

    name: str
    description: str
    value_range: tuple[float, float]
    higher_is_better: bool


def _comparable(a: np.ndarray, b: np.ndarray) -> bool:
    if is_empty(a) or is_empty(b):
        return False
    if not same_dimensions(a, b):
        logger.debug("Dimension mismatch: %s vs %s", a.shape[:2], b.shape[:2])
        return False
    return True


def _require_comparable(a: np.ndarray, b: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    if is_empty(a) or is_empty(b):
        raise ValueError("Cannot compare empty images")
    if not same_dimensions(a, b):
        raise ValueError(f"Image dimensions differ: {a.shape[:2]} vs {b.shape[:2]}")
    return match_channels(a, b)


def _squared_error(a: np.ndarray, b: np.ndarray) -> float:
    diff = a.astype(np.float64) - b.astype(np.float64)
    return float(np.mean(diff * diff))


def mse(a: np.ndarray, b: np.ndarray) -> float:
    """Mean squared error.

    Raises:
        ValueError: If either image is empty or the dimensions differ.
    """
    a, b = _require_comparable(a, b)
    return _squared_error(a, b)


def psnr(a: np.ndarray, b: np.ndarray) -> float:
    """Peak signal-to-noise ratio in dB.

    Identical images report PSNR_MAX_DB instead of infinity. Empty or
    dimension-mismatched inputs report 0.
    """
    if not _comparable(a, b):
        return 0.0
    a, b = match_channels(a, b)
    error = _squared_error(a, b)
    if error < PSNR_MSE_EPSILON:
        return PSNR_MAX_DB
    value = 20.0 * math.log10(METRIC_PEAK_VALUE) - 10.0 * math.log10(error)
    return min(value, PSNR_MAX_DB)


def _ssim_map(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    c1 = (SSIM_K1 * METRIC_PEAK_VALUE) ** 2
    c2 = (SSIM_K2 * METRIC_PEAK_VALUE) ** 2
    window = (SSIM_WINDOW_SIZE, SSIM_WINDOW_SIZE)

    mu_x = cv2.GaussianBlur(x, window, SSIM_SIGMA)
    mu_y = cv2.GaussianBlur(y, window, SSIM_SIGMA)
    mu_xx = mu_x * mu_x
    mu_yy = mu_y * mu_y
    mu_xy = mu_x * mu_y

    sigma_xx = cv2.GaussianBlur(x * x, window, SSIM_SIGMA) - mu_xx
    sigma_yy = cv2.GaussianBlur(y * y, window, SSIM_SIGMA) - mu_yy
    sigma_xy = cv2.GaussianBlur(x * y, window, SSIM_SIGMA) - mu_xy

    numerator = (2.0 * mu_xy + c1) * (2.0 * sigma_xy + c2)
    denominator = (mu_xx + mu_yy + c1) * (sigma_xx + sigma_yy + c2)
    return numerator / denominator


def ssim(a: np.ndarray, b: np.ndarray) -> float:
    """Mean structural similarity over Gaussian-weighted local windows.

    Color images are scored per channel and averaged. The result is
    clamped to [0, 1]; empty or dimension-mismatched inputs report 0.
    """
    if not _comparable(a, b):
        return 0.0
    a, b = match_channels(a, b)
    if a.ndim == 2:
        a, b = a[:, :, None], b[:, :, None]

    scores = []
    for c in range(a.shape[2]):
        x = np.ascontiguousarray(a[:, :, c], dtype=np.float64)
        y = np.ascontiguousarray(b[:, :, c], dtype=np.float64)
        scores.append(np.mean(_ssim_map(x, y)))
    value = float(np.mean(scores))
    return min(max(value, 0.0), 1.0)


def ssim_global(a: np.ndarray, b: np.ndarray) -> float:
    """SSIM from whole-image statistics, clamped to [-1, 1].

    Empty or dimension-mismatched inputs report 0.
    """
    if not _comparable(a, b):
        return 0.0
    a, b = match_channels(a, b)
    x = a.astype(np.float64)
    y = b.astype(np.float64)
    c1 = (SSIM_K1 * METRIC_PEAK_VALUE) ** 2
    c2 = (SSIM_K2 * METRIC_PEAK_VALUE) ** 2

    mu_x, mu_y = x.mean(), y.mean()
    var_x, var_y = x.var(), y.var()
    cov = float(np.mean((x - mu_x) * (y - mu_y)))

    value = ((2 * mu_x * mu_y + c1) * (2 * cov + c2)) / (
        (mu_x**2 + mu_y**2 + c1) * (var_x + var_y + c2)
    )
    return min(max(float(value), -1.0), 1.0)


def _binarize(img: np.ndarray) -> np.ndarray:
    gray = to_grayscale(img)
    if np.isin(gray, (0, 255)).all():
        return gray
    _, binary = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    return binary


def f_measure(reference: np.ndarray, candidate: np.ndarray) -> float:
    """F-measure of ink detection, with dark (0) pixels as foreground.

    Images that are not already 0/255 are binarized with a global Otsu
    threshold first. Returns 0 when precision or recall is undefined.

    Raises:
        ValueError: If either image is empty or the dimensions differ.
    """
    _require_comparable(reference, candidate)
    ref_ink = _binarize(reference) == 0
    cand_ink = _binarize(candidate) == 0

    true_positive = int(np.count_nonzero(ref_ink & cand_ink))
    predicted = int(np.count_nonzero(cand_ink))
    actual = int(np.count_nonzero(ref_ink))
    if true_positive == 0 or predicted == 0 or actual == 0:
        return 0.0

    precision = true_positive / predicted
    recall = true_positive / actual
    return 2.0 * precision * recall / (precision + recall)


def contrast_ratio(reference: np.ndarray, candidate: np.ndarray) -> float:
    """Ratio of intensity standard deviations, candidate over reference.

    A flat reference reports 1.0.
    """
    if is_empty(reference) or is_empty(candidate):
        raise ValueError("Cannot compare empty images")
    ref_std = float(np.std(to_grayscale(reference).astype(np.float64)))
    cand_std = float(np.std(to_grayscale(candidate).astype(np.float64)))
    if ref_std == 0.0:
        return 1.0
    return cand_std / ref_std


def _laplacian_variance(img: np.ndarray) -> float:
    return float(cv2.Laplacian(to_grayscale(img), cv2.CV_64F).var())


def sharpness(reference: np.ndarray, candidate: np.ndarray) -> float:
    """Ratio of Laplacian variances, candidate over reference.

    A reference without edges reports 1.0.
    """
    if is_empty(reference) or is_empty(candidate):
        raise ValueError("Cannot compare empty images")
    ref_var = _laplacian_variance(reference)
    if ref_var == 0.0:
        return 1.0
    return _laplacian_variance(candidate) / ref_var


class MetricsEvaluator:
    """Registry of named quality metrics.

    Comes with psnr, ssim, mse, f_measure, contrast_ratio and sharpness
    registered. Each metric is called as fn(reference, candidate).
    """

    def __init__(self) -> None:
        self._metrics: dict[str, tuple[MetricFn, MetricInfo]] = {}
        self.register(
            psnr,
            MetricInfo("psnr", "Peak signal-to-noise ratio (dB)", (0.0, PSNR_MAX_DB), True),
        )
        self.register(
            ssim,
            MetricInfo("ssim", "Structural similarity index", (0.0, 1.0), True),
        )
        self.register(
            mse,
            MetricInfo("mse", "Mean squared error", (0.0, METRIC_PEAK_VALUE**2), False),
        )
        self.register(
            f_measure,
            MetricInfo("f_measure", "Ink detection F-measure", (0.0, 1.0), True),
        )
        self.register(
            contrast_ratio,
            MetricInfo("contrast_ratio", "Intensity std ratio", (0.0, math.inf), True),
        )
        self.register(
            sharpness,
            MetricInfo("sharpness", "Laplacian variance ratio", (0.0, math.inf), True),
        )

    def register(self, fn: MetricFn, info: MetricInfo) -> None:
        """Add or replace a metric under info.name."""
        self._metrics[info.name] = (fn, info)

    def names(self) -> list[str]:
        return list(self._metrics)

    def info(self, name: str) -> MetricInfo:
        return self._metrics[name][1]

    def calculate(self, name: str, reference: np.ndarray, candidate: np.ndarray) -> float:
        """Compute one metric.

        Raises:
            KeyError: If no metric is registered under name.
            ValueError: If the metric is undefined for these inputs.
        """
        if name not in self._metrics:
            raise KeyError(f"Unknown metric: {name}")
        fn, _ = self._metrics[name]
        return fn(reference, candidate)

    def calculate_all(self, reference: np.ndarray, candidate: np.ndarray) -> dict[str, float]:
        """Compute every registered metric, skipping ones that raise ValueError."""
        results = {}
        for name, (fn, _) in self._metrics.items():
            try:
                results[name] = fn(reference, candidate)
            except ValueError as e:
                logger.debug("Skipping metric %s: %s", name, e)
        return results
