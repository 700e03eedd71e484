"""
Joint histogram and threshold-pair search for 2D Otsu binarization.

The joint histogram is indexed [intensity, guidance]. A threshold pair
(s, t) splits it into four quadrants:

    foreground   intensity <= s and guidance <= t
    background   intensity >  s and guidance >  t
    transition   the two remaining quadrants

Two searches evaluate the same score over all 256 x 256 pairs:

- search_thresholds_sweep(): sweeps s upward keeping running column sums,
  scoring one row of t values per step
- search_thresholds_integral(): builds summed-area tables once and scores
  every pair with constant-time rectangle queries

Both hand their score grid to the same selection rule, so they agree on
the winning pair for any histogram.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from config import (
    TWOD_OTSU_CLASS_WEIGHT_EPSILON,
    TWOD_OTSU_COHERENCE_FALLOFF,
    TWOD_OTSU_COHERENCE_WEIGHT,
    TWOD_OTSU_MIXED_PENALTY,
    TWOD_OTSU_SCORE_TIE_TOLERANCE,
)

logger = logging.getLogger(__name__)

LEVELS = 256
_LEVEL_VALUES = np.arange(LEVELS, dtype=np.float64)


@dataclass(frozen=True)
class ThresholdResult:
    """Winning threshold pair and the class centers it induces.

    Attributes:
        intensity_threshold: s, upper bound of foreground intensity.
        guidance_threshold: t, upper bound of foreground guidance.
        score: Score of the pair.
        foreground_center: Mean (intensity, guidance) of the foreground quadrant.
        background_center: Mean (intensity, guidance) of the background quadrant.
    """

    intensity_threshold: int
    guidance_threshold: int
    score: float
    foreground_center: tuple[float, float]
    background_center: tuple[float, float]

    @property
    def pair(self) -> tuple[int, int]:
        return self.intensity_threshold, self.guidance_threshold


def build_joint_histogram(gray: np.ndarray, guidance: np.ndarray) -> np.ndarray:
    """Normalized 256 x 256 histogram of (intensity, guidance) pairs.

    Returns:
        float64 array indexed [intensity, guidance] summing to 1.
    """
    if gray.shape != guidance.shape:
        raise ValueError(
            f"Intensity and guidance shapes differ: {gray.shape} vs {guidance.shape}"
        )
    codes = gray.ravel().astype(np.intp) * LEVELS + guidance.ravel()
    counts = np.bincount(codes, minlength=LEVELS * LEVELS).astype(np.float64)
    return counts.reshape(LEVELS, LEVELS) / gray.size


def summed_area_table(grid: np.ndarray) -> np.ndarray:
    """Inclusive 2D prefix sums: table[i, j] = grid[:i+1, :j+1].sum()."""
    return grid.cumsum(axis=0).cumsum(axis=1)


def _moment_grids(hist: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    return hist * _LEVEL_VALUES[:, None], hist * _LEVEL_VALUES[None, :]


def _safe_mean(moment: np.ndarray, weight: np.ndarray) -> np.ndarray:
    return np.divide(
        moment,
        weight,
        out=np.zeros_like(moment),
        where=weight > TWOD_OTSU_CLASS_WEIGHT_EPSILON,
    )


def _score(
    w0: np.ndarray,
    g0: np.ndarray,
    f0: np.ndarray,
    w3: np.ndarray,
    g3: np.ndarray,
    f3: np.ndarray,
    w_mixed: np.ndarray,
    diagonal_distance: np.ndarray,
) -> np.ndarray:
    """Score threshold pairs from quadrant masses and first moments.

    w0/g0/f0 are the foreground mass and its intensity/guidance moments,
    w3/g3/f3 the same for background. The score is the foreground-background
    separation w0 * w3 * |mu0 - mu3|^2, less a penalty proportional to the
    transition mass, plus a coherence bonus that decays with |s - t|.
    Pairs with an empty foreground or background score 0.
    """
    valid = (w0 > TWOD_OTSU_CLASS_WEIGHT_EPSILON) & (w3 > TWOD_OTSU_CLASS_WEIGHT_EPSILON)

    diff_g = _safe_mean(g0, w0) - _safe_mean(g3, w3)
    diff_f = _safe_mean(f0, w0) - _safe_mean(f3, w3)
    separation = diff_g * diff_g + diff_f * diff_f

    main = w0 * w3 * separation
    penalty = TWOD_OTSU_MIXED_PENALTY * np.maximum(w_mixed, 0.0) * separation
    coherence = (w0 + w3) / (1.0 + TWOD_OTSU_COHERENCE_FALLOFF * diagonal_distance)

    return np.where(valid, main - penalty + TWOD_OTSU_COHERENCE_WEIGHT * coherence, 0.0)


def _select_best(hist: np.ndarray, scores: np.ndarray) -> ThresholdResult:
    best = float(scores.max())
    tolerance = TWOD_OTSU_SCORE_TIE_TOLERANCE * max(1.0, abs(best))
    s, t = divmod(int(np.argmax(scores >= best - tolerance)), LEVELS)

    moment_g, moment_f = _moment_grids(hist)
    fg = (slice(0, s + 1), slice(0, t + 1))
    bg = (slice(s + 1, LEVELS), slice(t + 1, LEVELS))

    w0 = hist[fg].sum()
    w3 = hist[bg].sum()
    if w0 > TWOD_OTSU_CLASS_WEIGHT_EPSILON:
        foreground_center = (moment_g[fg].sum() / w0, moment_f[fg].sum() / w0)
    else:
        foreground_center = (0.0, 0.0)
    if w3 > TWOD_OTSU_CLASS_WEIGHT_EPSILON:
        background_center = (moment_g[bg].sum() / w3, moment_f[bg].sum() / w3)
    else:
        background_center = (float(LEVELS - 1), float(LEVELS - 1))

    return ThresholdResult(
        intensity_threshold=s,
        guidance_threshold=t,
        score=float(scores[s, t]),
        foreground_center=(float(foreground_center[0]), float(foreground_center[1])),
        background_center=(float(background_center[0]), float(background_center[1])),
    )


def search_thresholds_sweep(hist: np.ndarray) -> ThresholdResult:
    """Find the best (s, t) by sweeping s and scoring each row of t values.

    Args:
        hist: Normalized joint histogram from build_joint_histogram().
    """
    moment_g, moment_f = _moment_grids(hist)
    total = hist.sum()
    column_p = hist.sum(axis=0)
    column_g = moment_g.sum(axis=0)
    column_f = moment_f.sum(axis=0)

    running_p = np.zeros(LEVELS)
    running_g = np.zeros(LEVELS)
    running_f = np.zeros(LEVELS)
    thresholds_t = _LEVEL_VALUES

    scores = np.empty((LEVELS, LEVELS))
    for s in range(LEVELS):
        running_p += hist[s]
        running_g += moment_g[s]
        running_f += moment_f[s]

        w0 = np.cumsum(running_p)
        g0 = np.cumsum(running_g)
        f0 = np.cumsum(running_f)

        rest_p = column_p - running_p
        rest_g = column_g - running_g
        rest_f = column_f - running_f
        w3 = rest_p.sum() - np.cumsum(rest_p)
        g3 = rest_g.sum() - np.cumsum(rest_g)
        f3 = rest_f.sum() - np.cumsum(rest_f)

        scores[s] = _score(
            w0, g0, f0, w3, g3, f3, total - w0 - w3, np.abs(s - thresholds_t)
        )

    result = _select_best(hist, scores)
    logger.debug("Sweep search chose s=%d t=%d (score=%.6g)", *result.pair, result.score)
    return result


def search_thresholds_integral(hist: np.ndarray) -> ThresholdResult:
    """Find the best (s, t) with summed-area tables over the histogram.

    Every quadrant mass and moment is a constant-time rectangle query, so
    the whole 256 x 256 score grid is evaluated in one vectorized pass.

    Args:
        hist: Normalized joint histogram from build_joint_histogram().
    """
    moment_g, moment_f = _moment_grids(hist)
    tables = [summed_area_table(grid) for grid in (hist, moment_g, moment_f)]

    quadrants = []
    for table in tables:
        total = table[-1, -1]
        through_s = table[:, -1:]
        through_t = table[-1:, :]
        foreground = table
        background = total - through_s - through_t + table
        quadrants.append((foreground, background))

    (w0, w3), (g0, g3), (f0, f3) = quadrants
    w_mixed = tables[0][-1, -1] - w0 - w3
    diagonal = np.abs(_LEVEL_VALUES[:, None] - _LEVEL_VALUES[None, :])

    scores = _score(w0, g0, f0, w3, g3, f3, w_mixed, diagonal)
    result = _select_best(hist, scores)
    logger.debug("Integral search chose s=%d t=%d (score=%.6g)", *result.pair, result.score)
    return result


def search_thresholds(hist: np.ndarray, accelerated: bool = True) -> ThresholdResult:
    """Dispatch to the integral (accelerated) or sweep search."""
    if accelerated:
        return search_thresholds_integral(hist)
    return search_thresholds_sweep(hist)


def classify_pixels(
    gray: np.ndarray, guidance: np.ndarray, result: ThresholdResult
) -> np.ndarray:
    """Binarize pixels with a threshold pair.

    Foreground-quadrant pixels become 0 (ink), background-quadrant pixels
    255 (paper). Transition pixels go to whichever class center is nearer
    in (intensity, guidance) space; an exact tie counts as ink.

    Returns:
        (H, W) uint8 image containing only 0 and 255.
    """
    s, t = result.pair
    g = gray.astype(np.float64)
    f = guidance.astype(np.float64)

    foreground = (gray <= s) & (guidance <= t)
    background = (gray > s) & (guidance > t)

    fg_g, fg_f = result.foreground_center
    bg_g, bg_f = result.background_center
    closer_to_foreground = ((g - fg_g) ** 2 + (f - fg_f) ** 2) <= (
        (g - bg_g) ** 2 + (f - bg_f) ** 2
    )

    ink = foreground | (~background & closer_to_foreground)
    return np.where(ink, 0, 255).astype(np.uint8)
