"""
Tests for the guided filter, joint histogram, threshold searches and
pixel classification.
"""

import numpy as np
import pytest

from restoration.transformations.guided_filter import guided_filter
from restoration.transformations.threshold_search import (
    ThresholdResult,
    build_joint_histogram,
    classify_pixels,
    search_thresholds,
    search_thresholds_integral,
    search_thresholds_sweep,
    summed_area_table,
)


def bimodal_image(seed: int, shape=(64, 80), dark=50, light=200, sigma=12.0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    mask = rng.random(shape) < 0.3
    img = np.where(mask, dark, light) + rng.normal(0.0, sigma, size=shape)
    return np.clip(np.rint(img), 0, 255).astype(np.uint8)


class TestGuidedFilter:
    """Tests for guided_filter."""

    def test_shape_and_dtype(self):
        gray = bimodal_image(0)
        guidance = guided_filter(gray, 5, 0.02)
        assert guidance.shape == gray.shape
        assert guidance.dtype == np.uint8

    def test_flat_image_unchanged(self):
        flat = np.full((20, 20), 130, dtype=np.uint8)
        assert np.array_equal(guided_filter(flat, 3, 0.02), flat)

    def test_no_mutation(self):
        gray = bimodal_image(1)
        before = gray.copy()
        guided_filter(gray, 5, 0.02)
        assert np.array_equal(gray, before)

    def test_large_epsilon_smooths_more(self):
        gray = bimodal_image(2)
        sharp = guided_filter(gray, 3, 0.001).astype(np.float64)
        smooth = guided_filter(gray, 3, 1.0).astype(np.float64)
        assert smooth.std() < sharp.std()


class TestJointHistogram:
    """Tests for build_joint_histogram and summed_area_table."""

    def test_normalized(self):
        gray = bimodal_image(3)
        hist = build_joint_histogram(gray, guided_filter(gray, 5, 0.02))
        assert hist.shape == (256, 256)
        assert hist.sum() == pytest.approx(1.0)

    def test_indexed_intensity_then_guidance(self):
        gray = np.array([[0, 255]], dtype=np.uint8)
        guidance = np.array([[10, 200]], dtype=np.uint8)
        hist = build_joint_histogram(gray, guidance)
        assert hist[0, 10] == pytest.approx(0.5)
        assert hist[255, 200] == pytest.approx(0.5)

    def test_shape_mismatch_raises(self):
        with pytest.raises(ValueError, match="shapes differ"):
            build_joint_histogram(np.zeros((2, 2), np.uint8), np.zeros((2, 3), np.uint8))

    def test_summed_area_table_matches_direct_sums(self):
        rng = np.random.default_rng(4)
        grid = rng.random((256, 256))
        table = summed_area_table(grid)
        for i, j in [(0, 0), (10, 200), (255, 0), (128, 77), (255, 255)]:
            assert table[i, j] == pytest.approx(grid[: i + 1, : j + 1].sum())


class TestThresholdSearch:
    """Tests for the sweep and integral searches."""

    @pytest.mark.parametrize("seed", [0, 1, 2, 3])
    def test_searches_agree(self, seed):
        gray = bimodal_image(seed)
        hist = build_joint_histogram(gray, guided_filter(gray, 5, 0.02))

        sweep = search_thresholds_sweep(hist)
        integral = search_thresholds_integral(hist)

        assert sweep.pair == integral.pair
        assert sweep.score == pytest.approx(integral.score, rel=1e-9)

    def test_searches_agree_on_two_level_image(self):
        """Many tied pairs: both must pick the first in (s, t) order."""
        gray = np.zeros((40, 40), dtype=np.uint8)
        gray[:, 20:] = 255
        hist = build_joint_histogram(gray, gray)
        assert search_thresholds_sweep(hist).pair == search_thresholds_integral(hist).pair

    def test_threshold_separates_modes(self):
        gray = bimodal_image(5, dark=40, light=210, sigma=6.0)
        hist = build_joint_histogram(gray, guided_filter(gray, 5, 0.02))
        result = search_thresholds(hist)
        assert 40 <= result.intensity_threshold < 210
        fg_g, _ = result.foreground_center
        bg_g, _ = result.background_center
        assert fg_g < result.intensity_threshold < bg_g

    def test_uniform_histogram_scores_zero(self):
        flat = np.full((10, 10), 90, dtype=np.uint8)
        hist = build_joint_histogram(flat, flat)
        result = search_thresholds(hist, accelerated=False)
        assert result.score == 0.0
        assert result.pair == (0, 0)

    def test_dispatch(self):
        gray = bimodal_image(6)
        hist = build_joint_histogram(gray, gray)
        assert search_thresholds(hist, accelerated=True) == search_thresholds_integral(hist)
        assert search_thresholds(hist, accelerated=False).pair == search_thresholds_sweep(hist).pair


class TestClassifyPixels:
    """Tests for classify_pixels."""

    @pytest.fixture
    def result(self):
        return ThresholdResult(
            intensity_threshold=100,
            guidance_threshold=100,
            score=1.0,
            foreground_center=(20.0, 20.0),
            background_center=(220.0, 220.0),
        )

    def test_quadrants(self, result):
        gray = np.array([[50, 150]], dtype=np.uint8)
        guidance = np.array([[50, 150]], dtype=np.uint8)
        assert classify_pixels(gray, guidance, result).tolist() == [[0, 255]]

    def test_transition_pixels_use_nearest_center(self, result):
        # (90, 130) is nearer the foreground center, (180, 90) the background one
        gray = np.array([[90, 180]], dtype=np.uint8)
        guidance = np.array([[130, 90]], dtype=np.uint8)
        assert classify_pixels(gray, guidance, result).tolist() == [[0, 255]]

    def test_output_is_binary(self):
        gray = bimodal_image(7)
        guidance = guided_filter(gray, 5, 0.02)
        result = search_thresholds(build_joint_histogram(gray, guidance))
        binary = classify_pixels(gray, guidance, result)
        assert binary.dtype == np.uint8
        assert set(np.unique(binary)) <= {0, 255}
