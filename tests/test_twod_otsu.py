"""
Tests for TwoDOtsuBinarizer: binary output, regional tiling, preview path,
morphological cleanup and error handling.
"""

import numpy as np
import pytest

from restoration.config import PipelineConfig
from restoration.errors import InvalidInput, UnsupportedConversion
from restoration.transformations import TwoDOtsuBinarizer
from restoration.transformations.twod_otsu import (
    morphological_cleanup,
    reduce_noise,
    tile_bounds,
)


def ink_fraction(binary: np.ndarray) -> float:
    return float(np.count_nonzero(binary == 0)) / binary.size


class TestBinaryOutput:
    """Every output pixel is exactly 0 or 255."""

    @pytest.mark.parametrize("region_count", [1, 3])
    @pytest.mark.parametrize("accelerated", [True, False])
    def test_random_noise_is_binary(self, region_count, accelerated):
        rng = np.random.default_rng(0)
        img = rng.integers(0, 256, size=(60, 70, 3), dtype=np.uint8)
        binarizer = TwoDOtsuBinarizer(
            region_count=region_count, use_accelerated_search=accelerated
        )
        binary = binarizer.apply(img)
        assert binary.shape == (60, 70)
        assert binary.dtype == np.uint8
        assert set(np.unique(binary)) <= {0, 255}

    def test_uniform_white_is_paper(self):
        white = np.full((30, 30), 255, dtype=np.uint8)
        assert np.all(TwoDOtsuBinarizer().apply(white) == 255)

    def test_uniform_black_is_ink(self):
        black = np.zeros((30, 30), dtype=np.uint8)
        assert np.all(TwoDOtsuBinarizer().apply(black) == 0)


class TestSeparation:
    """Ink and paper end up on the right side of the threshold."""

    def test_global_recovers_text_lines(self, text_page):
        page, ink_mask = text_page(200, 160)
        binary = TwoDOtsuBinarizer(region_count=1).apply(page)
        agreement = np.mean((binary == 0) == ink_mask)
        assert agreement > 0.95

    def test_regional_recovers_text_lines(self, text_page):
        page, ink_mask = text_page(240, 200)
        binary = TwoDOtsuBinarizer(region_count=4).apply(page)
        assert ink_fraction(binary) == pytest.approx(ink_mask.mean(), abs=0.05)

    def test_regional_handles_uneven_lighting(self, text_page):
        page, ink_mask = text_page(240, 240, channels=1, noise_sigma=4.0)
        shading = np.linspace(-60, 0, 240)[None, :]
        shaded = np.clip(page.astype(np.float64) + shading, 0, 255).astype(np.uint8)
        binary = TwoDOtsuBinarizer(region_count=4).apply(shaded)
        agreement = np.mean((binary == 0) == ink_mask)
        assert agreement > 0.9

    def test_searches_give_same_output(self, text_page):
        page, _ = text_page(100, 120)
        fast = TwoDOtsuBinarizer(region_count=1, use_accelerated_search=True).apply(page)
        slow = TwoDOtsuBinarizer(region_count=1, use_accelerated_search=False).apply(page)
        assert np.array_equal(fast, slow)

    def test_without_noise_reduction(self, text_page):
        page, ink_mask = text_page(100, 120, noise_sigma=0.0)
        binary = TwoDOtsuBinarizer(region_count=1, noise_reduction=False).apply(page)
        assert np.mean((binary == 0) == ink_mask) > 0.95


class TestPreview:
    """Tests for apply_preview."""

    def test_preview_matches_source_size_and_is_binary(self, text_page):
        page, _ = text_page(101, 77)
        preview = TwoDOtsuBinarizer().apply_preview(page)
        assert preview.shape == (101, 77)
        assert set(np.unique(preview)) <= {0, 255}

    def test_preview_close_to_full(self, text_page):
        page, _ = text_page(200, 160)
        binarizer = TwoDOtsuBinarizer(region_count=1)
        full = binarizer.apply(page)
        preview = binarizer.apply_preview(page)
        assert ink_fraction(preview) == pytest.approx(ink_fraction(full), abs=0.1)

    def test_preview_scale_one_equals_full(self, text_page):
        page, _ = text_page(60, 60)
        binarizer = TwoDOtsuBinarizer(PipelineConfig(preview_scale=1.0), region_count=1)
        assert np.array_equal(binarizer.apply(page), binarizer.apply_preview(page))


class TestHelpers:
    """Tests for the binarizer's building blocks."""

    def test_tile_bounds_cover_everything(self):
        assert tile_bounds(10, 4) == [(0, 2), (2, 5), (5, 7), (7, 10)]

    def test_tile_bounds_drop_empty_tiles(self):
        assert tile_bounds(3, 4) == [(0, 1), (1, 2), (2, 3)]

    def test_regions_on_tiny_image(self):
        img = np.array([[0, 255, 0], [255, 0, 255], [0, 255, 0]], dtype=np.uint8)
        binary = TwoDOtsuBinarizer(
            region_count=4, morph_kernel_size=1, noise_reduction=False
        ).apply(img)
        assert binary.shape == (3, 3)
        assert set(np.unique(binary)) <= {0, 255}

    def test_cleanup_removes_isolated_ink_speck(self):
        binary = np.full((9, 9), 255, dtype=np.uint8)
        binary[4, 4] = 0
        assert np.all(morphological_cleanup(binary, 3) == 255)

    def test_cleanup_removes_isolated_paper_speck(self):
        binary = np.zeros((9, 9), dtype=np.uint8)
        binary[4, 4] = 255
        assert np.all(morphological_cleanup(binary, 3) == 0)

    def test_cleanup_skipped_for_kernel_one(self):
        binary = np.full((9, 9), 255, dtype=np.uint8)
        binary[4, 4] = 0
        assert np.array_equal(morphological_cleanup(binary, 1), binary)

    def test_reduce_noise_removes_salt(self):
        gray = np.full((20, 20), 100, dtype=np.uint8)
        gray[10, 10] = 255
        assert reduce_noise(gray)[10, 10] < 150


class TestErrors:
    """Error handling and purity."""

    def test_empty_input_raises(self):
        with pytest.raises(InvalidInput):
            TwoDOtsuBinarizer().apply(np.zeros((0, 0), dtype=np.uint8))

    def test_none_input_raises(self):
        with pytest.raises(InvalidInput):
            TwoDOtsuBinarizer().apply(None)

    def test_float_input_raises(self):
        with pytest.raises(UnsupportedConversion):
            TwoDOtsuBinarizer().apply(np.zeros((10, 10), dtype=np.float32))

    def test_no_mutation(self, text_page):
        page, _ = text_page(40, 40)
        before = page.copy()
        TwoDOtsuBinarizer().apply(page)
        TwoDOtsuBinarizer().apply_preview(page)
        assert np.array_equal(page, before)

    def test_name_and_repr(self):
        binarizer = TwoDOtsuBinarizer()
        assert binarizer.name == "2D Otsu"
        assert "window_radius" in repr(binarizer)

    def test_close_marks_closed(self):
        binarizer = TwoDOtsuBinarizer()
        assert not binarizer.closed
        binarizer.close()
        assert binarizer.closed
