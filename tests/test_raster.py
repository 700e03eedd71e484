"""
Tests for load_image / save_image.
"""

import cv2
import numpy as np
import pytest

from restoration import InvalidInput, load_image, save_image


class TestRoundTrip:
    """PNG is lossless, so a write-then-read returns the same pixels."""

    def test_gray_png(self, tmp_path, gradient_image):
        path = save_image(gradient_image, tmp_path / "gray.png")
        loaded = load_image(path)
        assert loaded.shape == gradient_image.shape
        assert np.array_equal(loaded, gradient_image)

    def test_bgr_png(self, tmp_path, text_page):
        page, _ = text_page(40, 30)
        loaded = load_image(save_image(page, tmp_path / "page.png"))
        assert loaded.shape == (40, 30, 3)
        assert np.array_equal(loaded, page)

    def test_creates_parent_directories(self, tmp_path, gradient_image):
        path = save_image(gradient_image, tmp_path / "a" / "b" / "out.png")
        assert path.is_file()

    def test_alpha_is_dropped(self, tmp_path):
        bgra = np.zeros((10, 12, 4), dtype=np.uint8)
        bgra[:, :, 2] = 200
        bgra[:, :, 3] = 128
        path = tmp_path / "alpha.png"
        assert cv2.imwrite(str(path), bgra)

        loaded = load_image(path)
        assert loaded.shape == (10, 12, 3)
        assert np.all(loaded[:, :, 2] == 200)

    def test_16_bit_is_scaled(self, tmp_path):
        deep = np.full((8, 8), 65535, dtype=np.uint16)
        path = tmp_path / "deep.png"
        assert cv2.imwrite(str(path), deep)
        loaded = load_image(path)
        assert loaded.dtype == np.uint8
        assert np.all(loaded == 255)


class TestErrors:
    """Tests for load and save failures."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidInput, match="not found"):
            load_image(tmp_path / "missing.png")

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "garbage.png"
        path.write_bytes(b"not an image")
        with pytest.raises(InvalidInput, match="decode"):
            load_image(path)

    def test_save_empty_image(self, tmp_path):
        with pytest.raises(InvalidInput):
            save_image(np.zeros((0, 0), dtype=np.uint8), tmp_path / "empty.png")

    def test_save_unknown_extension(self, tmp_path, gradient_image):
        with pytest.raises(OSError):
            save_image(gradient_image, tmp_path / "out.notaformat")
