"""Pytest configuration: fast by default.

Slow tests (full-size end-to-end runs, the row-sweep search on large
images) are skipped unless --slow is passed.
Run the full suite:   pytest --slow
Run fast tests only:  pytest          (default)
"""
import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


def pytest_addoption(parser):
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Run slow tests (full-size end-to-end restoration runs)",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--slow"):
        return  # run everything
    skip_slow = pytest.mark.skip(reason="slow test skipped, pass --slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def _text_page(
    height: int,
    width: int,
    bar_height: int = 6,
    period: int = 20,
    channels: int = 3,
    paper: int = 235,
    ink: int = 25,
    noise_sigma: float = 8.0,
    seed: int = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """Synthetic page: paper with horizontal ink bars ("text lines").

    Returns (image, ink_mask). The ink fraction is bar_height / period when
    height is a multiple of period.
    """
    rows = np.arange(height) % period < bar_height
    ink_mask = np.repeat(rows[:, None], width, axis=1)

    rng = np.random.default_rng(seed)
    page = np.where(ink_mask, ink, paper).astype(np.float64)
    page += rng.normal(0.0, noise_sigma, size=page.shape)
    page = np.clip(np.rint(page), 0, 255).astype(np.uint8)

    if channels == 3:
        page = np.repeat(page[:, :, None], 3, axis=2)
    return page, ink_mask


@pytest.fixture
def text_page():
    """Factory fixture: text_page(height, width, **kwargs) -> (image, ink_mask)."""
    return _text_page


@pytest.fixture
def gradient_image():
    """Smooth 200x300 grayscale gradient."""
    y, x = np.mgrid[0:200, 0:300].astype(np.float64)
    return np.rint(x / 299.0 * 180.0 + y / 199.0 * 60.0 + 5.0).astype(np.uint8)
