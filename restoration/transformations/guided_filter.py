"""
Guided filter used to build the second decision channel of 2D Otsu.

The intensity image guides itself: for each pixel a local linear model
q = a * I + b is fit over a (2r+1) x (2r+1) window, with epsilon as a
ridge regularizer so near-flat windows do not blow up. The coefficients
are box-smoothed before the output is reconstructed, which gives an
edge-aware local average correlated with local contrast.
"""

import cv2
import numpy as np


def guided_filter(gray: np.ndarray, radius: int, epsilon: float) -> np.ndarray:
    """Self-guided filter of a single-channel uint8 image.

    Args:
        gray: (H, W) uint8 intensity image.
        radius: Window radius; the window side is 2 * radius + 1.
        epsilon: Regularizer on intensities normalized to [0, 1].

    Returns:
        (H, W) uint8 guidance image.
    """
    ksize = (2 * radius + 1, 2 * radius + 1)
    intensity = gray.astype(np.float32) / 255.0

    mean_i = cv2.blur(intensity, ksize)
    mean_ii = cv2.blur(intensity * intensity, ksize)
    var_i = np.maximum(mean_ii - mean_i * mean_i, 0.0)

    a = var_i / (var_i + np.float32(epsilon))
    b = mean_i * (1.0 - a)

    mean_a = cv2.blur(a, ksize)
    mean_b = cv2.blur(b, ksize)

    guidance = (mean_a * intensity + mean_b) * 255.0
    return np.clip(np.rint(guidance), 0, 255).astype(np.uint8)
