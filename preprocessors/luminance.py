"""
Luminance Module

Two distinct grayscale conversions. The edge detector and the normal map use
BT.709 weights; the light extractor uses the legacy NTSC weights. They are not
interchangeable.
"""

import numpy as np

from .buffers import validate_rgba

BT709_WEIGHTS = (0.2126, 0.7152, 0.0722)
NTSC_WEIGHTS = (0.299, 0.587, 0.114)


def _weighted_sum(image: np.ndarray, weights) -> np.ndarray:
    rgb = image[:, :, :3].astype(np.float64)
    wr, wg, wb = weights
    return wr * rgb[:, :, 0] + wg * rgb[:, :, 1] + wb * rgb[:, :, 2]


def rgba_to_luminance(image: np.ndarray) -> np.ndarray:
    """
    Perceptual luminance Y = 0.2126R + 0.7152G + 0.0722B.

    Args:
        image: RGBA uint8 buffer

    Returns:
        Float plane on the 0-255 scale
    """
    validate_rgba(image)
    return _weighted_sum(image, BT709_WEIGHTS)


def rgba_to_brightness(image: np.ndarray) -> np.ndarray:
    """NTSC brightness (0.299R + 0.587G + 0.114B) / 255, in 0-1."""
    validate_rgba(image)
    return _weighted_sum(image, NTSC_WEIGHTS) / 255.0


def ntsc_luma(image: np.ndarray) -> np.ndarray:
    """NTSC luma on the 0-255 scale, used for per-blob intensity."""
    validate_rgba(image)
    return _weighted_sum(image, NTSC_WEIGHTS)
