"""
Gradient Module

Scharr derivatives over interior pixels. Border rows and columns keep a zero
gradient.
"""

from dataclasses import dataclass

import numpy as np

from .buffers import validate_plane

SCHARR_X = np.array([
    [-3, 0, 3],
    [-10, 0, 10],
    [-3, 0, 3]
], dtype=np.float64)

SCHARR_Y = np.array([
    [-3, -10, -3],
    [0, 0, 0],
    [3, 10, 3]
], dtype=np.float64)


@dataclass
class GradientField:
    """Per-pixel gradient buffers."""
    magnitude: np.ndarray
    direction: np.ndarray
    gx: np.ndarray
    gy: np.ndarray


def _correlate_interior(plane: np.ndarray, kernel: np.ndarray) -> np.ndarray:
    h, w = plane.shape
    out = np.zeros((h, w), dtype=np.float64)
    if h < 3 or w < 3:
        return out
    interior = out[1:-1, 1:-1]
    for ky in range(3):
        for kx in range(3):
            weight = kernel[ky, kx]
            if weight != 0:
                interior += plane[ky:ky + h - 2, kx:kx + w - 2] * weight
    return out


def scharr_gradient(plane: np.ndarray) -> GradientField:
    """
    Compute Scharr gradients.

    Args:
        plane: Smoothed luminance plane

    Returns:
        GradientField with magnitude sqrt(gx^2 + gy^2) and direction atan2(gy, gx)
    """
    validate_plane(plane)
    plane = plane.astype(np.float64)
    gx = _correlate_interior(plane, SCHARR_X)
    gy = _correlate_interior(plane, SCHARR_Y)
    magnitude = np.sqrt(gx * gx + gy * gy)
    direction = np.arctan2(gy, gx)
    return GradientField(magnitude=magnitude, direction=direction, gx=gx, gy=gy)


def normalize_magnitude(magnitude: np.ndarray) -> np.ndarray:
    """Scale magnitudes so the global maximum maps to 255 (scale 1 if all zero)."""
    max_mag = float(magnitude.max()) if magnitude.size else 0.0
    scale = 255.0 / max_mag if max_mag > 0 else 1.0
    return magnitude * scale
