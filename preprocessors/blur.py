"""
Gaussian Blur Module

Separable Gaussian smoothing with edge-clamped sampling.
"""

import math

import numpy as np

from .buffers import validate_plane

KERNEL_MIN_SIZE = 3
KERNEL_MAX_SIZE = 15


def kernel_size_for_sigma(sigma: float) -> int:
    """Kernel width covering 6 sigma, forced odd and clamped to [3, 15]."""
    if sigma <= 0:
        raise ValueError(f"sigma must be positive, got {sigma}")
    size = math.ceil(sigma * 6)
    if size % 2 == 0:
        size += 1
    return max(KERNEL_MIN_SIZE, min(size, KERNEL_MAX_SIZE))


def gaussian_kernel_1d(sigma: float) -> np.ndarray:
    """Normalized 1-D Gaussian weights of size `kernel_size_for_sigma(sigma)`."""
    size = kernel_size_for_sigma(sigma)
    half = size // 2
    offsets = np.arange(-half, half + 1, dtype=np.float64)
    kernel = np.exp(-(offsets ** 2) / (2 * sigma * sigma))
    return kernel / kernel.sum()


def gaussian_kernel_2d(sigma: float) -> np.ndarray:
    """
    Normalized square Gaussian kernel.

    G(x, y) = exp(-(x^2 + y^2) / (2 sigma^2)) / (2 pi sigma^2), divided by its sum.
    """
    size = kernel_size_for_sigma(sigma)
    half = size // 2
    offsets = np.arange(-half, half + 1, dtype=np.float64)
    xx, yy = np.meshgrid(offsets, offsets)
    sigma2 = sigma * sigma
    kernel = np.exp(-(xx ** 2 + yy ** 2) / (2 * sigma2)) / (2 * math.pi * sigma2)
    return kernel / kernel.sum()


def _convolve_axis(plane: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    half = len(kernel) // 2
    pad = [(0, 0), (0, 0)]
    pad[axis] = (half, half)
    padded = np.pad(plane, pad, mode='edge')

    length = plane.shape[axis]
    total = np.zeros(plane.shape, dtype=np.float64)
    for k, weight in enumerate(kernel):
        if axis == 1:
            total += padded[:, k:k + length] * weight
        else:
            total += padded[k:k + length, :] * weight
    return total / kernel.sum()


def gaussian_blur(plane: np.ndarray, sigma: float = 1.4) -> np.ndarray:
    """
    Blur a float plane with a separable Gaussian.

    Args:
        plane: Single-channel buffer
        sigma: Standard deviation of the Gaussian

    Returns:
        Blurred float64 plane of the same shape
    """
    validate_plane(plane)
    kernel = gaussian_kernel_1d(sigma)
    horizontal = _convolve_axis(plane.astype(np.float64), kernel, axis=1)
    return _convolve_axis(horizontal, kernel, axis=0)
