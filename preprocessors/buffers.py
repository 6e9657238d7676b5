"""
Pixel Buffer Utilities

Validation and small conversions shared by every preprocessor.
Buffers are numpy arrays in row-major (H, W[, C]) layout.
"""

import numpy as np


class PixelBufferError(ValueError):
    """Raised when an input buffer is malformed or has zero area."""


def validate_rgba(image: np.ndarray) -> np.ndarray:
    """
    Check that `image` is a non-empty (H, W, 4) uint8 buffer.

    Args:
        image: Candidate RGBA buffer

    Returns:
        The same array, unchanged
    """
    if not isinstance(image, np.ndarray):
        raise PixelBufferError(f"Expected a numpy array, got {type(image).__name__}")
    if image.ndim != 3 or image.shape[2] != 4:
        raise PixelBufferError(f"Expected an (H, W, 4) RGBA buffer, got shape {image.shape}")
    if image.dtype != np.uint8:
        raise PixelBufferError(f"Expected uint8 RGBA samples, got {image.dtype}")
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise PixelBufferError("Image has zero area")
    return image


def validate_plane(plane: np.ndarray) -> np.ndarray:
    """Check that `plane` is a non-empty single-channel (H, W) buffer."""
    if not isinstance(plane, np.ndarray):
        raise PixelBufferError(f"Expected a numpy array, got {type(plane).__name__}")
    if plane.ndim != 2:
        raise PixelBufferError(f"Expected an (H, W) buffer, got shape {plane.shape}")
    if plane.shape[0] == 0 or plane.shape[1] == 0:
        raise PixelBufferError("Buffer has zero area")
    return plane


def round_half_up(values):
    """Round to nearest integer with halves going up (JS Math.round)."""
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5)


def mask_to_rgba(mask: np.ndarray) -> np.ndarray:
    """Expand a single-channel uint8 buffer into an opaque grey RGBA image."""
    validate_plane(mask)
    h, w = mask.shape
    out = np.empty((h, w, 4), dtype=np.uint8)
    out[:, :, 0] = mask
    out[:, :, 1] = mask
    out[:, :, 2] = mask
    out[:, :, 3] = 255
    return out
