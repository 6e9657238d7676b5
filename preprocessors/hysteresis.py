"""
Hysteresis Module

Multi-pass hysteresis thresholding. Each pass walks the interior in raster
order and promotes a weak pixel as soon as it touches a strong one, so a
promotion is visible to the pixels visited after it within the same pass.
Chains running right or down link in a single pass; chains running left or
up advance one pixel per pass. The number of passes is capped at 100.
"""

import logging

import numpy as np

from .buffers import validate_plane

logger = logging.getLogger(__name__)

STRONG = 255
WEAK = 128
MAX_PASSES = 100


def classify_edges(suppressed: np.ndarray,
                   low_threshold: float,
                   high_threshold: float) -> np.ndarray:
    """Label pixels STRONG (>= high), WEAK (>= low, < high) or 0."""
    validate_plane(suppressed)
    classes = np.zeros(suppressed.shape, dtype=np.uint8)
    classes[suppressed >= low_threshold] = WEAK
    classes[suppressed >= high_threshold] = STRONG
    return classes


def link_weak_edges(classes: np.ndarray, max_passes: int = MAX_PASSES) -> int:
    """
    Promote WEAK pixels 8-adjacent to STRONG ones, in place, until stable.

    Only interior pixels are promoted, visited row by row. Neighbors are read
    from the live buffer, including pixels promoted earlier in the same pass.
    Stops after a pass with no change or after `max_passes` passes, whichever
    comes first.

    Args:
        classes: Output of classify_edges, modified in place
        max_passes: Hard cap on the number of passes

    Returns:
        Number of passes performed
    """
    h, w = classes.shape
    if h < 3 or w < 3:
        return 0

    passes = 0
    changed = True
    while changed and passes < max_passes:
        passes += 1
        changed = False
        ys, xs = np.nonzero(classes[1:-1, 1:-1] == WEAK)
        for y, x in zip((ys + 1).tolist(), (xs + 1).tolist()):
            if (classes[y - 1:y + 2, x - 1:x + 2] == STRONG).any():
                classes[y, x] = STRONG
                changed = True

    if changed:
        logger.debug("Hysteresis stopped at the %d pass cap", max_passes)
    return passes


def hysteresis_threshold(suppressed: np.ndarray,
                         low_threshold: float,
                         high_threshold: float,
                         max_passes: int = MAX_PASSES) -> np.ndarray:
    """
    Binary edge mask from a suppressed magnitude plane.

    Returns:
        uint8 mask holding only 0 and 255
    """
    classes = classify_edges(suppressed, low_threshold, high_threshold)
    passes = link_weak_edges(classes, max_passes)
    logger.debug("Hysteresis linking finished after %d pass(es)", passes)
    return np.where(classes == STRONG, STRONG, 0).astype(np.uint8)
