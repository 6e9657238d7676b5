"""
Morphology Module

Zhang-Suen skeleton thinning and a light erosion that halves stroke thickness
while keeping endpoints.
"""

import numpy as np

from .buffers import validate_plane


def _neighborhood(binary: np.ndarray):
    """Neighbors p2..p9 of every interior pixel, clockwise from north."""
    return (
        binary[:-2, 1:-1],   # p2  N
        binary[:-2, 2:],     # p3  NE
        binary[1:-1, 2:],    # p4  E
        binary[2:, 2:],      # p5  SE
        binary[2:, 1:-1],    # p6  S
        binary[2:, :-2],     # p7  SW
        binary[1:-1, :-2],   # p8  W
        binary[:-2, :-2],    # p9  NW
    )


def _removable(result: np.ndarray, first_step: bool) -> np.ndarray:
    binary = (result > 0).astype(np.int32)
    p2, p3, p4, p5, p6, p7, p8, p9 = _neighborhood(binary)

    b = p2 + p3 + p4 + p5 + p6 + p7 + p8 + p9
    ring = (p2, p3, p4, p5, p6, p7, p8, p9, p2)
    a = np.zeros_like(b)
    for current, following in zip(ring[:-1], ring[1:]):
        a += (current == 0) & (following == 1)

    if first_step:
        cond = (p2 * p4 * p6 == 0) & (p4 * p6 * p8 == 0)
    else:
        cond = (p2 * p4 * p8 == 0) & (p2 * p6 * p8 == 0)

    return (binary[1:-1, 1:-1] == 1) & (b >= 2) & (b <= 6) & (a == 1) & cond


def zhang_suen_thin(mask: np.ndarray) -> np.ndarray:
    """
    Thin a binary mask to 1-pixel-wide strokes.

    Each pass runs both Zhang-Suen sub-iterations; pixels are removed after
    each sub-iteration is fully evaluated. Repeats until a pass removes nothing.
    Border pixels are never removed.

    Args:
        mask: uint8 mask, foreground > 0

    Returns:
        Thinned copy of the mask, foreground values preserved
    """
    validate_plane(mask)
    result = mask.copy()
    h, w = result.shape
    if h < 3 or w < 3:
        return result

    changed = True
    while changed:
        changed = False
        for first_step in (True, False):
            remove = _removable(result, first_step)
            if remove.any():
                result[1:-1, 1:-1][remove] = 0
                changed = True
    return result


def erode_half(mask: np.ndarray) -> np.ndarray:
    """
    Drop isolated foreground pixels and the image border.

    An interior pixel survives when at least one of its 4-connected neighbors
    is set; endpoints (exactly one neighbor) are kept.
    """
    validate_plane(mask)
    h, w = mask.shape
    result = np.zeros_like(mask)
    if h < 3 or w < 3:
        return result

    on = mask > 0
    count4 = (on[:-2, 1:-1].astype(np.int32) + on[2:, 1:-1]
              + on[1:-1, :-2] + on[1:-1, 2:])
    keep = on[1:-1, 1:-1] & (count4 >= 1)
    result[1:-1, 1:-1] = np.where(keep, mask[1:-1, 1:-1], 0)
    return result
