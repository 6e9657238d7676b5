"""
Non-Maximum Suppression Module

Thins gradient ridges by keeping only pixels that are local maxima along the
gradient direction. Neighbors are sampled with bilinear interpolation by
default, or snapped to the 8-neighborhood lattice.
"""

import numpy as np

from .buffers import validate_plane


def interpolate_magnitude(magnitude: np.ndarray,
                          px: np.ndarray,
                          py: np.ndarray,
                          dx: np.ndarray,
                          dy: np.ndarray) -> np.ndarray:
    """
    Sample `magnitude` one step (dx, dy) beyond the point (px, py).

    The anchor corner is floor(p + step); the second corner sits one pixel
    further along the sign of each step component (a zero component counts
    as negative). Weights are the fractional parts of |dx| and |dy|.
    An anchor outside the buffer gives 0; an anchor inside with the second
    corner outside gives the anchor value.

    Args:
        magnitude: (H, W) plane
        px, py: Sample origins, any matching shape
        dx, dy: Step along the gradient, same shape as px

    Returns:
        Interpolated values with the shape of `px`
    """
    h, w = magnitude.shape
    px = np.asarray(px, dtype=np.float64)
    py = np.asarray(py, dtype=np.float64)
    dx = np.asarray(dx, dtype=np.float64)
    dy = np.asarray(dy, dtype=np.float64)

    x1 = np.floor(px + dx).astype(np.int64)
    y1 = np.floor(py + dy).astype(np.int64)
    x2 = x1 + np.where(dx > 0, 1, -1)
    y2 = y1 + np.where(dy > 0, 1, -1)
    frac_x = np.abs(dx) - np.floor(np.abs(dx))
    frac_y = np.abs(dy) - np.floor(np.abs(dy))

    first_ok = (x1 >= 0) & (x1 < w) & (y1 >= 0) & (y1 < h)
    second_ok = (x2 >= 0) & (x2 < w) & (y2 >= 0) & (y2 < h)

    cx1 = np.clip(x1, 0, w - 1)
    cy1 = np.clip(y1, 0, h - 1)
    cx2 = np.clip(x2, 0, w - 1)
    cy2 = np.clip(y2, 0, h - 1)

    m00 = magnitude[cy1, cx1]
    m10 = magnitude[cy1, cx2]
    m01 = magnitude[cy2, cx1]
    m11 = magnitude[cy2, cx2]

    top = m00 * (1 - frac_x) + m10 * frac_x
    bottom = m01 * (1 - frac_x) + m11 * frac_x
    blended = top * (1 - frac_y) + bottom * frac_y

    return np.where(first_ok, np.where(second_ok, blended, m00), 0.0)


def _lattice_neighbors(magnitude: np.ndarray, direction: np.ndarray):
    h, w = magnitude.shape
    angle = np.degrees(direction[1:-1, 1:-1])
    angle = np.where(angle < 0, angle + 180, angle)

    east, west = magnitude[1:-1, 2:], magnitude[1:-1, :-2]
    north, south = magnitude[:-2, 1:-1], magnitude[2:, 1:-1]
    north_east, south_west = magnitude[:-2, 2:], magnitude[2:, :-2]
    north_west, south_east = magnitude[:-2, :-2], magnitude[2:, 2:]

    horizontal = ((angle >= 0) & (angle < 22.5)) | ((angle >= 157.5) & (angle <= 180))
    diagonal = (angle >= 22.5) & (angle < 67.5)
    vertical = (angle >= 67.5) & (angle < 112.5)

    neighbor1 = np.select([horizontal, diagonal, vertical], [east, north_east, north], north_west)
    neighbor2 = np.select([horizontal, diagonal, vertical], [west, south_west, south], south_east)
    return neighbor1, neighbor2


def non_max_suppression(magnitude: np.ndarray,
                        direction: np.ndarray,
                        sub_pixel: bool = True) -> np.ndarray:
    """
    Suppress non-maximal gradient pixels.

    Args:
        magnitude: Gradient magnitude, normalized to 0-255
        direction: Gradient direction in radians
        sub_pixel: Interpolate neighbors from p +- (cos, sin), stepped once
            more along the same direction by interpolate_magnitude;
            when False, bucket the direction into four 45-degree bins

    Returns:
        Thinned magnitude plane; borders and suppressed pixels are 0
    """
    validate_plane(magnitude)
    if direction.shape != magnitude.shape:
        raise ValueError("magnitude and direction must have the same shape")

    h, w = magnitude.shape
    suppressed = np.zeros((h, w), dtype=np.float64)
    if h < 3 or w < 3:
        return suppressed

    mag = magnitude[1:-1, 1:-1]
    if sub_pixel:
        ys, xs = np.mgrid[1:h - 1, 1:w - 1]
        theta = direction[1:-1, 1:-1]
        dx = np.cos(theta)
        dy = np.sin(theta)
        neighbor1 = interpolate_magnitude(magnitude, xs + dx, ys + dy, dx, dy)
        neighbor2 = interpolate_magnitude(magnitude, xs - dx, ys - dy, -dx, -dy)
    else:
        neighbor1, neighbor2 = _lattice_neighbors(magnitude, direction)

    keep = (mag != 0) & (mag >= neighbor1) & (mag >= neighbor2)
    suppressed[1:-1, 1:-1] = np.where(keep, mag, 0.0)
    return suppressed
