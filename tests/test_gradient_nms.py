import math

import numpy as np
import pytest

from preprocessors.gradient import normalize_magnitude, scharr_gradient
from preprocessors.suppression import interpolate_magnitude, non_max_suppression


def step_plane(h=10, w=10, column=5, value=100.0):
    plane = np.zeros((h, w))
    plane[:, column:] = value
    return plane


def test_scharr_borders_are_zero():
    field = scharr_gradient(np.random.default_rng(0).random((8, 9)) * 255)
    for buf in (field.gx, field.gy, field.magnitude):
        assert not buf[0].any() and not buf[-1].any()
        assert not buf[:, 0].any() and not buf[:, -1].any()


def test_scharr_vertical_step():
    field = scharr_gradient(step_plane())
    # 3 + 10 + 3 taps across a step of 100
    assert field.gx[1:-1, 4] == pytest.approx(np.full(8, 1600.0))
    assert field.gx[1:-1, 5] == pytest.approx(np.full(8, 1600.0))
    assert not field.gy.any()
    assert not field.magnitude[1:-1, 1:4].any()
    assert np.allclose(field.direction[1:-1, 4], 0.0)


def test_scharr_horizontal_step_points_down():
    field = scharr_gradient(step_plane().T)
    assert np.allclose(field.direction[4, 1:-1], math.pi / 2)


def test_normalize_magnitude():
    assert normalize_magnitude(np.array([[0.0, 10.0], [5.0, 20.0]])).max() == pytest.approx(255.0)
    zeros = np.zeros((3, 3))
    assert np.array_equal(normalize_magnitude(zeros), zeros)


def test_interpolate_magnitude_anchor_and_weights():
    magnitude = np.array([[0.0, 10.0], [20.0, 30.0]])
    assert interpolate_magnitude(magnitude, 0.0, 0.0, 0.5, 0.5) == pytest.approx(15.0)
    # A whole step has no fractional part: the anchor value alone
    assert interpolate_magnitude(magnitude, 0.0, 0.0, 1.0, 0.0) == 10.0


def test_interpolate_magnitude_negative_step_blends_backwards():
    magnitude = np.arange(9, dtype=np.float64).reshape(3, 3)
    # Anchor floor(2 - 0.25) = 1, second corner at x = 0
    value = interpolate_magnitude(magnitude, 2.0, 1.0, -0.25, 0.0)
    assert value == pytest.approx(0.75 * magnitude[1, 1] + 0.25 * magnitude[1, 0])


def test_interpolate_magnitude_out_of_bounds():
    magnitude = np.array([[0.0, 10.0], [20.0, 30.0]])
    # Anchor outside
    assert interpolate_magnitude(magnitude, 0.0, 0.0, -0.5, 0.0) == 0.0
    # Anchor inside, second corner outside: anchor value as is
    assert interpolate_magnitude(magnitude, 1.0, 0.0, 0.5, 0.5) == 10.0


def reference_nms(magnitude, direction):
    """Per-pixel loop form of sub-pixel suppression."""
    h, w = magnitude.shape

    def sample(x, y, dx, dy):
        x1, y1 = math.floor(x + dx), math.floor(y + dy)
        x2, y2 = x1 + (1 if dx > 0 else -1), y1 + (1 if dy > 0 else -1)
        if not (0 <= x1 < w and 0 <= y1 < h):
            return 0.0
        if not (0 <= x2 < w and 0 <= y2 < h):
            return magnitude[y1, x1]
        fx = abs(dx) - math.floor(abs(dx))
        fy = abs(dy) - math.floor(abs(dy))
        top = magnitude[y1, x1] * (1 - fx) + magnitude[y1, x2] * fx
        bottom = magnitude[y2, x1] * (1 - fx) + magnitude[y2, x2] * fx
        return top * (1 - fy) + bottom * fy

    out = np.zeros_like(magnitude)
    for y in range(1, h - 1):
        for x in range(1, w - 1):
            mag = magnitude[y, x]
            if mag == 0:
                continue
            dx, dy = math.cos(direction[y, x]), math.sin(direction[y, x])
            n1 = sample(x + dx, y + dy, dx, dy)
            n2 = sample(x - dx, y - dy, -dx, -dy)
            if mag >= n1 and mag >= n2:
                out[y, x] = mag
    return out


@pytest.mark.parametrize("seed", [7, 8, 9])
def test_sub_pixel_nms_matches_per_pixel_loop(seed):
    rng = np.random.default_rng(seed)
    magnitude = rng.random((12, 12)) * 255
    direction = rng.uniform(-math.pi, math.pi, (12, 12))
    expected = reference_nms(magnitude, direction)
    assert np.array_equal(non_max_suppression(magnitude, direction), expected)


def test_lattice_nms_keeps_ridge_peak():
    magnitude = np.tile([0.0, 1.0, 3.0, 2.0, 0.0], (3, 1))
    suppressed = non_max_suppression(magnitude, np.zeros_like(magnitude), sub_pixel=False)
    assert suppressed[1].tolist() == [0.0, 0.0, 3.0, 0.0, 0.0]
    assert not suppressed[0].any() and not suppressed[2].any()


def test_sub_pixel_nms_compares_two_pixels_out():
    magnitude = np.tile([0.0, 1.0, 3.0, 2.0, 0.0], (3, 1))
    suppressed = non_max_suppression(magnitude, np.zeros_like(magnitude))
    # x=3 is compared against x=1 and the (outside) x=5, so it survives
    assert suppressed[1].tolist() == [0.0, 0.0, 3.0, 2.0, 0.0]


@pytest.mark.parametrize("sub_pixel, expected", [
    (False, [0.0, 0.0, 3.0, 0.0, 0.0]),
    (True, [0.0, 0.0, 3.0, 2.0, 0.0]),
])
def test_nms_along_vertical_gradient(sub_pixel, expected):
    magnitude = np.tile([[0.0], [1.0], [3.0], [2.0], [0.0]], (1, 3))
    direction = np.full_like(magnitude, math.pi / 2)
    suppressed = non_max_suppression(magnitude, direction, sub_pixel)
    assert suppressed[:, 1].tolist() == expected


def test_nms_keeps_plateau_ties():
    field = scharr_gradient(step_plane())
    suppressed = non_max_suppression(normalize_magnitude(field.magnitude), field.direction)
    nonzero_columns = set(np.nonzero(suppressed)[1].tolist())
    assert nonzero_columns == {4, 5}
    assert not suppressed[0].any() and not suppressed[-1].any()


def test_nms_shape_mismatch():
    with pytest.raises(ValueError):
        non_max_suppression(np.zeros((4, 4)), np.zeros((4, 5)))
