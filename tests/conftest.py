import numpy as np
import pytest


def make_rgba(rgb, height, width):
    """Solid-color RGBA image."""
    image = np.empty((height, width, 4), dtype=np.uint8)
    image[:, :, :3] = rgb
    image[:, :, 3] = 255
    return image


@pytest.fixture
def white_4x4():
    return make_rgba((255, 255, 255), 4, 4)


@pytest.fixture
def red_square():
    """50x50 pure red square on a 100x100 black background."""
    image = make_rgba((0, 0, 0), 100, 100)
    image[25:75, 25:75, :3] = (255, 0, 0)
    return image


@pytest.fixture
def bright_rectangle():
    """64x64 dark image with a white 40x20 block: one clear edge contour."""
    image = make_rgba((20, 20, 20), 64, 64)
    image[22:42, 12:52, :3] = 235
    return image


@pytest.fixture
def noisy_image():
    rng = np.random.default_rng(1234)
    image = rng.integers(0, 256, size=(48, 40, 4), dtype=np.uint8)
    image[:, :, 3] = 255
    return image
