import numpy as np
import pytest

from preprocessors import DepthVisualizer
from preprocessors.depth import depth_to_image, prepare_depth_input

from conftest import make_rgba


def test_input_tensor_layout(red_square):
    tensor = prepare_depth_input(red_square)
    assert tensor.shape == (1, 3, 256, 256)
    assert tensor.dtype == np.float32
    assert tensor[0, 0, 128, 128] == pytest.approx(1.0)
    assert tensor[0, 1].max() == 0.0


def test_depth_normalized_to_full_range():
    out = depth_to_image(np.array([[0.0, 1.0], [2.0, 3.0]]), 2, 2)
    assert out[:, :, 0].tolist() == [[0, 85], [170, 255]]
    assert (out[:, :, 3] == 255).all()


def test_constant_depth_is_black():
    out = depth_to_image(np.full((4, 4), 7.5), 4, 4)
    assert not out[:, :, :3].any()


def test_depth_resized_to_image():
    out = depth_to_image(np.random.default_rng(0).random((1, 32, 32)), 50, 20)
    assert out.shape == (20, 50, 4)


def test_invalid_size():
    with pytest.raises(ValueError):
        depth_to_image(np.zeros((4, 4)), 0, 4)


def test_visualizer_runs_model():
    seen = []

    def model(tensor):
        seen.append(tensor.shape)
        return np.arange(64, dtype=np.float32).reshape(1, 8, 8)

    image = make_rgba((30, 60, 90), 12, 16)
    out = DepthVisualizer(model=model).detect(image)
    assert seen == [(1, 3, 256, 256)]
    assert out.shape == (12, 16, 4)


def test_visualizer_without_model():
    with pytest.raises(RuntimeError):
        DepthVisualizer().detect(make_rgba((0, 0, 0), 4, 4))
