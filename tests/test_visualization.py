import numpy as np

from preprocessors.light_extraction import LightSource
from preprocessors.visualization import (add_label_to_image, colorize_labels,
                                         create_grid_visualization, draw_light_sources, to_rgb)

from conftest import make_rgba


def test_to_rgb_handles_planes():
    assert to_rgb(make_rgba((1, 2, 3), 4, 5)).shape == (4, 5, 3)
    plane = np.array([[0.0, 2.0]])
    assert to_rgb(plane)[0, 1].tolist() == [255, 255, 255]


def test_grid_pads_missing_panels():
    panels = [make_rgba((255, 0, 0), 10, 12)] * 3
    grid = create_grid_visualization(panels, ["a", "b", "c"], grid_size=(2, 2))
    assert grid.shape == (20, 24, 3)
    assert not grid[15, 18].any()


def test_label_banner_drawn_on_copy():
    image = make_rgba((200, 200, 200), 40, 60)
    labeled = add_label_to_image(image, "x")
    assert labeled.shape == (40, 60, 3)
    assert (image[:, :, :3] == 200).all()


def test_colorize_labels_background_black():
    labels = np.array([[0, 1], [2, 2]])
    colors = colorize_labels(labels)
    assert not colors[0, 0].any()
    assert np.array_equal(colors[1, 0], colors[1, 1])
    assert colors[0, 1].min() >= 64


def test_draw_light_sources_marks_position():
    light = LightSource(id=1, position=(0.5, 0.5), circle_amount=0.5, size=0.2,
                        color='#ff0000', power=1.0, rotation=0.0, intensity=1.0)
    vis = draw_light_sources(make_rgba((100, 100, 100), 50, 50), [light])
    assert vis[25, 24].tolist() == [255, 0, 0]
    assert vis[2, 2].tolist() == [30, 30, 30]
