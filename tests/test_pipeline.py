import json
import sys
from argparse import Namespace

import numpy as np
import pytest

import pipeline
from pipeline import (ControlMapPipeline, build_params, fit_to_max_dimension, load_keypoints,
                      load_rgba, save_rgba)
from preprocessors import (DepthParams, EdgeParams, LightParams, Mode, PixelBufferError,
                           PoseParams, SegmentationParams)

from conftest import make_rgba
from test_pose import make_pose


def cli_args(**overrides):
    values = dict(mode='edge', low=50.0, high=150.0, sigma=1.4, no_thinning=False,
                  lattice_nms=False, clusters=5, iterations=10, seed=None, strength=2.0,
                  invert_y=False, threshold=0.7, confidence=0.3, measure_head=False)
    values.update(overrides)
    return Namespace(**values)


def test_fit_to_max_dimension():
    image = make_rgba((10, 10, 10), 500, 2000)
    assert fit_to_max_dimension(image, 1024).shape == (256, 1024, 4)
    small = make_rgba((10, 10, 10), 20, 30)
    assert fit_to_max_dimension(small, 1024) is small


def test_fit_rejects_malformed_buffer():
    with pytest.raises(PixelBufferError):
        fit_to_max_dimension(np.zeros((10, 10, 3), dtype=np.uint8))


def test_png_round_trip(tmp_path, red_square):
    path = tmp_path / "square.png"
    assert save_rgba(path, red_square)
    assert np.array_equal(load_rgba(path), red_square)


def test_load_rgba_missing_file(tmp_path):
    assert load_rgba(tmp_path / "nothing.png") is None


def test_load_keypoints_formats(tmp_path):
    path = tmp_path / "people.json"
    nested = {'keypoints': [{'x': 1, 'y': 2, 'score': 0.9}] * 17}
    flat = [[1, 2, 0.9]] * 17
    path.write_text(json.dumps([nested, flat]))
    poses = load_keypoints(path)
    assert len(poses) == 2
    assert len(poses[0]) == len(poses[1]) == 17


def test_build_params_per_mode(tmp_path):
    image_path = tmp_path / "photo.png"
    edge = build_params(cli_args(no_thinning=True), image_path)
    assert isinstance(edge, EdgeParams) and edge.use_thinning is False
    seg = build_params(cli_args(mode='segmentation', clusters=3, seed=4), image_path)
    assert seg == SegmentationParams(clusters=3, iterations=10, seed=4)
    assert build_params(cli_args(mode='light', threshold=0.9), image_path) == LightParams(0.9)


def test_build_params_side_inputs(tmp_path):
    image_path = tmp_path / "photo.png"
    assert build_params(cli_args(mode='pose'), image_path) is None
    assert build_params(cli_args(mode='depth'), image_path) is None

    (tmp_path / "photo_keypoints.json").write_text(json.dumps([make_pose()]))
    np.save(tmp_path / "photo_depth.npy", np.ones((4, 4)))

    pose = build_params(cli_args(mode='pose', measure_head=True), image_path)
    assert isinstance(pose, PoseParams) and pose.measure_head
    depth = build_params(cli_args(mode='depth'), image_path)
    assert isinstance(depth, DepthParams) and depth.depth.shape == (4, 4)


def test_pipeline_light_visualization():
    image = make_rgba((0, 0, 0), 60, 80)
    image[10:40, 10:50, :3] = 255
    runner = ControlMapPipeline(max_dimension=1024)
    result = runner.process_image(image, LightParams())
    assert result.mode is Mode.LIGHT and len(result.lights) == 1

    vis = runner.visualize_results(image, result)
    assert vis.shape == (60, 240, 3)


def test_pipeline_downscales_before_processing(red_square):
    runner = ControlMapPipeline(max_dimension=50)
    result = runner.process_image(red_square, EdgeParams())
    assert result.image.shape == (50, 50, 4)
    assert runner.visualize_results(red_square, result).shape == (50, 100, 3)


def test_main_writes_outputs(tmp_path, monkeypatch):
    image = make_rgba((0, 0, 0), 100, 100)
    image[25:75, 25:75, :3] = 255
    save_rgba(tmp_path / "square.png", image)
    out_dir = tmp_path / "out"
    monkeypatch.setattr(sys, 'argv', ['pipeline.py', str(tmp_path), '--mode', 'light',
                                      '--output', str(out_dir), '--visualize'])
    pipeline.main()

    records = json.loads((out_dir / "square_light.json").read_text())
    assert len(records) == 1
    assert (out_dir / "square_light_viz.png").exists()


def test_main_missing_directory(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, 'argv', ['pipeline.py', str(tmp_path / "missing")])
    with pytest.raises(SystemExit):
        pipeline.main()
