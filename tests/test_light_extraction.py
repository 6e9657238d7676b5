import math

import numpy as np
import pytest

from config import PipelineConfig
from preprocessors import LightExtractor, PixelBufferError, extract_light_sources
from preprocessors.light_extraction import color_to_hex, min_blob_area
from preprocessors.luminance import rgba_to_brightness

from conftest import make_rgba


def squares_image(sides, size=200, spacing=50):
    """White squares of the given sides on black, laid out four per row."""
    image = make_rgba((0, 0, 0), size, size)
    for i, side in enumerate(sides):
        x0 = 5 + spacing * (i % 4)
        y0 = 5 + 60 * (i // 4)
        image[y0:y0 + side, x0:x0 + side, :3] = 255
    return image


def test_small_white_image_has_no_lights(white_4x4):
    assert LightExtractor().detect(white_4x4) == []


def test_full_white_frame_is_one_light():
    lights = LightExtractor().detect(make_rgba((255, 255, 255), 64, 64))
    assert len(lights) == 1
    light = lights[0]
    assert light.id == 1
    assert light.color == '#ffffff'
    assert light.power >= 0.99
    assert light.intensity == light.power
    assert light.position == pytest.approx((31.5 / 64, 31.5 / 64))
    assert light.circle_amount == 0.5
    assert light.area == 64 * 64


def test_at_most_ten_lights_largest_first():
    sides = list(range(11, 23))
    lights = LightExtractor().detect(squares_image(sides))
    assert len(lights) == 10
    assert [light.id for light in lights] == list(range(1, 11))
    assert [light.area for light in lights] == [s * s for s in sorted(sides, reverse=True)[:10]]


def test_blobs_below_min_area_are_ignored():
    lights = LightExtractor().detect(squares_image([9, 10, 15]))
    # 81 px is under the 100 px floor
    assert sorted(light.area for light in lights) == [100, 225]


def test_min_blob_area():
    assert min_blob_area(200, 200) == 100
    assert min_blob_area(1000, 1000) == 500


def test_threshold_is_inclusive():
    image = make_rgba((0, 0, 0), 40, 40)
    image[10:30, 10:30, :3] = 128
    brightness = rgba_to_brightness(image)
    level = float(brightness[15, 15])
    assert len(extract_light_sources(brightness, image, threshold=level)) == 1
    assert extract_light_sources(brightness, image, threshold=level + 1e-6) == []


def test_power_floor_and_color():
    image = make_rgba((0, 0, 0), 40, 40)
    image[10:30, 10:30, :3] = (60, 40, 20)
    mask = np.zeros((40, 40))
    mask[10:30, 10:30] = 1.0
    light, = extract_light_sources(mask, image)
    assert light.power == 0.3
    assert light.color == '#3c2814'


def test_elongated_blob_shape():
    image = make_rgba((0, 0, 0), 100, 100)
    image[45:55, 10:90, :3] = 255
    light, = LightExtractor().detect(image)
    assert light.circle_amount == 0.15
    assert light.rotation == pytest.approx(0.0)
    radius = math.sqrt(800 / math.pi)
    assert light.size == pytest.approx(max(0.15, radius / 100 * 2))


def diagonal_bar(rising=True):
    """Three-pixel-wide bar at 45 degrees; rising means y shrinks as x grows."""
    image = make_rgba((0, 0, 0), 100, 100)
    for i in range(60):
        y = 79 - i if rising else 20 + i
        image[y, 10 + i:13 + i, :3] = 255
    return image


def test_negative_orientation_folds_into_unit_range():
    light, = LightExtractor().detect(diagonal_bar())
    # atan2 gives about -pi/4, folded by adding a full turn
    assert light.rotation == pytest.approx(0.875, abs=1e-3)
    assert 0.5 < light.rotation < 1.0


def test_positive_orientation_is_not_folded():
    light, = LightExtractor().detect(diagonal_bar(rising=False))
    assert light.rotation == pytest.approx(0.125, abs=1e-3)


def test_to_dict_layout():
    light, = LightExtractor().detect(make_rgba((255, 255, 255), 32, 32))
    record = light.to_dict()
    assert set(record) == {'id', 'position', 'circleAmount', 'size', 'color',
                           'power', 'rotation', 'intensity'}
    assert set(record['position']) == {'x', 'y'}


def test_color_to_hex_rounds_half_up():
    assert color_to_hex(0.5, 254.5, 15.49) == '#01ff0f'


def test_mask_shape_mismatch():
    with pytest.raises(ValueError):
        extract_light_sources(np.zeros((5, 5)), make_rgba((0, 0, 0), 6, 6))


def test_rejects_empty_image():
    with pytest.raises(PixelBufferError):
        LightExtractor().detect(np.zeros((0, 0, 4), dtype=np.uint8))


def test_label_map_counts_regions():
    labels, count = LightExtractor().label_map(squares_image([9, 10, 15]))
    assert count == 3
    assert labels.shape == (200, 200)


def small_block_image():
    image = make_rgba((0, 0, 0), 40, 40)
    image[10:18, 10:18, :3] = 255
    return image


def test_custom_min_area_from_config():
    image = small_block_image()
    assert LightExtractor().detect(image) == []
    cfg = dict(PipelineConfig.LIGHT_EXTRACTION, MIN_AREA=10)
    light, = LightExtractor(cfg).detect(image)
    assert light.area == 64


def test_custom_area_fraction_from_config():
    cfg = dict(PipelineConfig.LIGHT_EXTRACTION, MIN_AREA=10, MIN_AREA_FRACTION=0.5)
    # Floor becomes 800 px on a 40x40 image
    assert LightExtractor(cfg).detect(small_block_image()) == []


def test_custom_descriptor_clamps_from_config():
    image = make_rgba((0, 0, 0), 40, 40)
    image[10:30, 10:30, :3] = (60, 40, 20)
    cfg = dict(PipelineConfig.LIGHT_EXTRACTION, THRESHOLD=0.1, MIN_POWER=0.5,
               MIN_SIZE=0.9, CIRCLE_AMOUNT_RANGE=(0.6, 0.9))
    light, = LightExtractor(cfg).detect(image)
    assert light.power == 0.5
    assert light.intensity == 0.5
    assert light.size == 0.9
    assert light.circle_amount == 0.6


def test_extract_light_sources_keyword_floors():
    image = small_block_image()
    brightness = rgba_to_brightness(image)
    assert extract_light_sources(brightness, image) == []
    assert len(extract_light_sources(brightness, image, min_area=64)) == 1
    assert extract_light_sources(brightness, image, min_area=65) == []
