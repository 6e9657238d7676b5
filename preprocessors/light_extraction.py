"""
Light Extraction Module

Finds bright regions in an image and describes each one as a light source
(position, shape, size, color and power) for the relighting editor.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

import numpy as np

from config import PipelineConfig
from .buffers import round_half_up, validate_plane, validate_rgba
from .components import Blob, find_blobs, label_components, shape_from_moments
from .luminance import ntsc_luma, rgba_to_brightness

logger = logging.getLogger(__name__)

MAX_LIGHTS = 10


@dataclass(frozen=True)
class LightSource:
    """Descriptor of one detected light."""
    id: int
    position: Tuple[float, float]
    circle_amount: float
    size: float
    color: str
    power: float
    rotation: float
    intensity: float
    area: int = field(default=0, compare=False)

    def to_dict(self) -> Dict:
        """JSON record in the editor's camelCase layout."""
        return {
            'id': self.id,
            'position': {'x': self.position[0], 'y': self.position[1]},
            'circleAmount': self.circle_amount,
            'size': self.size,
            'color': self.color,
            'power': self.power,
            'rotation': self.rotation,
            'intensity': self.intensity,
        }


def min_blob_area(width: int, height: int,
                  min_area: int = 100, fraction: float = 0.0005) -> int:
    """Smallest blob kept: max(100, 0.05% of the image area)."""
    return max(min_area, int(round_half_up(width * height * fraction)))


def color_to_hex(r: float, g: float, b: float) -> str:
    channels = np.clip(round_half_up([r, g, b]), 0, 255).astype(int)
    return '#' + ''.join(f'{int(c):02x}' for c in channels)


def describe_blob(blob: Blob, width: int, height: int, light_id: int,
                  min_power: float = 0.3, min_size: float = 0.15,
                  circle_range: Tuple[float, float] = (0.15, 0.5)) -> LightSource:
    """
    Map blob statistics to a light descriptor.

    Args:
        blob: Connected bright region
        width, height: Image dimensions
        light_id: Provisional id
        min_power: Floor for power and intensity
        min_size: Floor for the normalized size
        circle_range: Clamp range for circle_amount

    Returns:
        LightSource
    """
    n = blob.area
    cx, cy = blob.centroid
    roundness, angle = shape_from_moments(*blob.second_moments())

    mean_l = blob.sum_luminance / n if blob.sum_luminance > 0 else 0.0
    intensity = min(max(mean_l / 255, 0.0), 1.0)
    power = max(min_power, intensity)

    radius = math.sqrt(n / math.pi)
    size_norm = min(radius / max(width, height), 1.0)

    rotation = angle / (2 * math.pi)
    if rotation < 0:
        rotation += 1.0

    low, high = circle_range
    return LightSource(
        id=light_id,
        position=(cx / width, cy / height),
        circle_amount=max(low, min(high, roundness * 0.5)),
        size=max(min_size, size_norm * 2),
        color=color_to_hex(*blob.mean_color),
        power=power,
        rotation=rotation,
        intensity=power,
        area=n
    )


def extract_light_sources(brightness: np.ndarray,
                          image: np.ndarray,
                          threshold: float = 0.7,
                          max_lights: int = MAX_LIGHTS,
                          min_area: int = 100,
                          min_area_fraction: float = 0.0005,
                          min_power: float = 0.3,
                          min_size: float = 0.15,
                          circle_range: Tuple[float, float] = (0.15, 0.5)) -> List[LightSource]:
    """
    Detect light sources from a brightness mask.

    Args:
        brightness: (H, W) mask with values in 0-1
        image: RGBA buffer of the same size, for color and luminance
        threshold: Minimum brightness of a light pixel
        max_lights: Number of lights kept after ranking by area
        min_area, min_area_fraction: Blob area floor, see min_blob_area
        min_power, min_size, circle_range: Descriptor clamps, see describe_blob

    Returns:
        Up to `max_lights` LightSource, largest first, ids 1..N
    """
    validate_plane(brightness)
    validate_rgba(image)
    h, w = brightness.shape
    if image.shape[:2] != (h, w):
        raise ValueError(f"Mask shape {brightness.shape} does not match image {image.shape[:2]}")

    area_floor = min_blob_area(w, h, min_area, min_area_fraction)

    blobs = find_blobs(brightness >= threshold, image, ntsc_luma(image))

    candidates = []
    for blob in blobs:
        if blob.area < area_floor:
            continue
        candidates.append(describe_blob(blob, w, h, len(candidates) + 1,
                                        min_power, min_size, circle_range))

    logger.debug("Light extraction: %d blob(s), %d above %d px",
                 len(blobs), len(candidates), area_floor)

    ranked = sorted(candidates, key=lambda light: light.area, reverse=True)[:max_lights]
    return [
        LightSource(id=i + 1, position=light.position, circle_amount=light.circle_amount,
                    size=light.size, color=light.color, power=light.power,
                    rotation=light.rotation, intensity=light.intensity, area=light.area)
        for i, light in enumerate(ranked)
    ]


class LightExtractor:
    """Extracts light-source descriptors from RGBA images."""

    def __init__(self, config: dict = None):
        """
        Initialize light extractor.

        Args:
            config: Optional config dict, uses PipelineConfig.LIGHT_EXTRACTION if None
        """
        self.config = config or PipelineConfig.LIGHT_EXTRACTION
        self.threshold = self.config['THRESHOLD']
        self.max_lights = self.config.get('MAX_LIGHTS', MAX_LIGHTS)
        self.min_area = self.config.get('MIN_AREA', 100)
        self.min_area_fraction = self.config.get('MIN_AREA_FRACTION', 0.0005)
        self.min_power = self.config.get('MIN_POWER', 0.3)
        self.min_size = self.config.get('MIN_SIZE', 0.15)
        self.circle_range = tuple(self.config.get('CIRCLE_AMOUNT_RANGE', (0.15, 0.5)))

    def detect(self, image: np.ndarray) -> List[LightSource]:
        """Lights of an RGBA image, using its NTSC brightness as the mask."""
        brightness = rgba_to_brightness(image)
        return extract_light_sources(brightness, image, self.threshold, self.max_lights,
                                     self.min_area, self.min_area_fraction,
                                     self.min_power, self.min_size, self.circle_range)

    def label_map(self, image: np.ndarray) -> Tuple[np.ndarray, int]:
        """Connected bright regions of the image, labeled 1..N."""
        brightness = rgba_to_brightness(image)
        return label_components((brightness >= self.threshold).astype(np.uint8))
