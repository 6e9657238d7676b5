"""
Depth Module

Glue around an external monocular depth model (MiDaS small, fixed 256x256
input): builds the input tensor and turns the raw depth output into a grey
control image at the requested size.
"""

import logging
from typing import Callable, Optional

import cv2
import numpy as np

from config import PipelineConfig
from .buffers import mask_to_rgba, round_half_up, validate_plane, validate_rgba

logger = logging.getLogger(__name__)


def prepare_depth_input(image: np.ndarray, size: int = 256) -> np.ndarray:
    """
    Model input tensor from an RGBA image.

    Returns:
        float32 array of shape (1, 3, size, size), RGB scaled to 0-1
    """
    validate_rgba(image)
    rgb = np.ascontiguousarray(image[:, :, :3])
    resized = cv2.resize(rgb, (size, size), interpolation=cv2.INTER_LINEAR)
    tensor = resized.astype(np.float32) / 255.0
    return np.transpose(tensor, (2, 0, 1))[np.newaxis, ...]


def depth_to_image(depth: np.ndarray, width: int, height: int,
                   epsilon: float = 1e-6) -> np.ndarray:
    """
    Grey depth visualization.

    Values are min-max normalized with (d - min) / (max - min + epsilon),
    scaled to 0-255 and resized bilinearly to width x height.

    Args:
        depth: Raw model output, (H, W) or any shape squeezable to it
        width, height: Output size in pixels

    Returns:
        Opaque RGBA image of shape (height, width, 4)
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Output size must be positive, got {width}x{height}")
    depth = np.squeeze(np.asarray(depth, dtype=np.float64))
    validate_plane(depth)

    d_min, d_max = float(depth.min()), float(depth.max())
    normalized = (depth - d_min) / (d_max - d_min + epsilon)
    grey = np.clip(round_half_up(normalized * 255), 0, 255).astype(np.uint8)

    if grey.shape != (height, width):
        grey = cv2.resize(grey, (width, height), interpolation=cv2.INTER_LINEAR)
    return mask_to_rgba(grey)


class DepthVisualizer:
    """Runs an injected depth model and renders its output."""

    def __init__(self, config: dict = None,
                 model: Optional[Callable[[np.ndarray], np.ndarray]] = None):
        """
        Initialize depth visualizer.

        Args:
            config: Optional config dict, uses PipelineConfig.DEPTH if None
            model: Callable mapping a (1, 3, N, N) tensor to a depth array
        """
        self.config = config or PipelineConfig.DEPTH
        self.model_size = self.config['MODEL_SIZE']
        self.epsilon = self.config.get('EPSILON', 1e-6)
        self.model = model

    def estimate(self, image: np.ndarray) -> np.ndarray:
        """Raw depth from the model."""
        if self.model is None:
            raise RuntimeError("No depth model configured")
        depth = self.model(prepare_depth_input(image, self.model_size))
        logger.debug("Depth model output shape: %s", np.shape(depth))
        return np.asarray(depth)

    def detect(self, image: np.ndarray, depth: Optional[np.ndarray] = None) -> np.ndarray:
        """Depth control image at the input's size; runs the model unless `depth` is given."""
        validate_rgba(image)
        if depth is None:
            depth = self.estimate(image)
        h, w = image.shape[:2]
        return depth_to_image(depth, w, h, self.epsilon)
