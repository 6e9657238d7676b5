"""
Visualization utilities for the preprocessing pipeline.
Common functions for creating consistent visualizations across all modes.
All images here are RGB uint8.
"""

import cv2
import numpy as np
from typing import List, Tuple, Optional

from .light_extraction import LightSource


def to_rgb(img: np.ndarray) -> np.ndarray:
    """Drop alpha from RGBA, expand grayscale and float planes to RGB uint8."""
    if img.ndim == 2:
        plane = img
        if plane.dtype != np.uint8:
            peak = float(plane.max()) if plane.size else 0.0
            scale = 255.0 / peak if peak > 0 else 1.0
            plane = np.clip(plane * scale, 0, 255).astype(np.uint8)
        return cv2.cvtColor(plane, cv2.COLOR_GRAY2RGB)
    return np.ascontiguousarray(img[:, :, :3])


def add_label_to_image(img: np.ndarray,
                       text: str,
                       color: Tuple[int, int, int] = (255, 255, 255),
                       bg_color: Tuple[int, int, int] = (0, 0, 0),
                       position: str = 'top') -> np.ndarray:
    """
    Add a labeled banner to an image.

    Args:
        img: Input image (RGB, RGBA or single-channel)
        text: Label text
        color: Text color
        bg_color: Background color
        position: 'top' or 'bottom'

    Returns:
        RGB image with label added
    """
    vis = to_rgb(img).copy()

    h, w = vis.shape[:2]
    font_scale = max(w / 600.0, 0.3)
    thickness = max(1, int(w / 300.0))
    bar_h = max(int(h * 0.08), 12)

    if position == 'top':
        y_start, y_end = 0, bar_h
        text_y = int(bar_h * 0.7)
    else:
        y_start, y_end = h - bar_h, h
        text_y = h - int(bar_h * 0.3)

    cv2.rectangle(vis, (0, y_start), (w, y_end), bg_color, -1)
    cv2.putText(vis, text, (10, text_y), cv2.FONT_HERSHEY_SIMPLEX,
                font_scale, color, thickness, cv2.LINE_AA)

    return vis


def create_grid_visualization(images: List[np.ndarray],
                              labels: Optional[List[str]] = None,
                              grid_size: Optional[Tuple[int, int]] = None) -> np.ndarray:
    """
    Create a grid visualization from multiple same-sized images.

    Args:
        images: List of images to arrange
        labels: Optional labels for each image
        grid_size: Optional (rows, cols), auto-calculated if None

    Returns:
        RGB grid visualization
    """
    if not images:
        raise ValueError("No images provided")

    n = len(images)

    if grid_size is None:
        cols = int(np.ceil(np.sqrt(n)))
        rows = int(np.ceil(n / cols))
    else:
        rows, cols = grid_size

    if labels:
        images = [add_label_to_image(img, label) for img, label in zip(images, labels)]
    else:
        images = [to_rgb(img) for img in images]

    # Pad with blank images if needed
    h, w = images[0].shape[:2]
    while len(images) < rows * cols:
        images.append(np.zeros((h, w, 3), dtype=np.uint8))

    image_rows = []
    for r in range(rows):
        row_images = images[r * cols:(r + 1) * cols]
        if row_images:
            image_rows.append(np.hstack(row_images))

    return np.vstack(image_rows) if image_rows else images[0]


def dim_image(img: np.ndarray, factor: float = 0.3) -> np.ndarray:
    """Dim an image by a factor for background visualization."""
    return (to_rgb(img).astype(float) * factor).astype(np.uint8)


def _hex_to_rgb(color: str) -> Tuple[int, int, int]:
    value = color.lstrip('#')
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def draw_light_sources(img: np.ndarray,
                       lights: List[LightSource],
                       outline: Tuple[int, int, int] = (255, 255, 0),
                       dim: float = 0.3) -> np.ndarray:
    """
    Draw detected lights over a dimmed copy of the image.

    Each light is a disc in its own color, sized from its normalized size,
    with an outline and its id.
    """
    vis = dim_image(img, dim)
    h, w = vis.shape[:2]
    scale = max(w, h)

    for light in lights:
        center = (int(light.position[0] * w), int(light.position[1] * h))
        radius = max(2, int(light.size * scale / 2))
        cv2.circle(vis, center, radius, _hex_to_rgb(light.color), -1, cv2.LINE_AA)
        cv2.circle(vis, center, radius, outline, 2, cv2.LINE_AA)
        cv2.putText(vis, str(light.id), (center[0] + 4, center[1] - 4),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, (0, 0, 0), 3)
        cv2.putText(vis, str(light.id), (center[0] + 4, center[1] - 4),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.6, outline, 1)

    return vis


def colorize_labels(labels: np.ndarray, seed: int = 0) -> np.ndarray:
    """Random but stable RGB color per label; label 0 stays black."""
    count = int(labels.max()) if labels.size else 0
    rng = np.random.default_rng(seed)
    palette = rng.integers(64, 256, size=(count + 1, 3), dtype=np.int64).astype(np.uint8)
    palette[0] = 0
    return palette[labels]
