"""
Normal Map Module

Tangent-space normal map from an image treated as a heightmap, in the manner
of the "Filter > 3D > Normal Map" tools of image editors.
"""

import numpy as np

from config import PipelineConfig
from .buffers import round_half_up, validate_plane, validate_rgba
from .luminance import BT709_WEIGHTS

SOBEL_X = np.array([
    [-1, 0, 1],
    [-2, 0, 2],
    [-1, 0, 1]
], dtype=np.float64)

SOBEL_Y = np.array([
    [-1, -2, -1],
    [0, 0, 0],
    [1, 2, 1]
], dtype=np.float64)


def height_map(image: np.ndarray, grayscale_from_luma: bool = True) -> np.ndarray:
    """Heights in 0-1: BT.709 luminance, or the red channel alone."""
    validate_rgba(image)
    rgb = image[:, :, :3].astype(np.float64)
    if grayscale_from_luma:
        wr, wg, wb = BT709_WEIGHTS
        return (wr * rgb[:, :, 0] + wg * rgb[:, :, 1] + wb * rgb[:, :, 2]) / 255.0
    return rgb[:, :, 0] / 255.0


def sobel_clamped(heights: np.ndarray):
    """Sobel gx, gy with edge-clamped sampling at every pixel."""
    validate_plane(heights)
    h, w = heights.shape
    padded = np.pad(heights, 1, mode='edge')
    gx = np.zeros((h, w), dtype=np.float64)
    gy = np.zeros((h, w), dtype=np.float64)
    for ky in range(3):
        for kx in range(3):
            sample = padded[ky:ky + h, kx:kx + w]
            gx += sample * SOBEL_X[ky, kx]
            gy += sample * SOBEL_Y[ky, kx]
    return gx, gy


def generate_normal_map(image: np.ndarray,
                        strength: float = 2.0,
                        invert_y: bool = False,
                        grayscale_from_luma: bool = True) -> np.ndarray:
    """
    Encode surface normals of the image heightmap as RGB.

    Args:
        image: RGBA uint8 buffer
        strength: Gradient scale; higher values tilt normals further
        invert_y: Flip the green channel (OpenGL vs DirectX convention)
        grayscale_from_luma: Height from luminance, else from red only

    Returns:
        Opaque RGBA normal map of the same size
    """
    gx, gy = sobel_clamped(height_map(image, grayscale_from_luma))
    gx = gx * strength
    gy = gy * strength
    if invert_y:
        gy = -gy

    nx, ny = -gx, -gy
    nz = np.ones_like(nx)
    length = np.sqrt(nx * nx + ny * ny + nz * nz)
    length[length == 0] = 1.0

    h, w = gx.shape
    out = np.empty((h, w, 4), dtype=np.uint8)
    for channel, component in enumerate((nx, ny, nz)):
        out[:, :, channel] = round_half_up((component / length * 0.5 + 0.5) * 255)
    out[:, :, 3] = 255
    return out


def decode_normal_map(normal_map: np.ndarray) -> np.ndarray:
    """Unit vectors (H, W, 3) recovered from an encoded normal map."""
    validate_rgba(normal_map)
    vectors = normal_map[:, :, :3].astype(np.float64) / 255.0 * 2.0 - 1.0
    length = np.linalg.norm(vectors, axis=2, keepdims=True)
    length[length == 0] = 1.0
    return vectors / length


class NormalMapGenerator:
    """Generates normal maps with configurable strength and orientation."""

    def __init__(self, config: dict = None):
        self.config = config or PipelineConfig.NORMAL_MAP
        self.strength = self.config['STRENGTH']
        self.invert_y = self.config['INVERT_Y']
        self.grayscale_from_luma = self.config['GRAYSCALE_FROM_LUMA']

    def detect(self, image: np.ndarray) -> np.ndarray:
        return generate_normal_map(image, self.strength, self.invert_y,
                                   self.grayscale_from_luma)
