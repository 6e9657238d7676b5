"""
Edge Detection Module

Canny-style edge map built from scratch:
luminance -> Gaussian blur -> Scharr gradient -> non-maximum suppression
-> multi-pass hysteresis -> optional Zhang-Suen thinning and erosion.
"""

import logging
from typing import Dict

import numpy as np

from config import PipelineConfig
from .blur import gaussian_blur
from .buffers import mask_to_rgba, validate_rgba
from .gradient import normalize_magnitude, scharr_gradient
from .hysteresis import hysteresis_threshold
from .luminance import rgba_to_luminance
from .morphology import erode_half, zhang_suen_thin
from .suppression import non_max_suppression

logger = logging.getLogger(__name__)


def edge_stages(image: np.ndarray,
                low_threshold: float = 50,
                high_threshold: float = 150,
                sigma: float = 1.4,
                use_thinning: bool = True,
                sub_pixel: bool = True,
                max_passes: int = 100) -> Dict[str, np.ndarray]:
    """
    Run the edge pipeline and keep every intermediate buffer.

    Returns:
        Dict with 'luminance', 'blurred', 'magnitude', 'direction',
        'suppressed', 'linked' and 'edges' (final mask)
    """
    validate_rgba(image)

    stages = {}
    stages['luminance'] = rgba_to_luminance(image)
    stages['blurred'] = gaussian_blur(stages['luminance'], sigma)

    gradient = scharr_gradient(stages['blurred'])
    stages['magnitude'] = normalize_magnitude(gradient.magnitude)
    stages['direction'] = gradient.direction

    stages['suppressed'] = non_max_suppression(stages['magnitude'], gradient.direction, sub_pixel)
    stages['linked'] = hysteresis_threshold(stages['suppressed'], low_threshold,
                                            high_threshold, max_passes)

    edges = stages['linked']
    if use_thinning:
        edges = erode_half(zhang_suen_thin(edges))
    stages['edges'] = edges

    logger.debug("Edge map: %d edge pixels of %d", int(np.count_nonzero(edges)), edges.size)
    return stages


def detect_edges(image: np.ndarray,
                 low_threshold: float = 50,
                 high_threshold: float = 150,
                 sigma: float = 1.4,
                 use_thinning: bool = True,
                 sub_pixel: bool = True) -> np.ndarray:
    """
    Edge map of an RGBA image.

    Args:
        image: RGBA uint8 buffer
        low_threshold: Weak edge threshold (0-255 magnitude units)
        high_threshold: Strong edge threshold (0-255 magnitude units)
        sigma: Gaussian blur sigma
        use_thinning: Apply thinning and erosion for 1-pixel strokes
        sub_pixel: Interpolated non-maximum suppression

    Returns:
        Opaque RGBA image, white edges on black
    """
    stages = edge_stages(image, low_threshold, high_threshold, sigma,
                         use_thinning, sub_pixel)
    return mask_to_rgba(stages['edges'])


class EdgeDetector:
    """Detects edges with configurable thresholds and smoothing."""

    def __init__(self, config: dict = None):
        """
        Initialize edge detector.

        Args:
            config: Optional config dict, uses PipelineConfig.EDGE_DETECTION if None
        """
        self.config = config or PipelineConfig.EDGE_DETECTION
        self.low_threshold = self.config['LOW_THRESHOLD']
        self.high_threshold = self.config['HIGH_THRESHOLD']
        self.sigma = self.config['SIGMA']
        self.use_thinning = self.config['USE_THINNING']
        self.sub_pixel = self.config['SUB_PIXEL']
        self.max_passes = self.config.get('MAX_HYSTERESIS_PASSES', 100)

    def detect_stages(self, image: np.ndarray) -> Dict[str, np.ndarray]:
        """All intermediate buffers, for visualization."""
        return edge_stages(image, self.low_threshold, self.high_threshold, self.sigma,
                           self.use_thinning, self.sub_pixel, self.max_passes)

    def detect(self, image: np.ndarray) -> np.ndarray:
        """Edge map as an opaque RGBA image."""
        return mask_to_rgba(self.detect_stages(image)['edges'])
