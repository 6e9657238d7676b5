"""
Segmentation Module

K-means color quantization. Every pixel is replaced by the color of its
cluster centroid.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from config import PipelineConfig
from .buffers import round_half_up, validate_rgba

logger = logging.getLogger(__name__)


def _initial_centroids(pixels: np.ndarray, k: int, rng) -> np.ndarray:
    """
    Draw k seed colors from random pixels.

    A draw repeating an already chosen color is rejected while the image still
    has colors not yet chosen; past that point repeats are accepted.
    """
    distinct = len(np.unique(pixels, axis=0))
    chosen = []
    while len(chosen) < k:
        candidate = pixels[int(rng.integers(0, len(pixels)))]
        if len(chosen) < distinct and any(np.array_equal(candidate, c) for c in chosen):
            continue
        chosen.append(candidate)
    return np.array(chosen)


def kmeans_centroids(image: np.ndarray,
                     k: int = 5,
                     iterations: int = 10,
                     rng: Optional[np.random.Generator] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Lloyd's k-means over RGB values.

    Centroids start at k pixels drawn uniformly at random, skipping repeated
    colors while unseen ones remain. Each iteration assigns pixels to the nearest centroid by squared RGB
    distance (first centroid wins ties), then moves each centroid to the mean
    of its pixels. A centroid without pixels stays where it is. There is no
    convergence check; exactly `iterations` rounds run.

    Args:
        image: RGBA uint8 buffer
        k: Number of clusters
        iterations: Number of Lloyd iterations
        rng: Random generator; a fresh unseeded one if None

    Returns:
        Tuple of (centroids (k, 3) float64, labels (H, W) int)
    """
    validate_rgba(image)
    if k < 1:
        raise ValueError(f"k must be at least 1, got {k}")
    if iterations < 0:
        raise ValueError(f"iterations must be non-negative, got {iterations}")
    if rng is None:
        rng = np.random.default_rng()

    h, w = image.shape[:2]
    pixels = image[:, :, :3].reshape(-1, 3).astype(np.float64)
    n = len(pixels)

    centroids = _initial_centroids(pixels, k, rng)
    labels = np.zeros(n, dtype=np.int64)

    for _ in range(iterations):
        dist = np.empty((n, k), dtype=np.float64)
        for c in range(k):
            diff = pixels - centroids[c]
            dist[:, c] = (diff * diff).sum(axis=1)
        labels = np.argmin(dist, axis=1)

        counts = np.bincount(labels, minlength=k)
        for channel in range(3):
            sums = np.bincount(labels, weights=pixels[:, channel], minlength=k)
            filled = counts > 0
            centroids[filled, channel] = sums[filled] / counts[filled]

    logger.debug("K-means: %d cluster(s), sizes %s", k, np.bincount(labels, minlength=k).tolist())
    return centroids, labels.reshape(h, w)


def kmeans_segment(image: np.ndarray,
                   k: int = 5,
                   iterations: int = 10,
                   rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Color-quantized copy of the image.

    Returns:
        Opaque RGBA image where each pixel holds its rounded centroid color
    """
    centroids, labels = kmeans_centroids(image, k, iterations, rng)
    palette = np.clip(round_half_up(centroids), 0, 255).astype(np.uint8)

    h, w = labels.shape
    out = np.empty((h, w, 4), dtype=np.uint8)
    out[:, :, :3] = palette[labels]
    out[:, :, 3] = 255
    return out


class ColorSegmenter:
    """Segments images into k flat color regions."""

    def __init__(self, config: dict = None, rng: Optional[np.random.Generator] = None):
        """
        Initialize segmenter.

        Args:
            config: Optional config dict, uses PipelineConfig.SEGMENTATION if None
            rng: Random generator; seeded from config['SEED'] if None
        """
        self.config = config or PipelineConfig.SEGMENTATION
        self.clusters = self.config['CLUSTERS']
        self.iterations = self.config['ITERATIONS']
        self.rng = rng if rng is not None else np.random.default_rng(self.config.get('SEED'))

    def detect(self, image: np.ndarray) -> np.ndarray:
        return kmeans_segment(image, self.clusters, self.iterations, self.rng)
