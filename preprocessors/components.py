"""
Connected Components Module

Blob discovery for the light extractor (stack-based 8-connected flood fill)
and two-pass connected-component labeling resolved with a union-find.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .buffers import validate_plane

NEIGHBORS_8 = [(1, 0), (-1, 0), (0, 1), (0, -1),
               (1, 1), (1, -1), (-1, 1), (-1, -1)]


class DisjointSet:
    """Union-find over integer labels with path compression and union by rank."""

    def __init__(self):
        self.parent = [0]
        self.rank = [0]

    def make_set(self) -> int:
        label = len(self.parent)
        self.parent.append(label)
        self.rank.append(0)
        return label

    def find(self, label: int) -> int:
        root = label
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[label] != root:
            self.parent[label], label = root, self.parent[label]
        return root

    def union(self, a: int, b: int) -> int:
        ra, rb = self.find(a), self.find(b)
        if ra == rb:
            return ra
        if self.rank[ra] < self.rank[rb]:
            ra, rb = rb, ra
        self.parent[rb] = ra
        if self.rank[ra] == self.rank[rb]:
            self.rank[ra] += 1
        return ra

    def __len__(self):
        return len(self.parent) - 1


def label_components(mask: np.ndarray, connectivity: int = 8) -> Tuple[np.ndarray, int]:
    """
    Label connected foreground regions.

    First pass assigns provisional labels from the already-visited neighbors
    and records equivalences in a DisjointSet; second pass replaces each label
    by its root, renumbered 1..N in raster order of first appearance.

    Args:
        mask: Binary plane, foreground > 0
        connectivity: 4 or 8

    Returns:
        Tuple of (int32 label plane, number of components)
    """
    validate_plane(mask)
    if connectivity not in (4, 8):
        raise ValueError(f"connectivity must be 4 or 8, got {connectivity}")

    h, w = mask.shape
    if connectivity == 8:
        offsets = [(-1, 0), (-1, -1), (0, -1), (1, -1)]
    else:
        offsets = [(-1, 0), (0, -1)]

    labels = np.zeros((h, w), dtype=np.int32)
    sets = DisjointSet()
    fg = mask > 0

    for y, x in zip(*np.nonzero(fg)):
        seen = []
        for dx, dy in offsets:
            nx, ny = x + dx, y + dy
            if 0 <= nx < w and ny >= 0 and labels[ny, nx]:
                seen.append(int(labels[ny, nx]))
        if not seen:
            labels[y, x] = sets.make_set()
        else:
            label = min(seen)
            labels[y, x] = label
            for other in seen:
                if other != label:
                    sets.union(label, other)

    roots = np.zeros(len(sets) + 1, dtype=np.int32)
    count = 0
    for y, x in zip(*np.nonzero(fg)):
        root = sets.find(int(labels[y, x]))
        if roots[root] == 0:
            count += 1
            roots[root] = count
        labels[y, x] = roots[root]

    return labels, count


@dataclass
class Blob:
    """Pixels and accumulated statistics of one connected bright region."""
    xs: np.ndarray
    ys: np.ndarray
    sum_r: float
    sum_g: float
    sum_b: float
    sum_luminance: float
    max_luminance: float

    @property
    def area(self) -> int:
        return len(self.xs)

    @property
    def centroid(self) -> Tuple[float, float]:
        n = self.area
        return float(self.xs.sum()) / n, float(self.ys.sum()) / n

    @property
    def bbox(self) -> Tuple[int, int, int, int]:
        return int(self.xs.min()), int(self.ys.min()), int(self.xs.max()), int(self.ys.max())

    @property
    def mean_color(self) -> Tuple[float, float, float]:
        n = self.area
        return self.sum_r / n, self.sum_g / n, self.sum_b / n

    def second_moments(self) -> Tuple[float, float, float]:
        """Covariance (sxx, syy, sxy) of pixel coordinates about the centroid."""
        cx, cy = self.centroid
        dx = self.xs.astype(np.float64) - cx
        dy = self.ys.astype(np.float64) - cy
        n = self.area
        return float((dx * dx).sum()) / n, float((dy * dy).sum()) / n, float((dx * dy).sum()) / n


def shape_from_moments(sxx: float, syy: float, sxy: float) -> Tuple[float, float]:
    """
    Roundness and orientation from second moments.

    Eigenvalues of [[sxx, sxy], [sxy, syy]] are trace/2 +- sqrt(trace^2/4 - det).

    Returns:
        (roundness, angle): roundness = 1 - (l1 - l2) / l1, 1 for a circle or a
        single pixel; angle = 0.5 * atan2(2 sxy, sxx - syy) in radians
    """
    trace = sxx + syy
    det = sxx * syy - sxy * sxy
    tmp = math.sqrt(max(trace * trace / 4 - det, 0.0))
    lambda1 = trace / 2 + tmp
    lambda2 = trace / 2 - tmp
    roundness = 1 - (lambda1 - lambda2) / lambda1 if lambda1 > 0 else 1.0
    roundness = min(max(roundness, 0.0), 1.0)
    angle = 0.5 * math.atan2(2 * sxy, sxx - syy)
    return roundness, angle


def find_blobs(candidates: np.ndarray,
               rgb: np.ndarray,
               luminance: np.ndarray) -> List[Blob]:
    """
    Collect 8-connected blobs of candidate pixels with an explicit stack.

    Blobs are returned in raster order of their first pixel.

    Args:
        candidates: Boolean plane of pixels eligible for a blob
        rgb: (H, W, >=3) color buffer whose raw channels are summed
        luminance: Per-pixel luminance (0-255 scale) summed and maxed per blob

    Returns:
        List of Blob
    """
    validate_plane(candidates)
    h, w = candidates.shape
    eligible = candidates.astype(bool).ravel().tolist()
    visited = [False] * (h * w)
    flat_rgb = rgb[:, :, :3].reshape(-1, 3).astype(np.float64)
    flat_lum = luminance.reshape(-1).astype(np.float64)

    blobs = []
    for start in np.flatnonzero(candidates.ravel()).tolist():
        if visited[start]:
            continue
        visited[start] = True
        stack = [start]
        members = []
        while stack:
            i = stack.pop()
            members.append(i)
            cy, cx = divmod(i, w)
            for dx, dy in NEIGHBORS_8:
                nx, ny = cx + dx, cy + dy
                if nx < 0 or ny < 0 or nx >= w or ny >= h:
                    continue
                ni = ny * w + nx
                if visited[ni] or not eligible[ni]:
                    continue
                visited[ni] = True
                stack.append(ni)

        idx = np.array(members, dtype=np.int64)
        ys, xs = np.divmod(idx, w)
        colors = flat_rgb[idx]
        lum = flat_lum[idx]
        blobs.append(Blob(
            xs=xs,
            ys=ys,
            sum_r=float(colors[:, 0].sum()),
            sum_g=float(colors[:, 1].sum()),
            sum_b=float(colors[:, 2].sum()),
            sum_luminance=float(lum.sum()),
            max_luminance=float(lum.max())
        ))

    return blobs
