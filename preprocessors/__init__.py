"""
Control-Map Preprocessors

This package contains the from-scratch image preprocessors that turn a
decoded RGBA image into control maps:
- edge_detection: Canny-style edges (blur, Scharr, NMS, hysteresis, thinning)
- light_extraction: Bright-blob light source descriptors
- normal_map: Tangent-space normal map from a heightmap
- segmentation: K-means color quantization
- pose: Pose descriptors and skeleton rendering from external keypoints
- depth: Depth model input and depth visualization
- modes: Mode selection and dispatch
"""

from .buffers import PixelBufferError
from .edge_detection import EdgeDetector, detect_edges
from .light_extraction import LightExtractor, LightSource, extract_light_sources
from .normal_map import NormalMapGenerator, generate_normal_map
from .segmentation import ColorSegmenter, kmeans_segment
from .pose import PoseConverter, PoseDescriptor, convert_poses
from .depth import DepthVisualizer
from .modes import (Mode, EdgeParams, SegmentationParams, DepthParams, PoseParams,
                    LightParams, NormalParams, ControlMapResult, run_mode)

__all__ = [
    'PixelBufferError',
    'EdgeDetector',
    'detect_edges',
    'LightExtractor',
    'LightSource',
    'extract_light_sources',
    'NormalMapGenerator',
    'generate_normal_map',
    'ColorSegmenter',
    'kmeans_segment',
    'PoseConverter',
    'PoseDescriptor',
    'convert_poses',
    'DepthVisualizer',
    'Mode',
    'EdgeParams',
    'SegmentationParams',
    'DepthParams',
    'PoseParams',
    'LightParams',
    'NormalParams',
    'ControlMapResult',
    'run_mode'
]
