"""
Processing Modes

The closed set of control-map modes, one parameter record per mode, and the
single dispatch function that maps a record to its transform.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional, Sequence

import numpy as np

from config import PipelineConfig
from .buffers import validate_rgba
from .depth import DepthVisualizer
from .edge_detection import EdgeDetector
from .light_extraction import LightExtractor, LightSource
from .normal_map import NormalMapGenerator
from .pose import PoseConverter, PoseDescriptor
from .segmentation import ColorSegmenter

_EDGE = PipelineConfig.EDGE_DETECTION
_LIGHT = PipelineConfig.LIGHT_EXTRACTION
_NORMAL = PipelineConfig.NORMAL_MAP
_SEG = PipelineConfig.SEGMENTATION
_POSE = PipelineConfig.POSE


class Mode(str, Enum):
    EDGE = 'edge'
    SEGMENTATION = 'segmentation'
    DEPTH = 'depth'
    POSE = 'pose'
    LIGHT = 'light'
    NORMAL = 'normal'


@dataclass(frozen=True)
class EdgeParams:
    mode: ClassVar[Mode] = Mode.EDGE
    low_threshold: float = _EDGE['LOW_THRESHOLD']
    high_threshold: float = _EDGE['HIGH_THRESHOLD']
    sigma: float = _EDGE['SIGMA']
    use_thinning: bool = _EDGE['USE_THINNING']
    sub_pixel: bool = _EDGE['SUB_PIXEL']

    def to_config(self) -> dict:
        return dict(_EDGE, LOW_THRESHOLD=self.low_threshold, HIGH_THRESHOLD=self.high_threshold,
                    SIGMA=self.sigma, USE_THINNING=self.use_thinning, SUB_PIXEL=self.sub_pixel)


@dataclass(frozen=True)
class SegmentationParams:
    mode: ClassVar[Mode] = Mode.SEGMENTATION
    clusters: int = _SEG['CLUSTERS']
    iterations: int = _SEG['ITERATIONS']
    seed: Optional[int] = _SEG['SEED']

    def to_config(self) -> dict:
        return dict(_SEG, CLUSTERS=self.clusters, ITERATIONS=self.iterations, SEED=self.seed)


@dataclass(frozen=True)
class DepthParams:
    """Either a precomputed depth buffer or a model callable must be given."""
    mode: ClassVar[Mode] = Mode.DEPTH
    depth: Optional[np.ndarray] = None
    model: Optional[object] = None


@dataclass(frozen=True)
class PoseParams:
    """Keypoints come from an external detector, one 17-entry list per person."""
    mode: ClassVar[Mode] = Mode.POSE
    poses: Sequence[Sequence] = field(default_factory=list)
    confidence_threshold: float = _POSE['CONFIDENCE_THRESHOLD']
    measure_head: bool = _POSE['MEASURE_HEAD']

    def to_config(self) -> dict:
        return dict(_POSE, CONFIDENCE_THRESHOLD=self.confidence_threshold,
                    MEASURE_HEAD=self.measure_head)


@dataclass(frozen=True)
class LightParams:
    mode: ClassVar[Mode] = Mode.LIGHT
    threshold: float = _LIGHT['THRESHOLD']

    def to_config(self) -> dict:
        return dict(_LIGHT, THRESHOLD=self.threshold)


@dataclass(frozen=True)
class NormalParams:
    mode: ClassVar[Mode] = Mode.NORMAL
    strength: float = _NORMAL['STRENGTH']
    invert_y: bool = _NORMAL['INVERT_Y']
    grayscale_from_luma: bool = _NORMAL['GRAYSCALE_FROM_LUMA']

    def to_config(self) -> dict:
        return dict(_NORMAL, STRENGTH=self.strength, INVERT_Y=self.invert_y,
                    GRAYSCALE_FROM_LUMA=self.grayscale_from_luma)


@dataclass
class ControlMapResult:
    """Output of one mode run. Light and pose modes also carry records."""
    mode: Mode
    image: Optional[np.ndarray] = None
    lights: List[LightSource] = field(default_factory=list)
    poses: List[PoseDescriptor] = field(default_factory=list)

    def records(self) -> list:
        """JSON-ready records for modes that produce them."""
        if self.mode is Mode.LIGHT:
            return [light.to_dict() for light in self.lights]
        if self.mode is Mode.POSE:
            return [pose.to_dict() for pose in self.poses]
        return []


def run_mode(image: np.ndarray, params, rng: Optional[np.random.Generator] = None) -> ControlMapResult:
    """
    Produce the control map selected by the type of `params`.

    Args:
        image: RGBA uint8 buffer
        params: One of EdgeParams, SegmentationParams, DepthParams, PoseParams,
            LightParams, NormalParams
        rng: Random generator for segmentation; seeded from params.seed if None

    Returns:
        ControlMapResult
    """
    validate_rgba(image)
    h, w = image.shape[:2]

    if isinstance(params, EdgeParams):
        return ControlMapResult(Mode.EDGE, image=EdgeDetector(params.to_config()).detect(image))

    if isinstance(params, SegmentationParams):
        segmenter = ColorSegmenter(params.to_config(), rng=rng)
        return ControlMapResult(Mode.SEGMENTATION, image=segmenter.detect(image))

    if isinstance(params, DepthParams):
        if params.depth is None and params.model is None:
            raise ValueError("Depth mode needs a depth buffer or a depth model")
        visualizer = DepthVisualizer(model=params.model)
        return ControlMapResult(Mode.DEPTH, image=visualizer.detect(image, params.depth))

    if isinstance(params, PoseParams):
        converter = PoseConverter(params.to_config())
        return ControlMapResult(Mode.POSE,
                                image=converter.render(params.poses, w, h),
                                poses=converter.detect(params.poses, w, h))

    if isinstance(params, LightParams):
        return ControlMapResult(Mode.LIGHT, lights=LightExtractor(params.to_config()).detect(image))

    if isinstance(params, NormalParams):
        return ControlMapResult(Mode.NORMAL, image=NormalMapGenerator(params.to_config()).detect(image))

    raise TypeError(f"Unsupported mode parameters: {type(params).__name__}")
