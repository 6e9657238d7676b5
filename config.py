"""
Configuration settings for the control-map preprocessing pipeline.
Centralized configuration for all preprocessors.
"""

from dataclasses import dataclass


@dataclass
class PoseColors:
    """OpenPose-style colors (RGB) for skeleton rendering, indexed by keypoint."""

    KEYPOINTS = {
        0: (255, 0, 0),       # nose
        1: (255, 85, 0),      # left eye
        2: (255, 85, 0),      # right eye
        3: (255, 170, 0),     # left ear
        4: (255, 170, 0),     # right ear
        5: (0, 255, 0),       # shoulders
        6: (0, 255, 0),
        7: (0, 255, 170),     # elbows
        8: (0, 255, 170),
        9: (0, 255, 255),     # wrists
        10: (0, 255, 255),
        11: (0, 85, 255),     # hips
        12: (0, 85, 255),
        13: (85, 0, 255),     # knees
        14: (85, 0, 255),
        15: (170, 0, 255),    # ankles
        16: (170, 0, 255),
    }

    DEFAULT = (255, 255, 255)


class PipelineConfig:
    """Configuration for the entire preprocessing pipeline."""

    # Canny-style edge detection
    EDGE_DETECTION = {
        'LOW_THRESHOLD': 50,
        'HIGH_THRESHOLD': 150,
        'SIGMA': 1.4,
        'USE_THINNING': True,
        'SUB_PIXEL': True,
        'MAX_HYSTERESIS_PASSES': 100
    }

    # Bright-blob light source extraction
    LIGHT_EXTRACTION = {
        'THRESHOLD': 0.7,
        'MIN_AREA': 100,
        'MIN_AREA_FRACTION': 0.0005,
        'MAX_LIGHTS': 10,
        'MIN_POWER': 0.3,
        'MIN_SIZE': 0.15,
        'CIRCLE_AMOUNT_RANGE': (0.15, 0.5)
    }

    # Tangent-space normal map
    NORMAL_MAP = {
        'STRENGTH': 2.0,
        'INVERT_Y': False,
        'GRAYSCALE_FROM_LUMA': True
    }

    # K-means color segmentation
    SEGMENTATION = {
        'CLUSTERS': 5,
        'ITERATIONS': 10,
        'SEED': None
    }

    # Pose descriptor conversion
    POSE = {
        'CONFIDENCE_THRESHOLD': 0.3,
        'MEASURE_HEAD': False,
        'LINE_THICKNESS': 3,
        'JOINT_RADIUS': 5
    }

    # Depth visualization (external MiDaS-style model)
    DEPTH = {
        'MODEL_SIZE': 256,
        'EPSILON': 1e-6
    }

    # Whole-pipeline settings
    PIPELINE = {
        'MAX_DIMENSION': 1024,
        'IMAGE_EXTENSIONS': ['*.jpg', '*.jpeg', '*.png', '*.JPG', '*.JPEG', '*.PNG']
    }

    # Visualization Colors (RGB)
    VIZ_COLORS = {
        'BG_DIM': 0.3,
        'LIGHT_OUTLINE': (255, 255, 0)
    }
