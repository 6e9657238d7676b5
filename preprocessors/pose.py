"""
Pose Descriptor Module

Converts keypoints from an external 17-keypoint pose model (MoveNet / COCO
order) into the editor's pose records: polar coordinates of every joint
around a reference center, normalized by image size.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import cv2
import numpy as np

from config import PipelineConfig, PoseColors

logger = logging.getLogger(__name__)

KEYPOINT_INDICES = {
    'nose': 0,
    'left_eye': 1,
    'right_eye': 2,
    'left_ear': 3,
    'right_ear': 4,
    'left_shoulder': 5,
    'right_shoulder': 6,
    'left_elbow': 7,
    'right_elbow': 8,
    'left_wrist': 9,
    'right_wrist': 10,
    'left_hip': 11,
    'right_hip': 12,
    'left_knee': 13,
    'right_knee': 14,
    'left_ankle': 15,
    'right_ankle': 16,
}
NUM_KEYPOINTS = len(KEYPOINT_INDICES)

SKELETON_CONNECTIONS = [
    # Head
    ('left_ear', 'left_eye'), ('left_eye', 'nose'),
    ('nose', 'right_eye'), ('right_eye', 'right_ear'),
    # Torso
    ('left_shoulder', 'right_shoulder'), ('left_shoulder', 'left_hip'),
    ('right_shoulder', 'right_hip'), ('left_hip', 'right_hip'),
    # Arms
    ('left_shoulder', 'left_elbow'), ('left_elbow', 'left_wrist'),
    ('right_shoulder', 'right_elbow'), ('right_elbow', 'right_wrist'),
    # Legs
    ('left_hip', 'left_knee'), ('left_knee', 'left_ankle'),
    ('right_hip', 'right_knee'), ('right_knee', 'right_ankle'),
]

# Head values emitted as-is; they are not derived from the keypoints.
HEAD_PLACEHOLDER = {
    'noseDistance': 0.0832,
    'noseAngle': 0.75,
    'leftEyeDistance': 0.027,
    'leftEyeAngle': 0.58,
    'rightEyeDistance': 0.027,
    'rightEyeAngle': 0.92,
    'leftEarDistance': 0.027,
    'leftEarAngle': 0.4,
    'rightEarDistance': 0.027,
    'rightEarAngle': 0.1,
}
HEAD_TILT_SIDE_PLACEHOLDER = 0.5
HEAD_ROTATION_Z_PLACEHOLDER = 0.5


@dataclass(frozen=True)
class Keypoint:
    """One detected keypoint in pixel coordinates."""
    x: float
    y: float
    score: float

    @classmethod
    def from_value(cls, value) -> 'Keypoint':
        """Accept a Keypoint, a {'x', 'y', 'score'} dict or an (x, y, score) sequence."""
        if isinstance(value, Keypoint):
            return value
        if isinstance(value, dict):
            return cls(float(value['x']), float(value['y']), float(value.get('score', 0.0)))
        x, y, score = value
        return cls(float(x), float(y), float(score))


@dataclass(frozen=True)
class PoseDescriptor:
    """Editor record of one person."""
    id: int
    center: Tuple[float, float]
    head_rotation_x: float
    head_rotation_y: float
    head: Dict[str, float]
    right_arm: Dict[str, float]
    left_arm: Dict[str, float]
    left_leg: Dict[str, float]
    right_leg: Dict[str, float]
    head_tilt_side: float = HEAD_TILT_SIDE_PLACEHOLDER
    head_rotation_z: float = HEAD_ROTATION_Z_PLACEHOLDER
    size: float = 1.0
    is_flipped: bool = False

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'center': {'x': self.center[0], 'y': self.center[1]},
            'x': self.center[0],
            'y': self.center[1],
            'size': self.size,
            'isFlipped': self.is_flipped,
            'headRotationX': self.head_rotation_x,
            'headRotationY': self.head_rotation_y,
            'headTiltSide': self.head_tilt_side,
            'headRotationZ': self.head_rotation_z,
            'head': dict(self.head),
            'rightArm': dict(self.right_arm),
            'leftArm': dict(self.left_arm),
            'leftLeg': dict(self.left_leg),
            'rightLeg': dict(self.right_leg),
        }


def _round(value: float, places: int) -> float:
    scale = 10 ** places
    return math.floor(value * scale + 0.5) / scale


def to_polar_from_center(point_x: float, point_y: float,
                         center_x: float, center_y: float,
                         width: int, height: int) -> Tuple[float, float]:
    """
    Polar coordinates of a point around a center.

    Offsets are normalized by max(width, height). The angle is a fraction of a
    turn in [0, 1): 0 = right, 0.25 = down, 0.5 = left, 0.75 = up.

    Returns:
        (distance, angle)
    """
    scale = max(width, height)
    dx = (point_x - center_x) / scale
    dy = (point_y - center_y) / scale
    distance = math.sqrt(dx * dx + dy * dy)
    angle = math.atan2(dy, dx) / (2 * math.pi)
    if angle < 0:
        angle += 1
    return distance, angle


def _reference_center(keypoints: Sequence[Keypoint],
                      threshold: float) -> Optional[Tuple[float, float]]:
    left_shoulder = keypoints[KEYPOINT_INDICES['left_shoulder']]
    right_shoulder = keypoints[KEYPOINT_INDICES['right_shoulder']]
    nose = keypoints[KEYPOINT_INDICES['nose']]

    if left_shoulder.score >= threshold and right_shoulder.score >= threshold:
        return (left_shoulder.x + right_shoulder.x) / 2, (left_shoulder.y + right_shoulder.y) / 2
    if nose.score >= threshold:
        return nose.x, nose.y
    return None


def _head_rotation(keypoints: Sequence[Keypoint], height: int,
                   threshold: float) -> Tuple[float, float]:
    """(pitch, yaw) estimates from the nose and eye keypoints."""
    nose = keypoints[KEYPOINT_INDICES['nose']]
    left_eye = keypoints[KEYPOINT_INDICES['left_eye']]
    right_eye = keypoints[KEYPOINT_INDICES['right_eye']]

    rotation_x = 0.0
    rotation_y = 0.0
    if left_eye.score >= threshold and right_eye.score >= threshold:
        eye_angle = math.atan2(right_eye.y - left_eye.y, right_eye.x - left_eye.x)
        rotation_y = eye_angle / math.pi
        if nose.score >= threshold:
            eyes_center_y = (left_eye.y + right_eye.y) / 2
            rotation_x = (nose.y - eyes_center_y) / (height * 0.1)
    return rotation_x, rotation_y


def convert_pose(keypoints: Sequence, pose_index: int, width: int, height: int,
                 confidence_threshold: float = 0.3,
                 measure_head: bool = False) -> Optional[PoseDescriptor]:
    """
    Descriptor for one pose, or None when no reliable center exists.

    Args:
        keypoints: 17 keypoints in MoveNet order
        pose_index: Position of the pose in the detector output
        width, height: Image dimensions in pixels
        confidence_threshold: Minimum score of a usable keypoint
        measure_head: Compute head fields from the keypoints instead of
            emitting the fixed placeholder values

    Returns:
        PoseDescriptor or None
    """
    if len(keypoints) != NUM_KEYPOINTS:
        raise ValueError(f"Expected {NUM_KEYPOINTS} keypoints, got {len(keypoints)}")
    kps = [Keypoint.from_value(kp) for kp in keypoints]

    center = _reference_center(kps, confidence_threshold)
    if center is None:
        return None
    cx, cy = center

    def polar(name: str) -> Tuple[float, float]:
        kp = kps[KEYPOINT_INDICES[name]]
        if kp.score < confidence_threshold:
            return 0.0, 0.0
        return to_polar_from_center(kp.x, kp.y, cx, cy, width, height)

    def arm(side: str) -> Dict[str, float]:
        shoulder, elbow, wrist = polar(f'{side}_shoulder'), polar(f'{side}_elbow'), polar(f'{side}_wrist')
        return {
            'shoulderDistance': _round(shoulder[0], 4),
            'shoulderAngle': _round(shoulder[1], 3),
            'elbowDistance': _round(elbow[0], 4),
            'elbowAngle': _round(elbow[1], 3),
            'wristDistance': _round(wrist[0], 4),
            'wristAngle': _round(wrist[1], 2),
        }

    def leg(side: str) -> Dict[str, float]:
        hip, knee, ankle = polar(f'{side}_hip'), polar(f'{side}_knee'), polar(f'{side}_ankle')
        return {
            'hipDistance': _round(hip[0], 2),
            'hipAngle': _round(hip[1], 3),
            'kneeDistance': _round(knee[0], 4),
            'kneeAngle': _round(knee[1], 3),
            'ankleDistance': _round(ankle[0], 4),
            'ankleAngle': _round(ankle[1], 2),
        }

    if measure_head:
        head = {}
        for name, prefix in (('nose', 'nose'), ('left_eye', 'leftEye'), ('right_eye', 'rightEye'),
                             ('left_ear', 'leftEar'), ('right_ear', 'rightEar')):
            distance, angle = polar(name)
            head[f'{prefix}Distance'] = _round(distance, 4)
            head[f'{prefix}Angle'] = _round(angle, 3)
    else:
        head = dict(HEAD_PLACEHOLDER)

    rotation_x, rotation_y = _head_rotation(kps, height, confidence_threshold)

    return PoseDescriptor(
        id=pose_index + 1,
        center=(cx / width, cy / height),
        head_rotation_x=_round(rotation_x, 2),
        head_rotation_y=_round(rotation_y, 2),
        head=head,
        right_arm=arm('right'),
        left_arm=arm('left'),
        left_leg=leg('left'),
        right_leg=leg('right')
    )


def convert_poses(poses: Sequence[Sequence], width: int, height: int,
                  confidence_threshold: float = 0.3,
                  measure_head: bool = False) -> List[PoseDescriptor]:
    """
    Descriptors for every pose with a reliable center, in detection order.

    Poses without a confident shoulder pair or nose are skipped; the ids of
    the remaining poses keep their detection position (index + 1).
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")

    descriptors = []
    for index, keypoints in enumerate(poses):
        descriptor = convert_pose(keypoints, index, width, height,
                                  confidence_threshold, measure_head)
        if descriptor is not None:
            descriptors.append(descriptor)

    logger.debug("Pose conversion: %d of %d pose(s) kept", len(descriptors), len(poses))
    return descriptors


def draw_skeleton(poses: Sequence[Sequence], width: int, height: int,
                  confidence_threshold: float = 0.3,
                  line_thickness: int = 3,
                  joint_radius: int = 5) -> np.ndarray:
    """
    Render poses as an OpenPose-style skeleton on black.

    Limbs are drawn between keypoint pairs that both pass the threshold, half
    in each endpoint's color; joints are filled discs with a white outline.

    Returns:
        Opaque RGBA image of size (height, width)
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")

    canvas = np.zeros((height, width, 3), dtype=np.uint8)
    for keypoints in poses:
        kps = [Keypoint.from_value(kp) for kp in keypoints]

        for start_name, end_name in SKELETON_CONNECTIONS:
            si, ei = KEYPOINT_INDICES[start_name], KEYPOINT_INDICES[end_name]
            start, end = kps[si], kps[ei]
            if start.score < confidence_threshold or end.score < confidence_threshold:
                continue
            p1 = (int(round(start.x)), int(round(start.y)))
            p2 = (int(round(end.x)), int(round(end.y)))
            mid = ((p1[0] + p2[0]) // 2, (p1[1] + p2[1]) // 2)
            cv2.line(canvas, p1, mid, PoseColors.KEYPOINTS.get(si, PoseColors.DEFAULT),
                     line_thickness, cv2.LINE_AA)
            cv2.line(canvas, mid, p2, PoseColors.KEYPOINTS.get(ei, PoseColors.DEFAULT),
                     line_thickness, cv2.LINE_AA)

        for idx, kp in enumerate(kps):
            if kp.score < confidence_threshold:
                continue
            pt = (int(round(kp.x)), int(round(kp.y)))
            cv2.circle(canvas, pt, joint_radius, PoseColors.KEYPOINTS.get(idx, PoseColors.DEFAULT), -1)
            cv2.circle(canvas, pt, joint_radius, (255, 255, 255), 1)

    out = np.empty((height, width, 4), dtype=np.uint8)
    out[:, :, :3] = canvas
    out[:, :, 3] = 255
    return out


class PoseConverter:
    """Turns detected keypoints into pose descriptors and skeleton images."""

    def __init__(self, config: dict = None):
        self.config = config or PipelineConfig.POSE
        self.confidence_threshold = self.config['CONFIDENCE_THRESHOLD']
        self.measure_head = self.config.get('MEASURE_HEAD', False)
        self.line_thickness = self.config.get('LINE_THICKNESS', 3)
        self.joint_radius = self.config.get('JOINT_RADIUS', 5)

    def detect(self, poses: Sequence[Sequence], width: int, height: int) -> List[PoseDescriptor]:
        return convert_poses(poses, width, height, self.confidence_threshold, self.measure_head)

    def render(self, poses: Sequence[Sequence], width: int, height: int) -> np.ndarray:
        return draw_skeleton(poses, width, height, self.confidence_threshold,
                             self.line_thickness, self.joint_radius)
