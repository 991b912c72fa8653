"""
Pose and try-on state types shared by the overlay engine.
Keypoints are stored in a fixed COCO-17 order so named lookups are O(1).
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, Optional, Tuple

# -------------------------
# Config
# -------------------------
SCALE_MIN = 0.4
SCALE_MAX = 3.0
OFFSET_MIN = -0.5
OFFSET_MAX = 0.5


class KeypointName(IntEnum):
    """COCO-17 keypoint indices (MoveNet / MediaPipe subset order)"""
    NOSE = 0
    LEFT_EYE = 1
    RIGHT_EYE = 2
    LEFT_EAR = 3
    RIGHT_EAR = 4
    LEFT_SHOULDER = 5
    RIGHT_SHOULDER = 6
    LEFT_ELBOW = 7
    RIGHT_ELBOW = 8
    LEFT_WRIST = 9
    RIGHT_WRIST = 10
    LEFT_HIP = 11
    RIGHT_HIP = 12
    LEFT_KNEE = 13
    RIGHT_KNEE = 14
    LEFT_ANKLE = 15
    RIGHT_ANKLE = 16


TORSO_KEYPOINTS = (
    KeypointName.LEFT_SHOULDER,
    KeypointName.RIGHT_SHOULDER,
    KeypointName.LEFT_HIP,
    KeypointName.RIGHT_HIP,
)


class Orientation(str, Enum):
    """Coarse facing direction of the tracked person"""
    FRONT = "front"
    BACK = "back"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Keypoint:
    """Single 2D landmark in pixel space."""
    name: KeypointName
    x: float
    y: float
    score: float = 0.0

    def confident(self, threshold: float) -> bool:
        return self.score > threshold


@dataclass(frozen=True)
class Pose:
    """
    One detected person in one frame.

    `keypoints` always holds exactly one entry per KeypointName, indexed by
    the enum value; landmarks the backend did not report carry score 0.
    """
    keypoints: Tuple[Keypoint, ...]
    score: float = 0.0

    def __post_init__(self):
        if len(self.keypoints) != len(KeypointName):
            raise ValueError(f"Pose needs {len(KeypointName)} keypoints, got {len(self.keypoints)}")

    def __getitem__(self, name: KeypointName) -> Keypoint:
        return self.keypoints[name]

    def get(self, name: KeypointName, min_score: float = 0.0) -> Optional[Keypoint]:
        """Keypoint if its score is above `min_score`, else None."""
        kp = self.keypoints[name]
        return kp if kp.score > min_score else None

    def all_confident(self, names, threshold: float) -> bool:
        return all(self.keypoints[n].score > threshold for n in names)

    @classmethod
    def from_points(cls, points: Dict[KeypointName, Tuple[float, float, float]], score=None):
        """Build a pose from {name: (x, y, score)}; score defaults to the keypoint mean."""
        kps = []
        for name in KeypointName:
            x, y, s = points.get(name, (0.0, 0.0, 0.0))
            kps.append(Keypoint(name, float(x), float(y), float(s)))
        if score is None:
            score = sum(k.score for k in kps) / len(kps)
        return cls(tuple(kps), float(score))


@dataclass(frozen=True)
class TorsoGeometry:
    shoulder_center: Tuple[float, float]
    hip_center: Tuple[float, float]
    shoulder_width: float
    torso_height: float


def _clamp(value, lo, hi):
    return round(min(max(value, lo), hi), 4)


@dataclass(frozen=True)
class Transform:
    """Garment scale factor and vertical offset (fraction of garment height)."""
    scale: float = 1.0
    vertical_offset: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "scale", _clamp(self.scale, SCALE_MIN, SCALE_MAX))
        object.__setattr__(self, "vertical_offset", _clamp(self.vertical_offset, OFFSET_MIN, OFFSET_MAX))

    def with_scale(self, delta: float) -> "Transform":
        return Transform(self.scale + delta, self.vertical_offset)

    def with_offset(self, delta: float) -> "Transform":
        return Transform(self.scale, self.vertical_offset + delta)


@dataclass
class GestureState:
    """Edge-trigger latches, one per gesture"""
    left_wrist: bool = False
    right_wrist: bool = False
    both_wrists: bool = False

    def clear(self):
        self.left_wrist = False
        self.right_wrist = False
        self.both_wrists = False


@dataclass
class SessionState:
    """Cross-frame state owned by the render loop."""
    view: Orientation = Orientation.FRONT
    transform: Transform = field(default_factory=Transform)
    gestures: GestureState = field(default_factory=GestureState)
    last_pose: Optional[Pose] = None
    last_frame: Optional[object] = None
