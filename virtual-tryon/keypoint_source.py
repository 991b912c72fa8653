"""
Keypoint sources for the try-on overlay.
Wraps a pose-estimation backend and returns one Pose (COCO-17 keypoints,
pixel coordinates) per video frame.
"""

from abc import ABC, abstractmethod

import cv2

from pose_types import KeypointName, Pose

# -------------------------
# Config
# -------------------------
MIN_POSE_SCORE = 0.2     # mean keypoint score below this counts as "no person"


class PoseModelError(RuntimeError):
    """Pose backend could not be initialised."""


class MediaPipeIndex:
    """MediaPipe Pose landmark indices used for the COCO-17 subset"""
    NOSE = 0
    LEFT_EYE = 2
    RIGHT_EYE = 5
    LEFT_EAR = 7
    RIGHT_EAR = 8
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28


MEDIAPIPE_TO_COCO = {name: getattr(MediaPipeIndex, name.name) for name in KeypointName}


def pose_from_landmarks(landmarks, width, height, min_pose_score=MIN_POSE_SCORE):
    """
    Convert MediaPipe normalized landmarks (x, y, visibility) into a Pose.
    Visibility is used as the keypoint score; the pose score is their mean.
    Returns None when the mean score is below `min_pose_score`.
    """
    points = {}
    for name, idx in MEDIAPIPE_TO_COCO.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        score = float(getattr(lm, "visibility", 0.0) or 0.0)
        points[name] = (float(lm.x) * width, float(lm.y) * height, min(max(score, 0.0), 1.0))

    pose = Pose.from_points(points)
    if pose.score < min_pose_score:
        return None
    return pose


class KeypointSource(ABC):
    """
    Pose backend interface.

    Implementations take a BGR frame (H,W,3 uint8) and return a Pose,
    or None when nobody is detected.
    """

    @abstractmethod
    def estimate(self, frame_bgr):
        ...

    def close(self):
        pass


class MediaPipeKeypointSource(KeypointSource):
    """MediaPipe Pose backend (single person, tracking mode)."""

    def __init__(self, model_complexity=1, min_detection_confidence=0.5,
                 min_tracking_confidence=0.5, min_pose_score=MIN_POSE_SCORE):
        try:
            import mediapipe as mp
            pose_module = mp.solutions.pose
        except (ImportError, AttributeError) as e:
            raise PoseModelError(
                "MediaPipe Pose is not available. Install with: pip install -e .[pose]"
            ) from e

        try:
            self._pose = pose_module.Pose(
                static_image_mode=False,
                model_complexity=int(model_complexity),
                smooth_landmarks=True,
                enable_segmentation=False,
                min_detection_confidence=float(min_detection_confidence),
                min_tracking_confidence=float(min_tracking_confidence),
            )
        except Exception as e:
            raise PoseModelError(f"MediaPipe Pose init failed: {e}") from e

        self.min_pose_score = min_pose_score
        print("[OK] Using MediaPipe Pose")

    def estimate(self, frame_bgr):
        h, w = frame_bgr.shape[:2]
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        results = self._pose.process(rgb)
        if results.pose_landmarks is None:
            return None
        return pose_from_landmarks(results.pose_landmarks.landmark, w, h, self.min_pose_score)

    def close(self):
        if self._pose is not None:
            self._pose.close()
            self._pose = None
