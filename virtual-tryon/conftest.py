"""Shared fixtures for the try-on overlay tests."""

import numpy as np
import pytest

from garment_assets import GarmentAssets
from keypoint_source import KeypointSource
from pose_types import KeypointName as K, Pose

FRAME_W, FRAME_H = 800, 600


def make_pose(**points):
    """
    Pose from keyword keypoints, e.g. make_pose(nose=(450, 200, 0.9)).
    Unlisted keypoints get score 0.
    """
    named = {K[name.upper()]: value for name, value in points.items()}
    return Pose.from_points(named)


def standing_pose(**overrides):
    """Front-facing person: shoulders 200px apart centred at (400, 300)."""
    points = dict(
        nose=(400, 200, 0.9),
        left_eye=(390, 190, 0.9),
        right_eye=(410, 190, 0.9),
        left_ear=(380, 195, 0.8),
        right_ear=(420, 195, 0.8),
        left_shoulder=(300, 300, 0.9),
        right_shoulder=(500, 300, 0.9),
        left_elbow=(280, 400, 0.9),
        right_elbow=(520, 400, 0.9),
        left_wrist=(270, 480, 0.9),
        right_wrist=(530, 480, 0.9),
        left_hip=(320, 500, 0.9),
        right_hip=(480, 500, 0.9),
    )
    points.update(overrides)
    return make_pose(**{k: v for k, v in points.items() if v is not None})


class FakeKeypointSource(KeypointSource):
    """Returns queued poses (or raises queued exceptions) in order; repeats the last one."""

    def __init__(self, poses=None):
        self.poses = list(poses or [])
        self.calls = 0
        self.closed = False
        self.on_estimate = None

    def estimate(self, frame_bgr):
        self.calls += 1
        if self.on_estimate is not None:
            self.on_estimate()
        if not self.poses:
            return None
        item = self.poses.pop(0) if len(self.poses) > 1 else self.poses[0]
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


def solid_garment(width=100, height=120, color=(0, 0, 255)):
    img = np.zeros((height, width, 4), dtype=np.uint8)
    img[:, :, :3] = color
    img[:, :, 3] = 255
    return img


@pytest.fixture
def frame():
    return np.full((FRAME_H, FRAME_W, 3), 90, dtype=np.uint8)


@pytest.fixture
def garments():
    return GarmentAssets.from_images({
        "front": solid_garment(color=(0, 0, 255)),
        "back": solid_garment(color=(255, 0, 0)),
        "left": solid_garment(color=(0, 255, 255)),
        "right": solid_garment(color=(255, 0, 255)),
    })
