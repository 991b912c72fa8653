"""
View orientation classifier (front / back / left / right).
The camera preview is mirrored, so left and right are swapped relative to
the raw image: a nose far to the image right means the user faces "left".
"""

from pose_types import KeypointName as K, Orientation, TORSO_KEYPOINTS

# -------------------------
# Config
# -------------------------
TORSO_MIN_CONFIDENCE = 0.35
FACE_MIN_CONFIDENCE = 0.3
NOSE_OFFSET_THRESHOLD = 0.6   # fraction of half shoulder width


def classify_orientation(pose):
    """Classify the current frame, or None when the torso is not confident."""
    if pose is None or not pose.all_confident(TORSO_KEYPOINTS, TORSO_MIN_CONFIDENCE):
        return None

    nose = pose.get(K.NOSE, FACE_MIN_CONFIDENCE)
    face_count = sum(
        1 for n in (K.NOSE, K.LEFT_EYE, K.RIGHT_EYE) if pose[n].confident(FACE_MIN_CONFIDENCE)
    )
    left_ear, right_ear = pose[K.LEFT_EAR], pose[K.RIGHT_EAR]
    ear_count = sum(1 for e in (left_ear, right_ear) if e.confident(FACE_MIN_CONFIDENCE))

    # No face and no ears: assume the user's back is turned
    if face_count == 0 and ear_count == 0:
        return Orientation.BACK

    if nose is not None:
        ls, rs = pose[K.LEFT_SHOULDER], pose[K.RIGHT_SHOULDER]
        center_x = (ls.x + rs.x) / 2
        half_width = abs(rs.x - ls.x) / 2
        if half_width <= 0:
            return Orientation.FRONT
        offset = (nose.x - center_x) / half_width
        if offset > NOSE_OFFSET_THRESHOLD:
            return Orientation.LEFT
        if offset < -NOSE_OFFSET_THRESHOLD:
            return Orientation.RIGHT
        return Orientation.FRONT

    if face_count >= 1:
        return Orientation.FRONT

    if ear_count == 1:
        return Orientation.RIGHT if left_ear.score > right_ear.score else Orientation.LEFT

    return Orientation.FRONT


def update_view(current, detected):
    """Return (view, changed). A None classification keeps the current view."""
    if detected is None or detected == current:
        return current, False
    return detected, True
