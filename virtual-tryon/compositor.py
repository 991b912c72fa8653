"""
Garment compositor.
Draws the garment sprite for the current view onto a transparent BGRA
overlay surface, aligned to the shoulders, plus a thin tracking skeleton.
"""

import math

import cv2
import numpy as np

from pose_types import KeypointName as K, Orientation, TORSO_KEYPOINTS, TorsoGeometry

# -------------------------
# Config
# -------------------------
TORSO_MIN_CONFIDENCE = 0.35
SKELETON_MIN_CONFIDENCE = 0.3
MIN_WIDTH_RATIO = 0.4        # stabilized shoulder width, as a fraction of frame width
WIDTH_FACTOR = 1.35          # garment width relative to stabilized shoulder width
Y_LIFT = 0.15                # shift garment up by this fraction of its height
EDGE_SOFTEN_SIGMA = 1.0
LINE_COLOR = (0, 255, 0, 255)   # BGRA
LINE_THICKNESS = 4

SKELETON_SEGMENTS = [
    (K.LEFT_SHOULDER, K.RIGHT_SHOULDER),
    (K.LEFT_SHOULDER, K.LEFT_HIP),
    (K.RIGHT_SHOULDER, K.RIGHT_HIP),
    (K.LEFT_HIP, K.RIGHT_HIP),
    (K.LEFT_SHOULDER, K.LEFT_ELBOW),
    (K.LEFT_ELBOW, K.LEFT_WRIST),
    (K.RIGHT_SHOULDER, K.RIGHT_ELBOW),
    (K.RIGHT_ELBOW, K.RIGHT_WRIST),
]

# Arm drawn over the garment in side views (mirrored preview)
LEADING_ARM = {
    Orientation.LEFT: (K.RIGHT_ELBOW, K.RIGHT_WRIST),
    Orientation.RIGHT: (K.LEFT_ELBOW, K.LEFT_WRIST),
}


# -------------------------
# Image helpers
# -------------------------

def new_surface(width, height):
    return np.zeros((height, width, 4), dtype=np.uint8)


def soften_alpha_edges(rgba, sigma=1.0):
    out = rgba.copy()
    # (0, 0) lets OpenCV derive the kernel size from sigma
    out[:, :, 3] = cv2.GaussianBlur(out[:, :, 3], (0, 0), sigma)
    return out


def composite_over(surface, sprite, x, y):
    """Alpha-composite a BGRA sprite over a BGRA surface at (x, y), clipped."""
    H, W = surface.shape[:2]
    oh, ow = sprite.shape[:2]

    x1, y1 = max(0, x), max(0, y)
    x2, y2 = min(W, x + ow), min(H, y + oh)
    if x1 >= x2 or y1 >= y2:
        return surface

    src = sprite[(y1 - y):(y2 - y), (x1 - x):(x2 - x)].astype(np.float32) / 255.0
    dst = surface[y1:y2, x1:x2].astype(np.float32) / 255.0

    sa = src[:, :, 3:4]
    da = dst[:, :, 3:4]
    out_a = sa + da * (1.0 - sa)
    out_rgb = (src[:, :, :3] * sa + dst[:, :, :3] * da * (1.0 - sa)) / np.maximum(out_a, 1e-6)

    out = np.concatenate([out_rgb, out_a], axis=2)
    surface[y1:y2, x1:x2] = np.clip(out * 255.0 + 0.5, 0, 255).astype(np.uint8)
    return surface


def blend_overlay(frame_bgr, overlay_rgba, x=0, y=0):
    """Blend a BGRA overlay onto a BGR frame in place."""
    H, W = frame_bgr.shape[:2]
    oh, ow = overlay_rgba.shape[:2]

    x1, y1 = max(0, x), max(0, y)
    x2, y2 = min(W, x + ow), min(H, y + oh)
    if x1 >= x2 or y1 >= y2:
        return frame_bgr

    roi = frame_bgr[y1:y2, x1:x2]
    over = overlay_rgba[(y1 - y):(y2 - y), (x1 - x):(x2 - x)]

    alpha = over[:, :, 3].astype(np.float32) / 255.0
    alpha3 = np.dstack([alpha, alpha, alpha])
    blended = alpha3 * over[:, :, :3].astype(np.float32) + (1 - alpha3) * roi.astype(np.float32)
    frame_bgr[y1:y2, x1:x2] = np.clip(blended + 0.5, 0, 255).astype(np.uint8)
    return frame_bgr


def merge_snapshot(frame_bgr, overlay_rgba):
    """Camera frame with the overlay flattened on top, as a new image."""
    return blend_overlay(frame_bgr.copy(), overlay_rgba)


# -------------------------
# Geometry
# -------------------------

def torso_geometry(pose, min_confidence=TORSO_MIN_CONFIDENCE):
    if pose is None or not pose.all_confident(TORSO_KEYPOINTS, min_confidence):
        return None
    ls, rs = pose[K.LEFT_SHOULDER], pose[K.RIGHT_SHOULDER]
    lh, rh = pose[K.LEFT_HIP], pose[K.RIGHT_HIP]
    shoulder_center = ((ls.x + rs.x) / 2, (ls.y + rs.y) / 2)
    hip_center = ((lh.x + rh.x) / 2, (lh.y + rh.y) / 2)
    return TorsoGeometry(
        shoulder_center=shoulder_center,
        hip_center=hip_center,
        shoulder_width=abs(rs.x - ls.x),
        torso_height=abs(hip_center[1] - shoulder_center[1]),
    )


def _pt(kp):
    return (int(round(kp.x)), int(round(kp.y)))


# -------------------------
# Compositor
# -------------------------

class GarmentCompositor:
    """Renders (pose, view, transform, garment) onto an overlay surface."""

    def __init__(self, width_factor=WIDTH_FACTOR, min_width_ratio=MIN_WIDTH_RATIO,
                 y_lift=Y_LIFT, edge_soften_sigma=EDGE_SOFTEN_SIGMA):
        self.width_factor = width_factor
        self.min_width_ratio = min_width_ratio
        self.y_lift = y_lift
        self.edge_soften_sigma = edge_soften_sigma

    def render(self, surface, pose, view, transform, garment):
        """
        Redraw the whole surface. Returns False (and leaves the surface
        cleared) when the torso keypoints are not confident.
        """
        surface[:] = 0
        geom = torso_geometry(pose)
        if geom is None:
            return False

        self.draw_skeleton(surface, pose)

        if garment is not None:
            self.draw_garment(surface, geom, transform, garment)
            if view in LEADING_ARM:
                elbow, wrist = LEADING_ARM[view]
                self._segment(surface, pose, elbow, wrist, TORSO_MIN_CONFIDENCE)
        return True

    def garment_placement(self, geom, transform, garment_size, surface_width):
        """(x, y, width, height) of the scaled garment on the surface."""
        gw, gh = garment_size
        stable_width = max(geom.shoulder_width, surface_width * self.min_width_ratio)
        scale = (stable_width * self.width_factor / gw) * transform.scale

        tw = max(1, int(round(gw * scale)))
        th = max(1, int(round(gh * scale)))
        cx, cy = geom.shoulder_center
        x = int(round(cx - tw / 2))
        y = int(round(cy + (-self.y_lift + transform.vertical_offset) * gh * scale))
        return x, y, tw, th

    def draw_garment(self, surface, geom, transform, garment):
        gh, gw = garment.shape[:2]
        x, y, tw, th = self.garment_placement(geom, transform, (gw, gh), surface.shape[1])

        interp = cv2.INTER_AREA if tw < gw else cv2.INTER_LINEAR
        sprite = cv2.resize(garment, (tw, th), interpolation=interp)
        if self.edge_soften_sigma > 0:
            sprite = soften_alpha_edges(sprite, self.edge_soften_sigma)
        composite_over(surface, sprite, x, y)

    def draw_skeleton(self, surface, pose):
        for a, b in SKELETON_SEGMENTS:
            self._segment(surface, pose, a, b, SKELETON_MIN_CONFIDENCE)

    def _segment(self, surface, pose, a, b, min_confidence):
        p1, p2 = pose[a], pose[b]
        if not (p1.confident(min_confidence) and p2.confident(min_confidence)):
            return
        if not all(math.isfinite(v) for v in (p1.x, p1.y, p2.x, p2.y)):
            return
        cv2.line(surface, _pt(p1), _pt(p2), LINE_COLOR, LINE_THICKNESS, cv2.LINE_AA)
