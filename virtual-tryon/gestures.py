"""
Hand-gesture controls for the garment overlay.

  left wrist held wide   -> move garment up     (offset - 0.05)
  right wrist held wide  -> move garment down   (offset + 0.05)
  right wrist raised     -> bigger              (scale + 0.1)
  left wrist raised      -> smaller             (scale - 0.1)

Every gesture is edge-triggered: holding a pose fires once, then the latch
must be released (pose relaxed) before it can fire again.
"""

from dataclasses import dataclass, field
from typing import List

from pose_types import KeypointName as K
from pose_types import Transform

# -------------------------
# Config
# -------------------------
SHOULDER_MIN_CONFIDENCE = 0.35
WRIST_MIN_CONFIDENCE = 0.5
WIDE_FACTOR = 1.5          # wrist distance from shoulder centre, in shoulder widths
OFFSET_STEP = 0.05
SCALE_STEP = 0.1


@dataclass
class GestureResult:
    transform: Transform
    events: List[str] = field(default_factory=list)
    offset_gesture: bool = False


def _log(event, transform):
    if event.startswith("offset"):
        print(f"[GESTURE] {event} - New Offset: {transform.vertical_offset:.2f}", flush=True)
    else:
        print(f"[GESTURE] {event} - New Scale: {transform.scale:.2f}", flush=True)


def interpret_gestures(pose, transform, state):
    """
    Evaluate gestures for one frame.

    `state` (GestureState) is updated in place; the returned GestureResult
    carries the new Transform and the names of the events that fired.
    """
    result = GestureResult(transform)

    if pose is None or not pose.all_confident((K.LEFT_SHOULDER, K.RIGHT_SHOULDER), SHOULDER_MIN_CONFIDENCE):
        state.clear()
        return result

    ls, rs = pose[K.LEFT_SHOULDER], pose[K.RIGHT_SHOULDER]
    lw = pose.get(K.LEFT_WRIST, WRIST_MIN_CONFIDENCE)
    rw = pose.get(K.RIGHT_WRIST, WRIST_MIN_CONFIDENCE)

    # Vertical offset: one wrist held out wide
    if lw is not None and rw is not None:
        shoulder_width = abs(rs.x - ls.x)
        center_x = (ls.x + rs.x) / 2
        left_wide = abs(lw.x - center_x) > shoulder_width * WIDE_FACTOR
        right_wide = abs(rw.x - center_x) > shoulder_width * WIDE_FACTOR

        if left_wide != right_wide:
            result.offset_gesture = True
            if not state.both_wrists:
                if left_wide:
                    result.transform = result.transform.with_offset(-OFFSET_STEP)
                    result.events.append("offset_up")
                else:
                    result.transform = result.transform.with_offset(OFFSET_STEP)
                    result.events.append("offset_down")
                state.both_wrists = True
        elif not left_wide and not right_wide:
            state.both_wrists = False
    else:
        state.both_wrists = False

    # Resize: one wrist raised above its shoulder
    left_raised = lw is not None and lw.y < ls.y
    right_raised = rw is not None and rw.y < rs.y

    if right_raised and not left_raised and not result.offset_gesture:
        if not state.right_wrist:
            result.transform = result.transform.with_scale(SCALE_STEP)
            result.events.append("scale_up")
            state.right_wrist = True
    else:
        state.right_wrist = False

    if left_raised and not right_raised and not result.offset_gesture:
        if not state.left_wrist:
            result.transform = result.transform.with_scale(-SCALE_STEP)
            result.events.append("scale_down")
            state.left_wrist = True
    else:
        state.left_wrist = False

    for event in result.events:
        _log(event, result.transform)
    return result
