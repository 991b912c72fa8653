import pytest

from conftest import standing_pose
from gestures import interpret_gestures
from pose_types import GestureState, Transform

# shoulders at x=300/500: centre 400, width 200 -> "wide" beyond 300px from centre
LEFT_WIDE = (400 - 1.6 * 200, 300, 0.9)
RIGHT_WIDE = (400 + 1.6 * 200, 300, 0.9)
LEFT_RAISED = (290, 150, 0.9)
RIGHT_RAISED = (510, 150, 0.9)


def run_frames(poses, transform=None, state=None):
    transform = transform or Transform()
    state = state or GestureState()
    events = []
    for pose in poses:
        result = interpret_gestures(pose, transform, state)
        transform = result.transform
        events.append(result.events)
    return transform, state, events


def test_left_wrist_wide_moves_up_once_on_transition():
    relaxed = standing_pose()
    wide = standing_pose(left_wrist=LEFT_WIDE)
    transform, state, events = run_frames([relaxed, wide, wide, wide, wide])
    assert events == [[], ["offset_up"], [], [], []]
    assert transform.vertical_offset == pytest.approx(-0.05)
    assert state.both_wrists is True


def test_right_wrist_wide_moves_down():
    transform, _, events = run_frames([standing_pose(right_wrist=RIGHT_WIDE)])
    assert events == [["offset_down"]]
    assert transform.vertical_offset == pytest.approx(0.05)


def test_offset_latch_releases_when_hands_come_back():
    wide = standing_pose(left_wrist=LEFT_WIDE)
    relaxed = standing_pose()
    transform, _, _ = run_frames([wide, relaxed, wide, relaxed, wide])
    assert transform.vertical_offset == pytest.approx(-0.15)


def test_offset_latch_is_shared_between_directions():
    # switching straight from left-wide to right-wide does not fire again
    transform, _, events = run_frames([
        standing_pose(left_wrist=LEFT_WIDE),
        standing_pose(right_wrist=RIGHT_WIDE),
    ])
    assert events == [["offset_up"], []]
    assert transform.vertical_offset == pytest.approx(-0.05)


def test_both_wrists_wide_keeps_latch():
    state = GestureState(both_wrists=True)
    pose = standing_pose(left_wrist=LEFT_WIDE, right_wrist=RIGHT_WIDE)
    result = interpret_gestures(pose, Transform(), state)
    assert result.events == []
    assert state.both_wrists is True


def test_low_confidence_wrist_clears_offset_latch():
    state = GestureState(both_wrists=True)
    pose = standing_pose(left_wrist=(LEFT_WIDE[0], 300, 0.5))
    interpret_gestures(pose, Transform(), state)
    assert state.both_wrists is False


def test_right_wrist_raised_grows_once_while_held():
    raised = standing_pose(right_wrist=RIGHT_RAISED)
    transform, state, events = run_frames([raised] * 10)
    assert events[0] == ["scale_up"]
    assert all(e == [] for e in events[1:])
    assert transform.scale == pytest.approx(1.1)
    assert state.right_wrist is True


def test_left_wrist_raised_shrinks():
    transform, _, events = run_frames([standing_pose(left_wrist=LEFT_RAISED)])
    assert events == [["scale_down"]]
    assert transform.scale == pytest.approx(0.9)


def test_both_wrists_raised_does_nothing():
    transform, state, _ = run_frames([standing_pose(left_wrist=LEFT_RAISED, right_wrist=RIGHT_RAISED)])
    assert transform == Transform()
    assert not state.left_wrist and not state.right_wrist


def test_offset_gesture_takes_priority_over_resize():
    # right wrist raised while the left is held out wide: only the offset fires
    pose = standing_pose(left_wrist=LEFT_WIDE, right_wrist=(510, 150, 0.9))
    state = GestureState(right_wrist=True)
    result = interpret_gestures(pose, Transform(), state)
    assert result.events == ["offset_up"]
    assert result.transform.scale == pytest.approx(1.0)
    assert state.right_wrist is False


def test_scale_saturates_at_bounds():
    raised = standing_pose(right_wrist=RIGHT_RAISED)
    relaxed = standing_pose()
    transform, _, _ = run_frames([raised, relaxed] * 40)
    assert transform.scale == pytest.approx(3.0)

    lowered = standing_pose(left_wrist=LEFT_RAISED)
    transform, _, _ = run_frames([lowered, relaxed] * 40, transform=transform)
    assert transform.scale == pytest.approx(0.4)


def test_offset_saturates_at_bounds():
    up = standing_pose(left_wrist=LEFT_WIDE)
    down = standing_pose(right_wrist=RIGHT_WIDE)
    relaxed = standing_pose()
    transform, _, _ = run_frames([up, relaxed] * 30)
    assert transform.vertical_offset == pytest.approx(-0.5)
    transform, _, _ = run_frames([down, relaxed] * 30, transform=transform)
    assert transform.vertical_offset == pytest.approx(0.5)


def test_missing_shoulders_clear_every_latch():
    state = GestureState(left_wrist=True, right_wrist=True, both_wrists=True)
    pose = standing_pose(left_shoulder=(300, 300, 0.1))
    result = interpret_gestures(pose, Transform(), state)
    assert result.events == []
    assert state == GestureState()

    state = GestureState(left_wrist=True, right_wrist=True, both_wrists=True)
    interpret_gestures(None, Transform(), state)
    assert state == GestureState()


def test_transform_is_clamped_on_construction():
    assert Transform(5.0, -2.0) == Transform(3.0, -0.5)
    assert Transform(0.1, 0.9) == Transform(0.4, 0.5)
