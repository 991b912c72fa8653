"""
Virtual Try-On Engine
Per-frame render loop: capture -> pose -> gestures -> orientation -> composite.

The engine owns all cross-frame state (SessionState). A frame cycle runs to
completion before the next starts; manual size/offset controls redraw from
the cached pose under the same lock, without running inference.
"""

import threading
import time
from dataclasses import dataclass
from enum import Enum

from typing import List, Optional

import cv2
import numpy as np

from compositor import GarmentCompositor, merge_snapshot, new_surface
from gestures import OFFSET_STEP, SCALE_STEP, interpret_gestures
from keypoint_source import MediaPipeKeypointSource
from orientation import classify_orientation, update_view
from pose_types import Orientation, Pose, SessionState, Transform

# -------------------------
# Config
# -------------------------
INIT_ERROR_MESSAGE = "Failed to initialize VTO engine. Please try again."
CAMERA_RETRY_DELAY = 0.1     # seconds to wait after a failed camera read
SNAPSHOT_PREFIX = "vto"


class EngineState(str, Enum):
    LOADING = "loading"
    RUNNING = "running"
    ERROR = "error"
    CLOSED = "closed"


@dataclass
class FrameMetrics:
    fps: int = 0
    confidence: int = 0     # last detection confidence, 0..100


@dataclass
class FrameResult:
    pose: Optional[Pose]
    view: Orientation
    transform: Transform
    overlay: np.ndarray
    drawn: bool
    events: List[str]


class TryOnEngine:
    """Render loop controller for the live try-on overlay."""

    def __init__(self, assets, source_factory=MediaPipeKeypointSource,
                 compositor=None, clock=time.perf_counter):
        self.assets = assets
        self.source_factory = source_factory
        self.compositor = compositor or GarmentCompositor()
        self.clock = clock

        self.state = EngineState.LOADING
        self.error = None
        self.session = SessionState()
        self.metrics = FrameMetrics()
        self.overlay = None

        self._source = None
        self._cycle_lock = threading.Lock()  # one frame cycle at a time
        self._lock = threading.Lock()        # session state + overlay surface
        self._infer_lock = threading.Lock()  # keypoint source
        self._closed = threading.Event()

    # -------------------------
    # Lifecycle
    # -------------------------

    def load(self):
        """Create the pose backend. Returns True once the engine is running."""
        if self.state == EngineState.RUNNING:
            return True
        if self.state == EngineState.CLOSED:
            return False

        self.state = EngineState.LOADING
        self.error = None
        print("[INFO] Loading pose model...")
        try:
            source = self.source_factory()
        except Exception as e:
            print(f"[ERROR] Failed to load pose model: {e}")
            self.state = EngineState.ERROR
            self.error = INIT_ERROR_MESSAGE
            return False

        with self._infer_lock:
            self._source = source
        self.state = EngineState.RUNNING
        print("[OK] Try-on engine ready")
        return True

    def retry(self):
        """Reload the pose backend after a failed load."""
        if self.state != EngineState.ERROR:
            return self.state == EngineState.RUNNING
        return self.load()

    def close(self):
        """Stop scheduling frame cycles. An in-flight inference finishes and is discarded."""
        if self._closed.is_set():
            return
        self._closed.set()
        self.state = EngineState.CLOSED
        with self._infer_lock:
            if self._source is not None:
                self._source.close()
                self._source = None
        print("[INFO] Try-on engine closed")

    @property
    def closed(self):
        return self._closed.is_set()

    # -------------------------
    # Frame cycle
    # -------------------------

    def run_cycle(self, frame_bgr):
        """
        Run one complete frame cycle and return a FrameResult, or None if the
        engine was closed (before or during inference).

        Cycles are serialized: a second caller waits until the first one has
        finished drawing.
        """
        with self._cycle_lock:
            return self._run_cycle(frame_bgr)

    def _run_cycle(self, frame_bgr):
        if self.state == EngineState.CLOSED:
            return None
        if self.state != EngineState.RUNNING:
            raise RuntimeError(f"Engine is not running (state={self.state.value})")

        start = self.clock()
        with self._infer_lock:
            if self._source is None:
                return None
            try:
                pose = self._source.estimate(frame_bgr)
            except Exception as e:
                print(f"[ERROR] Pose processing failed: {e}", flush=True)
                pose = None
        elapsed = self.clock() - start

        if self._closed.is_set():
            return None

        with self._lock:
            s = self.session
            s.last_frame = frame_bgr
            s.last_pose = pose

            gestures = interpret_gestures(pose, s.transform, s.gestures)
            s.transform = gestures.transform

            s.view, changed = update_view(s.view, classify_orientation(pose))
            if changed:
                print(f"[INFO] View changed: {s.view.value}", flush=True)

            self._ensure_surface(frame_bgr)
            drawn = self._draw()

            self.metrics = FrameMetrics(
                fps=int(round(1.0 / elapsed)) if elapsed > 0 else 0,
                confidence=int(round(pose.score * 100)) if pose is not None else 0,
            )
            return FrameResult(
                pose=pose,
                view=s.view,
                transform=s.transform,
                overlay=self.overlay.copy(),
                drawn=drawn,
                events=gestures.events,
            )

    def run(self, frame_source, on_frame=None):
        """
        Drive frame cycles from `frame_source.read()` until close() is called.
        `on_frame(frame, result)` is called after every completed cycle.
        """
        if self.state != EngineState.RUNNING:
            raise RuntimeError(f"Engine is not running (state={self.state.value})")

        while not self._closed.is_set():
            frame = frame_source.read()
            if frame is None:
                time.sleep(CAMERA_RETRY_DELAY)
                continue
            result = self.run_cycle(frame)
            if result is None:
                break
            if on_frame is not None:
                on_frame(frame, result)

    def _ensure_surface(self, frame_bgr):
        h, w = frame_bgr.shape[:2]
        if self.overlay is None or self.overlay.shape[:2] != (h, w):
            self.overlay = new_surface(w, h)

    def _draw(self):
        s = self.session
        return self.compositor.render(
            self.overlay, s.last_pose, s.view, s.transform, self.assets.get(s.view)
        )

    # -------------------------
    # Manual controls
    # -------------------------

    def adjust(self, scale_delta=0.0, offset_delta=0.0):
        """Nudge the transform and redraw from the last pose (no inference)."""
        with self._lock:
            s = self.session
            s.transform = Transform(s.transform.scale + scale_delta,
                                    s.transform.vertical_offset + offset_delta)
            if self.overlay is not None:
                self._draw()
            return s.transform

    def increase_size(self):
        return self.adjust(scale_delta=SCALE_STEP)

    def decrease_size(self):
        return self.adjust(scale_delta=-SCALE_STEP)

    def move_up(self):
        return self.adjust(offset_delta=-OFFSET_STEP)

    def move_down(self):
        return self.adjust(offset_delta=OFFSET_STEP)

    # -------------------------
    # Output
    # -------------------------

    def compose(self, frame_bgr, mirror=True):
        """Frame with the current overlay on top, mirrored for a selfie preview."""
        with self._lock:
            if self.overlay is not None and self.overlay.shape[:2] == frame_bgr.shape[:2]:
                out = merge_snapshot(frame_bgr, self.overlay)
            else:
                out = frame_bgr.copy()
        return cv2.flip(out, 1) if mirror else out

    def snapshot(self):
        """(filename, png_bytes) of the last camera frame merged with the overlay, or None."""
        with self._lock:
            frame = self.session.last_frame
            if frame is None or self.overlay is None:
                return None
            merged = merge_snapshot(frame, self.overlay)

        ok, buffer = cv2.imencode(".png", merged)
        if not ok:
            raise RuntimeError("Failed to encode snapshot")
        filename = f"{SNAPSHOT_PREFIX}-{int(time.time() * 1000)}.png"
        return filename, buffer.tobytes()

    def status(self):
        with self._lock:
            s = self.session
            return {
                "state": self.state.value,
                "error": self.error,
                "view": s.view.value,
                "scale": s.transform.scale,
                "vertical_offset": s.transform.vertical_offset,
                "fps": self.metrics.fps,
                "confidence": self.metrics.confidence,
                "detected": s.last_pose is not None,
            }
