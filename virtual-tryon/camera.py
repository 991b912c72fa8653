"""
Webcam frame acquisition.
"""

import threading

import cv2

# -------------------------
# Config
# -------------------------
FRAME_WIDTH = 1280
FRAME_HEIGHT = 720
FRAME_FPS = 30


class CameraSource:
    """Thread-safe wrapper around cv2.VideoCapture."""

    def __init__(self, index=0, width=FRAME_WIDTH, height=FRAME_HEIGHT, fps=FRAME_FPS):
        self.index = index
        self.width = width
        self.height = height
        self.fps = fps
        self._cap = None
        self._lock = threading.Lock()

    def open(self):
        with self._lock:
            if self._cap is not None and self._cap.isOpened():
                return True
            self._cap = cv2.VideoCapture(self.index)
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
            self._cap.set(cv2.CAP_PROP_FPS, self.fps)
            if self._cap.isOpened():
                print(f"[OK] Camera {self.index} initialized")
                return True
            print(f"[ERROR] Failed to open camera {self.index}")
            self._cap = None
            return False

    def read(self):
        """Next BGR frame, or None if the camera is closed or the read failed."""
        with self._lock:
            if self._cap is None or not self._cap.isOpened():
                return None
            ret, frame = self._cap.read()
        return frame if ret else None

    def release(self):
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
                print("[INFO] Camera released")
