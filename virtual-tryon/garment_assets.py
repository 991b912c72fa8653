"""
Garment asset set: one image per view orientation, loaded once per session.
Loading runs on a background thread so the render loop never waits for it;
a view whose image is not ready yet simply draws no garment.
"""

import os
import threading

import cv2
import numpy as np

from pose_types import Orientation

# -------------------------
# Config
# -------------------------
GARMENT_DIR = "garments"
GARMENT_IMAGES = {
    Orientation.FRONT: "front.png",
    Orientation.BACK: "back.png",
    Orientation.LEFT: "left.png",
    Orientation.RIGHT: "right.png",
}
MAX_FILE_MB = 10
MIN_SIDE, MAX_SIDE = 50, 4000


def load_garment_image(path):
    """Load and validate a garment image, ensure BGRA format."""
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Garment image not found: {path}")
    if os.path.getsize(path) > MAX_FILE_MB * 1024 * 1024:
        raise ValueError(f"File too large (max {MAX_FILE_MB}MB)")

    img = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError("Failed to load image")

    h, w = img.shape[:2]
    if not (MIN_SIDE <= w <= MAX_SIDE and MIN_SIDE <= h <= MAX_SIDE):
        raise ValueError(f"Invalid dimensions ({w}x{h})")

    # No alpha channel: treat the near-white background as transparent
    if img.ndim == 3 and img.shape[2] == 3:
        gray = cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
        _, alpha = cv2.threshold(gray, 240, 255, cv2.THRESH_BINARY_INV)
        alpha = cv2.GaussianBlur(alpha, (5, 5), 0)
        img = np.dstack([img, alpha])
    elif img.ndim != 3 or img.shape[2] != 4:
        raise ValueError("Unsupported format")

    return img


class GarmentAssets:
    """Four garment images keyed by Orientation."""

    def __init__(self, garment_dir=GARMENT_DIR, filenames=None):
        self.garment_dir = garment_dir
        self.filenames = dict(filenames or GARMENT_IMAGES)
        self._images = {}
        self._errors = {}
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._thread = None

    @classmethod
    def from_images(cls, images):
        """Asset set from already-decoded BGRA images."""
        assets = cls(garment_dir=None, filenames={})
        assets._images = {Orientation(k): v for k, v in images.items()}
        assets._done.set()
        return assets

    def load(self):
        """Load every orientation synchronously. Returns the number loaded."""
        if self.garment_dir is not None and not os.path.isdir(self.garment_dir):
            self._done.set()
            raise FileNotFoundError(f"'{self.garment_dir}' folder not found.")

        print("[INFO] Loading garment images...")
        for view, filename in self.filenames.items():
            path = os.path.join(self.garment_dir, filename)
            try:
                img = load_garment_image(path)
            except (OSError, ValueError) as e:
                print(f"  [ERROR] {view.value}: {e}")
                with self._lock:
                    self._errors[view] = str(e)
                continue
            with self._lock:
                self._images[view] = img
            print(f"  Loaded {view.value}: {filename}")

        self._done.set()
        print(f"[OK] Loaded {len(self._images)}/{len(self.filenames)} garment view(s)")
        return len(self._images)

    def load_async(self):
        """Start loading on a daemon thread and return immediately."""
        if self._thread is not None:
            return self._thread
        self._thread = threading.Thread(target=self._load_in_background, daemon=True)
        self._thread.start()
        return self._thread

    def _load_in_background(self):
        try:
            self.load()
        except Exception as e:
            print(f"[ERROR] Garment loading failed: {e}")
        finally:
            self._done.set()

    def wait(self, timeout=None):
        return self._done.wait(timeout)

    @property
    def loaded(self):
        return self._done.is_set()

    def get(self, view):
        with self._lock:
            return self._images.get(Orientation(view))

    def errors(self):
        with self._lock:
            return {k.value: v for k, v in self._errors.items()}
