"""
Desktop Virtual Try-On window.
Usage: python app.py [camera_index] [garment_dir]

Controls: [+]/[-] size | [W]/[S] move up/down | [P] save snapshot | [Q]/[ESC] exit
Gestures: raise right hand = bigger, raise left hand = smaller,
          hold one hand out wide = move garment up/down
"""

import os
import sys

import cv2
import numpy as np

from camera import CameraSource
from garment_assets import GARMENT_DIR, GarmentAssets
from tryon_engine import TryOnEngine

# -------------------------
# Config
# -------------------------
CAM_INDEX = 0
ASSET_DIR = GARMENT_DIR
SNAPSHOT_DIR = "snapshots"
WINDOW_NAME = "Virtual Try-On"
ERROR_SCREEN_SIZE = (640, 200)


def draw_hud(frame, engine):
    status = engine.status()
    lines = [
        (f"Mode: {status['view'].upper()}", (255, 255, 255)),
        (f"FPS: {status['fps']}  Confidence: {status['confidence']}%", (0, 255, 0)),
        (f"Size: {status['scale']:.2f}  Offset: {status['vertical_offset']:+.2f}", (200, 200, 200)),
    ]
    for i, (text, color) in enumerate(lines):
        cv2.putText(frame, text, (15, 30 + i * 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, color, 2, cv2.LINE_AA)
    return frame


def save_snapshot(engine):
    snap = engine.snapshot()
    if snap is None:
        print("[WARNING] Nothing to capture yet")
        return None
    filename, data = snap
    os.makedirs(SNAPSHOT_DIR, exist_ok=True)
    path = os.path.join(SNAPSHOT_DIR, filename)
    with open(path, "wb") as f:
        f.write(data)
    print(f"[OK] Snapshot saved: {path}")
    return path


def handle_key(key, engine):
    """Apply a keyboard control. Returns False when the user asked to quit."""
    if key in (ord('q'), ord('Q'), 27):
        return False
    if key in (ord('+'), ord('=')):
        engine.increase_size()
    elif key == ord('-'):
        engine.decrease_size()
    elif key in (ord('w'), ord('W')):
        engine.move_up()
    elif key in (ord('s'), ord('S')):
        engine.move_down()
    elif key in (ord('p'), ord('P')):
        save_snapshot(engine)
    return True


def show_error_screen(message, width=ERROR_SCREEN_SIZE[0], height=ERROR_SCREEN_SIZE[1]):
    screen = np.zeros((height, width, 3), dtype=np.uint8)
    cv2.putText(screen, message, (20, height // 2 - 20), cv2.FONT_HERSHEY_SIMPLEX, 0.6,
                (0, 0, 255), 2, cv2.LINE_AA)
    cv2.putText(screen, "[R] retry | [Q]/[ESC] close", (20, height // 2 + 20),
                cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2, cv2.LINE_AA)
    cv2.imshow(WINDOW_NAME, screen)
    return cv2.waitKey(0) & 0xFF


def prompt_retry(engine, read_key=show_error_screen):
    """Offer retry/close after a failed load. Returns True once the engine is running."""
    while True:
        print(f"[ERROR] {engine.error}  [R] retry | [Q] close")
        key = read_key(engine.error)
        if key in (ord('q'), ord('Q'), 27):
            return False
        if key in (ord('r'), ord('R')) and engine.retry():
            return True


def parse_args(argv):
    """[camera_index] [garment_dir] from the command line."""
    cam_index = int(argv[1]) if len(argv) > 1 else CAM_INDEX
    asset_dir = argv[2] if len(argv) > 2 else ASSET_DIR
    return cam_index, asset_dir


def main():
    cam_index, asset_dir = parse_args(sys.argv)
    assets = GarmentAssets(asset_dir)
    assets.load_async()

    engine = TryOnEngine(assets)
    if not engine.load() and not prompt_retry(engine):
        engine.close()
        cv2.destroyAllWindows()
        return

    camera = CameraSource(cam_index)
    if not camera.open():
        engine.close()
        raise RuntimeError("[ERROR] Camera could not be opened. Check permissions or other apps using it.")

    print("[OK] Running... Controls: [+/-] size | [W/S] move | [P] snapshot | [Q]/[ESC] exit")

    def on_frame(frame, result):
        display = draw_hud(engine.compose(frame, mirror=True), engine)
        cv2.imshow(WINDOW_NAME, display)
        key = cv2.waitKey(1) & 0xFF
        if not handle_key(key, engine):
            engine.close()

    try:
        engine.run(camera, on_frame=on_frame)
    finally:
        engine.close()
        camera.release()
        cv2.destroyAllWindows()


if __name__ == '__main__':
    main()
