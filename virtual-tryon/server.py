"""
Flask Server for the Virtual Try-On overlay
Serves the mirrored camera stream with the garment overlay plus a small
JSON API for metrics, manual size/offset controls and snapshots.
Usage: python server.py [camera_index] [garment_dir]
"""

import io
import sys
import threading
import time

import cv2
from flask import Flask, Response, jsonify, render_template_string, send_file
from flask_cors import CORS

from camera import CameraSource
from garment_assets import GARMENT_DIR, GarmentAssets
from tryon_engine import EngineState, TryOnEngine

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend access

# Global variables
camera = None
camera_lock = threading.Lock()
tryon_engine = None
is_running = False

# Configuration
CAM_INDEX = 0
ASSET_DIR = GARMENT_DIR
JPEG_QUALITY = 85

CONTROLS = {
    ("size", "up"): "increase_size",
    ("size", "down"): "decrease_size",
    ("offset", "up"): "move_up",
    ("offset", "down"): "move_down",
}


def init_camera():
    """Initialize camera"""
    global camera
    with camera_lock:
        if camera is None:
            camera = CameraSource(CAM_INDEX)
        return camera.open()


def release_camera():
    """Release camera resources"""
    global camera
    with camera_lock:
        if camera is not None:
            camera.release()
            camera = None


def generate_frames():
    """Generate mirrored JPEG frames with the try-on overlay"""
    global is_running

    is_running = True

    if tryon_engine is None or not init_camera():
        is_running = False
        return

    while is_running:
        with camera_lock:
            cam = camera
        if cam is None:
            break

        frame = cam.read()
        if frame is None:
            time.sleep(0.1)
            continue

        if tryon_engine.state == EngineState.RUNNING:
            if tryon_engine.run_cycle(frame) is None:
                break
        elif tryon_engine.state == EngineState.CLOSED:
            break

        display = tryon_engine.compose(frame, mirror=True)
        ret, buffer = cv2.imencode('.jpg', display, [cv2.IMWRITE_JPEG_QUALITY, JPEG_QUALITY])
        if not ret:
            continue

        yield (b'--frame\r\n'
               b'Content-Type: image/jpeg\r\n\r\n' + buffer.tobytes() + b'\r\n')

    is_running = False


def _engine_missing():
    return jsonify({'status': 'error', 'message': 'Engine not loaded'}), 503


@app.route('/')
def index():
    """Simple test page"""
    return render_template_string('''
    <!DOCTYPE html>
    <html>
    <head>
        <title>Virtual Try-On</title>
        <style>
            body { font-family: Arial, sans-serif; background: #1a1a1a; color: white;
                   display: flex; flex-direction: column; align-items: center; padding: 20px; }
            .video-container { border: 2px solid #3b82f6; border-radius: 12px; overflow: hidden; margin: 20px 0; }
            img { display: block; }
            button { margin: 0 4px; padding: 8px 16px; border-radius: 16px; }
        </style>
    </head>
    <body>
        <h1>Virtual Try-On</h1>
        <div class="video-container">
            <img src="/tryon_feed" width="640" height="360" alt="Video Feed">
        </div>
        <div>
            <button onclick="fetch('/api/tryon/size/up', {method: 'POST'})">+</button>
            <button onclick="fetch('/api/tryon/size/down', {method: 'POST'})">-</button>
            <button onclick="fetch('/api/tryon/offset/up', {method: 'POST'})">Up</button>
            <button onclick="fetch('/api/tryon/offset/down', {method: 'POST'})">Down</button>
            <a href="/api/tryon/snapshot"><button>Snapshot</button></a>
        </div>
        <p id="status">Loading...</p>
        <p>Raise left hand to shrink, right hand to enlarge</p>
        <script>
            setInterval(async () => {
                try {
                    const s = await (await fetch('/api/tryon/status')).json();
                    document.getElementById('status').textContent =
                        `Mode: ${s.view} | FPS: ${s.fps} | Confidence: ${s.confidence}% | ${s.state}`;
                } catch (e) {}
            }, 500);
        </script>
    </body>
    </html>
    ''')


@app.route('/tryon_feed')
def tryon_feed():
    """Try-on video streaming route"""
    return Response(
        generate_frames(),
        mimetype='multipart/x-mixed-replace; boundary=frame'
    )


@app.route('/api/tryon/status')
def get_tryon_status():
    """Engine state, current view, transform and live metrics"""
    if tryon_engine is None:
        return _engine_missing()
    status = tryon_engine.status()
    status['running'] = is_running
    return jsonify(status)


@app.route('/api/tryon/<control>/<direction>', methods=['GET', 'POST'])
def tryon_control(control, direction):
    """Manual size/offset override"""
    if tryon_engine is None:
        return _engine_missing()
    action = CONTROLS.get((control, direction))
    if action is None:
        return jsonify({'status': 'error', 'message': f'Unknown control: {control}/{direction}'}), 400
    transform = getattr(tryon_engine, action)()
    return jsonify({'status': 'ok', 'scale': transform.scale, 'vertical_offset': transform.vertical_offset})


@app.route('/api/tryon/snapshot')
def tryon_snapshot():
    """Download the current frame merged with the overlay as PNG"""
    if tryon_engine is None:
        return _engine_missing()
    snap = tryon_engine.snapshot()
    if snap is None:
        return jsonify({'status': 'error', 'message': 'No frame captured yet'}), 409
    filename, data = snap
    return send_file(io.BytesIO(data), mimetype='image/png', as_attachment=True, download_name=filename)


@app.route('/api/tryon/retry', methods=['GET', 'POST'])
def tryon_retry():
    """Retry loading the pose model after an initialization failure"""
    if tryon_engine is None:
        return _engine_missing()
    ok = tryon_engine.retry()
    return jsonify({'status': 'ok' if ok else 'error', 'state': tryon_engine.state.value,
                    'error': tryon_engine.error})


@app.route('/api/start')
def start_stream():
    """Start the video stream"""
    global is_running
    if not is_running:
        is_running = True
        return jsonify({'status': 'started'})
    return jsonify({'status': 'already running'})


@app.route('/api/stop')
def stop_stream():
    """Stop the video stream"""
    global is_running
    is_running = False
    release_camera()
    return jsonify({'status': 'stopped'})


def parse_args(argv):
    """[camera_index] [garment_dir] from the command line."""
    cam_index = int(argv[1]) if len(argv) > 1 else CAM_INDEX
    asset_dir = argv[2] if len(argv) > 2 else ASSET_DIR
    return cam_index, asset_dir


def main():
    global tryon_engine, CAM_INDEX

    print("=" * 50)
    print("Virtual Try-On Server")
    print("=" * 50)

    CAM_INDEX, asset_dir = parse_args(sys.argv)
    assets = GarmentAssets(asset_dir)
    assets.load_async()

    tryon_engine = TryOnEngine(assets)
    threading.Thread(target=tryon_engine.load, daemon=True).start()

    print(f"\n[INFO] Starting server on http://localhost:5000")
    print("[INFO] Press Ctrl+C to stop\n")

    try:
        app.run(host='0.0.0.0', port=5000, debug=False, threaded=True)
    finally:
        tryon_engine.close()
        release_camera()


if __name__ == '__main__':
    main()
