"""Pi camera streaming and still capture routes."""

from __future__ import annotations

import time
from typing import Generator

from flask import Blueprint, Response, current_app, jsonify

from routes import get_stream_controller, get_stream_queue, queue_delivery, session_stream
from utils.capture.models import CameraConfig, Source
from utils.logging import camera_logger as logger
from utils.photos import PhotoCapturer
from utils.sse import drain, sse_response

camera_bp = Blueprint('camera', __name__, url_prefix='/camera')

MJPEG_BOUNDARY = 'frame'


@camera_bp.route('/status')
def get_status() -> Response:
    controller = get_stream_controller()
    status = controller.get_status(Source.CAMERA)
    status['has_frame'] = controller.get_current_frame(Source.CAMERA) is not None
    return jsonify(status)


@camera_bp.route('/available')
def check_available() -> Response:
    available = get_stream_controller().check_available(Source.CAMERA)
    return jsonify({'source': Source.CAMERA.value, 'available': available})


@camera_bp.route('/start', methods=['POST'])
def start_camera() -> Response:
    """Start timelapse streaming with the fixed stream settings."""
    controller = get_stream_controller()

    if controller.is_running(Source.CAMERA):
        return jsonify({
            'status': 'already_running',
            'message': 'Camera already streaming',
            'session': controller.get_handle(Source.CAMERA).to_dict(),
        })

    camera_queue = get_stream_queue(Source.CAMERA)
    drain(camera_queue)

    camera_config = CameraConfig()
    handle = controller.start(Source.CAMERA, camera_config, queue_delivery(camera_queue))

    if handle is None:
        return jsonify({
            'status': 'error',
            'error_type': 'UNAVAILABLE',
            'message': 'No camera tool installed',
        }), 503

    if not handle.is_live:
        return jsonify({
            'status': 'error',
            'message': 'Failed to start camera',
            'session': handle.to_dict(),
        }), 500

    logger.info("Camera streaming started")
    return jsonify({
        'status': 'started',
        'message': 'Camera streaming started',
        'config': camera_config.to_dict(),
        'session': handle.to_dict(),
    })


@camera_bp.route('/stop', methods=['POST'])
def stop_camera() -> Response:
    get_stream_controller().stop(Source.CAMERA)
    logger.info("Camera streaming stopped")
    return jsonify({'status': 'stopped', 'message': 'Camera streaming stopped'})


@camera_bp.route('/frame')
def get_frame() -> Response:
    """Latest stdout chunk from the running stream (may be a partial JPEG)."""
    frame = get_stream_controller().get_current_frame(Source.CAMERA)
    if frame is None:
        return jsonify({'status': 'error', 'message': 'No frame available'}), 404

    response = Response(frame, mimetype='image/jpeg')
    response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    return response


@camera_bp.route('/video')
def video() -> Response:
    """MJPEG stream of frames while the camera is running."""
    controller = get_stream_controller()
    if not controller.is_running(Source.CAMERA):
        return jsonify({'status': 'error', 'message': 'Camera not streaming'}), 409

    interval = CameraConfig().interval_ms / 1000

    def generate() -> Generator[bytes, None, None]:
        last_frame = None
        while controller.is_running(Source.CAMERA):
            frame = controller.get_current_frame(Source.CAMERA)
            if frame is not None and frame is not last_frame:
                last_frame = frame
                yield (
                    f'--{MJPEG_BOUNDARY}\r\n'
                    f'Content-Type: image/jpeg\r\n'
                    f'Content-Length: {len(frame)}\r\n\r\n'
                ).encode() + frame + b'\r\n'
            time.sleep(interval)

    return Response(
        generate(),
        mimetype=f'multipart/x-mixed-replace; boundary={MJPEG_BOUNDARY}',
        headers={
            'Cache-Control': 'no-cache, no-store, must-revalidate',
            'X-Accel-Buffering': 'no',
        },
    )


@camera_bp.route('/stream')
def stream_camera() -> Response:
    """SSE stream of camera status, errors and frame arrivals."""
    return sse_response(session_stream(Source.CAMERA, logger))


@camera_bp.route('/capture', methods=['POST'])
def capture_photo() -> Response:
    """Capture one high quality still into the photos directory."""
    capturer = PhotoCapturer(current_app.config['PHOTOS_DIR'])
    result = capturer.capture()

    if not result.success:
        return jsonify({'status': 'error', **result.to_dict()}), 500

    return jsonify({'status': 'success', **result.to_dict()})
