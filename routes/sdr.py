"""RTL-SDR IQ sample streaming routes."""

from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from routes import get_stream_controller, get_stream_queue, queue_delivery, session_stream
from utils.capture.models import SDRConfig, Source
from utils.logging import sdr_logger as logger
from utils.sse import drain, sse_response

sdr_bp = Blueprint('sdr', __name__, url_prefix='/sdr')


@sdr_bp.route('/status')
def get_status() -> Response:
    return jsonify(get_stream_controller().get_status(Source.SDR))


@sdr_bp.route('/available')
def check_available() -> Response:
    """Probe rtl_test; slow when no dongle answers."""
    available = get_stream_controller().check_available(Source.SDR)
    return jsonify({'source': Source.SDR.value, 'available': available})


@sdr_bp.route('/start', methods=['POST'])
def start_sdr() -> Response:
    """
    Start IQ streaming.

    JSON body:
        {
            "frequency": 100000000,  // Hz
            "sampleRate": 2048000,   // Hz
            "gain": 0                // dB, 0 = auto
        }
    """
    data = request.get_json(silent=True) or {}

    try:
        sdr_config = SDRConfig.from_dict(data)
    except ValueError as e:
        return jsonify({'status': 'error', 'message': str(e)}), 400

    controller = get_stream_controller()
    sdr_queue = get_stream_queue(Source.SDR)
    drain(sdr_queue)

    logger.info(f"Starting RTL-SDR with config: {sdr_config.to_dict()}")
    handle = controller.start(Source.SDR, sdr_config, queue_delivery(sdr_queue))

    if handle is None:
        return jsonify({
            'status': 'error',
            'error_type': 'UNAVAILABLE',
            'message': 'rtl_sdr not installed',
        }), 503

    if not handle.is_live:
        return jsonify({
            'status': 'error',
            'message': 'Failed to start rtl_sdr',
            'session': handle.to_dict(),
        }), 500

    return jsonify({
        'status': 'started',
        'config': sdr_config.to_dict(),
        'session': handle.to_dict(),
    })


@sdr_bp.route('/stop', methods=['POST'])
def stop_sdr() -> Response:
    logger.info("Stopping RTL-SDR stream")
    get_stream_controller().stop(Source.SDR)
    return jsonify({'status': 'stopped'})


@sdr_bp.route('/stream')
def stream_sdr() -> Response:
    """SSE stream of sample batches and process status."""
    return sse_response(session_stream(Source.SDR, logger))
