"""Flask application factory for the pistream control console."""

from __future__ import annotations

import queue
import time
from typing import Any

from flask import Flask, Response, jsonify

import config
from routes import get_stream_controller, register_blueprints
from utils.capture.controller import StreamController
from utils.capture.models import Source
from utils.logging import app_logger as logger, configure_logging

_start_time = time.time()


def create_app(
    overrides: dict[str, Any] | None = None,
    controller: StreamController | None = None,
) -> Flask:
    """
    Build the application.

    Args:
        overrides: values merged into ``app.config`` after the defaults
        controller: stream controller to use instead of a default one
    """
    app = Flask(__name__)
    app.config.update(
        VERSION=config.VERSION,
        LOG_LEVEL=config.LOG_LEVEL,
        PHOTOS_DIR=config.PHOTOS_DIR,
        PROBE_TIMEOUT=config.PROBE_TIMEOUT,
        SSE_QUEUE_SIZE=config.SSE_QUEUE_SIZE,
        SSE_KEEPALIVE_INTERVAL=config.SSE_KEEPALIVE_INTERVAL,
    )
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config['LOG_LEVEL'])

    if controller is None:
        controller = StreamController(probe_timeout=app.config['PROBE_TIMEOUT'])
    app.extensions['stream_controller'] = controller
    app.extensions['stream_queues'] = {
        source: queue.Queue(maxsize=app.config['SSE_QUEUE_SIZE'])
        for source in Source
    }

    register_blueprints(app)

    @app.route('/health')
    def health() -> Response:
        stream_controller = get_stream_controller()
        return jsonify({
            'status': 'healthy',
            'version': app.config['VERSION'],
            'uptime_seconds': round(time.time() - _start_time, 1),
            'processes': {
                source.value: stream_controller.is_running(source)
                for source in Source
            },
        })

    logger.debug("Application created")
    return app
