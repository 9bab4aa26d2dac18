"""Flask blueprints and shared lookups for the stream controller."""

from __future__ import annotations

import queue
from typing import TYPE_CHECKING, Generator

from flask import Flask, current_app

from utils.capture.models import OutputMessage, Source
from utils.sse import offer, sse_stream

if TYPE_CHECKING:
    from utils.capture.controller import StreamController


def get_stream_controller() -> StreamController:
    return current_app.extensions['stream_controller']


def get_stream_queue(source: Source) -> queue.Queue:
    return current_app.extensions['stream_queues'][source]


def queue_delivery(q: queue.Queue):
    """Delivery callback pushing wire dicts onto an SSE queue."""
    def deliver(message: OutputMessage) -> None:
        offer(q, message.to_dict())
    return deliver


def session_stream(source: Source, logger) -> Generator[str, None, None]:
    """
    SSE frames for a source; closing the stream stops its session.

    A stream opened before the session starts owns whichever session is
    live when it closes. A stream opened on a live session leaves a newer
    session, started by another request, running.
    """
    controller = get_stream_controller()
    source_queue = get_stream_queue(source)
    keepalive = current_app.config['SSE_KEEPALIVE_INTERVAL']

    handle = controller.get_handle(source)
    opened_on = handle.id if handle is not None and handle.is_live else None

    def generate() -> Generator[str, None, None]:
        try:
            yield from sse_stream(source_queue, keepalive_interval=keepalive)
        finally:
            current = controller.get_handle(source)
            if current is not None and current.is_live and opened_on in (None, current.id):
                logger.info(f"Client disconnected from {source.value} stream, stopping session {current.id}")
                controller.stop(source)

    return generate()


def register_blueprints(app: Flask) -> None:
    from .camera import camera_bp
    from .sdr import sdr_bp

    app.register_blueprint(sdr_bp)
    app.register_blueprint(camera_bp)
