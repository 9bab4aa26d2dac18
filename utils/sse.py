"""Server-Sent Events helpers."""

from __future__ import annotations

import json
import queue
import time
from typing import Any, Generator, Iterator

from flask import Response


def format_sse(data: dict[str, Any], event: str | None = None) -> str:
    """Format a dict as an SSE frame."""
    msg = f'data: {json.dumps(data)}\n\n'
    if event:
        msg = f'event: {event}\n{msg}'
    return msg


def offer(q: queue.Queue, item: Any) -> None:
    """Put without blocking, discarding the oldest entry when full."""
    try:
        q.put_nowait(item)
    except queue.Full:
        try:
            q.get_nowait()
            q.put_nowait(item)
        except (queue.Empty, queue.Full):
            pass


def drain(q: queue.Queue) -> None:
    while not q.empty():
        try:
            q.get_nowait()
        except queue.Empty:
            break


def sse_stream(
    source_queue: queue.Queue,
    timeout: float = 1.0,
    keepalive_interval: float = 30.0,
) -> Generator[str, None, None]:
    """Yield SSE frames from a queue, with keepalives during silence."""
    last_keepalive = time.time()

    while True:
        try:
            msg = source_queue.get(timeout=timeout)
            last_keepalive = time.time()
            yield format_sse(msg)
        except queue.Empty:
            now = time.time()
            if now - last_keepalive >= keepalive_interval:
                yield format_sse({'type': 'keepalive'})
                last_keepalive = now


def sse_response(generator: Iterator[str]) -> Response:
    """Wrap an SSE generator in a non-buffered streaming response."""
    response = Response(generator, mimetype='text/event-stream')
    response.headers['Cache-Control'] = 'no-cache'
    response.headers['X-Accel-Buffering'] = 'no'
    response.headers['Connection'] = 'keep-alive'
    return response
