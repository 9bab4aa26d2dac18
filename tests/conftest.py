"""Shared fixtures: stub capture children, controllers and the Flask app."""

from __future__ import annotations

import sys
import threading
import time
from unittest.mock import MagicMock

import pytest

from app import create_app
from utils.capture import Backend, Source, StreamController

# Child scripts run with the current interpreter in place of rtl_sdr/raspistill
EMIT_IQ = (
    "import sys; sys.stdout.buffer.write(bytes([127, 127, 255, 0])); "
    "sys.stdout.buffer.flush()"
)
EXIT_0 = "import sys; sys.exit(0)"
EXIT_1 = "import sys; sys.exit(1)"
SLEEP = "import time; time.sleep(30)"
STDERR_THEN_SLEEP = (
    "import sys, time; sys.stderr.write('Found 1 device(s)\\n'); "
    "sys.stderr.flush(); time.sleep(30)"
)
EMIT_FRAME_THEN_SLEEP = (
    "import sys, time; sys.stdout.buffer.write(b'\\xff\\xd8fake-jpeg\\xff\\xd9'); "
    "sys.stdout.buffer.flush(); time.sleep(30)"
)
FAKE_FRAME = b'\xff\xd8fake-jpeg\xff\xd9'


def stub_backend(script: str, probe: str | None = None, name: str = 'stub') -> Backend:
    """A backend that runs ``script`` under the current interpreter."""
    return Backend(
        name=name,
        executable=sys.executable,
        build_args=lambda _config: ['-c', script],
        probe_command=(sys.executable, '-c', probe if probe is not None else EXIT_0),
    )


def wait_for(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class Collector:
    """Thread-safe delivery callback recording every message."""

    def __init__(self):
        self.messages = []
        self._lock = threading.Lock()

    def __call__(self, message) -> None:
        with self._lock:
            self.messages.append(message)

    def of_type(self, kind: str) -> list:
        with self._lock:
            return [m for m in self.messages if m.type == kind]


@pytest.fixture
def collector() -> Collector:
    return Collector()


@pytest.fixture
def make_controller():
    """Build StreamControllers backed by stub children; shut down after the test."""
    created: list[StreamController] = []

    def _make(sdr: str | None = None, camera: str | None = None, **kwargs) -> StreamController:
        backends = {
            Source.SDR: [stub_backend(sdr)] if sdr is not None else [],
            Source.CAMERA: [stub_backend(camera)] if camera is not None else [],
        }
        kwargs.setdefault('terminate_timeout', 2.0)
        controller = StreamController(backends=backends, **kwargs)
        created.append(controller)
        return controller

    yield _make

    for controller in created:
        controller.shutdown()


@pytest.fixture
def mock_controller() -> MagicMock:
    controller = MagicMock(spec=StreamController)
    controller.get_handle.return_value = None
    controller.get_current_frame.return_value = None
    controller.is_running.return_value = False
    return controller


@pytest.fixture
def app(tmp_path, mock_controller):
    """Application wired to a mock stream controller."""
    return create_app(
        {
            'TESTING': True,
            'PHOTOS_DIR': str(tmp_path / 'photos'),
            'SSE_KEEPALIVE_INTERVAL': 0.05,
        },
        controller=mock_controller,
    )


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()
