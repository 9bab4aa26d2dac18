"""Tests for StreamController session lifecycle and delivery."""

from __future__ import annotations

import time
from unittest.mock import MagicMock

import pytest

from conftest import (
    EMIT_FRAME_THEN_SLEEP,
    EMIT_IQ,
    EXIT_1,
    FAKE_FRAME,
    SLEEP,
    STDERR_THEN_SLEEP,
    wait_for,
)
from utils.capture import (
    Backend,
    CameraConfig,
    DataMessage,
    ErrorMessage,
    SDRConfig,
    Source,
    StatusMessage,
    StreamController,
)
from utils.capture.supervisor import EventKind, ProcessEvent, ProcessState

SDR_CONFIG = SDRConfig(frequency=100_000_000, sample_rate=2_048_000)


def has_exit_status(collector) -> bool:
    return any('Process stopped' in m.text for m in collector.of_type('status'))


class TestSDRSession:
    def test_chunk_then_exit_order(self, make_controller, collector):
        controller = make_controller(sdr=EMIT_IQ)
        handle = controller.start(Source.SDR, SDR_CONFIG, collector)

        assert handle.is_live or handle.state == ProcessState.TERMINATED
        assert wait_for(lambda: has_exit_status(collector))

        data = collector.of_type('data')
        assert len(data) == 1
        assert data[0].payload.num_samples == 2
        first, second = data[0].payload.samples
        assert (first.i, first.q, first.magnitude) == pytest.approx((0, 0, 0), abs=0.01)
        assert (second.i, second.q, second.magnitude) == pytest.approx((1, -1, 2 ** 0.5))
        assert collector.messages[0] is data[0]
        assert collector.messages[-1] == StatusMessage('Process stopped (exit code: 0)')

    def test_nonzero_exit_reported(self, make_controller, collector):
        controller = make_controller(sdr=EXIT_1)
        handle = controller.start(Source.SDR, SDR_CONFIG, collector)

        assert wait_for(lambda: has_exit_status(collector))
        assert collector.messages[-1].text == 'Process stopped (exit code: 1)'
        assert handle.state == ProcessState.TERMINATED
        assert handle.exit_code == 1
        assert controller.get_status(Source.SDR)['state'] == 'terminated'

    def test_stderr_delivered_as_status(self, make_controller, collector):
        controller = make_controller(sdr=STDERR_THEN_SLEEP)
        controller.start(Source.SDR, SDR_CONFIG, collector)

        assert wait_for(lambda: collector.of_type('status'))
        assert collector.of_type('status')[0] == StatusMessage('Found 1 device(s)')

    def test_no_delivery_after_stop(self, make_controller, collector):
        controller = make_controller(sdr=SLEEP)
        handle = controller.start(Source.SDR, SDR_CONFIG, collector)
        controller.stop(Source.SDR)
        delivered = len(collector.messages)

        # Output already in flight from the stopped process
        controller._events.put(ProcessEvent(handle, EventKind.STDOUT, b'\x7f\x7f'))
        controller._events.put(ProcessEvent(handle, EventKind.EXIT, -15))
        assert wait_for(controller._events.empty)
        time.sleep(0.1)

        assert len(collector.messages) == delivered
        assert handle.state == ProcessState.TERMINATED
        assert not controller.is_running(Source.SDR)

    def test_stop_when_idle(self, make_controller):
        controller = make_controller(sdr=SLEEP)
        controller.stop(Source.SDR)
        controller.stop('sdr')
        assert controller.get_status(Source.SDR)['state'] == 'idle'

    def test_restart_supersedes_previous(self, make_controller):
        controller = make_controller(sdr=SLEEP)
        first_messages, second_messages = [], []

        first = controller.start(Source.SDR, SDR_CONFIG, first_messages.append)
        second = controller.start(Source.SDR, SDR_CONFIG, second_messages.append)

        assert first.state == ProcessState.TERMINATED
        assert first.process.poll() is not None
        assert second.is_live
        assert controller.get_handle(Source.SDR) is second

        # A late chunk from the first process goes nowhere
        controller._events.put(ProcessEvent(first, EventKind.STDOUT, b'\x00\xff'))
        assert wait_for(controller._events.empty)
        time.sleep(0.1)
        assert first_messages == []
        assert second_messages == []

    def test_status_while_running(self, make_controller, collector):
        controller = make_controller(sdr=SLEEP)
        handle = controller.start(Source.SDR, SDR_CONFIG, collector)

        status = controller.get_status(Source.SDR)
        assert status['state'] == 'running'
        assert status['running'] is True
        assert status['backend'] == 'stub'
        assert status['session']['id'] == handle.id
        assert controller.is_running(Source.SDR)

    def test_deliver_errors_are_contained(self, make_controller):
        controller = make_controller(sdr=EMIT_IQ)
        deliver = MagicMock(side_effect=RuntimeError('client gone'))

        handle = controller.start(Source.SDR, SDR_CONFIG, deliver)

        assert wait_for(lambda: handle.state == ProcessState.TERMINATED)
        assert deliver.call_count >= 2

    def test_latest_sample_batch(self, make_controller, collector):
        controller = make_controller(sdr=EMIT_IQ + "; import time; time.sleep(30)")
        controller.start(Source.SDR, SDR_CONFIG, collector)

        assert wait_for(lambda: controller.get_latest(Source.SDR) is not None)
        assert controller.get_latest(Source.SDR).payload.num_samples == 2
        assert controller.get_current_frame(Source.SDR) is None


class TestStartFailures:
    def test_no_backend_installed(self, make_controller, collector):
        controller = make_controller()

        assert controller.start(Source.SDR, SDR_CONFIG, collector) is None
        assert isinstance(collector.messages[0], ErrorMessage)
        assert controller.get_status(Source.SDR)['state'] == 'unavailable'
        assert not controller.is_running(Source.SDR)

    def test_spawn_failure_reports_error(self, collector):
        backend = Backend(name='rtl_sdr', executable='/nonexistent/rtl_sdr', build_args=lambda c: [])
        controller = StreamController(
            backends={Source.SDR: [backend]},
            backend_selector=lambda candidates: candidates[0] if candidates else None,
        )
        try:
            handle = controller.start(Source.SDR, SDR_CONFIG, collector)
        finally:
            controller.shutdown()

        assert handle.state == ProcessState.TERMINATED
        assert collector.messages[0].type == 'error'
        assert 'Failed to start rtl_sdr' in collector.messages[0].text

    def test_wrong_config_type(self, make_controller, collector):
        popen = MagicMock()
        controller = make_controller(sdr=SLEEP, camera=SLEEP, popen=popen)

        with pytest.raises(TypeError):
            controller.start(Source.SDR, CameraConfig(), collector)
        with pytest.raises(TypeError):
            controller.start(Source.CAMERA, SDR_CONFIG, collector)
        popen.assert_not_called()

    def test_malformed_config_never_spawns(self, make_controller, collector):
        popen = MagicMock()
        controller = make_controller(sdr=SLEEP, popen=popen)

        with pytest.raises(ValueError):
            controller.start(Source.SDR, SDRConfig(frequency='abc', sample_rate=-1), collector)

        popen.assert_not_called()
        assert collector.messages == []
        assert controller.get_handle(Source.SDR) is None

    def test_non_callable_deliver(self, make_controller):
        controller = make_controller(sdr=SLEEP)
        with pytest.raises(TypeError):
            controller.start(Source.SDR, SDR_CONFIG, None)

    def test_unknown_source(self, make_controller, collector):
        controller = make_controller(sdr=SLEEP)
        with pytest.raises(ValueError, match='Unknown source'):
            controller.start('radio', SDR_CONFIG, collector)


class TestCameraSession:
    def test_frame_available_while_running(self, make_controller, collector):
        controller = make_controller(camera=EMIT_FRAME_THEN_SLEEP)
        controller.start(Source.CAMERA, CameraConfig(), collector)

        assert wait_for(lambda: controller.get_current_frame() == FAKE_FRAME)
        data = collector.of_type('data')
        assert isinstance(data[0], DataMessage)
        assert data[0].to_dict()['bytesReceived'] == len(FAKE_FRAME)

        controller.stop(Source.CAMERA)
        assert controller.get_current_frame() is None

    def test_sources_are_independent(self, make_controller):
        controller = make_controller(sdr=SLEEP, camera=SLEEP)
        controller.start(Source.SDR, SDR_CONFIG, lambda m: None)
        controller.start(Source.CAMERA, CameraConfig(), lambda m: None)

        controller.stop(Source.CAMERA)
        assert controller.is_running(Source.SDR)
        assert not controller.is_running(Source.CAMERA)


class TestAvailability:
    def test_check_available_with_stub(self, make_controller):
        assert make_controller(sdr=SLEEP).check_available(Source.SDR) is True

    def test_check_available_without_backend(self, make_controller):
        assert make_controller().check_available(Source.CAMERA) is False


def test_shutdown_stops_everything(make_controller):
    controller = make_controller(sdr=SLEEP, camera=SLEEP)
    sdr = controller.start(Source.SDR, SDR_CONFIG, lambda m: None)
    camera = controller.start(Source.CAMERA, CameraConfig(), lambda m: None)

    controller.shutdown()

    assert sdr.process.poll() is not None
    assert camera.process.poll() is not None
    assert not controller.is_running(Source.SDR)
    assert not controller.is_running(Source.CAMERA)
