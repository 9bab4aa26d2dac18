"""Tests for capture tool argument builders and tool selection."""

from __future__ import annotations

from unittest.mock import patch

from utils.capture.backends import (
    Backend,
    check_tool,
    default_backends,
    first_installed,
    libcamera_photo_args,
    libcamera_stream_args,
    raspistill_photo_args,
    raspistill_stream_args,
    rtl_sdr_args,
)
from utils.capture.models import CameraConfig, PhotoConfig, SDRConfig, Source


class TestRtlSdrArgs:
    def test_builds_stdout_command(self):
        args = rtl_sdr_args(SDRConfig(frequency=100_000_000, sample_rate=2_048_000, gain=0.0))
        assert args == ['-f', '100000000', '-s', '2048000', '-g', '0', '-']

    def test_fractional_gain(self):
        args = rtl_sdr_args(SDRConfig(frequency=100_000_000, sample_rate=2_048_000, gain=12.5))
        assert args[args.index('-g') + 1] == '12.5'

    def test_full_command(self):
        backend = default_backends()[Source.SDR][0]
        command = backend.command(SDRConfig(frequency=433_920_000, sample_rate=1_024_000))
        assert command[0] == 'rtl_sdr'
        assert command[-1] == '-'


class TestCameraArgs:
    def test_raspistill_timelapse(self):
        args = raspistill_stream_args(CameraConfig(width=1280, height=720, quality=15, interval_ms=100))
        assert args == [
            '-t', '0', '-w', '1280', '-h', '720', '-q', '15',
            '-o', '-', '-tl', '100', '-n',
        ]

    def test_libcamera_timelapse(self):
        args = libcamera_stream_args(CameraConfig())
        assert '--timelapse' in args
        assert args[args.index('-o') + 1] == '-'

    def test_photo_args_write_to_path(self):
        photo = PhotoConfig(width=1920, height=1080, quality=85, timeout_ms=500)
        for builder in (raspistill_photo_args, libcamera_photo_args):
            args = builder(photo, '/tmp/photo.jpg')
            assert args[:2] == ['-o', '/tmp/photo.jpg']
            assert args[args.index('-t') + 1] == '500'


class TestSelection:
    def test_check_tool(self):
        with patch('shutil.which', return_value='/usr/bin/rtl_sdr'):
            assert check_tool('rtl_sdr') is True
        with patch('shutil.which', return_value=None):
            assert check_tool('rtl_sdr') is False

    def test_first_installed_respects_priority(self):
        backends = default_backends()[Source.CAMERA]
        installed = {'libcamera-still', 'raspistill'}

        with patch('shutil.which', side_effect=lambda name: f'/usr/bin/{name}' if name in installed else None):
            selected = first_installed(backends)

        assert selected.name == 'libcamera-still'

    def test_first_installed_none(self):
        backends = [Backend(name='x', executable='x', build_args=lambda c: [])]
        with patch('shutil.which', return_value=None):
            assert first_installed(backends) is None

    def test_default_camera_order(self):
        names = [b.name for b in default_backends()[Source.CAMERA]]
        assert names == ['rpicam-still', 'libcamera-still', 'raspistill']
