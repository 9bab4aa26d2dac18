"""Tests for still photo capture."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from utils.capture.models import PhotoConfig
from utils.photos import PhotoCapturer


@pytest.fixture
def capturer(tmp_path):
    return PhotoCapturer(tmp_path / 'photos')


def installed(*tools):
    return lambda name: f'/usr/bin/{name}' if name in tools else None


def write_output(cmd, **kwargs):
    """Fake tool run that writes the file named after -o."""
    Path(cmd[cmd.index('-o') + 1]).write_bytes(b'\xff\xd8\xff\xd9')
    return MagicMock(returncode=0, stderr=b'')


class TestPhotoCapturer:
    def test_find_tool_prefers_newest(self, capturer):
        with patch('shutil.which', side_effect=installed('raspistill', 'rpicam-still')):
            assert capturer.find_tool() == 'rpicam-still'

    def test_no_tool(self, capturer):
        with patch('shutil.which', return_value=None):
            result = capturer.capture()
        assert result.success is False
        assert result.url is None

    def test_capture_success(self, capturer, tmp_path):
        with patch('shutil.which', side_effect=installed('raspistill')), \
             patch('subprocess.run', side_effect=write_output) as mock_run:
            result = capturer.capture(PhotoConfig(timeout_ms=1000))

        assert result.success is True
        assert result.path.exists()
        assert result.path.parent == tmp_path / 'photos'
        assert result.url == f'/photos/{result.filename}'

        cmd = mock_run.call_args[0][0]
        assert cmd[0] == 'raspistill'
        assert mock_run.call_args[1]['timeout'] == 11

    def test_capture_nonzero_exit(self, capturer):
        failed = MagicMock(returncode=1, stderr=b'mmal: No data received from sensor')
        with patch('shutil.which', side_effect=installed('raspistill')), \
             patch('subprocess.run', return_value=failed):
            result = capturer.capture()

        assert result.success is False
        assert result.message == 'Failed to capture photo'

    def test_capture_timeout(self, capturer):
        with patch('shutil.which', side_effect=installed('libcamera-still')), \
             patch('subprocess.run', side_effect=subprocess.TimeoutExpired('libcamera-still', 10)):
            result = capturer.capture()

        assert result.success is False
        assert 'timed out' in result.message

    def test_to_dict(self, capturer):
        with patch('shutil.which', side_effect=installed('raspistill')), \
             patch('subprocess.run', side_effect=write_output):
            data = capturer.capture().to_dict()

        assert data['success'] is True
        assert data['filename'].startswith('photo_')
        assert data['filename'].endswith('.jpg')
