"""Capture tool backends and installed-tool selection.

A backend turns an immutable stream config into an argument list. The
mapping is a pure function of the config so that the exact command line for
a session can be logged, reported and tested.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from utils.capture.models import CameraConfig, PhotoConfig, SDRConfig, Source
from utils.constants import CAMERA_TOOLS, SDR_PROBE_TOOL, SDR_TOOLS


@dataclass(frozen=True)
class Backend:
    """An external executable able to serve one source."""
    name: str
    executable: str
    build_args: Callable[[object], list[str]]
    probe_command: tuple[str, ...] = ()

    def command(self, stream_config: object) -> list[str]:
        return [self.executable, *self.build_args(stream_config)]


BackendSelector = Callable[[Sequence[Backend]], Optional[Backend]]


def check_tool(name: str) -> bool:
    """Check if a tool is installed."""
    return shutil.which(name) is not None


def first_installed(candidates: Sequence[Backend]) -> Backend | None:
    """Default selector: first candidate whose executable is on PATH."""
    for backend in candidates:
        if check_tool(backend.executable):
            return backend
    return None


# ----------------------------------------------------------------------
# rtl_sdr
# ----------------------------------------------------------------------

def _format_gain(gain: float) -> str:
    return f'{gain:g}'


def rtl_sdr_args(stream_config: SDRConfig) -> list[str]:
    """rtl_sdr -f <Hz> -s <Hz> -g <dB> - (raw IQ to stdout)"""
    return [
        '-f', str(stream_config.frequency),
        '-s', str(stream_config.sample_rate),
        '-g', _format_gain(stream_config.gain),
        '-',
    ]


# ----------------------------------------------------------------------
# Camera stills
# ----------------------------------------------------------------------

def raspistill_stream_args(stream_config: CameraConfig) -> list[str]:
    return [
        '-t', '0',
        '-w', str(stream_config.width),
        '-h', str(stream_config.height),
        '-q', str(stream_config.quality),
        '-o', '-',
        '-tl', str(stream_config.interval_ms),
        '-n',
    ]


def libcamera_stream_args(stream_config: CameraConfig) -> list[str]:
    # libcamera-still and rpicam-still share the same option names
    return [
        '-t', '0',
        '--width', str(stream_config.width),
        '--height', str(stream_config.height),
        '-q', str(stream_config.quality),
        '-o', '-',
        '--timelapse', str(stream_config.interval_ms),
        '-n',
    ]


def raspistill_photo_args(photo_config: PhotoConfig, output_path: str) -> list[str]:
    return [
        '-o', output_path,
        '-w', str(photo_config.width),
        '-h', str(photo_config.height),
        '-q', str(photo_config.quality),
        '-t', str(photo_config.timeout_ms),
        '-n',
    ]


def libcamera_photo_args(photo_config: PhotoConfig, output_path: str) -> list[str]:
    return [
        '-o', output_path,
        '--width', str(photo_config.width),
        '--height', str(photo_config.height),
        '-q', str(photo_config.quality),
        '-t', str(photo_config.timeout_ms),
        '-n',
    ]


PHOTO_ARG_BUILDERS: dict[str, Callable[[PhotoConfig, str], list[str]]] = {
    'raspistill': raspistill_photo_args,
    'libcamera-still': libcamera_photo_args,
    'rpicam-still': libcamera_photo_args,
}


def _sdr_backends() -> list[Backend]:
    return [
        Backend(
            name=tool,
            executable=tool,
            build_args=rtl_sdr_args,
            probe_command=(SDR_PROBE_TOOL, '-t'),
        )
        for tool in SDR_TOOLS
    ]


def _camera_backends() -> list[Backend]:
    backends = []
    for tool in CAMERA_TOOLS:
        if tool == 'raspistill':
            backends.append(Backend(
                name=tool,
                executable=tool,
                build_args=raspistill_stream_args,
                probe_command=(tool, '-t', '1', '-n', '-o', '/dev/null'),
            ))
        else:
            backends.append(Backend(
                name=tool,
                executable=tool,
                build_args=libcamera_stream_args,
                probe_command=(tool, '--list-cameras'),
            ))
    return backends


def default_backends() -> dict[Source, list[Backend]]:
    """Candidate backends per source, in priority order."""
    return {
        Source.SDR: _sdr_backends(),
        Source.CAMERA: _camera_backends(),
    }
