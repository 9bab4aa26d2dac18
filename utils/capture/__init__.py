"""External-process-backed capture streaming (SDR samples, camera frames)."""

from utils.capture.backends import Backend, default_backends, first_installed
from utils.capture.controller import StreamController
from utils.capture.models import (
    CameraConfig,
    DataMessage,
    ErrorMessage,
    OutputMessage,
    PhotoConfig,
    SDRConfig,
    Source,
    StatusMessage,
)
from utils.capture.supervisor import (
    BackendUnavailableError,
    ProcessHandle,
    ProcessState,
    ProcessSupervisor,
    SpawnError,
)
from utils.capture.transform import FrameTransformer, SDRTransformer

__all__ = [
    'Backend',
    'BackendUnavailableError',
    'CameraConfig',
    'DataMessage',
    'ErrorMessage',
    'FrameTransformer',
    'OutputMessage',
    'PhotoConfig',
    'ProcessHandle',
    'ProcessState',
    'ProcessSupervisor',
    'SDRConfig',
    'SDRTransformer',
    'Source',
    'SpawnError',
    'StatusMessage',
    'StreamController',
    'default_backends',
    'first_installed',
]
