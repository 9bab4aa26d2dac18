"""Session configuration and output message types for capture streams."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

import config
from utils.constants import (
    CAMERA_MAX_DIMENSION,
    CAMERA_MAX_INTERVAL_MS,
    JPEG_QUALITY_MAX,
    JPEG_QUALITY_MIN,
    PHOTO_MAX_TIMEOUT_MS,
)
from utils.validation import (
    validate_frequency,
    validate_gain,
    validate_int_range,
    validate_sample_rate,
)


class Source(str, Enum):
    """Independently supervised capture pipelines."""
    SDR = 'sdr'
    CAMERA = 'camera'

    @classmethod
    def parse(cls, value: Source | str) -> Source:
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f'Unknown source: {value!r}') from None


def now_ms() -> int:
    return int(time.time() * 1000)


# ----------------------------------------------------------------------
# Stream configuration
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class SDRConfig:
    """Tuning parameters for one rtl_sdr session."""
    frequency: int  # Hz
    sample_rate: int  # Hz
    gain: float = 0.0  # dB, 0 = automatic

    def __post_init__(self):
        # Frozen, so normalized values are written through object.__setattr__
        object.__setattr__(self, 'frequency', validate_frequency(self.frequency))
        object.__setattr__(self, 'sample_rate', validate_sample_rate(self.sample_rate))
        object.__setattr__(self, 'gain', validate_gain(self.gain))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SDRConfig:
        """Build from the client wire shape, raising ValueError on bad input."""
        if not isinstance(data, dict):
            raise ValueError('SDR config must be a JSON object')
        if 'frequency' not in data:
            raise ValueError('frequency is required')

        return cls(
            frequency=data['frequency'],
            sample_rate=data.get('sampleRate', data.get('sample_rate', 2_048_000)),
            gain=data.get('gain', 0),
        )

    def to_dict(self) -> dict:
        return {
            'frequency': self.frequency,
            'sampleRate': self.sample_rate,
            'gain': self.gain,
        }


@dataclass(frozen=True)
class CameraConfig:
    """Timelapse streaming parameters."""
    width: int = config.CAMERA_WIDTH
    height: int = config.CAMERA_HEIGHT
    quality: int = config.CAMERA_QUALITY
    interval_ms: int = config.CAMERA_INTERVAL_MS

    def __post_init__(self):
        object.__setattr__(self, 'width', validate_int_range(self.width, 'width', 1, CAMERA_MAX_DIMENSION))
        object.__setattr__(self, 'height', validate_int_range(self.height, 'height', 1, CAMERA_MAX_DIMENSION))
        object.__setattr__(self, 'quality', validate_int_range(
            self.quality, 'quality', JPEG_QUALITY_MIN, JPEG_QUALITY_MAX,
        ))
        object.__setattr__(self, 'interval_ms', validate_int_range(
            self.interval_ms, 'interval_ms', 1, CAMERA_MAX_INTERVAL_MS,
        ))

    def to_dict(self) -> dict:
        return {
            'width': self.width,
            'height': self.height,
            'quality': self.quality,
            'intervalMs': self.interval_ms,
        }


@dataclass(frozen=True)
class PhotoConfig:
    """Single still capture parameters."""
    width: int = config.PHOTO_WIDTH
    height: int = config.PHOTO_HEIGHT
    quality: int = config.PHOTO_QUALITY
    timeout_ms: int = config.PHOTO_TIMEOUT_MS

    def __post_init__(self):
        object.__setattr__(self, 'width', validate_int_range(self.width, 'width', 1, CAMERA_MAX_DIMENSION))
        object.__setattr__(self, 'height', validate_int_range(self.height, 'height', 1, CAMERA_MAX_DIMENSION))
        object.__setattr__(self, 'quality', validate_int_range(
            self.quality, 'quality', JPEG_QUALITY_MIN, JPEG_QUALITY_MAX,
        ))
        object.__setattr__(self, 'timeout_ms', validate_int_range(
            self.timeout_ms, 'timeout_ms', 0, PHOTO_MAX_TIMEOUT_MS,
        ))


StreamConfig = Union[SDRConfig, CameraConfig]


# ----------------------------------------------------------------------
# Output messages
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class IQSample:
    i: float
    q: float
    magnitude: float

    def to_dict(self) -> dict:
        return {'i': self.i, 'q': self.q, 'magnitude': self.magnitude}


@dataclass(frozen=True)
class SampleBatch:
    """Decoded IQ samples from one chunk (bounded prefix only)."""
    frequency: int
    sample_rate: int
    num_samples: int
    samples: tuple[IQSample, ...] = ()


@dataclass(frozen=True)
class SampleStats:
    """Magnitude statistics over every decoded sample of a chunk."""
    bytes_received: int
    avg_magnitude: float | None = None
    max_magnitude: float | None = None

    def to_dict(self) -> dict:
        return {
            'avgMagnitude': self.avg_magnitude,
            'maxMagnitude': self.max_magnitude,
            'bytesReceived': self.bytes_received,
        }


@dataclass(frozen=True)
class DataMessage:
    """Transformed stdout output: a sample batch or an opaque image frame."""
    payload: SampleBatch | bytes
    stats: SampleStats | None = None
    timestamp: int = field(default_factory=now_ms)

    type = 'data'

    def to_dict(self) -> dict:
        result: dict[str, Any] = {'type': self.type, 'timestamp': self.timestamp}

        if isinstance(self.payload, SampleBatch):
            result.update({
                'frequency': self.payload.frequency,
                'sampleRate': self.payload.sample_rate,
                'numSamples': self.payload.num_samples,
                'samples': [s.to_dict() for s in self.payload.samples],
            })
            if self.stats:
                result['stats'] = self.stats.to_dict()
        else:
            result['bytesReceived'] = len(self.payload)

        return result


@dataclass(frozen=True)
class StatusMessage:
    text: str

    type = 'status'

    def to_dict(self) -> dict:
        return {'type': self.type, 'message': self.text}


@dataclass(frozen=True)
class ErrorMessage:
    text: str

    type = 'error'

    def to_dict(self) -> dict:
        return {'type': self.type, 'message': self.text}


OutputMessage = Union[DataMessage, StatusMessage, ErrorMessage]
