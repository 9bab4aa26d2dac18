"""Chunk transformers: raw stdout bytes to client-ready messages.

Transformers are stateless. Each call receives one chunk and the session
config; nothing carries over between chunks.
"""

from __future__ import annotations

import numpy as np

import config
from utils.capture.models import (
    CameraConfig,
    DataMessage,
    IQSample,
    SampleBatch,
    SampleStats,
    SDRConfig,
)
from utils.constants import IQ_CENTER


def decode_iq(chunk: bytes, max_samples: int) -> tuple[np.ndarray, np.ndarray]:
    """
    Decode interleaved unsigned 8-bit IQ pairs.

    At most ``max_samples`` pairs are decoded; trailing bytes, including an
    unpaired final byte, are ignored.

    Returns:
        (i, q) float arrays scaled to [-1.0, 1.0]
    """
    num_samples = min(len(chunk) // 2, max_samples)
    raw = np.frombuffer(chunk, dtype=np.uint8, count=num_samples * 2)
    scaled = (raw.astype(np.float64) - IQ_CENTER) / IQ_CENTER
    return scaled[0::2], scaled[1::2]


class SDRTransformer:
    """Turns rtl_sdr output into sample batches with magnitude statistics."""

    def __init__(
        self,
        max_samples: int = config.SDR_MAX_SAMPLES,
        delivery_samples: int = config.SDR_DELIVERY_SAMPLES,
    ):
        if max_samples <= 0 or delivery_samples <= 0:
            raise ValueError('Sample limits must be positive')
        self.max_samples = max_samples
        self.delivery_samples = min(delivery_samples, max_samples)

    def transform(self, chunk: bytes, stream_config: SDRConfig) -> DataMessage:
        i, q = decode_iq(chunk, self.max_samples)
        magnitude = np.hypot(i, q)
        num_samples = int(magnitude.size)

        if num_samples:
            stats = SampleStats(
                bytes_received=len(chunk),
                avg_magnitude=round(float(magnitude.mean()), 4),
                max_magnitude=round(float(magnitude.max()), 4),
            )
        else:
            stats = SampleStats(bytes_received=len(chunk))

        keep = min(num_samples, self.delivery_samples)
        samples = tuple(
            IQSample(i=si, q=sq, magnitude=sm)
            for si, sq, sm in zip(
                i[:keep].tolist(), q[:keep].tolist(), magnitude[:keep].tolist()
            )
        )

        return DataMessage(
            payload=SampleBatch(
                frequency=stream_config.frequency,
                sample_rate=stream_config.sample_rate,
                num_samples=num_samples,
                samples=samples,
            ),
            stats=stats,
        )


class FrameTransformer:
    """Camera chunks are opaque JPEG data and pass through unchanged."""

    def transform(self, chunk: bytes, stream_config: CameraConfig) -> DataMessage | None:
        if not chunk:
            return None
        return DataMessage(payload=bytes(chunk))
