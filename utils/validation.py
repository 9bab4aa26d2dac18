"""Input validation for client supplied capture parameters."""

from __future__ import annotations

from typing import Any

from utils.constants import (
    SDR_FREQ_MIN_HZ,
    SDR_FREQ_MAX_HZ,
    SDR_SAMPLE_RATE_RANGES,
    SDR_GAIN_MIN,
    SDR_GAIN_MAX,
)


def validate_frequency(value: Any) -> int:
    """Validate a tuning frequency in Hz."""
    try:
        freq = int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f'Invalid frequency: {value!r}')

    if not SDR_FREQ_MIN_HZ <= freq <= SDR_FREQ_MAX_HZ:
        raise ValueError(
            f'Frequency must be between {SDR_FREQ_MIN_HZ} and {SDR_FREQ_MAX_HZ} Hz'
        )
    return freq


def validate_sample_rate(value: Any) -> int:
    """Validate an RTL2832U sample rate in Hz."""
    try:
        rate = int(float(value))
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f'Invalid sample rate: {value!r}')

    if not any(low <= rate <= high for low, high in SDR_SAMPLE_RATE_RANGES):
        ranges = ', '.join(f'{low}-{high}' for low, high in SDR_SAMPLE_RATE_RANGES)
        raise ValueError(f'Sample rate must be within {ranges} Hz')
    return rate


def validate_gain(value: Any) -> float:
    """Validate tuner gain in dB (0 selects automatic gain)."""
    try:
        gain = float(value)
    except (TypeError, ValueError):
        raise ValueError(f'Invalid gain: {value!r}')

    if not SDR_GAIN_MIN <= gain <= SDR_GAIN_MAX:
        raise ValueError(f'Gain must be between {SDR_GAIN_MIN} and {SDR_GAIN_MAX} dB')
    return gain


def validate_int_range(value: Any, name: str, low: int, high: int) -> int:
    """Validate an integer setting within [low, high]."""
    if isinstance(value, bool):
        raise ValueError(f'Invalid {name}: {value!r}')
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f'Invalid {name}: {value!r}')

    if number != value and not isinstance(value, str):
        raise ValueError(f'{name} must be a whole number')
    if not low <= number <= high:
        raise ValueError(f'{name} must be between {low} and {high}')
    return number
