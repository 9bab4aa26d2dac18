"""Hardware limits and tool names."""

from __future__ import annotations

# RTL-SDR tuning range (R820T/R828D tuners)
SDR_FREQ_MIN_HZ = 24_000_000
SDR_FREQ_MAX_HZ = 1_766_000_000

# RTL2832U accepts these sample rate windows
SDR_SAMPLE_RATE_RANGES = (
    (225_001, 300_000),
    (900_001, 3_200_000),
)

SDR_GAIN_MIN = 0.0
SDR_GAIN_MAX = 49.6

# Unsigned 8-bit IQ midpoint
IQ_CENTER = 127.5

SDR_TOOLS = ('rtl_sdr',)
SDR_PROBE_TOOL = 'rtl_test'

# Camera still tools, newest first
CAMERA_TOOLS = ('rpicam-still', 'libcamera-still', 'raspistill')

# Still tool limits
CAMERA_MAX_DIMENSION = 4056
JPEG_QUALITY_MIN = 1
JPEG_QUALITY_MAX = 100
CAMERA_MAX_INTERVAL_MS = 60_000
PHOTO_MAX_TIMEOUT_MS = 60_000
