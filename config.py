"""Configuration settings for pistream.

Values are read from ``PISTREAM_*`` environment variables with sensible
defaults for a Raspberry Pi deployment.
"""

from __future__ import annotations

import os

VERSION = '1.2.0'


def _get_env(key: str, default: str) -> str:
    return os.environ.get(f'PISTREAM_{key}', default)


def _get_env_int(key: str, default: int) -> int:
    try:
        return int(_get_env(key, str(default)))
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    try:
        return float(_get_env(key, str(default)))
    except ValueError:
        return default


def _get_env_bool(key: str, default: bool) -> bool:
    value = _get_env(key, '').lower()
    if not value:
        return default
    return value in ('1', 'true', 'yes', 'on')


# Web server
HOST = _get_env('HOST', '0.0.0.0')
PORT = _get_env_int('PORT', 3000)
DEBUG = _get_env_bool('DEBUG', False)

# Logging
LOG_LEVEL = _get_env('LOG_LEVEL', 'INFO').upper()

# Child process handling
STDOUT_CHUNK_SIZE = _get_env_int('STDOUT_CHUNK_SIZE', 65536)
PROBE_TIMEOUT = _get_env_float('PROBE_TIMEOUT', 2.0)
TERMINATE_TIMEOUT = _get_env_float('TERMINATE_TIMEOUT', 2.0)

# SDR decoding
SDR_MAX_SAMPLES = _get_env_int('SDR_MAX_SAMPLES', 1024)
SDR_DELIVERY_SAMPLES = _get_env_int('SDR_DELIVERY_SAMPLES', 256)

# Camera streaming (not client configurable)
CAMERA_WIDTH = _get_env_int('CAMERA_WIDTH', 1280)
CAMERA_HEIGHT = _get_env_int('CAMERA_HEIGHT', 720)
CAMERA_QUALITY = _get_env_int('CAMERA_QUALITY', 15)
CAMERA_INTERVAL_MS = _get_env_int('CAMERA_INTERVAL_MS', 100)

# Still photo capture
PHOTO_WIDTH = _get_env_int('PHOTO_WIDTH', 1920)
PHOTO_HEIGHT = _get_env_int('PHOTO_HEIGHT', 1080)
PHOTO_QUALITY = _get_env_int('PHOTO_QUALITY', 85)
PHOTO_TIMEOUT_MS = _get_env_int('PHOTO_TIMEOUT_MS', 500)
PHOTOS_DIR = _get_env('PHOTOS_DIR', 'instance/photos')

# SSE delivery
SSE_QUEUE_SIZE = _get_env_int('SSE_QUEUE_SIZE', 100)
SSE_KEEPALIVE_INTERVAL = _get_env_float('SSE_KEEPALIVE_INTERVAL', 30.0)
