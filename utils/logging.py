"""Logging helpers shared across pistream modules."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'

_configured = False


def configure_logging(level: str = 'INFO') -> None:
    """Install the root handler once; later calls only adjust the level."""
    global _configured

    root = logging.getLogger('pistream')
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``pistream`` namespace."""
    if not name.startswith('pistream'):
        name = f'pistream.{name}'
    return logging.getLogger(name)


app_logger = get_logger('pistream.app')
sdr_logger = get_logger('pistream.sdr')
camera_logger = get_logger('pistream.camera')
