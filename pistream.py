#!/usr/bin/env python3
"""
pistream - SDR and camera capture console for the Raspberry Pi
"""

from __future__ import annotations

import argparse
import atexit

import config
from app import create_app
from utils.logging import app_logger as logger


def main() -> None:
    parser = argparse.ArgumentParser(
        description='SDR and camera capture console',
    )
    parser.add_argument('--host', default=config.HOST, help=f'Bind address (default: {config.HOST})')
    parser.add_argument('-p', '--port', type=int, default=config.PORT, help=f'Port (default: {config.PORT})')
    parser.add_argument('--debug', action='store_true', default=config.DEBUG, help='Enable Flask debug mode')
    args = parser.parse_args()

    app = create_app({'LOG_LEVEL': 'DEBUG'} if args.debug else None)
    atexit.register(app.extensions['stream_controller'].shutdown)

    logger.info(f"pistream {config.VERSION} listening on http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.debug, threaded=True, use_reloader=False)


if __name__ == '__main__':
    main()
