"""Single still photo capture to the photos directory."""

from __future__ import annotations

import shutil
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

import config
from utils.capture.backends import PHOTO_ARG_BUILDERS
from utils.capture.models import PhotoConfig
from utils.constants import CAMERA_TOOLS
from utils.logging import camera_logger as logger


@dataclass
class CaptureResult:
    success: bool
    message: str
    filename: str | None = None
    path: Path | None = None

    @property
    def url(self) -> str | None:
        return f'/photos/{self.filename}' if self.filename else None

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'message': self.message,
            'filename': self.filename,
            'path': str(self.path) if self.path else None,
            'url': self.url,
        }


class PhotoCapturer:
    """Runs the installed still tool once per capture request."""

    def __init__(self, photos_dir: str | Path | None = None):
        self.photos_dir = Path(photos_dir or config.PHOTOS_DIR)

    def find_tool(self) -> str | None:
        for tool in CAMERA_TOOLS:
            if shutil.which(tool):
                return tool
        return None

    def capture(self, photo_config: PhotoConfig | None = None) -> CaptureResult:
        photo_config = photo_config or PhotoConfig()

        tool = self.find_tool()
        if tool is None:
            return CaptureResult(success=False, message='No camera tool installed')

        self.photos_dir.mkdir(parents=True, exist_ok=True)
        filename = f'photo_{int(time.time() * 1000)}.jpg'
        filepath = self.photos_dir / filename

        cmd = [tool, *PHOTO_ARG_BUILDERS[tool](photo_config, str(filepath))]
        logger.info(f"Capturing photo: {' '.join(cmd)}")

        # Allow for sensor warm-up on top of the tool's own delay
        timeout = photo_config.timeout_ms / 1000 + 10
        try:
            result = subprocess.run(cmd, capture_output=True, timeout=timeout)
        except subprocess.TimeoutExpired:
            logger.error(f"{tool} timed out after {timeout}s")
            return CaptureResult(success=False, message='Photo capture timed out')
        except OSError as e:
            logger.error(f"Failed to run {tool}: {e}")
            return CaptureResult(success=False, message=str(e))

        if result.returncode != 0 or not filepath.exists():
            stderr = result.stderr.decode('utf-8', errors='replace').strip()
            logger.warning(f"{tool} exited with code {result.returncode}: {stderr}")
            return CaptureResult(success=False, message='Failed to capture photo')

        return CaptureResult(
            success=True,
            message='Photo captured successfully',
            filename=filename,
            path=filepath,
        )
