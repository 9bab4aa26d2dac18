"""Child process registry and termination helpers."""

from __future__ import annotations

import atexit
import subprocess
import threading

from utils.logging import get_logger

logger = get_logger('pistream.process')

_processes: set[subprocess.Popen] = set()
_processes_lock = threading.Lock()


def register_process(process: subprocess.Popen) -> None:
    """Track a spawned process so it is reaped on interpreter exit."""
    with _processes_lock:
        _processes.add(process)


def unregister_process(process: subprocess.Popen) -> None:
    with _processes_lock:
        _processes.discard(process)


def safe_terminate(process: subprocess.Popen | None, timeout: float = 2.0) -> int | None:
    """
    Terminate a process, escalating to SIGKILL if it ignores SIGTERM.

    Never raises; a process that already exited is simply reaped.

    Returns:
        The exit code, or None if it could not be determined.
    """
    if process is None:
        return None

    try:
        if process.poll() is not None:
            return process.returncode
        process.terminate()
        return process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.warning(f"Process {process.pid} ignored SIGTERM, killing")
        try:
            process.kill()
            return process.wait(timeout=timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"Failed to kill process {process.pid}: {e}")
            return None
    except OSError as e:
        # ProcessLookupError and friends: the process is already gone
        logger.debug(f"Terminate of process {process.pid} failed: {e}")
        return process.poll()


def cleanup_all_processes() -> None:
    """Terminate every registered process."""
    with _processes_lock:
        processes = list(_processes)
        _processes.clear()

    for process in processes:
        safe_terminate(process)


atexit.register(cleanup_all_processes)
