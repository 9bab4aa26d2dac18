"""Supervision of one external capture process per source.

The supervisor spawns the backend executable, runs three observer threads
(stdout chunks, stderr lines, exit) and posts what they see as tagged
ProcessEvents. It never delivers to clients itself; the owning controller
consumes the events on a single dispatcher thread.
"""

from __future__ import annotations

import subprocess
import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

import config
from utils.capture.backends import Backend, BackendSelector, first_installed
from utils.capture.models import Source
from utils.logging import get_logger
from utils.process import register_process, safe_terminate, unregister_process

logger = get_logger('pistream.supervisor')


class SpawnError(Exception):
    """The capture executable could not be started."""


class BackendUnavailableError(SpawnError):
    """No candidate executable for the source is installed."""


class ProcessState(str, Enum):
    IDLE = 'idle'
    STARTING = 'starting'
    RUNNING = 'running'
    STOPPING = 'stopping'
    TERMINATED = 'terminated'


LIVE_STATES = (ProcessState.STARTING, ProcessState.RUNNING)


@dataclass(eq=False)
class ProcessHandle:
    """The supervised OS process of one session."""
    source: Source
    config: Any
    command: list[str]
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: ProcessState = ProcessState.IDLE
    process: subprocess.Popen | None = None
    started_at: float | None = None
    exit_code: int | None = None

    @property
    def pid(self) -> int | None:
        return self.process.pid if self.process is not None else None

    @property
    def is_live(self) -> bool:
        return self.state in LIVE_STATES

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'source': self.source.value,
            'state': self.state.value,
            'pid': self.pid,
            'command': ' '.join(self.command),
            'started_at': self.started_at,
            'exit_code': self.exit_code,
        }


class EventKind(str, Enum):
    STDOUT = 'stdout'
    STDERR = 'stderr'
    ERROR = 'error'
    EXIT = 'exit'


@dataclass(frozen=True)
class ProcessEvent:
    handle: ProcessHandle
    kind: EventKind
    data: Any = None


class ProcessSupervisor:
    """Owns spawn, monitoring and termination for a single source."""

    def __init__(
        self,
        source: Source,
        candidates: Sequence[Backend],
        post_event: Callable[[ProcessEvent], None],
        backend_selector: BackendSelector = first_installed,
        popen: Callable[..., subprocess.Popen] | None = None,
        chunk_size: int = config.STDOUT_CHUNK_SIZE,
        terminate_timeout: float = config.TERMINATE_TIMEOUT,
    ):
        self.source = source
        self.candidates = list(candidates)
        self.backend: Backend | None = None
        self.handle: ProcessHandle | None = None
        self._post = post_event
        self._select = backend_selector
        self._popen = popen or subprocess.Popen
        self._chunk_size = chunk_size
        self._terminate_timeout = terminate_timeout

    def resolve_backend(self) -> Backend | None:
        self.backend = self._select(self.candidates)
        return self.backend

    def start(self, stream_config: Any) -> ProcessHandle:
        """
        Spawn the capture process for ``stream_config``.

        Any live handle is stopped first, so two handles never run at once.

        Raises:
            BackendUnavailableError: no backend executable is installed
            SpawnError: the OS refused to start the executable
        """
        if self.handle is not None and self.handle.is_live:
            self.stop(self.handle)

        backend = self.resolve_backend()
        if backend is None:
            raise BackendUnavailableError(f'No {self.source.value} capture tool installed')

        command = backend.command(stream_config)
        handle = ProcessHandle(
            source=self.source,
            config=stream_config,
            command=command,
            state=ProcessState.STARTING,
        )
        self.handle = handle

        logger.info(f"Starting {self.source.value}: {' '.join(command)}")

        try:
            process = self._popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except (OSError, ValueError) as e:
            handle.state = ProcessState.TERMINATED
            logger.error(f"Failed to start {backend.name}: {e}")
            raise SpawnError(f'Failed to start {backend.name}: {e}') from e

        register_process(process)
        handle.process = process
        handle.started_at = time.time()

        readers = (
            threading.Thread(target=self._read_stdout, args=(handle,), daemon=True),
            threading.Thread(target=self._read_stderr, args=(handle,), daemon=True),
        )
        for reader in readers:
            reader.start()
        threading.Thread(
            target=self._watch_exit,
            args=(handle, readers),
            daemon=True,
        ).start()

        handle.state = ProcessState.RUNNING
        return handle

    def stop(self, handle: ProcessHandle | None) -> None:
        """Terminate the handle's process. Safe to call repeatedly."""
        if handle is None or not handle.is_live:
            return

        if handle.process is None:
            handle.state = ProcessState.TERMINATED
            return

        handle.state = ProcessState.STOPPING
        logger.info(f"Stopping {self.source.value} process {handle.pid}")

        exit_code = safe_terminate(handle.process, timeout=self._terminate_timeout)
        unregister_process(handle.process)
        if exit_code is not None:
            handle.exit_code = exit_code
        handle.state = ProcessState.TERMINATED

    def mark_terminated(self, handle: ProcessHandle, exit_code: int | None) -> None:
        handle.exit_code = exit_code
        handle.state = ProcessState.TERMINATED

    def check_available(self, timeout: float = config.PROBE_TIMEOUT) -> bool:
        """
        Run the backend's diagnostic probe.

        Returns True only if the probe exits with code 0 within ``timeout``
        seconds. A probe that overruns is killed and reaped.
        """
        backend = self.resolve_backend()
        if backend is None:
            return False

        command = list(backend.probe_command) or [backend.executable, '--help']
        try:
            probe = self._popen(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except (OSError, ValueError) as e:
            logger.debug(f"Probe {command[0]} failed to start: {e}")
            return False

        try:
            return probe.wait(timeout=timeout) == 0
        except subprocess.TimeoutExpired:
            logger.debug(f"Probe {command[0]} timed out after {timeout}s")
            probe.kill()
            probe.wait()
            return False

    # ------------------------------------------------------------------
    # Observers (run on daemon threads)
    # ------------------------------------------------------------------

    def _read_stdout(self, handle: ProcessHandle) -> None:
        stream = handle.process.stdout
        # Chunks follow pipe read boundaries, so a large JPEG may span several
        try:
            for chunk in iter(lambda: stream.read1(self._chunk_size), b''):
                if not handle.is_live:
                    break
                self._post(ProcessEvent(handle, EventKind.STDOUT, chunk))
        except (OSError, ValueError) as e:
            if handle.is_live:
                self._post(ProcessEvent(handle, EventKind.ERROR, f'Read error: {e}'))

    def _read_stderr(self, handle: ProcessHandle) -> None:
        stream = handle.process.stderr
        try:
            for line in iter(stream.readline, b''):
                text = line.decode('utf-8', errors='replace').strip()
                if not text:
                    continue
                logger.debug(f"[{self.source.value}] {text}")
                if handle.is_live:
                    self._post(ProcessEvent(handle, EventKind.STDERR, text))
        except (OSError, ValueError):
            # Pipe closed during teardown
            pass

    def _watch_exit(self, handle: ProcessHandle, readers: Sequence[threading.Thread]) -> None:
        # Output streams drain before the exit is reported
        for reader in readers:
            reader.join()
        exit_code = handle.process.wait()
        unregister_process(handle.process)
        logger.info(f"{self.source.value} process exited with code {exit_code}")
        self._post(ProcessEvent(handle, EventKind.EXIT, exit_code))
