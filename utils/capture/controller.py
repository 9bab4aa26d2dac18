"""Per-source stream sessions binding a delivery callback to a capture process."""

from __future__ import annotations

import queue
import subprocess
import threading
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

import config
from utils.capture.backends import Backend, BackendSelector, default_backends, first_installed
from utils.capture.models import (
    CameraConfig,
    DataMessage,
    ErrorMessage,
    OutputMessage,
    SDRConfig,
    Source,
    StatusMessage,
)
from utils.capture.supervisor import (
    BackendUnavailableError,
    EventKind,
    ProcessEvent,
    ProcessHandle,
    ProcessSupervisor,
    SpawnError,
)
from utils.capture.transform import FrameTransformer, SDRTransformer
from utils.logging import get_logger

logger = get_logger('pistream.controller')

Deliver = Callable[[OutputMessage], None]

CONFIG_TYPES: dict[Source, type] = {
    Source.SDR: SDRConfig,
    Source.CAMERA: CameraConfig,
}


@dataclass
class _SourceSlot:
    supervisor: ProcessSupervisor
    transformer: Any
    deliver: Deliver | None = None
    latest: DataMessage | None = None
    unavailable: bool = False


class StreamController:
    """
    Facade over one supervisor and transformer per source.

    Each source has a single delivery target. Starting a session replaces
    (stops) the previous one; stopping clears the target so late output
    from the old process is discarded.

    Process observers post events onto one queue which a single dispatcher
    thread consumes. Slot mutation and delivery share one lock, so nothing
    reaches a delivery callback once stop() has returned.
    """

    def __init__(
        self,
        backends: Mapping[Source, Sequence[Backend]] | None = None,
        backend_selector: BackendSelector = first_installed,
        popen: Callable[..., subprocess.Popen] | None = None,
        sdr_transformer: SDRTransformer | None = None,
        probe_timeout: float = config.PROBE_TIMEOUT,
        chunk_size: int = config.STDOUT_CHUNK_SIZE,
        terminate_timeout: float = config.TERMINATE_TIMEOUT,
    ):
        backends = backends or default_backends()
        self.probe_timeout = probe_timeout

        self._lock = threading.RLock()
        self._events: queue.Queue[ProcessEvent | None] = queue.Queue()
        self._dispatcher: threading.Thread | None = None

        transformers = {
            Source.SDR: sdr_transformer or SDRTransformer(),
            Source.CAMERA: FrameTransformer(),
        }
        self._slots: dict[Source, _SourceSlot] = {
            source: _SourceSlot(
                supervisor=ProcessSupervisor(
                    source,
                    backends.get(source, ()),
                    self._events.put,
                    backend_selector=backend_selector,
                    popen=popen,
                    chunk_size=chunk_size,
                    terminate_timeout=terminate_timeout,
                ),
                transformer=transformers[source],
            )
            for source in Source
        }

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    def start(self, source: Source | str, stream_config: Any, deliver: Deliver) -> ProcessHandle | None:
        """
        Start a session, superseding any active one for the source.

        Spawn failures are reported through ``deliver`` rather than raised.

        Returns:
            The new handle (terminated if the spawn failed), or None when no
            backend is installed for the source.

        Raises:
            ValueError: unknown source
            TypeError: config of the wrong type or non-callable deliver
        """
        source = Source.parse(source)
        expected = CONFIG_TYPES[source]
        if not isinstance(stream_config, expected):
            raise TypeError(
                f'{source.value} requires {expected.__name__}, got {type(stream_config).__name__}'
            )
        if not callable(deliver):
            raise TypeError('deliver must be callable')

        slot = self._slots[source]
        with self._lock:
            self._ensure_dispatcher()
            self._stop_slot(slot)

            slot.deliver = deliver
            slot.unavailable = False

            try:
                return slot.supervisor.start(stream_config)
            except BackendUnavailableError as e:
                logger.warning(str(e))
                slot.unavailable = True
                self._deliver(slot, ErrorMessage(str(e)))
                slot.deliver = None
                return None
            except SpawnError as e:
                self._deliver(slot, ErrorMessage(str(e)))
                return slot.supervisor.handle

    def stop(self, source: Source | str) -> None:
        """Stop the source's session. No-op when nothing is running."""
        slot = self._slots[Source.parse(source)]
        with self._lock:
            self._stop_slot(slot)

    def shutdown(self) -> None:
        """Stop every source and the dispatcher thread."""
        with self._lock:
            for slot in self._slots.values():
                self._stop_slot(slot)
            dispatcher = self._dispatcher
            self._dispatcher = None

        if dispatcher is not None and dispatcher.is_alive():
            self._events.put(None)
            dispatcher.join(timeout=5)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_handle(self, source: Source | str) -> ProcessHandle | None:
        return self._slots[Source.parse(source)].supervisor.handle

    def is_running(self, source: Source | str) -> bool:
        handle = self.get_handle(source)
        return handle is not None and handle.is_live

    def get_current_frame(self, source: Source | str = Source.CAMERA) -> bytes | None:
        """Most recent opaque frame for pull-style access."""
        latest = self._slots[Source.parse(source)].latest
        if latest is not None and isinstance(latest.payload, bytes):
            return latest.payload
        return None

    def get_latest(self, source: Source | str) -> DataMessage | None:
        return self._slots[Source.parse(source)].latest

    def get_status(self, source: Source | str) -> dict:
        source = Source.parse(source)
        slot = self._slots[source]
        with self._lock:
            handle = slot.supervisor.handle
            backend = slot.supervisor.backend
            if slot.unavailable:
                state = 'unavailable'
            elif handle is None:
                state = 'idle'
            else:
                state = handle.state.value

            return {
                'source': source.value,
                'state': state,
                'running': handle is not None and handle.is_live,
                'backend': backend.name if backend else None,
                'session': handle.to_dict() if handle else None,
            }

    def check_available(self, source: Source | str) -> bool:
        slot = self._slots[Source.parse(source)]
        return slot.supervisor.check_available(timeout=self.probe_timeout)

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    def _stop_slot(self, slot: _SourceSlot) -> None:
        slot.supervisor.stop(slot.supervisor.handle)
        slot.deliver = None
        slot.latest = None

    def _ensure_dispatcher(self) -> None:
        if self._dispatcher is not None and self._dispatcher.is_alive():
            return
        self._dispatcher = threading.Thread(
            target=self._dispatch_loop,
            name='stream-dispatcher',
            daemon=True,
        )
        self._dispatcher.start()

    def _dispatch_loop(self) -> None:
        while True:
            event = self._events.get()
            if event is None:
                break
            try:
                self._dispatch(event)
            except Exception as e:
                logger.error(f"Error dispatching {event.kind.value} event: {e}")

    def _dispatch(self, event: ProcessEvent) -> None:
        handle = event.handle
        slot = self._slots[handle.source]

        with self._lock:
            # Events from a stopped or superseded process are dropped
            if handle is not slot.supervisor.handle or not handle.is_live:
                return

            if event.kind is EventKind.STDOUT:
                message = slot.transformer.transform(event.data, handle.config)
                if message is not None:
                    slot.latest = message
                    self._deliver(slot, message)

            elif event.kind is EventKind.STDERR:
                self._deliver(slot, StatusMessage(event.data))

            elif event.kind is EventKind.ERROR:
                self._deliver(slot, ErrorMessage(event.data))
                slot.supervisor.stop(handle)

            elif event.kind is EventKind.EXIT:
                slot.supervisor.mark_terminated(handle, event.data)
                slot.latest = None
                self._deliver(slot, StatusMessage(f'Process stopped (exit code: {event.data})'))

    def _deliver(self, slot: _SourceSlot, message: OutputMessage) -> None:
        if slot.deliver is None:
            return
        try:
            slot.deliver(message)
        except Exception as e:
            logger.error(f"Error in delivery callback: {e}")
