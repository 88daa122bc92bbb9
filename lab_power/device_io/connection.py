from __future__ import annotations

import queue
import threading
from typing import Callable, List, Optional

from ..command import Command
from ..config_manager import CommSettings
from ..errors import AlreadyConnectedError
from ..events import WorkerState
from ..logging_utils import get_logger
from .link import Link, SerialLink
from .workers import CommunicationWorker

logger = get_logger("connection")


class ConnectionHandle:
    """Caller-held token for one session with the supply."""

    def __init__(self, worker: CommunicationWorker):
        self._worker = worker

    @property
    def worker(self) -> CommunicationWorker:
        return self._worker

    @property
    def events(self) -> queue.Queue:
        return self._worker.events

    @property
    def state(self) -> WorkerState:
        return self._worker.state

    @property
    def is_live(self) -> bool:
        return self._worker.state is not WorkerState.IDLE

    @property
    def port_name(self) -> str:
        return self._worker.port_name

    @property
    def error_count(self) -> int:
        return self._worker.error_count

    def add_command(self, command: Command) -> None:
        self._worker.add_command(command)

    def cancel(self) -> bool:
        return self._worker.cancel()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the session is over."""
        return self._worker.wait_idle(timeout)

    def drain_events(self) -> list:
        drained = []
        while True:
            try:
                drained.append(self._worker.events.get_nowait())
            except queue.Empty:
                return drained


class Communication:
    """Creates connection handles; at most one of them is live at a time."""

    def __init__(self, settings: Optional[CommSettings] = None,
                 link_factory: Optional[Callable[[], Link]] = None):
        self.settings = settings or CommSettings()
        self._link_factory = link_factory or self._serial_link
        self._handle: Optional[ConnectionHandle] = None
        self._lock = threading.Lock()

    def _serial_link(self) -> Link:
        return SerialLink(baudrate=self.settings.baudrate, open_kwargs=self.settings.open_kwargs())

    @property
    def current(self) -> Optional[ConnectionHandle]:
        return self._handle

    def connect(self, port_name: str) -> ConnectionHandle:
        with self._lock:
            if self._handle is not None and self._handle.is_live:
                raise AlreadyConnectedError(
                    f"still connected to {self._handle.port_name} ({self._handle.state.value})"
                )
            worker = CommunicationWorker(self._link_factory(), self.settings)
            handle = ConnectionHandle(worker)
            worker.connect_port(port_name)
            self._handle = handle
            return handle

    def list_port_names(self) -> List[str]:
        return self._link_factory().list_port_names()
