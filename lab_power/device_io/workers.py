from __future__ import annotations

import queue
import threading
import time
from collections import deque
from typing import Callable, Deque, Optional

from PyQt5.QtCore import QThread, pyqtSignal

from ..command import Command, CommandKind
from ..config_manager import CommSettings
from ..errors import DecodeError, LinkIOError
from ..events import (
    REASON_ERROR_THRESHOLD,
    REASON_OPEN_FAILED,
    REASON_REQUESTED,
    REASON_WORKER_ERROR,
    CommandResolved,
    Disconnected,
    StateChanged,
    WorkerState,
)
from ..logging_utils import get_logger
from .link import Link

logger = get_logger("worker")

THREAD_JOIN_TIMEOUT_MS = 2000


class PollSource(QThread):
    """Enqueues a voltage and a current reading at a fixed rate.

    First tick after ``delay_ms``, then every ``period_ms``. A tick that comes
    late does not cause a burst of catch-up ticks.
    """

    def __init__(self, enqueue: Callable[[Command], None], delay_ms: int, period_ms: int, parent=None):
        super().__init__(parent)
        self._enqueue = enqueue
        self.delay_s = max(0, int(delay_ms)) / 1000.0
        self.period_s = max(1, int(period_ms)) / 1000.0
        self._stop_event = threading.Event()
        self.ticks = 0

    def stop(self):
        self._stop_event.set()
        self.wait(THREAD_JOIN_TIMEOUT_MS)

    def run(self):
        next_tick = time.monotonic() + self.delay_s
        while not self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
            self._enqueue(Command(CommandKind.READ_VOLTAGE))
            self._enqueue(Command(CommandKind.READ_CURRENT))
            self.ticks += 1
            next_tick += self.period_s
            now = time.monotonic()
            if next_tick < now:
                next_tick = now + self.period_s


class CommunicationWorker(QThread):
    """Exclusive owner of the supply's serial link.

    - Producers call add_command()/cancel() from any thread.
    - run() sends one command at a time, paces, reads and matches the reply.
    - Results go to ``events`` (a queue the consumer drains on its own
      schedule) and to the Qt signals below. Nothing front-end side is
      called from this thread.
    - Too many consecutive undecodable replies end the session.
    """

    state_changed = pyqtSignal(object)
    command_resolved = pyqtSignal(object)
    disconnected = pyqtSignal(str)
    io_error = pyqtSignal(str)

    def __init__(self, link: Link, settings: Optional[CommSettings] = None,
                 events: Optional[queue.Queue] = None, parent=None):
        super().__init__(parent)
        self.link = link
        self.settings = settings or CommSettings()
        self.events: queue.Queue = events if events is not None else queue.Queue()
        self.port_name = ""

        # Guards _pending, _cancelled and _state
        self._cond = threading.Condition()
        self._pending: Deque[Command] = deque()
        self._cancelled = False
        self._cancel_reason = REASON_REQUESTED
        self._state = WorkerState.IDLE
        self._idle = threading.Event()
        self._idle.set()

        self._error_count = 0
        self._poller: Optional[PollSource] = None
        self._run_ident: Optional[int] = None

    # ---------------------------
    # producer side
    # ---------------------------
    @property
    def state(self) -> WorkerState:
        with self._cond:
            return self._state

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def pending_count(self) -> int:
        with self._cond:
            return len(self._pending)

    def connect_port(self, port_name: str) -> bool:
        """Start a session on ``port_name``. Only possible while idle."""
        with self._cond:
            if self._state is not WorkerState.IDLE:
                logger.warning(f"Connect to {port_name} ignored, worker is {self._state.value}")
                return False
        # The previous session's run() may still be returning
        self._join_finished_run()
        with self._cond:
            if self._state is not WorkerState.IDLE:
                return False
            self.port_name = str(port_name)
            self._cancelled = False
            self._cancel_reason = REASON_REQUESTED
            self._error_count = 0
            self._idle.clear()
            self._state = WorkerState.CONNECTING
        self._publish_state(WorkerState.CONNECTING)
        logger.info(f"Connecting to {self.port_name}")
        self.start()
        return True

    def add_command(self, command: Command) -> None:
        with self._cond:
            self._pending.append(command)
            if self._state is WorkerState.IDLE:
                logger.debug(f"Queued while idle: {command!r}")
            self._cond.notify()

    def cancel(self) -> bool:
        """Ask the loop to disconnect. Returns False when already idle."""
        return self._request_cancel(REASON_REQUESTED)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        if not self._idle.wait(timeout):
            return False
        self._join_finished_run()
        return True

    def _request_cancel(self, reason: str) -> bool:
        with self._cond:
            if self._state is WorkerState.IDLE:
                return False
            if not self._cancelled:
                self._cancelled = True
                self._cancel_reason = reason
            self._cond.notify_all()
        return True

    def _join_finished_run(self):
        if self.isRunning() and threading.get_ident() != self._run_ident:
            self.wait(THREAD_JOIN_TIMEOUT_MS)

    # ---------------------------
    # worker thread
    # ---------------------------
    def run(self):
        self._run_ident = threading.get_ident()
        try:
            self.link.open_port(self.port_name)
        except Exception as e:
            logger.warning(f"Can't open a connection on {self.port_name}: {e}")
            self.io_error.emit(f"Can't open {self.port_name}: {e}")
            self._finish(REASON_OPEN_FAILED)
            return

        logger.info(f"Connection established on {self.port_name}")
        reason = REASON_WORKER_ERROR
        try:
            self._enter_running()
            reason = self._serve()
        except Exception:
            logger.exception("Communication loop failed")
            reason = REASON_WORKER_ERROR
        finally:
            self._teardown(reason)

    def _enter_running(self):
        with self._cond:
            self._state = WorkerState.RUNNING
            # Setpoint readbacks first, so the front end starts from the device's values
            self._pending.appendleft(Command(CommandKind.SET_CURRENT))
            self._pending.appendleft(Command(CommandKind.SET_VOLTAGE))
            self._cond.notify()
        self._publish_state(WorkerState.RUNNING)

        self._poller = PollSource(
            self.add_command,
            delay_ms=self.settings.poll_delay_ms,
            period_ms=self.settings.poll_period_ms,
        )
        self._poller.start()

    def _serve(self) -> str:
        while True:
            command = self._next_command()
            if command is None:
                with self._cond:
                    return self._cancel_reason
            self._process(command)

    def _next_command(self) -> Optional[Command]:
        with self._cond:
            while not self._cancelled and not self._pending:
                self._cond.wait()
            if self._cancelled:
                return None
            return self._pending.popleft()

    def _process(self, command: Command):
        request = command.encoded_request
        if request is None:
            logger.warning(f"Nothing to send for {command!r}, dropped")
            return

        try:
            try:
                self.link.write_string(request)
                logger.debug(f"Sent to serial port: {request}")
            finally:
                # Also after write-only commands and failed writes
                self.msleep(self.settings.pacing_ms)

            if not command.answer_expected:
                return
            self._read_answer(command)
        except (LinkIOError, DecodeError) as e:
            logger.warning(f"Command {request!r} failed: {e}")
            if isinstance(e, LinkIOError):
                self.io_error.emit(str(e))
            self._count_failure()
            return

        self._count_success(command)

    def _read_answer(self, command: Command):
        for attempt in range(self.settings.read_attempts):
            if attempt:
                self.msleep(self.settings.pacing_ms)
            if command.append_reply(self.link.read_available_string()):
                return
        if command.reply:
            raise DecodeError(f"can't decode answer {command.reply!r}")
        raise DecodeError("no answer")

    def _count_success(self, command: Command):
        if self._error_count:
            self._error_count -= 1
        self.events.put(CommandResolved(command))
        self.command_resolved.emit(command)

    def _count_failure(self):
        self._error_count += 1
        threshold = self.settings.error_threshold
        logger.warning(f"Protocol errors: {self._error_count}/{threshold}")
        if self._error_count >= threshold:
            logger.error(f"Too many protocol errors on {self.port_name}, disconnecting")
            self._request_cancel(REASON_ERROR_THRESHOLD)

    def _teardown(self, reason: str):
        with self._cond:
            self._state = WorkerState.DISCONNECTING
        self._publish_state(WorkerState.DISCONNECTING)

        if self._poller is not None:
            self._poller.stop()
            self._poller = None

        try:
            self.link.close_port()
        except Exception as e:
            logger.warning(f"Can't close {self.port_name}: {e}")

        with self._cond:
            dropped = len(self._pending)
            self._pending.clear()
        if dropped:
            logger.info(f"{dropped} pending command(s) dropped")

        self._finish(reason)

    def _finish(self, reason: str):
        with self._cond:
            self._state = WorkerState.IDLE
        self._publish_state(WorkerState.IDLE)
        logger.info(f"Connection closed ({reason})")
        self.events.put(Disconnected(reason))
        self.disconnected.emit(reason)
        self._idle.set()

    def _publish_state(self, state: WorkerState):
        self.events.put(StateChanged(state))
        self.state_changed.emit(state)
