from __future__ import annotations

from .common import *
from .command import CommandKind
from .events import CommandResolved, Disconnected, StateChanged, WorkerState


class EventBridge(QObject):
    """
    Moves worker results into the Qt thread.

    Worker thread:
      - posts events on the connection's queue, never waits for the UI
    Qt thread:
      - a QTimer drains the queue through the controller (state is updated)
      - decoded values are re-emitted as plain signals for widgets
    """

    reading_updated = pyqtSignal(str, float)    # "voltage" | "current", value
    setpoint_updated = pyqtSignal(str, float)   # "voltage" | "current", value
    connection_changed = pyqtSignal(bool)
    disconnected = pyqtSignal(str)              # reason

    _READINGS = {
        CommandKind.READ_VOLTAGE: ("reading", "voltage"),
        CommandKind.READ_CURRENT: ("reading", "current"),
        CommandKind.SET_VOLTAGE: ("setpoint", "voltage"),
        CommandKind.SET_CURRENT: ("setpoint", "current"),
    }

    def __init__(self, controller, interval_ms: int = 100, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.timer = QTimer(self)
        self.timer.setInterval(max(10, int(interval_ms)))
        self.timer.timeout.connect(self.drain)

    def start(self):
        self.timer.start()

    def stop(self):
        self.timer.stop()

    @pyqtSlot()
    def drain(self) -> int:
        events = self.controller.process_events()
        for event in events:
            if isinstance(event, CommandResolved):
                route = self._READINGS.get(event.command.kind)
                if route is None or event.command.value is None:
                    continue
                group, quantity = route
                if group == "reading":
                    self.reading_updated.emit(quantity, event.command.value)
                else:
                    self.setpoint_updated.emit(quantity, event.command.value)
            elif isinstance(event, StateChanged):
                if event.state is WorkerState.RUNNING:
                    self.connection_changed.emit(True)
            elif isinstance(event, Disconnected):
                self.connection_changed.emit(False)
                self.disconnected.emit(event.reason)
        return len(events)
