from __future__ import annotations

from .common import *
from .command import CommandKind
from .events import CommandResolved, Disconnected, StateChanged, WorkerState

# Which readout each decoded answer updates
_FIELD_BY_KIND = {
    CommandKind.READ_VOLTAGE: "measured_voltage",
    CommandKind.READ_CURRENT: "measured_current",
    CommandKind.SET_VOLTAGE: "set_voltage",
    CommandKind.SET_CURRENT: "set_current",
}


@dataclass
class SupplyState:
    """What the front panel shows. Zeroed whenever the link goes down."""

    connected: bool = False
    output_enabled: bool = False
    measured_voltage: float = 0.0
    measured_current: float = 0.0
    set_voltage: float = 0.0
    set_current: float = 0.0

    def reset(self):
        self.connected = False
        self.output_enabled = False
        self.measured_voltage = 0.0
        self.measured_current = 0.0
        self.set_voltage = 0.0
        self.set_current = 0.0

    def apply(self, event) -> Optional[str]:
        """Fold one worker event in. Returns the name of the field it changed."""
        if isinstance(event, CommandResolved):
            command = event.command
            name = _FIELD_BY_KIND.get(command.kind)
            if name is None or command.value is None:
                return None
            setattr(self, name, command.value)
            return name
        if isinstance(event, StateChanged):
            if event.state is WorkerState.RUNNING:
                self.connected = True
                return "connected"
            return None
        if isinstance(event, Disconnected):
            self.reset()
            return "connected"
        logger.debug(f"Ignored event: {event!r}")
        return None

    def as_dict(self) -> Dict[str, object]:
        return {
            "connected": self.connected,
            "output_enabled": self.output_enabled,
            "measured_voltage": self.measured_voltage,
            "measured_current": self.measured_current,
            "set_voltage": self.set_voltage,
            "set_current": self.set_current,
        }
