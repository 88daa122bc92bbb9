from __future__ import annotations

from .common import *
from .command import Command, CommandKind
from .config_manager import CommSettings
from .device_io.connection import Communication, ConnectionHandle
from .device_io.link import Link
from .supply_state import SupplyState


class LabPowerController:
    """KA3005-style bench supply controller (serial, one channel).

    Key points:
    - Every command goes through the connection's worker; this class only
      produces commands and folds the worker's events into ``state``.
    - Setpoints are clamped to the front-panel ranges and rounded to the
      resolution of the protocol field before they are sent.
    """

    def __init__(self, settings: Optional[CommSettings] = None,
                 link_factory: Optional[Callable[[], Link]] = None):
        self.settings = settings or CommSettings()
        self.communication = Communication(self.settings, link_factory)
        self.state = SupplyState()
        self._handle: Optional[ConnectionHandle] = None
        self._lock = threading.RLock()

    @property
    def is_connected(self) -> bool:
        return self._handle is not None and self._handle.is_live

    @property
    def handle(self) -> Optional[ConnectionHandle]:
        return self._handle

    def list_ports(self) -> List[str]:
        try:
            return self.communication.list_port_names()
        except Exception as e:
            logger.warning(f"Can't list serial ports: {e}")
            return []

    # ---------------------------
    # connect / disconnect
    # ---------------------------
    def connect(self, port: str):
        with self._lock:
            try:
                self._handle = self.communication.connect(port)
            except AlreadyConnectedError as e:
                return False, f"Connection refused: {e}"
            self.state.reset()
            return True, f"Connecting to {port}"

    def disconnect(self):
        with self._lock:
            if not self.is_connected:
                return False, "Not connected"
            self._handle.cancel()
            return True, "Disconnecting"

    def wait_disconnected(self, timeout: Optional[float] = None) -> bool:
        handle = self._handle
        if handle is None:
            return True
        return handle.wait(timeout)

    # ---------------------------
    # setpoints
    # ---------------------------
    def _send(self, command: Command) -> bool:
        if not self.is_connected:
            logger.warning(f"Not connected, {command.kind.name} dropped")
            return False
        self._handle.add_command(command)
        return True

    @staticmethod
    def _quantize(value: float, limit: float, resolution: float) -> float:
        value = float(value)
        # Clamping would turn inf into the full-scale setpoint
        if not math.isfinite(value):
            raise ValueError("not a finite number")
        digits = max(0, -int(math.floor(math.log10(resolution))))
        return round(min(max(value, 0.0), float(limit)), digits)

    def set_voltage(self, voltage: float):
        with self._lock:
            try:
                v = self._quantize(voltage, self.settings.max_voltage, VOLTAGE_RESOLUTION)
                command = Command(CommandKind.SET_VOLTAGE, v)
            except (TypeError, ValueError) as e:
                return False, f"Invalid voltage {voltage!r}: {e}"
            if not self._send(command):
                return False, "Not connected"
            self.state.set_voltage = v
            return True, f"Voltage set to {v:.2f} V"

    def set_current(self, current: float):
        with self._lock:
            try:
                i = self._quantize(current, self.settings.max_current, CURRENT_RESOLUTION)
                command = Command(CommandKind.SET_CURRENT, i)
            except (TypeError, ValueError) as e:
                return False, f"Invalid current {current!r}: {e}"
            if not self._send(command):
                return False, "Not connected"
            self.state.set_current = i
            return True, f"Current set to {i:.3f} A"

    def set_output(self, enabled: bool):
        with self._lock:
            if not self._send(Command(CommandKind.SET_OUTPUT_ENABLED, bool(enabled))):
                return False, "Not connected"
            self.state.output_enabled = bool(enabled)
            return True, "Output on" if enabled else "Output off"

    def request_readback(self) -> bool:
        """Re-read both setpoints from the device."""
        with self._lock:
            ok = self._send(Command(CommandKind.SET_VOLTAGE))
            return self._send(Command(CommandKind.SET_CURRENT)) and ok

    # ---------------------------
    # events
    # ---------------------------
    def process_events(self) -> list:
        """Drain the worker's events and apply them to ``state``."""
        handle = self._handle
        if handle is None:
            return []
        events = handle.drain_events()
        for event in events:
            self.state.apply(event)
        return events
