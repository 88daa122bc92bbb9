"""Serial remote control for KA3005-style bench power supplies."""

from .command import Command, CommandKind
from .config_manager import CommSettings, ConfigManager
from .controllers import LabPowerController
from .device_io import Communication, ConnectionHandle, CommunicationWorker, SerialLink
from .events import CommandResolved, Disconnected, StateChanged, WorkerState
from .supply_state import SupplyState

__all__ = [
    "Command",
    "CommandKind",
    "CommSettings",
    "ConfigManager",
    "LabPowerController",
    "Communication",
    "ConnectionHandle",
    "CommunicationWorker",
    "SerialLink",
    "CommandResolved",
    "Disconnected",
    "StateChanged",
    "WorkerState",
    "SupplyState",
]
