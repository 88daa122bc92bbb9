from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .command import Command


class WorkerState(Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    RUNNING = "running"
    DISCONNECTING = "disconnecting"


@dataclass(frozen=True)
class StateChanged:
    state: WorkerState


@dataclass(frozen=True)
class CommandResolved:
    command: Command


@dataclass(frozen=True)
class Disconnected:
    reason: str = "requested"


# Reasons carried by Disconnected
REASON_REQUESTED = "requested"
REASON_OPEN_FAILED = "open_failed"
REASON_ERROR_THRESHOLD = "error_threshold"
REASON_WORKER_ERROR = "worker_error"
