"""Device I/O.

The communication worker is the only thread that touches the serial port, so
commands can never interleave on the wire and replies cannot cross.
"""

from .connection import Communication, ConnectionHandle
from .link import Link, SerialLink
from .workers import CommunicationWorker, PollSource

__all__ = [
    "Communication",
    "ConnectionHandle",
    "CommunicationWorker",
    "Link",
    "PollSource",
    "SerialLink",
]
