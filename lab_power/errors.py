"""Exception taxonomy shared by the command codec, the link and the worker."""

from __future__ import annotations


class LabPowerError(RuntimeError):
    """Base class for every error raised by this package."""


class LinkConnectionError(LabPowerError, ConnectionError):
    """The serial port could not be opened. Fatal to the connect attempt."""


class LinkIOError(LabPowerError, OSError):
    """A write or read on an open port failed. The command is dropped."""


class DecodeError(LabPowerError):
    """The reply did not contain the expected numeric answer."""


class EncodingError(LabPowerError, ValueError):
    """A write command could not be formatted; it is never sent."""


class AlreadyConnectedError(LabPowerError):
    """A connection handle is still live."""
