"""Serial transport consumed by the communication worker."""

from __future__ import annotations

from typing import List, Optional

import serial
import serial.tools.list_ports

from ..constants import BAUDRATE, BYTESIZE, PARITY, READ_TIMEOUT_S, STOPBITS, WRITE_TIMEOUT_S
from ..errors import LinkConnectionError, LinkIOError
from ..logging_utils import get_logger

logger = get_logger("link")


class Link:
    """Interface of the physical channel.

    Only ``open_port`` failures are fatal; the worker treats the other errors
    as the failure of a single command.
    """

    def open_port(self, name: str) -> None:  # pragma: no cover - interface placeholder
        raise NotImplementedError

    def close_port(self) -> None:  # pragma: no cover - interface placeholder
        raise NotImplementedError

    def write_string(self, text: str) -> None:  # pragma: no cover - interface placeholder
        raise NotImplementedError

    def read_available_string(self) -> str:  # pragma: no cover - interface placeholder
        raise NotImplementedError

    @staticmethod
    def list_port_names() -> List[str]:  # pragma: no cover - interface placeholder
        raise NotImplementedError


class SerialLink(Link):
    """pyserial implementation, 8N1 without flow control by default."""

    def __init__(self, baudrate: int = BAUDRATE, open_kwargs: Optional[dict] = None):
        self.baudrate = int(baudrate)
        self.open_kwargs = open_kwargs or {}
        self._ser: Optional[serial.Serial] = None
        self.port_name = ""

    @property
    def is_open(self) -> bool:
        return bool(self._ser and getattr(self._ser, "is_open", False))

    def open_port(self, name: str) -> None:
        self.close_port()
        try:
            self._ser = serial.Serial(
                port=name,
                baudrate=self.baudrate,
                bytesize=self.open_kwargs.get("bytesize", BYTESIZE),
                parity=self.open_kwargs.get("parity", PARITY),
                stopbits=self.open_kwargs.get("stopbits", STOPBITS),
                timeout=self.open_kwargs.get("timeout", READ_TIMEOUT_S),
                write_timeout=self.open_kwargs.get("write_timeout", WRITE_TIMEOUT_S),
                rtscts=False,
                dsrdtr=False,
                xonxoff=False,
            )
        except (serial.SerialException, OSError, ValueError) as e:
            self._ser = None
            raise LinkConnectionError(f"Can't open {name}: {e}") from e

        # Drop whatever the supply sent before we were listening
        try:
            self._ser.reset_input_buffer()
        except (serial.SerialException, OSError) as e:
            logger.warning(f"Can't clear input buffer of {name}: {e}")
        self.port_name = name
        logger.info(f"Port {name} opened @ {self.baudrate}")

    def close_port(self) -> None:
        if self._ser is None:
            return
        try:
            if getattr(self._ser, "is_open", False):
                self._ser.close()
                logger.info(f"Port {self.port_name} closed")
        except (serial.SerialException, OSError) as e:
            logger.warning(f"Can't close {self.port_name}: {e}")
        finally:
            self._ser = None

    def write_string(self, text: str) -> None:
        if not self.is_open:
            raise LinkIOError("port not open")
        try:
            self._ser.write(text.encode("ascii"))
            self._ser.flush()
        except (serial.SerialException, OSError, UnicodeEncodeError) as e:
            raise LinkIOError(f"Can't write {text!r}: {e}") from e
        logger.debug(f"Sent: {text!r}")

    def read_available_string(self) -> str:
        if not self.is_open:
            raise LinkIOError("port not open")
        try:
            waiting = int(self._ser.in_waiting or 0)
            data = self._ser.read(waiting) if waiting else b""
        except (serial.SerialException, OSError) as e:
            raise LinkIOError(f"Can't read: {e}") from e
        return data.decode("ascii", errors="replace")

    @staticmethod
    def list_port_names() -> List[str]:
        return sorted(p.device for p in serial.tools.list_ports.comports())
