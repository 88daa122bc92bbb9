"""Request/response units of the supply's ASCII protocol.

A Command knows what to transmit and what shape of answer to look for. Replies
may arrive split over several reads, so the answer is searched in everything
received so far rather than in the last chunk.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .errors import EncodingError
from .logging_utils import get_logger

logger = get_logger("command")

_DIGITS = "0123456789"


class CommandKind(Enum):
    SET_VOLTAGE = "set_voltage"
    SET_CURRENT = "set_current"
    READ_VOLTAGE = "read_voltage"
    READ_CURRENT = "read_current"
    SET_OUTPUT_ENABLED = "set_output_enabled"


@dataclass(frozen=True)
class AnswerFormat:
    """Fixed-width decimal: ``int_digits`` digits, a point, ``frac_digits`` digits."""

    int_digits: int
    frac_digits: int

    @property
    def width(self) -> int:
        return self.int_digits + 1 + self.frac_digits

    def find(self, text: str) -> Optional[str]:
        """Return the leftmost substring of ``text`` with this shape, or None."""
        point = self.int_digits
        for start in range(len(text) - self.width + 1):
            candidate = text[start:start + self.width]
            if candidate[point] != ".":
                continue
            if all(c in _DIGITS for c in candidate[:point]) and all(c in _DIGITS for c in candidate[point + 1:]):
                return candidate
        return None


@dataclass(frozen=True)
class ProtocolEntry:
    write_template: Optional[str]
    read_query: Optional[str]
    answer_format: Optional[AnswerFormat]
    # Largest value the write field can carry (None for the on/off switch)
    max_value: Optional[float] = None


VOLTAGE_FORMAT = AnswerFormat(2, 2)
CURRENT_FORMAT = AnswerFormat(1, 3)

PROTOCOL = {
    CommandKind.SET_VOLTAGE: ProtocolEntry("VSET1:%05.2f", "VSET1?", VOLTAGE_FORMAT, 99.99),
    CommandKind.SET_CURRENT: ProtocolEntry("ISET1:%05.3f", "ISET1?", CURRENT_FORMAT, 9.999),
    CommandKind.READ_VOLTAGE: ProtocolEntry(None, "VOUT1?", VOLTAGE_FORMAT),
    CommandKind.READ_CURRENT: ProtocolEntry(None, "IOUT1?", CURRENT_FORMAT),
    CommandKind.SET_OUTPUT_ENABLED: ProtocolEntry("OUT%1d", None, None),
}


class Command:
    """One request to the supply.

    ``Command(kind)`` is a query and expects an answer. ``Command(kind, value)``
    is a pure write: numbers go into the fixed-width field of the kind, bools
    into the output switch. Writes expect no answer.
    """

    def __init__(self, kind: CommandKind, value: Union[float, bool, None] = None):
        self._kind = kind
        self._entry = PROTOCOL[kind]
        self._encoded_request: Optional[str] = None
        self._reply: list[str] = []
        self._decoded_answer: Optional[str] = None
        self._answer_expected = True

        if value is not None:
            try:
                self._encoded_request = self._encode(value)
            except EncodingError as e:
                logger.warning(f"Can't form write command for {kind.name}: {e}")
                raise
            self._answer_expected = False

    def _encode(self, value: Union[float, bool]) -> str:
        template = self._entry.write_template
        if template is None:
            raise EncodingError(f"{self._kind.name} is read-only")

        if self._kind is CommandKind.SET_OUTPUT_ENABLED:
            if not isinstance(value, bool):
                raise EncodingError(f"output switch needs a bool, got {value!r}")
            return template % (1 if value else 0)

        if isinstance(value, bool):
            raise EncodingError(f"{self._kind.name} needs a number, got {value!r}")
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise EncodingError(f"not a number: {value!r}") from e
        if not math.isfinite(number) or number < 0:
            raise EncodingError(f"value out of range: {value!r}")

        text = template % number
        field = text.split(":", 1)[1]
        if len(field) != self._entry.answer_format.width:
            raise EncodingError(f"{value!r} does not fit {template!r}")
        return text

    @property
    def kind(self) -> CommandKind:
        return self._kind

    @property
    def encoded_request(self) -> Optional[str]:
        # A pure read has no encode step; it sends its query as-is
        if self._encoded_request is None:
            self._encoded_request = self._entry.read_query
        return self._encoded_request

    @property
    def answer_expected(self) -> bool:
        return self._answer_expected

    @property
    def decoded_answer(self) -> Optional[str]:
        return self._decoded_answer

    @property
    def reply(self) -> str:
        return "".join(self._reply)

    @property
    def value(self) -> Optional[float]:
        if self._decoded_answer is None:
            return None
        return float(self._decoded_answer)

    def append_reply(self, chunk: Optional[str]) -> bool:
        """Add received characters and try to extract the answer.

        Returns True once an answer has been found; later calls change nothing.
        """
        if self._decoded_answer is not None:
            return True
        if chunk:
            self._reply.append(chunk)

        fmt = self._entry.answer_format
        if fmt is None:
            return False
        buffered = self.reply
        found = fmt.find(buffered)
        if found is None:
            return False
        self._decoded_answer = found
        logger.debug(f"Answer decoded: {found!r} from {buffered!r}")
        return True

    def __repr__(self) -> str:
        return (
            f"Command({self._kind.name}, request={self.encoded_request!r}, "
            f"answer={self._decoded_answer!r})"
        )
