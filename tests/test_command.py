import math

import pytest

from lab_power.command import CURRENT_FORMAT, PROTOCOL, VOLTAGE_FORMAT, Command, CommandKind
from lab_power.errors import EncodingError


def test_set_voltage_encodes_fixed_width():
    cmd = Command(CommandKind.SET_VOLTAGE, 12.34)
    assert cmd.encoded_request == "VSET1:12.34"
    assert cmd.answer_expected is False


def test_set_voltage_pads_small_values():
    assert Command(CommandKind.SET_VOLTAGE, 5).encoded_request == "VSET1:05.00"
    assert Command(CommandKind.SET_CURRENT, 0.5).encoded_request == "ISET1:0.500"


def test_read_current_query_and_fragmented_reply():
    cmd = Command(CommandKind.READ_CURRENT)
    assert cmd.encoded_request == "IOUT1?"
    assert cmd.answer_expected is True
    assert cmd.append_reply("1.") is False
    assert cmd.append_reply("234") is True
    assert cmd.append_reply("\r\n") is True
    assert cmd.decoded_answer == "1.234"
    assert cmd.value == pytest.approx(1.234)


def test_output_enable_is_write_only():
    on = Command(CommandKind.SET_OUTPUT_ENABLED, True)
    off = Command(CommandKind.SET_OUTPUT_ENABLED, False)
    assert on.encoded_request == "OUT1"
    assert off.encoded_request == "OUT0"
    assert on.answer_expected is False
    # no answer format: never matches
    assert on.append_reply("12.34") is False
    assert on.decoded_answer is None


def test_setpoint_query_uses_read_command():
    assert Command(CommandKind.SET_VOLTAGE).encoded_request == "VSET1?"
    assert Command(CommandKind.SET_CURRENT).encoded_request == "ISET1?"
    assert Command(CommandKind.READ_VOLTAGE).encoded_request == "VOUT1?"


def test_voltage_round_trip_over_full_range():
    reader = Command(CommandKind.READ_VOLTAGE)
    fmt = PROTOCOL[reader.kind].answer_format
    for hundredths in range(0, 10000):
        v = hundredths / 100
        text = Command(CommandKind.SET_VOLTAGE, v).encoded_request.split(":", 1)[1]
        assert abs(float(fmt.find(text)) - v) < 0.01 / 2 + 1e-9


def test_current_round_trip_over_full_range():
    fmt = PROTOCOL[CommandKind.READ_CURRENT].answer_format
    for thousandths in range(0, 10000):
        i = thousandths / 1000
        text = Command(CommandKind.SET_CURRENT, i).encoded_request.split(":", 1)[1]
        assert abs(float(fmt.find(text)) - i) < 0.001 / 2 + 1e-9


def test_answer_is_fixed_after_first_match():
    cmd = Command(CommandKind.READ_VOLTAGE)
    assert cmd.append_reply("12.34") is True
    assert cmd.append_reply("56.78") is True
    assert cmd.decoded_answer == "12.34"
    assert cmd.reply == "12.34"


@pytest.mark.parametrize("reply", ["12.34\r\n", "xx05.00yy", "30.00"])
def test_fragmented_delivery_matches_whole_delivery(reply):
    whole = Command(CommandKind.READ_VOLTAGE)
    whole.append_reply(reply)
    for cut in range(len(reply) + 1):
        split = Command(CommandKind.READ_VOLTAGE)
        split.append_reply(reply[:cut])
        split.append_reply(reply[cut:])
        assert split.decoded_answer == whole.decoded_answer


def test_first_match_is_leftmost():
    assert VOLTAGE_FORMAT.find("a1.2312.345") == "12.34"
    assert CURRENT_FORMAT.find("12.345") == "2.345"
    assert VOLTAGE_FORMAT.find("1.234") is None
    assert VOLTAGE_FORMAT.find("") is None


def test_only_ascii_digits_match():
    assert VOLTAGE_FORMAT.find("١٢.34") is None


def test_none_and_empty_chunks_do_not_match():
    cmd = Command(CommandKind.READ_CURRENT)
    assert cmd.append_reply(None) is False
    assert cmd.append_reply("") is False
    assert cmd.reply == ""


@pytest.mark.parametrize(
    "kind, value",
    [
        (CommandKind.READ_VOLTAGE, 1.0),
        (CommandKind.READ_CURRENT, 1.0),
        (CommandKind.SET_VOLTAGE, 100.0),
        (CommandKind.SET_VOLTAGE, 99.999),
        (CommandKind.SET_CURRENT, 10.0),
        (CommandKind.SET_VOLTAGE, -1.0),
        (CommandKind.SET_VOLTAGE, math.nan),
        (CommandKind.SET_VOLTAGE, True),
        (CommandKind.SET_VOLTAGE, "twelve"),
        (CommandKind.SET_OUTPUT_ENABLED, 1),
    ],
)
def test_invalid_write_values_raise(kind, value):
    with pytest.raises(EncodingError):
        Command(kind, value)


def test_kind_accessor_and_repr():
    cmd = Command(CommandKind.READ_VOLTAGE)
    assert cmd.kind is CommandKind.READ_VOLTAGE
    assert "VOUT1?" in repr(cmd)
