from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import serial

from lab_power.device_io import link as link_module
from lab_power.device_io.link import SerialLink
from lab_power.errors import LinkConnectionError, LinkIOError


@pytest.fixture
def mock_serial(monkeypatch):
    created = []

    def factory(**kwargs):
        ser = MagicMock()
        ser.is_open = True
        ser.kwargs = kwargs
        created.append(ser)
        return ser

    monkeypatch.setattr(link_module.serial, "Serial", factory)
    return created


def test_open_uses_8n1_and_clears_input(mock_serial):
    link = SerialLink()
    link.open_port("COM3")

    ser = mock_serial[0]
    assert ser.kwargs["port"] == "COM3"
    assert ser.kwargs["baudrate"] == 9600
    assert ser.kwargs["bytesize"] == 8
    assert ser.kwargs["parity"] == "N"
    assert ser.kwargs["stopbits"] == 1
    assert ser.kwargs["rtscts"] is False and ser.kwargs["xonxoff"] is False
    ser.reset_input_buffer.assert_called_once()
    assert link.is_open


def test_open_failure_raises_connection_error(monkeypatch):
    def boom(**kwargs):
        raise serial.SerialException("could not open port")

    monkeypatch.setattr(link_module.serial, "Serial", boom)
    link = SerialLink()
    with pytest.raises(LinkConnectionError):
        link.open_port("COM9")
    with pytest.raises(ConnectionError):
        link.open_port("COM9")
    assert not link.is_open


def test_write_sends_ascii_without_terminator(mock_serial):
    link = SerialLink()
    link.open_port("COM3")
    link.write_string("VSET1:12.34")
    mock_serial[0].write.assert_called_once_with(b"VSET1:12.34")


def test_read_returns_only_what_is_waiting(mock_serial):
    link = SerialLink()
    link.open_port("COM3")
    ser = mock_serial[0]

    ser.in_waiting = 0
    assert link.read_available_string() == ""
    ser.read.assert_not_called()

    ser.in_waiting = 5
    ser.read.return_value = b"12.34"
    assert link.read_available_string() == "12.34"
    ser.read.assert_called_once_with(5)


def test_io_errors_are_wrapped(mock_serial):
    link = SerialLink()
    link.open_port("COM3")
    ser = mock_serial[0]
    ser.write.side_effect = serial.SerialException("unplugged")
    with pytest.raises(LinkIOError):
        link.write_string("OUT1")

    ser.in_waiting = 3
    ser.read.side_effect = OSError("device gone")
    with pytest.raises(LinkIOError):
        link.read_available_string()


def test_io_on_closed_port_fails():
    link = SerialLink()
    with pytest.raises(LinkIOError):
        link.write_string("OUT1")
    with pytest.raises(LinkIOError):
        link.read_available_string()


def test_close_is_safe_twice(mock_serial):
    link = SerialLink()
    link.open_port("COM3")
    link.close_port()
    link.close_port()
    mock_serial[0].close.assert_called_once()
    assert not link.is_open


def test_list_port_names_sorted(monkeypatch):
    ports = [SimpleNamespace(device="/dev/ttyUSB1"), SimpleNamespace(device="/dev/ttyUSB0")]
    monkeypatch.setattr(link_module.serial.tools.list_ports, "comports", lambda: ports)
    assert SerialLink.list_port_names() == ["/dev/ttyUSB0", "/dev/ttyUSB1"]
