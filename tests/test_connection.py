import pytest

from lab_power.command import Command, CommandKind
from lab_power.device_io.connection import Communication
from lab_power.errors import AlreadyConnectedError
from lab_power.events import CommandResolved, WorkerState

from fakes import FakeLink, collect_until


def make_comm(settings, **link_kwargs):
    links = []

    def factory():
        link = FakeLink({"VSET1?": "12.00", "ISET1?": "1.500", "VOUT1?": "11.98"}, **link_kwargs)
        links.append(link)
        return link

    return Communication(settings, link_factory=factory), links


def test_only_one_live_handle(settings):
    comm, _ = make_comm(settings)
    handle = comm.connect("COM1")
    assert handle.is_live
    with pytest.raises(AlreadyConnectedError):
        comm.connect("COM3")

    handle.cancel()
    assert handle.wait(5)
    assert not handle.is_live

    second = comm.connect("COM3")
    assert second is not handle
    assert comm.current is second
    second.cancel()
    assert second.wait(5)


def test_handle_routes_commands_and_events(settings):
    comm, links = make_comm(settings)
    handle = comm.connect("COM1")
    handle.add_command(Command(CommandKind.READ_VOLTAGE))

    events = collect_until(handle.events, lambda got: sum(isinstance(e, CommandResolved) for e in got) == 3)
    last = [e for e in events if isinstance(e, CommandResolved)][-1].command
    assert last.decoded_answer == "11.98"
    assert handle.port_name == "COM1"
    assert handle.state is WorkerState.RUNNING
    assert links[0].writes == ["VSET1?", "ISET1?", "VOUT1?"]
    handle.cancel()
    assert handle.wait(5)
    assert handle.state is WorkerState.IDLE


def test_failed_open_frees_the_slot(settings):
    comm, _ = make_comm(settings, open_error=True)
    handle = comm.connect("COM7")
    assert handle.wait(5)
    assert not handle.is_live
    events = handle.drain_events()
    assert events and handle.drain_events() == []
    retry = comm.connect("COM7")
    assert retry.wait(5)


def test_list_port_names_uses_link(settings):
    comm, _ = make_comm(settings)
    assert comm.list_port_names() == ["COM1", "COM3"]
