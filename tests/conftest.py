import sys

import pytest
from PyQt5.QtCore import QCoreApplication

from lab_power.config_manager import CommSettings


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    yield app


@pytest.fixture
def settings():
    # No poll ticks unless a test asks for them; one read per command
    return CommSettings(poll_delay_ms=60_000, poll_period_ms=1000, read_attempts=1)
