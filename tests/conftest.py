"""Root fixtures for the bridge tests.

Tests that need a real display on a serial port carry the ``hardware``
marker and only run with ``--run-hardware`` (optionally ``--serial-port``).
"""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def pytest_addoption(parser):
    group = parser.getgroup("oled_bridge")
    group.addoption(
        "--run-hardware",
        action="store_true",
        default=False,
        help="run tests marked 'hardware' against a connected display",
    )
    group.addoption(
        "--serial-port",
        default="/dev/ttyACM0",
        help="serial device of the display used by hardware tests",
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "hardware: needs a display attached to --serial-port")
    config.addinivalue_line("markers", "slow: waits on real timers")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-hardware"):
        return
    skip = pytest.mark.skip(reason="hardware test; pass --run-hardware")
    for item in items:
        if item.get_closest_marker("hardware") is not None:
            item.add_marker(skip)


@pytest.fixture
def serial_port(request) -> str:
    return request.config.getoption("--serial-port")


@pytest.fixture
def fake_link():
    from tests.infrastructure.mocks.link_mocks import FakeLink
    return FakeLink()


@pytest.fixture
def local_session():
    from oled_bridge.session.local import LocalSession
    return LocalSession("session-1", "user-1")
