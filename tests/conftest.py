import pytest

from fakes import make_media
from meshmeet.relay import SignalRelay
from meshmeet.rooms import RoomRegistry


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def relay(registry):
    return SignalRelay(registry)


@pytest.fixture
def media():
    return make_media()
