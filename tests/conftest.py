import pytest

from relay import RelayService
from tests.fakes import FakeSocketServer


@pytest.fixture
def sio():
    return FakeSocketServer()


@pytest.fixture
def relay(sio):
    return RelayService(sio)
