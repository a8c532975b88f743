import pytest

from tests.fakes import FakeTransport


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def aes_key() -> bytes:
    return bytes(range(16))
