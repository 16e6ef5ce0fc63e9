import pytest

from lanbeacon.config import Config
from lanbeacon.discovery.address import AddressResolver
from lanbeacon.discovery.engine import DiscoveryEngine
from lanbeacon.discovery.protocol import decode_message
from lanbeacon.exceptions import AddressResolutionError


class FakeTransport:
    """In-memory stand-in for BeaconTransport that records sent beacons."""

    def __init__(self):
        self.sent = []
        self.started = False
        self.closed = False

    async def start(self):
        self.started = True

    def close(self):
        self.closed = True

    def send(self, data: bytes):
        self.sent.append(data)

    @property
    def messages(self):
        return [decode_message(data) for data in self.sent]


class StaticResolver(AddressResolver):
    def __init__(self, address="192.168.1.20"):
        self.address = address
        self.calls = 0

    async def resolve(self) -> str:
        self.calls += 1
        if self.address is None:
            raise AddressResolutionError("no address")
        return self.address


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def resolver():
    return StaticResolver()


@pytest.fixture
def engine(transport, resolver):
    return DiscoveryEngine(Config(), resolver=resolver, transport=transport)
