"""
Discovery Engine

The reactor tying transport, codec, registry and events together.

Inbound handling:
- Datagrams that do not decode are dropped
- Our own beacons (same instance id) are dropped
- query    -> announce every known service
- announce -> add unknown services, fire SERVICE_ANNOUNCED
- renounce -> remove known services, fire SERVICE_RENOUNCED

Outbound:
- One query once the socket is ready
- announce_service / renounce_service beacon a single service
- repeat_announcements / query_for_services on demand

There is no internal timer. Keeping announcements alive on a lossy
network is the caller's job (call repeat_announcements periodically).
"""

import logging
import uuid
from typing import Dict, List, Optional, Tuple, Union

from ..config import Config
from .address import AddressResolver, default_resolver
from .events import EventDispatcher, EventName, ServiceCallback
from .protocol import (
    Message,
    MessageType,
    create_announce,
    create_query,
    create_renounce,
    decode_message,
    encode_message,
)
from .registry import ServiceRegistry
from .service import DescriptorLike, ServiceRecord
from .transport import BeaconTransport

logger = logging.getLogger(__name__)


class DiscoveryEngine:
    """
    Server-less service discovery over UDP multicast/broadcast.

    Each engine owns its own socket, registry and subscriptions, so
    several engines in one process do not interfere with each other
    beyond sharing the port.

    Usage:
        async with DiscoveryEngine() as engine:
            engine.subscribe(ServiceEvent.SERVICE_ANNOUNCED, print)
            await engine.announce_service({'port': 8080, 'name': 'api'})
    """

    def __init__(self, config: Optional[Config] = None,
                 resolver: Optional[AddressResolver] = None,
                 transport: Optional[BeaconTransport] = None):
        """
        Args:
            config: Network settings (defaults if not provided)
            resolver: Local address strategy (interface enumeration by default)
            transport: Pre-built transport; normally created from ``config``
        """
        self.config = config or Config()
        self._instance_id = uuid.uuid4().hex

        self.events = EventDispatcher()
        self.registry = ServiceRegistry(
            dispatcher=self.events,
            send=self._send_records,
            resolver=resolver or default_resolver(),
        )
        self.transport = transport or BeaconTransport(self.config, self.handle_datagram)

        self._running = False

    @property
    def instance_id(self) -> str:
        return self._instance_id

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self):
        """
        Open the socket and send the initial query.

        Raises:
            TransportError: If the socket cannot be set up.
        """
        if self._running:
            return

        await self.transport.start()
        self._running = True
        logger.info(f"Discovery engine {self._instance_id[:8]} started")

        self.query_for_services()

    async def stop(self):
        """Close the socket. Known services are kept."""
        if not self._running:
            return
        self._running = False
        self.transport.close()
        logger.info(f"Discovery engine {self._instance_id[:8]} stopped")

    async def __aenter__(self) -> 'DiscoveryEngine':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    # =====
    # Public operations
    # =====

    async def announce_service(self, descriptor: DescriptorLike) -> Optional[str]:
        """
        Announce a service on the group.

        ``host`` is filled in with our own address when missing.

        Returns:
            The identity key ``host:port:name``, or None if the
            descriptor is incomplete.

        Raises:
            AddressResolutionError: If no local address can be found.
        """
        return await self.registry.upsert_local(descriptor)

    def renounce_service(self, descriptor_or_key: Union[str, DescriptorLike]) -> bool:
        """Retract a service we announced. False if there was nothing to retract."""
        return self.registry.remove_local(descriptor_or_key)

    def repeat_announcements(self):
        """Re-broadcast every known service in one announce."""
        self._announce_all()

    def query_for_services(self):
        """Ask every peer to announce its services."""
        self._send(create_query(self._instance_id))

    def subscribe(self, event: EventName, callback: ServiceCallback) -> str:
        """Register a callback for SERVICE_ANNOUNCED or SERVICE_RENOUNCED."""
        return self.events.subscribe(event, callback)

    def unsubscribe(self, event: EventName, subscription_id: str) -> bool:
        """Remove a callback registered with ``subscribe``."""
        return self.events.unsubscribe(event, subscription_id)

    def get_service_infos(self) -> Dict[str, ServiceRecord]:
        """Deep copy of every known service, keyed by identity key."""
        return self.registry.snapshot()

    # =====
    # Inbound
    # =====

    def handle_datagram(self, data: bytes, addr: Tuple[str, int]):
        """Process one inbound datagram."""
        message = decode_message(data)
        if message is None:
            # Untrusted channel: unusable datagrams are simply dropped
            logger.debug(f"Dropping malformed datagram from {addr[0]}:{addr[1]}")
            return
        self.handle_message(message)

    def handle_message(self, message: Message):
        """Apply one decoded message."""
        if message.from_instance == self._instance_id:
            return

        if message.type == MessageType.QUERY:
            # Always answer, even with an empty service list
            self._send(create_announce(self._instance_id, self.registry.records()))

        elif message.type == MessageType.ANNOUNCE:
            for record in message.records:
                self.registry.apply_remote_announce(record.descriptor)

        elif message.type == MessageType.RENOUNCE:
            for record in message.records:
                self.registry.apply_remote_renounce(record.descriptor)

    # =====
    # Outbound helpers
    # =====

    def _announce_all(self):
        records = self.registry.records()
        if not records:
            return
        self._send(create_announce(self._instance_id, records))

    def _send_records(self, msg_type: MessageType, records: List[ServiceRecord]):
        """Registry hook: beacon a local announce/renounce."""
        if msg_type == MessageType.RENOUNCE:
            self._send(create_renounce(self._instance_id, records))
        else:
            self._send(create_announce(self._instance_id, records))

    def _send(self, message: Message):
        self.transport.send(encode_message(message))
