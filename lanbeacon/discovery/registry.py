"""
Service Registry

In-memory map of every service this engine knows about, keyed by
``host:port:name``, remembering which ones this process announced.

Ownership rules:
- Local announce inserts with owned_locally=True and beacons once.
- Remote announce only ever inserts (owned_locally=False); it never
  overwrites an existing entry, whoever owns it. First writer wins.
- Local renounce only removes services we own.
- Remote renounce removes by key alone, whatever the owner.

All mutation happens on the event loop thread, so there is no locking.
"""

import logging
from typing import Callable, Dict, List, Optional, Union

from .address import AddressResolver
from .events import EventDispatcher, ServiceEvent
from .protocol import MessageType
from .service import DescriptorLike, ServiceDescriptor, ServiceRecord, as_descriptor

logger = logging.getLogger(__name__)

# Outbound beacon hook: (message type, records to carry)
SendCallback = Callable[[MessageType, List[ServiceRecord]], None]


class ServiceRegistry:
    """Identity-keyed registry of known services."""

    def __init__(self, dispatcher: EventDispatcher, send: SendCallback,
                 resolver: AddressResolver):
        """
        Args:
            dispatcher: Where announce/renounce events are fired
            send: Broadcasts a beacon for local announces/renounces
            resolver: Supplies our address for descriptors without a host
        """
        self._dispatcher = dispatcher
        self._send = send
        self._resolver = resolver
        self._services: Dict[str, ServiceRecord] = {}

    def __len__(self) -> int:
        return len(self._services)

    def __contains__(self, key: str) -> bool:
        return key in self._services

    def get(self, key: str) -> Optional[ServiceRecord]:
        """Copy of the record under ``key``, if any."""
        record = self._services.get(key)
        return record.copy() if record else None

    async def upsert_local(self, descriptor: DescriptorLike) -> Optional[str]:
        """
        Register a service announced by this process.

        Resolves the host when missing. Announcing an identity that is
        already known is a no-op returning the same key.

        Returns:
            The identity key, or None if host/port/name are incomplete.

        Raises:
            AddressResolutionError: If the host is missing and cannot be resolved.
        """
        service = as_descriptor(descriptor)
        if service is None:
            return None

        if not service.host:
            service = service.with_host(await self._resolver.resolve())
        else:
            service = service.copy()

        if not service.is_complete:
            return None

        key = service.key
        if key in self._services:
            return key

        record = ServiceRecord(descriptor=service, owned_locally=True)
        self._services[key] = record
        logger.info(f"Announcing local service {key}")
        self._send(MessageType.ANNOUNCE, [record.copy()])
        return key

    def remove_local(self, key_or_descriptor: Union[str, DescriptorLike]) -> bool:
        """
        Retract a service this process announced.

        Returns:
            True if a locally owned service was removed. Unknown keys,
            peer-owned services and malformed input return False.
        """
        key = self._key_of(key_or_descriptor)
        if key is None:
            return False

        record = self._services.get(key)
        if record is None or not record.owned_locally:
            return False

        logger.info(f"Renouncing local service {key}")
        self._send(MessageType.RENOUNCE, [record.copy()])
        del self._services[key]
        return True

    def apply_remote_announce(self, descriptor: ServiceDescriptor) -> bool:
        """Record a peer's service. Returns True if it was new."""
        key = descriptor.key
        if key in self._services:
            return False

        # Whatever the sender claims, a remote record is never ours
        record = ServiceRecord(descriptor=descriptor, owned_locally=False)
        self._services[key] = record
        logger.info(f"Discovered service {key}")
        self._dispatcher.dispatch(ServiceEvent.SERVICE_ANNOUNCED, record.copy())
        return True

    def apply_remote_renounce(self, descriptor: ServiceDescriptor) -> bool:
        """Forget a service a peer renounced. Returns True if it was known."""
        record = self._services.pop(descriptor.key, None)
        if record is None:
            return False

        logger.info(f"Service renounced {record.key}")
        self._dispatcher.dispatch(ServiceEvent.SERVICE_RENOUNCED, record.copy())
        return True

    def snapshot(self) -> Dict[str, ServiceRecord]:
        """Deep copy of every known record."""
        return {key: record.copy() for key, record in self._services.items()}

    def records(self) -> List[ServiceRecord]:
        """Deep copies of every known record, as a list."""
        return [record.copy() for record in self._services.values()]

    @staticmethod
    def _key_of(value: Union[str, DescriptorLike]) -> Optional[str]:
        if isinstance(value, str):
            return value or None
        service = as_descriptor(value)
        if service is None or not service.is_complete:
            return None
        return service.key
