"""
Discovery Module - Service Discovery on LAN

Announce, discover and retract services with UDP multicast (or
broadcast) beacons. No server, no coordinator.
"""

from .service import ServiceDescriptor, ServiceRecord
from .protocol import Message, MessageType, encode_message, decode_message
from .events import EventDispatcher, ServiceEvent
from .address import (
    AddressResolver,
    InterfaceAddressResolver,
    RouteProbeResolver,
    FallbackAddressResolver,
    default_resolver,
)
from .registry import ServiceRegistry
from .transport import BeaconTransport
from .engine import DiscoveryEngine

__all__ = [
    'ServiceDescriptor',
    'ServiceRecord',
    'Message',
    'MessageType',
    'encode_message',
    'decode_message',
    'EventDispatcher',
    'ServiceEvent',
    'AddressResolver',
    'InterfaceAddressResolver',
    'RouteProbeResolver',
    'FallbackAddressResolver',
    'default_resolver',
    'ServiceRegistry',
    'BeaconTransport',
    'DiscoveryEngine',
]
