"""
lanbeacon - server-less service discovery for the local network.
"""

from .config import Config, load_config
from .discovery import DiscoveryEngine, ServiceDescriptor, ServiceEvent, ServiceRecord
from .exceptions import AddressResolutionError, LanBeaconError, TransportError

__version__ = '0.1.0'

__all__ = [
    'Config',
    'load_config',
    'DiscoveryEngine',
    'ServiceDescriptor',
    'ServiceEvent',
    'ServiceRecord',
    'AddressResolutionError',
    'LanBeaconError',
    'TransportError',
]
