"""
Exceptions raised by lanbeacon.

Network-origin problems (malformed datagrams, failed sends) are never
raised; they are logged and dropped at the boundary. Only conditions the
caller can act on surface as exceptions.
"""


class LanBeaconError(Exception):
    """Base class for all lanbeacon errors."""


class AddressResolutionError(LanBeaconError):
    """No usable local IPv4 address could be found."""


class TransportError(LanBeaconError):
    """The UDP socket could not be created, bound or configured."""
