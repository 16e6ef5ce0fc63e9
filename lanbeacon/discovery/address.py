"""
Local Address Resolution

When a service is announced without a host we have to advertise one of
our own addresses. Which one is a judgement call, so the strategy is a
swappable object rather than a hard-coded function.

Strategies:
- InterfaceAddressResolver: enumerate interfaces with psutil. Prefer a
  192.168.x.x address (the usual home/office LAN), otherwise the first
  non-internal IPv4 address.
- RouteProbeResolver: ask the kernel which source address it would use
  to reach a public host. Works where interface enumeration does not
  (restricted containers), but only finds the default-route address.
- FallbackAddressResolver: chain two strategies.
"""

import asyncio
import ipaddress
import logging
import socket
from typing import List

import psutil

from ..exceptions import AddressResolutionError

logger = logging.getLogger(__name__)

PREFERRED_PREFIX = "192.168."


class AddressResolver:
    """Resolves this host's advertisable IPv4 address."""

    async def resolve(self) -> str:
        """
        Return an IPv4 address string.

        Raises:
            AddressResolutionError: If no usable address exists.
        """
        raise NotImplementedError


class InterfaceAddressResolver(AddressResolver):
    """OS interface enumeration via psutil."""

    async def resolve(self) -> str:
        loop = asyncio.get_running_loop()
        addresses = await loop.run_in_executor(None, self.candidate_addresses)
        return self.choose(addresses)

    @staticmethod
    def candidate_addresses() -> List[str]:
        """All non-internal IPv4 addresses, in interface order."""
        try:
            interfaces = psutil.net_if_addrs()
        except OSError as e:
            raise AddressResolutionError(f"Interface enumeration failed: {e}") from e

        addresses = []
        for _, if_addresses in interfaces.items():
            for addr in if_addresses:
                if addr.family != socket.AF_INET:
                    continue
                if _is_internal(addr.address):
                    continue
                addresses.append(addr.address)
        return addresses

    @staticmethod
    def choose(addresses: List[str]) -> str:
        """Pick a 192.168.* address if present, else the first one."""
        if not addresses:
            raise AddressResolutionError("No non-internal IPv4 address found")
        for address in addresses:
            if address.startswith(PREFERRED_PREFIX):
                return address
        return addresses[0]


class RouteProbeResolver(AddressResolver):
    """
    Source address of the default route.

    Connecting a UDP socket sends nothing; it only makes the kernel pick
    a route and a source address.
    """

    def __init__(self, probe_host: str = "8.8.8.8", probe_port: int = 80):
        self.probe_host = probe_host
        self.probe_port = probe_port

    async def resolve(self) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._probe)

    def _probe(self) -> str:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            s.connect((self.probe_host, self.probe_port))
            ip = s.getsockname()[0]
        except OSError as e:
            raise AddressResolutionError(f"Route probe failed: {e}") from e
        finally:
            s.close()

        if _is_internal(ip):
            raise AddressResolutionError(f"Route probe returned internal address {ip}")
        return ip


class FallbackAddressResolver(AddressResolver):
    """Try ``primary``; on failure try ``fallback``."""

    def __init__(self, primary: AddressResolver, fallback: AddressResolver):
        self.primary = primary
        self.fallback = fallback

    async def resolve(self) -> str:
        try:
            return await self.primary.resolve()
        except AddressResolutionError as e:
            logger.debug(f"Primary address resolver failed ({e}), trying fallback")
            return await self.fallback.resolve()


def default_resolver() -> AddressResolver:
    """Interface enumeration, falling back to a route probe."""
    return FallbackAddressResolver(InterfaceAddressResolver(), RouteProbeResolver())


def _is_internal(address: str) -> bool:
    try:
        ip = ipaddress.IPv4Address(address)
    except ValueError:
        return True
    return ip.is_loopback or ip.is_unspecified
