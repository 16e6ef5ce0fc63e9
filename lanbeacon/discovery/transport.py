"""
UDP Beacon Transport

Design Decision: Multicast vs Broadcast
=======================================

Options:
1. UDP Multicast (224.0.0.236 by default)
   - Only hosts that joined the group receive the traffic
   - Link-local group, TTL 1 keeps it on the LAN
   - Some Wi-Fi access points filter multicast

2. UDP Broadcast (255.255.255.255)
   - Every host on the segment receives it
   - Works where multicast is filtered
   - Never crosses a router

Decision: multicast by default, broadcast as a config switch.
Both modes bind the same port so a peer only has to agree on the port
and the mode.

Sending is fire-and-forget. A failed send is logged at debug level and
forgotten: UDP is lossy anyway and callers re-announce periodically.
Failing to set up the socket is the one fatal error.
"""

import asyncio
import logging
import socket
import struct
from typing import Callable, Optional, Tuple

from ..config import Config
from ..exceptions import TransportError

logger = logging.getLogger(__name__)

# Callback for inbound datagrams: (payload, (sender_ip, sender_port))
DatagramCallback = Callable[[bytes, Tuple[str, int]], None]


class BeaconTransport(asyncio.DatagramProtocol):
    """
    Owns the UDP socket of one discovery engine.

    Handles:
    - Socket creation, bind and multicast/broadcast configuration
    - Fire-and-forget sends to the group (or broadcast) address
    - Handing inbound datagrams to the engine
    """

    def __init__(self, config: Config, on_datagram: DatagramCallback):
        """
        Args:
            config: Group/broadcast address, port and TTL
            on_datagram: Called for every inbound datagram
        """
        self.config = config
        self.on_datagram = on_datagram
        self.transport: Optional[asyncio.DatagramTransport] = None

    @property
    def is_ready(self) -> bool:
        return self.transport is not None

    @property
    def destination(self) -> Tuple[str, int]:
        return (self.config.send_address, self.config.port)

    async def start(self):
        """
        Bind and configure the socket, then start receiving.

        Raises:
            TransportError: If the socket cannot be bound or configured.
        """
        if self.transport:
            return

        sock = self._create_socket()
        loop = asyncio.get_running_loop()
        try:
            await loop.create_datagram_endpoint(lambda: self, sock=sock)
        except OSError as e:
            sock.close()
            raise TransportError(f"Failed to start UDP endpoint: {e}") from e

    def close(self):
        """Release the socket."""
        if self.transport:
            self.transport.close()
            self.transport = None

    def send(self, data: bytes):
        """Send one datagram to the group/broadcast address (fire and forget)."""
        if not self.transport:
            logger.debug("Transport not ready, dropping outbound beacon")
            return
        try:
            self.transport.sendto(data, self.destination)
        except OSError as e:
            logger.debug(f"Beacon send failed: {e}")

    def _create_socket(self) -> socket.socket:
        """Create, bind and configure the UDP socket."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

            # Several engines on one host share the port
            if hasattr(socket, 'SO_REUSEPORT'):
                try:
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
                except OSError:
                    pass

            sock.bind(('', self.config.port))

            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.config.ttl)

            if self.config.broadcast:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            else:
                mreq = struct.pack(
                    '4s4s',
                    socket.inet_aton(self.config.group_address),
                    socket.inet_aton('0.0.0.0'),
                )
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)

            sock.setblocking(False)
        except OSError as e:
            sock.close()
            raise TransportError(
                f"Failed to set up beacon socket on port {self.config.port}: {e}"
            ) from e
        return sock

    # asyncio.DatagramProtocol callbacks

    def connection_made(self, transport: asyncio.DatagramTransport):
        """Called when the UDP socket is ready."""
        self.transport = transport
        mode = "broadcast" if self.config.broadcast else f"multicast {self.config.group_address}"
        logger.info(f"Beacon transport ready on port {self.config.port} ({mode})")

    def connection_lost(self, exc):
        """Called when the socket is closed."""
        logger.info("Beacon transport closed")
        self.transport = None

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        """Called when a UDP datagram is received."""
        self.on_datagram(data, addr)

    def error_received(self, exc):
        """Called when a send or receive operation fails."""
        logger.debug(f"Beacon transport error: {exc}")
