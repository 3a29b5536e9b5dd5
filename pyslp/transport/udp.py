"""UDP transport for SLP messages.

Requests go out either multicast to the SLP group (or as broadcasts when
``net.slp.isBroadcastOnly`` is set) or unicast to a directory agent. One
socket, bound to an ephemeral port, carries both the requests and the
replies.
"""

import logging
import socket
from dataclasses import dataclass
from typing import Optional

from ..errors import SLPError, SLPException
from ..properties import PropertyStore
from .interfaces import get_broadcast_addresses, get_multicast_interface_addresses

logger = logging.getLogger(__name__)

# Administratively scoped SLP multicast group (RFC 2608 section 6.1)
SLP_MULTICAST_GROUP = "239.255.255.253"
IP_ADDRESS_BROADCAST = "255.255.255.255"
DEFAULT_SLP_PORT = 427

RECEIVE_BUFFER_SIZE = 65535


@dataclass(frozen=True)
class Target:
    """Destination of a request: the multicast group or a unicast host."""
    address: Optional[str] = None
    port: int = DEFAULT_SLP_PORT

    @property
    def is_multicast(self) -> bool:
        return self.address is None

    @classmethod
    def multicast(cls, port: int = DEFAULT_SLP_PORT) -> "Target":
        return cls(None, port)

    @classmethod
    def unicast(cls, address: str, port: int = DEFAULT_SLP_PORT) -> "Target":
        return cls(address, port)

    def __str__(self) -> str:
        if self.is_multicast:
            return f"{SLP_MULTICAST_GROUP}:{self.port}"
        return f"{self.address}:{self.port}"


@dataclass
class Datagram:
    """A received datagram and its source."""
    data: bytes
    address: tuple

    @property
    def host(self) -> str:
        return self.address[0]


class UDPTransport:
    """Sends and receives SLP datagrams over IPv4 UDP."""

    def __init__(self, properties: PropertyStore):
        """Initialize the transport and open its socket.

        Args:
            properties: Source of the ``net.slp.*`` network settings.

        Raises:
            SLPException: NETWORK_INIT_FAILED if the socket cannot be set up.
        """
        self.port = properties.get_int("net.slp.port", DEFAULT_SLP_PORT)
        self.ttl = properties.get_int("net.slp.multicastTTL", 255)
        self.broadcast_only = properties.get_bool("net.slp.isBroadcastOnly")
        self.interfaces = properties.get_list("net.slp.interfaces")
        self._sock: Optional[socket.socket] = self._create_socket()
        logger.debug("SLP transport bound to %s:%d", *self.local_address)

    def _create_socket(self) -> socket.socket:
        """Create and configure the UDP socket."""
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            raise SLPException(SLPError.NETWORK_INIT_FAILED, str(e))
        try:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.ttl)
            if self.broadcast_only:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
            sock.bind(("", 0))
        except OSError as e:
            sock.close()
            raise SLPException(SLPError.NETWORK_INIT_FAILED, str(e))
        return sock

    @property
    def closed(self) -> bool:
        return self._sock is None

    @property
    def local_address(self) -> tuple:
        return self._require_socket().getsockname()

    def _require_socket(self) -> socket.socket:
        if self._sock is None:
            raise SLPException(SLPError.NETWORK_ERROR, "transport is closed")
        return self._sock

    def send(self, target: Target, payload: bytes) -> None:
        """Send a datagram.

        Args:
            target: Multicast group or unicast destination.
            payload: Encoded SLP message.

        Raises:
            SLPException: NETWORK_ERROR if the datagram could not be sent on
                any interface.
        """
        sock = self._require_socket()
        if not target.is_multicast:
            try:
                sock.sendto(payload, (target.address, target.port))
            except OSError as e:
                raise SLPException(SLPError.NETWORK_ERROR, f"send to {target} failed: {e}")
            return

        if self.broadcast_only:
            self._send_broadcast(sock, target, payload)
        else:
            self._send_multicast(sock, target, payload)

    def _send_multicast(self, sock: socket.socket, target: Target, payload: bytes) -> None:
        addresses = self.interfaces or get_multicast_interface_addresses()
        if not addresses:
            # Let the routing table pick the interface
            addresses = [None]

        sent = 0
        last_error = None
        for addr in addresses:
            try:
                if addr is not None:
                    sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF,
                                    socket.inet_aton(addr))
                sock.sendto(payload, (SLP_MULTICAST_GROUP, target.port))
                sent += 1
            except OSError as e:
                # Interfaces without multicast support fail here; try the next one
                logger.debug("Multicast send via %s failed: %s", addr, e)
                last_error = e
        if not sent:
            raise SLPException(SLPError.NETWORK_ERROR, f"multicast send failed: {last_error}")

    def _send_broadcast(self, sock: socket.socket, target: Target, payload: bytes) -> None:
        addresses = get_broadcast_addresses() or [IP_ADDRESS_BROADCAST]
        sent = 0
        last_error = None
        for addr in addresses:
            try:
                sock.sendto(payload, (addr, target.port))
                sent += 1
            except OSError as e:
                logger.debug("Broadcast send to %s failed: %s", addr, e)
                last_error = e
        if not sent:
            raise SLPException(SLPError.NETWORK_ERROR, f"broadcast send failed: {last_error}")

    def receive(self, timeout: float) -> Optional[Datagram]:
        """Wait for one datagram.

        Args:
            timeout: Maximum time to wait in seconds.

        Returns:
            The datagram, or None if the timeout elapsed first.

        Raises:
            SLPException: NETWORK_ERROR if the socket failed or was closed.
        """
        sock = self._require_socket()
        try:
            sock.settimeout(max(timeout, 0.001))
            data, addr = sock.recvfrom(RECEIVE_BUFFER_SIZE)
        except socket.timeout:
            return None
        except OSError as e:
            raise SLPException(SLPError.NETWORK_ERROR, f"receive failed: {e}")
        return Datagram(data, addr)

    def close(self) -> None:
        """Close the UDP socket."""
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
