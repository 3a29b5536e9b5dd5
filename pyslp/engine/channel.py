"""Serialized access to a handle's transport.

Every request engine of a handle shares one socket. Sends and receive
slices are taken under one lock so datagrams never interleave, and a reply
read by the wrong engine is parked for the engine owning its XID.
"""

import logging
import threading
import time
from collections import deque
from typing import Optional

from ..errors import SLPException
from ..transport.udp import Datagram, Target
from ..wire.codec import peek_header

logger = logging.getLogger(__name__)


class TransportChannel:
    """Per-handle send/receive discipline over a transport."""

    def __init__(self, transport):
        """Initialize the channel.

        Args:
            transport: Object with ``send(target, payload)``,
                ``receive(timeout)`` and ``close()``, usually a
                :class:`~pyslp.transport.udp.UDPTransport`.
        """
        self._transport = transport
        self._lock = threading.Lock()
        self._backlog: dict[int, deque] = {}

    def register(self, xid: int) -> None:
        """Start routing replies with this XID."""
        with self._lock:
            self._backlog.setdefault(xid, deque())

    def unregister(self, xid: int) -> None:
        with self._lock:
            self._backlog.pop(xid, None)

    def __contains__(self, xid: int) -> bool:
        """Whether replies with this XID are still routed."""
        with self._lock:
            return xid in self._backlog

    def send(self, target: Target, payload: bytes) -> None:
        with self._lock:
            self._transport.send(target, payload)

    def receive(self, xid: int, timeout: float) -> Optional[Datagram]:
        """Receive the next datagram addressed to ``xid``.

        Args:
            xid: Transaction id of the calling engine.
            timeout: Longest time to wait for the socket, in seconds.

        Returns:
            A datagram for this XID (or an undecodable one, which the caller
            discards), or None if nothing arrived for it.

        Raises:
            SLPException: NETWORK_ERROR from the transport.
        """
        with self._lock:
            parked = self._backlog.get(xid)
            if parked:
                return parked.popleft()
            datagram = self._transport.receive(timeout)

        if datagram is None:
            # Give engines blocked on the lock a chance to run
            time.sleep(0)
            return None

        try:
            header = peek_header(datagram.data)
        except SLPException:
            return datagram
        if header.xid == xid:
            return datagram

        with self._lock:
            owner = self._backlog.get(header.xid)
            if owner is not None:
                owner.append(datagram)
            else:
                logger.debug("Dropping reply with stale XID %d from %s", header.xid, datagram.host)
        time.sleep(0)
        return None

    def close(self) -> None:
        with self._lock:
            self._backlog.clear()
            self._transport.close()
