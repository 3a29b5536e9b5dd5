"""Response bookkeeping for request engines.

Tracks which replies were already delivered, which agents answered (for
the previous responder list) and how many results went out.
"""

import hashlib
from dataclasses import dataclass, field

from ..errors import SLPException
from ..transport.udp import Datagram
from ..wire.codec import message_body


@dataclass
class CollectedResponses:
    """Aggregated state of the replies seen by one request."""
    fingerprints: set[tuple[str, str]] = field(default_factory=set)
    responders: list[str] = field(default_factory=list)
    urls: set[str] = field(default_factory=set)
    delivered: int = 0
    duplicates: int = 0
    malformed: int = 0


class ResponseCollector:
    """Deduplicates replies and records responders."""

    def __init__(self, max_results: int = 0):
        """Initialize the collector.

        Args:
            max_results: Stop after this many delivered results. 0 = no cap.
        """
        self.max_results = max_results
        self.result = CollectedResponses()

    @staticmethod
    def fingerprint(datagram: Datagram) -> tuple[str, str]:
        """Source address plus a digest of the message body.

        The header is left out so retransmitted replies, which may differ
        only in header flags, compare equal.
        """
        try:
            body = message_body(datagram.data)
        except SLPException:
            body = datagram.data
        return datagram.host, hashlib.sha1(body).hexdigest()

    def is_new(self, datagram: Datagram) -> bool:
        """Record a reply; False if an identical one was seen before."""
        key = self.fingerprint(datagram)
        if key in self.result.fingerprints:
            self.result.duplicates += 1
            return False
        self.result.fingerprints.add(key)
        return True

    def add_responder(self, host: str) -> None:
        if host not in self.result.responders:
            self.result.responders.append(host)

    def add_malformed(self) -> None:
        self.result.malformed += 1

    def mark_url(self, url: str) -> bool:
        """Record a service URL; False if it was already delivered."""
        if url in self.result.urls:
            return False
        self.result.urls.add(url)
        return True

    def count_delivery(self) -> None:
        self.result.delivered += 1

    @property
    def prlist(self) -> str:
        """Previous responder list for the next retransmission."""
        return ",".join(self.result.responders)

    @property
    def exhausted(self) -> bool:
        return bool(self.max_results) and self.result.delivered >= self.max_results
