"""Transport module - UDP unicast, multicast and broadcast."""

from .retry_policy import RetryPolicy, multicast_retry_policy, unicast_retry_policy
from .udp import (
    DEFAULT_SLP_PORT,
    SLP_MULTICAST_GROUP,
    Datagram,
    Target,
    UDPTransport,
)

__all__ = [
    "DEFAULT_SLP_PORT",
    "SLP_MULTICAST_GROUP",
    "Datagram",
    "RetryPolicy",
    "Target",
    "UDPTransport",
    "multicast_retry_policy",
    "unicast_retry_policy",
]
