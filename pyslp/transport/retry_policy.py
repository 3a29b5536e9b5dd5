"""Retransmission policy for SLP requests.

Provides exponential backoff bounded by a maximum interval, built from the
``net.slp.*Timeouts`` properties.
"""

from dataclasses import dataclass

from ..properties import PropertyStore


@dataclass
class RetryPolicy:
    """Retransmission schedule with exponential backoff."""
    max_retries: int = 5
    initial_delay: float = 0.5
    backoff_factor: float = 2.0
    max_delay: float = 3.0
    total_timeout: float = 15.0

    def get_delay(self, attempt: int) -> float:
        """Calculate how long to wait after a given transmission (0-indexed).

        Args:
            attempt: Transmission number (0 = first send).

        Returns:
            Seconds to wait for replies before retransmitting.
        """
        delay = self.initial_delay * (self.backoff_factor ** attempt)
        return min(delay, self.max_delay)

    @classmethod
    def from_timeouts(cls, timeouts_ms: list[int], maximum_wait_ms: int) -> "RetryPolicy":
        """Build a policy from a property timeout list.

        The first entry is the initial interval, the largest entry caps the
        backoff and the list length bounds the number of transmissions.
        """
        timeouts_ms = [t for t in timeouts_ms if t > 0]
        if not timeouts_ms:
            return cls(total_timeout=maximum_wait_ms / 1000.0)
        return cls(
            max_retries=len(timeouts_ms) - 1,
            initial_delay=timeouts_ms[0] / 1000.0,
            max_delay=max(timeouts_ms) / 1000.0,
            total_timeout=maximum_wait_ms / 1000.0,
        )


def multicast_retry_policy(properties: PropertyStore) -> RetryPolicy:
    """Convergence schedule for multicast discovery."""
    return RetryPolicy.from_timeouts(
        properties.get_int_list("net.slp.multicastTimeouts"),
        properties.get_int("net.slp.multicastMaximumWait", 15000),
    )


def unicast_retry_policy(properties: PropertyStore) -> RetryPolicy:
    """Schedule for unicast exchanges with directory agents."""
    return RetryPolicy.from_timeouts(
        properties.get_int_list("net.slp.unicastTimeouts"),
        properties.get_int("net.slp.unicastMaximumWait", 15000),
    )
