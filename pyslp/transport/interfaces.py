"""Network interface enumeration for multicast and broadcast sends.

``net.slp.interfaces`` lists interface addresses directly; these helpers
are only consulted when it is empty.
"""

from typing import Iterator

import netifaces


def _ipv4_entries() -> Iterator[dict]:
    """Yield the AF_INET entries of every interface, e.g.
    ``{'addr': '172.23.43.33', 'netmask': '255.255.0.0', 'broadcast': '172.23.255.255'}``.
    """
    for name in netifaces.interfaces():
        yield from netifaces.ifaddresses(name).get(netifaces.AF_INET, [])


def get_multicast_interface_addresses() -> list[str]:
    """IPv4 addresses of every interface, loopback excluded."""
    return [
        entry["addr"]
        for entry in _ipv4_entries()
        if "addr" in entry and not entry["addr"].startswith("127.")
    ]


def get_broadcast_addresses() -> list[str]:
    """Broadcast addresses of every interface that has one."""
    return [entry["broadcast"] for entry in _ipv4_entries() if entry.get("broadcast")]
