import socket

import pytest

from pyslp.errors import SLPError, SLPException
from pyslp.properties import PropertyStore
from pyslp.transport import interfaces
from pyslp.transport.retry_policy import RetryPolicy, multicast_retry_policy
from pyslp.transport.udp import SLP_MULTICAST_GROUP, Target, UDPTransport


@pytest.fixture
def transport():
    with UDPTransport(PropertyStore(read_files=False)) as transport:
        yield transport


@pytest.fixture
def peer():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(2)
    yield sock
    sock.close()


def test_unicast_round_trip(transport, peer):
    transport.send(Target.unicast("127.0.0.1", peer.getsockname()[1]), b"hello")
    data, addr = peer.recvfrom(1024)
    assert data == b"hello"
    assert addr[1] == transport.local_address[1]

    peer.sendto(b"world", ("127.0.0.1", transport.local_address[1]))
    datagram = transport.receive(2.0)
    assert datagram.data == b"world"
    assert datagram.host == "127.0.0.1"


def test_receive_timeout_returns_none(transport):
    assert transport.receive(0.05) is None


def test_closed_transport_raises():
    transport = UDPTransport(PropertyStore(read_files=False))
    transport.close()
    assert transport.closed
    with pytest.raises(SLPException) as info:
        transport.receive(0.01)
    assert info.value.error == SLPError.NETWORK_ERROR


def test_targets():
    multicast = Target.multicast(1427)
    assert multicast.is_multicast
    assert str(multicast) == f"{SLP_MULTICAST_GROUP}:1427"
    assert not Target.unicast("10.0.0.5").is_multicast


def test_interface_addresses(monkeypatch):
    table = {
        "lo": {interfaces.netifaces.AF_INET: [{"addr": "127.0.0.1"}]},
        "eth0": {interfaces.netifaces.AF_INET: [
            {"addr": "192.168.1.10", "netmask": "255.255.255.0", "broadcast": "192.168.1.255"},
        ]},
        "tun0": {},
    }
    monkeypatch.setattr(interfaces.netifaces, "interfaces", lambda: list(table))
    monkeypatch.setattr(interfaces.netifaces, "ifaddresses", lambda name: table[name])

    assert interfaces.get_multicast_interface_addresses() == ["192.168.1.10"]
    assert interfaces.get_broadcast_addresses() == ["192.168.1.255"]


def test_retry_policy_backoff():
    policy = RetryPolicy(initial_delay=0.5, max_delay=3.0)
    assert [policy.get_delay(n) for n in range(5)] == [0.5, 1.0, 2.0, 3.0, 3.0]


def test_retry_policy_from_properties():
    policy = multicast_retry_policy(PropertyStore(read_files=False))
    assert policy.max_retries == 5
    assert policy.initial_delay == 0.5
    assert policy.max_delay == 3.0
    assert policy.total_timeout == 15.0


def test_retry_policy_without_timeouts():
    policy = RetryPolicy.from_timeouts([], 2000)
    assert policy.total_timeout == 2.0
