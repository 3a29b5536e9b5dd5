import threading
from collections import deque

import pytest

from pyslp.errors import SLPError, SLPException
from pyslp.handle import open_handle
from pyslp.lifetime import LifetimeManager
from pyslp.properties import PropertyStore
from pyslp.transport.udp import Datagram
from pyslp.wire.codec import decode, encode
from pyslp.wire.pdu import Header

FAST_TIMEOUTS = {
    "net.slp.multicastTimeouts": "50,50,50",
    "net.slp.multicastMaximumWait": 300,
    "net.slp.unicastTimeouts": "50,50,50",
    "net.slp.unicastMaximumWait": 300,
}


class FakeTransport:
    """In-memory transport answering requests through a responder function.

    ``responder(target, request)`` returns an iterable of
    ``(source_host, reply)`` pairs where ``reply`` is a PDU or raw bytes.
    """

    def __init__(self, responder=None):
        self.responder = responder
        self.sent = []
        self.closed = False
        self._inbox = deque()
        self._cond = threading.Condition()

    def send(self, target, payload):
        if self.closed:
            raise SLPException(SLPError.NETWORK_ERROR, "transport is closed")
        self.sent.append((target, payload))
        if self.responder is None:
            return
        for host, reply in self.responder(target, decode(payload)) or []:
            self.inject(reply if isinstance(reply, bytes) else encode(reply), host)

    def inject(self, data, host, port=427):
        with self._cond:
            self._inbox.append(Datagram(data, (host, port)))
            self._cond.notify_all()

    def receive(self, timeout):
        with self._cond:
            if not self._inbox and not self.closed:
                self._cond.wait(timeout)
            if self.closed:
                raise SLPException(SLPError.NETWORK_ERROR, "transport is closed")
            if not self._inbox:
                return None
            return self._inbox.popleft()

    def close(self):
        with self._cond:
            self.closed = True
            self._cond.notify_all()

    @property
    def requests(self):
        return [decode(payload) for _, payload in self.sent]


def reply_header(request, function):
    """Header of a reply to ``request``."""
    return Header(function=function, xid=request.header.xid, lang=request.header.lang)


@pytest.fixture
def fast_properties():
    return PropertyStore(overrides=FAST_TIMEOUTS, read_files=False)


@pytest.fixture
def lifetime_manager():
    return LifetimeManager()


@pytest.fixture
def make_handle(lifetime_manager):
    """Factory opening handles on a FakeTransport; closes them afterwards."""
    handles = []

    def factory(responder=None, is_async=False, lang=None, **overrides):
        properties = PropertyStore(overrides={**FAST_TIMEOUTS, **overrides}, read_files=False)
        transport = FakeTransport(responder)
        handle = open_handle(
            lang,
            is_async=is_async,
            properties=properties,
            transport=transport,
            lifetime_manager=lifetime_manager,
        )
        handles.append(handle)
        return handle, transport

    yield factory

    for handle in handles:
        if not handle.closed:
            handle.close()


class Recorder:
    """Callback that records its arguments (after the handle)."""

    def __init__(self, result=True):
        self.result = result
        self.calls = []

    def __call__(self, handle, *args):
        self.calls.append(args)
        return self.result

    @property
    def errors(self):
        return [args[-1] for args in self.calls]

    @property
    def payloads(self):
        return [args[0] for args in self.calls if len(args) > 1 and args[0] is not None]
