"""Request engine - drives one SLP operation to completion.

Lifecycle::

    BUILDING -> SENDING -> AWAITING_RESPONSES -> COMPLETED
                   ^               |
                   +---------------+   (retransmissions)

with CANCELLED and FAILED as the other terminal states.

Discovery requests without configured directory agents use multicast
convergence: the request is retransmitted with exponential backoff and a
growing previous responder list until the schedule, the overall wait or
the room for the responder list runs out. Requests to directory agents
(and all registrations) are unicast and retried until every agent answered.
"""

import logging
import socket
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ..errors import SLPError, SLPException, from_protocol_code
from ..lifetime import SLP_LIFETIME_MAXIMUM, LifetimeManager, Registration
from ..transport.retry_policy import RetryPolicy
from ..transport.udp import Datagram, Target
from ..wire.codec import decode, encode
from ..wire.pdu import (
    DIRECTORY_AGENT_TYPE,
    PDU,
    SERVICE_AGENT_TYPE,
    AttrRply,
    DAAdvert,
    FunctionID,
    HeaderFlags,
    SAAdvert,
    SrvDeReg,
    SrvReg,
    SrvRply,
    SrvTypeRply,
)
from .channel import TransportChannel
from .collector import ResponseCollector
from .timeout_handler import TimeoutHandler

logger = logging.getLogger(__name__)

# Longest single wait on the socket; bounds how late cancellation is noticed
POLL_INTERVAL = 0.05


class OperationKind(str, Enum):
    """Operations a handle can run."""
    FIND_SERVICES = "find-services"
    FIND_SERVICE_TYPES = "find-service-types"
    FIND_ATTRIBUTES = "find-attributes"
    REGISTER = "register"
    DEREGISTER = "deregister"
    DELETE_ATTRIBUTES = "delete-attributes"

    @property
    def is_registration(self) -> bool:
        return self in (
            OperationKind.REGISTER,
            OperationKind.DEREGISTER,
            OperationKind.DELETE_ATTRIBUTES,
        )


class RequestState(str, Enum):
    """Engine states."""
    BUILDING = "building"
    SENDING = "sending"
    AWAITING_RESPONSES = "awaiting-responses"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (RequestState.COMPLETED, RequestState.CANCELLED, RequestState.FAILED)


class Continuation(Enum):
    """Value returned by discovery callbacks."""
    CONTINUE = "continue"
    STOP = "stop"

    @classmethod
    def coerce(cls, value: Any) -> "Continuation":
        """Accept a Continuation or any truth value (truthy = CONTINUE)."""
        if isinstance(value, cls):
            return value
        return cls.CONTINUE if value else cls.STOP


@dataclass(frozen=True)
class ServiceEntry:
    """One service URL delivered by a find-services operation."""
    url: str
    lifetime: int


EXPECTED_REPLIES: dict[OperationKind, frozenset] = {
    OperationKind.FIND_SERVICES: frozenset(
        {FunctionID.SRVRPLY, FunctionID.DAADVERT, FunctionID.SAADVERT}
    ),
    OperationKind.FIND_SERVICE_TYPES: frozenset({FunctionID.SRVTYPERPLY}),
    OperationKind.FIND_ATTRIBUTES: frozenset({FunctionID.ATTRRPLY}),
    OperationKind.REGISTER: frozenset({FunctionID.SRVACK}),
    OperationKind.DEREGISTER: frozenset({FunctionID.SRVACK}),
    OperationKind.DELETE_ATTRIBUTES: frozenset({FunctionID.SRVACK}),
}

# Adverts answer a service request only when it asked for that agent type
ADVERTISED_TYPES: dict[FunctionID, str] = {
    FunctionID.DAADVERT: DIRECTORY_AGENT_TYPE,
    FunctionID.SAADVERT: SERVICE_AGENT_TYPE,
}


@dataclass
class EngineConfig:
    """Per-request settings resolved by the handle."""
    targets: list[Target]
    policy: RetryPolicy
    mtu: int = 1400
    max_results: int = 0
    lifetime_manager: Optional[LifetimeManager] = None


@dataclass
class _TargetState:
    target: Target
    address: Optional[str] = None
    answered: bool = False
    error: SLPError = SLPError.OK

    @classmethod
    def resolve(cls, target: Target) -> "_TargetState":
        """Track ``target``, keyed by the IPv4 address its replies come from."""
        if target.is_multicast:
            return cls(target)
        try:
            address = socket.gethostbyname(target.address)
        except OSError as e:
            logger.debug("Cannot resolve %s: %s", target.address, e)
            address = target.address
        return cls(target, address)


class RequestEngine:
    """State machine for a single discovery or registration request."""

    def __init__(
        self,
        handle: Any,
        kind: OperationKind,
        build_request: Callable[[], PDU],
        callback: Callable,
        channel: TransportChannel,
        config: EngineConfig,
        on_finished: Optional[Callable[["RequestEngine"], None]] = None,
    ):
        """Initialize the engine.

        Args:
            handle: Object passed as first argument to the callback.
            kind: Operation being performed.
            build_request: Factory returning the request message.
            callback: ``callback(handle, payload, error) -> Continuation`` for
                discovery, ``callback(handle, error)`` for registrations.
            channel: Shared transport of the owning handle.
            config: Targets, retry policy and limits.
            on_finished: Called once when the engine reaches a terminal state.
        """
        self.handle = handle
        self.kind = kind
        self.config = config
        self.xid: Optional[int] = None
        self.exception: Optional[BaseException] = None

        self._build_request = build_request
        self._callback = callback
        self._channel = channel
        self._on_finished = on_finished
        self._state = RequestState.BUILDING
        self._state_lock = threading.Lock()
        self._callback_lock = threading.RLock()
        self._cancel_event = threading.Event()
        self._done_event = threading.Event()
        self._stopped = False
        self._request: Optional[PDU] = None
        self._targets = [_TargetState.resolve(t) for t in config.targets]
        self._timer = TimeoutHandler(config.policy.total_timeout)
        self._attempt = 0
        self.collector = ResponseCollector(config.max_results)

    def __repr__(self) -> str:
        return f"<RequestEngine {self.kind.value} xid={self.xid} state={self._state.value}>"

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def done(self) -> bool:
        return self._done_event.is_set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def is_multicast(self) -> bool:
        return any(t.target.is_multicast for t in self._targets)

    def _set_state(self, state: RequestState) -> bool:
        with self._state_lock:
            if self._state.is_terminal:
                return False
            self._state = state
        if state.is_terminal:
            self._finish()
        return True

    def _finish(self) -> None:
        if self.xid is not None:
            self._channel.unregister(self.xid)
        self._done_event.set()
        if self._on_finished is not None:
            self._on_finished(self)

    # Caller-facing control

    def start(self) -> None:
        """Build the request and transmit it for the first time.

        Runs on the caller's thread so build and send failures surface as
        exceptions rather than through the callback.

        Raises:
            SLPException: e.g. BUFFER_OVERFLOW, NETWORK_ERROR. The engine is
                FAILED afterwards.
        """
        try:
            self._request = self._build_request()
            self.xid = self._request.header.xid
            self._channel.register(self.xid)
            self._timer.start()
            self._transmit()
        except BaseException as e:
            self.exception = e
            self._set_state(RequestState.FAILED)
            raise

    def run(self) -> None:
        """Collect replies until the request completes.

        Raises:
            Exception: Whatever a callback raised; the engine is FAILED.
        """
        try:
            if not self._state.is_terminal and not self.cancelled:
                self._converge()
                self._complete()
        except SLPException as e:
            # Transport failure in the middle of an exchange
            logger.debug("%r failed: %s", self, e)
            self._deliver_terminal(e.error)
            if self.exception is None:
                self._set_state(RequestState.FAILED)
        finally:
            if self.cancelled:
                self._set_state(RequestState.CANCELLED)
            elif self.exception is not None:
                self._set_state(RequestState.FAILED)
        if self.exception is not None:
            raise self.exception

    def cancel(self) -> bool:
        """Cancel the request; no callback is invoked afterwards.

        Returns:
            True if the engine was still running.
        """
        self._cancel_event.set()
        # Waits for a callback in progress on another thread to return
        with self._callback_lock:
            pass
        return self._set_state(RequestState.CANCELLED)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the engine reaches a terminal state.

        Returns:
            True if it did within ``timeout``.

        Raises:
            Exception: Whatever a callback raised while the engine ran.
        """
        finished = self._done_event.wait(timeout)
        if finished and self.exception is not None:
            raise self.exception
        return finished

    # Transmission

    def _pending(self) -> list[_TargetState]:
        return [t for t in self._targets if t.target.is_multicast or not t.answered]

    def _should_stop(self) -> bool:
        return (
            self.cancelled
            or self._stopped
            or self.exception is not None
            or self.collector.exhausted
        )

    def _encode_for(self, target: Target) -> bytes:
        header = self._request.header
        if target.is_multicast:
            header.flags |= HeaderFlags.REQUEST_MCAST
        else:
            header.flags &= ~HeaderFlags.REQUEST_MCAST
        return encode(self._request)

    def _transmit(self) -> bool:
        """Send the request to every target still waiting for an answer.

        Returns:
            False if the previous responder list no longer fits the MTU.
        """
        if not self._set_state(RequestState.SENDING):
            return False
        if hasattr(self._request, "prlist"):
            self._request.prlist = self.collector.prlist

        for state in self._pending():
            payload = self._encode_for(state.target)
            if len(payload) > self.config.mtu:
                if self._attempt == 0:
                    raise SLPException(
                        SLPError.BUFFER_OVERFLOW,
                        f"request of {len(payload)} bytes exceeds MTU {self.config.mtu}",
                    )
                logger.debug("%r: responder list exceeds MTU, ending convergence", self)
                return False
            logger.debug("%r: attempt %d to %s", self, self._attempt, state.target)
            self._channel.send(state.target, payload)
        return True

    def _converge(self) -> None:
        policy = self.config.policy
        while True:
            self._collect(self._timer.window(policy.get_delay(self._attempt)))
            if self._should_stop() or not self._pending():
                return
            self._attempt += 1
            if self._attempt > policy.max_retries or self._timer.is_expired:
                return
            if not self._transmit():
                return

    # Reception

    def _collect(self, window: float) -> None:
        if not self._set_state(RequestState.AWAITING_RESPONSES):
            return
        deadline = TimeoutHandler(window)
        deadline.start()
        while not self._should_stop() and self._pending() and not deadline.is_expired:
            try:
                datagram = self._channel.receive(self.xid, min(deadline.remaining, POLL_INTERVAL))
            except SLPException:
                if self.cancelled:
                    return
                raise
            if datagram is not None and not self.cancelled:
                self._handle_datagram(datagram)

    def _match_target(self, host: str) -> Optional[_TargetState]:
        for state in self._targets:
            if state.address == host and not state.answered:
                return state
        return None

    def _expects(self, function: FunctionID) -> bool:
        if function not in EXPECTED_REPLIES[self.kind]:
            return False
        advertised = ADVERTISED_TYPES.get(function)
        if advertised is None:
            return True
        return getattr(self._request, "srvtype", "").lower() == advertised

    def _handle_datagram(self, datagram: Datagram) -> None:
        target_state = None
        if not self.is_multicast:
            target_state = self._match_target(datagram.host)
            if target_state is None:
                logger.debug("%r: ignoring reply from unexpected host %s", self, datagram.host)
                return

        try:
            reply = decode(datagram.data)
        except SLPException as e:
            self.collector.add_malformed()
            logger.debug("%r: malformed reply from %s: %s", self, datagram.host, e)
            if target_state is not None and self.kind.is_registration:
                target_state.answered = True
                target_state.error = SLPError.PARSE_ERROR
            return

        if not self._expects(reply.header.function):
            logger.debug("%r: unexpected %s from %s", self, reply.header.function.name, datagram.host)
            return
        if reply.header.overflowed:
            logger.debug("%r: truncated reply from %s, using what decoded", self, datagram.host)
        if not self.collector.is_new(datagram):
            logger.debug("%r: duplicate reply from %s", self, datagram.host)
            return

        if target_state is not None:
            target_state.answered = True
        else:
            self.collector.add_responder(datagram.host)

        if self.kind.is_registration:
            target_state.error = from_protocol_code(reply.error)
            return
        self._dispatch(reply)

    def _dispatch(self, reply: PDU) -> None:
        if isinstance(reply, (SrvRply, SrvTypeRply, AttrRply, DAAdvert)) and reply.error:
            self._deliver(None, from_protocol_code(reply.error))
            return

        if isinstance(reply, SrvRply):
            for entry in reply.urls:
                if self._should_stop():
                    return
                if self.collector.mark_url(entry.url):
                    self._deliver_result(ServiceEntry(entry.url, entry.lifetime))
        elif isinstance(reply, DAAdvert):
            if self.config.lifetime_manager is not None:
                self.config.lifetime_manager.observe_directory_agent(
                    reply.url, reply.scopes, reply.attrs, reply.boot_timestamp,
                )
            if self.collector.mark_url(reply.url):
                self._deliver_result(ServiceEntry(reply.url, SLP_LIFETIME_MAXIMUM))
        elif isinstance(reply, SAAdvert):
            if self.collector.mark_url(reply.url):
                self._deliver_result(ServiceEntry(reply.url, SLP_LIFETIME_MAXIMUM))
        elif isinstance(reply, SrvTypeRply):
            if reply.srvtypes:
                self._deliver_result(reply.srvtypes)
        elif isinstance(reply, AttrRply):
            self._deliver_result(reply.attrs)

    # Callback delivery

    def _invoke(self, *args) -> Any:
        with self._callback_lock:
            if self.cancelled or self.exception is not None:
                return Continuation.STOP
            try:
                return self._callback(self.handle, *args)
            except Exception as e:
                logger.debug("%r: callback raised %r", self, e)
                self.exception = e
                return Continuation.STOP

    def _deliver(self, payload: Any, error: SLPError) -> None:
        if self._stopped:
            return
        if Continuation.coerce(self._invoke(payload, error)) is Continuation.STOP:
            self._stopped = True

    def _deliver_result(self, payload: Any) -> None:
        self.collector.count_delivery()
        self._deliver(payload, SLPError.OK)

    def _deliver_terminal(self, error: SLPError) -> None:
        if self.cancelled or self._stopped:
            return
        if self.kind.is_registration:
            self._invoke(error)
        else:
            self._deliver(None, error)

    def _complete(self) -> None:
        if self.cancelled or self.exception is not None:
            return

        if self.kind.is_registration:
            self._invoke(self._registration_result())
        elif not self._stopped:
            if any(not t.answered for t in self._targets if not t.target.is_multicast):
                self._deliver(None, SLPError.NETWORK_TIMED_OUT)
            if not self._stopped:
                self._invoke(None, SLPError.LAST_CALL)

        if self.exception is None:
            self._set_state(RequestState.COMPLETED)

    def _registration_result(self) -> SLPError:
        errors = [t.error for t in self._targets if t.answered and t.error != SLPError.OK]
        if errors:
            return errors[0]
        if not all(t.answered for t in self._targets):
            return SLPError.NETWORK_TIMED_OUT

        manager = self.config.lifetime_manager
        if manager is not None:
            request = self._request
            if self.kind is OperationKind.REGISTER and isinstance(request, SrvReg):
                manager.record(Registration(
                    url=request.entry.url,
                    lifetime=request.entry.lifetime,
                    srvtype=request.srvtype,
                    attrs=request.attrs,
                    scopes=request.scopes,
                    fresh=request.header.is_fresh,
                ))
            elif self.kind is OperationKind.DEREGISTER and isinstance(request, SrvDeReg):
                manager.forget(request.entry.url)
        return SLPError.OK
