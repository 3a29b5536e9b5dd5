"""SLP session handles.

A handle bundles the language, scope and network configuration of a
session and runs discovery and registration requests on it.

Synchronous handles run each request on the caller's thread and refuse a
second concurrent request with ``HANDLE_IN_USE``. Asynchronous handles
return immediately and deliver callbacks from a worker pool; all of their
requests share the handle's socket.
"""

import logging
import random
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from .engine.channel import TransportChannel
from .engine.request import EngineConfig, OperationKind, RequestEngine
from .errors import SLPError, SLPException, SLPTypeError
from .lifetime import SLP_LIFETIME_DEFAULT, SLP_LIFETIME_MAXIMUM, LifetimeManager, get_lifetime_manager
from .properties import PropertyStore, get_store
from .transport.retry_policy import RetryPolicy, multicast_retry_policy, unicast_retry_policy
from .transport.udp import DEFAULT_SLP_PORT, Target, UDPTransport
from .url import parse_srvurl
from .wire.pdu import (
    PDU,
    AttrRqst,
    FunctionID,
    Header,
    HeaderFlags,
    SrvDeReg,
    SrvReg,
    SrvRqst,
    SrvTypeRqst,
    URLEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = "DEFAULT"
LOCAL_SERVICE_AGENT = "127.0.0.1"

# RFC 1766 language tag
LANGUAGE_TAG = re.compile(r"^[A-Za-z]{1,8}(-[A-Za-z0-9]{1,8})*$")

ALL_NAMING_AUTHORITIES = "*"


class Handle:
    """An open SLP session."""

    def __init__(
        self,
        lang: Optional[str] = None,
        is_async: bool = False,
        properties: Optional[PropertyStore] = None,
        transport=None,
        lifetime_manager: Optional[LifetimeManager] = None,
    ):
        """Open a session.

        Args:
            lang: RFC 1766 language tag. Empty or None uses net.slp.locale.
            is_async: If True, requests run in the background and several may
                be active at once.
            properties: Configuration; the process-wide store by default.
            transport: Transport to use instead of a new UDPTransport.
            lifetime_manager: Registration tracker; the process-wide one by
                default.

        Raises:
            SLPException: LANGUAGE_NOT_SUPPORTED for a malformed language tag,
                NETWORK_INIT_FAILED if the socket cannot be opened.
        """
        self.properties = properties or get_store()
        lang = lang or self.properties.get("net.slp.locale") or "en"
        if not LANGUAGE_TAG.match(lang):
            raise SLPException(SLPError.LANGUAGE_NOT_SUPPORTED, f"malformed language tag {lang!r}")

        self.lang = lang
        self.is_async = bool(is_async)
        self.scopes = self.properties.get_list("net.slp.useScopes") or [DEFAULT_SCOPE]
        self.lifetime_manager = lifetime_manager or get_lifetime_manager()
        self.port = self.properties.get_int("net.slp.port", DEFAULT_SLP_PORT)

        self._channel = TransportChannel(transport or UDPTransport(self.properties))
        self._lock = threading.Lock()
        self._active: list[RequestEngine] = []
        self._busy = False
        self._closed = False
        self._xid = random.randint(1, 0xFFFF)
        self._executor: Optional[ThreadPoolExecutor] = None
        if self.is_async:
            self._executor = ThreadPoolExecutor(thread_name_prefix="pyslp")

        logger.debug("Opened %s SLP handle (lang=%s, scopes=%s)",
                     "async" if self.is_async else "sync", self.lang, ",".join(self.scopes))

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<Handle lang={self.lang} async={self.is_async} {state}>"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_requests(self) -> list[RequestEngine]:
        with self._lock:
            return list(self._active)

    # Lifecycle

    def close(self) -> None:
        """Cancel active requests and release the session.

        Raises:
            SLPTypeError: If the handle is already closed.
        """
        with self._lock:
            if self._closed:
                raise SLPTypeError("SLP handle is already closed")
            self._closed = True
            engines = list(self._active)

        for engine in engines:
            engine.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
        self._channel.close()
        logger.debug("Closed SLP handle, cancelled %d request(s)", len(engines))

    def __enter__(self):
        return self

    def __exit__(self, *args):
        if not self._closed:
            self.close()

    # Service location

    def find_services(
        self,
        srvtype: str,
        scopelist: str = "",
        filter: str = "",
        callback: Optional[Callable] = None,
    ) -> RequestEngine:
        """Find services of a type.

        Args:
            srvtype: Service type, e.g. ``service:printer``.
            scopelist: Comma separated scopes; the handle's scopes if empty.
            filter: LDAPv3 search filter evaluated by the responders.
            callback: ``callback(handle, entry, error) -> Continuation`` where
                ``entry`` is a :class:`~pyslp.engine.request.ServiceEntry`.

        Returns:
            The request engine (already finished on a sync handle).
        """
        self._check_callback(callback)
        if not srvtype:
            raise SLPException(SLPError.PARAMETER_BAD, "service type is required")
        scopes = self._scope_list(scopelist)

        def build() -> PDU:
            return SrvRqst(self._header(FunctionID.SRVRQST), srvtype, scopes, filter or "")

        return self._launch(OperationKind.FIND_SERVICES, build, callback, self._discovery_targets())

    def find_service_types(
        self,
        naming_authority: str = ALL_NAMING_AUTHORITIES,
        scopelist: str = "",
        callback: Optional[Callable] = None,
    ) -> RequestEngine:
        """Find the service types available in the scopes.

        Args:
            naming_authority: ``*`` for every authority, empty for IANA.
            scopelist: Comma separated scopes; the handle's scopes if empty.
            callback: ``callback(handle, srvtypes, error) -> Continuation``
                with ``srvtypes`` a comma separated list.
        """
        self._check_callback(callback)
        scopes = self._scope_list(scopelist)
        authority = None if naming_authority == ALL_NAMING_AUTHORITIES else (naming_authority or "")

        def build() -> PDU:
            return SrvTypeRqst(self._header(FunctionID.SRVTYPERQST), authority, scopes)

        return self._launch(OperationKind.FIND_SERVICE_TYPES, build, callback, self._discovery_targets())

    def find_attributes(
        self,
        url: str,
        scopelist: str = "",
        attrids: str = "",
        callback: Optional[Callable] = None,
    ) -> RequestEngine:
        """Find the attributes of a service URL or service type.

        Args:
            url: Service URL or service type.
            scopelist: Comma separated scopes; the handle's scopes if empty.
            attrids: Comma separated attribute tags, empty for all.
            callback: ``callback(handle, attrs, error) -> Continuation`` with
                ``attrs`` in SLP attribute list format.
        """
        self._check_callback(callback)
        if not url:
            raise SLPException(SLPError.PARAMETER_BAD, "service URL is required")
        scopes = self._scope_list(scopelist)

        def build() -> PDU:
            return AttrRqst(self._header(FunctionID.ATTRRQST), url, scopes, attrids or "")

        return self._launch(OperationKind.FIND_ATTRIBUTES, build, callback, self._discovery_targets())

    def find_scopes(self) -> str:
        """Comma separated list of the scopes available to this handle."""
        self._require_open()
        configured = self.properties.get_list("net.slp.useScopes")
        scopes = configured or self.lifetime_manager.known_scopes() or [DEFAULT_SCOPE]
        return ",".join(scopes)

    # Service registration

    def register(
        self,
        url: str,
        lifetime: int = SLP_LIFETIME_DEFAULT,
        srvtype: str = "",
        attrs: str = "",
        fresh: bool = True,
        callback: Optional[Callable] = None,
    ) -> RequestEngine:
        """Register a service with the directory agents or local SA server.

        Args:
            url: Service URL to advertise.
            lifetime: Seconds the registration stays valid, at most
                SLP_LIFETIME_MAXIMUM (which never expires).
            srvtype: Service type; derived from the URL when empty.
            attrs: Attribute list, e.g. ``(location=lab),(color=true)``.
            fresh: False to add attributes to an existing registration.
            callback: ``callback(handle, error)``; its return value is ignored.
        """
        self._check_callback(callback)
        parsed = parse_srvurl(url)
        if not 0 < lifetime <= SLP_LIFETIME_MAXIMUM:
            raise SLPException(SLPError.PARAMETER_BAD, f"lifetime {lifetime} out of range")
        srvtype = srvtype or parsed.service_type
        scopes = self._scope_list("")
        flags = HeaderFlags.FRESH if fresh else HeaderFlags.NONE

        def build() -> PDU:
            return SrvReg(
                self._header(FunctionID.SRVREG, flags),
                URLEntry(url, lifetime),
                srvtype,
                scopes,
                attrs or "",
            )

        return self._launch(OperationKind.REGISTER, build, callback, self._registration_targets())

    def deregister(self, url: str, callback: Optional[Callable] = None) -> RequestEngine:
        """Withdraw a registration.

        Args:
            url: Registered service URL.
            callback: ``callback(handle, error)``.
        """
        self._check_callback(callback)
        parse_srvurl(url)
        scopes = self._scope_list("")

        def build() -> PDU:
            return SrvDeReg(self._header(FunctionID.SRVDEREG), URLEntry(url, 0), scopes)

        return self._launch(OperationKind.DEREGISTER, build, callback, self._registration_targets())

    def delete_attributes(self, url: str, attrs: str, callback: Optional[Callable] = None) -> RequestEngine:
        """Remove attributes from a registration.

        Args:
            url: Registered service URL.
            attrs: Comma separated attribute tags to delete.
            callback: ``callback(handle, error)``.
        """
        self._check_callback(callback)
        parse_srvurl(url)
        if not attrs:
            raise SLPException(SLPError.PARAMETER_BAD, "attribute tags are required")
        scopes = self._scope_list("")

        def build() -> PDU:
            return SrvDeReg(self._header(FunctionID.SRVDEREG), URLEntry(url, 0), scopes, attrs)

        return self._launch(OperationKind.DELETE_ATTRIBUTES, build, callback, self._registration_targets())

    # Internals

    def _require_open(self) -> None:
        if self._closed:
            raise SLPTypeError("SLP handle is closed")

    def _check_callback(self, callback) -> None:
        self._require_open()
        if not callable(callback):
            raise SLPTypeError("Callback must be callable")

    def _next_xid(self) -> int:
        with self._lock:
            self._xid = self._xid % 0xFFFF + 1
            return self._xid

    def _header(self, function: FunctionID, flags: HeaderFlags = HeaderFlags.NONE) -> Header:
        return Header(function=function, xid=self._next_xid(), lang=self.lang, flags=flags)

    def _scope_list(self, scopelist: str) -> str:
        scopes = [s.strip() for s in (scopelist or "").split(",") if s.strip()]
        return ",".join(scopes or self.scopes)

    def _directory_agents(self) -> list[Target]:
        return [
            Target.unicast(address, self.port)
            for address in self.properties.get_list("net.slp.DAAddresses")
        ]

    def _discovery_targets(self) -> list[Target]:
        return self._directory_agents() or [Target.multicast(self.port)]

    def _registration_targets(self) -> list[Target]:
        return self._directory_agents() or [Target.unicast(LOCAL_SERVICE_AGENT, self.port)]

    def _policy_for(self, targets: list[Target]) -> RetryPolicy:
        if any(t.is_multicast for t in targets):
            return multicast_retry_policy(self.properties)
        return unicast_retry_policy(self.properties)

    def _launch(
        self,
        kind: OperationKind,
        build: Callable[[], PDU],
        callback: Callable,
        targets: list[Target],
    ) -> RequestEngine:
        config = EngineConfig(
            targets=targets,
            policy=self._policy_for(targets),
            mtu=self.properties.get_int("net.slp.MTU", 1400),
            max_results=self.properties.get_int("net.slp.maxResults", 0),
            lifetime_manager=self.lifetime_manager,
        )
        engine = RequestEngine(self, kind, build, callback, self._channel, config,
                               on_finished=self._engine_finished)

        with self._lock:
            if self._closed:
                raise SLPTypeError("SLP handle is closed")
            if not self.is_async:
                if self._busy:
                    raise SLPException(SLPError.HANDLE_IN_USE, "synchronous handle is busy")
                self._busy = True
            self._active.append(engine)

        try:
            engine.start()
            if self.is_async:
                self._submit(engine)
            else:
                engine.run()
        finally:
            if not self.is_async:
                with self._lock:
                    self._busy = False
        return engine

    def _submit(self, engine: RequestEngine) -> None:
        # close() marks the handle under the lock before shutting the pool down
        with self._lock:
            if not self._closed:
                self._executor.submit(self._run_in_background, engine)
                return
        engine.cancel()
        raise SLPTypeError("SLP handle was closed while the request started")

    def _run_in_background(self, engine: RequestEngine) -> None:
        try:
            engine.run()
        except Exception as e:
            # Kept on the engine and re-raised by RequestEngine.wait()
            logger.warning("Callback of %r raised %r", engine, e)

    def _engine_finished(self, engine: RequestEngine) -> None:
        with self._lock:
            if engine in self._active:
                self._active.remove(engine)


def open_handle(
    lang: Optional[str] = None,
    is_async: bool = False,
    properties: Optional[PropertyStore] = None,
    transport=None,
    lifetime_manager: Optional[LifetimeManager] = None,
) -> Handle:
    """Open an SLP handle. See :class:`Handle`."""
    return Handle(lang, is_async, properties, transport, lifetime_manager)


def close_handle(handle: Handle) -> None:
    """Close a handle.

    Raises:
        SLPTypeError: If ``handle`` is not an open Handle.
    """
    if not isinstance(handle, Handle):
        raise SLPTypeError("The argument doesn't seem to be a valid SLP handle")
    handle.close()
