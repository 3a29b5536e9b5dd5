"""pyslp - Service Location Protocol (RFC 2608) client library.

Open a handle, run discovery or registration requests on it and receive
the results through callbacks::

    import pyslp

    def on_service(handle, entry, error):
        if error == pyslp.SLP_OK:
            print(entry.url)
        return pyslp.Continuation.CONTINUE

    with pyslp.open_handle() as handle:
        handle.find_services("service:printer", "", "", on_service)
"""

from .engine.request import Continuation, OperationKind, RequestEngine, RequestState, ServiceEntry
from .errors import SLPError, SLPException, SLPTypeError, error_name
from .handle import Handle, close_handle, open_handle
from .lifetime import (
    SLP_LIFETIME_DEFAULT,
    SLP_LIFETIME_MAXIMUM,
    LifetimeManager,
    Registration,
    get_lifetime_manager,
    get_refresh_interval,
)
from .properties import PropertyStore, get_property, set_property
from .url import ServiceURL, parse_srvurl
from .wire.escape import escape, unescape

__version__ = "0.1.0"

SLP_LAST_CALL = int(SLPError.LAST_CALL)
SLP_OK = int(SLPError.OK)
SLP_LANGUAGE_NOT_SUPPORTED = int(SLPError.LANGUAGE_NOT_SUPPORTED)
SLP_PARSE_ERROR = int(SLPError.PARSE_ERROR)
SLP_INVALID_REGISTRATION = int(SLPError.INVALID_REGISTRATION)
SLP_SCOPE_NOT_SUPPORTED = int(SLPError.SCOPE_NOT_SUPPORTED)
SLP_AUTHENTICATION_ABSENT = int(SLPError.AUTHENTICATION_ABSENT)
SLP_AUTHENTICATION_FAILED = int(SLPError.AUTHENTICATION_FAILED)
SLP_INVALID_UPDATE = int(SLPError.INVALID_UPDATE)
SLP_REFRESH_REJECTED = int(SLPError.REFRESH_REJECTED)
SLP_NOT_IMPLEMENTED = int(SLPError.NOT_IMPLEMENTED)
SLP_BUFFER_OVERFLOW = int(SLPError.BUFFER_OVERFLOW)
SLP_NETWORK_TIMED_OUT = int(SLPError.NETWORK_TIMED_OUT)
SLP_NETWORK_INIT_FAILED = int(SLPError.NETWORK_INIT_FAILED)
SLP_MEMORY_ALLOC_FAILED = int(SLPError.MEMORY_ALLOC_FAILED)
SLP_PARAMETER_BAD = int(SLPError.PARAMETER_BAD)
SLP_NETWORK_ERROR = int(SLPError.NETWORK_ERROR)
SLP_INTERNAL_SYSTEM_ERROR = int(SLPError.INTERNAL_SYSTEM_ERROR)
SLP_HANDLE_IN_USE = int(SLPError.HANDLE_IN_USE)
SLP_TYPE_ERROR = int(SLPError.TYPE_ERROR)

__all__ = [
    "Continuation",
    "Handle",
    "LifetimeManager",
    "OperationKind",
    "PropertyStore",
    "Registration",
    "RequestEngine",
    "RequestState",
    "SLPError",
    "SLPException",
    "SLPTypeError",
    "ServiceEntry",
    "ServiceURL",
    "SLP_LIFETIME_DEFAULT",
    "SLP_LIFETIME_MAXIMUM",
    "close_handle",
    "error_name",
    "escape",
    "get_lifetime_manager",
    "get_property",
    "get_refresh_interval",
    "open_handle",
    "parse_srvurl",
    "set_property",
    "unescape",
]
__all__ += [name for name in dir() if name.startswith("SLP_") and name not in __all__]
