"""SLP error codes and exceptions.

API error codes follow the values used by the OpenSLP C API (RFC 2614).
Protocol error codes carried inside SLPv2 replies (RFC 2608) are mapped
onto them with :func:`from_protocol_code`.
"""

from enum import IntEnum
from typing import Union


class SLPError(IntEnum):
    """API-level result codes.

    ``LAST_CALL`` is not an error: it marks the final callback of an
    asynchronous delivery sequence.
    """
    LAST_CALL = 1
    OK = 0
    LANGUAGE_NOT_SUPPORTED = -1
    PARSE_ERROR = -2
    INVALID_REGISTRATION = -3
    SCOPE_NOT_SUPPORTED = -4
    AUTHENTICATION_ABSENT = -6
    AUTHENTICATION_FAILED = -7
    INVALID_UPDATE = -13
    REFRESH_REJECTED = -15
    NOT_IMPLEMENTED = -17
    BUFFER_OVERFLOW = -18
    NETWORK_TIMED_OUT = -19
    NETWORK_INIT_FAILED = -20
    MEMORY_ALLOC_FAILED = -21
    PARAMETER_BAD = -22
    NETWORK_ERROR = -23
    INTERNAL_SYSTEM_ERROR = -24
    HANDLE_IN_USE = -25
    TYPE_ERROR = -26


# Lowest API error code; codes in [LOWEST_ERROR_CODE, 0] without a name are reserved
LOWEST_ERROR_CODE = -26

RESERVED_ERROR_NAME = "SLP_RESERVED_ERROR"
UNKNOWN_ERROR_NAME = "UNKNOWN_ERROR"

# RFC 2608 section 7 wire error codes
_PROTOCOL_ERRORS = {
    0: SLPError.OK,
    1: SLPError.LANGUAGE_NOT_SUPPORTED,
    2: SLPError.PARSE_ERROR,
    3: SLPError.INVALID_REGISTRATION,
    4: SLPError.SCOPE_NOT_SUPPORTED,
    5: SLPError.AUTHENTICATION_FAILED,  # AUTHENTICATION_UNKNOWN
    6: SLPError.AUTHENTICATION_ABSENT,
    7: SLPError.AUTHENTICATION_FAILED,
    9: SLPError.NOT_IMPLEMENTED,  # VER_NOT_SUPPORTED
    10: SLPError.INTERNAL_SYSTEM_ERROR,
    11: SLPError.NETWORK_ERROR,  # DA_BUSY_NOW
    12: SLPError.PARSE_ERROR,  # OPTION_NOT_UNDERSTOOD
    13: SLPError.INVALID_UPDATE,
    14: SLPError.NOT_IMPLEMENTED,  # MSG_NOT_SUPPORTED
    15: SLPError.REFRESH_REJECTED,
}


def error_name(code: Union[int, SLPError]) -> str:
    """Translate a numeric error code to its symbolic name.

    Args:
        code: API error code.

    Returns:
        ``SLP_<NAME>`` for defined codes, ``SLP_RESERVED_ERROR`` for unnamed
        codes inside the API range and ``UNKNOWN_ERROR`` for anything else.
    """
    try:
        return f"SLP_{SLPError(code).name}"
    except ValueError:
        pass
    if LOWEST_ERROR_CODE <= code <= 0:
        return RESERVED_ERROR_NAME
    return UNKNOWN_ERROR_NAME


def from_protocol_code(code: int) -> SLPError:
    """Map an RFC 2608 error code found in a reply to an API error."""
    return _PROTOCOL_ERRORS.get(code, SLPError.INTERNAL_SYSTEM_ERROR)


class SLPException(RuntimeError):
    """Raised for SLP failures that are reported synchronously."""

    def __init__(self, error: SLPError, detail: str = ""):
        self.error = SLPError(error)
        self.detail = detail
        message = error_name(self.error)
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SLPTypeError(SLPException, TypeError):
    """Raised for invalid handles and bad argument types."""

    def __init__(self, detail: str = ""):
        super().__init__(SLPError.TYPE_ERROR, detail)
