"""SLPv2 message data models.

Defines dataclasses for every RFC 2608 message used by the user and
service agent sides of the protocol.
"""

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Optional, Union

SLP_VERSION = 2

# Fixed part of the header, before the language tag
HEADER_FIXED_LENGTH = 14

DIRECTORY_AGENT_TYPE = "service:directory-agent"
SERVICE_AGENT_TYPE = "service:service-agent"

# SrvTypeRqst naming authority length meaning "all naming authorities"
ALL_NAMING_AUTHORITIES = 0xFFFF


class FunctionID(IntEnum):
    """SLPv2 message function identifiers."""
    SRVRQST = 1
    SRVRPLY = 2
    SRVREG = 3
    SRVDEREG = 4
    SRVACK = 5
    ATTRRQST = 6
    ATTRRPLY = 7
    DAADVERT = 8
    SRVTYPERQST = 9
    SRVTYPERPLY = 10
    SAADVERT = 11


class HeaderFlags(IntFlag):
    """Header flag bits."""
    NONE = 0
    OVERFLOW = 0x8000
    FRESH = 0x4000
    REQUEST_MCAST = 0x2000


@dataclass
class Header:
    """Common message header."""
    function: FunctionID
    xid: int
    lang: str = "en"
    flags: HeaderFlags = HeaderFlags.NONE
    version: int = SLP_VERSION
    length: int = 0
    ext_offset: int = 0

    @property
    def is_multicast(self) -> bool:
        return bool(self.flags & HeaderFlags.REQUEST_MCAST)

    @property
    def is_fresh(self) -> bool:
        return bool(self.flags & HeaderFlags.FRESH)

    @property
    def overflowed(self) -> bool:
        return bool(self.flags & HeaderFlags.OVERFLOW)

    @property
    def encoded_length(self) -> int:
        """Bytes taken by this header on the wire."""
        return HEADER_FIXED_LENGTH + len(self.lang.encode("utf-8"))


@dataclass
class URLEntry:
    """A service URL with its lifetime."""
    url: str
    lifetime: int = 0


@dataclass
class SrvRqst:
    """Service request."""
    header: Header
    srvtype: str
    scopes: str = "DEFAULT"
    predicate: str = ""
    prlist: str = ""
    spi: str = ""


@dataclass
class SrvRply:
    """Service reply."""
    header: Header
    error: int = 0
    urls: list[URLEntry] = field(default_factory=list)


@dataclass
class SrvReg:
    """Service registration."""
    header: Header
    entry: URLEntry
    srvtype: str
    scopes: str = "DEFAULT"
    attrs: str = ""


@dataclass
class SrvDeReg:
    """Service deregistration; a non-empty tag list deletes attributes only."""
    header: Header
    entry: URLEntry
    scopes: str = "DEFAULT"
    tags: str = ""


@dataclass
class SrvAck:
    """Acknowledgement of a registration or deregistration."""
    header: Header
    error: int = 0


@dataclass
class AttrRqst:
    """Attribute request."""
    header: Header
    url: str
    scopes: str = "DEFAULT"
    tags: str = ""
    prlist: str = ""
    spi: str = ""


@dataclass
class AttrRply:
    """Attribute reply."""
    header: Header
    error: int = 0
    attrs: str = ""


@dataclass
class DAAdvert:
    """Directory agent advertisement."""
    header: Header
    url: str
    error: int = 0
    boot_timestamp: int = 0
    scopes: str = ""
    attrs: str = ""
    spi: str = ""


@dataclass
class SrvTypeRqst:
    """Service type request.

    ``naming_authority`` of None asks for all naming authorities, the
    empty string for the default (IANA) one.
    """
    header: Header
    naming_authority: Optional[str] = None
    scopes: str = "DEFAULT"
    prlist: str = ""


@dataclass
class SrvTypeRply:
    """Service type reply."""
    header: Header
    error: int = 0
    srvtypes: str = ""


@dataclass
class SAAdvert:
    """Service agent advertisement."""
    header: Header
    url: str
    scopes: str = ""
    attrs: str = ""


PDU = Union[
    SrvRqst, SrvRply, SrvReg, SrvDeReg, SrvAck, AttrRqst, AttrRply,
    DAAdvert, SrvTypeRqst, SrvTypeRply, SAAdvert,
]
