"""Service URL parsing (RFC 2609).

Grammar handled here::

    service:<srvtype>://<host>[:<port>][/<srvpart>]

``<host>`` may be a bracketed IPv6 literal, in which case the network
family is reported as ``v6``.
"""

from dataclasses import dataclass

from .errors import SLPError, SLPException

SERVICE_PREFIX = "service:"
NETFAMILY_IPV6 = "v6"


@dataclass(frozen=True)
class ServiceURL:
    """Parsed representation of a service URL."""
    srvtype: str
    host: str
    port: int = 0
    netfamily: str = ""
    srvpart: str = ""

    @property
    def service_type(self) -> str:
        """The ``service:`` qualified type, as carried in SrvReg messages."""
        return f"{SERVICE_PREFIX}{self.srvtype}"

    def as_tuple(self) -> tuple[str, str, int, str, str]:
        return (self.srvtype, self.host, self.port, self.netfamily, self.srvpart)

    def __str__(self) -> str:
        host = f"[{self.host}]" if self.netfamily == NETFAMILY_IPV6 else self.host
        port = f":{self.port}" if self.port else ""
        return f"{self.service_type}://{host}{port}{self.srvpart}"


def _fail(url: str, reason: str) -> SLPException:
    return SLPException(SLPError.PARSE_ERROR, f"{reason}: {url!r}")


def parse_srvurl(url: str) -> ServiceURL:
    """Parse a service URL.

    Args:
        url: The URL string.

    Returns:
        Parsed ServiceURL.

    Raises:
        SLPException: PARSE_ERROR for empty or malformed URLs.
    """
    if not url:
        raise _fail(url, "empty service URL")

    body = url[len(SERVICE_PREFIX):] if url.lower().startswith(SERVICE_PREFIX) else url
    srvtype, sep, rest = body.partition("://")
    if not sep or not srvtype:
        raise _fail(url, "missing service type")
    if any(c.isspace() for c in srvtype):
        raise _fail(url, "whitespace in service type")

    netfamily = ""
    if rest.startswith("["):
        close = rest.find("]")
        if close < 0:
            raise _fail(url, "unterminated IPv6 literal")
        host = rest[1:close]
        rest = rest[close + 1:]
        netfamily = NETFAMILY_IPV6
        if rest and rest[0] not in ":/;":
            raise _fail(url, "unexpected text after IPv6 literal")
    else:
        end = len(rest)
        for delimiter in ":/;":
            index = rest.find(delimiter)
            if 0 <= index < end:
                end = index
        host = rest[:end]
        rest = rest[end:]

    if not host:
        raise _fail(url, "missing host")

    port = 0
    if rest.startswith(":"):
        end = len(rest)
        for delimiter in "/;":
            index = rest.find(delimiter)
            if 0 <= index < end:
                end = index
        port_text = rest[1:end]
        rest = rest[end:]
        if not (port_text.isascii() and port_text.isdigit()):
            raise _fail(url, f"invalid port {port_text!r}")
        port = int(port_text)
        if port > 0xFFFF:
            raise _fail(url, f"port {port} out of range")

    return ServiceURL(
        srvtype=srvtype,
        host=host,
        port=port,
        netfamily=netfamily,
        srvpart=rest,
    )
