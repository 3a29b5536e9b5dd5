"""Escaping of reserved characters in attribute tags and values.

RFC 2608 section 5 reserves ``( ) , \\ ! < = > ~`` and control characters
inside attribute lists. They travel as a backslash followed by two hex
digits of the UTF-8 byte.
"""

from ..errors import SLPError, SLPException

RESERVED_CHARS = frozenset(b"(),\\!<=>~")

# Characters that may not appear in an attribute tag at all
BAD_TAG_CHARS = frozenset(b"\r\n\t_*\x00")

_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")


def _is_reserved(code: int) -> bool:
    return code in RESERVED_CHARS or code < 0x20 or code == 0x7F


def escape(unescaped: str, is_tag: bool) -> str:
    """Escape reserved characters in an attribute tag or value.

    Args:
        unescaped: The raw string.
        is_tag: If True, reject characters that are illegal in tags.

    Returns:
        The escaped string.

    Raises:
        SLPException: PARAMETER_BAD if ``is_tag`` is set and an illegal
            tag character is present.
    """
    parts = []
    for char in unescaped:
        code = ord(char)
        if code >= 0x80:
            # Non-ASCII text is copied through untouched
            parts.append(char)
            continue
        if is_tag and code in BAD_TAG_CHARS:
            raise SLPException(
                SLPError.PARAMETER_BAD,
                f"illegal tag character {char!r}",
            )
        if _is_reserved(code):
            parts.append(f"\\{code:02X}")
        else:
            parts.append(char)
    return "".join(parts)


def unescape(escaped: str, is_tag: bool) -> str:
    """Reverse :func:`escape`.

    Args:
        escaped: The escaped string.
        is_tag: If True, reject results containing illegal tag characters.

    Returns:
        The unescaped string.

    Raises:
        SLPException: PARSE_ERROR for malformed escape sequences,
            PARAMETER_BAD for illegal tag characters.
    """
    raw = escaped.encode("utf-8")
    out = bytearray()
    i = 0
    while i < len(raw):
        byte = raw[i]
        if byte == ord("\\"):
            pair = raw[i + 1:i + 3]
            if len(pair) != 2 or not all(b in _HEX_DIGITS for b in pair):
                raise SLPException(
                    SLPError.PARSE_ERROR,
                    f"bad escape sequence at offset {i}",
                )
            out.append(int(pair, 16))
            i += 3
            continue
        out.append(byte)
        i += 1

    if is_tag:
        bad = BAD_TAG_CHARS.intersection(out)
        if bad:
            raise SLPException(
                SLPError.PARAMETER_BAD,
                f"illegal tag character {chr(min(bad))!r}",
            )

    try:
        return out.decode("utf-8")
    except UnicodeDecodeError:
        raise SLPException(SLPError.PARSE_ERROR, "escaped bytes are not valid UTF-8")
