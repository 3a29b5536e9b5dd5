"""Binary encoder and decoder for SLPv2 messages.

Message layout follows RFC 2608 section 8. All integers are big-endian,
strings are UTF-8 prefixed by a 16 bit length. Authentication blocks are
never produced and are skipped when present in received messages.
"""

import struct
from typing import Callable

from ..errors import SLPError, SLPException
from .pdu import (
    ALL_NAMING_AUTHORITIES,
    HEADER_FIXED_LENGTH,
    PDU,
    SLP_VERSION,
    AttrRply,
    AttrRqst,
    DAAdvert,
    FunctionID,
    Header,
    HeaderFlags,
    SAAdvert,
    SrvAck,
    SrvDeReg,
    SrvReg,
    SrvRply,
    SrvRqst,
    SrvTypeRply,
    SrvTypeRqst,
    URLEntry,
)

MAX_MESSAGE_LENGTH = 0xFFFFFF
MAX_STRING_LENGTH = 0xFFFF


class _Writer:
    """Accumulates the body of a message."""

    def __init__(self):
        self.buf = bytearray()

    def u8(self, value: int) -> None:
        self.buf += struct.pack("!B", value)

    def u16(self, value: int) -> None:
        self.buf += struct.pack("!H", value)

    def u32(self, value: int) -> None:
        self.buf += struct.pack("!I", value)

    def string(self, value: str) -> None:
        raw = value.encode("utf-8")
        if len(raw) > MAX_STRING_LENGTH:
            raise SLPException(SLPError.BUFFER_OVERFLOW, "string field too long")
        self.u16(len(raw))
        self.buf += raw

    def url_entry(self, entry: URLEntry) -> None:
        self.u8(0)  # reserved
        self.u16(entry.lifetime)
        self.string(entry.url)
        self.u8(0)  # no authentication blocks


class _Reader:
    """Bounds-checked cursor over a received message."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.offset = offset

    def _take(self, size: int) -> bytes:
        end = self.offset + size
        if size < 0 or end > len(self.data):
            raise SLPException(
                SLPError.PARSE_ERROR,
                f"message truncated at offset {self.offset}",
            )
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def u8(self) -> int:
        return self._take(1)[0]

    def u16(self) -> int:
        return struct.unpack("!H", self._take(2))[0]

    def u24(self) -> int:
        return int.from_bytes(self._take(3), "big")

    def u32(self) -> int:
        return struct.unpack("!I", self._take(4))[0]

    def string(self, length: int = -1) -> str:
        if length < 0:
            length = self.u16()
        try:
            return self._take(length).decode("utf-8")
        except UnicodeDecodeError:
            raise SLPException(SLPError.PARSE_ERROR, "string field is not valid UTF-8")

    def auth_blocks(self) -> None:
        for _ in range(self.u8()):
            self.u16()  # block structure descriptor
            length = self.u16()
            if length < 4:
                raise SLPException(SLPError.PARSE_ERROR, "bad authentication block length")
            self._take(length - 4)

    def url_entry(self) -> URLEntry:
        self.u8()  # reserved
        lifetime = self.u16()
        url = self.string()
        self.auth_blocks()
        return URLEntry(url=url, lifetime=lifetime)


# Encoders

def _encode_srvrqst(w: _Writer, pdu: SrvRqst) -> None:
    w.string(pdu.prlist)
    w.string(pdu.srvtype)
    w.string(pdu.scopes)
    w.string(pdu.predicate)
    w.string(pdu.spi)


def _encode_srvrply(w: _Writer, pdu: SrvRply) -> None:
    w.u16(pdu.error)
    w.u16(len(pdu.urls))
    for entry in pdu.urls:
        w.url_entry(entry)


def _encode_srvreg(w: _Writer, pdu: SrvReg) -> None:
    w.url_entry(pdu.entry)
    w.string(pdu.srvtype)
    w.string(pdu.scopes)
    w.string(pdu.attrs)
    w.u8(0)


def _encode_srvdereg(w: _Writer, pdu: SrvDeReg) -> None:
    w.string(pdu.scopes)
    w.url_entry(pdu.entry)
    w.string(pdu.tags)


def _encode_srvack(w: _Writer, pdu: SrvAck) -> None:
    w.u16(pdu.error)


def _encode_attrrqst(w: _Writer, pdu: AttrRqst) -> None:
    w.string(pdu.prlist)
    w.string(pdu.url)
    w.string(pdu.scopes)
    w.string(pdu.tags)
    w.string(pdu.spi)


def _encode_attrrply(w: _Writer, pdu: AttrRply) -> None:
    w.u16(pdu.error)
    w.string(pdu.attrs)
    w.u8(0)


def _encode_daadvert(w: _Writer, pdu: DAAdvert) -> None:
    w.u16(pdu.error)
    w.u32(pdu.boot_timestamp)
    w.string(pdu.url)
    w.string(pdu.scopes)
    w.string(pdu.attrs)
    w.string(pdu.spi)
    w.u8(0)


def _encode_srvtyperqst(w: _Writer, pdu: SrvTypeRqst) -> None:
    w.string(pdu.prlist)
    if pdu.naming_authority is None:
        w.u16(ALL_NAMING_AUTHORITIES)
    else:
        w.string(pdu.naming_authority)
    w.string(pdu.scopes)


def _encode_srvtyperply(w: _Writer, pdu: SrvTypeRply) -> None:
    w.u16(pdu.error)
    w.string(pdu.srvtypes)


def _encode_saadvert(w: _Writer, pdu: SAAdvert) -> None:
    w.string(pdu.url)
    w.string(pdu.scopes)
    w.string(pdu.attrs)
    w.u8(0)


_ENCODERS: dict[type, Callable] = {
    SrvRqst: _encode_srvrqst,
    SrvRply: _encode_srvrply,
    SrvReg: _encode_srvreg,
    SrvDeReg: _encode_srvdereg,
    SrvAck: _encode_srvack,
    AttrRqst: _encode_attrrqst,
    AttrRply: _encode_attrrply,
    DAAdvert: _encode_daadvert,
    SrvTypeRqst: _encode_srvtyperqst,
    SrvTypeRply: _encode_srvtyperply,
    SAAdvert: _encode_saadvert,
}


def encode(pdu: PDU) -> bytes:
    """Encode a message into its wire representation.

    The header length field is computed here; ``pdu.header.length`` is
    updated to match.

    Args:
        pdu: Message to encode.

    Returns:
        The encoded datagram.

    Raises:
        SLPException: PARAMETER_BAD for unsupported objects, BUFFER_OVERFLOW
            when a field or the whole message exceeds its size limit.
    """
    encoder = _ENCODERS.get(type(pdu))
    if encoder is None:
        raise SLPException(SLPError.PARAMETER_BAD, f"cannot encode {type(pdu).__name__}")

    body = _Writer()
    encoder(body, pdu)

    header = pdu.header
    lang = header.lang.encode("utf-8")
    total = HEADER_FIXED_LENGTH + len(lang) + len(body.buf)
    if total > MAX_MESSAGE_LENGTH:
        raise SLPException(SLPError.BUFFER_OVERFLOW, f"message of {total} bytes")
    header.length = total

    out = bytearray(struct.pack("!BB", header.version, int(header.function)))
    out += total.to_bytes(3, "big")
    out += struct.pack("!H", int(header.flags))
    out += header.ext_offset.to_bytes(3, "big")
    out += struct.pack("!HH", header.xid, len(lang))
    out += lang
    out += body.buf
    return bytes(out)


# Decoders

def _decode_srvrqst(r: _Reader, header: Header) -> SrvRqst:
    prlist = r.string()
    srvtype = r.string()
    scopes = r.string()
    predicate = r.string()
    spi = r.string()
    return SrvRqst(header, srvtype, scopes, predicate, prlist, spi)


def _decode_srvrply(r: _Reader, header: Header) -> SrvRply:
    error = r.u16()
    if error and r.offset == len(r.data):
        # Error replies may omit the URL entry count
        return SrvRply(header, error)
    count = r.u16()
    urls = [r.url_entry() for _ in range(count)]
    return SrvRply(header, error, urls)


def _decode_srvreg(r: _Reader, header: Header) -> SrvReg:
    entry = r.url_entry()
    srvtype = r.string()
    scopes = r.string()
    attrs = r.string()
    r.auth_blocks()
    return SrvReg(header, entry, srvtype, scopes, attrs)


def _decode_srvdereg(r: _Reader, header: Header) -> SrvDeReg:
    scopes = r.string()
    entry = r.url_entry()
    tags = r.string()
    return SrvDeReg(header, entry, scopes, tags)


def _decode_srvack(r: _Reader, header: Header) -> SrvAck:
    return SrvAck(header, r.u16())


def _decode_attrrqst(r: _Reader, header: Header) -> AttrRqst:
    prlist = r.string()
    url = r.string()
    scopes = r.string()
    tags = r.string()
    spi = r.string()
    return AttrRqst(header, url, scopes, tags, prlist, spi)


def _decode_attrrply(r: _Reader, header: Header) -> AttrRply:
    error = r.u16()
    if error and r.offset == len(r.data):
        return AttrRply(header, error)
    attrs = r.string()
    r.auth_blocks()
    return AttrRply(header, error, attrs)


def _decode_daadvert(r: _Reader, header: Header) -> DAAdvert:
    error = r.u16()
    boot_timestamp = r.u32()
    url = r.string()
    scopes = r.string()
    attrs = r.string()
    spi = r.string()
    r.auth_blocks()
    return DAAdvert(header, url, error, boot_timestamp, scopes, attrs, spi)


def _decode_srvtyperqst(r: _Reader, header: Header) -> SrvTypeRqst:
    prlist = r.string()
    length = r.u16()
    naming_authority = None if length == ALL_NAMING_AUTHORITIES else r.string(length)
    scopes = r.string()
    return SrvTypeRqst(header, naming_authority, scopes, prlist)


def _decode_srvtyperply(r: _Reader, header: Header) -> SrvTypeRply:
    error = r.u16()
    if error and r.offset == len(r.data):
        return SrvTypeRply(header, error)
    return SrvTypeRply(header, error, r.string())


def _decode_saadvert(r: _Reader, header: Header) -> SAAdvert:
    url = r.string()
    scopes = r.string()
    attrs = r.string()
    r.auth_blocks()
    return SAAdvert(header, url, scopes, attrs)


_DECODERS: dict[FunctionID, Callable] = {
    FunctionID.SRVRQST: _decode_srvrqst,
    FunctionID.SRVRPLY: _decode_srvrply,
    FunctionID.SRVREG: _decode_srvreg,
    FunctionID.SRVDEREG: _decode_srvdereg,
    FunctionID.SRVACK: _decode_srvack,
    FunctionID.ATTRRQST: _decode_attrrqst,
    FunctionID.ATTRRPLY: _decode_attrrply,
    FunctionID.DAADVERT: _decode_daadvert,
    FunctionID.SRVTYPERQST: _decode_srvtyperqst,
    FunctionID.SRVTYPERPLY: _decode_srvtyperply,
    FunctionID.SAADVERT: _decode_saadvert,
}


def peek_header(data: bytes) -> Header:
    """Decode only the header of a message.

    Raises:
        SLPException: PARSE_ERROR if the header is truncated, has the wrong
            version or an unknown function id.
    """
    r = _Reader(data)
    version = r.u8()
    if version != SLP_VERSION:
        raise SLPException(SLPError.PARSE_ERROR, f"unsupported SLP version {version}")
    function = r.u8()
    length = r.u24()
    flags = r.u16()
    ext_offset = r.u24()
    xid = r.u16()
    lang = r.string()

    try:
        function_id = FunctionID(function)
    except ValueError:
        raise SLPException(SLPError.PARSE_ERROR, f"unknown function id {function}")

    return Header(
        function=function_id,
        xid=xid,
        lang=lang,
        flags=HeaderFlags(flags & 0xE000),
        version=version,
        length=length,
        ext_offset=ext_offset,
    )


def decode(data: bytes) -> PDU:
    """Decode a received datagram.

    Args:
        data: Raw datagram bytes.

    Returns:
        The decoded message.

    Raises:
        SLPException: PARSE_ERROR for any undersized or malformed buffer.
    """
    header = peek_header(data)
    if header.length > len(data) or header.length < header.encoded_length:
        raise SLPException(
            SLPError.PARSE_ERROR,
            f"header length {header.length} does not match datagram of {len(data)} bytes",
        )
    r = _Reader(data[:header.length], header.encoded_length)
    return _DECODERS[header.function](r, header)


def message_body(data: bytes) -> bytes:
    """Bytes following the header, used to fingerprint replies."""
    header = peek_header(data)
    return bytes(data[header.encoded_length:header.length or len(data)])
