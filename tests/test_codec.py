import struct

import pytest

from pyslp.errors import SLPError, SLPException
from pyslp.wire.codec import decode, encode, message_body, peek_header
from pyslp.wire.pdu import (
    AttrRply,
    DAAdvert,
    FunctionID,
    Header,
    HeaderFlags,
    SrvAck,
    SrvReg,
    SrvRply,
    SrvRqst,
    SrvTypeRqst,
    URLEntry,
)


def test_encode_header_layout():
    request = SrvRqst(
        Header(FunctionID.SRVRQST, xid=0x1234, flags=HeaderFlags.REQUEST_MCAST),
        "service:printer",
    )
    data = encode(request)

    assert data[0] == 2
    assert data[1] == FunctionID.SRVRQST
    assert int.from_bytes(data[2:5], "big") == len(data)
    assert struct.unpack("!H", data[5:7])[0] == 0x2000
    assert struct.unpack("!H", data[10:12])[0] == 0x1234
    assert data[12:16] == b"\x00\x02en"
    assert request.header.length == len(data)


def test_decode_service_request():
    data = encode(SrvRqst(
        Header(FunctionID.SRVRQST, xid=7, lang="de"),
        "service:printer",
        scopes="lab,DEFAULT",
        predicate="(color=true)",
        prlist="10.0.0.1",
    ))
    request = decode(data)

    assert isinstance(request, SrvRqst)
    assert request.header.xid == 7
    assert request.header.lang == "de"
    assert request.srvtype == "service:printer"
    assert request.scopes == "lab,DEFAULT"
    assert request.predicate == "(color=true)"
    assert request.prlist == "10.0.0.1"


def test_decode_service_reply():
    data = encode(SrvRply(
        Header(FunctionID.SRVRPLY, xid=9),
        urls=[URLEntry("service:printer://a", 300), URLEntry("service:printer://b", 65535)],
    ))
    reply = decode(data)
    assert reply.error == 0
    assert [(u.url, u.lifetime) for u in reply.urls] == [
        ("service:printer://a", 300),
        ("service:printer://b", 65535),
    ]


def test_decode_registration_keeps_fresh_flag():
    data = encode(SrvReg(
        Header(FunctionID.SRVREG, xid=3, flags=HeaderFlags.FRESH),
        URLEntry("service:x://h", 100),
        "service:x",
        attrs="(a=1)",
    ))
    registration = decode(data)
    assert registration.header.is_fresh
    assert registration.entry.lifetime == 100
    assert registration.attrs == "(a=1)"


def test_all_naming_authorities():
    data = encode(SrvTypeRqst(Header(FunctionID.SRVTYPERQST, xid=1), None, "DEFAULT"))
    # prlist length (0) followed by the 0xFFFF marker
    assert data[16:20] == b"\x00\x00\xff\xff"
    assert decode(data).naming_authority is None

    data = encode(SrvTypeRqst(Header(FunctionID.SRVTYPERQST, xid=1), "", "DEFAULT"))
    assert decode(data).naming_authority == ""


def test_error_reply_without_entries():
    # Error replies may end right after the error code
    reply = decode(encode(SrvAck(Header(FunctionID.SRVRPLY, xid=5), 4)))
    assert isinstance(reply, SrvRply)
    assert reply.error == 4
    assert reply.urls == []


def test_auth_blocks_are_skipped():
    data = bytearray(encode(SrvRply(
        Header(FunctionID.SRVRPLY, xid=2),
        urls=[URLEntry("service:x://h", 10)],
    )))
    data[-1] = 1  # one authentication block
    data += b"\x00\x02" + (10).to_bytes(2, "big") + b"\x00" * 6
    data[2:5] = len(data).to_bytes(3, "big")

    reply = decode(bytes(data))
    assert reply.urls[0].url == "service:x://h"


def test_daadvert():
    data = encode(DAAdvert(
        Header(FunctionID.DAADVERT, xid=0),
        "service:directory-agent://10.0.0.5",
        boot_timestamp=12345,
        scopes="DEFAULT",
        attrs="(min-refresh-interval=60)",
    ))
    advert = decode(data)
    assert advert.boot_timestamp == 12345
    assert advert.attrs == "(min-refresh-interval=60)"


def test_peek_header():
    data = encode(AttrRply(Header(FunctionID.ATTRRPLY, xid=77), attrs="(a=1)"))
    header = peek_header(data)
    assert header.function == FunctionID.ATTRRPLY
    assert header.xid == 77
    assert header.length == len(data)


def test_message_body_excludes_header():
    first = encode(SrvAck(Header(FunctionID.SRVACK, xid=1), 0))
    second = encode(SrvAck(Header(FunctionID.SRVACK, xid=2, flags=HeaderFlags.FRESH), 0))
    assert first != second
    assert message_body(first) == message_body(second) == b"\x00\x00"


@pytest.mark.parametrize("data", [
    b"",
    b"\x02\x02\x00",
    b"\x01\x02\x00\x00\x10\x00\x00\x00\x00\x00\x00\x01\x00\x00",
    b"\x02\x63\x00\x00\x10\x00\x00\x00\x00\x00\x00\x01\x00\x00",
])
def test_decode_malformed_header(data):
    with pytest.raises(SLPException) as info:
        decode(data)
    assert info.value.error == SLPError.PARSE_ERROR


def test_decode_length_mismatch():
    data = bytearray(encode(SrvAck(Header(FunctionID.SRVACK, xid=1), 0)))
    data[2:5] = (len(data) + 10).to_bytes(3, "big")
    with pytest.raises(SLPException) as info:
        decode(bytes(data))
    assert info.value.error == SLPError.PARSE_ERROR


def test_decode_truncated_body():
    data = bytearray(encode(SrvRply(
        Header(FunctionID.SRVRPLY, xid=2),
        urls=[URLEntry("service:x://h", 10)],
    )))
    data = data[:-5]
    data[2:5] = len(data).to_bytes(3, "big")
    with pytest.raises(SLPException) as info:
        decode(bytes(data))
    assert info.value.error == SLPError.PARSE_ERROR
