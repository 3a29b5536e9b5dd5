"""Wire module - SLPv2 message codec."""

from .attributes import parse_attr_list
from .codec import decode, encode, message_body, peek_header
from .escape import escape, unescape
from .pdu import (
    DIRECTORY_AGENT_TYPE,
    PDU,
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

__all__ = [
    "DIRECTORY_AGENT_TYPE",
    "PDU",
    "AttrRply",
    "AttrRqst",
    "DAAdvert",
    "FunctionID",
    "Header",
    "HeaderFlags",
    "SAAdvert",
    "SrvAck",
    "SrvDeReg",
    "SrvReg",
    "SrvRply",
    "SrvRqst",
    "SrvTypeRply",
    "SrvTypeRqst",
    "URLEntry",
    "decode",
    "encode",
    "escape",
    "message_body",
    "parse_attr_list",
    "peek_header",
    "unescape",
]
