import pytest

from pyslp.errors import SLPError, SLPException
from pyslp.url import ServiceURL, parse_srvurl


def test_parse_full_url():
    parsed = parse_srvurl("service:foo://host:123/part")
    assert parsed == ServiceURL(srvtype="foo", host="host", port=123, netfamily="", srvpart="/part")
    assert parsed.as_tuple() == ("foo", "host", 123, "", "/part")


def test_parse_without_port():
    parsed = parse_srvurl("service:printer://printer.example.com")
    assert parsed.host == "printer.example.com"
    assert parsed.port == 0
    assert parsed.srvpart == ""


def test_parse_concrete_type():
    parsed = parse_srvurl("service:printer:lpr://10.0.0.7:515/queue")
    assert parsed.srvtype == "printer:lpr"
    assert parsed.service_type == "service:printer:lpr"
    assert parsed.port == 515


def test_parse_without_service_prefix():
    assert parse_srvurl("http://www.example.com/").srvtype == "http"


def test_parse_ipv6():
    parsed = parse_srvurl("service:printer://[fe80::1]:515/q")
    assert parsed.host == "fe80::1"
    assert parsed.netfamily == "v6"
    assert parsed.port == 515
    assert str(parsed) == "service:printer://[fe80::1]:515/q"


def test_parse_attribute_part():
    parsed = parse_srvurl("service:x://h:1;a=b")
    assert parsed.port == 1
    assert parsed.srvpart == ";a=b"


@pytest.mark.parametrize("url", [
    "",
    "service:printer",
    "service:://host",
    "service:printer://",
    "service:printer://host:abc",
    "service:printer://host:70000",
    "service:printer://[fe80::1",
    "service:printer://host:\u0661\u0662",
])
def test_parse_errors(url):
    with pytest.raises(SLPException) as info:
        parse_srvurl(url)
    assert info.value.error == SLPError.PARSE_ERROR
