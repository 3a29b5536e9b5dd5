import pytest

from pyslp.errors import SLPError, SLPException
from pyslp.wire.attributes import parse_attr_list


def test_parse_values_and_keywords():
    assert parse_attr_list("(location=lab),(color=red,blue),duplex") == {
        "location": ["lab"],
        "color": ["red", "blue"],
        "duplex": [],
    }


def test_parse_unescapes():
    assert parse_attr_list("(name=a\\2Cb)") == {"name": ["a,b"]}


def test_parse_empty():
    assert parse_attr_list("") == {}


@pytest.mark.parametrize("attrs", ["(a=1", "a=1)", "(a)", "(a=1),(b=2"])
def test_parse_malformed(attrs):
    with pytest.raises(SLPException) as info:
        parse_attr_list(attrs)
    assert info.value.error == SLPError.PARSE_ERROR
