import pytest
from hypothesis import given, strategies as st

from pyslp.errors import SLPError, SLPException
from pyslp.wire.escape import BAD_TAG_CHARS, escape, unescape


def test_escape_reserved():
    assert escape("a,b(c)", False) == "a\\2Cb\\28c\\29"
    assert escape("x=y!", False) == "x\\3Dy\\21"


def test_escape_control_characters():
    assert escape("a\x01b", False) == "a\\01b"


def test_escape_plain_text_unchanged():
    assert escape("printer-42", True) == "printer-42"


def test_escape_non_ascii_passes_through():
    assert escape("café", False) == "café"


@pytest.mark.parametrize("bad", ["a_b", "a*b", "a\tb", "a\nb", "a\x00b", "a\rb"])
def test_escape_bad_tag(bad):
    with pytest.raises(SLPException) as info:
        escape(bad, True)
    assert info.value.error == SLPError.PARAMETER_BAD


def test_escape_value_allows_tag_characters():
    assert escape("a_b*c", False) == "a_b*c"


def test_unescape():
    assert unescape("a\\2Cb\\28c\\29", False) == "a,b(c)"
    assert unescape("\\3d", False) == "="


def test_unescape_reverses_escape():
    text = "(weird), <value> ~ !"
    assert unescape(escape(text, False), False) == text


def test_unescape_utf8_sequence():
    assert unescape("caf\\C3\\A9", False) == "café"


@pytest.mark.parametrize("bad", ["\\zz", "abc\\4", "\\"])
def test_unescape_bad_sequence(bad):
    with pytest.raises(SLPException) as info:
        unescape(bad, False)
    assert info.value.error == SLPError.PARSE_ERROR


def test_unescape_invalid_utf8():
    with pytest.raises(SLPException) as info:
        unescape("\\FF", False)
    assert info.value.error == SLPError.PARSE_ERROR


def test_unescape_bad_tag():
    with pytest.raises(SLPException) as info:
        unescape("a\\5Fb", True)
    assert info.value.error == SLPError.PARAMETER_BAD


def has_bad_tag_char(text):
    return any(ord(char) in BAD_TAG_CHARS for char in text)


@given(st.text(), st.booleans())
def test_escape_round_trip(text, is_tag):
    if is_tag and has_bad_tag_char(text):
        return
    assert unescape(escape(text, is_tag), is_tag) == text


@given(st.text())
def test_escape_tag_rejects_exactly_bad_characters(text):
    try:
        escape(text, True)
    except SLPException as e:
        assert e.error == SLPError.PARAMETER_BAD
        assert has_bad_tag_char(text)
    else:
        assert not has_bad_tag_char(text)


@given(st.text())
def test_escaped_text_has_no_reserved_characters(text):
    escaped = escape(text, False)
    assert not any(char in "(),!<=>~" for char in escaped)
