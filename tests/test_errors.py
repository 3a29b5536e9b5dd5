import pytest

from pyslp.errors import SLPError, SLPException, SLPTypeError, error_name, from_protocol_code


@pytest.mark.parametrize("code, name", [
    (0, "SLP_OK"),
    (1, "SLP_LAST_CALL"),
    (-2, "SLP_PARSE_ERROR"),
    (-19, "SLP_NETWORK_TIMED_OUT"),
    (-26, "SLP_TYPE_ERROR"),
])
def test_error_name_defined(code, name):
    assert error_name(code) == name


@pytest.mark.parametrize("code", [-5, -8, -12, -14, -16])
def test_error_name_reserved_gaps(code):
    assert error_name(code) == "SLP_RESERVED_ERROR"


@pytest.mark.parametrize("code", [-27, 2, 100])
def test_error_name_unknown(code):
    assert error_name(code) == "UNKNOWN_ERROR"


def test_protocol_codes():
    assert from_protocol_code(0) == SLPError.OK
    assert from_protocol_code(3) == SLPError.INVALID_REGISTRATION
    assert from_protocol_code(4) == SLPError.SCOPE_NOT_SUPPORTED
    assert from_protocol_code(15) == SLPError.REFRESH_REJECTED


def test_unknown_protocol_code():
    assert from_protocol_code(42) == SLPError.INTERNAL_SYSTEM_ERROR


def test_exception_message():
    e = SLPException(SLPError.PARSE_ERROR, "bad port")
    assert e.error == SLPError.PARSE_ERROR
    assert str(e) == "SLP_PARSE_ERROR: bad port"


def test_type_error_is_type_error():
    e = SLPTypeError("closed")
    assert isinstance(e, TypeError)
    assert isinstance(e, SLPException)
    assert e.error == SLPError.TYPE_ERROR
