import pytest

from blackbird.b64 import base64_decode, base64_encode


def test_encode_full_group():
    assert base64_encode(b"foobar") == "Zm9vYmFy"


def test_encode_padding():
    assert base64_encode(b"f") == "Zg=="


@pytest.mark.parametrize("data", [b"", b"a", b"ab", b"abc", b"abcd", bytes(range(256))])
def test_round_trip(data):
    encoded = base64_encode(data)
    assert len(encoded) % 4 == 0
    assert base64_decode(encoded) == data


def test_decode_without_padding():
    assert base64_decode(base64_encode(b"fo").rstrip("=")) == b"fo"


def test_decode_stops_at_padding():
    assert base64_decode(base64_encode(b"hi") + "QUJD") == b"hi"


def test_decode_stops_at_invalid_character():
    encoded = base64_encode(b"abc")
    assert base64_decode(encoded + "!" + base64_encode(b"xyz")) == b"abc"


def test_decode_drops_single_trailing_character():
    assert base64_decode(base64_encode(b"abc") + "Q") == b"abc"


def test_decode_empty():
    assert base64_decode("") == b""