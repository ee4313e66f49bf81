"""
Tests for base64url and note encoding helpers.
"""

import pytest

from arload.core.encoding import b64url_decode, b64url_encode, note, note_to_int
from arload.exceptions import MalformedInputError


class TestBase64Url:
    """Tests for unpadded base64url."""

    def test_encode_without_padding(self):
        assert b64url_encode(b"," * 7) == "LCwsLCwsLA"

    def test_decode_without_padding(self):
        assert b64url_decode("LCwsLCwsLA") == b"," * 7

    def test_decode_accepts_padding(self):
        assert b64url_decode("LCwsLCwsLA==") == b"," * 7

    def test_url_safe_alphabet(self):
        encoded = b64url_encode(b"\xfb\xff")
        assert "-" in encoded or "_" in encoded
        assert "+" not in encoded and "/" not in encoded
        assert b64url_decode(encoded) == b"\xfb\xff"

    def test_utf8_tag_name(self):
        assert b64url_encode(b"Content-Type") == "Q29udGVudC1UeXBl"

    def test_empty(self):
        assert b64url_encode(b"") == ""
        assert b64url_decode("") == b""

    def test_invalid_raises(self):
        with pytest.raises(MalformedInputError):
            b64url_decode("not base64!")

    def test_standard_alphabet_rejected(self):
        with pytest.raises(MalformedInputError):
            b64url_decode("-_+/")
        with pytest.raises(MalformedInputError):
            b64url_decode("ab/c")

    def test_padding_tolerated(self):
        assert b64url_decode("-_8=") == b"\xfb\xff"


class TestNote:
    """Tests for 32-byte big-endian notes."""

    def test_note_width(self):
        assert len(note(0)) == 32
        assert len(note(262144)) == 32

    def test_note_big_endian(self):
        assert note(1) == b"\x00" * 31 + b"\x01"
        assert note(256) == b"\x00" * 30 + b"\x01\x00"

    def test_note_roundtrip(self):
        assert note_to_int(note(123456789)) == 123456789

    def test_negative_rejected(self):
        with pytest.raises(MalformedInputError):
            note(-1)

    def test_wrong_width_rejected(self):
        with pytest.raises(MalformedInputError):
            note_to_int(b"\x01")
