"""
Encoding helpers shared by the engine.

Binary values cross the boundary to the HTTP layer as base64url strings
without padding; byte-range markers inside the Merkle tree are fixed-width
32-byte big-endian integers.
"""

import base64
import binascii
import re

from ..exceptions import MalformedInputError

NOTE_SIZE = 32

_B64URL_RE = re.compile(r"[A-Za-z0-9_-]*={0,2}")


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    """
    Decode an unpadded (or padded) base64url string.

    Raises:
        MalformedInputError: If the string is not valid base64url
    """
    if isinstance(text, bytes):
        text = text.decode("ascii")
    if not _B64URL_RE.fullmatch(text):
        raise MalformedInputError(f"Invalid base64url value: {text[:16]!r}")
    padded = text.rstrip("=")
    padded += "=" * (-len(padded) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedInputError(f"Invalid base64url value: {text[:16]!r}") from e


def note(value: int) -> bytes:
    """Encode a non-negative integer as a 32-byte big-endian note."""
    if value < 0:
        raise MalformedInputError(f"Note value must be non-negative, got {value}")
    try:
        return value.to_bytes(NOTE_SIZE, "big")
    except OverflowError as e:
        raise MalformedInputError(f"Note value too large: {value}") from e


def note_to_int(buffer: bytes) -> int:
    """Decode a 32-byte big-endian note."""
    if len(buffer) != NOTE_SIZE:
        raise MalformedInputError(f"Note must be {NOTE_SIZE} bytes, got {len(buffer)}")
    return int.from_bytes(buffer, "big")
