"""
Deep hash: a tagged recursive SHA-384 commitment over nested byte lists.

    deep_hash(blob) = H(H(b"blob" + len) || H(blob))
    deep_hash([x1..xn]) = fold(acc = H(b"list" + n), acc = H(acc || deep_hash(xi)))

Any reordering, insertion or mutation of an element changes the result.
"""

from typing import Union

from ..exceptions import MalformedInputError
from .crypto import SHA384, digest, digest_concat


DeepHashItem = Union[bytes, list["DeepHashItem"]]


def hash_blob(blob: bytes) -> bytes:
    """Deep hash of a raw byte blob."""
    tag = b"blob" + str(len(blob)).encode()
    return digest_concat([tag, blob], SHA384)


def hash_list(items: list[DeepHashItem]) -> bytes:
    """Deep hash of a list; an empty list hashes its "list0" tag alone."""
    acc = digest(b"list" + str(len(items)).encode(), SHA384)
    for item in items:
        acc = digest(acc + deep_hash(item), SHA384)
    return acc


def deep_hash(item: DeepHashItem) -> bytes:
    """
    Compute the 48-byte deep hash of a blob or (nested) list of blobs.

    Raises:
        MalformedInputError: If an element is neither bytes nor a list
    """
    if isinstance(item, (bytes, bytearray, memoryview)):
        return hash_blob(bytes(item))
    if isinstance(item, (list, tuple)):
        return hash_list(list(item))
    raise MalformedInputError(
        f"Deep hash items must be bytes or lists, got {type(item).__name__}"
    )
