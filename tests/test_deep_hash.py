"""
Tests for the deep hash.
"""

import hashlib

import pytest

from arload.core.deep_hash import deep_hash, hash_blob, hash_list
from arload.exceptions import MalformedInputError


def sha384(data: bytes) -> bytes:
    return hashlib.sha384(data).digest()


class TestBlob:
    """Tests for blob hashing."""

    def test_blob_formula(self):
        blob = b"hello"
        expected = sha384(sha384(b"blob5") + sha384(blob))
        assert hash_blob(blob) == expected
        assert deep_hash(blob) == expected

    def test_empty_blob(self):
        assert deep_hash(b"") == sha384(sha384(b"blob0") + sha384(b""))

    def test_bytearray_accepted(self):
        assert deep_hash(bytearray(b"abc")) == deep_hash(b"abc")

    def test_width(self):
        assert len(deep_hash(b"x")) == 48


class TestList:
    """Tests for list hashing."""

    def test_empty_list(self):
        assert deep_hash([]) == sha384(b"list0")

    def test_list_formula(self):
        a, b = b"a", b"bc"
        acc = sha384(b"list2")
        acc = sha384(acc + deep_hash(a))
        acc = sha384(acc + deep_hash(b))
        assert hash_list([a, b]) == acc

    def test_nested_list(self):
        inner = [b"Content-Type", b"text/html"]
        acc = sha384(b"list1")
        acc = sha384(acc + deep_hash(inner))
        assert deep_hash([inner]) == acc

    def test_empty_list_differs_from_list_of_empty(self):
        assert deep_hash([]) != deep_hash([[]])
        assert deep_hash([]) != deep_hash([[b"", b""]])

    def test_empty_list_differs_from_empty_blob(self):
        assert deep_hash([]) != deep_hash(b"")

    def test_order_matters(self):
        assert deep_hash([b"a", b"b"]) != deep_hash([b"b", b"a"])

    def test_nesting_matters(self):
        assert deep_hash([b"a", b"b"]) != deep_hash([[b"a", b"b"]])
        assert deep_hash([b"ab"]) != deep_hash([b"a", b"b"])

    def test_tuple_same_as_list(self):
        assert deep_hash((b"a", b"b")) == deep_hash([b"a", b"b"])


class TestInvalidInput:
    """Only bytes and lists are hashable."""

    @pytest.mark.parametrize("item", ["text", 42, None, {"a": b"b"}])
    def test_rejected(self, item):
        with pytest.raises(MalformedInputError):
            deep_hash(item)

    def test_rejected_when_nested(self):
        with pytest.raises(MalformedInputError):
            deep_hash([b"ok", ["still ok?"]])
