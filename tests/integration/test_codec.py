"""Tests for the canonical object encoding."""

import hashlib

import pytest

from merkledag.codec import DagObject, Link, LinkKind, decode_object, encode_object
from merkledag.errors import SerializationError


class TestEncoding:
    """Exact byte layout of encoded objects."""

    def test_empty_leaf(self):
        assert encode_object(DagObject.leaf(b"")) == b"\x02\x00"

    def test_leaf(self):
        assert encode_object(DagObject.leaf(b"abc")) == b"\x02\x03abc"

    def test_single_link(self):
        obj = DagObject(links=(Link("a", b"\x01", 5),), kinds=(LinkKind.BLOB,))
        link = b"\x01\x01a" + b"\x02\x01\x01" + b"\x03\x01\x05" + b"\x04\x01\x00"
        assert encode_object(obj) == b"\x01\x0c" + link + b"\x02\x00"

    def test_large_size_uses_varint(self):
        obj = DagObject(links=(Link("", b"\xff", 300),), kinds=(LinkKind.TREE,))
        encoded = encode_object(obj)
        assert b"\x03\x02\xac\x02" in encoded
        assert b"\x04\x01\x02" in encoded

    def test_equal_objects_encode_identically(self):
        digest = hashlib.sha256(b"child").digest()
        a = DagObject(links=(Link("x", digest, 5),), kinds=(LinkKind.LINK,))
        b = DagObject(links=(Link("x", digest, 5),), kinds=(LinkKind.LINK,))
        assert encode_object(a) == encode_object(b)

    def test_link_order_matters(self):
        one = Link("one", b"\x01", 1)
        two = Link("two", b"\x02", 2)
        kinds = (LinkKind.BLOB, LinkKind.BLOB)
        assert encode_object(DagObject((one, two), kinds)) != encode_object(DagObject((two, one), kinds))


class TestEncodingErrors:
    def test_kind_count_mismatch(self):
        obj = DagObject(links=(Link("a", b"\x01", 1),), kinds=())
        with pytest.raises(SerializationError, match="tag count"):
            encode_object(obj)

    def test_links_with_data(self):
        obj = DagObject(links=(Link("a", b"\x01", 1),), kinds=(LinkKind.BLOB,), data=b"x")
        with pytest.raises(SerializationError):
            encode_object(obj)

    def test_negative_size(self):
        obj = DagObject(links=(Link("a", b"\x01", -1),), kinds=(LinkKind.BLOB,))
        with pytest.raises(SerializationError):
            encode_object(obj)

    def test_missing_digest(self):
        obj = DagObject(links=(Link("a", b"", 1),), kinds=(LinkKind.BLOB,))
        with pytest.raises(SerializationError):
            encode_object(obj)


class TestDecoding:
    def test_decodes_tree(self):
        obj = DagObject(
            links=(Link("file.txt", b"\xaa" * 32, 12), Link("sub", b"\xbb" * 32, 70000)),
            kinds=(LinkKind.BLOB, LinkKind.TREE),
        )
        assert decode_object(encode_object(obj)) == obj

    def test_rejects_missing_data_field(self):
        with pytest.raises(SerializationError):
            decode_object(b"")

    def test_rejects_trailing_bytes(self):
        with pytest.raises(SerializationError):
            decode_object(b"\x02\x00\x00")

    def test_rejects_truncated_payload(self):
        with pytest.raises(SerializationError):
            decode_object(b"\x02\x05ab")

    def test_rejects_unknown_kind(self):
        link = b"\x01\x01a" + b"\x02\x01\x01" + b"\x03\x01\x05" + b"\x04\x01\x07"
        with pytest.raises(SerializationError, match="kind"):
            decode_object(b"\x01\x0c" + link + b"\x02\x00")

    def test_rejects_unknown_field(self):
        with pytest.raises(SerializationError):
            decode_object(b"\x05\x00\x02\x00")

    def test_escaped_name_round_trips_as_raw_bytes(self):
        name = b"caf\xe9".decode("utf-8", "surrogateescape")
        obj = DagObject(links=(Link(name, b"\x01", 1),), kinds=(LinkKind.BLOB,))

        encoded = encode_object(obj)
        assert b"\x01\x04caf\xe9" in encoded
        assert decode_object(encoded) == obj
