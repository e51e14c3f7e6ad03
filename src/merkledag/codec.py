"""Canonical object encoding.

Every stored value is the encoding produced here, and every store key is the
digest of that same encoding, so the byte layout must never change for a
given object.

Encoding
- TLV: varint(tag) || varint(length) || payload
- Integers: unsigned LEB128 varint
- Strings: UTF-8 bytes; undecodable filename bytes round-trip through
  surrogateescape, so a name is stored as the bytes the filesystem reported

Object
- 1: link (container, repeated once per link in order)
- 2: data (bytes, always present, may be empty)

Link (within object; tag=1)
- 1: name (utf8)
- 2: hash (bytes)
- 3: size (varint)
- 4: kind (varint: 0=blob, 1=link, 2=tree)

A leaf blob has no links and carries the raw chunk bytes in data. Indirect
and tree objects have an empty data field; the kind recorded with each link
is the type tag for that position. A kind records what the child object
actually is: a single-chunk tail folded into an indirect object is a leaf and
is tagged blob, never link.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .errors import SerializationError

OBJ_LINK = 1
OBJ_DATA = 2

LINK_NAME = 1
LINK_HASH = 2
LINK_SIZE = 3
LINK_KIND = 4


class LinkKind(Enum):
    BLOB = "blob"
    LINK = "link"
    TREE = "tree"

    @property
    def wire(self) -> int:
        return _KIND_TO_WIRE[self]

    @classmethod
    def from_wire(cls, value: int) -> LinkKind:
        try:
            return _WIRE_TO_KIND[value]
        except KeyError:
            raise SerializationError(f"unknown link kind: {value}") from None


_KIND_TO_WIRE = {LinkKind.BLOB: 0, LinkKind.LINK: 1, LinkKind.TREE: 2}
_WIRE_TO_KIND = {v: k for k, v in _KIND_TO_WIRE.items()}


@dataclass(frozen=True)
class Link:
    """Reference from a parent object to a persisted child."""

    name: str
    hash: bytes
    size: int


@dataclass(frozen=True)
class DagObject:
    """A node of the DAG: ordered links with their kinds, plus data."""

    links: tuple[Link, ...] = ()
    kinds: tuple[LinkKind, ...] = ()
    data: bytes = b""

    @property
    def is_leaf(self) -> bool:
        return not self.links

    @classmethod
    def leaf(cls, data: bytes) -> DagObject:
        return cls(data=bytes(data))


@dataclass
class _Reader:
    buf: bytes
    pos: int = 0
    end: int = field(default=-1)

    def __post_init__(self) -> None:
        if self.end < 0:
            self.end = len(self.buf)

    def done(self) -> bool:
        return self.pos >= self.end

    def varint(self) -> int:
        shift = 0
        result = 0
        while True:
            if self.pos >= self.end:
                raise SerializationError("varint: truncated")
            b = self.buf[self.pos]
            self.pos += 1
            result |= (b & 0x7F) << shift
            if not (b & 0x80):
                return result
            shift += 7
            if shift > 63:
                raise SerializationError("varint: too large")

    def tlv(self) -> tuple[int, bytes]:
        tag = self.varint()
        length = self.varint()
        if self.pos + length > self.end:
            raise SerializationError("tlv: payload exceeds buffer")
        payload = self.buf[self.pos : self.pos + length]
        self.pos += length
        return tag, payload


def _varint_encode(n: int) -> bytes:
    if n < 0:
        raise SerializationError("varint: negative not supported")
    out = bytearray()
    while True:
        b = n & 0x7F
        n >>= 7
        if n:
            out.append(b | 0x80)
        else:
            out.append(b)
            break
    return bytes(out)


def _tlv(tag: int, payload: bytes) -> bytes:
    return _varint_encode(tag) + _varint_encode(len(payload)) + payload


def _encode_link(link: Link, kind: LinkKind) -> bytes:
    if not isinstance(link.hash, bytes) or not link.hash:
        raise SerializationError(f"link {link.name!r} has no digest")
    if not isinstance(kind, LinkKind):
        raise SerializationError(f"link {link.name!r} has invalid kind {kind!r}")
    try:
        name = link.name.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError as e:
        raise SerializationError(f"link name is not valid UTF-8: {e}") from e
    return b"".join([
        _tlv(LINK_NAME, name),
        _tlv(LINK_HASH, link.hash),
        _tlv(LINK_SIZE, _varint_encode(link.size)),
        _tlv(LINK_KIND, _varint_encode(kind.wire)),
    ])


def encode_object(obj: DagObject) -> bytes:
    """Serialize an object to its canonical bytes."""
    if len(obj.links) != len(obj.kinds):
        raise SerializationError(
            f"tag count {len(obj.kinds)} does not match link count {len(obj.links)}"
        )
    if obj.links and obj.data:
        raise SerializationError("objects with links must not carry data")
    parts = [_tlv(OBJ_LINK, _encode_link(link, kind)) for link, kind in zip(obj.links, obj.kinds)]
    parts.append(_tlv(OBJ_DATA, bytes(obj.data)))
    return b"".join(parts)


def _decode_link(payload: bytes) -> tuple[Link, LinkKind]:
    r = _Reader(payload)
    fields: dict[int, bytes] = {}
    expected = LINK_NAME
    while not r.done():
        tag, value = r.tlv()
        if tag != expected:
            raise SerializationError(f"link: unexpected field {tag}")
        fields[tag] = value
        expected += 1
    if expected != LINK_KIND + 1:
        raise SerializationError("link: missing fields")

    size_reader = _Reader(fields[LINK_SIZE])
    size = size_reader.varint()
    kind_reader = _Reader(fields[LINK_KIND])
    kind = LinkKind.from_wire(kind_reader.varint())
    if not size_reader.done() or not kind_reader.done():
        raise SerializationError("link: trailing bytes in integer field")
    name = fields[LINK_NAME].decode("utf-8", "surrogateescape")
    return Link(name=name, hash=bytes(fields[LINK_HASH]), size=size), kind


def decode_object(buf: bytes) -> DagObject:
    """Parse canonical bytes back into an object."""
    r = _Reader(bytes(buf))
    links: list[Link] = []
    kinds: list[LinkKind] = []
    while True:
        if r.done():
            raise SerializationError("object: missing data field")
        tag, payload = r.tlv()
        if tag == OBJ_LINK:
            link, kind = _decode_link(payload)
            links.append(link)
            kinds.append(kind)
        elif tag == OBJ_DATA:
            if not r.done():
                raise SerializationError("object: trailing bytes after data")
            return DagObject(tuple(links), tuple(kinds), bytes(payload))
        else:
            raise SerializationError(f"object: unexpected field {tag}")
