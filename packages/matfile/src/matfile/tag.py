"""Data element tags in their regular and small (inlined) forms.

Regular tag (8 bytes)::

    | type (u32) | length (u32) | payload ... | zero padding to 8 |

Small data element (8 bytes, payload of 1-4 bytes)::

    | type (u16) | length (u16) | payload padded to 4 bytes |

Both half-words of the small form belong to one 32-bit word read in the
file byte order: the type is its low half and the length its high half.
A non-zero high half is what marks a tag as small.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from .errors import LengthMismatch, UnsupportedType
from .stream import ByteReader, ByteWriter, padding
from .types import ByteOrder, DataType

TAG_LEN = 8
SMALL_MAX = 4


@dataclass(frozen=True, slots=True)
class Tag:
    type: DataType
    length: int
    small: bool = False
    data: bytes = b""


def decode_tag(reader: ByteReader, byte_order: ByteOrder) -> Tag:
    start = reader.offset
    raw = reader.read_exact(TAG_LEN)
    (word,) = struct.unpack(byte_order.prefix + "I", raw[:4])

    small_length = word >> 16
    if small_length:
        if small_length > SMALL_MAX:
            raise LengthMismatch(
                "small data element declares more than 4 bytes",
                offset=start,
                expected=f"<= {SMALL_MAX}",
                actual=small_length,
            )
        code = word & 0xFFFF
        length = small_length
        data = raw[4 : 4 + small_length]
    else:
        code = word
        (length,) = struct.unpack(byte_order.prefix + "I", raw[4:])
        data = b""

    try:
        data_type = DataType(code)
    except ValueError:
        raise UnsupportedType(
            f"unknown data type code {code}",
            offset=start,
            actual=code,
            length=0 if small_length else length,
        ) from None

    return Tag(type=data_type, length=length, small=bool(small_length), data=data)


def make_tag(data_type: DataType, payload: bytes, *, small: bool = True) -> Tag:
    """Pick the tag form for ``payload``; small when allowed and it fits."""

    length = len(payload)
    if small and 0 < length <= SMALL_MAX and int(data_type) <= 0xFFFF:
        return Tag(type=data_type, length=length, small=True, data=payload)
    return Tag(type=data_type, length=length)


def encode_tag(writer: ByteWriter, byte_order: ByteOrder, tag: Tag) -> None:
    prefix = byte_order.prefix
    if tag.small:
        word = (tag.length << 16) | int(tag.type)
        writer.write(struct.pack(prefix + "I", word))
        writer.write(tag.data.ljust(SMALL_MAX, b"\x00"))
    else:
        writer.write(struct.pack(prefix + "II", int(tag.type), tag.length))


def tagged_size(tag: Tag) -> int:
    """Bytes occupied by ``tag`` and its payload including padding."""

    if tag.small:
        return TAG_LEN
    return TAG_LEN + tag.length + padding(tag.length)


def read_payload(reader: ByteReader, tag: Tag) -> bytes:
    """Return the payload announced by ``tag`` and skip its padding."""

    if tag.small:
        return tag.data
    payload = reader.read_exact(tag.length)
    reader.align(tag.length)
    return payload


def read_tagged(reader: ByteReader, byte_order: ByteOrder) -> tuple[Tag, bytes]:
    tag = decode_tag(reader, byte_order)
    return tag, read_payload(reader, tag)


def write_tagged(
    writer: ByteWriter,
    byte_order: ByteOrder,
    data_type: DataType,
    payload: bytes,
    *,
    small: bool = True,
) -> Tag:
    tag = make_tag(data_type, payload, small=small)
    encode_tag(writer, byte_order, tag)
    if not tag.small:
        writer.write(payload)
        writer.align(len(payload))
    return tag


__all__ = [
    "SMALL_MAX",
    "TAG_LEN",
    "Tag",
    "decode_tag",
    "encode_tag",
    "make_tag",
    "read_payload",
    "read_tagged",
    "tagged_size",
    "write_tagged",
]
