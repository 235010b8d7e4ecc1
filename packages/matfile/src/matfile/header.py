"""Codec for the fixed 128-byte MAT-file preamble."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime

from .errors import (
    InvalidByteOrder,
    InvalidMagic,
    InvalidTimestamp,
    TruncatedRead,
    UnsupportedLevel,
)
from .stream import ByteReader, ByteWriter
from .types import ByteOrder

HEADER_LEN = 128
HEADER_TEXT_LEN = 116
SUBSYS_OFFSET_LEN = 8

SUPPORTED_LEVEL = "5.0"
VERSION = 0x0100

MAGIC = "MATLAB "
PLATFORM_PREFIX = "MAT-file, Platform: "
CREATED_PREFIX = " Created on: "
TIMESTAMP_LEN = 24
# ANSI-C names; the header text never follows the process locale
DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True, slots=True)
class Header:
    """Parsed file header.

    ``str(header)`` reproduces the descriptive text exactly as it is
    stored in the file, without the space filler.
    """

    level: str
    platform: str
    created: datetime
    byte_order: ByteOrder = ByteOrder.LITTLE
    version: int = VERSION
    subsys_offset: bytes = b" " * SUBSYS_OFFSET_LEN

    def __str__(self) -> str:
        return (
            f"MATLAB {self.level} {PLATFORM_PREFIX}{self.platform},"
            f"{CREATED_PREFIX}{format_timestamp(self.created)}"
        )


def format_timestamp(value: datetime) -> str:
    """Render ``value`` in the 24 character ANSI-C layout (day space padded)."""

    return (
        f"{DAY_NAMES[value.weekday()]} {MONTH_NAMES[value.month - 1]} "
        f"{value.day:2d} {value:%H:%M:%S} {value.year}"
    )


def parse_timestamp(stamp: str) -> datetime:
    """Inverse of :func:`format_timestamp`; raises ``ValueError`` on bad input."""

    fields = stamp.split()
    if len(fields) != 5:
        raise ValueError(f"expected 5 fields, got {len(fields)}")
    day_name, month_name, day, clock, year = fields
    if day_name not in DAY_NAMES:
        raise ValueError(f"unknown day name {day_name!r}")
    if month_name not in MONTH_NAMES:
        raise ValueError(f"unknown month name {month_name!r}")
    hour, minute, second = clock.split(":")
    return datetime(
        int(year),
        MONTH_NAMES.index(month_name) + 1,
        int(day),
        int(hour),
        int(minute),
        int(second),
    )


def decode_header(reader: ByteReader) -> Header:
    """Read the 128-byte header and derive the file byte order."""

    start = reader.offset
    raw = reader.read_up_to(HEADER_LEN)
    if not raw.startswith(MAGIC.encode("ascii")):
        raise InvalidMagic(
            "not a MAT-file",
            offset=start,
            expected=MAGIC,
            actual=raw[: len(MAGIC)].decode("latin-1"),
        )
    if len(raw) != HEADER_LEN:
        raise TruncatedRead(
            "stream ended inside the header",
            offset=start,
            expected=HEADER_LEN,
            actual=len(raw),
        )

    text = raw[:HEADER_TEXT_LEN].decode("latin-1")
    level, platform, created = _parse_text(text, start)

    flags = raw[HEADER_TEXT_LEN + SUBSYS_OFFSET_LEN :]
    byte_order = ByteOrder.from_marker(flags[2:4])
    if byte_order is None:
        raise InvalidByteOrder(
            "unknown byte order marker",
            offset=start + HEADER_LEN - 2,
            expected="MI or IM",
            actual=flags[2:4].decode("latin-1"),
        )
    (version,) = struct.unpack(byte_order.prefix + "H", flags[:2])

    return Header(
        level=level,
        platform=platform,
        created=created,
        byte_order=byte_order,
        version=version,
        subsys_offset=raw[HEADER_TEXT_LEN : HEADER_TEXT_LEN + SUBSYS_OFFSET_LEN],
    )


def _parse_text(text: str, start: int) -> tuple[str, str, datetime]:
    position = len(MAGIC)

    end = text.find(" ", position)
    if end < 0:
        raise InvalidMagic("missing level token", offset=start + position)
    level = text[position:end]
    if level != SUPPORTED_LEVEL:
        raise UnsupportedLevel(
            "only Level 5 MAT-files are supported",
            offset=start + position,
            expected=SUPPORTED_LEVEL,
            actual=level,
        )
    position = end + 1

    if not text.startswith(PLATFORM_PREFIX, position):
        raise InvalidMagic(
            "malformed header text",
            offset=start + position,
            expected=PLATFORM_PREFIX,
            actual=text[position : position + len(PLATFORM_PREFIX)],
        )
    position += len(PLATFORM_PREFIX)

    end = text.find(",", position)
    if end < 0:
        raise InvalidMagic("missing platform token", offset=start + position)
    platform = text[position:end]
    position = end + 1

    if not text.startswith(CREATED_PREFIX, position):
        raise InvalidMagic(
            "malformed header text",
            offset=start + position,
            expected=CREATED_PREFIX,
            actual=text[position : position + len(CREATED_PREFIX)],
        )
    position += len(CREATED_PREFIX)

    stamp = text[position : position + TIMESTAMP_LEN]
    try:
        created = parse_timestamp(stamp)
    except ValueError as exc:
        raise InvalidTimestamp(
            "unparseable creation date", offset=start + position, actual=stamp
        ) from exc

    return level, platform, created


def encode_header(writer: ByteWriter, header: Header) -> None:
    """Write ``header`` as the 128-byte preamble."""

    text = str(header).encode("latin-1")
    if len(text) > HEADER_TEXT_LEN:
        raise ValueError(
            f"header text is {len(text)} bytes; at most {HEADER_TEXT_LEN} fit"
        )
    if len(header.subsys_offset) != SUBSYS_OFFSET_LEN:
        raise ValueError("subsys_offset must be exactly 8 bytes")

    writer.write(text.ljust(HEADER_TEXT_LEN, b" "))
    writer.write(header.subsys_offset)
    writer.write(struct.pack(header.byte_order.prefix + "H", header.version))
    writer.write(header.byte_order.marker)


__all__ = [
    "HEADER_LEN",
    "Header",
    "SUPPORTED_LEVEL",
    "decode_header",
    "encode_header",
    "format_timestamp",
    "parse_timestamp",
]
