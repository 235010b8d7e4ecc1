"""Exceptions raised while decoding or encoding MAT-files."""

from __future__ import annotations


class MatFileError(RuntimeError):
    """Base class for every decode/encode failure.

    ``code`` is a stable snake_case identifier used in structured logs.
    ``offset`` is the absolute byte offset of the reader (or writer) when
    the problem was detected, when known.
    """

    code = "mat_error"

    def __init__(
        self,
        message: str,
        *,
        offset: int | None = None,
        expected: object | None = None,
        actual: object | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        parts = [self.message]
        if self.expected is not None or self.actual is not None:
            parts.append(f"expected {self.expected!r}, got {self.actual!r}")
        if self.offset is not None:
            parts.append(f"at offset {self.offset}")
        return "; ".join(parts)

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"code": self.code, "message": str(self)}
        if self.offset is not None:
            payload["offset"] = self.offset
        return payload


class InvalidMagic(MatFileError):
    code = "invalid_magic"


class UnsupportedLevel(MatFileError):
    code = "unsupported_level"


class InvalidTimestamp(MatFileError):
    code = "invalid_timestamp"


class InvalidByteOrder(MatFileError):
    code = "invalid_byte_order"


class TruncatedRead(MatFileError):
    code = "truncated_read"


class UnsupportedType(MatFileError):
    """Unknown data type code, or a type not allowed at this position.

    ``length`` carries the declared payload length when the tag was read
    completely, so callers can skip the element.
    """

    code = "unsupported_type"

    def __init__(self, message: str, *, length: int | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.length = length


class UnsupportedClass(MatFileError):
    code = "unsupported_class"


class InvalidArrayFlags(MatFileError):
    code = "invalid_array_flags"


class InvalidDimensions(MatFileError):
    code = "invalid_dimensions"


class InvalidText(MatFileError):
    """A UTF payload that does not decode in its declared encoding."""

    code = "invalid_text"


class LengthMismatch(MatFileError):
    code = "length_mismatch"


class CompressedStreamError(MatFileError):
    code = "compressed_stream_error"


class ReadCancelled(MatFileError):
    code = "read_cancelled"


__all__ = [
    "CompressedStreamError",
    "InvalidArrayFlags",
    "InvalidByteOrder",
    "InvalidDimensions",
    "InvalidMagic",
    "InvalidText",
    "InvalidTimestamp",
    "LengthMismatch",
    "MatFileError",
    "ReadCancelled",
    "TruncatedRead",
    "UnsupportedClass",
    "UnsupportedLevel",
    "UnsupportedType",
]
