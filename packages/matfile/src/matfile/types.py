"""Type codes of the MAT-file Level 5 format and their numpy mappings."""

from __future__ import annotations

from enum import Enum, IntEnum

import numpy as np  # type: ignore[import-not-found]

from .errors import InvalidText


class ByteOrder(Enum):
    """File-wide byte order announced by the header marker."""

    BIG = ">"
    LITTLE = "<"

    @property
    def prefix(self) -> str:
        """Prefix understood by both ``struct`` and numpy dtype strings."""

        return self.value

    @property
    def marker(self) -> bytes:
        return b"MI" if self is ByteOrder.BIG else b"IM"

    @classmethod
    def from_marker(cls, marker: bytes) -> ByteOrder | None:
        if marker == b"MI":
            return cls.BIG
        if marker == b"IM":
            return cls.LITTLE
        return None


class DataType(IntEnum):
    """Primitive element types (``mi*`` codes)."""

    INT8 = 1
    UINT8 = 2
    INT16 = 3
    UINT16 = 4
    INT32 = 5
    UINT32 = 6
    SINGLE = 7
    DOUBLE = 9
    INT64 = 12
    UINT64 = 13
    MATRIX = 14
    COMPRESSED = 15
    UTF8 = 16
    UTF16 = 17
    UTF32 = 18

    def __str__(self) -> str:
        return "mi" + self.name

    @property
    def is_numeric(self) -> bool:
        return self in NUMERIC_DTYPES

    @property
    def is_integer(self) -> bool:
        return self.is_numeric and self not in (DataType.SINGLE, DataType.DOUBLE)

    @property
    def is_text(self) -> bool:
        return self in TEXT_ENCODINGS

    def file_dtype(self, byte_order: ByteOrder) -> np.dtype:
        """Return the on-disk numpy dtype of a numeric type."""

        return np.dtype(byte_order.prefix + NUMERIC_DTYPES[self])


class MatrixClass(IntEnum):
    """Array classes (``mx*_CLASS`` codes) found in the array flags."""

    CELL = 1
    STRUCT = 2
    OBJECT = 3
    CHAR = 4
    SPARSE = 5
    DOUBLE = 6
    SINGLE = 7
    INT8 = 8
    UINT8 = 9
    INT16 = 10
    UINT16 = 11
    INT32 = 12
    UINT32 = 13
    INT64 = 14
    UINT64 = 15
    FUNCTION = 16
    OPAQUE = 17

    def __str__(self) -> str:
        return "mx" + self.name + "_CLASS"

    @property
    def is_supported(self) -> bool:
        return self in CLASS_STORAGE

    @property
    def storage_type(self) -> DataType:
        """Data type the encoder uses for the real and imaginary parts."""

        return CLASS_STORAGE[self]

    @property
    def dtype(self) -> np.dtype:
        """Native numpy dtype of decoded buffers."""

        return np.dtype(NUMERIC_DTYPES[CLASS_STORAGE[self]])


NUMERIC_DTYPES: dict[DataType, str] = {
    DataType.INT8: "i1",
    DataType.UINT8: "u1",
    DataType.INT16: "i2",
    DataType.UINT16: "u2",
    DataType.INT32: "i4",
    DataType.UINT32: "u4",
    DataType.SINGLE: "f4",
    DataType.DOUBLE: "f8",
    DataType.INT64: "i8",
    DataType.UINT64: "u8",
}

TEXT_ENCODINGS: dict[DataType, str] = {
    DataType.UTF8: "utf-8",
    DataType.UTF16: "utf-16",
    DataType.UTF32: "utf-32",
}

# char arrays hold UTF-16 code units
CLASS_STORAGE: dict[MatrixClass, DataType] = {
    MatrixClass.CHAR: DataType.UINT16,
    MatrixClass.DOUBLE: DataType.DOUBLE,
    MatrixClass.SINGLE: DataType.SINGLE,
    MatrixClass.INT8: DataType.INT8,
    MatrixClass.UINT8: DataType.UINT8,
    MatrixClass.INT16: DataType.INT16,
    MatrixClass.UINT16: DataType.UINT16,
    MatrixClass.INT32: DataType.INT32,
    MatrixClass.UINT32: DataType.UINT32,
    MatrixClass.INT64: DataType.INT64,
    MatrixClass.UINT64: DataType.UINT64,
}

DTYPE_CLASSES: dict[str, MatrixClass] = {
    "f8": MatrixClass.DOUBLE,
    "f4": MatrixClass.SINGLE,
    "i1": MatrixClass.INT8,
    "u1": MatrixClass.UINT8,
    "i2": MatrixClass.INT16,
    "u2": MatrixClass.UINT16,
    "i4": MatrixClass.INT32,
    "u4": MatrixClass.UINT32,
    "i8": MatrixClass.INT64,
    "u8": MatrixClass.UINT64,
}


def text_codec(data_type: DataType, byte_order: ByteOrder) -> str:
    """Return the Python codec name for a UTF element in ``byte_order``."""

    encoding = TEXT_ENCODINGS[data_type]
    if encoding == "utf-8":
        return encoding
    suffix = "-be" if byte_order is ByteOrder.BIG else "-le"
    return encoding + suffix


def decode_text(
    payload: bytes,
    data_type: DataType,
    byte_order: ByteOrder,
    *,
    offset: int,
    errors: str = "strict",
) -> str:
    codec = text_codec(data_type, byte_order)
    try:
        return payload.decode(codec, errors)
    except UnicodeDecodeError as exc:
        raise InvalidText(
            f"{data_type} payload is not valid {codec}: {exc.reason}",
            offset=offset + exc.start,
            actual=len(payload),
        ) from exc


__all__ = [
    "ByteOrder",
    "CLASS_STORAGE",
    "DTYPE_CLASSES",
    "DataType",
    "MatrixClass",
    "NUMERIC_DTYPES",
    "TEXT_ENCODINGS",
    "decode_text",
    "text_codec",
]
