"""Codec for the ``miMATRIX`` payload.

A matrix payload is a fixed sequence of tagged sub-elements::

    array flags   miUINT32  class code, complex/global/logical bits, nzmax
    dimensions    miINT32   one entry per dimension
    name          miINT8    array name, possibly empty
    real part     numeric   product(dims) values, column-major
    imag part     numeric   only when the complex bit is set

The sub-elements are consumed against the byte length declared by the
enclosing tag; the sequence ends when that budget is spent.
"""

from __future__ import annotations

import io
import math
import struct
from dataclasses import dataclass, field
from typing import Iterable

import numpy as np  # type: ignore[import-not-found]

from .errors import (
    InvalidArrayFlags,
    InvalidDimensions,
    LengthMismatch,
    UnsupportedClass,
    UnsupportedType,
)
from .stream import ByteReader, ByteWriter
from .tag import TAG_LEN, Tag, decode_tag, read_payload, tagged_size, write_tagged
from .types import DTYPE_CLASSES, ByteOrder, DataType, MatrixClass, decode_text

CLASS_MASK = 0xFF
LOGICAL_BIT = 0x200
GLOBAL_BIT = 0x400
COMPLEX_BIT = 0x800


@dataclass(frozen=True, eq=False, slots=True)
class Matrix:
    """A numeric or char MATLAB array.

    ``real`` and ``imag`` are shaped ``dims`` and hold values in the
    native dtype of ``mclass``. Flat inputs are read in column-major
    order, the order the file stores them in.
    """

    name: str
    mclass: MatrixClass
    dims: tuple[int, ...]
    real: np.ndarray
    imag: np.ndarray | None = None
    is_logical: bool = False
    is_global: bool = False
    nzmax: int = field(default=0)

    def __post_init__(self) -> None:
        if not self.mclass.is_supported:
            raise ValueError(f"{self.mclass} arrays cannot be held in a Matrix")
        dims = tuple(int(value) for value in self.dims)
        if not dims or any(value < 0 for value in dims):
            raise ValueError(f"invalid dimensions {self.dims!r}")
        object.__setattr__(self, "dims", dims)
        object.__setattr__(self, "real", _shaped(self.real, self.mclass, dims))
        if self.imag is not None:
            object.__setattr__(self, "imag", _shaped(self.imag, self.mclass, dims))

    @property
    def is_complex(self) -> bool:
        return self.imag is not None

    @property
    def size(self) -> int:
        return math.prod(self.dims)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return (
            self.name == other.name
            and self.mclass == other.mclass
            and self.dims == other.dims
            and self.is_logical == other.is_logical
            and self.is_global == other.is_global
            and self.nzmax == other.nzmax
            and _same_values(self.real, other.real)
            and _same_values(self.imag, other.imag)
        )

    def to_numpy(self) -> np.ndarray:
        """Return the array as numpy sees it (complex when an imaginary part exists)."""

        if self.imag is None:
            if self.is_logical:
                return self.real.astype(bool)
            return self.real
        return self.real + 1j * self.imag

    def text(self) -> list[str]:
        """Return the rows of a two-dimensional char array."""

        if self.mclass is not MatrixClass.CHAR or len(self.dims) != 2:
            raise ValueError("text() needs a two-dimensional char array")
        return [
            row.astype("<u2").tobytes().decode("utf-16-le", "surrogatepass")
            for row in self.real
        ]

    @classmethod
    def from_text(cls, name: str, *rows: str, is_global: bool = False) -> Matrix:
        """Build a char array; shorter rows are padded with spaces."""

        units = [
            np.frombuffer(row.encode("utf-16-le", "surrogatepass"), "<u2")
            for row in rows
        ]
        width = max((len(unit) for unit in units), default=0)
        data = np.full((len(units), width), ord(" "), dtype=np.uint16)
        for index, unit in enumerate(units):
            data[index, : len(unit)] = unit
        return cls(
            name=name,
            mclass=MatrixClass.CHAR,
            dims=data.shape,
            real=data,
            is_global=is_global,
        )

    @classmethod
    def from_array(
        cls,
        name: str,
        values: Iterable | np.ndarray | float | int,
        *,
        mclass: MatrixClass | None = None,
        is_global: bool = False,
    ) -> Matrix:
        """Build a matrix from any array-like, inferring the class from its dtype.

        Scalars become 1x1 and vectors become 1xN rows. Booleans are
        stored as logical uint8, complex values split into real and
        imaginary parts.
        """

        if isinstance(values, str):
            return cls.from_text(name, values, is_global=is_global)

        array = np.asarray(values)
        if array.ndim == 0:
            array = array.reshape(1, 1)
        elif array.ndim == 1:
            array = array.reshape(1, -1)

        is_logical = array.dtype == np.bool_
        if is_logical:
            array = array.astype(np.uint8)

        imag = None
        if np.iscomplexobj(array):
            imag = array.imag
            array = array.real

        if mclass is None:
            key = f"{array.dtype.kind}{array.dtype.itemsize}"
            if key not in DTYPE_CLASSES:
                raise ValueError(f"no MATLAB class for dtype {array.dtype}")
            mclass = DTYPE_CLASSES[key]

        return cls(
            name=name,
            mclass=mclass,
            dims=array.shape,
            real=array,
            imag=imag,
            is_logical=is_logical,
            is_global=is_global,
        )


def _shaped(values, mclass: MatrixClass, dims: tuple[int, ...]) -> np.ndarray:
    array = np.asarray(values)
    if array.size != math.prod(dims):
        raise ValueError(
            f"{array.size} values do not fill dimensions {dims!r}"
        )
    return array.astype(mclass.dtype, copy=False).reshape(dims, order="F")


def _same_values(left: np.ndarray | None, right: np.ndarray | None) -> bool:
    if left is None or right is None:
        return left is right
    return left.dtype == right.dtype and np.array_equal(left, right, equal_nan=True)


class _Budget:
    """Reads sub-elements while accounting for the enclosing payload length."""

    def __init__(self, reader: ByteReader, length: int, byte_order: ByteOrder) -> None:
        self.reader = reader
        self.byte_order = byte_order
        self.length = length
        self.remaining = length

    def read(self, part: str) -> tuple[Tag, bytes]:
        start = self.reader.offset
        if self.remaining < TAG_LEN:
            raise LengthMismatch(
                f"matrix payload ends before its {part}",
                offset=start,
                expected=TAG_LEN,
                actual=self.remaining,
            )
        tag = decode_tag(self.reader, self.byte_order)
        size = tagged_size(tag)
        if size > self.remaining:
            raise LengthMismatch(
                f"{part} overruns the matrix payload",
                offset=start,
                expected=self.remaining,
                actual=size,
            )
        payload = read_payload(self.reader, tag)
        self.remaining -= size
        return tag, payload


def decode_matrix(reader: ByteReader, length: int, byte_order: ByteOrder) -> Matrix:
    """Decode an ``miMATRIX`` payload of exactly ``length`` bytes."""

    start = reader.offset
    budget = _Budget(reader, length, byte_order)
    prefix = byte_order.prefix

    tag, payload = budget.read("array flags")
    if tag.type is not DataType.UINT32 or len(payload) < 4:
        raise InvalidArrayFlags(
            "array flags must be a miUINT32 element of at least 4 bytes",
            offset=start,
            expected=str(DataType.UINT32),
            actual=f"{tag.type} ({len(payload)} bytes)",
        )
    (flags,) = struct.unpack(prefix + "I", payload[:4])
    nzmax = struct.unpack(prefix + "I", payload[4:8])[0] if len(payload) >= 8 else 0
    try:
        mclass = MatrixClass(flags & CLASS_MASK)
    except ValueError:
        raise InvalidArrayFlags(
            "unknown array class", offset=start, actual=flags & CLASS_MASK
        ) from None
    if not mclass.is_supported:
        raise UnsupportedClass(
            f"{mclass} payloads are not decoded", offset=start, actual=str(mclass)
        )

    offset = reader.offset
    tag, payload = budget.read("dimensions")
    if tag.type is not DataType.INT32 or not payload or len(payload) % 4:
        raise InvalidDimensions(
            "dimensions must be a non-empty miINT32 array",
            offset=offset,
            expected=str(DataType.INT32),
            actual=f"{tag.type} ({len(payload)} bytes)",
        )
    dims = struct.unpack(f"{prefix}{len(payload) // 4}i", payload)
    if any(value < 0 for value in dims):
        raise InvalidDimensions("negative dimension", offset=offset, actual=dims)

    offset = reader.offset
    tag, payload = budget.read("array name")
    name = _decode_name(tag, payload, byte_order, offset)

    count = math.prod(dims)
    real = _decode_part(budget, mclass, count, "real part")
    imag = None
    if flags & COMPLEX_BIT:
        imag = _decode_part(budget, mclass, count, "imaginary part")

    if budget.remaining:
        raise LengthMismatch(
            "matrix payload has bytes after its last sub-element",
            offset=reader.offset,
            expected=length - budget.remaining,
            actual=length,
        )

    return Matrix(
        name=name,
        mclass=mclass,
        dims=dims,
        real=real,
        imag=imag,
        is_logical=bool(flags & LOGICAL_BIT),
        is_global=bool(flags & GLOBAL_BIT),
        nzmax=nzmax,
    )


def _decode_name(tag: Tag, payload: bytes, byte_order: ByteOrder, offset: int) -> str:
    if not tag.type.is_integer:
        raise UnsupportedType(
            "array name must be an integer-typed element",
            offset=offset,
            actual=str(tag.type),
        )
    dtype = tag.type.file_dtype(byte_order)
    if dtype.itemsize == 1:
        name = payload.decode("latin-1")
    elif len(payload) % dtype.itemsize:
        raise LengthMismatch(
            "array name is not a whole number of characters",
            offset=offset,
            actual=len(payload),
        )
    else:
        codes = np.frombuffer(payload, dtype).tolist()
        name = "".join(chr(code) for code in codes)
    return name.rstrip("\x00")


def _decode_part(
    budget: _Budget, mclass: MatrixClass, count: int, part: str
) -> np.ndarray:
    offset = budget.reader.offset
    tag, payload = budget.read(part)
    byte_order = budget.byte_order

    if mclass is MatrixClass.CHAR and tag.type.is_text:
        text = decode_text(
            payload, tag.type, byte_order, offset=offset, errors="surrogatepass"
        )
        values = np.frombuffer(text.encode("utf-16-le", "surrogatepass"), "<u2")
        if values.size != count:
            raise LengthMismatch(
                f"{part} holds {values.size} characters",
                offset=offset,
                expected=count,
                actual=values.size,
            )
        return values

    if not tag.type.is_numeric:
        raise UnsupportedType(
            f"{part} must be numeric", offset=offset, actual=str(tag.type)
        )
    dtype = tag.type.file_dtype(byte_order)
    if len(payload) != count * dtype.itemsize:
        raise LengthMismatch(
            f"{part} length does not match the dimensions",
            offset=offset,
            expected=count * dtype.itemsize,
            actual=len(payload),
        )
    return np.frombuffer(payload, dtype).astype(mclass.dtype)


def encode_matrix(
    matrix: Matrix, byte_order: ByteOrder, *, small: bool = True
) -> bytes:
    """Serialize ``matrix`` into an ``miMATRIX`` payload."""

    buffer = io.BytesIO()
    writer = ByteWriter(buffer)
    prefix = byte_order.prefix

    flags = int(matrix.mclass)
    if matrix.is_logical:
        flags |= LOGICAL_BIT
    if matrix.is_global:
        flags |= GLOBAL_BIT
    if matrix.is_complex:
        flags |= COMPLEX_BIT
    write_tagged(
        writer,
        byte_order,
        DataType.UINT32,
        struct.pack(prefix + "II", flags, matrix.nzmax),
        small=small,
    )
    write_tagged(
        writer,
        byte_order,
        DataType.INT32,
        struct.pack(f"{prefix}{len(matrix.dims)}i", *matrix.dims),
        small=small,
    )
    write_tagged(
        writer, byte_order, DataType.INT8, matrix.name.encode("latin-1"), small=small
    )

    storage = matrix.mclass.storage_type
    dtype = storage.file_dtype(byte_order)
    write_tagged(
        writer,
        byte_order,
        storage,
        matrix.real.astype(dtype).tobytes(order="F"),
        small=small,
    )
    if matrix.imag is not None:
        write_tagged(
            writer,
            byte_order,
            storage,
            matrix.imag.astype(dtype).tobytes(order="F"),
            small=small,
        )

    return buffer.getvalue()


__all__ = ["Matrix", "decode_matrix", "encode_matrix"]
