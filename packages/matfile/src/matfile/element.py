"""Data elements: the tagged values that make up the body of a MAT-file."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Union

import numpy as np  # type: ignore[import-not-found]

from .compression import DEFAULT_LEVEL, deflate, inflate
from .errors import LengthMismatch, UnsupportedType
from .matrix import Matrix, decode_matrix, encode_matrix
from .observer import NULL_OBSERVER, Observer
from .stream import ByteReader, ByteWriter
from .tag import TAG_LEN, Tag, decode_tag, encode_tag, read_payload, write_tagged
from .types import ByteOrder, DataType, decode_text, text_codec


@dataclass(frozen=True, slots=True)
class Scalar:
    """A numeric payload holding exactly one value."""

    value: int | float


@dataclass(frozen=True, eq=False, slots=True)
class NumericArray:
    """A numeric payload holding zero or several values.

    A single value is a :class:`Scalar`, which is also what decoding
    yields for it.
    """

    data: np.ndarray

    def __post_init__(self) -> None:
        data = np.asarray(self.data).reshape(-1)
        if data.size == 1:
            raise ValueError("a single value must be held in a Scalar")
        object.__setattr__(self, "data", data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NumericArray):
            return NotImplemented
        return self.data.dtype == other.data.dtype and np.array_equal(
            self.data, other.data, equal_nan=True
        )


@dataclass(frozen=True, slots=True)
class Text:
    value: str


@dataclass(frozen=True, slots=True)
class Element:
    """A decoded element.

    ``value`` is one of :class:`Scalar`, :class:`NumericArray`,
    :class:`Text`, :class:`~matfile.matrix.Matrix`, or, for an element to
    be written as ``miCOMPRESSED``, the nested :class:`Element`. Decoding
    a compressed element yields the nested element directly.
    """

    type: DataType
    value: Value


Value = Union[Scalar, NumericArray, Text, Matrix, Element]


def decode_element(
    reader: ByteReader,
    byte_order: ByteOrder,
    observer: Observer = NULL_OBSERVER,
) -> Element:
    """Read one tagged element, including its alignment padding."""

    start = reader.offset
    tag = decode_tag(reader, byte_order)
    element = decode_payload(reader, tag, byte_order, observer)
    observer.emit(
        "element.decoded",
        offset=start,
        type=str(tag.type),
        length=tag.length,
        small=tag.small,
    )
    return element


def decode_payload(
    reader: ByteReader,
    tag: Tag,
    byte_order: ByteOrder,
    observer: Observer = NULL_OBSERVER,
) -> Element:
    """Decode the payload announced by an already-read ``tag``."""

    data_type = tag.type
    if tag.small and data_type in (DataType.COMPRESSED, DataType.MATRIX):
        raise LengthMismatch(
            f"{data_type} cannot use the small element form",
            offset=reader.offset - TAG_LEN,
            actual=tag.length,
        )

    if data_type is DataType.COMPRESSED:
        with inflate(reader, tag.length) as view:
            start = view.offset
            nested = decode_tag(view, byte_order)
            element = decode_payload(view, nested, byte_order, observer)
        observer.emit(
            "element.inflated",
            offset=start,
            type=str(nested.type),
            length=nested.length,
            small=nested.small,
            compressed_length=tag.length,
        )
        return element

    if data_type is DataType.MATRIX:
        matrix = decode_matrix(reader, tag.length, byte_order)
        reader.align(tag.length)
        return Element(data_type, matrix)

    start = reader.offset
    payload = read_payload(reader, tag)

    if data_type.is_numeric:
        return Element(data_type, _decode_numeric(data_type, payload, byte_order, start))
    if data_type.is_text:
        return Element(
            data_type, Text(decode_text(payload, data_type, byte_order, offset=start))
        )

    raise UnsupportedType(
        f"cannot decode {data_type} here", offset=start, actual=str(data_type)
    )


def _decode_numeric(
    data_type: DataType, payload: bytes, byte_order: ByteOrder, offset: int
) -> Scalar | NumericArray:
    dtype = data_type.file_dtype(byte_order)
    if len(payload) % dtype.itemsize:
        raise LengthMismatch(
            f"{data_type} payload is not a whole number of values",
            offset=offset,
            expected=f"multiple of {dtype.itemsize}",
            actual=len(payload),
        )
    values = np.frombuffer(payload, dtype).astype(dtype.newbyteorder("="))
    if values.size == 1:
        return Scalar(values[0].item())
    return NumericArray(values)


def encode_element(
    writer: ByteWriter,
    element: Element,
    byte_order: ByteOrder,
    *,
    small: bool = True,
    level: int = DEFAULT_LEVEL,
) -> None:
    """Write ``element`` as a tag, its payload and zero padding.

    ``miCOMPRESSED`` elements wrap their nested element: it is encoded
    into memory, deflated, and written with no trailing padding.
    """

    if element.type is DataType.COMPRESSED:
        nested = element.value
        if not isinstance(nested, Element):
            raise TypeError("a miCOMPRESSED element must wrap an Element")
        buffer = io.BytesIO()
        encode_element(ByteWriter(buffer), nested, byte_order, small=small, level=level)
        data = deflate(buffer.getvalue(), level)
        encode_tag(writer, byte_order, Tag(DataType.COMPRESSED, len(data)))
        writer.write(data)
        return

    payload = encode_payload(element, byte_order, small=small)
    write_tagged(writer, byte_order, element.type, payload, small=small)


def encode_payload(
    element: Element, byte_order: ByteOrder, *, small: bool = True
) -> bytes:
    data_type = element.type
    value = element.value

    if data_type.is_numeric and isinstance(value, Scalar):
        return np.array([value.value], dtype=data_type.file_dtype(byte_order)).tobytes()
    if data_type.is_numeric and isinstance(value, NumericArray):
        return value.data.astype(data_type.file_dtype(byte_order)).tobytes()
    if data_type.is_text and isinstance(value, Text):
        return value.value.encode(text_codec(data_type, byte_order))
    if data_type is DataType.MATRIX and isinstance(value, Matrix):
        return encode_matrix(value, byte_order, small=small)

    raise TypeError(f"{type(value).__name__} cannot be written as {data_type}")


__all__ = [
    "Element",
    "NumericArray",
    "Scalar",
    "Text",
    "Value",
    "decode_element",
    "decode_payload",
    "encode_element",
    "encode_payload",
]
