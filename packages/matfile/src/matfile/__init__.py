"""Public exports for the matfile package."""

from .element import Element, NumericArray, Scalar, Text, decode_element, encode_element
from .errors import (
    CompressedStreamError,
    InvalidArrayFlags,
    InvalidByteOrder,
    InvalidDimensions,
    InvalidMagic,
    InvalidText,
    InvalidTimestamp,
    LengthMismatch,
    MatFileError,
    ReadCancelled,
    TruncatedRead,
    UnsupportedClass,
    UnsupportedLevel,
    UnsupportedType,
)
from .file import (
    DecoderOptions,
    EncoderOptions,
    MatDecoder,
    MatEncoder,
    default_header,
    load_variables,
    open_from_stream,
    save_variables,
)
from .header import Header, decode_header, encode_header
from .matrix import Matrix, decode_matrix, encode_matrix
from .observer import JsonLogger, NullObserver, Observer, RecordingObserver
from .stream import ByteReader, ByteWriter, CancelToken
from .tag import Tag, decode_tag, encode_tag
from .types import ByteOrder, DataType, MatrixClass

__version__ = "0.1.0"

__all__ = [
    "ByteOrder",
    "ByteReader",
    "ByteWriter",
    "CancelToken",
    "CompressedStreamError",
    "DataType",
    "DecoderOptions",
    "Element",
    "EncoderOptions",
    "Header",
    "InvalidArrayFlags",
    "InvalidByteOrder",
    "InvalidDimensions",
    "InvalidMagic",
    "InvalidText",
    "InvalidTimestamp",
    "JsonLogger",
    "LengthMismatch",
    "MatDecoder",
    "MatEncoder",
    "MatFileError",
    "Matrix",
    "MatrixClass",
    "NullObserver",
    "NumericArray",
    "Observer",
    "ReadCancelled",
    "RecordingObserver",
    "Scalar",
    "Tag",
    "Text",
    "TruncatedRead",
    "UnsupportedClass",
    "UnsupportedLevel",
    "UnsupportedType",
    "decode_element",
    "decode_header",
    "decode_matrix",
    "decode_tag",
    "default_header",
    "encode_element",
    "encode_header",
    "encode_matrix",
    "encode_tag",
    "load_variables",
    "open_from_stream",
    "save_variables",
]
