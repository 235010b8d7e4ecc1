"""Stream-level handles: read or write a whole MAT-file element by element."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Iterator, Mapping

from .compression import DEFAULT_LEVEL
from .element import Element, decode_payload, encode_element
from .errors import MatFileError, ReadCancelled, TruncatedRead, UnsupportedType
from .header import SUPPORTED_LEVEL, Header, decode_header, encode_header
from .matrix import Matrix
from .observer import NULL_OBSERVER, Observer
from .stream import ByteReader, ByteWriter, CancelToken, padding
from .tag import TAG_LEN, Tag, decode_tag
from .types import ByteOrder, DataType


@dataclass(frozen=True, slots=True)
class DecoderOptions:
    """Settings for :class:`MatDecoder`.

    ``resync`` skips a top-level element that fails to decode, as long as
    its tag was read in full, and carries on with the next one.
    """

    resync: bool = False


@dataclass(frozen=True, slots=True)
class EncoderOptions:
    """Settings for :class:`MatEncoder`."""

    compress: bool = False
    compression_level: int = DEFAULT_LEVEL
    small_elements: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.compression_level <= 9:
            raise ValueError("compression_level must be between 0 and 9")


def open_from_stream(
    stream: BinaryIO,
    options: DecoderOptions | None = None,
    observer: Observer = NULL_OBSERVER,
    *,
    cancel: CancelToken | None = None,
    deadline: float | None = None,
) -> tuple[Header, MatDecoder]:
    """Read the header from ``stream`` and return it with a decoder for the body."""

    reader = ByteReader(stream, cancel=cancel, deadline=deadline)
    header = decode_header(reader)
    observer.emit(
        "header.decoded",
        level=header.level,
        platform=header.platform,
        created=header.created.isoformat(),
        byte_order=header.byte_order.name.lower(),
    )
    return header, MatDecoder(reader, header.byte_order, options, observer)


class MatDecoder:
    """Pulls top-level elements off a reader positioned after the header."""

    def __init__(
        self,
        reader: ByteReader,
        byte_order: ByteOrder,
        options: DecoderOptions | None = None,
        observer: Observer = NULL_OBSERVER,
    ) -> None:
        self.reader = reader
        self.byte_order = byte_order
        self.options = options or DecoderOptions()
        self.observer = observer

    def __iter__(self) -> Iterator[Element]:
        while (element := self.next_element()) is not None:
            yield element

    def next_element(self) -> Element | None:
        """Return the next element, or ``None`` once the stream is exhausted."""

        while not self.reader.at_end():
            start = self.reader.offset
            tag: Tag | None = None
            try:
                tag = decode_tag(self.reader, self.byte_order)
                element = decode_payload(self.reader, tag, self.byte_order, self.observer)
            except (TruncatedRead, ReadCancelled):
                raise
            except MatFileError as exc:
                end = self._element_end(start, tag, exc)
                if not self.options.resync or end is None or end < self.reader.offset:
                    raise
                self.reader.skip(end - self.reader.offset)
                self.observer.emit("element.skipped", start=start, end=end, **exc.to_payload())
                continue

            self.observer.emit(
                "element.decoded",
                offset=start,
                type=str(tag.type),
                length=tag.length,
                small=tag.small,
            )
            return element
        return None

    @staticmethod
    def _element_end(start: int, tag: Tag | None, exc: MatFileError) -> int | None:
        if tag is None:
            if isinstance(exc, UnsupportedType) and exc.length is not None:
                return start + TAG_LEN + exc.length + padding(exc.length)
            return None
        if tag.small:
            return start + TAG_LEN
        if tag.type is DataType.COMPRESSED:
            return start + TAG_LEN + tag.length
        return start + TAG_LEN + tag.length + padding(tag.length)


class MatEncoder:
    """Writes a header and top-level elements to a binary stream.

    The byte order follows the header once :meth:`write_header` is called.
    """

    def __init__(
        self,
        stream: BinaryIO,
        byte_order: ByteOrder = ByteOrder.LITTLE,
        options: EncoderOptions | None = None,
        observer: Observer = NULL_OBSERVER,
    ) -> None:
        self.writer = ByteWriter(stream)
        self.byte_order = byte_order
        self.options = options or EncoderOptions()
        self.observer = observer

    def write_header(self, header: Header) -> None:
        self.byte_order = header.byte_order
        encode_header(self.writer, header)

    def write_element(self, element: Element) -> None:
        if self.options.compress and element.type is not DataType.COMPRESSED:
            element = Element(DataType.COMPRESSED, element)
        start = self.writer.offset
        encode_element(
            self.writer,
            element,
            self.byte_order,
            small=self.options.small_elements,
            level=self.options.compression_level,
        )
        self.observer.emit(
            "element.encoded",
            offset=start,
            type=str(element.type),
            length=self.writer.offset - start,
        )


def default_header(byte_order: ByteOrder = ByteOrder.LITTLE) -> Header:
    return Header(
        level=SUPPORTED_LEVEL,
        platform=os.name,
        created=datetime.now().replace(microsecond=0),
        byte_order=byte_order,
    )


def load_variables(
    stream: BinaryIO,
    options: DecoderOptions | None = None,
    observer: Observer = NULL_OBSERVER,
) -> dict[str, Matrix]:
    """Decode every matrix of a MAT-file, keyed by its name.

    Top-level elements that are not matrices are ignored.
    """

    _, decoder = open_from_stream(stream, options, observer)
    variables: dict[str, Matrix] = {}
    for element in decoder:
        if isinstance(element.value, Matrix):
            variables[element.value.name] = element.value
    return variables


def save_variables(
    stream: BinaryIO,
    variables: Mapping[str, object],
    *,
    header: Header | None = None,
    options: EncoderOptions | None = None,
    observer: Observer = NULL_OBSERVER,
) -> Header:
    """Write ``variables`` as a MAT-file; values may be matrices or array-likes."""

    header = header or default_header()
    encoder = MatEncoder(stream, header.byte_order, options, observer)
    encoder.write_header(header)
    for name, value in variables.items():
        if isinstance(value, Matrix):
            if value.name != name:
                raise ValueError(f"matrix named {value.name!r} stored under {name!r}")
            matrix = value
        else:
            matrix = Matrix.from_array(name, value)
        encoder.write_element(Element(DataType.MATRIX, matrix))
    return header


__all__ = [
    "DecoderOptions",
    "EncoderOptions",
    "MatDecoder",
    "MatEncoder",
    "default_header",
    "load_variables",
    "open_from_stream",
    "save_variables",
]
