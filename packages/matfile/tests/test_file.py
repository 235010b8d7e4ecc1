"""Tests for whole-file decoding and encoding."""

from __future__ import annotations

import io
import struct
import time
from datetime import datetime

import numpy as np
import pytest

from mat_builders import header_bytes, matrix_payload, tag

from matfile.element import Element, Text
from matfile.errors import (
    InvalidMagic,
    ReadCancelled,
    TruncatedRead,
    UnsupportedClass,
    UnsupportedType,
)
from matfile.file import (
    DecoderOptions,
    EncoderOptions,
    MatEncoder,
    default_header,
    load_variables,
    open_from_stream,
    save_variables,
)
from matfile.header import Header
from matfile.matrix import Matrix
from matfile.observer import RecordingObserver
from matfile.stream import CancelToken
from matfile.types import ByteOrder, DataType, MatrixClass


def test_decodes_sample_file(sample_file: bytes) -> None:
    header, decoder = open_from_stream(io.BytesIO(sample_file))

    elements = list(decoder)

    assert header.platform == "posix"
    assert [element.type for element in elements] == [DataType.MATRIX, DataType.MATRIX]
    first, second = (element.value for element in elements)
    assert first.name == "R"
    assert first.real.tolist() == [[1.0, 4.0], [2.0, 5.0], [3.0, 6.0]]
    assert second.name == "T"
    assert second.mclass is MatrixClass.INT32
    assert second.real.tolist() == [[7, 8, 9]]


def test_next_element_returns_none_at_end(sample_file: bytes) -> None:
    _, decoder = open_from_stream(io.BytesIO(sample_file))

    assert decoder.next_element() is not None
    assert decoder.next_element() is not None
    assert decoder.next_element() is None
    assert decoder.next_element() is None


def test_header_only_file_has_no_elements() -> None:
    _, decoder = open_from_stream(io.BytesIO(header_bytes()))

    assert list(decoder) == []


def test_events_are_reported(sample_file: bytes) -> None:
    observer = RecordingObserver()

    _, decoder = open_from_stream(io.BytesIO(sample_file), observer=observer)
    list(decoder)

    names = observer.names()
    assert names == [
        "header.decoded",
        "element.decoded",
        "element.inflated",
        "element.decoded",
    ]
    inflated = observer.events[2][1]
    assert inflated["type"] == "miMATRIX"
    assert not inflated["small"]
    decoded = [payload for name, payload in observer.events if name == "element.decoded"]
    assert [payload["type"] for payload in decoded] == ["miMATRIX", "miCOMPRESSED"]
    assert all(set(payload) == {"offset", "type", "length", "small"} for payload in decoded)


def test_truncated_element_is_an_error(sample_file: bytes) -> None:
    _, decoder = open_from_stream(io.BytesIO(sample_file[:140]))

    with pytest.raises(TruncatedRead):
        decoder.next_element()


def test_unknown_type_fails_without_resync() -> None:
    raw = header_bytes() + tag(8, b"\x00" * 12) + tag(16, b"after")
    _, decoder = open_from_stream(io.BytesIO(raw))

    with pytest.raises(UnsupportedType):
        decoder.next_element()


def test_resync_skips_unknown_type() -> None:
    raw = header_bytes() + tag(8, b"\x00" * 12) + tag(16, b"after")
    observer = RecordingObserver()
    _, decoder = open_from_stream(
        io.BytesIO(raw), DecoderOptions(resync=True), observer
    )

    elements = list(decoder)

    assert elements == [Element(DataType.UTF8, Text("after"))]
    skipped = [payload for name, payload in observer.events if name == "element.skipped"]
    assert skipped == [
        {
            "start": 128,
            "end": 152,
            "code": "unsupported_type",
            "message": skipped[0]["message"],
            "offset": 128,
        }
    ]


def test_resync_skips_unsupported_class() -> None:
    cell = tag(14, matrix_payload(1, (1, 1), b"c", struct.pack("<d", 0)))
    good = tag(14, matrix_payload(6, (1, 1), b"g", struct.pack("<d", 2)))
    raw = header_bytes() + cell + good
    observer = RecordingObserver()

    _, strict = open_from_stream(io.BytesIO(raw))
    with pytest.raises(UnsupportedClass):
        strict.next_element()

    _, decoder = open_from_stream(io.BytesIO(raw), DecoderOptions(resync=True), observer)
    elements = list(decoder)

    assert [element.value.name for element in elements] == ["g"]
    assert "element.skipped" in observer.names()


def test_resync_skips_broken_compressed_element() -> None:
    broken = struct.pack("<II", 15, 12) + b"\x78\x9c" + b"\xff" * 10
    raw = header_bytes() + broken + tag(16, b"ok")
    _, decoder = open_from_stream(io.BytesIO(raw), DecoderOptions(resync=True))

    assert list(decoder) == [Element(DataType.UTF8, Text("ok"))]


def test_resync_skips_undecodable_text() -> None:
    raw = header_bytes() + tag(16, b"\xff\xfe") + tag(16, b"fine")
    observer = RecordingObserver()
    _, decoder = open_from_stream(io.BytesIO(raw), DecoderOptions(resync=True), observer)

    assert list(decoder) == [Element(DataType.UTF8, Text("fine"))]
    skipped = [payload for name, payload in observer.events if name == "element.skipped"]
    assert skipped[0]["code"] == "invalid_text"


def test_resync_skips_small_compressed_tag() -> None:
    small = struct.pack("<I", (2 << 16) | 15) + b"\x78\x9c\x00\x00"
    raw = header_bytes() + small + tag(16, b"next")
    _, decoder = open_from_stream(io.BytesIO(raw), DecoderOptions(resync=True))

    assert list(decoder) == [Element(DataType.UTF8, Text("next"))]


def test_cancelled_token_stops_reading(sample_file: bytes) -> None:
    token = CancelToken()
    _, decoder = open_from_stream(io.BytesIO(sample_file), cancel=token)
    decoder.next_element()

    token.cancel()

    with pytest.raises(ReadCancelled):
        decoder.next_element()


def test_expired_deadline_stops_reading(sample_file: bytes) -> None:
    with pytest.raises(ReadCancelled):
        open_from_stream(io.BytesIO(sample_file), deadline=time.monotonic() - 1)


def test_cancellation_is_not_resynced(sample_file: bytes) -> None:
    token = CancelToken()
    _, decoder = open_from_stream(
        io.BytesIO(sample_file), DecoderOptions(resync=True), cancel=token
    )
    token.cancel()

    with pytest.raises(ReadCancelled):
        list(decoder)


def test_not_a_mat_file() -> None:
    with pytest.raises(InvalidMagic):
        open_from_stream(io.BytesIO(b"%PDF-1.4\n" * 20))


@pytest.mark.parametrize("compress", [False, True])
@pytest.mark.parametrize("byte_order", [ByteOrder.LITTLE, ByteOrder.BIG])
def test_encoder_round_trip(compress: bool, byte_order: ByteOrder) -> None:
    header = Header(
        level="5.0",
        platform="posix",
        created=datetime(2024, 5, 1, 12, 0, 0),
        byte_order=byte_order,
    )
    elements = [
        Element(DataType.MATRIX, Matrix.from_array("a", np.eye(3))),
        Element(DataType.MATRIX, Matrix.from_text("label", "left", "right")),
        Element(DataType.UTF8, Text("note")),
    ]
    buffer = io.BytesIO()
    observer = RecordingObserver()

    encoder = MatEncoder(buffer, options=EncoderOptions(compress=compress), observer=observer)
    encoder.write_header(header)
    for element in elements:
        encoder.write_element(element)

    decoded_header, decoder = open_from_stream(io.BytesIO(buffer.getvalue()))
    assert decoded_header == header
    assert list(decoder) == elements
    assert observer.names() == ["element.encoded"] * 3
    expected_type = "miCOMPRESSED" if compress else "miMATRIX"
    assert observer.events[0][1]["type"] == expected_type


def test_compression_shrinks_repetitive_data() -> None:
    element = Element(DataType.MATRIX, Matrix.from_array("z", np.zeros((100, 100))))
    plain, packed = io.BytesIO(), io.BytesIO()

    MatEncoder(plain).write_element(element)
    MatEncoder(packed, options=EncoderOptions(compress=True)).write_element(element)

    assert len(packed.getvalue()) < len(plain.getvalue()) // 10


def test_encoder_options_validate_level() -> None:
    with pytest.raises(ValueError):
        EncoderOptions(compression_level=10)


def test_save_and_load_variables() -> None:
    buffer = io.BytesIO()
    variables = {
        "x": np.arange(6.0).reshape(2, 3),
        "flag": np.array([True, False]),
        "name": "sensor",
        "v": Matrix.from_array("v", np.array([1, 2, 3], dtype=np.int16), is_global=True),
    }

    header = save_variables(
        buffer, variables, options=EncoderOptions(compress=True)
    )
    loaded = load_variables(io.BytesIO(buffer.getvalue()))

    assert header.level == "5.0"
    assert list(loaded) == ["x", "flag", "name", "v"]
    np.testing.assert_array_equal(loaded["x"].to_numpy(), variables["x"])
    assert loaded["flag"].to_numpy().tolist() == [[True, False]]
    assert loaded["name"].text() == ["sensor"]
    assert loaded["v"] == variables["v"]


def test_save_rejects_misnamed_matrix() -> None:
    with pytest.raises(ValueError):
        save_variables(io.BytesIO(), {"a": Matrix.from_array("b", [1.0])})


def test_default_header_has_no_microseconds() -> None:
    header = default_header(ByteOrder.BIG)

    assert header.created.microsecond == 0
    assert header.byte_order is ByteOrder.BIG
    assert header.level == "5.0"
