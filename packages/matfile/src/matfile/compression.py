"""zlib envelope used by ``miCOMPRESSED`` elements."""

from __future__ import annotations

import io
import zlib
from contextlib import contextmanager
from typing import Iterator

from .errors import CompressedStreamError, LengthMismatch, TruncatedRead
from .stream import ByteReader

READ_CHUNK = 64 * 1024
INFLATE_CHUNK = 256 * 1024
DEFAULT_LEVEL = 6


class InflateStream(io.RawIOBase):
    """Raw stream inflating exactly ``length`` compressed bytes of ``source``.

    Never reads past the declared region, so the outer reader stays
    positioned on the next tag once the view is exhausted.
    """

    def __init__(self, source: ByteReader, length: int) -> None:
        super().__init__()
        self._source = source
        self._start = source.offset
        self._length = length
        self._remaining = length
        self._decompressor = zlib.decompressobj()
        self._buffer = b""
        self.source_truncated = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:  # type: ignore[override]
        self._fill()
        size = min(len(buffer), len(self._buffer))
        buffer[:size] = self._buffer[:size]
        self._buffer = self._buffer[size:]
        return size

    def _fill(self) -> None:
        while not self._buffer and not self._decompressor.eof:
            data = self._decompressor.unconsumed_tail
            if not data:
                if self._remaining == 0:
                    raise CompressedStreamError(
                        "compressed stream ended before the zlib end marker",
                        offset=self._start,
                        expected=self._length,
                    )
                request = min(self._remaining, READ_CHUNK)
                data = self._source.read_up_to(request)
                if not data:
                    self.source_truncated = True
                    raise TruncatedRead(
                        "stream ended inside a compressed element",
                        offset=self._source.offset,
                        expected=self._remaining,
                        actual=0,
                    )
                self._remaining -= len(data)
            try:
                self._buffer = self._decompressor.decompress(data, INFLATE_CHUNK)
            except zlib.error as exc:
                raise CompressedStreamError(
                    f"corrupt compressed data: {exc}", offset=self._start
                ) from exc

    def finish(self) -> None:
        """Check that the zlib stream ended exactly at the declared length."""

        self._fill()
        if self._buffer:
            raise LengthMismatch(
                "decompressed data continues after the nested element",
                offset=self._start,
            )
        trailing = self._remaining + len(self._decompressor.unused_data)
        if trailing:
            raise LengthMismatch(
                "compressed element has bytes after the zlib end marker",
                offset=self._start,
                expected=self._length,
                actual=self._length - trailing,
            )


@contextmanager
def inflate(reader: ByteReader, length: int) -> Iterator[ByteReader]:
    """Yield a reader over the decompressed content of the next ``length`` bytes.

    The nested element must use every decompressed byte; leftovers, a
    missing end marker or compressed bytes past the marker are errors.
    """

    stream = InflateStream(reader, length)
    view = ByteReader(
        stream,
        cancel=reader.cancel,
        deadline=reader.deadline,
        lenient_tail=True,
    )
    try:
        yield view
        if not view.at_end():
            raise LengthMismatch(
                "decompressed data continues after the nested element",
                offset=view.offset,
            )
        stream.finish()
    except TruncatedRead as exc:
        if stream.source_truncated:
            raise
        raise LengthMismatch(
            "nested element runs past the decompressed data",
            offset=exc.offset,
            expected=exc.expected,
            actual=exc.actual,
        ) from exc
    finally:
        stream.close()


def deflate(payload: bytes, level: int = DEFAULT_LEVEL) -> bytes:
    return zlib.compress(payload, level)


__all__ = ["DEFAULT_LEVEL", "InflateStream", "deflate", "inflate"]
