"""Byte source and sink wrappers used by every codec layer."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import BinaryIO

from .errors import ReadCancelled, TruncatedRead

ALIGNMENT = 8


def padding(length: int, boundary: int = ALIGNMENT) -> int:
    """Number of filler bytes needed after ``length`` payload bytes."""

    return -length % boundary


@dataclass(slots=True)
class CancelToken:
    """Flag shared with a caller that may abort a blocked decode."""

    cancelled: bool = field(default=False)

    def cancel(self) -> None:
        self.cancelled = True


class ByteReader:
    """Exact-length reads over a binary stream with offset tracking.

    ``cancel`` and ``deadline`` (a ``time.monotonic()`` value) are checked
    before each read; tripping either raises :class:`ReadCancelled`.
    ``lenient_tail`` lets alignment padding run short at end of stream,
    which happens for the last element of a decompressed view.
    """

    def __init__(
        self,
        stream: BinaryIO,
        *,
        offset: int = 0,
        cancel: CancelToken | None = None,
        deadline: float | None = None,
        lenient_tail: bool = False,
    ) -> None:
        self._stream = stream
        self._pending = b""
        self.offset = offset
        self.cancel = cancel
        self.deadline = deadline
        self.lenient_tail = lenient_tail

    def _check(self) -> None:
        if self.cancel is not None and self.cancel.cancelled:
            raise ReadCancelled("read cancelled", offset=self.offset)
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise ReadCancelled("read deadline exceeded", offset=self.offset)

    def _read_some(self, size: int) -> bytes:
        if self._pending:
            chunk, self._pending = self._pending[:size], self._pending[size:]
            return chunk
        self._check()
        return self._stream.read(size) or b""

    def read_up_to(self, size: int) -> bytes:
        """Read ``size`` bytes, or fewer if the stream ends first."""

        chunks: list[bytes] = []
        remaining = size
        while remaining > 0:
            chunk = self._read_some(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        data = b"".join(chunks)
        self.offset += len(data)
        return data

    def read_exact(self, size: int) -> bytes:
        start = self.offset
        data = self.read_up_to(size)
        if len(data) != size:
            raise TruncatedRead(
                "stream ended inside a declared region",
                offset=start,
                expected=size,
                actual=len(data),
            )
        return data

    def skip(self, size: int) -> None:
        while size > 0:
            chunk = min(size, 1 << 16)
            self.read_exact(chunk)
            size -= chunk

    def align(self, length: int) -> None:
        """Consume the filler that follows a payload of ``length`` bytes."""

        pad = padding(length)
        if not pad:
            return
        if self.lenient_tail:
            self.read_up_to(pad)
        else:
            self.read_exact(pad)

    def at_end(self) -> bool:
        """Return ``True`` when no byte is left; never consumes data."""

        if self._pending:
            return False
        self._check()
        self._pending = self._stream.read(1) or b""
        return not self._pending


class ByteWriter:
    """Write-side counterpart of :class:`ByteReader`."""

    def __init__(self, stream: BinaryIO, *, offset: int = 0) -> None:
        self._stream = stream
        self.offset = offset

    def write(self, data: bytes) -> None:
        self._stream.write(data)
        self.offset += len(data)

    def align(self, length: int) -> None:
        pad = padding(length)
        if pad:
            self.write(b"\x00" * pad)


__all__ = ["ALIGNMENT", "ByteReader", "ByteWriter", "CancelToken", "padding"]
