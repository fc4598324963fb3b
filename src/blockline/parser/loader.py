"""Byte-offset-tracking source reader with safety limits."""

from __future__ import annotations

import io
import logging
import threading
import weakref
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from blockline.models.errors import DocumentLimitError, StructuralError

logger = logging.getLogger("blockline.parser")

Source = bytes | str | Path | BinaryIO

_CHUNK_SIZE = 64 * 1024

# One lock per file object, shared by every reader over it.
_stream_locks: weakref.WeakKeyDictionary[BinaryIO, threading.Lock] = weakref.WeakKeyDictionary()
_stream_locks_guard = threading.Lock()


def _lock_for(handle: BinaryIO) -> threading.Lock:
    with _stream_locks_guard:
        lock = _stream_locks.get(handle)
        if lock is None:
            lock = _stream_locks[handle] = threading.Lock()
        return lock


@dataclass(frozen=True, slots=True)
class RawLine:
    """A decoded line and its byte span ``[start, end)`` excluding the newline."""

    number: int
    start: int
    end: int
    text: str


class SourceReader:
    """Forward line iteration plus bounded random access over one immutable source.

    ``str`` sources are document text; use ``Path`` for files. File objects
    must be binary, seekable and weak-referenceable. Every read from one is a
    seek plus bounded read under the file object's shared lock, so several
    readers may walk the same file object concurrently.
    """

    def __init__(self, source: Source, encoding: str = "utf-8", max_size: int | None = None) -> None:
        self.encoding = encoding
        self._data: bytes | None = None
        self._path: Path | None = None
        self._handle: BinaryIO | None = None
        self._lock = threading.Lock()

        if isinstance(source, str):
            self._data = source.encode(encoding)
        elif isinstance(source, (bytes, bytearray, memoryview)):
            self._data = bytes(source)
        elif isinstance(source, Path):
            self._path = source
        elif isinstance(source, io.TextIOBase):
            raise TypeError("Text streams are not supported; open the file in binary mode")
        elif hasattr(source, "read") and hasattr(source, "seek"):
            self._handle = source
            self._lock = _lock_for(source)
        else:
            raise TypeError(f"Unsupported source type: {type(source).__name__}")

        if max_size is not None:
            self._check_size(max_size)

    @property
    def name(self) -> str:
        if self._path is not None:
            return str(self._path)
        return "<bytes>" if self._data is not None else "<stream>"

    @property
    def size(self) -> int:
        if self._data is not None:
            return len(self._data)
        if self._path is not None:
            return self._path.stat().st_size
        assert self._handle is not None
        with self._lock:
            position = self._handle.tell()
            size = self._handle.seek(0, io.SEEK_END)
            self._handle.seek(position)
        return size

    def _check_size(self, limit: int) -> None:
        size = self.size
        if size > limit:
            raise DocumentLimitError(
                f"Document exceeds maximum size ({size:,} bytes > {limit:,} limit)"
            )

    # -- forward pass ----------------------------------------------------------

    def lines(self) -> Iterator[RawLine]:
        """Yield every line once, in stream order."""
        if self._data is not None:
            yield from self._split(io.BytesIO(self._data))
        elif self._path is not None:
            with self._path.open("rb") as handle:
                yield from self._split(handle)
        else:
            yield from self._split(self._stream_chunks())

    def _stream_chunks(self) -> Iterator[bytes]:
        """Lines of the file object, newline included, read by position."""
        assert self._handle is not None
        position = 0
        pending = b""
        while True:
            with self._lock:
                self._handle.seek(position)
                chunk = self._handle.read(_CHUNK_SIZE)
            if not chunk:
                break
            position += len(chunk)
            *complete, pending = (pending + chunk).split(b"\n")
            for line in complete:
                yield line + b"\n"
        if pending:
            yield pending

    def _split(self, chunks: Iterable[bytes]) -> Iterator[RawLine]:
        offset = 0
        for number, chunk in enumerate(chunks, start=1):
            length = len(chunk)
            body = chunk.rstrip(b"\n")
            if body.endswith(b"\r"):
                body = body[:-1]
            try:
                text = body.decode(self.encoding)
            except UnicodeDecodeError as exc:
                raise StructuralError(
                    f"Line is not valid {self.encoding}: {exc.reason}",
                    line=number,
                    offset=offset + exc.start,
                ) from exc
            yield RawLine(number, offset, offset + len(body), text)
            offset += length

    # -- random access ---------------------------------------------------------

    def read_span(self, start: int, end: int) -> str:
        """Re-read the bounded slice ``[start, end)``. Cost is proportional to the span."""
        if self._data is not None:
            chunk = self._data[start:end]
        elif self._path is not None:
            with self._path.open("rb") as handle:
                handle.seek(start)
                chunk = handle.read(end - start)
        else:
            assert self._handle is not None
            with self._lock:
                self._handle.seek(start)
                chunk = self._handle.read(end - start)
        return chunk.decode(self.encoding)
