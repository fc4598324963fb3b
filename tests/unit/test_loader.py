"""Tests for SourceReader: byte offsets, source kinds and size limits."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from blockline.models.errors import DocumentLimitError, StructuralError
from blockline.parser.loader import RawLine, SourceReader


class TestSourceReader:
    def test_byte_offsets_exclude_newlines(self) -> None:
        reader = SourceReader(b"a\r\nbb\nc")
        assert list(reader.lines()) == [
            RawLine(1, 0, 1, "a"),
            RawLine(2, 3, 5, "bb"),
            RawLine(3, 6, 7, "c"),
        ]

    def test_offsets_are_bytes_not_characters(self) -> None:
        lines = list(SourceReader("= name = café\n= b = 1\n").lines())
        assert lines[0].end == len("= name = café".encode())
        assert lines[1].start == lines[0].end + 1

    def test_read_span(self) -> None:
        reader = SourceReader(b"a\r\nbb\nc")
        assert reader.read_span(3, 5) == "bb"

    def test_path_source(self, tmp_path: Path) -> None:
        path = tmp_path / "doc.bl"
        path.write_bytes(b"- x\n- y\n")
        reader = SourceReader(path)
        assert [line.text for line in reader.lines()] == ["- x", "- y"]
        assert reader.read_span(4, 7) == "- y"
        assert reader.name == str(path)
        assert reader.size == 8

    def test_binary_stream_source(self) -> None:
        stream = io.BytesIO(b"- x\n- y\n")
        reader = SourceReader(stream)
        assert len(list(reader.lines())) == 2
        assert reader.read_span(0, 3) == "- x"
        assert len(list(reader.lines())) == 2

    def test_text_stream_rejected(self) -> None:
        with pytest.raises(TypeError, match="binary mode"):
            SourceReader(io.StringIO("- x\n"))  # type: ignore[arg-type]

    def test_unsupported_source(self) -> None:
        with pytest.raises(TypeError, match="Unsupported source type"):
            SourceReader(42)  # type: ignore[arg-type]

    def test_size_limit(self) -> None:
        with pytest.raises(DocumentLimitError, match="maximum size"):
            SourceReader(b"= a = 1\n" * 10, max_size=16)

    def test_invalid_encoding_reports_position(self) -> None:
        reader = SourceReader(b"- ok\n- \xff\n")
        with pytest.raises(StructuralError, match="not valid utf-8") as exc_info:
            list(reader.lines())
        assert exc_info.value.line == 2
        assert exc_info.value.offset == 7
