"""Tests for path syntax."""

from __future__ import annotations

import pytest

from blockline.access.paths import parse_path, sequence_index
from blockline.models.errors import MalformedPath, PathError


class TestParsePath:
    def test_segments(self) -> None:
        assert parse_path("main/headers/H1") == ["main", "headers", "H1"]

    def test_block_only(self) -> None:
        assert parse_path("id2") == ["id2"]

    def test_keys_may_contain_spaces(self) -> None:
        assert parse_path("main/Order ID") == ["main", "Order ID"]

    @pytest.mark.parametrize("path", ["", "   ", "main/", "/main", "main//x", "my block/x"])
    def test_malformed(self, path: str) -> None:
        with pytest.raises(MalformedPath):
            parse_path(path)

    def test_non_string(self) -> None:
        with pytest.raises(PathError, match="must be a string"):
            parse_path(3)  # type: ignore[arg-type]


class TestSequenceIndex:
    @pytest.mark.parametrize("segment, expected", [("0", 0), ("12", 12)])
    def test_numeric(self, segment: str, expected: int) -> None:
        assert sequence_index(segment) == expected

    @pytest.mark.parametrize("segment", ["01", "-1", "+1", "x", "1.0", "١"])
    def test_not_an_index(self, segment: str) -> None:
        assert sequence_index(segment) is None
