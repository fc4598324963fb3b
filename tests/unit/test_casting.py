"""Tests for base-type casters and the type engine."""

from __future__ import annotations

import re
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

import pytest

from blockline.casting.composed import TypeTable, parse_declaration
from blockline.casting.engine import TypeEngine
from blockline.casting.registry import CasterRegistry, CastFailure, UnknownTypeError
from blockline.parser.lines import ValueToken


class TestCasterRegistry:
    def test_all_base_types_registered(self) -> None:
        assert CasterRegistry.available() == sorted(
            [
                "any", "b64", "bin", "bool", "date", "datetime", "decimal", "enum",
                "float", "hex", "int", "null", "regex", "string", "time", "uuid",
            ]
        )

    def test_unknown_type(self) -> None:
        with pytest.raises(UnknownTypeError, match="Unknown type 'nope'"):
            CasterRegistry.get("nope")

    @pytest.mark.parametrize(
        "name, text, expected",
        [
            ("int", "42", 42),
            ("int", "-7", -7),
            ("float", "0.75", 0.75),
            ("decimal", "1.10", Decimal("1.10")),
            ("bool", "yes", True),
            ("bool", "Off", False),
            ("string", "as is", "as is"),
            ("null", "~", None),
            ("null", "", None),
            ("date", "2024-01-15", date(2024, 1, 15)),
            ("time", "12:30:00", time(12, 30)),
            ("datetime", "2024-01-15T12:30:00", datetime(2024, 1, 15, 12, 30)),
            (
                "uuid",
                "12345678-1234-5678-1234-567812345678",
                uuid.UUID("12345678-1234-5678-1234-567812345678"),
            ),
            ("bin", "0b101", b"\x05"),
            ("hex", "0xff00", b"\xff\x00"),
            ("b64", "aGVsbG8=", b"hello"),
            ("enum", "RED", "RED"),
        ],
    )
    def test_cast(self, name: str, text: str, expected: Any) -> None:
        assert CasterRegistry.get(name).cast(text) == expected

    @pytest.mark.parametrize(
        "name, text",
        [
            ("int", "4.2"),
            ("int", "forty-two"),
            ("int", "٣٤"),
            ("float", "abc"),
            ("decimal", "abc"),
            ("bool", "maybe"),
            ("null", "nothing"),
            ("date", "2024-13-45"),
            ("uuid", "not-a-uuid"),
            ("bin", "102"),
            ("hex", "zz"),
            ("regex", "("),
            ("enum", "two words"),
        ],
    )
    def test_cast_failure(self, name: str, text: str) -> None:
        with pytest.raises(CastFailure):
            CasterRegistry.get(name).cast(text)

    def test_regex(self) -> None:
        pattern = CasterRegistry.get("regex").cast("a+b")
        assert isinstance(pattern, re.Pattern)
        assert pattern.match("aab")

    @pytest.mark.parametrize(
        "text, expected",
        [("null", None), ("true", True), ("42", 42), ("1.5", 1.5), ("hello", "hello")],
    )
    def test_any_infers(self, text: str, expected: Any) -> None:
        assert CasterRegistry.get("any").cast(text) == expected

    def test_any_keeps_non_ascii_digits_as_text(self) -> None:
        assert CasterRegistry.get("any").cast("٣٤") == "٣٤"

    def test_numeric_flags(self) -> None:
        numeric = {name for name in CasterRegistry.available() if CasterRegistry.get(name).numeric}
        assert numeric == {"int", "float", "decimal"}


@pytest.fixture
def engine() -> TypeEngine:
    table = TypeTable()
    table.declare(parse_declaration("(address) = (int=0-99) (string=2-10) (string=2.)"))
    table.declare(parse_declaration("(point) = (int) (int)"))
    return TypeEngine(table)


class TestCastScalar:
    def test_untyped_is_string(self, engine: TypeEngine) -> None:
        result = engine.cast_scalar(ValueToken(raw="0.2"))
        assert result.value == "0.2"
        assert result.type_tag == "string"
        assert result.issues == []

    def test_untyped_is_unescaped(self, engine: TypeEngine) -> None:
        assert engine.cast_scalar(ValueToken(raw=r"\# tag")).value == "# tag"

    def test_hinted(self, engine: TypeEngine) -> None:
        result = engine.cast_scalar(ValueToken(raw="1", hint="int"))
        assert result.value == 1
        assert result.type_tag == "int"

    def test_cast_failure_keeps_text(self, engine: TypeEngine) -> None:
        result = engine.cast_scalar(ValueToken(raw="forty-two", hint="int"))
        assert result.value == "forty-two"
        assert result.type_tag == "int"
        (issue,) = result.issues
        assert issue.code == "CAST_FAILED"
        assert issue.actual == "forty-two"

    def test_unknown_hint(self, engine: TypeEngine) -> None:
        result = engine.cast_scalar(ValueToken(raw="x", hint="mystery"))
        assert result.value == "x"
        assert [i.code for i in result.issues] == ["UNKNOWN_TYPE"]

    def test_composed_hint_on_scalar_splits_fields(self, engine: TypeEngine) -> None:
        result = engine.cast_scalar(ValueToken(raw="3, 4", hint="point"))
        assert result.value == [3, 4]
        assert result.type_tag == "point"


class TestCastRow:
    def test_per_field_hints(self, engine: TypeEngine) -> None:
        row = engine.cast_row(
            [ValueToken(raw="1", hint="int"), ValueToken(raw="x"), ValueToken(raw="maybe", hint="bool")]
        )
        assert row.values == [1, "x", "maybe"]
        assert row.type_tag == "row"
        (issue,) = row.issues
        assert issue.code == "CAST_FAILED"
        assert issue.field_index == 2

    def test_reference_fields_are_placeholders(self, engine: TypeEngine) -> None:
        row = engine.cast_row([ValueToken(raw="a"), ValueToken(raw="& b", reference="b")])
        assert row.values == ["a", None]
        assert row.fields[1].type_tag == "reference"

    def test_composed_row(self, engine: TypeEngine) -> None:
        row = engine.cast_row(
            [ValueToken(raw="12", hint="address"), ValueToken(raw="Main"), ValueToken(raw="NY")]
        )
        assert row.values == [12, "Main", "NY"]
        assert row.type_tag == "address"
        assert row.issues == []

    def test_range_violation_cites_field_and_range(self, engine: TypeEngine) -> None:
        row = engine.cast_row(
            [ValueToken(raw="150", hint="address"), ValueToken(raw="Main"), ValueToken(raw="NY")]
        )
        (issue,) = row.issues
        assert issue.code == "CONSTRAINT_VIOLATION"
        assert issue.field_index == 0
        assert issue.expected == "0-99"
        assert issue.actual == "150"
        assert "0-99" in issue.message
        assert row.values[0] == 150
        assert row.fields[0].issues == [issue]

    def test_minimum_length_violation(self, engine: TypeEngine) -> None:
        row = engine.cast_row(
            [ValueToken(raw="1", hint="address"), ValueToken(raw="Main"), ValueToken(raw="N")]
        )
        (issue,) = row.issues
        assert issue.field_index == 2
        assert issue.expected == "2."
        assert "at least 2" in issue.message

    def test_field_cast_failure_in_composed_row(self, engine: TypeEngine) -> None:
        row = engine.cast_row([ValueToken(raw="x", hint="point"), ValueToken(raw="2")])
        (issue,) = row.issues
        assert issue.code == "CAST_FAILED"
        assert issue.field_index == 0
        assert row.values == ["x", 2]

    def test_arity_mismatch(self, engine: TypeEngine) -> None:
        row = engine.cast_row(
            [ValueToken(raw="1", hint="point"), ValueToken(raw="2"), ValueToken(raw="3")]
        )
        (issue,) = row.issues
        assert issue.code == "ARITY_MISMATCH"
        assert (issue.expected, issue.actual) == ("2", "3")
        assert row.values == ["1", "2", "3"]
        assert row.type_tag == "point"
