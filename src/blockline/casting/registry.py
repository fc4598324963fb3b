"""Base-type casters and their registry."""

from __future__ import annotations

import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from pydantic import Base64Bytes, TypeAdapter, ValidationError

_INTEGER_RE = re.compile(r"^[+-]?\d+$", re.ASCII)
_FLOAT_RE = re.compile(r"^[+-]?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?$", re.ASCII)
_BIN_RE = re.compile(r"^[01]+$")
_SYMBOL_RE = re.compile(r"^[A-Za-z_][\w-]*$")

_NULL_WORDS = frozenset({"null", "~"})
_TRUE_WORDS = frozenset({"true", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "no", "off"})


class CastFailure(ValueError):
    """A payload could not be interpreted as the requested base type."""


class UnknownTypeError(LookupError):
    """Raised when a type name is neither a base type nor a declared composed type."""

    def __init__(self, name: str, available: list[str]) -> None:
        self.type_name = name
        self.available = available
        super().__init__(f"Unknown type '{name}'. Available: {', '.join(available)}")


@dataclass(frozen=True)
class Caster:
    """A parse function plus a validator for one base type.

    ``numeric`` casters are constrained by value in composed types; all
    others are constrained by length.
    """

    name: str
    parse: Callable[[str], Any]
    validate: Callable[[Any], bool] = lambda value: True
    numeric: bool = False

    def cast(self, text: str) -> Any:
        try:
            value = self.parse(text)
        except ValidationError as exc:
            raise CastFailure(_first_error(exc)) from exc
        except (ValueError, TypeError) as exc:
            raise CastFailure(str(exc)) from exc
        if not self.validate(value):
            raise CastFailure(f"{text!r} is not a valid {self.name}")
        return value


class CasterRegistry:
    """Registry of base-type casters. Base types are process-wide and immutable."""

    _casters: dict[str, Caster] = {}

    @classmethod
    def register(cls, caster: Caster) -> Caster:
        cls._casters[caster.name] = caster
        return caster

    @classmethod
    def get(cls, name: str) -> Caster:
        if name not in cls._casters:
            raise UnknownTypeError(name, available=cls.available())
        return cls._casters[name]

    @classmethod
    def has(cls, name: str) -> bool:
        return name in cls._casters

    @classmethod
    def available(cls) -> list[str]:
        return sorted(cls._casters.keys())


# ---------------------------------------------------------------------------
# Built-in parse functions
# ---------------------------------------------------------------------------


def _via_pydantic(target: Any) -> Callable[[str], Any]:
    adapter: TypeAdapter[Any] = TypeAdapter(target)

    def parse(text: str) -> Any:
        return adapter.validate_python(text.strip())

    return parse


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    return errors[0]["msg"] if errors else str(exc)


def _parse_int(text: str) -> int:
    text = text.strip()
    if not _INTEGER_RE.match(text):
        raise CastFailure(f"{text!r} is not an integer")
    return int(text)


def _parse_bool(text: str) -> bool:
    normalized = text.strip().lower()
    if normalized in _TRUE_WORDS:
        return True
    if normalized in _FALSE_WORDS:
        return False
    raise CastFailure(f"{text!r} is not a boolean")


def _parse_null(text: str) -> None:
    if text.strip().lower() in _NULL_WORDS or not text.strip():
        return None
    raise CastFailure(f"{text!r} is not null")


def _parse_bin(text: str) -> bytes:
    text = text.strip()
    if text.startswith(("0b", "0B")):
        text = text[2:]
    if not _BIN_RE.match(text):
        raise CastFailure(f"{text!r} is not a binary digit string")
    return int(text, 2).to_bytes((len(text) + 7) // 8, "big")


def _parse_hex(text: str) -> bytes:
    text = text.strip()
    if text.startswith(("0x", "0X")):
        text = text[2:]
    return bytes.fromhex(text)


def _parse_enum(text: str) -> str:
    text = text.strip()
    if not _SYMBOL_RE.match(text):
        raise CastFailure(f"{text!r} is not an enum symbol")
    return text


def _parse_any(text: str) -> Any:
    """Best-effort inference: null, bool, int, float, then string."""
    normalized = text.strip()
    lowered = normalized.lower()
    if lowered in _NULL_WORDS:
        return None
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    if _INTEGER_RE.match(normalized):
        return int(normalized)
    if _FLOAT_RE.match(normalized):
        return float(normalized)
    return text


for _caster in (
    Caster("int", _parse_int, numeric=True),
    Caster("float", _via_pydantic(float), numeric=True),
    Caster("decimal", _via_pydantic(Decimal), validate=lambda v: v.is_finite(), numeric=True),
    Caster("bool", _parse_bool),
    Caster("string", str),
    Caster("null", _parse_null, validate=lambda v: v is None),
    Caster("date", _via_pydantic(date)),
    Caster("time", _via_pydantic(time)),
    Caster("datetime", _via_pydantic(datetime)),
    Caster("uuid", _via_pydantic(uuid.UUID)),
    Caster("bin", _parse_bin),
    Caster("hex", _parse_hex),
    Caster("b64", _via_pydantic(Base64Bytes)),
    Caster("regex", _via_pydantic(re.Pattern)),
    Caster("enum", _parse_enum),
    Caster("any", _parse_any),
):
    CasterRegistry.register(_caster)
