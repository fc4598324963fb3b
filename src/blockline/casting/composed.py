"""Composed (tuple-shaped) types declared inside a ``types`` block.

Declaration syntax::

    (address) = (int=0-99) (string=2-10) (string=2.)

Each field names a base type and an optional constraint: ``N`` (exact),
``A-B`` (inclusive range) or ``N.`` (minimum, open-ended).
"""

from __future__ import annotations

import re
from decimal import Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from blockline.casting.registry import CasterRegistry
from blockline.models.errors import Diagnostic, SourceSpan

_DECLARATION_RE = re.compile(r"^\((?P<name>[A-Za-z_][\w.-]*)\)\s*=\s*(?P<fields>.+)$")
_FIELD_RE = re.compile(r"\(\s*(?P<base>[A-Za-z_][\w-]*)\s*(?:=\s*(?P<constraint>[^()\s]+)\s*)?\)")
_NUMBER = r"\d+(?:\.\d+)?"
_RANGE_RE = re.compile(rf"^(?P<low>{_NUMBER})-(?P<high>{_NUMBER})$")
_MINIMUM_RE = re.compile(r"^(?P<low>\d+(?:\.\d+)?)\.$")
_EXACT_RE = re.compile(rf"^(?P<low>{_NUMBER})$")


class DeclarationError(ValueError):
    """A ``types`` block line does not follow the declaration grammar."""


class ConstraintKind(StrEnum):
    EXACT = "exact"
    RANGE = "range"
    MINIMUM = "minimum"


class Constraint(BaseModel):
    kind: ConstraintKind
    low: Decimal
    high: Decimal | None = None
    text: str

    @classmethod
    def from_text(cls, text: str) -> Constraint:
        if match := _RANGE_RE.match(text):
            low, high = Decimal(match["low"]), Decimal(match["high"])
            if low > high:
                raise DeclarationError(f"Empty range constraint '{text}'")
            return cls(kind=ConstraintKind.RANGE, low=low, high=high, text=text)
        if match := _MINIMUM_RE.match(text):
            return cls(kind=ConstraintKind.MINIMUM, low=Decimal(match["low"]), text=text)
        if match := _EXACT_RE.match(text):
            return cls(kind=ConstraintKind.EXACT, low=Decimal(match["low"]), text=text)
        raise DeclarationError(f"Invalid constraint '{text}'")

    def admits(self, measure: Decimal) -> bool:
        if self.kind is ConstraintKind.EXACT:
            return measure == self.low
        if self.kind is ConstraintKind.MINIMUM:
            return measure >= self.low
        assert self.high is not None
        return self.low <= measure <= self.high

    def describe(self, numeric: bool) -> str:
        subject = "value" if numeric else "length"
        if self.kind is ConstraintKind.EXACT:
            return f"{subject} exactly {self.text}"
        if self.kind is ConstraintKind.MINIMUM:
            return f"{subject} at least {self.text[:-1]}"
        return f"{subject} in range {self.text}"


class FieldSpec(BaseModel):
    base: str
    constraint: Constraint | None = None

    def measure(self, value: Any, raw: str) -> Decimal:
        """Value for numeric bases, length for everything else."""
        if CasterRegistry.get(self.base).numeric:
            return Decimal(str(value))
        try:
            return Decimal(len(value))
        except TypeError:
            return Decimal(len(raw))


class TypeDef(BaseModel):
    name: str
    fields: list[FieldSpec] = Field(min_length=1)

    @property
    def arity(self) -> int:
        return len(self.fields)


def parse_declaration(text: str) -> TypeDef:
    """Parse ``(name) = (base=constraint) ...``."""
    match = _DECLARATION_RE.match(text.strip())
    if match is None:
        raise DeclarationError(f"Expected '(name) = (base=constraint) ...', got {text!r}")
    name = match["name"]
    if CasterRegistry.has(name):
        raise DeclarationError(f"Composed type '{name}' shadows a base type")

    body = match["fields"]
    fields: list[FieldSpec] = []
    consumed = 0
    for field_match in _FIELD_RE.finditer(body):
        if body[consumed : field_match.start()].strip():
            raise DeclarationError(f"Unexpected text in declaration of '{name}': {body!r}")
        consumed = field_match.end()
        base = field_match["base"]
        if not CasterRegistry.has(base):
            raise DeclarationError(
                f"Unknown base type '{base}' in declaration of '{name}'. "
                f"Available: {', '.join(CasterRegistry.available())}"
            )
        raw_constraint = field_match["constraint"]
        constraint = Constraint.from_text(raw_constraint) if raw_constraint else None
        fields.append(FieldSpec(base=base, constraint=constraint))
    if body[consumed:].strip() or not fields:
        raise DeclarationError(f"Unexpected text in declaration of '{name}': {body!r}")
    return TypeDef(name=name, fields=fields)


class TypeTable:
    """Composed types declared by one document."""

    def __init__(self) -> None:
        self._types: dict[str, TypeDef] = {}

    def declare(self, typedef: TypeDef, span: SourceSpan | None = None) -> Diagnostic | None:
        """Register a type; a redeclaration keeps the first one and returns a diagnostic."""
        if typedef.name in self._types:
            return Diagnostic(
                code="DUPLICATE_TYPE",
                message=f"Composed type '{typedef.name}' is already declared; keeping the first",
                path=f"types/{typedef.name}",
                span=span,
            )
        self._types[typedef.name] = typedef
        return None

    def get(self, name: str) -> TypeDef | None:
        return self._types.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)

    @property
    def names(self) -> list[str]:
        return list(self._types)
