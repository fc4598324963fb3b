"""Base-type casters and user-declared composed types."""

from blockline.casting.composed import (
    Constraint,
    ConstraintKind,
    DeclarationError,
    FieldSpec,
    TypeDef,
    TypeTable,
    parse_declaration,
)
from blockline.casting.registry import Caster, CasterRegistry, CastFailure, UnknownTypeError

__all__ = [
    "CastFailure",
    "Caster",
    "CasterRegistry",
    "Constraint",
    "ConstraintKind",
    "DeclarationError",
    "FieldSpec",
    "TypeDef",
    "TypeTable",
    "UnknownTypeError",
    "parse_declaration",
]
