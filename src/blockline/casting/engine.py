"""Type engine: applies inline hints and composed types to value tokens.

Both document modes cast through this module: loaded documents at
end-of-stream, streaming documents when a value is read back on demand.
Cast failures never raise; the raw text is kept and a ``TypeIssue`` is
returned alongside it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from blockline.casting.composed import TypeDef, TypeTable
from blockline.casting.registry import CastFailure, CasterRegistry
from blockline.models.errors import TypeIssue
from blockline.parser.lines import ValueToken, split_fields

logger = logging.getLogger("blockline.casting")

UNTYPED = "string"


@dataclass
class CastResult:
    value: Any
    type_tag: str
    issues: list[TypeIssue] = field(default_factory=list)


@dataclass
class RowCast:
    """Cast of one tuple row: per-field results plus row-level issues."""

    fields: list[CastResult]
    type_tag: str
    issues: list[TypeIssue] = field(default_factory=list)

    @property
    def values(self) -> list[Any]:
        return [f.value for f in self.fields]


class TypeEngine:
    """Casts tokens against the base registry and one document's composed types."""

    def __init__(self, table: TypeTable | None = None) -> None:
        self.table = table if table is not None else TypeTable()

    def cast_scalar(self, token: ValueToken) -> CastResult:
        if token.hint is None:
            return CastResult(token.text, UNTYPED)
        typedef = self.table.get(token.hint)
        if typedef is not None:
            tokens = [ValueToken(raw=part) for part in split_fields(token.raw)]
            row = self._apply_composed(typedef, tokens)
            return CastResult(row.values, typedef.name, row.issues)
        return self._cast_base(token.hint, token.text)

    def cast_row(self, tokens: list[ValueToken]) -> RowCast:
        """Cast a ``,`` row.

        A hint on the first field that names a composed type applies to the
        whole row; otherwise every field is cast by its own hint.
        """
        if tokens and tokens[0].hint is not None:
            typedef = self.table.get(tokens[0].hint)
            if typedef is not None:
                first = ValueToken(raw=tokens[0].raw)
                return self._apply_composed(typedef, [first, *tokens[1:]])
        results = [self._cast_field(token) for token in tokens]
        issues = [
            issue.model_copy(update={"field_index": index})
            for index, result in enumerate(results)
            for issue in result.issues
        ]
        return RowCast(results, "row", issues)

    # -- internals -----------------------------------------------------------

    def _cast_field(self, token: ValueToken) -> CastResult:
        if token.reference is not None:
            return CastResult(None, "reference")
        return self.cast_scalar(token)

    def _cast_base(self, type_name: str, text: str) -> CastResult:
        if not CasterRegistry.has(type_name):
            logger.debug("Unknown type hint '%s'", type_name)
            return CastResult(
                text,
                type_name,
                [
                    TypeIssue(
                        code="UNKNOWN_TYPE",
                        message=f"Unknown type '{type_name}'",
                        expected=type_name,
                        actual=text,
                    )
                ],
            )
        try:
            return CastResult(CasterRegistry.get(type_name).cast(text), type_name)
        except CastFailure as exc:
            logger.debug("Cast of %r to %s failed: %s", text, type_name, exc)
            return CastResult(
                text,
                type_name,
                [
                    TypeIssue(
                        code="CAST_FAILED",
                        message=f"Cannot cast {text!r} to {type_name}: {exc}",
                        expected=type_name,
                        actual=text,
                    )
                ],
            )

    def _apply_composed(self, typedef: TypeDef, tokens: list[ValueToken]) -> RowCast:
        if len(tokens) != typedef.arity:
            issue = TypeIssue(
                code="ARITY_MISMATCH",
                message=(
                    f"Type '{typedef.name}' expects {typedef.arity} fields, got {len(tokens)}"
                ),
                expected=str(typedef.arity),
                actual=str(len(tokens)),
            )
            fields = [self._cast_field(ValueToken(raw=t.raw, reference=t.reference)) for t in tokens]
            return RowCast(fields, typedef.name, [issue])

        fields: list[CastResult] = []
        issues: list[TypeIssue] = []
        for index, (spec, token) in enumerate(zip(typedef.fields, tokens, strict=True)):
            if token.reference is not None:
                fields.append(CastResult(None, "reference"))
                continue
            result = self._cast_base(spec.base, token.text)
            for issue in result.issues:
                issues.append(
                    issue.model_copy(
                        update={
                            "field_index": index,
                            "message": f"Field {index} of '{typedef.name}': {issue.message}",
                        }
                    )
                )
            if not result.issues and spec.constraint is not None:
                measure = spec.measure(result.value, token.raw)
                if not spec.constraint.admits(measure):
                    numeric = CasterRegistry.get(spec.base).numeric
                    issue = TypeIssue(
                        code="CONSTRAINT_VIOLATION",
                        message=(
                            f"Field {index} of '{typedef.name}': expected {spec.base} "
                            f"{spec.constraint.describe(numeric)}, got {token.raw!r}"
                        ),
                        field_index=index,
                        expected=spec.constraint.text,
                        actual=token.raw,
                    )
                    result.issues.append(issue)
                    issues.append(issue)
            fields.append(result)
        return RowCast(fields, typedef.name, issues)
