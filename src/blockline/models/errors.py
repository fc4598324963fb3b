"""Structured diagnostics and the exception taxonomy, with byte-span tracking."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

Severity = Literal["error", "warning"]


class SourceSpan(BaseModel):
    """Half-open byte range ``[start, end)`` in the source, plus its first line."""

    start: int
    end: int
    line: int

    def as_tuple(self) -> tuple[int, int]:
        return (self.start, self.end)


class Diagnostic(BaseModel):
    """A non-fatal finding recorded on the document (unresolved ids, unclosed blocks)."""

    code: str
    message: str
    path: str | None = None
    span: SourceSpan | None = None
    severity: Severity = "warning"


class TypeIssue(BaseModel):
    """A cast or composed-type failure attached to a node. Parsing continues."""

    code: str
    message: str
    field_index: int | None = None
    expected: str | None = None
    actual: str | None = None


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class BlocklineError(Exception):
    """Base class for every error raised by blockline."""


class _PositionedError(BlocklineError):
    def __init__(self, message: str, line: int | None = None, offset: int | None = None) -> None:
        self.message = message
        self.line = line
        self.offset = offset
        where = f" (line {line}, byte {offset})" if line is not None else ""
        super().__init__(f"{message}{where}")


class StructuralError(_PositionedError):
    """Bad control character, indentation violation or container kind mismatch."""


class MappingKindMismatch(StructuralError):
    """A key/value or keyed header met a sequence container."""


class SequenceKindMismatch(StructuralError):
    """A list item or row met a mapping container."""


class DuplicateKeyError(StructuralError):
    """A mapping key was written twice."""


class BlockError(_PositionedError):
    """Malformed block open/close structure."""


class DuplicateOpenBlock(BlockError):
    pass


class UnknownCloseId(BlockError):
    pass


class DuplicateClose(BlockError):
    pass


class MixedBlockContent(BlockError):
    """Mapping and sequence content under one block content root."""


class DocumentLimitError(BlocklineError):
    """Raised when input violates the configured safety limits.

    Distinct from grammar errors: the document may be well-formed but is too
    large or too deeply nested to be accepted.
    """


class PathError(BlocklineError):
    """Malformed path syntax or a required path that is missing."""


class MalformedPath(PathError):
    pass


class MissingPath(PathError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Path '{path}' is not present in the document")


class ScanError(BlocklineError):
    """``scan()`` was called where it is not allowed."""


class ScanRequiredError(ScanError):
    """A streaming-mode query arrived before ``scan()`` completed."""
