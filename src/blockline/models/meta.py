"""Query results: the absence sentinel and the per-node metadata record."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

from blockline.models.errors import SourceSpan, TypeIssue

Introspect = Literal["type", "comment", "span", "raw"]


class _Absent:
    """The value returned for a path that cannot be served.

    Falsy and distinct from ``None``, which is a legitimate typed null.
    """

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"

    def __reduce__(self) -> str:
        return "ABSENT"


ABSENT: Any = _Absent()


class NodeMeta(BaseModel):
    """Everything known about one addressable node."""

    type: str
    comment: str | None = None
    span: SourceSpan
    raw: str | None = None
    errors: list[TypeIssue] = []

    def pick(self, introspect: Introspect) -> Any:
        if introspect == "span":
            return self.span.as_tuple()
        return getattr(self, introspect)
