"""Document nodes and blocks.

Nodes live in an arena owned by the ``Document`` and refer to each other by
integer id. References point at block ids, never at nodes, so the logical
reference graph may contain cycles without ownership cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from blockline.models.errors import SourceSpan, TypeIssue

NodeId = int

MAIN_BLOCK = "main"
TYPES_BLOCK = "types"
COMMENT_BLOCK = "comment"


class BlockKind(StrEnum):
    MAIN = "main"
    NAMED = "named"
    TYPES = "types"
    COMMENT = "comment"

    @classmethod
    def for_id(cls, block_id: str) -> BlockKind:
        if block_id == MAIN_BLOCK:
            return cls.MAIN
        if block_id == TYPES_BLOCK:
            return cls.TYPES
        if block_id == COMMENT_BLOCK:
            return cls.COMMENT
        return cls.NAMED

    @property
    def holds_content(self) -> bool:
        return self in (BlockKind.MAIN, BlockKind.NAMED)


class ResolutionState(StrEnum):
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


@dataclass
class ScalarNode:
    """A leaf value. ``value`` is filled in by the type engine at end-of-stream."""

    raw: str
    span: SourceSpan
    hint: str | None = None
    comment: str | None = None
    field_index: int | None = None
    value: Any = None
    type_tag: str = "string"
    errors: list[TypeIssue] = field(default_factory=list)


@dataclass
class MappingNode:
    """Ordered key -> child mapping.

    A provisional mapping is a container whose kind is not decided yet; the
    first member line turns it into a real mapping or replaces it with a
    ``SequenceNode`` under the same id.
    """

    span: SourceSpan
    entries: dict[str, NodeId | None] = field(default_factory=dict)
    comment: str | None = None
    provisional: bool = True


@dataclass
class SequenceNode:
    """Ordered items. ``row`` marks a fixed-arity tuple written as ``, f1, f2``."""

    span: SourceSpan
    items: list[NodeId | None] = field(default_factory=list)
    comment: str | None = None
    row: bool = False
    raw: str | None = None
    type_tag: str = "sequence"
    errors: list[TypeIssue] = field(default_factory=list)


@dataclass
class ReferenceNode:
    """A ``& id`` placeholder that resolves to a block's content root."""

    target: str
    span: SourceSpan
    comment: str | None = None
    row: bool = False
    state: ResolutionState = ResolutionState.UNRESOLVED


Node = ScalarNode | MappingNode | SequenceNode | ReferenceNode


@dataclass
class Block:
    """A named, independently openable and closable span of the stream."""

    id: str
    kind: BlockKind
    first_open_start: int
    first_open_line: int = 1
    content_root: NodeId | None = None
    is_open: bool = True
    closed_once: bool = False
    implicit: bool = False

    @property
    def resolvable(self) -> bool:
        return self.kind.holds_content and self.closed_once
