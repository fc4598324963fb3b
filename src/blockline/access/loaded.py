"""Queries over a fully materialized document tree. No re-reads."""

from __future__ import annotations

from typing import Any

from blockline.access.base import AccessBackend
from blockline.access.paths import sequence_index
from blockline.index.offsets import EntryKind
from blockline.models.document import Document
from blockline.models.meta import NodeMeta
from blockline.models.nodes import (
    MappingNode,
    NodeId,
    ReferenceNode,
    ResolutionState,
    ScalarNode,
    SequenceNode,
)


class LoadedAccess(AccessBackend[NodeId]):
    def __init__(self, document: Document) -> None:
        super().__init__(document.blocks)
        self.document = document

    def root(self, block_id: str) -> NodeId | None:
        return self.blocks[block_id].content_root

    def kind(self, handle: NodeId) -> EntryKind:
        node = self.document.node(handle)
        if isinstance(node, ScalarNode):
            return EntryKind.SCALAR
        if isinstance(node, ReferenceNode):
            return EntryKind.REFERENCE
        if isinstance(node, MappingNode):
            return EntryKind.MAPPING
        return EntryKind.ROW if node.row else EntryKind.SEQUENCE

    def child(self, handle: NodeId, segment: str) -> NodeId | None:
        node = self.document.node(handle)
        if isinstance(node, MappingNode):
            return node.entries.get(segment)
        if isinstance(node, SequenceNode):
            position = sequence_index(segment)
            if position is None or position >= len(node.items):
                return None
            return node.items[position]
        return None

    def segments(self, handle: NodeId) -> list[str]:
        node = self.document.node(handle)
        if isinstance(node, MappingNode):
            return list(node.entries)
        if isinstance(node, SequenceNode):
            return [str(position) for position in range(len(node.items))]
        return []

    def target(self, handle: NodeId) -> tuple[str, bool]:
        node = self.document.node(handle)
        assert isinstance(node, ReferenceNode)
        return node.target, node.row

    def resolved(self, handle: NodeId, target: str) -> bool:
        node = self.document.node(handle)
        assert isinstance(node, ReferenceNode)
        return node.state is ResolutionState.RESOLVED

    def describe(self, handle: NodeId) -> tuple[Any, NodeMeta]:
        node = self.document.node(handle)
        if isinstance(node, ScalarNode):
            meta = NodeMeta(
                type=node.type_tag,
                comment=node.comment,
                span=node.span,
                raw=node.raw,
                errors=list(node.errors),
            )
            return node.value, meta
        assert isinstance(node, SequenceNode) and node.row
        values = [
            item.value if isinstance(item, ScalarNode) else None
            for item in (self.document.node(i) for i in node.items if i is not None)
        ]
        meta = NodeMeta(
            type=node.type_tag,
            comment=node.comment,
            span=node.span,
            raw=node.raw,
            errors=list(node.errors),
        )
        return values, meta

    def container_meta(self, handle: NodeId) -> NodeMeta:
        node = self.document.node(handle)
        assert isinstance(node, (MappingNode, SequenceNode))
        return NodeMeta(
            type=EntryKind.MAPPING.value if isinstance(node, MappingNode) else EntryKind.SEQUENCE.value,
            comment=node.comment,
            span=node.span,
        )
