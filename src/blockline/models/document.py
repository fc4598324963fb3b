"""The Document: node arena, block table, declared types and diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field

from blockline.casting.composed import TypeTable
from blockline.models.errors import Diagnostic
from blockline.models.nodes import Block, Node, NodeId


@dataclass
class Document:
    """Owns every node and block of one parsed stream.

    All state is scoped to the instance; independent documents share nothing.
    """

    nodes: list[Node] = field(default_factory=list)
    blocks: dict[str, Block] = field(default_factory=dict)
    types: TypeTable = field(default_factory=TypeTable)
    warnings: list[Diagnostic] = field(default_factory=list)
    node_count: int = 0

    def add(self, node: Node) -> NodeId:
        self.nodes.append(node)
        return len(self.nodes) - 1

    def replace(self, node_id: NodeId, node: Node) -> None:
        self.nodes[node_id] = node

    def node(self, node_id: NodeId) -> Node:
        return self.nodes[node_id]

    def release_nodes(self) -> None:
        """Drop the arena (streaming mode keeps only the index after a scan)."""
        self.nodes = []
        for block in self.blocks.values():
            block.content_root = None
