"""Offset index: addressable path -> byte span, recorded during the parse pass."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum

from blockline.models.errors import SourceSpan
from blockline.models.nodes import NodeId

logger = logging.getLogger("blockline.index")


class EntryKind(StrEnum):
    SCALAR = "scalar"
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    ROW = "row"
    REFERENCE = "reference"


@dataclass
class IndexEntry:
    """Where one addressable node lives in the source.

    Scalars, rows and references span exactly one line, which is all a
    streaming read needs to re-materialize them. Containers keep their
    ordered child segments; ``header`` is the line that opened them.
    """

    path: str
    kind: EntryKind
    span: SourceSpan
    node_id: NodeId | None = None
    children: list[str] = field(default_factory=list)
    target: str | None = None
    field_index: int | None = None
    row_reference: bool = False
    header: SourceSpan | None = None


class PathIndex:
    """Maps paths such as ``main/headers/H1`` to their index entries."""

    def __init__(self) -> None:
        self._entries: dict[str, IndexEntry] = {}

    def record(self, entry: IndexEntry) -> IndexEntry:
        self._entries[entry.path] = entry
        return entry

    def get(self, path: str) -> IndexEntry | None:
        return self._entries.get(path)

    def forget_nodes(self) -> None:
        """Detach entries from the node arena once it has been released."""
        logger.debug("Detaching %d index entries from the node arena", len(self._entries))
        for entry in self._entries.values():
            entry.node_id = None

    def __contains__(self, path: object) -> bool:
        return path in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self._entries.values())

    @property
    def paths(self) -> list[str]:
        return list(self._entries.keys())
