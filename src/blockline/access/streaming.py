"""Queries over the offset index, re-reading bounded spans on demand."""

from __future__ import annotations

import logging
from typing import Any

from blockline.access.base import AccessBackend
from blockline.casting.engine import TypeEngine
from blockline.index.offsets import EntryKind, IndexEntry, PathIndex
from blockline.models.meta import NodeMeta
from blockline.models.nodes import Block
from blockline.parser.lines import ClassifiedLine, classify_line, line_tokens
from blockline.parser.loader import SourceReader

logger = logging.getLogger("blockline.access")


class StreamingAccess(AccessBackend[IndexEntry]):
    """Index-backed queries. The index holds structure only, never scalar values.

    Every value is rebuilt from the single line its entry spans, so the cost
    of a read is proportional to that span, not to the document.
    """

    def __init__(
        self,
        index: PathIndex,
        blocks: dict[str, Block],
        engine: TypeEngine,
        reader: SourceReader,
    ) -> None:
        super().__init__(blocks)
        self.index = index
        self.engine = engine
        self.reader = reader

    def root(self, block_id: str) -> IndexEntry | None:
        return self.index.get(block_id)

    def kind(self, handle: IndexEntry) -> EntryKind:
        return handle.kind

    def child(self, handle: IndexEntry, segment: str) -> IndexEntry | None:
        if segment not in handle.children:
            return None
        return self.index.get(f"{handle.path}/{segment}")

    def segments(self, handle: IndexEntry) -> list[str]:
        return handle.children

    def target(self, handle: IndexEntry) -> tuple[str, bool]:
        assert handle.target is not None
        return handle.target, handle.row_reference

    def describe(self, handle: IndexEntry) -> tuple[Any, NodeMeta]:
        line = self._reread(handle)
        tokens = line_tokens(line)
        if handle.kind is EntryKind.ROW:
            row = self.engine.cast_row(tokens)
            meta = NodeMeta(
                type=row.type_tag,
                comment=line.comment,
                span=handle.span,
                raw=line.payload,
                errors=row.issues,
            )
            return row.values, meta

        if handle.field_index is None:
            token = tokens[0]
            result = self.engine.cast_scalar(token)
            comment = line.comment
        else:
            token = tokens[handle.field_index]
            result = self.engine.cast_row(tokens).fields[handle.field_index]
            comment = None
        meta = NodeMeta(
            type=result.type_tag,
            comment=comment,
            span=handle.span,
            raw=token.raw,
            errors=result.issues,
        )
        return result.value, meta

    def container_meta(self, handle: IndexEntry) -> NodeMeta:
        comment = None
        if handle.header is not None:
            comment = self._read_line(handle.header.start, handle.header.end, handle.header.line).comment
        return NodeMeta(type=handle.kind.value, comment=comment, span=handle.span)

    def _reread(self, handle: IndexEntry) -> ClassifiedLine:
        return self._read_line(handle.span.start, handle.span.end, handle.span.line)

    def _read_line(self, start: int, end: int, number: int) -> ClassifiedLine:
        logger.debug("Re-reading bytes [%d, %d) for line %d", start, end, number)
        return classify_line(self.reader.read_span(start, end), number, start, end)
