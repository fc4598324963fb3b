"""Structural parser: classified lines -> nodes, blocks and the offset index.

One forward pass. Every open block keeps its own indentation stack of
frames; a frame is the container that the next member line attaches to.
The offset index is recorded as nodes are created, and container spans grow
as their descendants arrive.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

from blockline.casting.composed import DeclarationError, parse_declaration
from blockline.casting.engine import TypeEngine
from blockline.index.offsets import EntryKind, IndexEntry, PathIndex
from blockline.models.document import Document
from blockline.models.errors import (
    DocumentLimitError,
    DuplicateKeyError,
    MappingKindMismatch,
    MixedBlockContent,
    SequenceKindMismatch,
    SourceSpan,
    StructuralError,
)
from blockline.models.nodes import (
    COMMENT_BLOCK,
    Block,
    BlockKind,
    MappingNode,
    Node,
    NodeId,
    ReferenceNode,
    ScalarNode,
    SequenceNode,
)
from blockline.parser.blocks import BlockManager
from blockline.parser.lines import (
    ClassifiedLine,
    Control,
    ValueToken,
    check_block_id,
    check_segment,
    classify_line,
    line_tokens,
    parse_pair,
    split_comment,
)
from blockline.parser.loader import RawLine
from blockline.settings import Settings

logger = logging.getLogger("blockline.parser")

_MEMBER_CONTROLS = frozenset({Control.MEMBER, Control.ROW, Control.ITEM, Control.REFERENCE})
_COMMENT_CLOSE_RE = re.compile(rf"^<\s+{COMMENT_BLOCK}$")


@dataclass
class _Frame:
    node_id: NodeId
    entry: IndexEntry
    header_depth: int
    section: bool
    block_root: bool
    member_depth: int | None = None


def _line_span(line: ClassifiedLine) -> SourceSpan:
    return SourceSpan(start=line.start, end=line.end, line=line.number)


class StructuralParser:
    """Builds a ``Document`` and its ``PathIndex`` from raw lines.

    With ``retain_values=False`` (streaming scans) scalar nodes are not kept:
    only their index entries are recorded, and nothing is cast.
    """

    def __init__(self, *, retain_values: bool = True, settings: Settings | None = None) -> None:
        settings = settings or Settings()
        self.retain_values = retain_values
        self.document = Document()
        self.index = PathIndex()
        self.blocks = BlockManager(self.document)
        self._max_depth = settings.max_depth
        self._max_nodes = settings.max_node_count
        self._stacks: dict[str, list[_Frame]] = {}
        self._stack: list[_Frame] = []
        self._lines = 0

        main = self.blocks.current
        assert main is not None
        self._ensure_root(main, None)
        self._stacks[main.id] = [self._root_frame(main)]

    # -- driver ----------------------------------------------------------------

    def parse(self, lines: Iterable[RawLine]) -> Document:
        for raw in lines:
            self.feed(raw)
        return self.finish()

    def feed(self, raw: RawLine) -> None:
        self._lines += 1
        block = self.blocks.current
        if block is not None and block.kind is BlockKind.COMMENT:
            if _COMMENT_CLOSE_RE.match(split_comment(raw.text.strip())[0]):
                self.blocks.close(COMMENT_BLOCK, raw.number, raw.start)
            return

        line = classify_line(raw.text, raw.number, raw.start, raw.end)
        if line.is_blank:
            return
        if line.control is Control.OPEN:
            self._open_block(line)
            return
        if line.control is Control.CLOSE:
            self._close_block(line)
            return
        if block is None:
            raise StructuralError(
                "Content outside of any open block", line=line.number, offset=line.start
            )
        if block.kind is BlockKind.TYPES:
            self._declare_type(line)
            return
        if line.control is None:
            raise StructuralError(
                f"Line does not start with a control character: {line.payload!r}",
                line=line.number,
                offset=line.start,
            )

        self._stack = self._stacks[block.id]
        frame = self._frame_for(line)
        if line.control is Control.PAIR:
            self._pair(frame, line)
        elif line.control is Control.MEMBER:
            if not frame.section:
                raise StructuralError(
                    "':' members are only allowed inside a section",
                    line=line.number,
                    offset=line.start,
                )
            self._pair(frame, line)
        elif line.control is Control.SECTION:
            self._section(frame, line)
        elif line.control is Control.ROW:
            self._row(frame, line)
        else:
            self._item(frame, line)

    def finish(self) -> Document:
        """End of stream: settle blocks and references, then cast retained values."""
        self.document.warnings.extend(self.blocks.finish())
        self._stacks.clear()
        self._stack = []
        if self.retain_values:
            self._cast_all()
        logger.info(
            "Parsed %d lines: %d nodes, %d blocks, %d index entries, %d warnings",
            self._lines,
            self.document.node_count,
            len(self.document.blocks),
            len(self.index),
            len(self.document.warnings),
        )
        return self.document

    # -- blocks ----------------------------------------------------------------

    def _open_block(self, line: ClassifiedLine) -> None:
        block_id = check_block_id(line.payload.strip(), line)
        block, _ = self.blocks.open(block_id, line.number, line.start)
        if block.kind.holds_content:
            self._ensure_root(block, line)
            self._stacks[block.id] = [self._root_frame(block)]

    def _close_block(self, line: ClassifiedLine) -> None:
        block_id = check_block_id(line.payload.strip(), line)
        self.blocks.close(block_id, line.number, line.start)
        self._stacks.pop(block_id, None)

    def _ensure_root(self, block: Block, line: ClassifiedLine | None) -> None:
        if block.content_root is not None:
            return
        end = line.end if line is not None else block.first_open_start
        span = SourceSpan(start=block.first_open_start, end=end, line=block.first_open_line)
        node = MappingNode(span=span, comment=line.comment if line is not None else None)
        node_id = self.document.add(node)
        block.content_root = node_id
        self.index.record(
            IndexEntry(
                path=block.id,
                kind=EntryKind.MAPPING,
                span=span,
                node_id=node_id,
                header=_line_span(line) if line is not None else None,
            )
        )

    def _root_frame(self, block: Block) -> _Frame:
        assert block.content_root is not None
        entry = self.index.get(block.id)
        assert entry is not None
        return _Frame(
            node_id=block.content_root,
            entry=entry,
            header_depth=-1,
            section=False,
            block_root=True,
        )

    def _declare_type(self, line: ClassifiedLine) -> None:
        if line.control is not None:
            raise StructuralError(
                "Only type declarations are allowed inside a 'types' block",
                line=line.number,
                offset=line.start,
            )
        try:
            typedef = parse_declaration(line.payload)
        except DeclarationError as exc:
            raise StructuralError(str(exc), line=line.number, offset=line.start) from exc
        duplicate = self.document.types.declare(typedef, _line_span(line))
        if duplicate is not None:
            logger.warning(duplicate.message)
            self.document.warnings.append(duplicate)

    # -- indentation -------------------------------------------------------------

    def _frame_for(self, line: ClassifiedLine) -> _Frame:
        """Close the scopes this line ends and return the frame it belongs to."""
        depth = line.depth
        member = line.control in _MEMBER_CONTROLS
        stack = self._stack
        while len(stack) > 1:
            top = stack[-1]
            if depth > top.header_depth:
                break
            if (
                depth == top.header_depth
                and member
                and top.member_depth in (None, top.header_depth)
            ):
                break
            stack.pop()

        top = stack[-1]
        if top.member_depth is None:
            top.member_depth = depth
        elif depth > top.member_depth:
            raise StructuralError("Unexpected indent", line=line.number, offset=line.start)
        elif depth < top.member_depth:
            raise StructuralError("Inconsistent dedent", line=line.number, offset=line.start)
        return top

    def _push(self, frame: _Frame, line: ClassifiedLine) -> None:
        if len(self._stack) > self._max_depth:
            raise StructuralError(
                f"Sections nested deeper than {self._max_depth} levels",
                line=line.number,
                offset=line.start,
            )
        self._stack.append(frame)

    # -- container kinds ---------------------------------------------------------

    def _as_mapping(self, frame: _Frame, line: ClassifiedLine) -> MappingNode:
        node = self.document.node(frame.node_id)
        if isinstance(node, MappingNode):
            node.provisional = False
            return node
        error = MixedBlockContent if frame.block_root else MappingKindMismatch
        raise error(
            f"'{line.control}' line inside sequence '{frame.entry.path}'",
            line=line.number,
            offset=line.start,
        )

    def _as_sequence(self, frame: _Frame, line: ClassifiedLine) -> SequenceNode:
        node = self.document.node(frame.node_id)
        if isinstance(node, SequenceNode):
            return node
        if isinstance(node, MappingNode) and node.provisional:
            sequence = SequenceNode(span=node.span, comment=node.comment)
            self.document.replace(frame.node_id, sequence)
            frame.entry.kind = EntryKind.SEQUENCE
            return sequence
        error = MixedBlockContent if frame.block_root else SequenceKindMismatch
        raise error(
            f"'{line.control}' line inside mapping '{frame.entry.path}'",
            line=line.number,
            offset=line.start,
        )

    # -- line handlers -------------------------------------------------------------

    def _pair(self, frame: _Frame, line: ClassifiedLine) -> None:
        self._as_mapping(frame, line)
        key, _ = parse_pair(line)
        (token,) = line_tokens(line)
        self._add_value(frame.node_id, frame.entry, key, token, line, comment=line.comment)

    def _item(self, frame: _Frame, line: ClassifiedLine) -> None:
        self._as_sequence(frame, line)
        (token,) = line_tokens(line)
        self._add_value(frame.node_id, frame.entry, None, token, line, comment=line.comment)

    def _section(self, frame: _Frame, line: ClassifiedLine) -> None:
        key = line.payload.strip()
        if not key and frame.block_root and not frame.section:
            # Unnamed header at block level: members attach to the content root.
            self._push(
                _Frame(
                    node_id=frame.node_id,
                    entry=frame.entry,
                    header_depth=line.depth,
                    section=True,
                    block_root=True,
                ),
                line,
            )
            return

        segment: str | None
        if key:
            segment = check_segment(key, line, what="Section name")
            self._as_mapping(frame, line)
        else:
            segment = None
            self._as_sequence(frame, line)
        span = _line_span(line)
        node_id, entry = self._attach(
            frame.node_id,
            frame.entry,
            segment,
            MappingNode(span=span, comment=line.comment),
            EntryKind.MAPPING,
            line,
            header=_line_span(line),
        )
        assert node_id is not None
        self._push(
            _Frame(
                node_id=node_id,
                entry=entry,
                header_depth=line.depth,
                section=True,
                block_root=False,
            ),
            line,
        )

    def _row(self, frame: _Frame, line: ClassifiedLine) -> None:
        self._as_sequence(frame, line)
        tokens = line_tokens(line)
        if len(tokens) == 1 and tokens[0].reference is not None:
            self._add_value(
                frame.node_id, frame.entry, None, tokens[0], line, comment=line.comment, row=True
            )
            return

        span = _line_span(line)
        row = SequenceNode(span=span, comment=line.comment, row=True, raw=line.payload, type_tag="row")
        row_id, row_entry = self._attach(
            frame.node_id, frame.entry, None, row, EntryKind.ROW, line
        )
        assert row_id is not None
        for index, token in enumerate(tokens):
            self._add_value(row_id, row_entry, None, token, line, field_index=index)

    # -- node creation -------------------------------------------------------------

    def _add_value(
        self,
        container_id: NodeId,
        container_entry: IndexEntry,
        segment: str | None,
        token: ValueToken,
        line: ClassifiedLine,
        *,
        comment: str | None = None,
        field_index: int | None = None,
        row: bool = False,
    ) -> None:
        span = _line_span(line)
        if token.reference is not None:
            ref = ReferenceNode(target=token.reference, span=span, comment=comment, row=row)
            _, entry = self._attach(
                container_id,
                container_entry,
                segment,
                ref,
                EntryKind.REFERENCE,
                line,
                target=token.reference,
                field_index=field_index,
                row_reference=row,
            )
            self.blocks.reference(token.reference, entry.path, span, ref)
            return

        scalar = ScalarNode(
            raw=token.raw, span=span, hint=token.hint, comment=comment, field_index=field_index
        )
        self._attach(
            container_id,
            container_entry,
            segment,
            scalar if self.retain_values else None,
            EntryKind.SCALAR,
            line,
            field_index=field_index,
        )

    def _attach(
        self,
        container_id: NodeId,
        container_entry: IndexEntry,
        segment: str | None,
        node: Node | None,
        kind: EntryKind,
        line: ClassifiedLine,
        **entry_fields: object,
    ) -> tuple[NodeId | None, IndexEntry]:
        """Append ``node`` to a container and record its index entry.

        ``segment`` is the key for mappings; sequences number their items.
        """
        self.document.node_count += 1
        if self.document.node_count > self._max_nodes:
            raise DocumentLimitError(
                f"Document exceeds maximum node count ({self._max_nodes:,})"
            )

        node_id = self.document.add(node) if node is not None else None
        container = self.document.node(container_id)
        if isinstance(container, MappingNode):
            assert segment is not None
            if segment in container.entries:
                raise DuplicateKeyError(
                    f"Duplicate key '{segment}' in '{container_entry.path}'",
                    line=line.number,
                    offset=line.start,
                )
            container.entries[segment] = node_id
        else:
            assert isinstance(container, SequenceNode)
            segment = str(len(container.items))
            container.items.append(node_id)

        span = node.span if node is not None else _line_span(line)
        entry = self.index.record(
            IndexEntry(
                path=f"{container_entry.path}/{segment}",
                kind=kind,
                span=span,
                node_id=node_id,
                **entry_fields,  # type: ignore[arg-type]
            )
        )
        container_entry.children.append(segment)
        for frame in self._stack:
            if line.end > frame.entry.span.end:
                frame.entry.span.end = line.end
        return node_id, entry

    # -- casting -----------------------------------------------------------------

    def _cast_all(self) -> None:
        engine = TypeEngine(self.document.types)
        for node in self.document.nodes:
            if isinstance(node, ScalarNode) and node.field_index is None:
                result = engine.cast_scalar(ValueToken(raw=node.raw, hint=node.hint))
                node.value, node.type_tag, node.errors = result.value, result.type_tag, result.issues
            elif isinstance(node, SequenceNode) and node.row:
                fields = [self.document.node(item) for item in node.items if item is not None]
                cast = engine.cast_row([_field_token(field) for field in fields])
                node.type_tag, node.errors = cast.type_tag, cast.issues
                for field, result in zip(fields, cast.fields, strict=True):
                    if isinstance(field, ScalarNode):
                        field.value = result.value
                        field.type_tag = result.type_tag
                        field.errors = result.issues


def _field_token(node: Node) -> ValueToken:
    if isinstance(node, ReferenceNode):
        return ValueToken(raw=f"& {node.target}", reference=node.target)
    assert isinstance(node, ScalarNode)
    return ValueToken(raw=node.raw, hint=node.hint)
