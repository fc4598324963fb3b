"""Block & reference management: open/close/reopen bookkeeping and id resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from blockline.models.document import Document
from blockline.models.errors import (
    Diagnostic,
    DuplicateClose,
    DuplicateOpenBlock,
    SourceSpan,
    UnknownCloseId,
)
from blockline.models.nodes import MAIN_BLOCK, Block, BlockKind, ReferenceNode, ResolutionState

logger = logging.getLogger("blockline.blocks")


@dataclass
class _PendingReference:
    target: str
    path: str
    span: SourceSpan
    node: ReferenceNode | None


class BlockManager:
    """Tracks which blocks are open and resolves ``& id`` placeholders.

    ``main`` is open implicitly from the start of the stream; the first
    explicit ``> main`` adopts it. Content lines go to the most recently
    opened block that is still open.
    """

    def __init__(self, document: Document) -> None:
        self.document = document
        self._open: list[str] = []
        self._pending: dict[str, list[_PendingReference]] = {}
        main = Block(id=MAIN_BLOCK, kind=BlockKind.MAIN, first_open_start=0, implicit=True)
        document.blocks[MAIN_BLOCK] = main
        self._open.append(MAIN_BLOCK)

    @property
    def current(self) -> Block | None:
        if not self._open:
            return None
        return self.document.blocks[self._open[-1]]

    def open(self, block_id: str, line: int, offset: int) -> tuple[Block, bool]:
        """Open or reopen ``block_id``. Returns the block and whether it is new."""
        block = self.document.blocks.get(block_id)
        if block is None:
            block = Block(
                id=block_id,
                kind=BlockKind.for_id(block_id),
                first_open_start=offset,
                first_open_line=line,
            )
            self.document.blocks[block_id] = block
            self._open.append(block_id)
            logger.debug("Opened block '%s' at line %d", block_id, line)
            return block, True

        if block.is_open:
            if block.implicit:
                block.implicit = False
                return block, False
            raise DuplicateOpenBlock(
                f"Block '{block_id}' is already open", line=line, offset=offset
            )

        block.is_open = True
        self._open.append(block_id)
        logger.debug("Reopened block '%s' at line %d", block_id, line)
        return block, False

    def close(self, block_id: str, line: int, offset: int) -> Block:
        block = self.document.blocks.get(block_id)
        if block is None:
            raise UnknownCloseId(
                f"Cannot close '{block_id}': no such block was opened", line=line, offset=offset
            )
        if not block.is_open:
            raise DuplicateClose(
                f"Block '{block_id}' is already closed", line=line, offset=offset
            )
        block.is_open = False
        block.implicit = False
        block.closed_once = True
        self._open.remove(block_id)
        logger.debug("Closed block '%s' at line %d", block_id, line)
        self._resolve_pending(block)
        return block

    def reference(
        self, target: str, path: str, span: SourceSpan, node: ReferenceNode | None = None
    ) -> None:
        """Register a placeholder; it resolves now if the target was already closed."""
        block = self.document.blocks.get(target)
        if block is not None and block.resolvable:
            if node is not None:
                node.state = ResolutionState.RESOLVED
            return
        self._pending.setdefault(target, []).append(_PendingReference(target, path, span, node))

    def finish(self) -> list[Diagnostic]:
        """End of stream: close ``main`` silently, flag everything else still open."""
        warnings: list[Diagnostic] = []
        main = self.document.blocks[MAIN_BLOCK]
        if main.is_open:
            main.is_open = False
            main.closed_once = True
            self._open.remove(MAIN_BLOCK)
            self._resolve_pending(main)

        for block_id in list(self._open):
            block = self.document.blocks[block_id]
            logger.warning("Block '%s' was never closed", block_id)
            warnings.append(
                Diagnostic(
                    code="UNCLOSED_BLOCK",
                    message=f"Block '{block_id}' is still open at end of stream",
                    path=block_id,
                    span=SourceSpan(
                        start=block.first_open_start,
                        end=block.first_open_start,
                        line=block.first_open_line,
                    ),
                )
            )

        for target, pending in self._pending.items():
            for ref in pending:
                logger.warning("Reference at '%s' to '%s' is unresolved", ref.path, target)
                warnings.append(
                    Diagnostic(
                        code="UNRESOLVED_REFERENCE",
                        message=f"Reference to '{target}' could not be resolved",
                        path=ref.path,
                        span=ref.span,
                    )
                )
        self._pending.clear()
        return warnings

    def _resolve_pending(self, block: Block) -> None:
        if not block.resolvable:
            return
        for ref in self._pending.pop(block.id, []):
            if ref.node is not None:
                ref.node.state = ResolutionState.RESOLVED
