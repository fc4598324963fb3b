"""Mode-agnostic query contract over a document's blocks and containers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar, get_args

from blockline.access.paths import parse_path
from blockline.index.offsets import EntryKind
from blockline.models.errors import MissingPath
from blockline.models.meta import ABSENT, Introspect, NodeMeta
from blockline.models.nodes import Block

logger = logging.getLogger("blockline.access")

H = TypeVar("H")

_INTROSPECT = frozenset(get_args(Introspect))


class AccessBackend(ABC, Generic[H]):
    """Serves ``get``/``has``/``require``/``meta`` for one document.

    Path walking, reference following and container materialization live
    here; backends only say how to step between handles and how to describe
    a single node. ``H`` is the backend's handle type.
    """

    def __init__(self, blocks: dict[str, Block]) -> None:
        self.blocks = blocks

    # -- backend primitives ----------------------------------------------------

    @abstractmethod
    def root(self, block_id: str) -> H | None:
        """Content root of a block."""

    @abstractmethod
    def kind(self, handle: H) -> EntryKind: ...

    @abstractmethod
    def child(self, handle: H, segment: str) -> H | None: ...

    @abstractmethod
    def segments(self, handle: H) -> list[str]:
        """Ordered child segments of a container."""

    @abstractmethod
    def target(self, handle: H) -> tuple[str, bool]:
        """Target block id of a reference and whether it stands for a whole row."""

    @abstractmethod
    def describe(self, handle: H) -> tuple[Any, NodeMeta]:
        """Value and metadata of a scalar or row (row values exclude references)."""

    @abstractmethod
    def container_meta(self, handle: H) -> NodeMeta:
        """Metadata of a mapping or sequence."""

    def resolved(self, handle: H, target: str) -> bool:
        """Whether the reference at ``handle`` found its target block."""
        block = self.blocks.get(target)
        return block is not None and block.resolvable

    # -- queries ---------------------------------------------------------------

    def get(self, path: str, introspect: Introspect | None = None) -> Any:
        if introspect is not None and introspect not in _INTROSPECT:
            raise ValueError(
                f"introspect must be one of {sorted(_INTROSPECT)}, got {introspect!r}"
            )
        segments = parse_path(path)
        handle = self._locate(segments)
        if handle is None:
            return ABSENT
        if introspect is not None:
            return self._meta(handle).pick(introspect)
        return self._materialize(handle, {segments[0]})

    def has(self, path: str) -> bool:
        return self._locate(parse_path(path)) is not None

    def require(self, path: str, introspect: Introspect | None = None) -> Any:
        value = self.get(path, introspect)
        if value is ABSENT:
            raise MissingPath(path)
        return value

    def meta(self, path: str) -> NodeMeta | Any:
        handle = self._locate(parse_path(path))
        if handle is None:
            return ABSENT
        return self._meta(handle)

    def children(self, path: str) -> list[str] | Any:
        handle = self._locate(parse_path(path))
        if handle is None or self.kind(handle) is EntryKind.SCALAR:
            return ABSENT
        return list(self.segments(handle))

    # -- internals ---------------------------------------------------------------

    def _locate(self, segments: list[str]) -> H | None:
        block = self.blocks.get(segments[0])
        if block is None or not block.kind.holds_content:
            return None
        handle = self.root(block.id)
        for segment in segments[1:]:
            handle, _ = self._follow(handle)
            if handle is None:
                return None
            handle = self.child(handle, segment)
            if handle is None:
                return None
        handle, _ = self._follow(handle)
        return handle

    def _follow(self, handle: H | None, active: set[str] | None = None) -> tuple[H | None, str | None]:
        """Resolve a reference handle to its target; other handles pass through."""
        if handle is None or self.kind(handle) is not EntryKind.REFERENCE:
            return handle, None
        target, row = self.target(handle)
        if not self.resolved(handle, target):
            return None, target
        if active is not None and target in active:
            logger.debug("Cyclic reference to '%s' materializes as absent", target)
            return None, target
        resolved = self.root(target)
        if row and resolved is not None:
            resolved = self._single_row(resolved)
        return resolved, target

    def _single_row(self, handle: H) -> H:
        """A row reference to a block holding exactly one row stands for that row."""
        if self.kind(handle) is not EntryKind.SEQUENCE:
            return handle
        if self.segments(handle) != ["0"]:
            return handle
        only = self.child(handle, "0")
        if only is not None and self.kind(only) is EntryKind.ROW:
            return only
        return handle

    def _meta(self, handle: H) -> NodeMeta:
        if self.kind(handle) in (EntryKind.SCALAR, EntryKind.ROW):
            return self.describe(handle)[1]
        return self.container_meta(handle)

    def _materialize(self, handle: H, active: set[str]) -> Any:
        kind = self.kind(handle)
        if kind is EntryKind.REFERENCE:
            resolved, target = self._follow(handle, active)
            if resolved is None:
                return ABSENT
            assert target is not None
            return self._materialize(resolved, active | {target})
        if kind is EntryKind.SCALAR:
            return self.describe(handle)[0]
        if kind is EntryKind.MAPPING:
            return {
                segment: self._materialize_child(handle, segment, active)
                for segment in self.segments(handle)
            }
        if kind is EntryKind.ROW:
            values = list(self.describe(handle)[0])
            for position, segment in enumerate(self.segments(handle)):
                item = self.child(handle, segment)
                if item is not None and self.kind(item) is EntryKind.REFERENCE:
                    values[position] = self._materialize(item, active)
            return values
        return [
            self._materialize_child(handle, segment, active) for segment in self.segments(handle)
        ]

    def _materialize_child(self, handle: H, segment: str, active: set[str]) -> Any:
        item = self.child(handle, segment)
        if item is None:
            return ABSENT
        return self._materialize(item, active)
