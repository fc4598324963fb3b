"""Document handles: open a source in loaded or streaming mode and query it."""

from __future__ import annotations

import logging
import threading
from enum import StrEnum
from typing import Any

from blockline.access.base import AccessBackend
from blockline.access.loaded import LoadedAccess
from blockline.access.streaming import StreamingAccess
from blockline.casting.engine import TypeEngine
from blockline.index.offsets import PathIndex
from blockline.models.document import Document
from blockline.models.errors import BlocklineError, Diagnostic, ScanError, ScanRequiredError
from blockline.models.meta import Introspect, NodeMeta
from blockline.parser.loader import Source, SourceReader
from blockline.parser.structure import StructuralParser
from blockline.settings import Mode, Settings

logger = logging.getLogger("blockline.parser")

_MODES: tuple[Mode, ...] = ("loaded", "streaming")


class ScanState(StrEnum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"
    CLOSED = "closed"


class DocumentHandle:
    """One document over one immutable source.

    Loaded handles parse eagerly and answer queries from the node tree.
    Streaming handles must be ``scan()``-ned once; queries then re-read the
    recorded byte spans. All state is per handle, so independent handles
    over the same source can scan concurrently. ``scan()`` on one handle is
    serialized by a ``threading.Lock`` and runs at most once.
    """

    def __init__(self, source: Source, mode: Mode, settings: Settings) -> None:
        if mode not in _MODES:
            raise ValueError(f"mode must be one of {_MODES}, got {mode!r}")
        self.mode: Mode = mode
        self.settings = settings
        self._reader = SourceReader(
            source, encoding=settings.encoding, max_size=settings.max_document_size
        )
        self._lock = threading.Lock()
        self._state = ScanState.PENDING
        self._failure: BlocklineError | None = None
        self._document: Document | None = None
        self._index: PathIndex | None = None
        self._backend: AccessBackend[Any] | None = None
        if mode == "loaded":
            self._parse(retain_values=True)

    # -- lifecycle ---------------------------------------------------------------

    def scan(self) -> PathIndex:
        """Run the single forward pass of a streaming document.

        A second call returns the existing index without re-scanning. After a
        failed scan every further call raises ``ScanError``.
        """
        if self.mode != "streaming":
            raise ScanError("scan() is only available in streaming mode")
        with self._lock:
            if self._state is ScanState.DONE:
                logger.debug("scan() called again on %s; index unchanged", self._reader.name)
                assert self._index is not None
                return self._index
            if self._state is ScanState.CLOSED:
                raise ScanError("Document has been closed")
            if self._state is ScanState.FAILED:
                raise ScanError(f"A previous scan failed: {self._failure}") from self._failure
            self._parse(retain_values=False)
            assert self._index is not None
            return self._index

    def close(self) -> None:
        """Release the tree and index. Further queries raise ``ScanRequiredError``."""
        with self._lock:
            self._document = None
            self._index = None
            self._backend = None
            self._state = ScanState.CLOSED

    def __enter__(self) -> DocumentHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _parse(self, retain_values: bool) -> None:
        logger.info("Parsing %s (%s mode)", self._reader.name, self.mode)
        parser = StructuralParser(retain_values=retain_values, settings=self.settings)
        try:
            document = parser.parse(self._reader.lines())
        except BlocklineError as exc:
            self._state = ScanState.FAILED
            self._failure = exc
            raise

        index = parser.index
        if retain_values:
            self._backend = LoadedAccess(document)
        else:
            document.release_nodes()
            index.forget_nodes()
            self._backend = StreamingAccess(
                index, document.blocks, TypeEngine(document.types), self._reader
            )
        self._document = document
        self._index = index
        self._state = ScanState.DONE

    # -- state -------------------------------------------------------------------

    @property
    def scanned(self) -> bool:
        return self._state is ScanState.DONE

    @property
    def index(self) -> PathIndex:
        self._ready()
        assert self._index is not None
        return self._index

    @property
    def document(self) -> Document:
        self._ready()
        assert self._document is not None
        return self._document

    @property
    def warnings(self) -> list[Diagnostic]:
        """Non-fatal diagnostics: unresolved references, unclosed blocks, duplicate types."""
        return list(self.document.warnings)

    def _ready(self) -> AccessBackend[Any]:
        if self._backend is None:
            if self._state is ScanState.CLOSED:
                raise ScanRequiredError("Document has been closed")
            raise ScanRequiredError("Call scan() before querying a streaming document")
        return self._backend

    # -- queries -----------------------------------------------------------------

    def get(self, path: str, introspect: Introspect | None = None) -> Any:
        """Value at ``path``, or one metadata field; ``ABSENT`` when unavailable."""
        return self._ready().get(path, introspect)

    def has(self, path: str) -> bool:
        return self._ready().has(path)

    def require(self, path: str, introspect: Introspect | None = None) -> Any:
        """Like ``get`` but raises ``MissingPath`` instead of returning ``ABSENT``."""
        return self._ready().require(path, introspect)

    def meta(self, path: str) -> NodeMeta | Any:
        return self._ready().meta(path)

    def children(self, path: str) -> list[str] | Any:
        """Ordered child segments of the container at ``path``."""
        return self._ready().children(path)


def open_document(
    source: Source, mode: Mode | None = None, *, settings: Settings | None = None
) -> DocumentHandle:
    """Open ``source`` (bytes, document text, ``Path`` or binary file object)."""
    settings = settings or Settings()
    return DocumentHandle(source, mode or settings.default_mode, settings)
