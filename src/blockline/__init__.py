"""blockline: a line-oriented, streamable structured-data format."""

from blockline.models.errors import (
    BlockError,
    BlocklineError,
    Diagnostic,
    DocumentLimitError,
    MalformedPath,
    MissingPath,
    PathError,
    ScanError,
    ScanRequiredError,
    SourceSpan,
    StructuralError,
    TypeIssue,
)
from blockline.models.meta import ABSENT, NodeMeta
from blockline.service.handle import DocumentHandle, open_document
from blockline.settings import Settings, configure_logging

__all__ = [
    "ABSENT",
    "BlockError",
    "BlocklineError",
    "Diagnostic",
    "DocumentHandle",
    "DocumentLimitError",
    "MalformedPath",
    "MissingPath",
    "NodeMeta",
    "PathError",
    "ScanError",
    "ScanRequiredError",
    "Settings",
    "SourceSpan",
    "StructuralError",
    "TypeIssue",
    "configure_logging",
    "open_document",
]
