"""Data model for blockline documents."""

from blockline.models.errors import (
    BlockError,
    BlocklineError,
    Diagnostic,
    DocumentLimitError,
    DuplicateClose,
    DuplicateKeyError,
    DuplicateOpenBlock,
    MalformedPath,
    MappingKindMismatch,
    MissingPath,
    MixedBlockContent,
    PathError,
    ScanError,
    ScanRequiredError,
    SequenceKindMismatch,
    SourceSpan,
    StructuralError,
    TypeIssue,
    UnknownCloseId,
)
from blockline.models.meta import ABSENT, NodeMeta
from blockline.models.nodes import (
    Block,
    BlockKind,
    MappingNode,
    ReferenceNode,
    ResolutionState,
    ScalarNode,
    SequenceNode,
)

__all__ = [
    "ABSENT",
    "Block",
    "BlockError",
    "BlockKind",
    "BlocklineError",
    "Diagnostic",
    "DocumentLimitError",
    "DuplicateClose",
    "DuplicateKeyError",
    "DuplicateOpenBlock",
    "MalformedPath",
    "MappingKindMismatch",
    "MappingNode",
    "MissingPath",
    "MixedBlockContent",
    "NodeMeta",
    "PathError",
    "ReferenceNode",
    "ResolutionState",
    "ScalarNode",
    "ScanError",
    "ScanRequiredError",
    "SequenceKindMismatch",
    "SequenceNode",
    "SourceSpan",
    "StructuralError",
    "TypeIssue",
    "UnknownCloseId",
]
