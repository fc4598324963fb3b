"""Path-based queries over loaded trees or streaming offset indexes."""

from blockline.access.base import AccessBackend
from blockline.access.loaded import LoadedAccess
from blockline.access.paths import parse_path, sequence_index
from blockline.access.streaming import StreamingAccess

__all__ = [
    "AccessBackend",
    "LoadedAccess",
    "StreamingAccess",
    "parse_path",
    "sequence_index",
]
