"""Path-to-byte-span index built by a single forward scan."""

from blockline.index.offsets import EntryKind, IndexEntry, PathIndex

__all__ = ["EntryKind", "IndexEntry", "PathIndex"]
