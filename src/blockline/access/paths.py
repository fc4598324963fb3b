"""Path syntax: ``blockId/key/key/index``, slash-delimited."""

from __future__ import annotations

from blockline.models.errors import MalformedPath


def parse_path(path: str) -> list[str]:
    """Split a path into segments; the first one is a block id."""
    if not isinstance(path, str):
        raise MalformedPath(f"Path must be a string, got {type(path).__name__}")
    if not path.strip():
        raise MalformedPath("Path is empty")
    segments = path.split("/")
    if any(not segment for segment in segments):
        raise MalformedPath(f"Path '{path}' has an empty segment")
    if any(ch.isspace() for ch in segments[0]):
        raise MalformedPath(f"Block id '{segments[0]}' in path '{path}' contains whitespace")
    return segments


def sequence_index(segment: str) -> int | None:
    """Numeric segments index into sequences; ``"01"`` and ``"-1"`` do not."""
    if not segment.isascii() or not segment.isdigit():
        return None
    if len(segment) > 1 and segment[0] == "0":
        return None
    return int(segment)
