"""Line classification and source reading."""

from blockline.parser.lines import ClassifiedLine, Control, ValueToken, classify_line
from blockline.parser.loader import RawLine, Source, SourceReader

__all__ = [
    "ClassifiedLine",
    "Control",
    "RawLine",
    "Source",
    "SourceReader",
    "ValueToken",
    "classify_line",
]
