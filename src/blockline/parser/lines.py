"""Line classifier: indentation depth, control character, payload, inline comment."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from blockline.models.errors import StructuralError


class Control(StrEnum):
    PAIR = "="
    SECTION = "@"
    MEMBER = ":"
    ROW = ","
    ITEM = "-"
    REFERENCE = "&"
    OPEN = ">"
    CLOSE = "<"


_CONTROLS = frozenset(c.value for c in Control)

# Control characters that are meaningless without a payload.
_NEEDS_PAYLOAD = frozenset({Control.PAIR, Control.MEMBER, Control.REFERENCE})

_PAIR_RE = re.compile(r"^(?P<key>.+?)\s+=(?:\s+(?P<value>.*)|\s*)$")
_HINT_RE = re.compile(r"^\((?P<hint>[A-Za-z_][\w.-]*)\)(?:\s+(?P<rest>.*)|\s*)$")
_ID_RE = re.compile(r"^[^\s/]+$")

_ESCAPES = {
    "\\": "\\",
    "n": "\n",
    "#": "#",
    "(": "(",
    ",": ",",
    "&": "&",
}


@dataclass(frozen=True, slots=True)
class ClassifiedLine:
    """One source line split into its grammatical parts.

    ``start``/``end`` are byte offsets of the line without its newline.
    ``control`` is ``None`` for blank, comment-only and bare-text lines.
    """

    number: int
    start: int
    end: int
    depth: int
    control: Control | None
    payload: str
    comment: str | None

    @property
    def is_blank(self) -> bool:
        return self.control is None and not self.payload

    @property
    def text(self) -> str:
        """Payload with the control character re-attached (for error messages)."""
        if self.control is None:
            return self.payload
        return f"{self.control.value} {self.payload}".rstrip()


@dataclass(frozen=True, slots=True)
class ValueToken:
    """A value position: an optional ``(type)`` hint, raw text, or a ``& id`` reference."""

    raw: str
    hint: str | None = None
    reference: str | None = None

    @property
    def text(self) -> str:
        return unescape(self.raw)


def split_comment(text: str) -> tuple[str, str | None]:
    """Split off an inline comment: an unescaped ``#`` at the start or after whitespace."""
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "#" and (i == 0 or text[i - 1] in " \t"):
            return text[:i].rstrip(), text[i + 1 :].strip()
        i += 1
    return text.rstrip(), None


def classify_line(text: str, number: int = 1, start: int = 0, end: int | None = None) -> ClassifiedLine:
    """Classify a decoded line (newline already removed)."""
    if end is None:
        end = start + len(text.encode("utf-8"))
    text = text.rstrip("\r")
    stripped = text.lstrip(" \t")
    depth = len(text) - len(stripped)

    if not stripped.strip():
        return ClassifiedLine(number, start, end, depth, None, "", None)

    head = stripped[0]
    if head not in _CONTROLS:
        payload, comment = split_comment(stripped)
        return ClassifiedLine(number, start, end, depth, None, payload, comment)

    control = Control(head)
    rest = stripped[1:]
    if rest and rest[0] not in " \t":
        raise StructuralError(
            f"Control character '{head}' must be followed by a space: {stripped!r}",
            line=number,
            offset=start,
        )
    payload, comment = split_comment(rest.lstrip(" \t") if rest else "")
    if not payload and control in _NEEDS_PAYLOAD:
        raise StructuralError(
            f"Control character '{head}' requires a payload",
            line=number,
            offset=start,
        )
    return ClassifiedLine(number, start, end, depth, control, payload, comment)


def parse_pair(line: ClassifiedLine) -> tuple[str, str]:
    """Split a ``key = value`` payload. The value may be empty."""
    match = _PAIR_RE.match(line.payload)
    if match is None:
        raise StructuralError(
            f"Expected 'key = value', got {line.text!r}", line=line.number, offset=line.start
        )
    key = match.group("key").strip()
    check_segment(key, line, what="Key")
    return key, match.group("value") or ""


def check_segment(name: str, line: ClassifiedLine, what: str = "Id") -> str:
    if not name or "/" in name:
        raise StructuralError(
            f"{what} {name!r} must be non-empty and must not contain '/'",
            line=line.number,
            offset=line.start,
        )
    return name


def check_block_id(name: str, line: ClassifiedLine) -> str:
    if not _ID_RE.match(name):
        raise StructuralError(
            f"Invalid block id {name!r}", line=line.number, offset=line.start
        )
    return name


def parse_value(text: str, line: ClassifiedLine | None = None) -> ValueToken:
    """Interpret one value position: reference, hinted scalar, or plain scalar.

    A value opening with ``&`` must name a valid block id; write ``\\&`` for
    literal text.
    """
    text = text.strip()
    if text == "&" or text.startswith("& "):
        target = text[1:].strip()
        if not _ID_RE.match(target):
            raise StructuralError(
                f"Invalid reference id {target!r}",
                line=line.number if line is not None else None,
                offset=line.start if line is not None else None,
            )
        return ValueToken(raw=text, reference=target)
    match = _HINT_RE.match(text)
    if match is not None:
        return ValueToken(raw=match.group("rest") or "", hint=match.group("hint"))
    return ValueToken(raw=text)


def split_fields(payload: str) -> list[str]:
    """Split a row payload on unescaped commas."""
    fields: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(payload):
        ch = payload[i]
        if ch == "\\" and i + 1 < len(payload):
            current.append(payload[i : i + 2])
            i += 2
            continue
        if ch == ",":
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current).strip())
    return fields


def unescape(raw: str) -> str:
    if "\\" not in raw:
        return raw
    out: list[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "\\" and i + 1 < len(raw) and raw[i + 1] in _ESCAPES:
            out.append(_ESCAPES[raw[i + 1]])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def line_tokens(line: ClassifiedLine) -> list[ValueToken]:
    """Value tokens of a content line, in field order.

    Parsing and streaming re-reads both go through here so that a value read
    back from its span is interpreted exactly as it was during the scan.
    """
    if line.control in (Control.PAIR, Control.MEMBER):
        _, value = parse_pair(line)
        return [parse_value(value, line)]
    if line.control is Control.ITEM:
        return [parse_value(line.payload, line)]
    if line.control is Control.REFERENCE:
        return [parse_value(f"& {line.payload}", line)]
    if line.control is Control.ROW:
        return [parse_value(part, line) for part in split_fields(line.payload)]
    raise StructuralError(
        f"Line carries no value: {line.text!r}", line=line.number, offset=line.start
    )
