"""Classification of a block's raw text into one of the timestamp shapes.

Content is split into lines that keep their terminators, so joining the
parsed lines back always reproduces the input byte for byte. Each line is
tagged as a property line (``key:: value``, key without whitespace) or not.
The tags drive rewriting; whether a block mentions a timestamp key at all
is decided by the literal ``"<key>:: "`` substring on any line.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from pagestamp.models import Shape

_PROPERTY_RE = re.compile(r"^(\s*)([^\s:]+)::(?:[ \t]+(.*?))?[ \t]*$")
_LINK_VALUE_RE = re.compile(r"\[\[.+\]\]")


@dataclass(frozen=True, slots=True)
class Line:
    text: str  # without terminator
    ending: str  # "\n", "\r\n" or "" for an unterminated last line
    key: str | None = None
    value: str | None = None
    indent: str = ""

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()

    @property
    def is_property(self) -> bool:
        return self.key is not None

    def has_key(self, key: str) -> bool:
        return self.key == key

    def __str__(self) -> str:
        return self.text + self.ending


def _tag(text: str, ending: str) -> Line:
    match = _PROPERTY_RE.match(text)
    if match is None:
        return Line(text=text, ending=ending)
    indent, key, value = match.groups()
    return Line(text=text, ending=ending, key=key.strip(), value=value or "", indent=indent)


def parse_lines(content: str) -> list[Line]:
    lines: list[Line] = []
    parts = content.split("\n")
    for part in parts[:-1]:
        if part.endswith("\r"):
            lines.append(_tag(part[:-1], "\r\n"))
        else:
            lines.append(_tag(part, "\n"))
    if parts[-1]:
        lines.append(_tag(parts[-1], ""))
    return lines


def render_lines(lines: list[Line]) -> str:
    return "".join(str(line) for line in lines)


def find_line(lines: list[Line], key: str) -> int | None:
    """Index of the first line carrying ``key``, or None."""
    for index, line in enumerate(lines):
        if line.has_key(key):
            return index
    return None


def mentions_key(lines: list[Line], key: str) -> bool:
    """Any line contains the literal ``"<key>:: "`` or carries ``key`` as its property."""
    needle = f"{key}:: "
    return any(needle in line.text or line.has_key(key) for line in lines)


def is_property_block(lines: list[Line]) -> bool:
    non_blank = [line for line in lines if not line.is_blank]
    return bool(non_blank) and all(line.is_property for line in non_blank)


def is_current(lines: list[Line], create_key: str, update_key: str, updated: str) -> bool:
    """Both stamps are present and the updated value is exactly ``[[updated]]``."""
    create_at = find_line(lines, create_key)
    update_at = find_line(lines, update_key)
    if create_at is None or update_at is None:
        return False
    if not _LINK_VALUE_RE.fullmatch(lines[create_at].value or ""):
        return False
    return lines[update_at].value == f"[[{updated}]]"


def classify_lines(lines: list[Line], create_key: str, update_key: str, updated: str) -> Shape:
    if is_current(lines, create_key, update_key, updated):
        return Shape.BOTH_PRESENT_AND_CURRENT
    if mentions_key(lines, update_key) or mentions_key(lines, create_key):
        return Shape.HAS_EITHER_PROPERTY
    if is_property_block(lines):
        return Shape.IS_PROPERTY_BLOCK
    return Shape.PLAIN_BLOCK


def classify(content: str, create_key: str, update_key: str, updated: str) -> Shape:
    """Classify ``content`` given the property names and the formatted updated date."""
    return classify_lines(parse_lines(content), create_key, update_key, updated)
