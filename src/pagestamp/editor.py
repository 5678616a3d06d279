"""Targeted text transforms for each classified shape.

Only the lines being written are touched; every other line, its order and
its terminator survive unchanged.
"""

from __future__ import annotations

from pagestamp.analyzer import Line, find_line, parse_lines, render_lines
from pagestamp.models import Edit, InsertBefore, Replace, Shape, Skip, Stamp


def _line_break(lines: list[Line]) -> str:
    """CRLF when the block already uses it, LF otherwise."""
    return "\r\n" if any(line.ending == "\r\n" for line in lines) else "\n"


def _append(lines: list[Line], text: str) -> None:
    newline = _line_break(lines)
    if lines and not lines[-1].ending:
        last = lines[-1]
        lines[-1] = Line(
            text=last.text, ending=newline, key=last.key, value=last.value, indent=last.indent
        )
    lines.append(Line(text=text, ending=newline))


def patch(content: str, stamp: Stamp) -> str:
    """Rewrite the updated line (or add it) and add the created line if missing."""
    lines = parse_lines(content)

    update_at = find_line(lines, stamp.update_key)
    if update_at is None:
        _append(lines, stamp.updated_line)
    else:
        old = lines[update_at]
        lines[update_at] = Line(
            text=old.indent + stamp.updated_line,
            ending=old.ending,
            key=stamp.update_key,
            value=f"[[{stamp.updated}]]",
            indent=old.indent,
        )

    if find_line(lines, stamp.create_key) is None:
        _append(lines, stamp.created_line)

    return render_lines(lines)


def append(content: str, stamp: Stamp) -> str:
    lines = parse_lines(content)
    _append(lines, stamp.created_line)
    _append(lines, stamp.updated_line)
    return render_lines(lines)


def new_block(stamp: Stamp) -> str:
    return f"{stamp.created_line}\n{stamp.updated_line}\n"


def plan_edit(shape: Shape, content: str, stamp: Stamp) -> Edit:
    match shape:
        case Shape.BOTH_PRESENT_AND_CURRENT:
            return Skip()
        case Shape.HAS_EITHER_PROPERTY:
            return Replace(content=patch(content, stamp))
        case Shape.IS_PROPERTY_BLOCK:
            return Replace(content=append(content, stamp))
        case Shape.PLAIN_BLOCK:
            return InsertBefore(content=new_block(stamp))
    raise ValueError(f"Unknown shape: {shape!r}")
