"""Rendering of the host's date-fns style ``preferredDateFormat`` patterns."""

from __future__ import annotations

import re
from datetime import datetime, tzinfo
from zoneinfo import ZoneInfo

from pagestamp.errors import InvalidDateFormat

_MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Quoted literal, a run of one repeated ASCII letter, or any other single character
_TOKEN_RE = re.compile(r"'(?:[^']|'')*'?|([A-Za-z])\1*|.", re.DOTALL)


def _ordinal(n: int) -> str:
    if 11 <= n % 100 <= 13:
        return f"{n}th"
    return f"{n}" + {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")


def _render_token(token: str, moment: datetime) -> str:
    match token:
        case "yyyy":
            return f"{moment.year:04d}"
        case "yy":
            return f"{moment.year % 100:02d}"
        case "y":
            return str(moment.year)
        case "MMMM":
            return _MONTHS[moment.month - 1]
        case "MMM":
            return _MONTHS[moment.month - 1][:3]
        case "MM":
            return f"{moment.month:02d}"
        case "M":
            return str(moment.month)
        case "dd":
            return f"{moment.day:02d}"
        case "d":
            return str(moment.day)
        case "EEEE":
            return _WEEKDAYS[moment.weekday()]
        case "E" | "EE" | "EEE":
            return _WEEKDAYS[moment.weekday()][:3]
    raise InvalidDateFormat(f"Unsupported date token {token!r}")


def format_date(moment: datetime, pattern: str) -> str:
    """Render ``moment`` with a date-fns pattern such as ``"MMM do, yyyy"``."""
    out: list[str] = []
    pos = 0
    while pos < len(pattern):
        # "do" is the only two-letter token mixing letters
        if pattern.startswith("do", pos):
            out.append(_ordinal(moment.day))
            pos += 2
            continue
        match = _TOKEN_RE.match(pattern, pos)
        assert match is not None  # "." matches any remaining character
        token = match.group(0)
        pos = match.end()
        if token.startswith("'"):
            if token == "''":
                out.append("'")
            else:
                out.append(token[1:].removesuffix("'").replace("''", "'"))
        elif token.isascii() and token.isalpha():
            out.append(_render_token(token, moment))
        else:
            out.append(token)
    return "".join(out)


def resolve_timezone(name: str | None) -> tzinfo | None:
    return ZoneInfo(name) if name else None


def from_epoch_millis(millis: int, tz: tzinfo | None = None) -> datetime:
    """Convert epoch millis to an aware datetime; local time when ``tz`` is None."""
    moment = datetime.fromtimestamp(millis / 1000, tz=tz)
    return moment if tz is not None else moment.astimezone()


def format_epoch_millis(millis: int, pattern: str, tz: tzinfo | None = None) -> str:
    return format_date(from_epoch_millis(millis, tz), pattern)
