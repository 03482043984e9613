"""Parsing and rendering of compact duration strings such as "10m", "1h30m" or "500ms"."""
import re
from datetime import timedelta

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """
    Parse a duration made of number+unit components, e.g. "1h30m", "1.5h", "45s".

    Raises:
        ValueError: when the string is empty or contains anything else
    """
    text = (value or "").strip()
    if not text:
        raise ValueError("empty duration")

    sign = 1
    if text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text == "0":
        return timedelta(0)

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if not match:
            raise ValueError(f"invalid duration '{value}'")
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    return timedelta(seconds=sign * total)


def format_duration(duration: timedelta) -> str:
    """Render a timedelta as "10m0s", "1h30m0s", "45s" or "500ms"."""
    total = duration.total_seconds()
    if total == 0:
        return "0s"

    sign = "-" if total < 0 else ""
    total = abs(total)

    if total < 1:
        if total >= 1e-3:
            return f"{sign}{round(total * 1e3, 6):g}ms"
        if total >= 1e-6:
            return f"{sign}{round(total * 1e6, 3):g}µs"
        return f"{sign}{round(total * 1e9):g}ns"

    hours = int(total // 3600)
    minutes = int((total - hours * 3600) // 60)
    seconds = round(total - hours * 3600 - minutes * 60, 9)

    parts = [sign]
    if hours:
        parts.append(f"{hours}h")
    if hours or minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{seconds:g}s")
    return "".join(parts)
