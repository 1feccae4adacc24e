"""Size string helpers."""

from __future__ import annotations

_UNITS = {'k': 1 << 10, 'm': 1 << 20, 'g': 1 << 30}


def parse_size(value: str | int) -> int:
    """Convert a size string such as ``"8M"`` or ``"512k"`` to bytes.

    A bare number is taken as bytes. Malformed values parse as 0.
    """
    if isinstance(value, int):
        return value
    text = (value or '').strip().lower()
    if not text:
        return 0
    multiplier = _UNITS.get(text[-1], 1)
    if text[-1] in _UNITS:
        text = text[:-1]
    try:
        return int(text) * multiplier
    except ValueError:
        return 0
