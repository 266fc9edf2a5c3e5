from __future__ import annotations

from typing import Any


class IndexValidationError(ValueError):
    """Raised when a submitted index is not usable."""


def parse_index(raw: Any, *, max_index: int | None = None) -> int:
    """Parse a submitted index (int or decimal string) into a non-negative int.

    The dispatcher passes `max_index` to bound the exponential compute cost;
    workers parse without an upper bound.
    """

    # bool is an int subclass; {"index": true} is not an index.
    if isinstance(raw, bool):
        raise IndexValidationError("Index must be a non-negative integer")

    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str):
        text = raw.strip()
        if not (text.isascii() and text.isdigit()):
            raise IndexValidationError("Index must be a non-negative integer")
        value = int(text)
    else:
        raise IndexValidationError("Index must be a non-negative integer")

    if value < 0:
        raise IndexValidationError("Index must be a non-negative integer")
    if max_index is not None and value > max_index:
        raise IndexValidationError("Index too high!")
    return value
