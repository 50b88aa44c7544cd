"""Answer values and the coercion rules shared by every consumer.

Answers are dynamically typed but restricted to four shapes: strings,
numbers, booleans and lists of strings.  ``stringify`` and ``to_bool`` are the
only two places that decide how such a value compares or tests as truthy.
"""

from __future__ import annotations

from typing import Any, Union

AnswerValue = Union[str, int, float, bool, list[str]]

TRUTHY_WORDS = frozenset({"true", "yes", "y", "1"})


def stringify(value: Any) -> str:
    """Render a value the way comparisons see it.

    Booleans are lower-case, integral floats drop the fractional part and
    lists are space-joined inside brackets, so ``8080``, ``8080.0`` and
    ``"8080"`` all compare equal.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(stringify(item) for item in value) + "]"
    return str(value)


def to_bool(value: Any) -> bool:
    """Coerce an answer to a boolean for bare-field checks.

    Zero is falsy for every numeric type.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_WORDS
    if isinstance(value, (int, float)):
        return value != 0
    return False


def is_empty(value: Any) -> bool:
    """Return ``True`` for ``None``, empty strings and empty lists."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False
