"""Text helpers: zero padding, sub-second fractions and collection rendering."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

#: Maximum number of items rendered by :func:`format_range` before it elides the rest.
RANGE_OUTPUT_LENGTH_LIMIT = 256

_NANOS_PER_SECOND = 1_000_000_000
_ELISION = " ... <other elements>"


def _require_unsigned(n: int) -> None:
    if n < 0:
        raise ValueError(f"expected a non-negative integer, got {n}")


def count_digits(n: int) -> int:
    """Return the number of decimal digits in a non-negative integer."""
    _require_unsigned(n)
    return len(str(n))


def pad2(n: int) -> str:
    """Render ``n`` with at least two digits, zero padded."""
    if 0 <= n < 100:
        return f"{n:02d}"
    return format(n, "02")


def pad_uint(n: int, width: int) -> str:
    """Render a non-negative integer zero padded to ``width`` digits."""
    _require_unsigned(n)
    return str(n).rjust(width, "0")


def pad3(n: int) -> str:
    """Render a non-negative integer zero padded to three digits."""
    return pad_uint(n, 3)


def pad6(n: int) -> str:
    """Render a non-negative integer zero padded to six digits."""
    return pad_uint(n, 6)


def pad9(n: int) -> str:
    """Render a non-negative integer zero padded to nine digits."""
    return pad_uint(n, 9)


def _trunc_div(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a >= 0) == (b > 0) else -quotient


def time_fraction(timestamp_ns: int, unit_ns: int) -> int:
    """Return the part of ``timestamp_ns`` below one second, counted in ``unit_ns`` units."""
    if unit_ns <= 0:
        raise ValueError("unit_ns must be positive")
    whole_seconds = _trunc_div(timestamp_ns, _NANOS_PER_SECOND)
    return _trunc_div(timestamp_ns, unit_ns) - _trunc_div(
        whole_seconds * _NANOS_PER_SECOND, unit_ns
    )


def _is_collection(value: Any) -> bool:
    return isinstance(value, Iterable) and not isinstance(value, (str, bytes, bytearray))


def _format_item(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, tuple):
        return format_tuple(value)
    if _is_collection(value):
        return format_range(value)
    return format(value)


def _format_quoted(value: Any) -> str:
    if isinstance(value, str):
        return f'"{value}"'
    return _format_item(value)


def format_range(values: Iterable[Any]) -> str:
    """Render a collection as ``{a, b, ...}``, quoting strings and eliding long tails."""
    items = values.items() if isinstance(values, Mapping) else values
    parts: list[str] = []
    for count, value in enumerate(items, start=1):
        parts.append(_format_quoted(value))
        if count > RANGE_OUTPUT_LENGTH_LIMIT:
            parts[-1] += _ELISION
            break
    return "{" + ", ".join(parts) + "}"


def format_tuple(values: Iterable[Any]) -> str:
    """Render a fixed group of values as ``(a, b, ...)``, quoting strings."""
    return "(" + ", ".join(_format_quoted(value) for value in values) + ")"


def join(values: Iterable[Any], sep: str) -> str:
    """Render each value plainly and join them with ``sep``."""
    return sep.join(_format_item(value) for value in values)