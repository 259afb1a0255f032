"""Join-key normalization and cell value reduction.

Keys are plain strings tagged with their kind (``num:``, ``str:``, ``bool:``, ``json:``)
so that values of different Python types only compare equal when they mean the same
thing for a join. ``None`` is never a key: null never matches, not even null.
"""
from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Optional, Union

from datamerge.util import _json_or_none, _safe_json

CellValue = Union[None, bool, int, float, str]

# Plain decimal digits only: no thousands separators, no exponent, no locale.
_NUMERIC_TEXT = re.compile(r"-?[0-9]+(\.[0-9]+)?")

# Below the 4300-digit int/str conversion limit of current interpreters.
_MAX_DECIMAL_DIGITS = 4000
_MAX_DECIMAL_BITS = 13000


def _non_finite_text(n: float) -> str:
    if math.isnan(n):
        return "NaN"
    return "Infinity" if n > 0 else "-Infinity"


def _format_number(n: Union[int, float, Decimal]) -> str:
    """Canonical text for a finite number; integral values drop the fractional part."""
    if isinstance(n, int):
        # str() refuses ints past the interpreter's digit limit; hex has none.
        return str(n) if n.bit_length() <= _MAX_DECIMAL_BITS else hex(n)
    if isinstance(n, Decimal):
        if n == n.to_integral_value():
            if n.adjusted() >= _MAX_DECIMAL_DIGITS:
                return str(n.normalize())
            return str(int(n))
        n = float(n)
    if n.is_integer():
        return str(int(n))
    return repr(n)


def _parse_numeric_text(s: str) -> Optional[Union[int, float]]:
    trimmed = s.strip()
    if not _NUMERIC_TEXT.fullmatch(trimmed):
        return None
    if "." not in trimmed:
        # Integers too large for a double are not comparable as numbers.
        return int(trimmed) if math.isfinite(float(trimmed)) else None
    parsed = float(trimmed)
    return parsed if math.isfinite(parsed) else None


def normalize(value: Any) -> Optional[str]:
    """Map a raw value to its comparison key, or None when it cannot be joined on."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "bool:true" if value else "bool:false"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return f"str:{_non_finite_text(value)}"
        return f"num:{_format_number(value)}"
    if isinstance(value, Decimal):
        if value.is_nan():
            return "str:NaN"
        if value.is_infinite():
            return "str:-Infinity" if value.is_signed() else "str:Infinity"
        return f"num:{_format_number(value)}"
    if isinstance(value, str):
        parsed = _parse_numeric_text(value)
        if parsed is not None:
            return f"num:{_format_number(parsed)}"
        return f"str:{value}"

    text = _json_or_none(value)
    if text is not None:
        return f"json:{text}"
    return f"str:{value}"


def to_cell_value(value: Any) -> CellValue:
    """Reduce a raw value to something a table cell can hold."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    return _safe_json(value)
