"""
Value model for variable resolution.

Resolved values are JSON-shaped Python values (str, int, float, bool, None,
list, dict), optionally datetimes, plus the UNDEFINED sentinel which marks a
path that could not be addressed in the context.

Every boundary of the engine (stringification, numeric coercion, type
inference) goes through the total conversion functions in this module so the
rest of the code never has to guess how a value renders.

Rendering follows the conventions templates were authored against:
- None renders as "null", UNDEFINED as "undefined"
- Booleans render as "true"/"false"
- Integral floats render without a trailing ".0" (3.0 -> "3")
- NaN/infinity render as "NaN", "Infinity", "-Infinity"
"""

import json
import math
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any

from .models import VariableType


class _Undefined:
    """Singleton marking an unresolved value."""

    _instance: "_Undefined | None" = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Undefined":
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> "_Undefined":
        return self

    def __reduce__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()

# Longest leading float literal, as parseFloat reads it
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_EXPONENT = re.compile(r"e([+-])0*(\d+)$")


def is_undefined(value: Any) -> bool:
    """Check if a value is the UNDEFINED sentinel."""
    return value is UNDEFINED


def is_number(value: Any) -> bool:
    """Check for int/float values, excluding bool."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_number(value: int | float) -> str:
    """
    Render a number the way template authors expect to see it.

    Examples:
        >>> format_number(10)
        '10'
        >>> format_number(10.0)
        '10'
        >>> format_number(10.5)
        '10.5'
        >>> format_number(float("nan"))
        'NaN'
    """
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    # 1e-07 -> 1e-7
    return _EXPONENT.sub(lambda m: f"e{m.group(1)}{m.group(2)}", text)


def to_display_string(value: Any) -> str:
    """
    Coerce any value to its plain string form.

    This is the coercion string transformations (uppercase, trim, ...) apply
    to their input. Lists join their elements with commas (null/undefined
    elements render empty), mappings render as "[object Object]".
    """
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return "[object Object]"
    if isinstance(value, Sequence):
        return ",".join(
            "" if item is None or item is UNDEFINED else to_display_string(item) for item in value
        )
    return str(value)


def to_number(value: Any) -> float:
    """
    Coerce a value to a float using leading-literal parsing.

    Numbers pass through unchanged. Anything else is rendered with
    to_display_string() and the longest leading float literal is parsed;
    if none exists the result is NaN.

    Examples:
        >>> to_number("12.5kg")
        12.5
        >>> to_number("not-a-number")
        nan
        >>> to_number(True)
        nan
    """
    if is_number(value):
        return float(value)
    match = _FLOAT_PREFIX.match(to_display_string(value).lstrip())
    if not match:
        return math.nan
    literal = match.group(0)
    if literal.lstrip("+-") == "Infinity":
        return -math.inf if literal.startswith("-") else math.inf
    return float(literal)


def to_integer(value: Any, default: int) -> int:
    """Coerce a transformation argument to an int, falling back to default."""
    if value is None or value is UNDEFINED or value == "":
        return default
    number = to_number(value)
    if math.isnan(number) or math.isinf(number):
        return default
    return int(number)


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime | date):
        return value.isoformat()
    if value is UNDEFINED:
        return None
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _json_safe(value: Any, active: set[int]) -> Any:
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if not isinstance(value, Mapping | list | tuple | set | frozenset):
        return value

    marker = id(value)
    if marker in active:
        raise ValueError("Circular reference detected")
    active.add(marker)
    try:
        if isinstance(value, Mapping):
            return {key: _json_safe(item, active) for key, item in value.items()}
        return [_json_safe(item, active) for item in value]
    finally:
        active.discard(marker)


def to_json(value: Any) -> str:
    """
    Serialize a value to compact JSON.

    NaN and infinity serialize as null, at any depth.

    Raises:
        TypeError: If value contains objects that cannot be serialized
        ValueError: If value contains circular references
    """
    return json.dumps(
        _json_safe(value, set()),
        default=_json_default,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def stringify(value: Any) -> str:
    """
    Convert a resolved value into the text substituted for its reference.

    Primitives use their natural string form, datetimes use ISO-8601 and
    containers are serialized as compact JSON ("[Object]" if that fails).
    """
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if is_number(value):
        return format_number(value)
    if isinstance(value, datetime | date):
        return value.isoformat()
    try:
        return to_json(value)
    except (TypeError, ValueError):
        return "[Object]"


def infer_type(value: Any) -> VariableType:
    """Infer the catalog VariableType of a concrete value."""
    if value is UNDEFINED:
        return VariableType.UNDEFINED
    if value is None:
        return VariableType.NULL
    if isinstance(value, bool):
        return VariableType.BOOLEAN
    if is_number(value):
        return VariableType.NUMBER
    if isinstance(value, str):
        return VariableType.STRING
    if isinstance(value, datetime | date):
        return VariableType.DATE
    if isinstance(value, Mapping):
        return VariableType.OBJECT
    if isinstance(value, Sequence):
        return VariableType.ARRAY
    return VariableType.ANY


__all__ = [
    "UNDEFINED",
    "format_number",
    "infer_type",
    "is_number",
    "is_undefined",
    "stringify",
    "to_display_string",
    "to_integer",
    "to_json",
    "to_number",
]
