"""
Transformation registry and built-in transformations.

A transformation is a named, pure ``(value, *args) -> value`` function applied
in a reference pipeline: ``{{name|trim|uppercase}}``. Arguments are written
after the name, separated by colons: ``{{text|truncate:10}}``.

Registries are injected into the resolver rather than shared globally, so
tests and tenants can hold independent sets of custom transformations.
Registration is append-only: transformations can be added, never removed or
replaced.

Failure policy:
    - Unknown transformation: warning logged, diagnostic recorded, value unchanged
    - Transformation raises: warning logged, diagnostic recorded, value unchanged
    Subsequent steps of the pipeline still run.
"""

import base64
import logging
import math
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal, localcontext
from enum import Enum
from typing import Any
from urllib.parse import quote

from pydantic import BaseModel, PrivateAttr

from .diagnostics import Diagnostic, DiagnosticCode
from .exceptions import TransformationRegistrationError
from .parser import IDENTIFIER, TransformationCall, parse_transformation
from .values import (
    UNDEFINED,
    is_number,
    to_display_string,
    to_integer,
    to_json,
    to_number,
)

logger = logging.getLogger(__name__)

DEFAULT_DATE_FORMAT = "MM/DD/YYYY"

_IDENTIFIER_PATTERN = re.compile(rf"^{IDENTIFIER}$")

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE = "-_.!~*'()"

_DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d", "%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%d %b %Y")


class TransformationCategory(str, Enum):
    """Built-in transformation groups."""

    STRING = "String"
    NUMBER = "Number"
    ARRAY = "Array"
    DATE = "Date"
    CONVERSION = "Conversion"
    UTILITY = "Utility"


@dataclass(frozen=True)
class Transformation:
    """
    A named value transformation.

    Attributes:
        id: Identifier used in references (e.g., "truncate")
        name: Display name
        func: Pure function ``(value, *args) -> value``
        description: Short help text
        category: Display group
        example: Usage example
    """

    id: str
    name: str
    func: Callable[..., Any]
    description: str = ""
    category: str | None = None
    example: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value if isinstance(self.category, Enum) else self.category,
            "example": self.example,
        }


# =============================================================================
# Built-in transformation functions
# =============================================================================


def _uppercase(value: Any) -> str:
    return to_display_string(value).upper()


def _lowercase(value: Any) -> str:
    return to_display_string(value).lower()


def _capitalize(value: Any) -> str:
    words = to_display_string(value).split(" ")
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def _trim(value: Any) -> str:
    return to_display_string(value).strip()


def _truncate(value: Any, length: Any = 50) -> str:
    text = to_display_string(value)
    limit = max(to_integer(length, 50), 0)
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _round(value: Any, decimals: Any = 0) -> float:
    places = to_integer(decimals, 0)
    if not 0 <= places <= 100:
        raise ValueError(f"round() decimals must be between 0 and 100, got {places}")

    number = to_number(value)
    if math.isnan(number) or math.isinf(number) or abs(number) >= 1e21:
        return number

    # Decimal(float) is the exact binary value, so ties round the way they print
    quantum = Decimal(1).scaleb(-places)
    with localcontext() as ctx:
        # |number| < 1e21: at most 21 integer digits
        ctx.prec = 22 + places
        return float(Decimal(number).quantize(quantum, rounding=ROUND_HALF_UP))


def _abs(value: Any) -> float:
    return abs(to_number(value))


def _join(value: Any, separator: Any = ", ") -> str:
    if isinstance(value, (list, tuple)):
        sep = to_display_string(separator)
        return sep.join(
            "" if item is None or item is UNDEFINED else to_display_string(item) for item in value
        )
    return to_display_string(value)


def _first(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else UNDEFINED
    return value


def _last(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[-1] if value else UNDEFINED
    return value


def _length(value: Any) -> int:
    if isinstance(value, (str, list, tuple)):
        return len(value)
    return 0


def parse_date(value: Any) -> datetime | None:
    """
    Interpret a value as a point in time.

    Accepts datetimes, dates, epoch milliseconds and date strings (ISO-8601
    plus a few common US/long forms). Returns None when the value is not a
    valid date. Field values are taken as written, without conversion to the
    local timezone.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if is_number(value):
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _make_date_format(default_format: str) -> Callable[..., Any]:
    def date_format(value: Any, fmt: Any = None) -> Any:
        moment = parse_date(value)
        if moment is None:
            return value
        template = default_format if fmt is None else to_display_string(fmt)
        return (
            template.replace("MM", f"{moment.month:02d}", 1)
            .replace("DD", f"{moment.day:02d}", 1)
            .replace("YYYY", str(moment.year), 1)
        )

    return date_format


def _json(value: Any) -> Any:
    if value is UNDEFINED:
        return UNDEFINED
    try:
        return to_json(value)
    except (TypeError, ValueError):
        return to_display_string(value)


def _number(value: Any) -> float:
    return to_number(value)


def _string(value: Any) -> str:
    return to_display_string(value)


def _default(value: Any, fallback: Any = "") -> Any:
    if value is None or value is UNDEFINED or (isinstance(value, str) and value == ""):
        return fallback
    return value


def _url_encode(value: Any) -> str:
    return quote(to_display_string(value), safe=_URI_COMPONENT_SAFE)


def _base64(value: Any) -> Any:
    try:
        return base64.b64encode(to_display_string(value).encode("utf-8")).decode("ascii")
    except UnicodeEncodeError:
        return value


def builtin_transformations(date_format: str = DEFAULT_DATE_FORMAT) -> list[Transformation]:
    """Build the built-in transformation set."""
    string, number, array = (
        TransformationCategory.STRING,
        TransformationCategory.NUMBER,
        TransformationCategory.ARRAY,
    )
    conversion, utility = TransformationCategory.CONVERSION, TransformationCategory.UTILITY

    return [
        Transformation(
            "uppercase", "Uppercase", _uppercase,
            "Convert string to uppercase", string, "{{name|uppercase}} → JOHN",
        ),
        Transformation(
            "lowercase", "Lowercase", _lowercase,
            "Convert string to lowercase", string, "{{name|lowercase}} → john",
        ),
        Transformation(
            "capitalize", "Capitalize", _capitalize,
            "Capitalize first letter of each word", string, "{{name|capitalize}} → John Doe",
        ),
        Transformation(
            "trim", "Trim", _trim,
            "Remove whitespace from both ends", string, '{{text|trim}} → "hello"',
        ),
        Transformation(
            "truncate", "Truncate", _truncate,
            "Truncate string to specified length", string,
            '{{text|truncate:10}} → "Hello worl..."',
        ),
        Transformation(
            "round", "Round", _round,
            "Round number to specified decimal places", number, "{{price|round:2}} → 10.5",
        ),
        Transformation(
            "abs", "Absolute", _abs, "Get absolute value", number, "{{amount|abs}} → 10",
        ),
        Transformation(
            "join", "Join", _join,
            "Join array elements with separator", array, '{{items|join:", "}} → "a, b, c"',
        ),
        Transformation(
            "first", "First", _first,
            "Get first element of array", array, '{{items|first}} → "a"',
        ),
        Transformation(
            "last", "Last", _last, "Get last element of array", array, '{{items|last}} → "c"',
        ),
        Transformation(
            "length", "Length", _length,
            "Get length of string or array", array, "{{items|length}} → 3",
        ),
        Transformation(
            "dateFormat", "Date Format", _make_date_format(date_format),
            "Format date (MM, DD, YYYY tokens)", TransformationCategory.DATE,
            '{{date|dateFormat}} → "12/13/2024"',
        ),
        Transformation(
            "json", "JSON", _json, "Convert to JSON string", conversion,
            '{{data|json}} → {"key":"value"}',
        ),
        Transformation(
            "number", "Number", _number, "Convert to number", conversion, "{{value|number}} → 42",
        ),
        Transformation(
            "string", "String", _string, "Convert to string", conversion,
            '{{value|string}} → "42"',
        ),
        Transformation(
            "default", "Default", _default,
            "Use default value if empty/null/undefined", utility,
            '{{value|default:"N/A"}} → N/A',
        ),
        Transformation(
            "urlEncode", "URL Encode", _url_encode, "URL encode string", utility,
            "{{text|urlEncode}} → hello%20world",
        ),
        Transformation(
            "base64", "Base64", _base64, "Encode to base64", utility,
            "{{text|base64}} → aGVsbG8=",
        ),
    ]


# =============================================================================
# Registry
# =============================================================================


class TransformationRegistry(BaseModel):
    """
    Registry of transformations.

    Maps transformation identifiers to Transformation instances, in
    registration order.
    """

    model_config = {"arbitrary_types_allowed": True}

    _transformations: dict[str, Transformation] = PrivateAttr(default_factory=dict)

    def register(self, transformation: Transformation) -> None:
        """
        Register a transformation under its id.

        Raises:
            TransformationRegistrationError: If the id is not an identifier or is taken
        """
        if not _IDENTIFIER_PATTERN.match(transformation.id):
            raise TransformationRegistrationError(transformation.id, "id must be an identifier")
        if transformation.id in self._transformations:
            raise TransformationRegistrationError(transformation.id, "already registered")
        self._transformations[transformation.id] = transformation

    def has(self, transformation_id: str) -> bool:
        """Check if a transformation id is registered."""
        return transformation_id in self._transformations

    def get(self, transformation_id: str) -> Transformation | None:
        return self._transformations.get(transformation_id)

    def get_all(self) -> list[Transformation]:
        """All transformations, in registration order."""
        return list(self._transformations.values())

    def get_by_category(self, category: str) -> list[Transformation]:
        return [t for t in self._transformations.values() if t.category == category]

    def get_categories(self) -> list[str]:
        """Distinct categories, in first-registered order."""
        categories = (
            str(t.category.value if isinstance(t.category, Enum) else t.category)
            for t in self._transformations.values()
            if t.category is not None
        )
        return list(dict.fromkeys(categories))

    def list_ids(self) -> list[str]:
        return list(self._transformations.keys())

    def apply(
        self,
        transformation_id: str | TransformationCall,
        value: Any,
        *args: Any,
        diagnostics: list[Diagnostic] | None = None,
    ) -> Any:
        """
        Apply a transformation to a value.

        The id may embed colon-separated arguments ("truncate:10"); embedded
        arguments come first, followed by any passed programmatically.

        Args:
            transformation_id: Transformation id, compound id, or parsed call
            value: Input value
            *args: Extra positional arguments
            diagnostics: Optional list that receives a Diagnostic on failure

        Returns:
            Transformed value, or the unchanged input if the transformation is
            unknown or raised

        Example:
            registry.apply("truncate:3", "hello")  # "hel..."
        """
        call = (
            transformation_id
            if isinstance(transformation_id, TransformationCall)
            else parse_transformation(transformation_id)
        )
        transformation = self._transformations.get(call.name)

        if transformation is None:
            logger.warning(f"Unknown transformation: {call.name}")
            if diagnostics is not None:
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.UNKNOWN_TRANSFORMATION,
                        message=f"Unknown transformation: {call.name}",
                        transformation=call.name,
                    )
                )
            return value

        try:
            return transformation.func(value, *call.args, *args)
        except Exception as e:
            logger.warning(f"Error applying transformation {call.name}: {e}")
            if diagnostics is not None:
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.TRANSFORMATION_FAILED,
                        message=f"Error applying transformation {call.name}: {e}",
                        transformation=call.name,
                    )
                )
            return value


def create_default_registry(date_format: str = DEFAULT_DATE_FORMAT) -> TransformationRegistry:
    """Create TransformationRegistry with all built-in transformations registered.

    Each call returns an independent registry, so custom transformations
    registered on one never leak into another.

    Args:
        date_format: Template used by dateFormat when called without an argument

    Returns:
        TransformationRegistry with the built-in set

    Example:
        registry = create_default_registry()
        registry.register(Transformation("reverse", "Reverse", lambda v: str(v)[::-1]))
        resolver = VariableResolver(registry=registry)
    """
    registry = TransformationRegistry()
    for transformation in builtin_transformations(date_format):
        registry.register(transformation)
    return registry


__all__ = [
    "DEFAULT_DATE_FORMAT",
    "Transformation",
    "TransformationCategory",
    "TransformationRegistry",
    "builtin_transformations",
    "create_default_registry",
    "parse_date",
]
