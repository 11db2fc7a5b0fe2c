"""
Reference parser for {{...}} variable references.

Reference Syntax:
    {{path}}                        - Plain reference
    {{trigger.formData.email}}      - Dotted path into nested objects
    {{items[0].name}}               - Array index on a path part
    {{name|uppercase}}              - Transformation pipeline
    {{text|truncate:10|uppercase}}  - Transformations with arguments
    {{value|default:"N/A"}}         - Quoted argument (quotes removed)

Grammar:
    - A reference is "{{", content, "}}". Content never contains "}" or a
      nested "{{", so "}}" always closes the nearest unmatched "{{".
    - Content is trimmed and split on "|". The first piece is the path, the
      remaining pieces are transformation steps, applied left to right.
    - A transformation step is a name followed by ":"-separated arguments.
      Colons inside a quoted argument do not separate arguments.
    - The path is split on "." into parts; a part may carry one or more
      trailing indexes such as "items[2]".

Parsing never raises: text that does not match the grammar is simply not a
reference, and empty content yields a reference with an empty path.
"""

import re
from dataclasses import dataclass, field

# Reference token: content may not contain "}" or start a nested "{{"
REFERENCE_PATTERN = re.compile(r"\{\{((?:(?!\{\{)[^}])*)\}\}")

IDENTIFIER = r"[A-Za-z_][A-Za-z0-9_]*"
_PART = rf"{IDENTIFIER}(?:\[\d+\])*"
VALID_PATH_PATTERN = re.compile(rf"^{_PART}(?:\.{_PART})*$")

# "name[1]" or "name[1][2]"
_INDEXED_PART = re.compile(r"^(.+?)((?:\[\d+\])+)$")
_INDEX = re.compile(r"\[(\d+)\]")

_QUOTES = "\"'"


@dataclass(frozen=True)
class FieldSegment:
    """Path part addressing a key: ``name``."""

    name: str


@dataclass(frozen=True)
class IndexSegment:
    """Path part addressing a key, then indexing the sequence found there: ``name[n]``."""

    name: str
    indices: tuple[int, ...]


PathSegment = FieldSegment | IndexSegment


@dataclass(frozen=True)
class TransformationCall:
    """
    One step of a transformation pipeline.

    Attributes:
        name: Transformation identifier (e.g., "truncate")
        args: Positional string arguments, quotes removed
        text: Step text as written (e.g., "truncate:10")
    """

    name: str
    args: tuple[str, ...] = ()
    text: str = ""

    def __str__(self) -> str:
        return self.text or ":".join((self.name, *self.args))


@dataclass(frozen=True)
class Reference:
    """
    Parsed form of one {{...}} occurrence.

    Attributes:
        raw: Matched text including braces
        path: Dotted/indexed address before any "|"
        parts: Path split on "."
        segments: Structured path parts (FieldSegment | IndexSegment)
        transformations: Pipeline steps in application order
        start: Offset of the opening braces in the scanned text
        end: Offset just past the closing braces
    """

    raw: str
    path: str
    parts: tuple[str, ...] = ()
    segments: tuple[PathSegment, ...] = ()
    transformations: tuple[TransformationCall, ...] = ()
    start: int = 0
    end: int = 0

    @property
    def transformation_names(self) -> list[str]:
        return [t.name for t in self.transformations]

    @property
    def is_empty(self) -> bool:
        return not self.path


@dataclass(frozen=True)
class ReferenceValidation:
    """Outcome of validate_reference()."""

    is_valid: bool
    error: str | None = field(default=None)


def _split_arguments(text: str) -> list[str]:
    """Split a transformation step on ':' outside of quoted arguments."""
    pieces: list[str] = []
    current: list[str] = []
    quote: str | None = None

    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = None
        elif char == ":":
            pieces.append("".join(current))
            current = []
        else:
            # A quote only opens at the start of an argument
            if char in _QUOTES and not "".join(current).strip():
                quote = char
            current.append(char)

    pieces.append("".join(current))
    return pieces


def _unquote(argument: str) -> str:
    stripped = argument.strip()
    if len(stripped) >= 2 and stripped[0] in _QUOTES and stripped[-1] == stripped[0]:
        return stripped[1:-1]
    return argument


def parse_transformation(text: str) -> TransformationCall:
    """
    Parse one pipeline step such as ``truncate:10`` or ``default:"N/A"``.

    Examples:
        >>> parse_transformation("truncate:10")
        TransformationCall(name='truncate', args=('10',), text='truncate:10')
        >>> parse_transformation('default:"a:b"').args
        ('a:b',)
    """
    step = text.strip()
    name, *raw_args = _split_arguments(step)
    return TransformationCall(
        name=name.strip(),
        args=tuple(_unquote(arg) for arg in raw_args),
        text=step,
    )


def parse_path(path: str) -> tuple[PathSegment, ...]:
    """
    Split a path into structured segments.

    Examples:
        >>> parse_path("items[1].name")
        (IndexSegment(name='items', indices=(1,)), FieldSegment(name='name'))
    """
    if not path.strip():
        return ()

    segments: list[PathSegment] = []
    for part in (p.strip() for p in path.split(".")):
        indexed = _INDEXED_PART.match(part)
        if indexed:
            name, index_text = indexed.groups()
            indices = tuple(int(i) for i in _INDEX.findall(index_text))
            segments.append(IndexSegment(name=name, indices=indices))
        else:
            segments.append(FieldSegment(name=part))
    return tuple(segments)


def reference_from_match(match: re.Match[str]) -> Reference:
    """Build a Reference from a REFERENCE_PATTERN match."""
    content = match.group(1).strip()
    path, *steps = (piece.strip() for piece in content.split("|"))

    return Reference(
        raw=match.group(0),
        path=path,
        parts=tuple(p.strip() for p in path.split(".")) if path else (),
        segments=parse_path(path),
        transformations=tuple(parse_transformation(step) for step in steps if step),
        start=match.start(),
        end=match.end(),
    )


def parse_references(text: str) -> list[Reference]:
    """
    Find every {{...}} reference in text, in order of appearance.

    Args:
        text: Arbitrary text (non-strings yield no references)

    Returns:
        List of parsed references (possibly empty)
    """
    if not isinstance(text, str) or "{{" not in text:
        return []
    return [reference_from_match(match) for match in REFERENCE_PATTERN.finditer(text)]


def has_references(text: str) -> bool:
    """Check if text contains at least one {{...}} reference."""
    return isinstance(text, str) and REFERENCE_PATTERN.search(text) is not None


def extract_paths(text: str) -> list[str]:
    """Unique reference paths in text, in first-seen order."""
    return list(dict.fromkeys(ref.path for ref in parse_references(text)))


def extract_transformations(text: str) -> list[str]:
    """Unique transformation names used in text, in first-seen order."""
    names = (t.name for ref in parse_references(text) for t in ref.transformations)
    return list(dict.fromkeys(names))


def is_valid_path(path: str) -> bool:
    """
    Check a path against ``identifier('.'identifier)*``.

    Identifiers match ``[A-Za-z_][A-Za-z0-9_]*`` and may carry index suffixes.

    Examples:
        >>> is_valid_path("trigger.formData.email")
        True
        >>> is_valid_path("items[0].name")
        True
        >>> is_valid_path("1st.value")
        False
    """
    if not isinstance(path, str) or not path.strip():
        return False
    return VALID_PATH_PATTERN.match(path.strip()) is not None


def find_reference_at_offset(text: str, offset: int) -> Reference | None:
    """Return the reference whose span contains offset (both ends inclusive)."""
    for ref in parse_references(text):
        if ref.start <= offset <= ref.end:
            return ref
    return None


def build_reference(
    path: str, transformations: list[str] | list[TransformationCall] | None = None
) -> str:
    """
    Serialize a path and pipeline back into reference text.

    Inverse of parse_references() for valid paths.

    Examples:
        >>> build_reference("user.name")
        '{{user.name}}'
        >>> build_reference("user.name", ["uppercase", "truncate:3"])
        '{{user.name|uppercase|truncate:3}}'
    """
    if not transformations:
        return f"{{{{{path}}}}}"
    steps = "|".join(str(t) for t in transformations)
    return f"{{{{{path}|{steps}}}}}"


def validate_reference(reference: str) -> ReferenceValidation:
    """Check that a single reference string is well formed."""
    if not reference.startswith("{{") or not reference.endswith("}}"):
        return ReferenceValidation(False, "Variable reference must be wrapped in {{ }}")

    content = reference[2:-2].strip()
    if not content:
        return ReferenceValidation(False, "Variable reference cannot be empty")

    path = content.split("|")[0].strip()
    if not is_valid_path(path):
        return ReferenceValidation(False, f"Invalid variable path format: '{path}'")

    return ReferenceValidation(True)


def replace_reference(text: str, old_reference: str, new_reference: str) -> str:
    """Replace every literal occurrence of one reference with another."""
    return text.replace(old_reference, new_reference)


def normalize_path(path: str) -> str:
    """Strip whitespace around parts and drop empty parts."""
    return ".".join(p.strip() for p in path.strip().split(".") if p.strip())


def variable_name(path: str) -> str:
    """Last part of a path."""
    return path.split(".")[-1]


def variable_source(path: str) -> str:
    """First part of a path."""
    return path.split(".")[0]


def is_nested_path(path: str) -> bool:
    return "." in path


def split_nested_path(path: str) -> tuple[str, str]:
    """Split a path into (parent, child) at the last dot."""
    parent, _, child = path.rpartition(".")
    return parent, child


__all__ = [
    "FieldSegment",
    "IndexSegment",
    "PathSegment",
    "REFERENCE_PATTERN",
    "Reference",
    "ReferenceValidation",
    "TransformationCall",
    "build_reference",
    "extract_paths",
    "extract_transformations",
    "find_reference_at_offset",
    "has_references",
    "is_nested_path",
    "is_valid_path",
    "normalize_path",
    "parse_path",
    "parse_references",
    "parse_transformation",
    "reference_from_match",
    "replace_reference",
    "split_nested_path",
    "validate_reference",
    "variable_name",
    "variable_source",
]
