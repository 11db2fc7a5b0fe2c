"""
Path resolution against a layered ResolutionContext.

Lookup Structure:
    The three context mappings are overlaid at the top level only, in
    increasing precedence:

        global_variables < variables < step_outputs

    Nested values are never deep-merged: whichever mapping owns the first
    path segment decides which sub-tree is walked.

Resolution:
    - FieldSegment: look the key up on a mapping (digit keys also index lists)
    - IndexSegment: look the name up, require a list/tuple, index it
    - Traversal through None/UNDEFINED, missing keys, non-sequences and
      out-of-range indexes all yield UNDEFINED, never an exception
    - A key present with None resolves to None (a definite null)
"""

from collections.abc import Mapping, Sequence
from typing import Any

from .models import ResolutionContext
from .parser import FieldSegment, IndexSegment, PathSegment, parse_path
from .values import UNDEFINED

ContextLike = ResolutionContext | Mapping[str, Any]


def coerce_context(context: ContextLike | None) -> ResolutionContext:
    """
    Accept a ResolutionContext or a plain mapping in either naming style.

    Examples:
        >>> coerce_context({"stepOutputs": {"s1": {"ok": True}}}).step_outputs
        {'s1': {'ok': True}}
    """
    if context is None:
        return ResolutionContext()
    if isinstance(context, ResolutionContext):
        return context
    return ResolutionContext.model_validate(dict(context))


def merge_context(context: ContextLike | None) -> dict[str, Any]:
    """Overlay the three context mappings into a single lookup dict."""
    ctx = coerce_context(context)
    return {**ctx.global_variables, **ctx.variables, **ctx.step_outputs}


def _lookup(current: Any, key: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(key, UNDEFINED)
    if isinstance(current, Sequence) and not isinstance(current, str) and key.isdigit():
        index = int(key)
        return current[index] if index < len(current) else UNDEFINED
    return UNDEFINED


def _index(current: Any, indices: tuple[int, ...]) -> Any:
    for index in indices:
        if not isinstance(current, (list, tuple)) or index >= len(current):
            return UNDEFINED
        current = current[index]
    return current


def resolve_segments(segments: tuple[PathSegment, ...], root: Mapping[str, Any]) -> Any:
    """
    Fold structured path segments over a merged lookup dict.

    Returns:
        Addressed value, or UNDEFINED if any step fails
    """
    if not segments:
        return UNDEFINED

    current: Any = root
    for segment in segments:
        if current is None or current is UNDEFINED:
            return UNDEFINED

        if isinstance(segment, IndexSegment):
            current = _index(_lookup(current, segment.name), segment.indices)
        elif isinstance(segment, FieldSegment):
            current = _lookup(current, segment.name)

    return current


def resolve_path(path: str | tuple[PathSegment, ...], context: ContextLike | None) -> Any:
    """
    Resolve a dotted/indexed path against a context.

    Args:
        path: Path string (e.g., "items[1].name") or pre-parsed segments
        context: ResolutionContext or mapping with globalVariables/variables/stepOutputs

    Returns:
        Addressed value, or UNDEFINED when unresolved

    Example:
        >>> resolve_path("items[1]", {"variables": {"items": ["a", "b", "c"]}})
        'b'
        >>> resolve_path("items[5]", {"variables": {"items": ["a", "b", "c"]}})
        undefined
    """
    segments = parse_path(path) if isinstance(path, str) else path
    return resolve_segments(segments, merge_context(context))


def flatten_paths(context: ContextLike | None) -> list[str]:
    """
    Flatten a context into dotted leaf paths.

    Walks the merged lookup, so every listed path resolves and a key shadowed
    by a higher layer is listed once. Nested mappings are walked; lists and
    scalars are leaves.
    """
    paths: list[str] = []

    def walk(value: Any, prefix: str) -> None:
        if value is None:
            return
        if not isinstance(value, Mapping):
            if prefix:
                paths.append(prefix)
            return
        for key, child in value.items():
            child_path = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(child, Mapping):
                walk(child, child_path)
            else:
                paths.append(child_path)

    walk(merge_context(context), "")
    return paths


__all__ = [
    "ContextLike",
    "coerce_context",
    "flatten_paths",
    "merge_context",
    "resolve_path",
    "resolve_segments",
]
