"""
Variable resolution engine.

Composes the reference parser, the path resolver and a transformation
registry to substitute {{...}} references in strings and, recursively, in
JSON-shaped values (step configurations).

Architecture:
    Template text
          ↓
    Reference parser (REFERENCE_PATTERN)
          ↓
    Path resolver (merged context lookup)
          ↓
    Transformation pipeline (left to right)
          ↓
    Stringification + substitution

Failure semantics:
    Resolution never raises for malformed templates or missing data under
    the default policy. Problems are reported as Diagnostic records on the
    returned ResolutionResult. Unresolved references are substituted per the
    OnUnresolved policy (literal "undefined" by default).

Example:
    resolver = VariableResolver()
    context = {"variables": {"user": {"name": "ada lovelace"}}}
    resolver.resolve_in_string("Hi {{user.name|capitalize}}", context)
    # Returns: "Hi Ada Lovelace"
"""

import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .config import OnUnresolved, ResolverConfig
from .diagnostics import Diagnostic, DiagnosticCode, ResolutionResult
from .exceptions import UnresolvedReferenceError
from .parser import (
    REFERENCE_PATTERN,
    Reference,
    is_valid_path,
    parse_references,
    reference_from_match,
)
from .path_resolver import ContextLike, flatten_paths, merge_context, resolve_segments
from .transformations import TransformationRegistry, create_default_registry
from .values import UNDEFINED, format_number, stringify

logger = logging.getLogger(__name__)

_NUMBER_LITERAL = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


@dataclass
class PreviewVariable:
    """Resolution outcome of one distinct reference in a preview."""

    raw: str
    path: str
    value: Any
    resolved: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "raw": self.raw,
            "path": self.path,
            "value": None if self.value is UNDEFINED else self.value,
            "resolved": self.resolved,
        }


@dataclass
class PreviewResult:
    """Editor preview of a template: original text, resolved text, per-reference detail."""

    original: str
    resolved: str
    variables: list[PreviewVariable] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def unresolved(self) -> list[PreviewVariable]:
        return [v for v in self.variables if not v.resolved]

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "resolved": self.resolved,
            "variables": [v.to_dict() for v in self.variables],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass
class ExpressionResult:
    """Outcome of evaluate_expression()."""

    success: bool
    value: Any = None
    error: str | None = None
    variables: list[str] = field(default_factory=list)


def _coerce_policy(policy: OnUnresolved | str | None, default: OnUnresolved) -> OnUnresolved:
    if policy is None:
        return default
    return policy if isinstance(policy, OnUnresolved) else OnUnresolved(policy)


def _parse_literal(text: str) -> Any:
    """Interpret resolved text as a literal: number, boolean, quoted string, else text."""
    trimmed = text.strip()
    if _NUMBER_LITERAL.match(trimmed):
        number = float(trimmed)
        if not math.isinf(number) and format_number(number) == trimmed:
            return int(number) if number.is_integer() else number
    if trimmed == "true":
        return True
    if trimmed == "false":
        return False
    if len(trimmed) >= 2 and trimmed[0] == trimmed[-1] and trimmed[0] in "\"'":
        return trimmed[1:-1]
    return trimmed


class VariableResolver:
    """
    Resolves {{path|transform}} references against a ResolutionContext.

    The resolver holds no per-call state: the transformation registry and
    configuration are injected, and every call takes its own context, so one
    instance can serve editor previews and step execution concurrently.

    Example:
        resolver = VariableResolver(registry=create_default_registry())

        resolver.resolve_in_string("{{items[1]}}", {"variables": {"items": ["a", "b"]}})
        # Returns: "b"

        resolver.resolve_deep({"to": "{{form.email|lowercase}}"}, context)
        # Returns: {"to": "user@example.com"}
    """

    def __init__(
        self,
        registry: TransformationRegistry | None = None,
        config: ResolverConfig | None = None,
    ):
        """
        Initialize the resolver.

        Args:
            registry: Transformation registry (default: built-in set)
            config: Resolver configuration (default: ResolverConfig())
        """
        self.config = config or ResolverConfig()
        self.registry = registry or create_default_registry(self.config.date_format)

    # -------------------------------------------------------------------------
    # Single references
    # -------------------------------------------------------------------------

    def _resolve(self, reference: Reference, lookup: Mapping[str, Any]) -> ResolutionResult:
        diagnostics: list[Diagnostic] = []

        if reference.is_empty:
            diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.EMPTY_REFERENCE,
                    message=f"Empty variable reference: {reference.raw}",
                    path="",
                )
            )
            value: Any = UNDEFINED
        else:
            value = resolve_segments(reference.segments, lookup)

        resolved = value is not UNDEFINED
        if not resolved and not reference.is_empty:
            logger.debug(f"Unresolved variable path: {reference.path}")
            diagnostics.append(
                Diagnostic(
                    code=DiagnosticCode.UNRESOLVED_PATH,
                    message=f"Variable path cannot be resolved: {reference.path}",
                    path=reference.path,
                )
            )

        for call in reference.transformations:
            value = self.registry.apply(call, value, diagnostics=diagnostics)

        return ResolutionResult(
            value=value,
            resolved=resolved,
            diagnostics=diagnostics,
            unresolved_paths=[] if resolved else [reference.path],
        )

    def resolve_reference(
        self, reference: Reference | str, context: ContextLike | None
    ) -> ResolutionResult:
        """
        Resolve one reference: address its path, then fold its pipeline.

        Args:
            reference: Parsed Reference, reference text ("{{a|upper}}") or bare
                content ("a|upper")
            context: Resolution context

        Returns:
            ResolutionResult with the (unstringified) value
        """
        if isinstance(reference, str):
            refs = parse_references(reference) or parse_references(f"{{{{{reference}}}}}")
            if not refs:
                return ResolutionResult(
                    value=UNDEFINED,
                    resolved=False,
                    diagnostics=[
                        Diagnostic(
                            code=DiagnosticCode.INVALID_PATH,
                            message=f"Not a variable reference: {reference!r}",
                        )
                    ],
                )
            reference = refs[0]
        return self._resolve(reference, merge_context(context))

    # -------------------------------------------------------------------------
    # Templates
    # -------------------------------------------------------------------------

    def _resolve_text(
        self, text: str, lookup: Mapping[str, Any], policy: OnUnresolved
    ) -> ResolutionResult:
        cache: dict[str, str] = {}
        diagnostics: list[Diagnostic] = []
        unresolved: list[str] = []
        undefined: list[str] = []

        def substitute(match: re.Match[str]) -> str:
            raw = match.group(0)
            if raw in cache:
                return cache[raw]

            reference = reference_from_match(match)
            result = self._resolve(reference, lookup)
            diagnostics.extend(result.diagnostics)
            if not result.resolved and reference.path not in unresolved:
                unresolved.append(reference.path)

            if result.value is not UNDEFINED:
                replacement = stringify(result.value)
            else:
                undefined.append(reference.path)
                if policy is OnUnresolved.EMPTY:
                    replacement = ""
                elif policy in (OnUnresolved.KEEP, OnUnresolved.RAISE):
                    replacement = raw
                else:
                    replacement = stringify(UNDEFINED)

            cache[raw] = replacement
            return replacement

        output = REFERENCE_PATTERN.sub(substitute, text)

        if policy is OnUnresolved.RAISE and undefined:
            raise UnresolvedReferenceError(list(dict.fromkeys(undefined)), text)

        return ResolutionResult(
            value=output,
            resolved=not unresolved,
            diagnostics=diagnostics,
            unresolved_paths=unresolved,
        )

    def resolve_in_string_result(
        self,
        text: str,
        context: ContextLike | None,
        on_unresolved: OnUnresolved | str | None = None,
    ) -> ResolutionResult:
        """
        Substitute every reference in text and report what happened.

        Each distinct raw reference is resolved once per call and substituted
        at every occurrence.

        Args:
            text: Template text
            context: Resolution context
            on_unresolved: Override of the configured unresolved policy

        Returns:
            ResolutionResult whose value is the substituted text

        Raises:
            UnresolvedReferenceError: Only under the "raise" policy
        """
        if not isinstance(text, str) or "{{" not in text:
            return ResolutionResult(value=text)
        policy = _coerce_policy(on_unresolved, self.config.on_unresolved)
        return self._resolve_text(text, merge_context(context), policy)

    def resolve_in_string(
        self,
        text: str,
        context: ContextLike | None,
        on_unresolved: OnUnresolved | str | None = None,
    ) -> str:
        """
        Substitute every reference in text.

        Examples:
            >>> VariableResolver().resolve_in_string("Hi {{user.name}}", {})
            'Hi undefined'
            >>> VariableResolver().resolve_in_string("Hi {{user.name}}", {}, "keep")
            'Hi {{user.name}}'
        """
        return self.resolve_in_string_result(text, context, on_unresolved).value

    def resolve_deep(
        self,
        value: Any,
        context: ContextLike | None,
        on_unresolved: OnUnresolved | str | None = None,
    ) -> Any:
        """
        Recursively substitute references in a JSON-shaped value.

        Strings are resolved, lists and mappings are rebuilt with resolved
        members (keys preserved), everything else is returned unchanged.
        """
        policy = _coerce_policy(on_unresolved, self.config.on_unresolved)
        lookup = merge_context(context)

        def walk(item: Any) -> Any:
            if isinstance(item, str):
                if "{{" not in item:
                    return item
                return self._resolve_text(item, lookup, policy).value
            if isinstance(item, Mapping):
                return {key: walk(val) for key, val in item.items()}
            if isinstance(item, (list, tuple)):
                return [walk(member) for member in item]
            return item

        return walk(value)

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def unresolved_paths(self, text: str, context: ContextLike | None) -> list[str]:
        """Paths in text that cannot be addressed in context (unique, in order)."""
        lookup = merge_context(context)
        paths = (
            ref.path
            for ref in parse_references(text)
            if ref.is_empty or resolve_segments(ref.segments, lookup) is UNDEFINED
        )
        return list(dict.fromkeys(paths))

    def can_resolve_all(self, text: str, context: ContextLike | None) -> bool:
        """Check if every reference path in text can be addressed in context."""
        return not self.unresolved_paths(text, context)

    def preview(self, text: str, context: ContextLike | None) -> PreviewResult:
        """
        Preview a template for the editor.

        Never raises: the "raise" policy is previewed as "keep".

        Returns:
            PreviewResult with one PreviewVariable per distinct reference
        """
        policy = self.config.on_unresolved
        if policy is OnUnresolved.RAISE:
            policy = OnUnresolved.KEEP

        lookup = merge_context(context)
        variables: list[PreviewVariable] = []
        diagnostics: list[Diagnostic] = []
        seen: set[str] = set()

        for ref in parse_references(text):
            if ref.raw in seen:
                continue
            seen.add(ref.raw)
            result = self._resolve(ref, lookup)
            diagnostics.extend(result.diagnostics)
            variables.append(
                PreviewVariable(
                    raw=ref.raw, path=ref.path, value=result.value, resolved=result.resolved
                )
            )

        resolved = self._resolve_text(text, lookup, policy).value if variables else text
        return PreviewResult(
            original=text, resolved=resolved, variables=variables, diagnostics=diagnostics
        )

    def available_paths(self, context: ContextLike | None) -> list[str]:
        """Flatten the context into dotted leaf paths (autocomplete fallback)."""
        return flatten_paths(context)

    def validate_template(self, text: str) -> list[Diagnostic]:
        """
        Check a template's syntax without a context.

        Reports empty references, paths that are not valid identifiers, and
        transformations unknown to this resolver's registry.
        """
        diagnostics: list[Diagnostic] = []
        seen: set[str] = set()

        for ref in parse_references(text):
            if ref.raw in seen:
                continue
            seen.add(ref.raw)

            if ref.is_empty:
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.EMPTY_REFERENCE,
                        message=f"Empty variable reference: {ref.raw}",
                        path="",
                    )
                )
            elif not is_valid_path(ref.path):
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.INVALID_PATH,
                        message=f"Invalid variable path format: '{ref.path}'",
                        path=ref.path,
                    )
                )

            for call in ref.transformations:
                if not self.registry.has(call.name):
                    diagnostics.append(
                        Diagnostic(
                            code=DiagnosticCode.UNKNOWN_TRANSFORMATION,
                            message=f"Unknown transformation: {call.name}",
                            path=ref.path,
                            transformation=call.name,
                        )
                    )

        return diagnostics

    def evaluate_expression(self, text: str, context: ContextLike | None) -> ExpressionResult:
        """
        Resolve references, then read the result as a literal.

        Only literal passthrough is supported: numbers, true/false and quoted
        strings become typed values, anything else is returned as trimmed text.
        Operators are never evaluated.

        Example:
            resolver.evaluate_expression("{{order.total}}", context)
            # ExpressionResult(success=True, value=42.5, variables=["order.total"])
        """
        paths = [ref.path for ref in parse_references(text)]
        try:
            resolved = self.resolve_in_string(text, context)
        except UnresolvedReferenceError as e:
            return ExpressionResult(success=False, error=str(e), variables=paths)
        return ExpressionResult(success=True, value=_parse_literal(resolved), variables=paths)


__all__ = [
    "ExpressionResult",
    "PreviewResult",
    "PreviewVariable",
    "VariableResolver",
]
