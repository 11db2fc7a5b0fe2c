"""
Diagnostics and result types for non-fatal resolution outcomes.

Resolution never raises for malformed templates or missing data. Instead the
core primitives return a ResolutionResult carrying the value, whether it was
resolved, and the diagnostics collected on the way. Callers decide whether
they are lenient (execution runtime) or strict (editor validation).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .values import UNDEFINED


class DiagnosticCode(str, Enum):
    """Kinds of non-fatal resolution outcomes."""

    EMPTY_REFERENCE = "empty_reference"
    INVALID_PATH = "invalid_path"
    UNRESOLVED_PATH = "unresolved_path"
    UNKNOWN_TRANSFORMATION = "unknown_transformation"
    TRANSFORMATION_FAILED = "transformation_failed"


@dataclass(frozen=True)
class Diagnostic:
    """One non-fatal problem found while parsing or resolving a reference."""

    code: DiagnosticCode
    message: str
    path: str | None = None
    transformation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.path is not None:
            data["path"] = self.path
        if self.transformation is not None:
            data["transformation"] = self.transformation
        return data


@dataclass
class ResolutionResult:
    """
    Outcome of resolving a reference or a template.

    Attributes:
        value: Resolved value (UNDEFINED if the path could not be addressed)
        resolved: True when every path involved was addressable
        diagnostics: Problems collected while resolving, in encounter order
        unresolved_paths: Paths that could not be addressed (templates only)
    """

    value: Any = UNDEFINED
    resolved: bool = True
    diagnostics: list[Diagnostic] = field(default_factory=list)
    unresolved_paths: list[str] = field(default_factory=list)

    @property
    def has_diagnostics(self) -> bool:
        return bool(self.diagnostics)


__all__ = ["Diagnostic", "DiagnosticCode", "ResolutionResult"]
