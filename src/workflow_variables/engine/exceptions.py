"""Exceptions raised by the variable engine.

Resolution itself is lenient and reports problems as diagnostics. These
exceptions only surface on explicit opt-in (strict unresolved policy) or on
programming errors at registration time.
"""


class UnresolvedReferenceError(Exception):
    """
    Template references could not be resolved under the "raise" policy.

    Attributes:
        paths: Paths that could not be addressed, in template order
        template: Template text being resolved
    """

    def __init__(self, paths: list[str], template: str):
        """
        Initialize unresolved reference exception.

        Args:
            paths: Unresolved paths
            template: Template text being resolved
        """
        self.paths = paths
        self.template = template
        joined = ", ".join(f"{{{{{p}}}}}" for p in paths)
        super().__init__(f"Unresolved variable reference(s): {joined}")

    def __repr__(self) -> str:
        """Developer-friendly representation."""
        return f"UnresolvedReferenceError(paths={self.paths!r})"


class TransformationRegistrationError(ValueError):
    """A transformation could not be added to a registry (invalid or duplicate id)."""

    def __init__(self, transformation_id: str, reason: str):
        self.transformation_id = transformation_id
        self.reason = reason
        super().__init__(f"Cannot register transformation '{transformation_id}': {reason}")


__all__ = ["TransformationRegistrationError", "UnresolvedReferenceError"]
