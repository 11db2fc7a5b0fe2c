"""LoadResult for safe loading of workflow schemas and execution snapshots.

Loader functions never raise for bad input: missing files, YAML syntax errors
and validation errors are returned as failed results carrying a message.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class LoadStatus(str, Enum):
    """Status of a loading/validation operation."""

    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class LoadResult(Generic[T]):  # noqa: UP046
    """
    Outcome of a load operation: either a value or an error message.

    Usage:
        result = load_workflow_schema_from_file(path)
        if result.is_success:
            catalog.initialize_from_workflow_schema(result.value)
        else:
            logger.warning(f"Load error: {result.error}")
    """

    status: LoadStatus
    value: T | None = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """SUCCESS results must have a value, FAILED results an error message."""
        if self.status == LoadStatus.SUCCESS and self.value is None:
            raise ValueError("Success result must have a value")
        if self.status == LoadStatus.FAILED and not self.error:
            raise ValueError("Failed result must have an error message")

    @property
    def is_success(self) -> bool:
        return self.status == LoadStatus.SUCCESS

    @property
    def is_failure(self) -> bool:
        return self.status == LoadStatus.FAILED

    @classmethod
    def success(cls, value: T, metadata: dict[str, Any] | None = None) -> "LoadResult[T]":
        """Create a successful load result."""
        return cls(status=LoadStatus.SUCCESS, value=value, metadata=metadata or {})

    @classmethod
    def failure(cls, error: str, metadata: dict[str, Any] | None = None) -> "LoadResult[T]":
        """Create a failed load result (file not found, parse error, validation error)."""
        return cls(status=LoadStatus.FAILED, error=error, metadata=metadata or {})

    def __bool__(self) -> bool:
        return self.is_success

    def unwrap(self) -> T:
        """Get value or raise ValueError if failed."""
        if not self.is_success or self.value is None:
            raise ValueError(f"Cannot unwrap failed result: {self.error}")
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get value or return default if failed."""
        if self.is_success and self.value is not None:
            return self.value
        return default


__all__ = ["LoadResult", "LoadStatus"]
