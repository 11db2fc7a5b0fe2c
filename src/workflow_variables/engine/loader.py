"""
Loaders for workflow schemas and execution snapshots.

Both payloads can be authored as YAML or JSON (JSON is valid YAML), passed as
text or as a file path. Every loader returns a LoadResult and never raises
for bad input.

Example:
    result = load_workflow_schema_from_file("workflows/onboarding.yaml")
    if result.is_success:
        catalog.initialize_from_workflow_schema(result.value)
"""

import logging
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from .load_result import LoadResult
from .models import ExecutionSnapshot, WorkflowSchema

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _format_validation_error(error: ValidationError) -> str:
    lines = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "<root>"
        lines.append(f"  - {location}: {item['msg']}")
    return "\n".join(lines)


def _load_model(
    model: type[ModelT], content: str, source: str, label: str
) -> LoadResult[ModelT]:
    try:
        data: Any = yaml.safe_load(content)
    except yaml.YAMLError as e:
        return LoadResult.failure(f"Invalid YAML syntax in {source}: {e}")

    if not isinstance(data, dict):
        return LoadResult.failure(
            f"{label} {source} must be a YAML dictionary, got {type(data).__name__}"
        )

    try:
        value = model.model_validate(data)
    except ValidationError as e:
        return LoadResult.failure(
            f"{label} validation failed in {source}:\n{_format_validation_error(e)}"
        )

    return LoadResult.success(value, metadata={"source": source})


def _read_file(file_path: str | Path, label: str) -> LoadResult[str]:
    path = Path(file_path)

    if not path.exists():
        return LoadResult.failure(f"{label} file not found: {file_path}")

    if not path.is_file():
        return LoadResult.failure(f"Path is not a file: {file_path}")

    try:
        with open(path, encoding="utf-8") as f:
            return LoadResult.success(f.read())
    except OSError as e:
        return LoadResult.failure(f"Failed to read file '{file_path}': {e}")


def load_workflow_schema(
    content: str, source: str = "<string>"
) -> LoadResult[WorkflowSchema]:
    """
    Load and validate a workflow schema from YAML/JSON text.

    Args:
        content: YAML or JSON document
        source: Source identifier for error messages (default: "<string>")

    Returns:
        LoadResult.success(WorkflowSchema) if valid
        LoadResult.failure(error_message) otherwise

    Example:
        yaml_str = '''
        name: onboarding
        trigger:
          type: form
        steps:
          - id: intake
            fields:
              - id: email
                type: email
        '''
        result = load_workflow_schema(yaml_str)
    """
    return _load_model(WorkflowSchema, content, source, "Workflow")


def load_workflow_schema_from_file(file_path: str | Path) -> LoadResult[WorkflowSchema]:
    """Load and validate a workflow schema from a YAML/JSON file."""
    read = _read_file(file_path, "Workflow")
    if not read.is_success or read.value is None:
        return LoadResult.failure(read.error or f"Failed to read {file_path}")

    result = load_workflow_schema(read.value, source=str(file_path))
    if result.is_success:
        logger.debug(f"Loaded workflow schema from {file_path}")
    return result


def load_execution_snapshot(
    content: str, source: str = "<string>"
) -> LoadResult[ExecutionSnapshot]:
    """
    Load and validate an execution snapshot from YAML/JSON text.

    The document has "variables" (mapping), "steps" ([{stepId, output}]) and
    optionally "globalVariables".
    """
    return _load_model(ExecutionSnapshot, content, source, "Execution snapshot")


def load_execution_snapshot_from_file(file_path: str | Path) -> LoadResult[ExecutionSnapshot]:
    """Load and validate an execution snapshot from a YAML/JSON file."""
    read = _read_file(file_path, "Execution snapshot")
    if not read.is_success or read.value is None:
        return LoadResult.failure(read.error or f"Failed to read {file_path}")
    return load_execution_snapshot(read.value, source=str(file_path))


__all__ = [
    "load_execution_snapshot",
    "load_execution_snapshot_from_file",
    "load_workflow_schema",
    "load_workflow_schema_from_file",
]
