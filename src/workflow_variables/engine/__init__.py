"""Variable reference resolution engine.

Substitutes {{path|transform:args}} references in workflow step
configurations against a layered runtime context.

Key Components:

- parser: Reference grammar, parse_references(), build_reference() and editor helpers
- path_resolver: Dotted/indexed path lookup over a merged ResolutionContext
- TransformationRegistry: Named value transformations (create_default_registry() for built-ins)
- VariableResolver: Single-reference, template and deep resolution plus preview/validation
- VariableCatalog: Known variable definitions for autocomplete, plus the live preview context
- ResolverConfig: Unresolved-reference policy and default date format
- LoadResult: Error monad for schema/snapshot loading

Failure model:
- Missing data and malformed references are never exceptions; they surface as
  Diagnostic records and, in output text, per the OnUnresolved policy
- UnresolvedReferenceError is raised only under OnUnresolved.RAISE
"""

from .catalog import VariableCatalog
from .config import OnUnresolved, ResolverConfig
from .diagnostics import Diagnostic, DiagnosticCode, ResolutionResult
from .exceptions import TransformationRegistrationError, UnresolvedReferenceError
from .load_result import LoadResult, LoadStatus
from .loader import (
    load_execution_snapshot,
    load_execution_snapshot_from_file,
    load_workflow_schema,
    load_workflow_schema_from_file,
)
from .models import (
    ExecutionSnapshot,
    FormField,
    ResolutionContext,
    StepOutput,
    VariableCategory,
    VariableDefinition,
    VariableGroup,
    VariableScope,
    VariableType,
    WorkflowSchema,
    WorkflowStep,
)
from .parser import (
    Reference,
    TransformationCall,
    build_reference,
    extract_paths,
    find_reference_at_offset,
    has_references,
    is_valid_path,
    parse_references,
)
from .path_resolver import resolve_path
from .resolver import ExpressionResult, PreviewResult, PreviewVariable, VariableResolver
from .transformations import (
    Transformation,
    TransformationCategory,
    TransformationRegistry,
    create_default_registry,
)
from .values import UNDEFINED, stringify

__all__ = [
    # Parsing
    "Reference",
    "TransformationCall",
    "build_reference",
    "extract_paths",
    "find_reference_at_offset",
    "has_references",
    "is_valid_path",
    "parse_references",
    # Resolution
    "ExpressionResult",
    "PreviewResult",
    "PreviewVariable",
    "ResolutionContext",
    "ResolutionResult",
    "UNDEFINED",
    "VariableResolver",
    "resolve_path",
    "stringify",
    # Transformations
    "Transformation",
    "TransformationCategory",
    "TransformationRegistry",
    "create_default_registry",
    # Catalog
    "ExecutionSnapshot",
    "FormField",
    "StepOutput",
    "VariableCatalog",
    "VariableCategory",
    "VariableDefinition",
    "VariableGroup",
    "VariableScope",
    "VariableType",
    "WorkflowSchema",
    "WorkflowStep",
    # Config and diagnostics
    "Diagnostic",
    "DiagnosticCode",
    "OnUnresolved",
    "ResolverConfig",
    "TransformationRegistrationError",
    "UnresolvedReferenceError",
    # Loading
    "LoadResult",
    "LoadStatus",
    "load_execution_snapshot",
    "load_execution_snapshot_from_file",
    "load_workflow_schema",
    "load_workflow_schema_from_file",
]
