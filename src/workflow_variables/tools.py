"""MCP tool implementations for variable reference resolution.

This module contains all MCP tool function implementations that expose the
resolution engine and variable catalog via the MCP protocol.

Following official Anthropic MCP Python SDK patterns:
- Tool functions decorated with @mcp.tool()
- Flat parameter signatures with Annotated types for validation
- Type hints for automatic schema generation
- Async functions for all tools
- Clear docstrings (become tool descriptions)

Tools that take an optional context fall back to the catalog's live context
(set by load_execution_context) when none is given.
"""

from typing import Annotated, Any, Literal

from mcp.types import ToolAnnotations
from pydantic import Field, ValidationError

from .context import AppContextType
from .engine import (
    ResolutionContext,
    UnresolvedReferenceError,
    extract_paths,
    load_execution_snapshot,
    load_workflow_schema,
    load_workflow_schema_from_file,
)
from .formatting import (
    format_preview_markdown,
    format_transformations_markdown,
    format_validation_markdown,
    format_variable_groups_markdown,
)
from .server import mcp

OnUnresolvedLiteral = Literal["literal", "empty", "keep", "raise"]


def _context_or_live(
    context: dict[str, Any] | None, ctx: AppContextType
) -> ResolutionContext | dict[str, Any]:
    if context is None:
        return ctx.request_context.lifespan_context.catalog.context
    return context


def _invalid_context(error: ValidationError) -> dict[str, Any]:
    return {
        "status": "failure",
        "error": (
            "Invalid context. Expected an object with optional 'variables', "
            f"'stepOutputs' and 'globalVariables' mappings: {error.error_count()} error(s)"
        ),
    }


# =============================================================================
# Resolution Tools
# =============================================================================


@mcp.tool(
    annotations=ToolAnnotations(
        title="Resolve Template",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def resolve_template(
    template: Annotated[
        str | dict[str, Any] | list[Any],
        Field(description="Text, or JSON object/array, containing {{path|transform}} references"),
    ],
    context: Annotated[
        dict[str, Any] | None,
        Field(
            description=(
                "Resolution context {variables, stepOutputs, globalVariables}. "
                "Omit to use the live context from load_execution_context()"
            )
        ),
    ] = None,
    on_unresolved: Annotated[
        OnUnresolvedLiteral | None,
        Field(description="Override unresolved policy: literal|empty|keep|raise"),
    ] = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Substitute {{...}} references. Required: template. Optional: context, on_unresolved."""
    resolver = ctx.request_context.lifespan_context.resolver
    resolution_context = _context_or_live(context, ctx)

    try:
        if isinstance(template, str):
            result = resolver.resolve_in_string_result(
                template, resolution_context, on_unresolved
            )
            return {
                "status": "success",
                "resolved": result.value,
                "unresolved_paths": result.unresolved_paths,
                "diagnostics": [d.to_dict() for d in result.diagnostics],
            }

        resolved = resolver.resolve_deep(template, resolution_context, on_unresolved)
        return {"status": "success", "resolved": resolved}
    except UnresolvedReferenceError as e:
        return {"status": "failure", "error": str(e), "unresolved_paths": e.paths}
    except ValidationError as e:
        return _invalid_context(e)


@mcp.tool(
    annotations=ToolAnnotations(
        title="Preview Template",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def preview_template(
    template: Annotated[
        str,
        Field(description="Template text to preview", max_length=100000),
    ],
    context: Annotated[
        dict[str, Any] | None,
        Field(description="Resolution context. Omit to use the live context"),
    ] = None,
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "json",
    *,
    ctx: AppContextType,
) -> dict[str, Any] | str:
    """Preview a template with per-reference resolution status. Required: template."""
    resolver = ctx.request_context.lifespan_context.resolver

    try:
        preview = resolver.preview(template, _context_or_live(context, ctx))
    except ValidationError as e:
        return _invalid_context(e)

    if format == "markdown":
        return format_preview_markdown(preview)
    return preview.to_dict()


@mcp.tool(
    annotations=ToolAnnotations(
        title="Validate Template",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def validate_template(
    template: Annotated[
        str,
        Field(description="Template text to check", max_length=100000),
    ],
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "json",
    *,
    ctx: AppContextType,
) -> dict[str, Any] | str:
    """Check reference syntax and transformation names without a context. Required: template."""
    app_ctx = ctx.request_context.lifespan_context
    resolver = app_ctx.resolver

    diagnostics = [d.to_dict() for d in resolver.validate_template(template)]
    valid = not diagnostics

    # Paths the catalog does not know are warnings, not errors
    warnings: list[str] = []
    catalog = app_ctx.catalog
    if len(catalog):
        known = {definition.path for definition in catalog.definitions}
        for ref_path in filter(None, extract_paths(template)):
            if not any(ref_path == path or ref_path.startswith(f"{path}.") for path in known):
                warnings.append(f"Variable '{ref_path}' is not in the catalog")

    warnings.sort()
    if format == "markdown":
        return format_validation_markdown(valid, diagnostics, warnings)

    return {"valid": valid, "errors": diagnostics, "warnings": warnings}


@mcp.tool(
    annotations=ToolAnnotations(
        title="List Transformations",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def list_transformations(
    category: Annotated[
        str | None,
        Field(description="Filter by category (String, Number, Array, Date, Conversion, Utility)"),
    ] = None,
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "json",
    *,
    ctx: AppContextType,
) -> dict[str, Any] | str:
    """List transformations usable as {{path|name:args}}. Optional: category, format."""
    registry = ctx.request_context.lifespan_context.registry

    transformations = registry.get_by_category(category) if category else registry.get_all()

    if format == "markdown":
        return format_transformations_markdown(transformations, category)

    return {
        "categories": registry.get_categories(),
        "transformations": [t.to_dict() for t in transformations],
    }


# =============================================================================
# Catalog Tools
# =============================================================================


@mcp.tool(
    annotations=ToolAnnotations(
        title="Load Workflow Variables",
        readOnlyHint=False,
        destructiveHint=True,  # Replaces the catalog's definitions
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def load_workflow_variables(
    workflow_yaml: Annotated[
        str | None,
        Field(description="Workflow definition as YAML or JSON", max_length=1000000),
    ] = None,
    file_path: Annotated[
        str | None,
        Field(description="Path to a workflow YAML/JSON file (used if workflow_yaml is omitted)"),
    ] = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Replace catalog variables from a workflow's trigger, form fields and step outputs."""
    if workflow_yaml is not None:
        load_result = load_workflow_schema(workflow_yaml, source="<workflow_yaml>")
    elif file_path:
        load_result = load_workflow_schema_from_file(file_path)
    else:
        return {"status": "failure", "error": "Provide either workflow_yaml or file_path"}

    if not load_result.is_success or load_result.value is None:
        return {"status": "failure", "error": load_result.error}

    catalog = ctx.request_context.lifespan_context.catalog
    definitions = catalog.initialize_from_workflow_schema(load_result.value)

    return {
        "status": "success",
        "total": len(definitions),
        "variables": [d.model_dump(mode="json", exclude={"value"}) for d in definitions],
    }


@mcp.tool(
    annotations=ToolAnnotations(
        title="Load Execution Context",
        readOnlyHint=False,
        destructiveHint=True,  # Replaces the catalog's definitions and live context
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def load_execution_context(
    snapshot: Annotated[
        str | dict[str, Any],
        Field(
            description=(
                "Execution snapshot {variables, steps: [{stepId, output}], globalVariables} "
                "as an object or YAML/JSON text"
            )
        ),
    ],
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """Replace the live context and step-output variables from an execution snapshot."""
    catalog = ctx.request_context.lifespan_context.catalog

    if isinstance(snapshot, str):
        load_result = load_execution_snapshot(snapshot, source="<snapshot>")
        if not load_result.is_success or load_result.value is None:
            return {"status": "failure", "error": load_result.error}
        payload: Any = load_result.value
    else:
        payload = snapshot

    try:
        definitions = catalog.initialize_from_execution_context(payload)
    except ValidationError as e:
        return {"status": "failure", "error": f"Invalid execution snapshot: {e}"}

    return {
        "status": "success",
        "total": len(definitions),
        "steps": list(catalog.context.step_outputs.keys()),
        "variables": [d.path for d in definitions],
    }


@mcp.tool(
    annotations=ToolAnnotations(
        title="List Variables",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def list_variables(
    query: Annotated[
        str | None,
        Field(description="Case-insensitive substring over name, path and description"),
    ] = None,
    prefix: Annotated[
        str | None,
        Field(description="Path prefix for autocomplete (e.g., 'form.')"),
    ] = None,
    scope: Annotated[
        Literal["global", "workflow", "step", "local"] | None,
        Field(description="Filter by scope"),
    ] = None,
    category: Annotated[
        Literal["trigger", "step", "form", "user", "system", "custom"] | None,
        Field(description="Filter by category"),
    ] = None,
    format: Annotated[  # noqa: A002
        Literal["json", "markdown"],
        Field(description="Output format"),
    ] = "json",
    *,
    ctx: AppContextType,
) -> dict[str, Any] | str:
    """List catalog variables. Optional: query, prefix, scope, category, format."""
    catalog = ctx.request_context.lifespan_context.catalog

    if query:
        variables = catalog.search(query)
    elif prefix:
        variables = catalog.suggest(prefix)
    else:
        variables = catalog.definitions

    if scope:
        variables = [v for v in variables if v.scope.value == scope]
    if category:
        variables = [v for v in variables if v.category and v.category.value == category]

    if format == "markdown":
        ids = {v.id for v in variables}
        groups = [
            group.model_copy(update={"variables": [v for v in group.variables if v.id in ids]})
            for group in catalog.groups_by_category()
        ]
        return format_variable_groups_markdown([g for g in groups if g.variables])

    return {
        "total": len(variables),
        "variables": [v.model_dump(mode="json") for v in variables],
    }


@mcp.tool(
    annotations=ToolAnnotations(
        title="Get Context Paths",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
async def get_context_paths(
    context: Annotated[
        dict[str, Any] | None,
        Field(description="Context to flatten. Omit to use the live context"),
    ] = None,
    *,
    ctx: AppContextType,
) -> dict[str, Any]:
    """List every dotted leaf path addressable in a context."""
    resolver = ctx.request_context.lifespan_context.resolver

    try:
        paths = resolver.available_paths(_context_or_live(context, ctx))
    except ValidationError as e:
        return _invalid_context(e)

    return {"total": len(paths), "paths": paths}
