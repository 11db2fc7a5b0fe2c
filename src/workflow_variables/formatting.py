"""Shared formatting utilities for MCP tool responses.

All markdown formatting for tool responses is centralized here.

Following MCP best practices:
- Markdown format: Human-readable with headers, lists, and formatting
- JSON format: Machine-readable structured data for programmatic access
"""

from typing import Any

from .engine import (
    Diagnostic,
    PreviewResult,
    Transformation,
    VariableGroup,
    stringify,
)

# =============================================================================
# Markdown Formatting Utilities
# =============================================================================


def _format_diagnostics(diagnostics: list[Diagnostic]) -> list[str]:
    if not diagnostics:
        return []
    lines = ["", "## Diagnostics"]
    for diagnostic in diagnostics:
        lines.append(f"- `{diagnostic.code.value}`: {diagnostic.message}")
    return lines


def format_preview_markdown(preview: PreviewResult) -> str:
    """Format a template preview as markdown.

    Args:
        preview: PreviewResult from VariableResolver.preview()

    Returns:
        Markdown with the resolved text and a per-reference status list
    """
    lines = [
        "# Template Preview",
        "",
        "## Resolved",
        "```",
        preview.resolved,
        "```",
    ]

    if preview.variables:
        lines.append("")
        lines.append(f"## References ({len(preview.variables)})")
        for variable in preview.variables:
            marker = "ok" if variable.resolved else "unresolved"
            lines.append(f"- `{variable.raw}` [{marker}]: {stringify(variable.value)}")

    lines.extend(_format_diagnostics(preview.diagnostics))
    return "\n".join(lines)


def format_transformations_markdown(
    transformations: list[Transformation], category: str | None = None
) -> str:
    """Format transformation list as markdown, grouped by category.

    Args:
        transformations: Transformations in registration order
        category: Optional category used for filtering (for display)

    Returns:
        Markdown-formatted transformation list
    """
    if not transformations:
        category_msg = f" in category: {category}" if category else ""
        return f"No transformations found{category_msg}"

    grouped: dict[str, list[Transformation]] = {}
    for transformation in transformations:
        key = transformation.to_dict()["category"] or "Other"
        grouped.setdefault(key, []).append(transformation)

    lines = [f"## Available Transformations ({len(transformations)})"]
    for group, members in grouped.items():
        lines.append("")
        lines.append(f"### {group}")
        for t in members:
            line = f"- **{t.id}**: {t.description}"
            if t.example:
                line += f" (`{t.example}`)"
            lines.append(line)

    return "\n".join(lines)


def format_variable_groups_markdown(groups: list[VariableGroup]) -> str:
    """Format catalog groups as markdown.

    Args:
        groups: Groups from VariableCatalog.groups_by_category()

    Returns:
        Markdown with one section per category
    """
    if not groups:
        return "No variables found"

    total = sum(len(group.variables) for group in groups)
    lines = [f"## Variables ({total})"]
    for group in groups:
        lines.append("")
        lines.append(f"### {group.label}")
        for variable in group.variables:
            line = f"- `{{{{{variable.path}}}}}` ({variable.type.value})"
            if variable.description:
                line += f": {variable.description}"
            lines.append(line)

    return "\n".join(lines)


def format_validation_markdown(
    template_valid: bool,
    diagnostics: list[dict[str, Any]],
    warnings: list[str] | None = None,
) -> str:
    """Format validate_template results as markdown."""
    if template_valid:
        lines = ["Template is valid"]
    else:
        lines = [f"## Template has {len(diagnostics)} problem(s)"]
        for diagnostic in diagnostics:
            lines.append(f"- `{diagnostic['code']}`: {diagnostic['message']}")

    if warnings:
        lines.append("")
        lines.append(f"### Warnings ({len(warnings)})")
        lines.extend(f"- {warning}" for warning in warnings)
    return "\n".join(lines)


__all__ = [
    "format_preview_markdown",
    "format_transformations_markdown",
    "format_validation_markdown",
    "format_variable_groups_markdown",
]
