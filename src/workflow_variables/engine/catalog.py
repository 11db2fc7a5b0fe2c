"""
Variable catalog for editor suggestions and live preview context.

The catalog holds two independent things:
- definitions: the variables a workflow can reference (for autocomplete,
  grouping and validation), derived from the trigger, form fields and step
  output declarations
- context: the live ResolutionContext used for preview/debugging

A definition can exist for a path the context cannot resolve yet (before the
producing step has run). Resolution never consults the definitions.

Identifiers:
    trigger            - the workflow trigger payload
    form-<fieldId>     - a form field, path "form.<fieldId>"
    <stepId>-<key>     - a step output key, path "<stepId>.<key>"

Writes are not locked; callers serialize them.
"""

import logging
from collections.abc import Mapping
from typing import Any

from .models import (
    CATEGORY_LABELS,
    ExecutionSnapshot,
    ResolutionContext,
    VariableCategory,
    VariableDefinition,
    VariableGroup,
    VariableScope,
    VariableType,
    WorkflowSchema,
    field_type_to_variable_type,
)
from .path_resolver import ContextLike, coerce_context
from .values import infer_type

logger = logging.getLogger(__name__)


class VariableCatalog:
    """
    Known variable definitions plus the live resolution context.

    Example:
        catalog = VariableCatalog()
        catalog.initialize_from_workflow_schema(
            {"trigger": {"type": "manual"}, "containers": [
                {"id": "s1", "formElements": [{"id": "email", "type": "email"}]}
            ]}
        )

        [v.path for v in catalog.definitions]
        # ["trigger", "form.email"]

        catalog.search("mail")
        # [VariableDefinition(id="form-email", ...)]
    """

    def __init__(self) -> None:
        """Initialize empty catalog with an empty context."""
        self._definitions: dict[str, VariableDefinition] = {}
        self.context = ResolutionContext()

    @property
    def definitions(self) -> list[VariableDefinition]:
        """All definitions in insertion order."""
        return list(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, variable_id: object) -> bool:
        return variable_id in self._definitions

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    def initialize_from_workflow_schema(
        self, schema: WorkflowSchema | Mapping[str, Any]
    ) -> list[VariableDefinition]:
        """
        Replace the definition set from a workflow definition.

        Emits one "trigger" definition when the workflow declares a trigger,
        one "form.<fieldId>" definition per form field and one
        "<stepId>.<key>" definition per declared step output.

        Args:
            schema: WorkflowSchema or raw mapping (editor "containers" and
                "formElements" spellings accepted)

        Returns:
            The new definitions, in insertion order
        """
        if not isinstance(schema, WorkflowSchema):
            schema = WorkflowSchema.model_validate(dict(schema))

        definitions: list[VariableDefinition] = []

        if schema.trigger:
            definitions.append(
                VariableDefinition(
                    id="trigger",
                    name="Trigger",
                    path="trigger",
                    type=VariableType.OBJECT,
                    scope=VariableScope.WORKFLOW,
                    category=VariableCategory.TRIGGER,
                    description="Trigger data",
                    source="trigger",
                )
            )

        for step in schema.steps:
            for form_field in step.form_fields:
                label = form_field.label or form_field.id
                definitions.append(
                    VariableDefinition(
                        id=f"form-{form_field.id}",
                        name=label,
                        path=f"form.{form_field.id}",
                        type=field_type_to_variable_type(form_field.type),
                        scope=VariableScope.WORKFLOW,
                        category=VariableCategory.FORM,
                        description=form_field.description or f"Form field: {label}",
                        source=step.id,
                    )
                )

            for key, output_type in step.outputs.items():
                definitions.append(
                    VariableDefinition(
                        id=f"{step.id}-{key}",
                        name=key,
                        path=f"{step.id}.{key}",
                        type=output_type,
                        scope=VariableScope.STEP,
                        category=VariableCategory.STEP,
                        description=f"Output of step {step.name or step.id}",
                        source=step.id,
                    )
                )

        self._replace(definitions)
        logger.info(
            f"Catalog initialized from workflow {schema.name or '<unnamed>'}: "
            f"{len(self._definitions)} variables"
        )
        return self.definitions

    def initialize_from_execution_context(
        self, snapshot: ExecutionSnapshot | Mapping[str, Any]
    ) -> list[VariableDefinition]:
        """
        Replace definitions and live context from an execution snapshot.

        Step outputs become the context's step_outputs (keyed by step id) and
        each top-level key of a mapping output becomes a "<stepId>.<key>"
        definition carrying the current value. Non-mapping outputs are stored
        in the context but produce no definitions.

        Args:
            snapshot: ExecutionSnapshot or raw mapping with "variables" and
                "steps" ([{"stepId", "output"}])

        Returns:
            The new definitions, in insertion order
        """
        if not isinstance(snapshot, ExecutionSnapshot):
            snapshot = ExecutionSnapshot.model_validate(dict(snapshot))

        step_outputs = {
            step.step_id: step.output for step in snapshot.steps if step.output is not None
        }
        self.context = ResolutionContext(
            global_variables=dict(snapshot.global_variables),
            variables=dict(snapshot.variables),
            step_outputs=step_outputs,
        )

        definitions = [
            VariableDefinition(
                id=f"{step_id}-{key}",
                name=str(key),
                path=f"{step_id}.{key}",
                type=infer_type(value),
                scope=VariableScope.STEP,
                category=VariableCategory.STEP,
                source=step_id,
                value=value,
            )
            for step_id, output in step_outputs.items()
            if isinstance(output, Mapping)
            for key, value in output.items()
        ]

        self._replace(definitions)
        logger.info(
            f"Catalog initialized from execution context: "
            f"{len(step_outputs)} step outputs, {len(self._definitions)} variables"
        )
        return self.definitions

    def _replace(self, definitions: list[VariableDefinition]) -> None:
        # Later duplicates overwrite earlier ones in place
        self._definitions = {}
        for definition in definitions:
            self._definitions[definition.id] = definition

    # -------------------------------------------------------------------------
    # Definition CRUD
    # -------------------------------------------------------------------------

    def add(self, definition: VariableDefinition) -> None:
        """
        Add a definition.

        Raises:
            ValueError: If a definition with the same id already exists
        """
        if definition.id in self._definitions:
            raise ValueError(
                f"Variable '{definition.id}' already exists. Use update() or remove() first."
            )
        self._definitions[definition.id] = definition

    def remove(self, variable_id: str) -> VariableDefinition:
        """
        Remove a definition by id.

        Raises:
            KeyError: If the definition is not found
        """
        if variable_id not in self._definitions:
            raise KeyError(f"Variable '{variable_id}' not found in catalog")
        return self._definitions.pop(variable_id)

    def update(self, variable_id: str, **updates: Any) -> VariableDefinition:
        """
        Update fields of a definition in place, keeping its position.

        Args:
            variable_id: Definition id
            **updates: Field values to set (validated)

        Returns:
            The updated definition

        Raises:
            KeyError: If the definition is not found
        """
        if variable_id not in self._definitions:
            raise KeyError(f"Variable '{variable_id}' not found in catalog")

        current = self._definitions[variable_id]
        updated = VariableDefinition.model_validate({**current.model_dump(), **updates})
        if updated.id != variable_id:
            # Rebuild to keep insertion order under the new id
            self._definitions = {
                (updated.id if key == variable_id else key): (
                    updated if key == variable_id else value
                )
                for key, value in self._definitions.items()
            }
        else:
            self._definitions[variable_id] = updated
        return updated

    def clear(self) -> None:
        """Remove every definition (the context is kept)."""
        self._definitions = {}

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, variable_id: str) -> VariableDefinition | None:
        return self._definitions.get(variable_id)

    def get_by_scope(self, scope: VariableScope | str) -> list[VariableDefinition]:
        scope = VariableScope(scope)
        return [v for v in self._definitions.values() if v.scope == scope]

    def get_by_category(self, category: VariableCategory | str) -> list[VariableDefinition]:
        category = VariableCategory(category)
        return [v for v in self._definitions.values() if v.category == category]

    def get_by_source(self, source: str) -> list[VariableDefinition]:
        return [v for v in self._definitions.values() if v.source == source]

    def search(self, query: str) -> list[VariableDefinition]:
        """
        Case-insensitive substring search over name, path and description.

        Results keep catalog (insertion) order.
        """
        needle = query.lower()
        return [
            v
            for v in self._definitions.values()
            if needle in v.name.lower()
            or needle in v.path.lower()
            or needle in (v.description or "").lower()
        ]

    def suggest(self, prefix: str) -> list[VariableDefinition]:
        """Definitions whose path starts with prefix (case-insensitive), for autocomplete."""
        needle = prefix.strip().lower()
        return [v for v in self._definitions.values() if v.path.lower().startswith(needle)]

    def groups_by_category(self) -> list[VariableGroup]:
        """
        Group definitions by category in first-seen order.

        Definitions without a category are grouped under "custom".
        """
        grouped: dict[VariableCategory, list[VariableDefinition]] = {}
        for definition in self._definitions.values():
            category = definition.category or VariableCategory.CUSTOM
            grouped.setdefault(category, []).append(definition)

        return [
            VariableGroup(category=category, label=CATEGORY_LABELS[category], variables=variables)
            for category, variables in grouped.items()
        ]

    # -------------------------------------------------------------------------
    # Live context
    # -------------------------------------------------------------------------

    def set_context(self, context: ContextLike | None) -> None:
        """Replace the live context."""
        self.context = coerce_context(context).model_copy(deep=True)

    def update_context(self, **updates: Any) -> None:
        """
        Replace individual context mappings, keeping the others.

        Example:
            catalog.update_context(step_outputs={"s1": {"ok": True}})
        """
        merged = {
            "global_variables": self.context.global_variables,
            "variables": self.context.variables,
            "step_outputs": self.context.step_outputs,
            **updates,
        }
        self.context = ResolutionContext.model_validate(merged)

    def set_variable_value(self, path: str, value: Any) -> None:
        """
        Set a value in the context's variables at a dotted path.

        Missing intermediate objects are created; a non-mapping intermediate
        value is replaced by an object.
        """
        parts = [p.strip() for p in path.split(".") if p.strip()]
        if not parts:
            raise ValueError("Variable path cannot be empty")

        variables = dict(self.context.variables)
        current = variables
        for part in parts[:-1]:
            child = current.get(part)
            child = dict(child) if isinstance(child, Mapping) else {}
            current[part] = child
            current = child
        current[parts[-1]] = value

        self.context = self.context.model_copy(update={"variables": variables})


__all__ = ["VariableCatalog"]
