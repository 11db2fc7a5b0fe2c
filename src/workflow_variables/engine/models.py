"""
Pydantic v2 models for variable definitions, resolution contexts and the
inbound workflow/execution payloads the catalog is built from.

Inbound payloads come from the workflow editor in camelCase; every model
accepts both the camelCase aliases and the snake_case field names.
"""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class VariableType(str, Enum):
    """Declared type of a catalog variable."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    DATE = "date"
    NULL = "null"
    UNDEFINED = "undefined"
    ANY = "any"


class VariableScope(str, Enum):
    """Visibility scope of a catalog variable."""

    GLOBAL = "global"
    WORKFLOW = "workflow"
    STEP = "step"
    LOCAL = "local"


class VariableCategory(str, Enum):
    """UI grouping of a catalog variable."""

    TRIGGER = "trigger"
    STEP = "step"
    FORM = "form"
    USER = "user"
    SYSTEM = "system"
    CUSTOM = "custom"


CATEGORY_LABELS: dict[VariableCategory, str] = {
    VariableCategory.TRIGGER: "Trigger",
    VariableCategory.STEP: "Steps",
    VariableCategory.FORM: "Form Data",
    VariableCategory.USER: "User",
    VariableCategory.SYSTEM: "System",
    VariableCategory.CUSTOM: "Custom",
}

# Form field UI type -> variable type. Unlisted field types are strings.
FIELD_TYPE_MAP: dict[str, VariableType] = {
    "text": VariableType.STRING,
    "textarea": VariableType.STRING,
    "email": VariableType.STRING,
    "url": VariableType.STRING,
    "number": VariableType.NUMBER,
    "toggle": VariableType.BOOLEAN,
    "date": VariableType.DATE,
    "time": VariableType.DATE,
    "checklist": VariableType.ARRAY,
}


def field_type_to_variable_type(field_type: str | None) -> VariableType:
    """Map a form field's declared UI type to a VariableType."""
    return FIELD_TYPE_MAP.get(field_type or "", VariableType.STRING)


class VariableDefinition(BaseModel):
    """A potentially-available value known to the catalog."""

    model_config = ConfigDict(use_enum_values=False, validate_assignment=True)

    id: str = Field(min_length=1, description="Unique definition identifier")
    name: str = Field(description="Display name")
    path: str = Field(description="Dotted path used in {{...}} references")
    type: VariableType = VariableType.ANY
    scope: VariableScope = VariableScope.WORKFLOW
    category: VariableCategory | None = None
    description: str | None = None
    example: str | None = None
    source: str | None = Field(
        default=None, description="Trigger or step identifier that produces the value"
    )
    value: Any = Field(default=None, description="Current value, for preview only")


class VariableGroup(BaseModel):
    """Definitions sharing a category, in catalog order."""

    category: VariableCategory
    label: str
    variables: list[VariableDefinition]


class ResolutionContext(BaseModel):
    """
    Layered value store references are resolved against.

    Lookups overlay the three mappings at the top level in increasing
    precedence: global_variables, variables, step_outputs.
    """

    model_config = ConfigDict(populate_by_name=True)

    global_variables: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("global_variables", "globalVariables"),
        serialization_alias="globalVariables",
    )
    variables: dict[str, Any] = Field(default_factory=dict)
    step_outputs: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("step_outputs", "stepOutputs"),
        serialization_alias="stepOutputs",
    )


class FormField(BaseModel):
    """Form field declaration of a workflow step."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    label: str | None = None
    type: str | None = None
    description: str | None = None


class WorkflowStep(BaseModel):
    """
    Step of a workflow definition.

    The editor calls steps "containers" and their form fields "formElements";
    both spellings are accepted.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(min_length=1)
    name: str | None = None
    form_fields: list[FormField] = Field(
        default_factory=list,
        validation_alias=AliasChoices("form_fields", "formElements", "fields"),
    )
    outputs: dict[str, VariableType] = Field(
        default_factory=dict, description="Declared output shape: key -> type"
    )


class WorkflowSchema(BaseModel):
    """Workflow definition consumed by VariableCatalog.initialize_from_workflow_schema."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str | None = None
    description: str | None = None
    trigger: dict[str, Any] | None = None
    steps: list[WorkflowStep] = Field(
        default_factory=list,
        validation_alias=AliasChoices("steps", "containers"),
    )


class StepOutput(BaseModel):
    """Output recorded for one executed step."""

    model_config = ConfigDict(populate_by_name=True)

    step_id: str = Field(validation_alias=AliasChoices("step_id", "stepId"), min_length=1)
    output: Any = None


class ExecutionSnapshot(BaseModel):
    """Runtime snapshot consumed by VariableCatalog.initialize_from_execution_context."""

    model_config = ConfigDict(populate_by_name=True)

    variables: dict[str, Any] = Field(default_factory=dict)
    steps: list[StepOutput] = Field(default_factory=list)
    global_variables: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("global_variables", "globalVariables"),
    )


__all__ = [
    "CATEGORY_LABELS",
    "ExecutionSnapshot",
    "FIELD_TYPE_MAP",
    "FormField",
    "ResolutionContext",
    "StepOutput",
    "VariableCategory",
    "VariableDefinition",
    "VariableGroup",
    "VariableScope",
    "VariableType",
    "WorkflowSchema",
    "WorkflowStep",
    "field_type_to_variable_type",
]
