"""Tests for VariableCatalog."""

from typing import Any

import pytest

from workflow_variables.engine import (
    ResolutionContext,
    VariableCatalog,
    VariableCategory,
    VariableDefinition,
    VariableScope,
    VariableType,
    WorkflowSchema,
)


@pytest.fixture
def catalog(workflow_schema: dict[str, Any]) -> VariableCatalog:
    catalog = VariableCatalog()
    catalog.initialize_from_workflow_schema(workflow_schema)
    return catalog


class TestInitializeFromWorkflowSchema:
    """Tests for initialize_from_workflow_schema()."""

    def test_definitions(self, catalog: VariableCatalog) -> None:
        """Test schema definitions are built in workflow order."""
        assert [v.id for v in catalog.definitions] == [
            "trigger",
            "form-email",
            "form-age",
            "form-newsletter",
            "form-tags",
            "review-approved",
            "review-notes",
        ]

    def test_trigger_definition(self, catalog: VariableCatalog) -> None:
        """Test the trigger definition."""
        trigger = catalog.get("trigger")
        assert trigger.path == "trigger"
        assert trigger.type is VariableType.OBJECT
        assert trigger.category is VariableCategory.TRIGGER
        assert trigger.scope is VariableScope.WORKFLOW

    def test_form_field_types(self, catalog: VariableCatalog) -> None:
        """Test form field types map to variable types."""
        types = {v.path: v.type for v in catalog.get_by_category("form")}
        assert types == {
            "form.email": VariableType.STRING,
            "form.age": VariableType.NUMBER,
            "form.newsletter": VariableType.BOOLEAN,
            "form.tags": VariableType.ARRAY,
        }

    def test_form_field_metadata(self, catalog: VariableCatalog) -> None:
        """Test form field names, descriptions and sources."""
        email = catalog.get("form-email")
        assert email.name == "Email"
        assert email.description == "Form field: Email"
        assert email.source == "intake"
        newsletter = catalog.get("form-newsletter")
        assert newsletter.name == "newsletter"
        assert newsletter.description == "Opt in"

    def test_unknown_field_type_is_string(self) -> None:
        """Test an unknown field type falls back to string."""
        catalog = VariableCatalog()
        catalog.initialize_from_workflow_schema(
            {"steps": [{"id": "s", "fields": [{"id": "pick", "type": "dropdown"}]}]}
        )
        assert catalog.get("form-pick").type is VariableType.STRING

    def test_step_outputs(self, catalog: VariableCatalog) -> None:
        """Test declared step outputs become step-scoped definitions."""
        approved = catalog.get("review-approved")
        assert approved.path == "review.approved"
        assert approved.type is VariableType.BOOLEAN
        assert approved.scope is VariableScope.STEP
        assert approved.category is VariableCategory.STEP

    def test_no_trigger(self) -> None:
        """Test a schema without trigger or steps yields nothing."""
        catalog = VariableCatalog()
        catalog.initialize_from_workflow_schema(WorkflowSchema(name="bare"))
        assert len(catalog) == 0

    def test_replaces_previous_definitions(self, catalog: VariableCatalog) -> None:
        """Test loading a schema replaces existing definitions."""
        catalog.initialize_from_workflow_schema({"trigger": {"type": "manual"}})
        assert [v.id for v in catalog.definitions] == ["trigger"]


class TestInitializeFromExecutionContext:
    """Tests for initialize_from_execution_context()."""

    SNAPSHOT = {
        "variables": {"user": {"name": "Ada"}},
        "globalVariables": {"env": "prod"},
        "steps": [
            {"stepId": "fetch", "output": {"status": 200, "items": [1, 2], "ok": True}},
            {"stepId": "notify", "output": "sent"},
            {"stepId": "skipped", "output": None},
        ],
    }

    def test_definitions_flattened_one_level(self) -> None:
        """Test mapping outputs flatten one level into definitions."""
        catalog = VariableCatalog()
        definitions = catalog.initialize_from_execution_context(self.SNAPSHOT)
        assert [(v.path, v.type) for v in definitions] == [
            ("fetch.status", VariableType.NUMBER),
            ("fetch.items", VariableType.ARRAY),
            ("fetch.ok", VariableType.BOOLEAN),
        ]
        assert definitions[0].value == 200
        assert definitions[0].id == "fetch-status"
        assert all(v.scope is VariableScope.STEP for v in definitions)
        assert all(v.source == "fetch" for v in definitions)

    def test_context_stored(self) -> None:
        """Test the snapshot becomes the live context."""
        catalog = VariableCatalog()
        catalog.initialize_from_execution_context(self.SNAPSHOT)
        assert catalog.context.variables == {"user": {"name": "Ada"}}
        assert catalog.context.global_variables == {"env": "prod"}
        assert catalog.context.step_outputs == {
            "fetch": {"status": 200, "items": [1, 2], "ok": True},
            "notify": "sent",
        }

    def test_replaces_schema_definitions(self, catalog: VariableCatalog) -> None:
        """Test loading a snapshot replaces schema definitions."""
        catalog.initialize_from_execution_context({"steps": []})
        assert len(catalog) == 0


class TestCrud:
    """Tests for add/remove/update/clear."""

    def test_add_and_get(self) -> None:
        """Test adding and fetching a definition."""
        catalog = VariableCatalog()
        catalog.add(VariableDefinition(id="v1", name="One", path="one"))
        assert "v1" in catalog
        assert catalog.get("v1").path == "one"
        assert catalog.get("missing") is None

    def test_add_duplicate_raises(self, catalog: VariableCatalog) -> None:
        """Test adding a duplicate id raises."""
        with pytest.raises(ValueError, match="already exists"):
            catalog.add(VariableDefinition(id="trigger", name="T", path="trigger"))

    def test_remove(self, catalog: VariableCatalog) -> None:
        """Test removing a definition returns it."""
        removed = catalog.remove("form-age")
        assert removed.path == "form.age"
        assert catalog.get("form-age") is None

    def test_remove_missing_raises(self, catalog: VariableCatalog) -> None:
        """Test removing an unknown id raises."""
        with pytest.raises(KeyError):
            catalog.remove("nope")

    def test_update_keeps_position(self, catalog: VariableCatalog) -> None:
        """Test updates keep the definition in place."""
        updated = catalog.update("form-age", description="Age in years", type="string")
        assert updated.description == "Age in years"
        assert updated.type is VariableType.STRING
        assert catalog.definitions[2].id == "form-age"

    def test_update_id(self, catalog: VariableCatalog) -> None:
        """Test renaming a definition id."""
        catalog.update("form-age", id="form-years")
        assert catalog.definitions[2].id == "form-years"
        assert catalog.get("form-age") is None

    def test_update_validates(self, catalog: VariableCatalog) -> None:
        """Test updates are validated."""
        with pytest.raises(ValueError):
            catalog.update("form-age", type="bogus")

    def test_update_missing_raises(self, catalog: VariableCatalog) -> None:
        """Test updating an unknown id raises."""
        with pytest.raises(KeyError):
            catalog.update("nope", name="x")

    def test_clear_keeps_context(self, catalog: VariableCatalog) -> None:
        """Test clearing definitions leaves the context alone."""
        catalog.set_variable_value("a", 1)
        catalog.clear()
        assert len(catalog) == 0
        assert catalog.context.variables == {"a": 1}


class TestQueries:
    """Tests for scope/category/source queries, search and grouping."""

    def test_get_by_scope(self, catalog: VariableCatalog) -> None:
        """Test filtering by scope."""
        assert [v.id for v in catalog.get_by_scope(VariableScope.STEP)] == [
            "review-approved",
            "review-notes",
        ]
        assert len(catalog.get_by_scope("workflow")) == 5

    def test_get_by_source(self, catalog: VariableCatalog) -> None:
        """Test filtering by source step."""
        assert [v.id for v in catalog.get_by_source("review")] == [
            "form-tags",
            "review-approved",
            "review-notes",
        ]

    def test_search_case_insensitive(self, catalog: VariableCatalog) -> None:
        """Test search ignores case."""
        assert [v.id for v in catalog.search("EMAIL")] == ["form-email"]

    def test_search_description(self, catalog: VariableCatalog) -> None:
        """Test search matches descriptions."""
        assert [v.id for v in catalog.search("opt in")] == ["form-newsletter"]

    def test_search_insertion_order(self, catalog: VariableCatalog) -> None:
        """Test search results keep insertion order."""
        ids = [v.id for v in catalog.search("form")]
        assert ids == ["form-email", "form-age", "form-newsletter", "form-tags"]

    def test_suggest(self, catalog: VariableCatalog) -> None:
        """Test path prefix suggestions."""
        assert [v.path for v in catalog.suggest("review.")] == ["review.approved", "review.notes"]
        assert [v.path for v in catalog.suggest("FORM.A")] == ["form.age"]

    def test_groups_by_category(self, catalog: VariableCatalog) -> None:
        """Test grouping by category with labels."""
        catalog.add(VariableDefinition(id="x", name="X", path="x"))
        groups = catalog.groups_by_category()
        assert [(g.category.value, g.label, len(g.variables)) for g in groups] == [
            ("trigger", "Trigger", 1),
            ("form", "Form Data", 4),
            ("step", "Steps", 2),
            ("custom", "Custom", 1),
        ]


class TestContext:
    """Tests for live context operations."""

    def test_set_context(self) -> None:
        """Test the stored context is a copy."""
        catalog = VariableCatalog()
        source = {"variables": {"a": {"b": 1}}}
        catalog.set_context(source)
        source["variables"]["a"]["b"] = 2
        assert catalog.context.variables == {"a": {"b": 1}}

    def test_update_context(self) -> None:
        """Test updating one context layer."""
        catalog = VariableCatalog()
        catalog.set_context(ResolutionContext(variables={"a": 1}, global_variables={"g": 1}))
        catalog.update_context(step_outputs={"s": {"ok": True}})
        assert catalog.context.variables == {"a": 1}
        assert catalog.context.global_variables == {"g": 1}
        assert catalog.context.step_outputs == {"s": {"ok": True}}

    def test_set_variable_value_creates_objects(self) -> None:
        """Test intermediate objects are created."""
        catalog = VariableCatalog()
        catalog.set_variable_value("user.profile.name", "Ada")
        catalog.set_variable_value("user.age", 36)
        assert catalog.context.variables == {"user": {"profile": {"name": "Ada"}, "age": 36}}

    def test_set_variable_value_replaces_scalar(self) -> None:
        """Test a scalar on the path is replaced by an object."""
        catalog = VariableCatalog()
        catalog.set_variable_value("a", 1)
        catalog.set_variable_value("a.b", 2)
        assert catalog.context.variables == {"a": {"b": 2}}

    def test_set_variable_value_empty_path(self) -> None:
        """Test an empty path is rejected."""
        with pytest.raises(ValueError):
            VariableCatalog().set_variable_value(" ", 1)
