"""Tests for path resolution over a layered context."""

from typing import Any

from workflow_variables.engine import UNDEFINED, ResolutionContext
from workflow_variables.engine.path_resolver import (
    coerce_context,
    flatten_paths,
    merge_context,
    resolve_path,
)


class TestResolvePath:
    """Tests for resolve_path()."""

    def test_dotted_path(self, context: dict[str, Any]) -> None:
        """Test a dotted path into variables."""
        assert resolve_path("user.name", context) == "ada lovelace"

    def test_step_output_path(self, context: dict[str, Any]) -> None:
        """Test a path into a step output."""
        assert resolve_path("fetch.body.id", context) == 7

    def test_global_variable(self, context: dict[str, Any]) -> None:
        """Test global variables are addressed unprefixed."""
        assert resolve_path("company", context) == "Acme"

    def test_array_index(self, context: dict[str, Any]) -> None:
        """Test bracket indexing at any depth."""
        assert resolve_path("items[1]", context) == "b"
        assert resolve_path("fetch.body.tags[0]", context) == "x"

    def test_nested_indexes(self, context: dict[str, Any]) -> None:
        """Test chained indexes."""
        assert resolve_path("matrix[1][0]", context) == 3

    def test_digit_part_indexes_list(self, context: dict[str, Any]) -> None:
        """Test a digit part indexes a list."""
        assert resolve_path("items.2", context) == "c"

    def test_index_out_of_range(self, context: dict[str, Any]) -> None:
        """Test an out-of-range index is undefined."""
        assert resolve_path("items[5]", context) is UNDEFINED

    def test_index_on_non_sequence(self, context: dict[str, Any]) -> None:
        """Test indexing a mapping or string is undefined."""
        assert resolve_path("user[0]", context) is UNDEFINED
        assert resolve_path("user.name[0]", context) is UNDEFINED

    def test_missing_key(self, context: dict[str, Any]) -> None:
        """Test missing keys are undefined."""
        assert resolve_path("user.phone", context) is UNDEFINED
        assert resolve_path("nobody.name", context) is UNDEFINED

    def test_present_none_is_null(self, context: dict[str, Any]) -> None:
        """Test a key holding None resolves to None."""
        assert resolve_path("nothing", context) is None

    def test_traversal_through_none(self, context: dict[str, Any]) -> None:
        """Test walking past None is undefined."""
        assert resolve_path("nothing.deeper", context) is UNDEFINED

    def test_traversal_through_scalar(self, context: dict[str, Any]) -> None:
        """Test walking past a scalar is undefined."""
        assert resolve_path("user.age.value", context) is UNDEFINED

    def test_empty_path(self, context: dict[str, Any]) -> None:
        """Test an empty path is undefined."""
        assert resolve_path("", context) is UNDEFINED

    def test_none_context(self) -> None:
        """Test a missing context resolves nothing."""
        assert resolve_path("a", None) is UNDEFINED

    def test_falsy_values_resolve(self, context: dict[str, Any]) -> None:
        """Test empty strings and False are resolved values."""
        assert resolve_path("empty", context) == ""
        assert resolve_path("approve.approved", context) is False


class TestPrecedence:
    """Top-level overlay: globals < variables < step outputs."""

    def test_variables_override_globals(self) -> None:
        """Test variables shadow globals."""
        ctx = {"globalVariables": {"x": "global"}, "variables": {"x": "var"}}
        assert resolve_path("x", ctx) == "var"

    def test_step_outputs_override_variables(self) -> None:
        """Test step outputs shadow variables."""
        ctx = {"variables": {"s1": {"a": 1}}, "stepOutputs": {"s1": {"b": 2}}}
        assert resolve_path("s1.b", ctx) == 2

    def test_no_deep_merge(self) -> None:
        """Test shadowing replaces the whole top-level value."""
        ctx = {"variables": {"s1": {"a": 1}}, "stepOutputs": {"s1": {"b": 2}}}
        assert resolve_path("s1.a", ctx) is UNDEFINED

    def test_merge_context(self) -> None:
        """Test the merged lookup dict."""
        merged = merge_context(
            {"globalVariables": {"a": 1, "b": 1}, "variables": {"b": 2}, "stepOutputs": {"c": 3}}
        )
        assert merged == {"a": 1, "b": 2, "c": 3}


class TestCoerceContext:
    """Tests for coerce_context()."""

    def test_camel_case_keys(self) -> None:
        """Test camelCase context keys."""
        ctx = coerce_context({"stepOutputs": {"s": 1}, "globalVariables": {"g": 2}})
        assert ctx.step_outputs == {"s": 1}
        assert ctx.global_variables == {"g": 2}

    def test_snake_case_keys(self) -> None:
        """Test snake_case context keys."""
        ctx = coerce_context({"step_outputs": {"s": 1}})
        assert ctx.step_outputs == {"s": 1}

    def test_model_passthrough(self) -> None:
        """Test a model instance is returned as-is."""
        ctx = ResolutionContext(variables={"a": 1})
        assert coerce_context(ctx) is ctx

    def test_none(self) -> None:
        """Test None becomes an empty context."""
        assert coerce_context(None) == ResolutionContext()


class TestFlattenPaths:
    """Tests for flatten_paths()."""

    def test_leaf_paths(self) -> None:
        """Test nested mappings flatten to dotted leaf paths."""
        ctx = {
            "globalVariables": {"env": "prod"},
            "variables": {"user": {"name": "a", "tags": ["x"]}, "count": 1},
            "stepOutputs": {"fetch": {"status": 200}},
        }
        assert flatten_paths(ctx) == [
            "env",
            "user.name",
            "user.tags",
            "count",
            "fetch.status",
        ]

    def test_empty_context(self) -> None:
        """Test an empty context has no paths."""
        assert flatten_paths(None) == []

    def test_listed_paths_resolve(self) -> None:
        """Test every listed path, globals included, resolves in the same context."""
        ctx = {
            "globalVariables": {"company": "Acme", "user": {"id": 1}},
            "variables": {"user": {"name": "a"}},
        }
        paths = flatten_paths(ctx)
        assert paths == ["company", "user.name"]
        assert all(resolve_path(path, ctx) is not UNDEFINED for path in paths)
