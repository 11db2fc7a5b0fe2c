"""Shared test configuration for workflow-variables-mcp tests.

Provides:
- A default transformation registry and resolver
- A representative resolution context (form data, step outputs, globals)
- A mock MCP context with AppContext for calling tools directly
- Environment isolation for WORKFLOW_VARIABLES_* settings
"""

from collections.abc import Iterator
from typing import Any
from unittest.mock import MagicMock

import pytest

from workflow_variables.context import AppContext
from workflow_variables.engine import (
    ResolverConfig,
    TransformationRegistry,
    VariableCatalog,
    VariableResolver,
    create_default_registry,
)

ENV_VARS = (
    "WORKFLOW_VARIABLES_ON_UNRESOLVED",
    "WORKFLOW_VARIABLES_DATE_FORMAT",
    "WORKFLOW_VARIABLES_LOG_LEVEL",
    "WORKFLOW_VARIABLES_WORKFLOW_FILE",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Remove WORKFLOW_VARIABLES_* settings so tests see defaults."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def registry() -> TransformationRegistry:
    return create_default_registry()


@pytest.fixture
def resolver(registry: TransformationRegistry) -> VariableResolver:
    return VariableResolver(registry=registry)


@pytest.fixture
def context() -> dict[str, Any]:
    """Resolution context shaped like the workflow editor sends it."""
    return {
        "globalVariables": {"company": "Acme", "env": "prod"},
        "variables": {
            "user": {"name": "ada lovelace", "email": "Ada@Example.com", "age": 36},
            "items": ["a", "b", "c"],
            "matrix": [[1, 2], [3, 4]],
            "price": 10.456,
            "empty": "",
            "nothing": None,
            "form": {"email": " USER@X.COM ", "agree": True},
        },
        "stepOutputs": {
            "fetch": {"status": 200, "body": {"id": 7, "tags": ["x", "y"]}},
            "approve": {"approved": False},
        },
    }


@pytest.fixture
def workflow_schema() -> dict[str, Any]:
    """Workflow definition in the editor's wire format."""
    return {
        "name": "onboarding",
        "trigger": {"type": "form"},
        "containers": [
            {
                "id": "intake",
                "name": "Intake",
                "formElements": [
                    {"id": "email", "label": "Email", "type": "email"},
                    {"id": "age", "label": "Age", "type": "number"},
                    {"id": "newsletter", "type": "toggle", "description": "Opt in"},
                ],
            },
            {
                "id": "review",
                "formElements": [{"id": "tags", "label": "Tags", "type": "checklist"}],
                "outputs": {"approved": "boolean", "notes": "string"},
            },
        ],
    }


@pytest.fixture
def mock_context() -> MagicMock:
    """Create mock MCP context with AppContext for unit testing MCP tools.

    Returns:
        Mock context object with request_context.lifespan_context structure
    """
    config = ResolverConfig()
    registry = create_default_registry(config.date_format)
    app_context = AppContext(
        registry=registry,
        resolver=VariableResolver(registry=registry, config=config),
        catalog=VariableCatalog(),
        config=config,
    )

    mock_ctx = MagicMock()
    mock_ctx.request_context.lifespan_context = app_context

    return mock_ctx
