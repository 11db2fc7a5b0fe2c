"""FastMCP server initialization for workflow-variables-mcp.

This module initializes the MCP server and manages shared resources via lifespan context.
All tool implementations are in the tools module.

Following the official Anthropic Python SDK patterns:
- Lifespan context manager for resource initialization
- Context injection for tool access to shared resources
- FastMCP server with stdio transport
"""

import logging
import os
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .context import AppContext, AppContextType
from .engine import (
    ResolverConfig,
    VariableCatalog,
    VariableResolver,
    create_default_registry,
    load_workflow_schema_from_file,
)

logger = logging.getLogger(__name__)

ENV_LOG_LEVEL = "WORKFLOW_VARIABLES_LOG_LEVEL"
ENV_WORKFLOW_FILE = "WORKFLOW_VARIABLES_WORKFLOW_FILE"

# =============================================================================
# Shared Resources and Lifespan Management
# =============================================================================


def preload_workflow(catalog: VariableCatalog) -> None:
    """Initialize the catalog from WORKFLOW_VARIABLES_WORKFLOW_FILE, if set.

    A missing or invalid file is logged and skipped: the server starts with
    an empty catalog and tools can load a workflow later.

    Args:
        catalog: Catalog to initialize
    """
    path_str = os.getenv(ENV_WORKFLOW_FILE, "").strip()
    if not path_str:
        return

    path = Path(path_str).expanduser()
    result = load_workflow_schema_from_file(path)
    if not result.is_success or result.value is None:
        logger.warning(f"Skipping workflow preload: {result.error}")
        return

    definitions = catalog.initialize_from_workflow_schema(result.value)
    logger.info(f"Preloaded {len(definitions)} variables from {path}")


def create_app_context(config: ResolverConfig | None = None) -> AppContext:
    """Build the shared resources (exposed for testing)."""
    config = config or ResolverConfig.from_env()
    registry = create_default_registry(config.date_format)
    return AppContext(
        registry=registry,
        resolver=VariableResolver(registry=registry, config=config),
        catalog=VariableCatalog(),
        config=config,
    )


@asynccontextmanager
async def app_lifespan(_server: FastMCP) -> AsyncIterator[AppContext]:
    """Manage application lifecycle with resource initialization.

    Environment Variables:
        WORKFLOW_VARIABLES_ON_UNRESOLVED: Unresolved-reference policy
            (literal|empty|keep|raise, default: literal)
        WORKFLOW_VARIABLES_DATE_FORMAT: Default dateFormat template (default: MM/DD/YYYY)
        WORKFLOW_VARIABLES_WORKFLOW_FILE: Optional workflow YAML preloaded into the catalog

    Args:
        _server: FastMCP server instance (unused, required by FastMCP signature)

    Yields:
        AppContext with initialized resources
    """
    logger.info("Initializing MCP server resources...")

    app_context = create_app_context()
    logger.info(
        f"Resolver: on_unresolved={app_context.config.on_unresolved.value}, "
        f"date_format={app_context.config.date_format}, "
        f"{len(app_context.registry.list_ids())} transformations"
    )

    preload_workflow(app_context.catalog)

    try:
        yield app_context
    finally:
        # In-memory resources only, nothing to close
        logger.info("Shutting down MCP server...")


# Following Python MCP naming convention: {service}_mcp
mcp = FastMCP("workflow_variables_mcp", lifespan=app_lifespan)


# =============================================================================
# Server Entry Point
# =============================================================================


def main() -> None:
    """Entry point for running the MCP server.

    Called when the server is run via:
    - python -m workflow_variables
    - workflow-variables-mcp (entry point configured in pyproject.toml)

    Defaults to stdio transport for MCP protocol communication.
    """
    valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    log_level_str = os.getenv(ENV_LOG_LEVEL, "INFO").upper()

    if log_level_str not in valid_log_levels:
        print(
            f"Warning: Invalid {ENV_LOG_LEVEL} '{log_level_str}'. "
            f"Valid levels: {', '.join(sorted(valid_log_levels))}. "
            "Using INFO.",
            file=sys.stderr,
        )
        log_level_str = "INFO"

    # Configure logging to stderr (MCP requirement)
    logging.basicConfig(
        level=getattr(logging, log_level_str),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    logger.info("Starting MCP server (press Ctrl+C to stop)...")

    try:
        mcp.run()
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down gracefully...")
    except Exception as e:
        logger.exception(f"Server error: {e}")
        sys.exit(1)

    logger.info("Server shutdown complete")


__all__ = [
    "mcp",
    "main",
    "AppContext",
    "AppContextType",
    "create_app_context",
    "preload_workflow",
]
