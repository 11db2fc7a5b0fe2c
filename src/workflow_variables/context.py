"""Shared context types for MCP server.

This module contains context types used across server and tools modules,
separated to avoid circular imports.
"""

from dataclasses import dataclass

from mcp.server.fastmcp import Context
from mcp.server.session import ServerSession

from .engine import ResolverConfig, TransformationRegistry, VariableCatalog, VariableResolver


@dataclass
class AppContext:
    """Application context containing shared resources for MCP tools.

    Created during server startup and made available to all tools via the
    Context parameter. The resolver and registry are stateless; the catalog
    is the only mutable resource and tools write to it one call at a time.
    """

    registry: TransformationRegistry
    resolver: VariableResolver
    catalog: VariableCatalog
    config: ResolverConfig


# Type alias for MCP tool context parameter
AppContextType = Context[ServerSession, AppContext]


__all__ = ["AppContext", "AppContextType"]
