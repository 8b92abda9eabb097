"""Tool discovery and schema conversion layer.

This package loads the tool catalog from the tool-server and converts each
tool's input schema into the declaration format of the active backend.
"""

from mcp_bridge.tools.catalog import ToolCatalog
from mcp_bridge.tools.schema import SchemaKind, SchemaNode, render_schema
from mcp_bridge.tools.types import ToolDescriptor

__all__ = [
    "SchemaKind",
    "SchemaNode",
    "ToolCatalog",
    "ToolDescriptor",
    "render_schema",
]
