"""Type definitions for tool-server tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from mcp_bridge.tools.schema import SchemaKind, SchemaNode


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool advertised by the tool-server through ``tools/list``.

    Attributes:
        name: Tool name used in ``tools/call``
        description: Optional description shown to the model
        input_schema: Parsed input schema
        raw_schema: The schema exactly as the tool-server sent it
    """

    name: str
    description: str | None = None
    input_schema: SchemaNode = field(
        default_factory=lambda: SchemaNode(kind=SchemaKind.OBJECT)
    )
    raw_schema: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def from_wire(data: Any) -> ToolDescriptor:
        """Create a ToolDescriptor from one ``tools/list`` entry.

        Raises:
            ValueError: If the entry is not an object with a non-empty name
        """
        if not isinstance(data, dict):
            raise ValueError(f"Tool entry is not an object: {data!r}")

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError(f"Tool entry has no name: {data!r}")

        description = data.get("description")
        raw_schema = data.get("inputSchema")
        if not isinstance(raw_schema, dict):
            raw_schema = {}

        return ToolDescriptor(
            name=name,
            description=description if isinstance(description, str) else None,
            input_schema=SchemaNode.from_json_schema(raw_schema),
            raw_schema=raw_schema,
        )

    @property
    def required_arguments(self) -> tuple[str, ...]:
        """Names of required top-level arguments."""
        return self.input_schema.required
