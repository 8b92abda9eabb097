"""Structural schema model and backend rendering.

Tool-servers describe their inputs with JSON-Schema-like objects. These are
parsed once into immutable :class:`SchemaNode` trees, which each backend then
renders into its own declaration format by walking the tree. Nothing here
depends on a tool's name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class SchemaKind(str, Enum):
    """Node kinds understood by the structural translator."""

    OBJECT = "object"
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    NULL = "null"
    ANY = "any"


@dataclass(frozen=True)
class SchemaNode:
    """One node of a tool input schema.

    Attributes:
        kind: The structural kind of the node
        description: Optional human-readable description
        properties: Child nodes by property name (objects only)
        required: Names of required properties (objects only)
        items: Element schema (arrays only)
        enum: Allowed literal values, if restricted
        nullable: Whether null is accepted in addition to ``kind``
        format: Optional format hint (e.g. "date-time")
    """

    kind: SchemaKind
    description: str | None = None
    properties: dict[str, SchemaNode] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    items: SchemaNode | None = None
    enum: tuple[Any, ...] | None = None
    nullable: bool = False
    format: str | None = None

    @classmethod
    def from_json_schema(cls, schema: Any) -> SchemaNode:
        """Parse a JSON-Schema-like dict into a SchemaNode tree.

        Unknown keywords are ignored. A missing or non-dict schema becomes an
        empty object, which is what a tool without arguments declares.
        """
        if not isinstance(schema, dict):
            return cls(kind=SchemaKind.OBJECT)
        return _parse_node(schema)


def _parse_kind(schema: dict[str, Any]) -> tuple[SchemaKind, bool]:
    raw = schema.get("type")
    nullable = False

    if isinstance(raw, list):
        # ["string", "null"] style unions
        non_null = [t for t in raw if t != "null"]
        nullable = len(non_null) < len(raw)
        raw = non_null[0] if len(non_null) == 1 else None

    if raw is None:
        for key in ("anyOf", "oneOf"):
            variants = schema.get(key)
            if isinstance(variants, list):
                non_null = [
                    v for v in variants if isinstance(v, dict) and v.get("type") != "null"
                ]
                nullable = nullable or len(non_null) < len(variants)
                if len(non_null) == 1:
                    kind, _ = _parse_kind(non_null[0])
                    return kind, nullable
        if "properties" in schema:
            return SchemaKind.OBJECT, nullable
        if "items" in schema:
            return SchemaKind.ARRAY, nullable
        if "enum" in schema:
            return SchemaKind.STRING, nullable
        return SchemaKind.ANY, nullable

    try:
        return SchemaKind(str(raw).lower()), nullable
    except ValueError:
        logger.debug(f"Unknown schema type {raw!r}; treating as any")
        return SchemaKind.ANY, nullable


def _parse_node(schema: dict[str, Any]) -> SchemaNode:
    kind, nullable = _parse_kind(schema)

    # Pull the single non-null variant up so its properties/items are kept
    if "type" not in schema:
        for key in ("anyOf", "oneOf"):
            variants = schema.get(key)
            if isinstance(variants, list):
                non_null = [
                    v for v in variants if isinstance(v, dict) and v.get("type") != "null"
                ]
                if len(non_null) == 1:
                    merged = {**non_null[0], **{k: v for k, v in schema.items() if k != key}}
                    node = _parse_node(merged)
                    return replace(node, nullable=node.nullable or nullable)

    properties: dict[str, SchemaNode] = {}
    raw_props = schema.get("properties")
    if isinstance(raw_props, dict):
        for name, child in raw_props.items():
            properties[name] = _parse_node(child) if isinstance(child, dict) else SchemaNode(
                kind=SchemaKind.ANY
            )

    items = None
    raw_items = schema.get("items")
    if isinstance(raw_items, dict):
        items = _parse_node(raw_items)
    elif kind is SchemaKind.ARRAY:
        items = SchemaNode(kind=SchemaKind.ANY)

    raw_required = schema.get("required")
    required = (
        tuple(r for r in raw_required if isinstance(r, str))
        if isinstance(raw_required, list)
        else ()
    )

    raw_enum = schema.get("enum")
    enum = tuple(raw_enum) if isinstance(raw_enum, list) else None

    description = schema.get("description")
    fmt = schema.get("format")

    return SchemaNode(
        kind=kind,
        description=description if isinstance(description, str) else None,
        properties=properties,
        required=required,
        items=items,
        enum=enum,
        nullable=nullable,
        format=fmt if isinstance(fmt, str) else None,
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

TypeNamer = Callable[[SchemaKind], str | None]


def json_schema_type(kind: SchemaKind) -> str | None:
    """Lowercase JSON Schema type names; ``any`` has no type keyword."""
    if kind is SchemaKind.ANY:
        return None
    return kind.value


def render_schema(
    node: SchemaNode,
    type_name: TypeNamer = json_schema_type,
    stringify_enums: bool = False,
) -> dict[str, Any]:
    """Render a SchemaNode tree as a plain dict.

    The walk is the same for every backend; only the spelling of type names
    (``type_name``) and enum value handling differ.

    Args:
        node: The node to render
        type_name: Maps a kind to the backend's type name (None omits "type")
        stringify_enums: Render enum values as strings (for backends that
                         only accept string enums)

    Returns:
        dict: The rendered schema
    """
    rendered: dict[str, Any] = {}

    name = type_name(node.kind)
    if node.enum is not None and stringify_enums:
        # string-only enum backends need the string type to go with it
        name = type_name(SchemaKind.STRING)
    if name is not None:
        rendered["type"] = name

    if node.description:
        rendered["description"] = node.description
    if node.format:
        rendered["format"] = node.format
    if node.nullable:
        rendered["nullable"] = True

    if node.enum is not None:
        rendered["enum"] = [str(v) for v in node.enum] if stringify_enums else list(node.enum)

    if node.kind is SchemaKind.OBJECT:
        rendered["properties"] = {
            prop: render_schema(child, type_name, stringify_enums)
            for prop, child in node.properties.items()
        }
        required = [r for r in node.required if r in node.properties]
        if len(required) < len(node.required):
            logger.debug(
                f"Dropping required names without properties: "
                f"{sorted(set(node.required) - set(required))}"
            )
        if required:
            rendered["required"] = required

    if node.kind is SchemaKind.ARRAY and node.items is not None:
        rendered["items"] = render_schema(node.items, type_name, stringify_enums)

    return rendered
