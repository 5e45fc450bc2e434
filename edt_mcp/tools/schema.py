"""Fluent builder for tool input schemas.

Tools expose their input schema as a JSON string; this builder keeps the
schemas declarative::

    JsonSchemaBuilder.object()
        .string_property("projectName", "EDT project name", required=True)
        .integer_property("limit", "Maximum number of results")
        .build()
"""

from __future__ import annotations

import json
from typing import Any


class JsonSchemaBuilder:
    """Builds a JSON Schema ``object`` description."""

    def __init__(self) -> None:
        self._properties: dict[str, dict[str, Any]] = {}
        self._required: list[str] = []

    @classmethod
    def object(cls) -> JsonSchemaBuilder:
        return cls()

    def property(
        self, name: str, schema: dict[str, Any], required: bool = False
    ) -> JsonSchemaBuilder:
        """Add a property with an arbitrary schema fragment."""
        self._properties[name] = schema
        if required and name not in self._required:
            self._required.append(name)
        return self

    def string_property(
        self, name: str, description: str, required: bool = False
    ) -> JsonSchemaBuilder:
        return self.property(name, {"type": "string", "description": description}, required)

    def integer_property(
        self, name: str, description: str, required: bool = False
    ) -> JsonSchemaBuilder:
        return self.property(name, {"type": "integer", "description": description}, required)

    def boolean_property(
        self, name: str, description: str, required: bool = False
    ) -> JsonSchemaBuilder:
        return self.property(name, {"type": "boolean", "description": description}, required)

    def array_property(
        self,
        name: str,
        description: str,
        item_type: str = "string",
        required: bool = False,
    ) -> JsonSchemaBuilder:
        schema = {"type": "array", "items": {"type": item_type}, "description": description}
        return self.property(name, schema, required)

    def to_dict(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": "object", "properties": dict(self._properties)}
        if self._required:
            schema["required"] = list(self._required)
        return schema

    def build(self) -> str:
        """Serialize the schema to the JSON string tools expose."""
        return json.dumps(self.to_dict())
