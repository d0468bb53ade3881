"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel

from support_agent.errors import ToolInputError

ParameterKind = Literal["string", "number", "integer", "boolean", "array", "object"]

ToolHandler = Callable[[dict[str, Any]], Awaitable[Any]]

_KIND_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "array": (list, tuple),
    "object": (dict,),
}


class ParameterSchema(BaseModel):
    """Schema of a single tool parameter, tagged by primitive kind."""

    kind: ParameterKind
    description: str
    required: bool = False
    items_kind: ParameterKind | None = None

    def to_json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.kind, "description": self.description}
        if self.kind == "array" and self.items_kind:
            schema["items"] = {"type": self.items_kind}
        return schema

    def accepts(self, value: Any) -> bool:
        """Check the value against this parameter's primitive kind."""
        if value is None:
            return not self.required
        # bool is an int subclass; keep it out of numeric kinds
        if isinstance(value, bool) and self.kind != "boolean":
            return False
        return isinstance(value, _KIND_TYPES[self.kind])


def string(description: str, required: bool = False) -> ParameterSchema:
    return ParameterSchema(kind="string", description=description, required=required)


def number(description: str, required: bool = False) -> ParameterSchema:
    return ParameterSchema(kind="number", description=description, required=required)


def boolean(description: str, required: bool = False) -> ParameterSchema:
    return ParameterSchema(kind="boolean", description=description, required=required)


def array(description: str, items_kind: ParameterKind = "string", required: bool = False) -> ParameterSchema:
    return ParameterSchema(kind="array", description=description, required=required, items_kind=items_kind)


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool available to the support agent."""

    name: str
    description: str
    parameters: Mapping[str, ParameterSchema]
    handler: ToolHandler = field(compare=False)

    @property
    def required_fields(self) -> frozenset[str]:
        return frozenset(name for name, schema in self.parameters.items() if schema.required)

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input, as handed to the model."""
        return {
            "type": "object",
            "properties": {name: schema.to_json_schema() for name, schema in self.parameters.items()},
            "required": sorted(self.required_fields),
        }

    def validate_input(self, raw_input: dict[str, Any]) -> dict[str, Any]:
        """Structurally validate tool input.

        Checks that every required field is present and that every known field
        matches its declared kind. Unknown fields are passed through untouched.

        Raises:
            ToolInputError: If validation fails
        """
        if not isinstance(raw_input, dict):
            raise ToolInputError(f"Input for {self.name} must be an object")

        missing = sorted(name for name in self.required_fields if raw_input.get(name) is None)
        if missing:
            raise ToolInputError(f"Missing required parameter(s) for {self.name}: {', '.join(missing)}")

        for name, value in raw_input.items():
            schema = self.parameters.get(name)
            if schema is not None and not schema.accepts(value):
                raise ToolInputError(f"Parameter '{name}' of {self.name} must be of type {schema.kind}")

        return raw_input


@dataclass(frozen=True)
class ToolResult:
    """Explicit result-or-error value returned at the tool boundary."""

    output: Any = None
    error: str | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def ok(cls, output: Any) -> "ToolResult":
        return cls(output=output)

    @classmethod
    def failed(cls, error: str) -> "ToolResult":
        return cls(error=error)
