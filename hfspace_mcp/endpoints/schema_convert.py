"""
Convert Space parameter descriptors into MCP tool input schemas.

Gradio reports a coarse type ("string", "number", ...), a free-text
python_type expression and description, and the UI component. Numeric
ranges and Literal[...] choices are mined from that free text.
"""

import logging
import re
from typing import Any, Optional

from hfspace_mcp.adapters.schema import ComponentKind, EndpointSpec, ParameterDescriptor

logger = logging.getLogger(__name__)

FILEPATH_TYPE = "filepath"
BINARY_CONTENT_TYPE = "Blob | File | Buffer"
FILE_COMPONENTS = frozenset({ComponentKind.IMAGE, ComponentKind.AUDIO})

CHAT_HISTORY_DESCRIPTION = (
    "Chat history as an array of message pairs. Each pair is "
    "[user_message, assistant_message] where messages can be text strings "
    "or null. Advanced: messages can also be file references or UI components."
)

_NUMBER = r"(-?\d+\.?\d*)"
_BETWEEN = re.compile(rf"between\s+{_NUMBER}\s+and\s+{_NUMBER}", re.IGNORECASE)
_MINIMUM = re.compile(rf"min(?:imum)?\s*[:=]\s*{_NUMBER}", re.IGNORECASE)
_MAXIMUM = re.compile(rf"max(?:imum)?\s*[:=]\s*{_NUMBER}", re.IGNORECASE)
_INTEGER = re.compile(r"-?\d+")

LITERAL_PREFIX = "Literal["


def _to_number(text: str) -> float | int:
    return int(text) if _INTEGER.fullmatch(text) else float(text)


def parse_number_constraints(description: str = "") -> dict[str, float | int]:
    """
    Extract minimum/maximum hints from a free-text description.

    "between X and Y" wins outright; otherwise "min: X" / "maximum=Y"
    are matched independently and whichever are present are returned.
    """
    between = _BETWEEN.search(description)
    if between:
        return {
            "minimum": _to_number(between.group(1)),
            "maximum": _to_number(between.group(2)),
        }

    constraints: dict[str, float | int] = {}
    minimum = _MINIMUM.search(description)
    maximum = _MAXIMUM.search(description)
    if minimum:
        constraints["minimum"] = _to_number(minimum.group(1))
    if maximum:
        constraints["maximum"] = _to_number(maximum.group(1))
    return constraints


def parse_literal_enum(type_expression: str) -> Optional[list[str]]:
    """Literal['a', "b"] -> ["a", "b"]; None for any other expression."""
    if not type_expression.startswith(LITERAL_PREFIX):
        return None
    inner = type_expression[len(LITERAL_PREFIX):]
    if inner.endswith("]"):
        inner = inner[:-1]
    return [value.strip().strip("'\"") for value in inner.split(",")]


def is_file_parameter(param: ParameterDescriptor) -> bool:
    return (
        param.python_type.type == FILEPATH_TYPE
        or param.type == BINARY_CONTENT_TYPE
        or param.component_kind in FILE_COMPONENTS
    )


def _file_description(param: ParameterDescriptor) -> str:
    if param.component_kind is ComponentKind.AUDIO:
        return "Accepts: Audio file URL, file path, or resource identifier"
    if param.component_kind is ComponentKind.IMAGE:
        return "Accepts: Image file URL, file path, or resource identifier"
    return "Accepts: URL, file path, or resource identifier"


def _file_example(example: Any) -> Optional[str]:
    if isinstance(example, dict):
        return example.get("url") or example.get("path")
    return None


def _describe(param: ParameterDescriptor) -> Optional[str]:
    return param.python_type.description or param.label or None


def convert_parameter(param: ParameterDescriptor) -> dict[str, Any]:
    """Convert one parameter descriptor into a JSON-schema property."""
    if is_file_parameter(param):
        schema: dict[str, Any] = {"type": "string", "description": _file_description(param)}
        example = _file_example(param.example_input)
        if example:
            schema["examples"] = [example]
        return schema

    base_type = param.type or "string"
    description = _describe(param)
    if param.parameter_name == "history" and param.component_kind is ComponentKind.CHATBOT:
        base_type = "array"
        description = CHAT_HISTORY_DESCRIPTION

    schema = {"type": base_type}
    if description is not None:
        schema["description"] = description
    if param.parameter_has_default:
        schema["default"] = param.parameter_default
    if param.example_input is not None:
        schema["examples"] = [param.example_input]

    if base_type == "number" and param.python_type.description:
        schema.update(parse_number_constraints(param.python_type.description))
        return schema

    enum_values = parse_literal_enum(param.python_type.type)
    if enum_values is not None:
        description = _describe(param)
        if description is not None:
            schema["description"] = description
        schema["enum"] = enum_values

    return schema


def schema_property_names(parameters: list[ParameterDescriptor]) -> list[str]:
    """
    Property name for each parameter, in declared order.

    parameter_name, else label, else "Unnamed Parameter <n>" (n counts
    nameless parameters only). A name already taken gets a numeric
    suffix ("prompt_2") so no parameter is silently dropped.
    """
    names: list[str] = []
    taken: set[str] = set()
    unnamed = 0
    for param in parameters:
        name = param.parameter_name or param.label
        if not name:
            unnamed += 1
            name = f"Unnamed Parameter {unnamed}"

        candidate = name
        suffix = 1
        while candidate in taken:
            suffix += 1
            candidate = f"{name}_{suffix}"
        if candidate != name:
            logger.warning(f"Duplicate parameter name '{name}' exposed as '{candidate}'")

        taken.add(candidate)
        names.append(candidate)
    return names


def convert_api_to_schema(endpoint: EndpointSpec) -> dict[str, Any]:
    """Build the object schema for an endpoint's parameters."""
    properties: dict[str, Any] = {}
    required: list[str] = []

    for name, param in zip(schema_property_names(endpoint.parameters), endpoint.parameters):
        properties[name] = convert_parameter(param)
        if not param.parameter_has_default:
            required.append(name)

    return {
        "type": "object",
        "properties": properties,
        "required": required,
    }
