"""Structured-output schemas.

Schemas are written as nested mappings of field name to type tag::

    build_output({"name": "string", "tags": ["string"], "address": {"city": "string"}})

and compiled into two artefacts: a strict JSON Schema sent with the request
and a pydantic model used to validate what comes back. Pydantic model classes
are accepted directly as well.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from openai_responses.errors import SchemaDefinitionError, SchemaMismatchError
from openai_responses.types import FunctionTool

_SCALARS: dict[str, Any] = {
    "string": str,
    "number": float,
    "integer": int,
    "boolean": bool,
    "null": None,
}
_PY_TYPES: dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    type(None): "null",
}
_STRICT_CONFIG = ConfigDict(extra="forbid", strict=True)
_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


@dataclass(frozen=True, slots=True)
class OutputSchema:
    """Compiled structured-output schema."""

    name: str
    json_schema: Mapping[str, Any]
    model: type[BaseModel]
    returns_model: bool = False

    def format(self) -> dict[str, Any]:
        """Return the ``text.format`` document for the request."""

        return {"type": "json_schema", "name": self.name, "schema": dict(self.json_schema), "strict": True}

    def validate_json(self, text: str) -> Any:
        """Validate JSON text; returns a plain dict, or the model instance for pydantic schemas."""

        try:
            instance = self.model.model_validate_json(text)
        except ValidationError as exc:
            errors = exc.errors()
            first = errors[0] if errors else {}
            loc = first.get("loc", ())
            path = ".".join(str(part) for part in loc) or None
            raise SchemaMismatchError(first.get("msg", "validation failed"), path=path, value=text) from exc
        if self.returns_model:
            return instance
        return instance.model_dump(by_alias=True)


def build_output(fields: Mapping[str, Any] | type[BaseModel], name: str = "data") -> OutputSchema:
    """Compile a structured-output schema; unsupported tags fail here, not at call time."""

    if not _NAME_RE.match(name):
        raise SchemaDefinitionError(f"invalid schema name {name!r}")
    if isinstance(fields, type) and issubclass(fields, BaseModel):
        json_schema = _strictify(fields.model_json_schema())
        return OutputSchema(name=name, json_schema=json_schema, model=fields, returns_model=True)
    if not isinstance(fields, Mapping):
        raise SchemaDefinitionError("top-level schema must be a mapping of fields or a pydantic model")

    json_schema, model = _compile_object(fields, path=(), options=None)
    return OutputSchema(name=name, json_schema=json_schema, model=model)


def build_function(name: str, description: str, parameters: Mapping[str, Any]) -> FunctionTool:
    """Build a strict function tool whose parameters use the same tag language."""

    if not _NAME_RE.match(name):
        raise SchemaDefinitionError(f"invalid function name {name!r}")
    json_schema, _ = _compile_object(parameters, path=(), options=None)
    return FunctionTool(name=name, description=description, parameters=json_schema, strict=True)


def _compile(spec: Any, path: tuple[str, ...]) -> tuple[dict[str, Any], Any]:
    if isinstance(spec, Mapping):
        return _compile_object(spec, path, options=None)

    if isinstance(spec, list):
        if len(spec) != 1:
            raise SchemaDefinitionError("array shorthand takes exactly one item type", path=_dotted(path))
        return _compile_array(spec[0], path, options=None)

    if isinstance(spec, tuple):
        return _compile_tuple(spec, path)

    if isinstance(spec, str):
        if spec not in _SCALARS:
            raise SchemaDefinitionError(f"unsupported type tag {spec!r}", path=_dotted(path))
        return {"type": spec}, _SCALARS[spec]

    if isinstance(spec, type) and spec in _PY_TYPES:
        tag = _PY_TYPES[spec]
        return {"type": tag}, _SCALARS[tag]

    raise SchemaDefinitionError(f"unsupported type tag {spec!r}", path=_dotted(path))


def _compile_tuple(spec: tuple[Any, ...], path: tuple[str, ...]) -> tuple[dict[str, Any], Any]:
    if not spec:
        raise SchemaDefinitionError("empty type tuple", path=_dotted(path))
    head, rest = spec[0], spec[1:]

    if head == "array":
        if not rest or len(rest) > 2:
            raise SchemaDefinitionError("('array', item[, options]) expected", path=_dotted(path))
        return _compile_array(rest[0], path, options=rest[1] if len(rest) == 2 else None)

    if head == "enum":
        if len(rest) != 1 or not isinstance(rest[0], list | tuple) or not rest[0]:
            raise SchemaDefinitionError("('enum', [values]) expected", path=_dotted(path))
        values = list(rest[0])
        schema: dict[str, Any] = {"enum": values}
        if all(isinstance(v, str) for v in values):
            schema["type"] = "string"
        return schema, Literal[tuple(values)]  # type: ignore[valid-type]

    if head == "any_of":
        if len(rest) != 1 or not isinstance(rest[0], list | tuple) or not rest[0]:
            raise SchemaDefinitionError("('any_of', [specs]) expected", path=_dotted(path))
        compiled = [_compile(item, path) for item in rest[0]]
        return {"anyOf": [s for s, _ in compiled]}, Union[tuple(a for _, a in compiled)]  # noqa: UP007

    if len(rest) == 1 and isinstance(rest[0], Mapping):
        if isinstance(head, Mapping):
            return _compile_object(head, path, options=rest[0])
        schema, annotation = _compile(head, path)
        return {**schema, **rest[0]}, annotation

    raise SchemaDefinitionError(f"unsupported type tag {spec!r}", path=_dotted(path))


def _compile_array(
    item: Any, path: tuple[str, ...], options: Mapping[str, Any] | None
) -> tuple[dict[str, Any], Any]:
    item_schema, item_annotation = _compile(item, path + ("items",))
    schema: dict[str, Any] = {"type": "array", "items": item_schema}
    if options:
        schema.update(options)
    return schema, list[item_annotation]  # type: ignore[valid-type]


def _compile_object(
    spec: Mapping[str, Any], path: tuple[str, ...], options: Mapping[str, Any] | None
) -> tuple[dict[str, Any], type[BaseModel]]:
    if not spec:
        raise SchemaDefinitionError("object schema needs at least one field", path=_dotted(path))

    properties: dict[str, Any] = {}
    model_fields: dict[str, Any] = {}
    for index, (key, value) in enumerate(spec.items()):
        if not isinstance(key, str) or not key:
            raise SchemaDefinitionError(f"field names must be non-empty strings, got {key!r}", path=_dotted(path))
        field_schema, annotation = _compile(value, path + (key,))
        properties[key] = field_schema
        # Aliases keep arbitrary JSON keys valid as pydantic fields.
        model_fields[f"field_{index}"] = (annotation, Field(alias=key))

    schema: dict[str, Any] = {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }
    if options:
        schema.update(options)
    model = create_model(_model_name(path), __config__=_STRICT_CONFIG, **model_fields)
    return schema, model


def _strictify(node: Any, *, in_properties: bool = False) -> Any:
    """Make a pydantic-generated JSON Schema acceptable for strict structured output."""

    if isinstance(node, list):
        return [_strictify(item) for item in node]
    if not isinstance(node, dict):
        return node
    if in_properties:
        return {key: _strictify(value) for key, value in node.items()}

    result: dict[str, Any] = {}
    for key, value in node.items():
        if key in {"title", "default"}:
            continue
        result[key] = _strictify(value, in_properties=key in {"properties", "$defs"})
    if result.get("type") == "object" and "properties" in result:
        result["required"] = list(result["properties"])
        result["additionalProperties"] = False
    return result


def _model_name(path: tuple[str, ...]) -> str:
    if not path:
        return "StructuredOutput"
    return "StructuredOutput_" + "_".join(re.sub(r"\W", "_", part) for part in path)


def _dotted(path: tuple[str, ...]) -> str | None:
    return ".".join(path) or None


__all__ = ["OutputSchema", "build_function", "build_output"]
