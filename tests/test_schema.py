import json

import pytest
from pydantic import BaseModel

from openai_responses.errors import SchemaDefinitionError, SchemaMismatchError
from openai_responses.schema import build_function, build_output


def test_build_output_nested_schema() -> None:
    schema = build_output(
        {
            "name": "string",
            "age": int,
            "tags": ["string"],
            "address": {"street": "string", "zip": ("string", {"description": "postal code"})},
        },
        name="person",
    )
    json_schema = schema.json_schema
    assert json_schema["type"] == "object"
    assert json_schema["required"] == ["name", "age", "tags", "address"]
    assert json_schema["additionalProperties"] is False
    assert json_schema["properties"]["age"] == {"type": "integer"}
    assert json_schema["properties"]["tags"] == {"type": "array", "items": {"type": "string"}}
    address = json_schema["properties"]["address"]
    assert address["additionalProperties"] is False
    assert address["properties"]["zip"] == {"type": "string", "description": "postal code"}

    assert schema.format() == {"type": "json_schema", "name": "person", "schema": json_schema, "strict": True}


def test_enum_any_of_and_array_tuple() -> None:
    schema = build_output(
        {
            "mood": ("enum", ["happy", "sad"]),
            "score": ("any_of", ["number", "null"]),
            "items": ("array", {"id": "integer"}, {"minItems": 1}),
        }
    )
    props = schema.json_schema["properties"]
    assert props["mood"] == {"enum": ["happy", "sad"], "type": "string"}
    assert props["score"] == {"anyOf": [{"type": "number"}, {"type": "null"}]}
    assert props["items"]["minItems"] == 1
    assert props["items"]["items"]["required"] == ["id"]


@pytest.mark.parametrize(
    "fields,path",
    [
        ({"name": "text"}, "name"),
        ({"address": {"street": "varchar"}}, "address.street"),
        ({"tags": ["string", "number"]}, "tags"),
        ({"when": object}, "when"),
        ({"mood": ("enum", [])}, "mood"),
        ({"nested": {}}, "nested"),
    ],
)
def test_unsupported_tags_fail_at_build_time(fields, path) -> None:
    with pytest.raises(SchemaDefinitionError) as excinfo:
        build_output(fields)
    assert excinfo.value.path == path


def test_invalid_schema_name() -> None:
    with pytest.raises(SchemaDefinitionError):
        build_output({"a": "string"}, name="has spaces")


def test_validate_json_returns_plain_dict() -> None:
    schema = build_output({"name": "string", "tags": ["string"], "address": {"city": "string"}})
    value = schema.validate_json(json.dumps({"name": "Ada", "tags": ["math"], "address": {"city": "London"}}))
    assert value == {"name": "Ada", "tags": ["math"], "address": {"city": "London"}}


def test_validate_json_accepts_non_identifier_keys() -> None:
    schema = build_output({"first-name": "string", "class": "string"})
    assert schema.validate_json('{"first-name": "Ada", "class": "x"}') == {"first-name": "Ada", "class": "x"}


@pytest.mark.parametrize(
    "payload,path",
    [
        ({"name": "Ada", "address": {"city": 3}}, "address.city"),
        ({"name": "Ada"}, "address"),
        ({"name": 1, "address": {"city": "x"}}, "name"),
        ({"name": "Ada", "address": {"city": "x"}, "extra": True}, "extra"),
    ],
)
def test_validate_json_reports_field_path(payload, path) -> None:
    schema = build_output({"name": "string", "address": {"city": "string"}})
    with pytest.raises(SchemaMismatchError) as excinfo:
        schema.validate_json(json.dumps(payload))
    assert excinfo.value.path == path


def test_validate_json_rejects_invalid_json() -> None:
    schema = build_output({"name": "string"})
    with pytest.raises(SchemaMismatchError):
        schema.validate_json("not json")


def test_enum_validation() -> None:
    schema = build_output({"mood": ("enum", ["happy", "sad"])})
    assert schema.validate_json('{"mood": "sad"}') == {"mood": "sad"}
    with pytest.raises(SchemaMismatchError):
        schema.validate_json('{"mood": "angry"}')


class Address(BaseModel):
    city: str
    title: str


class Person(BaseModel):
    name: str
    address: Address


def test_pydantic_model_schema_is_strict() -> None:
    schema = build_output(Person, name="person")
    json_schema = schema.json_schema
    assert json_schema["additionalProperties"] is False
    assert json_schema["required"] == ["name", "address"]
    assert "title" not in json_schema
    address_schema = json_schema["$defs"]["Address"]
    assert address_schema["additionalProperties"] is False
    # A field literally called "title" survives.
    assert set(address_schema["properties"]) == {"city", "title"}


def test_pydantic_model_validation_returns_instance() -> None:
    schema = build_output(Person)
    value = schema.validate_json('{"name": "Ada", "address": {"city": "London", "title": "Countess"}}')
    assert isinstance(value, Person)
    assert value.address.city == "London"
    with pytest.raises(SchemaMismatchError):
        schema.validate_json('{"name": "Ada"}')


def test_build_function_uses_tag_language() -> None:
    tool = build_function("get_weather", "Current weather", {"city": "string", "unit": ("enum", ["c", "f"])})
    spec = tool.to_dict()
    assert spec["type"] == "function"
    assert spec["strict"] is True
    assert spec["parameters"]["required"] == ["city", "unit"]
    with pytest.raises(SchemaDefinitionError):
        build_function("bad name", "x", {"a": "string"})
