"""Request builder: typed inputs to the JSON document sent to ``POST /responses``."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from openai_responses.errors import RequestError
from openai_responses.types import InputItem, Message, ResponseOptions

RequestInput = str | Sequence[InputItem]


def build_request(
    model: str | None,
    input: RequestInput,
    options: ResponseOptions | Mapping[str, Any] | None = None,
    *,
    stream: bool = False,
) -> dict[str, Any]:
    """Build a Responses API payload.

    A string ``input`` is sent as-is; a sequence is serialized item by item in
    the given order. Raw mappings in the sequence (``function_call_output``
    items, for instance) are copied verbatim. Unknown option keys are passed
    through unchanged.
    """

    if not isinstance(model, str) or not model.strip():
        raise RequestError("model is required")

    payload: dict[str, Any] = {"model": model.strip(), "input": _serialize_input(input)}
    payload.update(coerce_options(options).to_payload())

    payload.pop("stream", None)
    if stream:
        payload["stream"] = True
    return payload


def coerce_options(options: ResponseOptions | Mapping[str, Any] | None) -> ResponseOptions:
    if options is None:
        return ResponseOptions()
    if isinstance(options, ResponseOptions):
        return options
    if isinstance(options, Mapping):
        return ResponseOptions.from_mapping(options)
    raise RequestError(f"unsupported options type: {type(options).__name__}")


def _serialize_input(input: RequestInput) -> str | list[dict[str, Any]]:
    if isinstance(input, str):
        if not input:
            raise RequestError("input cannot be empty")
        return input
    if isinstance(input, Message):
        return [input.to_dict()]

    items: list[dict[str, Any]] = []
    for item in input:
        if isinstance(item, Message):
            items.append(item.to_dict())
        elif isinstance(item, Mapping):
            items.append(dict(item))
        else:
            raise RequestError(f"unsupported input item: {item!r}")
    if not items:
        raise RequestError("input cannot be empty")
    return items


__all__ = ["RequestInput", "build_request", "coerce_options"]
