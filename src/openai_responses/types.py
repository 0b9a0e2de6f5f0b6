"""Domain models for the OpenAI Responses client."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Any, TypeAlias

from openai_responses.errors import DecodeError, RequestError


class MessageRole(str, Enum):
    """Chat message roles supported by the Responses API."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    DEVELOPER = "developer"


class ImageDetail(str, Enum):
    LOW = "low"
    HIGH = "high"
    AUTO = "auto"


class ReasoningEffort(str, Enum):
    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, slots=True)
class TextPart:
    text: str

    def to_dict(self, role: MessageRole = MessageRole.USER) -> dict[str, Any]:
        part_type = "output_text" if role is MessageRole.ASSISTANT else "input_text"
        return {"type": part_type, "text": self.text}


@dataclass(frozen=True, slots=True)
class ImagePart:
    """Image reference: a remote URL or a ``data:`` URL."""

    url: str
    detail: ImageDetail = ImageDetail.AUTO

    def __post_init__(self) -> None:
        if not self.url.strip():
            raise ValueError("image url cannot be empty")
        if not isinstance(self.detail, ImageDetail):
            object.__setattr__(self, "detail", ImageDetail(self.detail))

    def to_dict(self, role: MessageRole = MessageRole.USER) -> dict[str, Any]:
        return {"type": "input_image", "image_url": self.url, "detail": self.detail.value}


ContentPart: TypeAlias = TextPart | ImagePart


@dataclass(frozen=True, slots=True)
class Message:
    """Single input message: plain text or an ordered tuple of content parts."""

    role: MessageRole
    content: str | tuple[ContentPart, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.role, MessageRole):
            object.__setattr__(self, "role", MessageRole(self.role))
        if isinstance(self.content, str):
            if not self.content:
                raise ValueError("content cannot be empty")
            return
        parts = tuple(self.content)
        if not parts:
            raise ValueError("content cannot be empty")
        for part in parts:
            if not isinstance(part, TextPart | ImagePart):
                raise TypeError(f"Unsupported content part: {part!r}")
        object.__setattr__(self, "content", parts)

    @classmethod
    def user(cls, content: str | Sequence[ContentPart]) -> Message:
        return cls(role=MessageRole.USER, content=content)  # type: ignore[arg-type]

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def developer(cls, content: str) -> Message:
        return cls(role=MessageRole.DEVELOPER, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=MessageRole.ASSISTANT, content=content)

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role.value, "content": self.content}
        return {"role": self.role.value, "content": [part.to_dict(self.role) for part in self.content]}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Message:
        role = MessageRole(data["role"])
        content = data.get("content")
        if isinstance(content, str):
            return cls(role=role, content=content)
        if not isinstance(content, list):
            raise ValueError("message content must be a string or a list of parts")
        parts: list[ContentPart] = []
        for part in content:
            part_type = part.get("type")
            if part_type in {"input_text", "output_text", "text"}:
                parts.append(TextPart(text=part["text"]))
            elif part_type == "input_image":
                parts.append(ImagePart(url=part["image_url"], detail=part.get("detail", ImageDetail.AUTO)))
            else:
                raise ValueError(f"unsupported content part type: {part_type}")
        return cls(role=role, content=tuple(parts))


@dataclass(frozen=True, slots=True)
class FunctionTool:
    """Function tool advertised to the Responses API."""

    name: str
    description: str
    parameters: Mapping[str, Any]
    strict: bool = True

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("tool name cannot be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "function",
            "name": self.name,
            "description": self.description,
            "parameters": dict(self.parameters),
            "strict": self.strict,
        }


ToolSpecification: TypeAlias = FunctionTool | Mapping[str, Any]
InputItem: TypeAlias = Message | Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ResponseOptions:
    """Named request options plus a passthrough bag for keys this client does not know about."""

    instructions: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: int | None = None
    tools: Sequence[ToolSpecification] = ()
    tool_choice: str | Mapping[str, Any] | None = None
    text_format: Mapping[str, Any] | None = None
    reasoning_effort: ReasoningEffort | str | None = None
    previous_response_id: str | None = None
    metadata: Mapping[str, str] | None = None
    store: bool | None = None
    parallel_tool_calls: bool | None = None
    user: str | None = None
    truncation: str | None = None
    include: Sequence[str] | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_output_tokens is not None and self.max_output_tokens <= 0:
            raise RequestError("max_output_tokens must be positive when provided")
        if self.temperature is not None and not 0 <= self.temperature <= 2:
            raise RequestError("temperature must be between 0 and 2")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ResponseOptions:
        known = {f.name for f in fields(cls)} - {"extra"}
        named = {key: value for key, value in data.items() if key in known}
        extra = {key: value for key, value in data.items() if key not in known}
        return cls(**named, extra=extra)

    def with_updates(self, **changes: Any) -> ResponseOptions:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values.update(changes)
        return ResponseOptions(**values)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for name in (
            "instructions",
            "temperature",
            "top_p",
            "max_output_tokens",
            "previous_response_id",
            "store",
            "parallel_tool_calls",
            "user",
            "truncation",
        ):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value

        if self.tools:
            payload["tools"] = [_tool_to_dict(tool) for tool in self.tools]
        if self.tool_choice is not None:
            payload["tool_choice"] = (
                self.tool_choice if isinstance(self.tool_choice, str) else dict(self.tool_choice)
            )
        if self.text_format is not None:
            payload["text"] = {"format": dict(self.text_format)}
        if self.reasoning_effort is not None:
            effort = self.reasoning_effort
            payload["reasoning"] = {"effort": effort.value if isinstance(effort, Enum) else effort}
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        if self.include:
            payload["include"] = list(self.include)

        payload.update(self.extra)
        return payload


def _tool_to_dict(tool: ToolSpecification) -> dict[str, Any]:
    if isinstance(tool, FunctionTool):
        return tool.to_dict()
    if isinstance(tool, Mapping):
        return dict(tool)
    raise TypeError(f"Unsupported tool specification: {tool!r}")


# Response side


@dataclass(frozen=True, slots=True)
class OutputText:
    text: str
    annotations: tuple[Mapping[str, Any], ...] = ()


@dataclass(frozen=True, slots=True)
class Refusal:
    refusal: str


@dataclass(frozen=True, slots=True)
class OutputContent:
    """Message content part of a type this client does not model."""

    type: str
    data: Mapping[str, Any]


ContentItem: TypeAlias = OutputText | Refusal | OutputContent


@dataclass(frozen=True, slots=True)
class OutputMessage:
    id: str | None
    role: str
    status: str | None
    content: tuple[ContentItem, ...]


@dataclass(frozen=True, slots=True)
class FunctionCall:
    """Function call requested by the model."""

    call_id: str
    name: str
    arguments: str
    id: str | None = None
    status: str | None = None

    def parsed_arguments(self) -> dict[str, Any]:
        if not self.arguments:
            return {}
        try:
            value = json.loads(self.arguments)
        except json.JSONDecodeError as exc:
            raise DecodeError(f"invalid arguments for function call {self.name}", body=self.arguments) from exc
        if not isinstance(value, dict):
            raise DecodeError(f"arguments for function call {self.name} must be an object", body=self.arguments)
        return value


@dataclass(frozen=True, slots=True)
class OutputItem:
    """Output item of a type this client does not model (reasoning, web search, ...)."""

    type: str
    data: Mapping[str, Any]


ResponseOutput: TypeAlias = OutputMessage | FunctionCall | OutputItem


@dataclass(frozen=True, slots=True)
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cached_input_tokens: int = 0
    reasoning_tokens: int = 0
    extra: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Response:
    """Decoded Responses API result; unknown top-level keys are kept in ``extra``."""

    id: str | None
    model: str | None
    status: str | None
    output: tuple[ResponseOutput, ...] = ()
    usage: Usage | None = None
    error: Mapping[str, Any] | None = None
    incomplete_details: Mapping[str, Any] | None = None
    created_at: int | float | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class Cost:
    """Estimated USD cost of a response."""

    input_cost: Decimal
    output_cost: Decimal
    total_cost: Decimal


@dataclass(frozen=True, slots=True)
class TokenUsage:
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cached_input_tokens: int = 0
    reasoning_tokens: int = 0
    cost: Cost | None = None


@dataclass(frozen=True, slots=True)
class ParsedResponse:
    """Structured-output result: the validated value and the response it came from."""

    parsed: Any
    response: Response


# Stream events


@dataclass(frozen=True, slots=True)
class TextDelta:
    text: str
    item_id: str | None = None
    output_index: int | None = None


@dataclass(frozen=True, slots=True)
class ToolCallDelta:
    item_id: str
    arguments_delta: str
    output_index: int | None = None

    def __post_init__(self) -> None:
        if not self.item_id.strip():
            raise ValueError("item_id cannot be empty")


@dataclass(frozen=True, slots=True)
class ToolCallDone:
    call: FunctionCall


@dataclass(frozen=True, slots=True)
class ResponseDone:
    """Completion marker; carries the final response when the API sent one."""

    response: Response | None = None


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    error: Exception


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """Event type this client does not model, passed through untouched."""

    type: str
    data: Mapping[str, Any]


ResponseEvent: TypeAlias = TextDelta | ToolCallDelta | ToolCallDone | ResponseDone | ErrorEvent | StreamEvent


__all__ = [
    "ContentItem",
    "ContentPart",
    "Cost",
    "ErrorEvent",
    "FunctionCall",
    "FunctionTool",
    "ImageDetail",
    "ImagePart",
    "InputItem",
    "Message",
    "MessageRole",
    "OutputContent",
    "OutputItem",
    "OutputMessage",
    "OutputText",
    "ParsedResponse",
    "ReasoningEffort",
    "Refusal",
    "Response",
    "ResponseDone",
    "ResponseEvent",
    "ResponseOptions",
    "ResponseOutput",
    "StreamEvent",
    "TextDelta",
    "TextPart",
    "TokenUsage",
    "ToolCallDelta",
    "ToolCallDone",
    "ToolSpecification",
    "Usage",
]
