"""Response mapping and server-sent-event stream parsing."""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any

from openai_responses.errors import ApiError, DecodeError, StreamingParseError
from openai_responses.types import (
    ContentItem,
    ErrorEvent,
    FunctionCall,
    OutputContent,
    OutputItem,
    OutputMessage,
    OutputText,
    Refusal,
    Response,
    ResponseDone,
    ResponseEvent,
    ResponseOutput,
    StreamEvent,
    TextDelta,
    ToolCallDelta,
    ToolCallDone,
    Usage,
)

_RESPONSE_KEYS = {"id", "model", "status", "output", "usage", "error", "incomplete_details", "created_at"}
_USAGE_KEYS = {"input_tokens", "output_tokens", "total_tokens", "input_tokens_details", "output_tokens_details"}
DONE_SENTINEL = "[DONE]"


def parse_response(body: str | bytes | Mapping[str, Any]) -> Response:
    """Decode a buffered response body; raises DecodeError and keeps the body for debugging."""

    if isinstance(body, Mapping):
        data: Any = dict(body)
    else:
        try:
            text = body.decode("utf-8") if isinstance(body, bytes | bytearray) else body
            data = json.loads(text)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodeError("response body is not valid JSON", body=body) from exc
    if not isinstance(data, dict):
        raise DecodeError("response body must be a JSON object", body=body)
    try:
        return response_from_dict(data)
    except DecodeError as exc:
        raise DecodeError(str(exc), body=body) from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise DecodeError(f"unexpected response shape: {exc}", body=body) from exc


def response_from_dict(data: Mapping[str, Any]) -> Response:
    output_raw = data.get("output") or []
    if not isinstance(output_raw, list):
        raise DecodeError("response output must be a list")
    usage_raw = data.get("usage")
    if usage_raw is not None and not isinstance(usage_raw, dict):
        raise DecodeError("response usage must be an object")

    return Response(
        id=data.get("id"),
        model=data.get("model"),
        status=data.get("status"),
        output=tuple(_output_item(item) for item in output_raw),
        usage=_usage(usage_raw) if usage_raw is not None else None,
        error=data.get("error"),
        incomplete_details=data.get("incomplete_details"),
        created_at=data.get("created_at"),
        extra={key: value for key, value in data.items() if key not in _RESPONSE_KEYS},
        raw=dict(data),
    )


def _output_item(item: Any) -> ResponseOutput:
    if not isinstance(item, dict):
        raise DecodeError(f"output item must be an object, got {type(item).__name__}")
    item_type = item.get("type")
    if not isinstance(item_type, str):
        raise DecodeError("output item missing type")

    if item_type == "message":
        content = item.get("content") or []
        if not isinstance(content, list):
            raise DecodeError("message content must be a list")
        return OutputMessage(
            id=item.get("id"),
            role=item.get("role", "assistant"),
            status=item.get("status"),
            content=tuple(_content_item(part) for part in content),
        )

    if item_type == "function_call":
        return _function_call(item)

    return OutputItem(type=item_type, data=item)


def _content_item(part: Any) -> ContentItem:
    if not isinstance(part, dict):
        raise DecodeError("message content part must be an object")
    part_type = part.get("type")
    if part_type == "output_text":
        text = part.get("text")
        if not isinstance(text, str):
            raise DecodeError("output_text part missing text")
        annotations = part.get("annotations") or []
        if not isinstance(annotations, list):
            raise DecodeError("output_text annotations must be a list")
        return OutputText(text=text, annotations=tuple(annotations))
    if part_type == "refusal":
        return Refusal(refusal=str(part.get("refusal", "")))
    return OutputContent(type=str(part_type), data=part)


def _function_call(item: Mapping[str, Any]) -> FunctionCall:
    call_id = item.get("call_id") or item.get("id")
    name = item.get("name")
    if not isinstance(call_id, str) or not isinstance(name, str):
        raise DecodeError("function_call item missing call_id or name")
    arguments = item.get("arguments") or ""
    return FunctionCall(call_id=call_id, name=name, arguments=arguments, id=item.get("id"), status=item.get("status"))


def _usage(data: Mapping[str, Any]) -> Usage:
    input_tokens = _token_count(data, "input_tokens")
    output_tokens = _token_count(data, "output_tokens")
    input_details = _usage_details(data, "input_tokens_details")
    output_details = _usage_details(data, "output_tokens_details")
    total_tokens = _token_count(data, "total_tokens") if data.get("total_tokens") is not None else None
    return Usage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens if total_tokens is not None else input_tokens + output_tokens,
        cached_input_tokens=_token_count(input_details, "cached_tokens"),
        reasoning_tokens=_token_count(output_details, "reasoning_tokens"),
        extra={key: value for key, value in data.items() if key not in _USAGE_KEYS},
    )


def _token_count(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"usage {key} must be an integer")
    return value


def _usage_details(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    details = data.get(key)
    if details is None:
        return {}
    if not isinstance(details, dict):
        raise DecodeError(f"usage {key} must be an object")
    return details


@dataclass(frozen=True, slots=True)
class ServerSentEvent:
    data: str
    event: str | None = None
    id: str | None = None


class SSEDecoder:
    """Incremental SSE framer.

    Chunks may split frames, lines or UTF-8 sequences anywhere; only the
    incomplete tail is kept between calls.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")()

    def feed(self, chunk: str | bytes) -> list[ServerSentEvent]:
        text = self._utf8.decode(chunk) if isinstance(chunk, bytes | bytearray) else chunk
        self._buffer += text
        # A lone trailing CR may be the first half of a CRLF.
        pending_cr = self._buffer.endswith("\r")
        data = self._buffer[:-1] if pending_cr else self._buffer
        data = data.replace("\r\n", "\n").replace("\r", "\n")
        *frames, tail = data.split("\n\n")
        self._buffer = tail + ("\r" if pending_cr else "")
        return [event for frame in frames if (event := _parse_frame(frame)) is not None]

    def flush(self) -> list[ServerSentEvent]:
        """Return the final frame when the stream ended without a trailing blank line."""

        text = self._buffer + self._utf8.decode(b"", final=True)
        self._buffer = ""
        frame = text.replace("\r\n", "\n").replace("\r", "\n").strip("\n")
        if not frame:
            return []
        event = _parse_frame(frame)
        return [event] if event is not None else []


def _parse_frame(frame: str) -> ServerSentEvent | None:
    event_name: str | None = None
    event_id: str | None = None
    data_lines: list[str] = []
    for line in frame.split("\n"):
        if not line or line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "data":
            data_lines.append(value)
        elif name == "event":
            event_name = value
        elif name == "id":
            event_id = value
        elif name != "retry":
            raise StreamingParseError(f"malformed SSE field {name!r}", body=frame)
    if not data_lines:
        return None
    return ServerSentEvent(data="\n".join(data_lines), event=event_name, id=event_id)


async def parse_stream(chunks: AsyncIterator[str | bytes]) -> AsyncIterator[ResponseEvent]:
    """Parse raw SSE chunks into ResponseEvent objects.

    Stops right after the completion marker or an error event. Malformed
    frames and streams that end early raise StreamingParseError. The source
    iterator is closed on exit.
    """

    decoder = SSEDecoder()
    try:
        async for raw in chunks:
            for frame in decoder.feed(raw):
                event = event_from_frame(frame)
                yield event
                if isinstance(event, ResponseDone | ErrorEvent):
                    return
        for frame in decoder.flush():
            event = event_from_frame(frame)
            yield event
            if isinstance(event, ResponseDone | ErrorEvent):
                return
        raise StreamingParseError("stream ended before a completion event")
    finally:
        aclose = getattr(chunks, "aclose", None)
        if callable(aclose):
            await aclose()


def event_from_frame(frame: ServerSentEvent) -> ResponseEvent:
    if frame.data.strip() == DONE_SENTINEL:
        return ResponseDone()

    try:
        payload = json.loads(frame.data)
    except json.JSONDecodeError as exc:
        raise StreamingParseError(f"invalid JSON frame: {frame.data}", body=frame.data) from exc
    if not isinstance(payload, dict):
        raise StreamingParseError("stream frame must be a JSON object", body=frame.data)

    event_type = payload.get("type") or frame.event
    if not isinstance(event_type, str):
        raise StreamingParseError("stream frame missing type", body=frame.data)

    if event_type == "response.output_text.delta":
        delta = payload.get("delta")
        if not isinstance(delta, str):
            raise StreamingParseError("output_text delta missing text", body=frame.data)
        return TextDelta(text=delta, item_id=payload.get("item_id"), output_index=payload.get("output_index"))

    if event_type == "response.function_call_arguments.delta":
        item_id = payload.get("item_id")
        delta = payload.get("delta")
        if not isinstance(item_id, str) or not item_id.strip() or not isinstance(delta, str):
            raise StreamingParseError("function_call_arguments delta missing item_id or delta", body=frame.data)
        return ToolCallDelta(item_id=item_id, arguments_delta=delta, output_index=payload.get("output_index"))

    if event_type == "response.output_item.done":
        item = payload.get("item")
        if isinstance(item, dict) and item.get("type") == "function_call":
            try:
                return ToolCallDone(call=_function_call(item))
            except (DecodeError, TypeError, ValueError, AttributeError) as exc:
                raise StreamingParseError(str(exc), body=frame.data) from exc
        return StreamEvent(type=event_type, data=payload)

    if event_type in {"response.completed", "response.incomplete"}:
        response = payload.get("response")
        if response is None:
            return ResponseDone()
        if not isinstance(response, dict):
            raise StreamingParseError("completion event response must be an object", body=frame.data)
        try:
            return ResponseDone(response=response_from_dict(response))
        except (DecodeError, TypeError, ValueError, AttributeError) as exc:
            raise StreamingParseError(str(exc), body=frame.data) from exc

    if event_type == "response.failed":
        response = payload.get("response") or {}
        error = (response.get("error") or {}) if isinstance(response, dict) else {}
        return ErrorEvent(error=_stream_error(error, default="response failed"))

    if event_type == "error":
        return ErrorEvent(error=_stream_error(payload.get("error") or payload, default="stream error"))

    return StreamEvent(type=event_type, data=payload)


def _stream_error(error: Any, *, default: str) -> ApiError:
    if not isinstance(error, dict):
        return ApiError(default)
    return ApiError(
        str(error.get("message") or default),
        body=error,
        error_type=error.get("type"),
        code=error.get("code"),
    )


__all__ = [
    "DONE_SENTINEL",
    "SSEDecoder",
    "ServerSentEvent",
    "event_from_frame",
    "parse_response",
    "parse_stream",
    "response_from_dict",
]
