"""OpenAI Responses client orchestrator."""

from __future__ import annotations

import inspect
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any, cast

import httpx
from pydantic import BaseModel

from openai_responses.config import Settings, TransportKind, load_settings
from openai_responses.errors import (
    ApiConnectionError,
    ApiError,
    ApiTimeoutError,
    DecodeError,
    RequestError,
    ResponsesError,
    SchemaMismatchError,
    error_for_status,
)
from openai_responses.helpers import function_calls, has_refusal, output_text, refusal_text
from openai_responses.logging import configure_logger, event_logger
from openai_responses.parsing import parse_response, parse_stream
from openai_responses.request import RequestInput, build_request, coerce_options
from openai_responses.schema import OutputSchema, build_output
from openai_responses.transport import HttpResponsesTransport, OpenAISDKResponsesTransport, ResponsesTransport
from openai_responses.types import (
    ErrorEvent,
    FunctionCall,
    ParsedResponse,
    Response,
    ResponseEvent,
    ResponseOptions,
)

logger = logging.getLogger(__name__)

Options = ResponseOptions | Mapping[str, Any] | None
FunctionMap = Mapping[str, Callable[..., Any]]


class OpenAIResponsesClient:
    """Async client for the Responses API: buffered, streamed and structured calls."""

    def __init__(self, transport: ResponsesTransport, *, default_model: str | None = None) -> None:
        self._transport = transport
        self._default_model = default_model

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> OpenAIResponsesClient:
        """Build a client from resolved settings (environment by default).

        Also applies ``settings.log_level`` to the package logger.
        """

        settings = settings or load_settings()
        if settings.api_key is None:
            raise RequestError("an API key is required; set OPENAI_API_KEY or pass api_key")

        configure_logger(settings.log_level)
        api_key = settings.api_key.get_secret_value()
        timeout = httpx.Timeout(settings.timeout, connect=settings.connect_timeout)
        transport: ResponsesTransport
        if settings.transport is TransportKind.SDK:
            transport = OpenAISDKResponsesTransport(
                api_key,
                base_url=settings.base_url,
                organization=settings.organization,
                project=settings.project,
                timeout=timeout,
            )
        else:
            transport = HttpResponsesTransport(
                api_key,
                base_url=settings.base_url,
                timeout=timeout,
                organization=settings.organization,
                project=settings.project,
                logger=event_logger(),
            )
        return cls(transport, default_model=settings.default_model)

    def build_payload(
        self, model: str | None, input: RequestInput, options: Options = None, *, stream: bool = False
    ) -> dict[str, Any]:
        return build_request(model or self._default_model, input, options, stream=stream)

    async def create(self, model: str | None, input: RequestInput, options: Options = None) -> Response:
        """Send a buffered request and return the decoded response."""

        payload = self.build_payload(model, input, options)
        logger.debug("create response model=%s", payload["model"])
        body = await self._request("POST", "/responses", payload)
        response = parse_response(body)
        logger.debug("response %s status=%s", response.id, response.status)
        return response

    async def stream(
        self, model: str | None, input: RequestInput, options: Options = None
    ) -> AsyncIterator[ResponseEvent]:
        """Stream parsed events; failures arrive as a final ErrorEvent instead of an exception."""

        payload = self.build_payload(model, input, options, stream=True)
        logger.debug("stream response model=%s", payload["model"])
        try:
            stream_candidate = self._transport.stream_response(payload)
            stream: AsyncIterator[str | bytes]
            if hasattr(stream_candidate, "__aiter__"):
                stream = cast(AsyncIterator[str | bytes], stream_candidate)
            else:
                stream = await cast(Awaitable[AsyncIterator[str | bytes]], stream_candidate)

            async for event in parse_stream(stream):
                yield event
        except httpx.HTTPError as exc:
            yield ErrorEvent(error=_map_transport_error(exc))
        except ResponsesError as exc:
            yield ErrorEvent(error=exc)
        except Exception as exc:
            err = ResponsesError("unexpected error")
            err.__cause__ = exc
            yield ErrorEvent(error=err)

    async def parse(
        self,
        model: str | None,
        input: RequestInput,
        schema: OutputSchema | Mapping[str, Any] | type[BaseModel],
        options: Options = None,
    ) -> ParsedResponse:
        """Request structured output and validate it against ``schema``."""

        output_schema = schema if isinstance(schema, OutputSchema) else build_output(schema)
        request_options = coerce_options(options).with_updates(text_format=output_schema.format())
        response = await self.create(model, input, request_options)
        if has_refusal(response):
            raise SchemaMismatchError(f"model refused to answer: {refusal_text(response)}")
        return ParsedResponse(parsed=output_schema.validate_json(output_text(response)), response=response)

    async def follow_up(
        self,
        previous: Response | str,
        input: RequestInput,
        options: Options = None,
        *,
        model: str | None = None,
    ) -> Response:
        """Continue a conversation server-side via ``previous_response_id``."""

        previous_id = previous.id if isinstance(previous, Response) else previous
        if not previous_id:
            raise RequestError("previous response has no id")
        if model is None and isinstance(previous, Response):
            model = previous.model
        request_options = coerce_options(options).with_updates(previous_response_id=previous_id)
        return await self.create(model, input, request_options)

    async def run(
        self,
        model: str | None,
        input: RequestInput,
        functions: FunctionMap,
        options: Options = None,
        *,
        max_turns: int = 10,
    ) -> list[Response]:
        """Run a local function-calling loop.

        Each turn executes the response's function calls with their decoded
        arguments and sends the results back, until the model answers without
        calling a function or ``max_turns`` is reached. Exceptions raised by a
        function propagate to the caller.
        """

        if max_turns <= 0:
            raise RequestError("max_turns must be positive")

        request_options = coerce_options(options)
        current_input = input
        responses: list[Response] = []
        for _ in range(max_turns):
            response = await self.create(model, current_input, request_options)
            responses.append(response)
            calls = function_calls(response)
            if not calls:
                return responses
            current_input = [await _call_function(functions, call) for call in calls]
            request_options = request_options.with_updates(previous_response_id=response.id)
            model = model or response.model

        logger.warning("function calling stopped after %d turns with calls pending", max_turns)
        return responses

    async def list_models(self) -> list[str]:
        body = await self._request("GET", "/models")
        try:
            data = json.loads(body)
        except json.JSONDecodeError as exc:
            raise DecodeError("models body is not valid JSON", body=body) from exc
        entries = data.get("data") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            raise DecodeError("models body missing data list", body=body)
        return [entry["id"] for entry in entries if isinstance(entry, dict) and "id" in entry]

    async def _request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> str:
        try:
            return await self._transport.request(method, path, payload)
        except httpx.HTTPError as exc:
            raise _map_transport_error(exc) from exc

    async def aclose(self) -> None:
        aclose = getattr(self._transport, "aclose", None)
        if callable(aclose):
            await aclose()

    async def __aenter__(self) -> OpenAIResponsesClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


async def _call_function(functions: FunctionMap, call: FunctionCall) -> dict[str, Any]:
    func = functions.get(call.name)
    if func is None:
        output = json.dumps({"error": f"unknown function: {call.name}"})
    else:
        result = func(**call.parsed_arguments())
        if inspect.isawaitable(result):
            result = await result
        output = result if isinstance(result, str) else json.dumps(result, default=str)
    return {"type": "function_call_output", "call_id": call.call_id, "output": output}


def _map_transport_error(exc: httpx.HTTPError) -> ResponsesError:
    err: ResponsesError
    if isinstance(exc, httpx.TimeoutException):
        err = ApiTimeoutError("request timed out")
    elif isinstance(exc, httpx.HTTPStatusError):
        err = _map_status_error(exc)
    elif isinstance(exc, httpx.RequestError):
        err = ApiConnectionError(f"request failed: {type(exc).__name__}")
    else:
        err = ApiConnectionError("request failed")
    err.__cause__ = exc
    return err


def _map_status_error(exc: httpx.HTTPStatusError) -> ApiError:
    response = exc.response
    return error_for_status(response.status_code, response.text, response.headers)


__all__ = ["OpenAIResponsesClient"]
