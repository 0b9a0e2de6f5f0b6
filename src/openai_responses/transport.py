"""Transport abstraction for the OpenAI Responses client.

Transports never retry: a repeated ``POST /responses`` costs tokens and
counts against rate limits, so retry policy belongs to the caller.
"""

from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from typing import Any, Protocol

import httpx
import openai
from openai import AsyncOpenAI

from openai_responses.errors import (
    ApiConnectionError,
    ApiTimeoutError,
    DecodeError,
    ResponsesError,
    error_for_status,
)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=5.0)
USER_AGENT = "openai-responses/0.1.0"

EventLogger = Callable[[str, dict[str, object]], None]


class ResponsesTransport(Protocol):
    """Protocol for sending Responses API payloads."""

    async def request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> str:
        """Send a buffered request and return the raw response body."""

    async def stream_response(self, payload: Mapping[str, Any]) -> AsyncIterator[str | bytes]:
        """Stream raw SSE chunks returned by the API."""


class HttpResponsesTransport:
    """httpx-based transport for the real OpenAI Responses API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: httpx.Timeout | float | None = None,
        client: httpx.AsyncClient | None = None,
        user_agent: str | None = USER_AGENT,
        organization: str | None = None,
        project: str | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        if not api_key.strip():
            raise ValueError("api_key cannot be empty")

        self._api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or DEFAULT_TIMEOUT
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self.timeout)
        self._user_agent = user_agent
        self._organization = organization
        self._project = project
        self._logger = logger

    def __repr__(self) -> str:
        return f"HttpResponsesTransport(base_url={self.base_url!r})"

    def _headers(self, *, stream: bool = False) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream" if stream else "application/json",
        }
        if self._user_agent:
            headers["User-Agent"] = self._user_agent
        if self._organization:
            headers["OpenAI-Organization"] = self._organization
        if self._project:
            headers["OpenAI-Project"] = self._project
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> str:
        start = time.perf_counter()
        response = await self._client.request(
            method,
            self._url(path),
            json=dict(payload) if payload is not None else None,
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        self._log_complete(response, path, start)
        return response.text

    async def stream_response(self, payload: Mapping[str, Any]) -> AsyncIterator[str | bytes]:
        start = time.perf_counter()
        async with self._client.stream(
            "POST", self._url("/responses"), json=dict(payload), headers=self._headers(stream=True), timeout=self.timeout
        ) as response:
            if response.is_error:
                # Read the body so the error mapping can surface the API message.
                await response.aread()
                response.raise_for_status()
            try:
                async for chunk in response.aiter_bytes():
                    if chunk:
                        yield chunk
            finally:
                self._log_complete(response, "/responses", start)

    def _log_complete(self, response: httpx.Response, path: str, start: float) -> None:
        if not self._logger:
            return
        self._logger(
            "response_complete",
            {
                "status": response.status_code,
                "request_id": response.headers.get("x-request-id"),
                "duration_sec": time.perf_counter() - start,
                "base_url": self.base_url,
                "path": path,
            },
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpResponsesTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


class MockResponsesTransport:
    """In-memory transport that returns a predefined body or chunks for tests/offline mode."""

    def __init__(
        self,
        body: str | Mapping[str, Any] = "",
        *,
        chunks: Sequence[str | bytes] = (),
        status_code: int = 200,
        error_body: str = "",
        headers: Mapping[str, str] | None = None,
        logger: EventLogger | None = None,
    ) -> None:
        self._body = body if isinstance(body, str) else json.dumps(body)
        self._chunks = list(chunks)
        self.status_code = status_code
        self._error_body = error_body
        self._headers = dict(headers or {})
        self._logger = logger
        self.requests: list[tuple[str, str, Mapping[str, Any] | None]] = []

    @property
    def last_payload(self) -> Mapping[str, Any] | None:
        return self.requests[-1][2] if self.requests else None

    def _raise_for_status(self) -> None:
        if self.status_code < 400:
            return
        request = httpx.Request("POST", "mock://responses")
        response = httpx.Response(self.status_code, text=self._error_body, headers=self._headers, request=request)
        raise httpx.HTTPStatusError("mock transport error", request=request, response=response)

    async def request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> str:
        self.requests.append((method, path, payload))
        self._raise_for_status()
        self._log_complete()
        return self._body

    async def stream_response(self, payload: Mapping[str, Any]) -> AsyncIterator[str | bytes]:
        self.requests.append(("POST", "/responses", payload))
        self._raise_for_status()
        try:
            for chunk in self._chunks:
                yield chunk
        finally:
            self._log_complete()

    def _log_complete(self) -> None:
        if self._logger:
            self._logger(
                "response_complete",
                {"status": self.status_code, "request_id": None, "duration_sec": 0.0, "base_url": "mock://responses"},
            )


class OpenAISDKResponsesTransport:
    """Transport backed by the official openai Python SDK, with SDK retries disabled."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        organization: str | None = None,
        project: str | None = None,
        timeout: float | httpx.Timeout | None = None,
        client: Any | None = None,
    ) -> None:
        if not api_key.strip():
            raise ValueError("api_key cannot be empty")

        self._client = client or AsyncOpenAI(
            api_key=api_key.strip(),
            base_url=base_url,
            organization=organization,
            project=project,
            timeout=timeout or DEFAULT_TIMEOUT,
            max_retries=0,
        )

    async def request(self, method: str, path: str, payload: Mapping[str, Any] | None = None) -> str:
        route = (method.upper(), "/" + path.strip("/"))
        try:
            if route == ("POST", "/responses"):
                response = await self._client.responses.create(**_sdk_arguments(payload or {}))
                return response.model_dump_json(exclude_unset=True)
            if route == ("GET", "/models"):
                page = await self._client.models.list()
                return json.dumps({"object": "list", "data": [model.model_dump() for model in page.data]})
        except openai.APIError as exc:
            raise _map_sdk_error(exc) from exc
        raise ValueError(f"unsupported route for SDK transport: {method} {path}")

    async def stream_response(self, payload: Mapping[str, Any]) -> AsyncIterator[str | bytes]:
        stream = None
        try:
            stream = await self._client.responses.create(stream=True, **_sdk_arguments(payload))
            async for event in stream:
                # Re-frame typed SDK events so parse_stream handles both transports.
                yield f"data: {event.model_dump_json(exclude_unset=True)}\n\n"
        except openai.APIError as exc:
            raise _map_sdk_error(exc) from exc
        finally:
            close = getattr(stream, "close", None)
            if callable(close):
                await close()


def _sdk_arguments(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Split a payload into the SDK's required arguments and a passthrough ``extra_body``."""

    rest = dict(payload)
    rest.pop("stream", None)
    arguments: dict[str, Any] = {"model": rest.pop("model"), "input": rest.pop("input")}
    if rest:
        arguments["extra_body"] = rest
    return arguments


def _map_sdk_error(exc: openai.APIError) -> ResponsesError:
    if isinstance(exc, openai.APITimeoutError):
        return ApiTimeoutError("request timed out")
    if isinstance(exc, openai.APIConnectionError):
        return ApiConnectionError("request failed")
    if isinstance(exc, openai.APIStatusError):
        return error_for_status(exc.status_code, exc.response.text, exc.response.headers)
    return DecodeError(str(exc))


__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT",
    "EventLogger",
    "HttpResponsesTransport",
    "MockResponsesTransport",
    "OpenAISDKResponsesTransport",
    "ResponsesTransport",
]
