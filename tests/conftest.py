import json
import logging
import pathlib
import sys
from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx
import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"

# Ensure src/ is importable when running tests without installing the package.
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch):
    """Keep real credentials and overrides out of the tests."""

    for name in (
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
        "OPENAI_ORG_ID",
        "OPENAI_PROJECT_ID",
        "OPENAI_RESPONSES_MODEL",
        "OPENAI_RESPONSES_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers installed by configure_logger so tests stay independent."""

    logger = logging.getLogger("openai_responses")
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_openai_responses", False):
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(logging.NOTSET)


# ============================================================================
# Payload builders
# ============================================================================


def make_response_body(
    text: str | None = "Hello!",
    *,
    refusal: str | None = None,
    function_calls: list[dict[str, Any]] | None = None,
    model: str = "gpt-4o",
    usage: dict[str, Any] | None = None,
    response_id: str = "resp_1",
    **extra: Any,
) -> dict[str, Any]:
    content: list[dict[str, Any]] = []
    if text is not None:
        content.append({"type": "output_text", "text": text, "annotations": []})
    if refusal is not None:
        content.append({"type": "refusal", "refusal": refusal})
    output: list[dict[str, Any]] = []
    if content:
        output.append({"type": "message", "id": "msg_1", "role": "assistant", "status": "completed", "content": content})
    for call in function_calls or []:
        output.append({"type": "function_call", "status": "completed", **call})
    body = {
        "id": response_id,
        "object": "response",
        "model": model,
        "status": "completed",
        "output": output,
        "usage": usage
        or {
            "input_tokens": 10,
            "output_tokens": 5,
            "total_tokens": 15,
            "input_tokens_details": {"cached_tokens": 0},
            "output_tokens_details": {"reasoning_tokens": 0},
        },
    }
    body.update(extra)
    return body


def sse(payload: dict[str, Any] | str) -> str:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {data}\n\n"


def text_delta_frame(text: str) -> str:
    return sse({"type": "response.output_text.delta", "item_id": "msg_1", "output_index": 0, "delta": text})


def completed_frame(body: dict[str, Any] | None = None) -> str:
    return sse({"type": "response.completed", "response": body or make_response_body("Hello world")})


@pytest.fixture
def response_body():
    """Factory fixture for Responses API JSON bodies."""
    return make_response_body


@pytest.fixture
def sse_frames():
    """Helpers that render SSE frames."""

    class Frames:
        raw = staticmethod(sse)
        text_delta = staticmethod(text_delta_frame)
        completed = staticmethod(completed_frame)

    return Frames


# ============================================================================
# Transport fixtures
# ============================================================================


class SequenceTransport:
    """Return predefined bodies per request call, recording every payload."""

    def __init__(self, bodies):
        self.bodies = [body if isinstance(body, str) else json.dumps(body) for body in bodies]
        self.payloads: list[Mapping[str, Any] | None] = []

    async def request(self, method, path, payload=None):  # type: ignore[override]
        self.payloads.append(payload)
        if not self.bodies:
            raise RuntimeError("no more bodies")
        return self.bodies.pop(0)

    async def stream_response(self, payload):  # type: ignore[override]
        raise NotImplementedError


class ErrorTransport:
    """Transport whose calls raise a fixed exception."""

    def __init__(self, error: BaseException) -> None:
        self.error = error

    async def request(self, method, path, payload=None):  # type: ignore[override]
        raise self.error

    async def stream_response(self, payload: Mapping[str, Any]) -> AsyncIterator[str]:
        raise self.error
        yield ""  # pragma: no cover


class AwaitableStreamTransport:
    """Transport whose stream_response is a coroutine returning an iterator."""

    def __init__(self, chunks: list[str]) -> None:
        self.chunks = chunks

    async def request(self, method, path, payload=None):  # type: ignore[override]
        raise NotImplementedError

    async def stream_response(self, payload):  # type: ignore[override]
        async def gen():
            for chunk in self.chunks:
                yield chunk

        return gen()


@pytest.fixture
def sequence_transport():
    return SequenceTransport


@pytest.fixture
def error_transport_factory():
    return ErrorTransport


@pytest.fixture
def awaitable_stream_transport():
    return AwaitableStreamTransport


@pytest.fixture
def mock_http_handler():
    """Factory fixture for creating httpx request handlers with custom responses."""

    def _handler(
        status_code: int = 200,
        text: str = "",
        headers: dict[str, str] | None = None,
        record_request: dict[str, Any] | None = None,
    ):
        def handler(request: httpx.Request) -> httpx.Response:
            if record_request is not None:
                record_request["method"] = request.method
                record_request["headers"] = dict(request.headers)
                record_request["url"] = str(request.url)
                record_request["payload"] = json.loads(request.content.decode()) if request.content else None
            return httpx.Response(status_code, text=text, headers=headers or {}, request=request)

        return handler

    return _handler


@pytest.fixture
def mock_http_client(mock_http_handler):
    """Fixture factory that provides an httpx.AsyncClient with MockTransport."""

    def _client(handler=None):
        if handler is None:
            handler = mock_http_handler()
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _client


@pytest.fixture
def httpx_status_error():
    """Build an httpx.HTTPStatusError with the given status, body and headers."""

    def _error(status_code: int, text: str = "", headers: dict[str, str] | None = None) -> httpx.HTTPStatusError:
        request = httpx.Request("POST", "https://api.openai.com/v1/responses")
        response = httpx.Response(status_code, text=text, headers=headers or {}, request=request)
        return httpx.HTTPStatusError("error", request=request, response=response)

    return _error
