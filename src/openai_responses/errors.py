"""Error taxonomy for the Responses client."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any


class ResponsesError(Exception):
    """Base class for every error raised by this package."""


class ApiConnectionError(ResponsesError):
    """Network failure before a response was received."""


class ApiTimeoutError(ApiConnectionError):
    """Network timeout."""


class ApiError(ResponsesError):
    """Non-2xx HTTP status returned by the API."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: Any = None,
        error_type: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body
        self.error_type = error_type
        self.code = code


class ApiAuthError(ApiError):
    """Authentication/authorization error."""


class ApiRateLimitError(ApiError):
    """Rate limit exceeded."""

    def __init__(self, message: str, *, retry_after: float | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class ApiServerError(ApiError):
    """5xx server error."""


class ApiClientError(ApiError):
    """4xx client-side error not covered by other errors."""


class DecodeError(ResponsesError):
    """Response body is not valid JSON or does not have the expected shape."""

    def __init__(self, message: str, *, body: Any = None) -> None:
        super().__init__(message)
        self.body = body


class StreamingParseError(DecodeError):
    """Raised when a streaming frame cannot be parsed."""


class SchemaMismatchError(ResponsesError):
    """Structured output does not match the requested schema."""

    def __init__(self, message: str, *, path: str | None = None, value: Any = None) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
        self.value = value


class FileError(ResponsesError):
    """A local file referenced by a helper could not be read."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class RequestError(ResponsesError, ValueError):
    """Request arguments are invalid; raised before any network call."""


class SchemaDefinitionError(ResponsesError, ValueError):
    """Schema uses a type tag that cannot be expressed as JSON Schema."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


def error_for_status(status_code: int, text: str = "", headers: Mapping[str, str] | None = None) -> ApiError:
    """Map a non-2xx status and its body onto the ApiError hierarchy."""

    try:
        body: Any = json.loads(text) if text else None
    except json.JSONDecodeError:
        body = text
    detail = body.get("error") if isinstance(body, dict) else None
    if isinstance(detail, str):
        api_message: str | None = detail
        detail = {}
    else:
        if not isinstance(detail, dict):
            detail = {}
        api_message = detail.get("message") or (body if isinstance(body, str) else None)
    suffix = f": {api_message}" if api_message else ""
    fields: dict[str, Any] = {
        "status_code": status_code,
        "body": body,
        "error_type": detail.get("type"),
        "code": detail.get("code"),
    }

    if status_code in (401, 403):
        return ApiAuthError(f"auth failed with status {status_code}{suffix}", **fields)
    if status_code == 429:
        retry_after = _retry_after(headers)
        retry_suffix = f" (retry after {retry_after:g}s)" if retry_after is not None else ""
        return ApiRateLimitError(f"rate limited{retry_suffix}{suffix}", retry_after=retry_after, **fields)
    if status_code >= 500:
        return ApiServerError(f"server error {status_code}{suffix}", **fields)
    return ApiClientError(f"request failed with status {status_code}{suffix}", **fields)


def _retry_after(headers: Mapping[str, str] | None) -> float | None:
    if not headers:
        return None
    value = headers.get("retry-after") or headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


__all__ = [
    "error_for_status",
    "ApiAuthError",
    "ApiClientError",
    "ApiConnectionError",
    "ApiError",
    "ApiRateLimitError",
    "ApiServerError",
    "ApiTimeoutError",
    "DecodeError",
    "FileError",
    "RequestError",
    "ResponsesError",
    "SchemaDefinitionError",
    "SchemaMismatchError",
    "StreamingParseError",
]
