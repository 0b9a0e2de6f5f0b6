"""Async Python client for the OpenAI Responses API."""

from __future__ import annotations

__version__ = "0.1.0"

from .client import OpenAIResponsesClient  # noqa: E402,F401
from .config import LogLevel, Settings, TransportKind, load_settings  # noqa: E402,F401
from .errors import (  # noqa: E402,F401
    ApiAuthError,
    ApiClientError,
    ApiConnectionError,
    ApiError,
    ApiRateLimitError,
    ApiServerError,
    ApiTimeoutError,
    DecodeError,
    FileError,
    RequestError,
    ResponsesError,
    SchemaDefinitionError,
    SchemaMismatchError,
    StreamingParseError,
)
from .helpers import (  # noqa: E402,F401
    create_message_with_images,
    function_calls,
    has_refusal,
    image_to_data_url,
    output_text,
    refusal_text,
    text_deltas,
    token_usage,
)
from .logging import configure_logger  # noqa: E402,F401
from .parsing import parse_response, parse_stream  # noqa: E402,F401
from .pricing import MODEL_PRICING, Pricing, calculate_cost, get_pricing  # noqa: E402,F401
from .request import build_request  # noqa: E402,F401
from .schema import OutputSchema, build_function, build_output  # noqa: E402,F401
from .transport import (  # noqa: E402,F401
    HttpResponsesTransport,
    MockResponsesTransport,
    OpenAISDKResponsesTransport,
    ResponsesTransport,
)
from .types import (  # noqa: E402,F401
    Cost,
    ErrorEvent,
    FunctionCall,
    FunctionTool,
    ImageDetail,
    ImagePart,
    Message,
    MessageRole,
    OutputItem,
    OutputMessage,
    OutputText,
    ParsedResponse,
    ReasoningEffort,
    Refusal,
    Response,
    ResponseDone,
    ResponseEvent,
    ResponseOptions,
    StreamEvent,
    TextDelta,
    TextPart,
    TokenUsage,
    ToolCallDelta,
    ToolCallDone,
    Usage,
)
