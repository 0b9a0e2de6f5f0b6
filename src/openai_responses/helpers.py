"""Read-only helpers over responses, plus multimodal message builders."""

from __future__ import annotations

import base64
import mimetypes
import os
from collections.abc import AsyncIterator, Iterator, Mapping, Sequence
from pathlib import Path
from typing import TypeAlias

from openai_responses.errors import FileError
from openai_responses.pricing import Pricing, calculate_cost, get_pricing
from openai_responses.types import (
    ContentPart,
    ErrorEvent,
    FunctionCall,
    ImageDetail,
    ImagePart,
    Message,
    MessageRole,
    OutputItem,
    OutputMessage,
    OutputText,
    Refusal,
    Response,
    ResponseEvent,
    TextDelta,
    TextPart,
    TokenUsage,
)

ImageRef: TypeAlias = str | os.PathLike[str]
ImageInput: TypeAlias = ImageRef | tuple[ImageRef, ImageDetail | str]

_URL_PREFIXES = ("http://", "https://", "data:")
_DETAIL_VALUES = {detail.value for detail in ImageDetail}


def output_text(response: Response) -> str:
    """Concatenate every ``output_text`` part in output order; empty string if there is none."""

    return "".join(
        part.text
        for item in response.output
        if isinstance(item, OutputMessage)
        for part in item.content
        if isinstance(part, OutputText)
    )


def has_refusal(response: Response) -> bool:
    return any(True for _ in _refusals(response))


def refusal_text(response: Response) -> str | None:
    refusals = list(_refusals(response))
    return "".join(refusals) if refusals else None


def _refusals(response: Response) -> Iterator[str]:
    for item in response.output:
        if isinstance(item, OutputMessage):
            for part in item.content:
                if isinstance(part, Refusal):
                    yield part.refusal
        elif isinstance(item, OutputItem) and item.type == "refusal":
            yield str(item.data.get("refusal", ""))


def function_calls(response: Response) -> list[FunctionCall]:
    return [item for item in response.output if isinstance(item, FunctionCall)]


def token_usage(response: Response, pricing: Pricing | Mapping[str, Pricing] | None = None) -> TokenUsage:
    """Token counts plus an estimated cost.

    ``pricing`` may be a Pricing for the response's model, or a table keyed by
    model id. Without one the built-in table is used; cost is None for models
    it does not know.
    """

    usage = response.usage
    if usage is None:
        return TokenUsage(input_tokens=0, output_tokens=0, total_tokens=0)

    if isinstance(pricing, Pricing):
        model_pricing: Pricing | None = pricing
    else:
        model_pricing = get_pricing(response.model, pricing)

    return TokenUsage(
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        total_tokens=usage.total_tokens,
        cached_input_tokens=usage.cached_input_tokens,
        reasoning_tokens=usage.reasoning_tokens,
        cost=calculate_cost(usage, model_pricing) if model_pricing is not None else None,
    )


def create_message_with_images(
    text: str,
    images: ImageInput | Sequence[ImageInput],
    *,
    detail: ImageDetail | str = ImageDetail.AUTO,
    role: MessageRole = MessageRole.USER,
) -> Message:
    """Build a message with a text part followed by image parts, in the given order.

    ``images`` is one reference, a ``(reference, detail)`` pair, or a sequence of
    either. http(s) and data URLs are used as-is; anything else is read from
    disk and inlined as a base64 data URL, so a missing file raises FileError
    before any request is made.
    """

    parts: list[ContentPart] = [TextPart(text=text)]
    for ref, image_detail in _normalize_images(images, ImageDetail(detail)):
        parts.append(ImagePart(url=_image_url(ref), detail=image_detail))
    return Message(role=role, content=tuple(parts))


def image_to_data_url(path: ImageRef) -> str:
    """Read a local image and return it as a ``data:`` URL."""

    file_path = Path(path)
    try:
        data = file_path.read_bytes()
    except OSError as exc:
        raise FileError(f"cannot read image {file_path}: {exc.strerror or exc}", path=str(file_path)) from exc
    media_type = mimetypes.guess_type(file_path.name)[0] or "image/png"
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


def _normalize_images(
    images: ImageInput | Sequence[ImageInput], default_detail: ImageDetail
) -> list[tuple[ImageRef, ImageDetail]]:
    if _is_single_image(images):
        entries: Sequence[ImageInput] = [images]  # type: ignore[list-item]
    else:
        entries = list(images)  # type: ignore[arg-type]
    if not entries:
        raise ValueError("at least one image is required")

    normalized: list[tuple[ImageRef, ImageDetail]] = []
    for entry in entries:
        if isinstance(entry, tuple):
            ref, entry_detail = entry
            normalized.append((ref, ImageDetail(entry_detail)))
        else:
            normalized.append((entry, default_detail))
    return normalized


def _is_single_image(images: object) -> bool:
    if isinstance(images, str | os.PathLike):
        return True
    # ("photo.png", "high") is one image with a detail level, not two images.
    return (
        isinstance(images, tuple)
        and len(images) == 2
        and (isinstance(images[1], ImageDetail) or images[1] in _DETAIL_VALUES)
    )


def _image_url(ref: ImageRef) -> str:
    value = os.fspath(ref)
    if value.startswith(_URL_PREFIXES):
        return value
    return image_to_data_url(value)


async def text_deltas(events: AsyncIterator[ResponseEvent]) -> AsyncIterator[str]:
    """Yield only the text of TextDelta events; an ErrorEvent is raised, not skipped."""

    async for event in events:
        if isinstance(event, TextDelta):
            yield event.text
        elif isinstance(event, ErrorEvent):
            raise event.error


__all__ = [
    "ImageInput",
    "create_message_with_images",
    "function_calls",
    "has_refusal",
    "image_to_data_url",
    "output_text",
    "refusal_text",
    "text_deltas",
    "token_usage",
]
