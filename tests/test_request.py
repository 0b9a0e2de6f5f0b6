import pytest

from openai_responses.errors import RequestError
from openai_responses.request import build_request, coerce_options
from openai_responses.types import Message, ResponseOptions


def test_string_input_is_sent_as_string() -> None:
    payload = build_request("gpt-4o", "hello")
    assert payload == {"model": "gpt-4o", "input": "hello"}


def test_message_list_preserves_order() -> None:
    messages = [Message.system("s"), Message.user("u1"), Message.assistant("a"), Message.user("u2")]
    payload = build_request("gpt-4o", messages)
    assert [item["content"] for item in payload["input"]] == ["s", "u1", "a", "u2"]
    assert [item["role"] for item in payload["input"]] == ["system", "user", "assistant", "user"]


def test_duplicate_messages_are_kept() -> None:
    payload = build_request("gpt-4o", [Message.user("same"), Message.user("same")])
    assert len(payload["input"]) == 2


def test_raw_items_are_copied_verbatim() -> None:
    item = {"type": "function_call_output", "call_id": "c1", "output": "42"}
    payload = build_request("gpt-4o", [item])
    assert payload["input"] == [item]


def test_single_message_input() -> None:
    payload = build_request("gpt-4o", Message.user("hi"))
    assert payload["input"] == [{"role": "user", "content": "hi"}]


@pytest.mark.parametrize("model", [None, "", "   "])
def test_model_is_required(model) -> None:
    with pytest.raises(RequestError):
        build_request(model, "hi")


def test_empty_input_rejected() -> None:
    with pytest.raises(RequestError):
        build_request("gpt-4o", "")
    with pytest.raises(RequestError):
        build_request("gpt-4o", [])


def test_unsupported_input_item() -> None:
    with pytest.raises(RequestError):
        build_request("gpt-4o", [42])  # type: ignore[list-item]


def test_unknown_option_keys_pass_through() -> None:
    payload = build_request("gpt-4o", "hi", {"temperature": 0.1, "brand_new_flag": {"a": 1}})
    assert payload["temperature"] == 0.1
    assert payload["brand_new_flag"] == {"a": 1}


def test_stream_flag_only_when_streaming() -> None:
    assert "stream" not in build_request("gpt-4o", "hi", {"stream": True})
    assert build_request("gpt-4o", "hi", stream=True)["stream"] is True


def test_coerce_options() -> None:
    options = ResponseOptions(temperature=0.3)
    assert coerce_options(options) is options
    assert coerce_options(None) == ResponseOptions()
    with pytest.raises(RequestError):
        coerce_options(["temperature"])  # type: ignore[arg-type]


def test_out_of_range_options_fail_before_sending() -> None:
    with pytest.raises(RequestError):
        build_request("gpt-4o", "hi", {"temperature": 5})
