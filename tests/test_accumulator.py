import pytest

from flare_ai.core.accumulator import ToolCallAccumulator
from flare_ai.core.decoder import ToolCallDelta

ARGUMENTS = '{"path": "/tmp/x", "content": "h\\u00e9llo"}'


def _fragments(text: str, cuts: list[int]) -> list[str]:
    bounds = [0, *cuts, len(text)]
    return [text[start:end] for start, end in zip(bounds, bounds[1:], strict=False)]


@pytest.mark.parametrize("cuts", [[], [1], [5, 6], [3, 10, 20], list(range(1, len(ARGUMENTS)))])
def test_fragmented_arguments_resolve_like_a_single_chunk(cuts: list[int]) -> None:
    whole = ToolCallAccumulator()
    whole.apply(ToolCallDelta(index=0, id="call_1", function_name="write_file", arguments_fragment=ARGUMENTS))

    split = ToolCallAccumulator()
    split.apply(ToolCallDelta(index=0, id="call_1", function_name="write_file"))
    for fragment in _fragments(ARGUMENTS, cuts):
        split.apply(ToolCallDelta(index=0, arguments_fragment=fragment))

    assert split.resolve() == whole.resolve()
    (call,) = split.resolve()
    assert call.arguments == {"path": "/tmp/x", "content": "héllo"}


def test_out_of_order_index_creates_placeholders() -> None:
    accumulator = ToolCallAccumulator()

    accumulator.apply(ToolCallDelta(index=2, id="call_c", function_name="list_directory"))

    assert len(accumulator) == 3
    calls = accumulator.resolve()
    assert [(call.id, call.name, call.arguments) for call in calls[:2]] == [("", "", {}), ("", "", {})]
    assert calls[2].id == "call_c"


def test_placeholders_are_backfilled_later() -> None:
    accumulator = ToolCallAccumulator()
    accumulator.apply(ToolCallDelta(index=1, id="call_b", function_name="read_file", arguments_fragment="{}"))
    accumulator.apply(ToolCallDelta(index=0, id="call_a", function_name="list_directory"))

    assert [call.id for call in accumulator.resolve()] == ["call_a", "call_b"]


def test_empty_id_and_name_never_blank_existing_values() -> None:
    accumulator = ToolCallAccumulator()
    accumulator.apply(ToolCallDelta(index=0, id="call_1", function_name="read_file"))
    accumulator.apply(ToolCallDelta(index=0, id="", function_name="", arguments_fragment='{"path": "a"}'))
    accumulator.apply(ToolCallDelta(index=0, id="call_2"))

    (call,) = accumulator.resolve()
    assert call.id == "call_2"
    assert call.name == "read_file"
    assert call.arguments == {"path": "a"}


@pytest.mark.parametrize("raw", ["", "   ", "{not json", "[1, 2]", '"text"', "null"])
def test_unusable_arguments_resolve_to_empty_object(raw: str) -> None:
    accumulator = ToolCallAccumulator()
    accumulator.apply(ToolCallDelta(index=0, id="call_1", function_name="read_file", arguments_fragment=raw))

    assert accumulator.resolve()[0].arguments == {}


def test_empty_accumulator_is_falsy() -> None:
    accumulator = ToolCallAccumulator()

    assert not accumulator
    assert accumulator.resolve() == []


def test_unparsable_arguments_are_echoed_verbatim() -> None:
    accumulator = ToolCallAccumulator()
    accumulator.apply(ToolCallDelta(index=0, id="call_1", function_name="read_file", arguments_fragment='{"path": '))
    accumulator.apply(ToolCallDelta(index=0, arguments_fragment="/tmp/a"))

    (call,) = accumulator.resolve()

    assert call.arguments == {}
    assert call.to_openai()["function"]["arguments"] == '{"path": /tmp/a'


def test_missing_arguments_are_sent_as_empty_object() -> None:
    accumulator = ToolCallAccumulator()
    accumulator.apply(ToolCallDelta(index=0, id="call_1", function_name="get_system_info"))

    (call,) = accumulator.resolve()

    assert call.to_openai()["function"] == {"name": "get_system_info", "arguments": "{}"}
