import json

from flare_ai.core.decoder import FrameDecoder


def _line(payload: object) -> bytes:
    return f"data: {json.dumps(payload)}\n".encode()


def _text(content: str, finish_reason: str | None = None) -> dict[str, object]:
    return {"id": "gen-1", "choices": [{"delta": {"content": content}, "finish_reason": finish_reason}]}


def test_partial_line_is_kept_until_newline_arrives() -> None:
    decoder = FrameDecoder()
    raw = _line(_text("Hello"))

    assert decoder.feed(raw[:17]) == []
    frames = decoder.feed(raw[17:])

    assert [frame.content for frame in frames] == ["Hello"]
    assert frames[0].id == "gen-1"


def test_every_split_point_yields_the_same_frames() -> None:
    raw = _line(_text("a")) + _line(_text("b")) + _line(_text("c", "stop"))
    for split in range(1, len(raw)):
        decoder = FrameDecoder()
        frames = decoder.feed(raw[:split]) + decoder.feed(raw[split:])
        assert [frame.content for frame in frames] == ["a", "b", "c"]
        assert decoder.done


def test_done_sentinel_stops_immediately() -> None:
    decoder = FrameDecoder()
    raw = _line(_text("before")) + b"data: [DONE]\n" + _line(_text("after"))

    frames = decoder.feed(raw)

    assert [frame.content for frame in frames] == ["before"]
    assert decoder.done
    assert decoder.feed(_line(_text("late"))) == []
    assert decoder.finish() == []


def test_terminal_finish_reason_drops_the_rest_of_the_read() -> None:
    decoder = FrameDecoder()
    raw = _line(_text("last", "tool_calls")) + _line(_text("ignored"))

    frames = decoder.feed(raw)

    assert len(frames) == 1
    assert frames[0].finish_reason == "tool_calls"
    assert frames[0].terminal
    assert decoder.done


def test_other_finish_reasons_are_not_terminal() -> None:
    decoder = FrameDecoder()

    frames = decoder.feed(_line(_text("x", "length")) + _line(_text("y")))

    assert [frame.content for frame in frames] == ["x", "y"]
    assert not decoder.done


def test_malformed_and_unrelated_lines_are_skipped() -> None:
    decoder = FrameDecoder()
    raw = b": keep-alive\nevent: message\ndata: {oops\ndata: 42\n\n" + _line(_text("ok"))

    frames = decoder.feed(raw)

    assert [frame.content for frame in frames] == ["ok"]
    assert not decoder.done


def test_crlf_and_missing_space_after_prefix() -> None:
    decoder = FrameDecoder()
    raw = b'data:{"choices":[{"delta":{"content":"hi"}}]}\r\n'

    frames = decoder.feed(raw)

    assert [frame.content for frame in frames] == ["hi"]


def test_finish_flushes_unterminated_line() -> None:
    decoder = FrameDecoder()

    assert decoder.feed(b"data: [DO") == []
    assert decoder.feed(b"NE]") == []
    assert decoder.finish() == []
    assert decoder.done

    other = FrameDecoder()
    other.feed(_line(_text("one"))[:-1])
    assert [frame.content for frame in other.finish()] == ["one"]


def test_tool_call_deltas_are_exposed() -> None:
    decoder = FrameDecoder()
    payload = {
        "choices": [
            {
                "delta": {
                    "content": None,
                    "tool_calls": [
                        {"index": 1, "id": "call_b", "type": "function", "function": {"name": "read_file"}},
                        {"index": 0, "function": {"arguments": '{"pa'}},
                    ],
                }
            }
        ]
    }

    (frame,) = decoder.feed(_line(payload))

    assert frame.content is None
    first, second = frame.tool_calls
    assert (first.index, first.id, first.function_name, first.arguments_fragment) == (1, "call_b", "read_file", None)
    assert (second.index, second.id, second.function_name, second.arguments_fragment) == (0, None, None, '{"pa')


def test_frames_without_choices_are_empty() -> None:
    decoder = FrameDecoder()

    (frame,) = decoder.feed(_line({"id": "gen-9"}))

    assert frame.id == "gen-9"
    assert frame.content is None
    assert frame.tool_calls == []
    assert not frame.terminal
