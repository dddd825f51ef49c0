from flare_ai.core.events import CollectingSink, StreamChunk, StreamEnd, ToolCallRequest, ToolCallResult
from flare_ai.tools.catalog import ToolSafety


def test_payloads_use_camel_case_keys() -> None:
    request = ToolCallRequest(
        request_id="req-1",
        tool_call_id="call_1",
        tool_name="read_file",
        arguments={"path": "/tmp/a"},
        safety=ToolSafety.SAFE,
    )
    result = ToolCallResult(request_id="req-1", tool_call_id="call_1", tool_name="read_file", success=False, error="x")

    assert request.payload() == {
        "requestId": "req-1",
        "toolCallId": "call_1",
        "toolName": "read_file",
        "arguments": {"path": "/tmp/a"},
        "safety": "safe",
    }
    assert result.payload() == {
        "requestId": "req-1",
        "toolCallId": "call_1",
        "toolName": "read_file",
        "success": False,
        "output": "",
        "error": "x",
    }
    assert StreamEnd(request_id="req-1", full_text="done").payload() == {"requestId": "req-1", "fullText": "done"}


def test_event_names() -> None:
    assert StreamChunk.event_name == "ai-stream-chunk"
    assert ToolCallRequest.event_name == "ai-tool-call"
    assert ToolCallResult.event_name == "ai-tool-result"
    assert StreamEnd.event_name == "ai-stream-end"


def test_collecting_sink_keeps_order() -> None:
    sink = CollectingSink()
    sink.emit(StreamChunk(request_id="r", text="a"))
    sink.emit(StreamEnd(request_id="r", full_text="a"))

    assert sink.names() == ["ai-stream-chunk", "ai-stream-end"]
    assert [event.text for event in sink.of_type(StreamChunk)] == ["a"]
