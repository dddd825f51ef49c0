"""Core streaming and round-loop primitives."""

from .accumulator import ToolCallAccumulator
from .decoder import FrameDecoder, StreamFrame, ToolCallDelta
from .events import AskEvent, CollectingSink, EventSink, StreamChunk, StreamEnd, ToolCallRequest, ToolCallResult
from .types import AskOptions, AskResult, ConversationTurn, ResolvedToolCall, SessionPolicy, ToolExecutionResult

__all__ = [
    "AskEvent",
    "AskOptions",
    "AskResult",
    "CollectingSink",
    "ConversationTurn",
    "EventSink",
    "FrameDecoder",
    "ResolvedToolCall",
    "SessionPolicy",
    "StreamChunk",
    "StreamEnd",
    "StreamFrame",
    "ToolCallAccumulator",
    "ToolCallDelta",
    "ToolCallRequest",
    "ToolCallResult",
    "ToolExecutionResult",
]
