"""Incremental decoder for `data: ...` chat-completions streams."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

DATA_PREFIX = b"data:"
DONE_SENTINEL = "[DONE]"
TERMINAL_FINISH_REASONS = frozenset({"stop", "tool_calls"})


@dataclass(frozen=True)
class ToolCallDelta:
    """One fragment of a streamed tool call; `index` is the stable slot key."""

    index: int
    id: str | None = None
    function_name: str | None = None
    arguments_fragment: str | None = None

    @classmethod
    def from_payload(cls, payload: Any, position: int) -> ToolCallDelta | None:
        if not isinstance(payload, dict):
            return None
        index = payload.get("index", position)
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            return None
        function = payload.get("function")
        function = function if isinstance(function, dict) else {}
        return cls(
            index=index,
            id=_as_str(payload.get("id")),
            function_name=_as_str(function.get("name")),
            arguments_fragment=_as_str(function.get("arguments")),
        )


@dataclass(frozen=True)
class StreamFrame:
    id: str | None = None
    content: str | None = None
    tool_calls: list[ToolCallDelta] = field(default_factory=list)
    finish_reason: str | None = None

    @property
    def terminal(self) -> bool:
        return self.finish_reason in TERMINAL_FINISH_REASONS

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> StreamFrame:
        choices = payload.get("choices")
        choice = choices[0] if isinstance(choices, list) and choices and isinstance(choices[0], dict) else {}
        delta = choice.get("delta")
        delta = delta if isinstance(delta, dict) else {}

        raw_calls = delta.get("tool_calls")
        tool_calls: list[ToolCallDelta] = []
        if isinstance(raw_calls, list):
            for position, item in enumerate(raw_calls):
                parsed = ToolCallDelta.from_payload(item, position)
                if parsed is not None:
                    tool_calls.append(parsed)

        return cls(
            id=_as_str(payload.get("id")),
            content=_as_str(delta.get("content")),
            tool_calls=tool_calls,
            finish_reason=_as_str(choice.get("finish_reason")),
        )


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


class FrameDecoder:
    """Turns raw body reads into frames, keeping partial lines between reads.

    Decoding stops for good at the `[DONE]` sentinel or after the first frame
    whose finish reason is `stop` or `tool_calls`.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._done = False

    @property
    def done(self) -> bool:
        return self._done

    def feed(self, data: bytes) -> list[StreamFrame]:
        if self._done:
            return []
        self._buffer.extend(data)
        frames: list[StreamFrame] = []
        while not self._done:
            newline = self._buffer.find(b"\n")
            if newline < 0:
                break
            line = bytes(self._buffer[:newline])
            del self._buffer[: newline + 1]
            self._decode_line(line, frames)
        return frames

    def finish(self) -> list[StreamFrame]:
        """Flush a trailing line that arrived without a newline."""
        if self._done or not self._buffer:
            self._buffer.clear()
            return []
        line = bytes(self._buffer)
        self._buffer.clear()
        frames: list[StreamFrame] = []
        self._decode_line(line, frames)
        return frames

    def _decode_line(self, line: bytes, frames: list[StreamFrame]) -> None:
        line = line.rstrip(b"\r")
        if not line.startswith(DATA_PREFIX):
            return
        payload = line[len(DATA_PREFIX) :].strip().decode("utf-8", errors="replace")
        if payload == DONE_SENTINEL:
            logger.debug("stream.decoder.done sentinel=true")
            self._mark_done()
            return
        try:
            parsed = json.loads(payload)
        except json.JSONDecodeError:
            logger.debug("stream.decoder.skip reason=malformed size={}", len(payload))
            return
        if not isinstance(parsed, dict):
            return

        frame = StreamFrame.from_payload(parsed)
        frames.append(frame)
        if frame.terminal:
            logger.debug("stream.decoder.done finish_reason={}", frame.finish_reason)
            self._mark_done()

    def _mark_done(self) -> None:
        self._done = True
        self._buffer.clear()
