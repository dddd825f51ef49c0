"""Shared core dataclasses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Literal

from flare_ai.tools.catalog import ToolSafety

Role = Literal["system", "user", "assistant", "tool"]

CREATIVITY_TEMPERATURES: dict[str, float] = {
    "none": 0.0,
    "low": 0.4,
    "medium": 0.7,
    "high": 1.0,
}


@dataclass(frozen=True)
class ResolvedToolCall:
    """A complete tool call reconstructed from streamed deltas."""

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    raw_arguments: str | None = None

    def to_openai(self) -> dict[str, Any]:
        arguments = self.raw_arguments if self.raw_arguments else json.dumps(self.arguments, ensure_ascii=False)
        return {
            "id": self.id,
            "type": "function",
            "function": {
                "name": self.name,
                "arguments": arguments,
            },
        }


@dataclass(frozen=True)
class ConversationTurn:
    role: Role
    content: str | None = None
    tool_calls: list[ResolvedToolCall] | None = None
    tool_call_id: str | None = None

    @classmethod
    def user(cls, content: str) -> ConversationTurn:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[ResolvedToolCall]) -> ConversationTurn:
        # Empty text is sent as null content next to the tool calls.
        return cls(role="assistant", content=content or None, tool_calls=list(tool_calls))

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> ConversationTurn:
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls is not None:
            message["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        if self.tool_call_id is not None:
            message["tool_call_id"] = self.tool_call_id
        return message


@dataclass(frozen=True)
class ToolExecutionResult:
    success: bool
    output: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, output: str) -> ToolExecutionResult:
        return cls(success=True, output=output)

    @classmethod
    def failure(cls, error: str) -> ToolExecutionResult:
        return cls(success=False, output="", error=error)

    @property
    def conversation_text(self) -> str:
        """Text fed back to the model as the tool turn."""
        return self.output if self.success else (self.error or "")


@dataclass(frozen=True)
class AskOptions:
    model: str | None = None
    creativity: str | None = None
    enable_tools: bool = False
    history: tuple[ConversationTurn, ...] = ()


@dataclass(frozen=True)
class SessionPolicy:
    """Per-ask policy, fixed for the duration of one ask."""

    model: str
    temperature: float
    tools_enabled: bool
    auto_approve_safe: bool
    auto_approve_all: bool
    allowed_directories: tuple[str, ...] = ()

    def may_execute(self, safety: ToolSafety) -> bool:
        return self.auto_approve_all or (self.auto_approve_safe and safety is ToolSafety.SAFE)


@dataclass(frozen=True)
class AskResult:
    """Outcome of one ask."""

    request_id: str
    full_text: str
    rounds: int
    completed: bool
    tool_calls: int = 0
