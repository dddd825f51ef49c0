"""Events emitted to the UI while an ask is running."""

from __future__ import annotations

from typing import Any, ClassVar, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from flare_ai.tools.catalog import ToolSafety


class AskEvent(BaseModel):
    """Base class for ask events.

    Every event carries the id of the ask that produced it so a consumer can
    demultiplex concurrent asks.
    """

    event_name: ClassVar[str]

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    request_id: str

    def payload(self) -> dict[str, Any]:
        """Wire payload with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class StreamChunk(AskEvent):
    event_name: ClassVar[str] = "ai-stream-chunk"

    text: str


class ToolCallRequest(AskEvent):
    event_name: ClassVar[str] = "ai-tool-call"

    tool_call_id: str
    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    safety: ToolSafety


class ToolCallResult(AskEvent):
    event_name: ClassVar[str] = "ai-tool-result"

    tool_call_id: str
    tool_name: str
    success: bool
    output: str = ""
    error: str | None = None


class StreamEnd(AskEvent):
    event_name: ClassVar[str] = "ai-stream-end"

    full_text: str


EventT = TypeVar("EventT", bound=AskEvent)


class EventSink(Protocol):
    def emit(self, event: AskEvent) -> None: ...


class CollectingSink:
    """Keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[AskEvent] = []

    def emit(self, event: AskEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type[EventT]) -> list[EventT]:
        return [event for event in self.events if isinstance(event, event_type)]

    def names(self) -> list[str]:
        return [event.event_name for event in self.events]
