"""Reassembly of tool calls streamed as fragments."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from flare_ai.core.decoder import ToolCallDelta
from flare_ai.core.types import ResolvedToolCall


@dataclass
class _Slot:
    id: str = ""
    name: str = ""
    arguments: list[str] = field(default_factory=list)


class ToolCallAccumulator:
    """Collects deltas by index; owned by a single round."""

    def __init__(self) -> None:
        self._slots: list[_Slot] = []

    def __len__(self) -> int:
        return len(self._slots)

    def __bool__(self) -> bool:
        return bool(self._slots)

    def apply(self, delta: ToolCallDelta) -> None:
        while len(self._slots) <= delta.index:
            self._slots.append(_Slot())
        slot = self._slots[delta.index]
        if delta.id:
            slot.id = delta.id
        if delta.function_name:
            slot.name = delta.function_name
        if delta.arguments_fragment:
            slot.arguments.append(delta.arguments_fragment)

    def resolve(self) -> list[ResolvedToolCall]:
        return [
            ResolvedToolCall(
                id=slot.id,
                name=slot.name,
                arguments=_parse_arguments(slot),
                raw_arguments="".join(slot.arguments),
            )
            for slot in self._slots
        ]


def _parse_arguments(slot: _Slot) -> dict[str, Any]:
    raw = "".join(slot.arguments)
    if not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("tool.arguments.invalid name={} size={}", slot.name, len(raw))
        return {}
    return parsed if isinstance(parsed, dict) else {}
