"""Streaming ask loop with tool-use rounds."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import httpx
from loguru import logger

from flare_ai.config import Settings, load_settings
from flare_ai.core.accumulator import ToolCallAccumulator
from flare_ai.core.decoder import FrameDecoder, StreamFrame
from flare_ai.core.events import EventSink, StreamChunk, StreamEnd, ToolCallRequest, ToolCallResult
from flare_ai.core.types import (
    CREATIVITY_TEMPERATURES,
    AskOptions,
    AskResult,
    ConversationTurn,
    ResolvedToolCall,
    SessionPolicy,
    ToolExecutionResult,
)
from flare_ai.credentials import CredentialStore, default_credential_store
from flare_ai.errors import AiDisabledError, ApiKeyNotConfiguredError, TransportError
from flare_ai.providers import Endpoint, Provider, resolve_endpoint
from flare_ai.tools import catalog, sandbox
from flare_ai.usage import UsageRecorder

MAX_TOOL_ROUNDS = 10
DEFAULT_MODEL_KEY = "default"
GENERATION_ID_HEADER = "x-request-id"

ToolExecutor = Callable[[str, dict[str, Any], Sequence[str]], ToolExecutionResult]


class AskState(StrEnum):
    IDLE = "idle"
    REQUESTING = "requesting"
    STREAMING = "streaming"
    TOOLS_PENDING = "tools_pending"
    EXECUTING = "executing"
    DONE = "done"
    FAILED = "failed"


def resolve_model(model_key: str | None, associations: Mapping[str, str], provider: Provider) -> str:
    """Pick the model id for an ask.

    Keys that already look like model ids (`vendor/model` or `name:tag`) are used
    as-is; anything else is looked up in the associations table.
    """
    key = model_key or DEFAULT_MODEL_KEY
    if (key != DEFAULT_MODEL_KEY and "/" in key) or ":" in key:
        return key
    return associations.get(key) or provider.fallback_model


def resolve_temperature(creativity: str | None, default: float) -> float:
    if creativity is None:
        return default
    return CREATIVITY_TEMPERATURES.get(creativity, default)


def _request_timeout(settings: Settings) -> Any:
    """Per-request timeout; unset defers to the client."""
    if settings.request_timeout_seconds is None:
        return httpx.USE_CLIENT_DEFAULT
    return settings.request_timeout_seconds


async def _next_chunk(chunks: AsyncIterator[bytes], timeout_seconds: float | None) -> bytes | None:
    """Read the next body chunk; `None` once the stream is exhausted."""
    try:
        async with asyncio.timeout(timeout_seconds):
            return await anext(chunks)
    except StopAsyncIteration:
        return None


@dataclass
class _RoundState:
    text_parts: list[str] = field(default_factory=list)
    accumulator: ToolCallAccumulator = field(default_factory=ToolCallAccumulator)
    generation_id: str | None = None
    done: bool = False

    @property
    def full_text(self) -> str:
        return "".join(self.text_parts)


@dataclass
class _AskState:
    request_id: str
    policy: SessionPolicy
    turns: list[ConversationTurn]
    state: AskState = AskState.IDLE
    round: int = 0
    tool_calls: int = 0
    full_text: str = ""
    completed: bool = False

    def transition(self, state: AskState) -> None:
        logger.debug("ask.state from={} to={} round={}", self.state, state, self.round)
        self.state = state


class ChatOrchestrator:
    """Drives one streaming ask at a time per call; concurrent calls share nothing mutable."""

    def __init__(
        self,
        *,
        sink: EventSink,
        settings: Callable[[], Settings] = load_settings,
        credentials: CredentialStore | None = None,
        client: httpx.AsyncClient | None = None,
        usage: UsageRecorder | None = None,
        executor: ToolExecutor = sandbox.execute,
    ) -> None:
        self._sink = sink
        self._settings = settings
        self._credentials = credentials
        self._client = client
        self._usage = usage
        self._executor = executor

    async def ask_stream(self, request_id: str, prompt: str, options: AskOptions | None = None) -> AskResult:
        options = options or AskOptions()
        with logger.contextualize(request_id=request_id):
            settings = self._settings()
            endpoint, api_key = self._prepare(settings)
            policy = self._build_policy(settings, options)
            ask = _AskState(
                request_id=request_id,
                policy=policy,
                turns=[*options.history, ConversationTurn.user(prompt)],
            )
            logger.info(
                "ask.start provider={} model={} tools={} temperature={}",
                endpoint.provider,
                policy.model,
                policy.tools_enabled,
                policy.temperature,
            )

            if self._client is not None:
                await self._run(ask, self._client, endpoint, api_key, settings)
            else:
                async with httpx.AsyncClient(timeout=settings.request_timeout_seconds) as client:
                    await self._run(ask, client, endpoint, api_key, settings)

            return AskResult(
                request_id=request_id,
                full_text=ask.full_text,
                rounds=ask.round,
                completed=ask.completed,
                tool_calls=ask.tool_calls,
            )

    def _prepare(self, settings: Settings) -> tuple[Endpoint, str | None]:
        if not settings.enabled:
            raise AiDisabledError("AI features are not enabled.")

        api_key: str | None = None
        if settings.provider.requires_api_key:
            store = self._credentials or default_credential_store(settings.api_key)
            api_key = store.get()
            if not api_key:
                raise ApiKeyNotConfiguredError("OpenRouter API key is not configured.")
        return resolve_endpoint(settings.provider, base_url=settings.base_url, api_key=api_key), api_key

    def _build_policy(self, settings: Settings, options: AskOptions) -> SessionPolicy:
        model = resolve_model(options.model, settings.model_associations, settings.provider)
        tools_enabled = options.enable_tools and settings.tools_enabled and catalog.supports_tools(model)
        if options.enable_tools and not tools_enabled:
            logger.warning(
                "ask.tools.unavailable model={} tools_enabled={} model_supports={}",
                model,
                settings.tools_enabled,
                catalog.supports_tools(model),
            )
        return SessionPolicy(
            model=model,
            temperature=resolve_temperature(options.creativity, settings.temperature),
            tools_enabled=tools_enabled,
            auto_approve_safe=settings.auto_approve_safe_tools,
            auto_approve_all=settings.auto_approve_all_tools,
            allowed_directories=tuple(settings.allowed_directories),
        )

    async def _run(
        self,
        ask: _AskState,
        client: httpx.AsyncClient,
        endpoint: Endpoint,
        api_key: str | None,
        settings: Settings,
    ) -> None:
        try:
            while ask.round < MAX_TOOL_ROUNDS:
                ask.round += 1
                logger.info("ask.round.start round={} model={}", ask.round, ask.policy.model)
                round_state = await self._stream_round(ask, client, endpoint, settings)
                ask.full_text = round_state.full_text
                self._track_usage(endpoint, api_key, round_state)

                tool_calls = round_state.accumulator.resolve()
                logger.info(
                    "ask.round.finish round={} tool_calls={} text_len={}",
                    ask.round,
                    len(tool_calls),
                    len(ask.full_text),
                )
                if not tool_calls:
                    self._sink.emit(StreamEnd(request_id=ask.request_id, full_text=ask.full_text))
                    ask.completed = True
                    ask.transition(AskState.DONE)
                    return

                ask.transition(AskState.TOOLS_PENDING)
                ask.turns.append(ConversationTurn.assistant(ask.full_text, tool_calls))
                ask.transition(AskState.EXECUTING)
                for call in tool_calls:
                    await self._handle_tool_call(ask, call)
        except Exception:
            ask.transition(AskState.FAILED)
            raise

        logger.warning("ask.rounds.exhausted max_rounds={}", MAX_TOOL_ROUNDS)

    async def _stream_round(
        self,
        ask: _AskState,
        client: httpx.AsyncClient,
        endpoint: Endpoint,
        settings: Settings,
    ) -> _RoundState:
        ask.transition(AskState.REQUESTING)
        body = self._request_body(ask)
        round_state = _RoundState()
        decoder = FrameDecoder()
        try:
            async with client.stream(
                "POST",
                endpoint.url,
                json=body,
                headers=endpoint.headers,
                timeout=_request_timeout(settings),
            ) as response:
                if response.is_error:
                    error_body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error("ask.request.error status={} round={}", response.status_code, ask.round)
                    raise TransportError(f"API Error: {error_body}", status_code=response.status_code)

                round_state.generation_id = response.headers.get(GENERATION_ID_HEADER)
                ask.transition(AskState.STREAMING)
                chunks = response.aiter_bytes()
                while not decoder.done:
                    chunk = await _next_chunk(chunks, settings.request_timeout_seconds)
                    if chunk is None:
                        break
                    self._consume(ask, round_state, decoder.feed(chunk))
                self._consume(ask, round_state, decoder.finish())
        except httpx.HTTPError as exc:
            logger.error("ask.request.error round={} error={}", ask.round, exc)
            raise TransportError(f"API Error: {exc!s}") from exc
        except TimeoutError as exc:
            logger.error("ask.request.timeout round={} seconds={}", ask.round, settings.request_timeout_seconds)
            raise TransportError(
                f"API Error: no data received for {settings.request_timeout_seconds} seconds"
            ) from exc
        round_state.done = True
        return round_state

    def _request_body(self, ask: _AskState) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": ask.policy.model,
            "messages": [turn.to_message() for turn in ask.turns],
            "stream": True,
            "temperature": ask.policy.temperature,
        }
        if ask.policy.tools_enabled:
            body["tools"] = catalog.openai_tools()
        return body

    def _consume(self, ask: _AskState, round_state: _RoundState, frames: list[StreamFrame]) -> None:
        for frame in frames:
            if round_state.generation_id is None and frame.id:
                round_state.generation_id = frame.id
            if frame.content:
                round_state.text_parts.append(frame.content)
                self._sink.emit(StreamChunk(request_id=ask.request_id, text=frame.content))
            for delta in frame.tool_calls:
                round_state.accumulator.apply(delta)

    async def _handle_tool_call(self, ask: _AskState, call: ResolvedToolCall) -> None:
        safety = catalog.safety_of(call.name)
        self._sink.emit(
            ToolCallRequest(
                request_id=ask.request_id,
                tool_call_id=call.id,
                tool_name=call.name,
                arguments=call.arguments,
                safety=safety,
            )
        )
        ask.tool_calls += 1

        if ask.policy.may_execute(safety):
            logger.info("tool.call.start name={} safety={}", call.name, safety)
            result = await asyncio.to_thread(
                self._executor, call.name, call.arguments, ask.policy.allowed_directories
            )
            logger.info("tool.call.finish name={} success={}", call.name, result.success)
        else:
            logger.warning("tool.call.blocked name={} safety={}", call.name, safety)
            result = ToolExecutionResult.failure(
                f"Tool '{call.name}' requires user confirmation (not yet implemented)"
            )

        self._sink.emit(
            ToolCallResult(
                request_id=ask.request_id,
                tool_call_id=call.id,
                tool_name=call.name,
                success=result.success,
                output=result.output,
                error=result.error,
            )
        )
        ask.turns.append(ConversationTurn.tool(call.id, result.conversation_text))

    def _track_usage(self, endpoint: Endpoint, api_key: str | None, round_state: _RoundState) -> None:
        if self._usage is None or endpoint.provider is not Provider.OPENROUTER:
            return
        if not round_state.generation_id or not api_key:
            logger.debug("usage.skip generation_id={}", round_state.generation_id)
            return
        self._usage.record(round_state.generation_id, api_key)
