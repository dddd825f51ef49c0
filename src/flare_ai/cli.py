"""Command-line surface for flare-ai."""

from __future__ import annotations

import asyncio
import json
import uuid

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flare_ai.config import Settings, load_settings
from flare_ai.core.events import AskEvent, EventSink, StreamChunk, StreamEnd, ToolCallRequest, ToolCallResult
from flare_ai.core.orchestrator import ChatOrchestrator
from flare_ai.core.types import AskOptions, AskResult, ConversationTurn
from flare_ai.credentials import KeyringCredentialStore
from flare_ai.errors import FlareError
from flare_ai.logging_utils import configure_logging
from flare_ai.providers import list_ollama_models
from flare_ai.store import AiStore, Message
from flare_ai.tools.catalog import ToolSafety, tool_infos
from flare_ai.usage import UsageRecorder

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="flare-ai",
    help="Streaming chat completions with built-in tool use.",
    add_completion=False,
    rich_markup_mode="rich",
)
key_app = typer.Typer(help="Manage the stored OpenRouter API key.")
conversations_app = typer.Typer(help="Manage saved conversations.")
app.add_typer(key_app, name="key")
app.add_typer(conversations_app, name="conversations")


@app.callback()
def main_callback(
    log_level: str | None = typer.Option(None, "--log-level", help="Override FLARE_LOG_LEVEL"),
) -> None:
    configure_logging(profile="chat", level=log_level)


class ConsoleSink:
    """Renders ask events on the terminal as they arrive."""

    def __init__(self, out: Console) -> None:
        self._out = out

    def emit(self, event: AskEvent) -> None:
        match event:
            case StreamChunk(text=text):
                self._out.print(text, end="", markup=False, highlight=False)
            case ToolCallRequest(tool_name=name, arguments=arguments, safety=safety):
                style = "yellow" if safety is ToolSafety.SAFE else "red"
                self._out.print()
                self._out.print(f"[{style}]tool[/{style}] {name} {escape(str(arguments))}", highlight=False)
            case ToolCallResult(tool_name=name, success=True):
                self._out.print(f"[green]ok[/green] {name}")
            case ToolCallResult(tool_name=name, error=error):
                self._out.print(f"[red]failed[/red] {name}: {escape(str(error))}", highlight=False)
            case StreamEnd():
                self._out.print()


class JsonSink:
    """Writes one JSON object per event, for scripts."""

    def emit(self, event: AskEvent) -> None:
        typer.echo(json.dumps({"event": event.event_name, "payload": event.payload()}, ensure_ascii=False))


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]{escape(message)}[/red]", highlight=False)
    return typer.Exit(1)


def _open_store(settings: Settings) -> AiStore:
    return AiStore(settings.database_path)


async def _run_ask(
    settings: Settings,
    store: AiStore,
    request_id: str,
    prompt: str,
    options: AskOptions,
    sink: EventSink,
) -> AskResult:
    recorder = UsageRecorder(store)
    orchestrator = ChatOrchestrator(sink=sink, settings=lambda: settings, usage=recorder)
    try:
        return await orchestrator.ask_stream(request_id, prompt, options)
    finally:
        await recorder.drain()


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Prompt to send"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model key or model id"),
    creativity: str | None = typer.Option(None, "--creativity", "-c", help="none, low, medium or high"),
    tools: bool = typer.Option(False, "--tools", help="Let the model call built-in tools"),
    request_id: str | None = typer.Option(None, "--request-id", help="Id attached to every event"),
    conversation_id: str | None = typer.Option(None, "--conversation", help="Continue a saved conversation"),
    json_output: bool = typer.Option(False, "--json", help="Print events as JSON lines"),
) -> None:
    """Ask the model and stream the answer."""
    settings = load_settings()
    store = _open_store(settings)

    history: tuple[ConversationTurn, ...] = ()
    saved_messages: list[Message] = []
    if conversation_id is not None:
        conversation = store.get_conversation(conversation_id)
        if conversation is None:
            raise _fail(f"Conversation not found: {conversation_id}")
        saved_messages = list(conversation.messages)
        history = tuple(
            ConversationTurn(role=message.role, content=message.content)  # type: ignore[arg-type]
            for message in saved_messages
        )
        model = model or conversation.model

    options = AskOptions(model=model, creativity=creativity, enable_tools=tools, history=history)
    sink: EventSink = JsonSink() if json_output else ConsoleSink(console)
    try:
        result = asyncio.run(_run_ask(settings, store, request_id or uuid.uuid4().hex, prompt, options, sink))
    except FlareError as exc:
        raise _fail(str(exc)) from exc

    if not result.completed:
        err_console.print(f"[yellow]Stopped after {result.rounds} rounds[/yellow]")
    if conversation_id is not None:
        saved_messages.append(Message(role="user", content=prompt))
        saved_messages.append(Message(role="assistant", content=result.full_text))
        store.update_conversation(conversation_id, messages=saved_messages)


@app.command("tools")
def list_tools() -> None:
    """List built-in tools and their safety class."""
    table = Table(title="Built-in tools")
    table.add_column("Name", style="cyan")
    table.add_column("Safety")
    table.add_column("Description")
    for info in tool_infos():
        safety = "[green]safe[/green]" if info.safety is ToolSafety.SAFE else "[red]dangerous[/red]"
        table.add_row(info.name, safety, info.description)
    console.print(table)


@app.command()
def usage(
    limit: int = typer.Option(20, "--limit", min=1, help="Rows to show"),
    offset: int = typer.Option(0, "--offset", min=0, help="Rows to skip"),
) -> None:
    """Show recorded generation usage, newest first."""
    records = _open_store(load_settings()).get_history(limit, offset)
    if not records:
        console.print("No usage recorded.")
        return

    table = Table(title="Generation usage")
    for column in ("Id", "Created", "Model", "Prompt", "Completion", "Cost"):
        table.add_column(column)
    for record in records:
        table.add_row(
            record.id,
            str(record.created),
            record.model,
            str(record.tokens_prompt),
            str(record.tokens_completion),
            f"{record.total_cost:.6f}",
        )
    console.print(table)


@app.command()
def models(
    base_url: str | None = typer.Option(None, "--base-url", help="Ollama API base; defaults to settings"),
) -> None:
    """List models served by Ollama."""
    settings = load_settings()
    try:
        model_ids = asyncio.run(list_ollama_models(base_url or settings.base_url))
    except FlareError as exc:
        raise _fail(str(exc)) from exc
    for model_id in model_ids:
        console.print(model_id, highlight=False)


@key_app.command("set")
def key_set(token: str = typer.Argument(..., help="OpenRouter API key")) -> None:
    KeyringCredentialStore().set(token.strip())
    console.print("API key stored.")


@key_app.command("clear")
def key_clear() -> None:
    KeyringCredentialStore().delete()
    console.print("API key removed.")


@key_app.command("status")
def key_status() -> None:
    stored = KeyringCredentialStore().get() is not None
    console.print("API key is set." if stored else "API key is not set.")


@conversations_app.command("list")
def conversations_list() -> None:
    conversations = _open_store(load_settings()).list_conversations()
    if not conversations:
        console.print("No conversations.")
        return
    table = Table(title="Conversations")
    for column in ("Id", "Title", "Model", "Messages", "Updated"):
        table.add_column(column)
    for conversation in conversations:
        table.add_row(
            conversation.id,
            conversation.title,
            conversation.model or "-",
            str(len(conversation.messages)),
            str(conversation.updated_at),
        )
    console.print(table)


@conversations_app.command("new")
def conversations_new(
    title: str = typer.Argument(..., help="Conversation title"),
    model: str | None = typer.Option(None, "--model", "-m", help="Model key or model id"),
) -> None:
    conversation = _open_store(load_settings()).create_conversation(title, model)
    console.print(conversation.id, highlight=False)


@conversations_app.command("show")
def conversations_show(conversation_id: str = typer.Argument(..., help="Conversation id")) -> None:
    conversation = _open_store(load_settings()).get_conversation(conversation_id)
    if conversation is None:
        raise _fail(f"Conversation not found: {conversation_id}")
    console.print(f"[bold]{conversation.title}[/bold]")
    for message in conversation.messages:
        console.print(f"[cyan]{message.role}[/cyan]: {escape(message.content)}", highlight=False)


@conversations_app.command("rename")
def conversations_rename(
    conversation_id: str = typer.Argument(..., help="Conversation id"),
    title: str = typer.Argument(..., help="New title"),
) -> None:
    _open_store(load_settings()).update_conversation(conversation_id, title=title)


@conversations_app.command("delete")
def conversations_delete(conversation_id: str = typer.Argument(..., help="Conversation id")) -> None:
    _open_store(load_settings()).delete_conversation(conversation_id)


if __name__ == "__main__":
    app()
