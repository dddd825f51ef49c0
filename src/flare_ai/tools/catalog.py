"""Built-in tool catalog: definitions, input models and safety classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, Field


class ToolSafety(StrEnum):
    """Gates auto-execution; independent of arguments."""

    SAFE = "safe"
    DANGEROUS = "dangerous"


class ReadFileInput(BaseModel):
    path: str = Field(..., description="Absolute path to the file to read")


class WriteFileInput(BaseModel):
    path: str = Field(..., description="Absolute path to the file to write")
    content: str = Field(..., description="Content to write to the file")


class ListDirectoryInput(BaseModel):
    path: str = Field(..., description="Absolute path to the directory to list")


class SearchFilesInput(BaseModel):
    directory: str = Field(..., description="Directory to search in")
    pattern: str = Field(..., description="Filename pattern to search for (supports * and ? wildcards)")


class DeleteFileInput(BaseModel):
    path: str = Field(..., description="Absolute path to the file to delete")


class RunCommandInput(BaseModel):
    command: str = Field(..., description="The shell command to execute")


class WriteClipboardInput(BaseModel):
    content: str = Field(..., description="Text to write to the clipboard")


class EmptyInput(BaseModel):
    """Empty input payload."""


@dataclass(frozen=True)
class ToolDefinition:
    """OpenAI function-calling definition for one tool."""

    name: str
    description: str
    parameters: dict[str, Any]

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass(frozen=True)
class BuiltinTool:
    name: str
    description: str
    model: type[BaseModel]
    safety: ToolSafety

    def definition(self) -> ToolDefinition:
        return ToolDefinition(name=self.name, description=self.description, parameters=schema_from_model(self.model))


def _strip_titles(node: Any) -> Any:
    if isinstance(node, dict):
        return {key: _strip_titles(value) for key, value in node.items() if key != "title"}
    if isinstance(node, list):
        return [_strip_titles(item) for item in node]
    return node


def schema_from_model(model: type[BaseModel]) -> dict[str, Any]:
    """Render a pydantic input model as a plain JSON-schema object."""
    schema = model.model_json_schema()
    properties = {name: _strip_titles(prop) for name, prop in schema.get("properties", {}).items()}
    return {
        "type": "object",
        "properties": properties,
        "required": list(schema.get("required", [])),
    }


BUILTIN_TOOLS: tuple[BuiltinTool, ...] = (
    BuiltinTool(
        name="read_file",
        description="Read the contents of a file. Returns the file content as text.",
        model=ReadFileInput,
        safety=ToolSafety.SAFE,
    ),
    BuiltinTool(
        name="write_file",
        description="Write content to a file. Creates the file if it doesn't exist, overwrites if it does.",
        model=WriteFileInput,
        safety=ToolSafety.DANGEROUS,
    ),
    BuiltinTool(
        name="list_directory",
        description="List the contents of a directory. Returns file and directory names with basic info.",
        model=ListDirectoryInput,
        safety=ToolSafety.SAFE,
    ),
    BuiltinTool(
        name="search_files",
        description="Search for files by name pattern in a directory. Returns matching file paths.",
        model=SearchFilesInput,
        safety=ToolSafety.SAFE,
    ),
    BuiltinTool(
        name="delete_file",
        description="Delete a file. Use with caution.",
        model=DeleteFileInput,
        safety=ToolSafety.DANGEROUS,
    ),
    BuiltinTool(
        name="get_system_info",
        description="Get system information including CPU usage and memory usage.",
        model=EmptyInput,
        safety=ToolSafety.SAFE,
    ),
    BuiltinTool(
        name="run_command",
        description="Execute a shell command and return its output. Use with caution.",
        model=RunCommandInput,
        safety=ToolSafety.DANGEROUS,
    ),
    BuiltinTool(
        name="read_clipboard",
        description="Read the current contents of the system clipboard.",
        model=EmptyInput,
        safety=ToolSafety.DANGEROUS,
    ),
    BuiltinTool(
        name="write_clipboard",
        description="Write text to the system clipboard.",
        model=WriteClipboardInput,
        safety=ToolSafety.DANGEROUS,
    ),
)

_TOOLS_BY_NAME: MappingProxyType[str, BuiltinTool] = MappingProxyType({tool.name: tool for tool in BUILTIN_TOOLS})
_DEFINITIONS: tuple[ToolDefinition, ...] = tuple(tool.definition() for tool in BUILTIN_TOOLS)

FUNCTION_CALLING_MODELS: frozenset[str] = frozenset(
    {
        # OpenAI
        "openai/gpt-4o",
        "openai/gpt-4o-mini",
        "openai/gpt-4-turbo",
        "openai/gpt-4",
        "openai/gpt-4.1",
        "openai/gpt-4.1-mini",
        "openai/gpt-3.5-turbo",
        # Anthropic (via OpenRouter)
        "anthropic/claude-3-opus",
        "anthropic/claude-3-sonnet",
        "anthropic/claude-3-haiku",
        "anthropic/claude-3.7-sonnet",
        "anthropic/claude-sonnet-4",
        "anthropic/claude-opus-4",
        # Google
        "google/gemini-2.5-pro",
        "google/gemini-2.5-flash",
        "google/gemini-2.0-flash-001",
        # Mistral
        "mistralai/mistral-large",
        "mistralai/mistral-medium-3",
        "mistralai/mistral-small",
    }
)


@dataclass(frozen=True)
class ToolInfo:
    name: str
    description: str
    safety: ToolSafety
    definition: ToolDefinition


def definitions() -> list[ToolDefinition]:
    return list(_DEFINITIONS)


def openai_tools() -> list[dict[str, Any]]:
    """Tool definitions in request-body shape."""
    return [definition.to_openai() for definition in _DEFINITIONS]


def get_tool(name: str) -> BuiltinTool | None:
    return _TOOLS_BY_NAME.get(name)


def safety_of(name: str) -> ToolSafety:
    """Safety of a tool by name; unknown tools are dangerous."""
    tool = _TOOLS_BY_NAME.get(name)
    return tool.safety if tool is not None else ToolSafety.DANGEROUS


def supports_tools(model_id: str) -> bool:
    return model_id in FUNCTION_CALLING_MODELS


def tool_infos() -> list[ToolInfo]:
    return [
        ToolInfo(name=tool.name, description=tool.description, safety=tool.safety, definition=definition)
        for tool, definition in zip(BUILTIN_TOOLS, _DEFINITIONS, strict=True)
    ]
