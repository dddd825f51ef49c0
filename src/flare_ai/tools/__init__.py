"""Built-in tools."""

from .catalog import BUILTIN_TOOLS, ToolDefinition, ToolSafety, definitions, safety_of, supports_tools

__all__ = ["BUILTIN_TOOLS", "ToolDefinition", "ToolSafety", "definitions", "safety_of", "supports_tools"]
