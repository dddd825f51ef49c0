"""flare-ai - streaming chat completions with built-in tool use."""

from .core.orchestrator import ChatOrchestrator
from .core.types import AskOptions, AskResult

__version__ = "0.1.0"

__all__ = ["AskOptions", "AskResult", "ChatOrchestrator"]
