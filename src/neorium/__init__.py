"""Neorium: resilient async client for a chat-completion API with tool calling."""

from neorium.client import NeoriumClient
from neorium.config import ClientConfig, load_config, resolve_config
from neorium.errors import ErrorKind, NeoError, Violation, describe_error
from neorium.llm.accumulator import ToolCallAccumulator
from neorium.tools import Tool, ToolRegistry
from neorium.types import (
    ChatMessage,
    CompletionRequest,
    CompletionResponse,
    StreamChunk,
    ToolCall,
    ToolContext,
    ToolHandler,
    ToolSchema,
)

__version__ = "0.1.0"

__all__ = [
    "ChatMessage",
    "ClientConfig",
    "CompletionRequest",
    "CompletionResponse",
    "ErrorKind",
    "NeoError",
    "NeoriumClient",
    "StreamChunk",
    "Tool",
    "ToolCall",
    "ToolCallAccumulator",
    "ToolContext",
    "ToolHandler",
    "ToolRegistry",
    "ToolSchema",
    "Violation",
    "describe_error",
    "load_config",
    "resolve_config",
]
