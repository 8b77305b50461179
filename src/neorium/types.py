"""Wire types for the chat-completion API.

Outbound models (requests, messages) are strict: unknown fields are
rejected.  Inbound models (responses, stream chunks) tolerate extra
fields so newer servers keep working, but still enforce the fields the
client relies on.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant", "tool"]


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="allow")


# ---------------------------------------------------------------------------
# Messages and tool calls
# ---------------------------------------------------------------------------

class FunctionCall(_Strict):
    name: str
    arguments: str  # raw JSON text, parsed only by the tool loop


class ToolCall(_Strict):
    """A tool invocation requested by the model."""

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall


class ChatMessage(_Strict):
    """One message of a conversation.

    ``tool_call_id`` is only set on ``tool`` messages; an ``assistant``
    message carrying ``tool_calls`` may have ``content=None``.
    """

    role: Role
    content: str | None = None
    name: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[ToolCall] | None = None


# ---------------------------------------------------------------------------
# Tool schemas
# ---------------------------------------------------------------------------

class FunctionSchema(_Strict):
    name: str
    description: str = ""
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
    )


class ToolSchema(_Strict):
    """Tool description advertised to the model in ``request.tools``."""

    type: Literal["function"] = "function"
    function: FunctionSchema

    @property
    def name(self) -> str:
        return self.function.name


ToolChoice = Union[Literal["auto", "none", "required"], dict[str, Any]]


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class CompletionRequest(_Strict):
    model: str | None = None
    messages: list[ChatMessage]
    tools: list[ToolSchema] | None = None
    tool_choice: ToolChoice | None = None
    temperature: float | None = Field(default=None, ge=0, le=2, strict=True)
    max_tokens: int | None = Field(default=None, gt=0, strict=True)
    stream: bool | None = None

    def to_body(self) -> dict[str, Any]:
        """JSON body sent on the wire."""
        return self.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Non-streaming response
# ---------------------------------------------------------------------------

class ResponseFunctionCall(_Lenient):
    name: str
    arguments: str = ""


class ResponseToolCall(_Lenient):
    id: str
    type: Literal["function"] = "function"
    function: ResponseFunctionCall

    def to_tool_call(self) -> ToolCall:
        return ToolCall(
            id=self.id,
            function=FunctionCall(
                name=self.function.name, arguments=self.function.arguments,
            ),
        )


class ResponseMessage(_Lenient):
    role: Role
    content: str | None = None
    name: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[ResponseToolCall] | None = None

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_chat_message(self) -> ChatMessage:
        """Strict copy suitable for appending to the next request."""
        return ChatMessage(
            role=self.role,
            content=self.content,
            name=self.name,
            tool_call_id=self.tool_call_id,
            tool_calls=(
                [tc.to_tool_call() for tc in self.tool_calls]
                if self.tool_calls else None
            ),
        )


class Choice(_Lenient):
    index: int
    message: ResponseMessage
    finish_reason: str | None


class CompletionResponse(_Lenient):
    id: str
    object: str
    created: int | float
    model: str
    choices: list[Choice]
    usage: dict[str, Any] | None = None

    @property
    def first_message(self) -> ResponseMessage | None:
        """Message of the authoritative first choice, if any."""
        if not self.choices:
            return None
        return self.choices[0].message


# ---------------------------------------------------------------------------
# Streaming response
# ---------------------------------------------------------------------------

class FunctionCallDelta(_Lenient):
    name: str | None = None
    arguments: str | None = None


class ToolCallDelta(_Lenient):
    index: int | None = None
    id: str | None = None
    type: str | None = None
    function: FunctionCallDelta | None = None


class Delta(_Lenient):
    role: Role | None = None
    content: str | None = None
    tool_calls: list[ToolCallDelta] | None = None


class StreamChoice(_Lenient):
    index: int = 0
    delta: Delta = Field(default_factory=Delta)
    finish_reason: str | None = None


class StreamChunk(_Lenient):
    """One decoded server-sent event of a streamed completion."""

    id: str | None = None
    object: str | None = None
    created: int | float | None = None
    model: str | None = None
    choices: list[StreamChoice] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """Content fragment of the first choice (empty if none)."""
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""


# ---------------------------------------------------------------------------
# Tool handlers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ToolContext:
    """Passed to every tool handler alongside the parsed arguments."""

    cancel_event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


ToolHandler = Callable[[Any, ToolContext], Awaitable[Any]]
